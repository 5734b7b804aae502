"""pipeshell: an interactive shell core with builtins, redirection and pipelines."""

__version__ = "0.1.0"
