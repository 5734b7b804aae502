import os

SHELL_NAME = "pipeshell"

PROMPT = os.environ.get("PIPESHELL_PROMPT", "$ ")

HISTORY_FILE = os.path.expanduser(os.environ.get("HISTFILE") or "~/.pipeshell_history")
MAX_HISTORY = 1000  # entries kept in the history file

LOG_LEVEL = os.environ.get("PIPESHELL_LOG_LEVEL", "WARNING").upper()
