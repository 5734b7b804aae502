import os
import sys

import readline

from pipeshell.config import HISTORY_FILE, MAX_HISTORY


READLINE_SETTINGS = (
    "set editing-mode emacs",
    "set show-all-if-ambiguous on",
    "tab: complete",
    '"\\e[A": previous-history',
    '"\\e[B": next-history',
    '"\\e[1;5D": backward-word',
    '"\\e[1;5C": forward-word',
)


def init_readline(completer=None, stream=None):
    """
    Apply key bindings and install the command completer. Returns False when
    the shell is not attached to a terminal and nothing was configured.
    """
    stream = stream or sys.stdin
    if not stream.isatty():
        return False
    try:
        for setting in READLINE_SETTINGS:
            readline.parse_and_bind(setting)
        if completer is not None:
            # "|" starts a new command word
            readline.set_completer_delims(" \t\n|")
            readline.set_completer(completer)
    except Exception as e:
        print(f"Warning: Could not configure readline: {e}", file=sys.stderr)
        return False
    return True


def load_history(session, path=HISTORY_FILE):
    """Load the history file into readline and the session's command log."""
    try:
        if not os.path.exists(path):
            return
        with open(path, encoding="utf-8", errors="surrogateescape") as f:
            lines = [line.rstrip("\n") for line in f if line.strip()]
        readline.set_history_length(MAX_HISTORY)
        for line in lines[-MAX_HISTORY:]:
            add_to_history(session, line)
        session.history_marks[path] = len(session.history)
    except Exception as e:
        print(f"Warning: Could not load history: {e}", file=sys.stderr)


def save_history(session, path=HISTORY_FILE):
    """Write the last MAX_HISTORY commands of the session to the history file."""
    try:
        with open(path, "w", encoding="utf-8", errors="surrogateescape") as f:
            f.writelines(line + "\n" for line in session.history[-MAX_HISTORY:])
    except Exception as e:
        print(f"Warning: Could not save history: {e}", file=sys.stderr)


def add_to_history(session, line):
    session.record(line)
    readline.add_history(line)
