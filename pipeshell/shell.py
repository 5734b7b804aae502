import logging
import sys

import readline

from pipeshell import builtin, resolver
from pipeshell.config import HISTORY_FILE, PROMPT, SHELL_NAME
from pipeshell.executor import run_pipeline
from pipeshell.history import add_to_history, init_readline, load_history, save_history
from pipeshell.log import setup_logging
from pipeshell.parser import parse_command
from pipeshell.session import ShellSession

logger = logging.getLogger(__name__)

_matches = []


def command_candidates(prefix):
    """Builtin names and PATH executables starting with ``prefix``."""
    found = {name for name in builtin.names() if name.startswith(prefix)}
    found.update(resolver.executables(prefix))
    return sorted(found)


def complete(text, state):
    """readline completer: only the command word of a stage is completed."""
    global _matches
    if state == 0:
        head = readline.get_line_buffer()[:readline.get_begidx()].rstrip()
        if head and not head.endswith("|"):
            _matches = []
        else:
            _matches = command_candidates(text)
            if len(_matches) == 1:
                _matches = [_matches[0] + " "]
    if state < len(_matches):
        return _matches[state]
    return None


def run_line(line, session):
    """Parse and execute one line; returns the pipeline status."""
    return run_pipeline(parse_command(line), session)


def main_loop(session=None, history_file=HISTORY_FILE):
    """Main shell loop"""
    setup_logging()
    session = session or ShellSession()

    init_readline(complete)
    load_history(session, history_file)

    last_status = 0
    try:
        while True:
            try:
                line = input(PROMPT).strip()
            except EOFError:
                print()
                break
            except KeyboardInterrupt:
                print()
                continue

            if not line:
                continue

            add_to_history(session, line)
            try:
                last_status = run_line(line, session)
            except KeyboardInterrupt:
                print()
                last_status = 130
            except Exception as e:
                logger.debug("unexpected failure running %r", line, exc_info=True)
                print(f"{SHELL_NAME}: {e}", file=sys.stderr)
                last_status = 1
            logger.debug("status %d", last_status)
    finally:
        save_history(session, history_file)
    return 0


def main():
    sys.exit(main_loop())
