import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class ShellSession:
    """State shared by builtins and the executor for one shell."""

    cwd: str = field(default_factory=os.getcwd)
    history: List[str] = field(default_factory=list)
    home: Optional[str] = None
    # history file -> number of log entries already synced to it
    history_marks: Dict[str, int] = field(default_factory=dict)

    def home_dir(self):
        return self.home or os.environ.get("HOME") or os.path.expanduser("~")

    def expand_user(self, path):
        """Expand ``~`` and a leading ``~/`` with HOME."""
        if path == "~":
            return self.home_dir()
        if path.startswith("~/"):
            return os.path.join(self.home_dir(), path[2:])
        return path

    def abspath(self, path):
        """Resolve ``path`` against the session's working directory."""
        return os.path.normpath(os.path.join(self.cwd, self.expand_user(path)))

    def record(self, line):
        self.history.append(line)
