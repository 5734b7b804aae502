import os
import stat

EXEC_BITS = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH


def is_executable(path):
    """True for a regular file with any execute bit set."""
    try:
        st = os.stat(path)
    except OSError:
        return False
    return stat.S_ISREG(st.st_mode) and bool(st.st_mode & EXEC_BITS)


def search_dirs(path=None):
    if path is None:
        path = os.environ.get("PATH", "")
    return [d for d in path.split(":") if d]


def resolve(name, path=None):
    """
    Locate ``name`` on PATH and return the first executable candidate.

    PATH is read on every call; nothing is cached. Names containing a slash
    are not searched and resolve to themselves when executable.
    """
    if not name:
        return None
    if "/" in name:
        return name if is_executable(name) else None
    for directory in search_dirs(path):
        candidate = os.path.join(directory, name)
        if is_executable(candidate):
            return candidate
    return None


def executables(prefix="", path=None):
    """Names of executables on PATH starting with ``prefix``, for completion."""
    found = set()
    for directory in search_dirs(path):
        try:
            entries = os.listdir(directory)
        except OSError:
            continue
        for entry in entries:
            if entry.startswith(prefix) and is_executable(os.path.join(directory, entry)):
                found.add(entry)
    return sorted(found)


def resolve_command(name, session):
    """
    Resolve a typed command name the way the shell runs it: names with a
    slash are taken relative to the session's directory, others use PATH.
    """
    if "/" in name:
        return resolve(session.abspath(name))
    return resolve(name)
