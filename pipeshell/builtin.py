import logging
import os
import sys
from dataclasses import dataclass

from pipeshell import resolver

logger = logging.getLogger(__name__)

DRAIN_CHUNK = 65536


@dataclass
class BuiltinResult:
    output: bytes = b""
    error: bytes = b""


def _encode(text):
    return text.encode("utf-8", "surrogateescape")


def _result(lines=(), errors=()):
    out = "".join(line + "\n" for line in lines)
    err = "".join(line + "\n" for line in errors)
    return BuiltinResult(_encode(out), _encode(err))


def builtin_echo(args, session):
    return _result([" ".join(args)])


def builtin_type(args, session):
    """Describe how the first argument would be run."""
    if not args:
        return BuiltinResult()
    name = args[0]
    if name in BUILTINS:
        return _result([f"{name} is a shell builtin"])
    path = resolver.resolve_command(name, session)
    if path:
        return _result([f"{name} is {path}"])
    return _result(errors=[f"{name}: not found"])


def builtin_pwd(args, session):
    return _result([session.cwd])


def builtin_cd(args, session):
    """Change the session's working directory; HOME when no argument."""
    arg = args[0] if args else "~"
    target = session.abspath(arg)
    if not os.path.exists(target):
        return _result(errors=[f"cd: {arg}: No such file or directory"])
    if not os.path.isdir(target):
        return _result(errors=[f"cd: {arg}: Not a directory"])
    session.cwd = target
    return BuiltinResult()


def builtin_exit(args, session):
    code = 0
    if args:
        try:
            code = int(args[0])
        except ValueError:
            code = 0
    sys.exit(code)


def _history_file(option, args):
    if len(args) < 2:
        raise ValueError(f"history: {option}: filename argument required")
    return args[1]


def builtin_history(args, session):
    """
    Show the command log, or sync it with a file.

    history [n]        last n entries (all when omitted)
    history -r FILE    append the lines of FILE to the log
    history -w FILE    write the whole log to FILE
    history -a FILE    append entries new since the last sync with FILE
    history -c         clear the log
    """
    log = session.history
    if args and args[0].startswith("-"):
        option = args[0]
        try:
            if option == "-c":
                log.clear()
                session.history_marks.clear()
                return BuiltinResult()
            if option not in ("-r", "-w", "-a"):
                return _result(errors=[f"history: {option}: invalid option"])
            name = _history_file(option, args)
            path = session.abspath(name)
            if option == "-r":
                with open(path, encoding="utf-8", errors="surrogateescape") as f:
                    log.extend(line.rstrip("\n") for line in f if line.strip())
            elif option == "-w":
                with open(path, "w", encoding="utf-8", errors="surrogateescape") as f:
                    f.writelines(entry + "\n" for entry in log)
            else:
                start = session.history_marks.get(path, 0)
                with open(path, "a", encoding="utf-8", errors="surrogateescape") as f:
                    f.writelines(entry + "\n" for entry in log[start:])
            session.history_marks[path] = len(log)
        except ValueError as e:
            return _result(errors=[str(e)])
        except OSError as e:
            return _result(errors=[f"history: {name}: {e.strerror or e}"])
        return BuiltinResult()

    start = 0
    if args:
        try:
            count = int(args[0])
        except ValueError:
            return _result(errors=[f"history: {args[0]}: numeric argument required"])
        start = max(0, len(log) - count)
    return _result(f"{i:>5}  {log[i - 1]}" for i in range(start + 1, len(log) + 1))


BUILTINS = {
    "echo": builtin_echo,
    "type": builtin_type,
    "pwd": builtin_pwd,
    "cd": builtin_cd,
    "exit": builtin_exit,
    "history": builtin_history,
}


def names():
    return sorted(BUILTINS)


def lookup(name):
    """Return the handler for a builtin name, or None."""
    return BUILTINS.get(name)


def drain(upstream):
    """Read an upstream pipe to EOF so its writer never blocks."""
    if upstream is None:
        return
    try:
        while upstream.read(DRAIN_CHUNK):
            pass
    except OSError as e:
        logger.debug("drain failed: %s", e)


def execute(handler, args, session, upstream=None):
    """Run a builtin handler in-process, draining ``upstream`` first."""
    # exit leaves its producers to be terminated rather than read
    if handler is not builtin_exit:
        drain(upstream)
    return handler(list(args), session)
