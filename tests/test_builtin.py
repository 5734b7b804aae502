import io
import os

import pytest

from pipeshell import builtin


def run(name, args, session, upstream=None):
    return builtin.execute(builtin.lookup(name), args, session, upstream)


def test_registry_names():
    assert builtin.names() == ["cd", "echo", "exit", "history", "pwd", "type"]
    assert builtin.lookup("ls") is None


def test_echo():
    assert run("echo", ["hello", "world"], None).output == b"hello world\n"
    assert run("echo", [], None).output == b"\n"
    assert run("echo", ["x"], None).error == b""


def test_type_reports_builtin_path_and_missing(session, tmp_path, make_program, monkeypatch):
    prog = make_program("bin", "mytool")
    monkeypatch.setenv("PATH", str(tmp_path / "bin"))
    assert run("type", ["echo"], session).output == b"echo is a shell builtin\n"
    assert run("type", ["mytool", "ignored"], session).output == f"mytool is {prog}\n".encode()
    result = run("type", ["nope"], session)
    assert result.output == b""
    assert result.error == b"nope: not found\n"
    assert run("type", [], session).output == b""


def test_pwd_uses_session(session):
    assert run("pwd", [], session).output == (session.cwd + "\n").encode()


def test_cd_relative_absolute_and_home(session, tmp_path):
    start = session.cwd
    os.mkdir(os.path.join(start, "sub"))
    os.mkdir(os.path.join(session.home, "docs"))

    assert run("cd", ["sub"], session).output == b""
    assert session.cwd == os.path.join(start, "sub")
    run("cd", [".."], session)
    assert session.cwd == start
    run("cd", ["~"], session)
    assert session.cwd == session.home
    run("cd", ["~/docs"], session)
    assert session.cwd == os.path.join(session.home, "docs")
    run("cd", [str(tmp_path)], session)
    assert session.cwd == str(tmp_path)
    run("cd", [], session)
    assert session.cwd == session.home


def test_cd_failure_keeps_directory(session):
    before = session.cwd
    result = run("cd", ["/does/not/exist"], session)
    assert result.error == b"cd: /does/not/exist: No such file or directory\n"
    assert session.cwd == before

    open(os.path.join(before, "file"), "w").close()
    result = run("cd", ["file"], session)
    assert result.error == b"cd: file: Not a directory\n"
    assert session.cwd == before


def test_cd_does_not_touch_process_cwd(session):
    before = os.getcwd()
    run("cd", ["~"], session)
    assert os.getcwd() == before


@pytest.mark.parametrize("args, code", [(["7"], 7), ([], 0), (["abc"], 0), (["3", "x"], 3)])
def test_exit_codes(session, args, code):
    with pytest.raises(SystemExit) as excinfo:
        run("exit", args, session)
    assert excinfo.value.code == code


def test_history_lists_and_limits(session):
    session.history.extend(["echo a", "ls", "pwd", "history 2"])
    out = run("history", [], session).output.decode()
    assert out.splitlines() == ["    1  echo a", "    2  ls", "    3  pwd", "    4  history 2"]
    out = run("history", ["2"], session).output.decode()
    assert out.splitlines() == ["    3  pwd", "    4  history 2"]
    assert run("history", ["10"], session).output.decode().count("\n") == 4
    assert run("history", ["0"], session).output == b""


def test_history_bad_argument(session):
    result = run("history", ["many"], session)
    assert result.error == b"history: many: numeric argument required\n"
    assert run("history", ["-z"], session).error == b"history: -z: invalid option\n"
    assert run("history", ["-w"], session).error == b"history: -w: filename argument required\n"


def test_history_file_sync(session):
    session.history.extend(["one", "two"])
    run("history", ["-w", "h.txt"], session)
    path = os.path.join(session.cwd, "h.txt")
    with open(path) as f:
        assert f.read() == "one\ntwo\n"

    session.history.append("three")
    run("history", ["-a", "h.txt"], session)
    run("history", ["-a", "h.txt"], session)
    with open(path) as f:
        assert f.read() == "one\ntwo\nthree\n"

    run("history", ["-c"], session)
    assert session.history == []
    run("history", ["-r", "h.txt"], session)
    assert session.history == ["one", "two", "three"]

    result = run("history", ["-r", "missing.txt"], session)
    assert result.error == b"history: missing.txt: No such file or directory\n"


def test_builtins_drain_upstream(session):
    upstream = io.BytesIO(b"x" * 500000)
    result = run("pwd", [], session, upstream)
    assert upstream.read() == b""
    assert result.output == (session.cwd + "\n").encode()


def test_type_resolves_slash_names_from_session_directory(session):
    sub = os.path.join(session.cwd, "sub")
    os.mkdir(sub)
    script = os.path.join(sub, "t.sh")
    with open(script, "w") as f:
        f.write("#!/bin/sh\necho ok\n")
    os.chmod(script, 0o755)

    run("cd", ["sub"], session)
    result = run("type", ["./t.sh"], session)
    assert result.output == f"./t.sh is {script}\n".encode()
    assert result.error == b""
