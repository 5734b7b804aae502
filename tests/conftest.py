import os

import pytest

from pipeshell.session import ShellSession


@pytest.fixture
def session(tmp_path):
    home = tmp_path / "home"
    home.mkdir()
    work = tmp_path / "work"
    work.mkdir()
    return ShellSession(cwd=str(work), home=str(home))


@pytest.fixture
def make_program(tmp_path):
    """Create a shell script under tmp_path/<dir>/<name>."""

    def _make(directory, name, body="exit 0", executable=True):
        folder = tmp_path / directory
        folder.mkdir(exist_ok=True)
        path = folder / name
        path.write_text(f"#!/bin/sh\n{body}\n")
        os.chmod(path, 0o755 if executable else 0o644)
        return path

    return _make
