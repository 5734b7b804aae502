"""
Pipeline executor.

A pipeline moves through PARSED -> SPAWNING -> CONNECTED -> RUNNING ->
DRAINING -> COMPLETED, or from SPAWNING to ABORTING when a command cannot
be found, spawned or redirected. Builtins run in-process and externals run
as child processes; a single-stage pipeline takes the same path with its
streams left inherited.

Every process a pipeline spawns is waited for before ``run_pipeline``
returns or unwinds; on abort it is terminated first.
"""
import enum
import logging
import os
import subprocess
import sys
import threading

from pipeshell import builtin, resolver
from pipeshell.config import SHELL_NAME
from pipeshell.errors import CommandNotFound, RedirectionError, ShellError, SpawnError

logger = logging.getLogger(__name__)


class State(enum.Enum):
    PARSED = "parsed"
    SPAWNING = "spawning"
    CONNECTED = "connected"
    RUNNING = "running"
    DRAINING = "draining"
    COMPLETED = "completed"
    ABORTING = "aborting"


def _write_all(fd, data):
    view = memoryview(data)
    while view:
        written = os.write(fd, view)
        view = view[written:]


def _relay(fd, data):
    """Push a builtin's output into the write end of a pipe, then close it."""
    try:
        _write_all(fd, data)
    except OSError as e:
        # reader exited before taking everything
        logger.debug("relay stopped early: %s", e)
    finally:
        os.close(fd)


def start_relay(data):
    """Return (read_fd, thread) with ``data`` being written from a thread."""
    read_fd, write_fd = os.pipe()
    thread = threading.Thread(target=_relay, args=(write_fd, data), daemon=True)
    thread.start()
    return read_fd, thread


def _close(f):
    if f is None:
        return
    try:
        if isinstance(f, int):
            os.close(f)
        else:
            f.close()
    except OSError as e:
        logger.debug("close failed: %s", e)


def _terminal(stream):
    stream.flush()
    return getattr(stream, "buffer", None)


def emit(data, target=None, stream=None):
    """Write builtin bytes to an open file, or to a terminal stream."""
    if not data:
        return
    try:
        if target is not None:
            target.write(data)
            return
        stream = stream or sys.stdout
        raw = _terminal(stream)
        if raw is not None:
            raw.write(data)
            raw.flush()
        else:
            stream.write(data.decode("utf-8", "surrogateescape"))
            stream.flush()
    except OSError as e:
        logger.debug("could not write builtin output: %s", e)


def open_redirection(redirection, session):
    if redirection is None:
        return None
    path = session.abspath(redirection.target)
    try:
        return open(path, "ab" if redirection.append else "wb")
    except OSError as e:
        raise RedirectionError(redirection.target, e) from e


def resolve_stage(stage, session):
    """Absolute path of an external stage's program, or CommandNotFound."""
    path = resolver.resolve_command(stage.command, session)
    if path is None:
        raise CommandNotFound(stage.command)
    return path


class PipelineRun:
    """One execution of a list of stages against a session."""

    def __init__(self, stages, session):
        self.stages = list(stages)
        self.session = session
        self.procs = []
        self.relays = []
        self.state = State.PARSED
        self.upstream = None  # read end of the previous external's stdout
        self.buffered = None  # output of the previous builtin
        self.last_proc = None

    def _enter(self, state):
        logger.debug("pipeline %s -> %s", self.state.value, state.value)
        self.state = state

    def run(self):
        if not self.stages:
            return 0
        status = 0
        try:
            self._enter(State.SPAWNING)
            for idx, stage in enumerate(self.stages):
                status = self._run_stage(stage, idx == 0, idx == len(self.stages) - 1)
            self._enter(State.CONNECTED)
        except CommandNotFound as e:
            print(e, file=sys.stderr)
            status = e.status
        except ShellError as e:
            print(f"{SHELL_NAME}: {e}", file=sys.stderr)
            status = e.status
        finally:
            # also reached when the exit builtin raises SystemExit
            if self.state is not State.CONNECTED:
                self._enter(State.ABORTING)
            returncode = self._reap(abort=self.state is State.ABORTING)
        if returncode is not None:
            status = returncode
        self._enter(State.COMPLETED)
        return status

    def _run_stage(self, stage, first, last):
        out_f = open_redirection(stage.stdout, self.session)
        try:
            err_f = open_redirection(stage.stderr, self.session)
        except RedirectionError:
            _close(out_f)
            raise
        try:
            handler = builtin.lookup(stage.command)
            if handler is not None:
                return self._run_builtin(handler, stage, last, out_f, err_f)
            return self._spawn(stage, first, last, out_f, err_f)
        finally:
            _close(out_f)
            _close(err_f)

    def _run_builtin(self, handler, stage, last, out_f, err_f):
        upstream, self.upstream = self.upstream, None
        # a builtin never reads the previous builtin's output
        self.buffered = None
        try:
            result = builtin.execute(handler, stage.args, self.session, upstream)
        finally:
            _close(upstream)
        emit(result.error, err_f, sys.stderr)
        if out_f is not None:
            emit(result.output, out_f)
        elif last:
            emit(result.output, None, sys.stdout)
        else:
            self.buffered = result.output
        return 0

    def _stdin_for(self, first):
        if self.upstream is not None:
            return self.upstream
        if self.buffered is not None:
            read_fd, thread = start_relay(self.buffered)
            self.relays.append(thread)
            return read_fd
        # the previous stage sent its output to a file
        return None if first else subprocess.DEVNULL

    def _spawn(self, stage, first, last, out_f, err_f):
        path = resolve_stage(stage, self.session)
        stdin = self._stdin_for(first)
        if out_f is not None:
            stdout = out_f
        elif last:
            stdout = None
        else:
            stdout = subprocess.PIPE

        sys.stdout.flush()
        sys.stderr.flush()
        try:
            proc = subprocess.Popen(
                stage.argv,
                executable=path,
                stdin=stdin,
                stdout=stdout,
                stderr=err_f,
                cwd=self.session.cwd,
            )
        except OSError as e:
            raise SpawnError(stage.command, e) from e
        finally:
            # the child holds its own copy now
            if stdin is not None and stdin is not subprocess.DEVNULL:
                _close(stdin)
            self.upstream = None
            self.buffered = None

        logger.debug("spawned %s (pid %d) as %s", path, proc.pid, stage.command)
        self.procs.append(proc)
        if last:
            self.last_proc = proc
        self.upstream = proc.stdout
        return 0

    def _reap(self, abort):
        """Terminate (on abort) and wait for every spawned process."""
        _close(self.upstream)
        self.upstream = None
        if abort:
            for proc in self.procs:
                if proc.poll() is None:
                    logger.debug("terminating pid %d", proc.pid)
                    proc.terminate()
        else:
            self._enter(State.RUNNING)
        returncode = None
        for proc in self.procs:
            proc.wait()
            logger.debug("reaped pid %d (status %s)", proc.pid, proc.returncode)
        if not abort:
            self._enter(State.DRAINING)
        for thread in self.relays:
            thread.join()
        if not abort and self.last_proc is not None:
            returncode = self.last_proc.returncode
        return returncode


def run_pipeline(stages, session):
    """Execute ``stages`` and return the pipeline's exit status."""
    return PipelineRun(stages, session).run()
