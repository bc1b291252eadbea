import logging
import os
import shlex
import subprocess
import sys
import threading
from contextlib import contextmanager

import psutil

from confrescue.errors import ToolExitError, ToolLaunchError, ToolTimeoutError


def _normalize(command) -> list[str]:
    if isinstance(command, (str, bytes)):
        raise TypeError("command must be a list of arguments, not %r" % type(command))
    return [os.fspath(c) if isinstance(c, os.PathLike) else str(c) for c in command]


def _launch(command: list[str], cwd=None, **popen_kwargs) -> subprocess.Popen:
    try:
        return subprocess.Popen(command, cwd=cwd, **popen_kwargs)
    except (FileNotFoundError, PermissionError, NotADirectoryError) as e:
        logging.error(f"Could not launch {command[0]}: {e}")
        raise ToolLaunchError(command[0], e.strerror or str(e)) from e


def _terminate_tree(proc: subprocess.Popen) -> None:
    """Kill ``proc`` and every descendant, then reap ``proc``.

    xtb and crest fork helpers of their own; killing only the direct child
    would leave those running with our pipe still open.
    """
    try:
        children = psutil.Process(proc.pid).children(recursive=True)
    except psutil.NoSuchProcess:
        children = []
    for child in children:
        try:
            child.kill()
        except psutil.NoSuchProcess:
            pass
    psutil.wait_procs(children, timeout=5)
    if proc.poll() is None:
        proc.kill()
    proc.wait()


def _snapshot(cwd) -> set[str]:
    try:
        return set(os.listdir(cwd or "."))
    except FileNotFoundError:
        return set()


def _log_new_items(before: set[str], cwd) -> None:
    new_items = _snapshot(cwd) - before
    if new_items:
        logging.info(f"New files/folders created: {', '.join(sorted(new_items))}")
    else:
        logging.info("No new files/folders created.")


def run_command(command, cwd=None, timeout: float | None = None, log_file=None) -> str:
    """
    Runs an external program to completion with logging and error handling.

    Parameters
    ----------
    command : list[str]
        Program and arguments. Executed without a shell.
    cwd : str or Path, optional
        Working directory in which to execute the command.
    timeout : float, optional
        Seconds before the process tree is killed. ``None`` waits forever.
    log_file : str or Path, optional
        When given, stdout and stderr are written to this file instead of
        being captured and logged.

    Returns
    -------
    str
        Combined stdout and stderr (empty when ``log_file`` is used).

    Raises
    ------
    ToolLaunchError
        If the executable cannot be started.
    ToolExitError
        If the command exits with a non-zero status.
    ToolTimeoutError
        If ``timeout`` elapses.
    """
    command = _normalize(command)
    log_cmd = shlex.join(command)
    logging.info(f"Executing command: {log_cmd}")
    before_items = _snapshot(cwd)

    handle = open(log_file, "w") if log_file is not None else None
    try:
        process = _launch(
            command,
            cwd=cwd,
            stdout=handle if handle is not None else subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
        )
        try:
            output, _ = process.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            logging.error(f"Command timed out after {timeout} s: {log_cmd}")
            _terminate_tree(process)
            process.communicate()
            raise ToolTimeoutError(log_cmd, timeout)
        except BaseException:
            _terminate_tree(process)
            raise
    finally:
        if handle is not None:
            handle.close()

    output = output or ""
    for line in output.splitlines():
        logging.info(line.rstrip())

    if process.returncode != 0:
        logging.error(f"Command exited with code {process.returncode}: {log_cmd}")
        raise ToolExitError(process.returncode, log_cmd, output)

    _log_new_items(before_items, cwd)
    return output


class StreamedProcess:
    """Line iterator over a running child's stdout.

    Every line handed out is echoed to the terminal first. Iteration may be
    abandoned at any point; :func:`stream_command` drains the rest on exit.
    """

    def __init__(self, process: subprocess.Popen, command: str, echo: bool = True):
        self._process = process
        self.command = command
        self.echo = echo
        self.returncode: int | None = None
        self.timed_out = False

    @property
    def pid(self) -> int:
        return self._process.pid

    def __iter__(self):
        for line in iter(self._process.stdout.readline, ""):
            if self.echo:
                sys.stdout.write(line)
                sys.stdout.flush()
            logging.debug(line.rstrip())
            yield line.rstrip("\n")

    def drain(self) -> None:
        for _ in self:
            pass

    def check(self) -> None:
        if self.returncode is None:
            raise RuntimeError("process has not been reaped yet")
        if self.returncode != 0:
            logging.error(f"Command exited with code {self.returncode}: {self.command}")
            raise ToolExitError(self.returncode, self.command)

    def _expire(self) -> None:
        # the child may have exited between the deadline and watchdog.cancel()
        if self._process.poll() is not None:
            return
        self.timed_out = True
        logging.error(f"Command timed out, killing process tree: {self.command}")
        _terminate_tree(self._process)


@contextmanager
def stream_command(command, cwd=None, timeout: float | None = None, echo: bool = True, check: bool = True):
    """Run ``command`` and yield a :class:`StreamedProcess` over its stdout.

    stderr is inherited so tool diagnostics reach the terminal untouched.
    Leaving the block drains the remaining output, closes the pipe and reaps
    the child. If the block raises, the process tree is killed instead. With
    ``check=True`` an abnormal exit raises :class:`ToolExitError` after the
    stream is closed; with ``check=False`` the caller inspects
    ``returncode``.
    """
    command = _normalize(command)
    log_cmd = shlex.join(command)
    logging.info(f"Streaming command: {log_cmd}")
    process = _launch(command, cwd=cwd, stdout=subprocess.PIPE, text=True, bufsize=1)
    run = StreamedProcess(process, log_cmd, echo=echo)
    watchdog = None
    if timeout is not None:
        watchdog = threading.Timer(timeout, run._expire)
        watchdog.daemon = True
        watchdog.start()
    try:
        yield run
        run.drain()
    except BaseException:
        _terminate_tree(process)
        raise
    finally:
        if watchdog is not None:
            watchdog.cancel()
        process.stdout.close()
        run.returncode = process.wait()

    if run.timed_out:
        raise ToolTimeoutError(log_cmd, timeout)
    if check:
        run.check()
