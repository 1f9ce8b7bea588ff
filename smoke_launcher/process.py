"""Spawn the application process and manage its lifetime."""

from __future__ import annotations

import asyncio
import collections
import contextlib
import logging
import signal
import subprocess
import threading
import typing as t

import psutil

from .errors import ProcessTeardownError, ShutdownInProgressError
from .shutdown import ShutdownHooks, get_registry, register_shutdown_hook

if t.TYPE_CHECKING:  # pragma: no cover - used only for typing
    from .environment import SpawnConfig

logger = logging.getLogger(__name__)

KILL_TIMEOUT: t.Final[float] = 5.0
OUTPUT_TAIL_LINES: t.Final[int] = 200


def _signal_name(returncode: int | None) -> str | None:
    """Return the signal name encoded in a negative *returncode*."""
    if returncode is None or returncode >= 0:
        return None
    try:
        return signal.Signals(-returncode).name
    except ValueError:
        return str(-returncode)


def _is_running(proc: psutil.Process) -> bool:
    """Return ``True`` unless *proc* is gone or only awaiting reaping."""
    try:
        return proc.status() != psutil.STATUS_ZOMBIE
    except psutil.NoSuchProcess:
        return False


def _kill_processes(procs: t.Sequence[psutil.Process], timeout: float) -> list[int]:
    """Kill *procs* and return the pids still alive after *timeout*."""
    for proc in procs:
        with contextlib.suppress(psutil.NoSuchProcess):
            proc.kill()
    _gone, alive = psutil.wait_procs(procs, timeout=timeout)
    return [proc.pid for proc in alive if _is_running(proc)]


class ProcessHandle:
    """A launched application process.

    Tracks whether the process has exited so that teardown never signals a
    pid that may already have been reused, and keeps the last lines of
    captured output for diagnostics.
    """

    def __init__(
        self,
        popen: subprocess.Popen[bytes],
        *,
        verbose: bool = False,
        log: logging.Logger | None = None,
    ) -> None:
        self._popen = popen
        self._verbose = verbose
        self._log = log or logger
        self._exited = threading.Event()
        self._exit_callbacks: list[t.Callable[[], None]] = []
        self._output: collections.deque[str] = collections.deque(
            maxlen=OUTPUT_TAIL_LINES
        )
        self._output_lock = threading.Lock()
        self._threads: list[threading.Thread] = []

    def __repr__(self) -> str:
        state = f"exited={self.returncode}" if self.has_exited else "running"
        return f"ProcessHandle(pid={self.pid}, {state})"

    @property
    def pid(self) -> int:
        """Return the operating system process id."""
        return self._popen.pid

    @property
    def popen(self) -> subprocess.Popen[bytes]:
        """Return the underlying :class:`subprocess.Popen` object."""
        return self._popen

    @property
    def has_exited(self) -> bool:
        """Return ``True`` once the process has been observed to exit."""
        return self._exited.is_set()

    @property
    def returncode(self) -> int | None:
        """Return the exit status, negative for signals (POSIX)."""
        return self._popen.returncode if self.has_exited else None

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the process exits; return ``False`` on timeout."""
        return self._exited.wait(timeout)

    def output_tail(self) -> list[str]:
        """Return the most recent captured output lines."""
        with self._output_lock:
            return list(self._output)

    def add_exit_callback(self, callback: t.Callable[[], None]) -> None:
        """Run *callback* from the watcher thread once the process exits."""
        self._exit_callbacks.append(callback)

    def kill(self, timeout: float = KILL_TIMEOUT) -> None:
        """Kill the process and all of its descendants.

        Raises :class:`ProcessTeardownError` when any of them survive
        *timeout* seconds.
        """
        if self.has_exited:
            return

        try:
            children = psutil.Process(self.pid).children(recursive=True)
        except psutil.NoSuchProcess:
            children = []

        with contextlib.suppress(ProcessLookupError):
            self._popen.kill()

        survivors = _kill_processes(children, timeout)
        if not self._exited.wait(timeout):
            survivors.insert(0, self.pid)
        if survivors:
            raise ProcessTeardownError(self.pid, survivors)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _start(self) -> None:
        for stream in (self._popen.stdout, self._popen.stderr):
            if stream is not None:
                self._spawn_thread(self._drain, stream)
        self._spawn_thread(self._watch)

    def _spawn_thread(self, target: t.Callable[..., None], *args: object) -> None:
        thread = threading.Thread(
            target=target,
            args=args,
            name=f"smoke-launcher-{self.pid}",
            daemon=True,
        )
        self._threads.append(thread)
        thread.start()

    def _drain(self, stream: t.IO[bytes]) -> None:
        # Reading continuously keeps the child from blocking on a full pipe.
        with stream:
            for raw in iter(stream.readline, b""):
                line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
                with self._output_lock:
                    self._output.append(line)

    def _watch(self) -> None:
        returncode = self._popen.wait()
        self._exited.set()
        if self._verbose:
            signal_name = _signal_name(returncode)
            self._log.info(
                "Application terminated (pid: %d, code: %s, signal: %s)",
                self.pid,
                None if signal_name else returncode,
                signal_name,
            )
        for callback in self._exit_callbacks:
            try:
                callback()
            except Exception:  # noqa: BLE001 - watcher thread must not die noisily
                logger.exception("Exit callback for pid %d failed", self.pid)

    def _kill_on_host_exit(self) -> None:
        if not self.has_exited:
            logger.debug("Killing pid %d because the host is exiting", self.pid)
            self.kill()


def spawn_process(
    config: SpawnConfig,
    *,
    verbose: bool = False,
    log: logging.Logger | None = None,
    registry: ShutdownHooks | None = None,
) -> ProcessHandle:
    """Start the application described by *config* without waiting for it.

    A shutdown hook kills the process if the host exits first; the hook is
    dropped as soon as the process exits on its own.
    """
    hooks = get_registry() if registry is None else registry
    if hooks.fired:
        msg = "Cannot launch an application while the host is shutting down"
        raise ShutdownInProgressError(msg)

    popen = subprocess.Popen(  # noqa: S603 - argv list, no shell
        config.argv,
        **config.popen_kwargs(),
    )
    handle = ProcessHandle(popen, verbose=verbose, log=log)
    if verbose:
        (log or logger).info("Started application on pid %d", popen.pid)

    try:
        if registry is None:
            token = register_shutdown_hook(handle._kill_on_host_exit)
        else:
            token = registry.register(handle._kill_on_host_exit)
    except ShutdownInProgressError:
        # The registry fired after the check above; nothing would reap the child.
        with popen:
            popen.kill()
        raise
    handle.add_exit_callback(lambda: hooks.unregister(token))
    handle._start()
    return handle


async def terminate_process(handle: ProcessHandle) -> None:
    """Kill *handle*'s process tree without blocking the event loop."""
    await asyncio.to_thread(handle.kill)


__all__ = [
    "KILL_TIMEOUT",
    "OUTPUT_TAIL_LINES",
    "ProcessHandle",
    "spawn_process",
    "terminate_process",
]
