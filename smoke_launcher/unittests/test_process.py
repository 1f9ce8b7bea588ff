"""Unit tests for :mod:`smoke_launcher.process`."""

from __future__ import annotations

import asyncio
import logging
import os
import sys
import time
import typing as t
from pathlib import Path

import psutil
import pytest

from smoke_launcher import process as procmod
from smoke_launcher.environment import SpawnConfig, StdioMode
from smoke_launcher.errors import ProcessTeardownError, ShutdownInProgressError
from smoke_launcher.shutdown import ShutdownHooks

_SLEEP_WITH_CHILD = (
    "import subprocess, sys, time\n"
    "child = subprocess.Popen([sys.executable, '-c', 'import time; time.sleep(60)'])\n"
    "print(child.pid, flush=True)\n"
    "time.sleep(60)\n"
)


def _config(code: str, stdio: StdioMode = StdioMode.CAPTURE) -> SpawnConfig:
    return SpawnConfig(
        executable=Path(sys.executable),
        args=("-c", code),
        env=dict(os.environ),
        stdio=stdio,
    )


def _alive(pid: int) -> bool:
    try:
        return procmod._is_running(psutil.Process(pid))
    except psutil.NoSuchProcess:
        return False


def _wait_for_output(handle: procmod.ProcessHandle, timeout: float = 10.0) -> list[str]:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if lines := handle.output_tail():
            return lines
        time.sleep(0.01)
    pytest.fail("process produced no output")


def test_spawn_captures_output_and_observes_exit() -> None:
    """Quiet launches keep an output tail and record the exit status."""
    registry = ShutdownHooks()
    handle = procmod.spawn_process(
        _config("import sys; print('hello'); sys.stderr.write('oops\\n'); sys.exit(3)"),
        registry=registry,
    )

    assert handle.wait(10)
    assert handle.has_exited
    assert handle.returncode == 3
    deadline = time.monotonic() + 5
    while len(handle.output_tail()) < 2 and time.monotonic() < deadline:
        time.sleep(0.01)
    assert sorted(handle.output_tail()) == ["hello", "oops"]


def test_exit_unregisters_shutdown_hook() -> None:
    """Processes that exit on their own no longer need the host-exit hook."""
    registry = ShutdownHooks()
    handle = procmod.spawn_process(_config("pass"), registry=registry)

    assert handle.wait(10)
    deadline = time.monotonic() + 5
    while len(registry) and time.monotonic() < deadline:
        time.sleep(0.01)
    assert len(registry) == 0


def test_host_exit_kills_running_process() -> None:
    """Firing the shutdown registry kills processes still running."""
    registry = ShutdownHooks()
    handle = procmod.spawn_process(
        _config("import time; time.sleep(60)"), registry=registry
    )
    assert len(registry) == 1

    registry.fire()

    assert handle.wait(10)
    assert handle.has_exited


def _live_children() -> set[int]:
    children = psutil.Process().children()
    return {proc.pid for proc in children if procmod._is_running(proc)}


def test_spawn_refused_after_host_shutdown(monkeypatch: pytest.MonkeyPatch) -> None:
    """Nothing is launched once the shutdown registry has fired."""
    registry = ShutdownHooks()
    registry.fire()
    started: list[object] = []
    monkeypatch.setattr(
        procmod.subprocess, "Popen", lambda *args, **kwargs: started.append(args)
    )

    with pytest.raises(ShutdownInProgressError):
        procmod.spawn_process(_config("import time; time.sleep(30)"), registry=registry)

    assert started == []


class _FiresOnRegister(ShutdownHooks):
    """Registry that starts shutting down while a hook is being added."""

    def register(self, hook: t.Callable[[], None]) -> int:
        self.fire()
        return super().register(hook)


def test_spawn_kills_child_when_shutdown_races_registration() -> None:
    """A child whose hook cannot be registered is killed, not leaked."""
    before = _live_children()

    with pytest.raises(ShutdownInProgressError):
        procmod.spawn_process(
            _config("import time; time.sleep(30)"), registry=_FiresOnRegister()
        )

    assert _live_children() <= before


def test_default_registry_is_process_wide(
    isolated_shutdown_registry: ShutdownHooks,
) -> None:
    """Without an explicit registry the process-wide one is used."""
    handle = procmod.spawn_process(_config("import time; time.sleep(60)"))

    assert len(isolated_shutdown_registry) == 1
    handle.kill()
    assert handle.has_exited


def test_kill_takes_down_descendants() -> None:
    """Killing a handle also kills the processes it spawned."""
    handle = procmod.spawn_process(
        _config(_SLEEP_WITH_CHILD), registry=ShutdownHooks()
    )
    child_pid = int(_wait_for_output(handle)[0])
    assert psutil.pid_exists(child_pid)

    handle.kill()

    assert handle.has_exited
    assert not _alive(child_pid)


def test_kill_is_noop_after_exit() -> None:
    """Exited processes are never signalled again."""
    handle = procmod.spawn_process(_config("pass"), registry=ShutdownHooks())
    assert handle.wait(10)

    handle.kill()

    assert handle.returncode == 0


def test_kill_reports_survivors(monkeypatch: pytest.MonkeyPatch) -> None:
    """Processes that refuse to die are reported with their pids."""
    handle = procmod.spawn_process(
        _config("import time; time.sleep(60)"), registry=ShutdownHooks()
    )
    monkeypatch.setattr(procmod, "_kill_processes", lambda _procs, _timeout: [4242])

    try:
        with pytest.raises(ProcessTeardownError) as excinfo:
            handle.kill()
        assert excinfo.value.survivors == (4242,)
    finally:
        handle.popen.kill()
        handle.wait(10)


@pytest.mark.skipif(os.name == "nt", reason="POSIX signal semantics")
def test_verbose_logs_lifecycle(caplog: pytest.LogCaptureFixture) -> None:
    """Verbose launches log the pid on start and the signal on exit."""
    log = logging.getLogger("smoke-tests")
    with caplog.at_level(logging.INFO, logger="smoke-tests"):
        handle = procmod.spawn_process(
            _config("import time; time.sleep(60)", StdioMode.INHERIT),
            verbose=True,
            log=log,
            registry=ShutdownHooks(),
        )
        handle.kill()
        deadline = time.monotonic() + 5
        while "terminated" not in caplog.text and time.monotonic() < deadline:
            time.sleep(0.01)

    assert f"Started application on pid {handle.pid}" in caplog.text
    assert f"pid: {handle.pid}, code: None, signal: SIGKILL" in caplog.text


def test_terminate_process_runs_off_loop() -> None:
    """The async helper kills the process tree."""
    handle = procmod.spawn_process(
        _config("import time; time.sleep(60)"), registry=ShutdownHooks()
    )

    asyncio.run(procmod.terminate_process(handle))

    assert handle.has_exited


def test_repr_reports_state() -> None:
    """The handle's repr shows its pid and run state."""
    handle = procmod.spawn_process(_config("pass"), registry=ShutdownHooks())
    assert handle.wait(10)

    assert repr(handle) == f"ProcessHandle(pid={handle.pid}, exited=0)"
