"""Launch the application under test and connect its driver.

:func:`launch` spawns the process and then dials the driver endpoint until
the application starts listening. Nothing is returned until a driver
session exists; if that never happens the process is killed and the last
connection error is raised.
"""

from __future__ import annotations

import asyncio
import dataclasses as dc
import logging
import os
import typing as t

from .config import RetryConfig, resolve_repo_root
from .driver import Connector, Disposable, DriverConnection, open_driver_channel
from .endpoint import create_driver_handle
from .environment import (
    LaunchOptions,
    build_spawn_config,
    logs_path,
    prepare_remote_environment,
)
from .errors import EndpointNotReadyError
from .extensions import ExtensionCopier, copy_extension
from .paths import executable_path, out_path
from .platform import Platform, resolve_platform
from .process import ProcessHandle, spawn_process, terminate_process
from .timing import measure_and_log

if t.TYPE_CHECKING:  # pragma: no cover - used only for typing
    from pathlib import Path

    from .shutdown import ShutdownHooks

logger = logging.getLogger(__name__)

Sleep = t.Callable[[float], t.Awaitable[None]]
Terminate = t.Callable[[ProcessHandle], t.Awaitable[None]]


@dc.dataclass(frozen=True, slots=True)
class LaunchResult:
    """A running application with a connected driver.

    The caller owns both halves: dispose the client when done and stop the
    process if it is still needed to go away.
    """

    process: ProcessHandle
    client: Disposable
    driver: t.Any

    def dispose(self) -> None:
        """Release the driver session."""
        self.client.dispose()


async def _teardown(
    process: ProcessHandle, terminate: Terminate, log: logging.Logger
) -> None:
    """Kill *process*, logging rather than raising any failure."""
    try:
        await measure_and_log(
            terminate(process), "kill application after failing to connect", log
        )
    except Exception as exc:  # noqa: BLE001 - the connection error takes precedence
        log.error(  # noqa: TRY400
            "Error tearing down application (pid: %d): %s", process.pid, exc
        )


async def connect_with_retries(  # noqa: PLR0913
    connector: Connector,
    out_dir: Path,
    endpoint: str,
    process: ProcessHandle,
    *,
    retry_config: RetryConfig | None = None,
    log: logging.Logger | None = None,
    sleep: Sleep = asyncio.sleep,
    terminate: Terminate = terminate_process,
) -> DriverConnection:
    """Dial *endpoint* until *connector* succeeds or the budget runs out.

    Every failure counts against ``retry_config.max_retries``; once the count
    is exceeded *process* is terminated and the failure re-raised, so at most
    ``max_retries + 1`` attempts are made. :class:`EndpointNotReadyError` is
    expected while the application starts and is not logged; any other error
    is logged before the fixed ``retry_delay`` pause.
    """
    config = retry_config or RetryConfig()
    log = log or logger
    retries = 0

    while True:
        try:
            return await measure_and_log(
                connector(out_dir, endpoint), "connect driver", log
            )
        except Exception as exc:  # noqa: BLE001 - connectors may raise anything
            retries += 1
            if retries > config.max_retries:
                log.error(  # noqa: TRY400
                    "Error connecting driver: %s. Giving up...", exc
                )
                await _teardown(process, terminate, log)
                raise

            if not isinstance(exc, EndpointNotReadyError):
                log.warning("Error connecting driver: %s. Attempting to retry...", exc)

        await sleep(config.retry_delay)


async def launch(  # noqa: PLR0913
    options: LaunchOptions,
    *,
    log: logging.Logger | None = None,
    repo_root: os.PathLike[str] | str | None = None,
    connector: Connector | None = None,
    retry_config: RetryConfig | None = None,
    platform: Platform | str | None = None,
    extension_copier: ExtensionCopier = copy_extension,
    base_env: t.Mapping[str, str] | None = None,
    registry: ShutdownHooks | None = None,
) -> LaunchResult:
    """Start the application for *options* and return it with a live driver.

    Paths and the retry budget are resolved before anything is spawned, so an
    unsupported platform, a broken product descriptor or an invalid retry
    setting fails without side effects. *connector* defaults to
    :func:`open_driver_channel` and *retry_config* to
    :meth:`RetryConfig.from_env`.
    """
    log = log or logger
    host = resolve_platform(platform)
    root = resolve_repo_root(repo_root)
    logs_dir = logs_path(root, remote=options.remote)
    out_dir = out_path(options.code_path, root, host)
    executable = executable_path(options.code_path, root, host)
    config = retry_config or RetryConfig.from_env()

    endpoint = create_driver_handle(host)
    log.debug("Allocated driver endpoint %s", endpoint)

    env_overrides = await asyncio.to_thread(
        prepare_remote_environment,
        options,
        repo_root=root,
        logs_dir=logs_dir,
        copier=extension_copier,
    )
    spawn_config = build_spawn_config(
        options,
        endpoint,
        platform=host,
        repo_root=root,
        executable=executable,
        logs_dir=logs_dir,
        env_overrides=env_overrides,
        base_env=base_env,
    )
    process = spawn_process(
        spawn_config, verbose=options.verbose, log=log, registry=registry
    )

    try:
        connection = await connect_with_retries(
            connector or open_driver_channel,
            out_dir,
            endpoint,
            process,
            retry_config=config,
            log=log,
        )
    except asyncio.CancelledError:
        log.debug("Launch cancelled; killing pid %d", process.pid)
        await _teardown(process, terminate_process, log)
        raise

    return LaunchResult(
        process=process, client=connection.client, driver=connection.driver
    )


__all__ = [
    "LaunchResult",
    "Sleep",
    "Terminate",
    "connect_with_retries",
    "launch",
]
