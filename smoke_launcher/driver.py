"""Connector interface for driver sessions and a raw-stream default.

The driver protocol itself is owned by the application under test. The
launcher only needs a coroutine that either returns a
:class:`DriverConnection` or raises; :class:`EndpointNotReadyError` marks the
expected "nobody is listening yet" case.
"""

from __future__ import annotations

import asyncio
import dataclasses as dc
import logging
import typing as t

from .endpoint import ERROR_FILE_NOT_FOUND, WINDOWS_PIPE_PREFIX
from .errors import DriverConnectionError, EndpointNotReadyError

if t.TYPE_CHECKING:  # pragma: no cover - used only for typing
    from pathlib import Path

logger = logging.getLogger(__name__)


class Disposable(t.Protocol):
    """Anything holding resources released by :meth:`dispose`."""

    def dispose(self) -> None: ...


@dc.dataclass(frozen=True, slots=True)
class DriverConnection:
    """A connected driver session: the disposable client and its driver API."""

    client: Disposable
    driver: t.Any


Connector = t.Callable[["Path", str], t.Awaitable[DriverConnection]]


@dc.dataclass(slots=True)
class DriverChannel:
    """Bidirectional byte stream to the driver endpoint."""

    endpoint: str
    reader: asyncio.StreamReader
    writer: asyncio.StreamWriter

    def dispose(self) -> None:
        """Close the underlying transport."""
        self.writer.close()


def _is_endpoint_missing(exc: OSError) -> bool:
    return (
        isinstance(exc, FileNotFoundError)
        or getattr(exc, "winerror", None) == ERROR_FILE_NOT_FOUND
    )


async def _open_pipe(
    endpoint: str,
) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
    loop = asyncio.get_running_loop()
    create_pipe_connection = getattr(loop, "create_pipe_connection", None)
    if create_pipe_connection is None:
        msg = "Named pipe endpoints require the proactor event loop"
        raise DriverConnectionError(msg)
    reader = asyncio.StreamReader()
    protocol = asyncio.StreamReaderProtocol(reader)
    transport, _ = await create_pipe_connection(lambda: protocol, endpoint)
    writer = asyncio.StreamWriter(transport, protocol, reader, loop)
    return reader, writer


async def open_driver_channel(out_path: Path, endpoint: str) -> DriverConnection:
    """Connect a :class:`DriverChannel` to *endpoint*.

    *out_path* locates the compiled driver implementation for connectors that
    load one; the raw channel does not need it.
    """
    logger.debug("Opening driver channel to %s (out: %s)", endpoint, out_path)
    try:
        if endpoint.startswith(WINDOWS_PIPE_PREFIX):
            reader, writer = await _open_pipe(endpoint)
        else:
            reader, writer = await asyncio.open_unix_connection(endpoint)
    except OSError as exc:
        if _is_endpoint_missing(exc):
            raise EndpointNotReadyError(endpoint) from exc
        raise
    channel = DriverChannel(endpoint=endpoint, reader=reader, writer=writer)
    return DriverConnection(client=channel, driver=channel)


__all__ = [
    "Connector",
    "Disposable",
    "DriverChannel",
    "DriverConnection",
    "open_driver_channel",
]
