"""Exception hierarchy for smoke-launcher."""

from __future__ import annotations

import typing as t


class LauncherError(Exception):
    """Base exception for smoke-launcher failures."""


class UnsupportedPlatformError(LauncherError):
    """Raised when the host platform has no executable layout."""

    def __init__(self, platform: str) -> None:
        super().__init__(f"Unsupported platform: {platform!r}")
        self.platform = platform


class ProductDescriptorError(LauncherError):
    """Raised when ``product.json`` is missing, malformed or incomplete."""


class DriverConnectionError(LauncherError):
    """Base class for failures raised by driver connectors."""


class EndpointNotReadyError(DriverConnectionError):
    """The driver endpoint does not exist yet.

    Connectors raise this while the launched application has not started
    listening. The retry loop treats it as expected and does not log it.
    """

    def __init__(self, endpoint: str) -> None:
        super().__init__(f"Driver endpoint {endpoint} is not listening yet")
        self.endpoint = endpoint


class ProcessTeardownError(LauncherError):
    """Raised when processes survive :meth:`ProcessHandle.kill`."""

    def __init__(self, pid: int, survivors: t.Sequence[int]) -> None:
        listed = ", ".join(str(p) for p in survivors)
        super().__init__(
            f"Processes still alive after killing tree of pid {pid}: {listed}"
        )
        self.pid = pid
        self.survivors = tuple(survivors)


class ShutdownInProgressError(LauncherError):
    """Raised when registering a shutdown hook after the registry fired."""


__all__ = [
    "DriverConnectionError",
    "EndpointNotReadyError",
    "LauncherError",
    "ProcessTeardownError",
    "ProductDescriptorError",
    "ShutdownInProgressError",
    "UnsupportedPlatformError",
]
