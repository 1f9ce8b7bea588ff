"""Launch a desktop application for end-to-end tests and connect its driver.

The package resolves the application's executable, builds an isolated
argument vector and environment, spawns the process and retries the driver
connection until the application is listening.
"""

from __future__ import annotations

from .config import RetryConfig
from .driver import Connector, DriverChannel, DriverConnection, open_driver_channel
from .endpoint import create_driver_handle
from .environment import LaunchOptions, SpawnConfig, StdioMode, build_spawn_config
from .errors import (
    DriverConnectionError,
    EndpointNotReadyError,
    LauncherError,
    ProcessTeardownError,
    ProductDescriptorError,
    ShutdownInProgressError,
    UnsupportedPlatformError,
)
from .launcher import LaunchResult, connect_with_retries, launch
from .platform import PLATFORM_OVERRIDE_ENV, Platform, is_supported, resolve_platform
from .process import ProcessHandle, spawn_process

__all__ = [
    "PLATFORM_OVERRIDE_ENV",
    "Connector",
    "DriverChannel",
    "DriverConnection",
    "DriverConnectionError",
    "EndpointNotReadyError",
    "LaunchOptions",
    "LaunchResult",
    "LauncherError",
    "Platform",
    "ProcessHandle",
    "ProcessTeardownError",
    "ProductDescriptorError",
    "RetryConfig",
    "ShutdownInProgressError",
    "SpawnConfig",
    "StdioMode",
    "UnsupportedPlatformError",
    "build_spawn_config",
    "connect_with_retries",
    "create_driver_handle",
    "is_supported",
    "launch",
    "open_driver_channel",
    "resolve_platform",
    "spawn_process",
]
