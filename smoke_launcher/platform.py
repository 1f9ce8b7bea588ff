"""Platform detection shared across smoke-launcher modules.

Executable layouts, endpoint syntax and a few launch flags differ per
operating system. Everything dispatches on :class:`Platform` so that the
supported matrix lives in one place.
"""

from __future__ import annotations

import enum
import os
import sys
import typing as t

from .errors import UnsupportedPlatformError

# Tests set this override to emulate alternative platforms (for example
# Windows) without needing to run on a different OS.
PLATFORM_OVERRIDE_ENV: t.Final[str] = "SMOKE_LAUNCHER_PLATFORM_OVERRIDE"


class Platform(enum.Enum):
    """Operating systems with a known application layout."""

    MACOS = "darwin"
    LINUX = "linux"
    WINDOWS = "win32"


# Prefixes match the start of ``sys.platform`` (``"linux"`` also covers the
# historical ``"linux2"``).
_PLATFORM_PREFIXES: t.Final[tuple[tuple[str, Platform], ...]] = (
    ("darwin", Platform.MACOS),
    ("linux", Platform.LINUX),
    ("win32", Platform.WINDOWS),
)


def _normalise(platform: str) -> str:
    """Return a lowercase version of *platform* suitable for prefix checks."""
    return platform.strip().lower()


def _platform_name(platform: str | None = None) -> str:
    """Return the effective platform name, honouring test overrides."""
    if platform:
        return _normalise(platform)

    if override := os.getenv(PLATFORM_OVERRIDE_ENV):
        return _normalise(override)

    return _normalise(sys.platform)


def resolve_platform(platform: Platform | str | None = None) -> Platform:
    """Return the :class:`Platform` for *platform* (default: current host).

    Raises :class:`UnsupportedPlatformError` for anything outside the
    supported set.
    """
    if isinstance(platform, Platform):
        return platform

    name = _platform_name(platform)
    for prefix, member in _PLATFORM_PREFIXES:
        if name.startswith(prefix):
            return member
    raise UnsupportedPlatformError(name)


def is_supported(platform: str | None = None) -> bool:
    """Return ``True`` when *platform* (default: current) can be launched."""
    try:
        resolve_platform(platform)
    except UnsupportedPlatformError:
        return False
    return True


__all__ = [
    "PLATFORM_OVERRIDE_ENV",
    "Platform",
    "is_supported",
    "resolve_platform",
]
