"""Allocate driver IPC endpoints.

Windows endpoints are named pipes; everywhere else the driver listens on a
Unix domain socket whose path is a fresh temporary file name.
"""

from __future__ import annotations

import os
import random
import string
import tempfile
import typing as t
from pathlib import Path

from .platform import Platform, resolve_platform

WINDOWS_PIPE_PREFIX: t.Final[str] = "\\\\.\\pipe\\"
PIPE_NAME_LENGTH: t.Final[int] = 15
ERROR_FILE_NOT_FOUND: t.Final[int] = 2

_PIPE_ALPHABET: t.Final[str] = string.digits + string.ascii_lowercase
_SOCKET_NAME_ALPHABET: t.Final[str] = string.ascii_letters + string.digits
_SOCKET_NAME_LENGTH: t.Final[int] = 12
_MAX_NAME_TRIES: t.Final[int] = 3


def random_pipe_name(length: int = PIPE_NAME_LENGTH) -> str:
    """Return a named pipe path with *length* random characters.

    Only collisions between concurrent test runs matter here, so the module
    level PRNG is sufficient.
    """
    name = "".join(random.choices(_PIPE_ALPHABET, k=length))  # noqa: S311
    return f"{WINDOWS_PIPE_PREFIX}{name}"


def temporary_socket_path(directory: os.PathLike[str] | str | None = None) -> str:
    """Return a path in *directory* (default: the temp dir) that does not exist.

    Nothing is created; the caller's peer binds a socket at the path.
    """
    base = Path(directory) if directory is not None else Path(tempfile.gettempdir())
    for _ in range(_MAX_NAME_TRIES):
        suffix = "".join(
            random.choices(_SOCKET_NAME_ALPHABET, k=_SOCKET_NAME_LENGTH)  # noqa: S311
        )
        candidate = base / f"tmp-{os.getpid()}-{suffix}"
        if not candidate.exists():
            return str(candidate)
    msg = f"Could not find an unused socket name in {base}"
    raise FileExistsError(msg)


def create_driver_handle(platform: Platform | str | None = None) -> str:
    """Return a fresh endpoint for the driver of a single launch."""
    if resolve_platform(platform) is Platform.WINDOWS:
        return random_pipe_name()
    return temporary_socket_path()


__all__ = [
    "ERROR_FILE_NOT_FOUND",
    "PIPE_NAME_LENGTH",
    "WINDOWS_PIPE_PREFIX",
    "create_driver_handle",
    "random_pipe_name",
    "temporary_socket_path",
]
