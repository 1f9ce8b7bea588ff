"""Runtime configuration for launches, read from the environment."""

from __future__ import annotations

import dataclasses as dc
import os
import typing as t
from pathlib import Path

from ._validators import validate_retry_attempts, validate_retry_delay

REPO_ROOT_ENV: t.Final[str] = "SMOKE_LAUNCHER_REPO_ROOT"
CONNECT_RETRIES_ENV: t.Final[str] = "SMOKE_LAUNCHER_CONNECT_RETRIES"
CONNECT_DELAY_ENV: t.Final[str] = "SMOKE_LAUNCHER_CONNECT_DELAY"

# Thirty one-second waits give slow CI machines about half a minute to bring
# up the driver listener.
DEFAULT_CONNECT_RETRIES: t.Final[int] = 30
DEFAULT_CONNECT_DELAY: t.Final[float] = 1.0


@dc.dataclass(frozen=True, slots=True)
class RetryConfig:
    """
    Budget for the driver connection loop.

    Attributes
    ----------
    max_retries : int
        Failed attempts tolerated before giving up. The loop makes at most
        ``max_retries + 1`` connection attempts.
    retry_delay : float
        Fixed pause in seconds between attempts.

    Raises
    ------
    TypeError, ValueError
        If either value is of the wrong type or out of range.
    """

    max_retries: int = DEFAULT_CONNECT_RETRIES
    retry_delay: float = DEFAULT_CONNECT_DELAY

    def __post_init__(self) -> None:
        """Validate retry configuration values."""
        validate_retry_attempts(self.max_retries)
        validate_retry_delay(self.retry_delay)

    @classmethod
    def from_env(cls, environ: t.Mapping[str, str] | None = None) -> RetryConfig:
        """Build a configuration honouring ``SMOKE_LAUNCHER_CONNECT_*``."""
        env = os.environ if environ is None else environ
        retries = _parse_env(env, CONNECT_RETRIES_ENV, int, DEFAULT_CONNECT_RETRIES)
        delay = _parse_env(env, CONNECT_DELAY_ENV, float, DEFAULT_CONNECT_DELAY)
        return cls(max_retries=retries, retry_delay=delay)


_N = t.TypeVar("_N", int, float)


def _parse_env(
    env: t.Mapping[str, str], name: str, convert: t.Callable[[str], _N], default: _N
) -> _N:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return convert(raw.strip())
    except ValueError as exc:
        msg = f"{name} must be a number, got {raw!r}"
        raise ValueError(msg) from exc


def resolve_repo_root(repo_root: os.PathLike[str] | str | None = None) -> Path:
    """Return the source checkout the dev-mode paths are relative to.

    Falls back to ``SMOKE_LAUNCHER_REPO_ROOT`` and then the current working
    directory.
    """
    if repo_root is not None:
        return Path(repo_root).resolve()
    if env_root := os.environ.get(REPO_ROOT_ENV):
        return Path(env_root).resolve()
    return Path.cwd()


__all__ = [
    "CONNECT_DELAY_ENV",
    "CONNECT_RETRIES_ENV",
    "DEFAULT_CONNECT_DELAY",
    "DEFAULT_CONNECT_RETRIES",
    "REPO_ROOT_ENV",
    "RetryConfig",
    "resolve_repo_root",
]
