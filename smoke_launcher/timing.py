"""Log how long launch steps take."""

from __future__ import annotations

import logging
import time
import typing as t

_T = t.TypeVar("_T")


async def measure_and_log(
    operation: t.Awaitable[_T], name: str, log: logging.Logger
) -> _T:
    """Await *operation* and log its duration at DEBUG level."""
    start = time.monotonic()
    log.debug("Starting operation '%s'...", name)
    try:
        result = await operation
    except Exception as exc:
        log.debug(
            "Finished operation '%s' with error after %.0fms: %s",
            name,
            (time.monotonic() - start) * 1000,
            exc,
        )
        raise
    log.debug(
        "Finished operation '%s' successfully after %.0fms",
        name,
        (time.monotonic() - start) * 1000,
    )
    return result


__all__ = ["measure_and_log"]
