"""Shared validation helpers."""

from __future__ import annotations

import math


def validate_retry_attempts(retries: int) -> None:
    """Ensure *retries* is a non-negative integer."""
    if isinstance(retries, bool) or not isinstance(retries, int):
        msg = "max_retries must be an integer"
        raise TypeError(msg)

    if retries < 0:
        msg = "max_retries must be >= 0"
        raise ValueError(msg)


def validate_retry_delay(delay: float) -> None:
    """Ensure *delay* is a usable, finite sleep duration."""
    if isinstance(delay, bool) or not isinstance(delay, (int, float)):
        msg = "retry_delay must be a real number"
        raise TypeError(msg)

    if not (delay >= 0 and math.isfinite(delay)):
        msg = "retry_delay must be >= 0 and finite"
        raise ValueError(msg)
