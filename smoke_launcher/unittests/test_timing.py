"""Unit tests for :mod:`smoke_launcher.timing`."""

from __future__ import annotations

import asyncio
import logging

import pytest

from smoke_launcher.timing import measure_and_log

LOGGER = logging.getLogger("smoke-tests.timing")


async def _value() -> int:
    return 42


async def _boom() -> int:
    raise ValueError("boom")


def test_measure_and_log_returns_result(caplog: pytest.LogCaptureFixture) -> None:
    """Successful operations log their duration and pass the result through."""
    with caplog.at_level(logging.DEBUG, logger=LOGGER.name):
        result = asyncio.run(measure_and_log(_value(), "answer", LOGGER))

    assert result == 42
    assert "Starting operation 'answer'" in caplog.text
    assert "Finished operation 'answer' successfully" in caplog.text


def test_measure_and_log_reraises(caplog: pytest.LogCaptureFixture) -> None:
    """Failures are logged with the error and re-raised."""
    with (
        caplog.at_level(logging.DEBUG, logger=LOGGER.name),
        pytest.raises(ValueError, match="boom"),
    ):
        asyncio.run(measure_and_log(_boom(), "explode", LOGGER))

    assert "Finished operation 'explode' with error" in caplog.text
