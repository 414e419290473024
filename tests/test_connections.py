"""Tests for the simulated connection tester."""

from __future__ import annotations

import asyncio

import pytest

from unisql.connections import ConnectionTester
from unisql.models import ConnectionDraft


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.mark.anyio
async def test_tester_accepts_complete_draft() -> None:
    tester = ConnectionTester(delay=0, timeout=1)
    draft = ConnectionDraft(connection_name="Local", host="localhost", username="postgres")

    result = await tester.test(draft)

    assert result.ok is True
    assert "localhost" in result.message
    assert result.elapsed_ms >= 0


@pytest.mark.anyio
async def test_tester_reports_missing_fields() -> None:
    tester = ConnectionTester(delay=0, timeout=1)

    result = await tester.test({"connectionName": "Local", "host": "  ", "username": None})

    assert result.ok is False
    assert "host" in result.message
    assert "username" in result.message


@pytest.mark.anyio
async def test_tester_times_out() -> None:
    tester = ConnectionTester(delay=5, timeout=0.01)

    result = await tester.test({"connectionName": "Slow", "host": "h", "username": "u"})

    assert result.ok is False
    assert "timed out" in result.message


@pytest.mark.anyio
async def test_tester_can_be_cancelled() -> None:
    tester = ConnectionTester(delay=5, timeout=10)
    task = asyncio.ensure_future(tester.test({"connectionName": "Slow", "host": "h", "username": "u"}))
    await asyncio.sleep(0)

    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
