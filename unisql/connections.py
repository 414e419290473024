"""Simulated connection checks used by the connection form."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Mapping

from pydantic import BaseModel

_REQUIRED_FIELDS = ("connectionName", "host", "username")


@dataclass(frozen=True, slots=True)
class ConnectionTestResult:
    """Terminal outcome of a connection test."""

    ok: bool
    message: str
    elapsed_ms: int


class ConnectionTester:
    """Stub tester: waits, then checks that the profile is complete enough to connect.

    No network traffic happens here. The coroutine can be cancelled by the
    caller, and a run that exceeds `timeout` resolves to a failed result.
    """

    def __init__(self, *, delay: float = 2.0, timeout: float = 10.0) -> None:
        self._delay = delay
        self._timeout = timeout

    async def test(self, target: BaseModel | Mapping[str, object]) -> ConnectionTestResult:
        fields = _as_fields(target)
        started = time.perf_counter()
        try:
            ok, message = await asyncio.wait_for(self._probe(fields), timeout=self._timeout)
        except asyncio.TimeoutError:
            ok, message = False, f"Connection test timed out after {self._timeout:g}s."
        elapsed_ms = int((time.perf_counter() - started) * 1000)
        return ConnectionTestResult(ok=ok, message=message, elapsed_ms=elapsed_ms)

    async def _probe(self, fields: Mapping[str, object]) -> tuple[bool, str]:
        await asyncio.sleep(self._delay)
        missing = [name for name in _REQUIRED_FIELDS if not str(fields.get(name) or "").strip()]
        if missing:
            return False, f"Connection failed: missing {', '.join(missing)}."
        return True, f"Connected to {fields['host']} successfully."


def _as_fields(target: BaseModel | Mapping[str, object]) -> Mapping[str, object]:
    if isinstance(target, BaseModel):
        return target.model_dump(by_alias=True)
    return target


__all__ = ["ConnectionTestResult", "ConnectionTester"]
