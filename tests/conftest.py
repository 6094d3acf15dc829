from __future__ import annotations

import asyncio
from typing import Any, List, Optional

import pytest

from mindpulse.core.controller import SourceStatus


class GatedCall:
    """Fake inference call that blocks until ``release()`` and records invocations."""

    def __init__(self, result: Any = None, error: Optional[BaseException] = None) -> None:
        self.result = result if result is not None else {"attention": 90.0, "engagement": 80.0}
        self.error = error
        self.calls = 0
        self._gate = asyncio.Event()

    def release(self) -> None:
        self._gate.set()

    async def __call__(self) -> Any:
        self.calls += 1
        await self._gate.wait()
        if self.error is not None:
            raise self.error
        return self.result


class FakeDevice:
    def __init__(self, deny: bool = False) -> None:
        self.deny = deny
        self.acquired = 0
        self.released = 0

    def acquire(self) -> None:
        if self.deny:
            raise PermissionError("camera access denied")
        self.acquired += 1

    def release(self) -> None:
        self.released += 1


class StatusRecorder:
    def __init__(self) -> None:
        self.events: List[SourceStatus] = []

    def __call__(self, status: SourceStatus) -> None:
        self.events.append(status)


@pytest.fixture
def status_recorder() -> StatusRecorder:
    return StatusRecorder()
