from __future__ import annotations

import itertools

import pytest


class SequentialIds:
    """Id factory yielding id-0001, id-0002, ..."""

    def __init__(self, prefix: str = "id") -> None:
        self._counter = itertools.count(1)
        self._prefix = prefix

    def __call__(self) -> str:
        return f"{self._prefix}-{next(self._counter):04d}"


class ManualClock:
    """Clock that returns ``now`` until a test moves it."""

    def __init__(self, now: str = "2024-01-01T00:00:00.000Z") -> None:
        self.now = now

    def __call__(self) -> str:
        return self.now


@pytest.fixture
def ids() -> SequentialIds:
    return SequentialIds()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()
