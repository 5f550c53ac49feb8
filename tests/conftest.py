"""Shared fixtures for texspan tests."""

from __future__ import annotations

from collections.abc import Mapping

import pytest

from texspan.config import reset_validation_config
from texspan.errors import EngineError


class RecordingEngine:
    """Engine double that records every call.

    Rejects any span containing one of the ``reject`` substrings.
    """

    def __init__(self, reject: tuple[str, ...] = ()) -> None:
        self.reject = reject
        self.calls: list[tuple[str, bool, Mapping[str, str] | None]] = []

    def render(
        self,
        math: str,
        *,
        display: bool = False,
        macros: Mapping[str, str] | None = None,
    ) -> None:
        self.calls.append((math, display, macros))
        for needle in self.reject:
            if needle in math:
                raise EngineError(f"rejected {needle!r}")

    @property
    def rendered(self) -> list[str]:
        return [math for math, _display, _macros in self.calls]


@pytest.fixture
def engine() -> RecordingEngine:
    """Engine that accepts everything and records calls."""
    return RecordingEngine()


@pytest.fixture
def strict_engine() -> RecordingEngine:
    """Engine that rejects any span containing 'bad'."""
    return RecordingEngine(reject=("bad",))


@pytest.fixture(autouse=True)
def _reset_config():
    yield
    reset_validation_config()
