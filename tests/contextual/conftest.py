"""Shared fixtures for contextual ranking tests."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from coderank.config.models import SearchConfig
from coderank.contextual.models import (
    CodeFragment,
    FragmentKind,
    FragmentMetadata,
    RelevanceScores,
    SearchResult,
)

NOW_MS = 1_700_000_000_000
MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS

FragmentFactory = Callable[..., CodeFragment]
ResultFactory = Callable[..., SearchResult]


class FixedClock:
    """Deterministic clock returning a settable epoch-millis value."""

    def __init__(self, now: int = NOW_MS) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def config() -> SearchConfig:
    return SearchConfig()


@pytest.fixture
def make_fragment() -> FragmentFactory:
    """Factory for fragments with sensible defaults; metadata via keywords."""
    counter = iter(range(1, 10_000))

    def _make(
        *,
        id: str | None = None,
        file_path: str = "/ws/src/app.ts",
        content: str = "const x = 1;",
        kind: FragmentKind = FragmentKind.block,
        language: str = "typescript",
        start_line: int = 1,
        end_line: int = 10,
        last_modified_at: int = NOW_MS - 30 * DAY_MS,
        **metadata: Any,
    ) -> CodeFragment:
        return CodeFragment(
            id=id or f"frag-{next(counter)}",
            file_path=file_path,
            start_line=start_line,
            end_line=end_line,
            language=language,
            content=content,
            kind=kind,
            metadata=FragmentMetadata(last_modified_at=last_modified_at, **metadata),
        )

    return _make


@pytest.fixture
def make_result() -> ResultFactory:
    """Factory for results as the retriever hands them to the combiner pipeline."""

    def _make(
        fragment: CodeFragment,
        *,
        semantic: float = 0.5,
        temporal: float = 0.5,
        spatial: float = 0.5,
        structural: float = 0.5,
        combined: float = 0.5,
    ) -> SearchResult:
        scores = RelevanceScores(
            semantic=semantic,
            temporal=temporal,
            spatial=spatial,
            structural=structural,
            combined=combined,
        )
        return SearchResult(fragment=fragment, scores=scores, final_score=combined)

    return _make
