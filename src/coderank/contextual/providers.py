"""Semantic provider seam.

The retriever never computes embeddings. It asks a provider for candidate
fragments in similarity order. Providers that cannot supply a similarity
value return ``None`` and the retriever falls back to token overlap.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Protocol

from coderank.contextual.models import CodeFragment

_TOKEN_RE = re.compile(r"[a-z0-9_]+")


@dataclass(frozen=True, slots=True)
class SemanticMatch:
    """A candidate fragment and, if known, its similarity in [0, 1]."""

    fragment: CodeFragment
    similarity: float | None = None


class SemanticProvider(Protocol):
    """Anything that returns candidate fragments for a query."""

    def search(self, query: str, limit: int) -> Sequence[SemanticMatch]: ...


def query_tokens(text: str) -> list[str]:
    return _TOKEN_RE.findall(text.lower())


class CorpusProvider:
    """In-memory provider over a fixed fragment list.

    Orders fragments by how many distinct query tokens their content
    contains. Fragments sharing no token with the query are not returned.
    """

    def __init__(self, fragments: Iterable[CodeFragment]) -> None:
        self._fragments = list(fragments)

    @property
    def fragments(self) -> list[CodeFragment]:
        return list(self._fragments)

    def __len__(self) -> int:
        return len(self._fragments)

    def search(self, query: str, limit: int) -> list[SemanticMatch]:
        tokens = set(query_tokens(query))
        if not tokens or limit <= 0:
            return []

        scored: list[tuple[int, CodeFragment]] = []
        for fragment in self._fragments:
            content_tokens = set(query_tokens(fragment.content))
            overlap = len(tokens & content_tokens)
            if overlap:
                scored.append((overlap, fragment))

        # Stable: equal overlap keeps corpus order
        scored.sort(key=lambda item: item[0], reverse=True)
        return [SemanticMatch(fragment=f) for _, f in scored[:limit]]
