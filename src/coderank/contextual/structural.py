"""Structural analysis — code shape and query-to-symbol affinity.

Scores a fragment by what it is (kind, language, complexity, exported,
documented) and by how well the query's wording lines up with it
(kind mentions, language mentions, symbol names). Also provides a
structural similarity comparator for "find similar" features and a
symbol lookup cache.
"""

from __future__ import annotations

import re
import threading
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

import structlog

from coderank.config.models import SearchConfig
from coderank.contextual.models import (
    CodeFragment,
    FragmentKind,
    QueryStructure,
    StructuralInfo,
    clamp,
)
from coderank.contextual.patterns import (
    fragment_complexity,
    has_documentation,
    is_exported,
    is_imported,
)
from coderank.core.errors import ContextualRetrievalError

log = structlog.get_logger(__name__)

SymbolResolver = Callable[[str], Sequence[CodeFragment]]

BASE_SCORE = 0.5
STRUCTURAL_FLOOR = 0.1
STRUCTURAL_CEILING = 1.0
QUERY_AFFINITY_CAP = 0.3
SIMILARITY_THRESHOLD = 0.3

# Query words that name a fragment kind
_KIND_KEYWORDS: dict[str, FragmentKind] = {
    "function": FragmentKind.function,
    "functions": FragmentKind.function,
    "method": FragmentKind.function,
    "methods": FragmentKind.function,
    "class": FragmentKind.class_,
    "classes": FragmentKind.class_,
    "interface": FragmentKind.interface,
    "interfaces": FragmentKind.interface,
    "variable": FragmentKind.variable,
    "variables": FragmentKind.variable,
    "const": FragmentKind.variable,
    "let": FragmentKind.variable,
}

_LANGUAGE_KEYWORDS = frozenset(
    {"typescript", "javascript", "python", "java", "csharp", "cpp", "go", "rust"}
)

# Words too generic to count as symbol mentions
_STOP_WORDS = frozenset(
    {
        "a", "an", "the", "is", "are", "was", "be", "do", "does", "to", "of",
        "in", "on", "at", "for", "with", "by", "from", "as", "and", "or",
        "not", "if", "then", "else", "when", "where", "how", "what", "which",
        "that", "this", "it", "its", "we", "you", "my", "our", "all", "any",
        "some", "find", "show", "get", "code", "file", "me",
    }
)

_WORD_RE = re.compile(r"[a-z0-9_#+]+")
# camelCase, PascalCase and snake_case identifiers
_SYMBOL_RE = re.compile(r"\b[A-Za-z][A-Za-z0-9_]*\b")


def kind_bonus(kind: FragmentKind, config: SearchConfig) -> float:
    match kind:
        case FragmentKind.function:
            return config.function_type_bonus
        case FragmentKind.class_:
            return config.class_type_bonus
        case FragmentKind.interface:
            return 0.15
        case FragmentKind.type:
            return 0.10
        case FragmentKind.variable:
            return 0.05
        case FragmentKind.import_ | FragmentKind.comment | FragmentKind.block:
            return 0.0


def complexity_bonus(complexity: float) -> float:
    """Peaked preference for moderate complexity."""
    if complexity < 2:
        return 0.05  # trivial
    if complexity <= 5:
        return 0.15
    if complexity <= 10:
        return 0.10
    return 0.05  # sprawling


@dataclass(frozen=True, slots=True)
class SymbolCacheStats:
    entries: int
    symbols: list[str]


class SymbolCache:
    """Resolved fragments keyed by symbol name."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, list[CodeFragment]] = {}

    def get(self, symbol: str) -> list[CodeFragment] | None:
        with self._lock:
            return self._entries.get(symbol)

    def put(self, symbol: str, fragments: list[CodeFragment]) -> None:
        with self._lock:
            self._entries[symbol] = fragments

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> SymbolCacheStats:
        with self._lock:
            return SymbolCacheStats(entries=len(self._entries), symbols=list(self._entries))


class StructuralAnalyzer:
    """Scores fragments by structure and query affinity."""

    def __init__(
        self,
        symbol_resolver: SymbolResolver | None = None,
        cache: SymbolCache | None = None,
    ) -> None:
        self._resolver = symbol_resolver
        self._cache = cache if cache is not None else SymbolCache()

    def score(
        self,
        fragment: CodeFragment,
        query: str,
        config: SearchConfig,
        current_language: str | None = None,
    ) -> float:
        """Structural score in [0.1, 1.0], additive from a 0.5 base."""
        info = self.analyze(fragment)
        score = BASE_SCORE

        if current_language and fragment.language.lower() == current_language.lower():
            score += config.same_language_bonus

        score += kind_bonus(fragment.kind, config)
        score += complexity_bonus(info.complexity)

        if info.is_exported:
            score += 0.1
        if info.has_documentation:
            score += 0.1

        score += self.query_affinity(fragment, self.analyze_query(query))
        return clamp(score, STRUCTURAL_FLOOR, STRUCTURAL_CEILING)

    def analyze(self, fragment: CodeFragment) -> StructuralInfo:
        return StructuralInfo(
            kind=fragment.kind,
            language=fragment.language,
            complexity=fragment_complexity(fragment),
            is_exported=is_exported(fragment.content),
            is_imported=is_imported(fragment),
            has_documentation=has_documentation(fragment.content),
        )

    def analyze_query(self, query: str) -> QueryStructure:
        """Extract kind, language and symbol mentions from a query."""
        words = _WORD_RE.findall(query.lower())

        kinds = frozenset(_KIND_KEYWORDS[w] for w in words if w in _KIND_KEYWORDS)
        languages = frozenset(w for w in words if w in _LANGUAGE_KEYWORDS)

        symbols: dict[str, None] = {}
        for token in _SYMBOL_RE.findall(query):
            lowered = token.lower()
            if lowered in _STOP_WORDS or lowered in _KIND_KEYWORDS:
                continue
            symbols.setdefault(token, None)

        return QueryStructure(
            mentioned_kinds=kinds,
            mentioned_languages=languages,
            mentioned_symbols=tuple(symbols),
        )

    @staticmethod
    def query_affinity(fragment: CodeFragment, query: QueryStructure) -> float:
        """How directly the query points at this fragment, capped at 0.3."""
        relevance = 0.0

        if fragment.kind in query.mentioned_kinds:
            relevance += 0.2
        if fragment.language.lower() in query.mentioned_languages:
            relevance += 0.15

        content = fragment.content.lower()
        function_name = (fragment.metadata.function_name or "").lower()
        class_name = (fragment.metadata.class_name or "").lower()
        for symbol in query.mentioned_symbols:
            needle = symbol.lower()
            if needle in content:
                relevance += 0.1
            if function_name and needle in function_name:
                relevance += 0.15
            if class_name and needle in class_name:
                relevance += 0.15

        return min(QUERY_AFFINITY_CAP, relevance)

    @staticmethod
    def structural_similarity(a: StructuralInfo, b: StructuralInfo) -> float:
        """Weighted match of kind, language, complexity and trait parity."""
        similarity = 0.0
        if a.kind == b.kind:
            similarity += 0.3
        if a.language == b.language:
            similarity += 0.2

        complexity_closeness = max(0.0, 1 - abs(a.complexity - b.complexity) / 10)
        similarity += complexity_closeness * 0.2

        if a.is_exported == b.is_exported:
            similarity += 0.1
        if a.is_imported == b.is_imported:
            similarity += 0.1
        if a.has_documentation == b.has_documentation:
            similarity += 0.1
        return min(1.0, similarity)

    def find_similar_structures(
        self,
        reference: CodeFragment,
        fragments: Iterable[CodeFragment],
        min_similarity: float = SIMILARITY_THRESHOLD,
    ) -> list[tuple[CodeFragment, float]]:
        """Fragments structurally similar to reference, most similar first."""
        reference_info = self.analyze(reference)
        similar: list[tuple[CodeFragment, float]] = []
        for fragment in fragments:
            if fragment.id == reference.id:
                continue
            similarity = self.structural_similarity(reference_info, self.analyze(fragment))
            if similarity > min_similarity:
                similar.append((fragment, similarity))
        similar.sort(key=lambda item: item[1], reverse=True)
        return similar

    def get_related_symbols(self, symbol_name: str) -> list[CodeFragment]:
        """Fragments defining or related to symbol_name, cached per name."""
        cached = self._cache.get(symbol_name)
        if cached is not None:
            return cached
        if self._resolver is None:
            return []

        try:
            related = list(self._resolver(symbol_name))
        except Exception as e:
            raise ContextualRetrievalError.wrap(
                "get_related_symbols",
                f"Failed to resolve related symbols for {symbol_name}",
                e,
            ) from e

        self._cache.put(symbol_name, related)
        log.debug("structural.symbols_resolved", symbol=symbol_name, count=len(related))
        return related

    def clear_cache(self) -> None:
        self._cache.clear()

    def get_cache_stats(self) -> SymbolCacheStats:
        return self._cache.stats()
