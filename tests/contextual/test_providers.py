"""Tests for contextual/providers.py."""

from __future__ import annotations

from collections.abc import Callable

from coderank.contextual.models import CodeFragment
from coderank.contextual.providers import CorpusProvider, SemanticMatch, query_tokens


class TestQueryTokens:
    def test_lowercases_and_splits(self) -> None:
        """Queries split on non-word characters, lowercased."""
        assert query_tokens("Parse the CONFIG-file, parse_yaml!") == [
            "parse",
            "the",
            "config",
            "file",
            "parse_yaml",
        ]


class TestCorpusProvider:
    """Token-overlap candidate provider."""

    def test_orders_by_overlap(self, make_fragment: Callable[..., CodeFragment]) -> None:
        """More shared tokens rank higher; no overlap is excluded."""
        # Given
        one = make_fragment(id="one", content="function parse() {}")
        two = make_fragment(id="two", content="function parse(config) {}")
        none = make_fragment(id="none", content="const unrelated = 1;")
        provider = CorpusProvider([one, two, none])

        # When
        matches = provider.search("parse config", limit=10)

        # Then
        assert [m.fragment.id for m in matches] == ["two", "one"]
        assert all(m.similarity is None for m in matches)

    def test_ties_keep_corpus_order(self, make_fragment: Callable[..., CodeFragment]) -> None:
        """Equal overlap keeps corpus order."""
        fragments = [make_fragment(id=f"f{i}", content="render view") for i in range(3)]

        matches = CorpusProvider(fragments).search("render", limit=10)

        assert [m.fragment.id for m in matches] == ["f0", "f1", "f2"]

    def test_respects_limit(self, make_fragment: Callable[..., CodeFragment]) -> None:
        """Never returns more than limit matches."""
        fragments = [make_fragment(content="render") for _ in range(5)]
        assert len(CorpusProvider(fragments).search("render", limit=2)) == 2

    def test_empty_query_or_limit(self, make_fragment: Callable[..., CodeFragment]) -> None:
        """Blank queries and a zero limit return nothing."""
        provider = CorpusProvider([make_fragment(content="render")])
        assert provider.search("", limit=5) == []
        assert provider.search("  !! ", limit=5) == []
        assert provider.search("render", limit=0) == []

    def test_fragments_property_returns_copy(self, make_fragment: Callable[..., CodeFragment]) -> None:
        """Mutating the returned list does not touch the corpus."""
        fragment = make_fragment()
        provider = CorpusProvider([fragment])

        provider.fragments.clear()

        assert len(provider) == 1
        assert provider.fragments == [fragment]


class TestSemanticMatch:
    def test_similarity_optional(self, make_fragment: Callable[..., CodeFragment]) -> None:
        """Matches may omit the provider similarity."""
        fragment = make_fragment()
        assert SemanticMatch(fragment).similarity is None
        assert SemanticMatch(fragment, 0.7).similarity == 0.7
