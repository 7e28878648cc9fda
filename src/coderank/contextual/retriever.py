"""Contextual retriever — the public search entry point.

Flow for one query:

    provider.search (worker thread, timeout)
      → per-candidate analysis (bounded thread pool, provider order kept)
      → ScoreCombiner.combine per candidate
      → ScoreCombiner.run_pipeline (normalize, boost, filter, rank, truncate)

Every search gets a query id bound into the structlog context so all
events of one search correlate. Analyzer failures surface as
``ContextualRetrievalError``; invalid weights surface as ``ConfigError``
before any work starts.
"""

from __future__ import annotations

import contextvars
import math
import os
import posixpath
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, NoReturn

import structlog
from pydantic import ValidationError

from coderank.config.models import RetrievalConfig, SearchConfig
from coderank.contextual.combiner import ScoreCombiner
from coderank.contextual.models import (
    CodeFragment,
    Clock,
    RelevanceScores,
    ScoredPath,
    SearchResult,
    TemporalStats,
    clamp,
    normalize_path,
    now_ms,
)
from coderank.contextual.providers import SemanticMatch, SemanticProvider
from coderank.contextual.spatial import DirectoryCacheStats, SpatialAnalyzer
from coderank.contextual.structural import StructuralAnalyzer, SymbolCacheStats
from coderank.contextual.temporal import TemporalAnalyzer
from coderank.core.errors import (
    CodeRankError,
    ConfigError,
    ContextualRetrievalError,
    ProviderError,
    ScoringError,
)
from coderank.core.formatting import truncate_query
from coderank.core.logging import clear_query_id, set_query_id

log = structlog.get_logger(__name__)

_HOUR_MS = 60 * 60 * 1000
_MAX_DEFAULT_WORKERS = 8


class CancellationToken:
    """Cooperative cancellation flag shared between caller and search."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, operation: str = "search") -> None:
        if self._event.is_set():
            raise ContextualRetrievalError.cancelled(operation)


@dataclass(frozen=True, slots=True)
class SearchStats:
    """Snapshot of analyzer state and the active configuration."""

    temporal: TemporalStats
    spatial: DirectoryCacheStats
    structural: SymbolCacheStats
    config: SearchConfig


def lexical_similarity(query: str, content: str) -> float:
    """Fraction of whitespace-separated query words found in content."""
    words = query.lower().split()
    if not words:
        return 0.0
    haystack = content.lower()
    matches = sum(1 for word in words if word in haystack)
    return min(1.0, matches / len(words))


def _raise_provider_failure(error: ProviderError, cause: BaseException) -> NoReturn:
    error.__cause__ = cause
    raise ContextualRetrievalError.wrap("search", error.message, error) from error


class ContextualRetriever:
    """Ranks provider candidates by semantic, temporal, spatial and structural fit."""

    def __init__(
        self,
        provider: SemanticProvider,
        *,
        config: SearchConfig | None = None,
        settings: RetrievalConfig | None = None,
        temporal: TemporalAnalyzer | None = None,
        spatial: SpatialAnalyzer | None = None,
        structural: StructuralAnalyzer | None = None,
        combiner: ScoreCombiner | None = None,
        clock: Clock = now_ms,
    ) -> None:
        self._config = config if config is not None else ScoreCombiner.default_config()
        self._config.check_weights()

        self._provider = provider
        self._settings = settings if settings is not None else RetrievalConfig()
        self._clock = clock
        self._temporal = temporal if temporal is not None else TemporalAnalyzer(clock=clock)
        self._spatial = (
            spatial
            if spatial is not None
            else SpatialAnalyzer(workspace_root=self._settings.workspace_root)
        )
        self._structural = structural if structural is not None else StructuralAnalyzer()
        self._combiner = combiner if combiner is not None else ScoreCombiner(clock=clock)
        self._max_workers = self._settings.max_workers or min(
            _MAX_DEFAULT_WORKERS, os.cpu_count() or 1
        )

    @property
    def config(self) -> SearchConfig:
        return self._config

    @property
    def settings(self) -> RetrievalConfig:
        return self._settings

    @property
    def temporal(self) -> TemporalAnalyzer:
        return self._temporal

    @property
    def spatial(self) -> SpatialAnalyzer:
        return self._spatial

    @property
    def structural(self) -> StructuralAnalyzer:
        return self._structural

    # ---------------------------------------------------------------
    # Search
    # ---------------------------------------------------------------

    def search(
        self,
        query: str,
        active_file_path: str | None = None,
        *,
        current_language: str | None = None,
        cancel: CancellationToken | None = None,
    ) -> list[SearchResult]:
        """Ranked results for query, at most ``config.max_results``.

        Raises:
            ConfigError: Weights do not sum to 1.0.
            ContextualRetrievalError: Provider failure or timeout, analyzer
                failure, or cancellation (code RETRIEVAL_CANCELLED).
        """
        config = self._config
        config.check_weights()

        set_query_id()
        start = time.perf_counter()
        try:
            limit = config.max_results * self._settings.overfetch_factor
            log.info(
                "retrieval.search_started",
                query=truncate_query(query),
                active_file=active_file_path,
                limit=limit,
            )

            matches = self._fetch_candidates(query, limit)
            if not matches:
                log.info("retrieval.no_candidates")
                return []
            if cancel is not None:
                cancel.raise_if_cancelled("search")

            results = self._score_candidates(
                matches, query, active_file_path, current_language, config, cancel
            )
            if cancel is not None:
                cancel.raise_if_cancelled("search")

            ranked = self._combiner.run_pipeline(results, config)
            log.info(
                "retrieval.search_complete",
                candidates=len(matches),
                scored=len(results),
                returned=len(ranked),
                elapsed_ms=round((time.perf_counter() - start) * 1000, 1),
            )
            return ranked
        except CodeRankError:
            raise
        except Exception as e:
            raise ContextualRetrievalError.wrap(
                "search", f"Search failed for query {truncate_query(query)!r}", e
            ) from e
        finally:
            clear_query_id()

    def _fetch_candidates(self, query: str, limit: int) -> list[SemanticMatch]:
        """Call the provider on a worker thread, bounded by the timeout."""
        timeout = self._settings.provider_timeout_sec
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="coderank-provider")
        try:
            future = executor.submit(
                contextvars.copy_context().run, self._provider.search, query, limit
            )
            try:
                matches = list(future.result(timeout=timeout))
            except TimeoutError as e:
                log.warning("retrieval.provider_timeout", timeout_sec=timeout)
                _raise_provider_failure(ProviderError.timed_out(timeout), e)
            except Exception as e:
                log.warning("retrieval.provider_failed", error=str(e))
                _raise_provider_failure(ProviderError.failed(str(e)), e)
        finally:
            # A timed-out provider call is abandoned, not joined
            executor.shutdown(wait=False, cancel_futures=True)

        log.debug("retrieval.candidates_fetched", count=len(matches))
        return matches

    def _score_candidates(
        self,
        matches: list[SemanticMatch],
        query: str,
        active_file_path: str | None,
        current_language: str | None,
        config: SearchConfig,
        cancel: CancellationToken | None,
    ) -> list[SearchResult]:
        """Analyze and combine every candidate. Output keeps provider order."""
        pool = ThreadPoolExecutor(
            max_workers=min(self._max_workers, len(matches)),
            thread_name_prefix="coderank-score",
        )
        try:
            futures: list[Future[SearchResult | None]] = [
                pool.submit(
                    contextvars.copy_context().run,
                    self._score_candidate,
                    match,
                    query,
                    active_file_path,
                    current_language,
                    config,
                )
                for match in matches
            ]
            results: list[SearchResult] = []
            for future in futures:
                if cancel is not None:
                    cancel.raise_if_cancelled("search")
                result = future.result()
                if result is not None:
                    results.append(result)
        finally:
            pool.shutdown(wait=True, cancel_futures=True)

        dropped = len(matches) - len(results)
        if dropped:
            log.info("retrieval.candidates_dropped", dropped=dropped)
        return results

    def _score_candidate(
        self,
        match: SemanticMatch,
        query: str,
        active_file_path: str | None,
        current_language: str | None,
        config: SearchConfig,
    ) -> SearchResult | None:
        """One candidate's result, or None if a score is unusable."""
        fragment = match.fragment
        scores = self._analyze(
            fragment, query, active_file_path, match.similarity, current_language, config
        )

        for name, value in scores.components().items():
            if not math.isfinite(value):
                error = ScoringError.non_finite(fragment.id, name, value)
                log.warning("retrieval.candidate_dropped", error=error.error_name, **error.details)
                return None
            if not 0.0 <= value <= 1.0:
                error = ScoringError.out_of_range(fragment.id, name, value)
                log.warning("retrieval.score_clamped", error=error.error_name, **error.details)
                setattr(scores, name, clamp(value, 0.0, 1.0))

        combined = self._combiner.combine(scores, config)
        log.debug(
            "retrieval.candidate_scored",
            fragment_id=fragment.id,
            combined=round(combined, 4),
            **{k: round(v, 4) for k, v in scores.components().items()},
        )
        return SearchResult(
            fragment=fragment,
            scores=scores,
            final_score=combined,
            modified_at=self._effective_modified_at(fragment),
        )

    # ---------------------------------------------------------------
    # Per-fragment analysis
    # ---------------------------------------------------------------

    def analyze_relevance(
        self,
        fragment: CodeFragment,
        query: str,
        active_file_path: str | None = None,
        *,
        similarity: float | None = None,
        current_language: str | None = None,
    ) -> RelevanceScores:
        """Component scores for one fragment. ``combined`` is left at 0."""
        return self._analyze(
            fragment, query, active_file_path, similarity, current_language, self._config
        )

    def _effective_modified_at(self, fragment: CodeFragment) -> int:
        # A host notification newer than the chunk's own timestamp wins
        recorded = self._temporal.store.get(normalize_path(fragment.file_path)) or 0
        return max(fragment.metadata.last_modified_at, recorded)

    def _analyze(
        self,
        fragment: CodeFragment,
        query: str,
        active_file_path: str | None,
        similarity: float | None,
        current_language: str | None,
        config: SearchConfig,
    ) -> RelevanceScores:
        try:
            semantic = (
                similarity
                if similarity is not None
                else lexical_similarity(query, fragment.content)
            )
            last_modified = self._effective_modified_at(fragment)
            return RelevanceScores(
                semantic=semantic,
                temporal=self._temporal.score(last_modified, config),
                spatial=self._spatial.score(fragment.file_path, active_file_path, config),
                structural=self._structural.score(fragment, query, config, current_language),
            )
        except CodeRankError:
            raise
        except Exception as e:
            raise ContextualRetrievalError.wrap(
                "analyze_relevance", f"Failed to analyze fragment {fragment.id}", e
            ) from e

    # ---------------------------------------------------------------
    # Context packing and explanations
    # ---------------------------------------------------------------

    def get_relevant_context(
        self,
        query: str,
        max_tokens: int | None = None,
        active_file_path: str | None = None,
        *,
        current_language: str | None = None,
    ) -> list[str]:
        """Formatted results packed greedily into a token budget.

        Packing stops at the first result that would overflow the budget,
        so the output is always a prefix of the ranking.
        """
        budget = max_tokens if max_tokens is not None else self._settings.default_max_tokens
        results = self.search(query, active_file_path, current_language=current_language)

        context: list[str] = []
        used = 0.0
        for result in results:
            formatted = self.format_context(result)
            tokens = len(formatted) * self._settings.tokens_per_char
            if used + tokens > budget:
                break
            context.append(formatted)
            used += tokens

        log.debug("retrieval.context_packed", entries=len(context), tokens=round(used))
        return context

    @staticmethod
    def format_context(result: SearchResult) -> str:
        fragment = result.fragment
        analyzed = result.raw_scores or result.scores
        lines = [
            f"// File: {posixpath.basename(normalize_path(fragment.file_path))} "
            f"(Lines {fragment.start_line}-{fragment.end_line})",
            f"// Relevance: {result.final_score * 100:.1f}% "
            f"(Semantic: {analyzed.semantic * 100:.0f}%, "
            f"Temporal: {analyzed.temporal * 100:.0f}%, "
            f"Spatial: {analyzed.spatial * 100:.0f}%, "
            f"Structural: {analyzed.structural * 100:.0f}%)",
        ]
        if fragment.metadata.function_name:
            lines.append(f"// Function: {fragment.metadata.function_name}")
        if fragment.metadata.class_name:
            lines.append(f"// Class: {fragment.metadata.class_name}")
        lines.append(fragment.content)
        return "\n".join(lines)

    def explain_ranking(self, query: str, active_file_path: str | None = None) -> list[str]:
        """Per-result score breakdown for the top results of a search."""
        config = self._config
        results = self.search(query, active_file_path)

        lines = [
            f'Contextual Search Explanation for: "{query}"',
            f"Active File: {active_file_path or 'None'}",
            f"Configuration: Semantic({config.semantic_weight}) + "
            f"Temporal({config.temporal_weight}) + "
            f"Spatial({config.spatial_weight}) + "
            f"Structural({config.structural_weight})",
            "",
        ]
        for index, result in enumerate(results[: self._settings.explain_top_n], start=1):
            lines.append(f"--- Result #{index} ---")
            lines.append(self._combiner.explain_scoring(result, config))
            lines.append("")
        return lines

    # ---------------------------------------------------------------
    # Pass-throughs
    # ---------------------------------------------------------------

    def notify_modified(self, file_path: str, timestamp: int | None = None) -> None:
        try:
            self._temporal.notify_modified(file_path, timestamp)
        except Exception as e:
            raise ContextualRetrievalError.wrap(
                "notify_modified", f"Failed to record modification of {file_path}", e
            ) from e

    def get_recently_modified_files(self, max_age_ms: int = _HOUR_MS) -> list[str]:
        return self._temporal.get_recently_modified_files(max_age_ms)

    def get_nearby_files(self, active_file_path: str, max_results: int = 10) -> list[ScoredPath]:
        return self._spatial.get_relevant_files_by_proximity(
            active_file_path, self._config, max_results
        )

    def get_search_stats(self) -> SearchStats:
        return SearchStats(
            temporal=self._temporal.get_temporal_stats(),
            spatial=self._spatial.get_cache_stats(),
            structural=self._structural.get_cache_stats(),
            config=self._config,
        )

    def update_config(self, **changes: Any) -> SearchConfig:
        """Replace the active config with ``changes`` applied.

        The new config is validated in full, weight sum included, before it
        replaces the old one; on error the old config stays active.
        """
        try:
            updated = SearchConfig.model_validate({**self._config.model_dump(), **changes})
        except ValidationError as e:
            err = e.errors()[0]
            field = ".".join(str(loc) for loc in err["loc"]) or "search"
            raise ConfigError.invalid_value(field, err.get("input"), err["msg"]) from e
        updated.check_weights()
        self._config = updated
        log.info("retrieval.config_updated", changed=sorted(changes))
        return updated
