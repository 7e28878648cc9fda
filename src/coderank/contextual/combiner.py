"""Score combination — fusion, normalization, boosts, filtering and ranking.

Single Responsibility: whole-result-set numeric policy.
No I/O and no analyzers; pure functions on results plus a clock.

Pipeline order (``run_pipeline``), after ``combine()`` ran per candidate:

    normalize → diversity → recency → quality → filter → rank → truncate → clamp

``normalize_scores`` rewrites the four component scores for display but
keeps the fused ``combined`` value as the authoritative ``final_score``.
Boosts are multiplicative and may push ``final_score`` above 1.0; ranking
sorts on the boosted value and the returned results are clamped to [0, 1].
"""

from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import dataclass

import structlog

from coderank.config.models import SearchConfig
from coderank.contextual.models import (
    SCORE_COMPONENTS,
    Clock,
    RelevanceScores,
    SearchResult,
    clamp,
    now_ms,
)
from coderank.contextual.patterns import fragment_complexity, has_doc_markers
from coderank.core.errors import ScoringError

log = structlog.get_logger(__name__)

SEPARATION_EXPONENT = 1.5

# Diversity: results from one file beyond this many are penalized
DIVERSITY_FREE_RESULTS = 3
DIVERSITY_STEP = 0.1
DIVERSITY_FLOOR = 0.7

RECENCY_MAX_BOOST = 0.2

EXPORT_BOOST = 1.1
DOCUMENTATION_BOOST = 1.05
MODERATE_COMPLEXITY_BOOST = 1.05
MODERATE_COMPLEXITY_RANGE = (3, 8)


@dataclass(frozen=True, slots=True)
class ScoreStats:
    min: float
    max: float
    avg: float


def normalize_score(score: float, low: float, high: float) -> float:
    """Min-max normalization; 0.5 for a single-valued distribution."""
    if high == low:
        return 0.5
    return (score - low) / (high - low)


def enhance_separation(score: float) -> float:
    """Power transform that spreads high scores apart.

    Monotonic, so ordering among candidates is unchanged.
    """
    return clamp(score**SEPARATION_EXPONENT, 0.0, 1.0)


class ScoreCombiner:
    """Fuses component scores and ranks the result set."""

    def __init__(self, clock: Clock = now_ms) -> None:
        self._clock = clock

    @staticmethod
    def default_config() -> SearchConfig:
        return SearchConfig()

    # ---------------------------------------------------------------
    # Per-candidate fusion
    # ---------------------------------------------------------------

    def combine(self, scores: RelevanceScores, config: SearchConfig) -> float:
        """Weighted fusion plus separation enhancement.

        Writes the result into ``scores.combined`` and returns it.

        Raises:
            ConfigError: weights do not sum to 1.0.
            ScoringError: a component score is NaN or infinite.
        """
        config.check_weights()

        for name in SCORE_COMPONENTS:
            value = getattr(scores, name)
            if not math.isfinite(value):
                raise ScoringError.non_finite("<unknown>", name, value)
            setattr(scores, name, clamp(value, 0.0, 1.0))

        raw = (
            scores.semantic * config.semantic_weight
            + scores.temporal * config.temporal_weight
            + scores.spatial * config.spatial_weight
            + scores.structural * config.structural_weight
        )
        scores.combined = enhance_separation(raw)
        return scores.combined

    # ---------------------------------------------------------------
    # Corpus-wide normalization
    # ---------------------------------------------------------------

    @staticmethod
    def calculate_score_statistics(results: list[SearchResult]) -> dict[str, ScoreStats]:
        stats: dict[str, ScoreStats] = {}
        for name in SCORE_COMPONENTS:
            values = [getattr(r.scores, name) for r in results]
            stats[name] = ScoreStats(
                min=min(values),
                max=max(values),
                avg=sum(values) / len(values),
            )
        return stats

    def normalize_scores(self, results: list[SearchResult]) -> list[SearchResult]:
        """Min-max normalize each component across the result set.

        The analyzed scores are kept in ``raw_scores``. ``final_score`` is
        set to the already-fused ``combined`` value; normalization does not
        feed back into it.
        """
        if not results:
            return results

        stats = self.calculate_score_statistics(results)
        for result in results:
            result.raw_scores = result.scores.copy()
            for name in SCORE_COMPONENTS:
                s = stats[name]
                setattr(result.scores, name, normalize_score(getattr(result.scores, name), s.min, s.max))
            result.final_score = result.scores.combined
        return results

    # ---------------------------------------------------------------
    # Advanced scoring
    # ---------------------------------------------------------------

    def apply_advanced_scoring(
        self, results: list[SearchResult], config: SearchConfig
    ) -> list[SearchResult]:
        """Diversity penalty, then recency boost, then quality boost."""
        results = self.apply_diversity_penalty(results)
        results = self.apply_recency_boost(results, config)
        return self.apply_quality_boost(results)

    @staticmethod
    def apply_diversity_penalty(results: list[SearchResult]) -> list[SearchResult]:
        """Damp every result from a file that contributes more than three.

        A file with ``count`` results, ``count > 3``, has each of them
        multiplied by ``max(0.7, 1 - (count - 3) * 0.1)``.
        """
        by_file: dict[str, list[SearchResult]] = defaultdict(list)
        for result in results:
            by_file[result.fragment.file_path].append(result)

        penalized = 0
        for file_results in by_file.values():
            if len(file_results) <= DIVERSITY_FREE_RESULTS:
                continue
            excess = len(file_results) - DIVERSITY_FREE_RESULTS
            factor = max(DIVERSITY_FLOOR, 1 - excess * DIVERSITY_STEP)
            for result in file_results:
                result.final_score *= factor
            penalized += len(file_results)

        if penalized:
            log.debug("combiner.diversity_penalty", penalized=penalized)
        return results

    def apply_recency_boost(
        self, results: list[SearchResult], config: SearchConfig
    ) -> list[SearchResult]:
        """Boost fragments modified inside the recent window, up to ×1.2."""
        now = self._clock()
        window = config.recent_modification_bonus_ms
        for result in results:
            age = max(0, now - result.last_modified_at)
            if age < window:
                result.final_score *= 1 + RECENCY_MAX_BOOST * (1 - age / window)
        return results

    @staticmethod
    def apply_quality_boost(results: list[SearchResult]) -> list[SearchResult]:
        """Independent multipliers for exports, doc markers, moderate complexity."""
        low, high = MODERATE_COMPLEXITY_RANGE
        for result in results:
            fragment = result.fragment
            multiplier = 1.0
            if fragment.metadata.exports:
                multiplier *= EXPORT_BOOST
            if has_doc_markers(fragment.content):
                multiplier *= DOCUMENTATION_BOOST
            if low <= fragment_complexity(fragment) <= high:
                multiplier *= MODERATE_COMPLEXITY_BOOST
            result.final_score *= multiplier
        return results

    # ---------------------------------------------------------------
    # Filtering and ranking
    # ---------------------------------------------------------------

    @staticmethod
    def filter_results(results: list[SearchResult], config: SearchConfig) -> list[SearchResult]:
        """Drop results under the semantic or final-score thresholds.

        The semantic threshold applies to the analyzed semantic score, not
        the normalized display value.
        """
        kept = [
            r
            for r in results
            if r.semantic_for_filtering >= config.min_semantic_threshold
            and r.final_score >= config.min_final_score
        ]
        log.debug("combiner.filtered", kept=len(kept), dropped=len(results) - len(kept))
        return kept

    @staticmethod
    def rank_results(results: list[SearchResult]) -> list[SearchResult]:
        """Stable sort by final_score descending; ranks 1..N."""
        ranked = sorted(results, key=lambda r: r.final_score, reverse=True)
        for index, result in enumerate(ranked, start=1):
            result.rank = index
        return ranked

    def run_pipeline(
        self, results: list[SearchResult], config: SearchConfig
    ) -> list[SearchResult]:
        """Everything after per-candidate combine(), in order."""
        results = self.normalize_scores(results)
        results = self.apply_advanced_scoring(results, config)
        results = self.filter_results(results, config)
        results = self.rank_results(results)[: config.max_results]
        for result in results:
            result.final_score = clamp(result.final_score, 0.0, 1.0)
        return results

    # ---------------------------------------------------------------
    # Explanations
    # ---------------------------------------------------------------

    @staticmethod
    def explain_scoring(result: SearchResult, config: SearchConfig) -> str:
        """Human-readable breakdown of one result's score."""
        fragment = result.fragment
        analyzed = result.raw_scores or result.scores
        weights = {
            "semantic": config.semantic_weight,
            "temporal": config.temporal_weight,
            "spatial": config.spatial_weight,
            "structural": config.structural_weight,
        }

        lines = [
            f"Scoring breakdown for: {fragment.file_path}:{fragment.start_line}",
            "",
            "Component Scores (analyzed / normalized):",
        ]
        for name in SCORE_COMPONENTS:
            label = f"{name.capitalize()}:"
            lines.append(
                f"  {label:<12} {getattr(analyzed, name):.3f} / "
                f"{getattr(result.scores, name):.3f} (weight: {weights[name]})"
            )
        lines += ["", "Weighted Contributions:"]
        for name in SCORE_COMPONENTS:
            label = f"{name.capitalize()}:"
            lines.append(f"  {label:<12} {getattr(analyzed, name) * weights[name]:.3f}")
        lines += [
            "",
            f"Combined Score: {result.scores.combined:.3f}",
            f"Final Score: {result.final_score:.3f}",
            f"Rank: {result.rank}",
        ]
        return "\n".join(lines)
