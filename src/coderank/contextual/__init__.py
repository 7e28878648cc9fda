"""Contextual ranking of code fragments.

Fuses provider similarity with temporal, spatial and structural signals.
"""

from coderank.contextual.combiner import ScoreCombiner
from coderank.contextual.models import (
    CodeFragment,
    FragmentKind,
    FragmentMetadata,
    ProximityInfo,
    QueryStructure,
    RelevanceScores,
    SearchResult,
    StructuralInfo,
    TemporalInfo,
    TemporalStats,
)
from coderank.contextual.providers import CorpusProvider, SemanticMatch, SemanticProvider
from coderank.contextual.retriever import CancellationToken, ContextualRetriever, SearchStats
from coderank.contextual.spatial import SpatialAnalyzer
from coderank.contextual.structural import StructuralAnalyzer
from coderank.contextual.temporal import (
    InMemoryTimestampStore,
    JsonTimestampStore,
    TemporalAnalyzer,
    TimestampStore,
)

__all__ = [
    # Models
    "CodeFragment",
    "FragmentKind",
    "FragmentMetadata",
    "ProximityInfo",
    "QueryStructure",
    "RelevanceScores",
    "SearchResult",
    "StructuralInfo",
    "TemporalInfo",
    "TemporalStats",
    # Analyzers
    "SpatialAnalyzer",
    "StructuralAnalyzer",
    "TemporalAnalyzer",
    "TimestampStore",
    "InMemoryTimestampStore",
    "JsonTimestampStore",
    # Orchestration
    "ScoreCombiner",
    "CancellationToken",
    "ContextualRetriever",
    "SearchStats",
    "CorpusProvider",
    "SemanticMatch",
    "SemanticProvider",
]
