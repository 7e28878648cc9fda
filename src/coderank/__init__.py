"""coderank - contextual ranking of code fragments for AI assistants."""

from coderank.contextual import (
    CodeFragment,
    ContextualRetriever,
    CorpusProvider,
    FragmentKind,
    ScoreCombiner,
    SearchResult,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "CodeFragment",
    "ContextualRetriever",
    "CorpusProvider",
    "FragmentKind",
    "ScoreCombiner",
    "SearchResult",
]
