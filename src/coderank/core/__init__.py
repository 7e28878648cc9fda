"""Core module exports."""

from coderank.core.errors import (
    CodeRankError,
    ConfigError,
    ContextualRetrievalError,
    ErrorCode,
    PersistenceError,
    ProviderError,
    ScoringError,
)
from coderank.core.logging import (
    clear_query_id,
    configure_logging,
    get_logger,
    get_query_id,
    set_query_id,
)

__all__ = [
    # Errors
    "CodeRankError",
    "ConfigError",
    "ContextualRetrievalError",
    "ErrorCode",
    "PersistenceError",
    "ProviderError",
    "ScoringError",
    # Logging
    "clear_query_id",
    "configure_logging",
    "get_logger",
    "get_query_id",
    "set_query_id",
]
