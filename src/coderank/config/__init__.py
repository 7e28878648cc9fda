"""Config module exports."""

from coderank.config.loader import CodeRankSettings, load_config
from coderank.config.models import (
    CodeRankConfig,
    LoggingConfig,
    RetrievalConfig,
    SearchConfig,
    StorageConfig,
)

__all__ = [
    "load_config",
    "CodeRankConfig",
    "CodeRankSettings",
    "LoggingConfig",
    "RetrievalConfig",
    "SearchConfig",
    "StorageConfig",
]
