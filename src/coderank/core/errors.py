"""coderank error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Semantic provider
- 4xxx: Persistence
- 5xxx: Scoring
- 6xxx: Retrieval
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_INVALID_WEIGHTS = 2003

    # Semantic provider (3xxx)
    PROVIDER_FAILED = 3001
    PROVIDER_TIMEOUT = 3002

    # Persistence (4xxx)
    PERSISTENCE_READ_FAILED = 4001
    PERSISTENCE_WRITE_FAILED = 4002

    # Scoring (5xxx)
    SCORING_NON_FINITE = 5001
    SCORING_OUT_OF_RANGE = 5002

    # Retrieval (6xxx)
    RETRIEVAL_FAILED = 6001
    RETRIEVAL_CANCELLED = 6002


@dataclass(frozen=True, slots=True)
class CodeRankError(Exception):
    """Base error with structured context."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'CONFIG_PARSE_ERROR')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(CodeRankError):
    """Configuration-related errors.

    ``invalid_weights`` is the caller-bug case: fusion weights that do not
    sum to 1.0. It is raised before any retrieval work starts.
    """

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def invalid_weights(cls, total: float, weights: dict[str, float]) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_WEIGHTS,
            message=f"Weights must sum to 1.0, got {total:.4f}",
            details={"total": total, **weights},
        )


class ProviderError(CodeRankError):
    """Semantic provider failures. Not retried by this package."""

    @classmethod
    def failed(cls, reason: str) -> "ProviderError":
        return cls(
            code=ErrorCode.PROVIDER_FAILED,
            message=f"Semantic provider failed: {reason}",
            details={"reason": reason},
        )

    @classmethod
    def timed_out(cls, timeout_sec: float) -> "ProviderError":
        return cls(
            code=ErrorCode.PROVIDER_TIMEOUT,
            message=f"Semantic provider did not answer within {timeout_sec:g}s",
            retryable=True,
            details={"timeout_sec": timeout_sec},
        )


class PersistenceError(CodeRankError):
    """Timestamp storage failures. Logged and absorbed by the stores."""

    @classmethod
    def read_failed(cls, path: str, reason: str) -> "PersistenceError":
        return cls(
            code=ErrorCode.PERSISTENCE_READ_FAILED,
            message=f"Failed to read {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def write_failed(cls, path: str, reason: str) -> "PersistenceError":
        return cls(
            code=ErrorCode.PERSISTENCE_WRITE_FAILED,
            message=f"Failed to write {path}: {reason}",
            retryable=True,
            details={"path": path, "reason": reason},
        )


class ScoringError(CodeRankError):
    """A component score that cannot be used as-is for one candidate."""

    @classmethod
    def non_finite(cls, fragment_id: str, component: str, value: float) -> "ScoringError":
        return cls(
            code=ErrorCode.SCORING_NON_FINITE,
            message=f"Non-finite {component} score for fragment {fragment_id}",
            details={"fragment_id": fragment_id, "component": component, "value": str(value)},
        )

    @classmethod
    def out_of_range(cls, fragment_id: str, component: str, value: float) -> "ScoringError":
        return cls(
            code=ErrorCode.SCORING_OUT_OF_RANGE,
            message=f"{component} score {value:.4f} outside [0, 1] for fragment {fragment_id}",
            details={"fragment_id": fragment_id, "component": component, "value": value},
        )


class ContextualRetrievalError(CodeRankError):
    """Tagged failure of a retrieval operation.

    The underlying exception is chained as ``__cause__`` by the raiser.
    """

    @property
    def operation(self) -> str:
        return str(self.details.get("operation", ""))

    @classmethod
    def wrap(
        cls, operation: str, message: str, cause: BaseException | None = None
    ) -> "ContextualRetrievalError":
        details: dict[str, Any] = {"operation": operation}
        if cause is not None:
            details["cause"] = str(cause)
        return cls(
            code=ErrorCode.RETRIEVAL_FAILED,
            message=message,
            details=details,
        )

    @classmethod
    def cancelled(cls, operation: str) -> "ContextualRetrievalError":
        return cls(
            code=ErrorCode.RETRIEVAL_CANCELLED,
            message=f"{operation} was cancelled",
            details={"operation": operation},
        )
