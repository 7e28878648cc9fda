"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (CODERANK__SECTION__KEY)
3. Repo YAML (.coderank/config.yaml)
4. Global YAML (~/.config/coderank/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    CODERANK__<SECTION>__<KEY>=<VALUE>

Examples:
    CODERANK__LOGGING__LEVEL=DEBUG
    CODERANK__SEARCH__MAX_RESULTS=20
    CODERANK__SEARCH__SEMANTIC_WEIGHT=0.5
    CODERANK__RETRIEVAL__MAX_WORKERS=4
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from coderank.core.errors import ConfigError

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

WEIGHT_TOLERANCE = 1e-3

_MINUTE_MS = 60 * 1000
_DAY_MS = 24 * 60 * _MINUTE_MS


class LogOutputConfig(BaseModel):
    """Single logging output configuration.

    Env vars: Not directly configurable via env (use YAML for multi-output).
    """

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        CODERANK__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every scored candidate.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class SearchConfig(BaseModel):
    """Per-query ranking configuration.

    The four fusion weights must sum to 1.0 (within 1e-3). That invariant is
    checked by ``check_weights()`` rather than at construction so a caller can
    build a partial config and adjust it; every consumer calls it before use
    and nothing ever rescales the weights.

    Env vars:
        CODERANK__SEARCH__SEMANTIC_WEIGHT, CODERANK__SEARCH__TEMPORAL_WEIGHT,
        CODERANK__SEARCH__SPATIAL_WEIGHT, CODERANK__SEARCH__STRUCTURAL_WEIGHT
        CODERANK__SEARCH__MAX_RESULTS: Results returned per query
        CODERANK__SEARCH__MIN_SEMANTIC_THRESHOLD: Semantic floor
        CODERANK__SEARCH__MIN_FINAL_SCORE: Final score floor
    """

    model_config = ConfigDict(frozen=True)

    # Fusion weights
    semantic_weight: float = Field(
        default=0.4,
        description="Weight of provider similarity. Most important signal.",
    )
    temporal_weight: float = Field(
        default=0.2,
        description="Weight of recency.",
    )
    spatial_weight: float = Field(
        default=0.25,
        description="Weight of path proximity to the active file.",
    )
    structural_weight: float = Field(
        default=0.15,
        description="Weight of code shape and query-to-symbol affinity.",
    )

    # Temporal
    recent_modification_bonus_ms: int = Field(
        default=5 * _MINUTE_MS,
        description="Files modified within this window score 1.0 and get a recency boost.",
    )
    temporal_decay_factor: float = Field(
        default=2.0,
        description="Exponential decay rate over normalized age. Higher favors recent code more.",
    )
    max_temporal_age_ms: int = Field(
        default=7 * _DAY_MS,
        description="Files older than this get the floor temporal score (0.1).",
    )

    # Spatial
    same_directory_bonus: float = Field(
        default=0.2,
        description="Scaled by 0.2 on top of 0.8 for fragments in the active file's directory.",
    )
    max_spatial_distance: int = Field(
        default=10,
        description="Directory hops beyond which distance stops lowering the spatial score.",
    )

    # Structural
    same_language_bonus: float = Field(
        default=0.2,
        description="Bonus when the fragment language matches the caller's current language.",
    )
    function_type_bonus: float = Field(default=0.15, description="Bonus for function fragments.")
    class_type_bonus: float = Field(default=0.1, description="Bonus for class fragments.")

    # Output
    max_results: int = Field(
        default=10,
        description="Results returned per query. The provider is asked for twice as many.",
    )
    min_semantic_threshold: float = Field(
        default=0.3,
        description="Candidates whose semantic score is below this are dropped.",
    )
    min_final_score: float = Field(
        default=0.2,
        description="Candidates whose boosted final score is below this are dropped.",
    )

    @field_validator(
        "semantic_weight",
        "temporal_weight",
        "spatial_weight",
        "structural_weight",
        "min_semantic_threshold",
        "min_final_score",
    )
    @classmethod
    def validate_unit_interval(cls, v: float) -> float:
        if not (0.0 <= v <= 1.0):
            raise ValueError(f"Must be within [0, 1], got {v}")
        return v

    @field_validator(
        "recent_modification_bonus_ms",
        "max_temporal_age_ms",
        "max_spatial_distance",
        "max_results",
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"Must be positive, got {v}")
        return v

    @property
    def weights(self) -> dict[str, float]:
        return {
            "semantic_weight": self.semantic_weight,
            "temporal_weight": self.temporal_weight,
            "spatial_weight": self.spatial_weight,
            "structural_weight": self.structural_weight,
        }

    @property
    def total_weight(self) -> float:
        return sum(self.weights.values())

    def check_weights(self) -> None:
        """Raise ConfigError unless the fusion weights sum to 1.0."""
        total = self.total_weight
        if abs(total - 1.0) > WEIGHT_TOLERANCE:
            raise ConfigError.invalid_weights(total, self.weights)


class RetrievalConfig(BaseModel):
    """Orchestrator configuration.

    Env vars:
        CODERANK__RETRIEVAL__WORKSPACE_ROOT: Root used for same-project checks
        CODERANK__RETRIEVAL__MAX_WORKERS: Parallel candidate scoring workers
        CODERANK__RETRIEVAL__PROVIDER_TIMEOUT_SEC: Semantic provider timeout
    """

    workspace_root: str | None = Field(
        default=None,
        description="Workspace root. Files outside it never get the same-project bonus.",
    )
    max_workers: int | None = Field(
        default=None,
        description="Candidate scoring workers. Default: min(8, CPU count).",
    )
    provider_timeout_sec: float = Field(
        default=10.0,
        description="Max wait for the semantic provider. "
        "RISK: Too low drops slow but healthy providers.",
    )
    overfetch_factor: int = Field(
        default=2,
        description="Candidates requested per returned result, to survive filtering.",
    )
    default_max_tokens: int = Field(
        default=4000,
        description="Token budget for get_relevant_context() when none is given.",
    )
    tokens_per_char: float = Field(
        default=0.25,
        description="Token estimate per character of formatted context.",
    )
    explain_top_n: int = Field(
        default=5,
        description="Results covered by explain_ranking().",
    )

    @field_validator("max_workers")
    @classmethod
    def validate_workers(cls, v: int | None) -> int | None:
        if v is not None and v < 1:
            raise ValueError(f"max_workers must be >= 1, got {v}")
        return v

    @field_validator("provider_timeout_sec", "tokens_per_char")
    @classmethod
    def validate_positive_float(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"Must be positive, got {v}")
        return v

    @field_validator("overfetch_factor", "default_max_tokens", "explain_top_n")
    @classmethod
    def validate_positive_int(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"Must be >= 1, got {v}")
        return v


class StorageConfig(BaseModel):
    """Persisted state configuration.

    Env vars:
        CODERANK__STORAGE__STATE_DIR: Where timestamps are stored
    """

    state_dir: str = Field(
        default=".coderank",
        description="State directory. Relative paths resolve against the workspace root.",
    )

    def timestamps_path(self, workspace_root: Path) -> Path:
        state_dir = Path(self.state_dir).expanduser()
        if not state_dir.is_absolute():
            state_dir = workspace_root / state_dir
        return state_dir / "temporal" / "timestamps.json"


class CodeRankConfig(BaseModel):
    """Root configuration for coderank.

    All settings can be configured via:
    1. Environment variables: CODERANK__SECTION__KEY
    2. YAML config files (repo or global)
    3. Direct kwargs to load_config()
    """

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    retrieval: RetrievalConfig = Field(default_factory=RetrievalConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
