"""Tests for config/models.py module.

Covers:
- SearchConfig defaults, validators and weight-sum check
- RetrievalConfig validators
- StorageConfig.timestamps_path()
- LogOutputConfig destination validation
"""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from coderank.config.models import (
    CodeRankConfig,
    LogOutputConfig,
    RetrievalConfig,
    SearchConfig,
    StorageConfig,
)
from coderank.core.errors import ConfigError, ErrorCode


class TestSearchConfigDefaults:
    """Documented defaults."""

    def test_default_weights(self) -> None:
        config = SearchConfig()
        assert config.semantic_weight == 0.4
        assert config.temporal_weight == 0.2
        assert config.spatial_weight == 0.25
        assert config.structural_weight == 0.15

    def test_default_windows_and_thresholds(self) -> None:
        config = SearchConfig()
        assert config.recent_modification_bonus_ms == 5 * 60 * 1000
        assert config.max_temporal_age_ms == 7 * 24 * 60 * 60 * 1000
        assert config.temporal_decay_factor == 2.0
        assert config.max_spatial_distance == 10
        assert config.max_results == 10
        assert config.min_semantic_threshold == 0.3
        assert config.min_final_score == 0.2

    def test_defaults_pass_weight_check(self) -> None:
        SearchConfig().check_weights()

    def test_is_frozen(self) -> None:
        config = SearchConfig()
        with pytest.raises(ValidationError):
            config.max_results = 5  # type: ignore[misc]


class TestSearchConfigWeights:
    """Weight-sum invariant."""

    def test_weights_summing_to_one_accepted(self) -> None:
        config = SearchConfig(
            semantic_weight=0.7, temporal_weight=0.1, spatial_weight=0.1, structural_weight=0.1
        )
        config.check_weights()
        assert config.total_weight == pytest.approx(1.0)

    def test_within_tolerance_accepted(self) -> None:
        """Rounding noise below 1e-3 is tolerated."""
        SearchConfig(semantic_weight=0.4005).check_weights()

    def test_bad_sum_raises_config_error(self) -> None:
        """Weights are never silently rescaled."""
        config = SearchConfig(semantic_weight=0.6)

        with pytest.raises(ConfigError) as exc_info:
            config.check_weights()

        assert exc_info.value.code == ErrorCode.CONFIG_INVALID_WEIGHTS
        assert exc_info.value.details["total"] == pytest.approx(1.2)
        assert config.semantic_weight == 0.6

    def test_weights_property(self) -> None:
        assert set(SearchConfig().weights) == {
            "semantic_weight",
            "temporal_weight",
            "spatial_weight",
            "structural_weight",
        }


class TestSearchConfigValidators:
    """Per-field validation."""

    @pytest.mark.parametrize(
        "field", ["semantic_weight", "temporal_weight", "min_semantic_threshold", "min_final_score"]
    )
    def test_negative_unit_values_rejected(self, field: str) -> None:
        with pytest.raises(ValidationError):
            SearchConfig(**{field: -0.1})

    def test_weight_above_one_rejected(self) -> None:
        with pytest.raises(ValidationError):
            SearchConfig(spatial_weight=1.5)

    @pytest.mark.parametrize(
        "field",
        ["recent_modification_bonus_ms", "max_temporal_age_ms", "max_spatial_distance", "max_results"],
    )
    def test_non_positive_windows_rejected(self, field: str) -> None:
        with pytest.raises(ValidationError):
            SearchConfig(**{field: 0})


class TestRetrievalConfig:
    """RetrievalConfig validation."""

    def test_defaults(self) -> None:
        config = RetrievalConfig()
        assert config.max_workers is None
        assert config.provider_timeout_sec == 10.0
        assert config.overfetch_factor == 2
        assert config.default_max_tokens == 4000
        assert config.tokens_per_char == 0.25
        assert config.explain_top_n == 5

    def test_zero_workers_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RetrievalConfig(max_workers=0)

    def test_non_positive_timeout_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RetrievalConfig(provider_timeout_sec=0)


class TestStorageConfig:
    """StorageConfig path resolution."""

    def test_relative_state_dir_under_workspace(self, tmp_path: Path) -> None:
        path = StorageConfig().timestamps_path(tmp_path)
        assert path == tmp_path / ".coderank" / "temporal" / "timestamps.json"

    def test_absolute_state_dir_used_as_is(self, tmp_path: Path) -> None:
        state = tmp_path / "elsewhere"
        path = StorageConfig(state_dir=str(state)).timestamps_path(tmp_path / "ws")
        assert path == state / "temporal" / "timestamps.json"


class TestLogOutputConfig:
    """LogOutputConfig destination validation."""

    def test_std_streams_accepted(self) -> None:
        assert LogOutputConfig(destination="stdout").destination == "stdout"

    def test_relative_file_rejected(self) -> None:
        with pytest.raises(ValidationError):
            LogOutputConfig(destination="logs/coderank.log")


class TestCodeRankConfig:
    """Root config composition."""

    def test_has_all_sections(self) -> None:
        config = CodeRankConfig()
        assert config.logging.level == "INFO"
        assert config.search.max_results == 10
        assert config.retrieval.workspace_root is None
        assert config.storage.state_dir == ".coderank"
