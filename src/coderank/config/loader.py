"""Configuration loading with pydantic-settings.

Supports loading configuration from multiple sources with precedence:
1. Direct kwargs (highest priority)
2. Environment variables (CODERANK__SECTION__KEY)
3. Repo config (.coderank/config.yaml)
4. Global config (~/.config/coderank/config.yaml)
5. Built-in defaults (lowest priority)

YAML files use the same section layout as the models::

    search:
      semantic_weight: 0.5
      spatial_weight: 0.15
    retrieval:
      max_workers: 4
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from coderank.config.models import (
    CodeRankConfig,
    LoggingConfig,
    RetrievalConfig,
    SearchConfig,
    StorageConfig,
)
from coderank.core.errors import ConfigError

GLOBAL_CONFIG_PATH = Path("~/.config/coderank/config.yaml").expanduser()
REPO_CONFIG_RELPATH = Path(".coderank") / "config.yaml"


def _load_yaml(path: Path) -> dict[str, Any]:
    """Read one YAML config layer; a missing file is an empty layer."""
    if not path.is_file():
        return {}
    try:
        loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError.parse_error(str(path), str(e)) from e
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError.parse_error(str(path), "top-level value must be a mapping")
    return loaded


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        both_sections = isinstance(current, dict) and isinstance(value, dict)
        merged[key] = _deep_merge(current, value) if both_sections else value
    return merged


class _LayeredYamlSource(PydanticBaseSettingsSource):
    """Serves the merged global and repo YAML layers to pydantic-settings."""

    def __init__(self, settings_cls: type[BaseSettings], layers: dict[str, Any]) -> None:
        super().__init__(settings_cls)
        self._layers = layers

    def get_field_value(
        self,
        field: Any,  # noqa: ARG002
        field_name: str,
    ) -> tuple[Any, str, bool]:
        section = self._layers.get(field_name)
        return section, field_name, section is not None

    def __call__(self) -> dict[str, Any]:
        return self._layers


def _make_settings_class(yaml_config: dict[str, Any]) -> type[BaseSettings]:
    """Build a settings class bound to one set of YAML layers (no shared state)."""

    class CodeRankSettings(BaseSettings):
        """Root config. Env vars: CODERANK__LOGGING__LEVEL, CODERANK__SEARCH__MAX_RESULTS, etc."""

        model_config = SettingsConfigDict(
            env_prefix="CODERANK__",
            env_nested_delimiter="__",
            case_sensitive=False,
        )

        logging: LoggingConfig = LoggingConfig()
        search: SearchConfig = SearchConfig()
        retrieval: RetrievalConfig = RetrievalConfig()
        storage: StorageConfig = StorageConfig()

        @classmethod
        def settings_customise_sources(
            cls,
            settings_cls: type[BaseSettings],
            init_settings: PydanticBaseSettingsSource,
            env_settings: PydanticBaseSettingsSource,
            dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
            file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        ) -> tuple[PydanticBaseSettingsSource, ...]:
            # first source wins
            return (init_settings, env_settings, _LayeredYamlSource(settings_cls, yaml_config))

    return CodeRankSettings


CodeRankSettings = _make_settings_class({})


def load_config(workspace_root: Path | None = None, **kwargs: Any) -> CodeRankConfig:
    """Load config: defaults < global yaml < repo yaml < env vars < kwargs.

    Args:
        workspace_root: Workspace to load .coderank/config.yaml from.
                        Defaults to current working directory.
        **kwargs: Override values per section (highest precedence).

    Returns:
        Fully resolved configuration object. ``retrieval.workspace_root``
        defaults to the workspace root when not configured.

    Raises:
        ConfigError: On invalid YAML syntax or validation errors.
    """
    workspace_root = workspace_root or Path.cwd()

    yaml_config = _deep_merge(
        _load_yaml(GLOBAL_CONFIG_PATH),
        _load_yaml(workspace_root / REPO_CONFIG_RELPATH),
    )

    settings_cls = _make_settings_class(yaml_config)
    try:
        settings = settings_cls(**kwargs)
        config = CodeRankConfig.model_validate(settings.model_dump())
    except ValidationError as e:
        err = e.errors()[0]
        field = ".".join(str(loc) for loc in err["loc"])
        raise ConfigError.invalid_value(field, err.get("input"), err["msg"]) from e

    if config.retrieval.workspace_root is None:
        retrieval = config.retrieval.model_copy(
            update={"workspace_root": str(workspace_root.resolve())}
        )
        config = config.model_copy(update={"retrieval": retrieval})
    return config
