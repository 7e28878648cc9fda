"""structlog setup for coderank.

Every event goes through stdlib logging so several outputs can share one
processor chain while keeping their own level and renderer. Each
``ContextualRetriever.search()`` call gets a short query id that is stamped
on everything logged while it runs.
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from pathlib import Path
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import structlog

if TYPE_CHECKING:
    from coderank.config.models import LoggingConfig, LogOutputConfig

_CONSOLE_DESTINATIONS = frozenset({"stderr", "stdout"})

_current_query: ContextVar[str | None] = ContextVar("coderank_query_id", default=None)

# First file output of the active configuration; the CLI points users here on failure
_active_log_file: Path | None = None


def set_query_id(query_id: str | None = None) -> str:
    """Bind a query id to the current context, generating one if omitted."""
    value = query_id or uuid4().hex[:12]
    _current_query.set(value)
    return value


def get_query_id() -> str | None:
    return _current_query.get()


def clear_query_id() -> None:
    _current_query.set(None)


def get_log_file_path() -> Path | None:
    return _active_log_file


def _stamp_query_id(
    _logger: structlog.types.WrappedLogger,
    _method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    query_id = _current_query.get()
    if query_id is not None:
        event_dict.setdefault("query_id", query_id)
    return event_dict


def _level_number(name: str | None, fallback: int) -> int:
    if not name:
        return fallback
    value = logging.getLevelName(name.upper())
    return value if isinstance(value, int) else fallback


def _processor_chain() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", key="timestamp"),
        _stamp_query_id,  # type: ignore[list-item]
    ]


def _open_handler(output: LogOutputConfig) -> logging.Handler:
    if output.destination in _CONSOLE_DESTINATIONS:
        return logging.StreamHandler(getattr(sys, output.destination))
    target = Path(output.destination)
    target.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(target, mode="a", encoding="utf-8")


def _renderer_for(output: LogOutputConfig) -> structlog.types.Processor:
    if output.format == "json":
        return structlog.processors.JSONRenderer()
    is_console = output.destination in _CONSOLE_DESTINATIONS
    return structlog.dev.ConsoleRenderer(
        colors=is_console and getattr(sys, output.destination).isatty(),
        pad_event_to=0,
        pad_level=False,
    )


def configure_logging(
    *,
    config: LoggingConfig | None = None,
    json_format: bool = False,
    level: str = "INFO",
) -> None:
    """Install handlers for every configured output.

    When ``config`` is given it wins; otherwise a single stderr output is
    built from ``json_format`` and ``level``. Safe to call repeatedly: the
    root logger's handlers are replaced each time.
    """
    global _active_log_file
    from coderank.config.models import LoggingConfig, LogOutputConfig

    if config is None:
        config = LoggingConfig(
            level=level,
            outputs=[LogOutputConfig(format="json" if json_format else "console")],
        )

    base_level = _level_number(config.level, logging.INFO)
    chain = _processor_chain()

    structlog.configure(
        processors=[*chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.make_filtering_bound_logger(base_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # reconfiguration must reach loggers that were already handed out
        cache_logger_on_first_use=False,
    )

    root = logging.getLogger()
    for stale in list(root.handlers):
        root.removeHandler(stale)
        stale.close()
    root.setLevel(base_level)

    _active_log_file = None
    for output in config.outputs:
        if _active_log_file is None and output.destination not in _CONSOLE_DESTINATIONS:
            _active_log_file = Path(output.destination)

        handler = _open_handler(output)
        handler.setLevel(_level_number(output.level or config.level, base_level))
        handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processor=_renderer_for(output),
                foreign_pre_chain=chain,
            )
        )
        root.addHandler(handler)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger, tagged with ``logger=name`` when given."""
    bound = structlog.get_logger()
    return bound.bind(logger=name) if name else bound  # type: ignore[no-any-return]
