"""Short, one-line renderings of paths, counts, queries and ages for CLI output."""

from __future__ import annotations


def compress_path(path: str, max_len: int = 30) -> str:
    """Compress path to fit within max_len.

    Examples:
        src/coderank/contextual/spatial.py -> src/.../spatial.py
        short/path.py -> short/path.py (unchanged)
    """
    parts = path.split("/")
    if len(path) <= max_len or len(parts) <= 2:
        return path
    head, tail = parts[0], parts[-1]
    elided = f"{head}/.../{tail}"
    return elided if len(elided) <= max_len else tail


def pluralize(count: int, singular: str, plural: str | None = None) -> str:
    """Render ``count`` with its noun: ``1 result``, ``3 results``."""
    if count == 1:
        return f"{count} {singular}"
    return f"{count} {plural or singular + 's'}"


def truncate_query(query: str, max_len: int = 40) -> str:
    """Clip a query to ``max_len`` characters, marking the cut with an ellipsis."""
    return query if len(query) <= max_len else f"{query[: max_len - 3]}..."


def format_age(age_ms: int) -> str:
    """Format an age in milliseconds to a human-readable string.

    Examples:
        345 -> "0.3s"
        90_000 -> "1m 30s"
        3_661_000 -> "1h 1m"
        90_000_000 -> "1d 1h"
    """
    if age_ms < 0:
        raise ValueError("Age must be non-negative")

    seconds = age_ms / 1000
    if seconds < 60:
        return f"{seconds:.1f}s"

    minutes = int(seconds // 60)
    if minutes < 60:
        return f"{minutes}m {int(seconds % 60)}s"

    hours = minutes // 60
    if hours < 24:
        return f"{hours}h {minutes % 60}m"

    return f"{hours // 24}d {hours % 24}h"
