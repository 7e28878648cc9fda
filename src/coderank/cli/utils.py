"""CLI utilities."""

import json
from pathlib import Path
from typing import NoReturn

import click

from coderank.config.loader import load_config
from coderank.contextual.models import CodeFragment
from coderank.contextual.providers import CorpusProvider
from coderank.contextual.retriever import ContextualRetriever
from coderank.contextual.temporal import JsonTimestampStore, TemporalAnalyzer
from coderank.core.errors import CodeRankError

_ROOT_MARKERS = (".coderank", ".git")


def find_workspace_root(start_path: Path | None = None) -> Path:
    """Find the workspace root from the given path.

    Walks up the directory tree looking for a .coderank or .git directory.
    Falls back to the start path when neither is found.

    Args:
        start_path: Starting directory to search from (default: cwd)

    Returns:
        Resolved path to the workspace root
    """
    if start_path is None:
        start_path = Path.cwd()

    start = start_path.resolve()
    for candidate in (start, *start.parents):
        if any((candidate / marker).exists() for marker in _ROOT_MARKERS):
            return candidate
    return start


def resolve_root(ctx: click.Context) -> Path:
    """Workspace root from --root, else discovered from cwd."""
    root = (ctx.obj or {}).get("root")
    if root is not None:
        return Path(root).resolve()
    return find_workspace_root()


def load_fragments(path: Path) -> list[CodeFragment]:
    """Load a JSON fragment dump.

    Accepts a list of fragment objects, or an object with a ``fragments`` list.

    Raises:
        click.ClickException: If the file is not valid JSON or a fragment is malformed
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise click.ClickException(f"Cannot read fragments from {path}: {e}") from e

    if isinstance(data, dict):
        data = data.get("fragments")
    if not isinstance(data, list):
        raise click.ClickException(f"{path}: expected a list of fragments")

    fragments: list[CodeFragment] = []
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            raise click.ClickException(f"{path}: fragment #{index} is not an object")
        try:
            fragments.append(CodeFragment.from_dict(item))
        except (ValueError, TypeError) as e:
            raise click.ClickException(f"{path}: fragment #{index}: {e}") from e
    return fragments


def build_retriever(root: Path, fragments: list[CodeFragment]) -> ContextualRetriever:
    """Retriever over an in-memory corpus, with timestamps persisted under root."""
    try:
        config = load_config(root)
        store = JsonTimestampStore(config.storage.timestamps_path(root))
        return ContextualRetriever(
            CorpusProvider(fragments),
            config=config.search,
            settings=config.retrieval,
            temporal=TemporalAnalyzer(store),
        )
    except CodeRankError as e:
        fail(e)


def fail(error: CodeRankError) -> NoReturn:
    """Surface a library error as a CLI error."""
    raise click.ClickException(error.message) from error
