"""coderank touch command - record file modifications."""

import click

from coderank.cli.utils import build_retriever, fail, resolve_root
from coderank.core.errors import CodeRankError
from coderank.core.formatting import pluralize


@click.command()
@click.argument("paths", nargs=-1, required=True)
@click.pass_context
def touch_command(ctx: click.Context, paths: tuple[str, ...]) -> None:
    """Record PATHS as modified now, for recency scoring.

    Relative paths are taken from the workspace root.
    """
    root = resolve_root(ctx)
    retriever = build_retriever(root, [])
    try:
        for path in paths:
            retriever.notify_modified(str(root / path))
    except CodeRankError as e:
        fail(e)

    click.echo(f"Recorded {pluralize(len(paths), 'file')}")
