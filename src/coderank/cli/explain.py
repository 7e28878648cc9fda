"""coderank explain command - show why results ranked as they did."""

from pathlib import Path

import click

from coderank.cli.utils import build_retriever, fail, load_fragments, resolve_root
from coderank.core.errors import CodeRankError


@click.command()
@click.argument("fragments", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("query")
@click.option("--active-file", "-a", default=None, help="File currently open in the editor")
@click.pass_context
def explain_command(
    ctx: click.Context, fragments: Path, query: str, active_file: str | None
) -> None:
    """Explain the score breakdown of the top results for QUERY."""
    retriever = build_retriever(resolve_root(ctx), load_fragments(fragments))
    try:
        lines = retriever.explain_ranking(query, active_file)
    except CodeRankError as e:
        fail(e)

    for line in lines:
        click.echo(line)
