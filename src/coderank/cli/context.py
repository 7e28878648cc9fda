"""coderank context command - print packed context for a query."""

from pathlib import Path

import click

from coderank.cli.utils import build_retriever, fail, load_fragments, resolve_root
from coderank.core.errors import CodeRankError


@click.command()
@click.argument("fragments", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("query")
@click.option("--active-file", "-a", default=None, help="File currently open in the editor")
@click.option("--language", "-l", default=None, help="Language of the active file")
@click.option(
    "--max-tokens",
    "-t",
    type=click.IntRange(min=1),
    default=None,
    help="Token budget (default: retrieval.default_max_tokens)",
)
@click.pass_context
def context_command(
    ctx: click.Context,
    fragments: Path,
    query: str,
    active_file: str | None,
    language: str | None,
    max_tokens: int | None,
) -> None:
    """Print the best fragments for QUERY, packed into a token budget."""
    retriever = build_retriever(resolve_root(ctx), load_fragments(fragments))
    try:
        context = retriever.get_relevant_context(
            query, max_tokens, active_file, current_language=language
        )
    except CodeRankError as e:
        fail(e)

    click.echo("\n\n".join(context))
