"""coderank search command - rank fragments for a query."""

import json
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from coderank.cli.utils import build_retriever, fail, load_fragments, resolve_root
from coderank.contextual.models import SearchResult
from coderank.core.errors import CodeRankError
from coderank.core.formatting import compress_path, pluralize, truncate_query


def _make_results_table(results: list[SearchResult]) -> Table:
    table = Table(box=None, padding=(0, 1), pad_edge=False)
    table.add_column("#", style="dim", justify="right")
    table.add_column("score", style="green", justify="right")
    table.add_column("location", style="cyan", no_wrap=True)
    table.add_column("kind")
    table.add_column("symbol", style="bold")

    for result in results:
        fragment = result.fragment
        symbol = fragment.metadata.function_name or fragment.metadata.class_name or ""
        table.add_row(
            str(result.rank),
            f"{result.final_score:.3f}",
            f"{compress_path(fragment.file_path)}:{fragment.start_line}-{fragment.end_line}",
            fragment.kind.value,
            symbol,
        )
    return table


@click.command()
@click.argument("fragments", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("query")
@click.option("--active-file", "-a", default=None, help="File currently open in the editor")
@click.option("--language", "-l", default=None, help="Language of the active file")
@click.option(
    "--max-results", "-n", type=click.IntRange(min=1), default=None, help="Results to return"
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def search_command(
    ctx: click.Context,
    fragments: Path,
    query: str,
    active_file: str | None,
    language: str | None,
    max_results: int | None,
    as_json: bool,
) -> None:
    """Rank fragments from FRAGMENTS (a JSON dump) against QUERY."""
    retriever = build_retriever(resolve_root(ctx), load_fragments(fragments))
    try:
        if max_results is not None:
            retriever.update_config(max_results=max_results)
        results = retriever.search(query, active_file, current_language=language)
    except CodeRankError as e:
        fail(e)

    if as_json:
        click.echo(json.dumps([r.to_dict() for r in results], indent=2))
        return

    console = Console()
    shown = escape(truncate_query(query))
    if not results:
        console.print(f"[yellow]No results[/yellow] for '{shown}'")
        return
    console.print(f"[bold]{pluralize(len(results), 'result')}[/bold] for '{shown}'")
    console.print(_make_results_table(results))
