"""coderank nearby command - workspace files ranked by proximity."""

import json

import click

from coderank.cli.utils import build_retriever, fail, resolve_root
from coderank.core.errors import CodeRankError


@click.command()
@click.argument("active_file")
@click.option(
    "--max-results",
    "-n",
    type=click.IntRange(min=1),
    default=10,
    show_default=True,
    help="Files to list",
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def nearby_command(ctx: click.Context, active_file: str, max_results: int, as_json: bool) -> None:
    """List workspace files closest to ACTIVE_FILE."""
    root = resolve_root(ctx)
    retriever = build_retriever(root, [])
    try:
        nearby = retriever.get_nearby_files(str(root / active_file), max_results)
    except CodeRankError as e:
        fail(e)

    if as_json:
        click.echo(json.dumps([{"path": n.path, "score": n.score} for n in nearby]))
        return
    for item in nearby:
        click.echo(f"{item.score:.3f}  {item.path}")
