"""coderank recent command - list recently modified files."""

import json

import click

from coderank.cli.utils import build_retriever, resolve_root
from coderank.core.formatting import format_age


@click.command()
@click.option(
    "--max-age-min",
    type=click.IntRange(min=1),
    default=60,
    show_default=True,
    help="Only files modified within this many minutes",
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def recent_command(ctx: click.Context, max_age_min: int, as_json: bool) -> None:
    """List files recorded as modified recently, most recent first."""
    retriever = build_retriever(resolve_root(ctx), [])
    files = retriever.get_recently_modified_files(max_age_min * 60 * 1000)

    if as_json:
        click.echo(json.dumps(files))
        return
    if not files:
        click.echo(f"No files modified in the last {max_age_min} min")
        return
    for path in files:
        info = retriever.temporal.get_temporal_info(path, retriever.config)
        click.echo(f"{format_age(max(0, info.age_ms)):>8} ago  {path}")
