"""coderank CLI - coderank command."""

from pathlib import Path

import click

from coderank import __version__
from coderank.cli.context import context_command
from coderank.cli.explain import explain_command
from coderank.cli.nearby import nearby_command
from coderank.cli.recent import recent_command
from coderank.cli.search import search_command
from coderank.cli.touch import touch_command
from coderank.core.logging import configure_logging


@click.group()
@click.version_option(version=__version__, prog_name="coderank")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option(
    "--root",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Workspace root (default: nearest directory with .coderank or .git)",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, root: Path | None) -> None:
    """coderank - contextual code search ranking for AI assistants."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["root"] = root
    configure_logging(level="DEBUG" if verbose else "WARNING")


cli.add_command(search_command, name="search")
cli.add_command(context_command, name="context")
cli.add_command(explain_command, name="explain")
cli.add_command(touch_command, name="touch")
cli.add_command(recent_command, name="recent")
cli.add_command(nearby_command, name="nearby")


if __name__ == "__main__":
    cli()
