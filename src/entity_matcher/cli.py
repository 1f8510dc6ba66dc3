"""CLI entry point for entity-matcher tool."""

import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from entity_matcher.commands import git, match
from entity_matcher.core.config import load_config

console = Console()


def setup_logging(verbose: bool) -> None:
    """Route library logging through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(version="0.1.0", prog_name="entity-matcher")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path, exists=True, dir_okay=False),
    default=None,
    help="Path to a JSON configuration file",
)
@click.pass_context
def main(ctx, verbose: bool, config_path: Path | None):
    """Software Entity Matching Tool.

    Matches declared program entities and statement blocks between the
    before and after versions of a commit.
    """
    ctx.ensure_object(dict)
    setup_logging(verbose)
    ctx.obj["config"] = load_config(config_path)


# Register commands
main.add_command(match.match)
main.add_command(git.git)


if __name__ == "__main__":
    main()
