"""Entity matching command."""

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from entity_matcher.analysis.matching import EntityMatcher, infer_file_changes
from entity_matcher.analysis.report_generator import (
    EntityMatchingDocument,
    match_pair_to_dataframe,
    summarize,
)
from entity_matcher.analysis.tree_loader import load_snapshot
from entity_matcher.core.config import Config
from entity_matcher.core.revision_manager import GitChangeSource
from entity_matcher.error.cmd import handle_command_errors

console = Console()


def parse_renames(renames: tuple[str, ...]) -> dict[str, str]:
    """Parse OLD=NEW rename options."""
    parsed = {}
    for rename in renames:
        old_path, separator, new_path = rename.partition("=")
        if not separator or not old_path or not new_path:
            raise ValueError(f"Rename must look like OLD=NEW, got '{rename}'")
        parsed[old_path] = new_path
    return parsed


def print_summary(counts: dict[str, dict[str, int]], fine_iterations: int) -> None:
    """Print a summary table of the matching result."""
    table = Table(title="Matching Summary")
    table.add_column("Level", style="cyan")
    for name in ("matched", "unchanged", "deleted", "added"):
        table.add_column(name.capitalize(), justify="right")
    for level, level_counts in counts.items():
        table.add_row(level, *(str(level_counts[name]) for name in level_counts))
    console.print(table)
    console.print(f"Fine-matching iterations: {fine_iterations}")


@click.command()
@click.option(
    "--before",
    "before_path",
    type=click.Path(path_type=Path, exists=True, dir_okay=False),
    required=True,
    help="Snapshot of the before revision (JSON or YAML)",
)
@click.option(
    "--after",
    "after_path",
    type=click.Path(path_type=Path, exists=True, dir_okay=False),
    required=True,
    help="Snapshot of the after revision (JSON or YAML)",
)
@click.option(
    "--rename",
    "renames",
    multiple=True,
    help="Renamed file as OLD=NEW (repeatable, ignored with --repo)",
)
@click.option(
    "--repo",
    "repo_path",
    type=click.Path(path_type=Path, exists=True, file_okay=False),
    default=None,
    help="Git repository to read the file changes of --commit from",
)
@click.option("--commit", default=None, help="Commit whose file changes are matched")
@click.option(
    "--suffix",
    "suffixes",
    multiple=True,
    help="Only match files with this suffix, e.g. .java (repeatable)",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path, file_okay=False, dir_okay=True),
    default=None,
    help="Output directory (default: from configuration)",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["csv", "json"]),
    default=None,
    help="Output format (default: from configuration)",
)
@click.option(
    "--min-dice",
    type=click.FloatRange(0.0, 1.0),
    default=None,
    help="Minimum Dice score for candidates (default: from configuration)",
)
@click.option("--repository", default="", help="Repository identifier for the JSON report")
@click.option("--url", default="", help="Commit URL for the JSON report")
@click.pass_context
@handle_command_errors
def match(
    ctx,
    before_path: Path,
    after_path: Path,
    renames: tuple[str, ...],
    repo_path: Path | None,
    commit: str | None,
    suffixes: tuple[str, ...],
    output: Path | None,
    output_format: str | None,
    min_dice: float | None,
    repository: str,
    url: str,
) -> None:
    """Match entities between two revision snapshots."""
    config: Config = (ctx.obj or {}).get("config") or Config.get_default()
    output_dir = output or config.output.output_dir
    output_format = output_format or config.output.default_format
    if output_format not in ("csv", "json"):
        raise ValueError(f"Unsupported output format: {output_format}")

    before = load_snapshot(before_path)
    after = load_snapshot(after_path)

    if repo_path is not None:
        if commit is None:
            raise ValueError("--repo requires --commit")
        changes = GitChangeSource(repo_path).commit_changes(commit)
    else:
        changes = infer_file_changes(before, after, parse_renames(renames))
    changes = changes.filter_suffixes(suffixes)

    console.print(
        f"[bold blue]Matching[/bold blue] {len(changes.modified)} modified, "
        f"{len(changes.renamed)} renamed, {len(changes.deleted)} deleted, "
        f"{len(changes.added)} added files",
        highlight=False,
    )

    matching = config.matching
    matcher = EntityMatcher(
        min_dice=min_dice if min_dice is not None else matching.min_dice,
        heuristic_dice=matching.heuristic_dice,
        max_fine_iterations=matching.max_fine_iterations,
        match_statements=matching.match_statements,
    )
    match_pair = matcher.match(before, after, changes)

    output_dir.mkdir(parents=True, exist_ok=True)
    if output_format == "json":
        document = EntityMatchingDocument()
        sha1 = commit or after.commit or ""
        document.add_result(repository, sha1, url, match_pair)
        file_path = output_dir / "entity_matches.json"
        document.save(file_path)
    else:
        file_path = output_dir / "entity_matches.csv"
        match_pair_to_dataframe(match_pair).to_csv(file_path, index=False)

    print_summary(summarize(match_pair), matcher.fine_iterations)
    console.print(f"[green]Results saved to:[/green] {file_path}")
