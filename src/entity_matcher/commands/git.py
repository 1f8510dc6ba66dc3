from pathlib import Path
from typing import Iterator

import click
import pandas as pd
from rich.console import Console
from rich.table import Table
from tqdm import tqdm

from entity_matcher.const.column import ColumnNames
from entity_matcher.core.revision_manager import FileChanges, GitChangeSource
from entity_matcher.error.cmd import handle_command_errors

console = Console()


@click.group()
def git():
    """Inspect file changes of a git repository."""
    pass


def change_rows(commit: str, changes: FileChanges) -> Iterator[dict[str, str | None]]:
    """Generate one row per changed file of a commit."""
    for path in changes.modified:
        yield _row(commit, "modified", path, path)
    for old_path, new_path in changes.renamed.items():
        yield _row(commit, "renamed", old_path, new_path)
    for path in changes.deleted:
        yield _row(commit, "deleted", path, None)
    for path in changes.added:
        yield _row(commit, "added", None, path)


def _row(commit: str, change_type: str, old_path: str | None, new_path: str | None) -> dict:
    return {
        ColumnNames.COMMIT_HASH.value: commit[:7],
        ColumnNames.CHANGE_TYPE.value: change_type,
        ColumnNames.OLD_PATH.value: old_path,
        ColumnNames.NEW_PATH.value: new_path,
    }


@git.command()
@click.option(
    "--repo",
    "repo_path",
    "-r",
    type=click.Path(path_type=Path, exists=True, file_okay=False),
    required=True,
    help="Path to git repository",
)
@click.option("--commit", default=None, help="Single commit to list (against its first parent)")
@click.option("--from-commit", default=None, help="First commit of a range")
@click.option("--to-commit", default=None, help="Last commit of a range")
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path, file_okay=True, dir_okay=False),
    default=None,
    help="Output CSV file path (prints a table when omitted)",
)
@handle_command_errors
def changes(
    repo_path: Path,
    commit: str | None,
    from_commit: str | None,
    to_commit: str | None,
    output: Path | None,
) -> None:
    """List the file changes of a commit or of a range of commits."""
    source = GitChangeSource(repo_path)
    if commit is not None:
        rows = list(change_rows(commit, source.commit_changes(commit)))
    else:
        rows = []
        commits = source.iter_commit_changes(from_commit=from_commit, to_commit=to_commit)
        for commit_hash, file_changes in tqdm(commits, desc="Processing commits"):
            rows.extend(change_rows(commit_hash, file_changes))

    df = pd.DataFrame(
        rows,
        columns=[
            ColumnNames.COMMIT_HASH.value,
            ColumnNames.CHANGE_TYPE.value,
            ColumnNames.OLD_PATH.value,
            ColumnNames.NEW_PATH.value,
        ],
    )

    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(output, index=False)
        console.print(f"Output saved to {output}")
        return

    table = Table(title="File Changes")
    for column in df.columns:
        table.add_column(column)
    for row in df.itertuples(index=False):
        table.add_row(*("" if value is None or pd.isna(value) else str(value) for value in row))
    console.print(table)
