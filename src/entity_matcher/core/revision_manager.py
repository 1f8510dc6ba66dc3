"""File changes and file contents between two revisions of a git repository.

This module provides the repository side of a matching run: which files were
added, deleted, modified or renamed between two commits, and the contents of
a file at a commit.
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
import logging
from pathlib import Path, PurePosixPath

from git import Repo
from git.exc import BadName, GitCommandError
from pydriller import Repository
from pydriller.domain.commit import ModificationType

logger = logging.getLogger(__name__)


@dataclass
class FileChanges:
    """File-level changes between a before and an after revision.

    Attributes:
        added: Paths present only in the after revision
        deleted: Paths present only in the before revision
        modified: Paths changed in place
        renamed: Old path -> new path of renamed files
    """

    added: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    modified: list[str] = field(default_factory=list)
    renamed: dict[str, str] = field(default_factory=dict)

    def before_paths(self) -> list[str]:
        """Paths whose before version takes part in matching."""
        return [*self.deleted, *self.modified, *self.renamed]

    def after_paths(self) -> list[str]:
        """Paths whose after version takes part in matching."""
        return [*self.added, *self.modified, *self.renamed.values()]

    def filter_suffixes(self, suffixes: Iterable[str]) -> "FileChanges":
        """Keep only paths with one of the given suffixes (e.g. ".java")."""
        allowed = tuple(suffixes)
        if not allowed:
            return self

        def keep(path: str) -> bool:
            return PurePosixPath(path).suffix in allowed

        return FileChanges(
            added=[path for path in self.added if keep(path)],
            deleted=[path for path in self.deleted if keep(path)],
            modified=[path for path in self.modified if keep(path)],
            renamed={old: new for old, new in self.renamed.items() if keep(old) and keep(new)},
        )

    def is_empty(self) -> bool:
        return not (self.added or self.deleted or self.modified or self.renamed)


class GitChangeSource:
    """Reads file changes and blobs from a local git repository."""

    def __init__(self, repo_path: Path) -> None:
        """Initialize with a repository path.

        Args:
            repo_path: Path to the working tree or bare repository.
        """
        self.repo_path = Path(repo_path)
        self.repo = Repo(str(self.repo_path))

    def diff(self, before_commit: str, after_commit: str) -> FileChanges:
        """Compute file changes between two commits with rename detection.

        Args:
            before_commit: Revision of the before version
            after_commit: Revision of the after version

        Returns:
            FileChanges between the two trees.
        """
        before = self.repo.commit(before_commit)
        changes = FileChanges()
        for diff in before.diff(after_commit, M=True):
            if diff.new_file:
                changes.added.append(diff.b_path)
            elif diff.deleted_file:
                changes.deleted.append(diff.a_path)
            elif diff.renamed_file:
                changes.renamed[diff.rename_from] = diff.rename_to
            else:
                changes.modified.append(diff.b_path)
        return changes

    def commit_changes(self, commit: str) -> FileChanges:
        """Compute file changes introduced by a single commit.

        Args:
            commit: Commit hash (compared against its first parent)

        Returns:
            FileChanges of the commit.
        """
        for pydriller_commit in Repository(str(self.repo_path), single=commit).traverse_commits():
            return _changes_from_modified_files(pydriller_commit.modified_files)
        raise ValueError(f"Commit not found: {commit}")

    def iter_commit_changes(
        self, from_commit: str | None = None, to_commit: str | None = None
    ) -> Iterator[tuple[str, FileChanges]]:
        """Iterate the file changes of every commit in a range.

        Args:
            from_commit: First commit of the range, None for the first commit
            to_commit: Last commit of the range, None for HEAD

        Yields:
            Tuples of (commit hash, FileChanges).
        """
        repository = Repository(str(self.repo_path), from_commit=from_commit, to_commit=to_commit)
        for pydriller_commit in repository.traverse_commits():
            yield pydriller_commit.hash, _changes_from_modified_files(pydriller_commit.modified_files)

    def parent_of(self, commit: str) -> str | None:
        """Get the first parent of a commit, None for a root commit."""
        parents = self.repo.commit(commit).parents
        if not parents:
            return None
        return parents[0].hexsha

    def file_contents(self, commit: str, path: str) -> bytes | None:
        """Read a file at a commit.

        Args:
            commit: Revision to read from
            path: Repository-relative path

        Returns:
            File contents, or None if the file cannot be read.
        """
        try:
            blob = self.repo.commit(commit).tree / path
            return blob.data_stream.read()
        except (KeyError, BadName, GitCommandError, ValueError) as e:
            logger.warning(f"Cannot read {path} at {commit}: {e}")
            return None


def _changes_from_modified_files(modified_files) -> FileChanges:
    changes = FileChanges()
    for modified_file in modified_files:
        change_type = modified_file.change_type
        if change_type == ModificationType.ADD:
            changes.added.append(modified_file.new_path)
        elif change_type == ModificationType.DELETE:
            changes.deleted.append(modified_file.old_path)
        elif change_type == ModificationType.RENAME:
            changes.renamed[modified_file.old_path] = modified_file.new_path
        elif change_type == ModificationType.MODIFY:
            changes.modified.append(modified_file.new_path)
        else:
            logger.debug(f"Ignoring {change_type.name} change of {modified_file.filename}")
    return changes
