"""Tests for file changes read from git."""

import shutil

from git import Actor, Repo
import pytest

from entity_matcher.core.revision_manager import FileChanges, GitChangeSource

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")

AUTHOR = Actor("Test User", "test@example.com")

UTIL_SOURCE = "\n".join(
    [
        "package com.example;",
        "",
        "public class Util {",
        "    public static int twice(int x) {",
        "        return 2 * x;",
        "    }",
        "}",
        "",
    ]
)


class TestFileChanges:
    """Test FileChanges helpers."""

    @pytest.fixture
    def changes(self):
        """Create changes covering every change type."""
        return FileChanges(
            added=["src/New.java", "README.md"],
            deleted=["src/Gone.java"],
            modified=["src/Foo.java", "build.gradle"],
            renamed={"src/Old.java": "src/Renamed.java", "docs/a.txt": "docs/b.txt"},
        )

    def test_before_and_after_paths(self, changes):
        """Test the paths taking part on each side."""
        assert changes.before_paths() == [
            "src/Gone.java",
            "src/Foo.java",
            "build.gradle",
            "src/Old.java",
            "docs/a.txt",
        ]
        assert changes.after_paths() == [
            "src/New.java",
            "README.md",
            "src/Foo.java",
            "build.gradle",
            "src/Renamed.java",
            "docs/b.txt",
        ]

    def test_filter_suffixes(self, changes):
        """Test only files with a wanted suffix remain."""
        filtered = changes.filter_suffixes([".java"])

        assert filtered.added == ["src/New.java"]
        assert filtered.modified == ["src/Foo.java"]
        assert filtered.renamed == {"src/Old.java": "src/Renamed.java"}

    def test_no_suffixes_keeps_everything(self, changes):
        """Test an empty suffix list is no filter."""
        assert changes.filter_suffixes([]) is changes

    def test_is_empty(self, changes):
        """Test emptiness."""
        assert FileChanges().is_empty()
        assert not changes.is_empty()


@requires_git
class TestGitChangeSource:
    """Test reading changes from a real repository."""

    @pytest.fixture
    def repo(self, tmp_path):
        """Create a repository with an initial commit and a change commit.

        The second commit modifies Foo.java, renames Util.java to Helper.java,
        deletes Gone.java and adds Fresh.java.
        """
        repo = Repo.init(tmp_path)
        src = tmp_path / "src"
        src.mkdir()
        (src / "Foo.java").write_text("class Foo { int a; }\n")
        (src / "Util.java").write_text(UTIL_SOURCE)
        (src / "Gone.java").write_text("class Gone {}\n")
        repo.index.add(["src/Foo.java", "src/Util.java", "src/Gone.java"])
        first = repo.index.commit("Initial commit", author=AUTHOR, committer=AUTHOR)

        (src / "Foo.java").write_text("class Foo { int a; int b; }\n")
        repo.git.mv("src/Util.java", "src/Helper.java")
        repo.index.remove(["src/Gone.java"], working_tree=True)
        (src / "Fresh.java").write_text("class Fresh {}\n")
        repo.git.add(all=True)
        second = repo.index.commit("Change files", author=AUTHOR, committer=AUTHOR)
        return tmp_path, first.hexsha, second.hexsha

    def test_diff(self, repo):
        """Test changes between two commits with rename detection."""
        path, first, second = repo
        changes = GitChangeSource(path).diff(first, second)

        assert changes.modified == ["src/Foo.java"]
        assert changes.renamed == {"src/Util.java": "src/Helper.java"}
        assert changes.deleted == ["src/Gone.java"]
        assert changes.added == ["src/Fresh.java"]

    def test_commit_changes(self, repo):
        """Test changes of a single commit against its parent."""
        path, _, second = repo
        changes = GitChangeSource(path).commit_changes(second)

        assert changes.modified == ["src/Foo.java"]
        assert changes.renamed == {"src/Util.java": "src/Helper.java"}
        assert changes.deleted == ["src/Gone.java"]
        assert changes.added == ["src/Fresh.java"]

    def test_iter_commit_changes(self, repo):
        """Test iterating every commit of the history."""
        path, first, second = repo
        commits = list(GitChangeSource(path).iter_commit_changes())

        assert [commit for commit, _ in commits] == [first, second]
        assert sorted(commits[0][1].added) == ["src/Foo.java", "src/Gone.java", "src/Util.java"]

    def test_parent_of(self, repo):
        """Test first-parent lookup."""
        path, first, second = repo
        source = GitChangeSource(path)

        assert source.parent_of(second) == first
        assert source.parent_of(first) is None

    def test_file_contents(self, repo):
        """Test reading a blob at a commit."""
        path, first, second = repo
        source = GitChangeSource(path)

        assert source.file_contents(first, "src/Util.java") == UTIL_SOURCE.encode()
        assert source.file_contents(second, "src/Util.java") is None
