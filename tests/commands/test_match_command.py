"""Tests for the match command."""

import json

from click.testing import CliRunner
import pandas as pd
import pytest
import yaml

from entity_matcher.cli import main
from entity_matcher.commands.match import parse_renames


def foo_class(method_name):
    return {
        "kind": "type",
        "name": "Foo",
        "container": "com.example",
        "header": "public class Foo",
        "children": [
            {
                "kind": "method",
                "name": method_name,
                "container": "com.example.Foo",
                "parameter_signature": ["int"],
                "header": f"public int {method_name}(int x)",
                "body": "{ if (x > 0) { return x + 1; } return 0; }",
                "type_text": "int",
                "parameters": [{"type": "int"}],
                "blocks": {
                    "construct": "method",
                    "children": [
                        {
                            "construct": "if",
                            "role": "then",
                            "condition": "x > 0",
                            "text": "{ return x + 1; }",
                        }
                    ],
                },
            }
        ],
    }


@pytest.fixture
def runner():
    """Create Click test runner."""
    return CliRunner()


@pytest.fixture
def snapshots(tmp_path):
    """Write before and after snapshots where foo(int) is renamed to bar(int)."""
    before = tmp_path / "before.json"
    after = tmp_path / "after.yaml"
    before.write_text(
        json.dumps(
            {"commit": "aaa1111", "files": [{"path": "src/Foo.java", "entities": [foo_class("foo")]}]}
        )
    )
    after.write_text(
        yaml.safe_dump(
            {"commit": "bbb2222", "files": [{"path": "src/Foo.java", "entities": [foo_class("bar")]}]}
        )
    )
    return before, after


class TestParseRenames:
    """Test OLD=NEW parsing."""

    def test_valid(self):
        """Test renames are parsed into a mapping."""
        assert parse_renames(("a/Old.java=a/New.java",)) == {"a/Old.java": "a/New.java"}

    @pytest.mark.parametrize("rename", ["Old.java", "=New.java", "Old.java="])
    def test_invalid(self, rename):
        """Test malformed renames are rejected."""
        with pytest.raises(ValueError):
            parse_renames((rename,))


class TestMatchCommand:
    """Test the match command end to end."""

    def test_csv_output(self, runner, snapshots, tmp_path):
        """Test CSV report with the renamed method."""
        before, after = snapshots
        output_dir = tmp_path / "out"

        result = runner.invoke(
            main,
            ["match", "--before", str(before), "--after", str(after), "-o", str(output_dir)],
        )

        assert result.exit_code == 0, result.output
        assert "Matching Summary" in result.output
        assert "Results saved to:" in result.output

        df = pd.read_csv(output_dir / "entity_matches.csv")
        matched = df[(df["level"] == "entity") & df["is_matched"]]
        assert ("foo", "bar") in set(zip(matched["prev_name"], matched["curr_name"]))
        statements = df[df["level"] == "statement"]
        assert len(statements) == 1
        assert bool(statements.iloc[0]["is_unchanged"])

    def test_json_output(self, runner, snapshots, tmp_path):
        """Test JSON report keyed by repository and commit."""
        before, after = snapshots
        output_dir = tmp_path / "out"

        result = runner.invoke(
            main,
            [
                "match",
                "--before",
                str(before),
                "--after",
                str(after),
                "-o",
                str(output_dir),
                "--format",
                "json",
                "--repository",
                "owner/repo",
            ],
        )

        assert result.exit_code == 0, result.output
        with open(output_dir / "entity_matches.json") as f:
            document = json.load(f)
        entry = document["results"][0]
        assert entry["repository"] == "owner/repo"
        assert entry["sha1"] == "bbb2222"
        names = {
            (m["leftSideLocation"]["name"], m["rightSideLocation"]["name"])
            for m in entry["matchedEntities"]
        }
        assert ("foo", "bar") in names

    def test_suffix_filter(self, runner, snapshots, tmp_path):
        """Test files without a wanted suffix are skipped."""
        before, after = snapshots
        output_dir = tmp_path / "out"

        result = runner.invoke(
            main,
            [
                "match",
                "--before",
                str(before),
                "--after",
                str(after),
                "-o",
                str(output_dir),
                "--suffix",
                ".kt",
            ],
        )

        assert result.exit_code == 0, result.output
        assert pd.read_csv(output_dir / "entity_matches.csv").empty

    def test_invalid_snapshot(self, runner, snapshots, tmp_path):
        """Test an invalid snapshot aborts with a message."""
        before, _ = snapshots
        broken = tmp_path / "broken.json"
        broken.write_text(
            json.dumps({"files": [{"path": "a.java", "entities": [{"kind": "struct"}]}]})
        )

        result = runner.invoke(
            main, ["match", "--before", str(before), "--after", str(broken), "-o", str(tmp_path)]
        )

        assert result.exit_code == 1
        assert "Invalid snapshot" in result.output

    def test_bad_rename(self, runner, snapshots, tmp_path):
        """Test a malformed rename aborts with a message."""
        before, after = snapshots

        result = runner.invoke(
            main,
            [
                "match",
                "--before",
                str(before),
                "--after",
                str(after),
                "--rename",
                "nonsense",
                "-o",
                str(tmp_path),
            ],
        )

        assert result.exit_code == 1
        assert "OLD=NEW" in result.output

    def test_repo_requires_commit(self, runner, snapshots, tmp_path):
        """Test --repo without --commit is rejected."""
        before, after = snapshots

        result = runner.invoke(
            main,
            ["match", "--before", str(before), "--after", str(after), "--repo", str(tmp_path)],
        )

        assert result.exit_code == 1
        assert "--commit" in result.output

    def test_config_output_dir(self, runner, snapshots, tmp_path):
        """Test the output directory is read from the configuration file."""
        before, after = snapshots
        config = tmp_path / "config.json"
        config.write_text(json.dumps({"output": {"output_dir": str(tmp_path / "configured")}}))

        result = runner.invoke(
            main, ["--config", str(config), "match", "--before", str(before), "--after", str(after)]
        )

        assert result.exit_code == 0, result.output
        assert (tmp_path / "configured" / "entity_matches.csv").exists()
