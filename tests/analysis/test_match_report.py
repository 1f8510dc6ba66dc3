"""Tests for match report generation."""

import json

import pandas as pd
import pytest

from entity_matcher.analysis.declaration_tree import DeclarationNode, NodeVariant
from entity_matcher.analysis.entity import Declaration, EntityDescriptor, EntityKind, Location
from entity_matcher.analysis.matching.match_types import MatchPair
from entity_matcher.analysis.report_generator import (
    COLUMNS,
    ENTITY_LEVEL,
    STATEMENT_LEVEL,
    EntityMatchingDocument,
    match_pair_to_dataframe,
    summarize,
)
from entity_matcher.analysis.statement_block import BlockType, StatementBlockNode
from entity_matcher.const.column import ColumnNames


def make_method(name, path, line, params=()):
    return DeclarationNode(
        EntityDescriptor(
            EntityKind.METHOD,
            name,
            "com.example.Foo",
            tuple(params),
            Location(path, line, line + 2, 5, 6),
        ),
        Declaration(text=f"void {name}() {{}}"),
        NodeVariant.LEAF,
        path,
    )


@pytest.fixture
def match_pair():
    """Create a result with one pair per relation and one matched block."""
    match_pair = MatchPair()
    match_pair.add_matched_entity(
        make_method("foo", "src/Foo.java", 3, ["int"]), make_method("bar", "src/Foo.java", 3, ["int"])
    )
    match_pair.add_unchanged_entity(
        make_method("keep", "src/Foo.java", 8), make_method("keep", "src/Foo.java", 8)
    )
    match_pair.add_deleted_entities([make_method("gone", "src/Foo.java", 12)])
    match_pair.add_added_entities([make_method("fresh", "src/Foo.java", 12)])

    block_1 = StatementBlockNode(
        BlockType.IF, "if(x > 0)", "{ a(); }", "com.example.Foo.foo(int)", Location("src/Foo.java", 4, 4)
    )
    block_2 = StatementBlockNode(
        BlockType.IF, "if(x > 1)", "{ a(); }", "com.example.Foo.bar(int)", Location("src/Foo.java", 4, 4)
    )
    match_pair.add_matched_statement(block_1, block_2)
    match_pair.add_added_statements(
        [StatementBlockNode(BlockType.WHILE, "while(busy)", "{}", "com.example.Foo.bar(int)")]
    )
    return match_pair


class TestMatchPairToDataFrame:
    """Test flattening a result into rows."""

    def test_columns(self, match_pair):
        """Test the column order."""
        df = match_pair_to_dataframe(match_pair)

        assert list(df.columns) == COLUMNS

    def test_row_per_element(self, match_pair):
        """Test entity rows come before statement rows."""
        df = match_pair_to_dataframe(match_pair)

        assert list(df[ColumnNames.LEVEL.value]) == [ENTITY_LEVEL] * 4 + [STATEMENT_LEVEL] * 2

    def test_matched_row(self, match_pair):
        """Test both sides of a matched pair."""
        df = match_pair_to_dataframe(match_pair)
        row = df.iloc[0]

        assert row[ColumnNames.PREV_NAME.value] == "foo"
        assert row[ColumnNames.CURR_NAME.value] == "bar"
        assert row[ColumnNames.PREV_KIND.value] == "method"
        assert row[ColumnNames.PREV_PARAMETERS.value] == "int"
        assert row[ColumnNames.PREV_START_LINE.value] == 3
        assert bool(row[ColumnNames.IS_MATCHED.value])
        assert not bool(row[ColumnNames.IS_UNCHANGED.value])

    def test_one_sided_rows(self, match_pair):
        """Test deleted rows have no after side and added rows no before side."""
        df = match_pair_to_dataframe(match_pair)
        deleted = df[df[ColumnNames.IS_DELETED.value]].iloc[0]
        added = df[
            df[ColumnNames.IS_ADDED.value] & (df[ColumnNames.LEVEL.value] == ENTITY_LEVEL)
        ].iloc[0]

        assert deleted[ColumnNames.PREV_NAME.value] == "gone"
        assert pd.isna(deleted[ColumnNames.CURR_NAME.value])
        assert added[ColumnNames.CURR_NAME.value] == "fresh"
        assert pd.isna(added[ColumnNames.PREV_NAME.value])

    def test_statement_row(self, match_pair):
        """Test statement rows carry block type, method and expression."""
        df = match_pair_to_dataframe(match_pair)
        row = df[df[ColumnNames.LEVEL.value] == STATEMENT_LEVEL].iloc[0]

        assert row[ColumnNames.PREV_KIND.value] == "if"
        assert row[ColumnNames.PREV_CONTAINER.value] == "com.example.Foo.foo(int)"
        assert row[ColumnNames.CURR_NAME.value] == "if(x > 1)"

    def test_exclude_unchanged(self, match_pair):
        """Test unchanged rows can be left out."""
        df = match_pair_to_dataframe(match_pair, include_unchanged=False)

        assert not df[ColumnNames.IS_UNCHANGED.value].any()
        assert len(df) == 5

    def test_empty_result(self):
        """Test an empty result keeps the columns."""
        df = match_pair_to_dataframe(MatchPair())

        assert df.empty
        assert list(df.columns) == COLUMNS


class TestSummarize:
    """Test result counts."""

    def test_counts(self, match_pair):
        """Test counts per level."""
        assert summarize(match_pair) == {
            "entity": {"matched": 1, "unchanged": 1, "deleted": 1, "added": 1},
            "statement": {"matched": 1, "unchanged": 0, "deleted": 0, "added": 1},
        }


class TestEntityMatchingDocument:
    """Test the entity-matching JSON document."""

    def test_add_result(self, match_pair):
        """Test matched entities and statements are listed per commit."""
        document = EntityMatchingDocument()
        document.add_result("owner/repo", "abc1234", "https://example.com/c/abc1234", match_pair)

        result = document.to_dict()["results"][0]
        assert result["repository"] == "owner/repo"
        assert result["sha1"] == "abc1234"
        assert len(result["matchedEntities"]) == 2

        entity = result["matchedEntities"][0]
        assert entity["leftSideLocation"] == {
            "filePath": "src/Foo.java",
            "startLine": 3,
            "endLine": 5,
            "startColumn": 5,
            "endColumn": 6,
            "container": "com.example.Foo",
            "type": "method",
            "name": "foo",
        }
        assert entity["rightSideLocation"]["name"] == "bar"

        statement = result["matchedEntities"][1]
        assert statement["leftSideLocation"]["type"] == "if"
        assert statement["rightSideLocation"]["expression"] == "if(x > 1)"
        assert statement["rightSideLocation"]["method"] == "com.example.Foo.bar(int)"

    def test_save(self, tmp_path, match_pair):
        """Test writing the document as JSON."""
        document = EntityMatchingDocument()
        document.add_result("owner/repo", "abc1234", "", match_pair)
        path = tmp_path / "out" / "entity_matches.json"

        document.save(path)

        with open(path) as f:
            assert json.load(f) == document.to_dict()
