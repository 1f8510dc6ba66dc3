"""Match report generation.

Turns a MatchPair into a flat pandas DataFrame (one row per pair or
unpaired entity, with prev_/curr_ columns and boolean flags) or into the
entity-matching JSON document keyed by repository, commit and URL.
"""

from dataclasses import dataclass, field
import json
from pathlib import Path

import pandas as pd

from entity_matcher.analysis.declaration_tree import DeclarationNode
from entity_matcher.analysis.entity import Location
from entity_matcher.analysis.matching.match_types import MatchPair
from entity_matcher.analysis.statement_block import StatementBlockNode
from entity_matcher.const.column import ColumnNames

ENTITY_LEVEL = "entity"
STATEMENT_LEVEL = "statement"

# Base field names and their corresponding prev_/curr_ column names
FIELD_MAPPING = [
    (ColumnNames.FILE_PATH, ColumnNames.PREV_FILE_PATH, ColumnNames.CURR_FILE_PATH),
    (ColumnNames.KIND, ColumnNames.PREV_KIND, ColumnNames.CURR_KIND),
    (ColumnNames.CONTAINER, ColumnNames.PREV_CONTAINER, ColumnNames.CURR_CONTAINER),
    (ColumnNames.NAME, ColumnNames.PREV_NAME, ColumnNames.CURR_NAME),
    (ColumnNames.PARAMETERS, ColumnNames.PREV_PARAMETERS, ColumnNames.CURR_PARAMETERS),
    (ColumnNames.START_LINE, ColumnNames.PREV_START_LINE, ColumnNames.CURR_START_LINE),
    (ColumnNames.END_LINE, ColumnNames.PREV_END_LINE, ColumnNames.CURR_END_LINE),
]

COLUMNS = [
    ColumnNames.LEVEL.value,
    *[column.value for _, prev, curr in FIELD_MAPPING for column in (prev, curr)],
    ColumnNames.IS_MATCHED.value,
    ColumnNames.IS_UNCHANGED.value,
    ColumnNames.IS_DELETED.value,
    ColumnNames.IS_ADDED.value,
]


def _node_location(node: DeclarationNode) -> Location:
    if node.entity is not None and node.entity.location is not None:
        return node.entity.location
    return Location(node.file_path)


def _block_location(block: StatementBlockNode) -> Location:
    return block.location if block.location is not None else Location("")


def _entity_fields(node: DeclarationNode) -> dict:
    location = _node_location(node)
    return {
        ColumnNames.FILE_PATH.value: location.file_path,
        ColumnNames.KIND.value: node.kind.value,
        ColumnNames.CONTAINER.value: node.namespace,
        ColumnNames.NAME.value: node.name,
        ColumnNames.PARAMETERS.value: node.entity.params,
        ColumnNames.START_LINE.value: location.start_line,
        ColumnNames.END_LINE.value: location.end_line,
    }


def _statement_fields(block: StatementBlockNode) -> dict:
    location = _block_location(block)
    return {
        ColumnNames.FILE_PATH.value: location.file_path,
        ColumnNames.KIND.value: block.block_type.value,
        ColumnNames.CONTAINER.value: block.method,
        ColumnNames.NAME.value: block.expression,
        ColumnNames.PARAMETERS.value: None,
        ColumnNames.START_LINE.value: location.start_line,
        ColumnNames.END_LINE.value: location.end_line,
    }


def _format_row(
    level: str,
    source: dict | None = None,
    target: dict | None = None,
    is_matched: bool = False,
    is_unchanged: bool = False,
    is_deleted: bool = False,
    is_added: bool = False,
) -> dict:
    """Format one report row with prev_*, curr_* fields and boolean flags.

    Args:
        level: ENTITY_LEVEL or STATEMENT_LEVEL
        source: Fields of the before side, or None for added rows
        target: Fields of the after side, or None for deleted rows
        is_matched: True if this is a matched pair
        is_unchanged: True if this is an unchanged pair
        is_deleted: True if this row was deleted
        is_added: True if this row was added

    Returns:
        Row dictionary.
    """
    row = {
        ColumnNames.LEVEL.value: level,
        ColumnNames.IS_MATCHED.value: is_matched,
        ColumnNames.IS_UNCHANGED.value: is_unchanged,
        ColumnNames.IS_DELETED.value: is_deleted,
        ColumnNames.IS_ADDED.value: is_added,
    }
    for base, prev, curr in FIELD_MAPPING:
        row[prev.value] = source[base.value] if source else None
        row[curr.value] = target[base.value] if target else None
    return row


def match_pair_to_dataframe(match_pair: MatchPair, include_unchanged: bool = True) -> pd.DataFrame:
    """Flatten a MatchPair into report rows.

    Args:
        match_pair: Result of a matching run
        include_unchanged: Also emit rows for unchanged pairs

    Returns:
        DataFrame with the COLUMNS columns, entity rows before statement rows.
    """
    rows = []
    for before, after in match_pair.matched_entities:
        rows.append(
            _format_row(ENTITY_LEVEL, _entity_fields(before), _entity_fields(after), is_matched=True)
        )
    if include_unchanged:
        for before, after in match_pair.unchanged_entities:
            rows.append(
                _format_row(
                    ENTITY_LEVEL, _entity_fields(before), _entity_fields(after), is_unchanged=True
                )
            )
    for node in match_pair.deleted_entities:
        rows.append(_format_row(ENTITY_LEVEL, source=_entity_fields(node), is_deleted=True))
    for node in match_pair.added_entities:
        rows.append(_format_row(ENTITY_LEVEL, target=_entity_fields(node), is_added=True))

    for block_1, block_2 in match_pair.matched_statements:
        rows.append(
            _format_row(
                STATEMENT_LEVEL,
                _statement_fields(block_1),
                _statement_fields(block_2),
                is_matched=True,
            )
        )
    if include_unchanged:
        for block_1, block_2 in match_pair.unchanged_statements:
            rows.append(
                _format_row(
                    STATEMENT_LEVEL,
                    _statement_fields(block_1),
                    _statement_fields(block_2),
                    is_unchanged=True,
                )
            )
    for block in match_pair.deleted_statements:
        rows.append(_format_row(STATEMENT_LEVEL, source=_statement_fields(block), is_deleted=True))
    for block in match_pair.added_statements:
        rows.append(_format_row(STATEMENT_LEVEL, target=_statement_fields(block), is_added=True))

    return pd.DataFrame(rows, columns=COLUMNS)


def summarize(match_pair: MatchPair) -> dict[str, dict[str, int]]:
    """Count pairs and unpaired elements per level.

    Returns:
        {"entity": {...}, "statement": {...}} with matched, unchanged,
        deleted and added counts.
    """
    return {
        ENTITY_LEVEL: {
            "matched": len(match_pair.matched_entities),
            "unchanged": len(match_pair.unchanged_entities),
            "deleted": len(match_pair.deleted_entities),
            "added": len(match_pair.added_entities),
        },
        STATEMENT_LEVEL: {
            "matched": len(match_pair.matched_statements),
            "unchanged": len(match_pair.unchanged_statements),
            "deleted": len(match_pair.deleted_statements),
            "added": len(match_pair.added_statements),
        },
    }


def _entity_side(node: DeclarationNode) -> dict:
    side = _node_location(node).to_dict()
    side["container"] = node.namespace
    side["type"] = node.kind.value
    side["name"] = node.name
    return side


def _statement_side(block: StatementBlockNode) -> dict:
    side = _block_location(block).to_dict()
    side["method"] = block.method
    side["type"] = block.block_type.value
    side["expression"] = block.expression
    return side


@dataclass
class EntityMatchingDocument:
    """Entity-matching JSON document holding one result per commit."""

    results: list[dict] = field(default_factory=list)

    def add_result(self, repository: str, sha1: str, url: str, match_pair: MatchPair) -> None:
        """Append the matched entities and statements of one commit.

        Args:
            repository: Repository identifier
            sha1: Commit hash
            url: Commit URL
            match_pair: Result of matching the commit
        """
        matched = [
            {"leftSideLocation": _entity_side(before), "rightSideLocation": _entity_side(after)}
            for before, after in match_pair.matched_entities
        ]
        matched.extend(
            {"leftSideLocation": _statement_side(before), "rightSideLocation": _statement_side(after)}
            for before, after in match_pair.matched_statements
        )
        self.results.append(
            {"repository": repository, "sha1": sha1, "url": url, "matchedEntities": matched}
        )

    def to_dict(self) -> dict:
        return {"results": self.results}

    def save(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)
