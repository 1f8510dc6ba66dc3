"""Statement block matching inside resolved entity pairs.

Once entities are paired, the nested statement blocks of their bodies are
paired as well: identical blocks become unchanged, similar blocks of the
same type become matched, and the rest are reported as deleted or added.
BODY and SWITCH_CASE anchors only provide structure and are never reported.
"""

import logging

from entity_matcher.analysis.declaration_tree import DeclarationNode
from entity_matcher.analysis.matching.match_types import MatchPair
from entity_matcher.analysis.matching_constants import MatchingDefaults, StatementWeights
from entity_matcher.analysis.similarity import bigram_dice, tokenize
from entity_matcher.analysis.statement_block import ANCHOR_TYPES, StatementBlockNode

logger = logging.getLogger(__name__)


def _context_score(
    match_pair: MatchPair, block_1: StatementBlockNode, block_2: StatementBlockNode
) -> float:
    parent_1 = block_1.parent
    parent_2 = block_2.parent
    if parent_1 is None or parent_2 is None:
        return 0.0
    if parent_1.block_type in ANCHOR_TYPES and parent_2.block_type in ANCHOR_TYPES:
        return 1.0 if parent_1.expression == parent_2.expression else 0.0
    if match_pair.is_paired_statement(parent_1, parent_2):
        return 1.0
    return 0.0


def block_similarity(
    match_pair: MatchPair, block_1: StatementBlockNode, block_2: StatementBlockNode
) -> float:
    """Calculate similarity between two blocks of the same type.

    Args:
        match_pair: Current matching state, used for the parent context
        block_1: Block from the before version
        block_2: Block from the after version

    Returns:
        Similarity score (0.0-1.0), 0.0 for different block types.
    """
    if block_1.block_type != block_2.block_type:
        return 0.0

    if block_1.expression or block_2.expression:
        expression = bigram_dice(tokenize(block_1.expression), tokenize(block_2.expression))
    else:
        expression = 1.0
    text = bigram_dice(tokenize(block_1.text), tokenize(block_2.text))

    return (
        StatementWeights.EXPRESSION * expression
        + StatementWeights.TEXT * text
        + StatementWeights.CONTEXT * _context_score(match_pair, block_1, block_2)
    )


class StatementMatcher:
    """Pairs statement blocks of matched and unchanged entities."""

    def __init__(self, min_dice: float = MatchingDefaults.MIN_DICE) -> None:
        self.min_dice = min_dice

    def match(self, match_pair: MatchPair) -> None:
        """Match statement blocks for every resolved entity pair.

        Args:
            match_pair: Matching state holding the resolved entity pairs
        """
        for before, after in match_pair.unchanged_entities + match_pair.matched_entities:
            self._match_owners(match_pair, before, after)

        for node in match_pair.deleted_entities:
            if node.blocks is not None:
                match_pair.add_deleted_statements(node.blocks.reportable_blocks())
        for node in match_pair.added_entities:
            if node.blocks is not None:
                match_pair.add_added_statements(node.blocks.reportable_blocks())

        logger.info(
            f"Statement blocks: {len(match_pair.matched_statements)} matched, "
            f"{len(match_pair.unchanged_statements)} unchanged, "
            f"{len(match_pair.deleted_statements)} deleted, "
            f"{len(match_pair.added_statements)} added"
        )

    def _match_owners(
        self, match_pair: MatchPair, before: DeclarationNode, after: DeclarationNode
    ) -> None:
        if before.blocks is None and after.blocks is None:
            return
        if before.blocks is None:
            match_pair.add_added_statements(after.blocks.reportable_blocks())
            return
        if after.blocks is None:
            match_pair.add_deleted_statements(before.blocks.reportable_blocks())
            return

        blocks_before = before.blocks.reportable_blocks()
        blocks_after = after.blocks.reportable_blocks()

        if before.text == after.text and len(blocks_before) == len(blocks_after):
            for block_1, block_2 in zip(blocks_before, blocks_after):
                match_pair.add_unchanged_statement(block_1, block_2)
            return

        for block_1 in blocks_before:
            for block_2 in blocks_after:
                if block_2.matched:
                    continue
                if (
                    block_1.block_type == block_2.block_type
                    and block_1.expression == block_2.expression
                    and block_1.text == block_2.text
                ):
                    match_pair.add_unchanged_statement(block_1, block_2)
                    break

        remaining_before = [block for block in blocks_before if not block.matched]
        remaining_after = [block for block in blocks_after if not block.matched]

        proposals = []
        for block_1 in remaining_before:
            for block_2 in remaining_after:
                score = block_similarity(match_pair, block_1, block_2)
                if score >= self.min_dice:
                    proposals.append((score, block_1, block_2))
        proposals.sort(key=lambda proposal: (-proposal[0], proposal[1].sort_key, proposal[2].sort_key))

        for _, block_1, block_2 in proposals:
            if block_1.matched or block_2.matched:
                continue
            match_pair.add_matched_statement(block_1, block_2)

        match_pair.add_deleted_statements(block for block in remaining_before if not block.matched)
        match_pair.add_added_statements(block for block in remaining_after if not block.matched)
