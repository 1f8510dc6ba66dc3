"""Pruning of textually identical entities before fuzzy matching.

Pruning walks a before tree and an after tree of the same (or a renamed)
file top-down and removes every pair whose declaration text is identical.
Removed children are archived onto their parent first, so structural
similarity can still count them later.
"""

from collections.abc import Callable
import logging

from entity_matcher.analysis.declaration_tree import DeclarationNode
from entity_matcher.analysis.matching.match_strategies import assign
from entity_matcher.analysis.matching.match_types import EntityPair, MatchPair
from entity_matcher.analysis.matching_constants import MatchingDefaults

logger = logging.getLogger(__name__)

Recorder = Callable[[DeclarationNode, DeclarationNode], None]


class StructuralContractError(Exception):
    """Two trees do not have the shape pruning expects."""


def prune_modified_file(
    match_pair: MatchPair,
    before_root: DeclarationNode,
    after_root: DeclarationNode,
    min_dice: float = MatchingDefaults.MIN_DICE,
) -> None:
    """Prune unchanged entities of a file modified in place.

    Identical pairs are recorded as unchanged. Members of a renamed container
    whose text is identical are recorded as matched, since only their
    container changed.

    Args:
        match_pair: Matching state to update
        before_root: Root of the file in the before version
        after_root: Root of the file in the after version
        min_dice: Minimum member overlap for a renamed container pair

    Raises:
        StructuralContractError: If the trees are inconsistent.
    """
    walker = _PruningWalker(match_pair, file_pair=None, min_dice=min_dice)
    walker.prune(before_root, after_root)


def prune_renamed_file(
    match_pair: MatchPair,
    before_root: DeclarationNode,
    after_root: DeclarationNode,
    file_pair: tuple[str, str],
) -> None:
    """Prune identical entities of a renamed file.

    The file identity changed, so identical pairs are recorded as matched
    rather than unchanged.

    Args:
        match_pair: Matching state to update
        before_root: Root of the file in the before version
        after_root: Root of the file in the after version
        file_pair: (old path, new path) of the rename

    Raises:
        StructuralContractError: If the trees are inconsistent.
    """
    walker = _PruningWalker(match_pair, file_pair=file_pair)
    walker.prune(before_root, after_root)


class _PruningWalker:
    def __init__(
        self,
        match_pair: MatchPair,
        file_pair: tuple[str, str] | None,
        min_dice: float = MatchingDefaults.MIN_DICE,
    ) -> None:
        self.match_pair = match_pair
        self.file_pair = file_pair
        self.min_dice = min_dice
        if file_pair is None:
            self.record: Recorder = match_pair.add_unchanged_entity
        else:
            self.record = match_pair.add_matched_entity

    def prune(self, before: DeclarationNode, after: DeclarationNode) -> bool:
        """Compare two nodes, recursing into children where text differs.

        Returns:
            True if both declarations are textually identical.
        """
        if before.text == after.text:
            if before.is_root() and after.is_root():
                self._prune_children(before, after)
            return True
        if before.has_children() and after.has_children():
            self._prune_children(before, after)
        return False

    def _prune_children(self, parent_before: DeclarationNode, parent_after: DeclarationNode) -> None:
        if not parent_before.has_children() or not parent_after.has_children():
            return

        pruned_before: list[DeclarationNode] = []
        pruned_after: list[DeclarationNode] = []
        for node_1 in parent_before.children:
            for node_2 in parent_after.children:
                if node_2 in pruned_after:
                    continue
                if not node_1.same_entity(node_2, self.file_pair) or not self.prune(node_1, node_2):
                    continue
                pruned_before.append(node_1)
                pruned_after.append(node_2)
                self._record_subtrees(node_1, node_2, self.record)
                break

        if self.file_pair is None:
            self._prune_renamed_containers(parent_before, parent_after, pruned_before, pruned_after)

        _remove_pruned(parent_before, pruned_before)
        _remove_pruned(parent_after, pruned_after)

    def _prune_renamed_containers(
        self,
        parent_before: DeclarationNode,
        parent_after: DeclarationNode,
        pruned_before: list[DeclarationNode],
        pruned_after: list[DeclarationNode],
    ) -> None:
        """Descend into leftover same-kind containers that look renamed.

        A pair of leftover internal nodes is considered when their members
        largely coincide by kind, name and parameters. Identical members of
        an assigned pair are recorded as matched and pruned.
        """
        leftover_before = [
            node
            for node in parent_before.children
            if node.is_internal() and node not in pruned_before and not _has_twin(node, parent_after)
        ]
        leftover_after = [
            node
            for node in parent_after.children
            if node.is_internal() and node not in pruned_after and not _has_twin(node, parent_before)
        ]

        proposals = []
        for node_1 in leftover_before:
            for node_2 in leftover_after:
                if node_1.kind != node_2.kind:
                    continue
                score = _member_overlap(node_1, node_2)
                if score >= self.min_dice:
                    proposals.append(EntityPair(node_1, node_2, score))

        for pair in assign(proposals):
            members_before: list[DeclarationNode] = []
            members_after: list[DeclarationNode] = []
            for member_1 in pair.before.children:
                for member_2 in pair.after.children:
                    if member_2 in members_after:
                        continue
                    if _same_member(member_1, member_2) and member_1.text == member_2.text:
                        members_before.append(member_1)
                        members_after.append(member_2)
                        self._record_subtrees(
                            member_1, member_2, self.match_pair.add_matched_entity
                        )
                        break
            if members_before:
                logger.debug(
                    f"Pruned {len(members_before)} members of renamed container "
                    f"{pair.before.entity} -> {pair.after.entity}"
                )
            _remove_pruned(pair.before, members_before)
            _remove_pruned(pair.after, members_after)

    def _record_subtrees(
        self, before: DeclarationNode, after: DeclarationNode, record: Recorder
    ) -> None:
        """Record an identical pair and pair up their subtrees positionally."""
        descendants_before = before.all_nodes()
        descendants_after = after.all_nodes()
        if len(descendants_before) != len(descendants_after):
            raise StructuralContractError(
                f"Identical declarations with different subtrees: {before!r} / {after!r}"
            )
        for node_1, node_2 in zip(descendants_before, descendants_after):
            if node_1.kind != node_2.kind:
                raise StructuralContractError(
                    f"Subtree kinds differ under identical declarations: {node_1!r} / {node_2!r}"
                )
        record(before, after)
        for node_1, node_2 in zip(descendants_before, descendants_after):
            record(node_1, node_2)


def _remove_pruned(parent: DeclarationNode, pruned: list[DeclarationNode]) -> None:
    if not pruned:
        return
    for node in pruned:
        if node.parent is not parent:
            raise StructuralContractError(f"Pruned node {node!r} has no parent {parent!r}")
    parent.archive_children()
    parent.remove_children(pruned)


def _has_twin(node: DeclarationNode, other_parent: DeclarationNode) -> bool:
    return any(node.same_entity(other) for other in other_parent.children)


def _same_member(node_1: DeclarationNode, node_2: DeclarationNode) -> bool:
    return (
        node_1.kind == node_2.kind
        and node_1.name == node_2.name
        and node_1.entity.parameter_signature == node_2.entity.parameter_signature
    )


def _member_overlap(node_1: DeclarationNode, node_2: DeclarationNode) -> float:
    total = len(node_1.children) + len(node_2.children)
    if total == 0:
        return 0.0
    common = sum(
        1
        for member_1 in node_1.children
        if any(_same_member(member_1, member_2) for member_2 in node_2.children)
    )
    return 2.0 * common / total
