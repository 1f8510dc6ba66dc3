"""Matching phase implementations for the entity matching pipeline.

This module provides the phases that run after pruning:
- Exact signature matching (descriptor equality plus declaration checks)
- Dice matching per file and over the global deleted/added pools
- Fine-matching fixpoint over candidates and unresolved entities
- Heuristic fallback matching by name and by Dice
- Final filtering of textually identical matched pairs

Every phase that pairs entities goes through assign(), the one greedy
highest-score-first assignment.
"""

from collections.abc import Callable, Iterable
import logging

from entity_matcher.analysis.declaration_tree import DeclarationNode, NodeVariant
from entity_matcher.analysis.entity import TYPE_DECLARATION_KINDS, EntityKind
from entity_matcher.analysis.matching.match_types import EntityPair, MatchPair
from entity_matcher.analysis.matching_constants import (
    SIGNATURE_FREE_KINDS,
    MatchingDefaults,
)
from entity_matcher.analysis.similarity import (
    calculate_similarity,
    internal_dice,
    leaf_dice,
)

logger = logging.getLogger(__name__)

Scorer = Callable[[MatchPair, DeclarationNode, DeclarationNode], float]


def assign(pairs: Iterable[EntityPair]) -> list[EntityPair]:
    """Greedy one-to-one assignment over scored pairs.

    Pairs are sorted by descending score, then by the source position of the
    before node and of the after node. A pair is taken when neither node has
    been claimed by an earlier pair.

    Args:
        pairs: Scored proposals

    Returns:
        Selected pairs in selection order.
    """
    claimed_before: set[DeclarationNode] = set()
    claimed_after: set[DeclarationNode] = set()
    selected = []
    for pair in sorted(pairs, key=lambda pair: pair.rank_key):
        if pair.before in claimed_before or pair.after in claimed_after:
            continue
        claimed_before.add(pair.before)
        claimed_after.add(pair.after)
        selected.append(pair)
    return selected


def _score_leaves(match_pair: MatchPair, node_1: DeclarationNode, node_2: DeclarationNode) -> float:
    return leaf_dice(node_1, node_2, match_pair)


def _score_by_variant(
    match_pair: MatchPair, node_1: DeclarationNode, node_2: DeclarationNode
) -> float:
    """Leaf or internal score for same-variant nodes, 0.0 across variants."""
    if node_1.variant != node_2.variant:
        return 0.0
    if node_1.variant == NodeVariant.LEAF:
        return leaf_dice(node_1, node_2, match_pair)
    if node_1.variant == NodeVariant.INTERNAL:
        return internal_dice(match_pair, node_1, node_2)
    return 0.0


# ==================== Exact signature matching ====================


def _signatures_agree(node_1: DeclarationNode, node_2: DeclarationNode) -> bool:
    """Check the declaration-level conditions for an exact signature match.

    Both nodes must already describe the same entity.
    """
    kind = node_1.kind
    if kind in SIGNATURE_FREE_KINDS:
        return True

    declaration_1 = node_1.declaration
    declaration_2 = node_2.declaration
    if kind in (EntityKind.FIELD, EntityKind.ANNOTATION_MEMBER):
        return declaration_1.type_text == declaration_2.type_text
    if kind == EntityKind.METHOD:
        if declaration_1.parameter_list() != declaration_2.parameter_list():
            return False
        if declaration_1.type_parameter_list() != declaration_2.type_parameter_list():
            return False
        # Constructors declare no return type on either side
        return declaration_1.type_text == declaration_2.type_text
    return False


def match_by_signature(
    match_pair: MatchPair, before_root: DeclarationNode, after_root: DeclarationNode
) -> int:
    """Match same-entity pairs of a modified file whose signatures agree.

    The first satisfying after node wins for each before node. Both nodes
    are flagged as matched so later Dice matching skips them.

    Args:
        match_pair: Matching state to update
        before_root: Root of the file in the before version
        after_root: Root of the file in the after version

    Returns:
        Number of pairs matched.
    """
    if not before_root.has_children() or not after_root.has_children():
        return 0

    nodes_after = [node for node in after_root.all_nodes() if _is_free(match_pair, node)]
    matched = 0
    for node_1 in before_root.all_nodes():
        if not _is_free(match_pair, node_1):
            continue
        for node_2 in nodes_after:
            if node_2.matched or not node_1.same_entity(node_2):
                continue
            if not _signatures_agree(node_1, node_2):
                continue
            node_1.matched = True
            node_2.matched = True
            match_pair.add_matched_entity(node_1, node_2)
            matched += 1
            break
    return matched


def _is_free(match_pair: MatchPair, node: DeclarationNode) -> bool:
    return not node.matched and match_pair.counterpart(node) is None


# ==================== Dice matching ====================


def _propose(
    match_pair: MatchPair,
    nodes_before: list[DeclarationNode],
    nodes_after: list[DeclarationNode],
    scorer: Scorer,
    min_dice: float,
) -> list[EntityPair]:
    proposals = []
    for node_1 in nodes_before:
        for node_2 in nodes_after:
            if node_1.kind != node_2.kind:
                continue
            score = scorer(match_pair, node_1, node_2)
            if score < min_dice:
                continue
            proposals.append(EntityPair(node_1, node_2, score))
    return proposals


def _add_candidates(
    match_pair: MatchPair,
    nodes_before: list[DeclarationNode],
    nodes_after: list[DeclarationNode],
    scorer: Scorer,
    min_dice: float,
) -> int:
    proposals = _propose(match_pair, nodes_before, nodes_after, scorer, min_dice)
    selected = assign(proposals)
    for pair in selected:
        match_pair.add_candidate_entity(pair.before, pair.after)
    return len(selected)


def match_file_by_dice(
    match_pair: MatchPair,
    before_root: DeclarationNode,
    after_root: DeclarationNode,
    min_dice: float = MatchingDefaults.MIN_DICE,
) -> int:
    """Propose candidates between the leftover nodes of one file pair.

    Leaves are scored against leaves, then internal nodes against internal
    nodes, so container scores can see the leaf candidates. Unclaimed nodes
    go to deleted and added.

    Args:
        match_pair: Matching state to update
        before_root: Root of the file in the before version
        after_root: Root of the file in the after version
        min_dice: Minimum score for a candidate

    Returns:
        Number of candidates added.
    """
    candidates = _add_candidates(
        match_pair,
        _free_nodes(match_pair, before_root.leaf_nodes()),
        _free_nodes(match_pair, after_root.leaf_nodes()),
        _score_leaves,
        min_dice,
    )
    candidates += _add_candidates(
        match_pair,
        _free_nodes(match_pair, before_root.internal_nodes()),
        _free_nodes(match_pair, after_root.internal_nodes()),
        internal_dice,
        min_dice,
    )
    match_pair.add_deleted_entities(before_root.unmatched_nodes())
    match_pair.add_added_entities(after_root.unmatched_nodes())
    return candidates


def match_pools_by_dice(match_pair: MatchPair, min_dice: float = MatchingDefaults.MIN_DICE) -> int:
    """Propose candidates across files from the deleted and added pools.

    Catches entities moved between files. Claimed nodes leave the pools.

    Args:
        match_pair: Matching state to update
        min_dice: Minimum score for a candidate

    Returns:
        Number of candidates added.
    """
    deleted = match_pair.deleted_entities
    added = match_pair.added_entities
    candidates = _add_candidates(
        match_pair,
        [node for node in deleted if node.is_leaf()],
        [node for node in added if node.is_leaf()],
        _score_leaves,
        min_dice,
    )
    candidates += _add_candidates(
        match_pair,
        [node for node in deleted if node.is_internal()],
        [node for node in added if node.is_internal()],
        internal_dice,
        min_dice,
    )
    match_pair.remove_resolved_from_pools()
    return candidates


def _free_nodes(match_pair: MatchPair, nodes: list[DeclarationNode]) -> list[DeclarationNode]:
    return [node for node in nodes if match_pair.counterpart(node) is None]


# ==================== Fine matching ====================


def fine_match(
    match_pair: MatchPair,
    min_dice: float = MatchingDefaults.MIN_DICE,
    max_iterations: int = MatchingDefaults.MAX_FINE_ITERATIONS,
) -> int:
    """Refine candidates until the assignment stops changing.

    Each iteration re-scores (candidate left + deleted) x (candidate right +
    added) with the combined similarity and re-assigns greedily. The loop
    stops when the assignment equals the current candidates or after
    max_iterations. Surviving candidates are then promoted to matched.

    Args:
        match_pair: Matching state to update
        min_dice: Minimum score for a candidate
        max_iterations: Upper bound on iterations

    Returns:
        Number of iterations executed.
    """
    iterations = 0
    while iterations < max_iterations:
        iterations += 1
        nodes_before = match_pair.candidate_left + match_pair.deleted_entities
        nodes_after = match_pair.candidate_right + match_pair.added_entities

        proposals = []
        for node_1 in nodes_before:
            for node_2 in nodes_after:
                score = calculate_similarity(match_pair, node_1, node_2)
                if score < min_dice:
                    continue
                proposals.append(EntityPair(node_1, node_2, score))
        selected = [(pair.before, pair.after) for pair in assign(proposals)]

        if set(selected) == set(match_pair.candidate_entities):
            logger.debug(f"Candidates stable after {iterations} fine-matching iterations")
            break

        claimed = {node for pair in selected for node in pair}
        match_pair.set_candidate_entities(selected)
        match_pair.update_deleted_entities(node for node in nodes_before if node not in claimed)
        match_pair.update_added_entities(node for node in nodes_after if node not in claimed)
    else:
        logger.debug(f"Fine matching stopped at the cap of {max_iterations} iterations")

    match_pair.promote_candidates()
    return iterations


# ==================== Heuristic matching ====================


def _enum_unit_score(
    match_pair: MatchPair, enum_1: DeclarationNode, enum_2: DeclarationNode
) -> int:
    """Score a same-named enum pair by its resolved constants.

    Every non-constant member must be resolved to a member of the other
    enum, and at least one constant pair must be resolved.

    Returns:
        Number of resolved constant pairs, 0 when the pair does not qualify.
    """
    children_1 = enum_1.archived_children()
    children_2 = enum_2.archived_children()
    members_1 = [node for node in children_1 if node.kind != EntityKind.ENUM_CONSTANT]
    members_2 = [node for node in children_2 if node.kind != EntityKind.ENUM_CONSTANT]
    if not members_1 or len(members_1) != len(members_2):
        return 0

    targets = set(members_2)
    if any(match_pair.counterpart(member) not in targets for member in members_1):
        return 0

    constants_2 = {node for node in children_2 if node.kind == EntityKind.ENUM_CONSTANT}
    return sum(
        1
        for node in children_1
        if node.kind == EntityKind.ENUM_CONSTANT and match_pair.counterpart(node) in constants_2
    )


def _assign_matched(match_pair: MatchPair, proposals: list[EntityPair]) -> int:
    selected = assign(proposals)
    for pair in selected:
        match_pair.add_matched_entity(pair.before, pair.after)
    match_pair.remove_resolved_from_pools()
    return len(selected)


def match_by_name(match_pair: MatchPair) -> int:
    """Pair deleted and added entities that describe the same entity.

    Same-entity pairs are ranked by their leaf or internal score. Same-named
    enums qualify as a unit when their members are resolved, ranked by the
    number of resolved constant pairs.

    Args:
        match_pair: Matching state to update

    Returns:
        Number of pairs matched.
    """
    proposals = []
    for node_1 in match_pair.deleted_entities:
        for node_2 in match_pair.added_entities:
            if node_1.same_entity(node_2):
                score = _score_by_variant(match_pair, node_1, node_2)
                proposals.append(EntityPair(node_1, node_2, score))
            elif (
                node_1.kind == EntityKind.ENUM
                and node_2.kind == EntityKind.ENUM
                and node_1.name == node_2.name
            ):
                constants = _enum_unit_score(match_pair, node_1, node_2)
                if constants > 0:
                    proposals.append(EntityPair(node_1, node_2, float(constants)))
    return _assign_matched(match_pair, proposals)


def _is_marker_type_pair(node_1: DeclarationNode, node_2: DeclarationNode) -> bool:
    """Check for two trivial top-level public types in the same namespace."""
    return (
        node_1.kind in TYPE_DECLARATION_KINDS
        and not node_1.has_children()
        and not node_2.has_children()
        and not node_1.dependencies
        and not node_2.dependencies
        and node_1.height == 1
        and node_2.height == 1
        and node_1.namespace == node_2.namespace
        and node_1.is_public()
        and node_2.is_public()
    )


def match_by_dice(
    match_pair: MatchPair, heuristic_dice: float = MatchingDefaults.HEURISTIC_DICE
) -> int:
    """Pair remaining same-kind deleted and added entities with a high score.

    Args:
        match_pair: Matching state to update
        heuristic_dice: Score a pair must exceed

    Returns:
        Number of pairs matched.
    """
    proposals = []
    for node_1 in match_pair.deleted_entities:
        for node_2 in match_pair.added_entities:
            if node_1.kind != node_2.kind:
                continue
            if node_1.is_internal() and node_2.is_internal() and _is_marker_type_pair(node_1, node_2):
                proposals.append(EntityPair(node_1, node_2, MatchingDefaults.MARKER_TYPE_SCORE))
                continue
            score = _score_by_variant(match_pair, node_1, node_2)
            if score <= heuristic_dice:
                continue
            proposals.append(EntityPair(node_1, node_2, score))
    return _assign_matched(match_pair, proposals)


# ==================== Final filtering ====================


def filter_unchanged(match_pair: MatchPair) -> int:
    """Move matched pairs with identical text and namespace to unchanged.

    Returns:
        Number of pairs reclassified.
    """
    identical = [
        (before, after)
        for before, after in match_pair.matched_entities
        if before.text == after.text and before.namespace == after.namespace
    ]
    match_pair.reclassify_unchanged(identical)
    return len(identical)
