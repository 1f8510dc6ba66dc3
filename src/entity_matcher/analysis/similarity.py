"""Dice-coefficient similarity between declaration nodes.

This module provides the similarity measures used by every matching phase:
- Bigram Dice over token and character sequences
- Leaf similarity (textual, with name and dependency evidence for bodiless leaves)
- Internal similarity (structural overlap of already resolved descendants,
  blended with dependency overlap)
- Combined similarity used by the fine-matching fixpoint
"""

from collections.abc import Hashable, Sequence
from functools import lru_cache
import re
from typing import TYPE_CHECKING

from entity_matcher.analysis.declaration_tree import DeclarationNode, NodeVariant
from entity_matcher.analysis.entity import TYPE_LIKE_KINDS, EntityKind
from entity_matcher.analysis.matching_constants import (
    CacheConfig,
    InternalWeights,
    LeafWeights,
)

if TYPE_CHECKING:
    from entity_matcher.analysis.matching.match_types import MatchPair

NAME_PLACEHOLDER = "$NAME"

_TOKEN_PATTERN = re.compile(r"[A-Za-z_$][\w$]*|\d+(?:\.\d+)?|\S")


def tokenize(text: str) -> list[str]:
    """Split source text into identifier, number and punctuation tokens.

    Args:
        text: Source text

    Returns:
        List of tokens in order, whitespace dropped.
    """
    return _TOKEN_PATTERN.findall(text)


@lru_cache(maxsize=CacheConfig.TOKEN_CACHE_SIZE)
def masked_tokens(text: str, name: str) -> tuple[str, ...]:
    """Tokenize a declaration with its own name replaced by a placeholder.

    Args:
        text: Declaration text
        name: Simple name of the declared entity

    Returns:
        Token tuple in which every occurrence of name is NAME_PLACEHOLDER.
    """
    return tuple(NAME_PLACEHOLDER if token == name else token for token in tokenize(text))


def bigram_dice(items_1: Sequence[Hashable], items_2: Sequence[Hashable]) -> float:
    """Calculate bigram Dice similarity between two sequences.

    Uses bi-gram (2-gram) sets with the Dice coefficient
    2 * |A ∩ B| / (|A| + |B|).

    Args:
        items_1: First sequence (tokens or characters).
        items_2: Second sequence.

    Returns:
        Similarity score (0.0-1.0).
    """
    if not items_1 or not items_2:
        return 0.0

    # Handle single item case
    if len(items_1) == 1 and len(items_2) == 1:
        return 1.0 if items_1[0] == items_2[0] else 0.0

    def get_bigrams(items: Sequence[Hashable]) -> set[tuple[Hashable, Hashable]]:
        if len(items) < 2:
            # For single item, create a special bi-gram with itself
            return {(items[0], items[0])}
        return {(items[i], items[i + 1]) for i in range(len(items) - 1)}

    bigrams_1 = get_bigrams(items_1)
    bigrams_2 = get_bigrams(items_2)

    intersection = len(bigrams_1 & bigrams_2)
    total = len(bigrams_1) + len(bigrams_2)

    return 2.0 * intersection / total


def name_similarity(name_1: str, name_2: str) -> float:
    """Character bigram Dice between two names, ignoring case."""
    return bigram_dice(name_1.lower(), name_2.lower())


def text_similarity(node_1: DeclarationNode, node_2: DeclarationNode) -> float:
    """Token bigram Dice between two declarations with their own names masked."""
    return bigram_dice(
        masked_tokens(node_1.text, node_1.name),
        masked_tokens(node_2.text, node_2.name),
    )


def dependency_dice(
    node_1: DeclarationNode,
    node_2: DeclarationNode,
    match_pair: "MatchPair | None" = None,
) -> float:
    """Calculate Dice similarity between the referencer sets of two nodes.

    A before-side referencer counts as common when the after side holds an
    equal descriptor, or, given a match pair, the descriptor it was resolved to.

    Args:
        node_1: Node from the before version
        node_2: Node from the after version
        match_pair: Current matching state, if resolved pairs should count

    Returns:
        Similarity score (0.0-1.0), 0.0 when both sets are empty.
    """
    deps_1 = node_1.dependencies
    deps_2 = node_2.dependencies
    total = len(deps_1) + len(deps_2)
    if total == 0:
        return 0.0

    common = 0
    for dependency in deps_1:
        if dependency in deps_2:
            common += 1
        elif match_pair is not None and match_pair.resolved_descriptor(dependency) in deps_2:
            common += 1

    return 2.0 * common / total


def leaf_dice(
    leaf_1: DeclarationNode,
    leaf_2: DeclarationNode,
    match_pair: "MatchPair | None" = None,
) -> float:
    """Calculate similarity between two leaf nodes of the same kind.

    Methods with a body on both sides are compared on their declaration text
    alone, so a rename with unchanged parameters and body scores 1.0. Other
    leaves carry little text beyond their name, so name, text and
    dependency overlap are blended.

    Args:
        leaf_1: Leaf from the before version
        leaf_2: Leaf from the after version
        match_pair: Current matching state, used for dependency overlap

    Returns:
        Similarity score (0.0-1.0).
    """
    if (
        leaf_1.kind == EntityKind.METHOD
        and leaf_1.declaration.body is not None
        and leaf_2.declaration.body is not None
    ):
        return text_similarity(leaf_1, leaf_2)

    return (
        LeafWeights.NAME * name_similarity(leaf_1.name, leaf_2.name)
        + LeafWeights.TEXT * text_similarity(leaf_1, leaf_2)
        + LeafWeights.DEPENDENCY * dependency_dice(leaf_1, leaf_2, match_pair)
    )


def internal_dice(
    match_pair: "MatchPair",
    internal_1: DeclarationNode,
    internal_2: DeclarationNode,
) -> float:
    """Calculate structural similarity between two internal nodes.

    The structural part is 2 * |common| / (|descendants 1| + |descendants 2|)
    where a descendant of node 1 is common when its resolved counterpart
    (matched, candidate or unchanged) is a descendant of node 2. Pruned
    descendants are included through the archive.

    Args:
        match_pair: Current matching state
        internal_1: Internal node from the before version
        internal_2: Internal node from the after version

    Returns:
        Similarity score (0.0-1.0).
    """
    descendants_1 = internal_1.archived_descendants()
    descendants_2 = internal_2.archived_descendants()
    total = len(descendants_1) + len(descendants_2)

    structural = 0.0
    if total > 0:
        targets = set(descendants_2)
        common = sum(
            1 for descendant in descendants_1 if match_pair.counterpart(descendant) in targets
        )
        structural = 2.0 * common / total

    if not internal_1.dependencies and not internal_2.dependencies:
        return structural

    return InternalWeights.STRUCTURE * structural + InternalWeights.DEPENDENCY * dependency_dice(
        internal_1, internal_2, match_pair
    )


def is_type_compatible(node_1: DeclarationNode, node_2: DeclarationNode) -> bool:
    """Check whether two nodes may be compared in fine matching."""
    if node_1.kind == node_2.kind:
        return True
    return node_1.kind in TYPE_LIKE_KINDS and node_2.kind in TYPE_LIKE_KINDS


def calculate_similarity(
    match_pair: "MatchPair",
    node_1: DeclarationNode,
    node_2: DeclarationNode,
) -> float:
    """Calculate combined similarity for the fine-matching fixpoint.

    Args:
        match_pair: Current matching state
        node_1: Node from the before version
        node_2: Node from the after version

    Returns:
        Similarity score (0.0-1.0), 0.0 for incompatible kinds or variants.
    """
    if not is_type_compatible(node_1, node_2) or node_1.variant != node_2.variant:
        return 0.0

    if node_1.variant == NodeVariant.LEAF:
        return leaf_dice(node_1, node_2, match_pair)
    if node_1.variant == NodeVariant.INTERNAL:
        return internal_dice(match_pair, node_1, node_2)
    return 0.0
