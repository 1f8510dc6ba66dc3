"""Constants for entity matching configuration.

This module defines default values, thresholds and score weights used
throughout the matching pipeline to improve maintainability and
configurability.
"""

from entity_matcher.analysis.entity import EntityKind


class MatchingDefaults:
    """Default values for matching parameters."""

    # Minimum Dice score (0.0-1.0) for a pair to become a candidate
    MIN_DICE = 0.5

    # Heuristic matching late in the pipeline needs a score strictly above this
    HEURISTIC_DICE = 0.8

    # Upper bound on fine-matching iterations
    MAX_FINE_ITERATIONS = 10

    # Score given to trivial marker-type pairs in heuristic matching
    MARKER_TYPE_SCORE = 1.0


class LeafWeights:
    """Weights of the evidence blended for leaves without a body."""

    NAME = 0.4
    TEXT = 0.3
    DEPENDENCY = 0.3


class InternalWeights:
    """Weights used when internal nodes have dependency evidence."""

    STRUCTURE = 0.75
    DEPENDENCY = 0.25


class StatementWeights:
    """Weights for statement block similarity."""

    EXPRESSION = 0.4
    TEXT = 0.4
    CONTEXT = 0.2


class CacheConfig:
    """Configuration for caching mechanisms."""

    # Maximum size of LRU cache for declaration tokenization
    TOKEN_CACHE_SIZE = 10000


# Kinds matched on descriptor equality alone by exact signature matching
SIGNATURE_FREE_KINDS = frozenset(
    {
        EntityKind.TYPE,
        EntityKind.INTERFACE,
        EntityKind.ENUM,
        EntityKind.RECORD,
        EntityKind.ANNOTATION_TYPE,
        EntityKind.INITIALIZER,
        EntityKind.ENUM_CONSTANT,
    }
)
