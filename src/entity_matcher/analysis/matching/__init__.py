"""Entity matching between two revisions.

This package provides the multi-phase matching pipeline.
Main entry point is the EntityMatcher class.

Public API:
    - EntityMatcher: Runs the pipeline over two revision snapshots
    - MatchPair: Result and working state of a run
    - EntityPair: Scored pairing proposal
    - infer_file_changes: File changes derived from two snapshots
"""

from entity_matcher.analysis.matching.entity_matcher import EntityMatcher, infer_file_changes
from entity_matcher.analysis.matching.match_types import EntityPair, MatchPair
from entity_matcher.analysis.matching_constants import MatchingDefaults

__all__ = [
    "EntityMatcher",
    "EntityPair",
    "MatchPair",
    "MatchingDefaults",
    "infer_file_changes",
]
