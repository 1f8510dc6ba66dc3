"""Entity matching between two revisions.

This module provides the pipeline that pairs declared entities of a before
revision with those of an after revision:
1. Pruning of textually identical entities
2. Exact signature matching in modified files
3. Dice matching per file, then across the deleted/added pools
4. Fine-matching fixpoint
5. Heuristic matching by name and by Dice
6. Final filtering of identical matched pairs
7. Statement block matching inside resolved pairs

Main entry point is the EntityMatcher class.
"""

from dataclasses import dataclass, field
import logging

from entity_matcher.analysis.declaration_tree import DeclarationNode
from entity_matcher.analysis.matching.match_strategies import (
    filter_unchanged,
    fine_match,
    match_by_dice,
    match_by_name,
    match_by_signature,
    match_file_by_dice,
    match_pools_by_dice,
)
from entity_matcher.analysis.matching.match_types import MatchPair
from entity_matcher.analysis.matching.pruning import (
    StructuralContractError,
    prune_modified_file,
    prune_renamed_file,
)
from entity_matcher.analysis.matching.statement_matcher import StatementMatcher
from entity_matcher.analysis.matching_constants import MatchingDefaults
from entity_matcher.analysis.tree_loader import RevisionSnapshot
from entity_matcher.core.revision_manager import FileChanges

logger = logging.getLogger(__name__)


@dataclass
class FilePlan:
    """File pairs that take part in one matching run.

    Attributes:
        modified: Paths with a tree on both sides
        renamed: Old path -> new path, both with a tree
        deleted: Paths with a tree on the before side only
        added: Paths with a tree on the after side only
    """

    modified: list[str] = field(default_factory=list)
    renamed: dict[str, str] = field(default_factory=dict)
    deleted: list[str] = field(default_factory=list)
    added: list[str] = field(default_factory=list)


def infer_file_changes(
    before: RevisionSnapshot, after: RevisionSnapshot, renamed: dict[str, str] | None = None
) -> FileChanges:
    """Derive file changes from the files present in two snapshots.

    Used when no repository is at hand: a path in both snapshots counts as
    modified, a path in one snapshot only as deleted or added, unless it
    takes part in one of the given renames.

    Args:
        before: Snapshot of the before revision
        after: Snapshot of the after revision
        renamed: Old path -> new path of known renames

    Returns:
        FileChanges
    """
    renamed = dict(renamed or {})
    renamed_to = set(renamed.values())
    changes = FileChanges(renamed=renamed)
    for path in before.files:
        if path in renamed:
            continue
        if path in after.files:
            changes.modified.append(path)
        else:
            changes.deleted.append(path)
    for path in after.files:
        if path not in before.files and path not in renamed_to:
            changes.added.append(path)
    return changes


def plan_files(before: RevisionSnapshot, after: RevisionSnapshot, changes: FileChanges) -> FilePlan:
    """Decide how each changed file takes part, given the available trees.

    A file whose tree is missing on one side degrades to deleted or added.
    A file missing on both sides is skipped.

    Args:
        before: Snapshot of the before revision
        after: Snapshot of the after revision
        changes: File changes between the revisions

    Returns:
        FilePlan
    """
    plan = FilePlan()

    def place(before_path: str | None, after_path: str | None) -> None:
        has_before = before_path is not None and before_path in before.files
        has_after = after_path is not None and after_path in after.files
        if has_before and has_after:
            if before_path == after_path:
                plan.modified.append(before_path)
            else:
                plan.renamed[before_path] = after_path
        elif has_before:
            plan.deleted.append(before_path)
        elif has_after:
            plan.added.append(after_path)
        else:
            logger.warning(f"No declaration tree for {before_path or after_path}, skipping")

    for path in changes.modified:
        place(path, path)
    for old_path, new_path in changes.renamed.items():
        place(old_path, new_path)
    for path in changes.deleted:
        place(path, None)
    for path in changes.added:
        place(None, path)
    return plan


class EntityMatcher:
    """Matches declared entities across two revisions.

    Besides the resulting MatchPair, a run records the number of fine-matching
    iterations and the number of unresolved entities after each phase.
    """

    def __init__(
        self,
        min_dice: float = MatchingDefaults.MIN_DICE,
        heuristic_dice: float = MatchingDefaults.HEURISTIC_DICE,
        max_fine_iterations: int = MatchingDefaults.MAX_FINE_ITERATIONS,
        match_statements: bool = True,
    ) -> None:
        """Initialize EntityMatcher.

        Args:
            min_dice: Minimum Dice score for a candidate pair.
            heuristic_dice: Score heuristic matching must exceed.
            max_fine_iterations: Upper bound on fine-matching iterations.
            match_statements: Also match statement blocks of resolved pairs.
        """
        self.min_dice = min_dice
        self.heuristic_dice = heuristic_dice
        self.max_fine_iterations = max_fine_iterations
        self.match_statements = match_statements
        self.fine_iterations = 0
        self.phase_unresolved: list[tuple[str, int]] = []
        self.failed_files: list[str] = []

    def match(
        self, before: RevisionSnapshot, after: RevisionSnapshot, changes: FileChanges
    ) -> MatchPair:
        """Match the entities of the changed files.

        Pruning removes nodes from the snapshots' trees, so a snapshot is
        consumed by one run.

        Args:
            before: Snapshot of the before revision
            after: Snapshot of the after revision
            changes: File changes between the revisions

        Returns:
            MatchPair in which matched, unchanged, deleted and added
            partition the entities of the participating files.
        """
        self.fine_iterations = 0
        self.phase_unresolved = []
        self.failed_files = []

        plan = plan_files(before, after, changes)
        before_roots = [before.files[path] for path in [*plan.modified, *plan.renamed, *plan.deleted]]
        after_roots = [
            after.files[path] for path in [*plan.modified, *plan.renamed.values(), *plan.added]
        ]
        self._before_nodes = _entities(before_roots)
        self._after_nodes = _entities(after_roots)

        attached = before.graph.attach(before_roots) + after.graph.attach(after_roots)
        logger.info(
            f"Matching {len(self._before_nodes)} -> {len(self._after_nodes)} entities "
            f"({len(plan.modified)} modified, {len(plan.renamed)} renamed, "
            f"{len(plan.deleted)} deleted, {len(plan.added)} added files, "
            f"{attached} with dependencies)"
        )

        match_pair = MatchPair()
        self._record_phase("start", match_pair)

        self._prune(match_pair, before, after, plan)
        self._record_phase("pruning", match_pair)

        signature_matches = sum(
            match_by_signature(match_pair, before.files[path], after.files[path])
            for path in plan.modified
        )
        logger.info(f"Exact signature matching: {signature_matches} pairs")
        self._record_phase("signature", match_pair)

        self._match_by_dice(match_pair, before, after, plan)
        self._record_phase("dice", match_pair)

        self.fine_iterations = fine_match(match_pair, self.min_dice, self.max_fine_iterations)
        logger.info(f"Fine matching: {self.fine_iterations} iterations")
        self._record_phase("fine", match_pair)

        by_name = match_by_name(match_pair)
        by_dice = match_by_dice(match_pair, self.heuristic_dice)
        logger.info(f"Heuristic matching: {by_name} by name, {by_dice} by Dice")
        self._record_phase("heuristic", match_pair)

        filtered = filter_unchanged(match_pair)
        logger.info(f"Final filtering: {filtered} matched pairs are unchanged")
        self._record_phase("filter", match_pair)

        if self.match_statements:
            StatementMatcher(self.min_dice).match(match_pair)

        logger.info(
            f"Result: {len(match_pair.matched_entities)} matched, "
            f"{len(match_pair.unchanged_entities)} unchanged, "
            f"{len(match_pair.deleted_entities)} deleted, "
            f"{len(match_pair.added_entities)} added"
        )
        return match_pair

    def _prune(
        self,
        match_pair: MatchPair,
        before: RevisionSnapshot,
        after: RevisionSnapshot,
        plan: FilePlan,
    ) -> None:
        for path in plan.modified:
            try:
                prune_modified_file(
                    match_pair, before.files[path], after.files[path], self.min_dice
                )
            except StructuralContractError as e:
                logger.warning(f"Pruning failed for {path}: {e}")
                self.failed_files.append(path)
        for old_path, new_path in plan.renamed.items():
            try:
                prune_renamed_file(
                    match_pair, before.files[old_path], after.files[new_path], (old_path, new_path)
                )
            except StructuralContractError as e:
                logger.warning(f"Pruning failed for {old_path} -> {new_path}: {e}")
                self.failed_files.append(old_path)
        logger.info(
            f"Pruning: {len(match_pair.unchanged_entities)} unchanged, "
            f"{len(match_pair.matched_entities)} matched"
        )

    def _match_by_dice(
        self,
        match_pair: MatchPair,
        before: RevisionSnapshot,
        after: RevisionSnapshot,
        plan: FilePlan,
    ) -> None:
        candidates = 0
        for path in plan.modified:
            candidates += match_file_by_dice(
                match_pair, before.files[path], after.files[path], self.min_dice
            )
        for old_path, new_path in plan.renamed.items():
            candidates += match_file_by_dice(
                match_pair, before.files[old_path], after.files[new_path], self.min_dice
            )
        for path in plan.deleted:
            match_pair.add_deleted_entities(before.files[path].unmatched_nodes())
        for path in plan.added:
            match_pair.add_added_entities(after.files[path].unmatched_nodes())

        moved = match_pools_by_dice(match_pair, self.min_dice)
        logger.info(f"Dice matching: {candidates} candidates in files, {moved} across files")

    def _record_phase(self, phase: str, match_pair: MatchPair) -> None:
        unresolved = match_pair.unresolved_count(self._before_nodes, self._after_nodes)
        self.phase_unresolved.append((phase, unresolved))
        logger.debug(f"Unresolved entities after {phase}: {unresolved}")


def _entities(roots: list[DeclarationNode]) -> list[DeclarationNode]:
    nodes = []
    for root in roots:
        nodes.extend(root.archived_descendants())
    return nodes
