"""Data types for entity matching results.

This module defines the core data structures used in entity matching:
- EntityPair: Scored before/after pair proposed by a matching phase
- MatchPair: Mutable working set threaded through all pipeline phases
"""

from collections.abc import Iterable
from dataclasses import dataclass

from entity_matcher.analysis.declaration_tree import DeclarationNode
from entity_matcher.analysis.entity import EntityDescriptor
from entity_matcher.analysis.statement_block import StatementBlockNode

NodePair = tuple[DeclarationNode, DeclarationNode]
BlockPair = tuple[StatementBlockNode, StatementBlockNode]


@dataclass
class EntityPair:
    """Scored pairing proposal between a before node and an after node.

    Attributes:
        before: Node from the before version
        after: Node from the after version
        score: Similarity score used to rank proposals
    """

    before: DeclarationNode
    after: DeclarationNode
    score: float

    @property
    def rank_key(self) -> tuple:
        """Total order: higher score first, then source position of both sides."""
        return (-self.score, self.before.sort_key, self.after.sort_key)


class MatchPair:
    """Working set of matched, candidate, deleted, added and unchanged entities.

    All relations are insertion-ordered so that iteration, and therefore the
    whole pipeline, is deterministic. Statement blocks are tracked in separate
    matched, unchanged, deleted and added relations.
    """

    def __init__(self) -> None:
        self._matched: dict[NodePair, None] = {}
        self._candidates: dict[NodePair, None] = {}
        self._unchanged: dict[NodePair, None] = {}
        self._deleted: dict[DeclarationNode, None] = {}
        self._added: dict[DeclarationNode, None] = {}
        self._counterparts: dict[DeclarationNode, DeclarationNode] = {}
        self._descriptor_map: dict[EntityDescriptor, EntityDescriptor] | None = None

        self._matched_statements: dict[BlockPair, None] = {}
        self._unchanged_statements: dict[BlockPair, None] = {}
        self._deleted_statements: dict[StatementBlockNode, None] = {}
        self._added_statements: dict[StatementBlockNode, None] = {}

    # ==================== Entity relations ====================

    @property
    def matched_entities(self) -> list[NodePair]:
        return list(self._matched)

    @property
    def candidate_entities(self) -> list[NodePair]:
        return list(self._candidates)

    @property
    def unchanged_entities(self) -> list[NodePair]:
        return list(self._unchanged)

    @property
    def deleted_entities(self) -> list[DeclarationNode]:
        return list(self._deleted)

    @property
    def added_entities(self) -> list[DeclarationNode]:
        return list(self._added)

    @property
    def candidate_left(self) -> list[DeclarationNode]:
        return [before for before, _ in self._candidates]

    @property
    def candidate_right(self) -> list[DeclarationNode]:
        return [after for _, after in self._candidates]

    def add_unchanged_entity(self, before: DeclarationNode, after: DeclarationNode) -> None:
        self._unchanged[(before, after)] = None
        self._link(before, after)

    def add_matched_entity(self, before: DeclarationNode, after: DeclarationNode) -> None:
        self._matched[(before, after)] = None
        self._deleted.pop(before, None)
        self._added.pop(after, None)
        self._link(before, after)

    def add_candidate_entity(self, before: DeclarationNode, after: DeclarationNode) -> None:
        self._candidates[(before, after)] = None
        self._link(before, after)

    def add_deleted_entities(self, nodes: Iterable[DeclarationNode]) -> None:
        for node in nodes:
            if node not in self._counterparts:
                self._deleted[node] = None

    def add_added_entities(self, nodes: Iterable[DeclarationNode]) -> None:
        for node in nodes:
            if node not in self._counterparts:
                self._added[node] = None

    def set_candidate_entities(self, pairs: Iterable[NodePair]) -> None:
        """Replace the candidate relation with a new set of pairs."""
        for before, after in self._candidates:
            self._unlink(before, after)
        self._candidates = {}
        for before, after in pairs:
            self.add_candidate_entity(before, after)

    def update_deleted_entities(self, nodes: Iterable[DeclarationNode]) -> None:
        self._deleted = dict.fromkeys(nodes)

    def update_added_entities(self, nodes: Iterable[DeclarationNode]) -> None:
        self._added = dict.fromkeys(nodes)

    def remove_resolved_from_pools(self) -> None:
        """Drop nodes that now have a counterpart from deleted and added."""
        self._deleted = {node: None for node in self._deleted if node not in self._counterparts}
        self._added = {node: None for node in self._added if node not in self._counterparts}

    def promote_candidates(self) -> None:
        """Move every candidate pair to matched and clear the candidates."""
        for pair in self._candidates:
            self._matched[pair] = None
        self._candidates = {}

    def reclassify_unchanged(self, pairs: Iterable[NodePair]) -> None:
        """Move matched pairs to the unchanged relation."""
        for pair in pairs:
            if pair in self._matched:
                del self._matched[pair]
                self._unchanged[pair] = None

    def counterpart(self, node: DeclarationNode) -> DeclarationNode | None:
        """Get the node paired with the given node by matched, candidate or unchanged."""
        return self._counterparts.get(node)

    def resolved_descriptor(self, descriptor: EntityDescriptor) -> EntityDescriptor | None:
        """Get the after-side descriptor a before-side descriptor was paired with."""
        if self._descriptor_map is None:
            self._descriptor_map = {}
            for pairs in (self._unchanged, self._matched, self._candidates):
                for before, after in pairs:
                    if before.entity is not None and after.entity is not None:
                        self._descriptor_map.setdefault(before.entity, after.entity)
        return self._descriptor_map.get(descriptor)

    def unresolved_count(
        self, before_nodes: Iterable[DeclarationNode], after_nodes: Iterable[DeclarationNode]
    ) -> int:
        """Count entities not yet matched or unchanged.

        Candidates count as unresolved: they are still revisable.
        """
        settled = set()
        for pairs in (self._matched, self._unchanged):
            for before, after in pairs:
                settled.add(before)
                settled.add(after)
        return sum(1 for node in before_nodes if node not in settled) + sum(
            1 for node in after_nodes if node not in settled
        )

    def _link(self, before: DeclarationNode, after: DeclarationNode) -> None:
        self._counterparts[before] = after
        self._counterparts[after] = before
        self._descriptor_map = None

    def _unlink(self, before: DeclarationNode, after: DeclarationNode) -> None:
        if self._counterparts.get(before) is after:
            del self._counterparts[before]
        if self._counterparts.get(after) is before:
            del self._counterparts[after]
        self._descriptor_map = None

    # ==================== Statement relations ====================

    @property
    def matched_statements(self) -> list[BlockPair]:
        return list(self._matched_statements)

    @property
    def unchanged_statements(self) -> list[BlockPair]:
        return list(self._unchanged_statements)

    @property
    def deleted_statements(self) -> list[StatementBlockNode]:
        return list(self._deleted_statements)

    @property
    def added_statements(self) -> list[StatementBlockNode]:
        return list(self._added_statements)

    def add_matched_statement(self, before: StatementBlockNode, after: StatementBlockNode) -> None:
        before.matched = after.matched = True
        self._matched_statements[(before, after)] = None

    def add_unchanged_statement(
        self, before: StatementBlockNode, after: StatementBlockNode
    ) -> None:
        before.matched = after.matched = True
        self._unchanged_statements[(before, after)] = None

    def is_paired_statement(self, before: StatementBlockNode, after: StatementBlockNode) -> bool:
        """Check whether two blocks are paired as matched or unchanged."""
        pair = (before, after)
        return pair in self._matched_statements or pair in self._unchanged_statements

    def add_deleted_statements(self, blocks: Iterable[StatementBlockNode]) -> None:
        for block in blocks:
            self._deleted_statements[block] = None

    def add_added_statements(self, blocks: Iterable[StatementBlockNode]) -> None:
        for block in blocks:
            self._added_statements[block] = None
