"""Declaration trees: per-file hierarchies of matchable entity nodes.

A file is represented by a ROOT node that owns the top-level declarations.
Container declarations (types, initializers, enum constants with a body) are
INTERNAL nodes, everything else is a LEAF. Pruning removes nodes from the live
tree but keeps them reachable through the parent's archive so structural
similarity can still count them.
"""

from enum import Enum
from pathlib import PurePosixPath
import weakref

from entity_matcher.analysis.entity import (
    CONTAINER_KINDS,
    Declaration,
    EntityDescriptor,
    EntityKind,
)
from entity_matcher.analysis.statement_block import StatementBlockNode


class NodeVariant(Enum):
    """Position of a node in a declaration tree."""

    ROOT = "root"
    INTERNAL = "internal"
    LEAF = "leaf"


def variant_for(kind: EntityKind, has_children: bool) -> NodeVariant:
    """Pick the node variant for an entity kind.

    Args:
        kind: Kind of the entity
        has_children: Whether the declaration owns member declarations

    Returns:
        INTERNAL for containers (and enum constants with a body), LEAF otherwise.
    """
    if kind in CONTAINER_KINDS:
        return NodeVariant.INTERNAL
    if kind == EntityKind.ENUM_CONSTANT and has_children:
        return NodeVariant.INTERNAL
    return NodeVariant.LEAF


class DeclarationNode:
    """One node of a declaration tree.

    Attributes:
        entity: Descriptor of the declared element (None for the root)
        declaration: Syntactic payload of the element
        variant: ROOT, INTERNAL or LEAF
        file_path: File the node was parsed from
        children: Live (not yet pruned) children in source order
        matched: Set once the node is paired by exact signature matching
        dependencies: Entities referencing this one, attached from the
            version's dependency graph
        blocks: Root of the statement block tree for bodies, if any
        order: Preorder index inside the file, used for stable ordering
    """

    def __init__(
        self,
        entity: EntityDescriptor | None,
        declaration: Declaration,
        variant: NodeVariant,
        file_path: str,
        blocks: StatementBlockNode | None = None,
    ) -> None:
        if variant == NodeVariant.ROOT and entity is not None:
            raise ValueError("Root nodes carry no entity descriptor")
        if variant != NodeVariant.ROOT and entity is None:
            raise ValueError("Internal and leaf nodes need an entity descriptor")
        self.entity = entity
        self.declaration = declaration
        self.variant = variant
        self.file_path = file_path
        self.blocks = blocks
        self.children: list[DeclarationNode] = []
        self.matched = False
        self.dependencies: frozenset[EntityDescriptor] = frozenset()
        self.order = 0
        self._parent: weakref.ref | None = None
        self._archived: list[DeclarationNode] = []

    def __repr__(self) -> str:
        if self.entity is None:
            return f"DeclarationNode(root, {self.file_path})"
        return f"DeclarationNode({self.entity.kind.value}, {self.entity})"

    # ==================== Structure ====================

    @property
    def parent(self) -> "DeclarationNode | None":
        if self._parent is None:
            return None
        return self._parent()

    def add_child(self, child: "DeclarationNode") -> None:
        if self.variant == NodeVariant.LEAF:
            raise ValueError(f"Leaf node cannot own children: {self!r}")
        child._parent = weakref.ref(self)
        self.children.append(child)

    def has_children(self) -> bool:
        return bool(self.children)

    def is_root(self) -> bool:
        return self.variant == NodeVariant.ROOT

    def is_internal(self) -> bool:
        return self.variant == NodeVariant.INTERNAL

    def is_leaf(self) -> bool:
        return self.variant == NodeVariant.LEAF

    def renumber(self) -> None:
        """Assign preorder indexes to this node and every live descendant."""
        for index, node in enumerate([self, *self.all_nodes()]):
            node.order = index

    def all_nodes(self) -> list["DeclarationNode"]:
        """Get live descendants in preorder, excluding this node."""
        nodes = []
        for child in self.children:
            nodes.append(child)
            nodes.extend(child.all_nodes())
        return nodes

    def leaf_nodes(self) -> list["DeclarationNode"]:
        """Get unmatched live leaf descendants."""
        return [node for node in self.all_nodes() if node.is_leaf() and not node.matched]

    def internal_nodes(self) -> list["DeclarationNode"]:
        """Get unmatched live internal descendants."""
        return [node for node in self.all_nodes() if node.is_internal() and not node.matched]

    def unmatched_nodes(self) -> list["DeclarationNode"]:
        return [node for node in self.all_nodes() if not node.matched]

    def archive_children(self) -> None:
        """Remember the current children before some of them are pruned."""
        for child in self.children:
            if child not in self._archived:
                self._archived.append(child)

    def remove_children(self, pruned: list["DeclarationNode"]) -> None:
        self.children = [child for child in self.children if child not in pruned]

    def archived_children(self) -> list["DeclarationNode"]:
        """Get direct children, pruned ones included, in source order."""
        children = list(self._archived)
        children.extend(child for child in self.children if child not in self._archived)
        return children

    def archived_descendants(self) -> list["DeclarationNode"]:
        """Get live and pruned descendants for structural similarity.

        Returns:
            Every descendant reachable through the live children or the
            archive, each listed once, in discovery order.
        """
        seen: dict[DeclarationNode, None] = {}
        for child in [*self._archived, *self.children]:
            if child in seen:
                continue
            seen[child] = None
            for descendant in child.archived_descendants():
                seen.setdefault(descendant, None)
        return list(seen)

    @property
    def height(self) -> int:
        """Distance to the root (top-level declarations have height 1)."""
        height = 0
        node = self.parent
        while node is not None:
            height += 1
            node = node.parent
        return height

    # ==================== Identity ====================

    @property
    def kind(self) -> EntityKind | None:
        return self.entity.kind if self.entity is not None else None

    @property
    def name(self) -> str:
        return self.entity.name if self.entity is not None else self.file_path

    @property
    def namespace(self) -> str:
        return self.entity.container if self.entity is not None else ""

    @property
    def text(self) -> str:
        return self.declaration.text

    def is_public(self) -> bool:
        return "public" in self.declaration.modifiers

    @property
    def sort_key(self) -> tuple:
        location = self.entity.location if self.entity is not None else None
        if location is None:
            return (self.file_path, 0, 0, self.order)
        return (location.file_path, location.start_line, location.start_column, self.order)

    def same_entity(
        self, other: "DeclarationNode", file_pair: tuple[str, str] | None = None
    ) -> bool:
        """Check descriptor equality with another node.

        Args:
            other: Node from the other version
            file_pair: (before path, after path) of a renamed file. When given,
                the before file's stem is read as the after file's stem in
                names and containers.

        Returns:
            True if both nodes describe the same entity.
        """
        if self.entity is None or other.entity is None:
            return self.entity is None and other.entity is None
        if file_pair is None:
            return self.entity == other.entity
        mine, theirs = self.entity, other.entity
        if mine.kind != theirs.kind or mine.parameter_signature != theirs.parameter_signature:
            return False
        before_stem = PurePosixPath(file_pair[0]).stem
        after_stem = PurePosixPath(file_pair[1]).stem
        name = after_stem if mine.name == before_stem else mine.name
        container = ".".join(
            after_stem if segment == before_stem else segment
            for segment in mine.container.split(".")
        )
        return name == theirs.name and container == theirs.container
