"""Reverse usage graph between declared entities.

The front end reports, for every declaration, the entities it uses (super
types, type parameters, annotations, field initializers, bodies, enum
constants). This module reverses those edges: each entity maps to the set of
entities whose declarations reference it. One graph is built per version and
never shared between versions.
"""

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
import logging

from entity_matcher.analysis.declaration_tree import DeclarationNode
from entity_matcher.analysis.entity import EntityDescriptor

logger = logging.getLogger(__name__)


class UsageSite(Enum):
    """Part of a declaration where a usage was found."""

    SUPERCLASS = "superclass"
    SUPER_INTERFACE = "super_interface"
    TYPE_PARAMETER = "type_parameter"
    ANNOTATION = "annotation"
    FIELD_DECLARATION = "field_declaration"
    METHOD_BODY = "method_body"
    INITIALIZER_BODY = "initializer_body"
    ANNOTATION_MEMBER = "annotation_member"
    ENUM_CONSTANT = "enum_constant"


@dataclass(frozen=True)
class Usage:
    """One reference from a declaration to another entity.

    Attributes:
        target: Referenced entity, None when the binding could not be resolved
        site: Where in the declaration the reference occurs
    """

    target: EntityDescriptor | None
    site: UsageSite


@dataclass
class EntityUsages:
    """All references made by one declaration."""

    entity: EntityDescriptor
    usages: list[Usage] = field(default_factory=list)


class DependencyGraph(Mapping):
    """Immutable mapping from an entity to the entities referencing it."""

    def __init__(self, edges: Mapping[EntityDescriptor, Iterable[EntityDescriptor]]) -> None:
        self._edges: dict[EntityDescriptor, frozenset[EntityDescriptor]] = {
            entity: frozenset(referencers) for entity, referencers in edges.items()
        }

    def __getitem__(self, entity: EntityDescriptor) -> frozenset[EntityDescriptor]:
        return self._edges[entity]

    def __iter__(self) -> Iterator[EntityDescriptor]:
        return iter(self._edges)

    def __len__(self) -> int:
        return len(self._edges)

    def referencers(self, entity: EntityDescriptor) -> frozenset[EntityDescriptor]:
        """Get the entities referencing an entity (empty if none)."""
        return self._edges.get(entity, frozenset())

    def attach(self, roots: Iterable[DeclarationNode]) -> int:
        """Attach dependency sets to every node of the given trees.

        Args:
            roots: Root nodes of one version's declaration trees

        Returns:
            Number of nodes that received a non-empty dependency set.
        """
        attached = 0
        for root in roots:
            for node in root.all_nodes():
                node.dependencies = self.referencers(node.entity)
                if node.dependencies:
                    attached += 1
        return attached


def build_dependency_graph(records: Iterable[EntityUsages]) -> DependencyGraph:
    """Reverse per-declaration usages into a dependency graph.

    Self references (an entity using its own declaration, e.g. a recursive
    method) are dropped. Unresolved usages are skipped for that one relation.

    Args:
        records: Usage records of one version

    Returns:
        DependencyGraph mapping each used entity to its referencers.
    """
    edges: dict[EntityDescriptor, dict[EntityDescriptor, None]] = {}
    unresolved = 0

    for record in records:
        for usage in record.usages:
            if usage.target is None:
                unresolved += 1
                continue
            if usage.target == record.entity:
                continue
            edges.setdefault(usage.target, {})[record.entity] = None

    if unresolved:
        logger.debug(f"Skipped {unresolved} unresolved usages while building dependency graph")

    return DependencyGraph(edges)
