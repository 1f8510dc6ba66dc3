"""Analysis modules for software entity matching.

This package provides core analysis functionality including:
- Entity descriptors and declaration trees
- Statement block classification
- Dependency graphs built from entity usages
- Dice similarity between declarations
"""

from entity_matcher.analysis.declaration_tree import DeclarationNode, NodeVariant
from entity_matcher.analysis.dependency_graph import DependencyGraph, build_dependency_graph
from entity_matcher.analysis.entity import Declaration, EntityDescriptor, EntityKind, Location
from entity_matcher.analysis.similarity import bigram_dice, calculate_similarity

__all__ = [
    "Declaration",
    "DeclarationNode",
    "DependencyGraph",
    "EntityDescriptor",
    "EntityKind",
    "Location",
    "NodeVariant",
    "bigram_dice",
    "build_dependency_graph",
    "calculate_similarity",
]
