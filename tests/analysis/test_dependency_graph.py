"""Tests for the reverse usage graph."""

import pytest

from entity_matcher.analysis.declaration_tree import DeclarationNode, NodeVariant
from entity_matcher.analysis.dependency_graph import (
    EntityUsages,
    Usage,
    UsageSite,
    build_dependency_graph,
)
from entity_matcher.analysis.entity import Declaration, EntityDescriptor, EntityKind

LOGGER = EntityDescriptor(EntityKind.TYPE, "Logger", "com.example")
SERVICE = EntityDescriptor(EntityKind.TYPE, "Service", "com.example")
RUN = EntityDescriptor(EntityKind.METHOD, "run", "com.example.Service")
HELPER = EntityDescriptor(EntityKind.METHOD, "help", "com.example.Service")


@pytest.fixture
def graph():
    """Create a graph where Service and run use Logger, and run calls itself."""
    return build_dependency_graph(
        [
            EntityUsages(SERVICE, [Usage(LOGGER, UsageSite.FIELD_DECLARATION)]),
            EntityUsages(
                RUN,
                [
                    Usage(LOGGER, UsageSite.METHOD_BODY),
                    Usage(HELPER, UsageSite.METHOD_BODY),
                    Usage(RUN, UsageSite.METHOD_BODY),
                    Usage(None, UsageSite.METHOD_BODY),
                ],
            ),
        ]
    )


class TestBuildDependencyGraph:
    """Test reversing usage records."""

    def test_reversed_edges(self, graph):
        """Test that each used entity maps to its referencers."""
        assert graph[LOGGER] == frozenset({SERVICE, RUN})
        assert graph[HELPER] == frozenset({RUN})

    def test_self_reference_dropped(self, graph):
        """Test that recursion does not create a self edge."""
        assert RUN not in graph
        assert graph.referencers(RUN) == frozenset()

    def test_unresolved_usage_skipped(self, graph):
        """Test that unresolved bindings add no edge."""
        assert set(graph) == {LOGGER, HELPER}
        assert len(graph) == 2

    def test_empty_records(self):
        """Test an empty graph."""
        graph = build_dependency_graph([])

        assert len(graph) == 0
        assert graph.referencers(LOGGER) == frozenset()


class TestAttach:
    """Test attaching dependency sets to declaration trees."""

    def test_attach_sets_dependencies(self, graph):
        """Test that every node gets its referencer set."""
        root = DeclarationNode(None, Declaration(text=""), NodeVariant.ROOT, "src/Logger.java")
        logger_node = DeclarationNode(
            LOGGER, Declaration(text="class Logger"), NodeVariant.INTERNAL, "src/Logger.java"
        )
        unused = DeclarationNode(
            EntityDescriptor(EntityKind.FIELD, "level", "com.example.Logger"),
            Declaration(text="int level;"),
            NodeVariant.LEAF,
            "src/Logger.java",
        )
        root.add_child(logger_node)
        logger_node.add_child(unused)

        attached = graph.attach([root])

        assert attached == 1
        assert logger_node.dependencies == frozenset({SERVICE, RUN})
        assert unused.dependencies == frozenset()
