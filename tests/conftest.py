"""Shared helpers for aggregraph tests"""

from collections import Counter

import pytest

from aggregraph.models import Graph, Link, Node


def make_node(id: str, **attributes) -> Node:
    """Helper to create a flat Node for testing."""
    return Node(id=id, **attributes)


def make_link(from_id: str, to_id: str, **attributes) -> Link:
    """Helper to create a flat Link for testing."""
    return Link(from_id=from_id, to_id=to_id, **attributes)


def expected_neighbors(graph: Graph) -> dict[str, Counter]:
    """Multiset of opposite endpoints per node, derived from the link list."""
    counts = {node.id: Counter() for node in graph.nodes}
    for link in graph.links:
        if link.from_id in counts and link.to_id in counts:
            counts[link.from_id][link.to_id] += 1
            counts[link.to_id][link.from_id] += 1
    return counts


def assert_neighbors_derived(graph: Graph) -> None:
    """Every node's neighbor list matches the link list exactly."""
    expected = expected_neighbors(graph)
    for node in graph.nodes:
        assert Counter(node.neighbors) == expected[node.id], node.id


def assert_links_resolve(graph: Graph) -> None:
    """Every link endpoint names a node in the graph."""
    ids = set(graph.node_ids())
    for link in graph.links:
        assert link.from_id in ids
        assert link.to_id in ids
        assert link.source == link.from_id
        assert link.target == link.to_id


def dump(items) -> list[dict]:
    return [item.model_dump(by_alias=True) for item in items]


@pytest.fixture
def flat_graph() -> Graph:
    """Four nodes in three groups of attribute ``g``."""
    nodes = [
        make_node("a", g="X"),
        make_node("b", g="X"),
        make_node("c", g="Y"),
        make_node("d", g="Z"),
    ]
    links = [
        make_link("a", "c"),
        make_link("b", "a"),
        make_link("c", "d"),
        make_link("d", "b"),
    ]
    return Graph(nodes=nodes, links=links)
