"""Neighbor resolution and shared record helpers.

Neighbor lists are always derived from a link list, never patched by hand:
every transformation ends with a call to ``define_neighbors`` over the node
and link lists it is about to return.
"""

from typing import Iterable

from aggregraph.models import Link, LinkType, Node, NodeType


def copy_nodes(nodes: Iterable[Node]) -> list[Node]:
    """Deep-copy nodes with their neighbor lists reset"""
    copies = []
    for node in nodes:
        copy = node.model_copy(deep=True)
        copy.neighbors = []
        copies.append(copy)
    return copies


def copy_links(links: Iterable[Link]) -> list[Link]:
    """Deep-copy links"""
    return [link.model_copy(deep=True) for link in links]


def process_child_nodes(nodes: Iterable[Node]) -> list[Node]:
    """Copy flat nodes and stamp them as plain nodes"""
    copies = []
    for node in nodes:
        copy = node.model_copy(deep=True)
        copy.type = NodeType.NODE
        copies.append(copy)
    return copies


def process_child_links(links: Iterable[Link]) -> list[Link]:
    """Copy flat links and stamp them as plain links"""
    copies = []
    for link in links:
        copy = link.model_copy(deep=True)
        copy.type = LinkType.LINK
        copies.append(copy)
    return copies


def map_nodes(nodes: Iterable[Node]) -> dict[str, Node]:
    """Map node ids to node records"""
    return {node.id: node for node in nodes}


def map_super_children(nodes: Iterable[Node]) -> dict[str, str]:
    """Map each child id to the id of the supernode that owns it.

    Plain nodes are skipped; a child claimed by two supernodes maps to the
    later one.
    """
    child_to_super: dict[str, str] = {}
    for node in nodes:
        if node.type == NodeType.NODE or not node.child_ids:
            continue
        for child_id in node.child_ids:
            child_to_super[child_id] = node.id
    return child_to_super


def define_neighbors(nodes: list[Node], links: Iterable[Link]) -> list[Node]:
    """Recompute every node's neighbor list from a link list.

    Each link whose endpoints both resolve adds the opposite endpoint to
    both nodes. Links with an unresolved endpoint are skipped. Parallel
    links produce repeated entries, so the neighbor list is a multiset.

    Args:
        nodes: Nodes to update in place (callers pass their own copies)
        links: Links defining adjacency

    Returns:
        The same node list, for chaining
    """
    for node in nodes:
        node.neighbors = []

    node_map = map_nodes(nodes)
    for link in links:
        from_node = node_map.get(link.from_id)
        to_node = node_map.get(link.to_id)
        if from_node is not None and to_node is not None:
            from_node.neighbors.append(link.to_id)
            to_node.neighbors.append(link.from_id)

    return nodes
