"""Expansion service for interactively opening and closing supernodes.

A supernode in the displayed graph is either collapsed (its children are
absent) or expanded (its children sit immediately after it, in ``CHILDREN``
order). Expanding splices the children in from the flat graph together with
their outgoing flat links, each redirected to the supernode that owns the
link's target. Spliced children are always typed ``node`` and spliced
links ``link``, whatever type the flat records carry. Retracting removes that block and those links again.

The flat graph is never modified; it stays the source of truth for every
expand and retract. All four inputs are deep-copied before use.

An unknown supernode id is not an error: the operation is skipped, a warning
is logged and ``None`` is returned.
"""

import logging
from typing import Union

from aggregraph.models import Graph, Link, Node, NodeType
from aggregraph.services.neighbors import (
    copy_links,
    copy_nodes,
    define_neighbors,
    map_nodes,
    map_super_children,
    process_child_links,
    process_child_nodes,
)
from aggregraph.services.validation import validate_graph

logger = logging.getLogger("aggregraph.expansion")

SupernodeRef = Union[Node, str]


def _ref_id(supernode: SupernodeRef) -> str:
    return supernode if isinstance(supernode, str) else supernode.id


def _find_index(nodes: list[Node], node_id: str) -> int:
    for index, node in enumerate(nodes):
        if node.id == node_id:
            return index
    return -1


def _lookup_supernode(super_dict: dict[str, Node], node_id: str) -> Node | None:
    node = super_dict.get(node_id)
    if node is None or node.type == NodeType.NODE or node.child_ids is None:
        logger.warning(f"Supernode {node_id} not found")
        return None
    return node


def _child_nodes(supernode: Node, child_dict: dict[str, Node]) -> list[Node]:
    """Resolve a supernode's child ids to flat node records, skipping unknown ids"""
    children = []
    for child_id in supernode.child_ids or []:
        child = child_dict.get(child_id)
        if child is None:
            logger.debug(f"Child {child_id} of {supernode.id} not in flat graph")
            continue
        children.append(child)
    return children


def assign_parent_positions(nodes: list[Node], child_to_super: dict[str, str]) -> None:
    """Set ``parentPosition`` on displayed children to their supernode's index"""
    positions: dict[str, int] = {}
    for index, node in enumerate(nodes):
        positions.setdefault(node.id, index)

    for node in nodes:
        if node.type != NodeType.NODE:
            continue
        parent_id = child_to_super.get(node.id)
        if parent_id is not None and parent_id in positions:
            node.parent_position = positions[parent_id]


def is_expanded(nodes: list[Node], supernode_id: str) -> bool:
    """Whether a supernode's children currently follow it in ``nodes``"""
    index = _find_index(nodes, supernode_id)
    if index < 0 or index + 1 >= len(nodes):
        return False
    child_ids = nodes[index].child_ids or []
    return nodes[index + 1].id in child_ids


def expand_super_network(
    flat_nodes: list[Node],
    flat_links: list[Link],
    aggr_nodes: list[Node],
    aggr_links: list[Link],
    supernode: SupernodeRef,
) -> Graph | None:
    """Splice a supernode's children into the displayed graph.

    Args:
        flat_nodes: Nodes of the original, non-aggregated graph
        flat_links: Links of the original, non-aggregated graph
        aggr_nodes: Currently displayed nodes (supernodes and expanded children)
        aggr_links: Currently displayed links
        supernode: The supernode to expand, as a record or an id

    Returns:
        The expanded graph, or None if the supernode is unknown

    Raises:
        InconsistentGraphError: if either input graph has dangling links
    """
    validate_graph(flat_nodes, flat_links, "flat")
    validate_graph(aggr_nodes, aggr_links, "aggregated")

    flat_nodes_copy = process_child_nodes(flat_nodes)
    flat_links_copy = process_child_links(flat_links)
    aggr_nodes_copy = copy_nodes(aggr_nodes)
    aggr_links_copy = copy_links(aggr_links)

    child_dict = map_nodes(flat_nodes_copy)
    super_dict = map_nodes(aggr_nodes_copy)
    child_to_super = map_super_children(aggr_nodes_copy)

    target_id = _ref_id(supernode)
    target = _lookup_supernode(super_dict, target_id)
    if target is None:
        return None

    children = _child_nodes(target, child_dict)
    insert_at = _find_index(aggr_nodes_copy, target_id) + 1
    nodes = aggr_nodes_copy[:insert_at] + children + aggr_nodes_copy[insert_at:]
    assign_parent_positions(nodes, child_to_super)

    # Outgoing flat links of the children, pointed at the owning supernode
    child_ids = set(target.child_ids)
    displayed = {node.id for node in nodes}
    child_links: list[Link] = []
    for link in flat_links_copy:
        if link.from_id not in child_ids:
            continue
        link.to_id = child_to_super.get(link.to_id, link.to_id)
        if link.to_id not in displayed:
            logger.debug(f"Dropping link {link.from_id} -> {link.to_id}: target not displayed")
            continue
        link.sync_endpoints()
        child_links.append(link)

    links = aggr_links_copy + child_links
    define_neighbors(nodes, links)

    logger.debug(f"Expanded {target_id}: {len(children)} nodes, {len(child_links)} links")

    return Graph(nodes=nodes, links=links)


def retract_super_network(
    flat_nodes: list[Node],
    flat_links: list[Link],
    aggr_nodes: list[Node],
    aggr_links: list[Link],
    supernode: SupernodeRef,
) -> Graph | None:
    """Remove an expanded supernode's children from the displayed graph.

    The inverse of ``expand_super_network`` for the same supernode. A
    supernode that is not currently expanded leaves the graph as it is.

    Returns:
        The retracted graph, or None if the supernode is unknown

    Raises:
        InconsistentGraphError: if either input graph has dangling links
    """
    validate_graph(flat_nodes, flat_links, "flat")
    validate_graph(aggr_nodes, aggr_links, "aggregated")

    flat_nodes_copy = process_child_nodes(flat_nodes)
    aggr_nodes_copy = copy_nodes(aggr_nodes)
    aggr_links_copy = copy_links(aggr_links)

    child_dict = map_nodes(flat_nodes_copy)
    super_dict = map_nodes(aggr_nodes_copy)
    child_to_super = map_super_children(aggr_nodes_copy)

    target_id = _ref_id(supernode)
    target = _lookup_supernode(super_dict, target_id)
    if target is None:
        return None

    children = _child_nodes(target, child_dict)
    child_ids = set(target.child_ids)

    # The block is the run of children directly after the supernode
    start = _find_index(aggr_nodes_copy, target_id) + 1
    end = start
    while (
        end < len(aggr_nodes_copy)
        and end - start < len(children)
        and aggr_nodes_copy[end].id in child_ids
    ):
        end += 1
    if end == start:
        logger.debug(f"Supernode {target_id} is not expanded")

    nodes = aggr_nodes_copy[:start] + aggr_nodes_copy[end:]
    assign_parent_positions(nodes, child_to_super)

    links = [link for link in aggr_links_copy if link.from_id not in child_ids]
    define_neighbors(nodes, links)

    logger.debug(
        f"Retracted {target_id}: {end - start} nodes, "
        f"{len(aggr_links_copy) - len(links)} links"
    )

    return Graph(nodes=nodes, links=links)


def toggle_super_network(
    flat_nodes: list[Node],
    flat_links: list[Link],
    aggr_nodes: list[Node],
    aggr_links: list[Link],
    supernode: SupernodeRef,
) -> Graph | None:
    """Expand a collapsed supernode or retract an expanded one"""
    if is_expanded(aggr_nodes, _ref_id(supernode)):
        return retract_super_network(flat_nodes, flat_links, aggr_nodes, aggr_links, supernode)
    return expand_super_network(flat_nodes, flat_links, aggr_nodes, aggr_links, supernode)
