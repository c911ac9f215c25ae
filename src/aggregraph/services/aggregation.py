"""Attribute aggregation service.

Collapses a flat graph into a supergraph: every distinct value of a chosen
node attribute becomes one supernode whose ``CHILDREN`` lists the member
node ids, and links are rewritten to run between supernodes.

The result shows supernodes plus any nodes that no supernode absorbed.
Because every node carries some value for the attribute (a missing
attribute groups under ``None``), in practice every node is absorbed.
"""

import logging
from typing import Any

from aggregraph.config import settings
from aggregraph.models import Graph, Link, LinkType, Node, NodeType
from aggregraph.services.neighbors import (
    copy_links,
    define_neighbors,
    map_super_children,
)
from aggregraph.services.validation import validate_graph

logger = logging.getLogger("aggregraph.aggregation")


def supernode_id(group_key: Any) -> str:
    """Deterministic supernode id for a group key"""
    return f"{settings.supernode_prefix}{group_key}"


def make_attribute_supernode(group_key: Any) -> Node:
    """Create an empty supernode for one attribute value"""
    return Node(
        id=supernode_id(group_key),
        document_key=str(group_key),
        type=NodeType.SUPERNODE,
        child_ids=[],
        neighbors=[],
        GROUP=group_key,
    )


def super_graph(nodes: list[Node], links: list[Link], attribute: str) -> Graph:
    """Build a supergraph grouping nodes by one attribute.

    Args:
        nodes: Flat node list
        links: Flat link list
        attribute: Node attribute whose values define the groups

    Returns:
        Graph of supernodes (one per distinct value, in order of first
        appearance) and ``superLink`` links between them

    Raises:
        InconsistentGraphError: if a link references a missing node
    """
    validate_graph(nodes, links, "flat")

    new_nodes: list[Node] = []
    for node in nodes:
        copy = node.model_copy(deep=True)
        copy.neighbors = []
        copy.type = NodeType.NODE
        new_nodes.append(copy)

    # Keyed by supernode id so values with the same text share one supernode
    super_map: dict[str, Node] = {}
    for node in new_nodes:
        value = node.get(attribute)
        key = supernode_id(value)
        if key not in super_map:
            super_map[key] = make_attribute_supernode(value)
        super_map[key].child_ids.append(node.id)

    super_nodes = list(super_map.values())
    child_to_super = map_super_children(super_nodes)

    new_links = copy_links(links)
    for link in new_links:
        link.type = LinkType.SUPER_LINK
        link.from_id = child_to_super.get(link.from_id, link.from_id)
        link.to_id = child_to_super.get(link.to_id, link.to_id)
        link.sync_endpoints()

    # Filter the flat copies only; a supernode id may equal a child id
    final_nodes = super_nodes + [node for node in new_nodes if node.id not in child_to_super]
    define_neighbors(final_nodes, new_links)

    logger.debug(
        f"Grouped {len(new_nodes)} nodes by {attribute!r} into "
        f"{len(super_nodes)} supernodes"
    )

    return Graph(nodes=final_nodes, links=new_links)
