"""Schema aggregation service.

Groups nodes into supernodes chosen from a classification hierarchy. The
hierarchy is a schema table mapping each classification key to its parent
key. A node is classified by walking up from its own (normalized) key until
the walk reaches one of the selected labels:

- Keys missing from the table are fuzzy-matched: the first table key, in
  sorted order, whose space-stripped prefix starts the raw key replaces it.
- A key that is itself selected, or whose parent is selected, resolves.
- Walks that are still unresolved after ``lineage_max_depth`` hops, or that
  run off the top of the hierarchy, land in the catch-all supernode.

Only links between two classified nodes survive, redirected to run between
their supernodes.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Mapping, Union

from aggregraph.config import settings
from aggregraph.models import Graph, Link, LinkType, Node, NodeType
from aggregraph.services.aggregation import supernode_id
from aggregraph.services.neighbors import (
    copy_nodes,
    define_neighbors,
    map_super_children,
)
from aggregraph.services.validation import validate_graph

logger = logging.getLogger("aggregraph.schema")


@dataclass(frozen=True)
class Resolved:
    """Lineage walk reached a selected label."""
    label: str
    hops: int


@dataclass(frozen=True)
class Unresolved:
    """Lineage walk gave up; ``key`` is where it stopped."""
    key: str | None
    hops: int


LineageResult = Union[Resolved, Unresolved]


def normalize_classification(value: object) -> str:
    """Upper-case and trim a raw classification value"""
    return str(value).upper().strip()


def fuzzy_match(
    key: str,
    schema_table: Mapping[str, str | None],
    prefix_length: int | None = None,
) -> str:
    """Substitute a table key for a key the table does not know.

    Returns ``key`` unchanged when it is in the table or nothing matches.
    """
    if key in schema_table:
        return key

    if prefix_length is None:
        prefix_length = settings.fuzzy_prefix_length

    for candidate in sorted(schema_table):
        prefix = candidate.replace(" ", "")[:prefix_length]
        if prefix and key.startswith(prefix):
            logger.debug(f"Fuzzy matched {key!r} to schema key {candidate!r}")
            return candidate
    return key


def resolve_lineage(
    key: str,
    schema_table: Mapping[str, str | None],
    selected: Iterable[str],
    max_depth: int | None = None,
) -> LineageResult:
    """Walk up the hierarchy from ``key`` to the nearest selected label.

    Args:
        key: Normalized classification key of the node
        schema_table: Mapping of classification key to parent key
        selected: Labels that have supernodes
        max_depth: Hop budget (default ``settings.lineage_max_depth``)

    Returns:
        ``Resolved`` with the label and the number of hops taken, or
        ``Unresolved`` when the budget ran out or the hierarchy ended
    """
    if max_depth is None:
        max_depth = settings.lineage_max_depth
    selected = set(selected)

    current: str | None = key
    for hops in range(max_depth + 1):
        if not current:
            return Unresolved(current, hops)

        current = fuzzy_match(current, schema_table)
        if current in selected:
            return Resolved(current, hops)

        parent = schema_table.get(current)
        if parent in selected:
            return Resolved(parent, hops)

        current = parent

    return Unresolved(current, max_depth)


def make_schema_supernode(label: str) -> Node:
    """Create an empty supernode for one schema label"""
    return Node(
        id=supernode_id(label),
        document_key=label,
        type=NodeType.SUPERNODE,
        child_ids=[],
        neighbors=[],
        Label=label,
    )


def schema_graph(
    nodes: list[Node],
    links: list[Link],
    selected_labels: list[str],
    schema_table: Mapping[str, str | None],
    label_field: str,
) -> Graph:
    """Build a supergraph from a classification hierarchy.

    Args:
        nodes: Flat node list
        links: Flat link list
        selected_labels: Hierarchy labels to group by
        schema_table: Mapping of classification key to parent key
        label_field: Node attribute holding the raw classification

    Returns:
        Graph of non-empty schema supernodes and the ``superLink`` links
        between them; each kept link records its original endpoints in
        ``sourceID``/``targetID``

    Raises:
        InconsistentGraphError: if a link references a missing node
    """
    validate_graph(nodes, links, "flat")

    catch_all = settings.catch_all_label
    labels = list(dict.fromkeys(selected_labels))
    selected = set(labels)
    if catch_all not in selected:
        labels.append(catch_all)
    super_map = {label: make_schema_supernode(label) for label in labels}

    unresolved = 0
    for node in copy_nodes(nodes):
        raw = node.get(label_field)
        if not raw:
            continue
        key = normalize_classification(raw)
        if not key:
            continue

        result = resolve_lineage(key, schema_table, selected)
        if isinstance(result, Resolved):
            super_map[result.label].child_ids.append(node.id)
        else:
            unresolved += 1
            super_map[catch_all].child_ids.append(node.id)

    if unresolved:
        logger.info(f"{unresolved} node(s) fell back to the {catch_all!r} group")

    final_nodes = [node for node in super_map.values() if node.child_ids]
    child_to_super = map_super_children(final_nodes)

    schema_links: list[Link] = []
    for link in links:
        from_super = child_to_super.get(link.from_id)
        to_super = child_to_super.get(link.to_id)
        if from_super is None or to_super is None:
            continue

        new_link = link.model_copy(deep=True)
        new_link.original_source = link.from_id
        new_link.original_target = link.to_id
        new_link.from_id = from_super
        new_link.to_id = to_super
        new_link.type = LinkType.SUPER_LINK
        new_link.sync_endpoints()
        schema_links.append(new_link)

    define_neighbors(final_nodes, schema_links)

    logger.debug(
        f"Schema graph: {len(final_nodes)} supernodes, "
        f"{len(schema_links)} of {len(links)} links kept"
    )

    return Graph(nodes=final_nodes, links=schema_links)
