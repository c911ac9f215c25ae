"""Referential integrity checks for graphs entering the engine.

The engine assumes every link endpoint names a node in the accompanying
node list. These checks run at the boundary of each public operation so a
dangling reference fails loudly instead of leaking into the output.
"""

import logging
from dataclasses import dataclass
from typing import Iterable

from aggregraph.config import settings
from aggregraph.models import Link, Node

logger = logging.getLogger("aggregraph.validation")


@dataclass(frozen=True)
class DanglingEndpoint:
    """A link endpoint that names no node in the node list."""
    link_index: int
    endpoint: str  # "_from" or "_to"
    node_id: str


class InconsistentGraphError(ValueError):
    """Raised when a link list references ids absent from its node list."""

    def __init__(self, graph_name: str, dangling: list[DanglingEndpoint]):
        self.graph_name = graph_name
        self.dangling = dangling
        preview = ", ".join(
            f"link[{d.link_index}].{d.endpoint}={d.node_id!r}" for d in dangling[:5]
        )
        more = f" (+{len(dangling) - 5} more)" if len(dangling) > 5 else ""
        super().__init__(
            f"{graph_name} graph has {len(dangling)} dangling link endpoint(s): "
            f"{preview}{more}"
        )


def find_dangling_endpoints(
    nodes: Iterable[Node],
    links: Iterable[Link],
) -> list[DanglingEndpoint]:
    """List every link endpoint that does not resolve to a node."""
    node_ids = {node.id for node in nodes}
    dangling: list[DanglingEndpoint] = []
    for index, link in enumerate(links):
        if link.from_id not in node_ids:
            dangling.append(DanglingEndpoint(index, "_from", link.from_id))
        if link.to_id not in node_ids:
            dangling.append(DanglingEndpoint(index, "_to", link.to_id))
    return dangling


def validate_graph(
    nodes: list[Node],
    links: list[Link],
    graph_name: str = "input",
) -> None:
    """Check that every link endpoint resolves to a node.

    Does nothing when ``settings.validate_inputs`` is off.

    Raises:
        InconsistentGraphError: if any endpoint is dangling
    """
    if not settings.validate_inputs:
        return

    dangling = find_dangling_endpoints(nodes, links)
    if dangling:
        logger.warning(
            f"Rejecting {graph_name} graph: {len(dangling)} dangling endpoint(s)"
        )
        raise InconsistentGraphError(graph_name, dangling)
