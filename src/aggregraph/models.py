"""Pydantic models for aggregraph

Nodes and links are open records: any domain attribute not declared here is
kept as an extra field and passed through every transformation untouched.
Declared fields use their wire names as aliases (``_from``, ``CHILDREN``,
``parentPosition`` ...), so dumps should use ``by_alias=True``.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class NodeType(str, Enum):
    """Role of a node in an aggregated graph"""

    NODE = "node"
    SUPERNODE = "supernode"


class LinkType(str, Enum):
    """Role of a link in an aggregated graph"""

    LINK = "link"
    SUPER_LINK = "superLink"


class Record(BaseModel):
    """Base for graph records carrying ArangoDB document fields"""

    model_config = ConfigDict(
        extra="allow",
        populate_by_name=True,
        use_enum_values=True,
        validate_assignment=True,
    )

    document_key: str | None = Field(default=None, alias="_key")
    document_id: str | None = Field(default=None, alias="_id")
    document_rev: str | None = Field(default=None, alias="_rev")

    def get(self, key: str, default: Any = None) -> Any:
        """Read a value by field name, wire alias, or extra attribute name."""
        for name, info in type(self).model_fields.items():
            if key == name or key == info.alias:
                return getattr(self, name)
        return (self.model_extra or {}).get(key, default)


class Node(Record):
    """A node or supernode in the graph"""

    id: str
    type: NodeType | None = None
    neighbors: list[str] = Field(default_factory=list)
    child_ids: list[str] | None = Field(default=None, alias="CHILDREN")
    parent_position: int | None = Field(default=None, alias="parentPosition")


class Link(Record):
    """A link between two nodes

    ``from_id``/``to_id`` are the canonical endpoints; ``source``/``target``
    mirror them for the display layer.
    """

    from_id: str = Field(alias="_from")
    to_id: str = Field(alias="_to")
    source: Any = None
    target: Any = None
    original_source: str | None = Field(default=None, alias="sourceID")
    original_target: str | None = Field(default=None, alias="targetID")
    type: LinkType | None = None

    def sync_endpoints(self) -> None:
        """Point the display endpoints at the canonical ones."""
        self.source = self.from_id
        self.target = self.to_id


class Graph(BaseModel):
    """A node list with its accompanying link list"""

    nodes: list[Node] = Field(default_factory=list)
    links: list[Link] = Field(default_factory=list)

    def node_ids(self) -> list[str]:
        return [node.id for node in self.nodes]
