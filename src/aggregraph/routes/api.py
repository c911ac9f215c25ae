"""JSON API routes for graph aggregation and supernode expansion.

This module provides REST API endpoints for:
- Building an attribute supergraph from a flat graph
- Building a schema supergraph from a classification hierarchy
- Expanding, retracting and toggling a supernode in a displayed graph

Request and response graphs use the wire field names (``_from``, ``_to``,
``CHILDREN``, ``parentPosition``). Every engine response also
carries the returned graph size (and the target supernode) in headers for
the timing middleware.
"""

import logging

from fastapi import APIRouter, HTTPException, Response
from pydantic import BaseModel, Field

from aggregraph.middleware import annotate_graph_response
from aggregraph.models import Graph, Link, Node
from aggregraph.services import aggregation
from aggregraph.services import expansion
from aggregraph.services import schema
from aggregraph.services.validation import InconsistentGraphError

logger = logging.getLogger("aggregraph.api")

router = APIRouter(prefix="/api", tags=["api"])


# =============================================================================
# Request Models
# =============================================================================


class SuperGraphRequest(BaseModel):
    """Request body for attribute aggregation."""
    nodes: list[Node] = Field(default_factory=list)
    links: list[Link] = Field(default_factory=list)
    attribute: str


class SchemaGraphRequest(BaseModel):
    """Request body for schema aggregation."""
    nodes: list[Node] = Field(default_factory=list)
    links: list[Link] = Field(default_factory=list)
    selected_labels: list[str]
    schema_table: dict[str, str | None]
    label_field: str


class ExpansionRequest(BaseModel):
    """Request body for expand, retract and toggle."""
    flat: Graph
    aggregated: Graph
    supernode_id: str


def _inconsistent(error: InconsistentGraphError) -> HTTPException:
    return HTTPException(status_code=422, detail=str(error))


# =============================================================================
# Aggregation Endpoints
# =============================================================================


@router.post("/supergraph", response_model=Graph)
async def build_supergraph(request: SuperGraphRequest, response: Response) -> Graph:
    """Group a flat graph into supernodes by one node attribute."""
    try:
        graph = aggregation.super_graph(request.nodes, request.links, request.attribute)
    except InconsistentGraphError as e:
        raise _inconsistent(e)

    annotate_graph_response(response, graph)
    return graph


@router.post("/schema-graph", response_model=Graph)
async def build_schema_graph(request: SchemaGraphRequest, response: Response) -> Graph:
    """Group a flat graph into supernodes chosen from a classification hierarchy."""
    try:
        graph = schema.schema_graph(
            request.nodes,
            request.links,
            request.selected_labels,
            request.schema_table,
            request.label_field,
        )
    except InconsistentGraphError as e:
        raise _inconsistent(e)

    annotate_graph_response(response, graph)
    return graph


# =============================================================================
# Expansion Endpoints
# =============================================================================


def _run_expansion(operation, request: ExpansionRequest, response: Response) -> Graph:
    """Apply an expansion operation; an unknown supernode leaves the graph as is."""
    try:
        result = operation(
            request.flat.nodes,
            request.flat.links,
            request.aggregated.nodes,
            request.aggregated.links,
            request.supernode_id,
        )
    except InconsistentGraphError as e:
        raise _inconsistent(e)

    if result is None:
        logger.info(f"Unknown supernode {request.supernode_id}, graph left unchanged")
        result = request.aggregated

    annotate_graph_response(response, result, request.supernode_id)
    return result


@router.post("/expand", response_model=Graph)
async def expand_supernode(request: ExpansionRequest, response: Response) -> Graph:
    """Show a supernode's children after it in the displayed graph."""
    return _run_expansion(expansion.expand_super_network, request, response)


@router.post("/retract", response_model=Graph)
async def retract_supernode(request: ExpansionRequest, response: Response) -> Graph:
    """Hide a supernode's children again."""
    return _run_expansion(expansion.retract_super_network, request, response)


@router.post("/toggle", response_model=Graph)
async def toggle_supernode(request: ExpansionRequest, response: Response) -> Graph:
    """Expand a collapsed supernode or retract an expanded one."""
    return _run_expansion(expansion.toggle_super_network, request, response)
