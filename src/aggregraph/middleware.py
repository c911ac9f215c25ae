"""Timing and logging for the engine endpoints.

Engine routes describe the graph they return in response headers:
``X-Graph-Nodes`` and ``X-Graph-Links`` on every engine call, plus
``X-Supernode`` on expand, retract and toggle. ``EngineTimingMiddleware``
stamps ``X-Response-Time`` on every response and writes one log line per
engine call from those headers, so a slow expansion can be traced back to
the supernode and graph size that caused it.
"""

import logging
import time
from typing import Callable, Mapping
from urllib.parse import quote

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from aggregraph.models import Graph

logger = logging.getLogger("aggregraph.performance")

NODES_HEADER = "X-Graph-Nodes"
LINKS_HEADER = "X-Graph-Links"
SUPERNODE_HEADER = "X-Supernode"


def annotate_graph_response(
    response: Response,
    graph: Graph,
    supernode_id: str | None = None,
) -> None:
    """Record the size of a returned graph (and the target supernode) in headers."""
    response.headers[NODES_HEADER] = str(len(graph.nodes))
    response.headers[LINKS_HEADER] = str(len(graph.links))
    if supernode_id is not None:
        # Header values must be latin-1; ids are arbitrary text
        response.headers[SUPERNODE_HEADER] = quote(supernode_id, safe="/")


def describe_engine_call(path: str, status_code: int, headers: Mapping[str, str]) -> str:
    """One-line summary of an engine call, e.g. ``expand supernodes/X -> 5 nodes, 6 links``"""
    summary = path.rstrip("/").rsplit("/", 1)[-1]
    supernode = headers.get(SUPERNODE_HEADER)
    if supernode:
        summary += f" {supernode}"

    nodes = headers.get(NODES_HEADER)
    if nodes is None:
        return f"{summary} -> status {status_code}"
    return f"{summary} -> {nodes} nodes, {headers.get(LINKS_HEADER)} links"


class EngineTimingMiddleware(BaseHTTPMiddleware):
    """Times requests and logs engine calls under ``api_prefix``.

    Engine calls slower than ``slow_request_threshold`` seconds are logged
    as warnings; other engine calls at info. Requests outside the engine
    prefix (``/health``, docs) only get the timing header.
    """

    def __init__(
        self,
        app,
        slow_request_threshold: float = 1.0,
        api_prefix: str = "/api",
    ):
        super().__init__(app)
        self.slow_request_threshold = slow_request_threshold
        self.api_prefix = api_prefix

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start_time

        response.headers["X-Response-Time"] = f"{duration:.3f}"

        path = request.url.path
        if not path.startswith(self.api_prefix):
            return response

        summary = describe_engine_call(path, response.status_code, response.headers)
        if duration > self.slow_request_threshold:
            logger.warning(f"Slow engine call: {summary} ({duration:.2f}s)")
        else:
            logger.info(f"Engine call: {summary} ({duration:.3f}s)")

        return response


def setup_logging(log_level: str = "INFO") -> None:
    """Configure root logging and the ``aggregraph`` logger levels.

    Engine call summaries on ``aggregraph.performance`` stay at INFO
    whatever the package level is.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("aggregraph").setLevel(level)
    logging.getLogger("aggregraph.performance").setLevel(logging.INFO)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
