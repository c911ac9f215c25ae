"""aggregraph - supernode aggregation engine for adjacency-matrix views"""

from fastapi import FastAPI

from aggregraph.config import settings
from aggregraph.middleware import EngineTimingMiddleware, setup_logging
from aggregraph.routes import api

setup_logging(settings.log_level)

app = FastAPI(
    title="aggregraph",
    description="Graph aggregation, expansion and retraction for matrix views",
    version="0.1.0",
    debug=settings.debug,
)

app.add_middleware(
    EngineTimingMiddleware,
    slow_request_threshold=settings.slow_request_threshold,
    api_prefix=api.router.prefix,
)

app.include_router(api.router)


@app.get("/health")
async def health():
    """Health check endpoint"""
    return {"status": "ok"}
