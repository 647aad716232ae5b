from __future__ import annotations

"""
FastAPI application for the parts cross-reference resolver.

- ``GET /search?query=...&fuzzy=...`` returns ``{count, results}``
- ``GET /health`` reports whether a snapshot is published
- ``POST /refresh`` rebuilds the snapshot immediately
- Store/build failures surface as HTTP 500 ``{"error": ...}`` while the
  last good snapshot keeps serving
"""

from typing import Optional

from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from .config import (
    REFRESH_INTERVAL_SECONDS,
    ErrorResponse,
    HealthResponse,
    RefreshResponse,
    SearchResponse,
    setup_logging,
)
from .exceptions import CrossRefError
from .graph_index import RefreshScheduler
from .record_store import make_record_store
from .search import CrossReferenceEngine

# =============================================================================
# FastAPI app + startup
# =============================================================================

app = FastAPI(title="parts-xref")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

_engine: Optional[CrossReferenceEngine] = None
_scheduler: Optional[RefreshScheduler] = None


def get_engine() -> CrossReferenceEngine:
    global _engine
    if _engine is None:
        _engine = CrossReferenceEngine(make_record_store())
    return _engine


class EngineFailure(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


@app.exception_handler(EngineFailure)
async def _engine_failure_handler(request: Request, exc: EngineFailure) -> JSONResponse:
    return JSONResponse(status_code=500, content=ErrorResponse(error=exc.message).model_dump())


@app.on_event("startup")
def startup_event() -> None:
    global _scheduler
    setup_logging()
    logger.info("Starting app warmup...")
    engine = get_engine()
    try:
        engine.refresh()
    except CrossRefError as e:
        logger.warning("Initial snapshot build failed, will retry on demand: {}", e)
    _scheduler = RefreshScheduler(engine.index, interval=REFRESH_INTERVAL_SECONDS)
    _scheduler.start()
    logger.info("Warmup complete.")


@app.on_event("shutdown")
def shutdown_event() -> None:
    global _scheduler
    if _scheduler is not None:
        _scheduler.stop()
        _scheduler = None


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    snapshot = get_engine().current_snapshot()
    if snapshot is None:
        return HealthResponse(status="ok", snapshot_loaded=False)
    return HealthResponse(
        status="ok",
        snapshot_loaded=True,
        records=len(snapshot.records),
        identifiers=len(snapshot.record_index),
    )


@app.get("/search", response_model=SearchResponse)
def search(query: str = Query(default=""), fuzzy: bool = Query(default=False)) -> SearchResponse:
    try:
        return get_engine().search(query, fuzzy=fuzzy)
    except CrossRefError as e:
        logger.exception("Search error: {}", e)
        raise EngineFailure("Search failed") from e


@app.post("/refresh", response_model=RefreshResponse)
def refresh() -> RefreshResponse:
    try:
        snapshot = get_engine().refresh()
    except CrossRefError as e:
        logger.exception("Refresh error: {}", e)
        raise EngineFailure("Refresh failed") from e
    return RefreshResponse(
        status="refreshed",
        records=len(snapshot.records),
        identifiers=len(snapshot.record_index),
        edges=snapshot.edge_count,
    )
