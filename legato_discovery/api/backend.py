"""
FastAPI Backend for Legato Discovery

Thin HTTP adapter over the DiscoveryOrchestrator. Every route forwards the
request body to one orchestrator operation and returns its envelope;
failures are mapped to 400 (validation), 404 (not found) or 500
(computation).
"""

import os
import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional

import structlog
from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from .. import __version__
from ..models.errors import ErrorKind
from ..models.results import EngineResult, Failure
from ..services.discovery_orchestrator import DiscoveryOrchestrator
from ..utils.logging_config import setup_logging
from .logging_middleware import LoggingMiddleware

logger = structlog.get_logger(__name__)

# Global orchestrator, owned by the lifespan
orchestrator: Optional[DiscoveryOrchestrator] = None

STATUS_CODES = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.COMPUTATION: 500,
}


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def build_orchestrator_from_env() -> DiscoveryOrchestrator:
    """Create an orchestrator from LEGATO_* environment variables."""
    options: Dict[str, Any] = {"enableCaching": _env_flag("LEGATO_ENABLE_CACHING")}
    ttl = os.getenv("LEGATO_CHART_CACHE_TTL")
    if ttl:
        options["chartCacheTTL"] = int(ttl)

    return DiscoveryOrchestrator(
        config=options,
        cache_dir=os.getenv("LEGATO_CACHE_DIR") or None
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown."""
    global orchestrator

    load_dotenv()
    setup_logging(
        log_dir=os.getenv("LEGATO_LOG_DIR", "logs") or None,
        log_level=os.getenv("LOG_LEVEL", "INFO")
    )

    logger.info("Initializing Legato discovery orchestrator")
    orchestrator = build_orchestrator_from_env()
    orchestrator.initialize()
    logger.info("Legato discovery orchestrator ready")

    yield

    logger.info("Shutting down Legato discovery orchestrator")
    orchestrator.shutdown()
    orchestrator = None


app = FastAPI(
    title="Legato Discovery API",
    description="Charts, recommendations, collaboration matching and search for Legato",
    version=__version__,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(LoggingMiddleware, exclude_paths=["/health", "/docs", "/openapi.json"])


# Request Models

class ApiRequest(BaseModel):
    """Base request body; accepts camelCase or snake_case keys."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class TrendingRequest(ApiRequest):
    song: Dict[str, Any]
    now: Optional[datetime] = None


class ChartRequest(ApiRequest):
    songs: List[Dict[str, Any]] = Field(default_factory=list)
    users: List[Dict[str, Any]] = Field(default_factory=list)
    params: Optional[Dict[str, Any]] = None
    now: Optional[datetime] = None


class UserSnapshotRequest(ApiRequest):
    songs: List[Dict[str, Any]] = Field(default_factory=list)
    users: List[Dict[str, Any]] = Field(default_factory=list)
    interactions: List[Dict[str, Any]] = Field(default_factory=list)
    now: Optional[datetime] = None
    limit: Optional[int] = None


class SearchRequest(ApiRequest):
    query: str = ""
    songs: List[Dict[str, Any]] = Field(default_factory=list)
    users: List[Dict[str, Any]] = Field(default_factory=list)
    filters: Optional[Dict[str, Any]] = None
    now: Optional[datetime] = None
    limit: Optional[int] = None
    offset: int = 0


class AutocompleteRequest(ApiRequest):
    prefix: str
    field: str
    songs: List[Dict[str, Any]] = Field(default_factory=list)
    users: List[Dict[str, Any]] = Field(default_factory=list)
    limit: Optional[int] = None


def get_orchestrator() -> DiscoveryOrchestrator:
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="Discovery orchestrator not available")
    return orchestrator


def respond(result: EngineResult) -> JSONResponse:
    """Serialize an engine result, mapping failures to HTTP status codes."""
    status_code = 200
    if isinstance(result, Failure):
        status_code = STATUS_CODES[result.error_kind]
    return JSONResponse(status_code=status_code, content=result.to_envelope())


# API Endpoints

@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy" if orchestrator is not None else "starting",
        "timestamp": time.time(),
        "version": __version__,
    }


@app.get("/status")
def system_status():
    """Orchestrator readiness and public configuration."""
    return get_orchestrator().get_system_status().to_dict()


@app.post("/trending")
def calculate_trending(request: TrendingRequest):
    return respond(get_orchestrator().calculate_trending_score(request.song, request.now))


@app.post("/charts")
def all_charts(request: ChartRequest):
    return respond(get_orchestrator().get_all_charts(request.songs, request.users, request.now))


@app.post("/charts/{kind}")
def chart(kind: str, request: ChartRequest):
    return respond(
        get_orchestrator().get_chart(kind, request.songs, request.users, request.params, request.now)
    )


@app.post("/users/{user_id}/profile")
def user_profile(user_id: str, request: UserSnapshotRequest):
    return respond(
        get_orchestrator().build_user_profile(
            user_id, request.users, request.interactions, request.songs, request.now
        )
    )


@app.post("/users/{user_id}/recommendations")
def recommendations(user_id: str, request: UserSnapshotRequest):
    return respond(
        get_orchestrator().get_personalized_recommendations(
            user_id, request.songs, request.users, request.interactions, request.now, request.limit
        )
    )


@app.post("/users/{user_id}/collaboration-opportunities")
def collaboration_opportunities(user_id: str, request: UserSnapshotRequest):
    return respond(
        get_orchestrator().get_collaboration_opportunities(
            user_id, request.songs, request.users, request.interactions, request.now, request.limit
        )
    )


@app.post("/search/{kind}")
def search(kind: str, request: SearchRequest):
    return respond(
        get_orchestrator().search(
            kind,
            request.query,
            request.songs,
            request.users,
            request.filters,
            request.now,
            request.limit,
            request.offset
        )
    )


@app.post("/autocomplete")
def autocomplete(request: AutocompleteRequest):
    return respond(
        get_orchestrator().get_autocomplete_suggestions(
            request.prefix, request.field, request.songs, request.users, request.limit
        )
    )


@app.patch("/config")
def update_config(options: Dict[str, Any]):
    return respond(get_orchestrator().update_config(options))


@app.delete("/cache")
def clear_cache():
    removed = get_orchestrator().clear_all_caches()
    return {"success": True, "data": {"removed": removed}}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "legato_discovery.api.backend:app",
        host=os.getenv("LEGATO_HOST", "0.0.0.0"),
        port=int(os.getenv("LEGATO_PORT", "8000")),
        reload=False
    )
