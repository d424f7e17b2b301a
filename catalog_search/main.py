"""FastAPI application wiring the search service."""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from elasticsearch import ApiError, ConnectionTimeout
from elasticsearch import ConnectionError as ESConnectionError
from fastapi import Depends, FastAPI, Header, HTTPException, Query

from .cache import create_cache
from .config import SessionContext, settings
from .connectivity import AlwaysOnline
from .errors import EngineError, InvalidRequest, InvalidResult, UnknownResult
from .es_client import EngineTransport, get_client, resolve_base_url
from .executor import CachedQueryExecutor
from .models import ResultEnvelope, StructuredSearchPayload
from .search import search_by_query, search_by_text

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_LEVEL = logging.getLevelName(settings.log_level.upper())

# Force a predictable logging setup even when run under uvicorn.
logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT, force=True)
for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "elastic_transport"):
    logging.getLogger(name).setLevel(LOG_LEVEL)

logger = logging.getLogger(__name__)
logger.info("Logging configured at %s", settings.log_level.upper())

app = FastAPI(title="Catalog Search Service")

probe = AlwaysOnline()
_executor: Optional[CachedQueryExecutor] = None


def get_executor() -> CachedQueryExecutor:
    if _executor is None:
        raise HTTPException(status_code=503, detail="Search executor is not ready")
    return _executor


def get_session(
    x_group_id: Optional[str] = Header(default=None),
    x_group_token: Optional[str] = Header(default=None),
) -> SessionContext:
    return SessionContext(group_id=x_group_id, group_token=x_group_token)


@app.on_event("startup")
async def startup_event() -> None:
    global _executor
    cache = await create_cache(settings)
    transport = EngineTransport(probe=probe)
    _executor = CachedQueryExecutor(settings, cache, transport, probe)
    logger.info("Search executor ready (cache=%s, index=%s)", cache.name, settings.es_index)


@app.on_event("shutdown")
async def shutdown_event() -> None:
    global _executor
    if _executor is None:
        return
    await _executor.drain()
    await _executor.cache.close()
    _executor = None


def _raise_http(exc: Exception) -> None:
    if isinstance(exc, InvalidRequest):
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if isinstance(exc, (EngineError, InvalidResult, UnknownResult)):
        logger.warning("Search failed: %s", exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    raise exc


@app.get("/health")
async def health(
    executor: CachedQueryExecutor = Depends(get_executor),
    store: Optional[str] = Query(default=None, description="Store view code"),
) -> dict:
    view = settings.store_view(store)
    try:
        es = get_client(resolve_base_url(view.es_host))
        status = await asyncio.to_thread(es.cluster.health)
        engine_status = status.get("status")
    except (ESConnectionError, ConnectionTimeout) as exc:
        logger.warning("Health check could not reach %s: %s", view.es_host, exc)
        engine_status = "unreachable"
    except (ApiError, ValueError) as exc:
        logger.warning("Health check against %s failed: %s", view.es_host, exc)
        engine_status = "error"
    return {
        "elasticsearch": engine_status,
        "index": view.es_index,
        "cache": executor.cache.name,
        "online": executor.probe.is_online(),
    }


@app.get("/search", response_model=ResultEnvelope)
async def search(
    q: str = Query(..., description="Search query"),
    start: int = 0,
    size: int = 50,
    store: Optional[str] = Query(default=None, description="Store view code"),
    executor: CachedQueryExecutor = Depends(get_executor),
) -> ResultEnvelope:
    if not q.strip():
        raise HTTPException(status_code=400, detail="Query must not be empty")
    try:
        return await search_by_text(executor, q, start, size, store_view=settings.store_view(store))
    except (InvalidRequest, EngineError, InvalidResult, UnknownResult) as exc:
        _raise_http(exc)


@app.post("/search/query", response_model=ResultEnvelope)
async def search_query(
    payload: StructuredSearchPayload,
    store: Optional[str] = Query(default=None, description="Store view code"),
    executor: CachedQueryExecutor = Depends(get_executor),
    session: SessionContext = Depends(get_session),
) -> ResultEnvelope:
    try:
        return await search_by_query(
            executor,
            payload.query,
            start=payload.start,
            size=payload.size,
            entity_type=payload.entity_type,
            sort=payload.sort,
            index=payload.index,
            exclude_fields=payload.exclude_fields,
            include_fields=payload.include_fields,
            session=session,
            store_view=settings.store_view(store),
        )
    except (InvalidRequest, EngineError, InvalidResult, UnknownResult) as exc:
        _raise_http(exc)
