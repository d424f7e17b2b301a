"""Public search entry points used by the API and the CLI."""
from __future__ import annotations

import logging
from time import perf_counter
from typing import Any, Mapping, Optional, Sequence

from .config import ANONYMOUS, SessionContext, StoreView
from .executor import CachedQueryExecutor
from .models import ResultEnvelope, SearchRequest

logger = logging.getLogger(__name__)


async def search_by_query(
    executor: CachedQueryExecutor,
    query: Mapping[str, Any],
    start: int = 0,
    size: int = 50,
    entity_type: str = "product",
    sort: str = "",
    index: Optional[str] = None,
    exclude_fields: Optional[Sequence[str]] = None,
    include_fields: Optional[Sequence[str]] = None,
    session: SessionContext = ANONYMOUS,
    store_view: Optional[StoreView] = None,
) -> ResultEnvelope:
    """Search the catalog with an engine request body, served cache-first."""
    request = SearchRequest(
        query=query,
        start=start,
        size=size,
        entity_type=entity_type,
        sort=sort,
        index=index,
        exclude_fields=exclude_fields,
        include_fields=include_fields,
    )
    return await executor.execute_query(request, session=session, store_view=store_view)


async def search_by_text(
    executor: CachedQueryExecutor,
    query_text: str,
    start: int = 0,
    size: int = 50,
    store_view: Optional[StoreView] = None,
) -> ResultEnvelope:
    """Full-text product search. Always asks the engine; never cached."""
    store_view = store_view or executor.config.store_view()
    wire = executor.builder.build_text(query_text, start, size, store_view)

    t0 = perf_counter()
    raw = await executor.transport.execute(wire, store_view)
    online = raw is not None and executor.probe.is_online()
    envelope = executor.normalizer.normalize(raw, wire.from_, wire.size, online=online)
    took_ms = (perf_counter() - t0) * 1000

    if envelope is None:
        logger.info("search q=%r offline took=%.2fms", query_text, took_ms)
        return ResultEnvelope.offline_empty(served_from_cache=False)
    logger.info("search q=%r hits=%s total=%s took=%.2fms", query_text, len(envelope.items), envelope.total, took_ms)
    return envelope
