"""Cache-aware query execution.

Every logical query starts two tasks that race to answer the caller:

* the cache path looks the query up in the result cache, and
* the network path asks the engine and always refreshes the cache.

Both publish into a :class:`ResultSlot`; the first to publish wins and later
publications are ignored. The losing task is never cancelled, so a slow
engine answer still warms the cache for the next caller.
"""
from __future__ import annotations

import asyncio
import logging
from time import perf_counter
from typing import Any, Coroutine, Optional, Set

from .cache import CacheBackend, cache_key
from .config import ANONYMOUS, SessionContext, Settings, StoreView
from .connectivity import ConnectivityProbe
from .es_client import EngineTransport
from .models import ResultEnvelope, SearchRequest, WireQuery
from .normalizer import ResultNormalizer
from .query_builder import QueryBuilder

logger = logging.getLogger(__name__)

PATHS_PER_QUERY = 2


class ResultSlot:
    """Single-assignment result shared by the cache and network paths."""

    def __init__(self, paths: int = PATHS_PER_QUERY) -> None:
        self._future: asyncio.Future[ResultEnvelope] = asyncio.get_running_loop().create_future()
        self._pending = paths

    @property
    def done(self) -> bool:
        return self._future.done()

    def resolve(self, envelope: ResultEnvelope) -> bool:
        if self._future.done():
            return False
        self._future.set_result(envelope)
        return True

    def reject(self, exc: BaseException) -> bool:
        if self._future.done():
            return False
        self._future.set_exception(exc)
        return True

    def path_finished(self) -> None:
        """Mark one path complete; settle the slot once every path gave up."""
        self._pending -= 1
        if self._pending == 0 and self.resolve(ResultEnvelope.offline_empty()):
            logger.debug("No path produced a result, answering offline-empty")

    def __await__(self):
        return self._future.__await__()


def _elapsed_ms(started: float) -> float:
    return (perf_counter() - started) * 1000


class CachedQueryExecutor:
    def __init__(
        self,
        config: Settings,
        cache: CacheBackend,
        transport: EngineTransport,
        probe: ConnectivityProbe,
        builder: Optional[QueryBuilder] = None,
        normalizer: Optional[ResultNormalizer] = None,
    ) -> None:
        self.config = config
        self.cache = cache
        self.transport = transport
        self.probe = probe
        self.builder = builder or QueryBuilder(config)
        self.normalizer = normalizer or ResultNormalizer(config.use_url_keys, config.url_key_field)
        self._tasks: Set[asyncio.Task] = set()

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def drain(self) -> None:
        """Wait for background cache/network work of earlier queries."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def execute_query(
        self,
        request: SearchRequest,
        session: SessionContext = ANONYMOUS,
        store_view: Optional[StoreView] = None,
    ) -> ResultEnvelope:
        store_view = store_view or self.config.store_view()
        prepared = self.builder.build(request, store_view, session)
        key = cache_key(prepared.cacheable)
        slot = ResultSlot()
        started = perf_counter()

        self._spawn(self._cache_path(slot, key, request.entity_type, started))
        self._spawn(self._network_path(slot, key, prepared.on_wire, store_view, started))
        return await slot

    async def _cache_path(self, slot: ResultSlot, key: str, entity_type: str, started: float) -> None:
        try:
            try:
                entry = await self.cache.get(key)
                cached = ResultEnvelope.model_validate(entry) if entry is not None else None
            except Exception as exc:
                logger.warning("Cannot read cache for %s, %s", key, exc)
                return

            online = self.probe.is_online()
            if cached is not None:
                envelope = cached.model_copy(
                    update={"served_from_cache": True, "no_results": False, "is_offline": not online}
                )
                if slot.resolve(envelope):
                    logger.debug("Result from cache for %s (%s), ms=%.2f", key, entity_type, _elapsed_ms(started))
            elif not online:
                if slot.resolve(ResultEnvelope.offline_empty()):
                    logger.debug("No results and offline %s (%s), ms=%.2f", key, entity_type, _elapsed_ms(started))
        finally:
            slot.path_finished()

    async def _network_path(
        self,
        slot: ResultSlot,
        key: str,
        wire: WireQuery,
        store_view: StoreView,
        started: float,
    ) -> None:
        try:
            try:
                raw = await self.transport.execute(wire, store_view)
                # The transport answers None only when this call could not reach the engine.
                online = raw is not None and self.probe.is_online()
                envelope = self.normalizer.normalize(raw, wire.from_, wire.size, online=online)
            except Exception as exc:
                if not slot.reject(exc):
                    logger.debug("Search for %s failed after it was answered: %s", key, exc)
                return

            # Offline for this call: a cache hit or the offline-empty fallback answers.
            if envelope is None:
                return

            if slot.resolve(
                envelope.model_copy(update={"served_from_cache": False, "is_offline": False, "no_results": False})
            ):
                logger.debug("Result from engine for %s (%s), ms=%.2f", key, wire.type, _elapsed_ms(started))

            try:
                await self.cache.set(key, envelope.model_dump())
            except Exception as exc:
                logger.error("Cannot store cache for %s, %s", key, exc)
        finally:
            slot.path_finished()
