"""Shared fakes for the cache and engine collaborators."""
from __future__ import annotations

import asyncio
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest

from catalog_search.cache import InMemoryCache
from catalog_search.config import Settings, StoreView
from catalog_search.connectivity import ManualConnectivity
from catalog_search.errors import CacheError
from catalog_search.executor import CachedQueryExecutor
from catalog_search.models import WireQuery


def engine_response(*hits: Dict[str, Any], total: Any = None, aggregations: Optional[dict] = None) -> dict:
    response: Dict[str, Any] = {
        "hits": {
            "total": len(hits) if total is None else total,
            "hits": [{"_source": dict(source), "_score": 1.0} for source in hits],
        }
    }
    if aggregations is not None:
        response["aggregations"] = aggregations
    return response


class FakeElasticsearch:
    """Synchronous client stand-in; raises queued errors before answering."""

    def __init__(self, body: Any = None, *errors: Exception) -> None:
        self.body = body
        self.errors = list(errors)
        self.requests: List[tuple] = []

    def perform_request(self, method, path, *, headers=None, body=None):
        self.requests.append((method, path, headers, body))
        if self.errors:
            raise self.errors.pop(0)
        return SimpleNamespace(body=self.body)


class FakeTransport:
    """Answers every query with a canned response, optionally gated on an event."""

    def __init__(self, response: Any = None, error: Optional[Exception] = None) -> None:
        self.response = response
        self.error = error
        self.gate: Optional[asyncio.Event] = None
        self.calls: List[WireQuery] = []

    async def execute(self, wire: WireQuery, store_view: StoreView) -> Any:
        self.calls.append(wire)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.response


class FlakyCache(InMemoryCache):
    """In-memory cache whose reads and/or writes can be made to fail or stall."""

    def __init__(self, fail_get: bool = False, fail_set: bool = False) -> None:
        super().__init__()
        self.fail_get = fail_get
        self.fail_set = fail_set
        self.get_gate: Optional[asyncio.Event] = None
        self.writes: List[str] = []

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        if self.get_gate is not None:
            await self.get_gate.wait()
        if self.fail_get:
            raise CacheError("get", "store unavailable")
        return await super().get(key)

    async def set(self, key: str, value: Dict[str, Any]) -> None:
        self.writes.append(key)
        if self.fail_set:
            raise CacheError("set", "store unavailable")
        await super().set(key, value)


@pytest.fixture
def config() -> Settings:
    return Settings(es_host="localhost:9200", es_index="catalog", use_price_tiers=True, store_views={})


@pytest.fixture
def connectivity() -> ManualConnectivity:
    return ManualConnectivity(online=True)


@pytest.fixture
def cache() -> FlakyCache:
    return FlakyCache()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport(engine_response({"id": 42, "name": "Red Shoes"}, {"id": 7, "name": "Blue Hat"}))


@pytest.fixture
def executor(config, cache, transport, connectivity) -> CachedQueryExecutor:
    return CachedQueryExecutor(config, cache, transport, connectivity)
