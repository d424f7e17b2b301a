"""Elasticsearch client factory and search transport.

The rest of the code works against the official synchronous client. Blocking
calls are wrapped via ``asyncio.to_thread``.
"""
from __future__ import annotations

import asyncio
import json
import logging
from functools import lru_cache
from typing import Any, Callable, Dict, Optional
from urllib.parse import quote, urlencode

from elasticsearch import ApiError, ConnectionTimeout, Elasticsearch
from elasticsearch import ConnectionError as ESConnectionError

from .config import StoreView
from .connectivity import AlwaysOnline, ConnectivityProbe
from .errors import EngineError, InvalidRequest
from .models import WireQuery

logger = logging.getLogger(__name__)

SEARCH_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
}


def resolve_base_url(host: str) -> str:
    url = host.strip()
    if not url.startswith("/") and "://" not in url:
        url = "http://" + url
    return url.rstrip("/")


@lru_cache(maxsize=None)
def get_client(base_url: str) -> Elasticsearch:
    logger.info("Connecting to Elasticsearch at %s", base_url)
    return Elasticsearch(base_url)


def build_search_path(wire: WireQuery) -> str:
    if not wire.index or not wire.type:
        raise InvalidRequest(
            "index and type are required arguments for executing a search query",
            {"index": wire.index, "type": wire.type},
        )
    path = f"/{quote(wire.index, safe='')}/{quote(wire.type, safe='')}/_search"
    return f"{path}?{urlencode(wire.query_params(), quote_via=quote)}"


class EngineTransport:
    """Executes wire queries and degrades connectivity loss to ``None``."""

    def __init__(
        self,
        probe: Optional[ConnectivityProbe] = None,
        client_factory: Callable[[str], Elasticsearch] = get_client,
    ) -> None:
        self.probe = probe or AlwaysOnline()
        self.client_factory = client_factory

    def _post(self, store_view: StoreView, target: str, body: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        es = self.client_factory(resolve_base_url(store_view.es_host))
        response = es.perform_request("POST", target, headers=SEARCH_HEADERS, body=body)
        return response.body or {}

    async def execute(self, wire: WireQuery, store_view: StoreView) -> Optional[Dict[str, Any]]:
        target = build_search_path(wire)
        try:
            response = await asyncio.to_thread(self._post, store_view, target, wire.body)
        except (ESConnectionError, ConnectionTimeout) as exc:
            logger.error("Offline mode %s", exc)
            return None
        except ApiError as exc:
            # Error payloads are handed to the normalizer like any other answer.
            if isinstance(exc.body, dict):
                return exc.body
            raise EngineError(str(exc)) from exc
        except Exception as exc:
            if not self.probe.is_online():
                logger.error("Offline mode %s", exc)
                return None
            raise EngineError(json.dumps({"reason": str(exc), "type": type(exc).__name__})) from exc
        return response
