"""Application configuration, store views and per-request session context."""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, Optional

logger = logging.getLogger(__name__)


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name)
    return value if value is not None else default


def _get_flag(name: str, default: str) -> bool:
    return _get_env(name, default).lower() in {"1", "true", "yes"}


@dataclass(frozen=True)
class StoreView:
    """Engine coordinates of a single store view."""

    code: str
    es_host: str
    es_index: str


@dataclass(frozen=True)
class SessionContext:
    """Pricing identity of the shopper issuing a query.

    ``group_id`` takes part in the cache key, ``group_token`` is short-lived
    and only ever sent on the wire.
    """

    group_id: Optional[str] = None
    group_token: Optional[str] = None


ANONYMOUS = SessionContext()


def _parse_store_views(raw: str) -> Dict[str, StoreView]:
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("STORE_VIEWS is not valid JSON; ignoring it")
        return {}
    views: Dict[str, StoreView] = {}
    for code, view in data.items():
        views[code] = StoreView(code=code, es_host=view["es_host"], es_index=view["es_index"])
    return views


@dataclass(frozen=True)
class Settings:
    """Simple settings container with environment variable overrides."""

    es_host: str = _get_env("ES_HOST", "http://localhost:9200")
    es_index: str = _get_env("ES_INDEX", "vue_storefront_catalog")
    default_store_code: str = _get_env("DEFAULT_STORE_CODE", "default")
    redis_host: str = _get_env("REDIS_HOST", "localhost")
    redis_port: int = int(_get_env("REDIS_PORT", "6379"))
    redis_db: int = int(_get_env("REDIS_DB", "0"))
    cache_backend: str = _get_env("CACHE_BACKEND", "redis")
    cache_namespace: str = _get_env("CACHE_NAMESPACE", "elasticCache")
    use_price_tiers: bool = _get_flag("USE_PRICE_TIERS", "false")
    use_url_keys: bool = _get_flag("USE_URL_KEYS", "false")
    url_key_field: str = _get_env("URL_KEY_FIELD", "url_key")
    default_page_size: int = int(_get_env("DEFAULT_PAGE_SIZE", "50"))
    log_level: str = _get_env("LOG_LEVEL", "INFO")
    store_views: Dict[str, StoreView] = field(
        default_factory=lambda: _parse_store_views(_get_env("STORE_VIEWS", ""))
    )

    def default_store_view(self) -> StoreView:
        return StoreView(code=self.default_store_code, es_host=self.es_host, es_index=self.es_index)

    def store_view(self, code: Optional[str] = None) -> StoreView:
        """Return the configured view for ``code``, falling back to the default one."""
        if code and code in self.store_views:
            return self.store_views[code]
        return self.default_store_view()


settings = Settings()
