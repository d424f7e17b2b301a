"""Conversion of raw engine responses into result envelopes."""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Optional

from unidecode import unidecode

from .errors import EngineError, InvalidResult, UnknownResult
from .models import ResultEnvelope

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")
_NON_WORD_RE = re.compile(r"[^\w-]+", re.ASCII)
_DASHES_RE = re.compile(r"-{2,}")


def slugify(text: Any) -> str:
    """Lowercase ASCII slug, e.g. ``"Red Shoes"`` -> ``"red-shoes"``."""
    value = unidecode(str(text)).lower()
    value = _WHITESPACE_RE.sub("-", value)
    value = value.replace("&", "-and-")
    value = _NON_WORD_RE.sub("", value)
    value = _DASHES_RE.sub("-", value)
    return value.strip("-")


class ResultNormalizer:
    def __init__(self, use_url_keys: bool = False, url_key_field: str = "url_key") -> None:
        self.use_url_keys = use_url_keys
        self.url_key_field = url_key_field

    def item_slug(self, source: Dict[str, Any]) -> str:
        if self.use_url_keys and source.get(self.url_key_field):
            return str(source[self.url_key_field])
        if source.get("name"):
            name_slug = slugify(source["name"])
            if source.get("id") is None:
                return name_slug
            return f"{name_slug}-{source['id']}"
        return ""

    def _item(self, hit: Dict[str, Any]) -> Dict[str, Any]:
        source = dict(hit.get("_source") or {})
        source["_score"] = hit.get("_score")
        source["slug"] = self.item_slug(source)
        return source

    def normalize(
        self,
        raw: Optional[Dict[str, Any]],
        start: int = 0,
        size: int = 50,
        online: bool = True,
    ) -> Optional[ResultEnvelope]:
        if raw is None:
            if online:
                raise InvalidResult()
            # offline: no data, not an error
            return None

        if "hits" in raw:
            hits = raw["hits"] or {}
            total = hits.get("total", 0)
            if isinstance(total, dict):
                total = total.get("value", 0)
            items = [self._item(hit) for hit in (hits.get("hits") or [])[:size]]
            return ResultEnvelope(
                items=items,
                total=total or 0,
                start=start,
                per_page=size,
                aggregations=raw.get("aggregations") or {},
            )

        if raw.get("error"):
            raise EngineError(json.dumps(raw["error"]), {"status": raw.get("status")})
        logger.warning("Unrecognized engine response keys=%s", sorted(raw))
        raise UnknownResult()
