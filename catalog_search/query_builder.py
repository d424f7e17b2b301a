"""Turns logical search requests into wire queries."""
from __future__ import annotations

import copy
import logging
from typing import Optional, Sequence, Tuple

from .config import ANONYMOUS, SessionContext, Settings, StoreView
from .models import PreparedQuery, SearchRequest, WireQuery

logger = logging.getLogger(__name__)

GROUP_ID_FIELD = "groupId"
GROUP_TOKEN_FIELD = "groupToken"


def normalize_paging(start: int, size: int, default_size: int = 50) -> Tuple[int, int]:
    if size <= 0:
        size = default_size
    if start < 0:
        start = 0
    return start, size


def _fields(values: Optional[Sequence[str]]) -> Optional[tuple[str, ...]]:
    if not values:
        return None
    return tuple(values)


class QueryBuilder:
    def __init__(self, config: Settings) -> None:
        self.config = config

    def build(
        self,
        request: SearchRequest,
        store_view: StoreView,
        session: SessionContext = ANONYMOUS,
    ) -> PreparedQuery:
        """Build the cacheable and on-wire views of ``request``.

        The cacheable view carries the pricing group id so that shoppers of
        different groups never share entries. The on-wire view drops it and
        carries the short-lived group token instead.
        """
        start, size = normalize_paging(request.start, request.size, self.config.default_page_size)

        body = copy.deepcopy(dict(request.query))
        if self.config.use_price_tiers and request.entity_type == "product" and session.group_id:
            body[GROUP_ID_FIELD] = session.group_id

        cacheable = WireQuery(
            index=request.index or store_view.es_index,
            type=request.entity_type,
            body=body,
            size=size,
            from_=start,
            sort=request.sort,
            source_exclude=_fields(request.exclude_fields),
            source_include=_fields(request.include_fields),
        )

        wire_body = {key: value for key, value in body.items() if key != GROUP_ID_FIELD}
        if self.config.use_price_tiers and session.group_token:
            wire_body[GROUP_TOKEN_FIELD] = session.group_token
        on_wire = cacheable.with_body(wire_body)

        logger.debug("Built query index=%s type=%s from=%s size=%s", cacheable.index, cacheable.type, start, size)
        return PreparedQuery(cacheable=cacheable, on_wire=on_wire)

    def build_text(self, query_text: str, start: int, size: int, store_view: StoreView) -> WireQuery:
        start, size = normalize_paging(start, size, self.config.default_page_size)
        return WireQuery(
            index=store_view.es_index,
            type="product",
            size=size,
            from_=start,
            sort=None,
            q=query_text,
        )
