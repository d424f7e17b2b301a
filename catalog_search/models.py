"""Request, wire and response models."""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, List, Mapping, Optional, Sequence

from pydantic import BaseModel, Field, model_validator


@dataclass(frozen=True)
class SearchRequest:
    """A logical catalog query as issued by the storefront."""

    query: Mapping[str, Any]
    start: int = 0
    size: int = 50
    entity_type: str = "product"
    sort: str = ""
    index: Optional[str] = None
    exclude_fields: Optional[Sequence[str]] = None
    include_fields: Optional[Sequence[str]] = None


@dataclass(frozen=True)
class WireQuery:
    """HTTP-ready form of a search request."""

    index: Optional[str]
    type: Optional[str]
    body: Optional[Dict[str, Any]] = None
    size: int = 50
    from_: int = 0
    sort: Optional[str] = ""
    source_exclude: Optional[tuple[str, ...]] = None
    source_include: Optional[tuple[str, ...]] = None
    q: Optional[str] = None

    def with_body(self, body: Dict[str, Any]) -> "WireQuery":
        return replace(self, body=body)

    def query_params(self) -> Dict[str, str]:
        params: Dict[str, str] = {
            "size": str(self.size),
            "from": str(self.from_),
            "sort": self.sort or "",
        }
        if self.source_exclude:
            params["_source_exclude"] = ",".join(self.source_exclude)
        if self.source_include:
            params["_source_include"] = ",".join(self.source_include)
        if self.q:
            params["q"] = self.q
        return params

    def cache_fields(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "type": self.type,
            "body": self.body,
            "size": self.size,
            "from": self.from_,
            "sort": self.sort,
            "_sourceExclude": list(self.source_exclude) if self.source_exclude else None,
            "_sourceInclude": list(self.source_include) if self.source_include else None,
            "q": self.q,
        }


@dataclass(frozen=True)
class PreparedQuery:
    """Two views of one query: what identifies it in the cache, and what is sent."""

    cacheable: WireQuery
    on_wire: WireQuery


class ResultEnvelope(BaseModel):
    items: List[Dict[str, Any]] = Field(default_factory=list)
    total: int = 0
    start: int = Field(default=0, ge=0)
    per_page: int = Field(default=0, ge=0)
    aggregations: Dict[str, Any] = Field(default_factory=dict)
    served_from_cache: bool = False
    is_offline: bool = False
    no_results: bool = False

    @model_validator(mode="after")
    def _check_page(self) -> "ResultEnvelope":
        if self.per_page and len(self.items) > self.per_page:
            raise ValueError(f"{len(self.items)} items exceed page size {self.per_page}")
        return self

    @classmethod
    def offline_empty(cls, served_from_cache: bool = True) -> "ResultEnvelope":
        return cls(
            items=[],
            total=0,
            start=0,
            per_page=0,
            aggregations={},
            is_offline=True,
            served_from_cache=served_from_cache,
            no_results=True,
        )


class StructuredSearchPayload(BaseModel):
    query: Dict[str, Any] = Field(default_factory=dict, description="Engine request body")
    start: int = 0
    size: int = 50
    entity_type: str = "product"
    sort: str = ""
    index: Optional[str] = None
    exclude_fields: Optional[List[str]] = None
    include_fields: Optional[List[str]] = None
