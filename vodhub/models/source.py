"""Pydantic models for configured upstream video sources."""
from __future__ import annotations

import uuid
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class SourceKind(str, Enum):
    """Upstream dialect of a source."""

    CLASSIC = "classic"  # TVBox-style ?ac=videolist query API (JSON)
    XML = "xml"  # same query shape, XML bodies, fixed category taxonomy
    SPIDER = "spider"  # custom backend REST dialect (/search, /detail, /play ...)


def detect_source_kind(url: str, is_spider: bool = False, spider_key: Optional[str] = None) -> SourceKind:
    if is_spider or spider_key or (url and "/api/spider" in url):
        return SourceKind.SPIDER
    if url and "/xml" in url:
        return SourceKind.XML
    return SourceKind.CLASSIC


class Source(BaseModel):
    """One configured upstream video catalog endpoint.

    ``kind`` is resolved once at validation time from the explicit flags and
    the URL; every call site reads it instead of re-deriving the dialect.
    """
    model_config = ConfigDict(extra="allow")

    id: str = Field(default_factory=lambda: str(uuid.uuid4())[:8])
    name: str = "New Source"
    url: str = ""
    detail_url: Optional[str] = None
    timeout: Optional[int] = None  # milliseconds
    retry: Optional[int] = Field(default=None, ge=0)
    enabled: bool = True
    proxy_url: Optional[str] = None
    is_spider: bool = False
    spider_key: Optional[str] = None
    kind: Optional[SourceKind] = None

    @model_validator(mode="after")
    def _resolve_kind(self) -> "Source":
        if self.kind is None:
            self.kind = detect_source_kind(self.url, self.is_spider, self.spider_key)
        return self

    def to_config(self) -> dict:
        """Dict for config.json; ``kind`` is only stored when it overrides detection."""
        data = self.model_dump(mode="json", exclude_none=True)
        if self.kind == detect_source_kind(self.url, self.is_spider, self.spider_key):
            data.pop("kind", None)
        return data
