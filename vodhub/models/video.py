"""Pydantic models for normalized catalog rows, details and play resolutions."""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CatalogItem(BaseModel):
    """A search/browse result row tagged with the source it came from.

    Upstream field names are kept so the row serializes back to the same wire
    shape the upstream used.  Dedup identity is ``(source_code, vod_id)``.
    """
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True, frozen=True)

    vod_id: str = ""
    vod_name: Optional[str] = None
    vod_pic: Optional[str] = None
    type_name: Optional[str] = None
    vod_year: Optional[str] = None
    vod_remarks: Optional[str] = None
    source_code: str = ""
    source_name: str = ""
    api_url: str = ""

    @property
    def dedup_key(self) -> str:
        return f"{self.source_code}:{self.vod_id}"


class Episode(BaseModel):
    name: str
    url: str


class PlayLine(BaseModel):
    """One alternate mirror with its episodes."""

    name: str
    episodes: list[Episode] = Field(default_factory=list)


class VideoInfo(BaseModel):
    """Normalized video detail.

    ``episodes_names[i]`` names ``episodes[i]``; both lists always have the same
    length.
    """
    model_config = ConfigDict(coerce_numbers_to_str=True)

    title: Optional[str] = None
    cover: Optional[str] = None
    desc: Optional[str] = None
    type: Optional[str] = None
    year: Optional[str] = None
    area: Optional[str] = None
    director: Optional[str] = None
    actor: Optional[str] = None
    remarks: Optional[str] = None
    source_name: Optional[str] = None
    source_code: Optional[str] = None
    episodes_names: list[str] = Field(default_factory=list)
    episodes: list[str] = Field(default_factory=list)
    lines: list[PlayLine] = Field(default_factory=list)
    vod_play_from: Optional[str] = None
    vod_play_url: Optional[str] = None

    @property
    def has_episodes(self) -> bool:
        return bool(self.episodes)


class PlayResolution(BaseModel):
    """Final playable URL; ``parse=1`` means it must be fetched through the proxy."""

    url: str
    parse: int = 0
    headers: Optional[dict[str, str]] = None


class SearchResponse(BaseModel):
    code: int = 200
    list: List[CatalogItem] = Field(default_factory=list)
    msg: Optional[str] = None


class DetailResponse(BaseModel):
    code: int = 200
    episodes: list[str] = Field(default_factory=list)
    detail_url: Optional[str] = None
    video_info: Optional[VideoInfo] = None
    msg: Optional[str] = None


class Category(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    type_id: str
    type_pid: str = "0"
    type_name: str = ""


class CategoryResponse(BaseModel):
    code: int = 200
    categories: list[Category] = Field(default_factory=list)
    filters: dict = Field(default_factory=dict)
    msg: Optional[str] = None


class CategoryVideosResponse(BaseModel):
    code: int = 200
    list: List[CatalogItem] = Field(default_factory=list)
    page: int = 1
    pagecount: int = 1
    msg: Optional[str] = None
