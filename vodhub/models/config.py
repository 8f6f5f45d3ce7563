"""Pydantic models for application configuration."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_SEARCH_PATH = "/api.php/provide/vod/?ac=videolist&wd="
DEFAULT_DETAIL_PATH = "/api.php/provide/vod/?ac=videolist&ids="


class NetworkOptions(BaseModel):
    """Fallback timeout/retry for sources that do not set their own."""
    model_config = ConfigDict(extra="allow")

    default_timeout: int = 30000  # milliseconds
    default_retry: int = Field(default=1, ge=0)


class ProxyOptions(BaseModel):
    """Global proxy used to reach classic/XML sources."""
    model_config = ConfigDict(extra="allow")

    enabled: bool = False
    proxy_url: str = ""


class SearchOptions(BaseModel):
    model_config = ConfigDict(extra="allow")

    concurrency: int = Field(default=3, ge=1)


class PlaybackOptions(BaseModel):
    model_config = ConfigDict(extra="allow")

    ad_filtering: bool = True


class HomeOptions(BaseModel):
    model_config = ConfigDict(extra="allow")

    default_source_id: str = ""
    blocked_categories: list[int] = Field(default_factory=list)


class ApiPaths(BaseModel):
    """Search/detail path templates appended to classic source URLs."""
    model_config = ConfigDict(extra="allow")

    search: str = DEFAULT_SEARCH_PATH
    detail: str = DEFAULT_DETAIL_PATH


class Options(BaseModel):
    """Application options."""
    model_config = ConfigDict(extra="allow")

    network: NetworkOptions = Field(default_factory=NetworkOptions)
    proxy: ProxyOptions = Field(default_factory=ProxyOptions)
    local_proxy_url: str = ""
    search: SearchOptions = Field(default_factory=SearchOptions)
    playback: PlaybackOptions = Field(default_factory=PlaybackOptions)
    home: HomeOptions = Field(default_factory=HomeOptions)
    api_paths: ApiPaths = Field(default_factory=ApiPaths)
    spider_backend_url: str = "http://localhost:8000"

