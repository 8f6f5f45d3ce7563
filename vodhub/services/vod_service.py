"""VOD service: single-source search, detail and play-URL resolution.

Every public method returns a response model; upstream failures are turned
into ``code=400`` responses here and never raised past this boundary.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

import httpx
from pydantic import ValidationError

from vodhub.models.source import Source, SourceKind
from vodhub.models.video import CatalogItem, DetailResponse, PlayResolution, SearchResponse
from vodhub.services.decoder import DecodeError, decode_body
from vodhub.services.detail_parser import PLAYABLE_PREFIXES, parse_detail
from vodhub.services.url_builder import (
    OP_DETAIL,
    OP_SEARCH,
    apply_proxy,
    build_spider_url,
    build_url,
)

if TYPE_CHECKING:
    from vodhub.services.config_service import ConfigService
    from vodhub.services.http_client import HttpClientService

logger = logging.getLogger(__name__)

SEARCH_HEADERS = {"Accept": "application/json"}
DETAIL_HEADERS = {"Accept": "application/json"}

NO_PLAYABLE_CONTENT = "No playable episodes found"
INVALID_CONTENT = "Invalid upstream content"


class UpstreamStatusError(Exception):
    """Upstream answered with a non-2xx status."""


# errors that confine a failure to one source
SOURCE_ERRORS = (httpx.HTTPError, TimeoutError, DecodeError, ValidationError, UpstreamStatusError)


def failure_message(error: BaseException) -> str:
    """Short client-facing text for a source-confined error."""
    if isinstance(error, ValidationError):
        return INVALID_CONTENT
    return str(error) or type(error).__name__


def tag_items(records: list, source: Source) -> list[CatalogItem]:
    """Build catalog rows from upstream records, stamped with the source identity.

    A row that does not fit the catalog shape is skipped on its own; the rest
    of the listing is kept.
    """
    items = []
    for record in records:
        if not isinstance(record, dict):
            continue
        row = {**record, "source_name": source.name, "source_code": source.id, "api_url": source.url}
        if row.get("vod_id") is None:
            row["vod_id"] = ""
        try:
            items.append(CatalogItem.model_validate(row))
        except ValidationError as e:
            logger.warning(f"Skipping malformed row from source '{source.name}': {e.error_count()} invalid field(s)")
    return items


class VodService:
    """Talks to one upstream source at a time."""

    def __init__(self, config_service: "ConfigService", http_client: "HttpClientService"):
        self.config_service = config_service
        self.http_client = http_client

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _routed(self, url: str, source: Source) -> str:
        return apply_proxy(url, self.config_service.resolve_proxy_base(source))

    async def fetch_json_or_xml(self, url: str, source: Source, headers: Optional[dict] = None) -> dict:
        """Fetch *url* with the source's timeout/retry and decode the body.

        Raises a source-confined error (see ``SOURCE_ERRORS``) on failure.
        """
        response = await self.http_client.fetch_with_timeout(
            url,
            headers=headers,
            timeout_ms=self.config_service.effective_timeout(source),
            retry=self.config_service.effective_retry(source),
        )
        if not response.is_success:
            raise UpstreamStatusError(f"Upstream request failed: {response.status_code}")
        return decode_body(response.text)

    def build_search_url(self, query: str, source: Source) -> str:
        if source.kind == SourceKind.SPIDER:
            return build_spider_url(source.url, "search", {"keyword": query})
        paths = self.config_service.options.api_paths
        url = build_url(source.url, OP_SEARCH, {"wd": query}, source.kind, search_path=paths.search)
        return self._routed(url, source)

    def build_detail_url(self, vod_id: str, source: Source) -> str:
        if source.kind == SourceKind.SPIDER:
            return build_spider_url(source.url, "detail", {"ids": vod_id})
        paths = self.config_service.options.api_paths
        base = source.detail_url or source.url
        url = build_url(base, OP_DETAIL, {"ids": vod_id}, source.kind, detail_path=paths.detail)
        return self._routed(url, source)

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def search_items(self, query: str, source: Source) -> list[CatalogItem]:
        """Search one source; raises on failure (used by the aggregator)."""
        url = self.build_search_url(query, source)
        data = await self.fetch_json_or_xml(url, source, headers=SEARCH_HEADERS)
        records = data.get("list")
        if not isinstance(records, list):
            return []
        return tag_items(records, source)

    async def search(self, query: str, source: Optional[Source]) -> SearchResponse:
        if not query:
            return SearchResponse(code=400, msg="Missing search query")
        if source is None or not source.url:
            return SearchResponse(code=400, msg="Invalid source configuration")
        try:
            items = await self.search_items(query, source)
        except SOURCE_ERRORS as e:
            logger.error(f"Search failed on source '{source.name}': {e}")
            return SearchResponse(code=400, msg=failure_message(e))
        return SearchResponse(code=200, list=items)

    # ------------------------------------------------------------------
    # Detail
    # ------------------------------------------------------------------

    async def get_video_detail(self, vod_id: str, source: Optional[Source]) -> DetailResponse:
        if not vod_id:
            return DetailResponse(code=400, msg="Missing video id")
        if source is None or not source.url:
            return DetailResponse(code=400, msg="Invalid source configuration")

        logger.debug(f"Fetching detail {vod_id} from '{source.name}' ({source.kind.value})")
        url = self.build_detail_url(vod_id, source)
        try:
            data = await self.fetch_json_or_xml(url, source, headers=DETAIL_HEADERS)
        except SOURCE_ERRORS as e:
            logger.error(f"Detail request failed on source '{source.name}': {e}")
            return DetailResponse(code=400, msg=failure_message(e))

        records = data.get("list")
        if not isinstance(records, list) or not records or not isinstance(records[0], dict):
            logger.error(f"Invalid detail payload from source '{source.name}'")
            return DetailResponse(code=400, msg="Invalid detail content")

        try:
            info = parse_detail(records[0], source_name=source.name, source_code=source.id)
        except ValidationError as e:
            logger.error(f"Could not normalize detail from source '{source.name}': {e}")
            return DetailResponse(code=400, msg="Invalid detail content")

        return DetailResponse(
            code=200,
            episodes=info.episodes,
            detail_url=url,
            video_info=info,
            msg=None if info.has_episodes else NO_PLAYABLE_CONTENT,
        )

    # ------------------------------------------------------------------
    # Play URL
    # ------------------------------------------------------------------

    async def get_play_url(self, source: Source, episode_ref: str, flag: Optional[str] = None) -> PlayResolution:
        """Resolve an episode reference into a playable URL.

        Classic/XML references are already URLs.  Spider references of the
        form ``name$url`` carry their URL; anything else costs a round-trip to
        the backend's ``play`` action, falling back to ``parse=1`` on error.
        """
        if source.kind != SourceKind.SPIDER:
            return PlayResolution(url=episode_ref, parse=0)

        if "$" in episode_ref:
            name, _, url = episode_ref.partition("$")
            if url:
                return PlayResolution(url=url.split("$")[0], parse=0)
            if name.startswith(PLAYABLE_PREFIXES):
                return PlayResolution(url=name, parse=0)
            # a bare label with no url
            return PlayResolution(url=episode_ref, parse=1)

        url = build_spider_url(source.url, "play", {"flag": flag or "default", "id": episode_ref})
        try:
            response = await self.http_client.fetch_with_timeout(
                url, timeout_ms=self.config_service.effective_timeout(source), retry=1
            )
            if not response.is_success:
                raise UpstreamStatusError(f"Play request failed: {response.status_code}")
            data = response.json()
            if not isinstance(data, dict):
                raise DecodeError("Play response is not an object")
            header = data.get("header")
            return PlayResolution(
                url=data.get("url") or episode_ref,
                parse=1 if data.get("parse") in (1, "1", True) else 0,
                headers={str(k): str(v) for k, v in header.items()} if isinstance(header, dict) else None,
            )
        except (ValueError, *SOURCE_ERRORS) as e:
            logger.error(f"Play resolution failed on source '{source.name}': {e}")
            return PlayResolution(url=episode_ref, parse=1)
