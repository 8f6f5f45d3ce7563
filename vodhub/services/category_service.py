"""Category service: category listing and per-category browsing for every source dialect."""
from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Optional

from vodhub.models.category import XML_CATEGORIES
from vodhub.models.source import Source, SourceKind
from vodhub.models.video import Category, CategoryResponse, CategoryVideosResponse
from vodhub.services.url_builder import (
    OP_CATEGORY,
    OP_CATEGORY_LIST,
    apply_proxy,
    build_spider_url,
    build_url,
)
from vodhub.services.vod_service import SOURCE_ERRORS, failure_message, tag_items

if TYPE_CHECKING:
    from vodhub.services.config_service import ConfigService
    from vodhub.services.vod_service import VodService

logger = logging.getLogger(__name__)


def xml_categories() -> list[Category]:
    return [
        Category(type_id=type_id, type_pid=type_pid, type_name=type_name)
        for type_id, type_pid, type_name in XML_CATEGORIES
    ]


def _is_blocked(category: Category, blocked: set[str]) -> bool:
    return category.type_id in blocked


def _page_count(data: dict) -> int:
    try:
        return max(int(data.get("pagecount") or 1), 1)
    except (TypeError, ValueError):
        return 1


class CategoryService:
    """Lists categories and browses category pages."""

    def __init__(self, config_service: "ConfigService", vod_service: "VodService"):
        self.config_service = config_service
        self.vod_service = vod_service

    def _blocked_ids(self) -> set[str]:
        return {str(c) for c in self.config_service.options.home.blocked_categories}

    async def get_categories(self, source: Optional[Source]) -> CategoryResponse:
        """Categories of *source* minus the blocked ones.

        Spider backends serve them from ``/home`` (with optional filters), XML
        sources use the fixed taxonomy and classic sources answer ``ac=list``.
        """
        if source is None or not source.url:
            return CategoryResponse(code=400, msg="Invalid source configuration")

        blocked = self._blocked_ids()
        if source.kind == SourceKind.XML:
            categories = [c for c in xml_categories() if not _is_blocked(c, blocked)]
            return CategoryResponse(categories=categories)

        if source.kind == SourceKind.SPIDER:
            url = build_spider_url(source.url, "home", {})
        else:
            url = apply_proxy(
                build_url(source.url, OP_CATEGORY_LIST, {}, source.kind),
                self.config_service.resolve_proxy_base(source),
            )

        try:
            data = await self.vod_service.fetch_json_or_xml(url, source)
            raw_classes = data.get("class")
            if not isinstance(raw_classes, list):
                raise ValueError("Category payload has no class list")
            if source.kind == SourceKind.CLASSIC and data.get("code") not in (1, "1"):
                raise ValueError(f"Unexpected category response code: {data.get('code')}")
            categories = [Category.model_validate(c) for c in raw_classes if isinstance(c, dict)]
        except (ValueError, *SOURCE_ERRORS) as e:
            logger.error(f"Failed to fetch categories from '{source.name}': {e}")
            return CategoryResponse(code=400, msg=failure_message(e))

        if source.kind == SourceKind.SPIDER:
            # spider categories are flat
            categories = [c.model_copy(update={"type_pid": "0"}) for c in categories]

        filters = data.get("filters") if isinstance(data.get("filters"), dict) else {}
        return CategoryResponse(
            categories=[c for c in categories if not _is_blocked(c, blocked)],
            filters=filters,
        )

    async def get_category_videos(
        self,
        source: Optional[Source],
        type_id: str,
        page: int = 1,
        extend: Optional[dict] = None,
    ) -> CategoryVideosResponse:
        """One page of a category, tagged like search rows."""
        if source is None or not source.url:
            return CategoryVideosResponse(code=400, msg="Invalid source configuration")
        if not type_id:
            return CategoryVideosResponse(code=400, msg="Missing category id")
        page = max(int(page), 1)

        if source.kind == SourceKind.SPIDER:
            params = {"tid": type_id, "pg": page}
            if extend:
                params["extend"] = json.dumps(extend, ensure_ascii=False, separators=(",", ":"))
            url = build_spider_url(source.url, "category", params)
        else:
            url = apply_proxy(
                build_url(source.url, OP_CATEGORY, {"t": type_id, "pg": page}, source.kind),
                self.config_service.resolve_proxy_base(source),
            )

        try:
            data = await self.vod_service.fetch_json_or_xml(url, source)
            records = data.get("list")
            items = tag_items(records, source) if isinstance(records, list) else []
        except SOURCE_ERRORS as e:
            logger.error(f"Failed to browse category {type_id} on '{source.name}': {e}")
            return CategoryVideosResponse(code=400, msg=failure_message(e), page=page)

        return CategoryVideosResponse(list=items, page=page, pagecount=_page_count(data))
