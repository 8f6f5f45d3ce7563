"""Category listing and browsing routes."""
from __future__ import annotations

import json

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from vodhub.dependencies import get_category_service, get_config_service
from vodhub.services.category_service import CategoryService
from vodhub.services.config_service import ConfigService

router = APIRouter(prefix="/api/categories", tags=["categories"])


@router.get("")
async def list_categories(
    source_id: str = Query(""),
    cfg: ConfigService = Depends(get_config_service),
    categories: CategoryService = Depends(get_category_service),
):
    source = cfg.get_source_by_id(source_id) if source_id else cfg.get_default_source()
    if source is None:
        return JSONResponse({"error": "Source not found"}, status_code=404)
    result = await categories.get_categories(source)
    return {"source_id": source.id, **result.model_dump(mode="json", exclude_none=True)}


@router.get("/{type_id}/videos")
async def category_videos(
    type_id: str,
    source_id: str = Query(""),
    pg: int = Query(1, ge=1),
    extend: str = Query(""),
    cfg: ConfigService = Depends(get_config_service),
    categories: CategoryService = Depends(get_category_service),
):
    source = cfg.get_source_by_id(source_id) if source_id else cfg.get_default_source()
    if source is None:
        return JSONResponse({"error": "Source not found"}, status_code=404)
    filters = None
    if extend:
        try:
            filters = json.loads(extend)
        except json.JSONDecodeError:
            return JSONResponse({"error": "extend must be a JSON object"}, status_code=400)
        if not isinstance(filters, dict):
            return JSONResponse({"error": "extend must be a JSON object"}, status_code=400)
    result = await categories.get_category_videos(source, type_id, pg, filters)
    return result.model_dump(mode="json", exclude_none=True)
