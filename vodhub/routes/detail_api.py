"""Detail and play-URL routes."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from vodhub.dependencies import get_config_service, get_vod_service
from vodhub.services.config_service import ConfigService
from vodhub.services.vod_service import VodService

router = APIRouter(tags=["detail"])


@router.get("/api/detail/{source_id}/{vod_id}")
async def video_detail(
    source_id: str,
    vod_id: str,
    cfg: ConfigService = Depends(get_config_service),
    vod: VodService = Depends(get_vod_service),
):
    source = cfg.get_source_by_id(source_id)
    if source is None:
        return JSONResponse({"error": "Source not found"}, status_code=404)
    result = await vod.get_video_detail(vod_id, source)
    return result.model_dump(mode="json", exclude_none=True)


@router.get("/api/play/{source_id}")
async def play_url(
    source_id: str,
    id: str = Query(...),
    flag: Optional[str] = Query(None),
    cfg: ConfigService = Depends(get_config_service),
    vod: VodService = Depends(get_vod_service),
):
    source = cfg.get_source_by_id(source_id)
    if source is None:
        return JSONResponse({"error": "Source not found"}, status_code=404)
    resolution = await vod.get_play_url(source, id, flag)
    return resolution.model_dump(mode="json", exclude_none=True)
