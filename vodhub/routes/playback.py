"""Playback routes: ad-filtered HLS playlists and the local pass-through forwarder."""
from __future__ import annotations

import logging

import httpx
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, Response

from vodhub.dependencies import get_config_service, get_hls_service, get_http_client
from vodhub.services.config_service import ConfigService
from vodhub.services.hls_service import PLAYLIST_MEDIA_TYPE, HlsService
from vodhub.services.http_client import HttpClientService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["playback"])

PROXY_TIMEOUT_MS = 15000


def _valid_target(url: str) -> bool:
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError):
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.host)


@router.get("/api/hls")
async def hls_playlist(
    url: str = Query(""),
    source_id: str = Query(""),
    cfg: ConfigService = Depends(get_config_service),
    hls: HlsService = Depends(get_hls_service),
):
    if not _valid_target(url):
        return JSONResponse({"error": "A valid http(s) url parameter is required"}, status_code=400)
    source = cfg.get_source_by_id(source_id) if source_id else None
    try:
        status, body = await hls.fetch_playlist(url, source)
    except (httpx.HTTPError, TimeoutError) as e:
        logger.error(f"Playlist fetch failed for {url}: {e}")
        return Response(content="Upstream playlist unavailable", status_code=502)
    return Response(content=body, status_code=status, media_type=PLAYLIST_MEDIA_TYPE)


@router.get("/proxy")
async def proxy(url: str = Query(""), http: HttpClientService = Depends(get_http_client)):
    if not url:
        return JSONResponse({"error": "URL parameter is required"}, status_code=400)
    if not _valid_target(url):
        return JSONResponse({"error": "Invalid URL format"}, status_code=400)
    try:
        upstream = await http.fetch_with_timeout(url, timeout_ms=PROXY_TIMEOUT_MS)
    except (httpx.HTTPError, TimeoutError) as e:
        logger.error(f"Proxy request failed for {url}: {e}")
        return JSONResponse({"error": "Proxy request failed", "message": str(e)}, status_code=500)
    return Response(
        content=upstream.content,
        status_code=upstream.status_code,
        media_type=upstream.headers.get("content-type", "application/json"),
    )
