"""Search API routes: single-source search and streamed aggregated search."""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, StreamingResponse

from vodhub.dependencies import get_config_service, get_search_service, get_vod_service
from vodhub.models.source import Source
from vodhub.models.video import CatalogItem
from vodhub.services.config_service import ConfigService
from vodhub.services.search_service import SearchCancelled, SearchService
from vodhub.services.vod_service import VodService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["search"])

# running aggregation tasks, held until they finish
_running_searches: set[asyncio.Task] = set()


def _selected_sources(cfg: ConfigService, source_ids: str) -> list[Source]:
    sources = cfg.get_enabled_sources()
    if source_ids:
        wanted = {s.strip() for s in source_ids.split(",") if s.strip()}
        sources = [s for s in sources if s.id in wanted]
    return sources


def _ndjson(payload: dict) -> str:
    return json.dumps(payload, ensure_ascii=False) + "\n"


@router.get("/api/search")
async def search(
    wd: str = Query(""),
    source_id: str = Query(""),
    cfg: ConfigService = Depends(get_config_service),
    vod: VodService = Depends(get_vod_service),
):
    source = cfg.get_source_by_id(source_id) if source_id else cfg.get_default_source()
    result = await vod.search(wd, source)
    return result.model_dump(mode="json", exclude_none=True)


@router.get("/api/search/all")
async def search_all(
    wd: str = Query(""),
    source_ids: str = Query(""),
    cfg: ConfigService = Depends(get_config_service),
    searcher: SearchService = Depends(get_search_service),
):
    if not wd:
        return JSONResponse({"code": 400, "msg": "Missing search query", "list": []}, status_code=400)
    sources = _selected_sources(cfg, source_ids)
    items = await searcher.aggregated_search(wd, sources, concurrency=cfg.search_concurrency)
    return {"code": 200, "list": [item.model_dump(mode="json") for item in items]}


async def stream_aggregate(
    searcher: SearchService,
    query: str,
    sources: list[Source],
    concurrency: int,
    cancel_event: Optional[asyncio.Event] = None,
):
    """Yield NDJSON lines for an aggregated search as sources answer.

    Closing the generator early (client disconnect) sets *cancel_event*, so
    no further batches are produced.
    """
    cancel_event = cancel_event or asyncio.Event()
    queue: asyncio.Queue = asyncio.Queue()

    def on_batch(items: list[CatalogItem]) -> None:
        queue.put_nowait(("batch", items))

    async def run() -> None:
        try:
            results = await searcher.aggregated_search(query, sources, on_batch, cancel_event, concurrency=concurrency)
            queue.put_nowait(("done", results))
        except SearchCancelled:
            queue.put_nowait(("cancelled", None))

    task = asyncio.create_task(run())
    _running_searches.add(task)
    task.add_done_callback(_running_searches.discard)
    try:
        yield _ndjson({"type": "start", "sources": len(sources)})
        while True:
            kind, payload = await queue.get()
            if kind == "batch":
                yield _ndjson({"type": "batch", "list": [i.model_dump(mode="json") for i in payload]})
            elif kind == "done":
                yield _ndjson({"type": "done", "total": len(payload)})
                break
            else:
                break
    finally:
        if not task.done():
            logger.info(f"Client left aggregated search for '{query}', cancelling")
            cancel_event.set()


@router.get("/api/search/aggregate")
async def search_aggregate(
    wd: str = Query(""),
    source_ids: str = Query(""),
    concurrency: Optional[int] = Query(None, ge=1, le=32),
    cfg: ConfigService = Depends(get_config_service),
    searcher: SearchService = Depends(get_search_service),
):
    if not wd:
        return JSONResponse({"code": 400, "msg": "Missing search query", "list": []}, status_code=400)
    sources = _selected_sources(cfg, source_ids)
    stream = stream_aggregate(searcher, wd, sources, concurrency or cfg.search_concurrency)
    return StreamingResponse(stream, media_type="application/x-ndjson")
