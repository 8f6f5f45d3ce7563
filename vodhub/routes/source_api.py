"""Source registry API routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from vodhub.dependencies import get_config_service
from vodhub.models.source import Source
from vodhub.services.config_service import ConfigService
from vodhub.services.source_import import SourceImportError, parse_video_source_config

router = APIRouter(prefix="/api/sources", tags=["sources"])

_EDITABLE_KEYS = (
    "name", "url", "detail_url", "timeout", "retry", "enabled",
    "proxy_url", "is_spider", "spider_key", "kind",
)


def _source_view(raw: dict) -> dict:
    """Config entry plus its resolved kind."""
    try:
        source = Source.model_validate(raw)
    except ValidationError:
        return raw
    return {**raw, "kind": source.kind.value}


def _sources_view(cfg: ConfigService) -> list[dict]:
    return [_source_view(s) for s in cfg.config.get("sources", [])]


@router.get("")
async def get_sources(cfg: ConfigService = Depends(get_config_service)):
    return {"sources": _sources_view(cfg)}


@router.post("")
async def add_source(request: Request, cfg: ConfigService = Depends(get_config_service)):
    data = await request.json()
    try:
        source = Source.model_validate({k: v for k, v in data.items() if k in _EDITABLE_KEYS or k == "id"})
    except ValidationError as e:
        return JSONResponse({"error": "Invalid source", "details": str(e)}, status_code=400)
    config = cfg.config
    if any(s.get("id") == source.id for s in config.get("sources", [])):
        return JSONResponse({"error": "Source id already exists"}, status_code=409)
    config.setdefault("sources", []).append(source.to_config())
    cfg.save()
    return {"status": "ok", "source": _source_view(source.to_config()), "sources": _sources_view(cfg)}


@router.post("/import")
async def import_sources(request: Request, cfg: ConfigService = Depends(get_config_service)):
    data = await request.json()
    try:
        imported = parse_video_source_config(data, cfg.options.spider_backend_url)
    except (SourceImportError, ValidationError) as e:
        return JSONResponse({"error": str(e)}, status_code=400)

    config = cfg.config
    existing = {s.get("id") for s in config.get("sources", [])}
    added = [s.to_config() for s in imported if s.id not in existing]
    config.setdefault("sources", []).extend(added)
    cfg.save()
    return {"status": "ok", "imported": len(added), "sources": _sources_view(cfg)}


@router.get("/{source_id}")
async def get_source(source_id: str, cfg: ConfigService = Depends(get_config_service)):
    for source in cfg.config.get("sources", []):
        if source.get("id") == source_id:
            return {"source": _source_view(source)}
    return JSONResponse({"error": "Source not found"}, status_code=404)


@router.put("/{source_id}")
async def update_source(source_id: str, request: Request, cfg: ConfigService = Depends(get_config_service)):
    data = await request.json()
    config = cfg.config
    for i, source in enumerate(config.get("sources", [])):
        if source.get("id") == source_id:
            updated = dict(source)
            for key in _EDITABLE_KEYS:
                if key in data:
                    updated[key] = data[key]
            try:
                validated = Source.model_validate(updated)
            except ValidationError as e:
                return JSONResponse({"error": "Invalid source", "details": str(e)}, status_code=400)
            config["sources"][i] = validated.to_config()
            cfg.save()
            return {"status": "ok", "source": _source_view(config["sources"][i]), "sources": _sources_view(cfg)}
    return JSONResponse({"error": "Source not found"}, status_code=404)


@router.post("/{source_id}/toggle")
async def toggle_source(source_id: str, cfg: ConfigService = Depends(get_config_service)):
    for source in cfg.config.get("sources", []):
        if source.get("id") == source_id:
            source["enabled"] = not source.get("enabled", True)
            cfg.save()
            return {"status": "ok", "enabled": source["enabled"]}
    return JSONResponse({"error": "Source not found"}, status_code=404)


@router.delete("/{source_id}")
async def delete_source(source_id: str, cfg: ConfigService = Depends(get_config_service)):
    config = cfg.config
    sources = config.get("sources", [])
    config["sources"] = [s for s in sources if s.get("id") != source_id]
    if len(config["sources"]) < len(sources):
        cfg.save()
        return {"status": "ok", "sources": _sources_view(cfg)}
    return JSONResponse({"error": "Source not found"}, status_code=404)
