"""Options API routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from vodhub.dependencies import get_config_service
from vodhub.models.config import Options
from vodhub.services.config_service import ConfigService

router = APIRouter(tags=["config"])


# ---- Generic options ----

@router.get("/api/options")
async def get_options(cfg: ConfigService = Depends(get_config_service)):
    return cfg.config.get("options", {})


@router.post("/api/options")
async def update_options(request: Request, cfg: ConfigService = Depends(get_config_service)):
    data = await request.json()
    candidate = dict(cfg.config.get("options", {}))
    candidate.update(data)
    try:
        options = Options.model_validate(candidate)
    except ValidationError as e:
        return JSONResponse({"error": "Invalid options", "details": str(e)}, status_code=400)
    cfg.config["options"] = options.model_dump(mode="json")
    cfg.save()
    return {"status": "ok", "options": cfg.config["options"]}


# ---- Per-section helpers ----

async def _update_section(section: str, request: Request, cfg: ConfigService):
    data = await request.json()
    try:
        values = cfg.update_options(section, data)
    except ValidationError as e:
        return JSONResponse({"error": f"Invalid {section} options", "details": str(e)}, status_code=400)
    return {"status": "ok", section: values}


@router.get("/api/options/proxy")
async def get_proxy(cfg: ConfigService = Depends(get_config_service)):
    return {"proxy": cfg.options.proxy.model_dump(), "local_proxy_url": cfg.options.local_proxy_url}


@router.post("/api/options/proxy")
async def set_proxy(request: Request, cfg: ConfigService = Depends(get_config_service)):
    return await _update_section("proxy", request, cfg)


@router.get("/api/options/network")
async def get_network(cfg: ConfigService = Depends(get_config_service)):
    return {"network": cfg.options.network.model_dump()}


@router.post("/api/options/network")
async def set_network(request: Request, cfg: ConfigService = Depends(get_config_service)):
    return await _update_section("network", request, cfg)
