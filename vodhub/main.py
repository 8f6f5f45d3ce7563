"""vodhub application entry point: wires services, routers and lifespan."""
from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request

from vodhub.routes import (
    category_api,
    config_api,
    detail_api,
    health,
    playback,
    search_api,
    source_api,
)
from vodhub.services.category_service import CategoryService
from vodhub.services.config_service import ConfigService
from vodhub.services.hls_service import HlsService
from vodhub.services.http_client import HttpClientService
from vodhub.services.search_service import SearchService
from vodhub.services.vod_service import VodService

# Configure logging
logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
logger = logging.getLogger(__name__)

# Data directory - use environment variable or default to /data (Docker) or ./data (local)
DATA_DIR = os.environ.get("DATA_DIR", "/data" if os.path.exists("/data") else "./data")


def create_app(data_dir: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None) -> FastAPI:
    """Build a fully-wired app whose config lives in *data_dir*."""
    data_dir = data_dir or DATA_DIR

    cfg = ConfigService(data_dir)
    cfg.load()
    http = HttpClientService(transport=transport)
    vod = VodService(cfg, http)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager - handles startup and shutdown"""
        os.makedirs(data_dir, exist_ok=True)
        logger.info(f"Loaded {len(cfg.get_sources())} source(s) from {cfg.config_file}")
        yield
        await http.close()
        logger.info("Application shutdown complete")

    app = FastAPI(title="vodhub", lifespan=lifespan)

    # Attach state for DI
    app.state.config_service = cfg
    app.state.http_client = http
    app.state.vod_service = vod
    app.state.search_service = SearchService(vod)
    app.state.category_service = CategoryService(cfg, vod)
    app.state.hls_service = HlsService(cfg, http)

    # Middleware to ensure UTF-8 charset in JSON responses
    @app.middleware("http")
    async def add_utf8_charset(request: Request, call_next):
        response = await call_next(request)
        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type and "charset" not in content_type:
            response.headers["content-type"] = "application/json; charset=utf-8"
        return response

    for r in (health, source_api, config_api, search_api, detail_api, category_api, playback):
        app.include_router(r.router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=5000)
