"""FastAPI dependency injection: provides services via Depends()."""
from __future__ import annotations

from fastapi import Request

from vodhub.services.category_service import CategoryService
from vodhub.services.config_service import ConfigService
from vodhub.services.hls_service import HlsService
from vodhub.services.http_client import HttpClientService
from vodhub.services.search_service import SearchService
from vodhub.services.vod_service import VodService


def get_config_service(request: Request) -> ConfigService:
    return request.app.state.config_service


def get_http_client(request: Request) -> HttpClientService:
    return request.app.state.http_client


def get_vod_service(request: Request) -> VodService:
    return request.app.state.vod_service


def get_search_service(request: Request) -> SearchService:
    return request.app.state.search_service


def get_category_service(request: Request) -> CategoryService:
    return request.app.state.category_service


def get_hls_service(request: Request) -> HlsService:
    return request.app.state.hls_service
