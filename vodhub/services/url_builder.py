"""Upstream URL construction for the classic, XML and spider dialects."""
from __future__ import annotations

from typing import Optional
from urllib.parse import quote

from vodhub.models.source import SourceKind

CATEGORY_PAGE_SIZE = 24

SPIDER_ACTIONS = frozenset(("search", "detail", "category", "play", "home"))

# classic/XML operations understood by build_url
OP_SEARCH = "search"
OP_DETAIL = "detail"
OP_CATEGORY_LIST = "category_list"
OP_CATEGORY = "category"


def encode_component(value) -> str:
    """Percent-encode like JavaScript's encodeURIComponent."""
    return quote(str(value), safe="-_.!~*'()")


def _query_prefix(url: str) -> str:
    return "&" if "?" in url else "?"


def build_api_url(base_url: str, config_path: str, query_value: str) -> str:
    """Append a search/detail path template plus *query_value* to a classic base URL.

    When the base already ends with the template's path (or already points at
    ``/api.php/provide/vod``) only the query part is appended, so the path is
    never doubled.
    """
    url = base_url.rstrip("/")
    path_part, _, query_part = config_path.partition("?")

    if url.lower().endswith(path_part.rstrip("/").lower()) or "/api.php/provide/vod" in url.lower():
        return f"{url}{_query_prefix(url)}{query_part}{query_value}"

    return f"{url}{config_path}{query_value}"


def build_spider_url(base_url: str, action: str, params: dict) -> str:
    if action not in SPIDER_ACTIONS:
        raise ValueError(f"Unknown spider action: {action}")
    url = base_url.rstrip("/")
    query = "&".join(f"{key}={encode_component(value)}" for key, value in params.items())
    return f"{url}/{action}?{query}" if query else f"{url}/{action}"


def build_category_list_url(base_url: str) -> str:
    return f"{base_url}{_query_prefix(base_url)}ac=list"


def build_videolist_url(base_url: str, type_id, page: int = 1, page_size: int = CATEGORY_PAGE_SIZE) -> str:
    return (
        f"{base_url}{_query_prefix(base_url)}ac=videolist"
        f"&t={encode_component(type_id)}&pg={int(page)}&pagesize={int(page_size)}"
    )


def build_url(
    base_url: str,
    operation: str,
    params: dict,
    kind: SourceKind,
    search_path: Optional[str] = None,
    detail_path: Optional[str] = None,
) -> str:
    """Dispatch to the right builder for *kind*.

    Spider sources take *operation* as the REST action and *params* as its
    query.  Classic and XML sources share the query-string shape: ``search``
    and ``detail`` use the path templates (``wd`` / ``ids`` in *params*),
    ``category_list`` and ``category`` (``t``, ``pg``) use the fixed ``ac=``
    queries.
    """
    if kind == SourceKind.SPIDER:
        return build_spider_url(base_url, operation, params)

    if operation == OP_SEARCH:
        return build_api_url(base_url, search_path or "", encode_component(params.get("wd", "")))
    if operation == OP_DETAIL:
        return build_api_url(base_url, detail_path or "", str(params.get("ids", "")))
    if operation == OP_CATEGORY_LIST:
        return build_category_list_url(base_url)
    if operation == OP_CATEGORY:
        return build_videolist_url(base_url, params.get("t", ""), params.get("pg", 1))
    raise ValueError(f"Unknown operation for {kind.value} source: {operation}")


def apply_proxy(target_url: str, proxy_base: Optional[str]) -> str:
    """Rewrite *target_url* to go through a forwarder at *proxy_base*.

    ``{url}`` in the base is substituted; a base ending in ``=`` gets the
    encoded target appended; any other base is treated as the forwarder
    endpoint and receives a ``url`` query parameter.  No base means direct.
    """
    if not proxy_base:
        return target_url
    encoded = encode_component(target_url)
    if "{url}" in proxy_base:
        return proxy_base.replace("{url}", encoded)
    if proxy_base.endswith("="):
        return f"{proxy_base}{encoded}"
    return f"{proxy_base}{_query_prefix(proxy_base)}url={encoded}"
