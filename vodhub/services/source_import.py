"""Source import: converts TVBox configs and plain source arrays into Source entries."""
from __future__ import annotations

import logging
import re
import uuid
from typing import Optional

from vodhub.models.source import Source

logger = logging.getLogger(__name__)

_DECORATION = re.compile("[🍃🌍🥗🐉🎬📺]")

CLASSIC_SITE_TYPES = (0, 1)
SPIDER_SITE_TYPE = 3
SCRIPT_SUFFIXES = (".py", ".js")

# camelCase keys used by exported source lists
LEGACY_KEYS = {
    "detailUrl": "detail_url",
    "isEnabled": "enabled",
    "proxyUrl": "proxy_url",
    "isSpider": "is_spider",
    "spiderKey": "spider_key",
}


class SourceImportError(ValueError):
    """Raised when an import payload is in no recognised format."""


def is_tvbox_format(data) -> bool:
    """A TVBox config has a non-empty ``sites`` list whose first entry has key/name/type/api."""
    if not isinstance(data, dict):
        return False
    sites = data.get("sites")
    if not isinstance(sites, list) or not sites:
        return False
    first = sites[0]
    return isinstance(first, dict) and all(k in first for k in ("key", "name", "type", "api"))


def _new_id(prefix: str, key: str) -> str:
    return f"{prefix}_{key}_{uuid.uuid4().hex[:9]}"


def _clean_name(name: str, fallback: str) -> str:
    return _DECORATION.sub("", name or "").strip() or fallback


def convert_tvbox_site(site: dict, backend_url: str) -> Optional[Source]:
    """One TVBox site → Source, or None when the site type is unsupported."""
    key = str(site.get("key", ""))
    name = _clean_name(str(site.get("name", "")), key)
    api = str(site.get("api", ""))
    site_type = site.get("type")

    if site_type == SPIDER_SITE_TYPE:
        if not api.endswith(SCRIPT_SUFFIXES):
            logger.warning(f"Skipping JAR spider site: {name} (api: {api})")
            return None
        spider_url = f"{backend_url.rstrip('/')}/api/spider/{key}"
        return Source(
            id=_new_id("tvbox", key),
            name=name,
            url=spider_url,
            detail_url=spider_url,
            timeout=30000,
            retry=1,
            is_spider=True,
            spider_key=key,
            spider_type="script",
            script_url=api if api.startswith("http") else None,
            searchable=site.get("searchable") == 1,
            quick_search=site.get("quickSearch") == 1,
            filterable=site.get("filterable") == 1,
        )

    if site_type not in CLASSIC_SITE_TYPES:
        logger.warning(f"Skipping unsupported site type {site_type}: {name}")
        return None

    return Source(id=_new_id("tvbox", key), name=name, url=api, detail_url=api, timeout=10000, retry=3)


def parse_tvbox_config(data: dict, backend_url: str) -> list[Source]:
    if not is_tvbox_format(data):
        raise SourceImportError("Invalid TVBox format")
    sources = []
    for site in data["sites"]:
        if not isinstance(site, dict):
            continue
        source = convert_tvbox_site(site, backend_url)
        if source is not None:
            sources.append(source)
    return sources


def parse_video_source_config(data, backend_url: str) -> list[Source]:
    """Accept a TVBox config or a plain array of ``{name, url, ...}`` objects."""
    if is_tvbox_format(data):
        logger.info("Detected TVBox source config")
        return parse_tvbox_config(data, backend_url)

    if isinstance(data, list):
        sources = []
        for item in data:
            if not isinstance(item, dict) or "name" not in item or "url" not in item:
                continue
            entry = {LEGACY_KEYS.get(k, k): v for k, v in item.items()}
            entry.pop("updatedAt", None)
            entry["id"] = entry.get("id") or _new_id("imported", "src")
            sources.append(Source.model_validate(entry))
        if sources:
            logger.info(f"Detected plain source array with {len(sources)} source(s)")
            return sources

    raise SourceImportError("Unrecognised video source format")
