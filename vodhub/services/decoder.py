"""Response decoding: detects JSON vs XML bodies and yields ``{"list": [...]}`` records."""
from __future__ import annotations

import json
import logging
import re

from lxml import etree

logger = logging.getLogger(__name__)

PLAY_LINE_SEPARATOR = "$$$"

# <video> child tag -> record field
XML_FIELD_MAP = (
    ("id", "vod_id"),
    ("name", "vod_name"),
    ("pic", "vod_pic"),
    ("type", "type_name"),
    ("year", "vod_year"),
    ("area", "vod_area"),
    ("director", "vod_director"),
    ("actor", "vod_actor"),
    ("note", "vod_remarks"),
    ("des", "vod_content"),
)

_XML_DECLARATION = re.compile(r"^\s*<\?xml[^>]*\?>")


class DecodeError(ValueError):
    """Raised when an upstream body is neither valid JSON nor valid XML."""


def is_xml_body(text: str) -> bool:
    stripped = text.strip()
    return stripped.startswith("<?xml") or stripped.startswith("<rss")


def _text_of(element) -> str:
    return "".join(element.itertext())


def parse_xml_response(text: str) -> dict:
    """Decode an XML catalog (``<rss><list><video>...``) into classic JSON records.

    Every ``<dd flag="...">`` under a ``<dl>`` becomes one play line: flags are
    joined into ``vod_play_from`` and the dd texts into ``vod_play_url``, both
    with ``$$$`` so the result parses exactly like a classic JSON record.
    """
    # the declaration may name an encoding that no longer matches once we hold a str
    body = _XML_DECLARATION.sub("", text, count=1).encode("utf-8")
    parser = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=True)
    try:
        root = etree.fromstring(body, parser)
    except etree.XMLSyntaxError as e:
        raise DecodeError(f"Malformed XML: {e}") from e

    records: list[dict] = []
    for video in root.iter("video"):
        record: dict = {}
        for tag, field in XML_FIELD_MAP:
            element = video.find(f".//{tag}")
            if element is not None:
                record[field] = _text_of(element)

        play_froms: list[str] = []
        play_urls: list[str] = []
        for dl in video.iter("dl"):
            for dd in dl.iter("dd"):
                urls = _text_of(dd)
                if urls:
                    play_froms.append(dd.get("flag") or "default")
                    play_urls.append(urls)

        record["vod_play_from"] = PLAY_LINE_SEPARATOR.join(play_froms)
        record["vod_play_url"] = PLAY_LINE_SEPARATOR.join(play_urls)
        records.append(record)

    result: dict = {"list": records}
    list_element = root if root.tag == "list" else root.find("list")
    if list_element is not None:
        for attr in ("page", "pagecount", "pagesize", "recordcount"):
            value = list_element.get(attr)
            if value is not None and value.isdigit():
                result[attr] = int(value)
    return result


def decode_body(text: str) -> dict:
    """Decode a raw upstream body.

    Returns a dict; callers still check that ``list`` is a list.  Raises
    :class:`DecodeError` on malformed input.
    """
    if is_xml_body(text):
        logger.debug("Detected XML response")
        return parse_xml_response(text)

    logger.debug("Detected JSON response")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise DecodeError(f"Malformed JSON: {e}") from e
    if not isinstance(data, dict):
        return {"list": []}
    return data
