"""Tests for TVBox and plain-array source imports."""

import pytest

from vodhub.models.source import SourceKind
from vodhub.services.source_import import (
    SourceImportError,
    is_tvbox_format,
    parse_video_source_config,
)

BACKEND = "http://backend.test/"

TVBOX = {
    "sites": [
        {"key": "csp_a", "name": "🍃Alpha", "type": 1, "api": "http://alpha.test/api.php/provide/vod"},
        {"key": "py_b", "name": "Beta📺", "type": 3, "api": "http://scripts.test/b.py", "searchable": 1},
        {"key": "jar_c", "name": "Gamma", "type": 3, "api": "csp_Gamma"},
        {"key": "odd", "name": "Odd", "type": 4, "api": "http://odd.test"},
    ]
}


class TestTvbox:
    """TVBox configs."""

    def test_detection(self):
        assert is_tvbox_format(TVBOX)
        assert not is_tvbox_format({"sites": []})
        assert not is_tvbox_format([{"name": "x", "url": "y"}])

    def test_supported_sites_converted(self):
        sources = parse_video_source_config(TVBOX, BACKEND)
        assert [s.name for s in sources] == ["Alpha", "Beta"]

    def test_classic_site(self):
        classic = parse_video_source_config(TVBOX, BACKEND)[0]
        assert classic.kind == SourceKind.CLASSIC
        assert classic.url == "http://alpha.test/api.php/provide/vod"
        assert classic.timeout == 10000
        assert classic.retry == 3
        assert classic.id.startswith("tvbox_csp_a_")

    def test_script_spider_site(self):
        spider = parse_video_source_config(TVBOX, BACKEND)[1]
        assert spider.kind == SourceKind.SPIDER
        assert spider.url == "http://backend.test/api/spider/py_b"
        assert spider.spider_key == "py_b"
        assert spider.timeout == 30000
        assert spider.retry == 1


class TestPlainArray:
    """Exported source arrays."""

    def test_camel_case_keys(self):
        data = [{"name": "A", "url": "http://a.test/xml", "isEnabled": False, "updatedAt": 1}]
        source = parse_video_source_config(data, BACKEND)[0]
        assert source.enabled is False
        assert source.kind == SourceKind.XML
        assert source.id.startswith("imported_src_")
        assert "updatedAt" not in source.to_config()

    def test_keeps_existing_id(self):
        source = parse_video_source_config([{"id": "keep", "name": "A", "url": "http://a"}], BACKEND)[0]
        assert source.id == "keep"

    def test_unrecognised(self):
        with pytest.raises(SourceImportError):
            parse_video_source_config({"foo": 1}, BACKEND)
        with pytest.raises(SourceImportError):
            parse_video_source_config([{"nope": 1}], BACKEND)
