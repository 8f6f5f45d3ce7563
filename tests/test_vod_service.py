"""Tests for single-source search, detail and play resolution."""

import asyncio

import httpx
import pytest
from pydantic import ValidationError

from vodhub.models.source import Source, SourceKind
from vodhub.models.video import CatalogItem
from vodhub.services.config_service import ConfigService
from vodhub.services.http_client import HttpClientService
from vodhub.services.vod_service import INVALID_CONTENT, NO_PLAYABLE_CONTENT, VodService, failure_message

SPIDER = Source(id="sp", name="Spider", url="http://backend.test/api/spider/k", timeout=1000, retry=0)
CLASSIC = Source(id="cl", name="Classic", url="http://classic.test", timeout=1000, retry=0)


def _call(tmp_path, handler, method, *args, configure=None):
    async def go():
        cfg = ConfigService(str(tmp_path))
        if configure:
            configure(cfg)
        http = HttpClientService(transport=httpx.MockTransport(handler))
        try:
            return await getattr(VodService(cfg, http), method)(*args)
        finally:
            await http.close()

    return asyncio.run(go())


def _unexpected(request):
    raise AssertionError(f"unexpected request to {request.url}")


class TestPlayResolution:
    """Play-URL resolution per source kind."""

    def test_spider_source_detected(self):
        assert SPIDER.kind == SourceKind.SPIDER

    def test_classic_identity(self, tmp_path):
        result = _call(tmp_path, _unexpected, "get_play_url", CLASSIC, "http://cdn/a.m3u8")
        assert result.url == "http://cdn/a.m3u8"
        assert result.parse == 0

    def test_embedded_url_skips_network(self, tmp_path):
        result = _call(tmp_path, _unexpected, "get_play_url", SPIDER, "EP1$http://x/1.m3u8")
        assert result.url == "http://x/1.m3u8"
        assert result.parse == 0

    def test_embedded_empty_url_uses_name(self, tmp_path):
        result = _call(tmp_path, _unexpected, "get_play_url", SPIDER, "http://x/2.m3u8$")
        assert result.url == "http://x/2.m3u8"

    def test_label_without_url_is_not_played(self, tmp_path):
        result = _call(tmp_path, _unexpected, "get_play_url", SPIDER, "Ep1$")
        assert result.url == "Ep1$"
        assert result.parse == 1

    def test_backend_round_trip(self, tmp_path):
        seen = []

        def handler(request):
            seen.append(request.url)
            return httpx.Response(200, json={"url": "http://cdn/abc.m3u8", "parse": 0, "header": {"Referer": "http://r"}})

        result = _call(tmp_path, handler, "get_play_url", SPIDER, "abc", "line1")
        assert result.url == "http://cdn/abc.m3u8"
        assert result.parse == 0
        assert result.headers == {"Referer": "http://r"}
        assert seen[0].path == "/api/spider/k/play"
        assert seen[0].params["flag"] == "line1"
        assert seen[0].params["id"] == "abc"

    def test_default_flag(self, tmp_path):
        seen = []

        def handler(request):
            seen.append(request.url)
            return httpx.Response(200, json={"url": "http://cdn/x", "parse": 1})

        result = _call(tmp_path, handler, "get_play_url", SPIDER, "abc")
        assert seen[0].params["flag"] == "default"
        assert result.parse == 1

    def test_backend_failure_falls_back(self, tmp_path):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500)

        result = _call(tmp_path, handler, "get_play_url", SPIDER, "abc")
        assert result.url == "abc"
        assert result.parse == 1
        assert len(calls) == 1

    def test_non_json_falls_back(self, tmp_path):
        result = _call(tmp_path, lambda request: httpx.Response(200, text="<html>"), "get_play_url", SPIDER, "abc")
        assert result.parse == 1


class TestSearch:
    """Single-source search responses."""

    def test_missing_query(self, tmp_path):
        result = _call(tmp_path, _unexpected, "search", "", CLASSIC)
        assert result.code == 400

    def test_missing_source(self, tmp_path):
        result = _call(tmp_path, _unexpected, "search", "q", None)
        assert result.code == 400

    def test_classic_search(self, tmp_path):
        seen = []

        def handler(request):
            seen.append(str(request.url))
            return httpx.Response(200, json={"list": [{"vod_id": 1, "vod_name": "A"}]})

        result = _call(tmp_path, handler, "search", "a b", CLASSIC)
        assert result.code == 200
        assert result.list[0].source_code == "cl"
        assert seen == ["http://classic.test/api.php/provide/vod/?ac=videolist&wd=a%20b"]

    def test_spider_search(self, tmp_path):
        seen = []

        def handler(request):
            seen.append(request.url)
            return httpx.Response(200, json={"list": [{"vod_id": "x"}]})

        result = _call(tmp_path, handler, "search", "q", SPIDER)
        assert result.code == 200
        assert seen[0].path == "/api/spider/k/search"
        assert seen[0].params["keyword"] == "q"

    def test_malformed_row_skipped(self, tmp_path):
        rows = [{"vod_id": 1, "vod_name": "good"}, {"vod_id": None}, {"vod_id": 3, "vod_pic": {"x": 1}}, "junk"]
        result = _call(tmp_path, lambda request: httpx.Response(200, json={"list": rows}), "search", "q", CLASSIC)
        assert result.code == 200
        assert [item.vod_id for item in result.list] == ["1", ""]
        assert result.list[0].vod_name == "good"

    def test_upstream_error(self, tmp_path):
        result = _call(tmp_path, lambda request: httpx.Response(200, text="nope"), "search", "q", CLASSIC)
        assert result.code == 400
        assert result.list == []
        assert result.msg.startswith("Malformed JSON")

    def test_routed_through_local_forwarder(self, tmp_path):
        seen = []

        def handler(request):
            seen.append(request.url)
            return httpx.Response(200, json={"list": []})

        def configure(cfg):
            cfg.config["options"]["local_proxy_url"] = "http://fwd.test/proxy"

        _call(tmp_path, handler, "search", "q", CLASSIC, configure=configure)
        assert seen[0].host == "fwd.test"
        assert seen[0].params["url"].startswith("http://classic.test/api.php/provide/vod/")

    def test_spider_never_proxied(self, tmp_path):
        seen = []

        def handler(request):
            seen.append(request.url)
            return httpx.Response(200, json={"list": []})

        def configure(cfg):
            cfg.config["options"]["proxy"] = {"enabled": True, "proxy_url": "http://global.test/?u="}

        _call(tmp_path, handler, "search", "q", SPIDER, configure=configure)
        assert seen[0].host == "backend.test"


class TestDetail:
    """Detail responses."""

    def test_detail_ok(self, tmp_path):
        record = {
            "vod_id": 5,
            "vod_name": "Show",
            "vod_play_from": "mp4$$$m3u8",
            "vod_play_url": "E1$http://h/1.mp4$$$E1$http://h/1.m3u8#E2$http://h/2.m3u8",
        }
        result = _call(tmp_path, lambda request: httpx.Response(200, json={"list": [record]}), "get_video_detail", "5", CLASSIC)
        assert result.code == 200
        assert result.episodes == ["http://h/1.m3u8", "http://h/2.m3u8"]
        assert result.video_info.episodes_names == ["E1", "E2"]
        assert result.video_info.source_code == "cl"
        assert result.detail_url == "http://classic.test/api.php/provide/vod/?ac=videolist&ids=5"

    def test_detail_uses_detail_url(self, tmp_path):
        seen = []

        def handler(request):
            seen.append(request.url)
            return httpx.Response(200, json={"list": [{"vod_id": 1}]})

        source = CLASSIC.model_copy(update={"detail_url": "http://detail.test"})
        _call(tmp_path, handler, "get_video_detail", "1", source)
        assert seen[0].host == "detail.test"

    def test_xml_detail(self, tmp_path):
        body = (
            '<?xml version="1.0" encoding="utf-8"?><rss><list><video><id>1</id><name>X</name>'
            '<dl><dd flag="m3u8">E1$http://h/1.m3u8</dd></dl></video></list></rss>'
        )
        source = Source(id="xm", url="http://x.test/api.php/provide/vod/at/xml", timeout=1000, retry=0)
        result = _call(tmp_path, lambda request: httpx.Response(200, text=body), "get_video_detail", "1", source)
        assert result.code == 200
        assert result.episodes == ["http://h/1.m3u8"]

    def test_empty_list(self, tmp_path):
        result = _call(tmp_path, lambda request: httpx.Response(200, json={"list": []}), "get_video_detail", "1", CLASSIC)
        assert result.code == 400
        assert result.msg == "Invalid detail content"

    def test_no_playable_content(self, tmp_path):
        record = {"vod_id": 1, "vod_name": "Trailer only", "vod_play_url": "E1$magnet:abc"}
        result = _call(tmp_path, lambda request: httpx.Response(200, json={"list": [record]}), "get_video_detail", "1", CLASSIC)
        assert result.code == 200
        assert result.episodes == []
        assert result.msg == NO_PLAYABLE_CONTENT

    def test_missing_id(self, tmp_path):
        assert _call(tmp_path, _unexpected, "get_video_detail", "", CLASSIC).code == 400


def test_validation_errors_are_not_echoed():
    with pytest.raises(ValidationError) as exc:
        CatalogItem.model_validate({"vod_pic": {"nested": True}})
    assert failure_message(exc.value) == INVALID_CONTENT
    assert "pydantic" not in failure_message(exc.value)
