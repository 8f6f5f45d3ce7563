"""Tests for the aggregated search orchestrator."""

import asyncio

import httpx
import pytest

from vodhub.models.source import Source
from vodhub.services.config_service import ConfigService
from vodhub.services.http_client import HttpClientService
from vodhub.services.search_service import AggregationSession, SearchCancelled, SearchService
from vodhub.services.vod_service import VodService, tag_items


def _listing(*ids):
    return httpx.Response(200, json={"code": 1, "list": [{"vod_id": i, "vod_name": f"Title {i}"} for i in ids]})


def _source(host, **kwargs):
    kwargs.setdefault("timeout", 1000)
    kwargs.setdefault("retry", 0)
    return Source(id=kwargs.pop("id", host), name=host.upper(), url=f"http://{host}.test", **kwargs)


def _search(tmp_path, handler, query, sources, **kwargs):
    async def go():
        http = HttpClientService(transport=httpx.MockTransport(handler))
        searcher = SearchService(VodService(ConfigService(str(tmp_path)), http))
        try:
            return await searcher.aggregated_search(query, sources, **kwargs)
        finally:
            await http.close()

    return asyncio.run(go())


class TestPartialFailure:
    """One bad source never sinks the aggregate."""

    def test_timeout_and_malformed_sources_contribute_nothing(self, tmp_path):
        attempts = {}

        async def handler(request):
            host = request.url.host
            attempts[host] = attempts.get(host, 0) + 1
            if host == "s3.test":
                await asyncio.sleep(1)
            if host == "s5.test":
                return httpx.Response(200, text="{broken")
            number = int(host[1])
            return _listing(f"{number}a", f"{number}b")

        sources = [_source(f"s{i}") for i in range(1, 6)]
        sources[2] = _source("s3", timeout=20, retry=2)
        batches = []
        results = _search(tmp_path, handler, "q", sources, on_batch=batches.append)

        assert len(results) == 6
        assert {item.source_code for item in results} == {"s1", "s2", "s4"}
        assert attempts["s3.test"] == 3
        assert len(batches) == 3
        assert sum(len(b) for b in batches) == len(results)

    def test_non_2xx_source_is_skipped(self, tmp_path):
        def handler(request):
            if request.url.host == "bad.test":
                return httpx.Response(500, text="oops")
            return _listing(1)

        results = _search(tmp_path, handler, "q", [_source("bad"), _source("good")])
        assert [item.source_code for item in results] == ["good"]

    def test_malformed_row_keeps_the_rest(self, tmp_path):
        def handler(request):
            return httpx.Response(200, json={"list": [{"vod_id": 1, "vod_name": "good"}, {"vod_id": 2, "vod_name": ["bad"]}]})

        results = _search(tmp_path, handler, "q", [_source("mixed")])
        assert [item.vod_name for item in results] == ["good"]

    def test_no_sources(self, tmp_path):
        assert _search(tmp_path, lambda request: _listing(1), "q", []) == []


class TestDedup:
    """Items are unique per (source_code, vod_id)."""

    def test_same_source_duplicates_dropped(self, tmp_path):
        def handler(request):
            if request.url.host == "first.test":
                return _listing(1, 2)
            return _listing(2, 3)

        sources = [_source("first", id="A"), _source("second", id="A")]
        batches = []
        results = _search(tmp_path, handler, "q", sources, on_batch=batches.append, concurrency=1)

        assert sorted(item.vod_id for item in results) == ["1", "2", "3"]
        assert [[i.vod_id for i in b] for b in batches] == [["1", "2"], ["3"]]

    def test_same_vod_id_on_different_sources_kept(self, tmp_path):
        results = _search(tmp_path, lambda request: _listing(9), "q", [_source("x"), _source("y")])
        assert sorted(item.dedup_key for item in results) == ["x:9", "y:9"]

    def test_items_are_tagged(self, tmp_path):
        results = _search(tmp_path, lambda request: _listing(9), "q", [_source("x")])
        item = results[0]
        assert item.source_code == "x"
        assert item.source_name == "X"
        assert item.api_url == "http://x.test"

    def test_session_accept(self):
        session = AggregationSession("q")
        items = tag_items([{"vod_id": 1}, {"vod_id": 1}, {"vod_id": 2}], Source(id="s", url="http://s"))
        assert [i.vod_id for i in session.accept(items)] == ["1", "2"]
        assert session.accept(items) == []
        assert len(session.results) == 2


class TestConcurrency:
    """The in-flight cap holds."""

    @pytest.mark.parametrize("cap", [1, 2, 3])
    def test_cap_respected(self, tmp_path, cap):
        state = {"in_flight": 0, "peak": 0}

        async def handler(request):
            state["in_flight"] += 1
            state["peak"] = max(state["peak"], state["in_flight"])
            await asyncio.sleep(0.02)
            state["in_flight"] -= 1
            return _listing(request.url.host)

        sources = [_source(f"c{i}") for i in range(7)]
        results = _search(tmp_path, handler, "q", sources, concurrency=cap)
        assert len(results) == 7
        assert state["peak"] == cap


class TestCancellation:
    """Cancelling stops delivery and rejects the search."""

    def test_cancel_from_callback(self, tmp_path):
        async def handler(request):
            await asyncio.sleep(0.01)
            return _listing(request.url.host)

        async def go():
            http = HttpClientService(transport=httpx.MockTransport(handler))
            searcher = SearchService(VodService(ConfigService(str(tmp_path)), http))
            cancel = asyncio.Event()
            batches = []

            def on_batch(items):
                batches.append(items)
                cancel.set()

            try:
                with pytest.raises(SearchCancelled):
                    await searcher.aggregated_search(
                        "q", [_source(f"k{i}") for i in range(4)], on_batch, cancel, concurrency=1
                    )
                await asyncio.sleep(0.1)
            finally:
                await http.close()
            return batches

        assert len(asyncio.run(go())) == 1

    def test_already_cancelled(self, tmp_path):
        async def go():
            cancel = asyncio.Event()
            cancel.set()
            searcher = SearchService(VodService(ConfigService(str(tmp_path)), HttpClientService()))
            await searcher.aggregated_search("q", [_source("z")], cancel_event=cancel)

        with pytest.raises(SearchCancelled):
            asyncio.run(go())

    def test_async_callback(self, tmp_path):
        seen = []

        async def on_batch(items):
            await asyncio.sleep(0)
            seen.extend(items)

        results = _search(tmp_path, lambda request: _listing(1, 2), "q", [_source("a")], on_batch=on_batch)
        assert seen == results
