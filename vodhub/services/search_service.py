"""Aggregated search: fans one query out over many sources with bounded concurrency."""
from __future__ import annotations

import asyncio
import inspect
import logging
from typing import TYPE_CHECKING, Awaitable, Callable, Optional, Union

from vodhub.models.source import Source
from vodhub.models.video import CatalogItem
from vodhub.services.vod_service import SOURCE_ERRORS

if TYPE_CHECKING:
    from vodhub.services.vod_service import VodService

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 3

BatchCallback = Callable[[list[CatalogItem]], Union[None, Awaitable[None]]]


class SearchCancelled(Exception):
    """The aggregation session was cancelled before it finished."""


class AggregationSession:
    """State of one aggregated search: dedup keys, results, cancellation."""

    def __init__(self, query: str, cancel_event: Optional[asyncio.Event] = None):
        self.query = query
        self.cancel_event = cancel_event or asyncio.Event()
        self.seen: set[str] = set()
        self.results: list[CatalogItem] = []

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def accept(self, items: list[CatalogItem]) -> list[CatalogItem]:
        """Keep the first-seen item per ``source_code:vod_id`` and record it.

        Runs without awaiting, so a batch is checked and recorded in one step.
        """
        fresh = []
        for item in items:
            key = item.dedup_key
            if key in self.seen:
                continue
            self.seen.add(key)
            fresh.append(item)
        self.results.extend(fresh)
        return fresh


class SearchService:
    """Runs a query against many sources and streams deduplicated batches."""

    def __init__(self, vod_service: "VodService"):
        self.vod_service = vod_service

    async def _search_source(self, query: str, source: Source) -> list[CatalogItem]:
        try:
            return await self.vod_service.search_items(query, source)
        except SOURCE_ERRORS as e:
            logger.warning(f"Source '{source.name}' search failed: {e or type(e).__name__}")
            return []

    async def aggregated_search(
        self,
        query: str,
        sources: list[Source],
        on_batch: Optional[BatchCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
        concurrency: int = DEFAULT_CONCURRENCY,
    ) -> list[CatalogItem]:
        """Search *sources* concurrently, at most *concurrency* at a time.

        Each source's new (not yet seen) items are passed to *on_batch* as soon
        as that source finishes; the returned list is in completion order.
        A failing source contributes nothing.  Setting *cancel_event* stops all
        further ``on_batch`` calls and raises :class:`SearchCancelled`; tasks
        already running finish in the background and their output is dropped.
        """
        if cancel_event is not None and cancel_event.is_set():
            raise SearchCancelled("Search cancelled")
        if not sources:
            logger.warning("Aggregated search called without any sources")
            return []

        session = AggregationSession(query, cancel_event)
        semaphore = asyncio.Semaphore(max(concurrency, 1))

        async def run(source: Source) -> None:
            async with semaphore:
                if session.cancelled:
                    return
                items = await self._search_source(query, source)
            if session.cancelled:
                return
            fresh = session.accept(items)
            if not fresh or on_batch is None:
                return
            result = on_batch(fresh)
            if inspect.isawaitable(result):
                await result

        tasks = [asyncio.create_task(run(source)) for source in sources]
        everything = asyncio.gather(*tasks, return_exceptions=True)
        cancelled = asyncio.create_task(session.cancel_event.wait())
        try:
            await asyncio.wait({everything, cancelled}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            cancelled.cancel()

        if session.cancelled:
            logger.info(f"Aggregated search for '{query}' cancelled")
            raise SearchCancelled("Search cancelled")

        for outcome in everything.result():
            if isinstance(outcome, BaseException):
                logger.error(f"Aggregated search task failed: {outcome}")

        logger.info(f"Aggregated search for '{query}': {len(session.results)} result(s) from {len(sources)} source(s)")
        return session.results
