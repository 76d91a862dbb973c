from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

import requests
from tqdm import tqdm

from .cache import CacheStore, decode_response, encode_response
from .document import parse_document
from .handlers import FetchHandler, HandlerPipeline
from .http_client import HttpClient, Request
from .results import FetchRequest, FetchResponseEvent, FetchResult
from .state import QUEUE_SNAPSHOT_FILENAME, UrlQueue, save_queue_snapshot
from .urls import normalize_url


@dataclass
class FetcherConfig:
    cache_dir: Path
    request_delay_s: float = 2.0
    max_cache_age_s: float = 0
    progress: bool = False


class UrlFetcher:
    """Breadth-first crawl driven by a queue of `FetchRequest`s.

    Each round takes every entry that is pending when the round starts;
    URLs queued by handlers during a round are fetched in the next one.
    """

    def __init__(
        self,
        config: FetcherConfig,
        *,
        http: HttpClient | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        self.cfg = config
        self.log = log or logging.getLogger(__name__)
        self.http = http or HttpClient(requests.Session())
        self.cache = CacheStore(self.cfg.cache_dir, max_age_s=self.cfg.max_cache_age_s)
        self.handlers = HandlerPipeline(self.log)

        self._queue = UrlQueue()
        self._running = False

    @property
    def queue(self) -> UrlQueue:
        return self._queue

    def on_fetch(
        self, handler: FetchHandler | Callable[[FetchResponseEvent], object]
    ) -> FetchHandler:
        if self._running:
            raise RuntimeError("Handlers cannot be registered while a crawl is running")
        return self.handlers.add(handler)

    def on_fetch_callback(self, callback: Callable[[FetchResponseEvent], object]) -> FetchHandler:
        if not callable(callback):
            raise TypeError("on_fetch_callback expects a callable")
        return self.on_fetch(callback)

    def push_url(self, url: str, depth: int = 1) -> None:
        if isinstance(depth, bool) or not isinstance(depth, int) or depth < 1:
            raise ValueError(f"Depth should be a positive integer, got {depth!r}")

        if self._queue.push(url, depth):
            self.log.info("Adding URL to crawl %s", normalize_url(url))

    def fetch(self, url: str) -> FetchResult | None:
        seed = normalize_url(url)
        self.push_url(seed)

        self.log.info("Start Fetch %s", seed)
        depth = 0
        seed_result: FetchResult | None = None

        self._running = True
        try:
            while self._queue.has_pending():
                depth += 1
                pending = self._queue.pending()
                self.log.info("Round #%s - Scanning: %s", f"{depth:,}", f"{len(pending):,}")

                results = self._process_round(pending, depth)
                for fetch_request, result in zip(pending, results):
                    if seed_result is None and fetch_request.url == seed:
                        seed_result = result
        finally:
            self._running = False

        self.log.info("Finished Fetch %s", seed)
        return seed_result

    def _process_round(self, pending: list[FetchRequest], depth: int) -> list[FetchResult]:
        results: list[FetchResult] = []
        for fetch_request in tqdm(
            pending,
            desc=f"Round {depth}",
            unit="page",
            disable=not self.cfg.progress,
        ):
            result = self._fetch_result(fetch_request, depth)

            self.handlers.dispatch(FetchResponseEvent(self, result))
            fetch_request.mark_visited()

            if not result.is_cached and result.is_cacheable:
                self._cache_result(fetch_request, result)

            self._persist_queue(fetch_request.url)
            results.append(result)

            if not result.is_cached and self.cfg.request_delay_s > 0:
                time.sleep(self.cfg.request_delay_s)

        return results

    def direct_fetch(self, url: str, cache_response: bool = True) -> FetchResult:
        """Fetch one URL without the queue or the handlers."""

        fetch_request = FetchRequest(url=normalize_url(url))
        result = self._fetch_result(fetch_request)

        if cache_response and not result.is_cached and result.is_cacheable:
            self._cache_result(fetch_request, result)

        return result

    def _fetch_result(self, fetch_request: FetchRequest, depth: int = 1) -> FetchResult:
        response = None
        blob = self.cache.get(fetch_request)
        if blob is not None:
            response = decode_response(blob)

        is_cached = response is not None
        if response is None:
            response = self.http.request("GET", fetch_request.url)

        # Post-redirect URL either way; cache and queue stay keyed by fetch_request.url.
        request = Request("GET", normalize_url(response.final_url))

        self.log.info(
            "%s %s %s%s",
            request.method,
            request.url,
            response.status_code,
            " (Cached)" if is_cached else "",
        )

        return FetchResult(
            request=request,
            response=response,
            document=parse_document(response.body),
            is_cached=is_cached,
            depth=depth,
        )

    def _cache_result(self, fetch_request: FetchRequest, result: FetchResult) -> None:
        self.cache.put(fetch_request, encode_response(result.response))

    def _persist_queue(self, url: str) -> None:
        path = self.cache.domain_dir(url) / QUEUE_SNAPSHOT_FILENAME
        save_queue_snapshot(path, self._queue)
