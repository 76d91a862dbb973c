from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import pytest
from requests import exceptions as req_exc

from webspider.fetcher import FetcherConfig, UrlFetcher
from webspider.http_client import HttpClient


@dataclass
class FakeHttpResponse:
    status_code: int
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    content: bytes = b""


class FakeSession:
    """Stands in for `requests.Session`; serves canned pages by URL."""

    def __init__(self) -> None:
        self.pages: dict[str, tuple[int, dict[str, str], bytes]] = {}
        self.redirects: dict[str, str] = {}
        self.failing: set[str] = set()
        self.calls: list[tuple[str, str]] = []

    def add_page(
        self,
        url: str,
        body: bytes | str = b"",
        *,
        status: int = 200,
        content_type: str = "text/html; charset=utf-8",
    ) -> None:
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.pages[url] = (status, {"Content-Type": content_type}, body)

    def request(self, method: str, url: str, **kwargs) -> FakeHttpResponse:
        self.calls.append((method, url))
        if url in self.failing:
            raise req_exc.ConnectionError(f"connection refused: {url}")
        final_url = self.redirects.get(url, url)
        if final_url not in self.pages:
            return FakeHttpResponse(404, final_url, {"Content-Type": "text/html"}, b"missing")
        status, headers, body = self.pages[final_url]
        return FakeHttpResponse(status, final_url, dict(headers), body)

    def fetched_urls(self) -> list[str]:
        return [url for _, url in self.calls]


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def http(session: FakeSession) -> HttpClient:
    return HttpClient(session, backoff_base_s=0)  # type: ignore[arg-type]


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    return tmp_path / "cache"


@pytest.fixture
def fetcher(http: HttpClient, cache_dir: Path) -> UrlFetcher:
    return UrlFetcher(FetcherConfig(cache_dir=cache_dir, request_delay_s=0), http=http)
