from __future__ import annotations

import re
from urllib.parse import urljoin, urlsplit, urlunsplit

from ..handlers import FetchHandler, LogAware
from ..results import FetchResponseEvent, FetchResult
from ..urls import normalize_url, url_host

_SCHEME_PREFIX = re.compile(r"^([A-Za-z][A-Za-z0-9+.\-]*):")
_CRAWLABLE_SCHEMES = {"http", "https"}


def is_link_crawlable(href: str) -> bool:
    """False for empty hrefs and non-http(s) schemes (javascript:, mailto:, tel:, ...)."""

    if not href:
        return False
    m = _SCHEME_PREFIX.match(href)
    if m and m.group(1).lower() not in _CRAWLABLE_SCHEMES:
        return False
    return True


def is_crawlable_response(result: FetchResult) -> bool:
    response = result.response
    return response.status_code == 200 and response.content_type.lstrip().startswith(
        "text/html"
    )


class AutoCrawl(FetchHandler, LogAware):
    """Finds the links on every fetched HTML page and queues them.

    Links are queued one level deeper than the page they were found on, as
    long as the page itself is within `max_depth`.
    """

    def __init__(self, max_depth: int = 3, *, crawl_external_domains: bool = False) -> None:
        self.max_depth = max_depth
        self.crawl_external_domains = crawl_external_domains
        self._link_paths: dict[str, list[str]] = {}

    def handle_response(self, event: FetchResponseEvent) -> None:
        result = event.result
        if not is_crawlable_response(result):
            return

        links = self.crawlable_links(result)
        self._record_link_paths(result.url, links)

        for link in links:
            if result.depth <= self.max_depth:
                event.target.push_url(link, result.depth + 1)
            else:
                self.log.info(
                    "Not crawling %s (%s) because max depth (%s) reached",
                    link,
                    result.depth,
                    self.max_depth,
                )

    def crawlable_links(self, result: FetchResult) -> list[str]:
        links: list[str] = []
        for href in result.document.hrefs():
            link = self.normalize_href(result.url, href)
            if link is not None:
                links.append(link)
        return links

    def normalize_href(self, page_url: str, href: str | None) -> str | None:
        if href is None:
            return None
        cleaned = re.sub(r"#.*$", "", href, flags=re.DOTALL).strip()
        if not is_link_crawlable(cleaned):
            return None

        page_host = url_host(page_url)
        try:
            normalized, link_type = self._resolve(page_url, page_host, cleaned)
        except ValueError as e:
            # urllib rejects e.g. unbalanced IPv6 brackets.
            self.log.debug("%s - Skipping malformed link %r: %s", page_url, href, e)
            return None

        self.log.debug(
            "%s - Normalized link: %s => %s (%s)", page_url, href, normalized, link_type
        )

        if not self.crawl_external_domains and url_host(normalized) != page_host:
            return None
        return normalized

    def _resolve(self, page_url: str, page_host: str, href: str) -> tuple[str, str]:
        link = urlsplit(href)

        if not link.netloc:
            link_type = "Absolute" if link.path.startswith("/") else "Relative"
            link = urlsplit(urljoin(page_url, href))
        else:
            if not link.scheme:
                link = link._replace(scheme=urlsplit(page_url).scheme)
            link_type = "Absolute" if (link.hostname or "").lower() == page_host else "External"

        if not link.path:
            link = link._replace(path="/")

        return normalize_url(urlunsplit(link)), link_type

    def _record_link_paths(self, page_url: str, links: list[str]) -> None:
        self._link_paths.setdefault(page_url, []).extend(links)

    @property
    def link_paths(self) -> dict[str, list[str]]:
        return {page: list(links) for page, links in self._link_paths.items()}
