from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

import requests
from requests import exceptions as req_exc

from .urls import normalize_url

log = logging.getLogger(__name__)

TRANSIENT_HTTP_STATUSES = {429, 500, 502, 503, 504}

DEFAULT_USER_AGENT = "UrlFetcher"


def _retry_after_seconds(headers: dict[str, str]) -> float | None:
    retry_after = headers.get("Retry-After")
    if not retry_after:
        return None
    try:
        return float(retry_after)
    except ValueError:
        return None


@dataclass(frozen=True)
class Request:
    method: str
    url: str


@dataclass(frozen=True)
class Response:
    url: str
    final_url: str
    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    fetched_at: float = 0.0

    def header(self, name: str) -> str:
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return ""

    @property
    def content_type(self) -> str:
        return self.header("Content-Type")


class HttpClient:
    """Blocking transport on top of a `requests.Session`.

    Redirects are always followed; the returned response carries the
    post-redirect URL in `final_url`.
    """

    def __init__(
        self,
        session: requests.Session,
        *,
        timeout_s: float = 45,
        max_retries: int = 0,
        backoff_base_s: float = 1.0,
        verify: bool = True,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self._session = session
        self._timeout_s = timeout_s
        self._max_retries = max_retries
        self._backoff_base_s = backoff_base_s
        self._verify = verify
        self._headers = {"User-Agent": user_agent}

    def request(self, method: str, url: str) -> Response:
        normalized = normalize_url(url)
        last_error: Exception | None = None

        for attempt in range(self._max_retries + 1):
            try:
                resp = self._session.request(
                    method,
                    normalized,
                    timeout=self._timeout_s,
                    headers=self._headers,
                    verify=self._verify,
                    allow_redirects=True,
                )

                if (
                    resp.status_code in TRANSIENT_HTTP_STATUSES
                    and attempt < self._max_retries
                ):
                    retry_after = _retry_after_seconds(dict(resp.headers))
                    wait_s = (
                        retry_after
                        if retry_after is not None
                        else self._backoff_base_s * (2**attempt)
                    )
                    log.debug(
                        "%s %s returned %s, retrying in %.1fs",
                        method,
                        normalized,
                        resp.status_code,
                        wait_s,
                    )
                    time.sleep(wait_s)
                    continue

                # Error statuses are returned too; the crawl decides what to do.
                return Response(
                    url=normalized,
                    final_url=str(resp.url),
                    status_code=int(resp.status_code),
                    headers={k: str(v) for k, v in resp.headers.items()},
                    body=resp.content,
                    fetched_at=time.time(),
                )
            except req_exc.RequestException as e:
                last_error = e
                if attempt >= self._max_retries:
                    break
                time.sleep(self._backoff_base_s * (2**attempt))

        raise RuntimeError(f"Failed to fetch {normalized}: {last_error}")

    def get(self, url: str) -> Response:
        return self.request("GET", url)
