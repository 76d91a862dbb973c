from __future__ import annotations

import json
import logging
import os
import re
import tempfile
import time
from pathlib import Path

from .http_client import HttpClient, Response
from .results import FetchRequest
from .urls import host_cache_key, url_path

log = logging.getLogger(__name__)

CACHE_FORMAT = "webspider-cache"
CACHE_FORMAT_VERSION = 1

# Filename for URLs whose last path segment has no extension.
DEFAULT_FILENAME = "_default"

_INVALID_FILENAME_CHARS = re.compile(r"[<>:\"\\|?*\x00-\x1F]")


def encode_response(response: Response) -> bytes:
    header = {
        "format": CACHE_FORMAT,
        "version": CACHE_FORMAT_VERSION,
        "url": response.url,
        "final_url": response.final_url,
        "status_code": response.status_code,
        "headers": response.headers,
        "fetched_at": response.fetched_at,
    }
    return json.dumps(header, ensure_ascii=True).encode("ascii") + b"\n" + response.body


def decode_response(blob: bytes) -> Response | None:
    """Decode a cache entry; anything not written by `encode_response` is None."""

    head, sep, body = blob.partition(b"\n")
    if not sep:
        return None
    try:
        meta = json.loads(head.decode("ascii"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None
    if not isinstance(meta, dict):
        return None
    if meta.get("format") != CACHE_FORMAT or meta.get("version") != CACHE_FORMAT_VERSION:
        return None
    try:
        return Response(
            url=str(meta["url"]),
            final_url=str(meta.get("final_url") or meta["url"]),
            status_code=int(meta["status_code"]),
            headers={str(k): str(v) for k, v in (meta.get("headers") or {}).items()},
            body=body,
            fetched_at=float(meta.get("fetched_at") or 0.0),
        )
    except (KeyError, TypeError, ValueError, AttributeError):
        return None


def _safe_segment(segment: str) -> str:
    if segment in {".", ".."}:
        return "_"
    return _INVALID_FILENAME_CHARS.sub("_", segment)


def ensure_dir(path: Path) -> Path:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise RuntimeError(f"Unable to create cache directory: {path}") from e
    return path


def atomic_write_bytes(path: Path, data: bytes) -> None:
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".", suffix=".part")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def is_fresh(path: Path, max_age_s: float | None) -> bool:
    if max_age_s is None or max_age_s <= 0:
        return True
    try:
        age = time.time() - path.stat().st_mtime
    except OSError:
        return False
    return age <= max_age_s


class CacheStore:
    """Response blobs on disk, keyed by host and URL path.

    Layout: `<cache_dir>/<host_key>/<path dirs>/<filename>`. The filename is
    the last path segment when it has an extension, `_default` otherwise, so
    `/docs` and `/docs/` both land on `docs/_default`.
    """

    def __init__(self, cache_dir: Path, *, max_age_s: float = 0) -> None:
        self.cache_dir = Path(cache_dir)
        self.max_age_s = max_age_s

    def domain_dir(self, url: str) -> Path:
        return ensure_dir(self.cache_dir / host_cache_key(url))

    def path_for(self, url: str) -> Path:
        parts = url_path(url).split("/")
        page_part = parts[-1]
        if not page_part or "." not in page_part:
            filename = DEFAULT_FILENAME
        else:
            filename = _safe_segment(parts.pop())

        path = self.cache_dir / host_cache_key(url)
        for part in parts:
            if part:
                path = path / _safe_segment(part)
        return path / filename

    def get(self, request: FetchRequest, *, max_age_s: float | None = None) -> bytes | None:
        path = self.path_for(request.url)
        if not path.is_file():
            return None

        max_age = self.max_age_s if max_age_s is None else max_age_s
        if not is_fresh(path, max_age):
            log.debug("Stale cache entry for %s (%s)", request.url, path)
            return None

        try:
            return path.read_bytes()
        except OSError:
            return None

    def put(self, request: FetchRequest, blob: bytes) -> Path:
        path = self.path_for(request.url)
        ensure_dir(path.parent)
        atomic_write_bytes(path, blob)
        return path


class CachedHttpClient:
    """Single-file response cache in front of a transport.

    While caching is enabled every request is answered from `cache_file`
    when it holds a fresh entry; otherwise the request goes out and the
    response replaces the file.
    """

    def __init__(self, http: HttpClient) -> None:
        self._http = http
        self._cache_file: Path | None = None
        self._max_age_s: float | None = None

    def enable_cache(self, cache_file: Path, max_age_s: float | None = None) -> None:
        self._cache_file = Path(cache_file)
        self._max_age_s = max_age_s

    def disable_cache(self) -> None:
        self._cache_file = None
        self._max_age_s = None

    def _cached_response(self) -> Response | None:
        if self._cache_file is None or not self._cache_file.is_file():
            return None
        if not is_fresh(self._cache_file, self._max_age_s):
            return None
        try:
            return decode_response(self._cache_file.read_bytes())
        except OSError:
            return None

    def cache_response(self, response: Response) -> None:
        if self._cache_file is None:
            return
        ensure_dir(self._cache_file.parent)
        atomic_write_bytes(self._cache_file, encode_response(response))

    def request(self, method: str, url: str) -> Response:
        response = self._cached_response()
        if response is None:
            response = self._http.request(method, url)
            self.cache_response(response)
        return response

    def get(self, url: str) -> Response:
        return self.request("GET", url)
