from __future__ import annotations

import re
from urllib.parse import SplitResult, urlsplit, urlunsplit

_HOST_KEY_INVALID = re.compile(r"[^A-Za-z0-9\-]+")


def normalize_url(raw_url: str) -> str:
    """Normalize a URL for de-duplication.

    - Lowercases scheme + hostname.
    - Strips fragments.
    - Uses `/` as the path when a host is present and the path is empty.
    """

    parsed: SplitResult = urlsplit(raw_url.strip())
    path = parsed.path
    if parsed.netloc and not path:
        path = "/"
    parsed = parsed._replace(
        scheme=(parsed.scheme or "").lower(),
        netloc=(parsed.netloc or "").lower(),
        path=path,
        fragment="",
    )
    return urlunsplit(parsed)


def url_host(url: str) -> str:
    return (urlsplit(url).hostname or "").lower()


def url_path(url: str) -> str:
    return urlsplit(url).path


def host_cache_key(url: str) -> str:
    # Only the host takes part; the port is dropped by `hostname`.
    return _HOST_KEY_INVALID.sub("_", urlsplit(url).hostname or "")
