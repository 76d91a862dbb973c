from __future__ import annotations

import os
import time

import pytest

from webspider.cache import (
    CachedHttpClient,
    CacheStore,
    decode_response,
    encode_response,
)
from webspider.http_client import Response
from webspider.results import FetchRequest


def _response(url: str = "http://example.com/a.html", body: bytes = b"hello") -> Response:
    return Response(
        url=url,
        final_url=url,
        status_code=200,
        headers={"Content-Type": "text/html"},
        body=body,
        fetched_at=123.0,
    )


def _age(path, seconds: float) -> None:
    past = time.time() - seconds
    os.utime(path, (past, past))


def test_path_for_uses_last_segment_with_extension(cache_dir):
    store = CacheStore(cache_dir)
    assert store.path_for("http://www.example.com/docs/guide/intro.html") == (
        cache_dir / "www_example_com" / "docs" / "guide" / "intro.html"
    )


def test_path_for_extensionless_paths_use_default_file(cache_dir):
    store = CacheStore(cache_dir)
    expected = cache_dir / "example_com" / "docs" / "_default"
    assert store.path_for("http://example.com/docs") == expected
    assert store.path_for("http://example.com/docs/") == expected
    assert store.path_for("http://example.com/") == cache_dir / "example_com" / "_default"


def test_path_for_stays_inside_cache_dir(cache_dir):
    store = CacheStore(cache_dir)
    path = store.path_for("http://example.com/../../etc/passwd.txt")
    assert cache_dir / "example_com" in path.parents


def test_put_then_get_round_trips(cache_dir):
    store = CacheStore(cache_dir)
    req = FetchRequest("http://example.com/a/b.html")
    store.put(req, b"\x00raw bytes\xff")
    assert store.get(req) == b"\x00raw bytes\xff"


def test_get_missing_entry_is_a_miss(cache_dir):
    assert CacheStore(cache_dir).get(FetchRequest("http://example.com/x.html")) is None
    assert not cache_dir.exists()


def test_put_overwrites_existing_entry(cache_dir):
    store = CacheStore(cache_dir)
    req = FetchRequest("http://example.com/a.html")
    store.put(req, b"one")
    store.put(req, b"two")
    assert store.get(req) == b"two"
    leftovers = [p.name for p in store.path_for(req.url).parent.iterdir()]
    assert leftovers == ["a.html"]


def test_stale_entry_is_a_miss_when_max_age_positive(cache_dir):
    store = CacheStore(cache_dir, max_age_s=60)
    req = FetchRequest("http://example.com/a.html")
    path = store.put(req, b"data")

    _age(path, 30)
    assert store.get(req) == b"data"

    _age(path, 120)
    assert store.get(req) is None


def test_max_age_zero_or_negative_disables_staleness(cache_dir):
    store = CacheStore(cache_dir)
    req = FetchRequest("http://example.com/a.html")
    path = store.put(req, b"data")
    _age(path, 10 * 365 * 24 * 3600)

    assert store.get(req) == b"data"
    assert store.get(req, max_age_s=-1) == b"data"
    assert store.get(req, max_age_s=60) is None


def test_put_fails_loudly_when_directory_cannot_be_created(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    store = CacheStore(blocker)
    with pytest.raises(RuntimeError, match="Unable to create cache directory"):
        store.put(FetchRequest("http://example.com/a.html"), b"x")


def test_encoding_round_trip_preserves_response():
    res = _response(body=b"line one\nline two\n")
    assert decode_response(encode_response(res)) == res


@pytest.mark.parametrize(
    "blob",
    [
        b"",
        b"no newline at all",
        b"not json\nbody",
        b'{"format": "other", "version": 1}\nbody',
        b'{"format": "webspider-cache", "version": 99, "url": "x", "status_code": 200}\nbody',
        b'{"format": "webspider-cache", "version": 1}\nbody',
    ],
)
def test_decode_rejects_foreign_or_torn_entries(blob):
    assert decode_response(blob) is None


def test_cached_http_client_serves_fresh_file(tmp_path, session, http):
    session.add_page("http://example.com/a.html", "<p>a</p>")
    client = CachedHttpClient(http)
    client.enable_cache(tmp_path / "one" / "a.cache", max_age_s=3600)

    first = client.get("http://example.com/a.html")
    second = client.get("http://example.com/a.html")

    assert first == second
    assert len(session.calls) == 1


def test_cached_http_client_refetches_stale_file(tmp_path, session, http):
    session.add_page("http://example.com/a.html", "<p>a</p>")
    cache_file = tmp_path / "a.cache"
    client = CachedHttpClient(http)
    client.enable_cache(cache_file, max_age_s=10)

    client.get("http://example.com/a.html")
    _age(cache_file, 100)
    client.get("http://example.com/a.html")

    assert len(session.calls) == 2


def test_cached_http_client_disabled_always_fetches(tmp_path, session, http):
    session.add_page("http://example.com/a.html", "<p>a</p>")
    client = CachedHttpClient(http)
    client.enable_cache(tmp_path / "a.cache")
    client.disable_cache()

    client.get("http://example.com/a.html")
    client.get("http://example.com/a.html")

    assert len(session.calls) == 2
    assert not (tmp_path / "a.cache").exists()
