from __future__ import annotations

import json

from webspider.state import UrlQueue, load_queue_snapshot, save_queue_snapshot


def test_push_is_idempotent_and_first_depth_wins():
    queue = UrlQueue()
    assert queue.push("http://example.com/a", 2) is True
    assert queue.push("http://example.com/a", 5) is False
    assert queue.push("HTTP://EXAMPLE.com/a#frag", 1) is False

    assert len(queue) == 1
    assert queue.get("http://example.com/a").depth == 2


def test_pending_is_a_snapshot_in_insertion_order():
    queue = UrlQueue()
    for url in ("http://x.com/1", "http://x.com/2", "http://x.com/3"):
        queue.push(url)
    queue.get("http://x.com/2").mark_visited()

    pending = queue.pending()
    queue.push("http://x.com/4")

    assert [r.url for r in pending] == ["http://x.com/1", "http://x.com/3"]
    assert [r.url for r in queue.pending()] == [
        "http://x.com/1",
        "http://x.com/3",
        "http://x.com/4",
    ]


def test_has_pending_and_contains():
    queue = UrlQueue()
    assert not queue.has_pending()
    queue.push("http://x.com/")
    assert "http://X.com/" in queue
    assert queue.has_pending()
    queue.get("http://x.com/").mark_visited()
    assert not queue.has_pending()


def test_snapshot_is_written_and_loaded(tmp_path):
    queue = UrlQueue()
    queue.push("http://x.com/", 1)
    queue.push("http://x.com/b", 2)
    queue.get("http://x.com/").mark_visited()

    path = tmp_path / "x_com" / "urls.cache"
    save_queue_snapshot(path, queue)

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["version"] == 1
    assert data["urls"] == [
        {"url": "http://x.com/", "depth": 1, "visited": True},
        {"url": "http://x.com/b", "depth": 2, "visited": False},
    ]

    loaded = load_queue_snapshot(path)
    assert loaded is not None
    assert [r.to_dict() for r in loaded] == data["urls"]


def test_load_snapshot_tolerates_garbage(tmp_path):
    path = tmp_path / "urls.cache"
    assert load_queue_snapshot(path) is None
    path.write_text("{not json", encoding="utf-8")
    assert load_queue_snapshot(path) is None
    path.write_text('{"version": 7, "urls": []}', encoding="utf-8")
    assert load_queue_snapshot(path) is None
