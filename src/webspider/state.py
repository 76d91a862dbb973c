from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Iterator

from .cache import atomic_write_bytes, ensure_dir
from .results import FetchRequest
from .urls import normalize_url

QUEUE_SNAPSHOT_FILENAME = "urls.cache"
QUEUE_SNAPSHOT_VERSION = 1


class UrlQueue:
    """Insertion-ordered crawl queue keyed by normalized URL.

    `push` is the only way in; a URL already present keeps its first depth.
    """

    def __init__(self) -> None:
        self._entries: dict[str, FetchRequest] = {}

    def push(self, url: str, depth: int = 1) -> bool:
        key = normalize_url(url)
        if key in self._entries:
            return False
        self._entries[key] = FetchRequest(url=key, depth=depth)
        return True

    def get(self, url: str) -> FetchRequest | None:
        return self._entries.get(normalize_url(url))

    def pending(self) -> list[FetchRequest]:
        # A copy: entries pushed while the caller iterates are not included.
        return [r for r in self._entries.values() if not r.visited]

    def has_pending(self) -> bool:
        return any(not r.visited for r in self._entries.values())

    def __contains__(self, url: object) -> bool:
        return isinstance(url, str) and normalize_url(url) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[FetchRequest]:
        return iter(list(self._entries.values()))

    def to_dict(self) -> dict:
        return {
            "version": QUEUE_SNAPSHOT_VERSION,
            "saved_at": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "urls": [r.to_dict() for r in self._entries.values()],
        }

    @classmethod
    def from_dict(cls, data: dict) -> UrlQueue:
        queue = cls()
        for item in data.get("urls") or []:
            req = FetchRequest.from_dict(item)
            queue._entries.setdefault(req.url, req)
        return queue


def save_queue_snapshot(path: Path, queue: UrlQueue) -> None:
    ensure_dir(path.parent)
    text = json.dumps(queue.to_dict(), indent=2, ensure_ascii=False) + "\n"
    atomic_write_bytes(path, text.encode("utf-8"))


def load_queue_snapshot(path: Path) -> UrlQueue | None:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError, UnicodeDecodeError):
        return None
    if not isinstance(data, dict) or data.get("version") != QUEUE_SNAPSHOT_VERSION:
        return None
    try:
        return UrlQueue.from_dict(data)
    except (KeyError, TypeError, ValueError):
        return None
