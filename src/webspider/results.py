from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .document import Document
from .http_client import Request, Response

if TYPE_CHECKING:
    from .fetcher import UrlFetcher


@dataclass
class FetchRequest:
    """A queue entry. `depth` is fixed when the URL is first enqueued."""

    url: str
    depth: int = 1
    visited: bool = False

    def mark_visited(self) -> None:
        self.visited = True

    def to_dict(self) -> dict[str, Any]:
        return {"url": self.url, "depth": self.depth, "visited": self.visited}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FetchRequest:
        return cls(
            url=str(data["url"]),
            depth=int(data.get("depth") or 1),
            visited=bool(data.get("visited")),
        )


@dataclass
class FetchResult:
    request: Request
    response: Response
    document: Document
    is_cached: bool = False
    depth: int = 1
    _is_cacheable: bool = field(default=True, init=False, repr=False)

    @property
    def url(self) -> str:
        return self.request.url

    @property
    def is_cacheable(self) -> bool:
        return self._is_cacheable

    @is_cacheable.setter
    def is_cacheable(self, value: bool) -> None:
        if value and not self._is_cacheable:
            raise ValueError(f"Caching was already disabled for {self.url}")
        self._is_cacheable = bool(value)

    def disable_caching(self) -> None:
        self._is_cacheable = False


@dataclass(frozen=True)
class FetchResponseEvent:
    target: UrlFetcher
    result: FetchResult

    @property
    def url(self) -> str:
        return self.result.url
