"""webspider core library.

Breadth-first URL fetching with an on-disk response cache and a pipeline of
per-result handlers that can queue more URLs or refuse caching.
"""

from __future__ import annotations

from .cache import CachedHttpClient, CacheStore
from .fetcher import FetcherConfig, UrlFetcher
from .handlers import FetchHandler, FunctionHandler, HandlerPipeline, LogAware
from .http_client import HttpClient, Request, Response
from .results import FetchRequest, FetchResponseEvent, FetchResult
from .state import UrlQueue

__all__ = [
    "__version__",
    "CacheStore",
    "CachedHttpClient",
    "FetchHandler",
    "FetchRequest",
    "FetchResponseEvent",
    "FetchResult",
    "FetcherConfig",
    "FunctionHandler",
    "HandlerPipeline",
    "HttpClient",
    "LogAware",
    "Request",
    "Response",
    "UrlFetcher",
    "UrlQueue",
]

__version__ = "0.1.0"
