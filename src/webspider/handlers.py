"""Per-result handler pipeline.

Handlers run in registration order after every fetch. They may push URLs
onto the crawl queue through `event.target` and may revoke cacheability of
`event.result`; nothing can restore it once revoked.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Callable, Iterator

from .results import FetchResponseEvent


class FetchHandler(ABC):
    @abstractmethod
    def handle_response(self, event: FetchResponseEvent) -> None: ...

    @property
    def name(self) -> str:
        return type(self).__name__


class LogAware:
    """Mixin for handlers that log through the crawl's logger.

    The pipeline calls `set_log` before each invocation.
    """

    _log: logging.Logger | None = None

    def set_log(self, logger: logging.Logger) -> None:
        self._log = logger

    @property
    def log(self) -> logging.Logger:
        if self._log is None:
            return logging.getLogger(type(self).__module__)
        return self._log


class FunctionHandler(FetchHandler):
    def __init__(self, callback: Callable[[FetchResponseEvent], object]) -> None:
        self.callback = callback

    def handle_response(self, event: FetchResponseEvent) -> None:
        self.callback(event)

    @property
    def name(self) -> str:
        return getattr(self.callback, "__qualname__", None) or repr(self.callback)


def as_handler(obj: FetchHandler | Callable[[FetchResponseEvent], object]) -> FetchHandler:
    if isinstance(obj, FetchHandler):
        return obj
    if callable(obj):
        return FunctionHandler(obj)
    raise TypeError(f"Expected a FetchHandler or a callable, got {type(obj).__name__}")


class HandlerPipeline:
    def __init__(self, log: logging.Logger | None = None) -> None:
        self.log = log or logging.getLogger(__name__)
        self._handlers: list[FetchHandler] = []

    def add(self, handler: FetchHandler | Callable[[FetchResponseEvent], object]) -> FetchHandler:
        handler = as_handler(handler)
        self._handlers.append(handler)
        return handler

    def __len__(self) -> int:
        return len(self._handlers)

    def __iter__(self) -> Iterator[FetchHandler]:
        return iter(list(self._handlers))

    def dispatch(self, event: FetchResponseEvent) -> None:
        result = event.result
        caching_disabled = not result.is_cacheable

        for handler in self._handlers:
            if isinstance(handler, LogAware):
                handler.set_log(self.log)
            handler.handle_response(event)

            if not caching_disabled and not result.is_cacheable:
                self.log.info("%s disabled caching for %s", handler.name, result.url)
                caching_disabled = True
