"""Stock fetch handlers."""

from __future__ import annotations

from .auto_crawl import AutoCrawl
from .error_response import ErrorResponseHandler
from .invalid_mime import InvalidMimeForExtensions

__all__ = ["AutoCrawl", "ErrorResponseHandler", "InvalidMimeForExtensions"]
