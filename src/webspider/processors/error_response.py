from __future__ import annotations

from ..handlers import FetchHandler, LogAware
from ..results import FetchResponseEvent


class ErrorResponseHandler(FetchHandler, LogAware):
    def handle_response(self, event: FetchResponseEvent) -> None:
        status = event.result.response.status_code
        if status >= 400:
            self.log.info("Bad Status: %s; %s", status, event.url)
