from __future__ import annotations

from typing import Iterable, Mapping

from ..handlers import FetchHandler, LogAware
from ..results import FetchResponseEvent
from ..urls import url_path

DEFAULT_EXTENSIONS: dict[str, str | list[str]] = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "png": "image/png",
    "pdf": "application/pdf",
}


def _as_list(value: str | Iterable[str]) -> list[str]:
    if isinstance(value, str):
        return [value]
    return list(value)


def normalize_content_type(content_type: str) -> str:
    return content_type.split(";", 1)[0].strip().lower()


class InvalidMimeForExtensions(FetchHandler, LogAware):
    """Refuses to cache responses whose Content-Type contradicts the URL extension.

    Catches e.g. an HTML error page served with status 200 for `/logo.png`.
    """

    def __init__(self, extensions: Mapping[str, str | Iterable[str]] | None = None) -> None:
        self._ext_mime_types: dict[str, set[str]] = {}
        self.add_extensions(DEFAULT_EXTENSIONS if extensions is None else extensions)

    def add_extensions(self, extensions: Mapping[str, str | Iterable[str]]) -> None:
        for ext, mime_types in extensions.items():
            self.add_extension(ext, mime_types)

    def add_extension(self, extensions: str | Iterable[str], mime_types: str | Iterable[str]) -> None:
        allowed = {normalize_content_type(m) for m in _as_list(mime_types)}
        for ext in _as_list(extensions):
            self._ext_mime_types[ext.lower().lstrip(".")] = set(allowed)

    @property
    def extensions(self) -> dict[str, set[str]]:
        return {ext: set(mimes) for ext, mimes in self._ext_mime_types.items()}

    def extension_for(self, url: str) -> str | None:
        path = url_path(url).lower()
        for ext in sorted(self._ext_mime_types, key=len, reverse=True):
            if path.endswith("." + ext):
                return ext
        return None

    def handle_response(self, event: FetchResponseEvent) -> None:
        result = event.result
        response = result.response
        if response.status_code >= 400:
            return

        extension = self.extension_for(result.url)
        if extension is None:
            return

        mime_type = normalize_content_type(response.content_type)
        if mime_type not in self._ext_mime_types[extension]:
            self.log.info("Invalid Content-Type (%s) for %s.", mime_type, result.url)
            result.disable_caching()
