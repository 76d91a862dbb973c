from __future__ import annotations

from functools import cached_property

from bs4 import BeautifulSoup


def _attr_text(val: object) -> str:
    if isinstance(val, list):
        if not val:
            return ""
        return str(val[0])
    return str(val or "")


class Document:
    """Parsed view of a response body.

    Parsing happens on first access so binary responses that no handler
    inspects are never run through the HTML parser.
    """

    def __init__(self, body: bytes) -> None:
        self._body = body

    @cached_property
    def soup(self) -> BeautifulSoup:
        return BeautifulSoup(self._body.decode("utf-8", errors="replace"), "html.parser")

    def select(self, selector: str) -> list:
        return self.soup.select(selector)

    def hrefs(self) -> list[str | None]:
        out: list[str | None] = []
        for a in self.soup.find_all("a"):
            href = a.get("href")
            out.append(None if href is None else _attr_text(href).strip())
        return out

    @property
    def title(self) -> str:
        if self.soup.title and self.soup.title.get_text(strip=True):
            return self.soup.title.get_text(" ", strip=True)
        return ""


def parse_document(body: bytes) -> Document:
    return Document(body)
