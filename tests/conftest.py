"""Shared fixtures: an in-memory site standing in for the browser."""

from __future__ import annotations

from typing import Dict, List

import pytest

from sitescan.core import RenderedPage, normalize_url
from sitescan.errors import RenderError
from sitescan.render import extract_links, origin_of


class FakeRenderer:
    """Serve pages from a dict of normalized URL -> HTML, recording every render."""

    def __init__(self, start_url: str, pages: Dict[str, str]) -> None:
        self.origin = origin_of(start_url)
        self.pages = {normalize_url(url): html for url, html in pages.items()}
        self.calls: List[str] = []

    def __enter__(self) -> "FakeRenderer":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        pass

    def render(self, url: str) -> RenderedPage:
        self.calls.append(url)
        html = self.pages.get(normalize_url(url))
        if html is None:
            raise RenderError(url, "net::ERR_NAME_NOT_RESOLVED")
        return RenderedPage(url=url, html=html, links=extract_links(html, url, self.origin))


@pytest.fixture
def fake_site():
    """Factory building a FakeRenderer for a start URL and its pages."""
    def _make(start_url: str, pages: Dict[str, str]) -> FakeRenderer:
        return FakeRenderer(start_url, pages)
    return _make
