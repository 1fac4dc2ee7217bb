"""Tests for link extraction and the page renderers."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
import requests
from playwright.sync_api import Error as PlaywrightError

from sitescan.errors import RenderError, ScanError
from sitescan.render import (
    PlaywrightRenderer,
    StaticRenderer,
    extract_links,
    is_local,
    origin_of,
)

START = "https://example.com/"
ORIGIN = origin_of(START)


class TestExtractLinks:

    def test_relative_links_resolved_against_page(self):
        html = '<a href="about">about</a><a href="/contact">contact</a>'
        links = extract_links(html, "https://example.com/shop/", ORIGIN)
        assert links == ["https://example.com/shop/about", "https://example.com/contact"]

    def test_fragments_stripped_and_duplicates_dropped(self):
        html = '<a href="/a#one">1</a><a href="/a#two">2</a><a href="/a">3</a>'
        assert extract_links(html, START, ORIGIN) == ["https://example.com/a"]

    def test_other_origins_excluded(self):
        html = (
            '<a href="https://other.com/">other host</a>'
            '<a href="http://example.com/">other scheme</a>'
            '<a href="https://example.com:8443/">other port</a>'
            '<a href="https://example.com.evil.com/">lookalike</a>'
            '<a href="javascript:void(0)">js</a>'
        )
        assert extract_links(html, START, ORIGIN) == []

    @pytest.mark.parametrize("href", ["/a.png", "/b.JPG", "/c.jpeg", "/d.gif", "/e.svg", "/f.mp4", "/g.webm", "/h.ogg"])
    def test_media_links_excluded(self, href):
        assert extract_links(f'<a href="{href}">x</a>', START, ORIGIN) == []

    def test_documents_are_kept(self):
        assert extract_links('<a href="/terms.pdf">x</a>', START, ORIGIN) == ["https://example.com/terms.pdf"]

    def test_base_href_honored(self):
        html = '<head><base href="/docs/"></head><a href="intro">intro</a>'
        assert extract_links(html, START, ORIGIN) == ["https://example.com/docs/intro"]

    def test_anchors_without_href_ignored(self):
        assert extract_links('<a name="top">top</a><a href="">self</a>', START, ORIGIN) == [START]

    def test_is_local_case_insensitive_host(self):
        assert is_local("https://EXAMPLE.com/page", ORIGIN)

    def test_default_port_in_start_url_matches_portless_links(self):
        origin = origin_of("https://example.com:443/")
        html = '<a href="/about">about</a>'
        assert extract_links(html, "https://example.com/", origin) == ["https://example.com/about"]

    def test_default_port_in_link_matches_portless_start_url(self):
        html = '<a href="http://example.com:80/a">a</a><a href="https://example.com:443/b">b</a>'
        assert extract_links(html, START, ORIGIN) == ["https://example.com:443/b"]

    def test_origin_fills_default_ports(self):
        assert origin_of("https://Example.com/x") == ("https", "example.com", 443)
        assert origin_of("http://example.com:8080/") == ("http", "example.com", 8080)

    def test_malformed_port_is_not_local(self):
        assert extract_links('<a href="https://example.com:abc/">x</a>', START, ORIGIN) == []


class TestStaticRenderer:

    def _response(self, text, content_type="text/html; charset=utf-8", url=START):
        resp = MagicMock()
        resp.text = text
        resp.url = url
        resp.headers = {"content-type": content_type}
        return resp

    def test_render_returns_html_and_links(self):
        session = MagicMock()
        session.headers = {}
        session.get.return_value = self._response('<a href="/about">about</a> hello')
        renderer = StaticRenderer(START, timeout_s=5, user_agent="test-agent", session=session)

        page = renderer.render(START)

        session.get.assert_called_once_with(START, timeout=5, allow_redirects=True)
        assert session.headers["User-Agent"] == "test-agent"
        assert "hello" in page.html
        assert page.links == ["https://example.com/about"]

    def test_non_html_content_is_empty(self):
        session = MagicMock()
        session.headers = {}
        session.get.return_value = self._response("%PDF-1.4", content_type="application/pdf")
        page = StaticRenderer(START, session=session).render("https://example.com/terms.pdf")
        assert page.html == ""
        assert page.links == []

    def test_request_exception_becomes_render_error(self):
        session = MagicMock()
        session.headers = {}
        session.get.side_effect = requests.ConnectionError("connection refused")
        with pytest.raises(RenderError) as excinfo:
            StaticRenderer(START, session=session).render(START)
        assert excinfo.value.url == START
        assert "connection refused" in str(excinfo.value)


class TestPlaywrightRenderer:

    def test_route_handler_aborts_images_and_media(self):
        for resource_type in ("image", "media"):
            route = MagicMock()
            route.request.resource_type = resource_type
            PlaywrightRenderer._route_handler(route)
            route.abort.assert_called_once()
            route.continue_.assert_not_called()

    def test_route_handler_continues_documents(self):
        route = MagicMock()
        route.request.resource_type = "document"
        PlaywrightRenderer._route_handler(route)
        route.continue_.assert_called_once()
        route.abort.assert_not_called()

    def test_render_waits_scrolls_and_extracts(self):
        renderer = PlaywrightRenderer(START, timeout_s=10)
        page = MagicMock()
        page.content.return_value = '<a href="/next">next</a> lazy content'
        page.url = START
        renderer._page = page

        result = renderer.render(START)

        page.goto.assert_called_once_with(START, wait_until="networkidle", timeout=10000)
        page.evaluate.assert_called_once()
        assert "lazy content" in result.html
        assert result.links == ["https://example.com/next"]

    def test_navigation_error_becomes_render_error(self):
        renderer = PlaywrightRenderer(START)
        page = MagicMock()
        page.goto.side_effect = PlaywrightError("Timeout 30000ms exceeded.")
        renderer._page = page

        with pytest.raises(RenderError) as excinfo:
            renderer.render("https://example.com/slow")
        assert excinfo.value.url == "https://example.com/slow"
        assert "Timeout" in excinfo.value.reason


class TestPlaywrightSession:
    """Browser session lifecycle with the Playwright driver mocked out."""

    @pytest.fixture
    def driver(self):
        with patch("sitescan.render.sync_playwright") as sync_playwright:
            playwright = sync_playwright.return_value.start.return_value
            browser = playwright.chromium.launch.return_value
            context = browser.new_context.return_value
            page = context.new_page.return_value
            page.content.return_value = "<p>content</p>"
            page.url = START
            yield playwright, browser, context, page

    def test_route_installed_once_for_many_renders(self, driver):
        playwright, browser, context, page = driver

        with PlaywrightRenderer(START, headless=True, timeout_s=5) as renderer:
            for path in ("", "a", "b"):
                renderer.render(START + path)

        playwright.chromium.launch.assert_called_once_with(headless=True)
        context.route.assert_called_once_with("**/*", PlaywrightRenderer._route_handler)
        context.new_page.assert_called_once()
        page.set_default_timeout.assert_called_once_with(5000)
        assert page.goto.call_count == 3

    def test_close_stops_every_handle(self, driver):
        playwright, browser, context, page = driver

        renderer = PlaywrightRenderer(START)
        renderer.start()
        renderer.close()

        context.close.assert_called_once()
        browser.close.assert_called_once()
        playwright.stop.assert_called_once()
        renderer.close()
        playwright.stop.assert_called_once()

    def test_render_starts_session_lazily(self, driver):
        playwright, browser, context, page = driver

        renderer = PlaywrightRenderer(START)
        renderer.render(START)
        renderer.render(START)

        playwright.chromium.launch.assert_called_once()
        context.route.assert_called_once()
        renderer.close()

    @pytest.mark.parametrize("failing", ["launch", "new_context", "new_page"])
    def test_setup_failure_raises_scan_error_and_cleans_up(self, driver, failing):
        playwright, browser, context, page = driver
        target = {
            "launch": playwright.chromium.launch,
            "new_context": browser.new_context,
            "new_page": context.new_page,
        }[failing]
        target.side_effect = PlaywrightError("Executable doesn't exist")

        with pytest.raises(ScanError) as excinfo:
            PlaywrightRenderer(START).start()

        assert "Could not launch browser" in str(excinfo.value)
        playwright.stop.assert_called_once()
        if failing != "launch":
            browser.close.assert_called_once()
        if failing == "new_page":
            context.close.assert_called_once()
