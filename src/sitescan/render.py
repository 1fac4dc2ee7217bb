"""
Page renderers: load a URL and hand back its final HTML and same-origin links.

``PlaywrightRenderer`` drives a real Chromium session so that scripts run and
lazy content is loaded before the page is scanned. ``StaticRenderer`` fetches
raw HTML with requests for hosts without a browser.
"""
from __future__ import annotations

from typing import List, Optional, Tuple
from urllib.parse import urldefrag, urljoin, urlparse

import requests
from bs4 import BeautifulSoup, SoupStrainer
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from sitescan.core import RenderedPage
from sitescan.errors import RenderError, ScanError

# Links to binary media are never followed
MEDIA_EXTENSIONS: tuple[str, ...] = (
    ".png", ".jpg", ".jpeg", ".gif", ".svg",
    ".mp4", ".webm", ".ogg",
)

# Ports implied when a URL leaves them out
DEFAULT_PORTS: dict[str, int] = {"http": 80, "https": 443}

Origin = Tuple[str, str, Optional[int]]

# Request types aborted by the browser session
BLOCKED_RESOURCE_TYPES: frozenset[str] = frozenset(("image", "media"))

# Parse only <a> and <base> tags (faster link extraction)
LINK_STRAINER = SoupStrainer(["a", "base"], href=True)

# Scrolls 100px every 100ms until the bottom of the document is reached
AUTO_SCROLL_JS = """
async () => {
    await new Promise((resolve) => {
        let totalHeight = 0;
        const distance = 100;
        const timer = setInterval(() => {
            const scrollHeight = document.body ? document.body.scrollHeight : 0;
            window.scrollBy(0, distance);
            totalHeight += distance;
            if (totalHeight >= scrollHeight) {
                clearInterval(timer);
                resolve();
            }
        }, 100);
    });
}
"""


def origin_of(url: str) -> Origin:
    """
    Return the (scheme, host, port) triple identifying a URL's origin.

    Default ports are filled in, so 'https://example.com:443/' and
    'https://example.com/' share an origin. An unparseable port yields None.
    """
    parsed = urlparse(url)
    scheme = parsed.scheme.lower()
    host = (parsed.hostname or "").lower()
    try:
        port = parsed.port
    except ValueError:
        return scheme, host, None
    return scheme, host, port or DEFAULT_PORTS.get(scheme)


def is_local(url: str, origin: Origin) -> bool:
    """Check if URL has same scheme, host and port as the start URL."""
    return origin_of(url) == origin


def is_media(url: str) -> bool:
    """Check if the URL path ends in a binary media extension."""
    path = urlparse(url).path.lower()
    return path.endswith(MEDIA_EXTENSIONS)


def extract_links(html: str, page_url: str, origin: Origin) -> List[str]:
    """
    Extract same-origin page links from HTML.

    Hrefs are resolved against the page URL (or its <base href>), stripped of
    fragments and deduplicated while keeping document order.
    """
    soup = BeautifulSoup(html, "lxml", parse_only=LINK_STRAINER)

    base_url = page_url
    base = soup.find("base", href=True)
    if base:
        base_url = urljoin(page_url, base["href"])

    links: List[str] = []
    seen = set()
    for a in soup.find_all("a", href=True):
        href, _ = urldefrag(urljoin(base_url, a["href"].strip()))
        if not href or href in seen:
            continue
        if not is_local(href, origin) or is_media(href):
            continue
        seen.add(href)
        links.append(href)
    return links


class PlaywrightRenderer:
    """
    Render pages in a single Chromium context.

    Image and media requests are aborted by a context-wide route installed
    once when the session starts. Use as a context manager::

        with PlaywrightRenderer("https://example.com/") as renderer:
            page = renderer.render("https://example.com/about")
    """

    def __init__(self, start_url: str, headless: bool = False, timeout_s: float = 30.0) -> None:
        self.origin = origin_of(start_url)
        self.headless = headless
        self.timeout_ms = timeout_s * 1000
        self._playwright = None
        self._browser = None
        self._context = None
        self._page = None

    def start(self) -> None:
        """Launch the browser and open the single page every render reuses."""
        self._playwright = sync_playwright().start()
        try:
            self._browser = self._playwright.chromium.launch(headless=self.headless)
            self._context = self._browser.new_context()
            self._context.route("**/*", self._route_handler)
            self._page = self._context.new_page()
            self._page.set_default_timeout(self.timeout_ms)
        except PlaywrightError as e:
            self.close()
            raise ScanError(f"Could not launch browser: {e.message}") from e

    def close(self) -> None:
        """Stop the page, context, browser and Playwright driver."""
        if self._context:
            self._context.close()
            self._context = None
        if self._browser:
            self._browser.close()
            self._browser = None
        if self._playwright:
            self._playwright.stop()
            self._playwright = None
        self._page = None

    def __enter__(self) -> "PlaywrightRenderer":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @staticmethod
    def _route_handler(route) -> None:
        if route.request.resource_type in BLOCKED_RESOURCE_TYPES:
            route.abort()
        else:
            route.continue_()

    def render(self, url: str) -> RenderedPage:
        if self._page is None:
            self.start()
        page = self._page
        try:
            page.goto(url, wait_until="networkidle", timeout=self.timeout_ms)
            page.evaluate(AUTO_SCROLL_JS)
            html = page.content()
            final_url = page.url
        except PlaywrightError as e:
            raise RenderError(url, e.message) from e
        return RenderedPage(url=final_url, html=html, links=extract_links(html, final_url, self.origin))


class StaticRenderer:
    """Fetch raw HTML over HTTP without running scripts."""

    def __init__(
        self,
        start_url: str,
        timeout_s: float = 30.0,
        user_agent: str = "SiteScan/1.0",
        session: Optional[requests.Session] = None,
    ) -> None:
        self.origin = origin_of(start_url)
        self.timeout_s = timeout_s
        self.session = session or requests.Session()
        self.session.headers["User-Agent"] = user_agent

    def __enter__(self) -> "StaticRenderer":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        self.session.close()

    def render(self, url: str) -> RenderedPage:
        try:
            resp = self.session.get(url, timeout=self.timeout_s, allow_redirects=True)
        except requests.RequestException as e:
            raise RenderError(url, str(e)) from e

        # Only parse HTML content
        content_type = (resp.headers.get("content-type") or "").lower()
        if "text/html" not in content_type:
            return RenderedPage(url=resp.url, html="")

        html = resp.text
        return RenderedPage(url=resp.url, html=html, links=extract_links(html, resp.url, self.origin))
