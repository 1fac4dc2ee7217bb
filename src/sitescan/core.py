"""
Core crawl-and-scan logic and data structures.
"""
from __future__ import annotations

import re
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Protocol, Sequence, Set
from urllib.parse import urlparse

from sitescan.errors import RenderError
from sitescan.matcher import MatchRecord, find_matches

# Administrative, asset and cart/checkout URLs never worth rendering
SKIP_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"/wp-content/"),
    re.compile(r"/cart/"),
    re.compile(r"/checkout/"),
    re.compile(r"\?add-to-cart="),
)


@dataclass(slots=True)
class RenderedPage:
    """Final DOM of a loaded page plus its same-origin outbound links."""
    url: str
    html: str
    links: List[str] = field(default_factory=list)


class Renderer(Protocol):
    """Anything that can load a URL and return its final content and links."""

    def render(self, url: str) -> RenderedPage: ...


@dataclass(slots=True)
class PageResult:
    """Matches found on a single scanned page, keyed by search term."""
    url: str
    found_items: Dict[str, List[MatchRecord]] = field(default_factory=dict)

    @property
    def clean(self) -> bool:
        return not self.found_items

    def to_dict(self) -> dict:
        return {
            "scanned_url": self.url,
            "foundItems": {
                term: [m.to_dict() for m in matches]
                for term, matches in self.found_items.items()
            },
        }


@dataclass(slots=True)
class CrawlReport:
    """Append-only collection of page results in discovery order."""
    start_url: str
    results: List[PageResult] = field(default_factory=list)
    _urls: Set[str] = field(default_factory=set, repr=False)

    def has(self, url: str) -> bool:
        """Check if a result for this normalized URL was already recorded."""
        return url in self._urls

    def add(self, page: PageResult) -> bool:
        """Append ``page`` unless its URL is already present. Returns True if added."""
        if page.url in self._urls:
            return False
        self._urls.add(page.url)
        self.results.append(page)
        return True

    def to_dict(self) -> dict:
        return {
            "startUrl": self.start_url,
            "results": [r.to_dict() for r in self.results],
        }


@dataclass(slots=True)
class CrawlStats:
    """Statistics collected during crawl for summary output."""
    pages_scanned: int = 0
    pages_with_matches: int = 0
    links_skipped: int = 0
    render_failures: int = 0


def utc_now_iso() -> str:
    """Return current UTC time in ISO format."""
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def log(message: str) -> None:
    """Write a timestamped line to stderr."""
    sys.stderr.write(f"{utc_now_iso()} - {message}\n")
    sys.stderr.flush()


def normalize_url(url: str) -> str:
    """
    Normalize URL for deduplication.

    - Drops fragments (#...)
    - Ends with exactly one trailing slash
    - Keeps querystrings (they matter for uniqueness)
    """
    normalized = url.split("#", 1)[0]
    if normalized.endswith("/"):
        normalized = normalized[:-1]
    return normalized + "/"


def should_skip_url(url: str) -> bool:
    """Check if URL matches any skip rule."""
    return any(pattern.search(url) for pattern in SKIP_PATTERNS)


def validate_start_url(url: str) -> None:
    """Raise ValueError unless the start URL is an absolute http(s) URL with a host."""
    parsed = urlparse(url)
    if parsed.scheme.lower() not in ("http", "https") or not parsed.hostname:
        raise ValueError(f"Invalid start URL: {url}")


def scan_page(url: str, html: str, terms: Iterable[str]) -> PageResult:
    """Match every term against the lowercased page content."""
    content = html.lower()
    result = PageResult(url=url)
    for term in terms:
        matches = find_matches(content, term)
        if matches:
            result.found_items[term] = matches
    return result


def crawl(
    start_url: str,
    renderer: Renderer,
    terms: Sequence[str],
    report: Optional[CrawlReport] = None,
    visited: Optional[Set[str]] = None,
    stats: Optional[CrawlStats] = None,
    stop_on_error: bool = False,
    verbose: bool = True,
) -> CrawlReport:
    """
    Crawl same-origin links depth-first starting from a URL and scan each page.

    Args:
        start_url: The URL to start crawling from.
        renderer: Loads a URL and returns its final HTML and same-origin links.
        terms: Search terms, each a regex or a literal string.
        report: Report to append to; a new one is created when omitted.
        visited: Normalized URLs already visited; shared with the caller.
        stats: Counters updated while crawling.
        stop_on_error: Re-raise the first RenderError instead of logging it.
        verbose: Whether to log every scanned and skipped URL.

    Returns:
        The report, holding one PageResult per successfully rendered URL in
        depth-first discovery order.

    Raises:
        ValueError: If the start URL is not an absolute http(s) URL.
    """
    validate_start_url(start_url)

    if report is None:
        report = CrawlReport(start_url=start_url)
    if visited is None:
        visited = set()
    if stats is None:
        stats = CrawlStats()

    # LIFO stack with links pushed in reverse gives the same order as recursion
    stack: List[str] = [start_url]

    while stack:
        raw_url = stack.pop()
        url = normalize_url(raw_url)

        if should_skip_url(url):
            if verbose:
                log(f"Skipping URL: {url}")
            stats.links_skipped += 1
            continue

        if url in visited:
            continue
        visited.add(url)

        if verbose:
            log(f"Scanning: {url}")

        try:
            page = renderer.render(raw_url)
        except RenderError as e:
            stats.render_failures += 1
            if stop_on_error:
                raise
            log(f"ERROR {e}")
            continue

        result = scan_page(url, page.html, terms)
        stats.pages_scanned += 1
        if result.clean:
            if verbose:
                log("- clean")
        else:
            stats.pages_with_matches += 1
            if verbose:
                log(f"- found {len(result.found_items)} items!")

        report.add(result)

        links = list(dict.fromkeys(page.links))
        stack.extend(reversed(links))

    return report


def print_summary(stats: CrawlStats) -> None:
    """Print crawl summary to stderr."""
    sys.stderr.write("=" * 50 + "\n")
    sys.stderr.write("SCAN SUMMARY\n")
    sys.stderr.write("=" * 50 + "\n\n")

    sys.stderr.write(f"Pages scanned:          {stats.pages_scanned}\n")
    sys.stderr.write(f"Pages with matches:     {stats.pages_with_matches}\n")
    sys.stderr.write(f"Skipped links:          {stats.links_skipped}\n")

    if stats.render_failures:
        sys.stderr.write(f"Render failures:        {stats.render_failures}\n")
    else:
        sys.stderr.write("No errors encountered.\n")

    sys.stderr.write("\n")
