"""
Site scanner that crawls same-origin links depth-first from a start URL,
renders each page in a browser and reports lines matching a list of search
terms (regex or literal). Outputs JSON and HTML reports.
"""
from sitescan.core import CrawlReport, CrawlStats, PageResult, crawl, normalize_url, should_skip_url
from sitescan.matcher import MatchRecord, find_matches

__version__ = "1.0.0"
__all__ = [
    "crawl",
    "CrawlReport",
    "CrawlStats",
    "PageResult",
    "MatchRecord",
    "find_matches",
    "normalize_url",
    "should_skip_url",
]
