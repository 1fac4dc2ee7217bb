"""
Command-line interface for the scanner.
"""
from __future__ import annotations

import argparse
from typing import List, Optional

from sitescan.config import ScanConfig
from sitescan.core import CrawlReport, CrawlStats, Renderer, crawl, log, print_summary, validate_start_url
from sitescan.errors import ConfigError, RenderError, ReportWriteError, ScanError
from sitescan.matcher import load_search_terms
from sitescan.render import PlaywrightRenderer, StaticRenderer
from sitescan.report import write_reports


def build_renderer(start_url: str, config: ScanConfig) -> Renderer:
    """Pick the browser or plain HTTP renderer named in the config."""
    if config.renderer == "static":
        return StaticRenderer(start_url, timeout_s=config.timeout_s, user_agent=config.user_agent)
    return PlaywrightRenderer(start_url, headless=config.headless, timeout_s=config.timeout_s)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the scanner CLI."""
    parser = argparse.ArgumentParser(
        description=(
            "Crawl all same-origin links starting from a URL and report lines "
            "matching the search terms (one per line, regex or literal) in "
            "$SITESCAN_TERMS_FILE (default: items.txt)."
        )
    )
    parser.add_argument("start_url", help="Start URL (e.g. https://example.com)")
    args = parser.parse_args(argv)

    try:
        validate_start_url(args.start_url)
    except ValueError as e:
        log(f"ERROR {e}")
        return 1

    try:
        config = ScanConfig.from_env()
        terms = load_search_terms(config.terms_file)
    except ConfigError as e:
        log(f"ERROR {e}")
        return 1

    if not terms:
        log(f"WARNING no search terms in {config.terms_file}, every page will be clean")

    report = CrawlReport(start_url=args.start_url)
    stats = CrawlStats()
    aborted = False

    try:
        with build_renderer(args.start_url, config) as renderer:
            crawl(
                args.start_url,
                renderer,
                terms,
                report=report,
                stats=stats,
                stop_on_error=config.stop_on_error,
                verbose=not config.quiet,
            )
    except RenderError as e:
        log(f"ERROR crawl aborted: {e}")
        aborted = True
    except ScanError as e:
        log(f"ERROR {e}")
        return 1

    try:
        for path in write_reports(report, config.output_dir):
            log(f"Crawl results saved to {path}")
    except ReportWriteError as e:
        log(f"ERROR {e}")
        return 1
    finally:
        print_summary(stats)

    return 1 if aborted else 0


if __name__ == "__main__":
    raise SystemExit(main())
