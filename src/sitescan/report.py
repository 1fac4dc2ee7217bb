"""
JSON and HTML renderings of a crawl report.
"""
from __future__ import annotations

import json
from html import escape
from pathlib import Path
from typing import List, Tuple
from urllib.parse import quote, urlparse

from sitescan.core import CrawlReport
from sitescan.errors import ReportWriteError
from sitescan.matcher import resolve_pattern

# Reserved URL characters left unencoded in report links
URL_SAFE_CHARS = ":/?#[]@!$&'()*+,;=%~"

HTML_STYLE = """
    body { font-family: Roboto, sans-serif; font-size: 12px; }
    a { color: #000; text-decoration: none; }
    a:hover { text-decoration: underline; }
    table { width: 100%; border-collapse: collapse; }
    body > table > tbody > tr > td { border-bottom: 4px solid #b1b1b1; }
    nav ul, nav ul li { list-style: none; padding: 0; margin: 0; }
    nav ul a { display: inline-block; margin: 5px 0; padding: 5px 10px; background-color: #efefef; border: 1px solid #cbcbcb; }
    nav ul a:hover { background-color: #e0e0e0; text-decoration: none; }
    th, td { border: 1px solid #ddd; padding: 6px; text-align: left; }
    th { background-color: #f2f2f2; }
    .sub-table { width: 100%; margin-top: 2px; border-bottom: 2px solid #c9c9c9; }
    .sub-table tbody { display: none; }
    .sub-table tbody.show { display: table-row-group; }
    .sub-table thead th { cursor: pointer; }
    .sub-table thead th:hover { background-color: #e0e0e0; }
    .sub-table tr td:first-child { width: 10%; font-weight: bold; }
    .sub-table tr td:last-child { width: 90%; }
    div.item_url { font-weight: bold; padding: 6px 0; }
    p { margin: 0; padding: 6px 0; }
    pre { background: #f4f4f4; padding: 10px; border: 1px solid #ddd; max-width: 1200px; }
    code { display: block; white-space: pre-wrap; overflow-wrap: break-word; font-family: 'Droid Sans Mono', monospace; }
    span.highlight { background-color: #aacae4; }
    @media print { .no-print, .no-print * { display: none !important; } }
"""

HTML_SCRIPT = """
document.addEventListener('DOMContentLoaded', function() {
    document.querySelectorAll('table.sub-table > thead > tr > th').forEach(function(element) {
        element.addEventListener('click', function(e) {
            const tbody = e.target.closest('table.sub-table').querySelector('tbody');
            if (tbody) tbody.classList.toggle('show');
        });
    });
    document.getElementById('toggle-all').addEventListener('click', function(e) {
        e.preventDefault();
        const bodies = Array.from(document.querySelectorAll('table.sub-table > tbody'));
        const shouldHide = bodies.some(element => element.classList.contains('show'));
        bodies.forEach(element => element.classList.toggle('show', !shouldHide));
    });
});
"""


def report_to_json(report: CrawlReport, pretty: bool = True) -> str:
    return json.dumps(report.to_dict(), ensure_ascii=False, indent=2 if pretty else None)


def highlight(line: str, term: str) -> str:
    """HTML-escape a line, wrapping every match of the term's pattern in a highlight span."""
    pattern = resolve_pattern(term)
    parts: List[str] = []
    last = 0
    for found in pattern.finditer(line):
        start, end = found.span()
        if start == end:
            continue
        parts.append(escape(line[last:start]))
        parts.append(f'<span class="highlight">{escape(line[start:end])}</span>')
        last = end
    parts.append(escape(line[last:]))
    return "".join(parts)


def render_html(report: CrawlReport) -> str:
    """Build a standalone HTML page listing the matches of every scanned URL."""
    title = f"Scan Results for {escape(report.start_url)}"
    rows: List[str] = []

    for result in report.results:
        cell = [
            f'<div class="item_url"><strong><a href="{escape(quote(result.url, safe=URL_SAFE_CHARS))}" '
            f'target="_blank">{escape(result.url)}</a></strong></div>'
        ]

        if result.clean:
            cell.append("<p>No items found</p>")

        for term, matches in result.found_items.items():
            cell.append('<table class="sub-table">')
            cell.append(f'<thead><tr><th colspan="2">{escape(term)}</th></tr></thead>')
            cell.append("<tbody>")
            for match in matches:
                cell.append(
                    f"<tr><td>Line:</td><td><strong>{match.line_number}</strong>"
                    f" / Col {match.position} / Regex: {escape(match.pattern)}</td></tr>"
                )
                cell.append(
                    "<tr><td>Line Content:</td><td><pre><code>"
                    f"{highlight(match.line_content, term)}</code></pre></td></tr>"
                )
            cell.append("</tbody></table>")

        rows.append(f"<tr><td>{''.join(cell)}</td></tr>")

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>{title}</title>
<style>{HTML_STYLE}</style>
</head>
<body>
<table>
<thead>
<tr><th><h1>{title}</h1></th></tr>
<tr><th><nav class="no-print"><ul><li><a href="#" id="toggle-all">Toggle All</a></li></ul></nav></th></tr>
</thead>
<tbody>
{chr(10).join(rows)}
</tbody>
</table>
<script>{HTML_SCRIPT}</script>
</body>
</html>
"""


def generate_output_paths(start_url: str, output_dir: Path) -> Tuple[Path, Path]:
    """Generate output paths: {hostname}_crawl_output.json and .html"""
    hostname = urlparse(start_url).hostname or "unknown"
    stem = f"{hostname}_crawl_output"
    return output_dir / f"{stem}.json", output_dir / f"{stem}.html"


def write_reports(report: CrawlReport, output_dir: Path) -> Tuple[Path, Path]:
    """Write the JSON and HTML reports, returning their paths."""
    json_path, html_path = generate_output_paths(report.start_url, output_dir)
    for path, text in ((json_path, report_to_json(report)), (html_path, render_html(report))):
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        except OSError as e:
            raise ReportWriteError(path, str(e)) from e
    return json_path, html_path
