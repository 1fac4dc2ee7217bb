"""
Line-level search term matching.

A search term is tried as a regular expression first and only treated as a
literal string when it fails to compile. This means a term such as ``a.b`` or
``foo|bar`` is always a regex; there is no way to force literal matching for
text that happens to be valid regex syntax.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import List

from sitescan.errors import ConfigError


@dataclass(slots=True)
class MatchRecord:
    """First match of a pattern on one line."""
    pattern: str
    line_number: int
    line_content: str
    position: int

    def to_dict(self) -> dict:
        return {
            "regex": self.pattern,
            "lineNumber": self.line_number,
            "lineContent": self.line_content,
            "position": self.position,
        }


def resolve_pattern(term: str) -> re.Pattern[str]:
    """Return the effective case-insensitive pattern for a search term."""
    try:
        return re.compile(term, re.IGNORECASE)
    except re.error:
        return re.compile(re.escape(term), re.IGNORECASE)


def split_lines(text: str) -> List[str]:
    """Split text into lines after folding CRLF and CR endings into LF."""
    return text.replace("\r\n", "\n").replace("\r", "\n").split("\n")


def find_matches(text: str, term: str) -> List[MatchRecord]:
    """
    Find every line of ``text`` matching ``term``.

    Only the first match on each line is reported. An empty list means the
    term does not occur anywhere in the text.
    """
    pattern = resolve_pattern(term)
    matches: List[MatchRecord] = []
    for index, line in enumerate(split_lines(text)):
        found = pattern.search(line)
        if found:
            matches.append(MatchRecord(
                pattern=pattern.pattern,
                line_number=index + 1,
                line_content=line,
                position=found.start(),
            ))
    return matches


def load_search_terms(path: Path) -> List[str]:
    """Read a newline-delimited term list, dropping blank lines."""
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read search terms from {path}: {e}") from e
    return [line for line in split_lines(raw) if line.strip()]
