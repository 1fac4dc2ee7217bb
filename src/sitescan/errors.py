"""
Exception types raised by the scanner.
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional


class ScanError(Exception):
    """Base class for all scanner errors."""


class ConfigError(ScanError):
    """Invalid configuration or unreadable search term list."""


class RenderError(ScanError):
    """A page could not be loaded (navigation, timeout, network)."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Failed to render {url}: {reason}")
        self.url = url
        self.reason = reason


class ReportWriteError(ScanError):
    """Writing a report artifact failed."""

    def __init__(self, path: Path, reason: Optional[str] = None) -> None:
        message = f"Error writing file {path}"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.path = path
