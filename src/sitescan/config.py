"""
Runtime configuration, read from the environment.

The command line only takes the start URL, so every other knob lives in a
``SITESCAN_*`` environment variable.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from sitescan.errors import ConfigError

DEFAULT_TERMS_FILE = "items.txt"
DEFAULT_TIMEOUT_S = 30.0
DEFAULT_USER_AGENT = "SiteScan/1.0"
RENDERERS = ("browser", "static")

_TRUE = frozenset(("1", "true", "yes", "on"))
_FALSE = frozenset(("0", "false", "no", "off", ""))


@dataclass(slots=True)
class ScanConfig:
    """Settings for a single scan run."""
    terms_file: Path = Path(DEFAULT_TERMS_FILE)
    output_dir: Path = Path(".")
    renderer: str = "browser"
    headless: bool = False
    timeout_s: float = DEFAULT_TIMEOUT_S
    user_agent: str = DEFAULT_USER_AGENT
    stop_on_error: bool = False
    quiet: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ScanConfig":
        """Build a config from ``SITESCAN_*`` variables, falling back to defaults."""
        env = os.environ if environ is None else environ

        renderer = env.get("SITESCAN_RENDERER", "browser").strip().lower()
        if renderer not in RENDERERS:
            raise ConfigError(
                f"SITESCAN_RENDERER must be one of {', '.join(RENDERERS)}, got {renderer!r}"
            )

        return cls(
            terms_file=Path(env.get("SITESCAN_TERMS_FILE") or DEFAULT_TERMS_FILE),
            output_dir=Path(env.get("SITESCAN_OUTPUT_DIR") or "."),
            renderer=renderer,
            headless=_parse_bool(env, "SITESCAN_HEADLESS"),
            timeout_s=_parse_timeout(env.get("SITESCAN_TIMEOUT")),
            user_agent=env.get("SITESCAN_USER_AGENT") or DEFAULT_USER_AGENT,
            stop_on_error=_parse_bool(env, "SITESCAN_STOP_ON_ERROR"),
            quiet=_parse_bool(env, "SITESCAN_QUIET"),
        )


def _parse_bool(env: Mapping[str, str], name: str) -> bool:
    value = env.get(name, "").strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigError(f"{name} must be a boolean (1/0, true/false, yes/no, on/off), got {value!r}")


def _parse_timeout(raw: Optional[str]) -> float:
    if raw is None or not raw.strip():
        return DEFAULT_TIMEOUT_S
    try:
        timeout = float(raw)
    except ValueError:
        raise ConfigError(f"SITESCAN_TIMEOUT must be a number of seconds, got {raw!r}") from None
    if timeout <= 0:
        raise ConfigError(f"SITESCAN_TIMEOUT must be positive, got {raw!r}")
    return timeout
