"""DevTools HTTP endpoint of an already running Chrome."""

from __future__ import annotations

from urllib.error import URLError
from urllib.request import Request, urlopen

from .config import BrowserConfig


class CdpEndpoint:
    """Readiness probe for the attached browser (never launches it)."""

    def __init__(self, config: BrowserConfig) -> None:
        self.config = config

    def cdp_ready(self, timeout: float = 0.6) -> bool:
        """Return True if the CDP HTTP endpoint responds."""
        req = Request(f"{self.config.http_base}/json/version", headers={"User-Agent": "mcp-axbrowser"})
        try:
            with urlopen(req, timeout=timeout) as resp:
                return resp.status == 200
        except (OSError, TimeoutError, URLError):
            return False


__all__ = ["CdpEndpoint"]
