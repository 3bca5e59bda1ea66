from __future__ import annotations

import json
from typing import Any
from urllib.error import URLError
from urllib.request import Request, urlopen


class EngineError(Exception):
    """Failure raised by the browser engine or the transport that reaches it."""


def http_get_json(url: str, timeout: float = 2.0) -> Any:
    """Fetch JSON from a DevTools HTTP endpoint."""
    req = Request(url, headers={"User-Agent": "mcp-axbrowser"})
    try:
        with urlopen(req, timeout=timeout) as resp:
            return json.loads(resp.read().decode())
    except (URLError, OSError) as exc:
        raise EngineError(str(exc)) from exc
    except json.JSONDecodeError as exc:
        raise EngineError(f"Invalid JSON from {url}: {exc}") from exc


__all__ = ["EngineError", "http_get_json"]
