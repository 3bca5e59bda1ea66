"""Uniform metadata wrapper applied to every tool result that emits data."""

from __future__ import annotations

import logging
from typing import Any

from ..config import BrowserConfig
from ..http_client import EngineError
from ..tools.base import SmartToolError, get_session, utc_timestamp
from .types import ToolResult

logger = logging.getLogger("mcp.axbrowser.envelope")

PAYLOAD_VERSION = 1


def build_payload(
    tool: str,
    data: Any,
    *,
    page: dict[str, str] | None = None,
    target: dict[str, Any] | None = None,
    version: int = PAYLOAD_VERSION,
) -> dict[str, Any]:
    """Wrap `data` as {tool, version, timestamp, page, target?, data}.

    `target` is only emitted when the call addressed a specific element.
    """
    page = page or {}
    payload: dict[str, Any] = {
        "tool": tool,
        "version": version,
        "timestamp": utc_timestamp(),
        "page": {"url": page.get("url") or "", "title": page.get("title") or ""},
    }
    if target:
        cleaned = {k: target[k] for k in ("ref", "selector", "element") if target.get(k)}
        if cleaned:
            payload["target"] = cleaned
    payload["data"] = data
    return payload


def current_page(config: BrowserConfig) -> dict[str, str]:
    """url/title of the current tab; empty strings when the page cannot answer."""
    try:
        with get_session(config) as (session, _tab):
            return {"url": session.get_url(), "title": session.get_title()}
    except (SmartToolError, EngineError) as exc:
        logger.debug("page identity unavailable: %s", exc)
        return {"url": "", "title": ""}


def envelope_result(
    config: BrowserConfig,
    tool: str,
    data: Any,
    *,
    page: dict[str, str] | None = None,
    target: dict[str, Any] | None = None,
) -> ToolResult:
    """Envelope `data` and render it; looks the page up when the caller has no url/title at hand."""
    if page is None:
        page = current_page(config)
    return ToolResult.json(build_payload(tool, data, page=page, target=target))


__all__ = ["PAYLOAD_VERSION", "build_payload", "current_page", "envelope_result"]
