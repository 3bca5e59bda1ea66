"""
Navigation and tab tools.

Provides:
- navigate_to: load a URL in the current tab
- list_tabs / open_tab / select_tab / close_tab: tab registry operations
"""

from __future__ import annotations

from typing import Any

from ..config import BrowserConfig
from ..http_client import EngineError
from ..session import session_manager
from .base import SmartToolError, ValidationError, get_session

NAVIGATION_TIMEOUT = 15.0


def navigate_to(config: BrowserConfig, url: str, wait_load: bool = True) -> dict[str, Any]:
    """Navigate the current tab to `url`.

    The tab's snapshot is dropped (its refs describe the old document); the
    page-state fingerprint is kept so the next change detection sees the move.
    """
    url = (url or "").strip()
    if not url:
        raise ValidationError(
            tool="navigate",
            action="validate",
            reason="url is required",
            suggestion="Pass an absolute URL such as https://example.com",
        )

    with get_session(config) as (session, tab):
        try:
            loaded = session.navigate(url, wait_load=wait_load, timeout=NAVIGATION_TIMEOUT)
        except EngineError as e:
            raise SmartToolError(
                tool="navigate",
                action="navigate",
                reason=str(e),
                suggestion="Check URL is valid and accessible",
                details={"url": url},
            ) from e
        tab.clear_snapshot()
        tab.url = session.get_url() or url
        return {"url": tab.url, "title": session.get_title(), "loaded": loaded, "tabId": tab.id}


# ─────────────────────────────────────────────────────────────────────────────
# Tabs
# ─────────────────────────────────────────────────────────────────────────────


def _tab_error(config: BrowserConfig, action: str, exc: EngineError) -> SmartToolError:
    return SmartToolError(
        tool="tabs",
        action=action,
        reason=str(exc),
        suggestion=f"Ensure Chrome is reachable on {config.http_base}",
    )


def list_tabs(config: BrowserConfig) -> dict[str, Any]:
    try:
        tabs = session_manager.list_tabs(config)
    except EngineError as exc:
        raise _tab_error(config, "list", exc) from exc
    return {"action": "list", "tabs": tabs, "total": len(tabs)}


def open_tab(config: BrowserConfig, url: str | None = None) -> dict[str, Any]:
    try:
        tab = session_manager.new_tab(config, url or "about:blank")
    except EngineError as exc:
        raise _tab_error(config, "new", exc) from exc
    return {"action": "new", "tabId": tab.id, "url": tab.url}


def select_tab(config: BrowserConfig, tab_id: str | None) -> dict[str, Any]:
    if not tab_id:
        raise ValidationError(
            tool="tabs",
            action="select",
            reason="tabId is required for select",
            suggestion='List tabs first: browser_tabs(action="list")',
        )
    try:
        tab = session_manager.select_tab(config, tab_id)
    except EngineError as exc:
        raise _tab_error(config, "select", exc) from exc
    if tab is None:
        raise SmartToolError(
            tool="tabs",
            action="select",
            reason=f"Tab not found: {tab_id}",
            suggestion='List tabs first: browser_tabs(action="list")',
            details={"tabId": tab_id},
        )
    return {"action": "select", "tabId": tab.id, "url": tab.url, "hasSnapshot": tab.snapshot is not None}


def close_tab(config: BrowserConfig, tab_id: str | None = None) -> dict[str, Any]:
    target = tab_id or session_manager.tab_id
    if not target:
        raise SmartToolError(
            tool="tabs",
            action="close",
            reason="No tab to close",
            suggestion="Pass tabId or select a tab first",
        )
    try:
        closed = session_manager.close_tab(config, target)
    except EngineError as exc:
        raise _tab_error(config, "close", exc) from exc
    return {"action": "close", "tabId": target, "closed": closed}


def manage_tabs(
    config: BrowserConfig,
    *,
    action: str = "list",
    tab_id: str | None = None,
    url: str | None = None,
) -> dict[str, Any]:
    if action == "list":
        return list_tabs(config)
    if action == "new":
        return open_tab(config, url)
    if action == "select":
        return select_tab(config, tab_id)
    if action == "close":
        return close_tab(config, tab_id)
    raise ValidationError(
        tool="tabs",
        action="validate",
        reason=f"Unknown tabs action: {action}",
        suggestion="Use one of: list, new, select, close",
    )


__all__ = ["close_tab", "list_tabs", "manage_tabs", "navigate_to", "open_tab", "select_tab"]
