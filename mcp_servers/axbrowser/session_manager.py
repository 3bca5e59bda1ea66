"""Tab registry and per-tab state.

`session.py` remains the stable import surface (re-exports).
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .browser_session import BrowserSession
from .config import BrowserConfig
from .http_client import EngineError, http_get_json
from .session_cdp import CdpConnection

if TYPE_CHECKING:
    from .tools.page_state import PageState
    from .tools.snapshot import Snapshot

logger = logging.getLogger("mcp.axbrowser.session")


@dataclass
class Tab:
    """One page target plus the state owned by it.

    `snapshot` and `page_state` are only ever replaced as whole values, so a
    reader always sees either the previous or the next one.
    """

    id: str
    ws_url: str
    url: str = ""
    snapshot: Snapshot | None = None
    page_state: PageState | None = None

    def replace_snapshot(self, snapshot: Snapshot) -> None:
        self.snapshot = snapshot

    def replace_page_state(self, state: PageState) -> None:
        self.page_state = state

    def clear_snapshot(self) -> None:
        self.snapshot = None


class SessionManager:
    """
    Singleton registry of the tabs this MCP process has attached to.

    Tool calls against the same tab are serialized by the caller; the lock
    only guards the registry map itself.
    """

    _instance: SessionManager | None = None

    def __new__(cls) -> SessionManager:
        if cls._instance is None:
            inst = super().__new__(cls)
            inst._tabs = {}
            inst._current_id = None
            inst._lock = threading.Lock()
            cls._instance = inst
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset singleton state (for testing)."""
        inst = cls._instance
        if inst is not None:
            with inst._lock:
                inst._tabs.clear()
                inst._current_id = None

    @property
    def tab_id(self) -> str | None:
        return self._current_id

    def _get_targets(self, config: BrowserConfig) -> list[dict[str, Any]]:
        """Get list of browser targets. Raises EngineError when the listing fails."""
        targets = http_get_json(f"{config.http_base}/json/list")
        if not isinstance(targets, list):
            raise EngineError(f"Unexpected /json/list payload from {config.http_base}")
        return [t for t in targets if isinstance(t, dict)]

    def _get_browser_ws(self, config: BrowserConfig) -> str:
        """Get browser-level WebSocket URL."""
        version = http_get_json(f"{config.http_base}/json/version")
        ws_url = version.get("webSocketDebuggerUrl") if isinstance(version, dict) else None
        if not ws_url:
            raise EngineError("CDP browser WebSocket URL not found")
        return ws_url

    def _browser_command(self, config: BrowserConfig, method: str, params: dict[str, Any]) -> dict[str, Any]:
        conn = CdpConnection(self._get_browser_ws(config), timeout=config.cdp_timeout)
        try:
            return conn.send(method, params)
        finally:
            conn.close()

    def _create_tab(self, config: BrowserConfig, url: str = "about:blank") -> str:
        """Create a new browser tab, return tab ID."""
        result = self._browser_command(config, "Target.createTarget", {"url": url})
        tab_id = result.get("targetId")
        if not tab_id:
            raise EngineError("Failed to create browser tab")
        return tab_id

    def _adopt(self, target: dict[str, Any]) -> Tab:
        """Register (or refresh) a tab from a /json/list target entry."""
        tab_id = str(target.get("id") or "")
        ws_url = str(target.get("webSocketDebuggerUrl") or "")
        with self._lock:
            tab = self._tabs.get(tab_id)
            if tab is None:
                tab = Tab(id=tab_id, ws_url=ws_url, url=str(target.get("url") or ""))
                self._tabs[tab_id] = tab
                logger.info("tab attached id=%s url=%s", tab_id, tab.url)
            else:
                if ws_url:
                    tab.ws_url = ws_url
                tab.url = str(target.get("url") or tab.url)
            return tab

    def _drop(self, tab_id: str) -> None:
        with self._lock:
            if self._tabs.pop(tab_id, None) is not None:
                logger.info("tab detached id=%s", tab_id)
            if self._current_id == tab_id:
                self._current_id = None

    @staticmethod
    def _pages(targets: list[dict[str, Any]]) -> list[dict[str, Any]]:
        return [t for t in targets if t.get("type") == "page" and t.get("webSocketDebuggerUrl")]

    def current_tab(self) -> Tab | None:
        with self._lock:
            if self._current_id is None:
                return None
            return self._tabs.get(self._current_id)

    def get_tab(self, tab_id: str) -> Tab | None:
        with self._lock:
            return self._tabs.get(tab_id)

    def ensure_tab(self, config: BrowserConfig) -> Tab:
        """Return the current tab, attaching to (or opening) a page if needed."""
        pages = self._pages(self._get_targets(config))
        by_id = {str(t.get("id")): t for t in pages}

        current = self._current_id
        if current and current in by_id:
            return self._adopt(by_id[current])
        if current:
            # Target disappeared underneath us; its snapshot and fingerprint go with it.
            self._drop(current)

        if pages:
            tab = self._adopt(pages[0])
        else:
            tab_id = self._create_tab(config)
            refreshed = {str(t.get("id")): t for t in self._pages(self._get_targets(config))}
            target = refreshed.get(tab_id)
            if target is None:
                raise EngineError(f"Created tab {tab_id} is not listed by the browser")
            tab = self._adopt(target)
        with self._lock:
            self._current_id = tab.id
        return tab

    def list_tabs(self, config: BrowserConfig) -> list[dict[str, Any]]:
        """List page targets, pruning registry entries whose target is gone."""
        pages = self._pages(self._get_targets(config))
        live = {str(t.get("id")) for t in pages}
        with self._lock:
            stale = [tid for tid in self._tabs if tid not in live]
        for tid in stale:
            self._drop(tid)
        tabs = []
        for t in pages:
            tid = str(t.get("id"))
            tab = self.get_tab(tid)
            tabs.append(
                {
                    "id": tid,
                    "url": t.get("url", ""),
                    "title": t.get("title", ""),
                    "current": tid == self._current_id,
                    "hasSnapshot": bool(tab is not None and tab.snapshot is not None),
                }
            )
        return tabs

    def new_tab(self, config: BrowserConfig, url: str = "about:blank") -> Tab:
        """Create new tab and make it current."""
        tab_id = self._create_tab(config, url)
        target = next((t for t in self._pages(self._get_targets(config)) if t.get("id") == tab_id), None)
        if target is None:
            raise EngineError(f"Created tab {tab_id} is not listed by the browser")
        tab = self._adopt(target)
        with self._lock:
            self._current_id = tab.id
        return tab

    def select_tab(self, config: BrowserConfig, tab_id: str) -> Tab | None:
        """Make an existing page target current. Returns None when it does not exist."""
        target = next((t for t in self._pages(self._get_targets(config)) if t.get("id") == tab_id), None)
        if target is None:
            return None
        tab = self._adopt(target)
        with self._lock:
            self._current_id = tab.id
        try:
            self._browser_command(config, "Target.activateTarget", {"targetId": tab_id})
        except EngineError as exc:
            logger.debug("activateTarget failed for %s: %s", tab_id, exc)
        return tab

    def close_tab(self, config: BrowserConfig, tab_id: str | None = None) -> bool:
        """Close a tab. Closes the current tab if no ID provided."""
        target_id = tab_id or self._current_id
        if not target_id:
            return False
        result = self._browser_command(config, "Target.closeTarget", {"targetId": target_id})
        self._drop(target_id)
        return bool(result.get("success", True))

    def get_session(self, config: BrowserConfig, timeout: float | None = None) -> tuple[BrowserSession, Tab]:
        """Open a BrowserSession on the current tab (caller closes it)."""
        tab = self.ensure_tab(config)
        conn = CdpConnection(tab.ws_url, timeout=config.cdp_timeout if timeout is None else timeout)
        return BrowserSession(conn, tab.id, tab.url), tab


__all__ = ["SessionManager", "Tab"]
