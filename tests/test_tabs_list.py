from __future__ import annotations

from typing import Any

import pytest

from mcp_servers.axbrowser import session_manager as session_manager_module
from mcp_servers.axbrowser.config import BrowserConfig
from mcp_servers.axbrowser.http_client import EngineError
from mcp_servers.axbrowser.session import SessionManager
from mcp_servers.axbrowser.tools import navigation
from mcp_servers.axbrowser.tools.base import SmartToolError, ValidationError


def _page(tab_id: str, url: str = "https://a.test/", title: str = "A") -> dict[str, Any]:
    return {
        "id": tab_id,
        "type": "page",
        "url": url,
        "title": title,
        "webSocketDebuggerUrl": f"ws://127.0.0.1:9222/devtools/page/{tab_id}",
    }


@pytest.fixture
def manager(monkeypatch: pytest.MonkeyPatch):
    SessionManager.reset()
    mgr = SessionManager()
    targets: list[dict[str, Any]] = [_page("t1"), {"id": "sw", "type": "service_worker", "url": "x"}]
    commands: list[tuple[str, dict[str, Any]]] = []

    def fake_browser_command(config: BrowserConfig, method: str, params: dict[str, Any]) -> dict[str, Any]:
        commands.append((method, params))
        if method == "Target.createTarget":
            targets.append(_page("t2", url=params["url"], title="New"))
            return {"targetId": "t2"}
        if method == "Target.closeTarget":
            targets[:] = [t for t in targets if t.get("id") != params["targetId"]]
            return {"success": True}
        return {}

    monkeypatch.setattr(mgr, "_get_targets", lambda config: list(targets))
    monkeypatch.setattr(mgr, "_browser_command", fake_browser_command)
    yield mgr, targets, commands
    SessionManager.reset()


def test_ensure_tab_attaches_first_page(manager) -> None:
    mgr, _targets, _commands = manager
    tab = mgr.ensure_tab(BrowserConfig())
    assert tab.id == "t1"
    assert mgr.tab_id == "t1"
    assert tab.ws_url.endswith("/t1")


def test_list_tabs_skips_non_pages_and_marks_current(manager) -> None:
    mgr, _targets, _commands = manager
    mgr.ensure_tab(BrowserConfig())
    tabs = mgr.list_tabs(BrowserConfig())
    assert [t["id"] for t in tabs] == ["t1"]
    assert tabs[0]["current"] is True
    assert tabs[0]["hasSnapshot"] is False


def test_list_tabs_prunes_closed_targets(manager) -> None:
    mgr, targets, _commands = manager
    tab = mgr.ensure_tab(BrowserConfig())
    targets.clear()
    assert mgr.list_tabs(BrowserConfig()) == []
    assert mgr.get_tab(tab.id) is None
    assert mgr.current_tab() is None


def test_new_tab_becomes_current(manager) -> None:
    mgr, _targets, commands = manager
    tab = mgr.new_tab(BrowserConfig(), "https://b.test/")
    assert tab.id == "t2"
    assert mgr.tab_id == "t2"
    assert commands[0] == ("Target.createTarget", {"url": "https://b.test/"})


def test_select_missing_tab_returns_none(manager) -> None:
    mgr, _targets, _commands = manager
    assert mgr.select_tab(BrowserConfig(), "nope") is None


def test_manage_tabs_actions(manager, monkeypatch: pytest.MonkeyPatch) -> None:
    mgr, _targets, _commands = manager
    monkeypatch.setattr(navigation, "session_manager", mgr)
    config = BrowserConfig()

    opened = navigation.manage_tabs(config, action="new", url="https://b.test/")
    assert opened["tabId"] == "t2"

    listed = navigation.manage_tabs(config, action="list")
    assert listed["total"] == 2

    selected = navigation.manage_tabs(config, action="select", tab_id="t1")
    assert selected["tabId"] == "t1"
    assert mgr.tab_id == "t1"

    closed = navigation.manage_tabs(config, action="close", tab_id="t2")
    assert closed["closed"] is True
    assert navigation.manage_tabs(config, action="list")["total"] == 1


def test_manage_tabs_select_validation(manager, monkeypatch: pytest.MonkeyPatch) -> None:
    mgr, _targets, _commands = manager
    monkeypatch.setattr(navigation, "session_manager", mgr)
    with pytest.raises(ValidationError):
        navigation.manage_tabs(BrowserConfig(), action="select")
    with pytest.raises(SmartToolError) as exc:
        navigation.manage_tabs(BrowserConfig(), action="select", tab_id="ghost")
    assert "ghost" in exc.value.reason


def test_tab_errors_become_tool_errors(manager, monkeypatch: pytest.MonkeyPatch) -> None:
    mgr, _targets, _commands = manager
    monkeypatch.setattr(navigation, "session_manager", mgr)

    def boom(config: BrowserConfig, url: str = "about:blank") -> Any:
        raise EngineError("Target.createTarget: browser gone")

    monkeypatch.setattr(mgr, "new_tab", boom)
    with pytest.raises(SmartToolError) as exc:
        navigation.manage_tabs(BrowserConfig(), action="new")
    assert exc.value.tool == "tabs"


def test_failed_listing_keeps_tabs_and_fingerprint(monkeypatch: pytest.MonkeyPatch) -> None:
    SessionManager.reset()
    mgr = SessionManager()
    responses: list[Any] = [[_page("t1")], EngineError("connection refused"), [_page("t1")]]

    def flaky_get_json(url: str, timeout: float = 2.0) -> Any:
        assert url.endswith("/json/list")
        reply = responses.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    monkeypatch.setattr(session_manager_module, "http_get_json", flaky_get_json)
    config = BrowserConfig()
    tab = mgr.ensure_tab(config)
    fingerprint = object()
    tab.page_state = fingerprint  # type: ignore[assignment]

    with pytest.raises(EngineError):
        mgr.list_tabs(config)

    again = mgr.ensure_tab(config)
    assert again is tab
    assert again.page_state is fingerprint
    SessionManager.reset()


def test_list_tool_reports_failed_listing(manager, monkeypatch: pytest.MonkeyPatch) -> None:
    mgr, _targets, _commands = manager
    monkeypatch.setattr(navigation, "session_manager", mgr)

    def unreachable(config: BrowserConfig) -> list[dict[str, Any]]:
        raise EngineError("connection refused")

    monkeypatch.setattr(mgr, "_get_targets", unreachable)
    with pytest.raises(SmartToolError) as exc:
        navigation.manage_tabs(BrowserConfig(), action="list")
    assert exc.value.tool == "tabs"
    assert exc.value.action == "list"
