"""
Tests for the axbrowser MCP server.

Tests cover:
- Protocol handling (initialize, tools/list, ping, unknown methods)
- Tool boundary error shaping
- Payload envelope on successful calls
- Argument redaction for logs
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from typing import Any

import pytest

from mcp_servers.axbrowser import main as mcp_server
from mcp_servers.axbrowser import tools as ax_tools
from mcp_servers.axbrowser.config import BrowserConfig
from mcp_servers.axbrowser.endpoint import CdpEndpoint
from mcp_servers.axbrowser.http_client import EngineError
from mcp_servers.axbrowser.server import envelope
from mcp_servers.axbrowser.server.envelope import build_payload
from mcp_servers.axbrowser.server.redaction import redact_tool_arguments, redact_url
from mcp_servers.axbrowser.session import BrowserSession, Tab
from mcp_servers.axbrowser.tools import attributes as attributes_module
from mcp_servers.axbrowser.tools.refs import ARIA_REF_ATTR, exact_attr_lookup_js


@pytest.fixture
def sent(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, Any]]:
    messages: list[dict[str, Any]] = []
    monkeypatch.setattr(mcp_server, "_write_message", messages.append)
    return messages


@pytest.fixture
def server(monkeypatch: pytest.MonkeyPatch) -> mcp_server.McpServer:
    monkeypatch.setattr(CdpEndpoint, "cdp_ready", lambda self, timeout=0.6: True)
    monkeypatch.setattr(envelope, "current_page", lambda config: {"url": "https://a.test/", "title": "A"})
    return mcp_server.McpServer(BrowserConfig())


def _call(server: mcp_server.McpServer, sent: list[dict[str, Any]], name: str, arguments: dict[str, Any]) -> tuple[bool, Any]:
    server.dispatch({"jsonrpc": "2.0", "id": 7, "method": "tools/call", "params": {"name": name, "arguments": arguments}})
    result = sent[-1]["result"]
    assert sent[-1]["id"] == 7
    return result["isError"], json.loads(result["content"][0]["text"])


# ═══════════════════════════════════════════════════════════════════════════════
# PROTOCOL
# ═══════════════════════════════════════════════════════════════════════════════


def test_initialize_echoes_supported_protocol(server: mcp_server.McpServer, sent: list[dict[str, Any]]) -> None:
    server.dispatch({"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {"protocolVersion": "2024-11-05"}})
    result = sent[-1]["result"]
    assert result["protocolVersion"] == "2024-11-05"
    assert result["serverInfo"]["name"] == "axbrowser"


def test_initialize_falls_back_to_default_protocol(server: mcp_server.McpServer, sent: list[dict[str, Any]]) -> None:
    server.dispatch({"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {"protocolVersion": "1999-01-01"}})
    assert sent[-1]["result"]["protocolVersion"] == mcp_server.DEFAULT_PROTOCOL_VERSION


def test_tools_list_publishes_every_tool_with_bounds(server: mcp_server.McpServer, sent: list[dict[str, Any]]) -> None:
    server.dispatch({"jsonrpc": "2.0", "id": 2, "method": "tools/list"})
    tools = {t["name"]: t for t in sent[-1]["result"]["tools"]}
    assert set(tools) == set(server.registry.tool_names)
    assert {
        "browser_snapshot",
        "browser_discover_interactive_refs",
        "browser_click",
        "browser_fill",
        "browser_type",
        "browser_hover",
        "browser_check",
        "browser_select_option",
        "browser_drag",
        "browser_get_element_attributes",
        "browser_get_bulk_attributes",
        "browser_detect_page_change",
        "browser_navigate",
        "browser_tabs",
        "browser_expect_element",
        "browser_expect_page",
    } <= set(tools)
    snapshot_props = tools["browser_snapshot"]["inputSchema"]["properties"]
    assert snapshot_props["includeHidden"]["default"] is False
    click_schema = tools["browser_click"]["inputSchema"]
    assert "element" in click_schema["required"]
    assert "USAGE:" in tools["browser_click"]["description"]


def test_ping_and_unknown_method(server: mcp_server.McpServer, sent: list[dict[str, Any]]) -> None:
    server.dispatch({"jsonrpc": "2.0", "id": 3, "method": "ping"})
    assert sent[-1] == {"jsonrpc": "2.0", "id": 3, "result": {}}
    server.dispatch({"jsonrpc": "2.0", "id": 4, "method": "resources/list"})
    assert sent[-1]["error"]["code"] == -32601


def test_notifications_get_no_answer(server: mcp_server.McpServer, sent: list[dict[str, Any]]) -> None:
    server.dispatch({"jsonrpc": "2.0", "method": "notifications/initialized"})
    server.dispatch({"jsonrpc": "2.0", "method": "notifications/cancelled"})
    assert sent == []


# ═══════════════════════════════════════════════════════════════════════════════
# TOOL BOUNDARY
# ═══════════════════════════════════════════════════════════════════════════════


def test_server_call_tool_unknown_tool(server: mcp_server.McpServer, sent: list[dict[str, Any]]) -> None:
    is_error, payload = _call(server, sent, "browser_teleport", {})
    assert is_error is True
    assert payload == {"ok": False, "error": "Unknown tool: browser_teleport", "tool": "browser_teleport"}


def test_server_call_tool_ref_not_found_is_error_payload(
    server: mcp_server.McpServer, sent: list[dict[str, Any]], monkeypatch: pytest.MonkeyPatch
) -> None:
    class PageConn:
        def send(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
            if method == "Runtime.evaluate":
                return {"result": {"type": "object", "subtype": "null", "value": None}}
            return {}

    @contextmanager
    def fake_get_session(config: BrowserConfig, timeout: float | None = None):
        yield BrowserSession(PageConn(), tab_id="t1"), Tab(id="t1", ws_url="ws://x")

    monkeypatch.setattr(attributes_module, "get_session", fake_get_session)
    is_error, payload = _call(
        server, sent, "browser_get_element_attributes", {"ref": "bogus-999", "element": "Mystery widget"}
    )
    assert is_error is True
    assert payload["ok"] is False
    assert "bogus-999" in payload["error"]
    assert payload["tool"] == "resolve"
    assert payload["suggestion"]


def test_server_call_tool_validation_happens_before_browser(
    server: mcp_server.McpServer, sent: list[dict[str, Any]], monkeypatch: pytest.MonkeyPatch
) -> None:
    def never(*args: Any, **kwargs: Any) -> Any:
        raise AssertionError("browser must not be touched")

    monkeypatch.setattr(ax_tools, "click", never)

    is_error, payload = _call(server, sent, "browser_click", {"ref": "r1"})
    assert is_error is True
    assert payload["tool"] == "browser_click"
    assert "element" in payload["error"]

    is_error, payload = _call(server, sent, "browser_click", {"ref": "r1", "selector": "#a", "element": "Both"})
    assert is_error is True
    assert "exactly one of ref or selector" in payload["error"]

    is_error, payload = _call(server, sent, "browser_click", {"ref": " ", "selector": "", "element": "Neither"})
    assert is_error is True

    is_error, payload = _call(server, sent, "browser_snapshot", {"maxInteractiveRefs": 10})
    assert is_error is True
    assert "maxInteractiveRefs" in payload["error"]


def test_server_call_tool_engine_error_is_continuable(
    server: mcp_server.McpServer, sent: list[dict[str, Any]], monkeypatch: pytest.MonkeyPatch
) -> None:
    def crashed(config: BrowserConfig, **kwargs: Any) -> Any:
        raise EngineError("Runtime.evaluate: Target crashed")

    monkeypatch.setattr(ax_tools, "hover", crashed)
    is_error, payload = _call(server, sent, "browser_hover", {"ref": "r2", "element": "Menu"})
    assert is_error is True
    assert payload == {"ok": False, "error": "Runtime.evaluate: Target crashed", "tool": "browser_hover"}

    # The server keeps answering afterwards.
    server.dispatch({"jsonrpc": "2.0", "id": 9, "method": "ping"})
    assert sent[-1]["result"] == {}


def test_server_call_tool_unexpected_exception(
    server: mcp_server.McpServer, sent: list[dict[str, Any]], monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(ax_tools, "manage_tabs", lambda config, **kwargs: 1 / 0)
    is_error, payload = _call(server, sent, "browser_tabs", {"action": "list"})
    assert is_error is True
    assert payload["tool"] == "browser_tabs"


def test_server_call_tool_reports_unreachable_cdp(
    sent: list[dict[str, Any]], monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(CdpEndpoint, "cdp_ready", lambda self, timeout=0.6: False)
    server = mcp_server.McpServer(BrowserConfig(cdp_port=9555))
    is_error, payload = _call(server, sent, "browser_snapshot", {})
    assert is_error is True
    assert "--remote-debugging-port=9555" in payload["suggestion"]


# ═══════════════════════════════════════════════════════════════════════════════
# ENVELOPE
# ═══════════════════════════════════════════════════════════════════════════════


def test_build_payload_shape() -> None:
    payload = build_payload("browser_click", {"x": 1}, page={"url": "https://a.test/", "title": "A"})
    assert list(payload) == ["tool", "version", "timestamp", "page", "data"]
    assert payload["version"] == 1
    assert payload["timestamp"].endswith("Z")
    assert "target" not in payload

    targeted = build_payload("browser_click", {}, page=None, target={"ref": "r1", "selector": None, "element": "Go"})
    assert targeted["target"] == {"ref": "r1", "element": "Go"}
    assert targeted["page"] == {"url": "", "title": ""}


def test_server_call_tool_wraps_action_result(
    server: mcp_server.McpServer, sent: list[dict[str, Any]], monkeypatch: pytest.MonkeyPatch
) -> None:
    captured: dict[str, Any] = {}

    def fake_click(config: BrowserConfig, **kwargs: Any) -> dict[str, Any]:
        captured.update(kwargs)
        return {
            "action": "click",
            "x": 10.0,
            "y": 20.0,
            "target": {"ref": "r4", "element": "Buy"},
            "snapshot": '- button "Buy" [ref=r1]',
        }

    monkeypatch.setattr(ax_tools, "click", fake_click)
    is_error, payload = _call(server, sent, "browser_click", {"ref": "r4", "element": "Buy", "doubleClick": True})
    assert is_error is False
    assert captured["double_click"] is True
    assert captured["selector"] is None
    assert payload["tool"] == "browser_click"
    assert payload["page"] == {"url": "https://a.test/", "title": "A"}
    assert payload["target"] == {"ref": "r4", "element": "Buy"}
    assert "target" not in payload["data"]
    assert payload["data"]["snapshot"].startswith("- button")


def test_server_call_tool_detect_page_change_passes_weights(
    server: mcp_server.McpServer, sent: list[dict[str, Any]], monkeypatch: pytest.MonkeyPatch
) -> None:
    captured: dict[str, Any] = {}

    def fake_detect(config: BrowserConfig, **kwargs: Any) -> dict[str, Any]:
        captured.update(kwargs)
        return {
            "significant_change": True,
            "score": 0.4,
            "change_type": "navigation",
            "components": {},
            "current": {"url": "https://b.test/", "title": "B", "elemCount": 3},
            "previous": None,
            "timestamp": "2026-01-01T00:00:00.000Z",
        }

    monkeypatch.setattr(ax_tools, "detect_page_change", fake_detect)
    is_error, payload = _call(
        server, sent, "browser_detect_page_change", {"threshold": 0.5, "weights": {"domStructure": 0.3}}
    )
    assert is_error is False
    assert captured == {"threshold": 0.5, "weights": {"domStructure": 0.3}, "seed_only": False}
    assert payload["page"] == {"url": "https://b.test/", "title": "B"}
    assert payload["data"]["change_type"] == "navigation"

    is_error, payload = _call(server, sent, "browser_detect_page_change", {"weights": {"pixels": 1}})
    assert is_error is True


# ═══════════════════════════════════════════════════════════════════════════════
# REDACTION
# ═══════════════════════════════════════════════════════════════════════════════


def test_redact_tool_arguments_hides_typed_text() -> None:
    safe = redact_tool_arguments("browser_fill", {"ref": "r5", "element": "Password", "text": "hunter2"})
    assert safe == {"ref": "r5", "element": "Password", "text": "<redacted len=7>"}

    safe = redact_tool_arguments("browser_select_option", {"ref": "r4", "element": "Plan", "values": ["pro", "x"]})
    assert safe["values"] == "<redacted len=2>"


def test_redact_url_masks_secrets_only() -> None:
    assert redact_url("https://a.test/p?q=shoes") == "https://a.test/p?q=shoes"
    assert redact_url("https://user:pw@a.test/cb?token=abc&q=1") == "https://a.test/cb?token=%3Credacted%3E&q=1"


def test_call_is_logged_redacted(
    server: mcp_server.McpServer,
    sent: list[dict[str, Any]],
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    monkeypatch.setattr(ax_tools, "type_text", lambda config, **kwargs: {"action": "type", "target": {}, "snapshot": None})
    with caplog.at_level("INFO", logger="mcp.axbrowser"):
        _call(server, sent, "browser_type", {"selector": "#q", "element": "Search", "text": "secret words"})
    assert "secret words" not in caplog.text
    assert "<redacted len=12>" in caplog.text


def test_aria_lookup_expression_quotes_the_ref_as_data() -> None:
    ref = 'r1"] , body [x="'
    expression = exact_attr_lookup_js(ARIA_REF_ATTR, ref)
    assert json.dumps(ref) in expression
    assert "[aria-ref=" not in expression
