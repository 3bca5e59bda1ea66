from __future__ import annotations

from typing import Any

import pytest

from mcp_servers.axbrowser.http_client import EngineError
from mcp_servers.axbrowser.session import BrowserSession


class RecordingConn:
    def __init__(self, reply: dict[str, Any]) -> None:
        self.reply = reply
        self.calls: list[tuple[str, dict[str, Any] | None]] = []

    def send(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        self.calls.append((method, params))
        return self.reply


def test_eval_js_returns_by_value_without_repl_mode() -> None:
    conn = RecordingConn({"result": {"type": "number", "value": 123}})
    session = BrowserSession(conn, tab_id="t1")
    assert session.eval_js("1 + 2") == 123

    method, params = conn.calls[0]
    assert method == "Runtime.evaluate"
    assert (params or {}).get("awaitPromise") is True
    assert (params or {}).get("returnByValue") is True
    assert "replMode" not in (params or {})


@pytest.mark.parametrize(
    "remote",
    [
        {"type": "undefined"},
        {"type": "object", "subtype": "null"},
    ],
)
def test_eval_js_maps_undefined_and_null_to_none(remote: dict[str, Any]) -> None:
    session = BrowserSession(RecordingConn({"result": remote}), tab_id="t1")
    assert session.eval_js("globalThis.__nope") is None


def test_eval_js_raises_first_line_of_page_exception() -> None:
    conn = RecordingConn({"exceptionDetails": {"exception": {"description": "TypeError: x is undefined\n    at <anonymous>:1:1"}}})
    session = BrowserSession(conn, tab_id="t1")
    with pytest.raises(EngineError, match=r"^TypeError: x is undefined$"):
        session.eval_js("x.y")


def test_evaluate_handle_keeps_object_group() -> None:
    conn = RecordingConn({"result": {"type": "object", "subtype": "node", "objectId": "obj-7"}})
    session = BrowserSession(conn, tab_id="t1")
    assert session.evaluate_handle("document.body", object_group="grp") == "obj-7"
    params = conn.calls[0][1] or {}
    assert params["objectGroup"] == "grp"
    assert params["returnByValue"] is False


def test_evaluate_handle_null_is_none() -> None:
    session = BrowserSession(RecordingConn({"result": {"type": "object", "subtype": "null"}}), tab_id="t1")
    assert session.evaluate_handle("document.querySelector('#nope')", object_group="grp") is None


def test_call_function_passes_handles_and_values() -> None:
    conn = RecordingConn({"result": {"type": "boolean", "value": True}})
    session = BrowserSession(conn, tab_id="t1")
    assert session.call_function("obj-1", "function(a, b) { return true; }", [{"objectId": "obj-2"}, "text"]) is True

    params = conn.calls[0][1] or {}
    assert params["objectId"] == "obj-1"
    assert params["arguments"] == [{"objectId": "obj-2"}, {"value": "text"}]


def test_call_function_without_args_omits_arguments() -> None:
    conn = RecordingConn({"result": {"type": "undefined"}})
    session = BrowserSession(conn, tab_id="t1")
    assert session.call_function("obj-1", "function() {}") is None
    assert "arguments" not in (conn.calls[0][1] or {})


def test_query_selector_count_quotes_selector() -> None:
    conn = RecordingConn({"result": {"type": "number", "value": 3}})
    session = BrowserSession(conn, tab_id="t1")
    assert session.query_selector_count('a[href="/x"]') == 3
    assert 'document.querySelectorAll("a[href=\\"/x\\"]")' in (conn.calls[0][1] or {})["expression"]
