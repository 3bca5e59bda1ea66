from __future__ import annotations

from contextlib import contextmanager
from typing import Any

import pytest

from mcp_servers.axbrowser.config import BrowserConfig
from mcp_servers.axbrowser.session import BrowserSession, Tab
from mcp_servers.axbrowser.tools import attributes as attributes_module
from mcp_servers.axbrowser.tools import resolver
from mcp_servers.axbrowser.tools.base import RefNotFound, ValidationError
from mcp_servers.axbrowser.tools.refs import ARIA_REF_ATTR, DATA_REF_ATTR, exact_attr_lookup_js, selector_lookup_js
from mcp_servers.axbrowser.tools.resolver import resolve, resolve_many
from mcp_servers.axbrowser.tools.snapshot import CaptureParams


class PageConn:
    """Fake page: lookup expressions map to remote object ids."""

    def __init__(
        self,
        *,
        data_refs: dict[str, str] | None = None,
        aria_refs: dict[str, str] | None = None,
        selectors: dict[str, str] | None = None,
        bad_selectors: set[str] | None = None,
        visible: set[str] | None = None,
    ) -> None:
        self.lookups: dict[str, str] = {}
        for ref, oid in (data_refs or {}).items():
            self.lookups[exact_attr_lookup_js(DATA_REF_ATTR, ref)] = oid
        for ref, oid in (aria_refs or {}).items():
            self.lookups[exact_attr_lookup_js(ARIA_REF_ATTR, ref)] = oid
        for sel, oid in (selectors or {}).items():
            self.lookups[selector_lookup_js(sel)] = oid
        self.bad = {selector_lookup_js(s) for s in bad_selectors or set()}
        self.visible = visible or set()
        self.released = 0

    def send(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        params = params or {}
        if method == "Runtime.evaluate":
            expression = params["expression"]
            if expression in self.bad:
                return {"exceptionDetails": {"exception": {"description": "SyntaxError: not a valid selector"}}}
            if expression == "window.location.href":
                return {"result": {"type": "string", "value": "https://a.test/"}}
            if expression == "document.title":
                return {"result": {"type": "string", "value": "A"}}
            oid = self.lookups.get(expression)
            if oid is None:
                return {"result": {"type": "object", "subtype": "null", "value": None}}
            return {"result": {"type": "object", "subtype": "node", "objectId": oid}}
        if method == "Runtime.callFunctionOn":
            oid = params["objectId"]
            if params["functionDeclaration"] == attributes_module._ATTRIBUTES_JS:
                return {"result": {"type": "object", "value": {"id": oid, "tagName": "BUTTON", "isVisible": True}}}
            return {"result": {"type": "boolean", "value": oid in self.visible}}
        if method == "Runtime.releaseObjectGroup":
            self.released += 1
            return {}
        raise AssertionError(f"unexpected method {method}")


def _session(conn: PageConn) -> BrowserSession:
    return BrowserSession(conn, tab_id="t1")


# ═══════════════════════════════════════════════════════════════════════════════
# FALLBACK CHAIN
# ═══════════════════════════════════════════════════════════════════════════════


def test_data_ref_wins_over_aria_ref() -> None:
    conn = PageConn(data_refs={"r1": "obj-data"}, aria_refs={"r1": "obj-aria"})
    handle = resolve(_session(conn), ref="r1", element="Save")
    assert handle.object_id == "obj-data"
    assert handle.source == DATA_REF_ATTR
    assert handle.extraction_method == "mcp-aria-ref-direct"


def test_aria_ref_used_when_no_data_ref() -> None:
    handle = resolve(_session(PageConn(aria_refs={"r2": "obj-aria"})), ref="r2", element="Save")
    assert handle.object_id == "obj-aria"
    assert handle.source == ARIA_REF_ATTR


def test_selector_fallback_when_ref_unmatched() -> None:
    conn = PageConn(selectors={"#save": "obj-sel"})
    handle = resolve(_session(conn), ref="r9", selector="#save", element="Save")
    assert handle.object_id == "obj-sel"
    assert handle.source == "selector"
    assert handle.extraction_method == "css-selector-legacy"
    assert handle.target() == {"ref": "r9", "selector": "#save", "element": "Save"}


def test_unmatched_ref_fails_closed() -> None:
    # A ref with digits must not be resolved by position.
    with pytest.raises(RefNotFound) as exc:
        resolve(_session(PageConn(aria_refs={"r1": "obj-1"})), ref="bogus-999", element="Thing")
    assert exc.value.details["tried"] == [DATA_REF_ATTR, ARIA_REF_ATTR]
    assert "bogus-999" in exc.value.reason


def test_invalid_selector_is_ref_not_found() -> None:
    with pytest.raises(RefNotFound):
        resolve(_session(PageConn(bad_selectors={"##"})), selector="##", element="Broken")


def test_blank_ref_and_selector_is_validation_error() -> None:
    with pytest.raises(ValidationError):
        resolve(_session(PageConn()), ref="  ", selector="", element="Nothing")


# ═══════════════════════════════════════════════════════════════════════════════
# BULK
# ═══════════════════════════════════════════════════════════════════════════════


def test_resolve_many_preserves_order_and_isolates_failures() -> None:
    conn = PageConn(aria_refs={"r1": "obj-1", "r3": "obj-3"}, visible={"obj-1"})
    result = resolve_many(_session(conn), ["r1", "r2", "r3"], attributes_module.extract_visibility)
    assert list(result) == ["r1", "r2", "r3"]
    assert result["r1"] == {"isVisible": True}
    assert result["r2"]["ref"] == "r2" and "error" in result["r2"]
    assert result["r3"] == {"isVisible": False}


def test_resolve_many_collapses_duplicates() -> None:
    conn = PageConn(aria_refs={"r1": "obj-1"})
    result = resolve_many(_session(conn), ["r1", "r1"], attributes_module.extract_visibility)
    assert list(result) == ["r1"]


# ═══════════════════════════════════════════════════════════════════════════════
# ATTRIBUTE TOOLS
# ═══════════════════════════════════════════════════════════════════════════════


def _patch_session(monkeypatch: pytest.MonkeyPatch, module: Any, conn: PageConn, tab: Tab) -> None:
    @contextmanager
    def fake_get_session(config: BrowserConfig, timeout: float | None = None):
        yield _session(conn), tab

    monkeypatch.setattr(module, "get_session", fake_get_session)


def test_single_attributes_tag_extraction_method(monkeypatch: pytest.MonkeyPatch) -> None:
    conn = PageConn(selectors={"#save": "obj-sel"})
    _patch_session(monkeypatch, attributes_module, conn, Tab(id="t1", ws_url="ws://x"))
    result = attributes_module.get_element_attributes(BrowserConfig(), selector="#save", element="Save")
    attrs = result["attributes"]
    assert attrs["extraction_method"] == "css-selector-legacy"
    assert attrs["extraction_timestamp"].endswith("Z")
    assert attrs["ref"] is None
    assert result["target"] == {"selector": "#save", "element": "Save"}
    assert conn.released == 1


def test_bulk_attributes_need_a_snapshot(monkeypatch: pytest.MonkeyPatch) -> None:
    from mcp_servers.axbrowser.tools.base import SmartToolError

    conn = PageConn(aria_refs={"r1": "obj-1"})
    _patch_session(monkeypatch, attributes_module, conn, Tab(id="t1", ws_url="ws://x"))

    def failing_capture(session: Any, tab: Tab, params: Any) -> None:
        raise SmartToolError(tool="snapshot", action="getFullAXTree", reason="page crashed")

    monkeypatch.setattr(attributes_module, "capture_snapshot", failing_capture)
    with pytest.raises(SmartToolError) as exc:
        attributes_module.get_bulk_attributes(BrowserConfig(), ["r1"])
    assert exc.value.reason == "No snapshot available"


def test_discover_reports_candidates(monkeypatch: pytest.MonkeyPatch) -> None:
    candidates = [
        {"ref": "r1", "refSource": "aria-ref", "tag": "button", "role": "button", "text": "Go", "href": None, "visible": True},
        {"ref": "cta", "refSource": "data-ref", "tag": "a", "role": "link", "text": "Buy", "href": "/buy", "visible": False},
    ]

    class DiscoverSession:
        def eval_js(self, expression: str) -> Any:
            assert "const max = 1;" in expression
            return {"candidates": candidates, "timedOut": False}

    result = resolver.discover_refs(DiscoverSession(), max_items=1)  # type: ignore[arg-type]
    assert result["candidates"] == candidates[:1]
    assert result["timed_out"] is False


def test_discovery_pre_capture_uses_discovery_bounds(monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_session(monkeypatch, resolver, PageConn(), Tab(id="t1", ws_url="ws://x"))
    seen: list[CaptureParams] = []
    monkeypatch.setattr(resolver, "capture_snapshot", lambda session, tab, params: seen.append(params))
    monkeypatch.setattr(resolver, "discover_refs", lambda session, **kwargs: {"candidates": [], "timed_out": False})

    resolver.discover_interactive_refs(BrowserConfig(), include_hidden=False, max_items=10, time_budget_ms=300)
    assert seen == [CaptureParams(include_hidden=False, max_interactive_refs=50, time_budget_ms=500)]

    seen.clear()
    resolver.discover_interactive_refs(BrowserConfig(), include_hidden=True, max_items=200, time_budget_ms=2500)
    assert seen == [CaptureParams(include_hidden=True, max_interactive_refs=200, time_budget_ms=2500)]


def test_attribute_surface_reports_lowercase_tag() -> None:
    assert "tagName: el.tagName.toLowerCase()," in attributes_module._ATTRIBUTES_JS
