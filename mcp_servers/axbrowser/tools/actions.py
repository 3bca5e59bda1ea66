"""
Element actions on resolved refs/selectors.

Every action resolves its target through the resolver's fallback chain,
performs the input via CDP, then refreshes the tab's snapshot (best-effort)
so the caller gets refs for the page as it now is.
"""

from __future__ import annotations

import contextlib
import json
from collections.abc import Callable
from typing import Any

from ..config import BrowserConfig
from ..http_client import EngineError
from ..session import BrowserSession
from .base import SmartToolError, get_session
from .resolver import ElementHandle, release, resolve
from .snapshot import refresh_snapshot


def _center(session: BrowserSession, handle: ElementHandle, tool: str) -> tuple[float, float]:
    """On-screen center point of the element (scrolled into view first)."""
    with contextlib.suppress(EngineError):
        session.send("DOM.scrollIntoViewIfNeeded", {"objectId": handle.object_id})

    try:
        box = session.send("DOM.getBoxModel", {"objectId": handle.object_id})
    except EngineError as exc:
        raise SmartToolError(
            tool=tool,
            action="box_model",
            reason=str(exc),
            suggestion="The element may be detached or not rendered; take a fresh browser_snapshot",
            details=handle.target(),
        ) from exc

    model = box.get("model") if isinstance(box, dict) else None
    quad = None
    if isinstance(model, dict):
        quad = model.get("border") or model.get("content") or model.get("padding")
    if not isinstance(quad, list) or len(quad) < 8:
        raise SmartToolError(
            tool=tool,
            action="box_model",
            reason="Element has no box model (not rendered)",
            suggestion="Scroll or wait until the element is visible, then retry",
            details=handle.target(),
        )

    xs = [float(quad[i]) for i in (0, 2, 4, 6)]
    ys = [float(quad[i]) for i in (1, 3, 5, 7)]
    return sum(xs) / 4.0, sum(ys) / 4.0


def _act(
    config: BrowserConfig,
    *,
    tool: str,
    ref: str | None,
    selector: str | None,
    element: str | None,
    perform: Callable[[BrowserSession, ElementHandle], dict[str, Any]],
) -> dict[str, Any]:
    with get_session(config) as (session, tab):
        try:
            handle = resolve(session, ref=ref, selector=selector, element=element)
            outcome = perform(session, handle)
        finally:
            release(session)
        snapshot = refresh_snapshot(session, tab, config)
        return {
            "action": tool,
            **outcome,
            "target": handle.target(),
            "snapshot": snapshot.to_text() if snapshot is not None else None,
        }


# ─────────────────────────────────────────────────────────────────────────────
# Click / hover / drag
# ─────────────────────────────────────────────────────────────────────────────


def click(
    config: BrowserConfig,
    *,
    ref: str | None = None,
    selector: str | None = None,
    element: str | None = None,
    double_click: bool = False,
    button: str = "left",
) -> dict[str, Any]:
    def perform(session: BrowserSession, handle: ElementHandle) -> dict[str, Any]:
        x, y = _center(session, handle, "click")
        session.click(x, y, button=button, click_count=2 if double_click else 1)
        return {"x": x, "y": y, "button": button, "doubleClick": double_click}

    return _act(config, tool="click", ref=ref, selector=selector, element=element, perform=perform)


def hover(
    config: BrowserConfig,
    *,
    ref: str | None = None,
    selector: str | None = None,
    element: str | None = None,
) -> dict[str, Any]:
    def perform(session: BrowserSession, handle: ElementHandle) -> dict[str, Any]:
        x, y = _center(session, handle, "hover")
        session.move_mouse(x, y)
        return {"x": x, "y": y}

    return _act(config, tool="hover", ref=ref, selector=selector, element=element, perform=perform)


def drag(
    config: BrowserConfig,
    *,
    start_ref: str | None = None,
    start_selector: str | None = None,
    start_element: str | None = None,
    end_ref: str | None = None,
    end_selector: str | None = None,
    end_element: str | None = None,
) -> dict[str, Any]:
    with get_session(config) as (session, tab):
        try:
            source = resolve(session, ref=start_ref, selector=start_selector, element=start_element)
            dest = resolve(session, ref=end_ref, selector=end_selector, element=end_element)
            from_x, from_y = _center(session, source, "drag")
            to_x, to_y = _center(session, dest, "drag")
            session.drag(from_x, from_y, to_x, to_y)
        finally:
            release(session)
        snapshot = refresh_snapshot(session, tab, config)
        return {
            "action": "drag",
            "from": {"x": from_x, "y": from_y, **source.target()},
            "to": {"x": to_x, "y": to_y, **dest.target()},
            "snapshot": snapshot.to_text() if snapshot is not None else None,
        }


# ─────────────────────────────────────────────────────────────────────────────
# Text entry
# ─────────────────────────────────────────────────────────────────────────────

_PREPARE_FILL_JS = """function() {
  const el = this;
  if (!el.isConnected) throw new Error('Element is detached');
  if (el.disabled) throw new Error('Element is disabled');
  el.focus();
  if ('value' in el) {
    el.value = '';
    el.dispatchEvent(new Event('input', { bubbles: true }));
  } else if (el.isContentEditable) {
    el.textContent = '';
  } else {
    throw new Error('Element is not editable');
  }
  return true;
}"""

_COMMIT_FILL_JS = """function() {
  this.dispatchEvent(new Event('change', { bubbles: true }));
  return 'value' in this ? String(this.value).length : (this.textContent || '').length;
}"""


def fill(
    config: BrowserConfig,
    *,
    text: str,
    ref: str | None = None,
    selector: str | None = None,
    element: str | None = None,
) -> dict[str, Any]:
    """Replace the element's value with `text`."""

    def perform(session: BrowserSession, handle: ElementHandle) -> dict[str, Any]:
        try:
            session.call_function(handle.object_id, _PREPARE_FILL_JS)
        except EngineError as exc:
            raise SmartToolError(
                tool="fill",
                action="prepare",
                reason=str(exc),
                suggestion="Target an input, textarea or contenteditable element",
                details=handle.target(),
            ) from exc
        session.type_text(text)
        length = session.call_function(handle.object_id, _COMMIT_FILL_JS)
        return {"length": int(length or 0)}

    return _act(config, tool="fill", ref=ref, selector=selector, element=element, perform=perform)


def type_text(
    config: BrowserConfig,
    *,
    text: str,
    ref: str | None = None,
    selector: str | None = None,
    element: str | None = None,
    submit: bool = False,
    slowly: bool = False,
) -> dict[str, Any]:
    """Focus the element and type `text` after its current content."""

    def perform(session: BrowserSession, handle: ElementHandle) -> dict[str, Any]:
        session.send("DOM.focus", {"objectId": handle.object_id})
        session.type_text(text, slowly=slowly)
        if submit:
            session.press_key("Enter")
        return {"typed": len(text), "submitted": submit, "slowly": slowly}

    return _act(config, tool="type", ref=ref, selector=selector, element=element, perform=perform)


# ─────────────────────────────────────────────────────────────────────────────
# Checkbox / select
# ─────────────────────────────────────────────────────────────────────────────

_CHECKED_STATE_JS = """function() {
  const el = this;
  if ('checked' in el && (el.type === 'checkbox' || el.type === 'radio')) return !!el.checked;
  const aria = el.getAttribute('aria-checked');
  if (aria === 'true' || aria === 'false') return aria === 'true';
  return null;
}"""


def check(
    config: BrowserConfig,
    *,
    checked: bool = True,
    ref: str | None = None,
    selector: str | None = None,
    element: str | None = None,
) -> dict[str, Any]:
    """Bring a checkbox/radio/switch to the requested state (clicks only when needed)."""

    def perform(session: BrowserSession, handle: ElementHandle) -> dict[str, Any]:
        before = session.call_function(handle.object_id, _CHECKED_STATE_JS)
        if before is None:
            raise SmartToolError(
                tool="check",
                action="read_state",
                reason="Element is not checkable",
                suggestion="Target a checkbox, radio or an element with aria-checked",
                details=handle.target(),
            )
        if bool(before) != checked:
            x, y = _center(session, handle, "check")
            session.click(x, y)
        after = session.call_function(handle.object_id, _CHECKED_STATE_JS)
        if after is not None and bool(after) != checked:
            raise SmartToolError(
                tool="check",
                action="verify",
                reason=f"Element is still {'checked' if after else 'unchecked'} after clicking",
                suggestion="The page may intercept clicks; try clicking its label instead",
                details=handle.target(),
            )
        return {"checked": checked, "changed": bool(before) != checked}

    return _act(config, tool="check", ref=ref, selector=selector, element=element, perform=perform)


def _select_js(values: list[str]) -> str:
    return f"""function() {{
  const el = this;
  if (el.tagName !== 'SELECT') throw new Error('Element is not a <select>');
  const wanted = {json.dumps(values)};
  const matched = [];
  for (const want of wanted) {{
    const opt = Array.from(el.options).find((o) => o.value === want)
      || Array.from(el.options).find((o) => o.label.trim() === want || o.text.trim() === want);
    if (opt) matched.push(opt);
  }}
  if (!matched.length) return {{ selected: [], missing: wanted }};
  if (!el.multiple) matched.splice(1);
  for (const o of el.options) o.selected = matched.includes(o);
  el.dispatchEvent(new Event('input', {{ bubbles: true }}));
  el.dispatchEvent(new Event('change', {{ bubbles: true }}));
  const found = matched.map((o) => o.value);
  return {{ selected: found, missing: wanted.filter((w) => !matched.some((o) => o.value === w || o.label.trim() === w || o.text.trim() === w)) }};
}}"""


def select_option(
    config: BrowserConfig,
    *,
    values: list[str],
    ref: str | None = None,
    selector: str | None = None,
    element: str | None = None,
) -> dict[str, Any]:
    """Select options by value (falling back to visible label)."""

    def perform(session: BrowserSession, handle: ElementHandle) -> dict[str, Any]:
        try:
            res = session.call_function(handle.object_id, _select_js(values))
        except EngineError as exc:
            raise SmartToolError(
                tool="select_option",
                action="select",
                reason=str(exc),
                suggestion="Target a <select> element",
                details=handle.target(),
            ) from exc
        res = res if isinstance(res, dict) else {}
        selected = list(res.get("selected") or [])
        if not selected:
            raise SmartToolError(
                tool="select_option",
                action="select",
                reason=f"No option matches {values}",
                suggestion="Use option values or visible labels from the element",
                details={**handle.target(), "values": values},
            )
        return {"selected": selected, "missing": list(res.get("missing") or [])}

    return _act(config, tool="select_option", ref=ref, selector=selector, element=element, perform=perform)


__all__ = ["check", "click", "drag", "fill", "hover", "select_option", "type_text"]
