"""
Attribute extraction for resolved elements.

Single-element extraction returns the full attribute surface; bulk extraction
returns only the visibility flag per ref to keep payloads small.
"""

from __future__ import annotations

import logging
from typing import Any

from ..config import BrowserConfig
from ..http_client import EngineError
from ..session import BrowserSession
from .base import SmartToolError, get_session, utc_timestamp
from .refs import IS_VISIBLE_JS
from .resolver import ElementHandle, release, resolve, resolve_many
from .snapshot import CaptureParams, capture_snapshot, require_snapshot

logger = logging.getLogger("mcp.axbrowser.attributes")

TEXT_LIMIT = 100

_ATTRIBUTES_JS = f"""function() {{
  const el = this;
  const st = window.getComputedStyle(el);
  const attr = (name) => el.getAttribute(name);
  const visible = ({IS_VISIBLE_JS})(el);
  return {{
    id: el.id || null,
    className: typeof el.className === 'string' ? el.className : attr('class'),
    'data-testid': attr('data-testid'),
    'data-test': attr('data-test'),
    name: attr('name'),
    tagName: el.tagName.toLowerCase(),
    type: attr('type'),
    placeholder: attr('placeholder'),
    value: 'value' in el ? String(el.value) : attr('value'),
    textContent: (el.textContent || '').trim().slice(0, {TEXT_LIMIT}),
    role: attr('role'),
    'aria-label': attr('aria-label'),
    'aria-describedby': attr('aria-describedby'),
    href: attr('href'),
    src: attr('src'),
    isVisible: visible,
    styleDisplay: st.display,
    styleVisibility: st.visibility,
  }};
}}"""

_VISIBLE_JS = f"function() {{ return ({IS_VISIBLE_JS})(this); }}"

def extract_attributes(session: BrowserSession, handle: ElementHandle) -> dict[str, Any]:
    """Full attribute surface for one element."""
    attrs = session.call_function(handle.object_id, _ATTRIBUTES_JS)
    attrs = dict(attrs) if isinstance(attrs, dict) else {}
    attrs["extraction_method"] = handle.extraction_method
    attrs["extraction_timestamp"] = utc_timestamp()
    attrs["ref"] = handle.ref
    return attrs


def extract_visibility(session: BrowserSession, handle: ElementHandle) -> dict[str, Any]:
    return {"isVisible": bool(session.call_function(handle.object_id, _VISIBLE_JS))}


def get_element_attributes(
    config: BrowserConfig,
    *,
    ref: str | None = None,
    selector: str | None = None,
    element: str | None = None,
) -> dict[str, Any]:
    with get_session(config) as (session, _tab):
        try:
            handle = resolve(session, ref=ref, selector=selector, element=element)
            return {"attributes": extract_attributes(session, handle), "target": handle.target()}
        finally:
            release(session)


def get_bulk_attributes(config: BrowserConfig, refs: list[str]) -> dict[str, Any]:
    """Visibility per ref; captures first when the tab has no snapshot yet."""
    with get_session(config) as (session, tab):
        if tab.snapshot is None:
            try:
                capture_snapshot(session, tab, CaptureParams.from_config(config))
            except (SmartToolError, EngineError) as exc:
                logger.info("bulk attributes: capture failed tab=%s: %s", tab.id, exc)
            require_snapshot(tab)
        try:
            return {"attributes": resolve_many(session, refs, extract_visibility)}
        finally:
            release(session)


__all__ = [
    "extract_attributes",
    "extract_visibility",
    "get_bulk_attributes",
    "get_element_attributes",
]
