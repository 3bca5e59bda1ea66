"""
Ref/selector resolution.

Fallback chain, first match wins:
1. exact match of the generic ``data-ref`` attribute
2. exact match of the capture-stamped ``aria-ref`` attribute
3. the CSS selector, when one was supplied

Unmatched refs fail closed with RefNotFound; there is no positional
fallback that guesses an element from the digits in a ref.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from contextlib import suppress
from dataclasses import dataclass
from typing import Any, TypeVar

from ..config import BrowserConfig
from ..http_client import EngineError
from ..session import BrowserSession
from .base import RefNotFound, SmartToolError, ValidationError, get_session
from .refs import (
    ARIA_REF_ATTR,
    DATA_REF_ATTR,
    IMPLICIT_ROLE_JS,
    IS_VISIBLE_JS,
    exact_attr_lookup_js,
    selector_lookup_js,
)
from .snapshot import CaptureParams, capture_snapshot

logger = logging.getLogger("mcp.axbrowser.resolver")

OBJECT_GROUP = "axbrowser-resolve"

T = TypeVar("T")


@dataclass(frozen=True)
class ElementHandle:
    """Live handle to a resolved element (valid until its object group is released)."""

    object_id: str
    source: str
    ref: str | None = None
    selector: str | None = None
    element: str | None = None

    @property
    def extraction_method(self) -> str:
        return "css-selector-legacy" if self.source == "selector" else "mcp-aria-ref-direct"

    def target(self) -> dict[str, str]:
        out: dict[str, str] = {}
        if self.ref:
            out["ref"] = self.ref
        if self.selector:
            out["selector"] = self.selector
        if self.element:
            out["element"] = self.element
        return out


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _lookup(session: BrowserSession, expression: str) -> str | None:
    return session.evaluate_handle(expression, object_group=OBJECT_GROUP)


def resolve(
    session: BrowserSession,
    *,
    ref: str | None = None,
    selector: str | None = None,
    element: str | None = None,
) -> ElementHandle:
    """Turn a ref and/or selector into a live element handle."""
    ref = _clean(ref)
    selector = _clean(selector)
    if ref is None and selector is None:
        raise ValidationError(
            tool="resolve",
            action="validate",
            reason="Either ref or selector is required",
            suggestion="Pass a ref from browser_snapshot or a CSS selector",
        )

    tried: list[str] = []
    if ref is not None:
        for attr in (DATA_REF_ATTR, ARIA_REF_ATTR):
            tried.append(attr)
            object_id = _lookup(session, exact_attr_lookup_js(attr, ref))
            if object_id:
                logger.debug("resolved ref=%s via %s", ref, attr)
                return ElementHandle(object_id=object_id, source=attr, ref=ref, selector=selector, element=element)

    if selector is not None:
        tried.append("selector")
        try:
            object_id = _lookup(session, selector_lookup_js(selector))
        except EngineError as exc:
            raise RefNotFound(
                tool="resolve",
                action="selector",
                reason=f"Selector could not be evaluated: {exc}",
                suggestion="Check the CSS selector syntax",
                details={"selector": selector, "element": element},
            ) from exc
        if object_id:
            logger.debug("resolved selector=%s", selector)
            return ElementHandle(object_id=object_id, source="selector", ref=ref, selector=selector, element=element)

    what = f"ref '{ref}'" if ref is not None else f"selector '{selector}'"
    if ref is not None and selector is not None:
        what = f"ref '{ref}' or selector '{selector}'"
    raise RefNotFound(
        tool="resolve",
        action="resolve",
        reason=f"No element matches {what}",
        suggestion="Refs are only valid until the next capture; take a fresh browser_snapshot or pass a selector",
        details={"ref": ref, "selector": selector, "element": element, "tried": tried},
    )


def release(session: BrowserSession) -> None:
    with suppress(Exception):
        session.release_object_group(OBJECT_GROUP)


def resolve_many(
    session: BrowserSession,
    refs: list[str],
    extract: Callable[[BrowserSession, ElementHandle], T],
) -> dict[str, T | dict[str, Any]]:
    """Resolve each ref independently; a failing ref yields an error entry for that ref only.

    Result keys follow request order (a repeated ref keeps its first position).
    """
    out: dict[str, T | dict[str, Any]] = {}
    for ref in refs:
        if ref in out:
            continue
        try:
            handle = resolve(session, ref=ref)
            out[ref] = extract(session, handle)
        except SmartToolError as exc:
            out[ref] = {"error": exc.reason, "ref": ref}
        except EngineError as exc:
            out[ref] = {"error": str(exc), "ref": ref}
    failed = sum(1 for v in out.values() if isinstance(v, dict) and "error" in v)
    logger.info("resolve_many refs=%d failed=%d", len(out), failed)
    return out


def _discover_js(include_hidden: bool, max_items: int, time_budget_ms: int) -> str:
    return f"""(() => {{
  const isVisible = {IS_VISIBLE_JS};
  const implicitRole = {IMPLICIT_ROLE_JS};
  const includeHidden = {json.dumps(bool(include_hidden))};
  const max = {int(max_items)};
  const deadline = performance.now() + {int(time_budget_ms)};
  const out = [];
  let timedOut = false;
  for (const el of document.querySelectorAll('[{DATA_REF_ATTR}], [{ARIA_REF_ATTR}]')) {{
    if (out.length >= max) break;
    if (performance.now() > deadline) {{ timedOut = true; break; }}
    const ariaRef = el.getAttribute('{ARIA_REF_ATTR}');
    const dataRef = el.getAttribute('{DATA_REF_ATTR}');
    const ref = ariaRef || dataRef;
    if (!ref) continue;
    const visible = isVisible(el);
    if (!includeHidden && !visible) continue;
    const item = {{
      ref,
      refSource: ariaRef ? '{ARIA_REF_ATTR}' : '{DATA_REF_ATTR}',
      tag: el.tagName.toLowerCase(),
      role: el.getAttribute('role') || implicitRole(el),
      text: (el.innerText || el.textContent || '').trim().replace(/\\s+/g, ' ').slice(0, 120),
      href: el.getAttribute('href') || null,
      visible,
    }};
    if (el.id) item.id = el.id;
    const testId = el.getAttribute('data-testid');
    if (testId) item['data-testid'] = testId;
    const label = el.getAttribute('aria-label');
    if (label) item['aria-label'] = label;
    out.push(item);
  }}
  return {{ candidates: out, timedOut }};
}})()"""


def discover_refs(
    session: BrowserSession,
    *,
    include_hidden: bool = True,
    max_items: int = 120,
    time_budget_ms: int = 1500,
) -> dict[str, Any]:
    """List elements already carrying a ref attribute, in document order."""
    started = time.monotonic()
    res = session.eval_js(_discover_js(include_hidden, max_items, time_budget_ms))
    res = res if isinstance(res, dict) else {}
    candidates = res.get("candidates") if isinstance(res.get("candidates"), list) else []
    logger.info(
        "discover candidates=%d timed_out=%s elapsed_ms=%d",
        len(candidates),
        bool(res.get("timedOut")),
        int((time.monotonic() - started) * 1000),
    )
    return {"candidates": candidates[:max_items], "timed_out": bool(res.get("timedOut"))}


def _discovery_capture_params(include_hidden: bool, max_items: int, time_budget_ms: int) -> CaptureParams:
    # Discovery bounds are looser than capture bounds; clamp into the capture range.
    return CaptureParams(
        include_hidden=include_hidden,
        max_interactive_refs=min(max(max_items, 50), 300),
        time_budget_ms=min(max(time_budget_ms, 500), 3000),
    )


def discover_interactive_refs(
    config: BrowserConfig,
    *,
    include_hidden: bool = True,
    max_items: int = 120,
    time_budget_ms: int = 1500,
) -> dict[str, Any]:
    """Discovery tool: captures first when the tab has no snapshot yet (best-effort)."""
    with get_session(config) as (session, tab):
        if tab.snapshot is None:
            try:
                capture_snapshot(session, tab, _discovery_capture_params(include_hidden, max_items, time_budget_ms))
            except (SmartToolError, EngineError) as exc:
                logger.info("discover: pre-capture failed tab=%s: %s", tab.id, exc)
        return discover_refs(
            session,
            include_hidden=include_hidden,
            max_items=max_items,
            time_budget_ms=time_budget_ms,
        )


__all__ = [
    "ElementHandle",
    "discover_interactive_refs",
    "discover_refs",
    "release",
    "resolve",
    "resolve_many",
]
