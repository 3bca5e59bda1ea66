"""
Polling assertions on elements and on the page.

An assertion is re-checked every 100ms until it holds or its timeout passes;
a failure is reported with the last observed value.
"""

from __future__ import annotations

import logging
import re
import time
from typing import Any

from ..config import BrowserConfig
from ..session import BrowserSession
from .base import RefNotFound, SmartToolError, ValidationError, get_session
from .refs import IMPLICIT_ROLE_JS, IS_VISIBLE_JS
from .resolver import release, resolve

logger = logging.getLogger("mcp.axbrowser.expect")

POLL_INTERVAL = 0.1

SHORTHANDS = {
    "visible": "toBeVisible",
    "hidden": "toBeHidden",
    "enabled": "toBeEnabled",
    "disabled": "toBeDisabled",
}

STATE_ASSERTIONS = frozenset(
    {
        "toBeVisible",
        "toBeHidden",
        "toBeAttached",
        "toBeDetached",
        "toBeEnabled",
        "toBeDisabled",
        "toBeChecked",
        "toBeUnchecked",
        "toBeEditable",
        "toBeFocused",
        "toBeEmpty",
    }
)
VALUE_ASSERTIONS = frozenset(
    {
        "toHaveText",
        "toContainText",
        "toHaveValue",
        "toHaveAttribute",
        "toHaveClass",
        "toHaveId",
        "toHaveRole",
        "toHaveAccessibleName",
        "toHaveCount",
    }
)
ELEMENT_ASSERTIONS = STATE_ASSERTIONS | VALUE_ASSERTIONS
PAGE_ASSERTIONS = frozenset({"toHaveURL", "toHaveTitle"})

# Assertions that hold when the element cannot be found at all.
_PASS_WHEN_MISSING = frozenset({"toBeHidden", "toBeDetached"})

_ASSERT_JS = f"""function(assertion, expected, ignoreCase) {{
  const el = this;
  const norm = (s) => {{
    const t = String(s == null ? '' : s).replace(/\\s+/g, ' ').trim();
    return ignoreCase ? t.toLowerCase() : t;
  }};
  const isVisible = {IS_VISIBLE_JS};
  const implicitRole = {IMPLICIT_ROLE_JS};
  const result = (pass, actual) => ({{ pass: !!pass, actual }});
  const disabled = () => !!el.disabled || el.getAttribute('aria-disabled') === 'true';
  const checked = () => ('checked' in el && (el.type === 'checkbox' || el.type === 'radio'))
    ? !!el.checked : el.getAttribute('aria-checked') === 'true';
  const accessibleName = () => {{
    const label = el.getAttribute('aria-label');
    if (label) return label;
    const by = el.getAttribute('aria-labelledby');
    if (by) return by.split(/\\s+/).map((id) => (document.getElementById(id) || {{}}).textContent || '').join(' ');
    if (el.labels && el.labels.length) return Array.from(el.labels).map((l) => l.textContent).join(' ');
    return el.getAttribute('alt') || el.getAttribute('title') || el.innerText || el.textContent || '';
  }};
  switch (assertion) {{
    case 'toBeVisible': return result(isVisible(el), isVisible(el));
    case 'toBeHidden': return result(!isVisible(el), isVisible(el));
    case 'toBeAttached': return result(el.isConnected, el.isConnected);
    case 'toBeDetached': return result(!el.isConnected, el.isConnected);
    case 'toBeEnabled': return result(!disabled(), !disabled());
    case 'toBeDisabled': return result(disabled(), disabled());
    case 'toBeChecked': return result(checked(), checked());
    case 'toBeUnchecked': return result(!checked(), checked());
    case 'toBeEditable': {{
      const formField = ['INPUT', 'TEXTAREA', 'SELECT'].includes(el.tagName);
      const editable = el.isContentEditable || (formField && !el.disabled && !el.readOnly);
      return result(editable, editable);
    }}
    case 'toBeFocused': return result(document.activeElement === el, document.activeElement === el);
    case 'toBeEmpty': {{
      const v = ['INPUT', 'TEXTAREA'].includes(el.tagName) ? el.value : (el.textContent || '').trim();
      return result(v === '', v);
    }}
    case 'toHaveText': {{ const t = norm(el.innerText || el.textContent); return result(t === norm(expected), t); }}
    case 'toContainText': {{ const t = norm(el.innerText || el.textContent); return result(t.includes(norm(expected)), t); }}
    case 'toHaveValue': {{ const v = 'value' in el ? String(el.value) : ''; return result(norm(v) === norm(expected), v); }}
    case 'toHaveAttribute': {{
      const i = expected.indexOf('=');
      const name = i < 0 ? expected : expected.slice(0, i);
      const got = el.getAttribute(name);
      if (i < 0) return result(got !== null, got);
      return result(got !== null && norm(got) === norm(expected.slice(i + 1)), got);
    }}
    case 'toHaveClass': {{
      const cls = String(el.getAttribute('class') || '');
      return result(el.classList.contains(expected) || norm(cls) === norm(expected), cls);
    }}
    case 'toHaveId': return result(el.id === expected, el.id);
    case 'toHaveRole': {{ const r = el.getAttribute('role') || implicitRole(el); return result(r === expected, r); }}
    case 'toHaveAccessibleName': {{ const n = norm(accessibleName()); return result(n === norm(expected), n); }}
  }}
  throw new Error('Unsupported assertion: ' + assertion);
}}"""


def _check_element(
    session: BrowserSession,
    *,
    assertion: str,
    value: str | None,
    ref: str | None,
    selector: str | None,
    element: str | None,
    ignore_case: bool,
) -> tuple[bool, Any]:
    if assertion == "toHaveCount":
        count = session.query_selector_count(selector or "")
        return count == int(value or 0), count
    try:
        handle = resolve(session, ref=ref, selector=selector, element=element)
    except RefNotFound:
        return assertion in _PASS_WHEN_MISSING, None
    try:
        res = session.call_function(handle.object_id, _ASSERT_JS, [assertion, value, ignore_case])
    finally:
        release(session)
    res = res if isinstance(res, dict) else {}
    return bool(res.get("pass")), res.get("actual")


def normalize_assertion(assertion: str) -> str:
    return SHORTHANDS.get(assertion, assertion)


def validate_element_assertion(assertion: str, value: str | None, selector: str | None) -> str:
    """Reject unusable assertion arguments before touching the browser."""
    assertion = normalize_assertion(assertion)
    if assertion not in ELEMENT_ASSERTIONS:
        raise ValidationError(
            tool="expect",
            action="validate",
            reason=f"Unknown element assertion: {assertion}",
            suggestion=f"Use one of: {', '.join(sorted(ELEMENT_ASSERTIONS | set(SHORTHANDS)))}",
        )
    if assertion in VALUE_ASSERTIONS and (value is None or str(value) == ""):
        raise ValidationError(
            tool="expect",
            action="validate",
            reason=f"Expected value is required for {assertion}",
            suggestion="Pass the expected value in `value`",
        )
    if assertion == "toHaveCount":
        if not (selector or "").strip():
            raise ValidationError(
                tool="expect",
                action="validate",
                reason="toHaveCount requires a selector",
                suggestion="Refs address one element; pass a CSS selector to count matches",
            )
        if not str(value).strip().isdigit():
            raise ValidationError(
                tool="expect",
                action="validate",
                reason=f"toHaveCount expects a non-negative integer, got {value!r}",
                suggestion="Pass the expected count as a number",
            )
    return assertion


def _poll(check, timeout_ms: int) -> tuple[bool, Any, int]:
    deadline = time.monotonic() + max(0, timeout_ms) / 1000.0
    attempts = 0
    while True:
        attempts += 1
        passed, actual = check()
        if passed or time.monotonic() >= deadline:
            return passed, actual, attempts
        time.sleep(POLL_INTERVAL)


def expect_element(
    config: BrowserConfig,
    *,
    assertion: str,
    value: str | None = None,
    ref: str | None = None,
    selector: str | None = None,
    element: str | None = None,
    timeout_ms: int = 5000,
    ignore_case: bool = False,
) -> dict[str, Any]:
    assertion = validate_element_assertion(assertion, value, selector)
    with get_session(config) as (session, _tab):
        passed, actual, attempts = _poll(
            lambda: _check_element(
                session,
                assertion=assertion,
                value=value,
                ref=ref,
                selector=selector,
                element=element,
                ignore_case=ignore_case,
            ),
            timeout_ms,
        )
    logger.info("expect %s passed=%s attempts=%d", assertion, passed, attempts)
    target = {k: v for k, v in (("ref", ref), ("selector", selector), ("element", element)) if v}
    if not passed:
        expected = f" {value!r}" if value is not None else ""
        raise SmartToolError(
            tool="expect",
            action=assertion,
            reason=f"Expected {assertion}{expected}, got {actual!r} after {timeout_ms}ms",
            suggestion="Inspect the element with browser_get_element_attributes or take a fresh snapshot",
            details={**target, "actual": actual, "attempts": attempts},
        )
    return {"assertion": assertion, "passed": True, "actual": actual, "attempts": attempts, "target": target}


def _page_matcher(assertion: str, value: str | None, pattern: str | None, flags: str):
    if assertion not in PAGE_ASSERTIONS:
        raise ValidationError(
            tool="expect",
            action="validate",
            reason=f"Unknown page assertion: {assertion}",
            suggestion="Use toHaveURL or toHaveTitle",
        )
    if pattern:
        re_flags = re.IGNORECASE if "i" in (flags or "") else 0
        try:
            compiled = re.compile(pattern, re_flags)
        except re.error as exc:
            raise ValidationError(
                tool="expect",
                action="validate",
                reason=f"Invalid pattern: {exc}",
                suggestion="Pass a valid regular expression",
            ) from exc
        return lambda actual: compiled.search(actual) is not None
    if value is None or value == "":
        raise ValidationError(
            tool="expect",
            action="validate",
            reason=f"Expected value is required for {assertion}",
            suggestion="Pass `value` (substring) or `pattern` (regular expression)",
        )
    return lambda actual: value in actual


def expect_page(
    config: BrowserConfig,
    *,
    assertion: str,
    value: str | None = None,
    pattern: str | None = None,
    flags: str = "",
    timeout_ms: int = 5000,
) -> dict[str, Any]:
    matches = _page_matcher(assertion, value, pattern, flags)
    with get_session(config) as (session, _tab):
        read = session.get_url if assertion == "toHaveURL" else session.get_title

        def check() -> tuple[bool, str]:
            actual = read()
            return matches(actual), actual

        passed, actual, attempts = _poll(check, timeout_ms)
    logger.info("expect %s passed=%s attempts=%d", assertion, passed, attempts)
    if not passed:
        wanted = f"/{pattern}/{flags}" if pattern else repr(value)
        raise SmartToolError(
            tool="expect",
            action=assertion,
            reason=f"Expected {assertion} {wanted}, got {actual!r} after {timeout_ms}ms",
            suggestion="Wait for navigation to finish or check the expected value",
            details={"actual": actual, "attempts": attempts},
        )
    return {"assertion": assertion, "passed": True, "actual": actual, "attempts": attempts}


__all__ = [
    "ELEMENT_ASSERTIONS",
    "PAGE_ASSERTIONS",
    "SHORTHANDS",
    "expect_element",
    "expect_page",
    "normalize_assertion",
    "validate_element_assertion",
]
