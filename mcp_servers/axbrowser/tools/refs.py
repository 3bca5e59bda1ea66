"""
Element refs: what they look like and how they are written onto the page.

A ref is an opaque per-capture id such as ``r7``. Capture stamps it on the
element as the native ``aria-ref`` attribute; pages and older tooling may also
carry refs in a generic ``data-ref`` attribute. Refs are positional within one
capture and are not stable across captures with different membership.
"""

from __future__ import annotations

import json

ARIA_REF_ATTR = "aria-ref"
DATA_REF_ATTR = "data-ref"
REF_PREFIX = "r"


def format_ref(index: int) -> str:
    """Ref for the `index`-th (1-based) stamped node of a capture."""
    if index < 1:
        raise ValueError("ref index is 1-based")
    return f"{REF_PREFIX}{index}"


# Computed visibility: not hidden AND display != none AND visibility != hidden AND has an offset parent.
IS_VISIBLE_JS = """function(el) {
  if (!el || el.nodeType !== 1) return false;
  if (el.hidden) return false;
  const st = window.getComputedStyle(el);
  if (!st || st.display === 'none' || st.visibility === 'hidden') return false;
  return el.offsetParent !== null;
}"""

IMPLICIT_ROLE_JS = """function(el) {
  const tag = el.tagName.toLowerCase();
  if (tag === 'a' && el.hasAttribute('href')) return 'link';
  if (tag === 'button') return 'button';
  if (tag === 'select') return el.multiple ? 'listbox' : 'combobox';
  if (tag === 'textarea') return 'textbox';
  if (tag === 'input') {
    const t = (el.getAttribute('type') || 'text').toLowerCase();
    if (t === 'checkbox' || t === 'radio') return t;
    if (t === 'button' || t === 'submit' || t === 'reset') return 'button';
    if (t === 'search') return 'searchbox';
    return 'textbox';
  }
  if (/^h[1-6]$/.test(tag)) return 'heading';
  if (tag === 'nav') return 'navigation';
  if (tag === 'main') return 'main';
  return '';
}"""

VISIBILITY_MANY_JS = f"""function(...els) {{
  const isVisible = {IS_VISIBLE_JS};
  return els.map((el) => isVisible(el));
}}"""

# Old stamps are cleared before the new ones are written, in one script call,
# so the page never holds a mix of two captures' refs.
STAMP_REFS_JS = f"""function(refs, ...els) {{
  const attr = {json.dumps(ARIA_REF_ATTR)};
  for (const old of document.querySelectorAll('[' + attr + ']')) old.removeAttribute(attr);
  let stamped = 0;
  for (let i = 0; i < els.length; i++) {{
    if (els[i] && els[i].nodeType === 1) {{ els[i].setAttribute(attr, refs[i]); stamped++; }}
  }}
  return stamped;
}}"""

CLEAR_REFS_JS = (
    f"(() => {{ const attr = {json.dumps(ARIA_REF_ATTR)}; let n = 0;"
    " for (const el of document.querySelectorAll('[' + attr + ']')) { el.removeAttribute(attr); n++; }"
    " return n; })()"
)


def exact_attr_lookup_js(attr: str, value: str) -> str:
    """Expression returning the first element whose `attr` equals `value` exactly, else null.

    Compares getAttribute() results instead of building an attribute selector so
    arbitrary ref strings never need CSS escaping.
    """
    return (
        f"(() => {{ const attr = {json.dumps(attr)}; const want = {json.dumps(value)};"
        " for (const el of document.querySelectorAll('[' + attr + ']')) {"
        " if (el.getAttribute(attr) === want) return el; }"
        " return null; })()"
    )


def selector_lookup_js(selector: str) -> str:
    return f"document.querySelector({json.dumps(selector)})"


__all__ = [
    "ARIA_REF_ATTR",
    "CLEAR_REFS_JS",
    "DATA_REF_ATTR",
    "IMPLICIT_ROLE_JS",
    "IS_VISIBLE_JS",
    "REF_PREFIX",
    "STAMP_REFS_JS",
    "VISIBILITY_MANY_JS",
    "exact_attr_lookup_js",
    "format_ref",
    "selector_lookup_js",
]
