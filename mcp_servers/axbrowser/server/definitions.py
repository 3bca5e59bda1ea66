"""Tool schema definitions published by tools/list."""

from __future__ import annotations

from typing import Any

from . import params as p

TOOL_PARAMS: dict[str, type[p.ToolParams]] = {
    "browser_snapshot": p.SnapshotParams,
    "browser_discover_interactive_refs": p.DiscoverParams,
    "browser_click": p.ClickParams,
    "browser_fill": p.FillParams,
    "browser_type": p.TypeParams,
    "browser_hover": p.HoverParams,
    "browser_check": p.CheckParams,
    "browser_select_option": p.SelectOptionParams,
    "browser_drag": p.DragParams,
    "browser_get_element_attributes": p.AttributesParams,
    "browser_get_bulk_attributes": p.BulkAttributesParams,
    "browser_detect_page_change": p.DetectPageChangeParams,
    "browser_navigate": p.NavigateParams,
    "browser_tabs": p.TabsParams,
    "browser_expect_element": p.ExpectElementParams,
    "browser_expect_page": p.ExpectPageParams,
}

_DESCRIPTIONS: dict[str, str] = {
    "browser_snapshot": """Capture the accessibility tree of the current tab and assign refs to interactive elements.
USAGE:
- browser_snapshot()
- Include hidden elements: browser_snapshot(includeHidden=true)
- Smaller/faster capture: browser_snapshot(maxInteractiveRefs=50, timeBudgetMs=800)

Refs (r1, r2, ...) stay valid until the next capture of the same tab.
A capture that runs out of time returns the partial tree with timed_out=true.""",
    "browser_discover_interactive_refs": """List elements that carry a ref attribute, in document order.
USAGE:
- browser_discover_interactive_refs()
- Visible only: browser_discover_interactive_refs(includeHidden=false, max=50)

Each candidate reports refSource ("aria-ref" or "data-ref") so ambiguous refs can be spotted.""",
    "browser_click": """Click an element by ref (or CSS selector).
USAGE:
- browser_click(ref="r3", element="Submit button")
- browser_click(selector="#save", element="Save button", doubleClick=true)
- Context menu: browser_click(ref="r7", element="File row", button="right")""",
    "browser_fill": """Replace the value of an input, textarea or contenteditable element.
USAGE:
- browser_fill(ref="r5", element="Email field", text="user@example.com")""",
    "browser_type": """Focus an element and type text after its current content.
USAGE:
- browser_type(ref="r5", element="Search box", text="laptops", submit=true)
- Key-by-key (for keystroke listeners): browser_type(..., slowly=true)""",
    "browser_hover": """Move the mouse over an element.
USAGE:
- browser_hover(ref="r9", element="Account menu")""",
    "browser_check": """Set a checkbox, radio or switch to the requested state (clicks only when needed).
USAGE:
- browser_check(ref="r11", element="Accept terms")
- browser_check(ref="r11", element="Newsletter", checked=false)""",
    "browser_select_option": """Select options of a <select> element by value (or visible label).
USAGE:
- browser_select_option(ref="r4", element="Country", values=["DE"])""",
    "browser_drag": """Drag one element onto another.
USAGE:
- browser_drag(startRef="r2", startElement="Card A", endRef="r8", endElement="Done column")""",
    "browser_get_element_attributes": """Read the full attribute surface of one element.
USAGE:
- browser_get_element_attributes(ref="r3", element="Login button")
- browser_get_element_attributes(selector="input[name=q]", element="Search input")

RESPONSE EXAMPLE (data.attributes):
{"id": "login", "tagName": "BUTTON", "role": "button", "isVisible": true,
 "extraction_method": "mcp-aria-ref-direct", "ref": "r3"}""",
    "browser_get_bulk_attributes": """Read the visibility flag of many refs at once.
USAGE:
- browser_get_bulk_attributes(refs=["r1", "r2", "r9"])

A ref that cannot be resolved yields {"error": ..., "ref": ...} for that ref only.""",
    "browser_detect_page_change": """Decide whether the page changed enough since the last call to warrant a new snapshot.
USAGE:
- Store a baseline: browser_detect_page_change(seed=true)
- Compare and update the baseline: browser_detect_page_change()
- Custom threshold/weights: browser_detect_page_change(threshold=0.5, weights={"url": 0.6})

change_type is one of navigation, structural, content, none (or seed).""",
    "browser_navigate": """Navigate the current tab to a URL.
USAGE:
- browser_navigate(url="https://example.com")

The previous snapshot is discarded; take a new browser_snapshot before using refs.""",
    "browser_tabs": """Manage browser tabs: list, open, select, close.
USAGE:
- List tabs: browser_tabs(action="list")
- Open new tab: browser_tabs(action="new", url="https://example.com")
- Switch: browser_tabs(action="select", tabId="ABC123")
- Close current: browser_tabs(action="close")""",
    "browser_expect_element": """Wait until an element assertion holds (polls until timeoutMs).
USAGE:
- browser_expect_element(ref="r3", element="Dialog", assertion="toBeVisible")
- browser_expect_element(ref="r5", element="Email", assertion="toHaveValue", value="a@b.c")
- browser_expect_element(selector="li.result", element="Results", assertion="toHaveCount", value="10")

Assertions: toBeVisible, toBeHidden, toBeAttached, toBeDetached, toBeEnabled, toBeDisabled,
toBeChecked, toBeUnchecked, toBeEditable, toBeFocused, toBeEmpty, toHaveText, toContainText,
toHaveValue, toHaveAttribute (name or name=value), toHaveClass, toHaveId, toHaveRole,
toHaveAccessibleName, toHaveCount (selector only); shorthands visible, hidden, enabled, disabled.""",
    "browser_expect_page": """Wait until the page URL or title matches.
USAGE:
- browser_expect_page(assertion="toHaveURL", value="/checkout")
- browser_expect_page(assertion="toHaveTitle", pattern="^Order #\\\\d+", flags="i")""",
}


def _definition(name: str, model: type[p.ToolParams]) -> dict[str, Any]:
    return {"name": name, "description": _DESCRIPTIONS[name], "inputSchema": p.input_schema(model)}


TOOL_DEFINITIONS: list[dict[str, Any]] = [_definition(name, model) for name, model in TOOL_PARAMS.items()]

__all__ = ["TOOL_DEFINITIONS", "TOOL_PARAMS"]
