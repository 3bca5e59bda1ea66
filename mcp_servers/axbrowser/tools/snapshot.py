"""
Accessibility snapshot capture.

Walks Chrome's full accessibility tree, stamps refs on the interactive nodes
(first N in document order, within a soft time budget) and renders an
indented outline an agent can read:

    - navigation "Main"
      - link "Home" [ref=r1]
      - button "Sign in" [ref=r2]

A capture either completes (possibly partial, flagged ``timed_out``) and
replaces the tab's snapshot, or fails and leaves the previous one in place.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Iterator
from contextlib import suppress
from dataclasses import dataclass, field
from typing import Any

from ..config import BrowserConfig
from ..http_client import EngineError
from ..session import BrowserSession, Tab
from .base import CaptureTimeout, SmartToolError, get_session
from .refs import CLEAR_REFS_JS, STAMP_REFS_JS, VISIBILITY_MANY_JS, format_ref

logger = logging.getLogger("mcp.axbrowser.snapshot")

OBJECT_GROUP = "axbrowser-capture"

INTERACTIVE_ROLES = frozenset(
    {
        "button",
        "link",
        "checkbox",
        "radio",
        "switch",
        "textbox",
        "searchbox",
        "combobox",
        "listbox",
        "option",
        "menuitem",
        "menuitemcheckbox",
        "menuitemradio",
        "tab",
        "slider",
        "spinbutton",
        "treeitem",
    }
)

# Wrapper roles whose children are promoted to the wrapper's own depth.
_FLATTEN_ROLES = frozenset({"", "none", "generic", "presentation", "InlineTextBox", "LineBreak"})
_DOCUMENT_ROLES = frozenset({"RootWebArea", "WebArea", "Iframe"})

_MAX_AX_NODES = 5000
_MAX_NAME_CHARS = 200
_RESOLVE_CHUNK = 25
_DEADLINE_CHECK_EVERY = 200


def _now() -> float:
    return time.monotonic()


@dataclass(frozen=True)
class CaptureParams:
    include_hidden: bool = False
    max_interactive_refs: int = 120
    time_budget_ms: int = 1500

    @classmethod
    def from_config(cls, config: BrowserConfig) -> CaptureParams:
        return cls(
            max_interactive_refs=config.snapshot_max_refs,
            time_budget_ms=config.snapshot_time_budget_ms,
        )


@dataclass(frozen=True)
class Node:
    """One accessible element as it was at capture time."""

    role: str
    name: str = ""
    ref: str | None = None
    visible: bool = True
    children: tuple[Node, ...] = ()


@dataclass(frozen=True)
class Snapshot:
    """Point-in-time accessibility capture of one tab."""

    nodes: tuple[Node, ...]
    refs: tuple[str, ...]
    params: CaptureParams
    created_at: float
    url: str = ""
    title: str = ""
    timed_out: bool = False
    candidates: int = 0

    def iter_nodes(self) -> Iterator[tuple[int, Node]]:
        """Pre-order walk yielding (depth, node)."""
        stack: list[tuple[int, Node]] = [(0, n) for n in reversed(self.nodes)]
        while stack:
            depth, node = stack.pop()
            yield depth, node
            stack.extend((depth + 1, child) for child in reversed(node.children))

    def find(self, ref: str) -> Node | None:
        for _, node in self.iter_nodes():
            if node.ref == ref:
                return node
        return None

    def to_text(self) -> str:
        return "\n".join(f"{'  ' * depth}- {_node_line(node)}" for depth, node in self.iter_nodes())


def _node_line(node: Node) -> str:
    parts = [node.role or "unknown"]
    if node.name:
        parts.append(json.dumps(node.name, ensure_ascii=False))
    if node.ref:
        parts.append(f"[ref={node.ref}]")
    return " ".join(parts)


@dataclass
class _Entry:
    depth: int
    role: str
    name: str
    visible: bool = True
    backend_id: int | None = None
    eligible: bool = False
    ref: str | None = None
    object_id: str | None = field(default=None, repr=False)


def _ax_value(value: Any) -> Any:
    """CDP AXValue is usually a dict with {type,value}. Return the underlying value."""
    if isinstance(value, dict) and "value" in value:
        return value.get("value")
    return value


def _ax_bool_prop(node: dict[str, Any], prop_name: str) -> bool | None:
    props = node.get("properties")
    if not isinstance(props, list):
        return None
    for p in props:
        if not isinstance(p, dict) or p.get("name") != prop_name:
            continue
        v = _ax_value(p.get("value"))
        if isinstance(v, bool):
            return v
        if isinstance(v, str) and v.lower() in {"true", "false"}:
            return v.lower() == "true"
    return None


def _get_ax_nodes(session: BrowserSession) -> list[dict[str, Any]]:
    """Fetch full AX tree nodes."""
    try:
        res = session.send("Accessibility.getFullAXTree")
    except EngineError as exc:
        raise SmartToolError(
            tool="snapshot",
            action="getFullAXTree",
            reason=str(exc),
            suggestion="Reload the page and capture again",
        ) from exc

    nodes = res.get("nodes") if isinstance(res, dict) else None
    if not isinstance(nodes, list):
        raise SmartToolError(
            tool="snapshot",
            action="parse",
            reason="Accessibility.getFullAXTree returned unexpected payload",
            suggestion="Capture again",
        )
    return [n for n in nodes if isinstance(n, dict)]


def _is_eligible(role: str, node: dict[str, Any], backend_id: int | None) -> bool:
    if backend_id is None or role in _DOCUMENT_ROLES or role == "StaticText":
        return False
    if role.lower() in INTERACTIVE_ROLES:
        return True
    return _ax_bool_prop(node, "focusable") is True


def _walk(ax_nodes: list[dict[str, Any]], deadline: float, out: list[_Entry]) -> None:
    """Flatten the AX tree into pre-order entries (appended to `out` as they are visited)."""
    by_id = {str(n.get("nodeId")): n for n in ax_nodes if n.get("nodeId") is not None}
    roots = [n for n in ax_nodes if not n.get("parentId")] or ax_nodes[:1]

    stack: list[tuple[dict[str, Any], int, str]] = [(n, 0, "") for n in reversed(roots)]
    scanned = 0
    while stack:
        scanned += 1
        if scanned > _MAX_AX_NODES:
            logger.info("ax walk capped at %d nodes", _MAX_AX_NODES)
            return
        if scanned % _DEADLINE_CHECK_EVERY == 0 and _now() > deadline:
            raise CaptureTimeout(
                tool="snapshot",
                action="walk",
                reason=f"time budget exhausted after {len(out)} nodes",
            )

        node, depth, parent_name = stack.pop()
        role = str(_ax_value(node.get("role")) or "")
        name = " ".join(str(_ax_value(node.get("name")) or "").split())[:_MAX_NAME_CHARS]

        flatten = (
            node.get("ignored") is True
            or role in _FLATTEN_ROLES
            or (role == "StaticText" and (not name or name == parent_name))
        )
        child_depth = depth
        if not flatten:
            raw_backend = node.get("backendDOMNodeId")
            backend_id = int(raw_backend) if isinstance(raw_backend, (int, float)) and raw_backend > 0 else None
            out.append(
                _Entry(
                    depth=depth,
                    role="text" if role == "StaticText" else role,
                    name=name,
                    visible=_ax_bool_prop(node, "hidden") is not True,
                    backend_id=backend_id,
                    eligible=_is_eligible(role, node, backend_id),
                )
            )
            child_depth = depth + 1
            parent_name = name

        children = [by_id[str(c)] for c in node.get("childIds") or [] if str(c) in by_id]
        for child in reversed(children):
            stack.append((child, child_depth, parent_name))


def _resolve_object(session: BrowserSession, backend_id: int) -> str | None:
    try:
        res = session.send("DOM.resolveNode", {"backendNodeId": backend_id, "objectGroup": OBJECT_GROUP})
    except EngineError as exc:
        # Node detached between the AX fetch and now: it simply gets no ref.
        logger.debug("resolveNode failed backend=%s: %s", backend_id, exc)
        return None
    obj = res.get("object") if isinstance(res, dict) else None
    return obj.get("objectId") if isinstance(obj, dict) else None


def _select_refs(
    session: BrowserSession,
    candidates: list[_Entry],
    params: CaptureParams,
    deadline: float,
    assigned: list[_Entry],
) -> None:
    """Pick the first `max_interactive_refs` candidates (document order) that pass the visibility filter."""
    budget = max(0, int(params.max_interactive_refs))
    for start in range(0, len(candidates), _RESOLVE_CHUNK):
        if len(assigned) >= budget:
            return
        chunk = [e for e in candidates[start : start + _RESOLVE_CHUNK] if e.backend_id is not None]
        for entry in chunk:
            entry.object_id = _resolve_object(session, entry.backend_id)  # type: ignore[arg-type]
        live = [e for e in chunk if e.object_id]
        if live:
            flags = session.call_function(
                live[0].object_id,  # type: ignore[arg-type]
                VISIBILITY_MANY_JS,
                [{"objectId": e.object_id} for e in live],
            )
            flags = flags if isinstance(flags, list) else []
            for entry, visible in zip(live, flags):
                entry.visible = bool(visible)
        for entry in live:
            if not params.include_hidden and not entry.visible:
                continue
            if len(assigned) >= budget:
                return
            assigned.append(entry)
        more = start + _RESOLVE_CHUNK < len(candidates)
        if more and len(assigned) < budget and _now() > deadline:
            raise CaptureTimeout(
                tool="snapshot",
                action="assign",
                reason=f"time budget exhausted after {len(assigned)} refs",
            )


def _stamp(session: BrowserSession, assigned: list[_Entry]) -> tuple[str, ...]:
    """Write the new refs onto the page, clearing the previous capture's stamps."""
    refs = tuple(format_ref(i) for i in range(1, len(assigned) + 1))
    if not assigned:
        session.eval_js(CLEAR_REFS_JS)
        return refs
    session.call_function(
        assigned[0].object_id,  # type: ignore[arg-type]
        STAMP_REFS_JS,
        [list(refs)] + [{"objectId": e.object_id} for e in assigned],
    )
    for entry, ref in zip(assigned, refs):
        entry.ref = ref
    return refs


def _build_tree(entries: list[_Entry]) -> tuple[Node, ...]:
    """Rebuild nesting from pre-order (depth-annotated) entries."""
    parents: list[int] = []
    open_stack: list[int] = []
    for i, entry in enumerate(entries):
        while open_stack and entries[open_stack[-1]].depth >= entry.depth:
            open_stack.pop()
        parents.append(open_stack[-1] if open_stack else -1)
        open_stack.append(i)

    kids: list[list[Node]] = [[] for _ in entries]
    roots: list[Node] = []
    for i in range(len(entries) - 1, -1, -1):
        e = entries[i]
        node = Node(role=e.role, name=e.name, ref=e.ref, visible=e.visible, children=tuple(reversed(kids[i])))
        (kids[parents[i]] if parents[i] >= 0 else roots).append(node)
    return tuple(reversed(roots))


def capture_snapshot(session: BrowserSession, tab: Tab, params: CaptureParams) -> Snapshot:
    """Capture the tab's accessibility tree and make it the tab's current snapshot."""
    started = _now()
    deadline = started + max(0, params.time_budget_ms) / 1000.0

    ax_nodes = _get_ax_nodes(session)
    entries: list[_Entry] = []
    assigned: list[_Entry] = []
    timed_out = False
    candidates = 0
    # Every handle resolved below lives in OBJECT_GROUP, whichever way the capture ends.
    try:
        try:
            _walk(ax_nodes, deadline, entries)
            eligible = [e for e in entries if e.eligible]
            candidates = len(eligible)
            _select_refs(session, eligible, params, deadline, assigned)
        except CaptureTimeout as exc:
            timed_out = True
            candidates = candidates or sum(1 for e in entries if e.eligible)
            logger.info("capture partial tab=%s: %s", tab.id, exc.reason)
        refs = _stamp(session, assigned)
    finally:
        with suppress(Exception):
            session.release_object_group(OBJECT_GROUP)

    snapshot = Snapshot(
        nodes=_build_tree(entries),
        refs=refs,
        params=params,
        created_at=time.time(),
        url=session.get_url(),
        title=session.get_title(),
        timed_out=timed_out,
        candidates=candidates,
    )
    tab.replace_snapshot(snapshot)
    logger.info(
        "capture tab=%s nodes=%d refs=%d candidates=%d elapsed_ms=%d timed_out=%s",
        tab.id,
        len(entries),
        len(refs),
        candidates,
        int((_now() - started) * 1000),
        timed_out,
    )
    return snapshot


def require_snapshot(tab: Tab) -> Snapshot:
    snapshot = tab.snapshot
    if snapshot is None:
        raise SmartToolError(
            tool="snapshot",
            action="lookup",
            reason="No snapshot available",
            suggestion="Call browser_snapshot first",
            details={"tabId": tab.id},
        )
    return snapshot


def take_snapshot(config: BrowserConfig, params: CaptureParams) -> dict[str, Any]:
    """Capture the current tab and return text tree plus raw page data."""
    with get_session(config) as (session, tab):
        capture_snapshot(session, tab, params)
        snapshot = require_snapshot(tab)
        return {
            "url": snapshot.url,
            "title": snapshot.title,
            "html": session.get_html(),
            "accessibility_tree": snapshot.to_text(),
            "refs": len(snapshot.refs),
            "timed_out": snapshot.timed_out,
        }


def refresh_snapshot(session: BrowserSession, tab: Tab, config: BrowserConfig) -> Snapshot | None:
    """Best-effort post-action capture; failure keeps the previous snapshot."""
    try:
        return capture_snapshot(session, tab, CaptureParams.from_config(config))
    except (SmartToolError, EngineError) as exc:
        logger.info("post-action capture skipped tab=%s: %s", tab.id, exc)
        return None


__all__ = [
    "CaptureParams",
    "INTERACTIVE_ROLES",
    "Node",
    "Snapshot",
    "capture_snapshot",
    "refresh_snapshot",
    "require_snapshot",
    "take_snapshot",
]
