"""
Capture and discovery tool handlers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ... import tools as ax_tools
from ..envelope import envelope_result
from ..params import DiscoverParams, SnapshotParams, parse_args
from ..types import ToolResult

if TYPE_CHECKING:
    from ...config import BrowserConfig
    from ...endpoint import CdpEndpoint


def handle_browser_snapshot(config: BrowserConfig, endpoint: CdpEndpoint, args: dict[str, Any]) -> ToolResult:
    params = parse_args(SnapshotParams, args, tool="browser_snapshot")
    capture = ax_tools.CaptureParams(
        include_hidden=params.include_hidden,
        max_interactive_refs=params.max_interactive_refs or config.snapshot_max_refs,
        time_budget_ms=params.time_budget_ms or config.snapshot_time_budget_ms,
    )
    result = ax_tools.take_snapshot(config, capture)
    return envelope_result(
        config,
        "browser_snapshot",
        result,
        page={"url": result["url"], "title": result["title"]},
    )


def handle_browser_discover_interactive_refs(
    config: BrowserConfig, endpoint: CdpEndpoint, args: dict[str, Any]
) -> ToolResult:
    params = parse_args(DiscoverParams, args, tool="browser_discover_interactive_refs")
    result = ax_tools.discover_interactive_refs(
        config,
        include_hidden=params.include_hidden,
        max_items=params.max,
        time_budget_ms=params.time_budget_ms,
    )
    return envelope_result(config, "browser_discover_interactive_refs", result)


SNAPSHOT_HANDLERS: dict[str, tuple] = {
    "browser_snapshot": (handle_browser_snapshot, True),
    "browser_discover_interactive_refs": (handle_browser_discover_interactive_refs, True),
}
