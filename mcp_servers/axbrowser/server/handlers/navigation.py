"""
Navigation and tab tool handlers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ... import tools as ax_tools
from ..envelope import envelope_result
from ..params import NavigateParams, TabsParams, parse_args
from ..types import ToolResult

if TYPE_CHECKING:
    from ...config import BrowserConfig
    from ...endpoint import CdpEndpoint


def handle_browser_navigate(config: BrowserConfig, endpoint: CdpEndpoint, args: dict[str, Any]) -> ToolResult:
    params = parse_args(NavigateParams, args, tool="browser_navigate")
    result = ax_tools.navigate_to(config, url=params.url)
    return envelope_result(
        config,
        "browser_navigate",
        result,
        page={"url": result["url"], "title": result["title"]},
    )


def handle_browser_tabs(config: BrowserConfig, endpoint: CdpEndpoint, args: dict[str, Any]) -> ToolResult:
    params = parse_args(TabsParams, args, tool="browser_tabs")
    result = ax_tools.manage_tabs(config, action=params.action, tab_id=params.tab_id, url=params.url)
    return envelope_result(config, "browser_tabs", result)


NAVIGATION_HANDLERS: dict[str, tuple] = {
    "browser_navigate": (handle_browser_navigate, True),
    "browser_tabs": (handle_browser_tabs, True),
}
