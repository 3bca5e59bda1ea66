"""
Assertion tool handlers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ... import tools as ax_tools
from ..envelope import envelope_result
from ..params import ExpectElementParams, ExpectPageParams, parse_args
from ..types import ToolResult

if TYPE_CHECKING:
    from ...config import BrowserConfig
    from ...endpoint import CdpEndpoint


def handle_browser_expect_element(config: BrowserConfig, endpoint: CdpEndpoint, args: dict[str, Any]) -> ToolResult:
    params = parse_args(ExpectElementParams, args, tool="browser_expect_element")
    result = ax_tools.expect_element(
        config,
        assertion=params.assertion,
        value=params.value,
        ref=params.ref,
        selector=params.selector,
        element=params.element,
        timeout_ms=params.timeout_ms,
        ignore_case=params.ignore_case,
    )
    target = result.pop("target", None)
    return envelope_result(config, "browser_expect_element", result, target=target)


def handle_browser_expect_page(config: BrowserConfig, endpoint: CdpEndpoint, args: dict[str, Any]) -> ToolResult:
    params = parse_args(ExpectPageParams, args, tool="browser_expect_page")
    result = ax_tools.expect_page(
        config,
        assertion=params.assertion,
        value=params.value,
        pattern=params.pattern,
        flags=params.flags,
        timeout_ms=params.timeout_ms,
    )
    return envelope_result(config, "browser_expect_page", result)


EXPECT_HANDLERS: dict[str, tuple] = {
    "browser_expect_element": (handle_browser_expect_element, True),
    "browser_expect_page": (handle_browser_expect_page, True),
}
