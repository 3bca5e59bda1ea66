"""
Element action tool handlers (click, fill, type, hover, check, select, drag).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ... import tools as ax_tools
from ..envelope import envelope_result
from ..params import (
    CheckParams,
    ClickParams,
    DragParams,
    FillParams,
    HoverParams,
    SelectOptionParams,
    TypeParams,
    parse_args,
)
from ..types import ToolResult

if TYPE_CHECKING:
    from ...config import BrowserConfig
    from ...endpoint import CdpEndpoint


def _action_result(config: BrowserConfig, tool: str, result: dict[str, Any]) -> ToolResult:
    data = dict(result)
    target = data.pop("target", None)
    return envelope_result(config, tool, data, target=target)


def handle_browser_click(config: BrowserConfig, endpoint: CdpEndpoint, args: dict[str, Any]) -> ToolResult:
    params = parse_args(ClickParams, args, tool="browser_click")
    result = ax_tools.click(
        config,
        ref=params.ref,
        selector=params.selector,
        element=params.element,
        double_click=params.double_click,
        button=params.button,
    )
    return _action_result(config, "browser_click", result)


def handle_browser_fill(config: BrowserConfig, endpoint: CdpEndpoint, args: dict[str, Any]) -> ToolResult:
    params = parse_args(FillParams, args, tool="browser_fill")
    result = ax_tools.fill(config, text=params.text, ref=params.ref, selector=params.selector, element=params.element)
    return _action_result(config, "browser_fill", result)


def handle_browser_type(config: BrowserConfig, endpoint: CdpEndpoint, args: dict[str, Any]) -> ToolResult:
    params = parse_args(TypeParams, args, tool="browser_type")
    result = ax_tools.type_text(
        config,
        text=params.text,
        ref=params.ref,
        selector=params.selector,
        element=params.element,
        submit=params.submit,
        slowly=params.slowly,
    )
    return _action_result(config, "browser_type", result)


def handle_browser_hover(config: BrowserConfig, endpoint: CdpEndpoint, args: dict[str, Any]) -> ToolResult:
    params = parse_args(HoverParams, args, tool="browser_hover")
    result = ax_tools.hover(config, ref=params.ref, selector=params.selector, element=params.element)
    return _action_result(config, "browser_hover", result)


def handle_browser_check(config: BrowserConfig, endpoint: CdpEndpoint, args: dict[str, Any]) -> ToolResult:
    params = parse_args(CheckParams, args, tool="browser_check")
    result = ax_tools.check(
        config, checked=params.checked, ref=params.ref, selector=params.selector, element=params.element
    )
    return _action_result(config, "browser_check", result)


def handle_browser_select_option(config: BrowserConfig, endpoint: CdpEndpoint, args: dict[str, Any]) -> ToolResult:
    params = parse_args(SelectOptionParams, args, tool="browser_select_option")
    result = ax_tools.select_option(
        config, values=params.values, ref=params.ref, selector=params.selector, element=params.element
    )
    return _action_result(config, "browser_select_option", result)


def handle_browser_drag(config: BrowserConfig, endpoint: CdpEndpoint, args: dict[str, Any]) -> ToolResult:
    params = parse_args(DragParams, args, tool="browser_drag")
    result = ax_tools.drag(
        config,
        start_ref=params.start_ref,
        start_selector=params.start_selector,
        start_element=params.start_element,
        end_ref=params.end_ref,
        end_selector=params.end_selector,
        end_element=params.end_element,
    )
    # Two elements are involved; both are described in data.from / data.to.
    return envelope_result(config, "browser_drag", result)


ACTION_HANDLERS: dict[str, tuple] = {
    "browser_click": (handle_browser_click, True),
    "browser_fill": (handle_browser_fill, True),
    "browser_type": (handle_browser_type, True),
    "browser_hover": (handle_browser_hover, True),
    "browser_check": (handle_browser_check, True),
    "browser_select_option": (handle_browser_select_option, True),
    "browser_drag": (handle_browser_drag, True),
}
