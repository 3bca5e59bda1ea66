"""
Attribute extraction tool handlers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ... import tools as ax_tools
from ..envelope import envelope_result
from ..params import AttributesParams, BulkAttributesParams, parse_args
from ..types import ToolResult

if TYPE_CHECKING:
    from ...config import BrowserConfig
    from ...endpoint import CdpEndpoint


def handle_browser_get_element_attributes(
    config: BrowserConfig, endpoint: CdpEndpoint, args: dict[str, Any]
) -> ToolResult:
    params = parse_args(AttributesParams, args, tool="browser_get_element_attributes")
    result = ax_tools.get_element_attributes(
        config, ref=params.ref, selector=params.selector, element=params.element
    )
    return envelope_result(
        config,
        "browser_get_element_attributes",
        {"attributes": result["attributes"]},
        target=result["target"],
    )


def handle_browser_get_bulk_attributes(
    config: BrowserConfig, endpoint: CdpEndpoint, args: dict[str, Any]
) -> ToolResult:
    params = parse_args(BulkAttributesParams, args, tool="browser_get_bulk_attributes")
    result = ax_tools.get_bulk_attributes(config, params.refs)
    return envelope_result(config, "browser_get_bulk_attributes", result)


ATTRIBUTE_HANDLERS: dict[str, tuple] = {
    "browser_get_element_attributes": (handle_browser_get_element_attributes, True),
    "browser_get_bulk_attributes": (handle_browser_get_bulk_attributes, True),
}
