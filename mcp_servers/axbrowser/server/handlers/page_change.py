"""
Page-state change detection tool handler.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ... import tools as ax_tools
from ...tools.base import ValidationError
from ..envelope import envelope_result
from ..params import DetectPageChangeParams, parse_args
from ..types import ToolResult

if TYPE_CHECKING:
    from ...config import BrowserConfig
    from ...endpoint import CdpEndpoint


def handle_browser_detect_page_change(
    config: BrowserConfig, endpoint: CdpEndpoint, args: dict[str, Any]
) -> ToolResult:
    params = parse_args(DetectPageChangeParams, args, tool="browser_detect_page_change")
    try:
        result = ax_tools.detect_page_change(
            config,
            threshold=params.threshold,
            weights=params.weights.overrides() if params.weights is not None else None,
            seed_only=params.seed,
        )
    except ValueError as exc:
        raise ValidationError(
            tool="browser_detect_page_change",
            action="validate",
            reason=str(exc),
            suggestion="Weights accept url, title, elem, domStructure, formElements, linkElements",
        ) from exc
    current = result.get("current") or {}
    return envelope_result(
        config,
        "browser_detect_page_change",
        result,
        page={"url": current.get("url", ""), "title": current.get("title", "")},
    )


PAGE_CHANGE_HANDLERS: dict[str, tuple] = {
    "browser_detect_page_change": (handle_browser_detect_page_change, True),
}
