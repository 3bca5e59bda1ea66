"""
Tool registry with dispatch table for MCP server.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from .types import ToolResult

if TYPE_CHECKING:
    from ..config import BrowserConfig
    from ..endpoint import CdpEndpoint

logger = logging.getLogger("mcp.axbrowser.registry")

HandlerFunc = Callable[["BrowserConfig", "CdpEndpoint", dict[str, Any]], ToolResult]


class ToolRegistry:
    """Registry for tool handlers with a browser readiness gate."""

    def __init__(self) -> None:
        # name -> (handler, requires_browser)
        self._handlers: dict[str, tuple[HandlerFunc, bool]] = {}

    def register_many(self, handlers: dict[str, tuple[HandlerFunc, bool]]) -> None:
        """Register multiple handlers at once."""
        self._handlers.update(handlers)

    def has(self, name: str) -> bool:
        """Check if handler exists."""
        return name in self._handlers

    def dispatch(
        self,
        name: str,
        config: BrowserConfig,
        endpoint: CdpEndpoint,
        arguments: dict[str, Any],
    ) -> ToolResult:
        """
        Dispatch tool call to appropriate handler.

        Raises:
            KeyError: If tool not found
        """
        handler_info = self._handlers.get(name)
        if handler_info is None:
            raise KeyError(f"Unknown tool: {name}")

        handler, requires_browser = handler_info

        # Fail fast instead of letting every CDP command run into its timeout.
        if requires_browser and not endpoint.cdp_ready(timeout=0.6):
            logger.info("cdp not ready tool=%s endpoint=%s", name, config.http_base)
            return ToolResult.error(
                "CDP endpoint not reachable",
                tool=name,
                suggestion=f"Start Chrome with --remote-debugging-port={config.cdp_port} or set MCP_BROWSER_PORT",
                details={"cdpPort": config.cdp_port, "host": config.host},
            )

        return handler(config, endpoint, arguments)

    @property
    def tool_names(self) -> list[str]:
        return list(self._handlers)

    def __len__(self) -> int:
        return len(self._handlers)


def create_default_registry() -> ToolRegistry:
    """Create registry with all tool handlers registered."""
    from .handlers import ALL_HANDLERS

    registry = ToolRegistry()
    registry.register_many(ALL_HANDLERS)
    return registry


__all__ = ["HandlerFunc", "ToolRegistry", "create_default_registry"]
