"""
Tool handlers organized by domain.

All handlers follow the signature: (config, endpoint, arguments) -> ToolResult
"""

from .actions import ACTION_HANDLERS
from .attributes import ATTRIBUTE_HANDLERS
from .expect import EXPECT_HANDLERS
from .navigation import NAVIGATION_HANDLERS
from .page_change import PAGE_CHANGE_HANDLERS
from .snapshot import SNAPSHOT_HANDLERS

# Aggregate all handlers
ALL_HANDLERS: dict[str, tuple] = {
    **SNAPSHOT_HANDLERS,
    **ACTION_HANDLERS,
    **ATTRIBUTE_HANDLERS,
    **PAGE_CHANGE_HANDLERS,
    **NAVIGATION_HANDLERS,
    **EXPECT_HANDLERS,
}

__all__ = [
    "ACTION_HANDLERS",
    "ALL_HANDLERS",
    "ATTRIBUTE_HANDLERS",
    "EXPECT_HANDLERS",
    "NAVIGATION_HANDLERS",
    "PAGE_CHANGE_HANDLERS",
    "SNAPSHOT_HANDLERS",
]
