"""
Browser automation tools organized by domain.

Each module provides focused functionality:
- base: errors, timestamps, session context manager
- refs: ref attribute names and shared page-side scripts
- snapshot: accessibility capture and ref assignment
- resolver: ref/selector -> live element handle, bulk resolution, discovery
- attributes: attribute extraction (single and bulk)
- actions: click, fill, type, hover, check, select, drag
- page_state: page-state change detection
- navigation: navigation and tabs
- expect: polling element/page assertions
"""

from .actions import check, click, drag, fill, hover, select_option, type_text
from .attributes import get_bulk_attributes, get_element_attributes
from .base import CaptureTimeout, RefNotFound, SmartToolError, ValidationError, get_session, utc_timestamp
from .expect import expect_element, expect_page
from .navigation import manage_tabs, navigate_to
from .page_state import detect_page_change
from .resolver import discover_interactive_refs, resolve, resolve_many
from .snapshot import CaptureParams, Snapshot, capture_snapshot, take_snapshot

__all__ = [
    "CaptureParams",
    "CaptureTimeout",
    "RefNotFound",
    "SmartToolError",
    "Snapshot",
    "ValidationError",
    "capture_snapshot",
    "check",
    "click",
    "detect_page_change",
    "discover_interactive_refs",
    "drag",
    "expect_element",
    "expect_page",
    "fill",
    "get_bulk_attributes",
    "get_element_attributes",
    "get_session",
    "hover",
    "manage_tabs",
    "navigate_to",
    "resolve",
    "resolve_many",
    "select_option",
    "take_snapshot",
    "type_text",
    "utc_timestamp",
]
