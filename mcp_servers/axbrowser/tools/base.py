"""
Base utilities for browser automation tools.

Provides:
- SmartToolError and its subclasses: structured errors for AI agents
- Session management with context manager
"""

from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from ..config import BrowserConfig
from ..http_client import EngineError
from ..session import BrowserSession, Tab, session_manager


@dataclass
class SmartToolError(Exception):
    """Structured error with context for AI agents."""

    tool: str
    action: str
    reason: str
    suggestion: str = ""
    details: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        base = f"[{self.tool}] {self.action} failed: {self.reason}"
        return f"{base}. Suggestion: {self.suggestion}" if self.suggestion else base

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": True,
            "tool": self.tool,
            "action": self.action,
            "reason": self.reason,
            "suggestion": self.suggestion,
            "details": self.details,
        }


class ValidationError(SmartToolError):
    """Arguments rejected before any browser interaction."""


class RefNotFound(SmartToolError):
    """Resolution exhausted its fallback chain without a match."""


class CaptureTimeout(SmartToolError):
    """Capture walk passed its soft deadline; callers keep the partial result."""


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@contextmanager
def get_session(config: BrowserConfig, timeout: float | None = None) -> Generator[tuple[BrowserSession, Tab], None, None]:
    """Context manager for browser session with automatic cleanup.

    Usage:
        with get_session(config) as (session, tab):
            title = session.get_title()
    """
    try:
        session, tab = session_manager.get_session(config, timeout)
    except EngineError as e:
        raise SmartToolError(
            tool="session",
            action="connect",
            reason=str(e),
            suggestion=f"Ensure Chrome is running with --remote-debugging-port={config.cdp_port}",
        ) from e
    try:
        yield session, tab
    finally:
        session.close()


__all__ = [
    "CaptureTimeout",
    "RefNotFound",
    "SmartToolError",
    "ValidationError",
    "get_session",
    "utc_timestamp",
]
