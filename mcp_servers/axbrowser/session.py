"""Session subsystem.

Split into focused submodules:
- session_cdp.py: raw CDP websocket connection
- browser_session.py: BrowserSession wrapper
- session_manager.py: SessionManager and Tab

`session.py` remains the stable import surface (re-exports).
"""

from __future__ import annotations

from .browser_session import BrowserSession
from .session_cdp import CdpConnection
from .session_manager import SessionManager, Tab

# Global session manager instance
session_manager = SessionManager()

__all__ = ["BrowserSession", "CdpConnection", "SessionManager", "Tab", "session_manager"]
