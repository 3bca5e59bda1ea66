from __future__ import annotations

import json
from typing import Any, Protocol

from .http_client import EngineError


class Connection(Protocol):
    def send(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]: ...


def _exception_text(details: dict[str, Any]) -> str:
    exc = details.get("exception") if isinstance(details.get("exception"), dict) else {}
    text = exc.get("description") or details.get("text") or "Script threw an exception"
    return str(text).splitlines()[0]


def _unwrap_remote(value: Any) -> Any:
    # CDP returns undefined as {"type":"undefined"} and null as {"type":"object","subtype":"null"}.
    if not isinstance(value, dict):
        return value
    if value.get("type") == "undefined":
        return None
    if value.get("type") == "object" and value.get("subtype") == "null":
        return None
    return value.get("value", value)


class BrowserSession:
    """
    High-level browser session for a specific tab.

    Wraps CdpConnection with the operations the tools need.
    Use as context manager for automatic cleanup.
    """

    def __init__(self, connection: Connection, tab_id: str, tab_url: str = ""):
        self.conn = connection
        self.tab_id = tab_id
        self.tab_url = tab_url
        self._page_enabled = False
        self._runtime_enabled = False
        self._dom_enabled = False

    def __enter__(self) -> BrowserSession:
        self.enable_domains(page=True)
        return self

    def __exit__(self, *args):
        self.close()

    def close(self):
        """Close the session connection."""
        close = getattr(self.conn, "close", None)
        if callable(close):
            close()

    def enable_domains(self, *, page: bool = False, runtime: bool = False, dom: bool = False) -> None:
        """Enable CDP domains once per connection."""
        if page and not self._page_enabled:
            self.conn.send("Page.enable", {})
            self._page_enabled = True
        if runtime and not self._runtime_enabled:
            self.conn.send("Runtime.enable", {})
            self._runtime_enabled = True
        if dom and not self._dom_enabled:
            self.conn.send("DOM.enable", {})
            self._dom_enabled = True

    def send(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Send raw CDP command."""
        return self.conn.send(method, params)

    def send_many(self, commands: list[dict[str, Any]]) -> list[dict[str, Any]]:
        send_many = getattr(self.conn, "send_many", None)
        if callable(send_many):
            return send_many(commands)
        return [self.conn.send(cmd["method"], cmd.get("params")) for cmd in commands]

    def wait_for_event(self, event_name: str, timeout: float = 10.0) -> dict | None:
        wait = getattr(self.conn, "wait_for_event", None)
        if not callable(wait):
            return None
        return wait(event_name, timeout=timeout)

    # ─────────────────────────────────────────────────────────────────────────
    # Navigation
    # ─────────────────────────────────────────────────────────────────────────

    def navigate(self, url: str, wait_load: bool = True, timeout: float = 10.0) -> bool:
        """Navigate to URL, optionally waiting for load. Returns whether load fired."""
        self.enable_domains(page=True)
        result = self.conn.send("Page.navigate", {"url": url})
        error_text = result.get("errorText") if isinstance(result, dict) else None
        if error_text:
            raise EngineError(f"Navigation to {url} failed: {error_text}")
        self.tab_url = url
        if wait_load:
            return self.wait_load(timeout)
        return False

    def wait_load(self, timeout: float = 10.0) -> bool:
        """Wait for page load event."""
        return self.wait_for_event("Page.loadEventFired", timeout) is not None

    # ─────────────────────────────────────────────────────────────────────────
    # JavaScript
    # ─────────────────────────────────────────────────────────────────────────

    def eval_js(self, expression: str) -> Any:
        """Evaluate JavaScript and return its JSON-serializable result."""
        result = self.conn.send(
            "Runtime.evaluate",
            {
                "expression": expression,
                "returnByValue": True,
                "awaitPromise": True,
            },
        )
        details = result.get("exceptionDetails")
        if isinstance(details, dict):
            raise EngineError(_exception_text(details))
        if "result" not in result:
            return None
        return _unwrap_remote(result["result"])

    def evaluate_handle(self, expression: str, *, object_group: str) -> str | None:
        """Evaluate an expression and return a remote object id (None for null/undefined)."""
        result = self.conn.send(
            "Runtime.evaluate",
            {
                "expression": expression,
                "returnByValue": False,
                "objectGroup": object_group,
            },
        )
        details = result.get("exceptionDetails")
        if isinstance(details, dict):
            raise EngineError(_exception_text(details))
        remote = result.get("result") or {}
        return remote.get("objectId")

    def call_function(
        self,
        object_id: str,
        declaration: str,
        args: list[Any] | None = None,
        *,
        return_by_value: bool = True,
        await_promise: bool = False,
    ) -> Any:
        """Call `declaration` with `this` bound to the remote object.

        Arguments given as ``{"objectId": ...}`` are passed as live handles,
        anything else by value.
        """
        call_args: list[dict[str, Any]] = []
        for arg in args or []:
            if isinstance(arg, dict) and "objectId" in arg:
                call_args.append({"objectId": arg["objectId"]})
            else:
                call_args.append({"value": arg})
        params: dict[str, Any] = {
            "objectId": object_id,
            "functionDeclaration": declaration,
            "returnByValue": return_by_value,
            "awaitPromise": await_promise,
        }
        if call_args:
            params["arguments"] = call_args
        result = self.conn.send("Runtime.callFunctionOn", params)
        details = result.get("exceptionDetails")
        if isinstance(details, dict):
            raise EngineError(_exception_text(details))
        remote = result.get("result") or {}
        if not return_by_value:
            return remote
        return _unwrap_remote(remote)

    def release_object_group(self, object_group: str) -> None:
        self.conn.send("Runtime.releaseObjectGroup", {"objectGroup": object_group})

    def get_url(self) -> str:
        """Get current page URL."""
        return self.eval_js("window.location.href") or ""

    def get_title(self) -> str:
        """Get current page title."""
        return self.eval_js("document.title") or ""

    def get_html(self) -> str:
        return self.eval_js("document.documentElement ? document.documentElement.outerHTML : ''") or ""

    # ─────────────────────────────────────────────────────────────────────────
    # Mouse Input
    # ─────────────────────────────────────────────────────────────────────────

    def click(self, x: float, y: float, button: str = "left", click_count: int = 1) -> None:
        """Click at coordinates."""
        cmds: list[dict[str, Any]] = [self._mouse_cmd("mouseMoved", x, y, "none", 0)]
        for count in range(1, click_count + 1):
            cmds.append(self._mouse_cmd("mousePressed", x, y, button, count))
            cmds.append(self._mouse_cmd("mouseReleased", x, y, button, count))
        self.send_many(cmds)

    def move_mouse(self, x: float, y: float) -> None:
        """Move mouse to coordinates."""
        self.conn.send("Input.dispatchMouseEvent", self._mouse_cmd("mouseMoved", x, y, "none", 0)["params"])

    def drag(self, from_x: float, from_y: float, to_x: float, to_y: float, steps: int = 10) -> None:
        """Drag from one point to another."""
        steps = max(1, int(steps))
        cmds = [
            self._mouse_cmd("mouseMoved", from_x, from_y, "none", 0),
            self._mouse_cmd("mousePressed", from_x, from_y, "left", 1),
        ]
        for i in range(1, steps + 1):
            progress = i / steps
            x = from_x + (to_x - from_x) * progress
            y = from_y + (to_y - from_y) * progress
            move = self._mouse_cmd("mouseMoved", x, y, "left", 0)
            move["params"]["buttons"] = 1
            move["delayMs"] = 10
            cmds.append(move)
        cmds.append(self._mouse_cmd("mouseReleased", to_x, to_y, "left", 1))
        self.send_many(cmds)

    @staticmethod
    def _mouse_cmd(event_type: str, x: float, y: float, button: str, click_count: int) -> dict[str, Any]:
        return {
            "method": "Input.dispatchMouseEvent",
            "params": {
                "type": event_type,
                "x": x,
                "y": y,
                "button": button,
                "clickCount": click_count,
            },
        }

    # ─────────────────────────────────────────────────────────────────────────
    # Keyboard Input
    # ─────────────────────────────────────────────────────────────────────────

    _KEY_CODES = {
        "Enter": 13,
        "Tab": 9,
        "Escape": 27,
        "Backspace": 8,
        "Delete": 46,
        "ArrowUp": 38,
        "ArrowDown": 40,
        "ArrowLeft": 37,
        "ArrowRight": 39,
    }

    def press_key(self, key: str, modifiers: int = 0) -> None:
        """Press a keyboard key."""
        key_code = self._KEY_CODES.get(key, ord(key[0].upper()) if len(key) == 1 else 0)
        code = f"Key{key.upper()}" if len(key) == 1 else key
        down: dict[str, Any] = {
            "type": "keyDown",
            "key": key,
            "code": code,
            "windowsVirtualKeyCode": key_code,
            "modifiers": modifiers,
        }
        if key == "Enter":
            down["text"] = "\r"
        self.send_many(
            [
                {"method": "Input.dispatchKeyEvent", "params": down},
                {
                    "method": "Input.dispatchKeyEvent",
                    "params": {
                        "type": "keyUp",
                        "key": key,
                        "code": code,
                        "windowsVirtualKeyCode": key_code,
                        "modifiers": modifiers,
                    },
                },
            ]
        )

    def type_text(self, text: str, *, slowly: bool = False) -> None:
        """Type text into the focused element.

        The fast path inserts the whole string at once; ``slowly`` emits one
        char event per character so per-key handlers fire.
        """
        if not text:
            return
        if not slowly:
            self.conn.send("Input.insertText", {"text": str(text)})
            return
        cmds = [{"method": "Input.dispatchKeyEvent", "params": {"type": "char", "text": c}} for c in text]
        self.send_many(cmds)

    def query_selector_count(self, selector: str) -> int:
        return int(self.eval_js(f"document.querySelectorAll({json.dumps(selector)}).length") or 0)


__all__ = ["BrowserSession"]
