"""Redaction of tool arguments for logging.

Text typed into the page and selected option values never reach the log;
only their length does. URLs keep their shape with secret-looking query
values masked.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

# Argument keys whose values are page input.
_INPUT_KEYS = frozenset({"text", "value", "values"})

_SENSITIVE_QUERY_KEYS = frozenset(
    {
        "access_token",
        "api_key",
        "apikey",
        "auth",
        "code",
        "key",
        "password",
        "secret",
        "sig",
        "signature",
        "token",
    }
)


def _redacted_summary(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return f"<redacted len={len(value)}>"
    return f"<redacted len={len(str(value))}>"


def redact_url(url: str) -> str:
    """Mask sensitive query values and drop userinfo; other URLs come back unchanged."""
    if not isinstance(url, str) or not url:
        return url
    try:
        parts = urlsplit(url)
    except ValueError:
        return url

    changed = False
    netloc = parts.netloc
    if "@" in netloc:
        netloc = netloc.split("@", 1)[1]
        changed = True

    query = parts.query
    if query:
        pairs = parse_qsl(query, keep_blank_values=True)
        masked = [(k, "<redacted>" if k.lower() in _SENSITIVE_QUERY_KEYS and v else v) for k, v in pairs]
        if masked != pairs:
            query = urlencode(masked)
            changed = True

    if not changed:
        return url
    return urlunsplit((parts.scheme, netloc, parts.path, query, parts.fragment))


def redact_tool_arguments(tool: str, args: dict[str, Any]) -> dict[str, Any]:
    """Redact tool arguments for safe logging."""
    if not isinstance(args, dict):
        return {}
    out: dict[str, Any] = {}
    for key, value in args.items():
        if key in _INPUT_KEYS and value is not None:
            # Page assertions compare against url/title, not user input.
            out[key] = value if tool == "browser_expect_page" else _redacted_summary(value)
        elif key == "url" and isinstance(value, str):
            out[key] = redact_url(value)
        else:
            out[key] = value
    return out


__all__ = ["redact_tool_arguments", "redact_url"]
