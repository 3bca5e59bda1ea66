from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field, replace
from typing import Any

# Wire names of the change-detector components, in reporting order.
COMPONENT_KEYS: tuple[str, ...] = (
    "url",
    "title",
    "elem",
    "domStructure",
    "formElements",
    "linkElements",
)

_WIRE_TO_FIELD: dict[str, str] = {
    "url": "url",
    "title": "title",
    "elem": "elem",
    "domStructure": "dom_structure",
    "formElements": "form_elements",
    "linkElements": "link_elements",
}


@dataclass(frozen=True)
class ChangeWeights:
    """Weights applied to the six page-change component scores."""

    url: float = 0.40
    title: float = 0.15
    elem: float = 0.15
    dom_structure: float = 0.20
    form_elements: float = 0.05
    link_elements: float = 0.05

    def merged(self, overrides: dict[str, Any] | None) -> ChangeWeights:
        """Return a copy with partial overrides applied (wire or field names)."""
        if not overrides:
            return self
        changes: dict[str, float] = {}
        for key, value in overrides.items():
            name = _WIRE_TO_FIELD.get(key, key if key in _WIRE_TO_FIELD.values() else None)
            if name is None:
                raise ValueError(f"Unknown change weight: {key}")
            if value is None:
                continue
            weight = float(value)
            if weight < 0:
                raise ValueError(f"Change weight must be >= 0: {key}={value}")
            changes[name] = weight
        return replace(self, **changes)

    def as_dict(self) -> dict[str, float]:
        values = asdict(self)
        return {wire: values[name] for wire, name in _WIRE_TO_FIELD.items()}


def parse_weights(raw: str | None) -> dict[str, float]:
    """Parse `url=0.4,title=0.1` into a partial weights mapping."""
    out: dict[str, float] = {}
    for part in (raw or "").split(","):
        part = part.strip()
        if not part:
            continue
        key, sep, value = part.partition("=")
        if not sep:
            raise ValueError(f"Malformed weight entry: {part!r} (expected key=value)")
        out[key.strip()] = float(value.strip())
    return out


@dataclass
class BrowserConfig:
    host: str = "127.0.0.1"
    cdp_port: int = 9222
    cdp_timeout: float = 5.0
    snapshot_max_refs: int = 120
    snapshot_time_budget_ms: int = 1500
    change_threshold: float = 0.30
    change_weights: ChangeWeights = field(default_factory=ChangeWeights)
    log_level: str = "INFO"

    @property
    def http_base(self) -> str:
        return f"http://{self.host}:{self.cdp_port}"

    @classmethod
    def from_env(cls) -> BrowserConfig:
        host = (os.environ.get("MCP_BROWSER_HOST") or "127.0.0.1").strip()
        port = int(os.environ.get("MCP_BROWSER_PORT", "9222"))
        timeout = float(os.environ.get("MCP_CDP_TIMEOUT", "5"))
        max_refs = int(os.environ.get("MCP_SNAPSHOT_MAX_REFS", "120"))
        budget_ms = int(os.environ.get("MCP_SNAPSHOT_TIME_BUDGET_MS", "1500"))
        threshold = float(os.environ.get("MCP_CHANGE_THRESHOLD", "0.30"))
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"MCP_CHANGE_THRESHOLD must be within [0, 1], got {threshold}")
        weights = ChangeWeights().merged(parse_weights(os.environ.get("MCP_CHANGE_WEIGHTS")))
        log_level = (os.environ.get("MCP_LOG_LEVEL") or "INFO").strip().upper()
        return cls(
            host=host,
            cdp_port=port,
            cdp_timeout=timeout,
            snapshot_max_refs=max(50, min(max_refs, 300)),
            snapshot_time_budget_ms=max(500, min(budget_ms, 3000)),
            change_threshold=threshold,
            change_weights=weights,
            log_level=log_level,
        )
