"""
Tool parameter models.

Bounds, defaults and camelCase wire names live here; `tools/list` publishes
each model's JSON schema and every call is validated before the browser is
touched.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, TypeVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from ..tools.base import ValidationError

M = TypeVar("M", bound=BaseModel)


class ToolParams(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    if isinstance(value, str):
        return value.strip()
    return value


# Empty or whitespace-only locators count as absent.
Locator = Annotated[str | None, BeforeValidator(_blank_to_none)]


# ─────────────────────────────────────────────────────────────────────────────
# Capture / discovery
# ─────────────────────────────────────────────────────────────────────────────


class SnapshotParams(ToolParams):
    include_hidden: bool = Field(False, description="Also assign refs to elements that are not visible")
    max_interactive_refs: int | None = Field(
        None, ge=50, le=300, description="Maximum refs to assign (server default when omitted)"
    )
    time_budget_ms: int | None = Field(
        None, ge=500, le=3000, description="Soft capture deadline in ms (server default when omitted)"
    )


class DiscoverParams(ToolParams):
    include_hidden: bool = Field(True, description="Include elements that are not visible")
    max: int = Field(120, ge=10, le=300, description="Maximum candidates, in document order")
    time_budget_ms: int = Field(1500, ge=300, le=3000, description="Soft scan deadline in ms")


# ─────────────────────────────────────────────────────────────────────────────
# Element targeting
# ─────────────────────────────────────────────────────────────────────────────


class ElementTarget(ToolParams):
    ref: Locator = Field(None, description="Element ref from browser_snapshot (e.g. r12)")
    selector: Locator = Field(None, description="CSS selector, used instead of a ref")
    element: str = Field(..., min_length=1, description="Human-readable description of the target element")

    @field_validator("element")
    @classmethod
    def element_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("element description must not be blank")
        return value

    @model_validator(mode="after")
    def exactly_one_locator(self) -> ElementTarget:
        if (self.ref is None) == (self.selector is None):
            raise ValueError("exactly one of ref or selector is required")
        return self


class ClickParams(ElementTarget):
    double_click: bool = Field(False, description="Double click instead of single click")
    button: Literal["left", "right", "middle"] = "left"


class HoverParams(ElementTarget):
    pass


class FillParams(ElementTarget):
    text: str = Field(..., description="Text that replaces the current value")


class TypeParams(ElementTarget):
    text: str = Field(..., description="Text to type after the current content")
    submit: bool = Field(False, description="Press Enter afterwards")
    slowly: bool = Field(False, description="Type one character per key event")


class CheckParams(ElementTarget):
    checked: bool = Field(True, description="Desired checked state")


class SelectOptionParams(ElementTarget):
    values: list[str] = Field(..., min_length=1, description="Option values (or visible labels) to select")


class DragParams(ToolParams):
    start_element: str = Field(..., min_length=1, description="Description of the drag source")
    start_ref: Locator = None
    start_selector: Locator = None
    end_element: str = Field(..., min_length=1, description="Description of the drop target")
    end_ref: Locator = None
    end_selector: Locator = None

    @model_validator(mode="after")
    def exactly_one_locator_each(self) -> DragParams:
        if (self.start_ref is None) == (self.start_selector is None):
            raise ValueError("exactly one of startRef or startSelector is required")
        if (self.end_ref is None) == (self.end_selector is None):
            raise ValueError("exactly one of endRef or endSelector is required")
        return self


# ─────────────────────────────────────────────────────────────────────────────
# Extraction / change detection
# ─────────────────────────────────────────────────────────────────────────────


class AttributesParams(ElementTarget):
    pass


class BulkAttributesParams(ToolParams):
    refs: list[str] = Field(..., min_length=1, description="Refs to read, in result order")


class WeightOverrides(ToolParams):
    url: float | None = Field(None, ge=0)
    title: float | None = Field(None, ge=0)
    elem: float | None = Field(None, ge=0)
    dom_structure: float | None = Field(None, ge=0)
    form_elements: float | None = Field(None, ge=0)
    link_elements: float | None = Field(None, ge=0)

    def overrides(self) -> dict[str, float]:
        return self.model_dump(by_alias=True, exclude_none=True)


class DetectPageChangeParams(ToolParams):
    threshold: float | None = Field(None, ge=0.0, le=1.0, description="Significance threshold (default 0.30)")
    weights: WeightOverrides | None = Field(None, description="Partial component weight overrides")
    seed: bool = Field(False, description="Only store the current page as the baseline")


# ─────────────────────────────────────────────────────────────────────────────
# Navigation / assertions
# ─────────────────────────────────────────────────────────────────────────────


class NavigateParams(ToolParams):
    url: str = Field(..., min_length=1, description="URL to open in the current tab")


class TabsParams(ToolParams):
    action: Literal["list", "new", "select", "close"] = "list"
    tab_id: str | None = Field(None, description="Tab id for select/close")
    url: str | None = Field(None, description="URL for a new tab")


class ExpectElementParams(ElementTarget):
    assertion: str = Field(..., description="Assertion name, e.g. toBeVisible or toHaveText")
    value: str | None = Field(None, description="Expected value for comparing assertions")
    timeout_ms: int = Field(5000, ge=0, le=30000)
    ignore_case: bool = False


class ExpectPageParams(ToolParams):
    assertion: Literal["toHaveURL", "toHaveTitle"]
    value: str | None = Field(None, description="Expected substring")
    pattern: str | None = Field(None, description="Regular expression, used instead of value")
    flags: str = Field("", description='Regex flags ("i" for case-insensitive)')
    timeout_ms: int = Field(5000, ge=0, le=30000)


def _format_errors(exc: PydanticValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "__root__")
        msg = str(err.get("msg", "invalid value")).removeprefix("Value error, ")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts)


def parse_args(model: type[M], args: dict[str, Any] | None, *, tool: str) -> M:
    """Validate raw tool arguments, raising the project's ValidationError."""
    try:
        return model.model_validate(args or {})
    except PydanticValidationError as exc:
        raise ValidationError(
            tool=tool,
            action="validate",
            reason=f"Invalid arguments: {_format_errors(exc)}",
            suggestion="Check the tool's inputSchema in tools/list",
            details={"errors": [{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in exc.errors()]},
        ) from exc


def input_schema(model: type[BaseModel]) -> dict[str, Any]:
    schema = model.model_json_schema(by_alias=True)
    schema.pop("title", None)
    return schema


__all__ = [
    "AttributesParams",
    "BulkAttributesParams",
    "CheckParams",
    "ClickParams",
    "DetectPageChangeParams",
    "DiscoverParams",
    "DragParams",
    "ElementTarget",
    "ExpectElementParams",
    "ExpectPageParams",
    "FillParams",
    "HoverParams",
    "NavigateParams",
    "SelectOptionParams",
    "SnapshotParams",
    "TabsParams",
    "TypeParams",
    "WeightOverrides",
    "input_schema",
    "parse_args",
]
