from __future__ import annotations

from contextlib import contextmanager
from typing import Any

import pytest

from mcp_servers.axbrowser.config import BrowserConfig
from mcp_servers.axbrowser.session import Tab
from mcp_servers.axbrowser.tools import expect as expect_module
from mcp_servers.axbrowser.tools.base import SmartToolError, ValidationError
from mcp_servers.axbrowser.tools.expect import expect_element, expect_page, validate_element_assertion


def _no_browser(monkeypatch: pytest.MonkeyPatch) -> None:
    def fail(*args: Any, **kwargs: Any):
        raise AssertionError("validation must happen before touching the browser")

    monkeypatch.setattr(expect_module, "get_session", fail)


def _patch_session(monkeypatch: pytest.MonkeyPatch, session: Any) -> None:
    @contextmanager
    def fake_get_session(config: BrowserConfig, timeout: float | None = None):
        yield session, Tab(id="t1", ws_url="ws://x")

    monkeypatch.setattr(expect_module, "get_session", fake_get_session)
    monkeypatch.setattr(expect_module, "POLL_INTERVAL", 0)


# ═══════════════════════════════════════════════════════════════════════════════
# VALIDATION
# ═══════════════════════════════════════════════════════════════════════════════


def test_shorthand_assertions_are_normalized() -> None:
    assert validate_element_assertion("visible", None, None) == "toBeVisible"
    assert validate_element_assertion("disabled", None, "#b") == "toBeDisabled"


@pytest.mark.parametrize(
    ("assertion", "value", "selector", "reason"),
    [
        ("toBeShiny", None, None, "Unknown element assertion"),
        ("toHaveText", None, None, "Expected value is required"),
        ("toHaveCount", "3", None, "requires a selector"),
        ("toHaveCount", "three", "li", "non-negative integer"),
    ],
)
def test_invalid_element_assertions(assertion: str, value: str | None, selector: str | None, reason: str) -> None:
    with pytest.raises(ValidationError) as exc:
        validate_element_assertion(assertion, value, selector)
    assert reason in exc.value.reason


def test_expect_element_validates_before_session(monkeypatch: pytest.MonkeyPatch) -> None:
    _no_browser(monkeypatch)
    with pytest.raises(ValidationError):
        expect_element(BrowserConfig(), assertion="toHaveValue", ref="r1", element="Email")


def test_expect_page_rejects_bad_pattern(monkeypatch: pytest.MonkeyPatch) -> None:
    _no_browser(monkeypatch)
    with pytest.raises(ValidationError) as exc:
        expect_page(BrowserConfig(), assertion="toHaveURL", pattern="(unclosed")
    assert "Invalid pattern" in exc.value.reason
    with pytest.raises(ValidationError):
        expect_page(BrowserConfig(), assertion="toHaveTitle")


# ═══════════════════════════════════════════════════════════════════════════════
# POLLING
# ═══════════════════════════════════════════════════════════════════════════════


def test_expect_page_polls_until_title_matches(monkeypatch: pytest.MonkeyPatch) -> None:
    titles = ["Loading", "Loading", "Checkout - Shop"]

    class TitleSession:
        def get_title(self) -> str:
            return titles.pop(0) if len(titles) > 1 else titles[0]

        def get_url(self) -> str:
            return "https://a.test/"

    _patch_session(monkeypatch, TitleSession())
    result = expect_page(BrowserConfig(), assertion="toHaveTitle", pattern="^checkout", flags="i")
    assert result["passed"] is True
    assert result["actual"] == "Checkout - Shop"
    assert result["attempts"] == 3


def test_expect_page_failure_reports_last_value(monkeypatch: pytest.MonkeyPatch) -> None:
    class UrlSession:
        def get_url(self) -> str:
            return "https://a.test/cart"

    _patch_session(monkeypatch, UrlSession())
    with pytest.raises(SmartToolError) as exc:
        expect_page(BrowserConfig(), assertion="toHaveURL", value="/thanks", timeout_ms=0)
    assert exc.value.details["actual"] == "https://a.test/cart"
    assert exc.value.details["attempts"] == 1


def test_expect_element_count_uses_selector(monkeypatch: pytest.MonkeyPatch) -> None:
    class CountSession:
        def query_selector_count(self, selector: str) -> int:
            assert selector == "li.item"
            return 3

    _patch_session(monkeypatch, CountSession())
    result = expect_element(
        BrowserConfig(), assertion="toHaveCount", value="3", selector="li.item", element="Cart items"
    )
    assert result["actual"] == 3
    assert result["target"] == {"selector": "li.item", "element": "Cart items"}


def test_hidden_passes_when_element_is_missing(monkeypatch: pytest.MonkeyPatch) -> None:
    class EmptyPage:
        def evaluate_handle(self, expression: str, *, object_group: str) -> None:
            return None

        def release_object_group(self, object_group: str) -> None:
            pass

    _patch_session(monkeypatch, EmptyPage())
    result = expect_element(BrowserConfig(), assertion="hidden", ref="r3", element="Spinner", timeout_ms=0)
    assert result["assertion"] == "toBeHidden"
    assert result["actual"] is None

    with pytest.raises(SmartToolError) as exc:
        expect_element(BrowserConfig(), assertion="visible", ref="r3", element="Spinner", timeout_ms=0)
    assert exc.value.tool == "expect"
    assert exc.value.details["ref"] == "r3"
