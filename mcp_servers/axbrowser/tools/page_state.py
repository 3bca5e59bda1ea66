"""
Page-state change detection.

Each tab keeps one lightweight fingerprint (PageState). `detect` compares the
page against it with six cheap component scores, combines them with
configurable weights and replaces the fingerprint. No screenshots and no DOM
diffing: counts, a landmark hash and the URL/title are enough to decide
whether a fresh snapshot is worth taking.
"""

from __future__ import annotations

import hashlib
import logging
import time
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlsplit

from ..config import COMPONENT_KEYS, BrowserConfig, ChangeWeights
from ..session import BrowserSession, Tab
from .base import SmartToolError, get_session, utc_timestamp

logger = logging.getLogger("mcp.axbrowser.page_change")

STRUCTURAL_TAGS: tuple[str, ...] = ("nav", "header", "footer", "main", "section", "article", "aside")
FORM_SELECTOR = 'form, input, textarea, select, button[type="submit"]'
LINK_SELECTOR = "a[href], area[href]"
HEADING_SELECTOR = "h1, h2, h3, h4, h5, h6"

# Floating-point slack for the closed `score >= threshold` comparison.
_THRESHOLD_EPSILON = 1e-9

_COLLECT_JS = f"""(() => {{
  const count = (sel) => document.querySelectorAll(sel).length;
  return {{
    url: window.location.href,
    title: document.title,
    elemCount: count('*'),
    structure: {list(STRUCTURAL_TAGS)!r}.map((tag) => count(tag)),
    formElementCount: count({FORM_SELECTOR!r}),
    linkElementCount: count({LINK_SELECTOR!r}),
    headingCount: count({HEADING_SELECTOR!r}),
  }};
}})()"""


def structure_hash(counts: list[int] | tuple[int, ...]) -> str:
    """Short hash of the landmark-tag counts (order of STRUCTURAL_TAGS)."""
    signature = "-".join(str(int(c)) for c in counts)
    return hashlib.sha1(signature.encode("utf-8")).hexdigest()[:16]


@dataclass(frozen=True)
class PageState:
    url: str
    title: str
    elem_count: int
    dom_structure_hash: str
    form_element_count: int
    link_element_count: int
    heading_count: int
    captured_at: float = 0.0

    def summary(self) -> dict[str, Any]:
        return {"url": self.url, "title": self.title, "elemCount": self.elem_count}


def collect_page_state(session: BrowserSession) -> PageState:
    raw = session.eval_js(_COLLECT_JS)
    if not isinstance(raw, dict):
        raise SmartToolError(
            tool="detect_page_change",
            action="collect",
            reason="Page state script returned no data",
            suggestion="Wait for the page to finish loading and retry",
        )
    structure = raw.get("structure") if isinstance(raw.get("structure"), list) else []
    return PageState(
        url=str(raw.get("url") or ""),
        title=str(raw.get("title") or ""),
        elem_count=int(raw.get("elemCount") or 0),
        dom_structure_hash=structure_hash(structure),
        form_element_count=int(raw.get("formElementCount") or 0),
        link_element_count=int(raw.get("linkElementCount") or 0),
        heading_count=int(raw.get("headingCount") or 0),
        captured_at=time.time(),
    )


# ─────────────────────────────────────────────────────────────────────────────
# Component scores
# ─────────────────────────────────────────────────────────────────────────────


def _path_segments(path: str) -> set[str]:
    # The root counts as a segment, so "/x" and "/y" still share "/" and a
    # one-segment move is a partial (not total) URL change.
    return set((path or "/").rstrip("/").split("/"))


def url_score(previous: str, current: str) -> float:
    """1.0 for another host, 0.0 for the identical string, else path/query/fragment drift."""
    if previous == current:
        return 0.0
    if not previous or not current:
        return 1.0
    try:
        prev = urlsplit(previous)
        curr = urlsplit(current)
        prev_host, curr_host = prev.hostname or "", curr.hostname or ""
    except ValueError:
        return 1.0
    if prev_host != curr_host:
        return 1.0

    prev_parts = _path_segments(prev.path)
    curr_parts = _path_segments(curr.path)
    union = prev_parts | curr_parts
    jaccard = len(prev_parts & curr_parts) / len(union)
    score = 1.0 - jaccard
    if prev.query != curr.query:
        score += 0.3
    if prev.fragment != curr.fragment:
        score += 0.1
    return min(1.0, score)


def element_count_score(previous: int, current: int) -> float:
    if previous == 0:
        return 1.0
    return min(1.0, abs(current - previous) / previous)


def relative_count_score(previous: int, current: int) -> float:
    """Relative delta clamped to [0, 1]; 0 -> 0 is no change, 0 -> n a full change."""
    if previous == 0:
        return 1.0 if current > 0 else 0.0
    return min(1.0, abs(current - previous) / previous)


def component_scores(previous: PageState, current: PageState) -> dict[str, float]:
    return {
        "url": url_score(previous.url, current.url),
        "title": 1.0 if previous.title != current.title else 0.0,
        "elem": element_count_score(previous.elem_count, current.elem_count),
        "domStructure": 1.0 if previous.dom_structure_hash != current.dom_structure_hash else 0.0,
        "formElements": relative_count_score(previous.form_element_count, current.form_element_count),
        "linkElements": relative_count_score(previous.link_element_count, current.link_element_count),
    }


def weighted_score(components: dict[str, float], weights: ChangeWeights) -> float:
    w = weights.as_dict()
    return sum(w[key] * components.get(key, 0.0) for key in COMPONENT_KEYS)


def classify_change(components: dict[str, float]) -> str:
    """First match wins: navigation > structural > content > none."""
    if components.get("url", 0.0) > 0.7:
        return "navigation"
    if components.get("domStructure", 0.0) > 0.5 or components.get("formElements", 0.0) > 0.5:
        return "structural"
    if components.get("title", 0.0) > 0 or components.get("elem", 0.0) > 0.3:
        return "content"
    return "none"


def is_significant(score: float, threshold: float) -> bool:
    return score >= threshold - _THRESHOLD_EPSILON


# ─────────────────────────────────────────────────────────────────────────────
# Fingerprint state machine
# ─────────────────────────────────────────────────────────────────────────────


def seed(tab: Tab, state: PageState) -> dict[str, Any]:
    """Store `state` as the baseline; never reports a change."""
    tab.replace_page_state(state)
    logger.info("page_change seed tab=%s url=%s elems=%d", tab.id, state.url, state.elem_count)
    return {
        "significant_change": False,
        "score": 0.0,
        "change_type": "seed",
        "components": {},
        "current": state.summary(),
        "previous": None,
        "timestamp": utc_timestamp(),
    }


def detect(tab: Tab, state: PageState, threshold: float, weights: ChangeWeights) -> dict[str, Any]:
    """Compare `state` with the tab's fingerprint, then replace the fingerprint."""
    previous = tab.page_state
    if previous is None:
        return seed(tab, state)

    components = component_scores(previous, state)
    score = weighted_score(components, weights)
    significant = is_significant(score, threshold)
    change_type = classify_change(components)
    tab.replace_page_state(state)

    logger.info(
        "page_change tab=%s score=%.3f threshold=%.2f significant=%s type=%s",
        tab.id,
        score,
        threshold,
        significant,
        change_type,
    )
    return {
        "significant_change": significant,
        "score": round(score, 6),
        "change_type": change_type,
        "components": {k: round(v, 6) for k, v in components.items()},
        "current": state.summary(),
        "previous": previous.summary(),
        "timestamp": utc_timestamp(),
    }


def detect_page_change(
    config: BrowserConfig,
    *,
    threshold: float | None = None,
    weights: dict[str, Any] | None = None,
    seed_only: bool = False,
) -> dict[str, Any]:
    effective_threshold = config.change_threshold if threshold is None else float(threshold)
    effective_weights = config.change_weights.merged(weights)
    with get_session(config) as (session, tab):
        state = collect_page_state(session)
        if seed_only:
            return seed(tab, state)
        return detect(tab, state, effective_threshold, effective_weights)


__all__ = [
    "PageState",
    "STRUCTURAL_TAGS",
    "classify_change",
    "collect_page_state",
    "component_scores",
    "detect",
    "detect_page_change",
    "element_count_score",
    "is_significant",
    "relative_count_score",
    "seed",
    "structure_hash",
    "url_score",
    "weighted_score",
]
