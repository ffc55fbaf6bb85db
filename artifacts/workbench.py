"""Drive the live Gemini page through Playwright.

Every read and action the extractor performs on the page goes through a
workbench. The Playwright implementation keeps all selectors and in-page
scripts in one place; tests substitute an in-memory fake.
"""

# pyright: reportUnknownMemberType=false, reportUnknownVariableType=false

from __future__ import annotations

import logging
import re
from typing import Any, List, Optional, Protocol

from bs4 import BeautifulSoup  # type: ignore[import-not-found]

try:
    from playwright.sync_api import (  # type: ignore[import-not-found]
        Error as PlaywrightError,
        Locator,
        Page,
    )
except ImportError as exc:  # pragma: no cover - surfacing missing dependency
    raise SystemExit(
        "Missing dependency 'playwright'. Install with pip install"
        " playwright && playwright install"
    ) from exc

from .discovery import CHIP_LABEL_SELECTOR, CHIP_SELECTOR, EMPTY_BOX
from .discovery import HIDDEN_MARKER
from .models import EditorModel, ScrollOffset, ScrollTarget
from .panel import EDITOR_SELECTOR, OVERLAY_SELECTOR, SIDE_PANEL_SELECTOR

LOGGER = logging.getLogger(__name__)

DEFAULT_CLICK_TIMEOUT_MS = 2_000

PANEL_TOGGLE_SELECTOR = (
    "[data-test-id='side-panel-toggle'], "
    "button[aria-controls='context-sidebar']"
)
BACK_BUTTON_SELECTOR = (
    f"{SIDE_PANEL_SELECTOR} [data-test-id='back-button'], "
    f"{SIDE_PANEL_SELECTOR} button[aria-label='Back']"
)
LEGACY_OPEN_SELECTOR = (
    "[data-test-id='open-immersive-button'], "
    "[data-test-id='canvas-open-button']"
)
OVERLAY_CLOSE_SELECTOR = (
    ".cdk-overlay-pane [data-test-id='close-button'], "
    "[role='dialog'] [data-test-id='close-button']"
)
EDITOR_LINE_SELECTOR = ".view-lines .view-line"
SCROLL_SELECTORS = {
    ScrollTarget.EDITOR: (
        f"{EDITOR_SELECTOR} .monaco-scrollable-element, "
        f"{EDITOR_SELECTOR} .editor-scroller"
    ),
    ScrollTarget.FILE_LIST: (
        "[data-test-id='created-artifacts'], .created-artifacts"
    ),
}

SNAPSHOT_SCRIPT = """
(marker) => {
  const live = document.documentElement;
  const copy = live.cloneNode(true);
  const liveNodes = live.querySelectorAll("*");
  const copyNodes = copy.querySelectorAll("*");
  const total = Math.min(liveNodes.length, copyNodes.length);
  for (let i = 0; i < total; i++) {
    const el = liveNodes[i];
    const style = window.getComputedStyle(el);
    if (style.display === "contents") continue;
    if (
      style.display === "none" ||
      style.visibility === "hidden" ||
      parseFloat(style.opacity) === 0
    ) {
      copyNodes[i].setAttribute(marker.name, "1");
      continue;
    }
    const rect = el.getBoundingClientRect();
    if (el.getClientRects().length === 0 || (rect.width === 0 && rect.height === 0)) {
      copyNodes[i].setAttribute(marker.name, marker.empty);
    }
  }
  return "<!DOCTYPE html>" + copy.outerHTML;
}
"""

EDITOR_MODELS_SCRIPT = """
() => {
  const api = window.monaco && window.monaco.editor;
  if (!api || typeof api.getModels !== "function") return [];
  return api.getModels().map((model) => ({
    text: model.getValue(),
    language:
      typeof model.getLanguageId === "function"
        ? model.getLanguageId()
        : null,
    uri: model.uri ? String(model.uri) : null,
  }));
}
"""

EDITOR_VIEWPORTS_SCRIPT = """
async ({ editor, scroller, line }) => {
  const root = document.querySelector(editor);
  if (!root) return [];
  const pane = root.querySelector(scroller) || root;
  const settle = () =>
    new Promise((resolve) => requestAnimationFrame(() => setTimeout(resolve, 40)));
  const read = () =>
    Array.from(root.querySelectorAll(line))
      .map((el) => ({
        top: parseFloat(el.style.top) || el.offsetTop || 0,
        text: (el.textContent || "").replace(/\\u00a0/g, " "),
      }))
      .sort((a, b) => a.top - b.top)
      .map((entry) => entry.text);
  const viewports = [];
  const step = Math.max(1, pane.clientHeight - 20);
  const end = Math.max(pane.scrollHeight, pane.clientHeight);
  for (let top = 0; viewports.length < 5000; top += step) {
    pane.scrollTop = top;
    pane.dispatchEvent(new WheelEvent("wheel", { deltaY: top === 0 ? -end : step }));
    await settle();
    viewports.push(read());
    if (top + pane.clientHeight >= end) break;
  }
  return viewports;
}
"""

SCROLL_READ_SCRIPT = """
(selector) => {
  if (!selector) return { top: window.scrollY, left: window.scrollX };
  const el = document.querySelector(selector);
  return el ? { top: el.scrollTop, left: el.scrollLeft } : null;
}
"""

SCROLL_WRITE_SCRIPT = """
({ selector, top, left }) => {
  if (!selector) {
    window.scrollTo(left, top);
    return true;
  }
  const el = document.querySelector(selector);
  if (!el) return false;
  el.scrollTop = top;
  el.scrollLeft = left;
  return true;
}
"""

FILE_LIST_SCAN_SCRIPT = """
({ selector, top }) => {
  const el = document.querySelector(selector);
  if (!el) return null;
  el.scrollTop = top;
  return { height: el.scrollHeight, view: el.clientHeight };
}
"""


class Workbench(Protocol):
    """Operations the extractor needs from the live page."""

    @property
    def url(self) -> str: ...

    def title(self) -> str: ...

    def snapshot(self) -> BeautifulSoup: ...

    def toggle_side_panel(self) -> bool: ...

    def click_back(self) -> bool: ...

    def select_tab(self, name: str) -> bool: ...

    def click_artifact(self, title: str) -> bool: ...

    def open_legacy_canvas(self) -> bool: ...

    def close_overlay(self) -> bool: ...

    def scroll_position(self, target: ScrollTarget) -> Optional[ScrollOffset]:
        ...

    def scroll_to(self, target: ScrollTarget, offset: ScrollOffset) -> bool:
        ...

    def read_editor_models(self) -> List[EditorModel]: ...

    def read_editor_viewports(self) -> List[List[str]]: ...

    def pause(self, seconds: float) -> None: ...


class PlaywrightWorkbench:
    """:class:`Workbench` backed by a Playwright sync ``Page``."""

    def __init__(
        self,
        page: Page,
        *,
        click_timeout_ms: int = DEFAULT_CLICK_TIMEOUT_MS,
    ) -> None:
        self.page = page
        self.click_timeout_ms = click_timeout_ms

    @property
    def url(self) -> str:
        return str(self.page.url)

    def title(self) -> str:
        return str(self.page.title())

    def snapshot(self) -> BeautifulSoup:
        """Return a parsed copy of the document with visibility markers."""

        html: str = self.page.evaluate(
            SNAPSHOT_SCRIPT, {"name": HIDDEN_MARKER, "empty": EMPTY_BOX}
        )
        return BeautifulSoup(html, "lxml")

    def toggle_side_panel(self) -> bool:
        return self._click_first_visible(self.page.locator(PANEL_TOGGLE_SELECTOR))

    def click_back(self) -> bool:
        return self._click_first_visible(self.page.locator(BACK_BUTTON_SELECTOR))

    def select_tab(self, name: str) -> bool:
        """Click the side panel tab called ``name``."""

        panel = self.page.locator(SIDE_PANEL_SELECTOR)
        by_attribute = panel.locator(f"[role='tab'][data-tab='{name}']")
        if self._click_first_visible(by_attribute):
            return True
        by_label = panel.get_by_role(
            "tab", name=re.compile(rf"^\s*{re.escape(name)}\s*$", re.IGNORECASE)
        )
        return self._click_first_visible(by_label)

    def click_artifact(self, title: str) -> bool:
        """Scroll the chip labelled ``title`` into view and click it."""

        label = re.compile(rf"^\s*{re.escape(title)}\s*$")
        for scope in (self.page.locator(SIDE_PANEL_SELECTOR), self.page):
            chips = scope.locator(CHIP_SELECTOR).filter(
                has=self.page.locator(CHIP_LABEL_SELECTOR, has_text=label)
            )
            if chips.count() == 0 and scope is not self.page:
                self._scan_file_list(chips)
            if self._click_first_visible(chips, scroll=True):
                return True
        return False

    def open_legacy_canvas(self) -> bool:
        return self._click_first_visible(self.page.locator(LEGACY_OPEN_SELECTOR))

    def close_overlay(self) -> bool:
        """Close the topmost overlay, falling back to the Escape key."""

        if self._click_first_visible(self.page.locator(OVERLAY_CLOSE_SELECTOR)):
            return True
        if self.page.locator(OVERLAY_SELECTOR).count() == 0:
            return False
        self.page.keyboard.press("Escape")
        return True

    def scroll_position(self, target: ScrollTarget) -> Optional[ScrollOffset]:
        raw: Optional[dict[str, Any]] = self.page.evaluate(
            SCROLL_READ_SCRIPT, SCROLL_SELECTORS.get(target)
        )
        if not raw:
            return None
        return ScrollOffset(
            top=float(raw.get("top") or 0), left=float(raw.get("left") or 0)
        )

    def scroll_to(self, target: ScrollTarget, offset: ScrollOffset) -> bool:
        return bool(
            self.page.evaluate(
                SCROLL_WRITE_SCRIPT,
                {
                    "selector": SCROLL_SELECTORS.get(target),
                    "top": offset.top,
                    "left": offset.left,
                },
            )
        )

    def read_editor_models(self) -> List[EditorModel]:
        """Return the Monaco models exposed by the page, if any."""

        raw: List[dict[str, Any]] = self.page.evaluate(EDITOR_MODELS_SCRIPT)
        return [
            EditorModel(
                text=str(entry.get("text") or ""),
                language=entry.get("language") or None,
                uri=entry.get("uri") or None,
            )
            for entry in raw or []
        ]

    def read_editor_viewports(self) -> List[List[str]]:
        """Scroll the editor top to bottom and return each viewport's lines."""

        raw: List[List[str]] = self.page.evaluate(
            EDITOR_VIEWPORTS_SCRIPT,
            {
                "editor": EDITOR_SELECTOR,
                "scroller": SCROLL_SELECTORS[ScrollTarget.EDITOR],
                "line": EDITOR_LINE_SELECTOR,
            },
        )
        return [[str(line) for line in viewport] for viewport in raw or []]

    def pause(self, seconds: float) -> None:
        self.page.wait_for_timeout(max(0.0, seconds) * 1000)

    def _click_first_visible(
        self, locator: Locator, *, scroll: bool = False
    ) -> bool:
        try:
            count = locator.count()
        except PlaywrightError as exc:
            LOGGER.debug("Locator lookup failed: %s", exc)
            return False
        for index in range(count):
            candidate = locator.nth(index)
            try:
                if scroll:
                    candidate.scroll_into_view_if_needed(
                        timeout=self.click_timeout_ms
                    )
                if not candidate.is_visible():
                    continue
                candidate.click(timeout=self.click_timeout_ms)
                return True
            except PlaywrightError as exc:
                LOGGER.debug("Click on candidate %d failed: %s", index, exc)
        return False

    def _scan_file_list(self, chips: Locator) -> None:
        """Scroll the virtualized file list until ``chips`` materializes."""

        selector = SCROLL_SELECTORS[ScrollTarget.FILE_LIST]
        top = 0.0
        while True:
            metrics: Optional[dict[str, Any]] = self.page.evaluate(
                FILE_LIST_SCAN_SCRIPT, {"selector": selector, "top": top}
            )
            if not metrics:
                return
            self.page.wait_for_timeout(50)
            if chips.count() > 0:
                return
            view = max(1.0, float(metrics.get("view") or 0))
            top += view
            if top >= float(metrics.get("height") or 0):
                return


__all__ = [
    "PlaywrightWorkbench",
    "Workbench",
]
