"""Capture the page's UI state before automation and put it back after."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, List, Optional, Tuple

from .content import read_open_artifact
from .models import ScrollOffset, ScrollTarget, UISnapshot
from .navigation import ensure_file_list, ensure_side_panel, side_panel_open
from .panel import (
    active_tab,
    editor_title,
    is_editor_open,
    is_overlay_open,
    is_side_panel_open,
)
from .polling import ConditionPoller

if TYPE_CHECKING:  # pragma: no cover - typing helper only
    from .workbench import Workbench

LOGGER = logging.getLogger(__name__)

RESTORE_WAIT = 2.0


class UIStateCoordinator:
    """Snapshot and best-effort restore of panel, tab and scroll state."""

    def __init__(
        self,
        workbench: "Workbench",
        poller: Optional[ConditionPoller] = None,
        *,
        wait: float = RESTORE_WAIT,
    ) -> None:
        self.workbench = workbench
        self.poller = poller or ConditionPoller(sleep=workbench.pause)
        self.wait = wait

    def capture(self) -> UISnapshot:
        """Read the current UI state without changing it."""

        soup = self.workbench.snapshot()
        editor_open = is_editor_open(soup)
        return UISnapshot(
            side_panel_open=is_side_panel_open(soup),
            active_tab=active_tab(soup),
            editor_open=editor_open,
            editor_title=editor_title(soup) if editor_open else None,
            editor_scroll=(
                self._read_scroll(ScrollTarget.EDITOR) if editor_open else None
            ),
            file_list_scroll=self._read_scroll(ScrollTarget.FILE_LIST),
            window_scroll=self._read_scroll(ScrollTarget.WINDOW),
            overlay_open=is_overlay_open(soup),
        )

    def restore(self, snapshot: UISnapshot) -> None:
        """Put the UI back the way ``snapshot`` found it.

        Each step runs on its own; a failing step is logged and the
        remaining steps still run. Nothing is raised to the caller.
        """

        steps: List[Tuple[str, Callable[[], None]]] = [
            ("overlay", lambda: self._restore_overlay(snapshot)),
            ("side panel", lambda: self._restore_side_panel(snapshot)),
            ("editor view", lambda: self._restore_view(snapshot)),
            (
                "file list scroll",
                lambda: self._restore_scroll(
                    ScrollTarget.FILE_LIST, snapshot.file_list_scroll
                ),
            ),
            (
                "editor scroll",
                lambda: self._restore_scroll(
                    ScrollTarget.EDITOR, snapshot.editor_scroll
                ),
            ),
            (
                "window scroll",
                lambda: self._restore_scroll(
                    ScrollTarget.WINDOW, snapshot.window_scroll
                ),
            ),
        ]
        try:
            for name, step in steps:
                try:
                    step()
                except Exception as exc:  # noqa: BLE001
                    LOGGER.warning("UI restore step %r failed: %s", name, exc)
        except Exception:  # noqa: BLE001
            LOGGER.exception("UI restore aborted")

    def _read_scroll(self, target: ScrollTarget) -> Optional[ScrollOffset]:
        try:
            return self.workbench.scroll_position(target)
        except Exception as exc:  # noqa: BLE001
            LOGGER.debug("Could not read %s scroll: %s", target.value, exc)
            return None

    def _restore_overlay(self, snapshot: UISnapshot) -> None:
        if snapshot.overlay_open:
            return
        if is_overlay_open(self.workbench.snapshot()):
            self.workbench.close_overlay()

    def _restore_side_panel(self, snapshot: UISnapshot) -> None:
        currently_open = side_panel_open(self.workbench)
        if snapshot.side_panel_open and not currently_open:
            ensure_side_panel(self.workbench, self.poller)
        elif not snapshot.side_panel_open and currently_open:
            if self.workbench.toggle_side_panel():
                self.poller.wait_for(
                    lambda: not side_panel_open(self.workbench), self.wait
                )

    def _restore_view(self, snapshot: UISnapshot) -> None:
        if not snapshot.side_panel_open:
            return

        if snapshot.editor_open and snapshot.editor_title:
            self._reopen_editor(snapshot.editor_title)
        elif is_editor_open(self.workbench.snapshot()):
            ensure_file_list(self.workbench, self.poller)

        if snapshot.active_tab:
            if active_tab(self.workbench.snapshot()) != snapshot.active_tab:
                self.workbench.select_tab(snapshot.active_tab)

    def _reopen_editor(self, title: str) -> None:
        if editor_title(self.workbench.snapshot()) == title:
            return
        ensure_file_list(self.workbench, self.poller)
        if not self.workbench.click_artifact(title):
            LOGGER.warning("Could not reopen editor for %r", title)
            return
        self.poller.wait_for(
            lambda: read_open_artifact(self.workbench, title), self.wait
        )

    def _restore_scroll(
        self, target: ScrollTarget, offset: Optional[ScrollOffset]
    ) -> None:
        if offset is None:
            return
        if not self.workbench.scroll_to(target, offset):
            LOGGER.debug("Scroll target %s no longer exists", target.value)


__all__ = ["RESTORE_WAIT", "UIStateCoordinator"]
