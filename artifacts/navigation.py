"""Bring the side panel and its file list on screen."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Sequence, Tuple

from .panel import FILES_TAB, is_file_list_visible, is_side_panel_open
from .polling import ConditionPoller

if TYPE_CHECKING:  # pragma: no cover - typing helper only
    from .workbench import Workbench

LOGGER = logging.getLogger(__name__)

PANEL_OPEN_TIMEOUT = 2.5
LIST_ATTEMPT_TIMEOUT = 1.5


def side_panel_open(workbench: "Workbench") -> bool:
    return is_side_panel_open(workbench.snapshot())


def file_list_visible(workbench: "Workbench") -> bool:
    return is_file_list_visible(workbench.snapshot())


def ensure_side_panel(
    workbench: "Workbench",
    poller: ConditionPoller,
    *,
    timeout: float = PANEL_OPEN_TIMEOUT,
) -> bool:
    """Open the side panel unless it already is; wait for it to show."""

    if side_panel_open(workbench):
        return True
    if not workbench.toggle_side_panel():
        LOGGER.info("Side panel toggle not found")
        return False
    opened = poller.wait_for(lambda: side_panel_open(workbench), timeout)
    return bool(opened)


def reopen_side_panel(
    workbench: "Workbench",
    poller: ConditionPoller,
    *,
    timeout: float = LIST_ATTEMPT_TIMEOUT,
) -> bool:
    """Close and reopen the side panel, which resets it to the file list."""

    if side_panel_open(workbench):
        if not workbench.toggle_side_panel():
            return False
        poller.wait_for(lambda: not side_panel_open(workbench), timeout)
    if not workbench.toggle_side_panel():
        return False
    return bool(poller.wait_for(lambda: side_panel_open(workbench), timeout))


def ensure_file_list(
    workbench: "Workbench",
    poller: ConditionPoller,
    *,
    timeout: float = LIST_ATTEMPT_TIMEOUT,
) -> bool:
    """Make the created-artifacts list visible instead of an editor view.

    Tries the panel's back button, then the files tab, then a full close
    and reopen of the panel. Each attempt waits at most ``timeout``.
    """

    if file_list_visible(workbench):
        return True

    attempts: Sequence[Tuple[str, Callable[[], bool]]] = (
        ("back", workbench.click_back),
        ("files tab", lambda: workbench.select_tab(FILES_TAB)),
        (
            "reopen panel",
            lambda: reopen_side_panel(workbench, poller, timeout=timeout),
        ),
    )
    for name, attempt in attempts:
        if not attempt():
            LOGGER.debug("File list attempt %r found no control", name)
            continue
        if poller.wait_for(lambda: file_list_visible(workbench), timeout):
            return True
        LOGGER.debug("File list attempt %r did not show the list", name)
    return False


__all__ = [
    "LIST_ATTEMPT_TIMEOUT",
    "PANEL_OPEN_TIMEOUT",
    "ensure_file_list",
    "ensure_side_panel",
    "file_list_visible",
    "reopen_side_panel",
    "side_panel_open",
]
