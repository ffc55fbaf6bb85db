"""Read side panel, editor and overlay state from a page snapshot."""

from __future__ import annotations

import re
from typing import Optional

from bs4 import Tag

from .discovery import find_created_section, is_rendered, normalize_title
from .models import ArtifactTitle

SIDE_PANEL_SELECTOR = "context-sidebar, [data-test-id='side-panel']"
PANEL_OPEN_SELECTOR = (
    "context-sidebar.open, [data-test-id='side-panel'].open, "
    "[data-test-id='side-panel'][aria-expanded='true']"
)
TAB_SELECTOR = "[role='tab']"
EDITOR_SELECTOR = "immersive-panel, [data-test-id='immersive-panel']"
EDITOR_TITLE_SELECTOR = "[data-test-id='immersive-title'], .immersive-title"
OVERLAY_SELECTOR = (
    ".cdk-overlay-container .cdk-overlay-pane, "
    "[role='dialog'][aria-modal='true']"
)

FILES_TAB = "files"
CODE_TAB = "code"


def side_panel_root(root: Tag) -> Tag:
    """Return the side panel element, or ``root`` when none exists."""

    panel = root.select_one(SIDE_PANEL_SELECTOR)
    return panel if panel is not None else root


def is_side_panel_open(root: Tag) -> bool:
    return any(
        is_rendered(candidate) for candidate in root.select(PANEL_OPEN_SELECTOR)
    )


def tab_name(tab: Tag) -> str:
    """Return the stable name of a tab element."""

    name = tab.get("data-tab")
    if isinstance(name, str) and name.strip():
        return name.strip().casefold()
    return re.sub(r"\s+", " ", tab.get_text()).strip().casefold()


def active_tab(root: Tag) -> Optional[str]:
    """Return the name of the selected side panel tab."""

    panel = side_panel_root(root)
    for tab in panel.select(TAB_SELECTOR):
        if tab.get("aria-selected") == "true" and is_rendered(tab):
            return tab_name(tab)
    return None


def has_tab(root: Tag, name: str) -> bool:
    panel = side_panel_root(root)
    wanted = name.casefold()
    return any(
        tab_name(tab) == wanted and is_rendered(tab)
        for tab in panel.select(TAB_SELECTOR)
    )


def is_editor_open(root: Tag) -> bool:
    return any(is_rendered(editor) for editor in root.select(EDITOR_SELECTOR))


def editor_title(root: Tag) -> Optional[ArtifactTitle]:
    """Return the title of the open editor view, if one is shown."""

    for editor in root.select(EDITOR_SELECTOR):
        if not is_rendered(editor):
            continue
        title = editor.select_one(EDITOR_TITLE_SELECTOR)
        if title is not None:
            text = normalize_title(title.get_text())
            if text:
                return text
    return None


def is_overlay_open(root: Tag) -> bool:
    return any(
        is_rendered(overlay) for overlay in root.select(OVERLAY_SELECTOR)
    )


def is_file_list_visible(root: Tag) -> bool:
    """Return True when the created-artifacts list is on screen."""

    return find_created_section(side_panel_root(root)) is not None


__all__ = [
    "CODE_TAB",
    "EDITOR_SELECTOR",
    "EDITOR_TITLE_SELECTOR",
    "FILES_TAB",
    "OVERLAY_SELECTOR",
    "PANEL_OPEN_SELECTOR",
    "SIDE_PANEL_SELECTOR",
    "TAB_SELECTOR",
    "active_tab",
    "editor_title",
    "has_tab",
    "is_editor_open",
    "is_file_list_visible",
    "is_overlay_open",
    "is_side_panel_open",
    "side_panel_root",
    "tab_name",
]
