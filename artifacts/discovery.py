"""Locate the "created" artifact list in a page snapshot.

The list lives in Gemini's side panel. Its container is found by a
structural marker first and by its (localized) section header second,
and is only usable while the browser actually renders it.
"""

from __future__ import annotations

import re
from typing import List, Optional

from bs4 import Tag

from .models import ArtifactTitle

HIDDEN_MARKER = "data-export-hidden"
# Marker value for elements whose own layout box is empty; descendants
# positioned outside it may still be rendered.
EMPTY_BOX = "empty"

STRUCTURAL_SELECTORS = (
    '[data-test-id="created-artifacts"]',
    "created-artifacts",
    ".created-artifacts",
)
SECTION_HEADER_SELECTOR = (
    "h1, h2, h3, h4, [role='heading'], .section-header, .section-title"
)
CHIP_SELECTOR = (
    'immersive-entry-chip, [data-test-id="artifact-chip"], '
    '.artifact-chip, [role="listitem"]'
)
CHIP_LABEL_SELECTOR = (
    '[data-test-id="artifact-title"], .artifact-title, .chip-title, .title'
)
REFERENCE_CHIP_SELECTOR = (
    'immersive-entry-chip, [data-test-id="artifact-chip"], '
    '.artifact-chip, [data-test-id*="immersive-chip" i]'
)
CREATED_LABELS = frozenset(
    {
        "created",
        "作成済み",
        "作成したもの",
        "作成済みのファイル",
        "erstellt",
        "créé",
        "créés",
        "creado",
        "creados",
        "criado",
        "criados",
        "creati",
        "creato",
        "생성됨",
        "만든 항목",
        "已创建",
        "已建立",
        "созданные",
        "создано",
        "gemaakt",
    }
)

# Header ancestors searched for the chip container.
_MAX_HEADER_HOPS = 3
_STYLE_HIDDEN_RE = re.compile(
    r"(display\s*:\s*none|visibility\s*:\s*hidden"
    r"|opacity\s*:\s*0(\.0+)?\s*(;|$))",
    re.IGNORECASE,
)
_LABEL_NOISE_RE = re.compile(r"[\s:：]*(\(\d+\)|\d+)?[\s:：]*$")


def is_rendered(element: Optional[Tag]) -> bool:
    """Return True when ``element`` and its ancestors are displayed."""

    if element is None:
        return False
    if element.has_attr(HIDDEN_MARKER):
        return False
    node: Optional[Tag] = element
    while node is not None and node.name != "[document]":
        if node.has_attr("hidden"):
            return False
        marker = node.get(HIDDEN_MARKER)
        if marker is not None and marker != EMPTY_BOX:
            return False
        style = node.get("style")
        if isinstance(style, str) and _STYLE_HIDDEN_RE.search(style):
            return False
        node = node.parent
    return True


def normalize_label(text: str) -> str:
    """Casefold a header label and drop trailing counts or colons."""

    collapsed = re.sub(r"\s+", " ", text).strip()
    return _LABEL_NOISE_RE.sub("", collapsed).casefold()


def find_created_section(root: Optional[Tag]) -> Optional[Tag]:
    """Return the rendered container listing created artifacts, if any."""

    if root is None:
        return None

    for selector in STRUCTURAL_SELECTORS:
        for candidate in root.select(selector):
            if candidate.select_one(CHIP_SELECTOR) and is_rendered(candidate):
                return candidate

    for header in root.select(SECTION_HEADER_SELECTOR):
        if normalize_label(header.get_text()) not in CREATED_LABELS:
            continue
        container = _chip_container_for(header)
        if container is not None and is_rendered(container):
            return container

    return None


def list_artifact_titles(section: Optional[Tag]) -> List[ArtifactTitle]:
    """Return distinct chip titles in encounter order."""

    if section is None:
        return []

    titles: List[ArtifactTitle] = []
    seen: set[str] = set()
    for chip in section.select(CHIP_SELECTOR):
        label = chip.select_one(CHIP_LABEL_SELECTOR)
        if label is None:
            continue
        title = normalize_title(label.get_text())
        if title and title not in seen:
            seen.add(title)
            titles.append(title)
    return titles


def normalize_title(text: str) -> ArtifactTitle:
    """Collapse whitespace so titles compare equal across re-renders."""

    return re.sub(r"\s+", " ", text).strip()


def has_reference_chips(root: Optional[Tag]) -> bool:
    """Return True when the conversation references an artifact."""

    if root is None:
        return False
    return root.select_one(REFERENCE_CHIP_SELECTOR) is not None


def _chip_container_for(header: Tag) -> Optional[Tag]:
    node = header.parent
    hops = 0
    while isinstance(node, Tag) and hops < _MAX_HEADER_HOPS:
        if node.select_one(CHIP_SELECTOR) is not None:
            return node
        node = node.parent
        hops += 1
    return None


__all__ = [
    "CHIP_LABEL_SELECTOR",
    "CHIP_SELECTOR",
    "CREATED_LABELS",
    "EMPTY_BOX",
    "HIDDEN_MARKER",
    "REFERENCE_CHIP_SELECTOR",
    "STRUCTURAL_SELECTORS",
    "find_created_section",
    "has_reference_chips",
    "is_rendered",
    "list_artifact_titles",
    "normalize_label",
    "normalize_title",
]
