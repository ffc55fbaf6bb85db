"""Shared dataclasses for Canvas artifact extraction."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from conversation.markdown import make_fence

ArtifactTitle = str


class ScrollTarget(Enum):
    """Scrollable regions whose offsets survive an extraction run."""

    EDITOR = "editor"
    FILE_LIST = "file_list"
    WINDOW = "window"


@dataclass(frozen=True, slots=True)
class ScrollOffset:
    """Vertical and horizontal scroll position of one region."""

    top: float = 0.0
    left: float = 0.0


@dataclass(frozen=True, slots=True)
class UISnapshot:
    """UI state captured before automation starts.

    Restoring a snapshot is best effort: regions that no longer exist are
    skipped and reported through logging only.
    """

    side_panel_open: bool
    active_tab: Optional[str] = None
    editor_open: bool = False
    editor_title: Optional[ArtifactTitle] = None
    editor_scroll: Optional[ScrollOffset] = None
    file_list_scroll: Optional[ScrollOffset] = None
    window_scroll: Optional[ScrollOffset] = None
    overlay_open: bool = False


@dataclass(frozen=True, slots=True)
class EditorModel:
    """Structured editor content exposed by the host page."""

    text: str
    language: Optional[str] = None
    uri: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ExtractedArtifact:
    """Content of one artifact, ready to be appended to the document."""

    title: ArtifactTitle
    content: str
    language: Optional[str] = None

    def to_markdown(self) -> str:
        """Render the artifact as a ``## Canvas:`` section."""

        fence = make_fence(self.content)
        return "\n".join(
            [
                f"## Canvas: {self.title}",
                f"{fence}{self.language or ''}",
                self.content,
                fence,
            ]
        )
