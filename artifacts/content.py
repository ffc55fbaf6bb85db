"""Read the artifact currently open in the editor view."""

from __future__ import annotations

import logging
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Iterable, List, Optional, Sequence

from .discovery import normalize_title
from .models import ArtifactTitle, EditorModel, ExtractedArtifact
from .panel import editor_title, is_editor_open

if TYPE_CHECKING:  # pragma: no cover - typing helper only
    from .workbench import Workbench

LOGGER = logging.getLogger(__name__)

EXTENSION_LANGUAGES = {
    ".py": "python",
    ".js": "javascript",
    ".mjs": "javascript",
    ".jsx": "jsx",
    ".ts": "typescript",
    ".tsx": "tsx",
    ".html": "html",
    ".htm": "html",
    ".css": "css",
    ".scss": "scss",
    ".json": "json",
    ".md": "markdown",
    ".sh": "bash",
    ".bash": "bash",
    ".java": "java",
    ".kt": "kotlin",
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".cc": "cpp",
    ".cs": "csharp",
    ".go": "go",
    ".rs": "rust",
    ".rb": "ruby",
    ".php": "php",
    ".swift": "swift",
    ".sql": "sql",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".xml": "xml",
}
UNTYPED_LANGUAGES = frozenset({"", "plaintext", "text"})


def language_for_title(title: Optional[str]) -> Optional[str]:
    """Infer a fence language from the file extension in ``title``."""

    if not title:
        return None
    suffix = PurePosixPath(title.strip()).suffix.lower()
    return EXTENSION_LANGUAGES.get(suffix)


def pick_longest_model(models: Iterable[EditorModel]) -> Optional[EditorModel]:
    """Return the model with the most text; the visible editor's wins."""

    candidates = [model for model in models if model.text.strip()]
    if not candidates:
        return None
    return max(candidates, key=lambda model: len(model.text))


def merge_viewports(viewports: Sequence[Sequence[str]]) -> List[str]:
    """Join overlapping viewport reads into one list of lines."""

    merged: List[str] = []
    for viewport in viewports:
        lines = list(viewport)
        overlap = 0
        for size in range(min(len(merged), len(lines)), 0, -1):
            if merged[-size:] == lines[:size]:
                overlap = size
                break
        merged.extend(lines[overlap:])
    return merged


def compress_adjacent_duplicates(lines: Iterable[str]) -> List[str]:
    """Drop lines identical to the line immediately before them."""

    out: List[str] = []
    for line in lines:
        if out and out[-1] == line:
            continue
        out.append(line)
    return out


def read_open_artifact(
    workbench: "Workbench",
    expected_title: Optional[ArtifactTitle] = None,
) -> Optional[ExtractedArtifact]:
    """Return the open editor's content, or ``None`` while it is not ready.

    When ``expected_title`` is given the editor must show that title;
    anything else means navigation has not finished yet.
    """

    soup = workbench.snapshot()
    if not is_editor_open(soup):
        return None

    title = editor_title(soup)
    if expected_title is not None and title != normalize_title(expected_title):
        return None
    if not title:
        return None

    model = pick_longest_model(workbench.read_editor_models())
    if model is not None:
        content = model.text
        language = model.language
        if (language or "").strip().lower() in UNTYPED_LANGUAGES:
            language = language_for_title(title)
    else:
        lines = compress_adjacent_duplicates(
            merge_viewports(workbench.read_editor_viewports())
        )
        content = "\n".join(lines)
        language = language_for_title(title)

    content = content.rstrip("\n")
    if not content.strip():
        LOGGER.debug("Editor for %r is open but still empty", title)
        return None
    return ExtractedArtifact(title=title, content=content, language=language)


__all__ = [
    "EXTENSION_LANGUAGES",
    "compress_adjacent_duplicates",
    "language_for_title",
    "merge_viewports",
    "pick_longest_model",
    "read_open_artifact",
]
