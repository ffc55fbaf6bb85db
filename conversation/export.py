"""Assemble the Markdown document for one Gemini conversation."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, List, Optional, Sequence
from urllib.parse import urlparse

from bs4 import BeautifulSoup, Tag

from artifacts.discovery import has_reference_chips
from artifacts.models import ExtractedArtifact
from artifacts.orchestrator import ArtifactExtractionOrchestrator

from .collector import collect_turns
from .markdown import MarkdownRenderer, normalize_markdown
from .models import ExtractionResult

if TYPE_CHECKING:  # pragma: no cover - typing helper only
    from artifacts.workbench import Workbench

LOGGER = logging.getLogger(__name__)

GEMINI_HOST = "gemini.google.com"
DEFAULT_TITLE = "Gemini"

NOT_GEMINI_ERROR = "This page is not a Gemini conversation."
LAYOUT_CHANGED_ERROR = (
    "No conversation messages were found. The Gemini page layout may have"
    " changed."
)
MANUAL_CANVAS_WARNING = (
    "> **Warning:** This conversation references Canvas content that could"
    " not be extracted automatically.\n"
    "> Open the Canvas panel in Gemini and copy its contents manually."
)

_TITLE_PREFIX_RE = re.compile(r"^\s*Gemini\s*[-–—:|]\s*", re.IGNORECASE)


def is_gemini_url(url: Optional[str]) -> bool:
    """Return True when ``url`` points at the Gemini web app."""

    if not url:
        return False
    host = (urlparse(url).hostname or "").lower()
    return host == GEMINI_HOST or host.endswith(f".{GEMINI_HOST}")


def thread_title(document_title: Optional[str]) -> str:
    """Return the conversation title shown in the document header."""

    title = _TITLE_PREFIX_RE.sub("", (document_title or "").strip()).strip()
    return title or DEFAULT_TITLE


def conversation_root(soup: BeautifulSoup) -> Tag:
    """Return the element that holds the conversation thread."""

    main = soup.select_one("main")
    if main is not None:
        return main
    return soup.body if soup.body is not None else soup


def build_document(
    title: str,
    turns: Sequence[tuple[str, str]],
    artifacts: Sequence[ExtractedArtifact] = (),
    *,
    warning: Optional[str] = None,
) -> str:
    """Join the header, turn sections and Canvas sections into one string."""

    lines: List[str] = [f"# {title}", ""]
    for label, body in turns:
        lines.extend([f"## {label}", body, "", "---", ""])
    for artifact in artifacts:
        lines.extend([artifact.to_markdown(), ""])
    if warning:
        lines.extend([warning, ""])
    return normalize_markdown("\n".join(lines))


def extract_markdown(
    workbench: "Workbench",
    include_artifacts: bool = False,
    *,
    orchestrator: Optional[ArtifactExtractionOrchestrator] = None,
) -> ExtractionResult:
    """Export the conversation open in ``workbench`` as Markdown.

    Every failure is returned as an :class:`ExtractionResult` error; the
    function does not raise.
    """

    try:
        if not is_gemini_url(workbench.url):
            return ExtractionResult.failure(NOT_GEMINI_ERROR)

        root = conversation_root(workbench.snapshot())
        turns = collect_turns(root)
        if not turns:
            LOGGER.warning("No turn nodes matched on %s", workbench.url)
            return ExtractionResult.failure(LAYOUT_CHANGED_ERROR)

        renderer = MarkdownRenderer(base_url=workbench.url)
        sections: List[tuple[str, str]] = []
        for turn in turns:
            body = renderer.render(turn.content)
            if body:
                sections.append((turn.role.label, body))

        artifacts: List[ExtractedArtifact] = []
        warning: Optional[str] = None
        if include_artifacts:
            runner = orchestrator or ArtifactExtractionOrchestrator(workbench)
            artifacts = runner.run()
            LOGGER.info("Extracted %d artifact(s)", len(artifacts))
            if not artifacts and has_reference_chips(root):
                warning = MANUAL_CANVAS_WARNING

        document = build_document(
            thread_title(workbench.title()),
            sections,
            artifacts,
            warning=warning,
        )
        return ExtractionResult.success(document)
    except Exception as exc:  # noqa: BLE001
        LOGGER.exception("Markdown export failed")
        return ExtractionResult.failure(f"Export failed: {exc}")


__all__ = [
    "GEMINI_HOST",
    "LAYOUT_CHANGED_ERROR",
    "MANUAL_CANVAS_WARNING",
    "NOT_GEMINI_ERROR",
    "build_document",
    "conversation_root",
    "extract_markdown",
    "is_gemini_url",
    "thread_title",
]
