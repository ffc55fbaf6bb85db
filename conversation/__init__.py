"""Gemini conversation snapshot to Markdown conversion."""

from .collector import collect_turns
from .markdown import MarkdownRenderer, normalize_markdown, render_markdown
from .models import ConversationTurn, ExtractionResult, RenderContext, Role

__all__ = [
    "ConversationTurn",
    "ExtractionResult",
    "MarkdownRenderer",
    "RenderContext",
    "Role",
    "collect_turns",
    "normalize_markdown",
    "render_markdown",
]
