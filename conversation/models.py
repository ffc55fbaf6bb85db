"""Shared dataclasses for conversation extraction."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Union

from bs4 import Tag


class Role(Enum):
    """Speaker of a single conversation turn."""

    USER = "User"
    ASSISTANT = "Gemini"

    @property
    def label(self) -> str:
        """Return the heading label used in the Markdown output."""

        return self.value


@dataclass(frozen=True, slots=True)
class ConversationTurn:
    """One message node discovered in the page snapshot."""

    node: Tag
    role: Role
    content: Tag


@dataclass(frozen=True, slots=True)
class RenderContext:
    """Per-call rendering state threaded through the recursive converter.

    Children never mutate their parent's context; they call ``derive`` to
    obtain a new one.
    """

    list_depth: int = 0
    list_ordered: bool = False
    list_index: int = 0
    in_blockquote: bool = False

    def derive(self, **changes: object) -> "RenderContext":
        """Return a copy of this context with ``changes`` applied."""

        return replace(self, **changes)


@dataclass(frozen=True, slots=True)
class ExtractionResult:
    """Either a complete Markdown document or a human-readable error."""

    markdown: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, markdown: str) -> "ExtractionResult":
        return cls(markdown=markdown)

    @classmethod
    def failure(cls, message: str) -> "ExtractionResult":
        return cls(error=message)

    @property
    def ok(self) -> bool:
        """Return True when the result carries a Markdown document."""

        return self.error is None and self.markdown is not None

    def to_payload(self) -> Union[str, dict[str, str]]:
        """Return the Markdown string or an ``{"error": ...}`` mapping."""

        if self.ok:
            return self.markdown  # type: ignore[return-value]
        return {"error": self.error or "Unknown error."}
