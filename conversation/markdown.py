"""Convert conversation HTML snapshots into Markdown.

The renderer works on a deep copy of the node it is given, so the page
snapshot shared with the rest of the export is never modified. Every
element is classified into a :class:`NodeKind` and handed to one method
per kind; list nesting and blockquote state travel in an immutable
:class:`~conversation.models.RenderContext`.
"""

from __future__ import annotations

import copy
import re
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Dict, List, Optional
from urllib.parse import urljoin

from bs4 import NavigableString, PageElement, Tag
from bs4.element import (
    CData,
    Comment,
    Declaration,
    Doctype,
    ProcessingInstruction,
)

from .models import RenderContext

STRIP_SELECTORS = (
    "button",
    "svg",
    "mat-icon",
    "style",
    "textarea",
    "input",
    '[role="button"]',
    ".feedback-container",
    ".edit-button",
    ".speech_icon",
    ".code-block-decoration",
)
BLOCK_LIKE_TAGS = frozenset(
    {
        "div",
        "section",
        "article",
        "main",
        "header",
        "footer",
        "figure",
        "figcaption",
    }
)
HEADING_TAGS = frozenset({"h1", "h2", "h3", "h4", "h5", "h6"})
MATH_CLASS_HINTS = (
    "math-inline",
    "math-block",
    "katex",
    "mathjax",
    "mjx-container",
)
BLOCK_MATH_CLASS_HINTS = ("math-block", "katex-display", "mathjax_display")
MATH_LABEL_ATTRIBUTES = ("alttext", "data-latex", "data-tex", "aria-label")
TEX_ANNOTATION_SELECTOR = 'annotation[encoding="application/x-tex"]'

_LANGUAGE_CLASS_RE = re.compile(r"language-([a-z0-9_+-]+)", re.IGNORECASE)
_BACKTICK_RUN_RE = re.compile(r"`+")
_SKIPPED_STRINGS = (
    Comment,
    CData,
    Declaration,
    Doctype,
    ProcessingInstruction,
)


class NodeKind(Enum):
    """Closed set of node kinds understood by the renderer."""

    TEXT = auto()
    LINE_BREAK = auto()
    HEADING = auto()
    PARAGRAPH = auto()
    RULE = auto()
    BLOCKQUOTE = auto()
    CODE_BLOCK = auto()
    INLINE_CODE = auto()
    LINK = auto()
    IMAGE = auto()
    STRONG = auto()
    EMPHASIS = auto()
    LIST = auto()
    LIST_ITEM = auto()
    CONTAINER = auto()
    INLINE = auto()
    IGNORED = auto()


_TAG_KINDS: Dict[str, NodeKind] = {
    "br": NodeKind.LINE_BREAK,
    "p": NodeKind.PARAGRAPH,
    "hr": NodeKind.RULE,
    "blockquote": NodeKind.BLOCKQUOTE,
    "pre": NodeKind.CODE_BLOCK,
    "code": NodeKind.INLINE_CODE,
    "a": NodeKind.LINK,
    "img": NodeKind.IMAGE,
    "strong": NodeKind.STRONG,
    "b": NodeKind.STRONG,
    "em": NodeKind.EMPHASIS,
    "i": NodeKind.EMPHASIS,
    "ul": NodeKind.LIST,
    "ol": NodeKind.LIST,
    "li": NodeKind.LIST_ITEM,
}


@dataclass(frozen=True, slots=True)
class MathSource:
    """Machine-readable TeX recovered from a math element."""

    tex: str
    display: bool


def classify(node: PageElement) -> NodeKind:
    """Return the :class:`NodeKind` used to render ``node``."""

    if isinstance(node, _SKIPPED_STRINGS):
        return NodeKind.IGNORED
    if isinstance(node, NavigableString):
        return NodeKind.TEXT
    if not isinstance(node, Tag):
        return NodeKind.IGNORED

    tag = (node.name or "").lower()
    if tag in HEADING_TAGS:
        return NodeKind.HEADING
    if tag in _TAG_KINDS:
        return _TAG_KINDS[tag]
    if tag in BLOCK_LIKE_TAGS:
        return NodeKind.CONTAINER
    return NodeKind.INLINE


def normalize_markdown(text: str) -> str:
    """Collapse blank-line runs, drop trailing spaces and trim.

    Applying the function to its own output returns the same string.
    """

    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = re.sub(r"[ \t]+\n", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def normalize_inline(text: str) -> str:
    """Flatten block spacing inside inline content to single newlines."""

    text = re.sub(r"[ \t]+\n", "\n", text)
    return re.sub(r"\n{2,}", "\n", text)


def longest_backtick_run(text: str) -> int:
    """Return the length of the longest run of backticks in ``text``."""

    return max((len(run) for run in _BACKTICK_RUN_RE.findall(text)), default=0)


def make_fence(code: str) -> str:
    """Return a code-block fence that cannot collide with ``code``."""

    return "`" * max(3, longest_backtick_run(code) + 1)


def make_inline_fence(text: str) -> str:
    """Return an inline-code fence that cannot collide with ``text``."""

    return "`" * (longest_backtick_run(text) + 1)


def normalize_code(code: str) -> str:
    """Unify line endings and strip trailing blank lines from ``code``."""

    code = code.replace("\r\n", "\n").replace("\r", "\n")
    return re.sub(r"\n+$", "", code)


def find_math_source(element: Tag) -> Optional[MathSource]:
    """Recover TeX for ``element`` when it is a math node.

    Sources are tried in order: an explicit ``data-math`` attribute, a
    MathML TeX annotation, a LaTeX-looking label attribute on a math
    element and finally a legacy ``math/tex`` script.
    """

    if not _looks_like_math(element):
        return None

    display = _is_display_math(element)

    explicit = element.get("data-math")
    if isinstance(explicit, str) and explicit.strip():
        return MathSource(explicit.strip(), display)

    annotation = (
        element
        if element.css.match(TEX_ANNOTATION_SELECTOR)
        else element.select_one(TEX_ANNOTATION_SELECTOR)
    )
    if annotation is not None and annotation.get_text().strip():
        return MathSource(annotation.get_text().strip(), display)

    for attribute in MATH_LABEL_ATTRIBUTES:
        value = element.get(attribute)
        if isinstance(value, str) and _is_tex_like(value):
            return MathSource(value.strip(), display)

    script = (
        element if _is_math_script(element) else element.find(_is_math_script)
    )
    if isinstance(script, Tag) and script.get_text().strip():
        script_display = display or "mode=display" in str(
            script.get("type", "")
        )
        return MathSource(script.get_text().strip(), script_display)

    return None


def format_math(source: MathSource) -> str:
    """Wrap recovered TeX in block or inline math delimiters."""

    if source.display:
        return f"\n$$\n{source.tex}\n$$\n\n"
    return f"${source.tex}$"


def strip_chrome(root: Tag) -> None:
    """Remove interactive controls and non-content elements in place."""

    for block in root.find_all("code-block"):
        _promote_code_block_language(block)

    for selector in STRIP_SELECTORS:
        for element in root.select(selector):
            element.extract()

    for script in root.find_all("script"):
        if not _is_math_script(script):
            script.extract()


class MarkdownRenderer:
    """Recursive HTML-to-Markdown converter for a single content root."""

    def __init__(self, base_url: Optional[str] = None) -> None:
        self.base_url = base_url
        self._handlers: Dict[NodeKind, Callable[[Tag, RenderContext], str]]
        self._handlers = {
            NodeKind.LINE_BREAK: self._render_line_break,
            NodeKind.HEADING: self._render_heading,
            NodeKind.PARAGRAPH: self._render_paragraph,
            NodeKind.RULE: self._render_rule,
            NodeKind.BLOCKQUOTE: self._render_blockquote,
            NodeKind.CODE_BLOCK: self._render_code_block,
            NodeKind.INLINE_CODE: self._render_inline_code,
            NodeKind.LINK: self._render_link,
            NodeKind.IMAGE: self._render_image,
            NodeKind.STRONG: self._render_strong,
            NodeKind.EMPHASIS: self._render_emphasis,
            NodeKind.LIST: self._render_list,
            NodeKind.LIST_ITEM: self._render_children,
            NodeKind.CONTAINER: self._render_container,
            NodeKind.INLINE: self._render_children,
        }

    def render(self, element: Optional[Tag]) -> str:
        """Return trimmed Markdown for ``element`` without modifying it."""

        if element is None:
            return ""
        clone = copy.copy(element)
        strip_chrome(clone)
        markdown = self._render_children(clone, RenderContext())
        return normalize_markdown(markdown)

    def render_node(self, node: PageElement, ctx: RenderContext) -> str:
        kind = classify(node)
        if kind is NodeKind.IGNORED:
            return ""
        if kind is NodeKind.TEXT:
            return str(node).replace("\u00a0", " ")

        assert isinstance(node, Tag)
        math = find_math_source(node)
        if math is not None:
            return format_math(math)
        return self._handlers[kind](node, ctx)

    def _render_children(self, parent: Tag, ctx: RenderContext) -> str:
        return "".join(self.render_node(child, ctx) for child in parent.children)

    def _render_inline_children(self, parent: Tag, ctx: RenderContext) -> str:
        return normalize_inline(self._render_children(parent, ctx)).strip()

    def _render_line_break(self, element: Tag, ctx: RenderContext) -> str:
        return "\n"

    def _render_rule(self, element: Tag, ctx: RenderContext) -> str:
        return "\n---\n\n"

    def _render_heading(self, element: Tag, ctx: RenderContext) -> str:
        text = self._render_inline_children(element, ctx)
        if not text:
            return ""
        level = int(element.name[1])
        return f"\n{'#' * level} {text}\n\n"

    def _render_paragraph(self, element: Tag, ctx: RenderContext) -> str:
        text = self._render_inline_children(element, ctx)
        if not text:
            return ""
        return f"{text}\n\n"

    def _render_blockquote(self, element: Tag, ctx: RenderContext) -> str:
        inner = normalize_markdown(
            self._render_children(element, ctx.derive(in_blockquote=True))
        )
        if not inner:
            return ""
        lines = [f"> {line}" if line else ">" for line in inner.split("\n")]
        return "\n" + "\n".join(lines) + "\n\n"

    def _render_code_block(self, element: Tag, ctx: RenderContext) -> str:
        code_element = element.find("code")
        language = detect_code_language(element, code_element)
        source = (
            code_element.get_text()
            if isinstance(code_element, Tag)
            else element.get_text()
        )
        code = normalize_code(source)
        if not code.strip():
            return ""
        fence = make_fence(code)
        return f"\n{fence}{language}\n{code}\n{fence}\n\n"

    def _render_inline_code(self, element: Tag, ctx: RenderContext) -> str:
        text = re.sub(r"\s+", " ", element.get_text()).strip()
        if not text:
            return ""
        fence = make_inline_fence(text)
        pad = " " if text.startswith("`") or text.endswith("`") else ""
        return f"{fence}{pad}{text}{pad}{fence}"

    def _render_link(self, element: Tag, ctx: RenderContext) -> str:
        href = str(element.get("href") or "")
        text = self._render_inline_children(element, ctx) or href
        if not href or href.lower().startswith("javascript:"):
            return text
        return f"[{text}]({self._absolute_url(href)})"

    def _render_image(self, element: Tag, ctx: RenderContext) -> str:
        src = str(element.get("src") or "")
        if not src or src.startswith("data:"):
            return ""
        alt = str(element.get("alt") or "image").strip()
        return f"![{alt}]({self._absolute_url(src)})"

    def _render_strong(self, element: Tag, ctx: RenderContext) -> str:
        inner = self._render_inline_children(element, ctx)
        return f"**{inner}**" if inner else ""

    def _render_emphasis(self, element: Tag, ctx: RenderContext) -> str:
        inner = self._render_inline_children(element, ctx)
        return f"*{inner}*" if inner else ""

    def _render_container(self, element: Tag, ctx: RenderContext) -> str:
        inner = normalize_markdown(self._render_children(element, ctx))
        if not inner:
            return ""
        return f"{inner}\n\n"

    def _render_list(self, element: Tag, ctx: RenderContext) -> str:
        ordered = element.name == "ol"
        items = [
            child
            for child in element.children
            if isinstance(child, Tag) and child.name == "li"
        ]
        if not items:
            return ""

        lines = [
            self._render_list_item(
                item,
                ctx.derive(
                    list_depth=ctx.list_depth + 1,
                    list_ordered=ordered,
                    list_index=index,
                ),
            )
            for index, item in enumerate(items, start=1)
        ]
        return "\n".join(lines) + "\n\n"

    def _render_list_item(self, item: Tag, ctx: RenderContext) -> str:
        indent = "  " * max(0, ctx.list_depth - 1)
        bullet = f"{ctx.list_index}. " if ctx.list_ordered else "- "

        parts: List[str] = []
        nested: List[Tag] = []
        for child in item.children:
            if isinstance(child, Tag) and child.name in ("ul", "ol"):
                nested.append(child)
                continue
            parts.append(self.render_node(child, ctx))

        text = normalize_inline("".join(parts))
        text = re.sub(r"\s+\n", "\n", text).strip()
        head = f"{indent}{bullet}{text}".rstrip()

        nested_markdown = "\n".join(
            rendered
            for rendered in (
                self._render_list(child, ctx).rstrip() for child in nested
            )
            if rendered
        )
        if not nested_markdown:
            return head
        return f"{head}\n{nested_markdown}"

    def _absolute_url(self, href: str) -> str:
        if not self.base_url:
            return href
        try:
            return urljoin(self.base_url, href)
        except ValueError:
            return href


def detect_code_language(pre: Tag, code: Optional[PageElement]) -> str:
    """Return the language tag of a code block, or an empty string."""

    code_tag = code if isinstance(code, Tag) else None
    for candidate in (code_tag, pre):
        if candidate is None:
            continue
        match = _LANGUAGE_CLASS_RE.search(
            " ".join(candidate.get_attribute_list("class"))
        )
        if match:
            return match.group(1)

    for candidate in (code_tag, pre):
        if candidate is None:
            continue
        value = candidate.get("data-language")
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def render_markdown(element: Optional[Tag], base_url: Optional[str] = None) -> str:
    """Convenience wrapper around :class:`MarkdownRenderer`."""

    return MarkdownRenderer(base_url=base_url).render(element)


def _promote_code_block_language(block: Tag) -> None:
    """Copy Gemini's code-block header label onto the inner ``pre``."""

    decoration = block.select_one(".code-block-decoration")
    pre = block.find("pre")
    if decoration is None or not isinstance(pre, Tag):
        return
    code = pre.find("code")
    if detect_code_language(pre, code):
        return
    label = next(
        (
            span.get_text().strip()
            for span in decoration.find_all("span")
            if span.get_text().strip()
        ),
        "",
    )
    if label:
        pre["data-language"] = re.sub(r"\s+", "-", label.lower())


def _class_text(element: Tag) -> str:
    return " ".join(element.get_attribute_list("class")).lower()


def _is_math_script(element: PageElement) -> bool:
    return (
        isinstance(element, Tag)
        and element.name == "script"
        and str(element.get("type", "")).lower().startswith("math/tex")
    )


def _looks_like_math(element: Tag) -> bool:
    if element.has_attr("data-math"):
        return True
    if element.name in ("math", "mjx-container"):
        return True
    if element.name == "annotation":
        return bool(element.css.match(TEX_ANNOTATION_SELECTOR))
    if _is_math_script(element):
        return True
    class_text = _class_text(element)
    return any(hint in class_text for hint in MATH_CLASS_HINTS)


def _is_display_math(element: Tag) -> bool:
    class_text = _class_text(element)
    if any(hint in class_text for hint in BLOCK_MATH_CLASS_HINTS):
        return True
    if str(element.get("display", "")).lower() in ("block", "true"):
        return True
    if _is_math_script(element):
        return "mode=display" in str(element.get("type", "")).lower()
    return element.name == "div"


def _is_tex_like(value: str) -> bool:
    stripped = value.strip()
    return bool(stripped) and ("\\" in stripped or "=" in stripped)


__all__ = [
    "MarkdownRenderer",
    "MathSource",
    "NodeKind",
    "classify",
    "detect_code_language",
    "find_math_source",
    "format_math",
    "make_fence",
    "make_inline_fence",
    "normalize_code",
    "normalize_inline",
    "normalize_markdown",
    "render_markdown",
    "strip_chrome",
]
