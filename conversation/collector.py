"""Locate, order and classify conversation turns in a page snapshot."""

from __future__ import annotations

from typing import Iterable, List

from bs4 import Tag

from .models import ConversationTurn, Role

USER_SELECTORS = (
    "user-query",
    '[data-test-id="user-query"]',
    '[data-message-role="user"]',
    '[data-message-author="user"]',
)
ASSISTANT_SELECTORS = (
    "model-response",
    '[data-test-id="model-response"]',
    '[data-message-role="assistant"]',
    '[data-message-author="assistant"]',
)
TURN_FALLBACK_SELECTOR = (
    '[data-test-id*="turn" i], [data-testid*="turn" i], [role="listitem"]'
)
CONTENT_SELECTORS = (
    "[data-message-text]",
    '[data-test-id*="message" i]',
    "message-content",
    ".message-content",
    ".markdown",
    ".content",
    "article",
    "section",
)

_USER_SELECTOR = ", ".join(USER_SELECTORS)
_ASSISTANT_SELECTOR = ", ".join(ASSISTANT_SELECTORS)


def collect_turn_nodes(search_root: Tag) -> List[Tag]:
    """Return turn nodes under ``search_root`` in document order.

    Nodes matched by overlapping selectors are reported once, and a node
    nested inside another reported node is dropped.
    """

    candidates: List[Tag] = search_root.select(
        f"{_USER_SELECTOR}, {_ASSISTANT_SELECTOR}"
    )
    if not candidates:
        candidates = [
            turn
            for turn in search_root.select(TURN_FALLBACK_SELECTOR)
            if turn.get_text().strip()
        ]

    ordered = _sort_by_document_order(_unique(candidates), search_root)
    return _drop_contained(ordered)


def speaker_for(node: Tag) -> Role:
    """Classify ``node`` as a user or assistant turn.

    Explicit tags and attributes win. Otherwise a ``user`` hint in the
    class attribute marks a user turn and everything else is attributed
    to the assistant.
    """

    tag = (node.name or "").lower()
    if tag == "user-query" or node.css.match(_USER_SELECTOR):
        return Role.USER
    if tag == "model-response" or node.css.match(_ASSISTANT_SELECTOR):
        return Role.ASSISTANT

    class_text = " ".join(node.get_attribute_list("class"))
    if "user" in class_text.lower():
        return Role.USER
    return Role.ASSISTANT


def best_content_node(node: Tag) -> Tag:
    """Return the most specific non-empty content container of a turn."""

    for selector in CONTENT_SELECTORS:
        candidate = node.select_one(selector)
        if candidate is not None and candidate.get_text().strip():
            return candidate
    return node


def collect_turns(search_root: Tag) -> List[ConversationTurn]:
    """Collect ordered :class:`ConversationTurn` records."""

    return [
        ConversationTurn(
            node=node,
            role=speaker_for(node),
            content=best_content_node(node),
        )
        for node in collect_turn_nodes(search_root)
    ]


def _unique(elements: Iterable[Tag]) -> List[Tag]:
    seen: set[int] = set()
    out: List[Tag] = []
    for element in elements:
        if element is None or id(element) in seen:
            continue
        seen.add(id(element))
        out.append(element)
    return out


def _sort_by_document_order(elements: List[Tag], root: Tag) -> List[Tag]:
    positions = {
        id(descendant): index
        for index, descendant in enumerate(root.descendants)
    }
    return sorted(elements, key=lambda el: positions.get(id(el), -1))


def _drop_contained(sorted_elements: List[Tag]) -> List[Tag]:
    kept: List[Tag] = []
    kept_ids: set[int] = set()
    for element in sorted_elements:
        if any(id(parent) in kept_ids for parent in element.parents):
            continue
        kept.append(element)
        kept_ids.add(id(element))
    return kept


__all__ = [
    "ASSISTANT_SELECTORS",
    "CONTENT_SELECTORS",
    "USER_SELECTORS",
    "best_content_node",
    "collect_turn_nodes",
    "collect_turns",
    "speaker_for",
]
