"""Tests for locating the created-artifacts list."""

from __future__ import annotations

from bs4 import BeautifulSoup, Tag

from artifacts.discovery import (
    EMPTY_BOX,
    HIDDEN_MARKER,
    find_created_section,
    has_reference_chips,
    is_rendered,
    list_artifact_titles,
    normalize_label,
    normalize_title,
)


def soup_of(html: str) -> BeautifulSoup:
    return BeautifulSoup(f"<body>{html}</body>", "lxml")


def chip(title: str) -> str:
    return (
        '<immersive-entry-chip><span data-test-id="artifact-title">'
        f"{title}</span></immersive-entry-chip>"
    )


class TestFindCreatedSection:
    def test_structural_marker(self) -> None:
        soup = soup_of(
            f'<div data-test-id="created-artifacts">{chip("a.py")}</div>'
        )
        section = find_created_section(soup)
        assert section is not None
        assert section.get("data-test-id") == "created-artifacts"

    def test_hidden_structural_marker_is_ignored(self) -> None:
        soup = soup_of(
            f'<div data-test-id="created-artifacts" {HIDDEN_MARKER}="1">'
            f"{chip('a.py')}</div>"
        )
        assert find_created_section(soup) is None

    def test_marker_without_chips_is_ignored(self) -> None:
        soup = soup_of('<div class="created-artifacts"><p>Empty</p></div>')
        assert find_created_section(soup) is None

    def test_localized_header_fallback(self) -> None:
        soup = soup_of(
            "<section><h3>作成済み</h3>"
            '<div class="artifact-chip"><span class="title">a.py</span></div>'
            "</section>"
        )
        section = find_created_section(soup)
        assert section is not None
        assert list_artifact_titles(section) == ["a.py"]

    def test_header_with_count(self) -> None:
        soup = soup_of(
            "<div><div><h4>Created (2)</h4></div>"
            f"{chip('a.py')}{chip('b.md')}</div>"
        )
        section = find_created_section(soup)
        assert list_artifact_titles(section) == ["a.py", "b.md"]

    def test_unrelated_header_is_ignored(self) -> None:
        soup = soup_of(f"<div><h3>Recent</h3>{chip('a.py')}</div>")
        assert find_created_section(soup) is None

    def test_none_root(self) -> None:
        assert find_created_section(None) is None


class TestListArtifactTitles:
    def test_distinct_titles_in_order(self) -> None:
        soup = soup_of(
            '<div data-test-id="created-artifacts">'
            f"{chip('b.md')}{chip('a.py')}{chip('b.md')}{chip('A.py')}</div>"
        )
        section = find_created_section(soup)
        assert list_artifact_titles(section) == ["b.md", "a.py", "A.py"]

    def test_chips_without_label_are_skipped(self) -> None:
        soup = soup_of(
            '<div data-test-id="created-artifacts">'
            "<immersive-entry-chip><span>unlabelled</span>"
            f"</immersive-entry-chip>{chip('  main.py ')}</div>"
        )
        section = find_created_section(soup)
        assert list_artifact_titles(section) == ["main.py"]

    def test_none_section(self) -> None:
        assert list_artifact_titles(None) == []


class TestIsRendered:
    def _element(self, html: str) -> Tag:
        element = soup_of(html).select_one("#target")
        assert element is not None
        return element

    def test_plain_element(self) -> None:
        assert is_rendered(self._element('<div id="target">x</div>'))

    def test_hidden_ancestor(self) -> None:
        html = f'<div {HIDDEN_MARKER}="1"><span id="target">x</span></div>'
        assert not is_rendered(self._element(html))

    def test_empty_box_only_hides_the_element_itself(self) -> None:
        child = f'<div {HIDDEN_MARKER}="{EMPTY_BOX}"><span id="target">x</span></div>'
        assert is_rendered(self._element(child))
        own = f'<div id="target" {HIDDEN_MARKER}="{EMPTY_BOX}">x</div>'
        assert not is_rendered(self._element(own))

    def test_inline_style_and_hidden_attribute(self) -> None:
        styled = '<div style="opacity: 0"><p id="target">x</p></div>'
        assert not is_rendered(self._element(styled))
        hidden = '<div hidden><p id="target">x</p></div>'
        assert not is_rendered(self._element(hidden))
        faded = '<div style="opacity: 0.5"><p id="target">x</p></div>'
        assert is_rendered(self._element(faded))

    def test_none(self) -> None:
        assert not is_rendered(None)


class TestHelpers:
    def test_normalize_label(self) -> None:
        assert normalize_label("  Created\n (3) ") == "created"
        assert normalize_label("Créés:") == "créés"

    def test_normalize_title(self) -> None:
        assert normalize_title("  my\n  file.py ") == "my file.py"

    def test_reference_chips(self) -> None:
        assert has_reference_chips(soup_of(chip("draft")))
        assert has_reference_chips(
            soup_of('<div data-test-id="Immersive-Chip-1">x</div>')
        )
        assert not has_reference_chips(soup_of("<p>nothing</p>"))
        assert not has_reference_chips(None)
