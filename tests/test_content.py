"""Tests for reading the artifact shown in the editor view."""

from __future__ import annotations

from artifacts.content import (
    compress_adjacent_duplicates,
    language_for_title,
    merge_viewports,
    pick_longest_model,
    read_open_artifact,
)
from artifacts.models import EditorModel, ExtractedArtifact
from tests.fakes import FakeCanvas, FakeWorkbench

SCRIPT = "import sys\n\nprint(sys.argv)\n"


def open_workbench(**overrides: object) -> FakeWorkbench:
    canvas = FakeCanvas("tool.py", SCRIPT, language="python")
    options: dict = {
        "canvases": [canvas],
        "panel_open": True,
        "open_title": "tool.py",
    }
    options.update(overrides)
    return FakeWorkbench(**options)


class TestHelpers:
    def test_language_for_title(self) -> None:
        assert language_for_title("main.PY") == "python"
        assert language_for_title("index.tsx") == "tsx"
        assert language_for_title("notes") is None
        assert language_for_title("archive.zip") is None
        assert language_for_title(None) is None

    def test_pick_longest_model(self) -> None:
        models = [
            EditorModel("short"),
            EditorModel("a much longer model"),
            EditorModel("   \n  \n   \n    \n"),
        ]
        assert pick_longest_model(models) == models[1]
        assert pick_longest_model([EditorModel("  ")]) is None

    def test_merge_viewports_drops_overlap(self) -> None:
        viewports = [["a", "b", "c"], ["c", "d", "e"], ["e", "f"]]
        assert merge_viewports(viewports) == ["a", "b", "c", "d", "e", "f"]

    def test_merge_viewports_without_overlap(self) -> None:
        assert merge_viewports([["a"], ["b"]]) == ["a", "b"]

    def test_compress_adjacent_duplicates(self) -> None:
        lines = ["a", "a", "b", "a", "a", "a"]
        assert compress_adjacent_duplicates(lines) == ["a", "b", "a"]


class TestReadOpenArtifact:
    def test_longest_model_wins(self) -> None:
        artifact = read_open_artifact(open_workbench())
        assert artifact == ExtractedArtifact(
            "tool.py", "import sys\n\nprint(sys.argv)", "python"
        )

    def test_untyped_model_falls_back_to_extension(self) -> None:
        workbench = open_workbench(
            canvases=[FakeCanvas("tool.py", SCRIPT, language="plaintext")]
        )
        artifact = read_open_artifact(workbench)
        assert artifact is not None
        assert artifact.language == "python"

    def test_viewport_lines_when_no_models(self) -> None:
        content = "one\ntwo\nthree\nfour\nfive"
        workbench = open_workbench(
            canvases=[FakeCanvas("notes.md", content)],
            open_title="notes.md",
            expose_models=False,
        )
        artifact = read_open_artifact(workbench, "notes.md")
        assert artifact == ExtractedArtifact("notes.md", content, "markdown")

    def test_other_title_is_not_ready(self) -> None:
        assert read_open_artifact(open_workbench(), "other.py") is None

    def test_expected_title_is_normalized(self) -> None:
        assert read_open_artifact(open_workbench(), " tool.py\n") is not None

    def test_closed_editor(self) -> None:
        workbench = open_workbench(open_title=None)
        assert read_open_artifact(workbench) is None

    def test_content_not_rendered_yet(self) -> None:
        workbench = open_workbench(
            canvases=[FakeCanvas("tool.py", SCRIPT, render_delay=1.0)]
        )
        assert read_open_artifact(workbench, "tool.py") is None
        workbench.clock.sleep(1.0)
        assert read_open_artifact(workbench, "tool.py") is not None

    def test_broken_editor(self) -> None:
        workbench = open_workbench(
            canvases=[FakeCanvas("tool.py", SCRIPT, broken=True)]
        )
        assert read_open_artifact(workbench) is None

    def test_markdown_rendering(self) -> None:
        artifact = ExtractedArtifact("x.md", "```js\nx\n```", "markdown")
        assert artifact.to_markdown() == (
            "## Canvas: x.md\n````markdown\n```js\nx\n```\n````"
        )
        assert ExtractedArtifact("notes", "plain").to_markdown() == (
            "## Canvas: notes\n```\nplain\n```"
        )
