"""Tests for the command-line entry point."""

from __future__ import annotations

import subprocess
import sys
import textwrap
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Iterator, List, Optional

import pytest

import copy_gemini_markdown as cli
from config_loader import CONFIG_ENV_VAR
from conversation.models import ExtractionResult
from preferences import PREFERENCES_ENV_VAR

PROJECT_ROOT = Path(__file__).resolve().parents[1]


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    monkeypatch.setenv(PREFERENCES_ENV_VAR, str(tmp_path / "prefs.json"))
    return tmp_path


class TestRunWithTimeout:
    def test_returns_task_result(self) -> None:
        result = cli.run_with_timeout(
            lambda: ExtractionResult.success("# Doc"), 1.0
        )
        assert result.markdown == "# Doc"

    def test_times_out(self) -> None:
        release = threading.Event()

        def slow() -> ExtractionResult:
            release.wait(5)
            return ExtractionResult.success("late")

        try:
            result = cli.run_with_timeout(slow, 0.05)
        finally:
            release.set()
        assert result.error == cli.TIMEOUT_ERROR

    def test_task_errors_become_results(self) -> None:
        def boom() -> ExtractionResult:
            raise RuntimeError("boom")

        result = cli.run_with_timeout(boom, 1.0)
        assert result.error == "Export failed: boom"

    def test_abandoned_export_does_not_block_exit(self) -> None:
        script = textwrap.dedent(
            """
            import time

            import copy_gemini_markdown as cli
            from conversation.models import ExtractionResult

            def slow():
                time.sleep(5)
                return ExtractionResult.success("late")

            print(cli.run_with_timeout(slow, 0.1).error)
            raise SystemExit(1)
            """
        )
        started = time.monotonic()
        completed = subprocess.run(
            [sys.executable, "-c", script],
            cwd=PROJECT_ROOT,
            capture_output=True,
            text=True,
            timeout=30,
        )
        elapsed = time.monotonic() - started

        assert completed.returncode == 1
        assert cli.TIMEOUT_ERROR in completed.stdout
        assert elapsed < 4.5


class TestFindPage:
    def _browser(self, *urls: str) -> Any:
        pages = [SimpleNamespace(url=url) for url in urls]
        return SimpleNamespace(contexts=[SimpleNamespace(pages=pages)])

    def test_prefers_conversation_tab(self) -> None:
        browser = self._browser(
            "https://example.com/",
            "https://gemini.google.com/app/1",
            "https://gemini.google.com/",
        )
        assert cli._find_page(browser, None).url.endswith("/app/1")

    def test_no_gemini_tab(self) -> None:
        assert cli._find_page(self._browser("https://example.com"), None) is None

    def test_existing_tab_for_url(self) -> None:
        browser = self._browser("https://gemini.google.com/app/2/")
        page = cli._find_page(browser, "https://gemini.google.com/app/2")
        assert page.url == "https://gemini.google.com/app/2/"

    def test_unknown_url_has_no_existing_tab(self) -> None:
        browser = self._browser("https://gemini.google.com/app/2")
        assert cli._find_page(browser, "https://gemini.google.com/app/3") is None


class FakeTab:
    def __init__(self, url: str = "about:blank") -> None:
        self.url = url
        self.closed = False

    def goto(self, url: str, timeout: float) -> None:
        self.url = url

    def wait_for_load_state(self, state: str) -> None:
        pass

    def bring_to_front(self) -> None:
        pass

    def close(self) -> None:
        self.closed = True


class FakeBrowserContext:
    def __init__(self, *urls: str) -> None:
        self.pages = [FakeTab(url) for url in urls]

    def new_page(self) -> FakeTab:
        tab = FakeTab()
        self.pages.append(tab)
        return tab


class TestExportFromBrowser:
    URL = "https://gemini.google.com/app/9"

    def _attach(
        self, monkeypatch: pytest.MonkeyPatch, context: FakeBrowserContext
    ) -> None:
        browser = SimpleNamespace(contexts=[context])

        @contextmanager
        def fake_sync_playwright() -> Iterator[Any]:
            yield SimpleNamespace(
                chromium=SimpleNamespace(
                    connect_over_cdp=lambda endpoint: browser
                )
            )

        monkeypatch.setattr(cli, "sync_playwright", fake_sync_playwright)
        monkeypatch.setattr(
            cli,
            "extract_markdown",
            lambda workbench, include: ExtractionResult.success(
                workbench.url
            ),
        )

    def test_tab_opened_for_url_is_closed(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        context = FakeBrowserContext()
        self._attach(monkeypatch, context)

        result = cli.export_from_browser("http://cdp", False, self.URL)

        assert result.markdown == self.URL
        assert len(context.pages) == 1
        assert context.pages[0].closed

    def test_users_own_tab_stays_open(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        context = FakeBrowserContext(self.URL)
        self._attach(monkeypatch, context)

        result = cli.export_from_browser("http://cdp", False, self.URL)

        assert result.markdown == self.URL
        assert len(context.pages) == 1
        assert not context.pages[0].closed


class TestMain:
    def _patch_export(
        self, monkeypatch: pytest.MonkeyPatch, result: ExtractionResult
    ) -> List[tuple]:
        calls: List[tuple] = []

        def fake_export(
            endpoint: str, include_canvas: bool, url: Optional[str] = None
        ) -> ExtractionResult:
            calls.append((endpoint, include_canvas, url))
            return result

        monkeypatch.setattr(cli, "export_from_browser", fake_export)
        return calls

    def test_success_copies_and_remembers_choice(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture
    ) -> None:
        calls = self._patch_export(
            monkeypatch, ExtractionResult.success("# Doc")
        )
        copied: List[str] = []
        monkeypatch.setattr(
            cli, "write_to_clipboard", lambda text: copied.append(text)
        )

        cli.main(["--include-canvas"])
        cli.main([])

        assert calls == [
            ("http://localhost:9222", True, None),
            ("http://localhost:9222", True, None),
        ]
        assert copied == ["# Doc", "# Doc"]
        assert "✅" in capsys.readouterr().out

    def test_stdout_mode(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture
    ) -> None:
        self._patch_export(monkeypatch, ExtractionResult.success("# Doc"))
        monkeypatch.setattr(cli, "write_to_clipboard", lambda text: "pyperclip")

        cli.main(["--stdout", "--no-include-canvas", "--url", "https://x"])

        captured = capsys.readouterr()
        assert captured.out == "# Doc\n"
        assert "✅" in captured.err

    def test_error_exits_non_zero(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture
    ) -> None:
        self._patch_export(
            monkeypatch, ExtractionResult.failure("Not a Gemini page.")
        )
        with pytest.raises(SystemExit) as excinfo:
            cli.main([])
        assert excinfo.value.code == 1
        assert "⚠️ Not a Gemini page." in capsys.readouterr().err

    def test_config_error(self) -> None:
        with pytest.raises(SystemExit, match="Config error"):
            cli.main(["--config", "missing.json"])
