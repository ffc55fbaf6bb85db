"""Copy the open Gemini conversation to the clipboard as Markdown.

Attaches to a running Chromium over the DevTools protocol, so the page
read is the user's signed-in Gemini tab.
"""

# pyright: reportUnknownMemberType=false, reportUnknownVariableType=false
# pyright: reportUnknownArgumentType=false

import argparse
import logging
import sys
import threading
from functools import partial
from typing import Any, Callable, List, Optional, TextIO

try:
    from playwright.sync_api import (  # type: ignore[import-not-found]
        Error as PlaywrightError,
        sync_playwright,
    )
except ImportError as exc:
    raise SystemExit(
        "Missing dependency 'playwright'. Install with pip install"
        " playwright && playwright install"
    ) from exc

from artifacts.workbench import PlaywrightWorkbench
from clipboard import ClipboardError, write_to_clipboard
from config_loader import ConfigError, resolve_runtime_options
from conversation.export import extract_markdown, is_gemini_url
from conversation.models import ExtractionResult
from preferences import load_include_canvas, save_include_canvas

LOGGER = logging.getLogger(__name__)

CONVERSATION_TIMEOUT = 20.0
ARTIFACT_TIMEOUT = 60.0
PAGE_LOAD_TIMEOUT_MS = 15_000

TIMEOUT_ERROR = "Timed out while reading the Gemini page."
NO_TAB_ERROR = (
    "No open Gemini tab was found. Open the conversation or pass --url."
)


def report_status(
    message: str, *, error: bool = False, stream: Optional[TextIO] = None
) -> None:
    """Print one status line; errors go to stderr."""

    target = stream or (sys.stderr if error else sys.stdout)
    prefix = "⚠️" if error else "✅"
    print(f"{prefix} {message}", file=target)


def run_with_timeout(
    task: Callable[[], ExtractionResult], timeout: float
) -> ExtractionResult:
    """Run ``task`` on a daemon thread and give up after ``timeout``.

    An abandoned worker never holds up interpreter exit.
    """

    outcome: List[ExtractionResult] = []

    def worker() -> None:
        try:
            outcome.append(task())
        except Exception as exc:  # noqa: BLE001
            LOGGER.debug("Export raised", exc_info=True)
            outcome.append(ExtractionResult.failure(f"Export failed: {exc}"))

    thread = threading.Thread(target=worker, name="gemini-export", daemon=True)
    thread.start()
    thread.join(timeout)
    if thread.is_alive() or not outcome:
        LOGGER.warning("Export exceeded %.0fs", timeout)
        return ExtractionResult.failure(TIMEOUT_ERROR)
    return outcome[0]


def _find_page(browser: Any, url: Optional[str]) -> Any:
    """Return an existing tab to export, or None."""

    pages = [page for context in browser.contexts for page in context.pages]
    if url:
        for page in pages:
            if str(page.url).rstrip("/") == url.rstrip("/"):
                return page
        return None

    gemini_pages = [page for page in pages if is_gemini_url(str(page.url))]
    if not gemini_pages:
        return None
    conversations = [page for page in gemini_pages if "/app/" in page.url]
    return (conversations or gemini_pages)[-1]


def _open_page(browser: Any, url: str) -> Any:
    """Open ``url`` in a new tab of the first browser context."""

    if not browser.contexts:
        return None
    page = browser.contexts[0].new_page()
    try:
        page.goto(url, timeout=PAGE_LOAD_TIMEOUT_MS)
        page.wait_for_load_state("domcontentloaded")
    except PlaywrightError:
        _close_page(page)
        raise
    return page


def _close_page(page: Any) -> None:
    try:
        page.close()
    except PlaywrightError as exc:
        LOGGER.warning("Could not close export tab: %s", exc)


def export_from_browser(
    cdp_endpoint: str, include_canvas: bool, url: Optional[str] = None
) -> ExtractionResult:
    """Attach to the browser at ``cdp_endpoint`` and export one tab."""

    with sync_playwright() as playwright_context:  # type: ignore[misc]
        playwright_api: Any = playwright_context
        try:
            browser: Any = playwright_api.chromium.connect_over_cdp(
                cdp_endpoint
            )
        except PlaywrightError as exc:
            LOGGER.debug("connect_over_cdp failed", exc_info=True)
            return ExtractionResult.failure(
                f"Could not connect to the browser at {cdp_endpoint}: {exc}"
            )
        opened = None
        page = _find_page(browser, url)
        if page is None and url:
            try:
                page = opened = _open_page(browser, url)
            except PlaywrightError as exc:
                return ExtractionResult.failure(f"Could not open {url}: {exc}")
        if page is None:
            return ExtractionResult.failure(NO_TAB_ERROR)
        try:
            page.bring_to_front()
            return extract_markdown(PlaywrightWorkbench(page), include_canvas)
        finally:
            if opened is not None:
                _close_page(opened)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse CLI arguments for the Gemini Markdown exporter."""

    parser = argparse.ArgumentParser(
        description=(
            "Copy the open Gemini conversation (and optionally its Canvas"
            " artifacts) to the clipboard as Markdown."
        )
    )
    parser.add_argument("--config", help="Path to config JSON file.")
    parser.add_argument(
        "--cdp-endpoint",
        help="Override the Chrome DevTools endpoint (http://host:port).",
    )
    parser.add_argument(
        "--url", help="Export this conversation URL instead of the open tab."
    )
    parser.add_argument(
        "--include-canvas",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Also export Canvas artifacts; the choice is remembered.",
    )
    parser.add_argument(
        "--stdout",
        action="store_true",
        help="Print the Markdown to stdout as well.",
    )
    parser.add_argument(
        "--verbose", action="store_true", help="Enable debug logging."
    )
    return parser.parse_args(argv)


def _resolve_include_canvas(
    flag: Optional[bool], preferences_path: Optional[str]
) -> bool:
    if flag is None:
        return load_include_canvas(preferences_path)
    try:
        save_include_canvas(flag, preferences_path)
    except OSError as exc:
        LOGGER.warning("Could not save preference: %s", exc)
    return flag


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for the Gemini Markdown export CLI."""

    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        runtime = resolve_runtime_options(
            config_path=args.config,
            cdp_endpoint=args.cdp_endpoint,
            conversation_url=args.url,
        )
    except ConfigError as exc:
        raise SystemExit(f"Config error: {exc}") from exc

    include_canvas = _resolve_include_canvas(
        args.include_canvas, runtime["preferences_path"]
    )
    timeout = ARTIFACT_TIMEOUT if include_canvas else CONVERSATION_TIMEOUT
    result = run_with_timeout(
        partial(
            export_from_browser,
            runtime["cdp_endpoint"],
            include_canvas,
            runtime["conversation_url"],
        ),
        timeout,
    )
    if not result.ok:
        report_status(result.error or "Export failed.", error=True)
        raise SystemExit(1)

    markdown = result.markdown or ""
    status_stream = sys.stderr if args.stdout else None
    if args.stdout:
        print(markdown)

    try:
        write_to_clipboard(markdown)
    except ClipboardError as exc:
        report_status(str(exc), error=True)
        if not args.stdout:
            raise SystemExit(1) from exc
        return

    report_status(
        "Copied conversation"
        + (" with Canvas artifacts" if include_canvas else "")
        + " to the clipboard.",
        stream=status_stream,
    )


if __name__ == "__main__":
    main()
