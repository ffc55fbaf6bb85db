"""Copy the exported Markdown to the system clipboard."""

import logging
import shutil
import subprocess
from typing import List, Sequence

import pyperclip

LOGGER = logging.getLogger(__name__)

# Tried in order when pyperclip has no working backend.
FALLBACK_COMMANDS: Sequence[Sequence[str]] = (
    ("pbcopy",),
    ("clip",),
    ("wl-copy",),
    ("xclip", "-selection", "clipboard"),
    ("xsel", "--clipboard", "--input"),
)


class ClipboardError(Exception):
    """Raised when no clipboard mechanism accepted the text."""


def _copy_with_command(command: Sequence[str], text: str) -> None:
    subprocess.run(
        list(command),
        input=text.encode("utf-8"),
        check=True,
        timeout=5,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.PIPE,
    )


def write_to_clipboard(text: str) -> str:
    """Copy ``text`` and return the name of the mechanism that worked."""

    failures: List[str] = []
    try:
        pyperclip.copy(text)
        return "pyperclip"
    except pyperclip.PyperclipException as exc:
        LOGGER.debug("pyperclip copy failed: %s", exc)
        failures.append(f"pyperclip: {exc}")

    for command in FALLBACK_COMMANDS:
        if shutil.which(command[0]) is None:
            continue
        try:
            _copy_with_command(command, text)
        except (OSError, subprocess.SubprocessError) as exc:
            LOGGER.debug("%s failed: %s", command[0], exc)
            failures.append(f"{command[0]}: {exc}")
            continue
        return command[0]

    detail = "; ".join(failures) or "no clipboard tool available"
    raise ClipboardError(f"Could not copy to clipboard ({detail}).")


__all__ = ["ClipboardError", "FALLBACK_COMMANDS", "write_to_clipboard"]
