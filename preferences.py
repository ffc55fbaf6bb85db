"""Persisted user preference: whether Canvas artifacts are exported."""

import json
import logging
import os
from typing import Any, Dict, Optional

LOGGER = logging.getLogger(__name__)

PREFERENCES_ENV_VAR = "GEMINI_EXPORT_PREFERENCES"
INCLUDE_CANVAS_KEY = "include_canvas"
DEFAULT_PREFERENCES_PATH = os.path.join(
    "~", ".config", "gemini-markdown-export", "preferences.json"
)


def preferences_path(path: Optional[str] = None) -> str:
    """Return the preference file location, honoring overrides."""
    candidate = (
        path or os.environ.get(PREFERENCES_ENV_VAR) or DEFAULT_PREFERENCES_PATH
    )
    return os.path.abspath(os.path.expanduser(candidate))


def _read(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = json.load(handle)
    except FileNotFoundError:
        return {}
    except (OSError, json.JSONDecodeError) as exc:
        LOGGER.warning("Ignoring unreadable preferences %s: %s", path, exc)
        return {}
    return data if isinstance(data, dict) else {}


def load_include_canvas(path: Optional[str] = None) -> bool:
    """Return the stored include-Canvas choice, ``False`` when unset."""
    value = _read(preferences_path(path)).get(INCLUDE_CANVAS_KEY, False)
    return value is True


def save_include_canvas(value: bool, path: Optional[str] = None) -> str:
    """Store the include-Canvas choice and return the file written."""
    target = preferences_path(path)
    data = _read(target)
    data[INCLUDE_CANVAS_KEY] = bool(value)
    os.makedirs(os.path.dirname(target), exist_ok=True)
    with open(target, "w", encoding="utf-8") as handle:
        json.dump(data, handle, indent=2)
        handle.write("\n")
    return target


__all__ = [
    "INCLUDE_CANVAS_KEY",
    "PREFERENCES_ENV_VAR",
    "load_include_canvas",
    "preferences_path",
    "save_include_canvas",
]
