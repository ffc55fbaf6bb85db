"""Helpers for resolving the exporter's JSON configuration file."""

import json
import os
from typing import Any, Dict, Optional

DEFAULT_CONFIG_NAME = "config.json"
CONFIG_ENV_VAR = "GEMINI_EXPORT_CONFIG"
DEFAULT_CDP_ENDPOINT = "http://localhost:9222"

DEFAULTS: Dict[str, Any] = {
    "cdp_endpoint": DEFAULT_CDP_ENDPOINT,
    "conversation_url": None,
    "preferences_path": None,
}


class ConfigError(Exception):
    """Raised when runtime configuration cannot be loaded."""


def _resolve_config_path(path: Optional[str]) -> Optional[str]:
    """Return the config path to read, or ``None`` when none exists.

    An explicitly requested file (argument or environment variable) must
    exist; the default ``config.json`` is optional.
    """
    env_override = os.environ.get(CONFIG_ENV_VAR)
    explicit = path or env_override
    candidate = explicit or DEFAULT_CONFIG_NAME
    expanded = os.path.expanduser(candidate)
    if os.path.isabs(expanded) and os.path.isfile(expanded):
        return expanded

    search_roots = [os.getcwd(), os.path.dirname(os.path.abspath(__file__))]
    for root in search_roots:
        resolved = os.path.abspath(os.path.join(root, expanded))
        if os.path.isfile(resolved):
            return resolved

    if explicit:
        raise ConfigError(f"Configuration file not found: {candidate}")
    return None


def _resolve_path(value: str, base_dir: str) -> str:
    """Resolve ``value`` into an absolute path relative to ``base_dir``."""
    expanded = os.path.expanduser(value)
    if os.path.isabs(expanded):
        return expanded
    return os.path.abspath(os.path.join(base_dir, expanded))


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load the JSON config merged over :data:`DEFAULTS`.

    ``*_path`` values are resolved relative to the config file's folder.
    """
    resolved: Dict[str, Any] = dict(DEFAULTS)
    config_path = _resolve_config_path(path)
    if config_path is None:
        return resolved

    try:
        with open(config_path, "r", encoding="utf-8") as config_file:
            data = json.load(config_file)
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Cannot read {config_path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"{config_path} must contain a JSON object.")

    base_dir = os.path.dirname(config_path)
    for key, value in data.items():
        if isinstance(value, str) and key.endswith("_path"):
            resolved[key] = _resolve_path(value, base_dir)
        else:
            resolved[key] = value

    return resolved


def resolve_runtime_options(
    *,
    config_path: Optional[str] = None,
    cdp_endpoint: Optional[str] = None,
    conversation_url: Optional[str] = None,
) -> Dict[str, Any]:
    """Combine CLI overrides with the config file."""
    config = load_config(config_path)

    endpoint = cdp_endpoint or config.get("cdp_endpoint")
    if not endpoint:
        raise ConfigError("Missing cdp_endpoint configuration.")

    return {
        "cdp_endpoint": endpoint,
        "conversation_url": conversation_url or config.get("conversation_url"),
        "preferences_path": config.get("preferences_path"),
    }


__all__ = [
    "CONFIG_ENV_VAR",
    "DEFAULT_CDP_ENDPOINT",
    "ConfigError",
    "load_config",
    "resolve_runtime_options",
]
