"""Tests for config file resolution."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from config_loader import (
    CONFIG_ENV_VAR,
    DEFAULT_CDP_ENDPOINT,
    ConfigError,
    load_config,
    resolve_runtime_options,
)


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    return tmp_path


def write_config(path: Path, data: object) -> Path:
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestLoadConfig:
    def test_defaults_without_config_file(self) -> None:
        config = load_config()
        assert config["cdp_endpoint"] == DEFAULT_CDP_ENDPOINT
        assert config["conversation_url"] is None

    def test_config_in_working_directory(self, isolated_cwd: Path) -> None:
        write_config(
            isolated_cwd / "config.json", {"cdp_endpoint": "http://x:9333"}
        )
        assert load_config()["cdp_endpoint"] == "http://x:9333"

    def test_missing_explicit_config(self) -> None:
        with pytest.raises(ConfigError, match="not found"):
            load_config("missing.json")

    def test_missing_env_config(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(CONFIG_ENV_VAR, "nowhere.json")
        with pytest.raises(ConfigError):
            load_config()

    def test_env_config_and_relative_paths(
        self, isolated_cwd: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        folder = isolated_cwd / "settings"
        folder.mkdir()
        config_file = write_config(
            folder / "export.json", {"preferences_path": "prefs.json"}
        )
        monkeypatch.setenv(CONFIG_ENV_VAR, str(config_file))
        config = load_config()
        assert config["preferences_path"] == str(folder / "prefs.json")

    def test_invalid_json(self, isolated_cwd: Path) -> None:
        (isolated_cwd / "broken.json").write_text("{", encoding="utf-8")
        with pytest.raises(ConfigError, match="Cannot read"):
            load_config("broken.json")

    def test_non_object_json(self, isolated_cwd: Path) -> None:
        write_config(isolated_cwd / "list.json", ["a"])
        with pytest.raises(ConfigError, match="JSON object"):
            load_config("list.json")


class TestResolveRuntimeOptions:
    def test_cli_overrides_config(self, isolated_cwd: Path) -> None:
        write_config(
            isolated_cwd / "config.json",
            {
                "cdp_endpoint": "http://config:9222",
                "conversation_url": "https://gemini.google.com/app/1",
            },
        )
        options = resolve_runtime_options(cdp_endpoint="http://cli:9222")
        assert options["cdp_endpoint"] == "http://cli:9222"
        assert options["conversation_url"] == "https://gemini.google.com/app/1"
        assert options["preferences_path"] is None

    def test_empty_endpoint_is_an_error(self, isolated_cwd: Path) -> None:
        write_config(isolated_cwd / "config.json", {"cdp_endpoint": ""})
        with pytest.raises(ConfigError, match="cdp_endpoint"):
            resolve_runtime_options()
