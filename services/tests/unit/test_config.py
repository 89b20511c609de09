"""Tests for service configuration loading."""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from inkwell.services.config import ServiceSettings

_ENV_KEYS = (
    "INKWELL_DATA_DIR",
    "INKWELL_OPENROUTER_API_KEY",
    "INKWELL_MODEL_TIMEOUT_SECONDS",
    "OPENROUTER_API_KEY",
)


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


def test_from_environment_supports_export_and_quotes(tmp_path: Path) -> None:
    """`.env` parsing honours export prefixes and quoted values with spaces."""

    data_dir = tmp_path / "My Books"
    data_dir.mkdir()
    env_content = textwrap.dedent(
        f"""
        # comment line
          export INKWELL_DATA_DIR="{data_dir}"
        INKWELL_OPENROUTER_API_KEY='sk-from-file'
        not a pair
        """
    ).strip()
    (tmp_path / ".env").write_text(env_content, encoding="utf-8")

    settings = ServiceSettings.from_environment()

    assert settings.data_dir == data_dir
    assert settings.openrouter_api_key == "sk-from-file"


def test_environment_overrides_env_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / ".env").write_text("INKWELL_MODEL_TIMEOUT_SECONDS=30\n", encoding="utf-8")
    monkeypatch.setenv("INKWELL_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("INKWELL_MODEL_TIMEOUT_SECONDS", "45")

    settings = ServiceSettings.from_environment()

    assert settings.model_timeout_seconds == 45.0


def test_provider_key_variable_is_a_fallback(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("INKWELL_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-provider")

    assert ServiceSettings.from_environment().openrouter_api_key == "sk-provider"

    monkeypatch.setenv("INKWELL_OPENROUTER_API_KEY", "sk-inkwell")
    assert ServiceSettings.from_environment().openrouter_api_key == "sk-inkwell"


def test_missing_data_dir_is_rejected(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("INKWELL_DATA_DIR", str(tmp_path / "missing"))

    with pytest.raises(ValueError):
        ServiceSettings.from_environment()


@pytest.mark.parametrize("timeout", [0, -3])
def test_non_positive_timeouts_are_rejected(tmp_path: Path, timeout: float) -> None:
    with pytest.raises(ValueError):
        ServiceSettings(data_dir=tmp_path, model_timeout_seconds=timeout)


def test_storage_paths_derive_from_data_dir(tmp_path: Path) -> None:
    settings = ServiceSettings(data_dir=tmp_path)

    assert settings.chapters_dir == tmp_path / "chapters"
    assert settings.history_dir == tmp_path / "history"
    assert settings.search_db_path == tmp_path / "search.sqlite3"
    assert settings.openrouter_api_key is None
