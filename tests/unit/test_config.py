"""Unit tests for configuration loading."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from pydantic import ValidationError

from bidhub_client.config import (
    BASE_URL_ENV_VAR,
    CONFIG_PATH_ENV_VAR,
    get_config_path,
    get_settings,
    load_settings,
)

if TYPE_CHECKING:
    from pathlib import Path

VALID_CONFIG = """\
api:
  base_url: "http://localhost:5000"
  timeout_seconds: 15
storage:
  backend: "memory"
logging:
  level: "INFO"
notices:
  ttl_seconds: 5
display:
  currency_symbol: "$"
"""


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(text)
    return path


@pytest.mark.unit
class TestLoadSettings:
    """Tests for load_settings."""

    def test_loads_valid_file(self, tmp_path: Path) -> None:
        settings = load_settings(_write(tmp_path, VALID_CONFIG))

        assert settings.api.base_url == "http://localhost:5000"
        assert settings.storage.backend == "memory"
        assert settings.storage.poll_interval_seconds == 1.0
        assert settings.display.currency_symbol == "$"
        assert settings.logging.directory is None

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "nope.yaml")

    def test_non_mapping_file(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="Invalid config file"):
            load_settings(_write(tmp_path, "- just\n- a list\n"))

    def test_missing_section_fails(self, tmp_path: Path) -> None:
        text = VALID_CONFIG.replace('display:\n  currency_symbol: "$"\n', "")

        with pytest.raises(ValidationError):
            load_settings(_write(tmp_path, text))

    def test_unknown_key_fails(self, tmp_path: Path) -> None:
        with pytest.raises(ValidationError):
            load_settings(_write(tmp_path, VALID_CONFIG + "extra_section: {}\n"))

    def test_file_backend_requires_directory(self, tmp_path: Path) -> None:
        text = VALID_CONFIG.replace('backend: "memory"', 'backend: "file"')

        with pytest.raises(ValidationError, match="storage.directory is required"):
            load_settings(_write(tmp_path, text))

    def test_non_positive_timeout_fails(self, tmp_path: Path) -> None:
        text = VALID_CONFIG.replace("timeout_seconds: 15", "timeout_seconds: 0")

        with pytest.raises(ValidationError):
            load_settings(_write(tmp_path, text))

    def test_base_url_env_override(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv(BASE_URL_ENV_VAR, "https://api.bidhub.example")

        settings = load_settings(_write(tmp_path, VALID_CONFIG))

        assert settings.api.base_url == "https://api.bidhub.example"


@pytest.mark.unit
class TestConfigPath:
    """Tests for config path resolution and caching."""

    def test_explicit_path_wins(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv(CONFIG_PATH_ENV_VAR, "/elsewhere.yaml")

        assert get_config_path(tmp_path / "a.yaml") == tmp_path / "a.yaml"

    def test_env_path(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(CONFIG_PATH_ENV_VAR, "/etc/bidhub/config.yaml")

        assert str(get_config_path()) == "/etc/bidhub/config.yaml"

    def test_defaults_to_cwd(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv(CONFIG_PATH_ENV_VAR, raising=False)
        monkeypatch.chdir(tmp_path)

        assert get_config_path() == tmp_path / "config.yaml"

    def test_get_settings_is_cached(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv(CONFIG_PATH_ENV_VAR, str(_write(tmp_path, VALID_CONFIG)))

        assert get_settings() is get_settings()
