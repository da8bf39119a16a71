"""
core/config/loader.py 테스트

settings.yaml 로드, 검증, Settings 싱글턴 테스트
"""

from pathlib import Path

import pytest

from core.config.loader import (
    AppConfig,
    ConfigLoadError,
    RetryConfig,
    Settings,
    get_settings,
    load_config,
)
from core.constants import Defaults


class TestAppConfig:
    """기본값 / 불변성"""

    def test_defaults(self) -> None:
        config = AppConfig()

        assert config.retry.conflict_max_attempts == Defaults.CONFLICT_MAX_ATTEMPTS
        assert config.cache.enabled is True
        assert config.logging.level == "INFO"
        assert config.web.port == Defaults.WEB_PORT

    def test_frozen(self) -> None:
        config = RetryConfig()

        with pytest.raises(AttributeError):
            config.storage_max_attempts = 10  # type: ignore


class TestLoadConfig:
    """load_config 테스트"""

    def test_load_file(self, temp_settings_file: Path) -> None:
        config = load_config(temp_settings_file)

        assert config.database.busy_timeout_ms == 5000
        assert config.retry.conflict_max_attempts == 4
        assert config.retry.storage_max_attempts == 2
        assert config.retry.backoff_base_sec == pytest.approx(0.01)
        assert config.cache.enabled is False
        assert config.cache.max_entries == 16
        assert config.logging.level == "DEBUG"
        assert config.web.host == "0.0.0.0"
        assert config.web.port == 9000

    def test_relative_db_path_resolved_against_config(self, temp_settings_file: Path) -> None:
        config = load_config(temp_settings_file)

        expected = (temp_settings_file.parent / "data" / "test_ledger.db").resolve()
        assert config.database.path == expected

    def test_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        config = load_config(tmp_path / "nope.yaml")

        assert config == AppConfig()

    def test_empty_file_uses_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.yaml"
        path.write_text("", encoding="utf-8")

        assert load_config(path) == AppConfig()

    def test_partial_file(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.yaml"
        path.write_text("cache:\n  max_entries: 8\n", encoding="utf-8")

        config = load_config(path)

        assert config.cache.max_entries == 8
        assert config.retry == RetryConfig()

    def test_malformed_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.yaml"
        path.write_text("retry: [unclosed\n", encoding="utf-8")

        with pytest.raises(ConfigLoadError, match="파싱 실패"):
            load_config(path)

    def test_top_level_must_be_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")

        with pytest.raises(ConfigLoadError):
            load_config(path)

    def test_section_must_be_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.yaml"
        path.write_text("retry: 3\n", encoding="utf-8")

        with pytest.raises(ConfigLoadError, match="retry"):
            load_config(path)

    @pytest.mark.parametrize("content", [
        "retry:\n  conflict_max_attempts: many\n",
        "retry:\n  storage_max_attempts: 0\n",
        "retry:\n  backoff_base_sec: -1\n",
        "cache:\n  max_entries: abc\n",
        "logging:\n  level: LOUD\n",
    ])
    def test_invalid_values(self, tmp_path: Path, content: str) -> None:
        path = tmp_path / "settings.yaml"
        path.write_text(content, encoding="utf-8")

        with pytest.raises(ConfigLoadError):
            load_config(path)


class TestSettings:
    """Settings 싱글턴 테스트"""

    def test_singleton(self, reset_settings: None, temp_settings_file: Path) -> None:
        first = get_settings(temp_settings_file)
        second = get_settings()

        assert first is second
        assert second.web.port == 9000

    def test_properties(self, reset_settings: None, temp_settings_file: Path) -> None:
        settings = Settings(temp_settings_file)

        assert settings.db_path == settings.config.database.path
        assert settings.database.busy_timeout_ms == 5000
        assert settings.retry.conflict_max_attempts == 4
        assert settings.cache.enabled is False
        assert settings.logging.level == "DEBUG"

    def test_reset(self, reset_settings: None, temp_settings_file: Path, tmp_path: Path) -> None:
        get_settings(temp_settings_file)
        Settings.reset()

        settings = get_settings(tmp_path / "missing.yaml")

        assert settings.web.port == Defaults.WEB_PORT
