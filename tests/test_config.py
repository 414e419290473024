"""Tests for AppConfig helpers."""

from __future__ import annotations

from pathlib import Path

import pytest

from unisql import config as config_module
from unisql.config import AppConfig, ConnectionTestConfig, load_config, save_config
from unisql.models import DatabaseType


def test_load_config_returns_defaults_when_missing(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config_module, "CONFIG_FILE", tmp_path / "config.toml")

    result = load_config()

    assert result == AppConfig()


def test_load_config_reads_values(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text(
        f"""
theme = "light"
active_type = "Oracle"
data_dir = "{tmp_path / 'data'}"
export_dir = "{tmp_path / 'exports'}"
log_file = "{tmp_path / 'unisql.log'}"
log_level = "debug"

[connection_test]
delay = 0
timeout = 3.5
"""
    )
    monkeypatch.setattr(config_module, "CONFIG_FILE", config_path)

    result = load_config()

    assert result.theme == "light"
    assert result.active_type is DatabaseType.ORACLE
    assert result.data_dir == tmp_path / "data"
    assert result.export_dir == tmp_path / "exports"
    assert result.log_file == tmp_path / "unisql.log"
    assert result.log_level == "DEBUG"
    assert result.connection_test == ConnectionTestConfig(delay=0.0, timeout=3.5)


def test_load_config_ignores_invalid_values(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text(
        """
theme = "neon"
active_type = "SQLite"

[connection_test]
delay = -1
timeout = 5
"""
    )
    monkeypatch.setattr(config_module, "CONFIG_FILE", config_path)

    result = load_config()

    assert result.theme == "dark"
    assert result.active_type is DatabaseType.POSTGRESQL
    assert result.connection_test == ConnectionTestConfig()


def test_load_config_handles_toml_errors(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text("theme = [unterminated")
    monkeypatch.setattr(config_module, "CONFIG_FILE", config_path)

    result = load_config()

    assert result == AppConfig()


def test_save_config_persists_values(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = tmp_path / "nested" / "config.toml"
    monkeypatch.setattr(config_module, "CONFIG_FILE", config_path)

    save_config(
        AppConfig(
            theme="light",
            active_type=DatabaseType.MYSQL,
            data_dir=tmp_path / "data",
            export_dir=tmp_path / "exports",
            connection_test=ConnectionTestConfig(delay=1, timeout=4),
        )
    )

    content = config_path.read_text()
    assert 'theme = "light"' in content
    assert 'active_type = "MySQL"' in content
    assert "[connection_test]" in content
    assert "delay = 1.0" in content
    assert "log_file" not in content


def test_save_then_load_round_trips(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config_module, "CONFIG_FILE", tmp_path / "config.toml")
    original = AppConfig(
        theme="light",
        active_type=DatabaseType.ORACLE,
        data_dir=tmp_path / "data",
        export_dir=tmp_path / "exports",
        log_file=tmp_path / "logs" / "unisql.log",
        log_level="WARNING",
        connection_test=ConnectionTestConfig(delay=0.5, timeout=2),
    )

    save_config(original)

    assert load_config() == original


def test_with_helpers_return_updated_copies() -> None:
    config = AppConfig()

    themed = config.with_theme("light")
    switched = config.with_active_type(DatabaseType.MYSQL)

    assert themed.theme == "light"
    assert switched.active_type is DatabaseType.MYSQL
    assert config == AppConfig()
