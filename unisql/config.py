"""App configuration loading helpers."""

from __future__ import annotations

from pathlib import Path

import tomllib

from pydantic import BaseModel, Field, ValidationError

from .models import DatabaseType

CONFIG_FILE = Path.home() / ".config" / "unisql" / "config.toml"
DATA_DIR = Path.home() / ".local" / "share" / "unisql"

THEMES = ("dark", "light")


class ConnectionTestConfig(BaseModel):
    """Timing for the simulated connection test."""

    delay: float = Field(default=2.0, ge=0)
    timeout: float = Field(default=10.0, gt=0)


class AppConfig(BaseModel):
    """Shape of the application configuration file."""

    theme: str = "dark"
    active_type: DatabaseType = DatabaseType.POSTGRESQL
    data_dir: Path = DATA_DIR
    export_dir: Path = Field(default_factory=Path.home)
    log_file: Path | None = None
    log_level: str = "INFO"
    connection_test: ConnectionTestConfig = Field(default_factory=ConnectionTestConfig)

    def with_theme(self, theme: str) -> AppConfig:
        """Return a copy with the theme updated."""

        return self.model_copy(update={"theme": theme})

    def with_active_type(self, db_type: DatabaseType) -> AppConfig:
        """Return a copy with the selected database tab updated."""

        return self.model_copy(update={"active_type": db_type})


def load_config() -> AppConfig:
    """Load configuration from disk; fall back to defaults if missing."""

    try:
        data = _read_config_file()
    except FileNotFoundError:
        return AppConfig()
    except (tomllib.TOMLDecodeError, OSError):
        return AppConfig()
    try:
        return AppConfig(**data)
    except ValidationError:
        return AppConfig()


def save_config(config: AppConfig) -> None:
    """Persist configuration to disk."""

    CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    lines: list[str] = [
        f'theme = "{config.theme}"',
        f'active_type = "{config.active_type.value}"',
        f'data_dir = "{_toml_path(config.data_dir)}"',
        f'export_dir = "{_toml_path(config.export_dir)}"',
    ]
    if config.log_file is not None:
        lines.append(f'log_file = "{_toml_path(config.log_file)}"')
    lines.append(f'log_level = "{config.log_level}"')
    lines.append("")
    lines.append("[connection_test]")
    lines.append(f"delay = {float(config.connection_test.delay)}")
    lines.append(f"timeout = {float(config.connection_test.timeout)}")
    CONFIG_FILE.write_text("\n".join(lines) + "\n")


def _toml_path(path: Path) -> str:
    return str(path).replace("\\", "\\\\").replace('"', '\\"')


def _read_config_file() -> dict[str, object]:
    with CONFIG_FILE.open("rb") as handle:
        raw = tomllib.load(handle)
    data: dict[str, object] = {}
    theme = raw.get("theme")
    if isinstance(theme, str) and theme in THEMES:
        data["theme"] = theme
    active_type = raw.get("active_type")
    if isinstance(active_type, str) and active_type in {kind.value for kind in DatabaseType}:
        data["active_type"] = DatabaseType(active_type)
    for key in ("data_dir", "export_dir", "log_file"):
        value = raw.get(key)
        if isinstance(value, str) and value:
            data[key] = Path(value).expanduser()
    log_level = raw.get("log_level")
    if isinstance(log_level, str):
        data["log_level"] = log_level.upper()
    connection_test = raw.get("connection_test")
    if isinstance(connection_test, dict):
        timing: dict[str, float] = {}
        for key in ("delay", "timeout"):
            value = connection_test.get(key)
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                timing[key] = float(value)
        try:
            data["connection_test"] = ConnectionTestConfig(**timing)
        except ValidationError:
            pass
    return data


__all__ = ["AppConfig", "CONFIG_FILE", "ConnectionTestConfig", "DATA_DIR", "load_config", "save_config"]
