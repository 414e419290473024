"""App-level tests for the connection manager."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from unisql.app import UniSqlApp
from unisql.config import AppConfig
from unisql.models import ConnectionDraft, DatabaseType
from unisql.providers import DatabaseTabProvider, TransferProvider
from unisql.storage import JsonFileStorage
from unisql.store import ConnectionStore
from unisql.widgets import ConnectionList, StatusBar, list_id


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def config_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    path = tmp_path / "config.toml"
    monkeypatch.setattr("unisql.config.CONFIG_FILE", path)
    return path


@pytest.fixture
def app_config(tmp_path: Path, config_path: Path, monkeypatch: pytest.MonkeyPatch) -> AppConfig:
    config = AppConfig(data_dir=tmp_path / "data", export_dir=tmp_path / "exports")
    monkeypatch.setattr("unisql.app._load_app_config", lambda: config)
    return config


class _DummyScreen:
    """Minimal stub so providers can reference an app without a running screen stack."""

    def __init__(self, app: UniSqlApp) -> None:
        self.app = app
        self.focused = None


def _draft(name: str, db_type: DatabaseType = DatabaseType.POSTGRESQL) -> ConnectionDraft:
    return ConnectionDraft(type=db_type, connection_name=name, host="localhost", username="admin")


def _seed(config: AppConfig, *names: str) -> None:
    store = ConnectionStore(JsonFileStorage(config.data_dir))
    for name in names:
        store.create(_draft(name))


def test_app_loads_persisted_connections(app_config: AppConfig) -> None:
    _seed(app_config, "Alpha", "Beta")

    app = UniSqlApp()

    assert [record.connection_name for record in app.store.list_by_type(DatabaseType.POSTGRESQL)] == ["Alpha", "Beta"]
    assert app.active_type is DatabaseType.POSTGRESQL


def test_create_connection_switches_to_its_type(app_config: AppConfig, config_path: Path) -> None:
    app = UniSqlApp()

    record = app.create_connection(_draft("Orders", DatabaseType.MYSQL))

    assert record is not None and record.port == 3306
    assert app.active_type is DatabaseType.MYSQL
    assert 'active_type = "MySQL"' in config_path.read_text()
    assert (app_config.data_dir / "database-connections.json").exists()


def test_move_connection_reorders_within_type(app_config: AppConfig) -> None:
    _seed(app_config, "Alpha", "Beta", "Gamma")
    app = UniSqlApp()
    gamma = app.store.list_by_type(DatabaseType.POSTGRESQL)[2]

    assert app.move_connection(gamma.id, -1) is True
    assert app.move_connection(gamma.id, -1) is True
    assert app.move_connection(gamma.id, -1) is False

    names = [record.connection_name for record in app.store.list_by_type(DatabaseType.POSTGRESQL)]
    assert names == ["Gamma", "Alpha", "Beta"]


def test_edit_connection_reports_unknown_id(app_config: AppConfig) -> None:
    app = UniSqlApp()

    assert app.edit_connection("missing", _draft("Ghost")) is None
    message, severity = app._pending_notifications[-1]  # type: ignore[attr-defined]
    assert severity == "error"
    assert "missing" in message


def test_export_then_import_adds_copies(app_config: AppConfig) -> None:
    _seed(app_config, "Alpha", "Beta")
    app = UniSqlApp()

    path = app.export_connections()

    assert path is not None and path.parent == app_config.export_dir
    assert path.name.startswith("database-connections-")
    document = json.loads(path.read_text())
    assert [entry["connectionName"] for entry in document["connections"]] == ["Alpha", "Beta"]

    result = app.import_connections(path)

    assert result is not None
    assert result.accepted_count == 2
    assert result.rejected_count == 0
    records = app.store.list_by_type(DatabaseType.POSTGRESQL)
    assert [record.connection_name for record in records] == ["Alpha", "Beta", "Alpha", "Beta"]
    assert len({record.id for record in records}) == 4


def test_import_reports_malformed_file(app_config: AppConfig, tmp_path: Path) -> None:
    path = tmp_path / "broken.json"
    path.write_text("not json")
    app = UniSqlApp()

    assert app.import_connections(path) is None
    assert app.import_connections(tmp_path / "absent.json") is None
    severities = [severity for _, severity in app._pending_notifications]  # type: ignore[attr-defined]
    assert severities == ["error", "error"]
    assert app.store.records == ()


def test_corrupt_storage_starts_empty_with_warning(app_config: AppConfig) -> None:
    app_config.data_dir.mkdir(parents=True)
    (app_config.data_dir / "database-connections.json").write_text("{broken")

    app = UniSqlApp()

    assert app.store.records == ()
    assert app.store.load_error is not None
    message, severity = app._pending_notifications[0]  # type: ignore[attr-defined]
    assert severity == "warning"
    assert "starting empty" in message


def test_ephemeral_mode_writes_nothing(app_config: AppConfig) -> None:
    app = UniSqlApp(ephemeral=True)

    app.create_connection(_draft("Scratch"))

    assert len(app.store.records) == 1
    assert not app_config.data_dir.exists()


@pytest.mark.anyio
async def test_database_tab_provider_switches_type(app_config: AppConfig, config_path: Path) -> None:
    app = UniSqlApp()
    provider = DatabaseTabProvider(_DummyScreen(app))  # type: ignore[arg-type]

    hits = [hit async for hit in provider.discover()]
    target = next(hit for hit in hits if "Oracle" in str(hit.display))
    await target.command()

    assert len(hits) == 3
    assert app.active_type is DatabaseType.ORACLE
    assert 'active_type = "Oracle"' in config_path.read_text()


@pytest.mark.anyio
async def test_transfer_provider_exports(app_config: AppConfig) -> None:
    _seed(app_config, "Alpha")
    app = UniSqlApp()
    provider = TransferProvider(_DummyScreen(app))  # type: ignore[arg-type]

    hits = [hit async for hit in provider.discover()]
    export = next(hit for hit in hits if "Export" in str(hit.display))
    await export.command()

    exported = list(app_config.export_dir.glob("database-connections-*.json"))
    assert len(exported) == 1


@pytest.mark.anyio
async def test_keyboard_reorder_updates_list_and_status(app_config: AppConfig) -> None:
    _seed(app_config, "Alpha", "Beta")
    app = UniSqlApp()

    async with app.run_test() as pilot:
        listing = app.query_one(f"#{list_id(DatabaseType.POSTGRESQL)}", ConnectionList)
        listing.focus()
        await pilot.pause()
        listing.index = 0
        await pilot.press("shift+down")
        await pilot.pause()

        names = [record.connection_name for record in app.store.list_by_type(DatabaseType.POSTGRESQL)]
        assert names == ["Beta", "Alpha"]
        status = app.query_one(StatusBar)
        assert status.describe() == "PostgreSQL: 2 | MySQL: 0 | Oracle: 0 | Total: 2"
