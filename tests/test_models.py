"""Tests for the connection record models."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError as PydanticValidationError

from unisql.models import (
    DEFAULT_PORTS,
    ConnectionDraft,
    ConnectionPatch,
    ConnectionProfile,
    DatabaseType,
    Environment,
)


@pytest.mark.parametrize(
    ("db_type", "port"),
    [(DatabaseType.POSTGRESQL, 5432), (DatabaseType.MYSQL, 3306), (DatabaseType.ORACLE, 1521)],
)
def test_draft_defaults_to_canonical_port(db_type: DatabaseType, port: int) -> None:
    draft = ConnectionDraft(type=db_type, connection_name="x", host="h", username="u")

    assert draft.port == port == DEFAULT_PORTS[db_type]


def test_draft_accepts_wire_names() -> None:
    draft = ConnectionDraft.model_validate(
        {"type": "MySQL", "connectionName": "Orders", "host": "h", "username": "u", "databaseName": "shop", "environment": "prod"}
    )

    assert draft.connection_name == "Orders"
    assert draft.database_name == "shop"
    assert draft.environment is Environment.PROD
    assert draft.password == ""


def test_draft_rejects_blank_required_text() -> None:
    with pytest.raises(PydanticValidationError):
        ConnectionDraft(connection_name=" ", host="h", username="u")


def test_patch_reports_only_supplied_fields() -> None:
    patch = ConnectionPatch.model_validate({"host": "db", "id": "ignored", "order": 4})

    assert patch.changes() == {"host": "db"}


def test_profile_is_frozen_and_serializes_camel_case() -> None:
    profile = ConnectionProfile(
        id="p1",
        type=DatabaseType.POSTGRESQL,
        connection_name="Main",
        host="db",
        port=5432,
        username="app",
        database_name="core",
        created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
    )

    with pytest.raises(PydanticValidationError):
        profile.host = "elsewhere"  # type: ignore[misc]
    document = profile.to_document()
    assert document["connectionName"] == "Main"
    assert document["type"] == "PostgreSQL"
    assert document["environment"] == "dev"
    assert document["lastUsed"] is None
    assert profile.address == "app@db:5432/core"


def test_environment_labels() -> None:
    assert [env.label for env in Environment] == ["Development", "QA", "Staging", "UAT", "Production"]
