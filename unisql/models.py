"""Connection profile records shared by the store, storage, and codec."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

BASE_ORDER = 0


class DatabaseType(str, Enum):
    """Supported database engines; each one is its own partition."""

    POSTGRESQL = "PostgreSQL"
    MYSQL = "MySQL"
    ORACLE = "Oracle"

    @property
    def default_port(self) -> int:
        return DEFAULT_PORTS[self]


class Environment(str, Enum):
    """Deployment environment a profile points at."""

    DEV = "dev"
    QA = "qa"
    STAGING = "staging"
    UAT = "uat"
    PROD = "prod"

    @property
    def label(self) -> str:
        return ENVIRONMENT_LABELS[self]


DEFAULT_PORTS: Mapping[DatabaseType, int] = {
    DatabaseType.POSTGRESQL: 5432,
    DatabaseType.MYSQL: 3306,
    DatabaseType.ORACLE: 1521,
}

ENVIRONMENT_LABELS: Mapping[Environment, str] = {
    Environment.DEV: "Development",
    Environment.QA: "QA",
    Environment.STAGING: "Staging",
    Environment.UAT: "UAT",
    Environment.PROD: "Production",
}


class _RecordModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    @field_validator("connection_name", "host", "username", check_fields=False)
    @classmethod
    def reject_blank(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            raise ValueError("must not be blank")
        return value


class ConnectionDraft(_RecordModel):
    """Payload submitted to create a profile (no id/order yet)."""

    type: DatabaseType = DatabaseType.POSTGRESQL
    connection_name: str
    host: str
    port: int | None = Field(default=None, gt=0)
    username: str
    password: str = ""
    database_name: str | None = None
    environment: Environment = Environment.DEV

    @model_validator(mode="after")
    def apply_default_port(self) -> ConnectionDraft:
        if self.port is None:
            self.port = self.type.default_port
        return self


class ConnectionPatch(_RecordModel):
    """Partial update; unset fields are left alone, id/order are dropped."""

    type: DatabaseType | None = None
    connection_name: str | None = None
    host: str | None = None
    port: int | None = Field(default=None, gt=0)
    username: str | None = None
    password: str | None = None
    database_name: str | None = None
    environment: Environment | None = None

    def changes(self) -> dict[str, object]:
        """Fields the caller actually supplied, keyed by attribute name."""

        return self.model_dump(exclude_unset=True)


class ConnectionProfile(_RecordModel):
    """A saved database connection as held by the store."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    type: DatabaseType
    connection_name: str
    host: str
    port: int = Field(gt=0)
    username: str
    password: str = ""
    database_name: str | None = None
    environment: Environment = Environment.DEV
    order: int = BASE_ORDER
    created_at: datetime
    last_used: datetime | None = None

    @property
    def address(self) -> str:
        """Short `user@host:port/db` label used by the list view."""

        target = f"{self.username}@{self.host}:{self.port}"
        if self.database_name:
            target = f"{target}/{self.database_name}"
        return target

    def to_document(self) -> dict[str, object]:
        """JSON-compatible mapping using the wire (camelCase) field names."""

        return self.model_dump(mode="json", by_alias=True)


class ImportedProfile(_RecordModel):
    """A profile read from an exchange document, before reconciliation."""

    id: str | None = None
    type: DatabaseType
    connection_name: str
    host: str
    port: int = Field(gt=0)
    username: str
    password: str = ""
    database_name: str | None = None
    environment: Environment = Environment.DEV
    order: int | None = None
    created_at: datetime | None = None
    last_used: datetime | None = None


__all__ = [
    "BASE_ORDER",
    "ConnectionDraft",
    "ConnectionPatch",
    "ConnectionProfile",
    "DEFAULT_PORTS",
    "DatabaseType",
    "ENVIRONMENT_LABELS",
    "Environment",
    "ImportedProfile",
]
