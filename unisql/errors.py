"""Error taxonomy surfaced by the connection store and its collaborators."""

from __future__ import annotations

from typing import Iterable

from pydantic import ValidationError as PydanticValidationError


class StoreError(RuntimeError):
    """Base class for connection store failures."""


class ValidationError(StoreError, ValueError):
    """Raised when input to a store operation is malformed or incomplete."""

    def __init__(self, message: str, details: Iterable[str] = ()) -> None:
        self.details = tuple(details)
        if self.details:
            message = f"{message}: {'; '.join(self.details)}"
        super().__init__(message)

    @classmethod
    def from_pydantic(cls, message: str, exc: PydanticValidationError) -> ValidationError:
        return cls(message, describe_errors(exc))


class NotFoundError(StoreError, LookupError):
    """Raised when an operation targets an id the store does not hold."""

    def __init__(self, record_id: str) -> None:
        self.record_id = record_id
        super().__init__(f"Connection '{record_id}' not found.")


class FormatError(StoreError, ValueError):
    """Raised when an import document cannot be parsed or is unsupported."""


class StorageError(StoreError):
    """Raised when the persistence layer cannot be read or written."""


def describe_errors(exc: PydanticValidationError) -> tuple[str, ...]:
    """Flatten pydantic errors into `field: message` strings."""

    details: list[str] = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        message = error.get("msg", "invalid value")
        details.append(f"{location}: {message}" if location else message)
    return tuple(details)


__all__ = [
    "FormatError",
    "NotFoundError",
    "StorageError",
    "StoreError",
    "ValidationError",
    "describe_errors",
]
