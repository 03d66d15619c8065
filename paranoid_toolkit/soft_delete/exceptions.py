"""Exceptions for paranoid (soft delete) operations."""

from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError

# Failures from the persistence layer are propagated unchanged.
StorageError = SQLAlchemyError


class ParanoidError(Exception):
    """Base exception for paranoid operations."""

    def __init__(self, message: str, record_type: Optional[type] = None):
        self.record_type = record_type
        super().__init__(message)


class ConfigurationError(ParanoidError, ValueError):
    """Raised when a paranoid configuration is invalid."""


class InvalidStateError(ParanoidError):
    """Raised when a record is not in a state that allows the operation."""


class FrozenRecordError(InvalidStateError):
    """Raised when modifying a permanently deleted record."""

    def __init__(self, record: Any):
        super().__init__(
            f"{record.__class__.__name__} is permanently deleted and cannot be "
            "modified",
            record_type=record.__class__,
        )


class RecordNotFound(ParanoidError):
    """Raised when a deleted record cannot be located."""

    def __init__(self, record_type: type, record_id: Any):
        self.record_id = record_id
        super().__init__(
            f"Deleted {record_type.__name__} with ID {record_id} not found",
            record_type=record_type,
        )


class UniquenessViolation(ParanoidError):
    """Raised when an active record already holds the same unique values."""

    def __init__(self, record_type: type, fields: Any):
        self.fields = tuple(fields)
        super().__init__(
            f"{record_type.__name__} with the same "
            f"{', '.join(self.fields)} already exists",
            record_type=record_type,
        )
