"""
Data models for paranoid configuration.

These models describe which columns carry the deletion marker of a record
type and what values they take when a record is deleted.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def utcnow() -> datetime:
    """Current time as a naive UTC datetime, the form stored in marker columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ColumnType(str, Enum):
    """Kinds of deletion marker columns."""

    TIME = "time"
    BOOLEAN = "boolean"
    STRING = "string"


class ParanoidColumnConfig(BaseModel):
    """Configuration of a single deletion marker column."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    column: str = Field(..., description="Mapped attribute holding the marker")
    column_type: ColumnType = Field(ColumnType.TIME, description="Kind of marker")
    deleted_value: Optional[Any] = Field(
        None, description="Value written on deletion for string markers"
    )
    recover_dependent_associations: bool = Field(
        True, description="Whether recovery cascades to dependents"
    )
    dependent_recovery_window: timedelta = Field(
        timedelta(minutes=2), description="Tolerance for matching dependents"
    )

    @field_validator("column_type", mode="before")
    @classmethod
    def validate_column_type(cls, v: Any) -> Any:
        """Only time, boolean and string markers are recognised."""
        valid = [member.value for member in ColumnType]
        value = v.value if isinstance(v, ColumnType) else v
        if value not in valid:
            raise ValueError(
                "'time', 'boolean' or 'string' expected for column_type, "
                f"got {v!r}"
            )
        return value

    @field_validator("column")
    @classmethod
    def validate_column(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Column name must not be empty")
        return v.strip()

    @field_validator("dependent_recovery_window")
    @classmethod
    def validate_window(cls, v: timedelta) -> timedelta:
        if v < timedelta(0):
            raise ValueError("Recovery window must not be negative")
        return v

    @model_validator(mode="before")
    @classmethod
    def default_string_sentinel(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("column_type") in (
            ColumnType.STRING,
            ColumnType.STRING.value,
        ):
            if data.get("deleted_value") is None:
                data = {**data, "deleted_value": "deleted"}
        return data

    @property
    def non_deleted_value(self) -> Any:
        """Value meaning "active": ``None`` for time/string, ``False`` for boolean."""
        return False if self.column_type == ColumnType.BOOLEAN else None

    def deletion_value(self, now: Optional[datetime] = None) -> Any:
        """
        Value to write into this column when a record is deleted.

        Args:
            now: Timestamp to use for time markers, defaults to the current time

        Returns:
            The deleted value for this column
        """
        if self.column_type == ColumnType.TIME:
            return now if now is not None else utcnow()
        if self.column_type == ColumnType.BOOLEAN:
            return True
        return self.deleted_value

    def is_deleted_value(self, value: Any) -> bool:
        """Check whether a stored marker value means "deleted"."""
        if self.column_type == ColumnType.BOOLEAN:
            # Unflushed boolean defaults are still None
            return bool(value)
        return value != self.non_deleted_value


class ParanoidConfiguration(BaseModel):
    """Paranoid configuration of a record type: one primary column plus extras."""

    model_config = ConfigDict(frozen=True)

    primary: ParanoidColumnConfig
    secondary: Tuple[ParanoidColumnConfig, ...] = ()

    @model_validator(mode="after")
    def validate_unique_columns(self) -> "ParanoidConfiguration":
        names = [column.column for column in self.columns]
        if len(names) != len(set(names)):
            raise ValueError(f"Marker columns must be distinct, got {names}")
        return self

    @property
    def columns(self) -> Tuple[ParanoidColumnConfig, ...]:
        return (self.primary,) + self.secondary

    def deletion_values(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Values for every marker column on deletion, sharing one timestamp.

        Args:
            now: Timestamp for time markers

        Returns:
            Mapping of column name to deleted value
        """
        now = now if now is not None else utcnow()
        return {column.column: column.deletion_value(now) for column in self.columns}


class DeletionSummary(BaseModel):
    """Counts of soft-deleted records per type over a period."""

    start_date: datetime = Field(..., description="Period start")
    end_date: datetime = Field(..., description="Period end")
    total_deleted: int = Field(0, description="Records deleted in the period")
    by_type: Dict[str, int] = Field(
        default_factory=dict, description="Deletions by record type"
    )

    def add(self, record_type: str, count: int) -> None:
        """Add the deletions of one record type to the summary."""
        self.total_deleted += count
        self.by_type[record_type] = self.by_type.get(record_type, 0) + count
