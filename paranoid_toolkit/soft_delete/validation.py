"""
Uniqueness validation that ignores deleted rows.

A deleted record keeps its row, so a plain unique constraint would block
re-creating a record with the same values. This check only compares against
active rows::

    validates_uniqueness_without_deleted(Account, "email")
    validates_uniqueness_without_deleted(Project, "name", scope=("team_id",))
"""

from typing import Any, Iterable, Sequence, Type

from sqlalchemy import and_, event, func, inspect as sa_inspect, or_, select
from sqlalchemy.engine import Connection

from .exceptions import ConfigurationError, UniquenessViolation
from .scopes import not_deleted_predicate


def check_uniqueness_without_deleted(
    connection: Connection,
    record: Any,
    fields: Sequence[str],
    scope: Sequence[str] = (),
) -> None:
    """
    Raise if an active row other than ``record`` shares its field values.

    Args:
        connection: Connection of the flush in progress
        record: Record being inserted or updated
        fields: Attributes that must be unique together
        scope: Attributes that partition the uniqueness check

    Raises:
        UniquenessViolation: If a conflicting active row exists
    """
    record_type = type(record)
    values = {name: getattr(record, name) for name in list(fields) + list(scope)}
    if any(values[name] is None for name in fields):
        return

    conditions = [
        getattr(record_type, name) == value for name, value in values.items()
    ]
    conditions.append(not_deleted_predicate(record_type))

    identity = sa_inspect(record).identity
    if identity is not None:
        mapper = sa_inspect(record_type)
        conditions.append(
            or_(
                *(
                    column != value
                    for column, value in zip(mapper.primary_key, identity)
                )
            )
        )

    statement = select(func.count()).select_from(record_type).where(and_(*conditions))
    if connection.execute(statement).scalar():
        raise UniquenessViolation(record_type, fields)


def validates_uniqueness_without_deleted(
    record_type: Type[Any], *fields: str, scope: Iterable[str] = ()
) -> None:
    """
    Check uniqueness among active rows whenever ``record_type`` is flushed.

    Args:
        record_type: Paranoid record class
        *fields: Attributes that must be unique together
        scope: Attributes that partition the check
    """
    if not fields:
        raise ConfigurationError(
            "At least one field is required for uniqueness validation",
            record_type=record_type,
        )
    scope = tuple(scope)

    def _validate(mapper: Any, connection: Connection, target: Any) -> None:
        if getattr(target, "paranoid_deleted", False):
            return
        check_uniqueness_without_deleted(connection, target, fields, scope)

    event.listen(record_type, "before_insert", _validate, propagate=True)
    event.listen(record_type, "before_update", _validate, propagate=True)
