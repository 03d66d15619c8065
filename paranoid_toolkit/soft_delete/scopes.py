"""
Query predicates for paranoid record types.

Every registered type gets a default scope that hides deleted rows from ORM
SELECT statements, including relationship loads. A statement opts out with
the ``with_deleted`` execution option::

    session.query(Invoice).execution_options(with_deleted=True)
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Type

from sqlalchemy import and_, event
from sqlalchemy.orm import ORMExecuteState, Session, with_loader_criteria
from sqlalchemy.sql.elements import ColumnElement

from .models import ColumnType
from .registry import registry

logger = logging.getLogger(__name__)

WITH_DELETED = "with_deleted"

_scope_installed = False


def _primary_attribute(record_type: Type[Any]) -> Any:
    configuration = registry.get(record_type)
    return getattr(record_type, configuration.primary.column)


def not_deleted_predicate(record_type: Type[Any]) -> ColumnElement[bool]:
    """Rows whose primary marker holds the "active" value."""
    primary = registry.get(record_type).primary
    column = _primary_attribute(record_type)
    if primary.non_deleted_value is None:
        return column.is_(None)
    return column == primary.non_deleted_value


def deleted_predicate(record_type: Type[Any]) -> ColumnElement[bool]:
    """Rows whose primary marker holds a deleted value."""
    primary = registry.get(record_type).primary
    column = _primary_attribute(record_type)
    if primary.non_deleted_value is None:
        return column.is_not(None)
    return column != primary.non_deleted_value


def deleted_within_window(
    record_type: Type[Any], pivot: Any, window: timedelta
) -> ColumnElement[bool]:
    """
    Rows deleted within ``window`` of ``pivot``.

    Time markers match the inclusive range ``[pivot - window, pivot + window]``.
    Boolean and string markers carry no time, so they match every deleted row.

    Args:
        record_type: Paranoid record class
        pivot: Deletion marker value to match around
        window: Tolerance on either side of the pivot

    Returns:
        Predicate over the primary marker column
    """
    primary = registry.get(record_type).primary
    if primary.column_type != ColumnType.TIME or not isinstance(pivot, datetime):
        return deleted_predicate(record_type)

    column = _primary_attribute(record_type)
    return and_(column >= pivot - window, column <= pivot + window)


def _add_default_scope(execute_state: ORMExecuteState) -> None:
    if (
        not execute_state.is_select
        or execute_state.is_column_load
        or execute_state.execution_options.get(WITH_DELETED, False)
    ):
        return

    options = [
        with_loader_criteria(
            record_type, not_deleted_predicate(record_type), include_aliases=True
        )
        for record_type in registry.configured_types()
    ]
    if options:
        execute_state.statement = execute_state.statement.options(*options)


def install_default_scope() -> None:
    """Install the session listener applying default scopes, once per process."""
    global _scope_installed

    if _scope_installed:
        return
    event.listen(Session, "do_orm_execute", _add_default_scope)
    _scope_installed = True
    logger.debug("Installed paranoid default scope listener")
