"""
SQLAlchemy mixin for paranoid (soft delete) records.

Records using the mixin are deleted by writing marker columns instead of
removing rows, are hidden from ordinary queries while deleted, and can be
recovered later.
"""

import logging
from collections import abc
from datetime import timedelta
from typing import Any, Iterable, List, Optional, Union

from sqlalchemy import delete, inspect as sa_inspect, update
from sqlalchemy.orm import Query, Session, object_session
from sqlalchemy.orm.attributes import set_committed_value

from . import events
from .cascade import CascadeResolver
from .exceptions import ConfigurationError, FrozenRecordError, InvalidStateError
from .models import ParanoidConfiguration
from .registry import registry
from .scopes import (
    WITH_DELETED,
    deleted_predicate,
    deleted_within_window,
    not_deleted_predicate,
)
from .transaction import TransactionContext

logger = logging.getLogger(__name__)

_FROZEN_FLAG = "_paranoid_frozen"


class ParanoidMixin:
    """
    Mixin adding paranoid deletion to SQLAlchemy models.

    Provides:
    - destroy/delete, soft or permanent, with cascades to dependents
    - recovery with time-windowed recovery of dependents
    - query helpers for active, deleted and all rows

    Usage:
        class Invoice(Base, ParanoidMixin):
            __tablename__ = 'invoices'
            id = Column(Integer, primary_key=True)
            deleted_at = Column(DateTime, nullable=True)

        configure(Invoice)
    """

    def __setattr__(self, name: str, value: Any) -> None:
        if getattr(self, _FROZEN_FLAG, False) and not name.startswith("_sa_"):
            raise FrozenRecordError(self)
        super().__setattr__(name, value)

    # Configuration

    @classmethod
    def paranoid_configuration(cls) -> ParanoidConfiguration:
        """Return the paranoid configuration of this type."""
        return registry.get(cls)

    @classmethod
    def paranoid_column(cls) -> str:
        return cls.paranoid_configuration().primary.column

    # Record state

    @property
    def paranoid_value(self) -> Any:
        """Current value of the primary marker column."""
        return getattr(self, self.paranoid_column())

    @paranoid_value.setter
    def paranoid_value(self, value: Any) -> None:
        setattr(self, self.paranoid_column(), value)

    @property
    def paranoid_deleted(self) -> bool:
        """Whether the primary marker holds a deleted value."""
        primary = self.paranoid_configuration().primary
        return primary.is_deleted_value(self.paranoid_value)

    destroyed = paranoid_deleted

    @property
    def is_frozen(self) -> bool:
        """Whether this instance was permanently deleted."""
        return getattr(self, _FROZEN_FLAG, False)

    def _freeze(self) -> None:
        object.__setattr__(self, _FROZEN_FLAG, True)

    def _thaw(self) -> None:
        object.__setattr__(self, _FROZEN_FLAG, False)

    def _has_identity(self) -> bool:
        return sa_inspect(self).identity is not None

    def _identity_criteria(self) -> List[Any]:
        mapper = sa_inspect(type(self))
        identity = sa_inspect(self).identity
        return [column == value for column, value in zip(mapper.primary_key, identity)]

    def _require_session(self) -> Session:
        session = object_session(self)
        if session is None:
            raise InvalidStateError(
                f"{self.__class__.__name__} is not attached to a session",
                record_type=type(self),
            )
        return session

    # Deletion

    def destroy(
        self, permanent: bool = False, transaction: Optional[TransactionContext] = None
    ) -> "ParanoidMixin":
        """
        Delete this record, running destroy hooks.

        Soft deletion writes every marker column. Destroying a record that is
        already soft deleted deletes it permanently: dependents tagged
        ``destroy`` are destroyed first, then the row is removed and the
        instance is frozen with its deletion markers set in memory.

        Args:
            permanent: Delete permanently instead of softly
            transaction: Context of a calling operation to join

        Returns:
            This record
        """
        return self._remove(permanent, hooks=True, transaction=transaction)

    def delete(
        self, permanent: bool = False, transaction: Optional[TransactionContext] = None
    ) -> "ParanoidMixin":
        """Like :meth:`destroy`, without running destroy hooks."""
        return self._remove(permanent, hooks=False, transaction=transaction)

    def destroy_permanently(self) -> "ParanoidMixin":
        return self.destroy(permanent=True)

    def delete_permanently(self) -> "ParanoidMixin":
        return self.delete(permanent=True)

    def _remove(
        self,
        permanent: bool,
        hooks: bool,
        transaction: Optional[TransactionContext],
    ) -> "ParanoidMixin":
        if self.is_frozen:
            return self

        if not self._has_identity():
            self._mark_deleted(permanent)
            session = object_session(self)
            if permanent and session is not None:
                session.expunge(self)
            return self

        session = transaction.session if transaction else self._require_session()
        with TransactionContext.acquire(session, transaction) as context:
            if not context.enter(self):
                return self
            try:
                if self.paranoid_deleted:
                    permanent = True

                if hooks:
                    events.notify("before_destroy", self)
                if permanent:
                    CascadeResolver(context).destroy_dependents(self)
                    self._delete_row(context.session)
                else:
                    self._write_deletion_markers(context.session)

                if hooks:
                    events.notify("after_destroy", self)
                    context.after_commit(
                        lambda: events.notify("after_destroy_commit", self)
                    )
                if permanent:
                    self._freeze()
                    context.after_rollback(self._thaw)
            finally:
                context.leave(self)

        logger.debug(
            "%s %s %s",
            "Permanently deleted" if permanent else "Soft deleted",
            self.__class__.__name__,
            sa_inspect(self).identity,
        )
        return self

    def _mark_deleted(self, permanent: bool) -> None:
        for column, value in self.paranoid_configuration().deletion_values().items():
            setattr(self, column, value)
        if permanent:
            self._freeze()

    def _write_deletion_markers(self, session: Session) -> None:
        values = self.paranoid_configuration().deletion_values()
        record_type = type(self)
        statement = (
            update(record_type)
            .where(*self._identity_criteria())
            .values({getattr(record_type, column): v for column, v in values.items()})
            .execution_options(synchronize_session=False)
        )
        session.execute(statement, execution_options={WITH_DELETED: True})

        for column, value in values.items():
            set_committed_value(self, column, value)

    def _delete_row(self, session: Session) -> None:
        # The session restores the instance if the transaction rolls back.
        statement = (
            delete(type(self))
            .where(*self._identity_criteria())
            .execution_options(synchronize_session="fetch")
        )
        session.execute(statement, execution_options={WITH_DELETED: True})

        for column, value in self.paranoid_configuration().deletion_values().items():
            set_committed_value(self, column, value)

    # Recovery

    def recover(
        self,
        recursive: Optional[bool] = None,
        recovery_window: Union[timedelta, int, float, None] = None,
        transaction: Optional[TransactionContext] = None,
    ) -> "ParanoidMixin":
        """
        Recover this record and, optionally, its dependents.

        Dependents are matched against this record's deletion marker before
        it is cleared. Only the primary marker column is cleared.

        Args:
            recursive: Recover dependents, defaults to the column configuration
            recovery_window: Tolerance for matching dependents, as a timedelta
                or seconds
            transaction: Context of a calling operation to join

        Returns:
            This record

        Raises:
            FrozenRecordError: If the record was permanently deleted
            InvalidStateError: If the record was never persisted or is detached
        """
        if self.is_frozen:
            raise FrozenRecordError(self)
        if not self._has_identity():
            raise InvalidStateError(
                f"{self.__class__.__name__} has no identity and cannot be recovered",
                record_type=type(self),
            )

        primary = self.paranoid_configuration().primary
        if recursive is None:
            recursive = primary.recover_dependent_associations
        if recovery_window is None:
            recovery_window = primary.dependent_recovery_window
        elif not isinstance(recovery_window, timedelta):
            recovery_window = timedelta(seconds=recovery_window)

        session = transaction.session if transaction else self._require_session()
        with TransactionContext.acquire(session, transaction) as context:
            if not context.enter(self):
                return self
            try:
                events.notify("before_recover", self)

                pivot = self.paranoid_value
                if recursive and primary.is_deleted_value(pivot):
                    CascadeResolver(context).recover_dependents(
                        self, pivot, recovery_window, recursive=recursive
                    )

                self.paranoid_value = primary.non_deleted_value
                context.session.flush()

                events.notify("after_recover", self)
            finally:
                context.leave(self)

        logger.debug(
            "Recovered %s %s", self.__class__.__name__, sa_inspect(self).identity
        )
        return self

    # Queries

    @classmethod
    def query_active(cls, session: Session) -> Query[Any]:
        """
        Return query for active (non-deleted) records only.

        The default scope already applies to ``session.query(cls)``; this
        helper spells it out.
        """
        return session.query(cls).filter(not_deleted_predicate(cls))

    @classmethod
    def with_deleted(cls, session: Session) -> Query[Any]:
        """Return query for all records including deleted ones."""
        return session.query(cls).execution_options(**{WITH_DELETED: True})

    @classmethod
    def only_deleted(cls, session: Session) -> Query[Any]:
        """Return query for deleted records only."""
        return cls.with_deleted(session).filter(deleted_predicate(cls))

    @classmethod
    def deleted_within_window(
        cls, session: Session, pivot: Any, window: Union[timedelta, int, float]
    ) -> Query[Any]:
        """
        Return query for records deleted within ``window`` of ``pivot``.

        Boolean and string markers carry no time; every deleted record matches.
        """
        if not isinstance(window, timedelta):
            window = timedelta(seconds=window)
        return cls.with_deleted(session).filter(
            deleted_within_window(cls, pivot, window)
        )

    # Bulk deletion

    @classmethod
    def delete_all(
        cls, session: Session, *criteria: Any, permanent: bool = False
    ) -> int:
        """
        Delete every row matching ``criteria``.

        No hooks run and no instances are frozen. Soft deletion writes the
        markers of active rows; permanent deletion removes matching rows in
        any state.

        Args:
            session: SQLAlchemy session
            *criteria: Filter expressions
            permanent: Remove the rows instead of marking them

        Returns:
            Number of rows affected
        """
        if permanent:
            statement = delete(cls).execution_options(synchronize_session="fetch")
        else:
            values = cls.paranoid_configuration().deletion_values()
            statement = update(cls).values(
                {getattr(cls, column): value for column, value in values.items()}
            )
            statement = statement.where(not_deleted_predicate(cls))
        if criteria:
            statement = statement.where(*criteria)

        result = session.execute(statement, execution_options={WITH_DELETED: True})
        logger.info(
            "%s %s %s rows",
            "Permanently deleted" if permanent else "Soft deleted",
            result.rowcount,
            cls.__name__,
        )
        return result.rowcount

    @classmethod
    def delete_ids(
        cls,
        session: Session,
        id_or_ids: Union[Any, Iterable[Any]],
        permanent: bool = False,
    ) -> int:
        """
        Delete records by primary key without loading them.

        Args:
            session: SQLAlchemy session
            id_or_ids: One primary key value or an iterable of them
            permanent: Delete permanently instead of softly

        Returns:
            Number of rows affected
        """
        primary_key = sa_inspect(cls).primary_key
        if len(primary_key) != 1:
            raise ConfigurationError(
                f"{cls.__name__} has a composite primary key; use delete_all",
                record_type=cls,
            )

        if isinstance(id_or_ids, (str, bytes)) or not isinstance(
            id_or_ids, abc.Iterable
        ):
            ids = [id_or_ids]
        else:
            ids = list(id_or_ids)

        return cls.delete_all(session, primary_key[0].in_(ids), permanent=permanent)

