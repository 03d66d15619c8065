"""
Service layer for paranoid records.

Provides session-bound operations that commit on success: bulk deletion,
recovery by primary key, listing of deleted records, purging of records that
were deleted long ago and deletion summaries.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Iterable, List, Optional, Type, Union

from sqlalchemy import and_, delete, func, select
from sqlalchemy.orm import Session

from .exceptions import ConfigurationError, RecordNotFound
from .models import ColumnType, DeletionSummary, utcnow
from .registry import registry
from .scopes import WITH_DELETED, deleted_predicate

logger = logging.getLogger(__name__)


class ParanoidService:
    """
    Session-bound maintenance operations for paranoid record types.

    Args:
        session: SQLAlchemy database session
    """

    def __init__(self, session: Session):
        self.session = session

    def _time_column(self, record_type: Type[Any]) -> Any:
        primary = registry.get(record_type).primary
        if primary.column_type != ColumnType.TIME:
            raise ConfigurationError(
                f"{record_type.__name__} is not marked with a time column",
                record_type=record_type,
            )
        return getattr(record_type, primary.column)

    def delete(
        self,
        record_type: Type[Any],
        id_or_ids: Union[Any, Iterable[Any]],
        permanent: bool = False,
    ) -> int:
        """
        Delete records by primary key and commit.

        Returns:
            Number of rows affected
        """
        count = record_type.delete_ids(self.session, id_or_ids, permanent=permanent)
        self.session.commit()
        return count

    def recover(self, record_type: Type[Any], record_id: Any, **options: Any) -> Any:
        """
        Recover a deleted record by primary key and commit.

        Args:
            record_type: Paranoid record class
            record_id: Primary key of the deleted record
            **options: ``recursive`` and ``recovery_window`` overrides

        Returns:
            The recovered record

        Raises:
            RecordNotFound: If no deleted record has this key
        """
        record = self.session.get(
            record_type, record_id, execution_options={WITH_DELETED: True}
        )
        if record is None or not record.paranoid_deleted:
            raise RecordNotFound(record_type, record_id)

        record.recover(**options)
        self.session.commit()
        logger.info("Recovered %s %s", record_type.__name__, record_id)
        return record

    def list_deleted(
        self,
        record_type: Type[Any],
        deleted_after: Optional[datetime] = None,
        deleted_before: Optional[datetime] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Any]:
        """
        Get deleted records, newest first for time-marked types.

        Args:
            record_type: Paranoid record class
            deleted_after: Lower bound on the deletion time
            deleted_before: Upper bound on the deletion time
            limit: Maximum records to return
            offset: Offset for pagination

        Returns:
            List of deleted records
        """
        query = record_type.only_deleted(self.session)

        primary = registry.get(record_type).primary
        if primary.column_type == ColumnType.TIME:
            column = getattr(record_type, primary.column)
            if deleted_after is not None:
                query = query.filter(column >= deleted_after)
            if deleted_before is not None:
                query = query.filter(column <= deleted_before)
            query = query.order_by(column.desc())
        elif deleted_after is not None or deleted_before is not None:
            self._time_column(record_type)

        return query.limit(limit).offset(offset).all()

    def purge(self, record_type: Type[Any], older_than: timedelta) -> int:
        """
        Physically remove records deleted more than ``older_than`` ago.

        Only rows carrying a deletion time are considered; active rows are
        never touched. Purged instances held by the session are marked
        deleted in it.

        Returns:
            Number of rows removed
        """
        column = self._time_column(record_type)
        cutoff = utcnow() - older_than

        statement = (
            delete(record_type)
            .where(and_(deleted_predicate(record_type), column < cutoff))
            .execution_options(synchronize_session="fetch")
        )
        result = self.session.execute(
            statement, execution_options={WITH_DELETED: True}
        )
        self.session.commit()

        logger.info(
            "Purged %s %s rows deleted before %s",
            result.rowcount,
            record_type.__name__,
            cutoff.isoformat(),
        )
        return result.rowcount

    def deletion_summary(
        self,
        record_types: Iterable[Type[Any]],
        start_date: datetime,
        end_date: datetime,
    ) -> DeletionSummary:
        """
        Count records deleted between ``start_date`` and ``end_date`` per type.

        Types without a time marker are skipped.
        """
        summary = DeletionSummary(start_date=start_date, end_date=end_date)

        for record_type in record_types:
            primary = registry.get(record_type).primary
            if primary.column_type != ColumnType.TIME:
                logger.debug(
                    "Skipping %s in deletion summary: no time marker",
                    record_type.__name__,
                )
                continue

            column = getattr(record_type, primary.column)
            statement = (
                select(func.count())
                .select_from(record_type)
                .where(column >= start_date, column <= end_date)
            )
            count = self.session.execute(
                statement, execution_options={WITH_DELETED: True}
            ).scalar_one()
            summary.add(record_type.__name__, count)

        return summary
