"""
Cascading of permanent deletion and recovery through dependent associations.
"""

import logging
from datetime import timedelta
from typing import Any, List

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import Query, with_parent

from .associations import AssociationKind, DependentAssociation, DependentMode
from .registry import registry
from .scopes import WITH_DELETED, deleted_within_window
from .transaction import TransactionContext

logger = logging.getLogger(__name__)


class CascadeResolver:
    """
    Walks the dependent associations of a record inside one transaction.

    Args:
        transaction: Context shared with every cascaded operation
    """

    def __init__(self, transaction: TransactionContext):
        self.transaction = transaction

    @property
    def session(self) -> Any:
        return self.transaction.session

    def _related(self, record: Any, association: DependentAssociation) -> Query[Any]:
        relationship = getattr(type(record), association.name)
        return (
            self.session.query(association.target)
            .execution_options(**{WITH_DELETED: True})
            .filter(with_parent(record, relationship))
        )

    def _foreign_key_missing(
        self, record: Any, association: DependentAssociation
    ) -> bool:
        mapper = sa_inspect(type(record))
        relationship = mapper.relationships[association.name]
        return any(
            getattr(record, mapper.get_property_by_column(column).key) is None
            for column in relationship.local_columns
        )

    def destroy_dependents(self, record: Any) -> List[Any]:
        """
        Permanently destroy every record of ``destroy``-tagged collections.

        Rows already soft-deleted are included. ``delete_all``-tagged and
        single-valued associations are left to the database.

        Returns:
            The destroyed dependents
        """
        destroyed: List[Any] = []

        for association in registry.dependent_associations(type(record)):
            if (
                not association.is_collection
                or association.dependent is not DependentMode.DESTROY
                or not registry.is_paranoid(association.target)
            ):
                continue

            for dependent in self._related(record, association).all():
                logger.debug(
                    "Destroying %s of %s via %s",
                    dependent.__class__.__name__,
                    record.__class__.__name__,
                    association.name,
                )
                dependent.destroy(permanent=True, transaction=self.transaction)
                destroyed.append(dependent)

        return destroyed

    def recover_dependents(
        self, record: Any, pivot: Any, window: timedelta, recursive: bool = True
    ) -> List[Any]:
        """
        Recover dependents deleted within ``window`` of ``pivot``.

        Args:
            record: Record being recovered, still carrying its deletion marker
            pivot: Deletion marker value of ``record`` before recovery
            window: Tolerance around the pivot
            recursive: Passed on to the dependents' own recovery

        Returns:
            The recovered dependents
        """
        recovered: List[Any] = []

        for association in registry.dependent_associations(type(record)):
            if not registry.is_paranoid(association.target):
                continue
            if (
                association.kind is AssociationKind.BELONGS_TO
                and self._foreign_key_missing(record, association)
            ):
                continue

            query = self._related(record, association).filter(
                deleted_within_window(association.target, pivot, window)
            )
            if association.is_collection:
                candidates = query.all()
            else:
                found = query.first()
                candidates = [found] if found is not None else []

            for dependent in candidates:
                if dependent.is_frozen:
                    continue
                logger.debug(
                    "Recovering %s of %s via %s",
                    dependent.__class__.__name__,
                    record.__class__.__name__,
                    association.name,
                )
                dependent.recover(
                    recursive=recursive,
                    recovery_window=window,
                    transaction=self.transaction,
                )
                recovered.append(dependent)

        return recovered
