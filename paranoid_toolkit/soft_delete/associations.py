"""
Dependent association metadata.

A relationship takes part in paranoid cascades when it is tagged with
``info={"dependent": "destroy"}`` or ``info={"dependent": "delete_all"}``::

    class Order(Base, ParanoidMixin):
        lines = relationship("OrderLine", info={"dependent": "destroy"})
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Tuple, Type

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import RelationshipDirection

from .exceptions import ConfigurationError

DEPENDENT_INFO_KEY = "dependent"


class AssociationKind(str, Enum):
    """Shape of a dependent association."""

    COLLECTION = "collection"
    HAS_ONE = "has_one"
    BELONGS_TO = "belongs_to"


class DependentMode(str, Enum):
    """Cascade tag of a dependent association."""

    DESTROY = "destroy"
    DELETE_ALL = "delete_all"


@dataclass(frozen=True)
class DependentAssociation:
    """A tagged relationship of a record type."""

    name: str
    kind: AssociationKind
    dependent: DependentMode
    target: Type[Any]

    @property
    def is_collection(self) -> bool:
        return self.kind is AssociationKind.COLLECTION


def _association_kind(relationship: Any) -> AssociationKind:
    if relationship.uselist:
        return AssociationKind.COLLECTION
    if relationship.direction is RelationshipDirection.MANYTOONE:
        return AssociationKind.BELONGS_TO
    return AssociationKind.HAS_ONE


def describe_dependents(record_type: Type[Any]) -> Tuple[DependentAssociation, ...]:
    """
    Collect the tagged relationships of a mapped class in declaration order.

    Args:
        record_type: Mapped class

    Returns:
        Tuple of dependent associations

    Raises:
        ConfigurationError: If a relationship carries an unknown tag
    """
    mapper = sa_inspect(record_type)
    associations = []

    for relationship in mapper.relationships:
        tag = relationship.info.get(DEPENDENT_INFO_KEY)
        if tag is None:
            continue
        try:
            dependent = DependentMode(tag)
        except ValueError:
            raise ConfigurationError(
                f"'destroy' or 'delete_all' expected for dependent option of "
                f"{record_type.__name__}.{relationship.key}, got {tag!r}",
                record_type=record_type,
            ) from None

        associations.append(
            DependentAssociation(
                name=relationship.key,
                kind=_association_kind(relationship),
                dependent=dependent,
                target=relationship.mapper.class_,
            )
        )

    return tuple(associations)
