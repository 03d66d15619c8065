"""
Soft Delete Module - paranoid records for SQLAlchemy.

Provides the mixin, configuration registry, query scopes, cascade resolver
and lifecycle hooks that implement soft deletion with recovery.
"""

from .associations import AssociationKind, DependentAssociation, DependentMode
from .cascade import CascadeResolver
from .events import (
    HOOK_NAMES,
    ParanoidObserver,
    listen,
    listens_for,
    paranoid_hook,
    remove,
    subscribe,
    unsubscribe,
)
from .exceptions import (
    ConfigurationError,
    FrozenRecordError,
    InvalidStateError,
    ParanoidError,
    RecordNotFound,
    StorageError,
    UniquenessViolation,
)
from .mixins import ParanoidMixin
from .models import (
    ColumnType,
    DeletionSummary,
    ParanoidColumnConfig,
    ParanoidConfiguration,
)
from .registry import (
    acts_as_paranoid,
    configure,
    get_configuration,
    is_paranoid,
    registry,
)
from .scopes import (
    WITH_DELETED,
    deleted_predicate,
    deleted_within_window,
    not_deleted_predicate,
)
from .services import ParanoidService
from .transaction import TransactionContext
from .validation import (
    check_uniqueness_without_deleted,
    validates_uniqueness_without_deleted,
)

__all__ = [
    # Mixin and configuration
    "ParanoidMixin",
    "configure",
    "acts_as_paranoid",
    "get_configuration",
    "is_paranoid",
    "registry",
    # Models
    "ColumnType",
    "ParanoidColumnConfig",
    "ParanoidConfiguration",
    "DeletionSummary",
    # Scopes
    "WITH_DELETED",
    "not_deleted_predicate",
    "deleted_predicate",
    "deleted_within_window",
    # Cascades
    "AssociationKind",
    "DependentAssociation",
    "DependentMode",
    "CascadeResolver",
    "TransactionContext",
    # Hooks
    "HOOK_NAMES",
    "ParanoidObserver",
    "listen",
    "listens_for",
    "remove",
    "subscribe",
    "unsubscribe",
    "paranoid_hook",
    # Validation
    "validates_uniqueness_without_deleted",
    "check_uniqueness_without_deleted",
    # Services
    "ParanoidService",
    # Exceptions
    "ParanoidError",
    "ConfigurationError",
    "InvalidStateError",
    "FrozenRecordError",
    "RecordNotFound",
    "UniquenessViolation",
    "StorageError",
]
