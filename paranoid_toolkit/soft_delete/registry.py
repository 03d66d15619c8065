"""
Per-type registry of paranoid configurations.

Configurations are built once per record type with :func:`configure` and are
immutable afterwards. Lookups walk the class hierarchy, so subclasses of a
configured type share its configuration.
"""

import logging
import threading
from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Set, Tuple, Type

from pydantic import ValidationError

from ..config import get_config
from .associations import DependentAssociation, describe_dependents
from .exceptions import ConfigurationError
from .models import ColumnType, ParanoidColumnConfig, ParanoidConfiguration

logger = logging.getLogger(__name__)


class ParanoidRegistry:
    """
    Lock-guarded store of paranoid configurations keyed by record type.

    Registering a type again replaces its configuration, but scopes and hooks
    are only wired on the first registration.
    """

    def __init__(self) -> None:
        self._configurations: Dict[type, ParanoidConfiguration] = {}
        self._associations: Dict[type, Tuple[DependentAssociation, ...]] = {}
        self._wired: Set[type] = set()
        self._lock = threading.RLock()

    def register(
        self, record_type: Type[Any], configuration: ParanoidConfiguration
    ) -> bool:
        """
        Store the configuration of ``record_type``.

        Returns:
            True if the type was not registered before
        """
        with self._lock:
            first = record_type not in self._wired
            if not first:
                logger.warning(
                    "%s is already paranoid; replacing its configuration",
                    record_type.__name__,
                )
            self._configurations[record_type] = configuration
            self._associations.pop(record_type, None)
            self._wired.add(record_type)
        return first

    def unregister(self, record_type: Type[Any]) -> None:
        with self._lock:
            self._configurations.pop(record_type, None)
            self._associations.pop(record_type, None)
            self._wired.discard(record_type)

    def configuration_for(
        self, record_type: Type[Any]
    ) -> Optional[ParanoidConfiguration]:
        """Return the configuration of the nearest configured class in the MRO."""
        for klass in record_type.__mro__:
            configuration = self._configurations.get(klass)
            if configuration is not None:
                return configuration
        return None

    def get(self, record_type: Type[Any]) -> ParanoidConfiguration:
        configuration = self.configuration_for(record_type)
        if configuration is None:
            raise ConfigurationError(
                f"{record_type.__name__} is not configured as paranoid",
                record_type=record_type,
            )
        return configuration

    def is_paranoid(self, record_type: Type[Any]) -> bool:
        return self.configuration_for(record_type) is not None

    def dependent_associations(
        self, record_type: Type[Any]
    ) -> Tuple[DependentAssociation, ...]:
        """Dependent associations of ``record_type``, described once and cached."""
        associations = self._associations.get(record_type)
        if associations is None:
            associations = describe_dependents(record_type)
            with self._lock:
                self._associations[record_type] = associations
        return associations

    def configured_types(self) -> List[type]:
        with self._lock:
            return list(self._configurations)


registry = ParanoidRegistry()


def build_column_config(options: Any) -> ParanoidColumnConfig:
    """
    Build one column configuration, filling gaps from the package defaults.

    Args:
        options: Mapping of column options

    Returns:
        Column configuration

    Raises:
        ConfigurationError: If the options are not a mapping or are invalid
    """
    if not isinstance(options, Mapping):
        raise ConfigurationError(
            f"Mapping expected for column options, got {type(options).__name__}"
        )

    settings = get_config()
    column: Dict[str, Any] = settings.column_defaults()
    column.update(options)
    if column["column_type"] == ColumnType.STRING.value:
        column.setdefault("deleted_value", settings.default_string_deleted_value)

    try:
        return ParanoidColumnConfig.model_validate(column)
    except ValidationError as exc:
        raise ConfigurationError(str(exc)) from exc


def build_configuration(options: Optional[Any] = None) -> ParanoidConfiguration:
    """
    Build the configuration of a record type from ``configure`` options.

    Either the options of a single column, or ``columns=[...]`` whose first
    entry is the primary column and the rest secondary ones.
    """
    if options is None:
        options = {}
    if not isinstance(options, Mapping):
        raise ConfigurationError(
            f"Mapping expected for paranoid options, got {type(options).__name__}"
        )

    options = dict(options)
    columns = options.pop("columns", None)

    if columns is None and not options:
        columns = get_config().default_columns

    if columns is None:
        primary = build_column_config(options)
        secondary: List[ParanoidColumnConfig] = []
    else:
        if options:
            raise ConfigurationError(
                f"Options {sorted(options)} cannot be combined with columns"
            )
        if isinstance(columns, (str, bytes)) or not columns:
            raise ConfigurationError("A non-empty list is expected for columns")
        columns = list(columns)
        primary = build_column_config(columns[0])
        secondary = [build_column_config(column) for column in columns[1:]]

    try:
        return ParanoidConfiguration(primary=primary, secondary=tuple(secondary))
    except ValidationError as exc:
        raise ConfigurationError(str(exc)) from exc


def configure(
    record_type: Type[Any], options: Optional[Any] = None, **kwargs: Any
) -> ParanoidConfiguration:
    """
    Make ``record_type`` paranoid.

    Args:
        record_type: Mapped class using :class:`ParanoidMixin`
        options: Column options mapping; keyword arguments are merged into it
        **kwargs: Column options

    Returns:
        The configuration attached to the type

    Raises:
        ConfigurationError: If the options are invalid

    Example:
        >>> configure(Invoice)
        >>> configure(Order, column="is_deleted", column_type="boolean")
        >>> configure(Ticket, columns=[
        ...     {"column": "is_deleted", "column_type": "boolean"},
        ...     {"column": "deleted_at", "column_type": "time"},
        ... ])
    """
    from .mixins import ParanoidMixin
    from .scopes import install_default_scope
    from .transaction import install_commit_hooks
    from .events import dispatcher

    if not isinstance(record_type, type) or not issubclass(record_type, ParanoidMixin):
        raise ConfigurationError(
            f"{record_type!r} must use ParanoidMixin to be paranoid",
        )
    if options is not None and not isinstance(options, Mapping):
        raise ConfigurationError(
            f"Mapping expected for paranoid options, got {type(options).__name__}",
            record_type=record_type,
        )

    merged: Dict[str, Any] = dict(options or {})
    merged.update(kwargs)
    try:
        configuration = build_configuration(merged)
    except ConfigurationError as exc:
        exc.record_type = record_type
        raise

    missing = [
        column.column
        for column in configuration.columns
        if not hasattr(record_type, column.column)
    ]
    if missing:
        raise ConfigurationError(
            f"{record_type.__name__} has no marker attribute {', '.join(missing)}",
            record_type=record_type,
        )

    if registry.register(record_type, configuration):
        install_default_scope()
        install_commit_hooks()
        hooks = dispatcher.wire_class_hooks(record_type)
        logger.info(
            "Configured %s as paranoid on %s (%s hooks)",
            record_type.__name__,
            ", ".join(column.column for column in configuration.columns),
            hooks,
        )

    return configuration


def acts_as_paranoid(options: Optional[Any] = None, **kwargs: Any) -> Any:
    """
    Class decorator form of :func:`configure`.

    Usage:
        @acts_as_paranoid(column="is_deleted", column_type="boolean")
        class Order(Base, ParanoidMixin):
            ...
    """

    def decorator(record_type: Type[Any]) -> Type[Any]:
        configure(record_type, options, **kwargs)
        return record_type

    return decorator


def is_paranoid(record_type: Type[Any]) -> bool:
    return registry.is_paranoid(record_type)


def get_configuration(record_type: Type[Any]) -> ParanoidConfiguration:
    """Return the configuration of a paranoid type or raise ConfigurationError."""
    return registry.get(record_type)
