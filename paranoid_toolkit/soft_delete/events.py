"""
Lifecycle hooks and observers for paranoid records.

Hooks are registered per record type, the same way SQLAlchemy mapper events
are::

    listen(Invoice, "before_recover", audit_recovery)

    @listens_for(Invoice, "after_destroy")
    def on_destroy(invoice):
        ...

Methods in a class body can be marked with :func:`paranoid_hook`; they are
wired when the class is configured. Observers group several hooks in one
object and subscribe to one or more record types.
"""

import inspect
import logging
import threading
from collections import defaultdict
from typing import Any, Callable, DefaultDict, Dict, List, Set, Tuple, Type

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

HOOK_NAMES = (
    "before_destroy",
    "after_destroy",
    "after_destroy_commit",
    "before_recover",
    "after_recover",
)

Listener = Callable[[Any], Any]

_HOOK_MARKER = "__paranoid_hooks__"


def _check_name(name: str) -> None:
    if name not in HOOK_NAMES:
        raise ConfigurationError(
            f"Unknown paranoid hook {name!r}; expected one of {', '.join(HOOK_NAMES)}"
        )


class ParanoidObserver:
    """
    Base class for observers of paranoid lifecycle hooks.

    Define any of the hook-named methods; each receives the record.

    Usage:
        class RecoveryAudit(ParanoidObserver):
            def after_recover(self, record):
                ...

        subscribe(RecoveryAudit(), Invoice, Payment)
    """


class EventDispatcher:
    """Registry of hook listeners and observers keyed by record type."""

    def __init__(self) -> None:
        self._listeners: DefaultDict[Tuple[type, str], List[Listener]] = defaultdict(
            list
        )
        self._observers: List[Tuple[ParanoidObserver, Tuple[type, ...]]] = []
        self._wired: Set[Tuple[type, str]] = set()
        self._lock = threading.Lock()

    def listen(self, record_type: Type[Any], name: str, fn: Listener) -> None:
        _check_name(name)
        with self._lock:
            self._listeners[(record_type, name)].append(fn)

    def remove(self, record_type: Type[Any], name: str, fn: Listener) -> None:
        _check_name(name)
        with self._lock:
            listeners = self._listeners.get((record_type, name), [])
            if fn not in listeners:
                raise ValueError(
                    f"{fn!r} is not registered for {name} on {record_type.__name__}"
                )
            listeners.remove(fn)

    def contains(self, record_type: Type[Any], name: str, fn: Listener) -> bool:
        return fn in self._listeners.get((record_type, name), [])

    def subscribe(self, observer: ParanoidObserver, *record_types: type) -> None:
        if not record_types:
            raise ConfigurationError("Observer needs at least one record type")
        with self._lock:
            self._observers.append((observer, tuple(record_types)))

    def unsubscribe(self, observer: ParanoidObserver) -> None:
        with self._lock:
            self._observers = [
                entry for entry in self._observers if entry[0] is not observer
            ]

    def wire_class_hooks(self, record_type: Type[Any]) -> int:
        """
        Register methods marked with :func:`paranoid_hook` along the MRO.

        Each method is registered on the class that defines it, once.

        Returns:
            Number of newly registered hooks
        """
        count = 0
        for klass in record_type.__mro__:
            for attr_name, attr in vars(klass).items():
                if not inspect.isfunction(attr):
                    continue
                for name in getattr(attr, _HOOK_MARKER, ()):
                    key = (klass, f"{attr_name}:{name}")
                    with self._lock:
                        if key in self._wired:
                            continue
                        self._wired.add(key)
                        self._listeners[(klass, name)].append(attr)
                    count += 1
        return count

    def notify(self, name: str, record: Any) -> None:
        """Run every listener and observer registered for ``name`` on ``record``."""
        _check_name(name)
        listeners: List[Listener] = []
        for klass in type(record).__mro__:
            listeners.extend(self._listeners.get((klass, name), ()))
        observers = [
            observer
            for observer, record_types in self._observers
            if isinstance(record, record_types)
        ]

        for fn in listeners:
            fn(record)
        for observer in observers:
            method = getattr(observer, name, None)
            if method is not None:
                method(record)

    def clear(self) -> None:
        """Drop all listeners and observers."""
        with self._lock:
            self._listeners.clear()
            self._observers.clear()
            self._wired.clear()


dispatcher = EventDispatcher()


def listen(record_type: Type[Any], name: str, fn: Listener) -> None:
    """
    Register ``fn`` to run on hook ``name`` for ``record_type`` and subclasses.

    Args:
        record_type: Paranoid record class
        name: One of :data:`HOOK_NAMES`
        fn: Callable receiving the record
    """
    dispatcher.listen(record_type, name, fn)


def listens_for(record_type: Type[Any], name: str) -> Callable[[Listener], Listener]:
    """Decorator form of :func:`listen`."""

    def decorator(fn: Listener) -> Listener:
        listen(record_type, name, fn)
        return fn

    return decorator


def remove(record_type: Type[Any], name: str, fn: Listener) -> None:
    """Remove a listener registered with :func:`listen`."""
    dispatcher.remove(record_type, name, fn)


def contains(record_type: Type[Any], name: str, fn: Listener) -> bool:
    return dispatcher.contains(record_type, name, fn)


def subscribe(observer: ParanoidObserver, *record_types: type) -> None:
    """Subscribe an observer to the hooks of the given record types."""
    dispatcher.subscribe(observer, *record_types)


def unsubscribe(observer: ParanoidObserver) -> None:
    dispatcher.unsubscribe(observer)


def notify(name: str, record: Any) -> None:
    dispatcher.notify(name, record)


def paranoid_hook(*names: str) -> Callable[[Listener], Listener]:
    """
    Mark a method to run on the given hooks of its class.

    Usage:
        class Invoice(Base, ParanoidMixin):
            @paranoid_hook("before_recover")
            def reopen(self):
                ...
    """
    for name in names:
        _check_name(name)

    def decorator(fn: Listener) -> Listener:
        existing: Dict[str, None] = dict.fromkeys(getattr(fn, _HOOK_MARKER, ()))
        existing.update(dict.fromkeys(names))
        setattr(fn, _HOOK_MARKER, tuple(existing))
        return fn

    return decorator
