"""
Paranoid Toolkit - recoverable soft deletion for SQLAlchemy models.

Instead of removing rows, deleting a paranoid record writes one or more
marker columns. Marked rows disappear from ordinary queries, can still be
reached explicitly and can be recovered later, together with the dependent
records that were deleted alongside them.

Key Features
------------
* **Marker columns**: time, boolean or string markers, one primary plus
  any number of secondary columns
* **Default scopes**: deleted rows are hidden from ORM queries and
  relationship loads unless ``with_deleted`` is requested
* **Lifecycle**: soft and permanent destroy/delete, and recovery
* **Cascades**: permanent deletion and time-windowed recovery of dependents
* **Hooks**: before/after destroy and recover hooks plus observers

Quick Start
-----------
>>> from sqlalchemy import Column, DateTime, Integer, String
>>> from sqlalchemy.orm import declarative_base
>>> from paranoid_toolkit import ParanoidMixin, configure
>>>
>>> Base = declarative_base()
>>>
>>> class Invoice(Base, ParanoidMixin):
...     __tablename__ = "invoices"
...     id = Column(Integer, primary_key=True)
...     number = Column(String(50))
...     deleted_at = Column(DateTime, nullable=True)
>>>
>>> configure(Invoice)
>>>
>>> invoice.destroy()               # soft delete
>>> Invoice.with_deleted(session)   # includes deleted rows
>>> invoice.recover()               # back to active

Documentation
-------------
See the /examples directory for usage examples.

License
-------
MIT License - See LICENSE file for details.
"""

__version__ = "1.0.0"

from .config import ParanoidSettings, configure_defaults, get_config, set_config
from .soft_delete import (
    ConfigurationError,
    ParanoidMixin,
    ParanoidObserver,
    ParanoidService,
    acts_as_paranoid,
    configure,
    listen,
    listens_for,
)

__all__ = [
    # Soft Delete
    "ParanoidMixin",
    "ParanoidService",
    "ParanoidObserver",
    "ConfigurationError",
    "configure",
    "acts_as_paranoid",
    "listen",
    "listens_for",
    # Configuration
    "ParanoidSettings",
    "get_config",
    "set_config",
    "configure_defaults",
]
