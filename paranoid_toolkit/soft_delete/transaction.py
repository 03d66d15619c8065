"""
Transaction scope shared by a paranoid operation and its cascades.

The outermost destroy/delete/recover call acquires a :class:`TransactionContext`
and passes it explicitly to every cascaded call, so nested operations join the
same database transaction instead of opening their own.
"""

import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator, List, Optional, Set, Tuple

from sqlalchemy import event, inspect as sa_inspect
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

_AFTER_COMMIT_KEY = "paranoid_after_commit"
_AFTER_ROLLBACK_KEY = "paranoid_after_rollback"

_hooks_installed = False


class TransactionContext:
    """
    A running transaction used by one paranoid operation tree.

    Attributes:
        session: Session the operation runs in
        owned: Whether this context began the transaction and will commit it
    """

    def __init__(self, session: Session, owned: bool):
        self.session = session
        self.owned = owned
        self._active: Set[Tuple[type, Any]] = set()

    @classmethod
    @contextmanager
    def acquire(
        cls, session: Session, parent: Optional["TransactionContext"] = None
    ) -> Iterator["TransactionContext"]:
        """
        Join ``parent``, or start or join a transaction on ``session``.

        Any exception rolls back the whole transaction and is re-raised.

        Args:
            session: Session of the record being changed
            parent: Context of the calling operation, if any

        Yields:
            The transaction context
        """
        if parent is not None:
            yield parent
            return

        if session.in_transaction():
            context = cls(session, owned=False)
            try:
                yield context
            except Exception:
                logger.debug("Rolling back joined transaction after failure")
                session.rollback()
                raise
        else:
            with session.begin():
                yield cls(session, owned=True)

    def enter(self, record: Any) -> bool:
        """
        Mark ``record`` as in progress.

        Returns:
            False if the record is already being processed in this context
        """
        key = (type(record), sa_inspect(record).identity)
        if key in self._active:
            return False
        self._active.add(key)
        return True

    def leave(self, record: Any) -> None:
        self._active.discard((type(record), sa_inspect(record).identity))

    def after_commit(self, callback: Callable[[], Any]) -> None:
        """Run ``callback`` once the enclosing transaction commits."""
        install_commit_hooks()
        self.session.info.setdefault(_AFTER_COMMIT_KEY, []).append(callback)

    def after_rollback(self, callback: Callable[[], Any]) -> None:
        """Run ``callback`` if the enclosing transaction is rolled back."""
        install_commit_hooks()
        self.session.info.setdefault(_AFTER_ROLLBACK_KEY, []).append(callback)


def _run_after_commit(session: Session) -> None:
    session.info.pop(_AFTER_ROLLBACK_KEY, None)
    callbacks: List[Callable[[], Any]] = session.info.pop(_AFTER_COMMIT_KEY, [])
    for callback in callbacks:
        callback()


def _run_after_rollback(session: Session) -> None:
    if session.info.pop(_AFTER_COMMIT_KEY, None):
        logger.debug("Discarded after-commit hooks of a rolled back transaction")
    callbacks: List[Callable[[], Any]] = session.info.pop(_AFTER_ROLLBACK_KEY, [])
    for callback in callbacks:
        callback()


def install_commit_hooks() -> None:
    """Install the session listeners that run commit and rollback callbacks."""
    global _hooks_installed

    if _hooks_installed:
        return
    event.listen(Session, "after_commit", _run_after_commit)
    event.listen(Session, "after_rollback", _run_after_rollback)
    _hooks_installed = True
