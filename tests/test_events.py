"""
Tests for lifecycle hooks and observers.
"""

import pytest
from sample_models import Company, Journal, Product

from paranoid_toolkit.soft_delete import (
    HOOK_NAMES,
    ConfigurationError,
    ParanoidMixin,
    ParanoidObserver,
    configure,
    listen,
    listens_for,
    paranoid_hook,
    remove,
    subscribe,
    unsubscribe,
)
from paranoid_toolkit.soft_delete.events import contains


@pytest.fixture
def journal(db_session):
    record = Journal(name="Ledger")
    db_session.add(record)
    db_session.commit()
    return record


class RecordingObserver(ParanoidObserver):
    """Observer recording every notification it receives."""

    def __init__(self):
        self.calls = []

    def before_recover(self, record):
        self.calls.append(("before_recover", record))

    def after_recover(self, record):
        self.calls.append(("after_recover", record))

    def after_destroy(self, record):
        self.calls.append(("after_destroy", record))


class TestClassHooks:
    """Test hooks declared in the class body."""

    def test_destroy_hooks(self, journal, hook_calls):
        """Test destroy hooks fire once, in order."""
        journal.destroy()

        assert [name for name, _ in hook_calls] == [
            "before_destroy",
            "after_destroy",
            "after_destroy_commit",
        ]
        assert all(record is journal for _, record in hook_calls)

    def test_recover_hooks(self, journal, hook_calls):
        """Test recover hooks fire exactly once per call."""
        journal.destroy()
        hook_calls.clear()

        journal.recover()

        assert [name for name, _ in hook_calls] == ["before_recover", "after_recover"]

    def test_permanent_destroy_hooks(self, journal, hook_calls):
        """Test hooks of a permanent destroy."""
        journal.destroy_permanently()

        assert [name for name, _ in hook_calls] == [
            "before_destroy",
            "after_destroy",
            "after_destroy_commit",
        ]

    def test_delete_runs_no_hooks(self, journal, hook_calls):
        """Test that delete skips destroy hooks."""
        journal.delete()
        journal.delete()

        assert hook_calls == []
        assert journal.is_frozen

    def test_transient_destroy_runs_no_hooks(self, hook_calls):
        """Test that records without identity are only marked."""
        Journal(name="Draft").destroy()

        assert hook_calls == []

    def test_reconfigure_does_not_rewire(self, journal, hook_calls):
        """Test that configuring a type again keeps hooks firing once."""
        configure(Journal)

        journal.destroy()

        assert len(hook_calls) == 3

    def test_unknown_hook_name(self):
        """Test rejecting unknown names in the class-body decorator."""
        with pytest.raises(ConfigurationError, match="Unknown paranoid hook"):
            paranoid_hook("after_save")


class TestAfterCommit:
    """Test the after_destroy_commit hook."""

    def test_waits_for_outer_commit(self, db_session, journal, hook_calls):
        """Test that the hook fires when the joined transaction commits."""
        assert journal.name == "Ledger"

        journal.destroy()
        assert [name for name, _ in hook_calls] == ["before_destroy", "after_destroy"]

        db_session.commit()
        assert hook_calls[-1] == ("after_destroy_commit", journal)

    def test_discarded_on_rollback(self, db_session, journal, hook_calls):
        """Test that a rolled back destroy never reports a commit."""
        assert journal.name == "Ledger"

        journal.destroy()
        db_session.rollback()
        db_session.commit()

        assert "after_destroy_commit" not in [name for name, _ in hook_calls]


class TestListeners:
    """Test listen, listens_for and remove."""

    def test_listen(self, db_session, hook_listener):
        """Test a listener registered on a type."""
        seen = []
        hook_listener(Company, "before_destroy", seen.append)
        company = Company(name="Acme")
        db_session.add(company)
        db_session.commit()

        company.destroy()

        assert seen == [company]

    def test_listens_for_and_remove(self, db_session):
        """Test the decorator form and removing the listener."""
        seen = []

        @listens_for(Company, "after_recover")
        def on_recover(company):
            seen.append(company.name)

        try:
            assert contains(Company, "after_recover", on_recover)
            company = Company(name="Acme")
            db_session.add(company)
            db_session.commit()
            company.destroy()
            company.recover()
        finally:
            remove(Company, "after_recover", on_recover)

        assert seen == ["Acme"]
        assert not contains(Company, "after_recover", on_recover)

    def test_remove_unknown_listener(self):
        """Test removing a listener that was never registered."""
        with pytest.raises(ValueError):
            remove(Company, "after_recover", lambda record: None)

    def test_unknown_hook_name(self):
        """Test rejecting unknown hook names."""
        with pytest.raises(ConfigurationError):
            listen(Company, "after_save", lambda record: None)

    def test_listener_on_base_class(self, db_session, hook_listener):
        """Test that listeners on a base class see every subclass."""
        seen = []
        hook_listener(ParanoidMixin, "after_destroy", seen.append)
        company = Company(name="Acme")
        product = Product(name="Anvil")
        db_session.add_all([company, product])
        db_session.commit()

        company.destroy()
        product.destroy()

        assert seen == [company, product]

    def test_hook_names(self):
        """Test the published hook names."""
        assert HOOK_NAMES == (
            "before_destroy",
            "after_destroy",
            "after_destroy_commit",
            "before_recover",
            "after_recover",
        )


class TestObservers:
    """Test observer subscriptions."""

    def test_observer_receives_recovery(self, db_session, clock):
        """Test recover notifications for a record and its dependents."""
        observer = RecordingObserver()
        subscribe(observer, Company, Product)
        try:
            company = Company(name="Acme", products=[Product(name="Anvil")])
            db_session.add(company)
            db_session.commit()
            (anvil,) = company.products
            anvil.destroy()
            company.destroy()
            observer.calls.clear()

            company.recover()
        finally:
            unsubscribe(observer)

        assert observer.calls == [
            ("before_recover", company),
            ("before_recover", anvil),
            ("after_recover", anvil),
            ("after_recover", company),
        ]

    def test_observer_filters_types(self, db_session):
        """Test that observers only see subscribed types."""
        observer = RecordingObserver()
        subscribe(observer, Product)
        try:
            company = Company(name="Acme")
            db_session.add(company)
            db_session.commit()
            company.destroy()
        finally:
            unsubscribe(observer)

        assert observer.calls == []

    def test_unsubscribe(self, db_session):
        """Test that unsubscribed observers are not notified."""
        observer = RecordingObserver()
        subscribe(observer, Company)
        unsubscribe(observer)
        company = Company(name="Acme")
        db_session.add(company)
        db_session.commit()

        company.destroy()

        assert observer.calls == []

    def test_subscribe_requires_types(self):
        """Test subscribing without record types."""
        with pytest.raises(ConfigurationError):
            subscribe(RecordingObserver())
