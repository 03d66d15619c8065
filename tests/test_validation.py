"""
Tests for uniqueness checks that ignore deleted rows.
"""

import pytest
from sample_models import Account

from paranoid_toolkit.soft_delete import (
    ConfigurationError,
    UniquenessViolation,
    check_uniqueness_without_deleted,
    validates_uniqueness_without_deleted,
)


@pytest.fixture
def account(db_session):
    record = Account(email="qa@example.com")
    db_session.add(record)
    db_session.commit()
    return record


class TestUniquenessWithoutDeleted:
    """Test the flush-time uniqueness check."""

    def test_duplicate_active_record(self, db_session, account):
        """Test that an active duplicate is rejected."""
        db_session.add(Account(email="qa@example.com"))

        with pytest.raises(UniquenessViolation) as exc_info:
            db_session.commit()

        assert exc_info.value.fields == ("email",)
        assert exc_info.value.record_type is Account
        db_session.rollback()

    def test_deleted_record_is_ignored(self, db_session, account):
        """Test re-creating a record after deleting the original."""
        account.destroy()

        db_session.add(Account(email="qa@example.com"))
        db_session.commit()

        assert Account.with_deleted(db_session).count() == 2
        assert db_session.query(Account).count() == 1

    def test_record_does_not_conflict_with_itself(self, db_session, account):
        """Test updating a record without changing the unique field."""
        account.email = "QA@example.com"
        db_session.commit()

        account.email = "qa@example.com"
        db_session.commit()

        assert db_session.query(Account).one().email == "qa@example.com"

    def test_recovery_into_conflict(self, db_session, account):
        """Test that recovering a record that now has a twin is rejected."""
        account.destroy()
        db_session.add(Account(email="qa@example.com"))
        db_session.commit()

        with pytest.raises(UniquenessViolation):
            account.recover()

        assert account.paranoid_deleted

    def test_null_values_are_not_checked(self, db_session):
        """Test that missing values never conflict."""
        db_session.add_all([Account(email=None), Account(email=None)])
        db_session.commit()

        assert db_session.query(Account).count() == 2

    def test_direct_check(self, db_session, account):
        """Test the underlying check on a connection."""
        duplicate = Account(email="qa@example.com")

        with pytest.raises(UniquenessViolation):
            check_uniqueness_without_deleted(
                db_session.connection(), duplicate, ["email"]
            )

        check_uniqueness_without_deleted(
            db_session.connection(), Account(email="other@example.com"), ["email"]
        )

    def test_requires_fields(self):
        """Test registering a check without fields."""
        with pytest.raises(ConfigurationError):
            validates_uniqueness_without_deleted(Account)
