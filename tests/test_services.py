"""
Tests for the paranoid maintenance service.
"""

from datetime import datetime, timedelta

import pytest
from sample_models import Company, Flag, Product

from paranoid_toolkit.soft_delete import (
    ConfigurationError,
    DeletionSummary,
    ParanoidService,
    RecordNotFound,
)


@pytest.fixture
def service(db_session):
    return ParanoidService(db_session)


@pytest.fixture
def companies(db_session):
    records = [Company(name=name) for name in ("Alpha", "Beta", "Gamma")]
    db_session.add_all(records)
    db_session.commit()
    return records


class TestDelete:
    """Test bulk deletion through the service."""

    def test_delete_ids(self, db_session, service, companies):
        """Test deleting records by primary key."""
        count = service.delete(Company, [companies[0].id, companies[1].id])

        assert count == 2
        assert not db_session.in_transaction()
        assert [c.name for c in db_session.query(Company)] == ["Gamma"]

    def test_delete_single_id_permanently(self, db_session, service, companies):
        """Test permanent deletion of one record."""
        count = service.delete(Company, companies[2].id, permanent=True)

        assert count == 1
        assert Company.only_deleted(db_session).count() == 0
        assert [c.name for c in Company.with_deleted(db_session)] == ["Alpha", "Beta"]


class TestRecover:
    """Test recovery by primary key."""

    def test_recover(self, db_session, service, companies):
        """Test recovering a deleted record."""
        alpha = companies[0]
        alpha.destroy()
        alpha_id = alpha.id
        db_session.expunge_all()

        recovered = service.recover(Company, alpha_id)

        assert recovered.name == "Alpha"
        assert not recovered.paranoid_deleted
        assert db_session.query(Company).count() == 3

    def test_recover_with_options(self, db_session, service, companies, clock):
        """Test passing recovery options through."""
        alpha = companies[0]
        alpha.products = [Product(name="Anvil")]
        db_session.commit()
        (anvil,) = alpha.products
        anvil.destroy()
        alpha.destroy()

        service.recover(Company, alpha.id, recursive=False)

        assert anvil.paranoid_deleted
        assert not alpha.paranoid_deleted

    def test_recover_active_record(self, service, companies):
        """Test that active records are not found for recovery."""
        with pytest.raises(RecordNotFound) as exc_info:
            service.recover(Company, companies[0].id)

        assert exc_info.value.record_id == companies[0].id

    def test_recover_missing_record(self, service):
        """Test recovering an unknown primary key."""
        with pytest.raises(RecordNotFound, match="not found"):
            service.recover(Company, 999)


class TestListDeleted:
    """Test listing deleted records."""

    @pytest.fixture
    def deleted(self, companies, clock):
        start = clock.now
        for offset, company in enumerate(companies[:2]):
            clock.now = start + timedelta(days=offset)
            company.destroy()
        return start

    def test_newest_first(self, service, deleted):
        """Test ordering by deletion time."""
        names = [c.name for c in service.list_deleted(Company)]
        assert names == ["Beta", "Alpha"]

    def test_time_bounds(self, service, deleted):
        """Test filtering by deletion time."""
        after = service.list_deleted(Company, deleted_after=deleted + timedelta(hours=1))
        before = service.list_deleted(
            Company, deleted_before=deleted + timedelta(hours=1)
        )

        assert [c.name for c in after] == ["Beta"]
        assert [c.name for c in before] == ["Alpha"]

    def test_pagination(self, service, deleted):
        """Test limit and offset."""
        assert [c.name for c in service.list_deleted(Company, limit=1)] == ["Beta"]
        assert [c.name for c in service.list_deleted(Company, offset=1)] == ["Alpha"]

    def test_boolean_marker(self, db_session, service):
        """Test listing records without a time marker."""
        flags = [Flag(name="a"), Flag(name="b")]
        db_session.add_all(flags)
        db_session.commit()
        flags[0].destroy()

        assert [f.name for f in service.list_deleted(Flag)] == ["a"]
        with pytest.raises(ConfigurationError):
            service.list_deleted(Flag, deleted_after=datetime(2024, 1, 1))


class TestPurge:
    """Test physical removal of old deleted rows."""

    def test_purge_old_rows(self, db_session, service, companies, clock):
        """Test that only rows deleted before the cutoff are removed."""
        alpha, beta, _ = companies
        alpha.destroy()
        clock.advance(days=39)
        beta.destroy()
        clock.advance(days=1)

        count = service.purge(Company, timedelta(days=30))

        assert count == 1
        assert sorted(c.name for c in Company.with_deleted(db_session)) == [
            "Beta",
            "Gamma",
        ]

    def test_purge_keeps_active_rows(self, db_session, service, companies, clock):
        """Test that active rows survive any cutoff."""
        clock.advance(days=365)

        assert service.purge(Company, timedelta(0)) == 0
        assert db_session.query(Company).count() == 3

    def test_purge_requires_time_marker(self, service):
        """Test purging a type without a time marker."""
        with pytest.raises(ConfigurationError, match="time column"):
            service.purge(Flag, timedelta(days=1))


class TestDeletionSummary:
    """Test deletion summaries."""

    def test_summary(self, db_session, service, companies, clock):
        """Test counting deletions per type within a period."""
        start = clock.now
        product = Product(name="Anvil")
        flag = Flag(name="beta")
        db_session.add_all([product, flag])
        db_session.commit()

        companies[0].destroy()
        product.destroy()
        flag.destroy()
        clock.advance(days=10)
        companies[1].destroy()

        summary = service.deletion_summary(
            [Company, Product, Flag], start, start + timedelta(days=1)
        )

        assert isinstance(summary, DeletionSummary)
        assert summary.total_deleted == 2
        assert summary.by_type == {"Company": 1, "Product": 1}

    def test_add(self, clock):
        """Test accumulating counts."""
        summary = DeletionSummary(start_date=clock.now, end_date=clock.now)

        summary.add("Company", 2)
        summary.add("Company", 1)

        assert summary.total_deleted == 3
        assert summary.by_type == {"Company": 3}
