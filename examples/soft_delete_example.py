#!/usr/bin/env python3
"""
Soft Delete Example - Paranoid Python Toolkit

IMPORTANT: This is a demonstration file prioritizing readability over
production readiness. It uses an in-memory database and prints its progress.

Demonstrates paranoid records:
- Soft deletion hidden from ordinary queries
- Recovery of dependents deleted alongside their parent
- Permanent deletion and frozen records
- Lifecycle hooks
"""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, create_engine
from sqlalchemy.orm import declarative_base, relationship, sessionmaker

from paranoid_toolkit import ParanoidMixin, configure, listens_for
from paranoid_toolkit.soft_delete import FrozenRecordError

Base = declarative_base()


class ClinicalSite(Base, ParanoidMixin):
    """Clinical trial site whose patients are its dependents."""

    __tablename__ = "clinical_sites"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    deleted_at = Column(DateTime, nullable=True)

    patients = relationship(
        "Patient", back_populates="site", info={"dependent": "destroy"}
    )


class Patient(Base, ParanoidMixin):
    """Patient record with soft delete capability."""

    __tablename__ = "patients"

    id = Column(Integer, primary_key=True)
    site_id = Column(Integer, ForeignKey("clinical_sites.id"))
    patient_code = Column(String, nullable=False)
    deleted_at = Column(DateTime, nullable=True)

    site = relationship("ClinicalSite", back_populates="patients")


configure(ClinicalSite)
configure(Patient)


@listens_for(Patient, "after_recover")
def announce_recovery(patient: Patient) -> None:
    print(f"   ↩️  Patient {patient.patient_code} recovered")


def demonstrate_soft_delete() -> None:
    """Show soft delete functionality."""
    print("🗑️  Soft Delete Example\n")

    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine)
    session = Session()

    # 1. Create test data
    print("1️⃣ Creating Test Data:")
    site = ClinicalSite(
        name="City Medical Center",
        patients=[Patient(patient_code="CMC-001"), Patient(patient_code="CMC-002")],
    )
    session.add(site)
    session.commit()
    print(f"   Sites: {session.query(ClinicalSite).count()}")
    print(f"   Patients: {session.query(Patient).count()}\n")

    # 2. Soft delete a patient, then the site
    print("2️⃣ Soft Deleting:")
    first, second = site.patients
    first.destroy()
    site.destroy()
    print(f"   Active sites: {session.query(ClinicalSite).count()}")
    print(f"   Active patients: {session.query(Patient).count()}")
    print(f"   Deleted patients: {Patient.only_deleted(session).count()}\n")

    # 3. Recover the site; the patient deleted just before comes back too
    print("3️⃣ Recovering:")
    site.recover()
    print(f"   Active sites: {session.query(ClinicalSite).count()}")
    print(f"   Active patients: {session.query(Patient).count()}\n")

    # 4. Permanent deletion removes the rows and freezes the instances
    print("4️⃣ Permanent Deletion:")
    patients = list(site.patients)
    site.destroy_permanently()
    session.commit()
    print(f"   Site frozen: {site.is_frozen}")
    print(f"   Patients frozen: {all(p.is_frozen for p in patients)}")
    try:
        site.recover()
    except FrozenRecordError as e:
        print(f"   ❌ {e}")
    print(f"   Rows left: {ClinicalSite.with_deleted(session).count()}\n")

    session.close()
    print("✅ Soft delete demonstration complete!")


if __name__ == "__main__":
    demonstrate_soft_delete()
