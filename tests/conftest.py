"""
Test configuration for the pharmacy finder project.

Ensures the project root is on sys.path so tests can import `app.*` modules,
and provides small hand-built catalogs and pharmacy stores.
"""
import os
import sys


PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import random

import pytest

from app.core.medicine_catalog import Medicine, MedicineCatalog
from app.core.pharmacy_store import InventoryEntry, Pharmacy, PharmacyStore


USER_LAT = 12.9716
USER_LNG = 77.5946


class FixedRandom(random.Random):
    """Random source whose ``random()`` always returns the same value."""

    def __init__(self, value: float = 0.5):
        super().__init__(0)
        self.value = value

    def random(self) -> float:
        return self.value


@pytest.fixture
def medicine_factory():
    def _make(
        medicine_id,
        name,
        salt_composition="acetaminophen",
        therapeutic_class="Analgesic",
        indication="Fever",
        dosage_form="Tablet",
        strength="500 mg",
        popularity=50,
    ):
        return Medicine(
            id=medicine_id,
            name=name,
            generic_name=name,
            category=therapeutic_class,
            dosage_form=dosage_form,
            strength=strength,
            manufacturer="Test Labs",
            indication=indication,
            classification="Over-the-Counter",
            salt_composition=salt_composition,
            therapeutic_class=therapeutic_class,
            prescription_required=False,
            popularity=popularity,
            description=f"{therapeutic_class} medication for {indication}",
        )

    return _make


@pytest.fixture
def pharmacy_factory():
    def _make(pharmacy_id, lat=USER_LAT, lng=USER_LNG, rating=4.0, open_hours="8-22", is_24x7=False, inventory=None):
        return Pharmacy(
            id=pharmacy_id,
            name=f"Pharmacy {pharmacy_id}",
            address="Test Street",
            phone="+91-80-0000-0000",
            lat=lat,
            lng=lng,
            rating=rating,
            open_hours=open_hours,
            is_24x7=is_24x7,
            type="independent",
            services=["prescription", "otc"],
            inventory=list(inventory or []),
        )

    return _make


@pytest.fixture
def two_pharmacy_store(pharmacy_factory):
    """
    P1 at the user's location: price 100, stock 50, rating 5.
    P2 about 2 km north: price 50, stock 5, rating 3.
    """
    p1 = pharmacy_factory(
        "P1", rating=5.0, inventory=[InventoryEntry(medicine_id="med_para", price=100, stock=50)]
    )
    p2 = pharmacy_factory(
        "P2",
        lat=USER_LAT + 0.018,
        rating=3.0,
        inventory=[InventoryEntry(medicine_id="med_para", price=50, stock=5)],
    )
    p3 = pharmacy_factory(
        "P3",
        inventory=[InventoryEntry(medicine_id="med_other", price=10, stock=100)],
    )
    return PharmacyStore([p1, p2, p3])


@pytest.fixture
def sample_catalog(medicine_factory):
    return MedicineCatalog(
        [
            medicine_factory("med_para", "Paracetamol 500mg Tablet"),
            medicine_factory("med_crocin", "Crocin 650mg Tablet", strength="650 mg"),
            medicine_factory(
                "med_ibu", "Ibuprofen 400mg Tablet", salt_composition="ibuprofen", indication="Pain", strength="400 mg"
            ),
            medicine_factory(
                "med_amox",
                "Amoxicillin 500mg Capsule",
                salt_composition="amoxicillin",
                therapeutic_class="Antibiotic",
                indication="Infection",
                dosage_form="Capsule",
            ),
            medicine_factory("med_other", "Lonely Balm", salt_composition="lonely balm", therapeutic_class="Balm"),
        ]
    )


@pytest.fixture
def fixed_random():
    return FixedRandom(0.5)
