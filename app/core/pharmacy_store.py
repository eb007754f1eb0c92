"""
In-memory pharmacy registry and inventory.

Pharmacies start from a fixed Bangalore seed list and their inventories are
generated once from the medicine catalog. Inventory entries are unique per
(pharmacy, medicine) pair: updates overwrite, they never duplicate.
"""
from __future__ import annotations

import copy
import itertools
import logging
import random
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Final, Iterator, List, Optional, Tuple

from app.core.errors import PharmacyNotFoundError
from app.core.geo import calculate_distance
from app.core.medicine_catalog import Medicine, MedicineCatalog


logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class InventoryEntry:
    medicine_id: str
    price: float
    stock: int
    discount: int = 0
    last_updated: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        if self.price < 0:
            raise ValueError("price cannot be negative")
        if self.stock < 0:
            raise ValueError("stock cannot be negative")
        if not 0 <= self.discount <= 100:
            raise ValueError("discount must be between 0 and 100")


@dataclass
class Pharmacy:
    id: str
    name: str
    address: str
    phone: str
    lat: float
    lng: float
    rating: float
    open_hours: str
    is_24x7: bool = False
    type: str = "independent"
    services: List[str] = field(default_factory=list)
    inventory: List[InventoryEntry] = field(default_factory=list)

    def find_entry(self, medicine_id: str) -> Optional[InventoryEntry]:
        for entry in self.inventory:
            if entry.medicine_id == medicine_id:
                return entry
        return None

    def summary(self) -> dict:
        """Public fields without the inventory."""
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "phone": self.phone,
            "rating": self.rating,
            "lat": self.lat,
            "lng": self.lng,
            "open_hours": self.open_hours,
            "is_24x7": self.is_24x7,
            "type": self.type,
            "services": list(self.services),
        }


SEED_PHARMACIES: Final[List[Pharmacy]] = [
    Pharmacy("pharm001", "Apollo Pharmacy", "MG Road, Bangalore, Karnataka 560001", "+91-80-2558-0101",
             12.9716, 77.5946, 4.5, "8-22", False, "chain",
             ["prescription", "otc", "consultation", "home_delivery"]),
    Pharmacy("pharm002", "MedPlus Pharmacy", "Koramangala, Bangalore, Karnataka 560034", "+91-80-4112-0102",
             12.9279, 77.6271, 4.2, "7-23", False, "chain",
             ["prescription", "otc", "vaccination", "health_checkup"]),
    Pharmacy("pharm003", "Netmeds Pharmacy", "Indiranagar, Bangalore, Karnataka 560038", "+91-80-2521-0103",
             12.9784, 77.6408, 4.3, "6-24", False, "chain",
             ["prescription", "otc", "consultation", "vaccination"]),
    Pharmacy("pharm004", "Wellness Forever", "Jayanagar, Bangalore, Karnataka 560011", "+91-80-2663-0104",
             12.9279, 77.5937, 4.1, "9-21", False, "independent",
             ["prescription", "otc", "home_delivery"]),
    Pharmacy("pharm005", "24x7 Medical Store", "Brigade Road, Bangalore, Karnataka 560025", "+91-80-2559-0105",
             12.9698, 77.6205, 4.0, "0-24", True, "independent",
             ["prescription", "otc", "emergency", "consultation"]),
    Pharmacy("pharm006", "HealthBuddy Pharmacy", "Whitefield, Bangalore, Karnataka 560066", "+91-80-2845-0106",
             12.9698, 77.7499, 4.4, "8-20", False, "independent",
             ["prescription", "otc", "consultation", "compounding"]),
    Pharmacy("pharm007", "QuickMeds Express", "Electronic City, Bangalore, Karnataka 560100", "+91-80-2783-0107",
             12.8456, 77.6603, 3.9, "10-22", False, "chain",
             ["prescription", "otc", "express_pickup"]),
    Pharmacy("pharm008", "Care & Cure Pharmacy", "HSR Layout, Bangalore, Karnataka 560102", "+91-80-4067-0108",
             12.9082, 77.6476, 4.6, "7-21", False, "independent",
             ["prescription", "otc", "consultation", "home_delivery", "medication_sync"]),
    Pharmacy("pharm009", "Fortis Pharmacy", "Bannerghatta Road, Bangalore, Karnataka 560076", "+91-80-6621-0109",
             12.8988, 77.6022, 4.3, "8-22", False, "hospital",
             ["prescription", "otc", "consultation", "vaccination"]),
    Pharmacy("pharm010", "Manipal Pharmacy", "Old Airport Road, Bangalore, Karnataka 560017", "+91-80-2520-0110",
             12.9591, 77.6469, 4.2, "24x7", True, "hospital",
             ["prescription", "otc", "emergency", "consultation", "vaccination"]),
]


_OPEN_HOURS_PATTERN = re.compile(r"^\s*(\d{1,2})\s*-\s*(\d{1,2})\s*$")


def is_open(open_hours: Optional[str], hour: int) -> bool:
    """
    Check an ``"8-22"`` style window against an hour of the day.

    ``"24x7"`` is always open; malformed or missing hours count as closed.
    """
    if not open_hours:
        return False
    if open_hours.strip().lower() == "24x7":
        return True
    match = _OPEN_HOURS_PATTERN.match(open_hours)
    if not match:
        return False
    open_time, close_time = int(match.group(1)), int(match.group(2))
    return open_time <= hour < close_time


class PharmacyStore:
    """
    Registry of pharmacies and their inventories.

    Read operations never reorder the underlying inventory lists.
    """

    def __init__(self, pharmacies: Optional[List[Pharmacy]] = None):
        source = SEED_PHARMACIES if pharmacies is None else pharmacies
        self._pharmacies: List[Pharmacy] = copy.deepcopy(source)
        self._custom_ids = itertools.count(1)

    def __len__(self) -> int:
        return len(self._pharmacies)

    def __iter__(self) -> Iterator[Pharmacy]:
        return iter(list(self._pharmacies))

    @property
    def pharmacies(self) -> List[Pharmacy]:
        return list(self._pharmacies)

    def get_pharmacy(self, pharmacy_id: str) -> Pharmacy:
        """
        Resolve a pharmacy id. ``"self"`` is the demo alias for the first one.

        Raises:
            PharmacyNotFoundError: If no pharmacy matches.
        """
        if pharmacy_id == "self" and self._pharmacies:
            return self._pharmacies[0]
        for pharmacy in self._pharmacies:
            if pharmacy.id == pharmacy_id:
                return pharmacy
        raise PharmacyNotFoundError(pharmacy_id)

    def pharmacies_with_medicine(self, medicine_id: str) -> List[Tuple[Pharmacy, InventoryEntry]]:
        """Pharmacies holding the medicine with stock > 0, with their entry."""
        matches: List[Tuple[Pharmacy, InventoryEntry]] = []
        for pharmacy in self._pharmacies:
            entry = pharmacy.find_entry(medicine_id)
            if entry is not None and entry.stock > 0:
                matches.append((pharmacy, entry))
        return matches

    def all_prices_for(self, medicine_id: str) -> List[float]:
        """Prices of every inventory entry for the medicine, in or out of stock."""
        prices: List[float] = []
        for pharmacy in self._pharmacies:
            entry = pharmacy.find_entry(medicine_id)
            if entry is not None:
                prices.append(entry.price)
        return prices

    def average_price_for(self, medicine_id: str) -> float:
        prices = self.all_prices_for(medicine_id)
        return sum(prices) / len(prices) if prices else 0.0

    def nearby(
        self,
        lat: float,
        lng: float,
        radius_km: float,
        medicine_id: Optional[str] = None,
    ) -> List[Tuple[Pharmacy, float]]:
        """Pharmacies within the radius, nearest first, optionally stocking a medicine."""
        if radius_km < 0:
            raise ValueError("radius must not be negative")

        results: List[Tuple[Pharmacy, float]] = []
        for pharmacy in self._pharmacies:
            distance = calculate_distance(lat, lng, pharmacy.lat, pharmacy.lng)
            if distance > radius_km:
                continue
            if medicine_id is not None:
                entry = pharmacy.find_entry(medicine_id)
                if entry is None or entry.stock <= 0:
                    continue
            results.append((pharmacy, distance))

        results.sort(key=lambda item: (item[1], item[0].id))
        return results

    def compare_prices(
        self,
        medicine_id: str,
        lat: Optional[float] = None,
        lng: Optional[float] = None,
        radius_km: float = 10.0,
    ) -> List[dict]:
        """
        In-stock offers for a medicine, cheapest first.

        When a location is given only pharmacies within the radius are kept
        and each offer carries its distance; otherwise distance is None.

        Raises:
            ValueError: If only one of lat and lng is given.
        """
        if (lat is None) != (lng is None):
            raise ValueError("lat and lng must be given together")

        with_location = lat is not None and lng is not None
        offers: List[dict] = []

        for pharmacy, entry in self.pharmacies_with_medicine(medicine_id):
            distance: Optional[float] = None
            if with_location:
                distance = calculate_distance(lat, lng, pharmacy.lat, pharmacy.lng)
                if distance > radius_km:
                    continue
            offers.append({"pharmacy": pharmacy, "entry": entry, "distance": distance})

        offers.sort(key=lambda offer: (offer["entry"].price, offer["pharmacy"].id))
        return offers

    def add_pharmacy(self, name: str, rng: Optional[random.Random] = None) -> Pharmacy:
        """
        Register a lightweight custom pharmacy near the first seed location.

        Raises:
            ValueError: If the name is blank.
        """
        if not isinstance(name, str) or not name.strip():
            raise ValueError("pharmacy name cannot be empty")

        rng = rng or random.Random()
        base_lat, base_lng = (
            (self._pharmacies[0].lat, self._pharmacies[0].lng) if self._pharmacies else (12.97, 77.59)
        )
        existing_ids = {p.id for p in self._pharmacies}
        pharmacy_id = f"pharm_custom_{next(self._custom_ids)}"
        while pharmacy_id in existing_ids:
            pharmacy_id = f"pharm_custom_{next(self._custom_ids)}"

        pharmacy = Pharmacy(
            id=pharmacy_id,
            name=name.strip(),
            address="Custom Address",
            phone="",
            lat=base_lat + (rng.random() - 0.5) * 0.01,
            lng=base_lng + (rng.random() - 0.5) * 0.01,
            rating=4.0,
            open_hours="9-21",
            is_24x7=False,
            type="custom",
            services=["prescription", "otc"],
        )
        self._pharmacies.append(pharmacy)
        logger.info("Registered custom pharmacy %s (%s)", pharmacy.id, pharmacy.name)
        return pharmacy

    def upsert_inventory(
        self,
        pharmacy_id: str,
        medicine_id: str,
        price: float,
        stock: int,
        discount: Optional[int] = None,
    ) -> InventoryEntry:
        """
        Add or overwrite the inventory entry for a (pharmacy, medicine) pair.

        Raises:
            PharmacyNotFoundError: If the pharmacy does not exist.
            ValueError: If price or stock is negative.
        """
        if price < 0:
            raise ValueError("price cannot be negative")
        if stock < 0:
            raise ValueError("stock cannot be negative")

        pharmacy = self.get_pharmacy(pharmacy_id)
        now = _utcnow()
        entry = pharmacy.find_entry(medicine_id)

        if entry is not None:
            entry.price = price
            entry.stock = stock
            if discount is not None:
                entry.discount = discount
            entry.last_updated = now
            return entry

        entry = InventoryEntry(
            medicine_id=medicine_id,
            price=price,
            stock=stock,
            discount=discount or 0,
            last_updated=now,
        )
        pharmacy.inventory.append(entry)
        return entry


CATEGORY_PRICE_MULTIPLIERS: Final[Dict[str, float]] = {
    "Antibiotic": 2.5,
    "Analgesic": 1.2,
    "Antipyretic": 1.0,
    "Antifungal": 3.0,
    "Antiviral": 4.0,
    "Antidepressant": 3.5,
    "Antidiabetic": 2.8,
    "Antiseptic": 0.8,
}

DOSAGE_FORM_PRICE_MULTIPLIERS: Final[Dict[str, float]] = {
    "Injection": 2.0,
    "Inhaler": 1.8,
    "Syrup": 1.3,
    "Ointment": 1.2,
    "Cream": 1.2,
    "Tablet": 1.0,
    "Capsule": 1.1,
    "Drops": 1.4,
}

BASE_PRICE_RUPEES: Final[float] = 50.0


def generate_price(medicine: Medicine, rng: random.Random) -> float:
    """Synthesize a plausible rupee price for a medicine."""
    price = BASE_PRICE_RUPEES * CATEGORY_PRICE_MULTIPLIERS.get(medicine.category, 1.5)

    strength = re.search(r"(\d+)", medicine.strength)
    if strength:
        price += int(strength.group(1)) / 100 * 10

    price *= DOSAGE_FORM_PRICE_MULTIPLIERS.get(medicine.dosage_form, 1.0)

    if medicine.prescription_required:
        price *= 1.5

    price *= 0.8 + rng.random() * 0.4
    return float(round(price))


def seed_inventory(store: PharmacyStore, catalog: MedicineCatalog, rng: Optional[random.Random] = None) -> int:
    """
    Replace every pharmacy's inventory with a random 60-80 % slice of the catalog.

    Returns:
        Total number of inventory entries created.
    """
    rng = rng or random.Random()
    medicines = list(catalog)
    created = 0

    for pharmacy in store:
        size = int(len(medicines) * (0.6 + rng.random() * 0.2))
        selected = rng.sample(medicines, size)
        now = _utcnow()

        pharmacy.inventory = [
            InventoryEntry(
                medicine_id=medicine.id,
                price=generate_price(medicine, rng),
                stock=rng.randint(10, 209),
                discount=rng.randint(5, 29) if rng.random() > 0.7 else 0,
                last_updated=now,
            )
            for medicine in selected
        ]
        created += len(pharmacy.inventory)

    logger.info("Seeded %d inventory entries across %d pharmacies", created, len(store))
    return created


__all__ = [
    "InventoryEntry",
    "Pharmacy",
    "PharmacyStore",
    "SEED_PHARMACIES",
    "is_open",
    "generate_price",
    "seed_inventory",
]
