"""
Price and availability sources for substitute annotation.

The simulated oracles derive stable numbers from a hash of the medicine id,
so the same medicine always gets the same price and pharmacy count. The
inventory-backed oracles read the live pharmacy store instead.
"""
from __future__ import annotations

import hashlib
from typing import Final, Protocol

from app.core.pharmacy_store import PharmacyStore


SIMULATED_MIN_PRICE: Final[float] = 20.0
SIMULATED_PRICE_SPAN: Final[int] = 500
SIMULATED_TOTAL_PHARMACIES: Final[int] = 10


def _stable_hash(medicine_id: str) -> int:
    digest = hashlib.sha256(medicine_id.encode("utf-8")).hexdigest()
    return int(digest[:12], 16)


class PriceOracle(Protocol):
    def average_price(self, medicine_id: str) -> float:
        ...


class AvailabilityOracle(Protocol):
    def availability(self, medicine_id: str) -> dict:
        """Return ``available_at``, ``total_pharmacies`` and ``availability_percentage``."""
        ...


class SimulatedPriceOracle:
    """Price in [min_price, min_price + span) rupees, fixed per medicine id."""

    def __init__(self, min_price: float = SIMULATED_MIN_PRICE, span: int = SIMULATED_PRICE_SPAN):
        if span <= 0:
            raise ValueError("span must be greater than 0")
        self.min_price = min_price
        self.span = span

    def average_price(self, medicine_id: str) -> float:
        return float(self.min_price + _stable_hash(medicine_id) % self.span)


class SimulatedAvailabilityOracle:
    """Pharmacy count in [1, total_pharmacies], fixed per medicine id."""

    def __init__(self, total_pharmacies: int = SIMULATED_TOTAL_PHARMACIES):
        if total_pharmacies <= 0:
            raise ValueError("total_pharmacies must be greater than 0")
        self.total_pharmacies = total_pharmacies

    def availability(self, medicine_id: str) -> dict:
        available_at = 1 + _stable_hash(medicine_id) % self.total_pharmacies
        return {
            "available_at": available_at,
            "total_pharmacies": self.total_pharmacies,
            "availability_percentage": round(available_at / self.total_pharmacies * 100),
        }


class InventoryPriceOracle:
    """Average price across every pharmacy listing the medicine, 0 if none."""

    def __init__(self, store: PharmacyStore):
        self.store = store

    def average_price(self, medicine_id: str) -> float:
        return self.store.average_price_for(medicine_id)


class InventoryAvailabilityOracle:
    def __init__(self, store: PharmacyStore):
        self.store = store

    def availability(self, medicine_id: str) -> dict:
        total = len(self.store)
        available_at = len(self.store.pharmacies_with_medicine(medicine_id))
        return {
            "available_at": available_at,
            "total_pharmacies": total,
            "availability_percentage": round(available_at / total * 100) if total else 0,
        }


__all__ = [
    "PriceOracle",
    "AvailabilityOracle",
    "SimulatedPriceOracle",
    "SimulatedAvailabilityOracle",
    "InventoryPriceOracle",
    "InventoryAvailabilityOracle",
]
