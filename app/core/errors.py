"""
Error types shared by the catalog, inventory and engine layers.

Lookups that cannot be resolved raise the NotFound family so route handlers
can map them to 404. Empty results are never errors.
"""
from __future__ import annotations


class MedicineNotFoundError(LookupError):
    """Raised when a medicine id does not resolve to a catalog entry."""

    def __init__(self, medicine_id: str):
        super().__init__(f"Medicine {medicine_id} not found")
        self.medicine_id = medicine_id


class PharmacyNotFoundError(LookupError):
    """Raised when a pharmacy id does not resolve to a known pharmacy."""

    def __init__(self, pharmacy_id: str):
        super().__init__(f"Pharmacy {pharmacy_id} not found")
        self.pharmacy_id = pharmacy_id


class SubstituteComputationError(RuntimeError):
    """
    Raised when substitute matching fails unexpectedly.

    Distinct from an empty substitute list, which means the lookup worked
    and nothing qualified.
    """

    def __init__(self, medicine_id: str, message: str):
        super().__init__(f"Substitute computation failed for {medicine_id}: {message}")
        self.medicine_id = medicine_id


__all__ = [
    "MedicineNotFoundError",
    "PharmacyNotFoundError",
    "SubstituteComputationError",
]
