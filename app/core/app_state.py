"""
Process-wide catalog and pharmacy store.

Kept in a small dedicated module so route handlers and the application
lifespan share one instance without circular imports. ``initialize`` is
idempotent; engines receive the catalog and store explicitly.
"""
from __future__ import annotations

import logging
import random
from pathlib import Path
from typing import Optional

from app.core import config
from app.core.medicine_catalog import MedicineCatalog
from app.core.pharmacy_store import PharmacyStore, seed_inventory


logger = logging.getLogger(__name__)


CATALOG: Optional[MedicineCatalog] = None
STORE: Optional[PharmacyStore] = None


def initialize(
    csv_path: Optional[Path] = None,
    seed: Optional[int] = None,
    force: bool = False,
) -> None:
    """
    Load the catalog and seed pharmacy inventories once.

    Later calls are no-ops unless ``force`` is set.
    """
    global CATALOG, STORE

    if CATALOG is not None and STORE is not None and not force:
        return

    rng = random.Random(seed if seed is not None else config.INVENTORY_SEED)
    catalog = MedicineCatalog.from_csv(csv_path or config.MEDICINE_CSV_PATH, rng=rng)
    store = PharmacyStore()
    seed_inventory(store, catalog, rng=rng)

    CATALOG, STORE = catalog, store
    logger.info("Application state initialized with %d medicines", len(catalog))


def install(catalog: MedicineCatalog, store: PharmacyStore) -> None:
    """Replace the shared state with prepared instances."""
    global CATALOG, STORE
    CATALOG, STORE = catalog, store


def get_catalog() -> MedicineCatalog:
    if CATALOG is None:
        raise RuntimeError("Medicine catalog is not initialized")
    return CATALOG


def get_store() -> PharmacyStore:
    if STORE is None:
        raise RuntimeError("Pharmacy store is not initialized")
    return STORE


__all__ = ["CATALOG", "STORE", "initialize", "install", "get_catalog", "get_store"]
