"""
API routes for pharmacy lookups, price comparison and inventory updates.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.core import config
from app.core.errors import PharmacyNotFoundError
from app.core.medicine_catalog import MedicineCatalog
from app.core.pharmacy_store import InventoryEntry, Pharmacy, PharmacyStore
from app.routes.dependencies import get_catalog, get_store
from app.schemas.pharmacy_schema import (
    InventoryEntrySchema,
    InventoryUpdateRequest,
    InventoryUpdateResponse,
    NearbyPharmaciesResponse,
    NearbyPharmacy,
    PharmacyDetail,
    PharmacyMedicineResponse,
    PharmacySchema,
    PriceComparisonResponse,
    PriceOffer,
)


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/pharmacies", tags=["pharmacies"])


def _pharmacy_schema(pharmacy: Pharmacy) -> PharmacySchema:
    return PharmacySchema(**pharmacy.summary())


def _entry_schema(entry: InventoryEntry) -> InventoryEntrySchema:
    return InventoryEntrySchema(
        medicine_id=entry.medicine_id,
        price=entry.price,
        stock=entry.stock,
        discount=entry.discount,
        last_updated=entry.last_updated,
    )


def _resolve_pharmacy(store: PharmacyStore, pharmacy_id: str) -> Pharmacy:
    try:
        return store.get_pharmacy(pharmacy_id)
    except PharmacyNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.get("/nearby", response_model=NearbyPharmaciesResponse)
def nearby_pharmacies(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    radius: float = Query(config.DEFAULT_SEARCH_RADIUS_KM, ge=0),
    medicine_id: Optional[str] = None,
    store: PharmacyStore = Depends(get_store),
) -> NearbyPharmaciesResponse:
    """
    Pharmacies within the radius, nearest first, optionally only those stocking a medicine.
    """
    results = store.nearby(lat, lng, radius, medicine_id=medicine_id)
    pharmacies = [NearbyPharmacy(**pharmacy.summary(), distance=distance) for pharmacy, distance in results]
    return NearbyPharmaciesResponse(pharmacies=pharmacies, total=len(pharmacies))


@router.get("/compare/{medicine_id}", response_model=PriceComparisonResponse)
def compare_prices(
    medicine_id: str,
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lng: Optional[float] = Query(None, ge=-180, le=180),
    radius: float = Query(config.DEFAULT_SEARCH_RADIUS_KM, ge=0),
    store: PharmacyStore = Depends(get_store),
) -> PriceComparisonResponse:
    """
    In-stock offers for a medicine, cheapest first.
    """
    try:
        offers = store.compare_prices(medicine_id, lat=lat, lng=lng, radius_km=radius)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    comparisons = [
        PriceOffer(
            pharmacy=_pharmacy_schema(offer["pharmacy"]),
            medicine=_entry_schema(offer["entry"]),
            distance=offer["distance"],
        )
        for offer in offers
    ]
    return PriceComparisonResponse(comparisons=comparisons, total=len(comparisons))


@router.get("/{pharmacy_id}", response_model=PharmacyDetail)
def get_pharmacy(pharmacy_id: str, store: PharmacyStore = Depends(get_store)) -> PharmacyDetail:
    pharmacy = _resolve_pharmacy(store, pharmacy_id)
    return PharmacyDetail(
        **pharmacy.summary(),
        inventory=[_entry_schema(entry) for entry in pharmacy.inventory],
    )


@router.get("/{pharmacy_id}/medicines/{medicine_id}", response_model=PharmacyMedicineResponse)
def get_pharmacy_medicine(
    pharmacy_id: str,
    medicine_id: str,
    store: PharmacyStore = Depends(get_store),
) -> PharmacyMedicineResponse:
    pharmacy = _resolve_pharmacy(store, pharmacy_id)
    entry = pharmacy.find_entry(medicine_id)
    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Medicine not available at this pharmacy",
        )
    return PharmacyMedicineResponse(pharmacy=_pharmacy_schema(pharmacy), medicine=_entry_schema(entry))


@router.post("/{pharmacy_id}/medicines", response_model=InventoryUpdateResponse)
def upsert_pharmacy_medicine(
    pharmacy_id: str,
    payload: InventoryUpdateRequest,
    catalog: MedicineCatalog = Depends(get_catalog),
    store: PharmacyStore = Depends(get_store),
) -> InventoryUpdateResponse:
    """
    Add or update a medicine at a pharmacy.

    The medicine is matched by exact name, then by the first search hit,
    and registered as a custom catalog entry when neither finds it. Passing
    ``pharmacy_name`` registers a new pharmacy and stocks it instead.

    Lookups run before anything is created, so a rejected request leaves
    the catalog and the store unchanged.
    """
    new_pharmacy_name = (payload.pharmacy_name or "").strip()
    try:
        pharmacy = None if new_pharmacy_name else _resolve_pharmacy(store, pharmacy_id)

        medicine = catalog.find_by_name(payload.name)
        if medicine is None:
            hits = catalog.search_medicines(payload.name, 1)
            medicine = hits[0] if hits else None

        created = medicine is None
        if created:
            medicine = catalog.add_custom_medicine(payload.name)
        if pharmacy is None:
            pharmacy = store.add_pharmacy(new_pharmacy_name)

        entry = store.upsert_inventory(pharmacy.id, medicine.id, payload.price, payload.stock)
    except ValueError as exc:
        logger.warning("Rejected inventory update for %s: %s", pharmacy_id, exc)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return InventoryUpdateResponse(
        pharmacy_id=pharmacy.id,
        medicine_id=medicine.id,
        price=entry.price,
        stock=entry.stock,
        created_medicine=created,
    )
