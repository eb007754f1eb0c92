"""
API routes for catalog search, medicine details and substitutes.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.core.errors import SubstituteComputationError
from app.core.medicine_catalog import MedicineCatalog
from app.routes.dependencies import get_catalog, get_substitute_engine, require_medicine
from app.schemas.medicine_schema import (
    AdvancedSubstituteResponse,
    DrugInteraction,
    MedicineSchema,
    MedicineSearchResponse,
    SubstitutePreferences,
    SubstituteSearchResponse,
)
from app.services.substitute_service import SubstituteEngine


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/medicines", tags=["medicines"])


@router.get("/search", response_model=MedicineSearchResponse)
def search_medicines(
    query: str = Query(..., min_length=1),
    limit: int = Query(10, ge=1, le=100),
    catalog: MedicineCatalog = Depends(get_catalog),
) -> MedicineSearchResponse:
    """
    Case-insensitive search over name, generic name, category and indication.
    """
    try:
        results = catalog.search_medicines(query, limit)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return MedicineSearchResponse(
        results=[MedicineSchema(**m.to_dict()) for m in results],
        total=len(results),
    )


@router.get("/popular", response_model=MedicineSearchResponse)
def popular_medicines(
    limit: int = Query(20, ge=1, le=100),
    catalog: MedicineCatalog = Depends(get_catalog),
) -> MedicineSearchResponse:
    medicines = catalog.popular_medicines(limit)
    return MedicineSearchResponse(
        results=[MedicineSchema(**m.to_dict()) for m in medicines],
        total=len(medicines),
    )


@router.get("/interactions", response_model=DrugInteraction)
def check_interaction(
    first: str = Query(..., min_length=1),
    second: str = Query(..., min_length=1),
    catalog: MedicineCatalog = Depends(get_catalog),
    engine: SubstituteEngine = Depends(get_substitute_engine),
) -> DrugInteraction:
    first_medicine = require_medicine(catalog, first)
    second_medicine = require_medicine(catalog, second)
    return engine.check_drug_interaction(first_medicine, second_medicine)


@router.get("/{medicine_id}", response_model=MedicineSchema)
def get_medicine(medicine_id: str, catalog: MedicineCatalog = Depends(get_catalog)) -> MedicineSchema:
    medicine = require_medicine(catalog, medicine_id)
    return MedicineSchema(**medicine.to_dict())


@router.get("/{medicine_id}/substitutes", response_model=SubstituteSearchResponse)
def get_substitutes(
    medicine_id: str,
    catalog: MedicineCatalog = Depends(get_catalog),
    engine: SubstituteEngine = Depends(get_substitute_engine),
) -> SubstituteSearchResponse:
    """
    Ranked substitutes for a medicine.

    An empty list means nothing qualified; a 500 means matching itself failed.
    """
    medicine = require_medicine(catalog, medicine_id)
    try:
        substitutes = engine.find_substitutes(medicine)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except SubstituteComputationError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Substitute computation failed",
        ) from exc

    return SubstituteSearchResponse(
        original_medicine=MedicineSchema(**medicine.to_dict()),
        substitutes=substitutes,
        total=len(substitutes),
    )


@router.post("/{medicine_id}/substitutes/advanced", response_model=AdvancedSubstituteResponse)
def get_advanced_substitutes(
    medicine_id: str,
    preferences: SubstitutePreferences,
    catalog: MedicineCatalog = Depends(get_catalog),
    engine: SubstituteEngine = Depends(get_substitute_engine),
) -> AdvancedSubstituteResponse:
    medicine = require_medicine(catalog, medicine_id)
    try:
        substitutes = engine.find_advanced_substitutes(medicine, preferences)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except SubstituteComputationError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Substitute computation failed",
        ) from exc

    return AdvancedSubstituteResponse(
        original_medicine=MedicineSchema(**medicine.to_dict()),
        substitutes=substitutes,
        preferences=preferences,
        total=len(substitutes),
    )
