"""
FastAPI dependencies wiring the shared catalog and store into the engines.
"""
from fastapi import Depends, HTTPException, status

from app.core import app_state
from app.core.errors import MedicineNotFoundError
from app.core.medicine_catalog import Medicine, MedicineCatalog
from app.core.pharmacy_store import PharmacyStore
from app.services.recommendation_service import RecommendationEngine
from app.services.substitute_service import SubstituteEngine


def get_catalog() -> MedicineCatalog:
    return app_state.get_catalog()


def get_store() -> PharmacyStore:
    return app_state.get_store()


def get_recommendation_engine(store: PharmacyStore = Depends(get_store)) -> RecommendationEngine:
    return RecommendationEngine(store)


def get_substitute_engine(catalog: MedicineCatalog = Depends(get_catalog)) -> SubstituteEngine:
    return SubstituteEngine(catalog)


def require_medicine(catalog: MedicineCatalog, medicine_id: str) -> Medicine:
    """
    Resolve a medicine id or answer 404.
    """
    try:
        return catalog.require_medicine(medicine_id)
    except MedicineNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
