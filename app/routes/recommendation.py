"""
API routes for pharmacy recommendations and simulated price trends.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.core import config
from app.core.medicine_catalog import MedicineCatalog
from app.routes.dependencies import get_catalog, get_recommendation_engine, require_medicine
from app.schemas.recommendation_schema import (
    BestPharmacyRequest,
    BestPharmacyResponse,
    MedicineRef,
    PersonalizedRequest,
    PriceTrendResponse,
    RecommendationRequest,
    RecommendationResponse,
)
from app.services.recommendation_service import (
    DEFAULT_WEIGHTS,
    RecommendationEngine,
    summarize_trend,
)


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/recommendations", tags=["recommendations"])


@router.post("/pharmacy", response_model=RecommendationResponse)
def recommend_pharmacies(
    request: RecommendationRequest,
    catalog: MedicineCatalog = Depends(get_catalog),
    engine: RecommendationEngine = Depends(get_recommendation_engine),
) -> RecommendationResponse:
    """
    Rank pharmacies stocking a medicine by price, distance, stock and rating.
    """
    medicine = require_medicine(catalog, request.medicine_id)
    weights = request.preferences or DEFAULT_WEIGHTS

    try:
        recommendations = engine.recommend(medicine, request.user_location, weights)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Unexpected error while ranking pharmacies", extra={"medicine_id": medicine.id})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to compute recommendations",
        ) from exc

    return RecommendationResponse(
        medicine=MedicineRef(id=medicine.id, name=medicine.name, generic_name=medicine.generic_name),
        recommendations=recommendations,
        criteria=weights,
        total=len(recommendations),
    )


@router.post("/best-pharmacy", response_model=BestPharmacyResponse)
def best_pharmacy(
    request: BestPharmacyRequest,
    catalog: MedicineCatalog = Depends(get_catalog),
    engine: RecommendationEngine = Depends(get_recommendation_engine),
) -> BestPharmacyResponse:
    medicine = require_medicine(catalog, request.medicine_id)
    return engine.get_best_pharmacy(medicine, request.user_location, request.urgency)


@router.post("/personalized", response_model=RecommendationResponse)
def personalized_recommendations(
    request: PersonalizedRequest,
    catalog: MedicineCatalog = Depends(get_catalog),
    engine: RecommendationEngine = Depends(get_recommendation_engine),
) -> RecommendationResponse:
    medicine = require_medicine(catalog, request.medicine_id)
    recommendations = engine.recommend_personalized(
        medicine,
        request.user_location,
        weights=request.weights,
        budget_range=request.budget_range,
        preferred_pharmacies=request.preferred_pharmacies,
    )
    return RecommendationResponse(
        medicine=MedicineRef(id=medicine.id, name=medicine.name, generic_name=medicine.generic_name),
        recommendations=recommendations,
        criteria=request.weights,
        total=len(recommendations),
    )


@router.get("/price-trend/{medicine_id}", response_model=PriceTrendResponse)
def price_trend(
    medicine_id: str,
    days: int = Query(config.PRICE_TREND_DEFAULT_DAYS),
    catalog: MedicineCatalog = Depends(get_catalog),
    engine: RecommendationEngine = Depends(get_recommendation_engine),
) -> PriceTrendResponse:
    """
    Simulated daily price series around the current average price.
    """
    medicine = require_medicine(catalog, medicine_id)
    try:
        points = engine.get_price_trend(medicine.id, days)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return PriceTrendResponse(
        medicine=MedicineRef(id=medicine.id, name=medicine.name),
        price_trend=points,
        analysis=summarize_trend(points),
    )
