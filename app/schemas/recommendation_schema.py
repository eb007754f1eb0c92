"""
Pydantic schemas for pharmacy recommendations and price trends.
"""
from datetime import date
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator


class UrgencyLevel(str, Enum):
    """How the caller wants price traded against proximity."""
    EMERGENCY = "emergency"
    BUDGET = "budget"
    NORMAL = "normal"


class Location(BaseModel):
    """A user position in decimal degrees."""
    lat: float = Field(..., ge=-90, le=90, description="Latitude")
    lng: float = Field(..., ge=-180, le=180, description="Longitude")


class ScoringWeights(BaseModel):
    """
    Caller weights for the price, distance and availability components.

    A fixed 0.1 weight for pharmacy rating is always added on top, so these
    do not need to sum to 1.
    """
    price: float = Field(0.4, ge=0.0, le=1.0)
    distance: float = Field(0.4, ge=0.0, le=1.0)
    availability: float = Field(0.2, ge=0.0, le=1.0)


class BudgetRange(BaseModel):
    min: float = Field(0.0, ge=0.0)
    max: float = Field(..., ge=0.0)

    @model_validator(mode="after")
    def _check_bounds(self) -> "BudgetRange":
        if self.min > self.max:
            raise ValueError("budget min cannot exceed max")
        return self


class PharmacySummary(BaseModel):
    id: str
    name: str
    address: str
    phone: str
    rating: float
    lat: float
    lng: float
    open_hours: str
    is_24x7: bool = False


class MedicineOffer(BaseModel):
    """Price and stock of the requested medicine at one pharmacy."""
    price: float
    stock: int
    discount: int = 0


class ScoreBreakdown(BaseModel):
    price: float
    distance: float
    availability: float
    rating: float


class Recommendation(BaseModel):
    """A ranked pharmacy for a medicine request."""
    pharmacy: PharmacySummary
    medicine: MedicineOffer
    distance_km: float
    total_score: float = Field(..., description="Weighted score, may slightly exceed 1")
    score_breakdown: ScoreBreakdown
    reasoning: str


class MedicineRef(BaseModel):
    id: str
    name: str
    generic_name: Optional[str] = None


class RecommendationRequest(BaseModel):
    medicine_id: str = Field(..., min_length=1)
    user_location: Location
    preferences: Optional[ScoringWeights] = None

    class Config:
        json_schema_extra = {
            "example": {
                "medicine_id": "med_00001",
                "user_location": {"lat": 12.9716, "lng": 77.5946},
                "preferences": {"price": 0.4, "distance": 0.4, "availability": 0.2},
            }
        }


class RecommendationResponse(BaseModel):
    medicine: MedicineRef
    recommendations: List[Recommendation]
    criteria: ScoringWeights
    total: int


class BestPharmacyRequest(BaseModel):
    medicine_id: str = Field(..., min_length=1)
    user_location: Location
    urgency: UrgencyLevel = UrgencyLevel.NORMAL


class BestPharmacyResponse(BaseModel):
    best: Optional[Recommendation] = None
    alternatives: List[Recommendation] = Field(default_factory=list, max_length=3)
    urgency: UrgencyLevel
    reasoning: str


class PersonalizedRequest(BaseModel):
    medicine_id: str = Field(..., min_length=1)
    user_location: Location
    user_id: Optional[str] = None
    weights: ScoringWeights = Field(
        default_factory=lambda: ScoringWeights(price=0.5, distance=0.3, availability=0.2)
    )
    budget_range: Optional[BudgetRange] = None
    preferred_pharmacies: List[str] = Field(default_factory=list)


class PriceTrendPoint(BaseModel):
    date: date
    average_price: float
    lowest_price: float
    highest_price: float
    pharmacy_count: int


class PriceTrendAnalysis(BaseModel):
    average_price: float
    lowest_price: float
    highest_price: float
    trend: str = Field(..., description="increasing, decreasing or stable")


class PriceTrendResponse(BaseModel):
    """Simulated daily price series, not real historical data."""
    medicine: MedicineRef
    price_trend: List[PriceTrendPoint]
    analysis: PriceTrendAnalysis
    simulated: bool = True
