"""
Pharmacy ranking for a requested medicine.

Each pharmacy stocking the medicine is scored on price, distance, stock level
and rating, then ranked with a short human-readable justification.
"""
from __future__ import annotations

import logging
import random
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Dict, Final, Iterable, List, Optional

from app.core import config
from app.core.geo import calculate_distance
from app.core.medicine_catalog import Medicine
from app.core.pharmacy_store import InventoryEntry, Pharmacy, PharmacyStore, is_open
from app.schemas.recommendation_schema import (
    BestPharmacyResponse,
    BudgetRange,
    Location,
    MedicineOffer,
    PharmacySummary,
    PriceTrendAnalysis,
    PriceTrendPoint,
    Recommendation,
    ScoreBreakdown,
    ScoringWeights,
    UrgencyLevel,
)


logger = logging.getLogger(__name__)


DEFAULT_WEIGHTS: Final[ScoringWeights] = ScoringWeights(price=0.4, distance=0.4, availability=0.2)

RATING_WEIGHT: Final[float] = 0.1
MAX_RATING: Final[float] = 5.0
MAX_RELEVANT_DISTANCE_KM: Final[float] = 20.0
PREFERRED_PHARMACY_BOOST: Final[float] = 0.1
EMERGENCY_FALLBACK_COUNT: Final[int] = 3
MAX_ALTERNATIVES: Final[int] = 3

URGENCY_WEIGHTS: Final[Dict[UrgencyLevel, ScoringWeights]] = {
    UrgencyLevel.EMERGENCY: ScoringWeights(price=0.1, distance=0.7, availability=0.2),
    UrgencyLevel.BUDGET: ScoringWeights(price=0.7, distance=0.2, availability=0.1),
    UrgencyLevel.NORMAL: DEFAULT_WEIGHTS,
}

# (minimum stock, score), checked top down
AVAILABILITY_STEPS: Final[List[tuple]] = [(50, 1.0), (20, 0.8), (10, 0.6), (5, 0.4), (1, 0.2)]


def round_half_up(value: float, places: int = 2) -> float:
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def calculate_price_score(price: float, min_price: float, max_price: float) -> float:
    """Cheapest offer scores 1, dearest scores 0. Equal prices all score 1."""
    if max_price == min_price:
        return 1.0
    return 1 - (price - min_price) / (max_price - min_price)


def calculate_distance_score(distance_km: float) -> float:
    """Linear decay to 0 at the relevance horizon; farther offers still qualify."""
    return max(0.0, 1 - distance_km / MAX_RELEVANT_DISTANCE_KM)


def calculate_availability_score(stock: int) -> float:
    for minimum, score in AVAILABILITY_STEPS:
        if stock >= minimum:
            return score
    return 0.0


def calculate_rating_score(rating: float) -> float:
    return rating / MAX_RATING


def generate_reasoning(breakdown: ScoreBreakdown, discount: int = 0) -> str:
    reasons: List[str] = []

    if breakdown.price > 0.8:
        reasons.append("Excellent price")
    elif breakdown.price > 0.6:
        reasons.append("Good price")

    if breakdown.distance > 0.8:
        reasons.append("Very close location")
    elif breakdown.distance > 0.6:
        reasons.append("Nearby location")

    if breakdown.availability > 0.8:
        reasons.append("High stock availability")
    elif breakdown.availability > 0.4:
        reasons.append("Medicine in stock")

    if discount > 0:
        reasons.append(f"{discount}% discount available")

    return ", ".join(reasons) if reasons else "Available option"


def _ranking_key(recommendation: Recommendation) -> tuple:
    # Highest score first, then nearest, then pharmacy id for stable output
    return (-recommendation.total_score, recommendation.distance_km, recommendation.pharmacy.id)


def sort_recommendations(recommendations: Iterable[Recommendation]) -> List[Recommendation]:
    return sorted(recommendations, key=_ranking_key)


def _summarize(pharmacy: Pharmacy) -> PharmacySummary:
    return PharmacySummary(
        id=pharmacy.id,
        name=pharmacy.name,
        address=pharmacy.address,
        phone=pharmacy.phone,
        rating=pharmacy.rating,
        lat=pharmacy.lat,
        lng=pharmacy.lng,
        open_hours=pharmacy.open_hours,
        is_24x7=pharmacy.is_24x7,
    )


def summarize_trend(points: List[PriceTrendPoint]) -> PriceTrendAnalysis:
    """
    Raises:
        ValueError: If the series is empty.
    """
    if not points:
        raise ValueError("price trend is empty")

    if len(points) < 2 or points[-1].average_price == points[0].average_price:
        trend = "stable"
    elif points[-1].average_price > points[0].average_price:
        trend = "increasing"
    else:
        trend = "decreasing"

    return PriceTrendAnalysis(
        average_price=round_half_up(sum(p.average_price for p in points) / len(points)),
        lowest_price=min(p.lowest_price for p in points),
        highest_price=max(p.highest_price for p in points),
        trend=trend,
    )


class RecommendationEngine:
    """
    Scores and ranks pharmacies for a medicine.

    Pure with respect to the store: nothing is cached and nothing is written.
    """

    def __init__(
        self,
        store: PharmacyStore,
        clock: Optional[Callable[[], datetime]] = None,
        rng: Optional[random.Random] = None,
    ):
        self.store = store
        self.clock = clock or datetime.now
        self.rng = rng or random.Random()

    def recommend(
        self,
        medicine: Medicine,
        user_location: Location,
        weights: Optional[ScoringWeights] = None,
    ) -> List[Recommendation]:
        """
        Rank every pharmacy holding the medicine with stock > 0.

        Args:
            medicine: Catalog entry to look up.
            user_location: Where the user is.
            weights: Component weights; defaults to 0.4/0.4/0.2.

        Returns:
            Recommendations sorted by total score, highest first. Empty when no
            pharmacy stocks the medicine.

        Raises:
            ValueError: If the medicine or location is missing.
        """
        if medicine is None or not getattr(medicine, "id", None):
            raise ValueError("medicine with a valid id is required")
        if user_location is None:
            raise ValueError("user_location is required")

        weights = weights or DEFAULT_WEIGHTS
        candidates = self.store.pharmacies_with_medicine(medicine.id)
        if not candidates:
            logger.info("No pharmacy stocks %s", medicine.id)
            return []

        prices = self.store.all_prices_for(medicine.id)
        min_price, max_price = min(prices), max(prices)

        recommendations = [
            self._score(pharmacy, entry, user_location, weights, min_price, max_price)
            for pharmacy, entry in candidates
        ]
        return sort_recommendations(recommendations)

    def _score(
        self,
        pharmacy: Pharmacy,
        entry: InventoryEntry,
        user_location: Location,
        weights: ScoringWeights,
        min_price: float,
        max_price: float,
    ) -> Recommendation:
        distance = calculate_distance(user_location.lat, user_location.lng, pharmacy.lat, pharmacy.lng)

        price_score = calculate_price_score(entry.price, min_price, max_price)
        distance_score = calculate_distance_score(distance)
        availability_score = calculate_availability_score(entry.stock)
        rating_score = calculate_rating_score(pharmacy.rating)

        total = (
            price_score * weights.price
            + distance_score * weights.distance
            + availability_score * weights.availability
            + rating_score * RATING_WEIGHT
        )

        breakdown = ScoreBreakdown(
            price=round_half_up(price_score),
            distance=round_half_up(distance_score),
            availability=round_half_up(availability_score),
            rating=round_half_up(rating_score),
        )

        return Recommendation(
            pharmacy=_summarize(pharmacy),
            medicine=MedicineOffer(price=entry.price, stock=entry.stock, discount=entry.discount),
            distance_km=distance,
            total_score=round_half_up(total),
            score_breakdown=breakdown,
            reasoning=generate_reasoning(breakdown, entry.discount),
        )

    def recommend_emergency(self, medicine: Medicine, user_location: Location) -> List[Recommendation]:
        """
        Distance-heavy ranking restricted to pharmacies open right now.

        Falls back to the unfiltered top three when none is open.
        """
        recommendations = self.recommend(medicine, user_location, URGENCY_WEIGHTS[UrgencyLevel.EMERGENCY])
        hour = self.clock().hour
        open_now = [
            rec for rec in recommendations
            if rec.pharmacy.is_24x7 or is_open(rec.pharmacy.open_hours, hour)
        ]
        if open_now:
            return open_now
        logger.info("No pharmacy open at hour %d for %s, using top results", hour, medicine.id)
        return recommendations[:EMERGENCY_FALLBACK_COUNT]

    def recommend_personalized(
        self,
        medicine: Medicine,
        user_location: Location,
        weights: Optional[ScoringWeights] = None,
        budget_range: Optional[BudgetRange] = None,
        preferred_pharmacies: Optional[Iterable[str]] = None,
    ) -> List[Recommendation]:
        recommendations = self.recommend(medicine, user_location, weights)

        if budget_range is not None:
            recommendations = [
                rec for rec in recommendations
                if budget_range.min <= rec.medicine.price <= budget_range.max
            ]

        preferred = set(preferred_pharmacies or ())
        if preferred:
            boosted: List[Recommendation] = []
            for rec in recommendations:
                if rec.pharmacy.id in preferred:
                    rec = rec.model_copy(
                        update={
                            "total_score": round_half_up(rec.total_score + PREFERRED_PHARMACY_BOOST),
                            "reasoning": f"{rec.reasoning}, Preferred pharmacy",
                        }
                    )
                boosted.append(rec)
            recommendations = sort_recommendations(boosted)

        return recommendations

    def get_best_pharmacy(
        self,
        medicine: Medicine,
        user_location: Location,
        urgency: UrgencyLevel = UrgencyLevel.NORMAL,
    ) -> BestPharmacyResponse:
        urgency = UrgencyLevel(urgency)
        if urgency is UrgencyLevel.EMERGENCY:
            recommendations = self.recommend_emergency(medicine, user_location)
        else:
            recommendations = self.recommend(medicine, user_location, URGENCY_WEIGHTS[urgency])

        best = recommendations[0] if recommendations else None
        return BestPharmacyResponse(
            best=best,
            alternatives=recommendations[1:1 + MAX_ALTERNATIVES],
            urgency=urgency,
            reasoning=best.reasoning if best else "No pharmacies found with this medicine",
        )

    def get_price_trend(
        self,
        medicine_id: str,
        days: int = config.PRICE_TREND_DEFAULT_DAYS,
        today: Optional[date] = None,
    ) -> List[PriceTrendPoint]:
        """
        Simulated daily price series ending today, ``days + 1`` points long.

        Anchored on the medicine's current average inventory price with up
        to 10 % random movement per day. Not historical data.

        Raises:
            ValueError: If days is outside 1..PRICE_TREND_MAX_DAYS.
        """
        if isinstance(days, bool) or not isinstance(days, int):
            raise ValueError("days must be an integer")
        if not 1 <= days <= config.PRICE_TREND_MAX_DAYS:
            raise ValueError(f"days must be between 1 and {config.PRICE_TREND_MAX_DAYS}")

        today = today or self.clock().date()
        base_price = self.store.average_price_for(medicine_id)

        points: List[PriceTrendPoint] = []
        for offset in range(days, -1, -1):
            variation = (self.rng.random() - 0.5) * 0.2
            average = base_price * (1 + variation)
            points.append(
                PriceTrendPoint(
                    date=today - timedelta(days=offset),
                    average_price=round_half_up(average),
                    lowest_price=round_half_up(average * 0.9),
                    highest_price=round_half_up(average * 1.1),
                    pharmacy_count=self.rng.randint(5, 14),
                )
            )
        return points


__all__ = [
    "DEFAULT_WEIGHTS",
    "RATING_WEIGHT",
    "URGENCY_WEIGHTS",
    "RecommendationEngine",
    "calculate_price_score",
    "calculate_distance_score",
    "calculate_availability_score",
    "calculate_rating_score",
    "generate_reasoning",
    "round_half_up",
    "sort_recommendations",
    "summarize_trend",
]
