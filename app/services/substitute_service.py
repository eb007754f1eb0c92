"""
Substitute matching for catalog medicines.

Candidates are gathered in four tiers of decreasing similarity: same active
ingredient (generic), same therapeutic class, similar dosage, and shared
indication. The first tier that yields a medicine wins; results are then
ranked, truncated and annotated with price, availability and safety data.
"""
from __future__ import annotations

import logging
import random
import re
from typing import Callable, Dict, Final, List, Optional, Sequence, Set, Tuple

from app.core.errors import SubstituteComputationError
from app.core.medicine_catalog import Medicine, MedicineCatalog
from app.core.oracles import (
    AvailabilityOracle,
    PriceOracle,
    SimulatedAvailabilityOracle,
    SimulatedPriceOracle,
)
from app.schemas.medicine_schema import (
    AdvancedSubstitute,
    DrugInteraction,
    MedicineSchema,
    PriceComparison,
    Substitute,
    SubstituteAvailability,
    SubstitutePreferences,
    SubstituteType,
)


logger = logging.getLogger(__name__)


MAX_SUBSTITUTES: Final[int] = 10

SIMILARITY: Final[Dict[SubstituteType, float]] = {
    SubstituteType.GENERIC: 1.0,
    SubstituteType.THERAPEUTIC: 0.9,
    SubstituteType.DOSAGE: 0.8,
    SubstituteType.INDICATION: 0.7,
}

REASONS: Final[Dict[SubstituteType, str]] = {
    SubstituteType.GENERIC: "Same active ingredient",
    SubstituteType.THERAPEUTIC: "Same therapeutic class",
    SubstituteType.DOSAGE: "Similar dosage form and strength",
    SubstituteType.INDICATION: "Used for the same condition",
}

DOSAGE_FORMS: Final[Sequence[str]] = ("tablet", "capsule", "syrup", "injection", "cream", "ointment", "drops")
DEFAULT_DOSAGE_FORM: Final[str] = "tablet"

PRICE_SIMILARITY_BAND_PERCENT: Final[float] = 10.0
STRENGTH_RATIO_RANGE: Final[Tuple[float, float]] = (0.5, 2.0)

BASE_SAFETY_RATING: Final[float] = 4.0
SAFETY_JITTER: Final[float] = 0.4

_STRENGTH_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*(mg|g|ml|mcg)", re.IGNORECASE)


def extract_dosage_form(medicine: Medicine) -> str:
    """First known form mentioned in the name or dosage form, else tablet."""
    text = f"{medicine.name} {medicine.dosage_form}".lower()
    for form in DOSAGE_FORMS:
        if form in text:
            return form
    return DEFAULT_DOSAGE_FORM


def extract_strength(text: str) -> Optional[Tuple[float, str]]:
    """Parse ``"500 mg"``-style strength into (value, unit)."""
    match = _STRENGTH_PATTERN.search(text or "")
    if not match:
        return None
    return float(match.group(1)), match.group(2).lower()


def medicine_strength(medicine: Medicine) -> Optional[Tuple[float, str]]:
    return extract_strength(medicine.name) or extract_strength(medicine.strength)


def is_similar_strength(first: Optional[Tuple[float, str]], second: Optional[Tuple[float, str]]) -> bool:
    """Same unit and a value ratio within 0.5x to 2x inclusive."""
    if not first or not second:
        return False
    if first[1] != second[1]:
        return False
    if second[0] == 0:
        return first[0] == 0
    low, high = STRENGTH_RATIO_RANGE
    return low <= first[0] / second[0] <= high


def classify_price_difference(difference_percent: float) -> str:
    if difference_percent < -PRICE_SIMILARITY_BAND_PERCENT:
        return "cheaper"
    if difference_percent > PRICE_SIMILARITY_BAND_PERCENT:
        return "expensive"
    return "similar"


def _same_text(first: str, second: str) -> bool:
    return (first or "").strip().lower() == (second or "").strip().lower()


def _to_schema(medicine: Medicine) -> MedicineSchema:
    return MedicineSchema(**medicine.to_dict())


class SubstituteEngine:
    """
    Finds and annotates substitutes from a medicine catalog.

    Pricing and availability come from pluggable oracles; by default both are
    deterministic simulations keyed on the medicine id.
    """

    def __init__(
        self,
        catalog: MedicineCatalog,
        price_oracle: Optional[PriceOracle] = None,
        availability_oracle: Optional[AvailabilityOracle] = None,
        rng: Optional[random.Random] = None,
        max_results: int = MAX_SUBSTITUTES,
    ):
        self.catalog = catalog
        self.price_oracle = price_oracle or SimulatedPriceOracle()
        self.availability_oracle = availability_oracle or SimulatedAvailabilityOracle()
        self.rng = rng or random.Random()
        self.max_results = max_results

    # Candidate tiers

    def find_generic_matches(self, medicine: Medicine) -> List[Medicine]:
        return [
            m for m in self.catalog.medicines_with_salt(medicine.salt_composition)
            if _same_text(m.therapeutic_class, medicine.therapeutic_class)
        ]

    def find_therapeutic_matches(self, medicine: Medicine) -> List[Medicine]:
        return [
            m for m in self.catalog.medicines_in_class(medicine.therapeutic_class)
            if not _same_text(m.salt_composition, medicine.salt_composition)
        ]

    def find_dosage_matches(self, medicine: Medicine) -> List[Medicine]:
        form = extract_dosage_form(medicine)
        strength = medicine_strength(medicine)
        return [
            m for m in self.catalog.medicines_in_class(medicine.therapeutic_class)
            if extract_dosage_form(m) == form and is_similar_strength(strength, medicine_strength(m))
        ]

    def find_indication_matches(self, medicine: Medicine) -> List[Medicine]:
        return [
            m for m in self.catalog.medicines_in_class(medicine.therapeutic_class)
            if _same_text(m.indication, medicine.indication)
        ]

    def _collect_candidates(self, medicine: Medicine) -> List[Tuple[Medicine, SubstituteType]]:
        tiers: List[Tuple[SubstituteType, Callable[[Medicine], List[Medicine]]]] = [
            (SubstituteType.GENERIC, self.find_generic_matches),
            (SubstituteType.THERAPEUTIC, self.find_therapeutic_matches),
            (SubstituteType.DOSAGE, self.find_dosage_matches),
            (SubstituteType.INDICATION, self.find_indication_matches),
        ]

        seen_ids: Set[str] = {medicine.id}
        seen_names: Set[str] = {medicine.name.strip().lower()}
        candidates: List[Tuple[Medicine, SubstituteType]] = []

        for substitute_type, finder in tiers:
            for match in finder(medicine):
                name_key = match.name.strip().lower()
                if match.id in seen_ids or name_key in seen_names:
                    continue
                seen_ids.add(match.id)
                seen_names.add(name_key)
                candidates.append((match, substitute_type))

        return candidates

    # Annotation

    def compare_prices(self, original_id: str, substitute_id: str) -> PriceComparison:
        original_price = self.price_oracle.average_price(original_id)
        substitute_price = self.price_oracle.average_price(substitute_id)

        if original_price <= 0 or substitute_price <= 0:
            return PriceComparison(
                original_price=round(original_price, 2),
                substitute_price=round(substitute_price, 2),
                difference=0.0,
                comparison="unknown",
            )

        difference = (substitute_price - original_price) / original_price * 100
        return PriceComparison(
            original_price=round(original_price, 2),
            substitute_price=round(substitute_price, 2),
            difference=round(difference, 2),
            comparison=classify_price_difference(difference),
        )

    def calculate_safety_rating(self, medicine: Medicine) -> float:
        """Simulated rating: 4.0 base, lowered for antibiotics and pain drugs, jittered."""
        therapeutic_class = medicine.therapeutic_class.lower()
        rating = BASE_SAFETY_RATING
        if "antibiotic" in therapeutic_class:
            rating -= 0.2
        if "pain" in therapeutic_class:
            rating -= 0.1
        rating += (self.rng.random() - 0.5) * SAFETY_JITTER
        return max(1.0, min(5.0, round(rating, 1)))

    def _annotate(self, original: Medicine, match: Medicine, substitute_type: SubstituteType) -> Substitute:
        return Substitute(
            medicine=_to_schema(match),
            substitute_type=substitute_type,
            similarity=SIMILARITY[substitute_type],
            reason=REASONS[substitute_type],
            price_comparison=self.compare_prices(original.id, match.id),
            availability=SubstituteAvailability(**self.availability_oracle.availability(match.id)),
            safety_rating=self.calculate_safety_rating(match),
            doctor_recommended=substitute_type is SubstituteType.GENERIC,
        )

    # Public operations

    def find_substitutes(self, medicine: Medicine) -> List[Substitute]:
        """
        Find ranked substitutes for a catalog medicine.

        Returns:
            Up to ``max_results`` substitutes, strongest tier first and cheaper
            first within a tier. An empty list means nothing qualified.

        Raises:
            ValueError: If the medicine lacks a salt composition or therapeutic class.
            SubstituteComputationError: If matching fails unexpectedly.
        """
        if medicine is None:
            raise ValueError("medicine is required")
        if not (medicine.salt_composition or "").strip():
            raise ValueError("medicine must have a salt composition")
        if not (medicine.therapeutic_class or "").strip():
            raise ValueError("medicine must have a therapeutic class")

        try:
            candidates = self._collect_candidates(medicine)
            candidates.sort(
                key=lambda item: (-SIMILARITY[item[1]], self.price_oracle.average_price(item[0].id))
            )
            substitutes = [
                self._annotate(medicine, match, substitute_type)
                for match, substitute_type in candidates[: self.max_results]
            ]
        except Exception as exc:
            logger.exception("Substitute matching failed for %s", medicine.id)
            raise SubstituteComputationError(medicine.id, str(exc)) from exc

        logger.info("Found %d substitutes for %s", len(substitutes), medicine.id)
        return substitutes

    def find_advanced_substitutes(
        self,
        medicine: Medicine,
        preferences: Optional[SubstitutePreferences] = None,
    ) -> List[AdvancedSubstitute]:
        """Re-score the basic substitutes against user preferences, best first."""
        preferences = preferences or SubstitutePreferences()
        advanced: List[AdvancedSubstitute] = []

        for substitute in self.find_substitutes(medicine):
            score = substitute.similarity
            if preferences.prefer_generic and substitute.substitute_type is SubstituteType.GENERIC:
                score += 0.1
            if preferences.budget_conscious:
                prices = substitute.price_comparison
                if prices.original_price > 0 and prices.substitute_price / prices.original_price < 0.8:
                    score += 0.15
            if preferences.availability_important:
                score += substitute.availability.availability_percentage / 100 * 0.1

            advanced.append(
                AdvancedSubstitute(
                    **substitute.model_dump(),
                    advanced_score=round(score, 2),
                    recommendation_reason=generate_recommendation_reason(substitute),
                )
            )

        advanced.sort(key=lambda s: -s.advanced_score)
        return advanced

    def check_drug_interaction(self, first: Medicine, second: Medicine) -> DrugInteraction:
        """Rough interaction advisory: same therapeutic class means additive effects."""
        same_class = _same_text(first.therapeutic_class, second.therapeutic_class)
        if same_class:
            return DrugInteraction(
                first_medicine_id=first.id,
                second_medicine_id=second.id,
                has_interaction=True,
                severity="moderate",
                description="May have additive effects when used together",
                recommendation="Consult doctor before combining",
            )
        return DrugInteraction(
            first_medicine_id=first.id,
            second_medicine_id=second.id,
            has_interaction=False,
            severity="low",
            description="No known significant interactions",
            recommendation="Generally safe to use together",
        )


def generate_recommendation_reason(substitute: Substitute) -> str:
    reasons: List[str] = []
    if substitute.substitute_type is SubstituteType.GENERIC:
        reasons.append("Same active ingredient")
    if substitute.price_comparison.comparison == "cheaper":
        reasons.append(f"{abs(substitute.price_comparison.difference):g}% cheaper")
    if substitute.availability.availability_percentage > 80:
        reasons.append("Widely available")
    if substitute.safety_rating >= 4.5:
        reasons.append("High safety rating")
    return ", ".join(reasons) if reasons else "Alternative option"


__all__ = [
    "MAX_SUBSTITUTES",
    "SIMILARITY",
    "SubstituteEngine",
    "extract_dosage_form",
    "extract_strength",
    "is_similar_strength",
    "classify_price_difference",
    "generate_recommendation_reason",
]
