"""
Pydantic schemas for catalog entries, substitutes and interaction checks.
"""
from enum import Enum
from typing import List

from pydantic import BaseModel, Field


class MedicineSchema(BaseModel):
    """Public view of a catalog entry."""
    id: str
    name: str
    generic_name: str
    category: str
    dosage_form: str
    strength: str
    manufacturer: str
    indication: str
    classification: str
    salt_composition: str
    therapeutic_class: str
    prescription_required: bool = False
    popularity: int = 1
    description: str = ""
    side_effects: List[str] = Field(default_factory=list)
    dosage: str = ""
    max_daily_dose: str = ""


class MedicineSearchResponse(BaseModel):
    results: List[MedicineSchema]
    total: int


class SubstituteType(str, Enum):
    """Match tier, strongest first."""
    GENERIC = "generic"
    THERAPEUTIC = "therapeutic"
    DOSAGE = "dosage"
    INDICATION = "indication"


class PriceComparison(BaseModel):
    original_price: float
    substitute_price: float
    difference: float = Field(..., description="Percent change from the original price")
    comparison: str = Field(..., description="cheaper, expensive or similar")


class SubstituteAvailability(BaseModel):
    available_at: int
    total_pharmacies: int
    availability_percentage: int


class Substitute(BaseModel):
    medicine: MedicineSchema
    substitute_type: SubstituteType
    similarity: float
    reason: str
    price_comparison: PriceComparison
    availability: SubstituteAvailability
    safety_rating: float = Field(..., ge=1.0, le=5.0)
    doctor_recommended: bool


class AdvancedSubstitute(Substitute):
    advanced_score: float
    recommendation_reason: str


class SubstitutePreferences(BaseModel):
    prefer_generic: bool = False
    budget_conscious: bool = False
    availability_important: bool = False


class SubstituteSearchResponse(BaseModel):
    original_medicine: MedicineSchema
    substitutes: List[Substitute]
    total: int


class AdvancedSubstituteResponse(BaseModel):
    original_medicine: MedicineSchema
    substitutes: List[AdvancedSubstitute]
    preferences: SubstitutePreferences
    total: int


class DrugInteraction(BaseModel):
    first_medicine_id: str
    second_medicine_id: str
    has_interaction: bool
    severity: str
    description: str
    recommendation: str
