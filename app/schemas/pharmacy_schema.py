"""
Pydantic schemas for pharmacy lookups and inventory management.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class InventoryEntrySchema(BaseModel):
    medicine_id: str
    price: float = Field(..., ge=0)
    stock: int = Field(..., ge=0)
    discount: int = Field(0, ge=0, le=100)
    last_updated: datetime


class PharmacySchema(BaseModel):
    id: str
    name: str
    address: str
    phone: str
    lat: float
    lng: float
    rating: float = Field(..., ge=0, le=5)
    open_hours: str
    is_24x7: bool = False
    type: str
    services: List[str] = Field(default_factory=list)


class PharmacyDetail(PharmacySchema):
    inventory: List[InventoryEntrySchema] = Field(default_factory=list)


class NearbyPharmacy(PharmacySchema):
    distance: float


class NearbyPharmaciesResponse(BaseModel):
    pharmacies: List[NearbyPharmacy]
    total: int


class PharmacyMedicineResponse(BaseModel):
    pharmacy: PharmacySchema
    medicine: InventoryEntrySchema


class PriceOffer(BaseModel):
    pharmacy: PharmacySchema
    medicine: InventoryEntrySchema
    distance: Optional[float] = None


class PriceComparisonResponse(BaseModel):
    comparisons: List[PriceOffer]
    total: int


class InventoryUpdateRequest(BaseModel):
    """Add or update a medicine at a pharmacy, optionally registering a new pharmacy."""
    name: str = Field(..., min_length=1, description="Medicine name")
    price: float = Field(..., ge=0)
    stock: int = Field(10, ge=0)
    pharmacy_name: Optional[str] = Field(None, description="Create a new pharmacy with this name")

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Paracetamol 500mg Tablet",
                "price": 25,
                "stock": 40,
            }
        }


class InventoryUpdateResponse(BaseModel):
    pharmacy_id: str
    medicine_id: str
    price: float
    stock: int
    created_medicine: bool = False
