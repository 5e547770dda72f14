from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from app.models.base import CamelModel, NonEmptyStr


class PricingTier(str, Enum):
    BASIC = "basic"
    PREMIUM = "premium"
    ENTERPRISE = "enterprise"


class CmaStatus(str, Enum):
    PROCESSING = "processing"
    GENERATED = "generated"
    ERROR = "error"


class CmaRequest(CamelModel):
    property_id: Optional[str] = None
    zip_code: str = Field(..., min_length=5)
    property_type: NonEmptyStr
    bedrooms: float = Field(..., ge=1)
    bathrooms: float = Field(..., ge=1)
    sqft: float = Field(..., ge=100)
    year_built: Optional[int] = None
    lot_size: Optional[float] = None
    pricing_tier: PricingTier = PricingTier.BASIC
    max_comparables: int = Field(6, ge=3, le=10)
    user_id: Optional[str] = None

    @field_validator("zip_code")
    @classmethod
    def strip_zip(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 5:
            raise ValueError("zipCode must have at least 5 characters")
        return value


class CmaComparable(CamelModel):
    address: str
    city: str
    state: str
    zip_code: str
    sale_price: float
    sale_date: datetime
    bedrooms: float
    bathrooms: float
    sqft: float
    price_per_sqft: float
    year_built: Optional[int] = None
    lot_size: Optional[float] = None
    distance_from_subject: float = 0
    adjusted_price: float = 0
    similarity: float = 0
    image_url: Optional[str] = None


class CmaMarketInsight(CamelModel):
    insight_type: str
    insight_title: str
    insight_description: str
    insight_data: Optional[Dict[str, Any]] = None
    importance: int = 3


class CmaPricingAdjustment(CamelModel):
    adjustment_factor: str
    adjustment_value: float
    adjustment_direction: str = "positive"
    adjustment_description: str


class CmaReport(CamelModel):
    id: str
    user_id: Optional[str] = None
    property_id: Optional[str] = None
    zip_code: str
    property_type: str
    bedrooms: float
    bathrooms: float
    sqft: float
    year_built: Optional[int] = None
    lot_size: Optional[float] = None
    pricing_tier: PricingTier
    status: CmaStatus
    estimated_value: float = 0
    confidence_score: float = 0
    comparables: List[CmaComparable] = []
    market_insights: List[CmaMarketInsight] = []
    pricing_adjustments: List[CmaPricingAdjustment] = []
    created_at: datetime
    last_updated: datetime
