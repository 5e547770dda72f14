from datetime import date
from typing import List, Optional

from pydantic import Field, field_validator

from app.models.base import CamelModel, NonEmptyStr


PROPERTY_TYPES = [
    "Single Family Home",
    "Condo",
    "Townhouse",
    "Apartment",
    "Multi-Family",
    "Land",
]


class PropertyCreate(CamelModel):
    title: NonEmptyStr
    description: NonEmptyStr
    price: int = Field(..., gt=0)
    address: NonEmptyStr
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    bedrooms: int = Field(..., ge=0)
    bathrooms: float = Field(..., ge=0)
    sqft: int = Field(..., gt=0)
    property_type: NonEmptyStr
    images: List[str] = []
    listed_date: date

    @field_validator("property_type")
    @classmethod
    def known_property_type(cls, value: str) -> str:
        if value not in PROPERTY_TYPES:
            raise ValueError(f"propertyType must be one of: {', '.join(PROPERTY_TYPES)}")
        return value


class Property(PropertyCreate):
    id: str
    source: str = "local"
    status: str = "active"


class IdxListing(CamelModel):
    """A listing normalised from an IDX Broker payload."""
    listing_id: str
    address: str
    city: str
    state: str
    zip_code: str
    price: float = 0
    bedrooms: int = 0
    bathrooms: float = 0
    sqft: int = 0
    property_type: str = "Unknown"
    images: List[str] = []
    description: str = ""
    listed_date: Optional[str] = None
    status: Optional[str] = None
    sold_price: Optional[float] = None
    sold_date: Optional[str] = None


class IdxListingPage(CamelModel):
    listings: List[IdxListing] = []
    total_count: int = 0
    has_more_listings: bool = False


class PropertyFilters(CamelModel):
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[float] = None
    property_type: Optional[str] = None
    limit: int = Field(50, ge=1, le=500)
    offset: int = Field(0, ge=0)

    def cache_key(self) -> tuple:
        return tuple(sorted(self.model_dump(exclude_none=True).items()))


class ListedProperty(CamelModel):
    """An IDX listing in the shape of a property card."""
    id: str
    title: str
    description: str = ""
    price: float = 0
    address: str
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    bedrooms: float = 0
    bathrooms: float = 0
    sqft: int = 0
    property_type: str = "Unknown"
    images: List[str] = []
    listed_date: Optional[str] = None
    source: str = "idx"
    status: str = "active"


class PropertyListResponse(CamelModel):
    your_properties: List[Property] = []
    idx_listings: List[ListedProperty] = []
