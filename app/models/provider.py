from typing import List, Optional

from pydantic import EmailStr, Field, field_validator

from app.models.base import CamelModel, Identifier, NonEmptyStr


SERVICE_TYPES = [
    "Real Estate Agent",
    "Property Inspector",
    "Mortgage Broker",
    "Property Lawyer",
    "Interior Designer",
]

FINANCING_SERVICE_TYPES = [
    "Mortgages",
    "Refinancing",
    "Home Equity Loans",
    "Construction Loans",
    "Bridge Loans",
    "FHA Loans",
    "VA Loans",
    "USDA Loans",
    "Jumbo Loans",
    "Conventional Loans",
    "Fixed-Rate Loans",
    "Adjustable-Rate Loans",
]


class ServiceProviderCreate(CamelModel):
    name: NonEmptyStr
    type: NonEmptyStr
    description: NonEmptyStr
    image: NonEmptyStr
    experience: int = Field(..., ge=0)
    rating: Optional[int] = Field(None, ge=0, le=5)
    contact: NonEmptyStr
    # zip codes served; empty means the provider takes requests anywhere
    service_areas: List[str] = []

    @field_validator("type")
    @classmethod
    def known_service_type(cls, value: str) -> str:
        if value not in SERVICE_TYPES:
            raise ValueError(f"type must be one of: {', '.join(SERVICE_TYPES)}")
        return value


class ServiceProvider(ServiceProviderCreate):
    id: str


class FinancingProviderCreate(CamelModel):
    provider_id: Identifier
    name: NonEmptyStr
    contact_name: NonEmptyStr
    contact_email: EmailStr
    contact_phone: NonEmptyStr
    website: Optional[str] = None
    description: NonEmptyStr
    services_offered: List[NonEmptyStr] = Field(..., min_length=1)
    areas_served: List[NonEmptyStr] = Field(..., min_length=1)
    logo_url: Optional[str] = None
    rating: Optional[int] = Field(None, ge=0, le=5)
    verified: bool = False
    special_offers: List[str] = []
    user_type: str = "vendor"

    @field_validator("provider_id")
    @classmethod
    def usable_as_document_id(cls, value: str) -> str:
        if "/" in value:
            raise ValueError("providerId must not contain '/'")
        return value

    @field_validator("services_offered")
    @classmethod
    def known_financing_services(cls, values: List[str]) -> List[str]:
        unknown = [v for v in values if v not in FINANCING_SERVICE_TYPES]
        if unknown:
            raise ValueError(f"unknown financing services: {', '.join(unknown)}")
        return values


class FinancingProvider(FinancingProviderCreate):
    id: str
