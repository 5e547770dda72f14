from datetime import datetime
from typing import List, Optional

from pydantic import Field

from app.models.base import CamelModel, NonEmptyStr
from app.models.provider import ServiceProvider


class ServiceBundleCreate(CamelModel):
    name: NonEmptyStr
    description: NonEmptyStr
    price: float = Field(..., ge=0)
    discount_percent: Optional[float] = Field(None, ge=0, le=100)
    image: Optional[str] = None
    service_ids: List[str] = []


class ServiceBundle(ServiceBundleCreate):
    id: str
    created_at: datetime


class ServiceBundleDetail(ServiceBundle):
    """A bundle with its services resolved, as the marketplace shows it."""
    services: List[ServiceProvider] = []
