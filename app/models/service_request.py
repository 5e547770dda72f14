from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import field_validator

from app.models.base import CamelModel, Identifier, NonEmptyStr
from app.models.provider import SERVICE_TYPES


class ServiceRequestStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ServiceRequestCreate(CamelModel):
    service_type: NonEmptyStr
    user_id: Identifier
    property_zip_code: NonEmptyStr
    preferred_date: date
    preferred_time: NonEmptyStr
    property_id: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("service_type")
    @classmethod
    def known_service_type(cls, value: str) -> str:
        if value not in SERVICE_TYPES:
            raise ValueError(f"serviceType must be one of: {', '.join(SERVICE_TYPES)}")
        return value


class ServiceRequest(ServiceRequestCreate):
    id: str
    service_provider_id: str
    status: ServiceRequestStatus = ServiceRequestStatus.PENDING
    created_at: datetime
    updated_at: datetime


class ServiceRequestStatusUpdate(CamelModel):
    status: ServiceRequestStatus
    notes: Optional[str] = None
