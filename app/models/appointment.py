from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from app.models.base import CamelModel, Identifier, NonEmptyStr


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELED = "canceled"


class AppointmentCreate(CamelModel):
    property_id: Optional[str] = None
    user_id: Identifier
    expert_id: Optional[str] = None
    type: NonEmptyStr           # property_tour, consultation, customer_service
    sub_type: Optional[str] = None  # in_person, virtual, self_guided
    date: datetime
    notes: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class Appointment(AppointmentCreate):
    id: str
    status: AppointmentStatus = AppointmentStatus.PENDING
    created_at: datetime
    updated_at: datetime


class AppointmentStatusUpdate(CamelModel):
    status: AppointmentStatus
