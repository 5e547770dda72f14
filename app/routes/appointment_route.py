import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from google.cloud.firestore import FieldFilter

from app.database.connection import APPOINTMENTS, get_db
from app.models.appointment import Appointment, AppointmentCreate, AppointmentStatus, AppointmentStatusUpdate
from app.utils.crud_utils import CrudUtils

logger = logging.getLogger(__name__)
router = APIRouter()


def get_appointments(db=Depends(get_db)):
    return db.collection(APPOINTMENTS)


@router.post("", response_model=Appointment, status_code=status.HTTP_201_CREATED)
def create_appointment(request: AppointmentCreate, appointments=Depends(get_appointments)):
    try:
        now = datetime.now(timezone.utc)
        record = request.model_dump(by_alias=True)
        record.update({
            "status": AppointmentStatus.PENDING.value,
            "createdAt": now,
            "updatedAt": now,
        })
        return CrudUtils.create_record(appointments, record)
    except Exception as e:
        logger.error(f"Error creating appointment: {e}")
        raise HTTPException(status_code=500, detail="Failed to create appointment")


@router.get("", response_model=List[Appointment])
def list_appointments(
    user_id: Optional[str] = Query(None, alias="userId"),
    expert_id: Optional[str] = Query(None, alias="expertId"),
    property_id: Optional[str] = Query(None, alias="propertyId"),
    appointments=Depends(get_appointments)
):
    """Appointments for one user, expert or property."""
    if user_id:
        field, value = "userId", user_id
    elif expert_id:
        field, value = "expertId", expert_id
    elif property_id:
        field, value = "propertyId", property_id
    else:
        raise HTTPException(status_code=400, detail="Missing filter parameter (userId, expertId, or propertyId)")

    try:
        docs = appointments.where(filter=FieldFilter(field, "==", value)).stream()
        results = [{**doc.to_dict(), "id": doc.id} for doc in docs]
        results.sort(key=lambda a: a["date"].timestamp())
        return results
    except Exception as e:
        logger.error(f"Error fetching appointments by {field}={value}: {e}")
        raise HTTPException(status_code=500, detail="Error fetching appointments")


@router.get("/{appointment_id}", response_model=Appointment)
def get_appointment(appointment_id: str, appointments=Depends(get_appointments)):
    try:
        return CrudUtils.get_by_id(appointments, appointment_id, not_found="Appointment not found")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching appointment {appointment_id}: {e}")
        raise HTTPException(status_code=500, detail="Error fetching appointment")


@router.patch("/{appointment_id}/status", response_model=Appointment)
def update_appointment_status(
    appointment_id: str,
    request: AppointmentStatusUpdate,
    appointments=Depends(get_appointments)
):
    try:
        updated = CrudUtils.update_fields(
            appointments,
            appointment_id,
            {"status": request.status, "updatedAt": datetime.now(timezone.utc)},
            not_found="Appointment not found",
        )
        logger.info(f"Appointment {appointment_id} is now {request.status}")
        return updated
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating appointment status: {e}")
        raise HTTPException(status_code=500, detail="Error updating appointment status")
