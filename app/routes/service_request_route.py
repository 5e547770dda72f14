import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from google.cloud.firestore import FieldFilter

from app.database.connection import SERVICE_PROVIDERS, SERVICE_REQUESTS, get_db
from app.models.service_request import (
    ServiceRequest,
    ServiceRequestCreate,
    ServiceRequestStatus,
    ServiceRequestStatusUpdate,
)
from app.utils.crud_utils import CrudUtils

logger = logging.getLogger(__name__)
router = APIRouter()


def get_service_requests(db=Depends(get_db)):
    return db.collection(SERVICE_REQUESTS)


def get_service_providers(db=Depends(get_db)):
    return db.collection(SERVICE_PROVIDERS)


def pick_provider(providers: List[dict], zip_code: str) -> Optional[dict]:
    """Highest-rated provider serving ``zip_code``; unrated counts as 0."""
    serving = [p for p in providers if not p.get("serviceAreas") or zip_code in p["serviceAreas"]]
    if not serving:
        return None
    return max(serving, key=lambda p: p.get("rating") or 0)


@router.get("", response_model=List[ServiceRequest])
def list_service_requests(
    user_id: Optional[str] = Query(None, alias="userId"),
    provider_id: Optional[str] = Query(None, alias="providerId"),
    requests=Depends(get_service_requests)
):
    """All requests, or only one user's or one provider's."""
    try:
        if user_id:
            results = CrudUtils.find_where(requests, "userId", user_id)
        elif provider_id:
            results = CrudUtils.find_where(requests, "serviceProviderId", provider_id)
        else:
            results = CrudUtils.get_all(requests)
        results.sort(key=lambda r: r["createdAt"].timestamp(), reverse=True)
        return results
    except Exception as e:
        logger.error(f"Error fetching service requests: {e}")
        raise HTTPException(status_code=500, detail="Error fetching service requests")


@router.get("/{request_id}", response_model=ServiceRequest)
def get_service_request(request_id: str, requests=Depends(get_service_requests)):
    try:
        return CrudUtils.get_by_id(requests, request_id, not_found="Service request not found")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching service request {request_id}: {e}")
        raise HTTPException(status_code=500, detail="Error fetching service request")


@router.post("", response_model=ServiceRequest, status_code=status.HTTP_201_CREATED)
def create_service_request(
    request: ServiceRequestCreate,
    requests=Depends(get_service_requests),
    providers=Depends(get_service_providers)
):
    """
    Book a service. The request goes to the highest-rated provider of the
    requested type that serves the property's zip code; 404 when none does.
    """
    try:
        candidates = [
            {**doc.to_dict(), "id": doc.id}
            for doc in providers.where(filter=FieldFilter("type", "==", request.service_type)).stream()
        ]
        provider = pick_provider(candidates, request.property_zip_code)
        if not provider:
            raise HTTPException(
                status_code=404,
                detail="No service providers found for this service type in your area",
            )

        now = datetime.now(timezone.utc)
        record = request.model_dump(mode="json", by_alias=True)
        record.update({
            "serviceProviderId": provider["id"],
            "status": ServiceRequestStatus.PENDING.value,
            "createdAt": now,
            "updatedAt": now,
        })
        created = CrudUtils.create_record(requests, record)
        logger.info(f"Service request {created['id']} assigned to provider {provider['id']}")
        return created
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error creating service request: {e}")
        raise HTTPException(status_code=500, detail="Error creating service request")


@router.patch("/{request_id}/status", response_model=ServiceRequest)
def update_service_request_status(
    request_id: str,
    request: ServiceRequestStatusUpdate,
    requests=Depends(get_service_requests)
):
    fields = {"status": request.status, "updatedAt": datetime.now(timezone.utc)}
    if request.notes:
        fields["notes"] = request.notes

    try:
        updated = CrudUtils.update_fields(requests, request_id, fields, not_found="Service request not found")
        logger.info(f"Service request {request_id} is now {request.status}")
        return updated
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating service request status: {e}")
        raise HTTPException(status_code=500, detail="Error updating service request status")
