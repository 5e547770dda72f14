import logging
from typing import List

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from app.models.property import IdxListingPage
from app.services.idx_service import SEARCH_PARAMS, IdxBrokerClient

logger = logging.getLogger(__name__)
router = APIRouter()

# accepted without the IDX name mapping
PASSTHROUGH_PARAMS = {"filterField", "filterValue", "orderBy", "orderDir"}


def get_idx_client() -> IdxBrokerClient:
    return IdxBrokerClient()


@router.get("/listings/featured", response_model=IdxListingPage)
def featured_listings(
    limit: int = Query(10, ge=1, le=100),
    idx: IdxBrokerClient = Depends(get_idx_client)
):
    return idx.fetch_featured(limit)


@router.get("/listings/search", response_model=IdxListingPage)
def search_listings(
    request: Request,
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    idx: IdxBrokerClient = Depends(get_idx_client)
):
    """Search listings; at least one search criterion is required."""
    criteria = {
        key: value.strip()
        for key, value in request.query_params.items()
        if (key in SEARCH_PARAMS or key in PASSTHROUGH_PARAMS) and value.strip()
    }
    if not any(key in SEARCH_PARAMS for key in criteria):
        return JSONResponse(status_code=400, content={"error": "Please enter at least one search criterion"})

    logger.info(f"IDX search with criteria {criteria}")
    return idx.search(criteria, limit=limit, offset=offset)


@router.get("/sold-pending", response_model=IdxListingPage)
def sold_pending_listings(
    status: str = Query("sold", pattern="^(sold|pending)$"),
    limit: int = Query(10, ge=1, le=100),
    idx: IdxBrokerClient = Depends(get_idx_client)
):
    return idx.fetch_sold_pending(status, limit)


@router.get("/cities", response_model=List[str])
def cities(idx: IdxBrokerClient = Depends(get_idx_client)):
    return idx.fetch_cities()


@router.get("/counties", response_model=List[str])
def counties(idx: IdxBrokerClient = Depends(get_idx_client)):
    return idx.fetch_counties()


@router.get("/postal-codes", response_model=List[str])
def postal_codes(idx: IdxBrokerClient = Depends(get_idx_client)):
    return idx.fetch_postal_codes()


@router.get("/status")
def idx_status(idx: IdxBrokerClient = Depends(get_idx_client)):
    """Connection test against the account info endpoint."""
    result = idx.test_connection()
    return {
        "configured": idx.configured,
        "connected": result["success"],
        "message": result["message"],
    }
