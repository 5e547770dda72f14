import logging
from typing import Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.database.connection import get_db
from app.models.property import ListedProperty, Property, PropertyCreate, PropertyFilters, PropertyListResponse
from app.services.property_service import PropertyService

logger = logging.getLogger(__name__)
router = APIRouter()


def get_property_service(db=Depends(get_db)) -> PropertyService:
    return PropertyService(db)


@router.get("", response_model=PropertyListResponse)
def list_properties(
    city: Optional[str] = None,
    state: Optional[str] = None,
    zip_code: Optional[str] = Query(None, alias="zipCode"),
    min_price: Optional[float] = Query(None, alias="minPrice", ge=0),
    max_price: Optional[float] = Query(None, alias="maxPrice", ge=0),
    bedrooms: Optional[int] = Query(None, ge=0),
    bathrooms: Optional[float] = Query(None, ge=0),
    property_type: Optional[str] = Query(None, alias="propertyType"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    properties: PropertyService = Depends(get_property_service)
):
    """Local listings plus IDX listings matching the same filters."""
    filters = PropertyFilters(
        city=city,
        state=state,
        zip_code=zip_code,
        min_price=min_price,
        max_price=max_price,
        bedrooms=bedrooms,
        bathrooms=bathrooms,
        property_type=property_type,
        limit=limit,
        offset=offset,
    )
    try:
        return properties.search(filters)
    except Exception as e:
        logger.error(f"Error fetching properties: {e}")
        raise HTTPException(status_code=500, detail="Error fetching properties")


@router.get("/{property_id}", response_model=Union[Property, ListedProperty])
def get_property(property_id: str, properties: PropertyService = Depends(get_property_service)):
    try:
        return properties.get_property(property_id)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching property {property_id}: {e}")
        raise HTTPException(status_code=500, detail="Error fetching property details")


@router.post("", response_model=Property, status_code=status.HTTP_201_CREATED)
def create_property(request: PropertyCreate, properties: PropertyService = Depends(get_property_service)):
    try:
        return properties.create(request)
    except Exception as e:
        logger.error(f"Error creating property: {e}")
        raise HTTPException(status_code=500, detail="Failed to create property")
