from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from app.models.provider import ServiceProvider, ServiceProviderCreate
from app.database.connection import SERVICE_PROVIDERS, get_db
from app.utils.crud_utils import CrudUtils
import logging

router = APIRouter()
logger = logging.getLogger(__name__)


def get_service_providers(db=Depends(get_db)):
    return db.collection(SERVICE_PROVIDERS)


@router.get("", response_model=List[ServiceProvider])
async def get_all_service_providers(providers=Depends(get_service_providers)):
    """
    Fetch all service providers
    """
    try:
        results = CrudUtils.get_all(providers)
        logger.info(f"Fetched {len(results)} service providers")
        return results
    except Exception as e:
        logger.error(f"Error fetching service providers: {str(e)}")
        raise HTTPException(status_code=500, detail="Error fetching service providers")


@router.get("/type/{provider_type}", response_model=List[ServiceProvider])
async def get_service_providers_by_type(provider_type: str, providers=Depends(get_service_providers)):
    try:
        return CrudUtils.find_where(providers, "type", provider_type)
    except Exception as e:
        logger.error(f"Error fetching service providers of type {provider_type}: {str(e)}")
        raise HTTPException(status_code=500, detail="Error fetching service providers")


@router.get("/{provider_id}", response_model=ServiceProvider)
async def get_service_provider(provider_id: str, providers=Depends(get_service_providers)):
    try:
        return CrudUtils.get_by_id(providers, provider_id, not_found="Service provider not found")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching service provider {provider_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Error fetching service provider")


@router.post("", response_model=ServiceProvider, status_code=status.HTTP_201_CREATED)
async def create_service_provider(provider: ServiceProviderCreate, providers=Depends(get_service_providers)):
    try:
        created = CrudUtils.create_record(providers, provider.model_dump(by_alias=True))
        logger.info(f"Service provider created: {provider.name} ({provider.type}), ID: {created['id']}")
        return created
    except Exception as e:
        logger.error(f"Error creating service provider: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to create service provider")
