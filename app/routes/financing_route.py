from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from google.api_core.exceptions import AlreadyExists
from app.models.provider import FinancingProvider, FinancingProviderCreate
from app.database.connection import FINANCING_PROVIDERS, get_db
from app.utils.crud_utils import CrudUtils
import logging

router = APIRouter()
logger = logging.getLogger(__name__)


def get_financing_providers(db=Depends(get_db)):
    return db.collection(FINANCING_PROVIDERS)


def _offers(values, wanted: Optional[str]) -> bool:
    if not wanted:
        return True
    wanted = wanted.strip().lower()
    return any(str(v).strip().lower() == wanted for v in values or [])


@router.get("", response_model=List[FinancingProvider])
async def get_financing_providers_list(
    service: Optional[str] = None,
    area: Optional[str] = None,
    providers=Depends(get_financing_providers)
):
    """
    Financing providers, optionally only those offering ``service``
    in ``area`` (case-insensitive).
    """
    try:
        results = [
            p for p in CrudUtils.get_all(providers)
            if _offers(p.get("servicesOffered"), service) and _offers(p.get("areasServed"), area)
        ]
        logger.info(f"Fetched {len(results)} financing providers - Service: {service}, Area: {area}")
        return results
    except Exception as e:
        logger.error(f"Error fetching financing providers: {str(e)}")
        raise HTTPException(status_code=500, detail="Error fetching financing providers")


@router.get("/{provider_id}", response_model=FinancingProvider)
async def get_financing_provider(provider_id: str, providers=Depends(get_financing_providers)):
    try:
        return CrudUtils.get_by_id(providers, provider_id, not_found="Financing provider not found")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching financing provider {provider_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Error fetching financing provider")


@router.post("", response_model=FinancingProvider, status_code=status.HTTP_201_CREATED)
async def create_financing_provider(provider: FinancingProviderCreate, providers=Depends(get_financing_providers)):
    try:
        created = CrudUtils.create_record(
            providers, provider.model_dump(by_alias=True), doc_id=provider.provider_id, exclusive=True
        )
        logger.info(f"Financing provider created: {provider.name}, ID: {created['id']}")
        return created
    except AlreadyExists:
        logger.info(f"Financing provider ID already registered: {provider.provider_id}")
        raise HTTPException(status_code=409, detail="A financing provider with this providerId already exists")
    except Exception as e:
        logger.error(f"Error creating financing provider: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to create financing provider")
