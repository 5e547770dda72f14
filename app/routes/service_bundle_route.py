from typing import List
from fastapi import APIRouter, Depends, HTTPException, Response, status
from google.cloud.firestore import ArrayRemove, ArrayUnion
from app.models.bundle import ServiceBundle, ServiceBundleCreate, ServiceBundleDetail
from app.models.provider import ServiceProvider
from app.database.connection import SERVICE_BUNDLES, SERVICE_PROVIDERS, get_db
from app.utils.crud_utils import CrudUtils
import logging

router = APIRouter()
marketplace_router = APIRouter()
logger = logging.getLogger(__name__)

BUNDLE_NOT_FOUND = "Service bundle not found"


def get_service_bundles(db=Depends(get_db)):
    return db.collection(SERVICE_BUNDLES)


def get_service_providers(db=Depends(get_db)):
    return db.collection(SERVICE_PROVIDERS)


def services_in_bundle(bundle: dict, providers) -> List[dict]:
    """Resolve a bundle's service ids, skipping providers that were removed."""
    services = []
    for service_id in bundle.get("serviceIds") or []:
        service = CrudUtils.find_by_id(providers, service_id)
        if service:
            services.append(service)
        else:
            logger.warning(f"Bundle {bundle['id']} references missing service {service_id}")
    return services


# ****************************************************
#  Bundles
# ****************************************************

@router.get("", response_model=List[ServiceBundle])
async def get_all_service_bundles(bundles=Depends(get_service_bundles)):
    try:
        results = CrudUtils.get_all(bundles)
        logger.info(f"Fetched {len(results)} service bundles")
        return results
    except Exception as e:
        logger.error(f"Error fetching service bundles: {str(e)}")
        raise HTTPException(status_code=500, detail="Error retrieving service bundles")


@router.get("/{bundle_id}", response_model=ServiceBundle)
async def get_service_bundle(bundle_id: str, bundles=Depends(get_service_bundles)):
    try:
        return CrudUtils.get_by_id(bundles, bundle_id, not_found=BUNDLE_NOT_FOUND)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching service bundle {bundle_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Error retrieving service bundle")


@router.post("", response_model=ServiceBundle, status_code=status.HTTP_201_CREATED)
async def create_service_bundle(bundle: ServiceBundleCreate, bundles=Depends(get_service_bundles)):
    try:
        created = CrudUtils.create_record(bundles, bundle.model_dump(by_alias=True))
        logger.info(f"Service bundle created: {bundle.name}, ID: {created['id']}")
        return created
    except Exception as e:
        logger.error(f"Error creating service bundle: {str(e)}")
        raise HTTPException(status_code=500, detail="Error creating service bundle")


@router.get("/{bundle_id}/services", response_model=List[ServiceProvider])
async def get_bundle_services(
    bundle_id: str,
    bundles=Depends(get_service_bundles),
    providers=Depends(get_service_providers)
):
    try:
        bundle = CrudUtils.get_by_id(bundles, bundle_id, not_found=BUNDLE_NOT_FOUND)
        return services_in_bundle(bundle, providers)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching services in bundle {bundle_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Error retrieving services in bundle")


@router.post("/{bundle_id}/services/{service_id}", response_model=ServiceBundle, status_code=status.HTTP_201_CREATED)
async def add_service_to_bundle(
    bundle_id: str,
    service_id: str,
    bundles=Depends(get_service_bundles),
    providers=Depends(get_service_providers)
):
    try:
        CrudUtils.get_by_id(providers, service_id, not_found="Service provider not found")
        updated = CrudUtils.update_fields(
            bundles, bundle_id, {"serviceIds": ArrayUnion([service_id])}, not_found=BUNDLE_NOT_FOUND
        )
        logger.info(f"Added service {service_id} to bundle {bundle_id}")
        return updated
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error adding service {service_id} to bundle {bundle_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Error adding service to bundle")


@router.delete("/{bundle_id}/services/{service_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_service_from_bundle(bundle_id: str, service_id: str, bundles=Depends(get_service_bundles)):
    try:
        bundle = CrudUtils.get_by_id(bundles, bundle_id, not_found=BUNDLE_NOT_FOUND)
        if service_id not in (bundle.get("serviceIds") or []):
            raise HTTPException(status_code=404, detail="Service not found in bundle")

        bundles.document(bundle_id).update({"serviceIds": ArrayRemove([service_id])})
        logger.info(f"Removed service {service_id} from bundle {bundle_id}")
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error removing service {service_id} from bundle {bundle_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Error removing service from bundle")


# ****************************************************
#  Marketplace
# ****************************************************

@marketplace_router.get("/bundles", response_model=List[ServiceBundle])
async def get_marketplace_bundles(bundles=Depends(get_service_bundles)):
    try:
        return CrudUtils.get_all(bundles)
    except Exception as e:
        logger.error(f"Error fetching marketplace bundles: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch service bundles")


@marketplace_router.get("/bundles/{bundle_id}", response_model=ServiceBundleDetail)
async def get_marketplace_bundle(
    bundle_id: str,
    bundles=Depends(get_service_bundles),
    providers=Depends(get_service_providers)
):
    """A bundle together with the services it contains."""
    try:
        bundle = CrudUtils.get_by_id(bundles, bundle_id, not_found=BUNDLE_NOT_FOUND)
        return {**bundle, "services": services_in_bundle(bundle, providers)}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching marketplace bundle {bundle_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch service bundle")
