import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.database.connection import get_db
from app.models.cma import CmaReport, CmaRequest
from app.services.cma_service import CmaService

logger = logging.getLogger(__name__)
router = APIRouter()


def get_cma_service(db=Depends(get_db)) -> CmaService:
    return CmaService(db)


@router.post("/generate", response_model=CmaReport, status_code=status.HTTP_201_CREATED)
def generate_cma_report(request: CmaRequest, cma: CmaService = Depends(get_cma_service)):
    """Build a comparative market analysis for the subject property."""
    try:
        return cma.generate(request)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error generating CMA report: {e}")
        raise HTTPException(status_code=500, detail="Failed to generate CMA report")


@router.get("/reports/{report_id}", response_model=CmaReport)
def get_cma_report(report_id: str, cma: CmaService = Depends(get_cma_service)):
    try:
        return cma.get_report(report_id)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching CMA report {report_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch CMA report")


@router.get("/user/reports", response_model=List[CmaReport])
def get_user_cma_reports(
    user_id: Optional[str] = Query(None, alias="userId"),
    cma: CmaService = Depends(get_cma_service)
):
    if not user_id or not user_id.strip():
        raise HTTPException(status_code=400, detail="userId is required")
    try:
        return cma.list_user_reports(user_id.strip())
    except Exception as e:
        logger.error(f"Error fetching CMA reports for {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch user reports")
