"""
Prediction Metrics API endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from gims.api import deps
from gims.core.config import settings
from gims.core.security import Permissions
from gims.schemas import PredictionBatchRequest, PredictionRefreshRequest
from gims.services.prediction import PredictionService

router = APIRouter()


@router.get("/")
def list_predictions(
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, alias="pageSize", ge=1, le=settings.MAX_PAGE_SIZE),
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.ACCESS_PREDICTIVE_ANALYSIS))
):
    return PredictionService(db).list_metrics(search, page, page_size)


@router.post("/batch")
def batch_predictions(
    data: PredictionBatchRequest,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    return {"data": PredictionService(db).get_batch(data.nac_codes)}


@router.post("/refresh")
def refresh_predictions(
    data: PredictionRefreshRequest,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.ACCESS_PREDICTIVE_ANALYSIS))
):
    """
    Recompute lead-time metrics for one NAC code, or for all when none is given.
    """
    nac_code = (data.nac_code or "").strip() or None
    updated = PredictionService(db).refresh(nac_code)
    return {"message": "Prediction metrics refreshed successfully", "updated": updated}


@router.get("/{nac_code}")
def get_prediction(
    nac_code: str,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    return PredictionService(db).get_metrics(nac_code)
