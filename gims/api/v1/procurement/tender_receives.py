"""
Tender Receive API endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from gims.api import deps
from gims.core.security import Permissions
from gims.schemas import TenderReceiveCreate
from gims.schemas.common import to_dict
from gims.services.procurement import TenderReceiveService

router = APIRouter()


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_tender_receive(
    data: TenderReceiveCreate,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.RECEIVE_FROM_TENDER))
):
    return TenderReceiveService(db).create_tender_receive(data)


@router.get("/")
def search_tender_receives(
    universal: Optional[str] = None,
    tender_number: Optional[str] = Query(None, alias="tenderNumber"),
    page: deps.PageParams = Depends(deps.get_page_params),
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    return TenderReceiveService(db).search_tender_receives(universal, tender_number, page.page, page.page_size)


@router.get("/{receive_id}")
def get_tender_receive(
    receive_id: int,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    return to_dict(TenderReceiveService(db).get_tender_receive(receive_id))
