"""
RRP API endpoints
"""

from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from gims.api import deps
from gims.core.security import Permissions
from gims.schemas import RRPCreate, RRPLineStatusUpdate, ApprovalPayload, RejectionPayload
from gims.services.procurement import RRPService

router = APIRouter()


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_rrp(
    data: RRPCreate,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.CREATE_RRP))
):
    return RRPService(db).create_rrp(data)


@router.get("/pending")
def pending_rrps(
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    return {"pendingRRPs": RRPService(db).pending_rrps()}


@router.get("/search")
def search_rrps(
    universal: Optional[str] = None,
    equipment_number: Optional[str] = Query(None, alias="equipmentNumber"),
    part_number: Optional[str] = Query(None, alias="partNumber"),
    page: deps.PageParams = Depends(deps.get_page_params),
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    return RRPService(db).search_rrps(universal, equipment_number, part_number, page.page, page.page_size)


@router.get("/verify/{rrp_number}")
def verify_rrp_number(
    rrp_number: str,
    rrp_date: Optional[date] = Query(None, alias="date"),
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    """
    Check whether an RRP number can be used on the given date.
    """
    return RRPService(db).verify_rrp_number(rrp_number, rrp_date)


@router.get("/latest/{rrp_type}")
def latest_rrp(
    rrp_type: str,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    return RRPService(db).latest_rrp(rrp_type)


@router.put("/items/{line_id}/status")
def update_rrp_line_status(
    line_id: int,
    data: RRPLineStatusUpdate,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.APPROVE_RRP))
):
    return RRPService(db).update_line_status(line_id, data.approval_status)


@router.get("/{rrp_number}")
def get_rrp(
    rrp_number: str,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    return RRPService(db).get_rrp(rrp_number)


@router.put("/{rrp_number}/approve")
def approve_rrp(
    rrp_number: str,
    data: ApprovalPayload,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.APPROVE_RRP))
):
    return RRPService(db).approve_rrp(rrp_number, data.approved_by)


@router.put("/{rrp_number}/reject")
def reject_rrp(
    rrp_number: str,
    data: RejectionPayload,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.APPROVE_RRP))
):
    return RRPService(db).reject_rrp(rrp_number, data.rejected_by, data.rejection_reason)
