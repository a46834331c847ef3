"""
Receive API endpoints
Purchase receives plus the approval step shared by every receive source
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from gims.api import deps
from gims.core.security import Permissions
from gims.schemas import ReceiveCreate, ReceiveUpdate, ReceiveRejection, UnitConversionSave
from gims.services.procurement import ReceiveService

router = APIRouter()


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_receive(
    data: ReceiveCreate,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.RECEIVE_ITEMS))
):
    return ReceiveService(db).create_receive(data)


@router.get("/pending")
def pending_receives(
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    return ReceiveService(db).pending_receives()


@router.get("/search")
def search_receivables(
    universal: Optional[str] = None,
    equipment_number: Optional[str] = Query(None, alias="equipmentNumber"),
    part_number: Optional[str] = Query(None, alias="partNumber"),
    page: deps.PageParams = Depends(deps.get_page_params),
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    """
    Approved requests that still have quantity left to receive.
    """
    return ReceiveService(db).search_receivables(
        universal, equipment_number, part_number, page.page, page.page_size
    )


@router.get("/unit-conversion")
def get_unit_conversion(
    nac_code: str = Query(..., alias="nacCode"),
    requested_unit: str = Query(..., alias="requestedUnit"),
    received_unit: str = Query(..., alias="receivedUnit"),
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    base = ReceiveService(db).conversion_base(nac_code, requested_unit, received_unit)
    return {"conversionBase": base}


@router.post("/unit-conversion")
def save_unit_conversion(
    data: UnitConversionSave,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.RECEIVE_ITEMS))
):
    ReceiveService(db).save_conversion(data)
    return {"message": "Unit conversion saved successfully"}


@router.get("/{receive_id}")
def get_receive(
    receive_id: int,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    return ReceiveService(db).get_receive(receive_id)


@router.put("/{receive_id}")
def update_receive(
    receive_id: int,
    data: ReceiveUpdate,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.RECEIVE_ITEMS))
):
    return ReceiveService(db).update_receive(receive_id, data)


@router.put("/{receive_id}/approve")
def approve_receive(
    receive_id: int,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.APPROVE_RECEIVE))
):
    """
    Approve a receive and move its quantity into stock.
    """
    return ReceiveService(db).approve_receive(receive_id, user.username)


@router.put("/{receive_id}/approve-and-close")
def approve_and_close_receive(
    receive_id: int,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.APPROVE_RECEIVE))
):
    return ReceiveService(db).approve_receive(receive_id, user.username, close_request=True)


@router.put("/{receive_id}/reject")
def reject_receive(
    receive_id: int,
    data: ReceiveRejection,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.APPROVE_RECEIVE))
):
    return ReceiveService(db).reject_receive(
        receive_id, data.rejected_by or user.username, data.rejection_reason or ''
    )
