"""
Receive Records API endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from gims.api import deps
from gims.core.security import Permissions
from gims.schemas import ReceiveRecordUpdate
from gims.schemas.common import to_dict
from gims.services.procurement import ReceiveRecordService

router = APIRouter()


@router.get("/")
def list_receive_records(
    universal: Optional[str] = None,
    equipment_number: Optional[str] = Query(None, alias="equipmentNumber"),
    part_number: Optional[str] = Query(None, alias="partNumber"),
    status_filter: Optional[str] = Query(None, alias="status"),
    received_by: Optional[str] = Query(None, alias="receivedBy"),
    page: deps.PageParams = Depends(deps.get_page_params),
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    """
    Paginated receive rows of every source with their lead-time prediction.
    """
    return ReceiveRecordService(db).list_records(
        universal=universal,
        equipment_number=equipment_number,
        part_number=part_number,
        status=status_filter,
        received_by=received_by,
        page=page.page,
        page_size=page.page_size,
    )


@router.get("/filters")
def receive_record_filters(
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    return ReceiveRecordService(db).filters()


@router.get("/{receive_id}")
def get_receive_record(
    receive_id: int,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    return ReceiveRecordService(db).get_record(receive_id)


@router.put("/{receive_id}")
def update_receive_record(
    receive_id: int,
    data: ReceiveRecordUpdate,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.EDIT_RECEIVE_ITEM))
):
    receive = ReceiveRecordService(db).update_record(receive_id, data)
    return {"message": "Receive record updated successfully", "record": to_dict(receive)}


@router.delete("/{receive_id}")
def delete_receive_record(
    receive_id: int,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.DELETE_RECEIVE_ITEM))
):
    ReceiveRecordService(db).delete_record(receive_id)
    return {"message": "Receive record deleted successfully"}
