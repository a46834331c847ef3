"""
Request Records API endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from gims.api import deps
from gims.schemas import RequestRecordCreate, RequestRecordUpdate
from gims.schemas.common import to_dict
from gims.services.procurement import RequestRecordService

router = APIRouter()


@router.get("/")
def list_request_records(
    universal: Optional[str] = None,
    equipment_number: Optional[str] = Query(None, alias="equipmentNumber"),
    part_number: Optional[str] = Query(None, alias="partNumber"),
    status_filter: Optional[str] = Query(None, alias="status"),
    requested_by: Optional[str] = Query(None, alias="requestedBy"),
    page: deps.PageParams = Depends(deps.get_page_params),
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    """
    Paginated request lines with receive progress and lead-time prediction.
    """
    return RequestRecordService(db).list_records(
        universal=universal,
        equipment_number=equipment_number,
        part_number=part_number,
        status=status_filter,
        requested_by=requested_by,
        page=page.page,
        page_size=page.page_size,
    )


@router.get("/filters")
def request_record_filters(
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    return RequestRecordService(db).filter_options()


@router.get("/{record_id}")
def get_request_record(
    record_id: int,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    return to_dict(RequestRecordService(db).get_record(record_id))


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_request_record(
    data: RequestRecordCreate,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    record = RequestRecordService(db).create_record(data)
    return {"message": "Request record created successfully", "id": record.id}


@router.put("/{record_id}")
def update_request_record(
    record_id: int,
    data: RequestRecordUpdate,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    RequestRecordService(db).update_record(record_id, data)
    return {"message": "Request record updated successfully"}


@router.delete("/{record_id}")
def delete_request_record(
    record_id: int,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    RequestRecordService(db).delete_record(record_id)
    return {"message": "Request record deleted successfully"}
