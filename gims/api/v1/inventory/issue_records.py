"""
Issue Records API endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from gims.api import deps
from gims.core.config import settings
from gims.core.security import Permissions
from gims.schemas import IssueRecordUpdate
from gims.schemas.common import to_dict
from gims.services.inventory import IssueRecordService

router = APIRouter()


@router.get("/")
def list_issue_records(
    search: Optional[str] = None,
    issue_slip_number: Optional[str] = Query(None, alias="issueSlipNumber"),
    part_number: Optional[str] = Query(None, alias="partNumber"),
    item_name: Optional[str] = Query(None, alias="itemName"),
    nac_code: Optional[str] = Query(None, alias="nacCode"),
    issued_for: Optional[str] = Query(None, alias="issuedFor"),
    status_filter: Optional[str] = Query(None, alias="status"),
    issued_by: Optional[str] = Query(None, alias="issuedBy"),
    sort_by: str = Query("issue_date", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    """
    Spare part issues with filters. Fuel issues are listed by the fuel
    endpoints instead.
    """
    return IssueRecordService(db).list_records(
        search, issue_slip_number, part_number, item_name, nac_code, issued_for,
        status_filter, issued_by, sort_by, sort_order, page, limit,
    )


@router.get("/filters")
def issue_record_filters(
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    return IssueRecordService(db).filters()


@router.get("/{issue_id}")
def get_issue_record(
    issue_id: int,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    return to_dict(IssueRecordService(db).get_record(issue_id))


@router.put("/{issue_id}")
def update_issue_record(
    issue_id: int,
    data: IssueRecordUpdate,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.EDIT_SPARES_ISSUE))
):
    issue = IssueRecordService(db).update_record(issue_id, data)
    return {"message": "Spare issue record updated successfully", "record": to_dict(issue)}


@router.delete("/{issue_id}")
def delete_issue_record(
    issue_id: int,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.DELETE_SPARES_ISSUE))
):
    IssueRecordService(db).delete_record(issue_id)
    return {"message": "Spare issue record deleted successfully"}
