"""
Request Submission API endpoints
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from gims.api import deps
from gims.core.security import Permissions
from gims.schemas import RequestSubmission, ApprovalPayload, RejectionPayload
from gims.schemas.common import to_dict
from gims.services.procurement import RequestWorkflowService

router = APIRouter()


@router.post("/create", status_code=status.HTTP_201_CREATED)
def create_request(
    data: RequestSubmission,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    """
    Submit a multi-line request under one request number.
    """
    return RequestWorkflowService(db).create_request(data, user)


@router.get("/next-request-number")
def next_request_number(
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    return {"nextRequestNumber": RequestWorkflowService(db).next_request_number()}


@router.get("/pending")
def pending_requests(
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    return RequestWorkflowService(db).pending_requests()


@router.get("/last-request-info")
def last_request_info(
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    return RequestWorkflowService(db).last_request_info()


@router.get("/check-duplicate/{nac_code}")
def check_duplicate(
    nac_code: str,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    return RequestWorkflowService(db).check_duplicate(nac_code)


@router.get("/items/{request_number}")
def request_items(
    request_number: str,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    return [to_dict(line) for line in RequestWorkflowService(db).request_items(request_number)]


@router.put("/{request_number}/approve")
def approve_request(
    request_number: str,
    data: ApprovalPayload,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.APPROVE_REQUEST))
):
    return RequestWorkflowService(db).approve_request(request_number, data.approved_by)


@router.put("/{request_number}/reject")
def reject_request(
    request_number: str,
    data: RejectionPayload,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.APPROVE_REQUEST))
):
    return RequestWorkflowService(db).reject_request(request_number, data.rejected_by, data.rejection_reason)


@router.put("/{request_number}/force-close")
def force_close_request(
    request_number: str,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.FORCE_CLOSE_REQUEST))
):
    return RequestWorkflowService(db).force_close(request_number, user.username)
