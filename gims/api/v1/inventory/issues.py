"""
Issue API endpoints
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from gims.api import deps
from gims.core.security import Permissions
from gims.schemas import IssueCreate, IssueDecision
from gims.schemas.common import to_dict
from gims.services.inventory import StockIssueService

router = APIRouter()


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_issue(
    data: IssueCreate,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.ISSUE_ITEMS))
):
    """
    Issue stock to equipment. Balances are deducted immediately and restored
    if the issue is rejected.
    """
    return StockIssueService(db).create_issue(data)


@router.get("/pending")
def pending_issues(
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    return [to_dict(issue) for issue in StockIssueService(db).list_pending()]


@router.put("/approve")
def approve_issues(
    data: IssueDecision,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.APPROVE_ISSUES))
):
    count = StockIssueService(db).approve_issues(data.ids, data.approved_by or user.username)
    return {"message": "Issues approved successfully", "count": count}


@router.put("/reject")
def reject_issues(
    data: IssueDecision,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.APPROVE_ISSUES))
):
    count = StockIssueService(db).reject_issues(
        data.ids, data.rejected_by or user.username, data.rejection_reason
    )
    return {"message": "Issues rejected successfully", "count": count}
