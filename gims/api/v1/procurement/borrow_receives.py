"""
Borrow Receive API endpoints
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from gims.api import deps
from gims.core.security import Permissions
from gims.schemas import BorrowReceiveCreate, BorrowReturnCreate
from gims.services.procurement import BorrowReceiveService

router = APIRouter()


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_borrow_receive(
    data: BorrowReceiveCreate,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.BORROW_STOCKS))
):
    return BorrowReceiveService(db).create_borrow_receive(data)


@router.post("/return", status_code=status.HTTP_201_CREATED)
def return_borrow(
    data: BorrowReturnCreate,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.BORROW_STOCKS))
):
    """
    Submit the return of an active borrow. Stock moves once the return is approved.
    """
    return BorrowReceiveService(db).return_borrow(data)


@router.get("/active/{nac_code}")
def active_borrows(
    nac_code: str,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    return BorrowReceiveService(db).active_borrows(nac_code)


@router.get("/{receive_id}")
def get_borrow_receive(
    receive_id: int,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    return BorrowReceiveService(db).get_borrow_receive(receive_id)
