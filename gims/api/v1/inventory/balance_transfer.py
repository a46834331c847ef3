"""
Balance Transfer API endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from gims.api import deps
from gims.core.security import Permissions
from gims.schemas import BalanceTransferCreate
from gims.services.inventory import BalanceTransferService

router = APIRouter()


@router.get("/transferable")
def transferable_items(
    search: Optional[str] = None,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.TRANSFER_BALANCE))
):
    """
    Approved, costed receives that still hold quantity not yet moved to
    another NAC code.
    """
    return BalanceTransferService(db).transferable_items(search)


@router.get("/nac-codes")
def existing_nac_codes(
    search: Optional[str] = None,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.TRANSFER_BALANCE))
):
    return BalanceTransferService(db).existing_nac_codes(search)


@router.get("/")
def list_balance_transfers(
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    return BalanceTransferService(db).list_transfers()


@router.post("/", status_code=status.HTTP_201_CREATED)
def transfer_balance(
    data: BalanceTransferCreate,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.TRANSFER_BALANCE))
):
    return BalanceTransferService(db).transfer_balance(data)


@router.delete("/{transfer_id}")
def revert_balance_transfer(
    transfer_id: int,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.REVERT_BALANCE_TRANSFER))
):
    return BalanceTransferService(db).revert_transfer(transfer_id)
