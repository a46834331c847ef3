"""
Borrow Sources API endpoints
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from gims.api import deps
from gims.core.security import Permissions
from gims.schemas import BorrowSourceCreate, BorrowSourceUpdate
from gims.schemas.common import to_dict
from gims.services.settings import BorrowSourceService

router = APIRouter()


@router.get("/")
def list_borrow_sources(
    active_only: bool = Query(False, alias="activeOnly"),
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    """
    List borrow sources, optionally only the active ones.
    """
    return [to_dict(source) for source in BorrowSourceService(db).list_sources(active_only)]


@router.get("/{source_id}")
def get_borrow_source(
    source_id: int,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    return to_dict(BorrowSourceService(db).get_source(source_id))


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_borrow_source(
    data: BorrowSourceCreate,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.ACCESS_SETTINGS))
):
    source = BorrowSourceService(db).create_source(data)
    return {"message": "Borrow source created successfully", "sourceId": source.id}


@router.put("/{source_id}")
def update_borrow_source(
    source_id: int,
    data: BorrowSourceUpdate,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.ACCESS_SETTINGS))
):
    BorrowSourceService(db).update_source(source_id, data)
    return {"message": "Borrow source updated successfully"}


@router.delete("/{source_id}")
def delete_borrow_source(
    source_id: int,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.ACCESS_SETTINGS))
):
    """
    Deactivate a borrow source. The row is kept for history.
    """
    BorrowSourceService(db).delete_source(source_id)
    return {"message": "Borrow source deleted successfully"}
