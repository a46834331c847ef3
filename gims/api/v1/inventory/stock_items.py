"""
Stock Items API endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from gims.api import deps
from gims.core.security import Permissions
from gims.schemas import StockItemCreate, StockItemUpdate, StockItemResponse
from gims.services.inventory import StockMasterService

router = APIRouter()


@router.get("/")
def search_stock_items(
    search: Optional[str] = None,
    page: deps.PageParams = Depends(deps.get_page_params),
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    """
    Search stock by NAC code, item name, part number or equipment number.
    """
    result = StockMasterService(db).search_items(search, page.page, page.page_size)
    result["data"] = [StockItemResponse.model_validate(item) for item in result["data"]]
    return result


@router.get("/{item_id}", response_model=StockItemResponse)
def get_stock_item(
    item_id: int,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    return StockMasterService(db).get_item(item_id)


@router.get("/{item_id}/details")
def get_stock_item_details(
    item_id: int,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    """
    Stock row with opening, costed receive and issue quantities and the
    average cost per unit.
    """
    return StockMasterService(db).item_details(item_id)


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_stock_item(
    data: StockItemCreate,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.ADD_NEW_ITEMS))
):
    item = StockMasterService(db).create_item(data, user.username)
    return {"message": "Stock item created successfully", "id": item.id, "nacCode": item.nac_code}


@router.put("/{item_id}")
def update_stock_item(
    item_id: int,
    data: StockItemUpdate,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.EDIT_STOCK_ITEMS))
):
    StockMasterService(db).update_item(item_id, data, user.username)
    return {"message": "Stock item updated successfully"}


@router.delete("/{item_id}")
def delete_stock_item(
    item_id: int,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.DELETE_STOCK_ITEMS))
):
    StockMasterService(db).delete_item(item_id, user.username)
    return {"message": "Stock item deleted successfully"}
