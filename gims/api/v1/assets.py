"""
Asset Types and Assets API endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from gims.api import deps
from gims.core.security import Permissions
from gims.schemas import AssetTypeCreate, AssetTypeUpdate, AssetCreate, AssetUpdate
from gims.services.assets import AssetTypeService, AssetService
from gims.services.assets.asset_types import serialize_asset_type

types_router = APIRouter()
router = APIRouter()

require_assets = deps.require_permissions(Permissions.ACCESS_ASSETS)


@types_router.get("/")
def list_asset_types(
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(require_assets)
):
    return [serialize_asset_type(t) for t in AssetTypeService(db).list_types()]


@types_router.get("/{type_id}")
def get_asset_type(
    type_id: int,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(require_assets)
):
    return serialize_asset_type(AssetTypeService(db).get_type(type_id))


@types_router.post("/", status_code=status.HTTP_201_CREATED)
def create_asset_type(
    data: AssetTypeCreate,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(require_assets)
):
    """
    Create an asset type with its enabled properties.
    """
    if not data.created_by:
        data.created_by = user.username
    return serialize_asset_type(AssetTypeService(db).create_type(data))


@types_router.put("/{type_id}")
def update_asset_type(
    type_id: int,
    data: AssetTypeUpdate,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(require_assets)
):
    return serialize_asset_type(AssetTypeService(db).update_type(type_id, data))


@types_router.delete("/{type_id}")
def delete_asset_type(
    type_id: int,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(require_assets)
):
    AssetTypeService(db).delete_type(type_id)
    return {"message": "Asset type deleted successfully"}


@router.get("/")
def list_assets(
    asset_type_id: Optional[int] = Query(None, alias="assetTypeId"),
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, alias="pageSize", ge=1),
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(require_assets)
):
    return AssetService(db).list_assets(asset_type_id, search, page, page_size)


@router.get("/{asset_id}")
def get_asset(
    asset_id: int,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(require_assets)
):
    return AssetService(db).get_asset(asset_id)


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_asset(
    data: AssetCreate,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(require_assets)
):
    if not data.created_by:
        data.created_by = user.username
    return AssetService(db).create_asset(data)


@router.put("/{asset_id}")
def update_asset(
    asset_id: int,
    data: AssetUpdate,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(require_assets)
):
    return AssetService(db).update_asset(asset_id, data)


@router.delete("/{asset_id}")
def delete_asset(
    asset_id: int,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(require_assets)
):
    AssetService(db).delete_asset(asset_id)
    return {"message": "Asset deleted successfully"}
