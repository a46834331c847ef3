"""
NAC Units API endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from gims.api import deps
from gims.core.security import Permissions
from gims.schemas import NacUnitCreate, NacUnitUpdate
from gims.schemas.common import to_dict
from gims.services.settings import NacUnitService

router = APIRouter()


@router.get("/")
def list_nac_units(
    search: Optional[str] = None,
    only_default: bool = Query(False, alias="onlyDefault"),
    page: deps.PageParams = Depends(deps.get_page_params),
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    return NacUnitService(db).list_units(search, only_default, page.page, page.page_size)


@router.get("/search-nac-codes")
def search_nac_codes(
    search: str = Query("", alias="search"),
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    return {"data": NacUnitService(db).search_nac_codes(search)}


@router.get("/nac/{nac_code}")
def units_for_nac(
    nac_code: str,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    """
    Units available for a NAC code and which one is the default.
    """
    return NacUnitService(db).units_for_nac(nac_code)


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_nac_unit(
    data: NacUnitCreate,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.ACCESS_SETTINGS))
):
    unit = NacUnitService(db).create_unit(data)
    return {"message": "NAC unit saved successfully", "data": to_dict(unit)}


@router.put("/{unit_id}")
def update_nac_unit(
    unit_id: int,
    data: NacUnitUpdate,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.ACCESS_SETTINGS))
):
    unit = NacUnitService(db).update_unit(unit_id, data)
    return {"message": "NAC unit updated successfully", "data": to_dict(unit)}


@router.delete("/{unit_id}")
def delete_nac_unit(
    unit_id: int,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.ACCESS_SETTINGS))
):
    NacUnitService(db).delete_unit(unit_id)
    return {"message": "NAC unit deleted successfully"}
