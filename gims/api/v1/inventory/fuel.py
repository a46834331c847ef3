"""
Fuel API endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from gims.api import deps
from gims.core.security import Permissions
from gims.schemas import FuelCreate, FuelUpdate, FuelApproval, FuelReceiveCreate
from gims.schemas.common import to_dict
from gims.services.inventory import FuelService

router = APIRouter()


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_fuel_records(
    data: FuelCreate,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.ISSUE_FUEL))
):
    """
    Issue diesel or petrol to a list of equipment. Each line becomes a
    pending issue of the fuel NAC code.
    """
    return FuelService(db).create_fuel_records(data)


@router.get("/")
def list_fuel_records(
    fuel_type: Optional[str] = Query(None, alias="fuelType"),
    equipment_number: Optional[str] = Query(None, alias="equipmentNumber"),
    status_filter: Optional[str] = Query(None, alias="status"),
    page: deps.PageParams = Depends(deps.get_page_params),
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    return FuelService(db).list_fuel_records(
        fuel_type, equipment_number, status_filter, page.page, page.page_size
    )


@router.get("/config/{fuel_type}")
def get_fuel_config(
    fuel_type: str,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    return FuelService(db).get_fuel_config(fuel_type)


@router.get("/last-receive")
def last_fuel_receive(
    fuel_type: str = Query("petrol", alias="fuelType"),
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    return FuelService(db).last_receive(fuel_type)


@router.post("/receive", status_code=status.HTTP_201_CREATED)
def receive_fuel(
    data: FuelReceiveCreate,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.RECEIVE_PETROL))
):
    return FuelService(db).receive_fuel(data)


@router.put("/{record_id}")
def update_fuel_record(
    record_id: int,
    data: FuelUpdate,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.EDIT_FUEL_ISSUE))
):
    record = FuelService(db).update_fuel_record(record_id, data)
    return {"message": "Fuel record updated successfully", "record": to_dict(record)}


@router.delete("/{record_id}")
def delete_fuel_record(
    record_id: int,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.DELETE_FUEL_ISSUE))
):
    FuelService(db).delete_fuel_record(record_id)
    return {"message": "Fuel record deleted successfully"}


@router.put("/{record_id}/approve")
def approve_fuel_record(
    record_id: int,
    data: FuelApproval,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.APPROVE_ISSUES))
):
    FuelService(db).approve_fuel_record(record_id, data.approved_by or user.username)
    return {"message": "Fuel record approved successfully"}
