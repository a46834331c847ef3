"""
Application Config API endpoints
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from gims.api import deps
from gims.core.security import Permissions
from gims.schemas import ConfigUpdate
from gims.services.settings import AppConfigService

router = APIRouter()


@router.get("/{config_type}")
def get_config(
    config_type: str,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    return AppConfigService(db).get_config(config_type)


@router.put("/{config_type}")
def update_config(
    config_type: str,
    data: ConfigUpdate,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.ACCESS_SETTINGS))
):
    """
    Upsert configuration values such as current_fy and section_code.
    """
    return {
        "message": "Configuration updated successfully",
        "data": AppConfigService(db).set_values(config_type, data.values),
    }
