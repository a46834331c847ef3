"""
Location Phrases API endpoints
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from gims.api import deps
from gims.core.security import Permissions
from gims.schemas import LocationPhraseCreate, LocationPhraseUpdate
from gims.schemas.common import to_dict
from gims.services.settings import LocationPhraseService

router = APIRouter()


@router.get("/")
def list_location_phrases(
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    return {"data": [to_dict(phrase) for phrase in LocationPhraseService(db).list_phrases()]}


@router.get("/active")
def active_location_phrases(
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    return {"phrases": LocationPhraseService(db).active_phrases()}


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_location_phrase(
    data: LocationPhraseCreate,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.ACCESS_SETTINGS))
):
    phrase = LocationPhraseService(db).create_phrase(data)
    return {"message": "Location phrase created successfully", "id": phrase.id}


@router.put("/{phrase_id}")
def update_location_phrase(
    phrase_id: int,
    data: LocationPhraseUpdate,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.ACCESS_SETTINGS))
):
    LocationPhraseService(db).update_phrase(phrase_id, data)
    return {"message": "Location phrase updated successfully"}


@router.delete("/{phrase_id}")
def delete_location_phrase(
    phrase_id: int,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.ACCESS_SETTINGS))
):
    LocationPhraseService(db).delete_phrase(phrase_id)
    return {"message": "Location phrase deleted successfully"}
