"""
Location Phrase Service
Storage location texts offered on the receive screen
"""
from typing import List
from sqlalchemy.orm import Session

from gims.core.database import transaction
from gims.core.exceptions import NotFoundError
from gims.core.logging import get_logger
from gims.models import LocationPhrase
from gims.schemas.settings import LocationPhraseCreate, LocationPhraseUpdate

logger = get_logger("settings")


class LocationPhraseService:

    def __init__(self, db: Session):
        self.db = db

    def list_phrases(self) -> List[LocationPhrase]:
        return self.db.query(LocationPhrase).order_by(LocationPhrase.phrase).all()

    def active_phrases(self) -> List[str]:
        rows = (
            self.db.query(LocationPhrase.phrase)
            .filter(LocationPhrase.is_active.is_(True))
            .order_by(LocationPhrase.phrase)
            .all()
        )
        return [row[0] for row in rows]

    def get_phrase(self, phrase_id: int) -> LocationPhrase:
        phrase = self.db.query(LocationPhrase).filter(LocationPhrase.id == phrase_id).first()
        if not phrase:
            raise NotFoundError("Location phrase not found")
        return phrase

    def create_phrase(self, data: LocationPhraseCreate) -> LocationPhrase:
        phrase = LocationPhrase(phrase=data.phrase, is_active=True)
        with transaction(self.db):
            self.db.add(phrase)
        self.db.refresh(phrase)
        logger.info(f"Location phrase created: {phrase.id} {phrase.phrase}")
        return phrase

    def update_phrase(self, phrase_id: int, data: LocationPhraseUpdate) -> LocationPhrase:
        phrase = self.get_phrase(phrase_id)
        with transaction(self.db):
            phrase.phrase = data.phrase
            phrase.is_active = data.is_active
        self.db.refresh(phrase)
        logger.info(f"Location phrase {phrase_id} updated: {phrase.phrase} active={phrase.is_active}")
        return phrase

    def delete_phrase(self, phrase_id: int) -> None:
        phrase = self.get_phrase(phrase_id)
        with transaction(self.db):
            self.db.delete(phrase)
        logger.info(f"Location phrase {phrase_id} deleted")
