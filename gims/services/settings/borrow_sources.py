"""
Borrow Source Service
External lenders for borrow receives, soft deleted through is_active
"""
from typing import List
from sqlalchemy.orm import Session

from gims.core.database import transaction
from gims.core.exceptions import NotFoundError, BusinessRuleError, ValidationError
from gims.core.logging import get_logger
from gims.models import BorrowSource, ReceiveRecord
from gims.schemas.settings import BorrowSourceCreate, BorrowSourceUpdate
from gims.services.business_logic import ApprovalStatus, BorrowStatus, ReceiveSource

logger = get_logger("settings")

IN_USE_MESSAGE = "Cannot delete source. It is being used in active borrow receives."


class BorrowSourceService:

    def __init__(self, db: Session):
        self.db = db

    def list_sources(self, active_only: bool = False) -> List[BorrowSource]:
        query = self.db.query(BorrowSource)
        if active_only:
            query = query.filter(BorrowSource.is_active.is_(True))
        return query.order_by(BorrowSource.source_name).all()

    def get_source(self, source_id: int) -> BorrowSource:
        source = self.db.query(BorrowSource).filter(BorrowSource.id == source_id).first()
        if not source:
            raise NotFoundError("Borrow source not found")
        return source

    def create_source(self, data: BorrowSourceCreate) -> BorrowSource:
        name = data.source_name.strip()
        self._ensure_unique_name(name)

        source = BorrowSource(
            source_name=name,
            source_code=data.source_code,
            contact_person=data.contact_person,
            contact_phone=data.contact_phone,
            contact_email=data.contact_email,
            address=data.address,
            created_by=data.created_by,
            is_active=True,
        )
        with transaction(self.db):
            self.db.add(source)
        self.db.refresh(source)
        logger.info(f"Borrow source created: {source.id} {name} by {data.created_by or 'unknown'}")
        return source

    def update_source(self, source_id: int, data: BorrowSourceUpdate) -> BorrowSource:
        source = self.get_source(source_id)
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationError("No fields to update")

        if "source_name" in changes:
            changes["source_name"] = changes["source_name"].strip()
            if changes["source_name"] != source.source_name:
                self._ensure_unique_name(changes["source_name"], exclude_id=source_id)
        if changes.get("is_active") is False and source.is_active:
            self._ensure_not_in_use(source_id)

        with transaction(self.db):
            for field, value in changes.items():
                setattr(source, field, value)
        self.db.refresh(source)
        logger.info(f"Borrow source {source_id} updated: {', '.join(changes)}")
        return source

    def delete_source(self, source_id: int) -> None:
        """Deactivate a source unless active borrows still reference it"""
        source = self.get_source(source_id)
        self._ensure_not_in_use(source_id)
        with transaction(self.db):
            source.is_active = False
        logger.info(f"Borrow source {source_id} deactivated")

    def _ensure_unique_name(self, name: str, exclude_id: int = None):
        query = self.db.query(BorrowSource.id).filter(BorrowSource.source_name == name)
        if exclude_id is not None:
            query = query.filter(BorrowSource.id != exclude_id)
        if query.first():
            raise BusinessRuleError("A source with this name already exists")

    def _ensure_not_in_use(self, source_id: int):
        active = (
            self.db.query(ReceiveRecord.id)
            .filter(
                ReceiveRecord.borrow_source_id == source_id,
                ReceiveRecord.receive_source == ReceiveSource.BORROW.value,
                ReceiveRecord.borrow_status == BorrowStatus.ACTIVE.value,
                ReceiveRecord.approval_status != ApprovalStatus.REJECTED.value,
            )
            .first()
        )
        if active:
            logger.warning(f"Borrow source {source_id} still referenced by active receive {active.id}")
            raise BusinessRuleError(IN_USE_MESSAGE)
