"""
Borrow Receive Service

Stock received on loan from an external source and its return. A return is
its own pending receive row; the borrow stays ACTIVE until that return is
approved.
"""
from typing import Dict, List
from sqlalchemy.orm import Session

from gims.core.database import transaction
from gims.core.exceptions import NotFoundError, BusinessRuleError, ConflictError
from gims.core.logging import get_logger
from gims.models import BorrowSource, ReceiveRecord, StockItem
from gims.schemas.receive import BorrowReceiveCreate, BorrowReturnCreate
from gims.services.business_logic import ApprovalStatus, BorrowStatus, ReceiveSource, format_quantity
from gims.services.inventory.stock_master import StockMasterService

logger = get_logger("receive")


class BorrowReceiveService:

    def __init__(self, db: Session):
        self.db = db
        self.stock = StockMasterService(db)

    def create_borrow_receive(self, data: BorrowReceiveCreate) -> Dict:
        source = self.db.query(BorrowSource).filter(
            BorrowSource.id == data.borrow_source_id,
            BorrowSource.is_active.is_(True),
        ).first()
        if source is None:
            logger.warning(f"Borrow receive refused, source {data.borrow_source_id} invalid or inactive")
            raise BusinessRuleError("Invalid or inactive borrow source selected.")

        receive_ids: List[int] = []
        with transaction(self.db):
            for item in data.items:
                nac_code = (item.nac_code or '').strip()
                if not nac_code:
                    raise BusinessRuleError(
                        f"NAC Code is required for item: {item.item_name}. "
                        "Please ensure the item has a valid NAC Code."
                    )
                if item.is_new_item and self.db.query(StockItem.id).filter(StockItem.nac_code == nac_code).first():
                    raise BusinessRuleError(
                        f"NAC Code {nac_code} already exists. Please choose a new NAC Code for new item."
                    )
                duplicate = self.db.query(ReceiveRecord.id).filter(
                    ReceiveRecord.borrow_source_id == source.id,
                    ReceiveRecord.nac_code == nac_code,
                    ReceiveRecord.receive_date == data.receive_date,
                    ReceiveRecord.receive_source == ReceiveSource.BORROW.value,
                ).first()
                if duplicate:
                    logger.warning(f"Duplicate borrow {source.id}/{nac_code} on {data.receive_date}")
                    raise BusinessRuleError(
                        f"This item ({nac_code}) has already been borrowed from this source on "
                        f"{data.receive_date.isoformat()}. Please select a different date or item."
                    )
                if item.receive_quantity is None or item.receive_quantity <= 0:
                    raise BusinessRuleError("Invalid receive quantity. Quantity must be a positive number.")

                receive = ReceiveRecord(
                    receive_date=data.receive_date,
                    nac_code=nac_code,
                    part_number=item.part_number,
                    item_name=item.item_name,
                    received_quantity=item.receive_quantity,
                    unit=item.unit or '',
                    equipment_number=item.equipment_number or '',
                    location=item.location or None,
                    card_number=item.card_number or None,
                    image_path=item.image_path,
                    received_by=data.received_by,
                    approval_status=ApprovalStatus.PENDING.value,
                    receive_source=ReceiveSource.BORROW.value,
                    borrow_source_id=source.id,
                    borrow_status=BorrowStatus.ACTIVE.value,
                    borrow_date=data.receive_date,
                    borrow_reference_number=data.borrow_reference_number or None,
                )
                self.db.add(receive)
                self.db.flush()
                receive_ids.append(receive.id)
                logger.info(f"Created borrow receive {receive.id} for {nac_code} from source {source.source_name}")

        logger.info(f"Created {len(receive_ids)} borrow receive record(s) by {data.received_by}")
        return {"message": "Borrow receive created successfully", "receiveIds": receive_ids}

    def return_borrow(self, data: BorrowReturnCreate) -> Dict:
        borrow = self.db.query(ReceiveRecord).filter(
            ReceiveRecord.id == data.borrow_receive_id,
            ReceiveRecord.receive_source == ReceiveSource.BORROW.value,
        ).first()
        if borrow is None:
            raise NotFoundError("Borrow receive not found")
        if (borrow.approval_status != ApprovalStatus.APPROVED.value
                or borrow.borrow_status != BorrowStatus.ACTIVE.value):
            raise ConflictError("Only approved, active borrows can be returned")
        if borrow.return_receive_fk:
            raise ConflictError("A return for this borrow is already pending approval")

        with transaction(self.db):
            returned = ReceiveRecord(
                receive_date=data.return_date,
                nac_code=borrow.nac_code,
                part_number=borrow.part_number,
                item_name=borrow.item_name,
                received_quantity=borrow.received_quantity,
                unit=borrow.unit,
                equipment_number=borrow.equipment_number,
                location=borrow.location,
                card_number=borrow.card_number,
                image_path=borrow.image_path,
                received_by=data.received_by,
                approval_status=ApprovalStatus.PENDING.value,
                receive_source=ReceiveSource.BORROW_RETURN.value,
                borrow_source_id=borrow.borrow_source_id,
                borrow_date=borrow.borrow_date,
                borrow_reference_number=borrow.borrow_reference_number,
                return_date=data.return_date,
            )
            self.db.add(returned)
            self.db.flush()
            borrow.return_receive_fk = returned.id

        logger.info(f"Return {returned.id} of borrow {borrow.id} submitted by {data.received_by}")
        return {
            "message": "Borrow return submitted for approval",
            "returnReceiveId": returned.id,
            "borrowReceiveId": borrow.id,
        }

    def _original(self, returned: ReceiveRecord) -> ReceiveRecord:
        borrow = self.db.query(ReceiveRecord).filter(
            ReceiveRecord.return_receive_fk == returned.id,
            ReceiveRecord.receive_source == ReceiveSource.BORROW.value,
        ).first()
        if borrow is None:
            raise NotFoundError("Original borrow receive not found")
        return borrow

    def approve_return(self, returned: ReceiveRecord, approved_by: str) -> Dict:
        """Settle a borrow: the return is approved and the quantity leaves stock"""
        borrow = self._original(returned)
        with transaction(self.db):
            returned.approval_status = ApprovalStatus.APPROVED.value
            returned.approved_by = approved_by
            borrow.borrow_status = BorrowStatus.RETURNED.value
            borrow.return_date = returned.return_date or returned.receive_date
            stock = self.stock.deduct(returned.nac_code, returned.received_quantity, clamp=True)

        logger.info(
            f"Borrow return {returned.id} approved by {approved_by}; {returned.nac_code} balance "
            f"now {format_quantity(stock.current_balance)}"
        )
        return {"message": "Borrow return approved and stock updated successfully"}

    def reject_return(self, returned: ReceiveRecord, rejected_by: str, reason: str = '') -> Dict:
        borrow = self._original(returned)
        with transaction(self.db):
            returned.approval_status = ApprovalStatus.REJECTED.value
            returned.rejected_by = rejected_by
            returned.rejection_reason = reason or ''
            borrow.return_receive_fk = None
        logger.info(f"Borrow return {returned.id} rejected by {rejected_by}: {reason}")
        return {"message": "Borrow return rejected successfully"}

    def get_borrow_receive(self, receive_id: int) -> Dict:
        receive = self.db.query(ReceiveRecord).filter(
            ReceiveRecord.id == receive_id,
            ReceiveRecord.receive_source == ReceiveSource.BORROW.value,
        ).first()
        if not receive:
            raise NotFoundError("Borrow receive details not found")
        source = receive.borrow_source
        return {
            "receiveId": receive.id,
            "receiveDate": receive.receive_date,
            "nacCode": receive.nac_code,
            "partNumber": receive.part_number,
            "itemName": receive.item_name,
            "receivedQuantity": receive.received_quantity,
            "unit": receive.unit,
            "approvalStatus": receive.approval_status,
            "receivedBy": receive.received_by,
            "imagePath": receive.image_path,
            "location": receive.location,
            "cardNumber": receive.card_number,
            "borrowSourceId": receive.borrow_source_id,
            "borrowSourceName": source.source_name if source else None,
            "borrowSourceCode": source.source_code if source else None,
            "borrowStatus": receive.borrow_status,
            "borrowDate": receive.borrow_date,
            "borrowReferenceNumber": receive.borrow_reference_number,
            "returnDate": receive.return_date,
            "returnReceiveFk": receive.return_receive_fk,
        }

    def active_borrows(self, nac_code: str) -> Dict:
        rows = (
            self.db.query(ReceiveRecord, BorrowSource)
            .outerjoin(BorrowSource, ReceiveRecord.borrow_source_id == BorrowSource.id)
            .filter(
                ReceiveRecord.nac_code == nac_code,
                ReceiveRecord.receive_source == ReceiveSource.BORROW.value,
                ReceiveRecord.borrow_status == BorrowStatus.ACTIVE.value,
                ReceiveRecord.approval_status == ApprovalStatus.APPROVED.value,
            )
            .order_by(ReceiveRecord.borrow_date.desc())
            .all()
        )
        data = [
            {
                "receiveId": receive.id,
                "receiveDate": receive.receive_date,
                "borrowDate": receive.borrow_date,
                "receivedQuantity": receive.received_quantity,
                "unit": receive.unit,
                "approvalStatus": receive.approval_status,
                "borrowStatus": receive.borrow_status,
                "borrowReferenceNumber": receive.borrow_reference_number,
                "borrowSourceName": source.source_name if source else None,
                "borrowSourceCode": source.source_code if source else None,
                "returnPending": bool(receive.return_receive_fk),
            }
            for receive, source in rows
        ]
        return {"data": data, "hasActiveBorrows": bool(data)}
