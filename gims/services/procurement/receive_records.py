"""
Receive Records Service
Browsing and correcting receive rows after the fact
"""
from typing import Dict, Optional
from decimal import Decimal
from sqlalchemy.orm import Session
from sqlalchemy import or_

from gims.core.database import transaction
from gims.core.exceptions import BusinessRuleError, ValidationError
from gims.core.logging import get_logger
from gims.models import ReceiveRecord, RequestRecord, PredictionMetrics
from gims.schemas.receive import ReceiveRecordUpdate
from gims.schemas.common import to_dict, total_pages
from gims.services.business_logic import ApprovalStatus, ReceiveSource, format_quantity, to_decimal
from gims.services.file_storage import FileStorageService
from gims.services.inventory.stock_master import StockMasterService
from .receive import ReceiveService

logger = get_logger("receive_records")


def request_number_for(receive: ReceiveRecord) -> Optional[str]:
    if receive.receive_source == ReceiveSource.TENDER.value:
        return f"TENDER-{receive.tender_reference_number}"
    return receive.request.request_number if receive.request is not None else None


class ReceiveRecordService:

    def __init__(self, db: Session, storage: Optional[FileStorageService] = None):
        self.db = db
        self.stock = StockMasterService(db)
        self.receives = ReceiveService(db)
        self.storage = storage or FileStorageService()

    def list_records(
        self,
        universal: Optional[str] = None,
        equipment_number: Optional[str] = None,
        part_number: Optional[str] = None,
        status: Optional[str] = None,
        received_by: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Dict:
        query = (
            self.db.query(ReceiveRecord, PredictionMetrics)
            .outerjoin(RequestRecord, RequestRecord.id == ReceiveRecord.request_fk)
            .outerjoin(PredictionMetrics, PredictionMetrics.nac_code == ReceiveRecord.nac_code)
        )
        if universal and universal.strip():
            term = f"%{universal.strip()}%"
            query = query.filter(or_(
                ReceiveRecord.nac_code.ilike(term),
                ReceiveRecord.item_name.ilike(term),
                ReceiveRecord.part_number.ilike(term),
                RequestRecord.request_number.ilike(term),
                ReceiveRecord.tender_reference_number.ilike(term),
            ))
        if equipment_number and equipment_number.strip():
            query = query.filter(ReceiveRecord.equipment_number.ilike(f"%{equipment_number.strip()}%"))
        if part_number and part_number.strip():
            query = query.filter(ReceiveRecord.part_number.ilike(f"%{part_number.strip()}%"))
        if status and status != "all":
            query = query.filter(ReceiveRecord.approval_status == status)
        if received_by and received_by != "all":
            query = query.filter(ReceiveRecord.received_by == received_by)

        total = query.count()
        rows = (
            query.order_by(ReceiveRecord.receive_date.desc(), ReceiveRecord.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        data = []
        for receive, metrics in rows:
            row = to_dict(receive)
            row["receiveNumber"] = f"REC-{receive.id}"
            row["requestNumber"] = request_number_for(receive)
            row["predictionSummary"] = {
                "predictedDays": metrics.weighted_average_days,
                "confidenceLevel": metrics.confidence_level,
                "sampleSize": metrics.sample_size,
            } if metrics is not None else None
            data.append(row)
        return {
            "data": data,
            "totalCount": total,
            "totalPages": total_pages(total, page_size),
            "currentPage": page,
            "pageSize": page_size,
        }

    def get_record(self, receive_id: int) -> Dict:
        result = self.receives.get_receive(receive_id)
        receive = self.receives.get_receive_record(receive_id)
        result["receiveNumber"] = f"REC-{receive.id}"
        result["requestNumber"] = request_number_for(receive)
        return result

    def update_record(self, receive_id: int, data: ReceiveRecordUpdate) -> ReceiveRecord:
        """
        Partial correction of a receive

        A quantity change on an approved receive moves the stock balance by
        the difference.
        """
        receive = self.receives.get_receive_record(receive_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            raise ValidationError("No fields to update")

        request = receive.request
        new_quantity = changes.get("received_quantity")
        if new_quantity is not None:
            if request is not None and receive.receive_source == ReceiveSource.PURCHASE.value \
                    and new_quantity > to_decimal(request.requested_quantity):
                raise BusinessRuleError("Received quantity cannot be more than the requested quantity")
            if new_quantity < to_decimal(receive.transferred_quantity):
                raise BusinessRuleError(
                    f"Received quantity cannot be less than the quantity already transferred "
                    f"({format_quantity(receive.transferred_quantity)})"
                )

        old_image = receive.image_path
        with transaction(self.db):
            if new_quantity is not None and receive.approval_status == ApprovalStatus.APPROVED.value:
                self._adjust_stock(receive, new_quantity - to_decimal(receive.received_quantity))
            for field, value in changes.items():
                setattr(receive, field, value.strip() if isinstance(value, str) else value)
            self.db.flush()
            if request is not None and receive.approval_status == ApprovalStatus.APPROVED.value \
                    and receive.receive_source == ReceiveSource.PURCHASE.value:
                self.receives.sync_request(request)
        self.db.refresh(receive)
        logger.info(f"Receive record {receive_id} updated: {', '.join(changes)}")

        if receive.image_path and old_image and receive.image_path != old_image:
            self.storage.delete_public_path(old_image)
        return receive

    def _adjust_stock(self, receive: ReceiveRecord, difference: Decimal):
        if difference == 0:
            return
        stock = self.stock.get_item_by_code(receive.nac_code)
        balance = to_decimal(stock.current_balance) if stock is not None else Decimal('0')
        if balance + difference < 0:
            raise BusinessRuleError(
                f"Cannot update quantity. This would result in negative stock balance. "
                f"Current balance: {format_quantity(balance)}"
            )
        if difference > 0:
            self.stock.apply_receipt(receive.nac_code, difference)
        else:
            self.stock.deduct(receive.nac_code, -difference)

    def delete_record(self, receive_id: int) -> None:
        receive = self.receives.get_receive_record(receive_id)
        if receive.rrp_fk:
            raise BusinessRuleError("RRP has already been made for this receive. This cannot be deleted.")
        if receive.receive_source == ReceiveSource.BORROW.value and receive.return_receive_fk:
            raise BusinessRuleError("Borrowed item has a return recorded. This cannot be deleted.")
        if receive.receive_source == ReceiveSource.BORROW_RETURN.value \
                and receive.approval_status == ApprovalStatus.APPROVED.value:
            raise BusinessRuleError("Approved borrow returns cannot be deleted.")

        request = receive.request
        with transaction(self.db):
            if receive.approval_status == ApprovalStatus.APPROVED.value:
                quantity, _ = self.receives.stock_quantity(receive)
                self.stock.deduct(receive.nac_code, quantity)
            if receive.receive_source == ReceiveSource.BORROW_RETURN.value:
                self.db.query(ReceiveRecord).filter(ReceiveRecord.return_receive_fk == receive.id).update(
                    {ReceiveRecord.return_receive_fk: None}, synchronize_session=False
                )
            self.db.delete(receive)
            self.db.flush()
            if request is not None:
                self.receives.sync_request(request)

        logger.info(f"Receive record {receive_id} deleted")

    def filters(self) -> Dict:
        statuses = self.db.query(ReceiveRecord.approval_status).distinct().all()
        received_by = self.db.query(ReceiveRecord.received_by).distinct().all()
        return {
            "statuses": sorted(row[0] for row in statuses if row[0]),
            "receivedBy": sorted(row[0] for row in received_by if row[0]),
        }
