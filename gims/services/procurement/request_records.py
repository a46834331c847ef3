"""
Request Record Service
Line level maintenance of request_details rows
"""
from typing import Dict, Optional
from decimal import Decimal
from sqlalchemy.orm import Session
from sqlalchemy import func, or_, select

from gims.core.database import transaction
from gims.core.exceptions import NotFoundError, BusinessRuleError
from gims.core.logging import get_logger
from gims.models import RequestRecord, ReceiveRecord, PredictionMetrics
from gims.schemas.request import RequestRecordCreate, RequestRecordUpdate
from gims.schemas.common import to_dict, total_pages
from gims.services.business_logic import (
    ApprovalStatus, receive_status_label, format_quantity, to_decimal
)
from gims.services.file_storage import FileStorageService

logger = get_logger("request_records")

EDITABLE_FIELDS = (
    "request_number", "nac_code", "request_date", "part_number", "item_name", "unit",
    "requested_quantity", "current_balance", "previous_rate", "equipment_number",
    "image_path", "specifications", "remarks", "requested_by", "requested_by_email",
)


def received_total(db: Session, request_id: int, statuses=(ApprovalStatus.APPROVED.value,)) -> Decimal:
    """Sum of received quantities linked to a request, filtered by approval status"""
    total = (
        db.query(func.coalesce(func.sum(ReceiveRecord.received_quantity), 0))
        .filter(ReceiveRecord.request_fk == request_id, ReceiveRecord.approval_status.in_(statuses))
        .scalar()
    )
    return to_decimal(total)


def _quantity_subquery(statuses):
    return (
        select(func.coalesce(func.sum(ReceiveRecord.received_quantity), 0))
        .where(ReceiveRecord.request_fk == RequestRecord.id, ReceiveRecord.approval_status.in_(statuses))
        .correlate(RequestRecord)
        .scalar_subquery()
    )


class RequestRecordService:
    """
    Request record maintenance

    A record linked to approved receives keeps ``requested_quantity`` at or
    above what has been received and cannot be deleted.
    """

    def __init__(self, db: Session, storage: Optional[FileStorageService] = None):
        self.db = db
        self.storage = storage or FileStorageService()

    def list_records(
        self,
        universal: Optional[str] = None,
        equipment_number: Optional[str] = None,
        part_number: Optional[str] = None,
        status: Optional[str] = None,
        requested_by: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Dict:
        approved = _quantity_subquery((ApprovalStatus.APPROVED.value,)).label("total_approved")
        pending_approved = _quantity_subquery(
            (ApprovalStatus.PENDING.value, ApprovalStatus.APPROVED.value)
        ).label("total_pending_approved")

        query = self.db.query(RequestRecord, PredictionMetrics, approved, pending_approved).outerjoin(
            PredictionMetrics, PredictionMetrics.nac_code == RequestRecord.nac_code
        )
        if universal:
            term = f"%{universal.strip()}%"
            query = query.filter(or_(
                RequestRecord.request_number.ilike(term),
                RequestRecord.nac_code.ilike(term),
                RequestRecord.item_name.ilike(term),
                RequestRecord.part_number.ilike(term),
                RequestRecord.equipment_number.ilike(term),
            ))
        if equipment_number:
            query = query.filter(RequestRecord.equipment_number.ilike(f"%{equipment_number}%"))
        if part_number:
            query = query.filter(RequestRecord.part_number.ilike(f"%{part_number}%"))
        if status and status != "all":
            query = query.filter(RequestRecord.approval_status == status)
        if requested_by and requested_by != "all":
            query = query.filter(RequestRecord.requested_by.ilike(f"%{requested_by}%"))

        total = query.count()
        rows = (
            query.order_by(RequestRecord.created_at.desc(), RequestRecord.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )

        data = []
        for record, metrics, total_approved, total_pending_approved in rows:
            item = to_dict(record)
            item["total_approved_quantity"] = to_decimal(total_approved)
            item["total_pending_quantity"] = to_decimal(total_pending_approved) - to_decimal(total_approved)
            item["receive_status_label"] = receive_status_label(record.requested_quantity, total_approved)
            item["prediction_summary"] = _prediction_summary(metrics)
            data.append(item)

        return {
            "data": data,
            "totalCount": total,
            "totalPages": total_pages(total, page_size),
            "currentPage": page,
            "pageSize": page_size,
        }

    def filter_options(self) -> Dict:
        statuses = [s for (s,) in self.db.query(RequestRecord.approval_status).distinct().order_by(RequestRecord.approval_status)]
        requesters = [r for (r,) in self.db.query(RequestRecord.requested_by).distinct().order_by(RequestRecord.requested_by) if r]
        return {"statuses": statuses, "requestedBy": requesters}

    def get_record(self, record_id: int) -> RequestRecord:
        record = self.db.query(RequestRecord).filter(RequestRecord.id == record_id).first()
        if not record:
            raise NotFoundError("Request record not found")
        return record

    def create_record(self, data: RequestRecordCreate) -> RequestRecord:
        values = data.model_dump(include=set(EDITABLE_FIELDS))
        status = data.approval_status if data.approval_status in ApprovalStatus._value2member_map_ else None
        record = RequestRecord(
            **values,
            approval_status=status or ApprovalStatus.PENDING.value,
            is_received=False,
        )
        with transaction(self.db):
            self.db.add(record)
        self.db.refresh(record)
        logger.info(f"Request record {record.id} created for {record.request_number}/{record.nac_code}")
        return record

    def update_record(self, record_id: int, data: RequestRecordUpdate) -> RequestRecord:
        record = self.get_record(record_id)

        received = self.received_quantity(record)
        if received > 0 and data.requested_quantity < received:
            logger.warning(
                f"Request record {record_id}: quantity {format_quantity(data.requested_quantity)} "
                f"below received {format_quantity(received)}"
            )
            raise BusinessRuleError(
                "Requested quantity cannot be less than received quantity. "
                f"Received quantity: {format_quantity(received)}"
            )

        old_image = record.image_path
        with transaction(self.db):
            for field in EDITABLE_FIELDS:
                setattr(record, field, getattr(data, field))
        self.db.refresh(record)
        logger.info(f"Request record {record_id} updated")

        if data.image_path and old_image and data.image_path != old_image:
            self.storage.delete_public_path(old_image)
        return record

    def delete_record(self, record_id: int) -> None:
        record = self.get_record(record_id)
        if record.is_received and (record.receive_fk or 0) > 0:
            raise BusinessRuleError("Cannot delete request that has already been received")

        with transaction(self.db):
            # Receives outlive the request, their link is cleared
            self.db.query(ReceiveRecord).filter(ReceiveRecord.request_fk == record_id).update(
                {ReceiveRecord.request_fk: None}, synchronize_session=False
            )
            self.db.delete(record)
        logger.info(f"Request record {record_id} deleted")

    def received_quantity(self, record: RequestRecord) -> Decimal:
        """Quantity already received against a record"""
        total = received_total(self.db, record.id)
        if total == 0 and record.is_received and record.receive_fk:
            receive = self.db.query(ReceiveRecord).filter(ReceiveRecord.id == record.receive_fk).first()
            if receive:
                total = to_decimal(receive.received_quantity)
        return total


def _prediction_summary(metrics: Optional[PredictionMetrics]) -> Optional[Dict]:
    if metrics is None or metrics.weighted_average_days is None:
        return None
    return {
        "predicted_days": float(metrics.weighted_average_days),
        "range_lower_days": float(metrics.percentile_10_days) if metrics.percentile_10_days is not None else None,
        "range_upper_days": float(metrics.percentile_90_days) if metrics.percentile_90_days is not None else None,
        "confidence": metrics.confidence_level,
        "sample_size": metrics.sample_size or 0,
        "calculated_at": metrics.calculated_at,
    }
