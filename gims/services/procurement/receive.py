"""
Receive Service

Purchase receives against approved requests, and the approval step shared
by every receive source. Approving a receive moves stock in the same unit
of work that flips its status.
"""
from typing import Dict, List, Optional, Tuple
from decimal import Decimal
from datetime import date
from sqlalchemy.orm import Session
from sqlalchemy import func, or_, select

from gims.core.database import transaction, upsert
from gims.core.exceptions import NotFoundError, ConflictError, BusinessRuleError
from gims.core.logging import get_logger
from gims.models import ReceiveRecord, RequestRecord, StockItem, UnitConversion
from gims.schemas.receive import ReceiveCreate, ReceiveUpdate, UnitConversionSave
from gims.schemas.common import to_dict, total_pages
from gims.services.business_logic import (
    ApprovalStatus, ReceiveSource, format_quantity, round_quantity, to_decimal
)
from gims.services.inventory.stock_master import StockMasterService
from gims.services.procurement.borrow_receive import BorrowReceiveService
from gims.services.prediction import PredictionService
from gims.services.procurement.request_records import received_total

logger = get_logger("receive")

OPEN_STATES = (ApprovalStatus.PENDING.value, ApprovalStatus.APPROVED.value)


def remaining_for_request(db: Session, request: RequestRecord, exclude_receive_id: Optional[int] = None) -> Decimal:
    """Requested quantity not yet covered by pending or approved receives"""
    query = db.query(func.coalesce(func.sum(ReceiveRecord.received_quantity), 0)).filter(
        ReceiveRecord.request_fk == request.id,
        ReceiveRecord.approval_status.in_(OPEN_STATES),
    )
    if exclude_receive_id is not None:
        query = query.filter(ReceiveRecord.id != exclude_receive_id)
    return to_decimal(request.requested_quantity) - to_decimal(query.scalar())


def check_receive_quantity(db: Session, request: RequestRecord, quantity: Decimal):
    if quantity is None or quantity <= 0:
        raise BusinessRuleError("Invalid receive quantity. Quantity must be a positive number.")
    remaining = remaining_for_request(db, request)
    if quantity > remaining:
        logger.warning(f"Quantity {quantity} exceeds remaining {remaining} for request {request.id}")
        raise BusinessRuleError(
            f"Cannot receive {format_quantity(quantity)} units. "
            f"Only {format_quantity(remaining)} units remaining for this request."
        )


class ReceiveService:

    def __init__(self, db: Session):
        self.db = db
        self.stock = StockMasterService(db)

    # Creation

    def create_receive(self, data: ReceiveCreate) -> Dict:
        receive_ids: List[int] = []
        with transaction(self.db):
            for item in data.items:
                request = self._request(item.request_id)
                nac_code = (item.nac_code or '').strip()
                if not nac_code or nac_code == "N/A":
                    nac_code = (request.nac_code or '').strip()
                if not nac_code:
                    raise BusinessRuleError(
                        f"NAC Code is required for item: {item.item_name}. "
                        "Please ensure the request has a valid NAC Code."
                    )

                duplicate = self.db.query(ReceiveRecord.id).filter(
                    ReceiveRecord.request_fk == request.id,
                    ReceiveRecord.nac_code == nac_code,
                    ReceiveRecord.receive_date == data.receive_date,
                ).first()
                if duplicate:
                    raise BusinessRuleError(
                        f"This item ({nac_code}) has already been received for request "
                        f"{request.request_number} on {data.receive_date.isoformat()}. "
                        "Please select a different date or item."
                    )
                check_receive_quantity(self.db, request, item.receive_quantity)

                receive = ReceiveRecord(
                    receive_date=data.receive_date,
                    request_fk=request.id,
                    nac_code=nac_code,
                    part_number=item.part_number or request.part_number,
                    item_name=item.item_name or request.item_name,
                    received_quantity=item.receive_quantity,
                    unit=item.unit or request.unit,
                    equipment_number=item.equipment_number,
                    location=item.location or None,
                    card_number=item.card_number or None,
                    image_path=item.image_path,
                    received_by=data.received_by,
                    approval_status=ApprovalStatus.PENDING.value,
                    receive_source=ReceiveSource.PURCHASE.value,
                )
                self.db.add(receive)
                self.db.flush()
                receive_ids.append(receive.id)
                logger.info(f"Created receive {receive.id} for request {request.request_number} by {data.received_by}")

        logger.info(f"Created receive with {len(receive_ids)} items by {data.received_by}")
        return {
            "message": "Receive created successfully",
            "receiveDate": data.receive_date.isoformat(),
            "receiveIds": receive_ids,
        }

    def update_receive(self, receive_id: int, data: ReceiveUpdate) -> Dict:
        receive = self.get_receive_record(receive_id)
        if receive.approval_status == ApprovalStatus.REJECTED.value:
            raise BusinessRuleError("Rejected receives cannot be edited")
        if data.received_quantity is None:
            raise BusinessRuleError("Valid received quantity is required")

        request = receive.request
        if request is not None and receive.receive_source != ReceiveSource.BORROW_RETURN.value:
            max_allowed = remaining_for_request(self.db, request, exclude_receive_id=receive.id)
            if data.received_quantity > max_allowed:
                raise BusinessRuleError(f"Quantity exceeds remaining ({format_quantity(max_allowed)})")

        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        nac_code = (changes.pop("nac_code", '') or '').strip()
        with transaction(self.db):
            for field, value in changes.items():
                setattr(receive, field, value.strip() if isinstance(value, str) else value)
            receive.nac_code = nac_code or receive.nac_code or (request.nac_code if request else '')
            self.db.flush()
            if receive.approval_status == ApprovalStatus.APPROVED.value and request is not None:
                self.sync_request(request)

        logger.info(f"Updated receive {receive_id}: quantity {format_quantity(receive.received_quantity)}")
        return {
            "message": "Receive updated successfully",
            "receiveId": receive_id,
            "receivedQuantity": receive.received_quantity,
            "nacCode": receive.nac_code or None,
        }

    # Approval

    def approve_receive(self, receive_id: int, approved_by: str, close_request: bool = False) -> Dict:
        """
        Approve a pending receive and move its quantity into stock

        ``close_request`` additionally marks the linked request received
        regardless of the approved total.
        """
        receive = self._pending_receive(receive_id)
        if receive.receive_source == ReceiveSource.BORROW_RETURN.value:
            return BorrowReceiveService(self.db).approve_return(receive, approved_by)

        with transaction(self.db):
            receive.approval_status = ApprovalStatus.APPROVED.value
            receive.approved_by = approved_by
            quantity, unit = self.stock_quantity(receive)
            request = receive.request
            self.stock.apply_receipt(
                receive.nac_code,
                quantity,
                item_name=receive.item_name,
                part_number=receive.part_number,
                equipment_number=receive.equipment_number or (request.equipment_number if request else ''),
                unit=unit,
                location=receive.location,
                card_number=receive.card_number,
                image_url=receive.image_path,
            )
            self.db.flush()
            if request is not None and receive.receive_source == ReceiveSource.PURCHASE.value:
                if close_request:
                    request.is_received = True
                    request.receive_fk = receive.id
                else:
                    self.sync_request(request)

        logger.info(f"Approved receive {receive_id} by {approved_by}{' and closed request' if close_request else ''}")
        if receive.nac_code:
            PredictionService(self.db).refresh_quietly(receive.nac_code)

        if close_request:
            return {"message": "Receive approved, stock updated and request force-closed successfully"}
        return {"message": "Receive approved and stock updated successfully"}

    def reject_receive(self, receive_id: int, rejected_by: str, reason: str = '') -> Dict:
        receive = self._pending_receive(receive_id)
        if receive.receive_source == ReceiveSource.BORROW_RETURN.value:
            return BorrowReceiveService(self.db).reject_return(receive, rejected_by, reason)

        with transaction(self.db):
            receive.approval_status = ApprovalStatus.REJECTED.value
            receive.rejected_by = rejected_by
            receive.rejection_reason = reason or ''
            self.db.flush()
            if receive.request is not None and receive.receive_source == ReceiveSource.PURCHASE.value:
                self.sync_request(receive.request)

        logger.info(f"Rejected receive {receive_id} by {rejected_by}: {reason}")
        return {"message": "Receive rejected successfully"}

    def stock_quantity(self, receive: ReceiveRecord) -> Tuple[Decimal, str]:
        """Received quantity expressed in the requested unit when a conversion is known"""
        quantity = to_decimal(receive.received_quantity)
        unit = receive.unit or ''
        requested_unit = receive.request.unit if receive.request is not None else ''
        if requested_unit and unit and requested_unit != unit:
            base = self.conversion_base(receive.nac_code, requested_unit, unit)
            if base and base > 0:
                converted = round_quantity(quantity / base)
                logger.info(
                    f"Converted {format_quantity(quantity)} {unit} to "
                    f"{format_quantity(converted)} {requested_unit} for {receive.nac_code}"
                )
                return converted, requested_unit
        return quantity, unit

    def sync_request(self, request: RequestRecord):
        """Recompute is_received and receive_fk from approved receives"""
        approved = received_total(self.db, request.id)
        latest = (
            self.db.query(ReceiveRecord.id)
            .filter(
                ReceiveRecord.request_fk == request.id,
                ReceiveRecord.approval_status == ApprovalStatus.APPROVED.value,
            )
            .order_by(ReceiveRecord.id.desc())
            .first()
        )
        request.is_received = approved >= to_decimal(request.requested_quantity)
        request.receive_fk = latest[0] if latest else None
        logger.info(
            f"Request {request.id}: is_received={request.is_received}, receive_fk={request.receive_fk}, "
            f"approved_total={format_quantity(approved)}/{format_quantity(request.requested_quantity)}"
        )

    # Unit conversions

    def conversion_base(self, nac_code: str, requested_unit: str, received_unit: str) -> Optional[Decimal]:
        row = self.db.query(UnitConversion.conversion_base).filter(
            UnitConversion.nac_code == nac_code,
            UnitConversion.from_unit == requested_unit,
            UnitConversion.to_unit == received_unit,
        ).first()
        return to_decimal(row[0]) if row and row[0] is not None else None

    def save_conversion(self, data: UnitConversionSave) -> None:
        with transaction(self.db):
            upsert(
                self.db, UnitConversion,
                {
                    "nac_code": data.nac_code.strip(),
                    "from_unit": data.requested_unit.strip(),
                    "to_unit": data.received_unit.strip(),
                    "conversion_base": data.conversion_base,
                },
                index_elements=["nac_code", "from_unit", "to_unit"],
                update_fields=["conversion_base"],
            )
        logger.info(
            f"Unit conversion saved: {data.nac_code} 1 {data.requested_unit} = "
            f"{format_quantity(data.conversion_base)} {data.received_unit}"
        )

    # Queries

    def pending_receives(self) -> List[Dict]:
        rows = (
            self.db.query(ReceiveRecord, RequestRecord)
            .outerjoin(RequestRecord, ReceiveRecord.request_fk == RequestRecord.id)
            .filter(ReceiveRecord.approval_status == ApprovalStatus.PENDING.value)
            .order_by(ReceiveRecord.created_at.desc(), ReceiveRecord.id.desc())
            .all()
        )
        return [
            {
                "id": receive.id,
                "nacCode": receive.nac_code or (request.nac_code if request else ''),
                "itemName": receive.item_name,
                "partNumber": receive.part_number,
                "receivedQuantity": receive.received_quantity,
                "unit": receive.unit,
                "receiveDate": receive.receive_date,
                "equipmentNumber": receive.equipment_number or (request.equipment_number if request else ''),
                "receiveSource": receive.receive_source,
                "tenderReferenceNumber": receive.tender_reference_number,
                "requestFk": receive.request_fk,
            }
            for receive, request in rows
        ]

    def get_receive_record(self, receive_id: int) -> ReceiveRecord:
        receive = self.db.query(ReceiveRecord).filter(ReceiveRecord.id == receive_id).first()
        if not receive:
            raise NotFoundError("Receive record not found")
        return receive

    def get_receive(self, receive_id: int) -> Dict:
        receive = self.get_receive_record(receive_id)
        result = to_dict(receive)
        request = receive.request
        result["request"] = {
            "requestNumber": request.request_number,
            "requestDate": request.request_date,
            "requestedBy": request.requested_by,
            "requestedQuantity": request.requested_quantity,
            "unit": request.unit,
            "equipmentNumber": request.equipment_number,
        } if request is not None else None
        result["borrow_source_name"] = receive.borrow_source.source_name if receive.borrow_source else None
        return result

    def search_receivables(
        self,
        universal: Optional[str] = None,
        equipment_number: Optional[str] = None,
        part_number: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Dict:
        """Approved, not yet received requests grouped by request number"""
        covered = (
            select(func.coalesce(func.sum(ReceiveRecord.received_quantity), 0))
            .where(ReceiveRecord.request_fk == RequestRecord.id, ReceiveRecord.approval_status.in_(OPEN_STATES))
            .correlate(RequestRecord)
            .scalar_subquery()
        )
        query = (
            self.db.query(RequestRecord, StockItem.location, StockItem.card_number)
            .outerjoin(StockItem, StockItem.nac_code == RequestRecord.nac_code)
            .filter(
                RequestRecord.approval_status == ApprovalStatus.APPROVED.value,
                RequestRecord.is_received.is_(False),
                RequestRecord.requested_quantity > covered,
            )
        )
        if universal and universal.strip():
            term = f"%{universal.strip()}%"
            query = query.filter(or_(
                RequestRecord.request_number.ilike(term),
                RequestRecord.item_name.ilike(term),
                RequestRecord.part_number.ilike(term),
                RequestRecord.equipment_number.ilike(term),
                RequestRecord.nac_code.ilike(term),
            ))
        if equipment_number and equipment_number.strip():
            query = query.filter(RequestRecord.equipment_number.ilike(f"%{equipment_number.strip()}%"))
        if part_number and part_number.strip():
            query = query.filter(RequestRecord.part_number.ilike(f"%{part_number.strip()}%"))

        total = query.count()
        rows = (
            query.order_by(RequestRecord.request_date.desc(), RequestRecord.id)
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )

        grouped: Dict[str, Dict] = {}
        for request, location, card_number in rows:
            group = grouped.setdefault(request.request_number, {
                "requestNumber": request.request_number,
                "requestDate": request.request_date,
                "requestedBy": request.requested_by,
                "approvalStatus": request.approval_status,
                "items": [],
            })
            group["items"].append({
                "id": request.id,
                "partNumber": request.part_number,
                "itemName": request.item_name,
                "equipmentNumber": request.equipment_number,
                "requestedQuantity": request.requested_quantity,
                "remainingQuantity": remaining_for_request(self.db, request),
                "nacCode": request.nac_code,
                "unit": request.unit,
                "currentBalance": request.current_balance,
                "previousRate": request.previous_rate,
                "imageUrl": request.image_path,
                "specifications": request.specifications,
                "remarks": request.remarks,
                "location": location or '',
                "cardNumber": card_number or '',
            })

        return {
            "data": list(grouped.values()),
            "pagination": {
                "currentPage": page,
                "pageSize": page_size,
                "totalCount": total,
                "totalPages": total_pages(total, page_size),
            },
        }

    def _request(self, request_id: Optional[int]) -> RequestRecord:
        request = self.db.query(RequestRecord).filter(RequestRecord.id == request_id).first() if request_id else None
        if request is None:
            logger.warning(f"Receive refers to unknown request {request_id}")
            raise NotFoundError(f"Request ID {request_id} not found")
        return request

    def _pending_receive(self, receive_id: int) -> ReceiveRecord:
        receive = self.get_receive_record(receive_id)
        if receive.approval_status != ApprovalStatus.PENDING.value:
            raise ConflictError(f"Receive is already {receive.approval_status.lower()}")
        return receive
