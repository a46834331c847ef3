"""
Request Workflow Service
Multi-line request submission, numbering and approval
"""
from typing import Dict, List, Optional, Union
from datetime import date
import re
from sqlalchemy.orm import Session
from sqlalchemy import func

from gims.core.database import transaction
from gims.core.exceptions import (
    NotFoundError, ConflictError, BusinessRuleError, InsufficientPermissionsError
)
from gims.core.logging import get_logger
from gims.core.security import UserContext, Permissions
from gims.models import RequestRecord, ReceiveRecord, StockItem, RRPLine
from gims.schemas.request import RequestSubmission
from gims.services.business_logic import ApprovalStatus, format_quantity, round_currency, to_decimal
from gims.services.settings.app_config import AppConfigService

logger = get_logger("request")

REQUEST_NUMBER_PATTERN = re.compile(r"^(.+?)Y(\d+)T(\d+)F(\d+)RN(\d+)$")
CLOSED_STATES = (ApprovalStatus.CLOSED.value, ApprovalStatus.REJECTED.value)


def compute_next_request_number(last_number: Optional[str], section_code: str, current_fy: str) -> str:
    """
    Next number in the ``<section>Y<yy>T<n>F<yy>RN<m>`` sequence

    Both counters of a well formed last number are incremented; otherwise the
    number is rebuilt from the section code and fiscal year.
    """
    if last_number:
        match = REQUEST_NUMBER_PATTERN.match(last_number)
        if match:
            fy = current_fy[2:4]
            return f"{section_code}Y{fy}T{int(match.group(3)) + 1}F{fy}RN{int(match.group(5)) + 1}"

    parts = (current_fy or "").split("/")
    if len(parts) == 2:
        fy_front, fy_back = parts[0][-2:], parts[1]
    else:
        fy_front = fy_back = (current_fy or "")[-2:]

    seq = 1
    if last_number:
        rn = re.search(r"RN(\d+)", last_number)
        if rn:
            seq = int(rn.group(1)) + 1
    return f"{section_code}Y{fy_back}T{seq}F{fy_front}RN{seq}"


class RequestWorkflowService:

    def __init__(self, db: Session):
        self.db = db
        self.config = AppConfigService(db)

    # Submission

    def create_request(self, data: RequestSubmission, user: UserContext) -> Dict:
        number = data.request_number.strip()

        if self._open_lines(number).first():
            logger.warning(f"Request number already exists: {number} by {data.requested_by}")
            raise ConflictError(
                f"Request number {number} already exists. Please use a different request number."
            )

        if not user.has(Permissions.CREATE_NEW_REQUEST_NUMBER):
            expected = self.next_request_number()
            if number != expected:
                logger.warning(f"Custom request number {number} refused for {user.username}, expected {expected}")
                raise InsufficientPermissionsError(
                    "You are not allowed to create custom request numbers. Contact administrator."
                )

        self._validate_request_date(data.request_date, number)

        with transaction(self.db):
            for item in data.items:
                stock = self.db.query(StockItem).filter(StockItem.nac_code == item.nac_code).first()
                if item.nac_code == "N/A":
                    balance, unit = "0", item.unit or "N/A"
                elif stock is not None:
                    balance, unit = format_quantity(stock.current_balance), stock.unit or item.unit or "N/A"
                else:
                    balance, unit = "N/A", item.unit or "N/A"

                self.db.add(RequestRecord(
                    request_number=number,
                    request_date=data.request_date,
                    nac_code=item.nac_code,
                    part_number=item.part_number,
                    item_name=item.item_name,
                    unit=unit,
                    requested_quantity=item.request_quantity,
                    current_balance=balance,
                    previous_rate=str(self.previous_rate(item.nac_code)),
                    equipment_number=item.equipment_number,
                    image_path=item.image_path,
                    specifications=item.specifications,
                    remarks=data.remarks,
                    requested_by=data.requested_by,
                    requested_by_email=item.requested_by_email,
                    approval_status=ApprovalStatus.PENDING.value,
                    is_received=False,
                ))

        logger.info(f"Created request {number} with {len(data.items)} items by {data.requested_by}")
        return {
            "message": "Request created successfully",
            "requestNumber": number,
            "requestDate": data.request_date.isoformat(),
        }

    def previous_rate(self, nac_code: str) -> Union[str, float]:
        """Unit cost of the latest costed receive of a NAC code, or N/A"""
        row = (
            self.db.query(RRPLine.total_amount, ReceiveRecord.received_quantity)
            .join(ReceiveRecord, RRPLine.receive_fk == ReceiveRecord.id)
            .filter(ReceiveRecord.nac_code == nac_code, ReceiveRecord.rrp_fk.isnot(None))
            .order_by(ReceiveRecord.receive_date.desc(), RRPLine.id.desc())
            .first()
        )
        if row and to_decimal(row.received_quantity) > 0:
            return float(round_currency(to_decimal(row.total_amount) / to_decimal(row.received_quantity)))
        return "N/A"

    def next_request_number(self) -> str:
        last = (
            self.db.query(RequestRecord.request_number)
            .group_by(RequestRecord.request_number)
            .order_by(func.max(RequestRecord.request_date).desc(), RequestRecord.request_number.desc())
            .first()
        )
        return compute_next_request_number(
            last[0] if last else None, self.config.section_code, self.config.current_fy
        )

    def _validate_request_date(self, request_date: date, exclude_number: Optional[str] = None):
        query = self.db.query(RequestRecord.request_date).filter(
            RequestRecord.approval_status.notin_(CLOSED_STATES)
        )
        if exclude_number:
            query = query.filter(RequestRecord.request_number != exclude_number)
        last = query.order_by(RequestRecord.request_date.desc(), RequestRecord.id.desc()).first()
        if last and request_date < last[0]:
            logger.warning(f"Request date {request_date} before previous request date {last[0]}")
            raise BusinessRuleError(
                f"Request date cannot be before the previous request date ({last[0].isoformat()})."
            )

    # Transitions

    def approve_request(self, request_number: str, approved_by: str) -> Dict:
        lines = self._pending(request_number)
        with transaction(self.db):
            for line in lines:
                line.approval_status = ApprovalStatus.APPROVED.value
                line.approved_by = approved_by
        logger.info(f"Request {request_number} approved by {approved_by}")
        return {"message": "Request approved successfully", "requestNumber": request_number}

    def reject_request(self, request_number: str, rejected_by: str, reason: str) -> Dict:
        lines = self._pending(request_number)
        with transaction(self.db):
            for line in lines:
                line.approval_status = ApprovalStatus.REJECTED.value
                line.rejected_by = rejected_by
                line.rejection_reason = reason
        logger.info(f"Request {request_number} rejected by {rejected_by}: {reason}")
        return {"message": "Request rejected successfully", "requestNumber": request_number}

    def force_close(self, request_number: str, closed_by: str) -> Dict:
        all_lines = self._lines(request_number)
        lines = [line for line in all_lines if line.approval_status not in CLOSED_STATES]
        if not lines:
            if all_lines[-1].approval_status == ApprovalStatus.REJECTED.value:
                raise BusinessRuleError("Cannot close a rejected request")
            raise ConflictError("Already Closed")

        requested = sum((to_decimal(line.requested_quantity) for line in lines), to_decimal(0))
        approved = to_decimal(
            self.db.query(func.coalesce(func.sum(ReceiveRecord.received_quantity), 0))
            .filter(
                ReceiveRecord.request_fk.in_([line.id for line in lines]),
                ReceiveRecord.approval_status == ApprovalStatus.APPROVED.value,
            )
            .scalar()
        )
        if requested > 0 and approved >= requested:
            logger.warning(f"Request {request_number} already fully received")
            raise ConflictError("Already Closed")

        with transaction(self.db):
            for line in lines:
                line.approval_status = ApprovalStatus.CLOSED.value
                line.rejected_by = closed_by
                line.rejection_reason = "Force closed by administrator"
        logger.info(f"Request {request_number} force closed by {closed_by}")
        return {"message": "Request force closed successfully", "requestNumber": request_number}

    # Queries

    def pending_requests(self) -> List[Dict]:
        rows = (
            self.db.query(RequestRecord)
            .filter(RequestRecord.approval_status == ApprovalStatus.PENDING.value)
            .order_by(RequestRecord.request_date, RequestRecord.id)
            .all()
        )
        return [
            {
                "requestId": r.id,
                "nacCode": r.nac_code,
                "requestNumber": r.request_number,
                "requestDate": r.request_date,
                "requestedBy": r.requested_by,
            }
            for r in rows
        ]

    def request_items(self, request_number: str) -> List[RequestRecord]:
        lines = self.db.query(RequestRecord).filter(RequestRecord.request_number == request_number).order_by(RequestRecord.id).all()
        if not lines:
            raise NotFoundError("Request items not found")
        return lines

    def last_request_info(self) -> Dict:
        row = (
            self.db.query(
                RequestRecord.request_number,
                RequestRecord.request_date,
                func.count(RequestRecord.id).label("number_of_items"),
            )
            .group_by(RequestRecord.request_number, RequestRecord.request_date)
            .order_by(RequestRecord.request_date.desc(), RequestRecord.request_number.desc())
            .first()
        )
        if not row:
            raise NotFoundError("No requests found")
        return {
            "requestNumber": row.request_number,
            "requestDate": row.request_date,
            "numberOfItems": row.number_of_items,
        }

    def check_duplicate(self, nac_code: str) -> Dict:
        duplicate = (
            self.db.query(RequestRecord.id)
            .filter(
                RequestRecord.nac_code == nac_code,
                RequestRecord.is_received.is_(False),
                RequestRecord.approval_status.notin_(CLOSED_STATES),
            )
            .first()
            is not None
        )
        logger.info(f"Duplicate check for {nac_code}: {duplicate}")
        return {
            "isDuplicate": duplicate,
            "message": "This item is already requested and pending approval" if duplicate
            else "Item is available for request",
        }

    def _open_lines(self, request_number: str):
        return self.db.query(RequestRecord.id).filter(
            RequestRecord.request_number == request_number,
            RequestRecord.approval_status.notin_(CLOSED_STATES),
        )

    def _lines(self, request_number: str) -> List[RequestRecord]:
        lines = (
            self.db.query(RequestRecord)
            .filter(RequestRecord.request_number == request_number)
            .order_by(RequestRecord.id)
            .all()
        )
        if not lines:
            raise NotFoundError("Request not found")
        return lines

    def _pending(self, request_number: str) -> List[RequestRecord]:
        """Pending lines of a request; an earlier rejected use of the number is ignored"""
        lines = [line for line in self._lines(request_number)
                 if line.approval_status == ApprovalStatus.PENDING.value]
        if not lines:
            raise ConflictError(f"Request {request_number} is not pending")
        return lines
