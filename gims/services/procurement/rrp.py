"""
RRP Service

Receive Reconciliation/Purchase documents. An RRP header groups costed lines,
one per receive; numbering follows ``<L|F><nnn>T<k>`` where the T counter
increments each time a base number is reused.
"""
from typing import Dict, List, Optional
from datetime import date
from decimal import Decimal
import re
from sqlalchemy.orm import Session
from sqlalchemy import or_, func

from gims.core.config import settings
from gims.core.database import transaction
from gims.core.exceptions import GIMSException, NotFoundError, BusinessRuleError, ConflictError
from gims.core.logging import get_logger
from gims.models import RRPHeader, RRPLine, ReceiveRecord, RequestRecord
from gims.schemas.rrp import RRPCreate
from gims.schemas.common import total_pages
from gims.services.business_logic import ApprovalStatus, calculate_rrp_line_costs, to_decimal
from gims.services.settings.app_config import AppConfigService

logger = get_logger("rrp")

RRP_NUMBER_PATTERN = re.compile(r"^[LF]\d{3}(T\d+)?$")
EXCLUDED_FROM_SEARCH = ("TENDER-FREE", "Code Transfer")


def split_rrp_number(rrp_number: str):
    """``L001T3`` -> ("L001", 3); numbers without a T counter give 0"""
    base, _, counter = rrp_number.partition("T")
    return base, int(counter) if counter.isdigit() else 0


class RRPService:

    def __init__(self, db: Session):
        self.db = db
        self.config = AppConfigService(db)

    # Creation

    def create_rrp(self, data: RRPCreate) -> Dict:
        current_fy = self.config.current_fy
        if not current_fy:
            logger.error("Failed to create RRP - Current FY configuration not found")
            raise GIMSException("Current FY configuration not found")

        requested = data.rrp_number.strip()
        foreign = data.type == "foreign"
        forex_rate = data.forex_rate if foreign and data.forex_rate else Decimal("1")

        with transaction(self.db):
            if "T" in requested:
                existing = self.db.query(RRPHeader).filter(RRPHeader.rrp_number == requested).first()
                if existing is not None:
                    if existing.approval_status != ApprovalStatus.REJECTED.value:
                        logger.warning(f"Failed to create RRP - Number already exists: {requested}")
                        raise BusinessRuleError("RRP number already exists and is not rejected")
                    self._release_receives(existing)
                    self.db.delete(existing)
                    self.db.flush()
                    logger.info(f"Deleted existing rejected RRP: {requested}")
                rrp_number = requested
            else:
                rrp_number = f"{requested}T{self._last_counter(requested) + 1}"
                logger.info(f"Generated new RRP number: {rrp_number}")

            receives = [self._receive(item.receive_id) for item in data.items]
            costs = calculate_rrp_line_costs(
                prices=[item.price for item in data.items],
                customs_charges=[item.customs_charge for item in data.items],
                vat_flags=[item.vat_status for item in data.items],
                freight_charge=data.freight_charge,
                custom_service_charge=data.custom_service_charge,
                vat_rate=data.vat_rate,
                forex_rate=forex_rate,
            )

            header = RRPHeader(
                rrp_number=rrp_number,
                rrp_type=data.type,
                supplier_name=data.supplier.strip(),
                rrp_date=data.rrp_date,
                currency=data.currency if foreign else settings.DEFAULT_CURRENCY,
                forex_rate=forex_rate,
                invoice_number=data.invoice_number,
                invoice_date=data.invoice_date,
                po_number=data.po_number or None,
                airway_bill_number=data.airway_bill_number or None,
                customs_number=data.customs_number or None,
                customs_date=data.customs_date,
                freight_charge=data.freight_charge,
                custom_service_charge=data.custom_service_charge,
                vat_rate=data.vat_rate,
                inspection_details={"inspection_user": data.inspection_user or ''},
                current_fy=current_fy,
                approval_status=ApprovalStatus.PENDING.value,
                created_by=data.created_by,
            )
            self.db.add(header)
            self.db.flush()

            for item, receive, cost in zip(data.items, receives, costs):
                line = RRPLine(
                    rrp_id=header.id,
                    receive_fk=receive.id,
                    item_price=item.price,
                    customs_charge=cost.customs_charge,
                    customs_service_charge=cost.customs_service_charge,
                    freight_charge=cost.freight_charge,
                    vat_percentage=data.vat_rate if item.vat_status else Decimal("0"),
                    total_amount=cost.total_amount,
                    approval_status=ApprovalStatus.PENDING.value,
                )
                self.db.add(line)
                self.db.flush()
                receive.rrp_fk = line.id

        logger.info(f"Created RRP {rrp_number} with {len(data.items)} items by {data.created_by}")
        return {"message": "RRP created successfully", "rrp_number": rrp_number}

    def _last_counter(self, base: str) -> int:
        numbers = self.db.query(RRPHeader.rrp_number).filter(RRPHeader.rrp_number.like(f"{base}T%")).all()
        return max((split_rrp_number(n)[1] for (n,) in numbers), default=0)

    def _receive(self, receive_id: int) -> ReceiveRecord:
        receive = self.db.query(ReceiveRecord).filter(ReceiveRecord.id == receive_id).first()
        if receive is None:
            raise NotFoundError(f"Receive details not found for ID: {receive_id}")
        if receive.rrp_fk:
            raise ConflictError(f"Receive {receive_id} is already linked to an RRP")
        return receive

    def _release_receives(self, header: RRPHeader):
        receive_ids = [line.receive_fk for line in header.lines]
        if receive_ids:
            self.db.query(ReceiveRecord).filter(ReceiveRecord.id.in_(receive_ids)).update(
                {ReceiveRecord.rrp_fk: None}, synchronize_session=False
            )

    # Transitions

    def approve_rrp(self, rrp_number: str, approved_by: str) -> Dict:
        header = self._header(rrp_number)
        if header.approval_status == ApprovalStatus.APPROVED.value:
            raise BusinessRuleError("RRP is already approved")
        if header.approval_status == ApprovalStatus.REJECTED.value:
            raise BusinessRuleError("RRP is already rejected")
        with transaction(self.db):
            header.approval_status = ApprovalStatus.APPROVED.value
            header.approved_by = approved_by
            for line in header.lines:
                line.approval_status = ApprovalStatus.APPROVED.value
        logger.info(f"RRP {rrp_number} approved by {approved_by}")
        return {"message": "RRP approved successfully"}

    def reject_rrp(self, rrp_number: str, rejected_by: str, reason: str = '') -> Dict:
        header = self._header(rrp_number)
        if header.approval_status == ApprovalStatus.REJECTED.value:
            raise BusinessRuleError("RRP is already rejected")
        if header.approval_status == ApprovalStatus.APPROVED.value:
            raise BusinessRuleError("RRP is already approved")
        with transaction(self.db):
            header.approval_status = ApprovalStatus.REJECTED.value
            header.rejected_by = rejected_by
            header.rejection_reason = reason or ''
            for line in header.lines:
                line.approval_status = ApprovalStatus.REJECTED.value
            self._release_receives(header)
        logger.info(f"RRP {rrp_number} rejected by {rejected_by}: {reason}")
        return {"message": "RRP rejected successfully"}

    def update_line_status(self, line_id: int, status: str) -> Dict:
        line = self.db.query(RRPLine).filter(RRPLine.id == line_id).first()
        if line is None:
            raise NotFoundError("RRP item not found")
        if line.approval_status != ApprovalStatus.PENDING.value:
            raise ConflictError(f"RRP item is already {line.approval_status.lower()}")
        with transaction(self.db):
            line.approval_status = status
            if status == ApprovalStatus.REJECTED.value:
                self.db.query(ReceiveRecord).filter(
                    ReceiveRecord.id == line.receive_fk, ReceiveRecord.rrp_fk == line.id
                ).update({ReceiveRecord.rrp_fk: None}, synchronize_session=False)
        logger.info(f"RRP line {line_id} set to {status}")
        return {"message": "RRP item status updated successfully", "id": line_id, "approvalStatus": status}

    # Numbering

    def verify_rrp_number(self, rrp_number: str, rrp_date: Optional[date]) -> Dict:
        """
        Check whether a number may be used for a new RRP on the given date

        A number with a T counter may only reuse a rejected RRP and must keep
        date order with its neighbours; a base number must not already be in
        use in the current fiscal year.
        """
        if not rrp_number or not RRP_NUMBER_PATTERN.match(rrp_number):
            raise BusinessRuleError("Invalid RRP number format. Must be in format L001 or L001T1")
        if rrp_date is None:
            raise BusinessRuleError("RRP date is required")

        if "T" in rrp_number:
            rejected = self.db.query(RRPHeader.id).filter(
                RRPHeader.rrp_number == rrp_number,
                RRPHeader.approval_status == ApprovalStatus.REJECTED.value,
            ).first()
            if rejected is None:
                raise BusinessRuleError("Invalid RRP Number")

            base, counter = split_rrp_number(rrp_number)
            siblings = sorted(
                (split_rrp_number(n)[1], d)
                for n, d in self.db.query(RRPHeader.rrp_number, RRPHeader.rrp_date)
                .filter(RRPHeader.rrp_number.like(f"{base}T%"))
                .all()
            )
            previous = [d for c, d in siblings if c < counter]
            following = [d for c, d in siblings if c > counter]
            if previous and rrp_date < previous[-1]:
                raise BusinessRuleError("RRP date cannot be before the previous RRP date")
            if following and rrp_date > following[0]:
                raise BusinessRuleError("RRP date cannot be greater than the next RRP date")
            logger.info(f"Verified RRP number {rrp_number}")
            return {"rrpNumber": rrp_number}

        current_fy = self.config.current_fy
        if not current_fy:
            raise GIMSException("Current FY configuration not found")
        latest = self.db.query(RRPHeader.rrp_number, RRPHeader.current_fy).filter(
            RRPHeader.rrp_number.like(f"{rrp_number}T%")
        ).all()
        if latest:
            _, fy = max(latest, key=lambda row: split_rrp_number(row[0])[1])
            if fy == current_fy:
                raise BusinessRuleError("Duplicate RRP number in current fiscal year")
        logger.info(f"Verified RRP number {rrp_number}")
        return {}

    def latest_rrp(self, rrp_type: str) -> Dict:
        if rrp_type not in ("local", "foreign"):
            raise BusinessRuleError('Invalid RRP type. Must be either "local" or "foreign"')
        prefix = "L" if rrp_type == "local" else "F"

        numbers = [n for (n,) in self.db.query(RRPHeader.rrp_number)
                   .filter(RRPHeader.rrp_number.like(f"{prefix}%")).all()
                   if RRP_NUMBER_PATTERN.match(n)]
        highest = max(numbers, key=lambda n: (int(split_rrp_number(n)[0][1:]), split_rrp_number(n)[1]), default=None)
        next_number = f"{prefix}001"
        if highest:
            next_number = f"{prefix}{int(split_rrp_number(highest)[0][1:]) + 1:03d}"

        latest = (
            self.db.query(RRPHeader.rrp_number, RRPHeader.rrp_date)
            .filter(
                RRPHeader.rrp_number.like(f"{prefix}%"),
                RRPHeader.approval_status != ApprovalStatus.REJECTED.value,
            )
            .order_by(RRPHeader.rrp_date.desc(), RRPHeader.id.desc())
            .first()
        )
        return {
            "rrpNumber": latest.rrp_number if latest else highest,
            "rrpDate": latest.rrp_date if latest else None,
            "nextRRPNumber": next_number,
        }

    # Queries

    def _header(self, rrp_number: str) -> RRPHeader:
        header = self.db.query(RRPHeader).filter(RRPHeader.rrp_number == rrp_number).first()
        if header is None:
            raise NotFoundError("RRP not found")
        return header

    def get_rrp(self, rrp_number: str) -> Dict:
        header = self._header(rrp_number)
        return self._serialize(header, header.lines)

    def pending_rrps(self) -> List[Dict]:
        headers = (
            self.db.query(RRPHeader)
            .filter(RRPHeader.approval_status == ApprovalStatus.PENDING.value)
            .order_by(RRPHeader.rrp_date.desc(), RRPHeader.id.desc())
            .all()
        )
        return [self._serialize(header, header.lines) for header in headers]

    def search_rrps(
        self,
        universal: Optional[str] = None,
        equipment_number: Optional[str] = None,
        part_number: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Dict:
        query = (
            self.db.query(RRPHeader.id)
            .join(RRPLine, RRPLine.rrp_id == RRPHeader.id)
            .join(ReceiveRecord, RRPLine.receive_fk == ReceiveRecord.id)
            .outerjoin(RequestRecord, ReceiveRecord.request_fk == RequestRecord.id)
            .filter(RRPHeader.rrp_number.notin_(EXCLUDED_FROM_SEARCH))
        )
        if universal and universal.strip():
            term = f"%{universal.strip()}%"
            query = query.filter(or_(
                RRPHeader.rrp_number.ilike(term),
                ReceiveRecord.item_name.ilike(term),
                ReceiveRecord.part_number.ilike(term),
                func.coalesce(RequestRecord.equipment_number, '').ilike(term),
                ReceiveRecord.tender_reference_number.ilike(term),
            ))
        if equipment_number and equipment_number.strip():
            query = query.filter(
                func.coalesce(RequestRecord.equipment_number, '').ilike(f"%{equipment_number.strip()}%")
            )
        if part_number and part_number.strip():
            query = query.filter(ReceiveRecord.part_number.ilike(f"%{part_number.strip()}%"))

        ids = query.distinct().subquery()
        total = self.db.query(func.count()).select_from(ids).scalar()
        headers = (
            self.db.query(RRPHeader)
            .filter(RRPHeader.id.in_(self.db.query(ids.c.id)))
            .order_by(RRPHeader.rrp_date.desc(), RRPHeader.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        logger.info(f"RRP search returned {len(headers)} of {total} (page {page})")
        return {
            "data": [self._serialize(header, header.lines) for header in headers],
            "pagination": {
                "currentPage": page,
                "pageSize": page_size,
                "totalCount": total,
                "totalPages": total_pages(total, page_size),
            },
        }

    def _serialize(self, header: RRPHeader, lines: List[RRPLine]) -> Dict:
        items = []
        for line in lines:
            receive = line.receive
            request = receive.request if receive is not None else None
            items.append({
                "id": line.id,
                "receiveId": line.receive_fk,
                "itemName": receive.item_name if receive else '',
                "nacCode": receive.nac_code if receive else '',
                "partNumber": receive.part_number if receive else '',
                "equipmentNumber": request.equipment_number if request else "N/A",
                "requestNumber": request.request_number if request else None,
                "receivedQuantity": receive.received_quantity if receive else Decimal("0"),
                "unit": receive.unit if receive else '',
                "receiveSource": receive.receive_source if receive else None,
                "tenderReferenceNumber": (receive.tender_reference_number or '') if receive else '',
                "itemPrice": line.item_price,
                "customsCharge": line.customs_charge,
                "customsServiceCharge": line.customs_service_charge,
                "freightCharge": line.freight_charge,
                "vatPercentage": line.vat_percentage,
                "totalAmount": line.total_amount,
                "approvalStatus": line.approval_status,
            })
        return {
            "rrpNumber": header.rrp_number,
            "rrpDate": header.rrp_date,
            "type": header.rrp_type,
            "supplierName": header.supplier_name,
            "currency": header.currency,
            "forexRate": header.forex_rate,
            "invoiceNumber": header.invoice_number or '',
            "invoiceDate": header.invoice_date,
            "poNumber": header.po_number,
            "airwayBillNumber": header.airway_bill_number,
            "customsNumber": header.customs_number,
            "customsDate": header.customs_date,
            "inspectionDetails": header.inspection_details or {},
            "approvalStatus": header.approval_status,
            "createdBy": header.created_by,
            "totalAmount": sum((to_decimal(line.total_amount) for line in lines), Decimal("0")),
            "items": items,
        }
