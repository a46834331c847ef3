"""
Tender Receive Service
Free of cost receives against a tender, costed through the shared TENDER-FREE RRP
"""
from typing import Dict, List, Optional
from datetime import date
from decimal import Decimal
from sqlalchemy.orm import Session
from sqlalchemy import or_

from gims.core.config import settings
from gims.core.database import transaction
from gims.core.exceptions import NotFoundError, BusinessRuleError
from gims.core.logging import get_logger
from gims.models import ReceiveRecord, RequestRecord, RRPHeader, RRPLine, StockItem
from gims.schemas.receive import TenderReceiveCreate
from gims.schemas.common import total_pages
from gims.services.business_logic import ApprovalStatus, ReceiveSource
from gims.services.procurement.receive import check_receive_quantity

logger = get_logger("receive")

TENDER_RRP_NUMBER = "TENDER-FREE"
TENDER_SUPPLIER = "Tender Supply"


class TenderReceiveService:

    def __init__(self, db: Session):
        self.db = db

    def create_tender_receive(self, data: TenderReceiveCreate) -> Dict:
        tender_number = data.tender_number.strip()
        receive_ids: List[int] = []

        with transaction(self.db):
            header = self._tender_header(data.receive_date, data.received_by)
            for item in data.items:
                nac_code = (item.nac_code or '').strip()
                if not nac_code:
                    logger.warning(f"Tender {tender_number} item without NAC code by {data.received_by}")
                    raise BusinessRuleError(
                        f"NAC Code is required for item: {item.item_name}. "
                        "Please ensure the item has a valid NAC Code."
                    )
                if item.is_new_item and self.db.query(StockItem.id).filter(StockItem.nac_code == nac_code).first():
                    raise BusinessRuleError(
                        f"NAC Code {nac_code} already exists. Please choose a new NAC Code for new item."
                    )

                duplicate = self.db.query(ReceiveRecord.id).filter(
                    ReceiveRecord.tender_reference_number == tender_number,
                    ReceiveRecord.nac_code == nac_code,
                    ReceiveRecord.receive_date == data.receive_date,
                    ReceiveRecord.receive_source == ReceiveSource.TENDER.value,
                ).first()
                if duplicate:
                    logger.warning(f"Duplicate tender receive {tender_number}/{nac_code} on {data.receive_date}")
                    raise BusinessRuleError(
                        f"This item ({nac_code}) has already been received for tender {tender_number} "
                        f"on {data.receive_date.isoformat()}. Please select a different date or item."
                    )
                if item.receive_quantity is None or item.receive_quantity <= 0:
                    raise BusinessRuleError("Invalid receive quantity. Quantity must be a positive number.")

                request = None
                if item.request_id:
                    request = self.db.query(RequestRecord).filter(RequestRecord.id == item.request_id).first()
                    if request is None:
                        raise NotFoundError(f"Request ID {item.request_id} not found")
                    check_receive_quantity(self.db, request, item.receive_quantity)

                receive = ReceiveRecord(
                    receive_date=data.receive_date,
                    request_fk=request.id if request is not None else None,
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
                    receive_source=ReceiveSource.TENDER.value,
                    tender_reference_number=tender_number,
                )
                self.db.add(receive)
                self.db.flush()

                line = RRPLine(
                    rrp_id=header.id,
                    receive_fk=receive.id,
                    approval_status=ApprovalStatus.APPROVED.value,
                )
                self.db.add(line)
                self.db.flush()
                receive.rrp_fk = line.id
                receive_ids.append(receive.id)
                logger.info(f"Created tender receive {receive.id} and RRP line for tender {tender_number}")

        logger.info(f"Created tender receive with {len(receive_ids)} items for tender {tender_number} by {data.received_by}")
        return {
            "message": "Tender receive created successfully",
            "receiveDate": data.receive_date.isoformat(),
            "tenderNumber": tender_number,
            "receiveIds": receive_ids,
        }

    def _tender_header(self, receive_date: date, created_by: str) -> RRPHeader:
        """The approved zero cost RRP shared by every tender receive"""
        header = self.db.query(RRPHeader).filter(RRPHeader.rrp_number == TENDER_RRP_NUMBER).first()
        if header is None:
            header = RRPHeader(
                rrp_number=TENDER_RRP_NUMBER,
                rrp_type="local",
                supplier_name=TENDER_SUPPLIER,
                rrp_date=receive_date,
                currency=settings.DEFAULT_CURRENCY,
                forex_rate=Decimal("1"),
                inspection_details={
                    "inspection_user": created_by,
                    "inspection_details": {"note": "Tender receive - free of cost"},
                },
                approval_status=ApprovalStatus.APPROVED.value,
                created_by=created_by,
                approved_by=created_by,
            )
            self.db.add(header)
            self.db.flush()
        return header

    def get_tender_receive(self, receive_id: int) -> ReceiveRecord:
        receive = self.db.query(ReceiveRecord).filter(
            ReceiveRecord.id == receive_id,
            ReceiveRecord.receive_source == ReceiveSource.TENDER.value,
        ).first()
        if not receive:
            raise NotFoundError("Tender receive details not found")
        return receive

    def search_tender_receives(
        self,
        universal: Optional[str] = None,
        tender_number: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Dict:
        query = (
            self.db.query(ReceiveRecord, RRPLine)
            .join(RRPLine, RRPLine.receive_fk == ReceiveRecord.id)
            .filter(ReceiveRecord.receive_source == ReceiveSource.TENDER.value)
        )
        if universal and universal.strip():
            term = f"%{universal.strip()}%"
            query = query.filter(or_(
                ReceiveRecord.item_name.ilike(term),
                ReceiveRecord.part_number.ilike(term),
                ReceiveRecord.tender_reference_number.ilike(term),
            ))
        if tender_number and tender_number.strip():
            query = query.filter(ReceiveRecord.tender_reference_number.ilike(f"%{tender_number.strip()}%"))

        total = query.count()
        rows = (
            query.order_by(ReceiveRecord.receive_date.desc(), ReceiveRecord.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return {
            "data": [
                {
                    "id": receive.id,
                    "rrpLineId": line.id,
                    "tenderReferenceNumber": receive.tender_reference_number,
                    "receiveDate": receive.receive_date,
                    "nacCode": receive.nac_code,
                    "itemName": receive.item_name,
                    "partNumber": receive.part_number,
                    "receivedQuantity": receive.received_quantity,
                    "unit": receive.unit,
                    "approvalStatus": receive.approval_status,
                    "totalAmount": line.total_amount,
                }
                for receive, line in rows
            ],
            "pagination": {
                "currentPage": page,
                "pageSize": page_size,
                "totalCount": total,
                "totalPages": total_pages(total, page_size),
            },
        }
