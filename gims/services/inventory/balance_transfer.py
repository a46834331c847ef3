"""
Balance Transfer Service

Moves quantity from one NAC code to another. The source code gets an
approved issue, the destination an approved receive costed on the shared
Code Transfer RRP at the unit cost of the receive the quantity came from.
"""
from typing import Dict, List, Optional
from datetime import date
from decimal import Decimal
from sqlalchemy.orm import Session
from sqlalchemy import or_

from gims.core.config import settings
from gims.core.database import transaction
from gims.core.exceptions import GIMSException, NotFoundError, BusinessRuleError
from gims.core.logging import get_logger
from gims.models import BalanceTransfer, IssueRecord, ReceiveRecord, RRPHeader, RRPLine, StockItem
from gims.schemas.fuel import BalanceTransferCreate
from gims.services.business_logic import (
    ApprovalStatus, ReceiveSource, format_quantity, round_currency, split_csv, to_decimal
)
from gims.services.settings.app_config import AppConfigService
from .stock_master import StockMasterService
from .stock_issues import StockIssueService

logger = get_logger("balance_transfer")

TRANSFER_RRP_NUMBER = "Code Transfer"


class BalanceTransferService:

    def __init__(self, db: Session):
        self.db = db
        self.stock = StockMasterService(db)
        self.issues = StockIssueService(db)
        self.config = AppConfigService(db)

    def _transferable_query(self):
        """Approved receives costed on an approved RRP other than a previous transfer"""
        return (
            self.db.query(ReceiveRecord, RRPLine)
            .join(RRPLine, RRPLine.id == ReceiveRecord.rrp_fk)
            .join(RRPHeader, RRPHeader.id == RRPLine.rrp_id)
            .filter(
                ReceiveRecord.approval_status == ApprovalStatus.APPROVED.value,
                RRPLine.approval_status == ApprovalStatus.APPROVED.value,
                RRPHeader.rrp_number != TRANSFER_RRP_NUMBER,
                ReceiveRecord.received_quantity - ReceiveRecord.transferred_quantity > 0,
            )
        )

    def transferable_items(self, search: Optional[str] = None) -> List[Dict]:
        query = self._transferable_query()
        if search and search.strip():
            term = f"%{search.strip()}%"
            query = query.filter(or_(
                ReceiveRecord.nac_code.ilike(term),
                ReceiveRecord.item_name.ilike(term),
                ReceiveRecord.part_number.ilike(term),
            ))
        rows = query.order_by(ReceiveRecord.receive_date.desc(), ReceiveRecord.id.desc()).all()
        return [
            {
                "receiveId": receive.id,
                "nacCode": receive.nac_code,
                "itemName": receive.item_name,
                "partNumber": receive.part_number,
                "unit": receive.unit,
                "receiveDate": receive.receive_date,
                "receivedQuantity": receive.received_quantity,
                "transferredQuantity": receive.transferred_quantity,
                "transferableQuantity": to_decimal(receive.received_quantity) - to_decimal(receive.transferred_quantity),
                "totalAmount": line.total_amount,
            }
            for receive, line in rows
        ]

    def existing_nac_codes(self, search: Optional[str] = None) -> List[Dict]:
        """Destination candidates: every NAC code with a stock row"""
        query = self.db.query(StockItem)
        if search and search.strip():
            term = f"%{search.strip()}%"
            query = query.filter(or_(StockItem.nac_code.ilike(term), StockItem.item_name.ilike(term)))
        return [
            {
                "nacCode": item.nac_code,
                "itemName": (split_csv(item.item_name) or [''])[0],
                "partNumber": (split_csv(item.part_numbers) or [''])[0],
                "currentBalance": item.current_balance,
            }
            for item in query.order_by(StockItem.nac_code).limit(50).all()
        ]

    def list_transfers(self) -> List[Dict]:
        transfers = (
            self.db.query(BalanceTransfer)
            .order_by(BalanceTransfer.transfer_date.desc(), BalanceTransfer.id.desc())
            .all()
        )
        return [
            {
                "id": transfer.id,
                "fromNacCode": transfer.from_nac_code,
                "toNacCode": transfer.to_nac_code,
                "quantity": transfer.quantity,
                "transferCost": transfer.transfer_cost,
                "transferDate": transfer.transfer_date,
                "transferredBy": transfer.transferred_by,
                "issueSlipNumber": transfer.issue.issue_slip_number if transfer.issue else None,
                "receiveId": transfer.receive_fk,
                "sourceReceiveId": transfer.source_receive_fk,
            }
            for transfer in transfers
        ]

    def transfer_balance(self, data: BalanceTransferCreate) -> Dict:
        current_fy = self.config.current_fy
        if not current_fy:
            logger.error("Balance transfer failed - Current FY configuration not found")
            raise GIMSException("Current FY configuration not found")

        quantity = data.transfer_quantity
        # Oldest receive that can cover the whole quantity
        source = None
        for receive, line in self._transferable_query().filter(
            ReceiveRecord.nac_code == data.from_nac_code
        ).order_by(ReceiveRecord.receive_date, ReceiveRecord.id):
            if to_decimal(receive.received_quantity) - to_decimal(receive.transferred_quantity) >= quantity:
                source = (receive, line)
                break
        if source is None:
            logger.warning(f"Transfer {data.from_nac_code} -> {data.to_nac_code} refused: nothing transferable")
            raise BusinessRuleError("Insufficient transferrable quantity or item not found")
        source_receive, source_line = source

        destination = self.stock.get_item_by_code(data.to_nac_code)
        if destination is None:
            raise NotFoundError("Destination NAC code does not exist")

        unit_cost = to_decimal(source_line.total_amount) / to_decimal(source_receive.received_quantity)
        cost = round_currency(unit_cost * quantity)
        transferred_by = {"name": data.transferred_by, "staffId": data.transferred_by}

        with transaction(self.db):
            slip_number = self._slip_number(data.transfer_date)
            issue = self.issues.add_issue(
                slip_number, data.transfer_date, data.from_nac_code, quantity,
                f"code_transfer_to_{data.to_nac_code}", transferred_by, current_fy,
                part_number=source_receive.part_number, status=ApprovalStatus.APPROVED.value,
            )
            receive = ReceiveRecord(
                receive_date=data.transfer_date,
                nac_code=data.to_nac_code,
                part_number=(split_csv(destination.part_numbers) or [''])[0],
                item_name=(split_csv(destination.item_name) or [''])[0],
                received_quantity=quantity,
                unit=destination.unit or '',
                received_by=data.transferred_by,
                approval_status=ApprovalStatus.APPROVED.value,
                approved_by=data.transferred_by,
                receive_source=ReceiveSource.CODE_TRANSFER.value,
            )
            self.db.add(receive)
            self.db.flush()
            line = RRPLine(
                rrp_id=self._transfer_header(data.transfer_date, data.transferred_by).id,
                receive_fk=receive.id,
                item_price=round_currency(unit_cost),
                total_amount=cost,
                approval_status=ApprovalStatus.APPROVED.value,
            )
            self.db.add(line)
            self.db.flush()
            receive.rrp_fk = line.id
            self.stock.apply_receipt(data.to_nac_code, quantity)
            source_receive.transferred_quantity = to_decimal(source_receive.transferred_quantity) + quantity

            transfer = BalanceTransfer(
                from_nac_code=data.from_nac_code,
                to_nac_code=data.to_nac_code,
                quantity=quantity,
                transfer_cost=cost,
                transfer_date=data.transfer_date,
                transferred_by=data.transferred_by,
                issue_fk=issue.id,
                receive_fk=receive.id,
                source_receive_fk=source_receive.id,
            )
            self.db.add(transfer)
            self.db.flush()

        logger.info(
            f"Transferred {format_quantity(quantity)} from {data.from_nac_code} to {data.to_nac_code} "
            f"(cost {cost}) by {data.transferred_by}"
        )
        return {
            "message": "Balance transferred successfully",
            "transferId": transfer.id,
            "issueSlipNumber": slip_number,
            "transferCost": cost,
        }

    def revert_transfer(self, transfer_id: int) -> Dict:
        transfer = self.db.query(BalanceTransfer).filter(BalanceTransfer.id == transfer_id).first()
        if not transfer:
            raise NotFoundError("Balance transfer record not found")

        quantity = to_decimal(transfer.quantity)
        details = {
            "fromNacCode": transfer.from_nac_code,
            "toNacCode": transfer.to_nac_code,
            "quantity": quantity,
            "date": transfer.transfer_date,
        }
        with transaction(self.db):
            self.stock.deduct(transfer.to_nac_code, quantity)
            self.stock.release(transfer.from_nac_code, quantity)

            source = transfer.source_receive
            if source is not None:
                source.transferred_quantity = max(Decimal('0'), to_decimal(source.transferred_quantity) - quantity)
            receive, issue = transfer.receive, transfer.issue
            self.db.delete(transfer)
            self.db.flush()
            if receive is not None:
                self.db.query(RRPLine).filter(RRPLine.receive_fk == receive.id).delete(synchronize_session=False)
                self.db.delete(receive)
            if issue is not None:
                self.db.delete(issue)

        logger.info(f"Reverted balance transfer {transfer_id}: {details['fromNacCode']} -> {details['toNacCode']}")
        return {"message": "Balance transfer reverted successfully", "details": details}

    def _slip_number(self, transfer_date: date) -> str:
        """``<date>-NNN`` counting transfer slips already used that day"""
        prefix = transfer_date.isoformat()
        used = self.db.query(IssueRecord.id).filter(IssueRecord.issue_slip_number.like(f"{prefix}-%")).count()
        return f"{prefix}-{used + 1:03d}"

    def _transfer_header(self, transfer_date: date, created_by: str) -> RRPHeader:
        """The approved RRP shared by every transfer receive"""
        header = self.db.query(RRPHeader).filter(RRPHeader.rrp_number == TRANSFER_RRP_NUMBER).first()
        if header is None:
            header = RRPHeader(
                rrp_number=TRANSFER_RRP_NUMBER,
                rrp_type="local",
                supplier_name=TRANSFER_RRP_NUMBER,
                rrp_date=transfer_date,
                currency=settings.DEFAULT_CURRENCY,
                forex_rate=Decimal("1"),
                approval_status=ApprovalStatus.APPROVED.value,
                created_by=created_by,
                approved_by=created_by,
            )
            self.db.add(header)
            self.db.flush()
        return header
