"""
Issue Records Service
Browsing and correcting spare part issues; fuel issues are kept out
"""
from typing import Dict, Optional
from decimal import Decimal
from sqlalchemy.orm import Session
from sqlalchemy import or_

from gims.core.database import transaction
from gims.core.exceptions import NotFoundError, BusinessRuleError, ValidationError
from gims.core.logging import get_logger
from gims.models import BalanceTransfer, IssueRecord, StockItem
from gims.schemas.stock import IssueRecordUpdate
from gims.schemas.common import to_dict, total_pages
from gims.services.business_logic import ApprovalStatus, FUEL_NAC_CODES, format_quantity, split_csv, to_decimal
from .stock_master import StockMasterService

logger = get_logger("issue_records")

SORTABLE_COLUMNS = {
    "issue_date": IssueRecord.issue_date,
    "issue_slip_number": IssueRecord.issue_slip_number,
    "nac_code": IssueRecord.nac_code,
    "part_number": IssueRecord.part_number,
    "issue_quantity": IssueRecord.issue_quantity,
    "issued_for": IssueRecord.issued_for,
    "approval_status": IssueRecord.approval_status,
    "created_at": IssueRecord.created_at,
}


class IssueRecordService:

    def __init__(self, db: Session):
        self.db = db
        self.stock = StockMasterService(db)

    def _spare_issues(self):
        return self.db.query(IssueRecord).filter(IssueRecord.nac_code.notin_(list(FUEL_NAC_CODES.values())))

    def list_records(
        self,
        search: Optional[str] = None,
        issue_slip_number: Optional[str] = None,
        part_number: Optional[str] = None,
        item_name: Optional[str] = None,
        nac_code: Optional[str] = None,
        issued_for: Optional[str] = None,
        status: Optional[str] = None,
        issued_by: Optional[str] = None,
        sort_by: str = "issue_date",
        sort_order: str = "desc",
        page: int = 1,
        limit: int = 20,
    ) -> Dict:
        query = self._spare_issues().outerjoin(StockItem, StockItem.nac_code == IssueRecord.nac_code)
        if search and search.strip():
            term = f"%{search.strip()}%"
            query = query.filter(or_(
                IssueRecord.issue_slip_number.ilike(term),
                IssueRecord.nac_code.ilike(term),
                IssueRecord.part_number.ilike(term),
                IssueRecord.issued_for.ilike(term),
                StockItem.item_name.ilike(term),
            ))
        if issue_slip_number:
            query = query.filter(IssueRecord.issue_slip_number.ilike(f"%{issue_slip_number.strip()}%"))
        if part_number:
            query = query.filter(IssueRecord.part_number.ilike(f"%{part_number.strip()}%"))
        if item_name:
            query = query.filter(StockItem.item_name.ilike(f"%{item_name.strip()}%"))
        if nac_code:
            query = query.filter(IssueRecord.nac_code.ilike(f"%{nac_code.strip()}%"))
        if issued_for:
            query = query.filter(IssueRecord.issued_for.ilike(f"%{issued_for.strip()}%"))
        if status and status != "all":
            query = query.filter(IssueRecord.approval_status == status)
        if issued_by:
            query = query.filter(IssueRecord.issued_by["name"].as_string().ilike(f"%{issued_by.strip()}%"))

        column = SORTABLE_COLUMNS.get(sort_by, IssueRecord.issue_date)
        ordering = column.asc() if (sort_order or '').lower() == "asc" else column.desc()

        total = query.count()
        records = (
            query.order_by(ordering, IssueRecord.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        names = self._item_names({record.nac_code for record in records})
        return {
            "message": "Issue records retrieved successfully",
            "records": [dict(to_dict(record), item_name=names.get(record.nac_code, '')) for record in records],
            "pagination": {
                "total": total,
                "page": page,
                "limit": limit,
                "totalPages": total_pages(total, limit),
            },
        }

    def _item_names(self, nac_codes) -> Dict[str, str]:
        if not nac_codes:
            return {}
        rows = self.db.query(StockItem.nac_code, StockItem.item_name).filter(StockItem.nac_code.in_(nac_codes)).all()
        return {code: (split_csv(name) or [''])[0] for code, name in rows}

    def get_record(self, issue_id: int) -> IssueRecord:
        issue = self._spare_issues().filter(IssueRecord.id == issue_id).first()
        if not issue:
            raise NotFoundError("Spare issue record not found")
        return issue

    def update_record(self, issue_id: int, data: IssueRecordUpdate) -> IssueRecord:
        """
        Correct an issue

        Moving an issue to another NAC code gives the quantity back to the
        old code and takes it from the new one; a quantity change moves the
        balance by the difference.
        """
        issue = self.get_record(issue_id)
        self._ensure_editable(issue)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            raise ValidationError("No fields to update")

        old_nac = issue.nac_code
        old_quantity = to_decimal(issue.issue_quantity)
        new_nac = (changes.pop("nac_code", None) or old_nac).strip()
        new_quantity = changes.pop("issue_quantity", old_quantity)
        if new_nac in FUEL_NAC_CODES.values():
            raise BusinessRuleError("Fuel issues are recorded through fuel records")

        with transaction(self.db):
            if new_nac != old_nac:
                target = self.stock.get_item_by_code(new_nac)
                if target is None:
                    raise NotFoundError("New NAC code not found in stock")
                available = to_decimal(target.current_balance)
                if new_quantity > available:
                    raise BusinessRuleError(
                        f"Insufficient stock in new NAC code. Available: {format_quantity(available)}, "
                        f"Required: {format_quantity(new_quantity)}"
                    )
                self.stock.release(old_nac, old_quantity)
                issue.remaining_balance = self.stock.deduct(new_nac, new_quantity).current_balance
                issue.nac_code = new_nac
            elif new_quantity != old_quantity:
                difference = new_quantity - old_quantity
                if difference > 0:
                    stock = self.stock.get_item_by_code(old_nac)
                    available = to_decimal(stock.current_balance) if stock is not None else Decimal('0')
                    if difference > available:
                        raise BusinessRuleError(
                            f"Insufficient stock for quantity increase. Available: {format_quantity(available)}, "
                            f"Additional needed: {format_quantity(difference)}"
                        )
                    self.stock.deduct(old_nac, difference)
                else:
                    self.stock.release(old_nac, -difference)
                issue.remaining_balance = to_decimal(issue.remaining_balance) - difference
            issue.issue_quantity = new_quantity
            for field, value in changes.items():
                setattr(issue, field, value.strip() if isinstance(value, str) else value)
        self.db.refresh(issue)
        logger.info(
            f"Issue record {issue_id} updated: {old_nac} x{format_quantity(old_quantity)} -> "
            f"{issue.nac_code} x{format_quantity(issue.issue_quantity)}"
        )
        return issue

    def delete_record(self, issue_id: int) -> None:
        issue = self.get_record(issue_id)
        self._ensure_editable(issue)
        nac_code, quantity = issue.nac_code, to_decimal(issue.issue_quantity)
        with transaction(self.db):
            self.stock.release(nac_code, quantity)
            self.db.delete(issue)
        logger.info(f"Issue record {issue_id} deleted, {format_quantity(quantity)} returned to {nac_code}")

    def _ensure_editable(self, issue: IssueRecord):
        if issue.approval_status == ApprovalStatus.REJECTED.value:
            raise BusinessRuleError("Rejected issues cannot be changed")
        if self.db.query(BalanceTransfer.id).filter(BalanceTransfer.issue_fk == issue.id).first():
            raise BusinessRuleError("Issue belongs to a balance transfer. Revert the transfer instead.")

    def filters(self) -> Dict:
        base = self._spare_issues()
        slips = base.with_entities(IssueRecord.issue_slip_number).distinct().all()
        codes = base.with_entities(IssueRecord.nac_code).distinct().all()
        equipments = base.with_entities(IssueRecord.issued_for).distinct().all()
        statuses = base.with_entities(IssueRecord.approval_status).distinct().all()
        names = self._item_names({row[0] for row in codes})
        return {
            "issueSlipNumbers": sorted(row[0] for row in slips if row[0]),
            "nacCodes": [{"nacCode": code, "itemName": names.get(code, '')} for code in sorted(row[0] for row in codes)],
            "equipmentNumbers": sorted(row[0] for row in equipments if row[0]),
            "approvalStatuses": sorted(row[0] for row in statuses if row[0]),
        }
