"""
Stock Issue Service
Issues of stock to equipment with approval
"""
from typing import Dict, List, Optional
from decimal import Decimal
from datetime import date
from sqlalchemy.orm import Session
from sqlalchemy import func

from gims.core.database import transaction
from gims.core.exceptions import ValidationError, ConflictError, NotFoundError, GIMSException
from gims.core.logging import get_logger
from gims.models import FuelRecord, IssueRecord, StockItem
from gims.schemas.stock import IssueCreate
from gims.services.business_logic import ApprovalStatus, format_quantity, to_decimal
from gims.services.settings.app_config import AppConfigService
from .stock_master import StockMasterService

logger = get_logger("issue")


class StockIssueService:
    """
    Stock issues

    The balance is deducted when the issue is created and given back when it
    is rejected; approval only confirms it.
    """

    def __init__(self, db: Session):
        self.db = db
        self.stock = StockMasterService(db)
        self.config = AppConfigService(db)

    def create_issue(self, data: IssueCreate) -> Dict:
        issued_by = data.issued_by.model_dump(by_alias=True)
        current_fy = self.config.current_fy
        if not current_fy:
            logger.error("Failed to create issue - Current FY configuration not found")
            raise GIMSException("Current FY configuration not found")

        errors = self._validate_items(data)
        if errors:
            logger.warning(f"Issue creation failed for {issued_by['name']}: {errors}")
            exc = ValidationError("Some items have insufficient stock or are not found", details=errors)
            exc.error = "Validation Failed"
            raise exc

        slip_number = self.slip_number(data.issue_date, current_fy)
        issue_ids: List[int] = []
        with transaction(self.db):
            for item in data.items:
                issue = self.add_issue(
                    slip_number, data.issue_date, item.nac_code, item.quantity,
                    item.equipment_number, issued_by, current_fy, part_number=item.part_number,
                )
                issue_ids.append(issue.id)
                logger.info(f"Issued {format_quantity(item.quantity)} of {item.nac_code} by {issued_by['name']}")

        return {
            "message": "Issue created successfully",
            "issueDate": data.issue_date.isoformat(),
            "issueSlipNumber": slip_number,
            "issueIds": issue_ids,
        }

    def add_issue(
        self,
        slip_number: str,
        issue_date: date,
        nac_code: str,
        quantity: Decimal,
        issued_for: str,
        issued_by: Dict,
        current_fy: str,
        part_number: Optional[str] = None,
        status: str = ApprovalStatus.PENDING.value,
    ) -> IssueRecord:
        """Deduct the balance and record the issue, inside the caller's unit of work"""
        stock = self.stock.deduct(nac_code, quantity)
        issue = IssueRecord(
            issue_slip_number=slip_number,
            issue_date=issue_date,
            nac_code=nac_code,
            part_number=part_number or '',
            issue_quantity=quantity,
            remaining_balance=stock.current_balance,
            issued_for=issued_for,
            issued_by=issued_by,
            current_fy=current_fy,
            approval_status=status,
        )
        if status == ApprovalStatus.APPROVED.value:
            issue.approved_by = issued_by.get("name")
        self.db.add(issue)
        self.db.flush()
        return issue

    def slip_number(self, issue_date: date, current_fy: str) -> str:
        return f"{self._day_number(issue_date, current_fy)}Y{current_fy}"

    def approve_issues(self, ids: List[int], approved_by: str) -> int:
        issues = self._load(ids)
        done = [i.id for i in issues if i.approval_status != ApprovalStatus.PENDING.value]
        if done:
            raise ConflictError(f"Issues {', '.join(map(str, done))} are not pending")

        with transaction(self.db):
            for issue in issues:
                issue.approval_status = ApprovalStatus.APPROVED.value
                issue.approved_by = approved_by
            self._mirror_fuel_status(ids, ApprovalStatus.APPROVED.value, approved_by)
        logger.info(f"Approved issues {ids} by {approved_by}")
        return len(issues)

    def reject_issues(self, ids: List[int], rejected_by: str, reason: str = None) -> int:
        issues = self._load(ids)
        done = [i.id for i in issues if i.approval_status != ApprovalStatus.PENDING.value]
        if done:
            raise ConflictError(f"Issues {', '.join(map(str, done))} are not pending")

        with transaction(self.db):
            for issue in issues:
                issue.approval_status = ApprovalStatus.REJECTED.value
                issue.rejected_by = rejected_by
                issue.rejection_reason = reason
                self.stock.release(issue.nac_code, to_decimal(issue.issue_quantity))
            self._mirror_fuel_status(ids, ApprovalStatus.REJECTED.value)
        logger.info(f"Rejected issues {ids} by {rejected_by}: {reason}")
        return len(issues)

    def _mirror_fuel_status(self, ids: List[int], status: str, approved_by: Optional[str] = None):
        values = {FuelRecord.approval_status: status}
        if approved_by:
            values[FuelRecord.approved_by] = approved_by
        self.db.query(FuelRecord).filter(FuelRecord.issue_fk.in_(ids)).update(values, synchronize_session=False)

    def list_pending(self) -> List[IssueRecord]:
        return (
            self.db.query(IssueRecord)
            .filter(IssueRecord.approval_status == ApprovalStatus.PENDING.value)
            .order_by(IssueRecord.issue_date, IssueRecord.id)
            .all()
        )

    def _load(self, ids: List[int]) -> List[IssueRecord]:
        issues = self.db.query(IssueRecord).filter(IssueRecord.id.in_(ids)).all()
        missing = sorted(set(ids) - {issue.id for issue in issues})
        if missing:
            raise NotFoundError(f"Issue records not found: {', '.join(map(str, missing))}")
        return issues

    def _validate_items(self, data: IssueCreate) -> List[Dict]:
        """Check every line against the balance still available after earlier lines"""
        errors = []
        requested: Dict[str, Decimal] = {}
        for index, item in enumerate(data.items):
            stock = self.db.query(StockItem).filter(StockItem.nac_code == item.nac_code).first()
            if stock is None:
                errors.append({
                    "nacCode": item.nac_code,
                    "message": f"Item with NAC code {item.nac_code} not found",
                    "originalIndex": index,
                })
                continue
            already = requested.get(item.nac_code, Decimal('0'))
            available = to_decimal(stock.current_balance) - already
            if item.quantity > available:
                errors.append({
                    "nacCode": item.nac_code,
                    "message": f"Insufficient stock. Requested: {format_quantity(item.quantity)}, "
                               f"Available: {format_quantity(available)}",
                    "originalIndex": index,
                })
            requested[item.nac_code] = already + item.quantity
        return errors

    def _day_number(self, issue_date: date, current_fy: str) -> int:
        """
        Days since the first issue of the fiscal year, counting from 1

        Backdated issues before the first one share day 1.
        """
        first = (
            self.db.query(func.min(IssueRecord.issue_date))
            .filter(IssueRecord.current_fy == current_fy)
            .scalar()
        )
        if first is None:
            return 1
        return max(1, (issue_date - first).days + 1)
