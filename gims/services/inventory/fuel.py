"""
Fuel Service

Fuel issues to equipment with odometer readings. Each fuel record is backed
by an issue of the fuel NAC code, so balances move through the same issue
path as spare parts.
"""
from typing import Dict, List, Optional
from datetime import date
from decimal import Decimal
from sqlalchemy.orm import Session
from sqlalchemy import func

from gims.core.database import transaction
from gims.core.exceptions import GIMSException, ValidationError, NotFoundError, ConflictError, BusinessRuleError
from gims.core.logging import get_logger
from gims.models import FuelRecord, FuelReceipt, IssueRecord
from gims.schemas.fuel import FuelCreate, FuelUpdate, FuelReceiveCreate
from gims.schemas.common import total_pages
from gims.services.business_logic import (
    ApprovalStatus, FUEL_NAC_CODES, format_quantity, fuel_week_number, split_csv, to_decimal
)
from gims.services.settings.app_config import AppConfigService
from .stock_master import StockMasterService
from .stock_issues import StockIssueService

logger = get_logger("fuel")

# Equipment that may take diesel more than once a day
DUPLICATE_ALLOWED = ("cleaning", "")


def fuel_nac_code(fuel_type: str) -> str:
    nac_code = FUEL_NAC_CODES.get((fuel_type or '').strip().lower())
    if nac_code is None:
        raise ValidationError(f"Invalid fuel type: {fuel_type}")
    return nac_code


class FuelService:

    def __init__(self, db: Session):
        self.db = db
        self.stock = StockMasterService(db)
        self.issues = StockIssueService(db)
        self.config = AppConfigService(db)

    def create_fuel_records(self, data: FuelCreate) -> Dict:
        current_fy = self.config.current_fy
        if not current_fy:
            logger.error("Failed to create fuel records - Current FY configuration not found")
            raise GIMSException("Current FY configuration not found")

        nac_code = fuel_nac_code(data.fuel_type)
        if data.fuel_type == "diesel":
            self._check_diesel_duplicates(data)

        total = sum((line.quantity for line in data.records), Decimal('0'))
        stock = self.stock.get_item_by_code(nac_code)
        available = to_decimal(stock.current_balance) if stock is not None else Decimal('0')
        if total > available:
            logger.warning(f"Fuel issue by {data.issued_by} refused: {format_quantity(total)}L of {data.fuel_type}")
            raise BusinessRuleError(
                f"Insufficient {data.fuel_type} fuel. Total requested: {format_quantity(total)}L, "
                f"Available: {format_quantity(available)}L"
            )

        week_number = self.week_number(data.issue_date, current_fy)
        slip_number = self.issues.slip_number(data.issue_date, current_fy)
        issued_by = {"name": data.issued_by, "staffId": data.issued_by}
        issue_ids: List[int] = []
        with transaction(self.db):
            for line in data.records:
                issue = self.issues.add_issue(
                    slip_number, data.issue_date, nac_code, line.quantity,
                    line.equipment_number.strip(), issued_by, current_fy, part_number="N/A",
                )
                self.db.add(FuelRecord(
                    fuel_type=data.fuel_type,
                    kilometers=line.kilometers,
                    is_kilometer_reset=line.is_kilometer_reset,
                    fuel_price=data.price,
                    week_number=week_number,
                    fy=current_fy,
                    issue_fk=issue.id,
                    approval_status=ApprovalStatus.PENDING.value,
                ))
                issue_ids.append(issue.id)

        logger.info(
            f"Created {len(issue_ids)} {data.fuel_type} records ({format_quantity(total)}L) "
            f"week {week_number} by {data.issued_by}"
        )
        return {"message": "Fuel records created successfully", "issueIds": issue_ids}

    def _check_diesel_duplicates(self, data: FuelCreate):
        seen = set()
        for line in data.records:
            equipment = line.equipment_number.strip()
            if equipment.lower() in DUPLICATE_ALLOWED:
                continue
            existing = (
                self.db.query(FuelRecord.id)
                .join(IssueRecord, IssueRecord.id == FuelRecord.issue_fk)
                .filter(
                    FuelRecord.fuel_type == "diesel",
                    IssueRecord.issue_date == data.issue_date,
                    IssueRecord.issued_for == equipment,
                    IssueRecord.approval_status != ApprovalStatus.REJECTED.value,
                )
                .first()
            )
            if existing or equipment in seen:
                raise ConflictError(
                    f'Diesel entry already exists for equipment "{equipment}" on '
                    f"{data.issue_date.isoformat()}. Only Cleaning allows duplicate entries on the same date."
                )
            seen.add(equipment)

    def week_number(self, issue_date: date, current_fy: str) -> int:
        first = (
            self.db.query(func.min(IssueRecord.issue_date))
            .join(FuelRecord, FuelRecord.issue_fk == IssueRecord.id)
            .filter(FuelRecord.fy == current_fy)
            .scalar()
        )
        if first is None or issue_date < first:
            first = issue_date
        return fuel_week_number(issue_date, first)

    def get_record(self, record_id: int) -> FuelRecord:
        record = self.db.query(FuelRecord).filter(FuelRecord.id == record_id).first()
        if not record:
            raise NotFoundError("Fuel record not found")
        return record

    def update_fuel_record(self, record_id: int, data: FuelUpdate) -> FuelRecord:
        record = self.get_record(record_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            raise ValidationError("No fields to update")
        with transaction(self.db):
            for field, value in changes.items():
                setattr(record, field, value)
        self.db.refresh(record)
        logger.info(f"Fuel record {record_id} updated: {', '.join(changes)}")
        return record

    def delete_fuel_record(self, record_id: int) -> None:
        record = self.get_record(record_id)
        issue = record.issue
        with transaction(self.db):
            self.db.delete(record)
            if issue is not None:
                if issue.approval_status != ApprovalStatus.REJECTED.value:
                    self.stock.release(issue.nac_code, to_decimal(issue.issue_quantity))
                self.db.delete(issue)
        logger.info(f"Fuel record {record_id} and its issue deleted")

    def approve_fuel_record(self, record_id: int, approved_by: str) -> None:
        record = self.get_record(record_id)
        if record.approval_status != ApprovalStatus.PENDING.value:
            raise ConflictError("Fuel record is not pending")
        with transaction(self.db):
            record.approval_status = ApprovalStatus.APPROVED.value
            record.approved_by = approved_by
            if record.issue is not None:
                record.issue.approval_status = ApprovalStatus.APPROVED.value
                record.issue.approved_by = approved_by
        logger.info(f"Fuel record {record_id} approved by {approved_by}")

    def list_fuel_records(
        self,
        fuel_type: Optional[str] = None,
        equipment_number: Optional[str] = None,
        status: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Dict:
        query = (
            self.db.query(FuelRecord, IssueRecord)
            .join(IssueRecord, IssueRecord.id == FuelRecord.issue_fk)
        )
        if fuel_type:
            query = query.filter(FuelRecord.fuel_type == fuel_type.strip().lower())
        if equipment_number and equipment_number.strip():
            query = query.filter(IssueRecord.issued_for == equipment_number.strip())
        if status and status != "all":
            query = query.filter(FuelRecord.approval_status == status)

        total = query.count()
        rows = (
            query.order_by(IssueRecord.issue_date.desc(), FuelRecord.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return {
            "data": [
                {
                    "id": record.id,
                    "fuelType": record.fuel_type,
                    "issueId": issue.id,
                    "issueDate": issue.issue_date,
                    "issueSlipNumber": issue.issue_slip_number,
                    "equipmentNumber": issue.issued_for,
                    "quantity": issue.issue_quantity,
                    "kilometers": record.kilometers,
                    "isKilometerReset": record.is_kilometer_reset,
                    "fuelPrice": record.fuel_price,
                    "weekNumber": record.week_number,
                    "fy": record.fy,
                    "approvalStatus": record.approval_status,
                    "issuedBy": issue.issued_by,
                }
                for record, issue in rows
            ],
            "pagination": {
                "currentPage": page,
                "pageSize": page_size,
                "totalCount": total,
                "totalPages": total_pages(total, page_size),
            },
        }

    def get_fuel_config(self, fuel_type: str) -> Dict:
        """Equipment allowed for a fuel type with their last odometer reading"""
        fuel_type = (fuel_type or '').strip().lower()
        fuel_nac_code(fuel_type)
        raw = self.config.get_config("fuel").get(f"valid_equipment_list_{fuel_type}")
        if raw is None:
            raise NotFoundError("Fuel configuration not found")
        equipment_list = [item for item in split_csv(raw) if ' ' not in item]

        kilometers = {}
        for equipment in equipment_list:
            latest = (
                self.db.query(FuelRecord)
                .join(IssueRecord, IssueRecord.id == FuelRecord.issue_fk)
                .filter(FuelRecord.fuel_type == fuel_type, IssueRecord.issued_for == equipment)
                .order_by(IssueRecord.issue_date.desc(), FuelRecord.id.desc())
                .first()
            )
            if latest is None or latest.is_kilometer_reset:
                kilometers[equipment] = Decimal('0')
            else:
                kilometers[equipment] = latest.kilometers

        price = (
            self.db.query(FuelRecord.fuel_price)
            .filter(FuelRecord.fuel_type == fuel_type)
            .order_by(FuelRecord.created_at.desc(), FuelRecord.id.desc())
            .first()
        )
        return {
            "equipmentList": equipment_list,
            "equipmentKilometers": kilometers,
            "latestFuelPrice": price[0] if price else Decimal('0'),
        }

    def receive_fuel(self, data: FuelReceiveCreate) -> Dict:
        nac_code = fuel_nac_code(data.fuel_type)
        with transaction(self.db):
            receipt = FuelReceipt(
                nac_code=nac_code,
                receive_date=data.receive_date,
                quantity=data.quantity,
                received_by=data.received_by,
            )
            self.db.add(receipt)
            item_name = '' if self.stock.get_item_by_code(nac_code) else data.fuel_type.title()
            self.stock.apply_receipt(nac_code, data.quantity, item_name=item_name, unit="L")
        logger.info(f"Received {format_quantity(data.quantity)}L of {data.fuel_type} by {data.received_by}")
        return {"message": "Fuel received successfully", "transactionId": receipt.id}

    def last_receive(self, fuel_type: str = "petrol") -> Dict:
        nac_code = fuel_nac_code(fuel_type)
        receipt = (
            self.db.query(FuelReceipt)
            .filter(FuelReceipt.nac_code == nac_code)
            .order_by(FuelReceipt.receive_date.desc(), FuelReceipt.id.desc())
            .first()
        )
        return {
            "lastReceiveDate": receipt.receive_date if receipt else None,
            "lastReceiveQuantity": receipt.quantity if receipt else None,
        }
