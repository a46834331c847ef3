"""
Stock Master Service
Stock item maintenance and balance movements
"""
from typing import Dict, Optional
from decimal import Decimal
from sqlalchemy.orm import Session
from sqlalchemy import or_, func

from gims.core.database import transaction
from gims.core.exceptions import NotFoundError, ConflictError, BusinessRuleError
from gims.core.logging import get_logger
from gims.models import StockItem, IssueRecord, ReceiveRecord, RRPLine
from gims.schemas.stock import StockItemCreate, StockItemUpdate
from gims.schemas.common import total_pages
from gims.services.business_logic import (
    ApprovalStatus, merge_csv, split_csv, expand_equipment_numbers, to_decimal, format_quantity, round_currency
)

logger = get_logger("stock")


class StockMasterService:
    """
    Stock item maintenance

    Balance movements (``apply_receipt``, ``deduct``, ``release``) never
    commit; callers run them inside their own unit of work.
    """

    def __init__(self, db: Session):
        self.db = db

    def search_items(self, search: Optional[str] = None, page: int = 1, page_size: int = 20) -> Dict:
        query = self.db.query(StockItem)
        if search:
            term = f"%{search.strip()}%"
            query = query.filter(or_(
                StockItem.nac_code.ilike(term),
                StockItem.item_name.ilike(term),
                StockItem.part_numbers.ilike(term),
                StockItem.applicable_equipments.ilike(term),
            ))
        total = query.count()
        items = (
            query.order_by(StockItem.nac_code)
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return {
            "data": items,
            "pagination": {
                "currentPage": page,
                "pageSize": page_size,
                "totalCount": total,
                "totalPages": total_pages(total, page_size),
            },
        }

    def get_item(self, item_id: int) -> StockItem:
        item = self.db.query(StockItem).filter(StockItem.id == item_id).first()
        if not item:
            raise NotFoundError("Stock item not found")
        return item

    def item_details(self, item_id: int) -> Dict:
        """
        Stock row with the quantities behind its balance

        ``trueBalance`` is opening stock plus costed receives minus issues;
        ``averageCostPerUnit`` spreads the RRP totals over the costed
        quantity, falling back to the opening stock value.
        """
        item = self.get_item(item_id)
        rrp_quantity = to_decimal(
            self.db.query(func.coalesce(func.sum(ReceiveRecord.received_quantity), 0))
            .filter(ReceiveRecord.nac_code == item.nac_code, ReceiveRecord.rrp_fk.isnot(None))
            .scalar()
        )
        issue_quantity = to_decimal(
            self.db.query(func.coalesce(func.sum(IssueRecord.issue_quantity), 0))
            .filter(
                IssueRecord.nac_code == item.nac_code,
                IssueRecord.approval_status != ApprovalStatus.REJECTED.value,
            )
            .scalar()
        )
        costed = (
            self.db.query(func.count(RRPLine.id), func.coalesce(func.sum(RRPLine.total_amount), 0))
            .join(ReceiveRecord, ReceiveRecord.rrp_fk == RRPLine.id)
            .filter(ReceiveRecord.nac_code == item.nac_code)
            .one()
        )
        open_quantity = to_decimal(item.open_quantity)
        total_cost = to_decimal(costed[1]) if costed[0] else to_decimal(item.open_amount)

        if rrp_quantity > 0:
            average_cost = round_currency(total_cost / rrp_quantity)
        elif open_quantity > 0:
            average_cost = round_currency(total_cost / open_quantity)
        else:
            average_cost = Decimal('0')

        names = split_csv(item.item_name)
        return {
            "id": item.id,
            "nacCode": item.nac_code,
            "itemName": item.item_name,
            "partNumber": item.part_numbers,
            "equipmentNumber": item.applicable_equipments,
            "currentBalance": item.current_balance,
            "location": item.location,
            "cardNumber": item.card_number,
            "unit": item.unit,
            "imageUrl": item.image_url,
            "altText": names[0] if names else '',
            "openQuantity": open_quantity,
            "openAmount": item.open_amount,
            "rrpQuantity": rrp_quantity,
            "issueQuantity": issue_quantity,
            "trueBalance": open_quantity + rrp_quantity - issue_quantity,
            "averageCostPerUnit": average_cost,
        }

    def get_item_by_code(self, nac_code: str) -> Optional[StockItem]:
        return self.db.query(StockItem).filter(StockItem.nac_code == nac_code).first()

    def create_item(self, data: StockItemCreate, username: str = "SYSTEM") -> StockItem:
        nac_code = data.nac_code.strip()
        if self.get_item_by_code(nac_code):
            raise ConflictError("NAC Code already exists")

        item = StockItem(
            nac_code=nac_code,
            item_name=data.item_name.strip(),
            part_numbers=merge_csv("", [data.part_number]),
            applicable_equipments=','.join(expand_equipment_numbers(data.equipment_number)),
            current_balance=data.current_balance,
            open_quantity=data.current_balance,
            unit=data.unit or '',
            location=data.location,
            card_number=data.card_number,
            image_url=data.image_url,
        )
        with transaction(self.db):
            self.db.add(item)
        self.db.refresh(item)
        logger.info(f"Stock item {nac_code} created by {username}")
        return item

    def update_item(self, item_id: int, data: StockItemUpdate, username: str = "SYSTEM") -> StockItem:
        item = self.get_item(item_id)
        nac_code = data.nac_code.strip()
        if nac_code != item.nac_code and self.get_item_by_code(nac_code):
            raise ConflictError("NAC Code already exists")

        with transaction(self.db):
            item.nac_code = nac_code
            item.item_name = data.item_name.strip()
            item.part_numbers = merge_csv("", data.part_number.split(','))
            item.applicable_equipments = ','.join(expand_equipment_numbers(data.equipment_number))
            item.current_balance = data.current_balance
            item.location = data.location
            item.card_number = data.card_number
            if data.unit:
                item.unit = data.unit
            if data.image_url:
                item.image_url = data.image_url
        self.db.refresh(item)
        logger.info(f"Stock item {item_id} ({nac_code}) updated by {username}")
        return item

    def delete_item(self, item_id: int, username: str = "SYSTEM") -> None:
        item = self.get_item(item_id)
        nac_code = item.nac_code
        with transaction(self.db):
            self.db.delete(item)
        logger.info(f"Stock item {item_id} ({nac_code}) deleted by {username}")

    # Balance movements

    def apply_receipt(
        self,
        nac_code: str,
        quantity: Decimal,
        item_name: str = '',
        part_number: str = '',
        equipment_number: str = '',
        unit: str = '',
        location: Optional[str] = None,
        card_number: Optional[str] = None,
        image_url: Optional[str] = None,
    ) -> StockItem:
        """Increase the balance of a NAC code, creating its stock row if needed"""
        if not (nac_code or '').strip():
            raise BusinessRuleError("Cannot create stock record without a NAC code")

        item = self.get_item_by_code(nac_code)
        equipments = expand_equipment_numbers(equipment_number)
        if item is None:
            item = StockItem(
                nac_code=nac_code,
                item_name=item_name or '',
                part_numbers=merge_csv('', [part_number]),
                applicable_equipments=','.join(equipments),
                current_balance=quantity,
                unit=unit or '',
                location=location or '',
                card_number=card_number or '',
                image_url=image_url,
            )
            self.db.add(item)
            logger.info(f"Stock row created for {nac_code} with balance {format_quantity(quantity)}")
        else:
            item.current_balance = to_decimal(item.current_balance) + quantity
            item.item_name = merge_csv(item.item_name, [item_name], prepend=True)
            item.part_numbers = merge_csv(item.part_numbers, [part_number], prepend=True)
            item.applicable_equipments = merge_csv(item.applicable_equipments, equipments, prepend=True)
            if location:
                item.location = location
            if card_number:
                item.card_number = card_number
            if image_url:
                item.image_url = image_url
            if unit:
                item.unit = unit
            logger.info(f"Stock {nac_code} balance +{format_quantity(quantity)} -> {format_quantity(item.current_balance)}")
        self.db.flush()
        return item

    def deduct(self, nac_code: str, quantity: Decimal, clamp: bool = False) -> StockItem:
        """
        Decrease the balance of a NAC code

        Raises when the balance would go negative, unless ``clamp`` is set in
        which case the balance stops at zero.
        """
        item = self.get_item_by_code(nac_code)
        if item is None:
            raise NotFoundError(f"Item with NAC code {nac_code} not found")

        balance = to_decimal(item.current_balance)
        if quantity > balance:
            if not clamp:
                raise BusinessRuleError(
                    f"Insufficient stock. Requested: {format_quantity(quantity)}, "
                    f"Available: {format_quantity(balance)}"
                )
            quantity = balance
        item.current_balance = balance - quantity
        self.db.flush()
        logger.info(f"Stock {nac_code} balance -{format_quantity(quantity)} -> {format_quantity(item.current_balance)}")
        return item

    def release(self, nac_code: str, quantity: Decimal) -> Optional[StockItem]:
        """Give back a previously deducted quantity"""
        item = self.get_item_by_code(nac_code)
        if item is None:
            logger.warning(f"Cannot restore {format_quantity(quantity)} to missing stock {nac_code}")
            return None
        item.current_balance = to_decimal(item.current_balance) + quantity
        self.db.flush()
        return item
