"""
NAC Unit Service
Maintains the units of measure available per NAC code and the default unit
"""
from typing import Dict, Optional
from sqlalchemy.orm import Session
from sqlalchemy import or_

from gims.core.database import transaction, upsert
from gims.core.exceptions import NotFoundError, ConflictError
from gims.core.logging import get_logger
from gims.models import NacUnit, StockItem
from gims.schemas.settings import NacUnitCreate, NacUnitUpdate
from gims.schemas.common import total_pages

logger = get_logger("settings")


class NacUnitService:
    """
    NAC unit maintenance

    At most one unit per NAC code carries ``is_default``. Setting a default
    clears the code's other defaults in the same transaction.
    """

    def __init__(self, db: Session):
        self.db = db

    def list_units(self, search: Optional[str] = None, only_default: bool = False,
                   page: int = 1, page_size: int = 20) -> Dict:
        query = self.db.query(NacUnit, StockItem.item_name).outerjoin(
            StockItem, StockItem.nac_code == NacUnit.nac_code
        )
        if search:
            term = f"%{search.strip()}%"
            query = query.filter(or_(
                NacUnit.nac_code.ilike(term),
                NacUnit.unit.ilike(term),
                StockItem.item_name.ilike(term),
            ))
        if only_default:
            query = query.filter(NacUnit.is_default.is_(True))

        total = query.count()
        rows = (
            query.order_by(NacUnit.nac_code, NacUnit.is_default.desc(), NacUnit.unit)
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return {
            "data": [
                {
                    "id": unit.id,
                    "nac_code": unit.nac_code,
                    "unit": unit.unit,
                    "is_default": bool(unit.is_default),
                    "item_name": item_name,
                    "created_at": unit.created_at,
                    "updated_at": unit.updated_at,
                }
                for unit, item_name in rows
            ],
            "pagination": {
                "currentPage": page,
                "pageSize": page_size,
                "totalCount": total,
                "totalPages": total_pages(total, page_size),
            },
        }

    def units_for_nac(self, nac_code: str) -> Dict:
        units = (
            self.db.query(NacUnit)
            .filter(NacUnit.nac_code == nac_code)
            .order_by(NacUnit.is_default.desc(), NacUnit.unit)
            .all()
        )
        if not units:
            # Fall back to the unit recorded on the stock item
            stock = self.db.query(StockItem).filter(StockItem.nac_code == nac_code).first()
            if stock and stock.unit:
                return {"units": [stock.unit], "defaultUnit": stock.unit}
            return {"units": [], "defaultUnit": None}

        default = next((u.unit for u in units if u.is_default), None)
        return {"units": [u.unit for u in units], "defaultUnit": default}

    def create_unit(self, data: NacUnitCreate) -> NacUnit:
        with transaction(self.db):
            if data.is_default:
                self._clear_defaults(data.nac_code)
            upsert(
                self.db, NacUnit,
                {"nac_code": data.nac_code, "unit": data.unit, "is_default": data.is_default},
                index_elements=["nac_code", "unit"],
                update_fields=["is_default"],
            )

        unit = (
            self.db.query(NacUnit)
            .filter(NacUnit.nac_code == data.nac_code, NacUnit.unit == data.unit)
            .one()
        )
        logger.info(f"NAC unit saved: {data.nac_code}/{data.unit} default={data.is_default}")
        return unit

    def update_unit(self, unit_id: int, data: NacUnitUpdate) -> NacUnit:
        unit = self.db.query(NacUnit).filter(NacUnit.id == unit_id).first()
        if not unit:
            raise NotFoundError("NAC unit not found")

        clash = (
            self.db.query(NacUnit.id)
            .filter(NacUnit.nac_code == unit.nac_code, NacUnit.unit == data.unit, NacUnit.id != unit_id)
            .first()
        )
        if clash:
            raise ConflictError(f"Unit {data.unit} already exists for NAC code {unit.nac_code}")

        with transaction(self.db):
            if data.is_default:
                self._clear_defaults(unit.nac_code, exclude_id=unit_id)
            unit.unit = data.unit
            unit.is_default = data.is_default

        self.db.refresh(unit)
        logger.info(f"NAC unit {unit_id} updated: {unit.nac_code}/{unit.unit} default={unit.is_default}")
        return unit

    def delete_unit(self, unit_id: int) -> None:
        unit = self.db.query(NacUnit).filter(NacUnit.id == unit_id).first()
        if not unit:
            raise NotFoundError("NAC unit not found")
        label = f"{unit.nac_code}/{unit.unit}"
        with transaction(self.db):
            self.db.delete(unit)
        logger.info(f"NAC unit {unit_id} deleted: {label}")

    def search_nac_codes(self, term: str, limit: int = 20):
        """NAC codes from stock matching the term, ignoring embedded spaces"""
        term = (term or "").strip()
        if not term:
            return []
        compact = term.replace(" ", "")
        rows = (
            self.db.query(StockItem.nac_code, StockItem.item_name)
            .filter(or_(
                StockItem.nac_code.ilike(f"%{term}%"),
                StockItem.item_name.ilike(f"%{term}%"),
                StockItem.nac_code.ilike(f"%{compact}%"),
            ))
            .distinct()
            .order_by(StockItem.nac_code)
            .limit(limit)
            .all()
        )
        return [{"nac_code": code, "item_name": name} for code, name in rows]

    def _clear_defaults(self, nac_code: str, exclude_id: Optional[int] = None):
        query = self.db.query(NacUnit).filter(NacUnit.nac_code == nac_code, NacUnit.is_default.is_(True))
        if exclude_id is not None:
            query = query.filter(NacUnit.id != exclude_id)
        query.update({NacUnit.is_default: False}, synchronize_session=False)
