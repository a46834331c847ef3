"""
Asset Service
Assets and the property values enabled by their type
"""
from typing import Dict, Optional
from sqlalchemy.orm import Session
from sqlalchemy import or_

from gims.core.database import transaction
from gims.core.exceptions import NotFoundError, ValidationError
from gims.core.logging import get_logger
from gims.models import Asset, AssetType, AssetPropertyValue
from gims.schemas.asset import AssetCreate, AssetUpdate
from gims.schemas.common import total_pages
from gims.services.assets.asset_types import AssetTypeService

logger = get_logger("asset")

MAX_ASSET_PAGE_SIZE = 100


class AssetService:

    def __init__(self, db: Session):
        self.db = db
        self.types = AssetTypeService(db)

    def list_assets(self, asset_type_id: Optional[int] = None, search: Optional[str] = None,
                    page: int = 1, page_size: int = 20) -> Dict:
        page_size = min(page_size, MAX_ASSET_PAGE_SIZE)
        query = self.db.query(Asset, AssetType).outerjoin(AssetType, Asset.asset_type_id == AssetType.id)
        if asset_type_id:
            query = query.filter(Asset.asset_type_id == asset_type_id)
        if search and search.strip():
            term = f"%{search.strip()}%"
            query = query.filter(or_(Asset.name.ilike(term), AssetType.name.ilike(term)))

        total = query.count()
        rows = (
            query.order_by(Asset.created_at.desc(), Asset.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        logger.info(f"Fetched {len(rows)} assets")
        return {
            "data": [
                {
                    "id": asset.id,
                    "asset_type_id": asset.asset_type_id,
                    "name": asset.name,
                    "description": asset.description,
                    "created_by": asset.created_by,
                    "created_at": asset.created_at,
                    "updated_at": asset.updated_at,
                    "asset_type_name": asset_type.name if asset_type else None,
                }
                for asset, asset_type in rows
            ],
            "pagination": {
                "page": page,
                "pageSize": page_size,
                "total": total,
                "totalPages": total_pages(total, page_size),
            },
        }

    def get_asset_record(self, asset_id: int) -> Asset:
        asset = self.db.query(Asset).filter(Asset.id == asset_id).first()
        if not asset:
            raise NotFoundError("Asset not found")
        return asset

    def get_asset(self, asset_id: int) -> Dict:
        asset = self.get_asset_record(asset_id)
        asset_type = asset.asset_type
        return {
            "id": asset.id,
            "asset_type_id": asset.asset_type_id,
            "name": asset.name,
            "description": asset.description,
            "created_by": asset.created_by,
            "created_at": asset.created_at,
            "updated_at": asset.updated_at,
            "asset_type": {
                "id": asset_type.id,
                "name": asset_type.name,
                "description": asset_type.description,
                "properties": [
                    {
                        "property_name": prop.property_name,
                        "is_required": prop.is_required,
                        "display_order": prop.display_order,
                    }
                    for prop in asset_type.properties
                ],
            },
            "property_values": {value.property_name: value.property_value for value in asset.property_values},
        }

    def create_asset(self, data: AssetCreate) -> Dict:
        asset_type = self.types.get_type(data.asset_type_id)
        values = self._checked_values(asset_type, data.properties)

        with transaction(self.db):
            asset = Asset(
                asset_type_id=asset_type.id,
                name=data.name,
                description=data.description,
                created_by=data.created_by,
            )
            asset.property_values = [
                AssetPropertyValue(property_name=name, property_value=value) for name, value in values.items()
            ]
            self.db.add(asset)

        logger.info(f"Asset created: {asset.name} ({asset_type.name}) by {data.created_by}")
        return self.get_asset(asset.id)

    def update_asset(self, asset_id: int, data: AssetUpdate) -> Dict:
        asset = self.get_asset_record(asset_id)
        asset_type = self.types.get_type(data.asset_type_id)
        values = self._checked_values(asset_type, data.properties)

        with transaction(self.db):
            asset.asset_type_id = asset_type.id
            asset.name = data.name
            if data.description is not None:
                asset.description = data.description
            asset.property_values.clear()
            self.db.flush()
            asset.property_values.extend(
                AssetPropertyValue(property_name=name, property_value=value) for name, value in values.items()
            )

        logger.info(f"Asset updated: {asset_id}")
        return self.get_asset(asset_id)

    def delete_asset(self, asset_id: int) -> None:
        asset = self.get_asset_record(asset_id)
        with transaction(self.db):
            self.db.delete(asset)
        logger.info(f"Asset deleted: {asset_id}")

    def _checked_values(self, asset_type: AssetType, properties: Dict[str, Optional[str]]) -> Dict[str, str]:
        """Non blank values, checked against the properties enabled on the type"""
        enabled = {prop.property_name: prop for prop in asset_type.properties}
        values = {
            name: str(value).strip()
            for name, value in (properties or {}).items()
            if value is not None and str(value).strip()
        }
        for name in values:
            if name not in enabled:
                raise ValidationError(f"Property '{name}' is not enabled for asset type {asset_type.name}")
        for name, prop in enabled.items():
            if prop.is_required and name not in values:
                raise ValidationError(f"Required property '{name}' is missing")
        return values
