"""
Asset Type Service
Asset types and the set of properties enabled on each of them
"""
from typing import Dict, List
from sqlalchemy.orm import Session, selectinload

from gims.core.database import transaction
from gims.core.exceptions import NotFoundError, ConflictError, ValidationError
from gims.core.logging import get_logger
from gims.models import AssetType, AssetTypeProperty, Asset, VALID_PROPERTY_NAMES
from gims.schemas.asset import AssetTypeCreate, AssetTypeUpdate, AssetTypePropertyIn

logger = get_logger("asset")


def validate_property_names(properties: List[AssetTypePropertyIn]):
    for prop in properties:
        if prop.property_name not in VALID_PROPERTY_NAMES:
            raise ValidationError(
                f"Invalid property name: {prop.property_name}. "
                f"Valid properties are: {', '.join(VALID_PROPERTY_NAMES)}"
            )


def serialize_asset_type(asset_type: AssetType) -> Dict:
    return {
        "id": asset_type.id,
        "name": asset_type.name,
        "description": asset_type.description,
        "created_by": asset_type.created_by,
        "created_at": asset_type.created_at,
        "updated_at": asset_type.updated_at,
        "properties": [
            {
                "property_name": prop.property_name,
                "is_required": prop.is_required,
                "display_order": prop.display_order,
            }
            for prop in asset_type.properties
        ],
    }


class AssetTypeService:

    def __init__(self, db: Session):
        self.db = db

    def list_types(self) -> List[AssetType]:
        return (
            self.db.query(AssetType)
            .options(selectinload(AssetType.properties))
            .order_by(AssetType.name)
            .all()
        )

    def get_type(self, type_id: int) -> AssetType:
        asset_type = self.db.query(AssetType).filter(AssetType.id == type_id).first()
        if not asset_type:
            raise NotFoundError("Asset type not found")
        return asset_type

    def create_type(self, data: AssetTypeCreate) -> AssetType:
        validate_property_names(data.properties)
        self._ensure_unique_name(data.name)

        with transaction(self.db):
            asset_type = AssetType(name=data.name, description=data.description, created_by=data.created_by)
            asset_type.properties = self._build_properties(data.properties)
            self.db.add(asset_type)

        self.db.refresh(asset_type)
        logger.info(f"Asset type created: {asset_type.name} ({len(asset_type.properties)} properties) by {data.created_by}")
        return asset_type

    def update_type(self, type_id: int, data: AssetTypeUpdate) -> AssetType:
        asset_type = self.get_type(type_id)
        validate_property_names(data.properties)
        self._ensure_unique_name(data.name, exclude_id=type_id)

        with transaction(self.db):
            asset_type.name = data.name
            if data.description is not None:
                asset_type.description = data.description
            # The full property set is replaced on every update
            asset_type.properties.clear()
            self.db.flush()
            asset_type.properties.extend(self._build_properties(data.properties))

        self.db.refresh(asset_type)
        logger.info(f"Asset type updated: {type_id}")
        return asset_type

    def delete_type(self, type_id: int) -> None:
        asset_type = self.get_type(type_id)
        count = self.db.query(Asset).filter(Asset.asset_type_id == type_id).count()
        if count:
            raise ConflictError(
                f"Cannot delete asset type. There are {count} asset(s) using this type. "
                "Please delete or reassign those assets first."
            )
        with transaction(self.db):
            self.db.delete(asset_type)
        logger.info(f"Asset type deleted: {type_id}")

    def _build_properties(self, properties: List[AssetTypePropertyIn]) -> List[AssetTypeProperty]:
        seen = set()
        rows = []
        for index, prop in enumerate(properties):
            if prop.property_name in seen:
                continue
            seen.add(prop.property_name)
            rows.append(AssetTypeProperty(
                property_name=prop.property_name,
                is_required=prop.is_required,
                display_order=prop.display_order if prop.display_order is not None else index,
            ))
        return rows

    def _ensure_unique_name(self, name: str, exclude_id: int = None):
        query = self.db.query(AssetType.id).filter(AssetType.name == name)
        if exclude_id is not None:
            query = query.filter(AssetType.id != exclude_id)
        if query.first():
            logger.warning(f"Duplicate asset type name: {name}")
            raise ConflictError("An asset type with this name already exists")
