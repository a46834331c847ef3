"""
GIMS Asset Models
User-configurable asset types and their assets
"""
from datetime import datetime
from sqlalchemy import Column, String, Integer, DateTime, Text, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from gims.core.database import Base

VALID_PROPERTY_NAMES = (
    "equipment_manufacturer_name",
    "model_name",
    "series",
    "engine_number",
    "engine_model_number",
    "serial_number",
    "transmission_model",
    "vin_number",
    "weight",
    "name",
    "size",
    "quantity",
    "purchase_year",
    "purchase_amount",
)


class AssetType(Base):
    """Asset type with its enabled property set"""
    __tablename__ = "asset_types"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), unique=True, nullable=False)
    description = Column(Text)
    created_by = Column(String(100))

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    properties = relationship("AssetTypeProperty", back_populates="asset_type",
                              cascade="all, delete-orphan",
                              order_by="AssetTypeProperty.display_order")
    assets = relationship("Asset", back_populates="asset_type")


class AssetTypeProperty(Base):
    __tablename__ = "asset_type_properties"

    id = Column(Integer, primary_key=True, index=True)
    asset_type_id = Column(Integer, ForeignKey("asset_types.id", ondelete="CASCADE"), nullable=False)
    property_name = Column(String(50), nullable=False)
    is_required = Column(Boolean, nullable=False, default=False)
    display_order = Column(Integer, nullable=False, default=0)

    asset_type = relationship("AssetType", back_populates="properties")

    __table_args__ = (
        UniqueConstraint("asset_type_id", "property_name", name="uq_asset_type_properties_pair"),
    )


class Asset(Base):
    __tablename__ = "assets"

    id = Column(Integer, primary_key=True, index=True)
    asset_type_id = Column(Integer, ForeignKey("asset_types.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    created_by = Column(String(100))

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    asset_type = relationship("AssetType", back_populates="assets")
    property_values = relationship("AssetPropertyValue", back_populates="asset",
                                   cascade="all, delete-orphan")


class AssetPropertyValue(Base):
    __tablename__ = "asset_property_values"

    id = Column(Integer, primary_key=True, index=True)
    asset_id = Column(Integer, ForeignKey("assets.id", ondelete="CASCADE"), nullable=False)
    property_name = Column(String(50), nullable=False)
    property_value = Column(Text)

    asset = relationship("Asset", back_populates="property_values")

    __table_args__ = (
        UniqueConstraint("asset_id", "property_name", name="uq_asset_property_values_pair"),
    )
