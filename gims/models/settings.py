"""
GIMS Settings Models
NAC units, unit conversions and application configuration
"""
from datetime import datetime
from sqlalchemy import Column, String, Integer, Numeric, DateTime, Text, Boolean, UniqueConstraint

from gims.core.database import Base


class NacUnit(Base):
    """Unit of measure available for a NAC code, at most one default per code"""
    __tablename__ = "nac_units"

    id = Column(Integer, primary_key=True, index=True)
    nac_code = Column(String(50), nullable=False, index=True)
    unit = Column(String(20), nullable=False)
    is_default = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("nac_code", "unit", name="uq_nac_units_nac_code_unit"),
    )


class UnitConversion(Base):
    """How many ``to_unit`` make up one ``from_unit`` for a NAC code"""
    __tablename__ = "unit_conversions"

    id = Column(Integer, primary_key=True, index=True)
    nac_code = Column(String(50), nullable=False, index=True)
    from_unit = Column(String(20), nullable=False)
    to_unit = Column(String(20), nullable=False)
    conversion_base = Column(Numeric(12, 4), nullable=False)

    __table_args__ = (
        UniqueConstraint("nac_code", "from_unit", "to_unit", name="uq_unit_conversions_pair"),
    )


class AppConfig(Base):
    """Key/value configuration grouped by type (current_fy, section_code, ...)"""
    __tablename__ = "app_config"

    id = Column(Integer, primary_key=True, index=True)
    config_type = Column(String(50), nullable=False, index=True)
    config_name = Column(String(100), nullable=False)
    config_value = Column(Text, nullable=False, default='')

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("config_type", "config_name", name="uq_app_config_type_name"),
    )


class LocationPhrase(Base):
    """Reusable storage location text offered when receiving"""
    __tablename__ = "location_phrases"

    id = Column(Integer, primary_key=True, index=True)
    phrase = Column(String(255), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
