"""
GIMS SQLAlchemy Models
Database models for the inventory system
"""

# Import all models to ensure they are registered with SQLAlchemy
from .stock import StockItem, IssueRecord
from .request import RequestRecord
from .receive import BorrowSource, ReceiveRecord
from .rrp import RRPHeader, RRPLine
from .settings import NacUnit, UnitConversion, AppConfig, LocationPhrase
from .fuel import FuelRecord, FuelReceipt, BalanceTransfer
from .asset import AssetType, AssetTypeProperty, Asset, AssetPropertyValue, VALID_PROPERTY_NAMES
from .prediction import PredictionMetrics

__all__ = [
    "StockItem",
    "IssueRecord",
    "RequestRecord",
    "BorrowSource",
    "ReceiveRecord",
    "RRPHeader",
    "RRPLine",
    "NacUnit",
    "UnitConversion",
    "AppConfig",
    "LocationPhrase",
    "FuelRecord",
    "FuelReceipt",
    "BalanceTransfer",
    "AssetType",
    "AssetTypeProperty",
    "Asset",
    "AssetPropertyValue",
    "VALID_PROPERTY_NAMES",
    "PredictionMetrics",
]
