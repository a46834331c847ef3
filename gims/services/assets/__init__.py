"""Asset services: configurable asset types and their assets"""

from .asset_types import AssetTypeService
from .assets import AssetService

__all__ = ["AssetTypeService", "AssetService"]
