"""Asset Schemas"""

from pydantic import BaseModel, Field, model_validator
from typing import Optional, List, Dict

from .common import ApiModel


class AssetTypePropertyIn(ApiModel):
    property_name: str
    is_required: bool = False
    display_order: Optional[int] = None


class AssetTypeCreate(ApiModel):
    name: Optional[str] = None
    description: Optional[str] = None
    created_by: Optional[str] = None
    properties: List[AssetTypePropertyIn] = []

    @model_validator(mode="after")
    def check_required(self):
        if self.missing(["name"]):
            raise ValueError("Asset type name is required")
        self.name = self.name.strip()
        return self


class AssetTypeUpdate(AssetTypeCreate):
    pass


class AssetCreate(ApiModel):
    asset_type_id: Optional[int] = None
    name: Optional[str] = None
    description: Optional[str] = None
    created_by: Optional[str] = None
    properties: Dict[str, Optional[str]] = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_required(self):
        if not self.asset_type_id or self.missing(["name"]):
            raise ValueError("Asset type ID and name are required")
        self.name = self.name.strip()
        return self


class AssetUpdate(AssetCreate):
    pass


class AssetTypePropertyOut(BaseModel):
    property_name: str
    is_required: bool
    display_order: int

    model_config = {"from_attributes": True}
