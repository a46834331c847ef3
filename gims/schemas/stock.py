"""Stock and Issue Schemas"""

from pydantic import BaseModel, Field, model_validator
from typing import Optional, List
from datetime import date
from decimal import Decimal

from .common import ApiModel


class StockItemCreate(ApiModel):
    nac_code: Optional[str] = None
    item_name: Optional[str] = None
    part_number: Optional[str] = None
    equipment_number: Optional[str] = None
    current_balance: Optional[Decimal] = Field(None, ge=0)
    unit: Optional[str] = None
    location: Optional[str] = None
    card_number: Optional[str] = None
    image_url: Optional[str] = None

    @model_validator(mode="after")
    def check_required(self):
        required = ["nac_code", "item_name", "part_number", "equipment_number",
                    "current_balance", "location", "card_number"]
        if self.missing(required):
            raise ValueError("All fields are required")
        return self


class StockItemUpdate(StockItemCreate):
    pass


class StockItemResponse(BaseModel):
    id: int
    nac_code: str
    item_name: str
    part_numbers: str
    applicable_equipments: str
    current_balance: Decimal
    unit: Optional[str] = None
    location: Optional[str] = None
    card_number: Optional[str] = None
    image_url: Optional[str] = None

    model_config = {"from_attributes": True}


class IssuedBy(ApiModel):
    name: str = Field(..., min_length=1)
    staff_id: str = Field(..., min_length=1)


class IssueItem(ApiModel):
    nac_code: str = Field(..., min_length=1)
    quantity: Decimal = Field(..., gt=0)
    equipment_number: str = Field(..., min_length=1)
    part_number: Optional[str] = None


class IssueCreate(ApiModel):
    issue_date: Optional[date] = None
    items: List[IssueItem] = []
    issued_by: Optional[IssuedBy] = None

    @model_validator(mode="after")
    def check_required(self):
        if self.issue_date is None or not self.items or self.issued_by is None:
            raise ValueError("Missing required fields")
        return self


class IssueDecision(ApiModel):
    ids: List[int] = Field(..., min_length=1)
    approved_by: Optional[str] = None
    rejected_by: Optional[str] = None
    rejection_reason: Optional[str] = None


class IssueRecordUpdate(ApiModel):
    issue_date: Optional[date] = None
    nac_code: Optional[str] = None
    part_number: Optional[str] = None
    issue_quantity: Optional[Decimal] = Field(None, gt=0)
    issued_for: Optional[str] = None
