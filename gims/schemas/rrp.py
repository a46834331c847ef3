"""RRP Schemas"""

from pydantic import Field, model_validator
from typing import Optional, List, Literal
from datetime import date
from decimal import Decimal

from .common import ApiModel


class RRPItem(ApiModel):
    receive_id: int
    price: Decimal = Field(..., ge=0)
    vat_status: bool = False
    customs_charge: Decimal = Field(Decimal("0"), ge=0)


class RRPCreate(ApiModel):
    type: Literal["local", "foreign"] = "local"
    rrp_number: Optional[str] = None
    rrp_date: Optional[date] = None
    invoice_date: Optional[date] = None
    supplier: Optional[str] = None
    inspection_user: Optional[str] = None
    invoice_number: Optional[str] = None
    freight_charge: Decimal = Field(Decimal("0"), ge=0)
    custom_service_charge: Decimal = Field(Decimal("0"), ge=0)
    vat_rate: Decimal = Field(Decimal("0"), ge=0)
    created_by: Optional[str] = None
    customs_date: Optional[date] = None
    customs_number: Optional[str] = None
    po_number: Optional[str] = None
    airway_bill_number: Optional[str] = None
    currency: Optional[str] = None
    forex_rate: Optional[Decimal] = Field(None, gt=0)
    items: List[RRPItem] = []

    @model_validator(mode="after")
    def check_required(self):
        if (self.missing(["rrp_number", "supplier", "created_by"])
                or self.rrp_date is None or not self.items):
            raise ValueError("Missing required fields (rrp_number, rrp_date, supplier, created_by, items)")
        if self.type == "foreign" and self.missing(["currency"]):
            raise ValueError("Currency is required for foreign RRP")
        return self


class RRPLineStatusUpdate(ApiModel):
    approval_status: Literal["APPROVED", "REJECTED"]
