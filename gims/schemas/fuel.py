"""Fuel and Balance Transfer Schemas"""

from pydantic import Field, model_validator
from typing import Optional, List
from datetime import date
from decimal import Decimal

from .common import ApiModel


class FuelLine(ApiModel):
    equipment_number: str = Field(..., min_length=1)
    kilometers: Decimal = Field(Decimal("0"), ge=0)
    quantity: Decimal = Field(..., gt=0)
    is_kilometer_reset: bool = False


class FuelCreate(ApiModel):
    issue_date: Optional[date] = None
    issued_by: Optional[str] = None
    fuel_type: Optional[str] = None
    price: Decimal = Field(Decimal("0"), ge=0)
    records: List[FuelLine] = []

    @model_validator(mode="after")
    def check_required(self):
        if self.issue_date is None or self.missing(["issued_by", "fuel_type"]) or not self.records:
            raise ValueError("Missing required fields (issueDate, issuedBy, fuelType, records)")
        self.fuel_type = self.fuel_type.strip().lower()
        return self


class FuelUpdate(ApiModel):
    kilometers: Optional[Decimal] = Field(None, ge=0)
    is_kilometer_reset: Optional[bool] = None
    fuel_price: Optional[Decimal] = Field(None, ge=0)


class FuelApproval(ApiModel):
    approved_by: Optional[str] = None


class FuelReceiveCreate(ApiModel):
    receive_date: Optional[date] = None
    received_by: Optional[str] = None
    quantity: Optional[Decimal] = Field(None, gt=0)
    fuel_type: str = "petrol"

    @model_validator(mode="after")
    def check_required(self):
        if self.receive_date is None or self.missing(["received_by"]) or self.quantity is None:
            raise ValueError("Missing required fields (receiveDate, receivedBy, quantity)")
        self.fuel_type = self.fuel_type.strip().lower()
        return self


class BalanceTransferCreate(ApiModel):
    from_nac_code: Optional[str] = None
    to_nac_code: Optional[str] = None
    transfer_quantity: Optional[Decimal] = Field(None, gt=0)
    transfer_date: Optional[date] = None
    transferred_by: Optional[str] = None

    @model_validator(mode="after")
    def check_required(self):
        if (self.missing(["from_nac_code", "to_nac_code", "transferred_by"])
                or self.transfer_quantity is None or self.transfer_date is None):
            raise ValueError("All fields are required")
        self.from_nac_code = self.from_nac_code.strip()
        self.to_nac_code = self.to_nac_code.strip()
        if self.from_nac_code == self.to_nac_code:
            raise ValueError("Cannot transfer to the same NAC code")
        return self
