"""Receive Schemas: purchase, tender and borrow receives"""

from pydantic import Field, model_validator
from typing import Optional, List
from datetime import date
from decimal import Decimal

from .common import ApiModel


class ReceiveItem(ApiModel):
    request_id: Optional[int] = None
    nac_code: Optional[str] = None
    part_number: str = ""
    item_name: str = ""
    receive_quantity: Decimal
    equipment_number: Optional[str] = None
    image_path: Optional[str] = None
    unit: Optional[str] = None
    location: Optional[str] = None
    card_number: Optional[str] = None
    is_new_item: bool = False


class ReceiveCreate(ApiModel):
    receive_date: Optional[date] = None
    received_by: Optional[str] = None
    remarks: Optional[str] = None
    items: List[ReceiveItem] = []

    @model_validator(mode="after")
    def check_required(self):
        if self.receive_date is None or self.missing(["received_by"]) or not self.items:
            raise ValueError("Missing required fields (receiveDate, receivedBy, items)")
        return self


class TenderReceiveCreate(ApiModel):
    receive_date: Optional[date] = None
    received_by: Optional[str] = None
    tender_number: Optional[str] = None
    items: List[ReceiveItem] = []

    @model_validator(mode="after")
    def check_required(self):
        if (self.receive_date is None or self.missing(["received_by", "tender_number"])
                or not self.items):
            raise ValueError("Missing required fields (receiveDate, receivedBy, tenderNumber, items)")
        return self


class BorrowReceiveCreate(ApiModel):
    receive_date: Optional[date] = None
    received_by: Optional[str] = None
    borrow_source_id: Optional[int] = None
    borrow_reference_number: Optional[str] = None
    items: List[ReceiveItem] = []

    @model_validator(mode="after")
    def check_required(self):
        if (self.receive_date is None or self.missing(["received_by"])
                or not self.borrow_source_id or not self.items):
            raise ValueError("Missing required fields (receiveDate, receivedBy, borrowSourceId, items)")
        return self


class BorrowReturnCreate(ApiModel):
    borrow_receive_id: Optional[int] = None
    return_date: Optional[date] = None
    received_by: Optional[str] = None

    @model_validator(mode="after")
    def check_required(self):
        if not self.borrow_receive_id or self.return_date is None or self.missing(["received_by"]):
            raise ValueError("Missing required fields (borrowReceiveId, returnDate, receivedBy)")
        return self


class ReceiveUpdate(ApiModel):
    received_quantity: Optional[Decimal] = Field(None, gt=0)
    part_number: Optional[str] = None
    nac_code: Optional[str] = None
    item_name: Optional[str] = None
    unit: Optional[str] = None
    location: Optional[str] = None
    card_number: Optional[str] = None
    image_path: Optional[str] = None
    equipment_number: Optional[str] = None


class ReceiveRejection(ApiModel):
    rejected_by: Optional[str] = None
    rejection_reason: Optional[str] = ""


class UnitConversionSave(ApiModel):
    nac_code: Optional[str] = None
    requested_unit: Optional[str] = None
    received_unit: Optional[str] = None
    conversion_base: Optional[Decimal] = Field(None, gt=0)

    @model_validator(mode="after")
    def check_required(self):
        if self.missing(["nac_code", "requested_unit", "received_unit"]) or self.conversion_base is None:
            raise ValueError("nacCode, requestedUnit, receivedUnit, and conversionBase are required")
        return self


class ReceiveRecordUpdate(ApiModel):
    receive_date: Optional[date] = None
    received_quantity: Optional[Decimal] = Field(None, gt=0)
    part_number: Optional[str] = None
    item_name: Optional[str] = None
    unit: Optional[str] = None
    equipment_number: Optional[str] = None
    location: Optional[str] = None
    card_number: Optional[str] = None
    image_path: Optional[str] = None
    received_by: Optional[str] = None
