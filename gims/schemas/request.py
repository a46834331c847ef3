"""Request Schemas"""

from pydantic import Field, model_validator
from typing import Optional, List
from datetime import date
from decimal import Decimal

from .common import ApiModel

REQUIRED_RECORD_FIELDS = [
    "request_number", "nac_code", "request_date", "part_number", "item_name",
    "unit", "requested_quantity", "equipment_number", "requested_by",
]


class RequestRecordBase(ApiModel):
    request_number: Optional[str] = None
    nac_code: Optional[str] = None
    request_date: Optional[date] = None
    part_number: Optional[str] = None
    item_name: Optional[str] = None
    unit: Optional[str] = None
    requested_quantity: Optional[Decimal] = Field(None, gt=0)
    equipment_number: Optional[str] = None
    requested_by: Optional[str] = None
    requested_by_email: Optional[str] = None
    current_balance: Optional[str] = None
    previous_rate: Optional[str] = None
    image_path: Optional[str] = None
    specifications: Optional[str] = None
    remarks: Optional[str] = None
    approval_status: Optional[str] = None

    @model_validator(mode="after")
    def check_required(self):
        if self.missing(REQUIRED_RECORD_FIELDS):
            raise ValueError("Required fields are missing")
        return self


class RequestRecordCreate(RequestRecordBase):
    pass


class RequestRecordUpdate(RequestRecordBase):
    pass


class RequestItem(ApiModel):
    nac_code: str = Field(..., min_length=1)
    part_number: str = Field(..., min_length=1)
    item_name: str = Field(..., min_length=1)
    unit: Optional[str] = None
    request_quantity: Decimal = Field(..., gt=0)
    equipment_number: str = Field(..., min_length=1)
    image_path: Optional[str] = None
    specifications: Optional[str] = None
    requested_by_email: Optional[str] = None


class RequestSubmission(ApiModel):
    request_number: Optional[str] = None
    request_date: Optional[date] = None
    requested_by: Optional[str] = None
    remarks: Optional[str] = None
    items: List[RequestItem] = []

    @model_validator(mode="after")
    def check_required(self):
        if self.missing(["requested_by"]):
            raise ValueError("requestedBy is required")
        if self.missing(["request_number", "request_date"]) or not self.items:
            raise ValueError("Missing required fields (requestNumber, requestDate, items)")
        return self


class ApprovalPayload(ApiModel):
    approved_by: Optional[str] = None

    @model_validator(mode="after")
    def check_required(self):
        if self.missing(["approved_by"]):
            raise ValueError("approvedBy is required")
        return self


class RejectionPayload(ApiModel):
    rejected_by: Optional[str] = None
    rejection_reason: Optional[str] = None

    @model_validator(mode="after")
    def check_required(self):
        if self.missing(["rejected_by", "rejection_reason"]):
            raise ValueError("rejectedBy and rejectionReason are required")
        return self
