"""Settings Schemas: NAC units, borrow sources, application config"""

from pydantic import field_validator, model_validator
from typing import Optional, Dict

from .common import ApiModel


class NacUnitCreate(ApiModel):
    nac_code: Optional[str] = None
    unit: Optional[str] = None
    is_default: bool = False

    @model_validator(mode="after")
    def check_required(self):
        if self.missing(["nac_code", "unit"]):
            raise ValueError("NAC code and unit are required")
        self.nac_code = self.nac_code.strip()
        self.unit = self.unit.strip()
        return self


class NacUnitUpdate(ApiModel):
    unit: Optional[str] = None
    is_default: bool = False

    @model_validator(mode="after")
    def check_required(self):
        if self.missing(["unit"]):
            raise ValueError("Unit is required")
        self.unit = self.unit.strip()
        return self


class BorrowSourceCreate(ApiModel):
    source_name: Optional[str] = None
    source_code: Optional[str] = None
    contact_person: Optional[str] = None
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    address: Optional[str] = None
    created_by: Optional[str] = None

    @model_validator(mode="after")
    def check_required(self):
        if self.missing(["source_name"]):
            raise ValueError("Source name is required")
        return self


class BorrowSourceUpdate(ApiModel):
    source_name: Optional[str] = None
    source_code: Optional[str] = None
    contact_person: Optional[str] = None
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    address: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("source_name")
    @classmethod
    def name_not_blank(cls, v):
        if v is not None and not v.strip():
            raise ValueError("Source name cannot be empty")
        return v

    @model_validator(mode="after")
    def reject_explicit_nulls(self):
        # both columns are NOT NULL, an explicit null is not "leave unchanged"
        if "source_name" in self.model_fields_set and self.source_name is None:
            raise ValueError("Source name cannot be empty")
        if "is_active" in self.model_fields_set and self.is_active is None:
            raise ValueError("isActive must be a boolean")
        return self


class ConfigUpdate(ApiModel):
    values: Dict[str, str]

    @field_validator("values")
    @classmethod
    def not_empty(cls, v):
        if not v:
            raise ValueError("No configuration values provided")
        return v


class LocationPhraseCreate(ApiModel):
    phrase: Optional[str] = None

    @model_validator(mode="after")
    def check_required(self):
        if self.missing(["phrase"]):
            raise ValueError("Phrase is required")
        self.phrase = self.phrase.strip()
        return self


class LocationPhraseUpdate(LocationPhraseCreate):
    is_active: bool = True
