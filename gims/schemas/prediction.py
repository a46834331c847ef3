"""Prediction Schemas"""

from pydantic import Field, field_validator
from typing import Optional, List

from .common import ApiModel


class PredictionBatchRequest(ApiModel):
    nac_codes: List[str] = Field(default_factory=list)

    @field_validator("nac_codes")
    @classmethod
    def clean_codes(cls, v):
        codes = []
        for code in v:
            code = (code or "").strip()
            if code and code not in codes:
                codes.append(code)
        if not codes:
            raise ValueError("nacCodes must be a non-empty array")
        if len(codes) > 200:
            raise ValueError("A maximum of 200 NAC codes can be requested at once")
        return codes


class PredictionRefreshRequest(ApiModel):
    nac_code: Optional[str] = None
