"""Request bodies for the rate program endpoints."""

from datetime import date

from pydantic import Field

from ..models.base import BaseModelConfig
from ..models.rate_program import FieldCode


class RateProgramCreateRequest(BaseModelConfig):
    org_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    user_id: str = Field(..., min_length=1)


class VersionCreateRequest(BaseModelConfig):
    user_id: str = Field(..., min_length=1)
    notes: str | None = Field(default=None, max_length=1000)


class VersionValidateRequest(BaseModelConfig):
    available_field_codes: list[str | FieldCode] = Field(default_factory=list)


class VersionPublishRequest(BaseModelConfig):
    user_id: str = Field(..., min_length=1)
    effective_start: date
    effective_end: date | None = Field(default=None)
    available_field_codes: list[str | FieldCode] = Field(default_factory=list)
