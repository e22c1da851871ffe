"""Determinism validation result payloads."""

from enum import Enum

from pydantic import Field, computed_field

from ..models.base import BaseModelConfig


class DeterminismIssueCode(str, Enum):
    # Errors, publish blocking
    UNDEFINED_FIELD = "UNDEFINED_FIELD"
    DUPLICATE_STEP_ID = "DUPLICATE_STEP_ID"
    MISSING_CONFIG = "MISSING_CONFIG"
    INVALID_CONDITION = "INVALID_CONDITION"
    ZERO_BASIC_FACTOR = "ZERO_BASIC_FACTOR"
    # Warnings, persisted as a count
    DEPRECATED_FIELD = "DEPRECATED_FIELD"
    AMBIGUOUS_FIELD = "AMBIGUOUS_FIELD"
    DUPLICATE_ORDER = "DUPLICATE_ORDER"


class DeterminismIssue(BaseModelConfig):
    code: DeterminismIssueCode
    message: str
    step_ids: list[str] = Field(default_factory=list)
    field_codes: list[str] = Field(default_factory=list)


class DeterminismValidationResult(BaseModelConfig):
    errors: list[DeterminismIssue] = Field(default_factory=list)
    warnings: list[DeterminismIssue] = Field(default_factory=list)

    @computed_field(alias="isValid")  # type: ignore[prop-decorator]
    @property
    def is_valid(self) -> bool:
        return not self.errors
