"""Actuarial table rows consumed by the rating calculators."""

from pydantic import Field

from .base import BaseModelConfig


class ILFTableEntry(BaseModelConfig):
    """Increased limit factor for one policy limit."""

    limit: float = Field(..., ge=0, description="Policy limit")
    factor: float = Field(..., ge=0, description="Increased limit factor at this limit")


class SplitPointEntry(BaseModelConfig):
    """Split point applicable up to a level of expected losses."""

    expected_losses: float = Field(..., ge=0)
    split_point: float = Field(..., ge=0)


class LossRecord(BaseModelConfig):
    """Loss history for one policy year."""

    year: int = Field(..., description="Policy year")
    paid_loss: float = Field(default=0.0, ge=0)
    incurred_loss: float = Field(..., ge=0)
    claim_count: int = Field(default=0, ge=0)


class ScheduleCategory(BaseModelConfig):
    """Schedule rating category with signed percentage bounds.

    ``max_credit`` is the lower bound and ``max_debit`` the upper bound of the
    assessed percentage; the calculator rejects categories where the lower
    bound exceeds the upper one.
    """

    name: str = Field(..., min_length=1)
    max_credit: float = Field(..., description="Lower bound, percent (usually negative)")
    max_debit: float = Field(..., description="Upper bound, percent (usually positive)")

    @property
    def is_inverted(self) -> bool:
        return self.max_credit > self.max_debit


class ScheduleAssessment(BaseModelConfig):
    """Underwriter's assessment for one schedule category."""

    value: float = Field(..., description="Assessed credit/debit, percent")
    reason: str = Field(..., description="Justification recorded for audit")
