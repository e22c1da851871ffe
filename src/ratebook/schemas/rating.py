# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Pydantic models used as typed payloads and results for rating computations.

These are the shapes exchanged over the offload channel. Inputs accept
camelCase or snake_case keys; results are dumped with camelCase keys.
"""

from pydantic import Field

from ..models.base import BaseModelConfig
from ..models.rating_step import RatingStep
from ..models.rating_tables import (
    ILFTableEntry,
    LossRecord,
    ScheduleAssessment,
    ScheduleCategory,
    SplitPointEntry,
)

__all__ = [
    "CoverageSelection",
    "BaseRate",
    "ILFCalculationPayload",
    "ILFResult",
    "ExperienceModPayload",
    "ExperienceModResult",
    "ScheduleRatingPayload",
    "AppliedCredit",
    "ScheduleRatingResult",
    "ScheduleRatingInputs",
    "RatingCalculationPayload",
    "StepTrace",
    "RatingCalculationResult",
    "BatchItemResult",
]


class CoverageSelection(BaseModelConfig):
    """Coverage chosen on a quote; only ``selected`` entries are rated."""

    coverage_id: str = Field(..., min_length=1)
    limit: float = Field(..., ge=0)
    deductible: float | None = Field(default=None, ge=0)
    selected: bool = Field(default=True)


class BaseRate(BaseModelConfig):
    """Base rate for one coverage."""

    coverage_id: str = Field(..., min_length=1)
    rate: float = Field(...)
    basis: str = Field(default="", description="Rating unit, e.g. per $100 payroll")


# ILF


class ILFCalculationPayload(BaseModelConfig):
    basic_limit: float = Field(..., ge=0)
    selected_limit: float = Field(..., ge=0)
    line_of_business: str = Field(default="")
    state: str = Field(default="")
    ilf_table: list[ILFTableEntry] = Field(default_factory=list)
    base_premium: float = Field(...)


class ILFResult(BaseModelConfig):
    ilf: float
    basic_limit_premium: float
    increased_limit_premium: float


# Experience modification


class ExperienceModPayload(BaseModelConfig):
    class_code: str = Field(default="")
    payroll: float = Field(..., ge=0)
    loss_history: list[LossRecord] = Field(default_factory=list)
    state: str = Field(default="")
    expected_loss_rate: float = Field(..., ge=0, description="Expected losses per $100 payroll")
    split_point_table: list[SplitPointEntry] = Field(default_factory=list)


class ExperienceModResult(BaseModelConfig):
    experience_mod: float
    expected_losses: float
    actual_primary: float
    ballast: float
    split_point: float


# Schedule rating


class ScheduleRatingPayload(BaseModelConfig):
    base_premium: float = Field(...)
    assessments: dict[str, ScheduleAssessment] = Field(default_factory=dict)
    categories: list[ScheduleCategory] = Field(default_factory=list)


class AppliedCredit(BaseModelConfig):
    category: str
    credit: float
    justification: str


class ScheduleRatingResult(BaseModelConfig):
    total_schedule_credit: float
    applied_credits: list[AppliedCredit] = Field(default_factory=list)
    modified_premium: float


class ScheduleRatingInputs(BaseModelConfig):
    """Schedule assessments applied to every coverage of a rating calculation."""

    assessments: dict[str, ScheduleAssessment] = Field(default_factory=dict)
    categories: list[ScheduleCategory] = Field(default_factory=list)


# Step pipeline


class RatingCalculationPayload(BaseModelConfig):
    """Everything the step pipeline needs to rate one quote."""

    product_id: str = Field(default="")
    state: str = Field(default="")
    coverage_selections: list[CoverageSelection] = Field(default_factory=list)
    risk_factors: dict[str, float] = Field(default_factory=dict)
    base_rates: list[BaseRate] = Field(default_factory=list)
    rating_steps: list[RatingStep] = Field(default_factory=list)
    apply_schedule_rating: bool = Field(default=False)
    apply_experience_mod: bool = Field(default=False)
    experience_mod: ExperienceModPayload | None = Field(
        default=None, description="Inputs for the mod used by ExpMod steps"
    )
    schedule_rating: ScheduleRatingInputs | None = Field(default=None)


class StepTrace(BaseModelConfig):
    """One entry of the audit trace: what was applied and the running premium."""

    step: str
    result: float


class RatingCalculationResult(BaseModelConfig):
    premium: float
    breakdown: dict[str, float] = Field(default_factory=dict)
    steps: list[StepTrace] = Field(default_factory=list)
    product_id: str = Field(default="")
    state: str = Field(default="")
    experience_mod: ExperienceModResult | None = Field(default=None)
    schedule_rating: ScheduleRatingResult | None = Field(default=None)


class BatchItemResult(BaseModelConfig):
    """Outcome of one batch element; a failure does not void the others."""

    index: int = Field(..., ge=0)
    status: str = Field(..., pattern="^(SUCCESS|ERROR)$")
    result: RatingCalculationResult | None = Field(default=None)
    error: str | None = Field(default=None)
