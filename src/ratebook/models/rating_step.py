# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Rating step model.

A rating step is one operation in a rate program. On the wire a step is
``{"id", "type", "config", "order"}`` where the keys allowed in ``config``
depend on ``type``; here each step type is its own model and ``RatingStep``
is the union discriminated on ``type``, so an unknown type fails validation
and evaluation code can dispatch exhaustively.
"""

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import Field, TypeAdapter

from .base import BaseModelConfig, OpenConfigModel
from .rating_tables import ILFTableEntry


class RatingStepType(str, Enum):
    """Supported rating operations."""

    BASE_RATE = "BaseRate"
    MULTIPLY = "Multiply"
    ADD = "Add"
    SUBTRACT = "Subtract"
    LOOKUP = "Lookup"
    CONDITIONAL = "Conditional"
    ILF = "ILF"
    EXP_MOD = "ExpMod"


# Step configuration blocks


class BaseRateConfig(OpenConfigModel):
    """Scale the seeded rate by exposure units (``riskFactors[exposureKey] / per``)."""

    exposure_key: str | None = Field(default=None)
    per: float = Field(default=1.0, gt=0, description="Rating basis divisor, e.g. 100 for per-$100")
    label: str | None = Field(default=None)


class MultiplyConfig(OpenConfigModel):
    factor_key: str | None = Field(default=None)
    label: str | None = Field(default=None)


class AddConfig(OpenConfigModel):
    value: float = Field(default=0.0)
    label: str | None = Field(default=None)


class SubtractConfig(OpenConfigModel):
    value: float = Field(default=0.0)
    label: str | None = Field(default=None)


class LookupConfig(OpenConfigModel):
    lookup_key: str | None = Field(default=None)
    label: str | None = Field(default=None)


class ConditionalConfig(OpenConfigModel):
    """Percentage adjustment applied when ``condition`` holds."""

    condition: str | None = Field(default=None, description="'<factorKey> <op> <number>'")
    adjustment: float = Field(default=0.0, description="Percent, e.g. 10 for +10%")
    label: str | None = Field(default=None)


class ILFConfig(OpenConfigModel):
    """Increased limits: the coverage's selected limit against ``basic_limit``."""

    basic_limit: float = Field(..., gt=0)
    table: list[ILFTableEntry] = Field(default_factory=list)
    label: str | None = Field(default=None)


class ExpModConfig(OpenConfigModel):
    factor_key: str = Field(default="experienceMod")
    label: str | None = Field(default=None)


# Step variants


class _StepBase(BaseModelConfig):
    id: str = Field(..., min_length=1)
    order: int = Field(..., description="Evaluation position; ties keep insertion order")


class BaseRateStep(_StepBase):
    type: Literal["BaseRate"] = "BaseRate"
    config: BaseRateConfig = Field(default_factory=BaseRateConfig)


class MultiplyStep(_StepBase):
    type: Literal["Multiply"] = "Multiply"
    config: MultiplyConfig = Field(default_factory=MultiplyConfig)


class AddStep(_StepBase):
    type: Literal["Add"] = "Add"
    config: AddConfig = Field(default_factory=AddConfig)


class SubtractStep(_StepBase):
    type: Literal["Subtract"] = "Subtract"
    config: SubtractConfig = Field(default_factory=SubtractConfig)


class LookupStep(_StepBase):
    type: Literal["Lookup"] = "Lookup"
    config: LookupConfig = Field(default_factory=LookupConfig)


class ConditionalStep(_StepBase):
    type: Literal["Conditional"] = "Conditional"
    config: ConditionalConfig = Field(default_factory=ConditionalConfig)


class ILFStep(_StepBase):
    type: Literal["ILF"] = "ILF"
    config: ILFConfig


class ExpModStep(_StepBase):
    type: Literal["ExpMod"] = "ExpMod"
    config: ExpModConfig = Field(default_factory=ExpModConfig)


RatingStep = Annotated[
    Union[
        BaseRateStep,
        MultiplyStep,
        AddStep,
        SubtractStep,
        LookupStep,
        ConditionalStep,
        ILFStep,
        ExpModStep,
    ],
    Field(discriminator="type"),
]

rating_step_adapter: TypeAdapter[RatingStep] = TypeAdapter(RatingStep)
rating_steps_adapter: TypeAdapter[list[RatingStep]] = TypeAdapter(list[RatingStep])


def parse_step(data: dict) -> RatingStep:
    """Validate a wire-format step dict into its typed variant."""
    return rating_step_adapter.validate_python(data)


def sort_steps(steps: list[RatingStep]) -> list[RatingStep]:
    """Order steps for evaluation; equal ``order`` values keep their input order."""
    return sorted(steps, key=lambda step: step.order)
