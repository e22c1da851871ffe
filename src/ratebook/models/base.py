# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Base Pydantic model configuration for all rating models.

Rating payloads travel as JSON messages with camelCase keys (``coverageId``,
``riskFactors``), while Python code works with snake_case attributes. Every
model accepts either spelling on input and dumps camelCase when asked for
``by_alias=True``.
"""

import math
from typing import Any

from beartype import beartype
from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


@beartype
class BaseModelConfig(BaseModel):
    """Base model with strict configuration for all domain entities.

    Enforces:
    - Immutability (frozen=True)
    - No extra fields allowed (extra="forbid")
    - camelCase wire aliases with snake_case attribute access
    - Finite numbers only (NaN and infinities are rejected)
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_assignment=True,
        str_strip_whitespace=True,
        validate_default=True,
        alias_generator=to_camel,
        populate_by_name=True,
        allow_inf_nan=False,
    )

    def to_wire(self) -> dict:
        """Dump to a JSON-compatible dict using wire (camelCase) keys."""
        return self.model_dump(mode="json", by_alias=True)


class OpenConfigModel(BaseModelConfig):
    """Step configuration block; unknown keys are kept, not rejected."""

    model_config = ConfigDict(
        frozen=True,
        extra="allow",
        str_strip_whitespace=True,
        validate_default=True,
        alias_generator=to_camel,
        populate_by_name=True,
        allow_inf_nan=False,
    )

    @model_validator(mode="after")
    def reject_non_finite_extras(self) -> "OpenConfigModel":
        """Apply the finite-number rule to keys kept outside the declared fields."""
        for key, value in (self.model_extra or {}).items():
            if _has_non_finite(value):
                raise ValueError(f"{key} must be a finite number")
        return self


def _has_non_finite(value: Any) -> bool:
    if isinstance(value, float):
        return not math.isfinite(value)
    if isinstance(value, dict):
        return any(_has_non_finite(item) for item in value.values())
    if isinstance(value, (list, tuple)):
        return any(_has_non_finite(item) for item in value)
    return False
