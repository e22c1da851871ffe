# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Rate program, version and regression test case models."""

from datetime import date, datetime, timezone
from enum import Enum
from uuid import uuid4

from pydantic import Field

from ..schemas.rating import RatingCalculationPayload
from .base import BaseModelConfig


def _new_id() -> str:
    return str(uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RateProgramStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class VersionStatus(str, Enum):
    """Lifecycle: draft -> published -> archived."""

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class RateProgram(BaseModelConfig):
    """Named rate program scoped to an organization."""

    id: str = Field(default_factory=_new_id)
    org_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    status: RateProgramStatus = Field(default=RateProgramStatus.ACTIVE)

    # Audit fields
    created_by: str = Field(...)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_by: str | None = Field(default=None)
    updated_at: datetime = Field(default_factory=_utcnow)


class RateProgramVersion(BaseModelConfig):
    """Snapshot of a rate program's step set with an effective window.

    ``steps_hash`` and the effective window are only set at publish time.
    """

    id: str = Field(default_factory=_new_id)
    rate_program_id: str = Field(..., min_length=1)
    version_number: int = Field(..., ge=1)
    status: VersionStatus = Field(default=VersionStatus.DRAFT)
    effective_start: date | None = Field(default=None)
    effective_end: date | None = Field(default=None, description="None means still current")
    steps_hash: str | None = Field(default=None)
    validation_warnings: int = Field(default=0, ge=0)
    last_validated_at: datetime | None = Field(default=None)
    notes: str | None = Field(default=None, max_length=1000)

    # Audit fields
    created_by: str = Field(...)
    created_at: datetime = Field(default_factory=_utcnow)
    published_by: str | None = Field(default=None)
    published_at: datetime | None = Field(default=None)

    @property
    def is_draft(self) -> bool:
        return self.status == VersionStatus.DRAFT

    def is_effective_on(self, effective_date: date) -> bool:
        """Check whether the inclusive effective window contains ``effective_date``."""
        if self.status != VersionStatus.PUBLISHED or self.effective_start is None:
            return False
        if effective_date < self.effective_start:
            return False
        return self.effective_end is None or effective_date <= self.effective_end


class FieldCode(BaseModelConfig):
    """Entry from the data dictionary's list of available field codes."""

    code: str = Field(..., min_length=1)
    deprecated: bool = Field(default=False)
    replaced_by: str | None = Field(default=None)


class RatingTestCase(BaseModelConfig):
    """Named input/expected-output pair used for regression checks.

    The payload's own ``rating_steps`` are ignored when the case is run; the
    steps of the version under test are used instead.
    """

    id: str = Field(default_factory=_new_id)
    rate_program_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    payload: RatingCalculationPayload
    expected_premium: float | None = Field(default=None)
    expected_breakdown: dict[str, float] = Field(default_factory=dict)
    tolerance: float = Field(default=0.001, ge=0)
