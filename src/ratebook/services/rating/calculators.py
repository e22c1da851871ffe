# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Actuarial rating calculators.

Three table-driven primitives used on their own through the offload channel
and inside the step pipeline:

* ``ILFCalculator`` - increased limit factors by linear interpolation.
* ``ExperienceModCalculator`` - simplified NCCI-style experience modification.
* ``ScheduleRatingCalculator`` - bounded schedule credits and debits.

All calculations run on floats; rounding happens once, at the reporting
boundary, with ROUND_HALF_UP.
"""

import logging
import math
from collections.abc import Mapping, Sequence
from decimal import ROUND_HALF_UP, Decimal

import numpy as np
from beartype import beartype

from ...core.exceptions import RatingComputationError, ScheduleConfigurationError
from ...core.typing_utils import numeric_beartype
from ...models.rating_tables import (
    ILFTableEntry,
    LossRecord,
    ScheduleAssessment,
    ScheduleCategory,
    SplitPointEntry,
)
from ...schemas.rating import (
    AppliedCredit,
    ExperienceModResult,
    ILFResult,
    ScheduleRatingResult,
)
from ..performance_monitor import performance_monitor

logger = logging.getLogger(__name__)

_CENT = Decimal("0.01")
_UNIT = Decimal("1")


@numeric_beartype
def round_currency(value: float) -> float:
    """Round to cents, half up."""
    return _quantize(value, _CENT)


@numeric_beartype
def round_whole(value: float) -> float:
    """Round to whole currency units, half up."""
    return _quantize(value, _UNIT)


def _quantize(value: float, exponent: Decimal) -> float:
    if not math.isfinite(value):
        raise RatingComputationError(f"Cannot round non-finite value {value}")
    return float(Decimal(str(value)).quantize(exponent, rounding=ROUND_HALF_UP))


class ILFCalculator:
    """Increased limit factor interpolation."""

    @numeric_beartype
    @staticmethod
    def interpolate_factor(table: Sequence[ILFTableEntry], limit: float) -> float:
        """Factor at ``limit``.

        An exact limit match wins (first entry after a stable sort, so
        duplicate limits resolve to the earliest one). Between entries the
        factor is interpolated linearly; outside the table it is held flat at
        the nearest entry. An empty table means a factor of 1.
        """
        if not table:
            return 1.0

        ordered = sorted(table, key=lambda entry: entry.limit)
        for entry in ordered:
            if entry.limit == limit:
                return entry.factor

        limits = np.array([entry.limit for entry in ordered], dtype=float)
        factors = np.array([entry.factor for entry in ordered], dtype=float)
        return float(np.interp(limit, limits, factors))

    @numeric_beartype
    @staticmethod
    @performance_monitor("calculate_ilf")
    def calculate_ilf(
        basic_limit: float,
        selected_limit: float,
        table: Sequence[ILFTableEntry],
        base_premium: float,
    ) -> ILFResult:
        """Convert a basic-limit premium to the selected limit.

        Args:
            basic_limit: Limit the base premium was rated at
            selected_limit: Limit chosen by the insured
            table: ILF table, any order
            base_premium: Premium at the basic limit

        Returns:
            ILFResult with the ratio of selected to basic factor and the
            increased limit premium rounded to cents

        Raises:
            RatingComputationError: when the factor at the basic limit is 0
        """
        basic_factor = ILFCalculator.interpolate_factor(table, basic_limit)
        if basic_factor == 0:
            raise RatingComputationError(
                f"ILF factor at basic limit {basic_limit:g} is 0; "
                "the increased limit factor is undefined"
            )

        selected_factor = ILFCalculator.interpolate_factor(table, selected_limit)
        ilf = selected_factor / basic_factor

        return ILFResult(
            ilf=ilf,
            basic_limit_premium=float(base_premium),
            increased_limit_premium=round_currency(base_premium * ilf),
        )


class ExperienceModCalculator:
    """Simplified NCCI-style experience modification."""

    BALLAST_RATIO = 0.07
    PRIMARY_RATIO = 0.70
    EXCESS_WEIGHT = 0.30
    MOD_FLOOR = 0.75
    MOD_CAP = 2.0
    DEFAULT_SPLIT_POINT = 5000.0

    @numeric_beartype
    @staticmethod
    def split_point(
        expected_losses: float, table: Sequence[SplitPointEntry]
    ) -> float:
        """First split point whose expected-loss bracket covers ``expected_losses``.

        Falls back to the last entry, then to ``DEFAULT_SPLIT_POINT`` for an
        empty table.
        """
        ordered = sorted(table, key=lambda entry: entry.expected_losses)
        for entry in ordered:
            if expected_losses <= entry.expected_losses:
                return entry.split_point
        if ordered:
            return ordered[-1].split_point
        return ExperienceModCalculator.DEFAULT_SPLIT_POINT

    @numeric_beartype
    @staticmethod
    @performance_monitor("calculate_experience_mod")
    def calculate_experience_mod(
        payroll: float,
        loss_history: Sequence[LossRecord],
        expected_loss_rate: float,
        split_point_table: Sequence[SplitPointEntry],
    ) -> ExperienceModResult:
        """Compute the experience modifier from loss history.

        Only incurred losses are used. Losses up to the split point count in
        full as primary; the excess counts at ``EXCESS_WEIGHT``. Ballast and
        expected primary losses stabilise the ratio, which is clamped to
        ``[MOD_FLOOR, MOD_CAP]``.

        Raises:
            RatingComputationError: when expected losses are 0, which leaves
                the modifier undefined
        """
        cls = ExperienceModCalculator
        expected_losses = (payroll / 100) * expected_loss_rate
        if expected_losses <= 0:
            raise RatingComputationError(
                "Expected losses must be positive to compute an experience mod "
                f"(payroll={payroll:g}, expectedLossRate={expected_loss_rate:g})"
            )

        split_point = cls.split_point(expected_losses, split_point_table)

        actual_primary = 0.0
        actual_excess = 0.0
        for loss in loss_history:
            actual_primary += min(loss.incurred_loss, split_point)
            actual_excess += max(0.0, loss.incurred_loss - split_point)

        ballast = expected_losses * cls.BALLAST_RATIO
        expected_primary = expected_losses * cls.PRIMARY_RATIO
        stabilizing = ballast + expected_primary

        mod = (actual_primary + actual_excess * cls.EXCESS_WEIGHT + stabilizing) / (
            expected_primary + stabilizing
        )
        capped_mod = max(cls.MOD_FLOOR, min(cls.MOD_CAP, mod))

        return ExperienceModResult(
            experience_mod=round_currency(capped_mod),
            expected_losses=round_whole(expected_losses),
            actual_primary=round_whole(actual_primary),
            ballast=round_whole(ballast),
            split_point=float(split_point),
        )


class ScheduleRatingCalculator:
    """Schedule rating credits and debits."""

    @beartype
    @staticmethod
    def check_categories(categories: Sequence[ScheduleCategory]) -> None:
        """Reject categories whose credit bound exceeds their debit bound."""
        inverted = [category.name for category in categories if category.is_inverted]
        if inverted:
            raise ScheduleConfigurationError(inverted)

    @beartype
    @staticmethod
    def aggregate(
        assessments: Mapping[str, ScheduleAssessment],
        categories: Sequence[ScheduleCategory],
    ) -> tuple[float, list[AppliedCredit]]:
        """Clamp each assessed category into its bounds and sum the results.

        Returns:
            Total modification in percent and the applied credits in
            category order
        """
        ScheduleRatingCalculator.check_categories(categories)

        known = {category.name for category in categories}
        unknown = sorted(name for name in assessments if name not in known)
        if unknown:
            logger.info("Ignoring assessments for unconfigured categories: %s", unknown)

        total = 0.0
        applied: list[AppliedCredit] = []
        for category in categories:
            assessment = assessments.get(category.name)
            if assessment is None:
                continue
            credit = max(category.max_credit, min(category.max_debit, assessment.value))
            total += credit
            applied.append(
                AppliedCredit(
                    category=category.name,
                    credit=credit,
                    justification=assessment.reason,
                )
            )
        return total, applied

    @numeric_beartype
    @staticmethod
    @performance_monitor("calculate_schedule_rating")
    def calculate_schedule_rating(
        base_premium: float,
        assessments: Mapping[str, ScheduleAssessment],
        categories: Sequence[ScheduleCategory],
    ) -> ScheduleRatingResult:
        """Apply schedule credits/debits to ``base_premium``.

        Raises:
            ScheduleConfigurationError: when any category has
                ``max_credit > max_debit``
        """
        total, applied = ScheduleRatingCalculator.aggregate(assessments, categories)
        return ScheduleRatingResult(
            total_schedule_credit=total,
            applied_credits=applied,
            modified_premium=round_currency(base_premium * (1 + total / 100)),
        )
