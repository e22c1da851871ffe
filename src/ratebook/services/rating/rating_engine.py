# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Step pipeline evaluator that orchestrates a rating calculation.

Every selected coverage with a base rate is seeded with that rate and then
run through the program's steps in ``order``. The result carries a premium
per coverage, the overall premium and an ordered trace of every
intermediate value for audit.
"""

import logging
from collections.abc import Mapping, Sequence
from functools import partial
from typing import Any, assert_never

from attrs import frozen

from ...core.exceptions import InvalidRatingRequestError
from ...core.result_types import Err, Ok, try_result
from ...core.typing_utils import numeric_beartype
from ...models.rating_step import (
    AddStep,
    BaseRateStep,
    ConditionalStep,
    ExpModStep,
    ILFStep,
    LookupStep,
    MultiplyStep,
    RatingStep,
    SubtractStep,
    sort_steps,
)
from ...schemas.rating import (
    BaseRate,
    BatchItemResult,
    CoverageSelection,
    ExperienceModResult,
    RatingCalculationPayload,
    RatingCalculationResult,
    ScheduleRatingResult,
    StepTrace,
)
from ..performance_monitor import performance_monitor
from .calculators import (
    ExperienceModCalculator,
    ILFCalculator,
    ScheduleRatingCalculator,
    round_currency,
)
from .conditions import evaluate_condition

logger = logging.getLogger(__name__)


def _fmt(value: float) -> str:
    """Render a number for trace labels: ``1.5``, ``2`` rather than ``2.0``."""
    if float(value).is_integer():
        return str(int(value))
    return str(value)


@frozen
class _RatingContext:
    """Per-calculation values shared by every coverage."""

    risk_factors: Mapping[str, float]
    apply_experience_mod: bool
    experience_mod: ExperienceModResult | None


@numeric_beartype
class RatingEngine:
    """Evaluate rate program steps for a set of coverage selections.

    The engine holds no state between calls; identical payloads always give
    identical results, including the trace.
    """

    @performance_monitor("calculate_rating")
    def calculate_rating(
        self, payload: RatingCalculationPayload
    ) -> RatingCalculationResult:
        """Rate every selected coverage of ``payload``.

        Coverages that are not selected, or that have no base rate, are left
        out of the breakdown and the trace. Per-coverage premiums are rounded
        to cents; the overall premium is the unrounded sum, rounded once.

        Raises:
            RatingComputationError: numeric fault in an ILF or ExpMod step
            ScheduleConfigurationError: inverted schedule category bounds
        """
        steps = sort_steps(payload.rating_steps)
        base_rates = self._index_base_rates(payload.base_rates)

        experience_mod = self._experience_mod(payload)
        schedule_total: float | None = None
        schedule_applied = []
        if payload.apply_schedule_rating and payload.schedule_rating is not None:
            schedule_total, schedule_applied = ScheduleRatingCalculator.aggregate(
                payload.schedule_rating.assessments,
                payload.schedule_rating.categories,
            )

        context = _RatingContext(
            risk_factors=payload.risk_factors,
            apply_experience_mod=payload.apply_experience_mod,
            experience_mod=experience_mod,
        )

        premium = 0.0
        unscheduled_premium = 0.0
        breakdown: dict[str, float] = {}
        trace: list[StepTrace] = []

        for coverage in payload.coverage_selections:
            if not coverage.selected:
                continue
            base_rate = base_rates.get(coverage.coverage_id)
            if base_rate is None:
                logger.debug(
                    "No base rate for coverage %s; skipping", coverage.coverage_id
                )
                continue

            coverage_premium = self._rate_coverage(
                coverage, base_rate, steps, context, trace
            )
            unscheduled_premium += coverage_premium

            if schedule_total is not None:
                coverage_premium *= 1 + schedule_total / 100
                trace.append(
                    StepTrace(
                        step=f"Schedule rating ({schedule_total:+g}%)",
                        result=coverage_premium,
                    )
                )

            breakdown[coverage.coverage_id] = round_currency(coverage_premium)
            premium += coverage_premium

        schedule_result = None
        if schedule_total is not None:
            schedule_result = ScheduleRatingResult(
                total_schedule_credit=schedule_total,
                applied_credits=schedule_applied,
                modified_premium=round_currency(
                    unscheduled_premium * (1 + schedule_total / 100)
                ),
            )

        return RatingCalculationResult(
            premium=round_currency(premium),
            breakdown=breakdown,
            steps=trace,
            product_id=payload.product_id,
            state=payload.state,
            experience_mod=experience_mod,
            schedule_rating=schedule_result,
        )

    def batch_calculate(self, calculations: Sequence[Any]) -> list[BatchItemResult]:
        """Rate independent payloads one after another.

        Each element is validated and rated on its own; a failure, including an
        element that is not an object, is reported in that element's entry and
        does not affect the others.
        """
        results = []
        for index, calculation in enumerate(calculations):
            outcome = try_result(partial(self._calculate_one, calculation))
            if isinstance(outcome, Ok):
                results.append(
                    BatchItemResult(index=index, status="SUCCESS", result=outcome.value)
                )
            elif isinstance(outcome, Err):
                logger.warning("Batch item %d failed: %s", index, outcome.error)
                results.append(
                    BatchItemResult(index=index, status="ERROR", error=outcome.error)
                )
        return results

    def _calculate_one(self, calculation: Any) -> RatingCalculationResult:
        if isinstance(calculation, Mapping):
            calculation = RatingCalculationPayload.model_validate(calculation)
        elif not isinstance(calculation, RatingCalculationPayload):
            raise InvalidRatingRequestError(
                f"Batch item must be an object, got {type(calculation).__name__}"
            )
        return self.calculate_rating(calculation)

    @staticmethod
    def _index_base_rates(base_rates: Sequence[BaseRate]) -> dict[str, BaseRate]:
        """Map coverage id to its base rate; the first rate listed wins."""
        index: dict[str, BaseRate] = {}
        for base_rate in base_rates:
            index.setdefault(base_rate.coverage_id, base_rate)
        return index

    @staticmethod
    def _experience_mod(
        payload: RatingCalculationPayload,
    ) -> ExperienceModResult | None:
        if not payload.apply_experience_mod or payload.experience_mod is None:
            return None
        inputs = payload.experience_mod
        return ExperienceModCalculator.calculate_experience_mod(
            inputs.payroll,
            inputs.loss_history,
            inputs.expected_loss_rate,
            inputs.split_point_table,
        )

    def _rate_coverage(
        self,
        coverage: CoverageSelection,
        base_rate: BaseRate,
        steps: Sequence[RatingStep],
        context: _RatingContext,
        trace: list[StepTrace],
    ) -> float:
        coverage_premium = base_rate.rate
        trace.append(
            StepTrace(step=f"Base rate for {coverage.coverage_id}", result=coverage_premium)
        )
        for step in steps:
            coverage_premium = self._apply_step(
                step, coverage_premium, coverage, context, trace
            )
        return coverage_premium

    def _apply_step(
        self,
        step: RatingStep,
        premium: float,
        coverage: CoverageSelection,
        context: _RatingContext,
        trace: list[StepTrace],
    ) -> float:
        """Apply one step and record it in the trace when it changes anything."""
        factors = context.risk_factors

        if isinstance(step, MultiplyStep):
            key = step.config.factor_key
            multiplier = factors.get(key, 1.0) if key is not None else 1.0
            premium *= multiplier
            label = f"Apply {key} ({_fmt(multiplier)})"

        elif isinstance(step, AddStep):
            premium += step.config.value
            label = f"Add {step.config.label or 'fee'}"

        elif isinstance(step, SubtractStep):
            premium -= step.config.value
            label = f"Subtract {step.config.label or 'credit'}"

        elif isinstance(step, LookupStep):
            key = step.config.lookup_key
            if key is None or key not in factors:
                return premium
            premium *= factors[key]
            label = f"Table lookup: {key}"

        elif isinstance(step, ConditionalStep):
            if not evaluate_condition(step.config.condition, factors):
                return premium
            premium *= 1 + step.config.adjustment / 100
            label = f"Conditional: {step.config.label or step.config.condition}"

        elif isinstance(step, BaseRateStep):
            key = step.config.exposure_key
            if key is None or key not in factors:
                return premium
            exposure_units = factors[key] / step.config.per
            premium *= exposure_units
            label = f"Exposure {key} ({_fmt(exposure_units)} units)"

        elif isinstance(step, ILFStep):
            ilf = ILFCalculator.calculate_ilf(
                step.config.basic_limit, coverage.limit, step.config.table, premium
            ).ilf
            premium *= ilf
            label = (
                f"Increased limit {_fmt(coverage.limit)} over "
                f"{_fmt(step.config.basic_limit)} ({_fmt(ilf)})"
            )

        elif isinstance(step, ExpModStep):
            if not context.apply_experience_mod:
                return premium
            if context.experience_mod is not None:
                mod = context.experience_mod.experience_mod
            else:
                mod = factors.get(step.config.factor_key)
                if mod is None:
                    return premium
            premium *= mod
            label = f"Experience mod ({_fmt(mod)})"

        else:
            assert_never(step)

        trace.append(StepTrace(step=label, result=premium))
        return premium
