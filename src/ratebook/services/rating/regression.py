"""Regression runner for rate program test cases."""

import logging
import time
from collections.abc import Sequence
from datetime import datetime, timezone

from beartype import beartype

from ...core.result_types import Err, try_result
from ...models.rate_program import RatingTestCase
from ...models.rating_step import RatingStep
from ...schemas.regression import TestDifference, TestRunResult
from .rating_engine import RatingEngine

logger = logging.getLogger(__name__)


def _difference(
    field: str, expected: float, actual: float, tolerance: float
) -> TestDifference:
    diff = abs(expected - actual)
    return TestDifference(
        field=field,
        expected=expected,
        actual=actual,
        difference=diff,
        within_tolerance=diff <= tolerance,
    )


@beartype
def run_test_case(
    test_case: RatingTestCase,
    steps: Sequence[RatingStep],
    engine: RatingEngine | None = None,
) -> TestRunResult:
    """Rate ``test_case.payload`` with ``steps`` and compare with expectations.

    Every expected breakdown key is reported, in or out of tolerance; the
    premium is reported only when it is expected and out of tolerance. A
    coverage missing from the actual breakdown counts as 0.
    """
    engine = engine or RatingEngine()
    payload = test_case.payload.model_copy(update={"rating_steps": list(steps)})

    start = time.perf_counter()
    outcome = try_result(lambda: engine.calculate_rating(payload))
    elapsed_ms = (time.perf_counter() - start) * 1000
    run_at = datetime.now(timezone.utc)

    if isinstance(outcome, Err):
        logger.info("Test case %s errored: %s", test_case.id, outcome.error)
        return TestRunResult(
            test_case_id=test_case.id,
            name=test_case.name,
            passed=False,
            error=outcome.error,
            execution_time_ms=elapsed_ms,
            run_at=run_at,
        )

    result = outcome.value
    differences = [
        _difference(
            coverage_id,
            expected,
            result.breakdown.get(coverage_id, 0.0),
            test_case.tolerance,
        )
        for coverage_id, expected in test_case.expected_breakdown.items()
    ]

    if test_case.expected_premium is not None:
        premium_diff = _difference(
            "premium", test_case.expected_premium, result.premium, test_case.tolerance
        )
        if not premium_diff.within_tolerance:
            differences.append(premium_diff)

    return TestRunResult(
        test_case_id=test_case.id,
        name=test_case.name,
        passed=all(diff.within_tolerance for diff in differences),
        actual_premium=result.premium,
        differences=differences,
        execution_time_ms=elapsed_ms,
        run_at=run_at,
    )
