"""Regression test run results."""

from datetime import datetime

from pydantic import Field

from ..models.base import BaseModelConfig


class TestDifference(BaseModelConfig):
    """Expected against actual value for one breakdown key or the premium."""

    __test__ = False

    field: str = Field(..., description="Coverage id, or 'premium' for the total")
    expected: float
    actual: float
    difference: float
    within_tolerance: bool


class TestRunResult(BaseModelConfig):
    __test__ = False

    test_case_id: str
    name: str
    passed: bool
    actual_premium: float | None = Field(default=None)
    differences: list[TestDifference] = Field(default_factory=list)
    error: str | None = Field(default=None)
    execution_time_ms: float = Field(default=0.0, ge=0)
    run_at: datetime


class RegressionReport(BaseModelConfig):
    rate_program_id: str
    version_id: str
    results: list[TestRunResult] = Field(default_factory=list)

    @property
    def passed(self) -> int:
        return sum(1 for result in self.results if result.passed)

    @property
    def failed(self) -> int:
        return len(self.results) - self.passed
