"""Conditional step expressions.

A condition is exactly three whitespace-separated tokens,
``"<factorKey> <operator> <number>"``, e.g. ``"building_age > 30"``.
Anything else is malformed; malformed conditions and conditions on absent
factors evaluate to false during rating and are reported by the
determinism validator before publish.
"""

import math
import operator
from collections.abc import Callable, Mapping

from attrs import frozen

from ...core.typing_utils import numeric_beartype

_OPERATORS: dict[str, Callable[[float, float], bool]] = {
    ">": operator.gt,
    "<": operator.lt,
    ">=": operator.ge,
    "<=": operator.le,
    "==": operator.eq,
}

SUPPORTED_OPERATORS = tuple(_OPERATORS)


@frozen
class Condition:
    factor_key: str
    op: str
    threshold: float

    @numeric_beartype
    def evaluate(self, factors: Mapping[str, float]) -> bool:
        value = factors.get(self.factor_key)
        if value is None:
            return False
        return _OPERATORS[self.op](value, self.threshold)


@numeric_beartype
def parse_condition(expression: str | None) -> Condition | None:
    """Parse a three-token condition; ``None`` when malformed."""
    if not expression:
        return None

    parts = expression.split()
    if len(parts) != 3:
        return None

    key, op, raw_threshold = parts
    if op not in _OPERATORS:
        return None
    try:
        threshold = float(raw_threshold)
    except ValueError:
        return None
    if not math.isfinite(threshold):
        return None

    return Condition(factor_key=key, op=op, threshold=threshold)


@numeric_beartype
def evaluate_condition(expression: str | None, factors: Mapping[str, float]) -> bool:
    """Evaluate ``expression`` against ``factors``; malformed means false."""
    condition = parse_condition(expression)
    if condition is None:
        return False
    return condition.evaluate(factors)
