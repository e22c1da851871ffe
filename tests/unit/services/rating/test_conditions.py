"""Tests for conditional step expressions."""

import pytest

from ratebook.services.rating.conditions import (
    Condition,
    evaluate_condition,
    parse_condition,
)


class TestParseCondition:
    def test_three_tokens_parse(self):
        assert parse_condition("building_age > 30") == Condition(
            factor_key="building_age", op=">", threshold=30.0
        )

    def test_extra_whitespace_is_tolerated(self):
        condition = parse_condition("  building_age   >=  30.5 ")

        assert condition is not None
        assert condition.op == ">="
        assert condition.threshold == 30.5

    @pytest.mark.parametrize(
        "expression",
        [
            None,
            "",
            "building_age > ",
            "building_age>30",
            "building_age != 30",
            "building_age > thirty",
            "building_age > nan",
            "x < inf",
            "x > -inf",
            "a > 1 and b < 2",
        ],
    )
    def test_malformed_expressions_are_none(self, expression):
        assert parse_condition(expression) is None


class TestEvaluateCondition:
    @pytest.mark.parametrize(
        ("expression", "expected"),
        [
            ("age > 30", True),
            ("age < 30", False),
            ("age >= 40", True),
            ("age <= 39", False),
            ("age == 40", True),
        ],
    )
    def test_operators(self, expression, expected):
        assert evaluate_condition(expression, {"age": 40}) is expected

    def test_missing_factor_is_false(self):
        assert evaluate_condition("age > 30", {"territory": 1.2}) is False

    def test_malformed_is_false(self):
        assert evaluate_condition("age is old", {"age": 90}) is False
