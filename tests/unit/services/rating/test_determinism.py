"""Tests for determinism validation of rate program steps."""

from typing import Any

from ratebook.models.rate_program import FieldCode
from ratebook.models.rating_step import parse_step
from ratebook.schemas.validation import DeterminismIssueCode
from ratebook.services.rating.determinism import validate_determinism


def _steps(*raw: dict[str, Any]):
    return [parse_step(step) for step in raw]


def _codes(issues) -> list[DeterminismIssueCode]:
    return [issue.code for issue in issues]


class TestFieldReferences:
    def test_valid_program(self):
        steps = _steps(
            {"id": "a", "type": "Multiply", "config": {"factorKey": "territory"}, "order": 1},
            {"id": "b", "type": "Lookup", "config": {"lookupKey": "classFactor"}, "order": 2},
            {
                "id": "c",
                "type": "Conditional",
                "config": {"condition": "buildingAge > 30", "adjustment": 5},
                "order": 3,
            },
            {"id": "d", "type": "Add", "config": {"value": 25}, "order": 4},
        )

        result = validate_determinism(steps, ["territory", "classFactor", "buildingAge"])

        assert result.is_valid
        assert result.errors == []
        assert result.warnings == []

    def test_undefined_field_suggests_case_insensitive_match(self):
        steps = _steps(
            {"id": "a", "type": "Multiply", "config": {"factorKey": "Territory"}, "order": 1}
        )

        result = validate_determinism(steps, ["territory"])

        assert not result.is_valid
        [error] = result.errors
        assert error.code == DeterminismIssueCode.UNDEFINED_FIELD
        assert error.step_ids == ["a"]
        assert error.field_codes == ["Territory"]
        assert 'did you mean "territory"' in error.message

    def test_undefined_field_without_near_match(self):
        steps = _steps(
            {"id": "a", "type": "BaseRate", "config": {"exposureKey": "payroll"}, "order": 1}
        )

        [error] = validate_determinism(steps, ["territory"]).errors

        assert error.code == DeterminismIssueCode.UNDEFINED_FIELD
        assert "did you mean" not in error.message

    def test_default_exp_mod_key_need_not_be_defined(self):
        implicit = _steps({"id": "x", "type": "ExpMod", "config": {}, "order": 1})
        explicit = _steps(
            {"id": "x", "type": "ExpMod", "config": {"factorKey": "emod"}, "order": 1}
        )

        assert validate_determinism(implicit, []).is_valid
        assert _codes(validate_determinism(explicit, []).errors) == [
            DeterminismIssueCode.UNDEFINED_FIELD
        ]

    def test_deprecated_field_is_a_warning(self):
        steps = _steps(
            {"id": "a", "type": "Multiply", "config": {"factorKey": "zone"}, "order": 1}
        )
        fields = [FieldCode(code="zone", deprecated=True, replaced_by="territory"), "territory"]

        result = validate_determinism(steps, fields)

        assert result.is_valid
        [warning] = result.warnings
        assert warning.code == DeterminismIssueCode.DEPRECATED_FIELD
        assert 'use "territory" instead' in warning.message

    def test_lookalike_field_is_ambiguous(self):
        steps = _steps(
            {"id": "a", "type": "Lookup", "config": {"lookupKey": "building_age"}, "order": 1}
        )

        result = validate_determinism(steps, ["building_age", "buildingAge"])

        assert result.is_valid
        [warning] = result.warnings
        assert warning.code == DeterminismIssueCode.AMBIGUOUS_FIELD
        assert warning.field_codes == ["building_age", "buildingAge"]


class TestStructuralChecks:
    def test_missing_config(self):
        steps = _steps(
            {"id": "m", "type": "Multiply", "config": {}, "order": 1},
            {"id": "l", "type": "Lookup", "config": {}, "order": 2},
            {"id": "c", "type": "Conditional", "config": {"adjustment": 5}, "order": 3},
            {"id": "i", "type": "ILF", "config": {"basicLimit": 100000}, "order": 4},
        )

        result = validate_determinism(steps, [])

        assert _codes(result.errors) == [DeterminismIssueCode.MISSING_CONFIG] * 4
        assert [e.step_ids for e in result.errors] == [["m"], ["l"], ["c"], ["i"]]

    def test_invalid_condition(self):
        steps = _steps(
            {
                "id": "c",
                "type": "Conditional",
                "config": {"condition": "age over 30", "adjustment": 5},
                "order": 1,
            }
        )

        [error] = validate_determinism(steps, ["age"]).errors

        assert error.code == DeterminismIssueCode.INVALID_CONDITION

    def test_zero_basic_factor(self):
        steps = _steps(
            {
                "id": "i",
                "type": "ILF",
                "config": {
                    "basicLimit": 100000,
                    "table": [{"limit": 100000, "factor": 0}, {"limit": 500000, "factor": 1.8}],
                },
                "order": 1,
            }
        )

        [error] = validate_determinism(steps, []).errors

        assert error.code == DeterminismIssueCode.ZERO_BASIC_FACTOR

    def test_duplicate_step_ids(self):
        steps = _steps(
            {"id": "a", "type": "Add", "config": {"value": 1}, "order": 1},
            {"id": "a", "type": "Add", "config": {"value": 2}, "order": 2},
        )

        [error] = validate_determinism(steps, []).errors

        assert error.code == DeterminismIssueCode.DUPLICATE_STEP_ID
        assert error.step_ids == ["a"]

    def test_duplicate_order_is_a_warning(self):
        steps = _steps(
            {"id": "a", "type": "Add", "config": {"value": 1}, "order": 1},
            {"id": "b", "type": "Add", "config": {"value": 2}, "order": 1},
        )

        result = validate_determinism(steps, [])

        assert result.is_valid
        assert _codes(result.warnings) == [DeterminismIssueCode.DUPLICATE_ORDER]
        assert result.warnings[0].step_ids == ["a", "b"]

    def test_is_valid_is_serialized(self):
        steps = _steps({"id": "m", "type": "Multiply", "config": {}, "order": 1})

        wire = validate_determinism(steps, []).to_wire()

        assert wire["isValid"] is False
        assert wire["errors"][0]["code"] == "MISSING_CONFIG"
