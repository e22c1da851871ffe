"""Tests for the step content hash."""

from ratebook.models.rating_step import parse_step
from ratebook.services.rating.hashing import canonical_steps_json, hash_steps


def _steps(*raw):
    return [parse_step(step) for step in raw]


MULTIPLY = {"id": "m", "type": "Multiply", "config": {"factorKey": "territory"}, "order": 1}
ADD = {"id": "a", "type": "Add", "config": {"value": 25}, "order": 2}


class TestHashSteps:
    def test_hash_ignores_list_order(self):
        assert hash_steps(_steps(MULTIPLY, ADD)) == hash_steps(_steps(ADD, MULTIPLY))

    def test_hash_changes_with_config(self):
        changed = dict(ADD, config={"value": 26})

        assert hash_steps(_steps(MULTIPLY, ADD)) != hash_steps(_steps(MULTIPLY, changed))

    def test_canonical_form_is_compact_and_sorted(self):
        document = canonical_steps_json(_steps(ADD, MULTIPLY))

        assert " " not in document
        assert document.index('"id":"m"') < document.index('"id":"a"')
        assert document.startswith('[{"config":')

    def test_empty_step_list(self):
        assert canonical_steps_json([]) == "[]"
        assert len(hash_steps([])) == 64
