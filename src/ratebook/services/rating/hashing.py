"""Content hash of a version's step list."""

import hashlib
import json
from collections.abc import Sequence

from beartype import beartype

from ...models.rating_step import RatingStep, sort_steps


@beartype
def canonical_steps_json(steps: Sequence[RatingStep]) -> str:
    """Serialize steps in evaluation order with sorted keys and no whitespace."""
    ordered = sort_steps(list(steps))
    document = [
        {
            "id": step.id,
            "type": step.type,
            "config": step.config.model_dump(mode="json", by_alias=True),
            "order": step.order,
        }
        for step in ordered
    ]
    return json.dumps(document, sort_keys=True, separators=(",", ":"), allow_nan=False)


@beartype
def hash_steps(steps: Sequence[RatingStep]) -> str:
    """SHA-256 hex digest of ``canonical_steps_json(steps)``."""
    return hashlib.sha256(canonical_steps_json(steps).encode("utf-8")).hexdigest()
