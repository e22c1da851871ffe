# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Rate program version lifecycle.

Versions move draft -> published -> archived. Only drafts accept step edits.
Publishing is gated by determinism validation and stamps the version with
the content hash of its steps, so later drift can be detected.
"""

import logging
from collections.abc import Iterable, Sequence
from datetime import date, datetime, timezone
from typing import Any
from uuid import uuid4

from beartype import beartype

from ...core.exceptions import (
    PublishValidationError,
    VersionLifecycleError,
    VersionNotFoundError,
)
from ...core.result_types import Err
from ...models.rate_program import (
    FieldCode,
    RateProgram,
    RateProgramVersion,
    VersionStatus,
)
from ...models.rating_step import RatingStep, parse_step
from ...schemas.regression import RegressionReport
from ...schemas.validation import DeterminismValidationResult
from .determinism import validate_determinism
from .hashing import hash_steps
from .rating_engine import RatingEngine
from .regression import run_test_case
from .store import RateProgramStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@beartype
class VersionLifecycleManager:
    """Create, validate, publish and resolve rate program versions."""

    def __init__(
        self, store: RateProgramStore, engine: RatingEngine | None = None
    ) -> None:
        self._store = store
        self._engine = engine or RatingEngine()

    # Lookups

    async def _get_program(self, program_id: str) -> RateProgram:
        result = await self._store.get_program(program_id)
        if isinstance(result, Err):
            raise VersionNotFoundError(result.error)
        return result.value

    async def get_version(self, program_id: str, version_id: str) -> RateProgramVersion:
        """Fetch a version or raise ``VersionNotFoundError``."""
        result = await self._store.get_version(program_id, version_id)
        if isinstance(result, Err):
            raise VersionNotFoundError(result.error)
        return result.value

    async def _get_draft(self, program_id: str, version_id: str) -> RateProgramVersion:
        version = await self.get_version(program_id, version_id)
        if not version.is_draft:
            raise VersionLifecycleError(
                f"Version {version.version_number} is {version.status.value}; "
                "only draft versions can be edited"
            )
        return version

    # Lifecycle

    async def create_version(
        self, program_id: str, user_id: str, notes: str | None = None
    ) -> RateProgramVersion:
        """Create an empty draft at the next version number."""
        await self._get_program(program_id)
        version_number = await self._store.allocate_version_number(program_id)
        version = await self._store.create_version(
            RateProgramVersion(
                rate_program_id=program_id,
                version_number=version_number,
                created_by=user_id,
                notes=notes,
            )
        )
        logger.info(
            "Created draft version %d of rate program %s", version_number, program_id
        )
        return version

    async def validate_version(
        self,
        program_id: str,
        version_id: str,
        available_field_codes: Iterable[str | FieldCode] = (),
    ) -> DeterminismValidationResult:
        """Run determinism validation on the version's steps without changing it."""
        await self.get_version(program_id, version_id)
        steps = await self._store.list_steps(program_id, version_id)
        return validate_determinism(steps, available_field_codes)

    async def publish_version(
        self,
        program_id: str,
        version_id: str,
        user_id: str,
        effective_start: date,
        effective_end: date | None = None,
        available_field_codes: Iterable[str | FieldCode] = (),
    ) -> RateProgramVersion:
        """Publish a draft for the inclusive window ``[effective_start, effective_end]``.

        Raises:
            VersionLifecycleError: the version is not a draft, or the window
                ends before it starts
            PublishValidationError: determinism validation found errors; the
                version is left untouched
        """
        version = await self.get_version(program_id, version_id)
        if not version.is_draft:
            raise VersionLifecycleError(
                f"Cannot publish version {version.version_number} in "
                f"'{version.status.value}' status; only drafts can be published"
            )
        if effective_end is not None and effective_end < effective_start:
            raise VersionLifecycleError(
                f"Effective end {effective_end.isoformat()} is before effective "
                f"start {effective_start.isoformat()}"
            )

        steps = await self._store.list_steps(program_id, version_id)
        validation = validate_determinism(steps, available_field_codes)
        if not validation.is_valid:
            logger.warning(
                "Publish of version %s refused: %d validation errors",
                version_id,
                len(validation.errors),
            )
            raise PublishValidationError(validation)

        now = _utcnow()
        published = version.model_copy(
            update={
                "status": VersionStatus.PUBLISHED,
                "effective_start": effective_start,
                "effective_end": effective_end,
                "steps_hash": hash_steps(steps),
                "validation_warnings": len(validation.warnings),
                "last_validated_at": now,
                "published_at": now,
                "published_by": user_id,
            }
        )
        result = await self._store.update_version(published)
        if isinstance(result, Err):
            raise VersionNotFoundError(result.error)

        logger.info(
            "Published version %d of rate program %s effective %s",
            published.version_number,
            program_id,
            effective_start.isoformat(),
        )
        return result.value

    async def archive_version(
        self, program_id: str, version_id: str
    ) -> RateProgramVersion:
        """Retire a published version; it no longer resolves for any date."""
        version = await self.get_version(program_id, version_id)
        if version.status != VersionStatus.PUBLISHED:
            raise VersionLifecycleError(
                f"Cannot archive version {version.version_number} in "
                f"'{version.status.value}' status; only published versions can be archived"
            )
        result = await self._store.update_version(
            version.model_copy(update={"status": VersionStatus.ARCHIVED})
        )
        if isinstance(result, Err):
            raise VersionNotFoundError(result.error)
        return result.value

    async def get_published_version(
        self, program_id: str, effective_date: date | None = None
    ) -> RateProgramVersion | None:
        """Resolve the published version in effect.

        Without a date, the highest-numbered published version. With a date,
        the highest-numbered published version whose inclusive window
        contains it. ``None`` when nothing matches.
        """
        published = await self._store.list_versions(
            program_id, status=VersionStatus.PUBLISHED
        )
        if effective_date is None:
            return published[0] if published else None

        candidates = [v for v in published if v.is_effective_on(effective_date)]
        if not candidates:
            return None
        return max(candidates, key=lambda version: version.version_number)

    async def clone_version(
        self, program_id: str, source_version_id: str, user_id: str
    ) -> RateProgramVersion:
        """Copy a version's steps into a new draft under fresh step ids."""
        source = await self.get_version(program_id, source_version_id)
        steps = await self._store.list_steps(program_id, source_version_id)

        clone = await self.create_version(
            program_id, user_id, notes=f"Cloned from version {source.version_number}"
        )
        for step in steps:
            await self._store.add_step(
                program_id, clone.id, step.model_copy(update={"id": str(uuid4())})
            )
        logger.info(
            "Cloned version %d into version %d (%d steps)",
            source.version_number,
            clone.version_number,
            len(steps),
        )
        return clone

    async def verify_steps_hash(self, program_id: str, version_id: str) -> bool:
        """Check that the version's steps still match the hash stored at publish."""
        version = await self.get_version(program_id, version_id)
        if version.steps_hash is None:
            return False
        steps = await self._store.list_steps(program_id, version_id)
        matches = hash_steps(steps) == version.steps_hash
        if not matches:
            logger.warning(
                "Steps of version %s no longer match their published hash", version_id
            )
        return matches

    # Steps

    async def list_steps(self, program_id: str, version_id: str) -> list[RatingStep]:
        await self.get_version(program_id, version_id)
        return await self._store.list_steps(program_id, version_id)

    async def add_step(
        self,
        program_id: str,
        version_id: str,
        step: RatingStep | dict[str, Any],
    ) -> RatingStep:
        """Append a step to a draft version."""
        await self._get_draft(program_id, version_id)
        if isinstance(step, dict):
            step = parse_step(step)
        return await self._store.add_step(program_id, version_id, step)

    async def update_step(
        self, program_id: str, version_id: str, step: RatingStep
    ) -> RatingStep:
        await self._get_draft(program_id, version_id)
        result = await self._store.update_step(program_id, version_id, step)
        if isinstance(result, Err):
            raise VersionNotFoundError(result.error)
        return result.value

    async def delete_step(self, program_id: str, version_id: str, step_id: str) -> None:
        await self._get_draft(program_id, version_id)
        result = await self._store.delete_step(program_id, version_id, step_id)
        if isinstance(result, Err):
            raise VersionNotFoundError(result.error)

    async def reorder_steps(
        self, program_id: str, version_id: str, step_ids: Sequence[str]
    ) -> list[RatingStep]:
        """Renumber a draft's steps to ``1..n`` following ``step_ids``.

        ``step_ids`` must name every step of the version exactly once.
        """
        await self._get_draft(program_id, version_id)
        steps = {step.id: step for step in await self._store.list_steps(program_id, version_id)}

        if len(step_ids) != len(set(step_ids)) or set(step_ids) != set(steps):
            raise VersionLifecycleError(
                "Reorder must list every step of the version exactly once"
            )

        reordered = [
            steps[step_id].model_copy(update={"order": position})
            for position, step_id in enumerate(step_ids, start=1)
        ]
        await self._store.replace_steps(program_id, version_id, reordered)
        return reordered

    # Regression

    async def run_test_cases(self, program_id: str, version_id: str) -> RegressionReport:
        """Run every test case of the program against this version's steps."""
        await self.get_version(program_id, version_id)
        steps = await self._store.list_steps(program_id, version_id)
        test_cases = await self._store.list_test_cases(program_id)

        results = [run_test_case(case, steps, self._engine) for case in test_cases]
        report = RegressionReport(
            rate_program_id=program_id, version_id=version_id, results=results
        )
        logger.info(
            "Ran %d test cases on version %s: %d passed, %d failed",
            len(results),
            version_id,
            report.passed,
            report.failed,
        )
        return report
