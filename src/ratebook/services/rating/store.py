# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Document store for rate programs, versions, steps and test cases.

``RateProgramStore`` is the collaborator the version lifecycle manager is
written against. Reads that can miss return ``Ok``/``Err``; the manager
decides what a miss means. ``InMemoryRateProgramStore`` is the reference
implementation used by the API and the tests.
"""

import asyncio
import logging
from typing import Protocol, runtime_checkable

from beartype import beartype

from ...core.result_types import Err, Ok, Result
from ...models.rate_program import (
    RateProgram,
    RateProgramStatus,
    RateProgramVersion,
    RatingTestCase,
    VersionStatus,
)
from ...models.rating_step import RatingStep, sort_steps

logger = logging.getLogger(__name__)


@runtime_checkable
class RateProgramStore(Protocol):
    """Persistence operations needed by the rating services."""

    # Rate programs
    async def create_program(self, program: RateProgram) -> RateProgram: ...

    async def get_program(self, program_id: str) -> Result[RateProgram, str]: ...

    async def list_programs(
        self, org_id: str, status: RateProgramStatus | None = None
    ) -> list[RateProgram]: ...

    async def update_program(self, program: RateProgram) -> Result[RateProgram, str]: ...

    # Versions
    async def allocate_version_number(self, program_id: str) -> int: ...

    async def create_version(self, version: RateProgramVersion) -> RateProgramVersion: ...

    async def get_version(
        self, program_id: str, version_id: str
    ) -> Result[RateProgramVersion, str]: ...

    async def list_versions(
        self, program_id: str, status: VersionStatus | None = None
    ) -> list[RateProgramVersion]: ...

    async def update_version(
        self, version: RateProgramVersion
    ) -> Result[RateProgramVersion, str]: ...

    # Steps
    async def list_steps(self, program_id: str, version_id: str) -> list[RatingStep]: ...

    async def add_step(
        self, program_id: str, version_id: str, step: RatingStep
    ) -> RatingStep: ...

    async def update_step(
        self, program_id: str, version_id: str, step: RatingStep
    ) -> Result[RatingStep, str]: ...

    async def delete_step(
        self, program_id: str, version_id: str, step_id: str
    ) -> Result[str, str]: ...

    async def replace_steps(
        self, program_id: str, version_id: str, steps: list[RatingStep]
    ) -> None: ...

    # Test cases
    async def create_test_case(self, test_case: RatingTestCase) -> RatingTestCase: ...

    async def get_test_case(
        self, program_id: str, test_case_id: str
    ) -> Result[RatingTestCase, str]: ...

    async def list_test_cases(self, program_id: str) -> list[RatingTestCase]: ...

    async def update_test_case(
        self, test_case: RatingTestCase
    ) -> Result[RatingTestCase, str]: ...

    async def delete_test_case(
        self, program_id: str, test_case_id: str
    ) -> Result[str, str]: ...


@beartype
class InMemoryRateProgramStore:
    """Process-local store guarded by a single asyncio lock.

    Entities are immutable, so stored objects are handed out as-is; updates
    replace the stored object.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._programs: dict[str, RateProgram] = {}
        self._versions: dict[str, dict[str, RateProgramVersion]] = {}
        self._version_counters: dict[str, int] = {}
        self._steps: dict[tuple[str, str], list[RatingStep]] = {}
        self._test_cases: dict[str, dict[str, RatingTestCase]] = {}

    # Rate programs

    async def create_program(self, program: RateProgram) -> RateProgram:
        async with self._lock:
            self._programs[program.id] = program
        logger.debug("Created rate program %s", program.id)
        return program

    async def get_program(self, program_id: str) -> Result[RateProgram, str]:
        program = self._programs.get(program_id)
        if program is None:
            return Err(f"Rate program {program_id} not found")
        return Ok(program)

    async def list_programs(
        self, org_id: str, status: RateProgramStatus | None = None
    ) -> list[RateProgram]:
        programs = [
            program
            for program in self._programs.values()
            if program.org_id == org_id and (status is None or program.status == status)
        ]
        return sorted(programs, key=lambda program: program.name)

    async def update_program(self, program: RateProgram) -> Result[RateProgram, str]:
        async with self._lock:
            if program.id not in self._programs:
                return Err(f"Rate program {program.id} not found")
            self._programs[program.id] = program
        return Ok(program)

    # Versions

    async def allocate_version_number(self, program_id: str) -> int:
        """Reserve the next version number for ``program_id``.

        Numbers are handed out under the lock, so concurrent callers always
        receive distinct values, even before their versions are stored.
        """
        async with self._lock:
            current = self._version_counters.get(program_id)
            if current is None:
                existing = self._versions.get(program_id, {}).values()
                current = max((v.version_number for v in existing), default=0)
            self._version_counters[program_id] = current + 1
            return current + 1

    async def create_version(self, version: RateProgramVersion) -> RateProgramVersion:
        async with self._lock:
            self._versions.setdefault(version.rate_program_id, {})[version.id] = version
            self._steps.setdefault((version.rate_program_id, version.id), [])
        return version

    async def get_version(
        self, program_id: str, version_id: str
    ) -> Result[RateProgramVersion, str]:
        version = self._versions.get(program_id, {}).get(version_id)
        if version is None:
            return Err(f"Version {version_id} of rate program {program_id} not found")
        return Ok(version)

    async def list_versions(
        self, program_id: str, status: VersionStatus | None = None
    ) -> list[RateProgramVersion]:
        versions = [
            version
            for version in self._versions.get(program_id, {}).values()
            if status is None or version.status == status
        ]
        return sorted(versions, key=lambda version: version.version_number, reverse=True)

    async def update_version(
        self, version: RateProgramVersion
    ) -> Result[RateProgramVersion, str]:
        async with self._lock:
            versions = self._versions.get(version.rate_program_id, {})
            if version.id not in versions:
                return Err(
                    f"Version {version.id} of rate program "
                    f"{version.rate_program_id} not found"
                )
            versions[version.id] = version
        return Ok(version)

    # Steps

    async def list_steps(self, program_id: str, version_id: str) -> list[RatingStep]:
        return sort_steps(list(self._steps.get((program_id, version_id), [])))

    async def add_step(
        self, program_id: str, version_id: str, step: RatingStep
    ) -> RatingStep:
        async with self._lock:
            self._steps.setdefault((program_id, version_id), []).append(step)
        return step

    async def update_step(
        self, program_id: str, version_id: str, step: RatingStep
    ) -> Result[RatingStep, str]:
        async with self._lock:
            steps = self._steps.get((program_id, version_id), [])
            for position, existing in enumerate(steps):
                if existing.id == step.id:
                    steps[position] = step
                    return Ok(step)
        return Err(f"Step {step.id} not found in version {version_id}")

    async def delete_step(
        self, program_id: str, version_id: str, step_id: str
    ) -> Result[str, str]:
        async with self._lock:
            steps = self._steps.get((program_id, version_id), [])
            for position, existing in enumerate(steps):
                if existing.id == step_id:
                    del steps[position]
                    return Ok(step_id)
        return Err(f"Step {step_id} not found in version {version_id}")

    async def replace_steps(
        self, program_id: str, version_id: str, steps: list[RatingStep]
    ) -> None:
        async with self._lock:
            self._steps[(program_id, version_id)] = list(steps)

    # Test cases

    async def create_test_case(self, test_case: RatingTestCase) -> RatingTestCase:
        async with self._lock:
            self._test_cases.setdefault(test_case.rate_program_id, {})[
                test_case.id
            ] = test_case
        return test_case

    async def get_test_case(
        self, program_id: str, test_case_id: str
    ) -> Result[RatingTestCase, str]:
        test_case = self._test_cases.get(program_id, {}).get(test_case_id)
        if test_case is None:
            return Err(f"Test case {test_case_id} not found")
        return Ok(test_case)

    async def list_test_cases(self, program_id: str) -> list[RatingTestCase]:
        return sorted(
            self._test_cases.get(program_id, {}).values(),
            key=lambda test_case: test_case.name,
        )

    async def update_test_case(
        self, test_case: RatingTestCase
    ) -> Result[RatingTestCase, str]:
        async with self._lock:
            cases = self._test_cases.get(test_case.rate_program_id, {})
            if test_case.id not in cases:
                return Err(f"Test case {test_case.id} not found")
            cases[test_case.id] = test_case
        return Ok(test_case)

    async def delete_test_case(
        self, program_id: str, test_case_id: str
    ) -> Result[str, str]:
        async with self._lock:
            cases = self._test_cases.get(program_id, {})
            if cases.pop(test_case_id, None) is None:
                return Err(f"Test case {test_case_id} not found")
        return Ok(test_case_id)
