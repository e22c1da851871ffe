# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Rate program and version lifecycle endpoints."""

from datetime import date
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from pydantic import ValidationError

from ...core.exceptions import (
    PublishValidationError,
    VersionLifecycleError,
    VersionNotFoundError,
)
from ...models.rate_program import RateProgram, RateProgramVersion
from ...models.rating_step import RatingStep
from ...schemas.rate_programs import (
    RateProgramCreateRequest,
    VersionCreateRequest,
    VersionPublishRequest,
    VersionValidateRequest,
)
from ...schemas.validation import DeterminismValidationResult
from ...services.rating.store import RateProgramStore
from ...services.rating.version_manager import VersionLifecycleManager
from ..dependencies import get_store, get_version_manager

router = APIRouter()


def _lifecycle_http_error(error: VersionLifecycleError) -> HTTPException:
    if isinstance(error, VersionNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    if isinstance(error, PublishValidationError):
        return HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={
                "message": str(error),
                "validation": error.validation.to_wire(),
            },
        )
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(error))


@router.post("", response_model=RateProgram, status_code=status.HTTP_201_CREATED)
async def create_rate_program(
    request: RateProgramCreateRequest,
    store: RateProgramStore = Depends(get_store),
) -> RateProgram:
    """Create a rate program."""
    return await store.create_program(
        RateProgram(
            org_id=request.org_id,
            name=request.name,
            description=request.description,
            created_by=request.user_id,
        )
    )


@router.post(
    "/{program_id}/versions",
    response_model=RateProgramVersion,
    status_code=status.HTTP_201_CREATED,
)
async def create_version(
    program_id: str,
    request: VersionCreateRequest,
    manager: VersionLifecycleManager = Depends(get_version_manager),
) -> RateProgramVersion:
    """Create a new draft version."""
    try:
        return await manager.create_version(program_id, request.user_id, request.notes)
    except VersionLifecycleError as e:
        raise _lifecycle_http_error(e)


@router.post(
    "/{program_id}/versions/{version_id}/steps",
    status_code=status.HTTP_201_CREATED,
)
async def add_step(
    program_id: str,
    version_id: str,
    step: dict[str, Any] = Body(...),
    manager: VersionLifecycleManager = Depends(get_version_manager),
) -> dict[str, Any]:
    """Append a step to a draft version."""
    try:
        created: RatingStep = await manager.add_step(program_id, version_id, step)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=e.errors(include_url=False, include_context=False),
        )
    except VersionLifecycleError as e:
        raise _lifecycle_http_error(e)
    return created.to_wire()


@router.post("/{program_id}/versions/{version_id}/validate")
async def validate_version(
    program_id: str,
    version_id: str,
    request: VersionValidateRequest,
    manager: VersionLifecycleManager = Depends(get_version_manager),
) -> dict[str, Any]:
    """Run determinism validation without changing the version."""
    try:
        result: DeterminismValidationResult = await manager.validate_version(
            program_id, version_id, request.available_field_codes
        )
    except VersionLifecycleError as e:
        raise _lifecycle_http_error(e)
    return result.to_wire()


@router.post(
    "/{program_id}/versions/{version_id}/publish",
    response_model=RateProgramVersion,
)
async def publish_version(
    program_id: str,
    version_id: str,
    request: VersionPublishRequest,
    manager: VersionLifecycleManager = Depends(get_version_manager),
) -> RateProgramVersion:
    """Publish a draft version for an effective window."""
    try:
        return await manager.publish_version(
            program_id,
            version_id,
            request.user_id,
            request.effective_start,
            request.effective_end,
            request.available_field_codes,
        )
    except VersionLifecycleError as e:
        raise _lifecycle_http_error(e)


@router.get("/{program_id}/published-version", response_model=RateProgramVersion)
async def get_published_version(
    program_id: str,
    effective_date: date | None = Query(default=None),
    manager: VersionLifecycleManager = Depends(get_version_manager),
) -> RateProgramVersion:
    """Resolve the published version in effect on ``effective_date``."""
    version = await manager.get_published_version(program_id, effective_date)
    if version is None:
        detail = f"No published version of rate program {program_id} is in effect"
        if effective_date is not None:
            detail += f" on {effective_date.isoformat()}"
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)
    return version
