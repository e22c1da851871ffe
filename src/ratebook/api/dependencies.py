# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""FastAPI dependencies for the rating services.

The offload channel and the store are created once per application in the
lifespan handler and kept on ``app.state``; these dependencies hand them to
endpoints.
"""

from beartype import beartype
from fastapi import Depends, HTTPException, Request, status

from ..services.rating.offload import RatingComputationChannel
from ..services.rating.store import RateProgramStore
from ..services.rating.version_manager import VersionLifecycleManager


@beartype
def get_channel(request: Request) -> RatingComputationChannel:
    """Provide the application's rating computation channel."""
    channel = getattr(request.app.state, "channel", None)
    if channel is None or channel.closed:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Rating computation channel is not available",
        )
    return channel


@beartype
def get_store(request: Request) -> RateProgramStore:
    """Provide the application's rate program store."""
    return request.app.state.store


def get_version_manager(
    store: RateProgramStore = Depends(get_store),
) -> VersionLifecycleManager:
    """Provide a version lifecycle manager bound to the application store."""
    return VersionLifecycleManager(store)
