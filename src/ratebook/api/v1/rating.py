"""Rating computation endpoints."""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, status

from ...core.exceptions import RatingEngineError, RatingRequestTimeoutError
from ...services.rating.offload import RatingComputationChannel
from ..dependencies import get_channel

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/messages")
async def submit_rating_message(
    message: dict[str, Any] = Body(...),
    channel: RatingComputationChannel = Depends(get_channel),
) -> dict[str, Any]:
    """Forward a request message to the computation channel.

    Computation failures come back as an ``ERROR`` response message with
    status 200; only transport problems map to HTTP errors.
    """
    try:
        return await channel.submit(message)
    except RatingRequestTimeoutError as e:
        raise HTTPException(status_code=status.HTTP_504_GATEWAY_TIMEOUT, detail=str(e))
    except RatingEngineError as e:
        logger.warning("Rating channel rejected request: %s", e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e)
        )
