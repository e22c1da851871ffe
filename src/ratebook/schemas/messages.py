"""Offload channel message envelopes.

Request: ``{"type", "payload", "requestId"}``.
Response: ``{"type": "SUCCESS", "requestId", "result"}`` or
``{"type": "ERROR", "requestId", "error"}``.
"""

from enum import Enum
from typing import Any, Literal

from pydantic import Field

from ..models.base import BaseModelConfig


class MessageType(str, Enum):
    CALCULATE_RATING = "CALCULATE_RATING"
    CALCULATE_ILF = "CALCULATE_ILF"
    CALCULATE_EXPERIENCE_MOD = "CALCULATE_EXPERIENCE_MOD"
    CALCULATE_SCHEDULE_RATING = "CALCULATE_SCHEDULE_RATING"
    BATCH_CALCULATE = "BATCH_CALCULATE"


class RatingRequestMessage(BaseModelConfig):
    """Request envelope.

    ``type`` is kept as a plain string so that an unknown type reaches the
    handler and is answered with an ERROR response instead of failing here.
    """

    type: str = Field(..., min_length=1)
    payload: dict[str, Any] = Field(default_factory=dict)
    request_id: str = Field(..., min_length=1)


class SuccessResponse(BaseModelConfig):
    type: Literal["SUCCESS"] = "SUCCESS"
    request_id: str
    result: Any


class ErrorResponse(BaseModelConfig):
    type: Literal["ERROR"] = "ERROR"
    request_id: str
    error: str
