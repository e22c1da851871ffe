# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Message handler run inside the computation context.

``handle_message`` takes a request envelope as plain JSON-compatible data and
always returns a response envelope: ``SUCCESS`` with the result, or ``ERROR``
with a message. It never raises, so it can run in a process pool, a thread
pool or a Celery worker without the caller having to unpack exceptions.
"""

import logging
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import ValidationError

from ...core.config import get_settings
from ...core.exceptions import InvalidRatingRequestError, RatingEngineError
from ...core.logging_utils import configure_logging
from ...schemas.messages import (
    ErrorResponse,
    MessageType,
    RatingRequestMessage,
    SuccessResponse,
)
from ...schemas.rating import (
    ExperienceModPayload,
    ILFCalculationPayload,
    RatingCalculationPayload,
    ScheduleRatingPayload,
)
from .calculators import (
    ExperienceModCalculator,
    ILFCalculator,
    ScheduleRatingCalculator,
)
from .rating_engine import RatingEngine

logger = logging.getLogger(__name__)

Handler = Callable[[dict[str, Any]], Any]


def format_validation_error(error: ValidationError) -> str:
    """Flatten pydantic errors into ``loc: msg`` pairs."""
    return "; ".join(
        f"{'.'.join(str(part) for part in item['loc']) or 'payload'}: {item['msg']}"
        for item in error.errors()
    )


def _calculate_rating(payload: dict[str, Any]) -> Any:
    request = RatingCalculationPayload.model_validate(payload)
    return RatingEngine().calculate_rating(request).to_wire()


def _calculate_ilf(payload: dict[str, Any]) -> Any:
    request = ILFCalculationPayload.model_validate(payload)
    return ILFCalculator.calculate_ilf(
        request.basic_limit,
        request.selected_limit,
        request.ilf_table,
        request.base_premium,
    ).to_wire()


def _calculate_experience_mod(payload: dict[str, Any]) -> Any:
    request = ExperienceModPayload.model_validate(payload)
    logger.debug(
        "Experience mod for class %s in %s", request.class_code, request.state
    )
    return ExperienceModCalculator.calculate_experience_mod(
        request.payroll,
        request.loss_history,
        request.expected_loss_rate,
        request.split_point_table,
    ).to_wire()


def _calculate_schedule_rating(payload: dict[str, Any]) -> Any:
    request = ScheduleRatingPayload.model_validate(payload)
    return ScheduleRatingCalculator.calculate_schedule_rating(
        request.base_premium, request.assessments, request.categories
    ).to_wire()


def _batch_calculate(payload: dict[str, Any]) -> Any:
    calculations = payload.get("calculations")
    if not isinstance(calculations, list):
        raise InvalidRatingRequestError(
            "BATCH_CALCULATE payload requires a 'calculations' list"
        )
    return [item.to_wire() for item in RatingEngine().batch_calculate(calculations)]


_HANDLERS: dict[str, Handler] = {
    MessageType.CALCULATE_RATING.value: _calculate_rating,
    MessageType.CALCULATE_ILF.value: _calculate_ilf,
    MessageType.CALCULATE_EXPERIENCE_MOD.value: _calculate_experience_mod,
    MessageType.CALCULATE_SCHEDULE_RATING.value: _calculate_schedule_rating,
    MessageType.BATCH_CALCULATE.value: _batch_calculate,
}


def _request_id(message: Any) -> str:
    if isinstance(message, Mapping):
        request_id = message.get("requestId", message.get("request_id"))
        if request_id is not None:
            return str(request_id)
    return ""


def handle_message(message: Mapping[str, Any]) -> dict[str, Any]:
    """Run one request and return its response envelope as a wire dict."""
    configure_logging(level=get_settings().log_level)
    request_id = _request_id(message)

    try:
        request = RatingRequestMessage.model_validate(message)
    except ValidationError as e:
        logger.warning("Rejected malformed request %r", request_id)
        return ErrorResponse(
            request_id=request_id,
            error=f"Invalid request: {format_validation_error(e)}",
        ).to_wire()

    try:
        handler = _HANDLERS.get(request.type)
        if handler is None:
            raise InvalidRatingRequestError(f"Unknown calculation type: {request.type}")
        result = handler(request.payload)

    except ValidationError as e:
        error = f"Invalid {request.type} payload: {format_validation_error(e)}"
        logger.info("Request %s failed validation: %s", request.request_id, error)
        return ErrorResponse(request_id=request.request_id, error=error).to_wire()

    except RatingEngineError as e:
        logger.info("Request %s failed: %s", request.request_id, e)
        return ErrorResponse(request_id=request.request_id, error=str(e)).to_wire()

    except Exception as e:
        logger.exception("Unexpected failure handling request %s", request.request_id)
        return ErrorResponse(
            request_id=request.request_id, error=str(e) or e.__class__.__name__
        ).to_wire()

    return SuccessResponse(request_id=request.request_id, result=result).to_wire()
