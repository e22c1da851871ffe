# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Async client for the computation offload channel.

Requests are plain message dicts handed to ``worker.handle_message`` in a
``concurrent.futures`` executor, so rating never blocks the event loop.
Responses are matched to requests by ``requestId``; when several requests
are outstanding they may finish in any order.
"""

import asyncio
import logging
from collections.abc import Mapping, Sequence
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor
from typing import Any
from uuid import uuid4

from beartype import beartype

from ...core.config import get_settings
from ...core.exceptions import (
    InvalidRatingRequestError,
    RatingComputationError,
    RatingEngineError,
    RatingRequestTimeoutError,
)
from ...schemas.messages import MessageType
from ...schemas.rating import (
    BatchItemResult,
    ExperienceModPayload,
    ExperienceModResult,
    ILFCalculationPayload,
    ILFResult,
    RatingCalculationPayload,
    RatingCalculationResult,
    ScheduleRatingPayload,
    ScheduleRatingResult,
)
from .worker import handle_message

logger = logging.getLogger(__name__)


def _drain(future: "asyncio.Future[Any]") -> None:
    """Retrieve the outcome of a response nobody is waiting for anymore."""
    if future.cancelled():
        return
    error = future.exception()
    if error is not None:
        logger.warning("Discarded rating computation failed: %s", error)


@beartype
class RatingComputationChannel:
    """Run rating computations in a worker pool and await their responses.

    Args:
        mode: ``"process"`` or ``"thread"``; defaults to ``Settings.offload_mode``
        max_workers: Pool size; defaults to ``Settings.offload_max_workers``
        request_timeout: Seconds to wait per request; defaults to
            ``Settings.offload_request_timeout_seconds``. A request that times
            out raises ``RatingRequestTimeoutError``; its computation keeps
            running and its response is dropped.
        executor: Pre-built executor; the channel will not shut it down
    """

    def __init__(
        self,
        *,
        mode: str | None = None,
        max_workers: int | None = None,
        request_timeout: float | None = None,
        executor: Executor | None = None,
    ) -> None:
        settings = get_settings()
        self._mode = mode or settings.offload_mode
        self._timeout = (
            request_timeout
            if request_timeout is not None
            else settings.offload_request_timeout_seconds
        )
        self._owns_executor = executor is None
        self._executor = executor or self._build_executor(
            self._mode, max_workers or settings.offload_max_workers
        )
        self._closed = False

    @staticmethod
    def _build_executor(mode: str, max_workers: int) -> Executor:
        if mode == "process":
            return ProcessPoolExecutor(max_workers=max_workers)
        if mode == "thread":
            return ThreadPoolExecutor(
                max_workers=max_workers, thread_name_prefix="rating-worker"
            )
        raise ValueError(f"Unknown offload mode: {mode!r}")

    @property
    def mode(self) -> str:
        return self._mode

    @property
    def closed(self) -> bool:
        return self._closed

    async def submit(self, message: Mapping[str, Any]) -> dict[str, Any]:
        """Send one request message and await its response message."""
        if self._closed:
            raise RatingEngineError("Rating computation channel is closed")

        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(self._executor, handle_message, dict(message))
        if self._timeout is None:
            return await future

        try:
            return await asyncio.wait_for(asyncio.shield(future), timeout=self._timeout)
        except asyncio.TimeoutError:
            future.add_done_callback(_drain)
            request_id = message.get("requestId", "")
            logger.warning(
                "Request %s timed out after %.3fs; discarding its result",
                request_id,
                self._timeout,
            )
            raise RatingRequestTimeoutError(
                f"No response for request {request_id} within {self._timeout:g}s"
            ) from None

    async def request(
        self,
        message_type: MessageType | str,
        payload: Mapping[str, Any],
        request_id: str | None = None,
    ) -> dict[str, Any]:
        """Build a request envelope (with a fresh id unless given) and submit it."""
        if isinstance(message_type, MessageType):
            message_type = message_type.value
        return await self.submit(
            {
                "type": message_type,
                "payload": dict(payload),
                "requestId": request_id or str(uuid4()),
            }
        )

    async def dispatch_many(
        self, messages: Sequence[Mapping[str, Any]]
    ) -> dict[str, dict[str, Any]]:
        """Submit requests concurrently and return responses keyed by ``requestId``."""
        request_ids = [str(message.get("requestId", "")) for message in messages]
        if len(set(request_ids)) != len(request_ids):
            raise InvalidRatingRequestError(
                "Concurrent requests must carry distinct requestIds"
            )

        responses = await asyncio.gather(*(self.submit(m) for m in messages))
        return {response["requestId"]: response for response in responses}

    # Typed helpers

    async def _result(self, message_type: MessageType, payload: Any) -> Any:
        response = await self.request(message_type, payload.to_wire())
        if response["type"] == "ERROR":
            raise RatingComputationError(response["error"])
        return response["result"]

    async def calculate_rating(
        self, payload: RatingCalculationPayload
    ) -> RatingCalculationResult:
        result = await self._result(MessageType.CALCULATE_RATING, payload)
        return RatingCalculationResult.model_validate(result)

    async def calculate_ilf(self, payload: ILFCalculationPayload) -> ILFResult:
        result = await self._result(MessageType.CALCULATE_ILF, payload)
        return ILFResult.model_validate(result)

    async def calculate_experience_mod(
        self, payload: ExperienceModPayload
    ) -> ExperienceModResult:
        result = await self._result(MessageType.CALCULATE_EXPERIENCE_MOD, payload)
        return ExperienceModResult.model_validate(result)

    async def calculate_schedule_rating(
        self, payload: ScheduleRatingPayload
    ) -> ScheduleRatingResult:
        result = await self._result(MessageType.CALCULATE_SCHEDULE_RATING, payload)
        return ScheduleRatingResult.model_validate(result)

    async def batch_calculate(
        self, payloads: Sequence[RatingCalculationPayload]
    ) -> list[BatchItemResult]:
        response = await self.request(
            MessageType.BATCH_CALCULATE,
            {"calculations": [payload.to_wire() for payload in payloads]},
        )
        if response["type"] == "ERROR":
            raise RatingComputationError(response["error"])
        return [BatchItemResult.model_validate(item) for item in response["result"]]

    # Lifecycle

    def close(self, *, wait: bool = True) -> None:
        """Stop accepting requests and shut down an owned executor."""
        if self._closed:
            return
        self._closed = True
        if self._owns_executor:
            self._executor.shutdown(wait=wait)
        logger.info("Rating computation channel closed")

    async def __aenter__(self) -> "RatingComputationChannel":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()
