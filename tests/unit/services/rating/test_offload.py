"""Tests for the computation offload channel."""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from ratebook.core.exceptions import (
    InvalidRatingRequestError,
    RatingComputationError,
    RatingEngineError,
    RatingRequestTimeoutError,
)
from ratebook.schemas.messages import MessageType
from ratebook.schemas.rating import (
    ILFCalculationPayload,
    RatingCalculationPayload,
    ScheduleRatingPayload,
)
from ratebook.services.rating import offload
from ratebook.services.rating.offload import RatingComputationChannel


def _message(request_id: str, payload: dict) -> dict:
    return {"type": "CALCULATE_RATING", "payload": payload, "requestId": request_id}


class TestChannelConfiguration:
    def test_defaults_come_from_settings(self):
        channel = RatingComputationChannel()
        try:
            assert channel.mode == "thread"
            assert not channel.closed
        finally:
            channel.close()

        assert channel.closed

    def test_unknown_mode(self):
        with pytest.raises(ValueError, match="offload mode"):
            RatingComputationChannel(mode="fiber")

    def test_external_executor_is_not_shut_down(self):
        executor = ThreadPoolExecutor(max_workers=1)
        try:
            RatingComputationChannel(executor=executor).close()

            assert executor.submit(lambda: 7).result() == 7
        finally:
            executor.shutdown()


class TestSubmit:
    @pytest.mark.asyncio
    async def test_response_echoes_request_id(self, gl_payload):
        async with RatingComputationChannel(mode="thread", max_workers=2) as channel:
            response = await channel.submit(_message("req-1", gl_payload))

        assert response["type"] == "SUCCESS"
        assert response["requestId"] == "req-1"
        assert response["result"]["premium"] == 150.0

    @pytest.mark.asyncio
    async def test_request_generates_an_id(self, gl_payload):
        async with RatingComputationChannel(mode="thread") as channel:
            first = await channel.request(MessageType.CALCULATE_RATING, gl_payload)
            second = await channel.request("CALCULATE_RATING", gl_payload)

        assert first["requestId"] and second["requestId"]
        assert first["requestId"] != second["requestId"]

    @pytest.mark.asyncio
    async def test_dispatch_many_matches_responses_by_id(self, gl_payload):
        doubled = dict(gl_payload, riskFactors={"territory": 3.0})
        messages = [
            _message("a", gl_payload),
            _message("b", doubled),
            {"type": "CALCULATE_MAGIC", "payload": {}, "requestId": "c"},
        ]

        async with RatingComputationChannel(mode="thread", max_workers=3) as channel:
            responses = await channel.dispatch_many(messages)

        assert set(responses) == {"a", "b", "c"}
        assert responses["a"]["result"]["premium"] == 150.0
        assert responses["b"]["result"]["premium"] == 300.0
        assert responses["c"]["type"] == "ERROR"

    @pytest.mark.asyncio
    async def test_dispatch_many_rejects_duplicate_ids(self, gl_payload):
        async with RatingComputationChannel(mode="thread") as channel:
            with pytest.raises(InvalidRatingRequestError):
                await channel.dispatch_many(
                    [_message("same", gl_payload), _message("same", gl_payload)]
                )

    @pytest.mark.asyncio
    async def test_closed_channel_refuses_requests(self, gl_payload):
        channel = RatingComputationChannel(mode="thread")
        channel.close()

        with pytest.raises(RatingEngineError, match="closed"):
            await channel.submit(_message("late", gl_payload))

    @pytest.mark.asyncio
    async def test_timeout_discards_the_response(self, monkeypatch, gl_payload):
        release = threading.Event()
        real_handler = offload.handle_message

        def stalled(message):
            release.wait(timeout=5)
            return real_handler(message)

        monkeypatch.setattr(offload, "handle_message", stalled)
        channel = RatingComputationChannel(mode="thread", request_timeout=0.05)
        try:
            with pytest.raises(RatingRequestTimeoutError, match="req-slow"):
                await channel.submit(_message("req-slow", gl_payload))
        finally:
            release.set()
            channel.close()


class TestTypedHelpers:
    @pytest.mark.asyncio
    async def test_calculate_rating(self, gl_payload):
        async with RatingComputationChannel(mode="thread") as channel:
            result = await channel.calculate_rating(
                RatingCalculationPayload.model_validate(gl_payload)
            )

        assert result.premium == 150.0
        assert result.breakdown == {"GL": 150.0}

    @pytest.mark.asyncio
    async def test_calculate_ilf_and_schedule(self, ilf_table):
        ilf_payload = ILFCalculationPayload.model_validate(
            {
                "basicLimit": 100000,
                "selectedLimit": 300000,
                "ilfTable": ilf_table,
                "basePremium": 1000,
            }
        )
        schedule_payload = ScheduleRatingPayload.model_validate(
            {
                "basePremium": 1000,
                "assessments": {"premises": {"value": 4, "reason": "Older roof"}},
                "categories": [{"name": "premises", "maxCredit": -5, "maxDebit": 5}],
            }
        )

        async with RatingComputationChannel(mode="thread") as channel:
            ilf = await channel.calculate_ilf(ilf_payload)
            schedule = await channel.calculate_schedule_rating(schedule_payload)

        assert ilf.increased_limit_premium == 1400.0
        assert schedule.modified_premium == 1040.0

    @pytest.mark.asyncio
    async def test_error_response_raises(self):
        payload = ScheduleRatingPayload.model_validate(
            {
                "basePremium": 1000,
                "categories": [{"name": "premises", "maxCredit": 5, "maxDebit": -5}],
            }
        )

        async with RatingComputationChannel(mode="thread") as channel:
            with pytest.raises(RatingComputationError, match="premises"):
                await channel.calculate_schedule_rating(payload)

    @pytest.mark.asyncio
    async def test_batch_calculate(self, gl_payload):
        payloads = [
            RatingCalculationPayload.model_validate(gl_payload),
            RatingCalculationPayload.model_validate(
                dict(gl_payload, riskFactors={"territory": 2.0})
            ),
        ]

        async with RatingComputationChannel(mode="thread") as channel:
            results = await channel.batch_calculate(payloads)

        assert [item.status for item in results] == ["SUCCESS", "SUCCESS"]
        assert [item.result.premium for item in results] == [150.0, 200.0]
