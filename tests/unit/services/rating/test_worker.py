"""Tests for the offload message handler."""

import pytest

from ratebook.services.rating.worker import handle_message


def _message(message_type: str, payload: dict, request_id: str = "req-1") -> dict:
    return {"type": message_type, "payload": payload, "requestId": request_id}


class TestSuccessResponses:
    def test_calculate_rating(self, gl_payload):
        response = handle_message(_message("CALCULATE_RATING", gl_payload, "req-42"))

        assert response["type"] == "SUCCESS"
        assert response["requestId"] == "req-42"
        result = response["result"]
        assert result["premium"] == 150.0
        assert result["breakdown"] == {"GL": 150.0}
        assert result["productId"] == "prod-gl"
        assert result["steps"][0] == {"step": "Base rate for GL", "result": 100.0}

    def test_calculate_ilf(self, ilf_table):
        response = handle_message(
            _message(
                "CALCULATE_ILF",
                {
                    "basicLimit": 100000,
                    "selectedLimit": 300000,
                    "ilfTable": ilf_table,
                    "basePremium": 1000,
                },
            )
        )

        assert response["type"] == "SUCCESS"
        assert response["result"]["ilf"] == pytest.approx(1.4)
        assert response["result"]["increasedLimitPremium"] == 1400.0

    def test_calculate_experience_mod(self):
        response = handle_message(
            _message(
                "CALCULATE_EXPERIENCE_MOD",
                {
                    "classCode": "8810",
                    "payroll": 1_000_000,
                    "expectedLossRate": 2.0,
                    "lossHistory": [{"year": 2023, "incurredLoss": 15000}],
                    "splitPointTable": [{"expectedLosses": 50000, "splitPoint": 10000}],
                },
            )
        )

        assert response["type"] == "SUCCESS"
        assert response["result"]["experienceMod"] == 0.91

    def test_calculate_schedule_rating(self):
        response = handle_message(
            _message(
                "CALCULATE_SCHEDULE_RATING",
                {
                    "basePremium": 1000,
                    "assessments": {"management": {"value": -15, "reason": "Safety"}},
                    "categories": [{"name": "management", "maxCredit": -10, "maxDebit": 10}],
                },
            )
        )

        assert response["type"] == "SUCCESS"
        assert response["result"]["totalScheduleCredit"] == -10.0
        assert response["result"]["modifiedPremium"] == 900.0

    def test_batch_isolates_failures(self, gl_payload):
        bad = dict(gl_payload, coverageSelections="not a list")

        response = handle_message(
            _message("BATCH_CALCULATE", {"calculations": [gl_payload, bad]})
        )

        assert response["type"] == "SUCCESS"
        first, second = response["result"]
        assert first["status"] == "SUCCESS"
        assert first["result"]["premium"] == 150.0
        assert second["status"] == "ERROR"
        assert second["index"] == 1
        assert second["error"]


class TestErrorResponses:
    def test_unknown_type(self):
        response = handle_message(_message("CALCULATE_MAGIC", {}, "req-9"))

        assert response == {
            "type": "ERROR",
            "requestId": "req-9",
            "error": "Unknown calculation type: CALCULATE_MAGIC",
        }

    def test_malformed_payload(self):
        response = handle_message(_message("CALCULATE_ILF", {"basicLimit": "lots"}))

        assert response["type"] == "ERROR"
        assert response["requestId"] == "req-1"
        assert response["error"].startswith("Invalid CALCULATE_ILF payload: ")

    def test_missing_envelope_fields(self):
        response = handle_message({"payload": {}, "requestId": "req-3"})

        assert response["type"] == "ERROR"
        assert response["requestId"] == "req-3"
        assert response["error"].startswith("Invalid request: ")

    def test_envelope_without_request_id(self):
        response = handle_message({"type": "CALCULATE_RATING", "payload": {}})

        assert response["type"] == "ERROR"
        assert response["requestId"] == ""

    def test_computation_fault_is_reported(self):
        response = handle_message(
            _message(
                "CALCULATE_EXPERIENCE_MOD",
                {"payroll": 0, "expectedLossRate": 2.0},
            )
        )

        assert response["type"] == "ERROR"
        assert "Expected losses" in response["error"]

    def test_batch_without_calculations(self):
        response = handle_message(_message("BATCH_CALCULATE", {}))

        assert response["type"] == "ERROR"
        assert "calculations" in response["error"]


class TestBatchItemIsolation:
    def test_non_object_items_fail_alone_on_every_run(self, gl_payload):
        message = _message(
            "BATCH_CALCULATE", {"calculations": [gl_payload, "garbage", None]}
        )

        for _ in range(40):
            response = handle_message(message)

            assert response["type"] == "SUCCESS"
            assert [item["status"] for item in response["result"]] == [
                "SUCCESS",
                "ERROR",
                "ERROR",
            ]
            assert "must be an object" in response["result"][1]["error"]
