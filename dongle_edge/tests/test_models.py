"""
Tests for the DecodedMetrics and TelemetrySample models.

CHANGELOG:
- 2026-10-19: Initial creation (STORY-104)

TODO:
- None
"""

from __future__ import annotations

import json
from datetime import UTC, datetime

import pytest
from dongle_edge.src.models import DecodedMetrics, TelemetrySample
from pydantic import ValidationError

_TS = datetime(2026, 10, 19, 12, 0, 0, tzinfo=UTC)


class TestDecodedMetrics:
    """Non-negative, immutable power figures."""

    def test_valid(self) -> None:
        metrics = DecodedMetrics(pv_flow_w=350, consumption_w=0)
        assert metrics.pv_flow_w == 350
        assert metrics.consumption_w == 0

    @pytest.mark.parametrize("field", ["pv_flow_w", "consumption_w"])
    def test_negative_rejected(self, field: str) -> None:
        values = {"pv_flow_w": 1, "consumption_w": 1, field: -1}
        with pytest.raises(ValidationError):
            DecodedMetrics(**values)

    def test_frozen(self) -> None:
        metrics = DecodedMetrics(pv_flow_w=1, consumption_w=2)
        with pytest.raises(ValidationError):
            metrics.pv_flow_w = 5  # type: ignore[misc]

    def test_equality_by_value(self) -> None:
        assert DecodedMetrics(pv_flow_w=1, consumption_w=2) == DecodedMetrics(
            pv_flow_w=1, consumption_w=2
        )


class TestTelemetrySample:
    """Metrics tagged with device id and timestamp."""

    def test_from_metrics(self) -> None:
        metrics = DecodedMetrics(pv_flow_w=350, consumption_w=800)
        sample = TelemetrySample.from_metrics(metrics, device_id="dongle-1", ts=_TS)

        assert sample.device_id == "dongle-1"
        assert sample.ts == _TS
        assert sample.pv_flow_w == 350
        assert sample.consumption_w == 800

    def test_json_serialisation(self) -> None:
        sample = TelemetrySample(device_id="d", ts=_TS, pv_flow_w=1, consumption_w=2)
        data = json.loads(sample.model_dump_json())
        assert data == {
            "device_id": "d",
            "ts": "2026-10-19T12:00:00Z",
            "pv_flow_w": 1,
            "consumption_w": 2,
        }
