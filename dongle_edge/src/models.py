"""
Pydantic models for decoded inverter telemetry.

``DecodedMetrics`` is what the frame decoder produces for one response
frame.  ``TelemetrySample`` adds the device id and timestamp that the daemon
injects before logging and writing the health file, keeping the decoder
free of clock access.

CHANGELOG:
- 2026-10-19: Initial creation (STORY-104)

TODO:
- None
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class DecodedMetrics(BaseModel):
    """Derived power figures from one read-input-registers response.

    Attributes:
        pv_flow_w: Sum of the three PV input channels in watts.
        consumption_w: Household consumption in watts, clamped at zero.
    """

    model_config = ConfigDict(frozen=True)

    pv_flow_w: int = Field(ge=0)
    consumption_w: int = Field(ge=0)


class TelemetrySample(BaseModel):
    """A decoded reading tagged with its source and receive time.

    Attributes:
        device_id: Identifier of the data logger the reading came from.
        ts: Time the response frame was received.
        pv_flow_w: See :class:`DecodedMetrics`.
        consumption_w: See :class:`DecodedMetrics`.
    """

    device_id: str
    ts: datetime
    pv_flow_w: int = Field(ge=0)
    consumption_w: int = Field(ge=0)

    @classmethod
    def from_metrics(
        cls,
        metrics: DecodedMetrics,
        *,
        device_id: str,
        ts: datetime,
    ) -> TelemetrySample:
        """Build a sample from decoder output plus caller-supplied context."""
        return cls(device_id=device_id, ts=ts, **metrics.model_dump())
