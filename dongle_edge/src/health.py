"""
Health file writer for the edge daemon.

Writes a JSON health file at a configurable path with four fields:
- last_request_ts: ISO timestamp of the most recent request sent.
- last_frame_ts: ISO timestamp of the most recent frame received.
- frames_received: Number of frames received since start.
- last_sample: The most recent decoded sample, or null.

The file is rewritten on every state change, providing a simple liveness
signal that Docker HEALTHCHECK or monitoring can inspect.

CHANGELOG:
- 2026-10-19: Track requests, frames and the latest sample instead of spool state
- 2026-02-14: Initial creation (STORY-015)

TODO:
- None
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path

from dongle_edge.src.models import TelemetrySample


class HealthWriter:
    """Writes edge health status to a JSON file.

    Each mutating method updates the in-memory state and immediately
    rewrites the health file so it always reflects the latest status.

    Args:
        path: Filesystem path for the health JSON file. Accepts str or Path.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._last_request_ts: str | None = None
        self._last_frame_ts: str | None = None
        self._frames_received: int = 0
        self._last_sample: dict | None = None

    def record_request(self) -> None:
        """Record a sent request and write health file."""
        self._last_request_ts = datetime.now(tz=UTC).isoformat()
        self._write()

    def record_frame(self) -> None:
        """Record a received frame and write health file."""
        self._last_frame_ts = datetime.now(tz=UTC).isoformat()
        self._frames_received += 1
        self._write()

    def record_sample(self, sample: TelemetrySample) -> None:
        """Store the latest decoded sample and write health file.

        Args:
            sample: The sample to expose in the health file.
        """
        self._last_sample = json.loads(sample.model_dump_json())
        self._write()

    def _write(self) -> None:
        """Write the health JSON file with current state."""
        data = {
            "last_request_ts": self._last_request_ts,
            "last_frame_ts": self._last_frame_ts,
            "frames_received": self._frames_received,
            "last_sample": self._last_sample,
        }
        self.path.write_text(json.dumps(data))
