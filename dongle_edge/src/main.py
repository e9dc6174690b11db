"""
Edge daemon entrypoint for the data-logger telemetry client.

Wires the codec to the outside world:

1. Encodes the read-input-registers request once from settings.
2. Runs a :class:`DongleSession` that writes the request every poll
   interval and feeds inbound bytes through the stream parser.
3. Decodes every complete frame; read-input responses become a
   TelemetrySample that is logged and written to the health file.

Frame handling is resilient: an exception while handling one frame is
logged and does not break the session.  Graceful shutdown on SIGTERM/SIGINT
sets a shared asyncio.Event, which ends the session loop.

Structured JSON logging is used for all events.

CHANGELOG:
- 2026-10-19: Optional CLI overrides for protocol version, host and port
- 2026-10-19: Replace poll/upload loops with a single dongle session (STORY-108)
- 2026-02-14: Initial creation (STORY-014)

TODO:
- None
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
import sys
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from dongle_edge.src.decoder import decode
from dongle_edge.src.frames import (
    UNADDRESSED_INVERTER_SERIAL,
    UNASSIGNED_DATALOGGER_SERIAL,
    encode_read_input_request,
    format_hex,
    serial_from_text,
)
from dongle_edge.src.health import HealthWriter
from dongle_edge.src.models import TelemetrySample

if TYPE_CHECKING:
    from dongle_edge.src.client import DongleSession
    from dongle_edge.src.config import EdgeSettings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Structured JSON logging setup
# ---------------------------------------------------------------------------


def configure_logging(level: int = logging.INFO) -> None:
    """Configure structured JSON logging for the edge daemon.

    Sets up the root logger with a JSON-formatted handler writing to stderr.
    """

    class _JsonFormatter(logging.Formatter):
        """Minimal JSON log formatter."""

        def format(self, record: logging.LogRecord) -> str:
            log_entry = {
                "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
                "level": record.levelname,
                "logger": record.name,
                "msg": record.getMessage(),
            }
            if record.exc_info and record.exc_info[1] is not None:
                log_entry["exception"] = self.formatException(record.exc_info)
            return json.dumps(log_entry)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_JsonFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)


# ---------------------------------------------------------------------------
# Startup config logging
# ---------------------------------------------------------------------------


def log_config_summary(settings: object) -> None:
    """Log a config summary at startup.

    Args:
        settings: An EdgeSettings instance (or any object with the same attrs).
    """
    logger.info(
        "Edge daemon starting with config: "
        "dongle_host=%s, dongle_port=%s, protocol_version=%s, "
        "datalogger_serial=%s, inverter_serial=%s, "
        "start_register=%s, register_count=%s, poll_interval_s=%s, "
        "max_frame_length=%s, device_id=%s, health_path=%s, "
        "raw_debug_enabled=%s, raw_debug_every_n_frames=%s",
        settings.dongle_host,  # type: ignore[attr-defined]
        settings.dongle_port,  # type: ignore[attr-defined]
        settings.protocol_version,  # type: ignore[attr-defined]
        settings.datalogger_serial or "<unassigned>",  # type: ignore[attr-defined]
        settings.inverter_serial or "<unaddressed>",  # type: ignore[attr-defined]
        settings.start_register,  # type: ignore[attr-defined]
        settings.register_count,  # type: ignore[attr-defined]
        settings.poll_interval_s,  # type: ignore[attr-defined]
        settings.max_frame_length,  # type: ignore[attr-defined]
        settings.device_id,  # type: ignore[attr-defined]
        settings.health_path,  # type: ignore[attr-defined]
        settings.raw_debug_enabled,  # type: ignore[attr-defined]
        settings.raw_debug_every_n_frames,  # type: ignore[attr-defined]
    )


# ---------------------------------------------------------------------------
# Request encoding
# ---------------------------------------------------------------------------


def build_request(settings: EdgeSettings) -> bytes:
    """Encode the read-input-registers request described by *settings*."""
    return encode_read_input_request(
        protocol_version=settings.protocol_version,
        datalogger_serial=serial_from_text(
            settings.datalogger_serial, UNASSIGNED_DATALOGGER_SERIAL
        ),
        inverter_serial=serial_from_text(
            settings.inverter_serial, UNADDRESSED_INVERTER_SERIAL
        ),
        start_register=settings.start_register,
        register_count=settings.register_count,
    )


# ---------------------------------------------------------------------------
# Single-frame handling (easily testable)
# ---------------------------------------------------------------------------


def _handle_frame_once(
    frame: bytes,
    *,
    device_id: str,
    health: HealthWriter | None,
    raw_debug_enabled: bool = False,
    raw_debug_every_n_frames: int = 1,
    raw_debug_state: list[int] | None = None,
) -> TelemetrySample | None:
    """Decode one frame, then log and record the resulting sample.

    Catches all exceptions so that the session's receive loop is never
    broken by a single bad frame.

    Returns:
        The sample for a read-input response, otherwise ``None``.
    """
    sample: TelemetrySample | None = None
    try:
        if raw_debug_enabled and raw_debug_state is not None:
            raw_debug_state[0] += 1
            if raw_debug_state[0] % raw_debug_every_n_frames == 0:
                logger.info("Raw frame: %s", format_hex(frame))

        metrics = decode(frame)
        if metrics is not None:
            sample = TelemetrySample.from_metrics(
                metrics, device_id=device_id, ts=datetime.now(tz=UTC)
            )
            logger.info(
                "PV flow: %d W, consumption: %d W (device=%s)",
                sample.pv_flow_w,
                sample.consumption_w,
                device_id,
            )
        else:
            logger.debug("Frame produced no metrics (%d bytes)", len(frame))
    except Exception:
        logger.error("Frame handling error", exc_info=True)

    if health is not None:
        try:
            health.record_frame()
            if sample is not None:
                health.record_sample(sample)
        except Exception:
            logger.warning("Failed to write health file", exc_info=True)

    return sample


def _record_request(health: HealthWriter | None) -> None:
    if health is None:
        return
    try:
        health.record_request()
    except Exception:
        logger.warning("Failed to write health file", exc_info=True)


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


def build_session(
    settings: EdgeSettings,
    health: HealthWriter | None,
) -> DongleSession:
    """Create the session that polls the data logger described by *settings*."""
    from dongle_edge.src.client import DongleSession

    raw_debug_state = [0]

    def _on_frame(frame: bytes) -> None:
        _handle_frame_once(
            frame,
            device_id=settings.device_id,
            health=health,
            raw_debug_enabled=settings.raw_debug_enabled,
            raw_debug_every_n_frames=settings.raw_debug_every_n_frames,
            raw_debug_state=raw_debug_state,
        )

    return DongleSession(
        host=settings.dongle_host,
        port=settings.dongle_port,
        request=build_request(settings),
        on_frame=_on_frame,
        poll_interval_s=settings.poll_interval_s,
        connect_timeout_s=settings.connect_timeout_s,
        max_frame_length=settings.max_frame_length,
        on_request=lambda: _record_request(health),
    )


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse CLI overrides; unset options fall back to the environment."""
    parser = argparse.ArgumentParser(
        prog="dongle-edge",
        description="Poll a solar data logger for PV and consumption readings.",
    )
    parser.add_argument(
        "protocol_version",
        nargs="?",
        type=int,
        default=None,
        help="TCP frame protocol version, 1 or 2 (default: PROTOCOL_VERSION or 1)",
    )
    parser.add_argument("--host", dest="dongle_host", default=None)
    parser.add_argument("--port", dest="dongle_port", type=int, default=None)
    return parser.parse_args(argv)


def load_settings(args: argparse.Namespace) -> EdgeSettings:
    """Load settings from the environment, applying CLI overrides on top."""
    from dongle_edge.src.config import EdgeSettings

    overrides = {key: value for key, value in vars(args).items() if value is not None}
    return EdgeSettings(**overrides)


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


async def async_main(argv: Sequence[str] | None = None) -> None:
    """Async entrypoint: load config, build the session, run until signalled.

    Sets up SIGTERM/SIGINT handlers to trigger graceful shutdown.
    """
    configure_logging()

    settings = load_settings(parse_args(argv))
    log_config_summary(settings)

    shutdown_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda: _handle_signal(shutdown_event),
        )

    health = HealthWriter(settings.health_path)
    session = build_session(settings, health)
    await session.run(shutdown_event)
    logger.info("Shutdown complete")


def _handle_signal(shutdown_event: asyncio.Event) -> None:
    """Handle SIGTERM/SIGINT by setting the shutdown event.

    Args:
        shutdown_event: The event to set for graceful shutdown.
    """
    logger.info("Received shutdown signal, initiating graceful shutdown")
    shutdown_event.set()


def main() -> None:
    """Synchronous entrypoint for the edge daemon."""
    asyncio.run(async_main())


if __name__ == "__main__":
    main()
