"""
Frame dispatcher and register decoder.

Routes complete frames by the outer function code at offset 7.  Only the
translated read-input response (194) carries telemetry; every other
function code (heartbeats, parameter reads, ...) is a valid frame that
simply yields nothing.

Decoding is tolerant: a register beyond the end of a truncated frame reads
as 0 instead of failing the whole decode.

Inbound checksums are checked but never enforced.  A mismatch is logged and
the frame is decoded anyway, so no traffic the dongle app accepts is
rejected here.

CHANGELOG:
- 2026-10-20: Debug-log named register values of each response
- 2026-10-19: Report (not enforce) inbound CRC mismatches
- 2026-10-19: Initial creation (STORY-105)

TODO:
- None
"""

from __future__ import annotations

import logging
import struct

from dongle_edge.src.crc import crc16_modbus
from dongle_edge.src.frames import (
    FRAME_HEADER_SIZE,
    FUNCTION_CODE_OFFSET,
    SERIAL_LENGTH,
    TCP_FUNC_TRANSLATED,
)
from dongle_edge.src.models import DecodedMetrics
from dongle_edge.src.registers import (
    GRID_EXPORT_POWER,
    GRID_IMPORT_POWER,
    INVERTER_INPUT_POWER,
    INVERTER_OUTPUT_POWER,
    PV_REGISTERS,
    format_registers,
    read_register,
)

logger = logging.getLogger(__name__)

_DATA_LENGTH_OFFSET: int = FRAME_HEADER_SIZE + SERIAL_LENGTH
_DATA_OFFSET: int = _DATA_LENGTH_OFFSET + 2


def response_checksum_ok(frame: bytes) -> bool:
    """Check the CRC16 trailing the envelope data of a response frame.

    The envelope data length includes the 2-byte CRC, which covers every
    data byte before it.

    Returns:
        ``True`` when the checksum matches, ``False`` when it does not or the
        frame is too short to carry one.
    """
    if len(frame) < _DATA_OFFSET:
        return False
    (data_length,) = struct.unpack_from("<H", frame, _DATA_LENGTH_OFFSET)
    crc_offset = _DATA_OFFSET + data_length - 2
    if data_length < 2 or crc_offset + 2 > len(frame):
        return False
    (received,) = struct.unpack_from("<H", frame, crc_offset)
    return crc16_modbus(frame[_DATA_OFFSET:crc_offset]) == received


def derive_metrics(frame: bytes) -> DecodedMetrics:
    """Compute PV flow and consumption from a read-input response frame."""
    pv_flow = sum(read_register(frame, reg) for reg in PV_REGISTERS)

    inverter_net = read_register(frame, INVERTER_OUTPUT_POWER) - read_register(
        frame, INVERTER_INPUT_POWER
    )
    grid_net = read_register(frame, GRID_IMPORT_POWER) - read_register(
        frame, GRID_EXPORT_POWER
    )
    # Negative sums report as zero load.
    consumption = max(0, inverter_net + grid_net)

    return DecodedMetrics(pv_flow_w=pv_flow, consumption_w=consumption)


def handle_frame(frame: bytes) -> DecodedMetrics | None:
    """Dispatch a complete frame by function code.

    Returns:
        :class:`DecodedMetrics` for a read-input response, ``None`` for any
        other function code or a frame too short to carry one.
    """
    if len(frame) <= FUNCTION_CODE_OFFSET:
        logger.debug("Ignoring %d-byte frame without function code", len(frame))
        return None

    function_code = frame[FUNCTION_CODE_OFFSET]
    if function_code != TCP_FUNC_TRANSLATED:
        logger.debug("Ignoring frame with function code 0x%02X", function_code)
        return None

    if not response_checksum_ok(frame):
        logger.warning(
            "Response checksum mismatch or missing (%d-byte frame), decoding anyway",
            len(frame),
        )

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("Response registers: %s", format_registers(frame))

    return derive_metrics(frame)


decode = handle_frame
