"""
Outbound frame builders for the data-logger TCP protocol.

A read request is three nested layers, each little-endian::

    TCP frame
    +--------+---------+--------+------+------+------------------------+
    | A1 1A  | version | length | type | func |   transport envelope   |
    | 2 B    | u16     | u16    | 1 B  | 1 B  |                        |
    +--------+---------+--------+------+------+------------------------+

    transport envelope
    +-------------------+--------+---------------------------------+
    | datalogger serial | length |         command                 |
    | 10 B              | u16    |                                 |
    +-------------------+--------+---------------------------------+

    command (18 B)
    +------+------+-----------------+-------+-------+--------+
    | addr | func | inverter serial | start | count | CRC16  |
    | 0x00 | 0x04 | 10 B            | u16   | u16   | u16    |
    +------+------+-----------------+-------+-------+--------+

The frame ``length`` field counts everything after itself (type + func +
envelope), so a complete frame is always ``length + 6`` bytes long.  The
stream parser relies on that relationship to find frame boundaries.

CHANGELOG:
- 2026-10-20: Reject non-bytes serials with ValueError
- 2026-10-19: Add decode_frame_header and format_hex for raw frame logging
- 2026-10-19: Initial creation (STORY-102)

TODO:
- None
"""

from __future__ import annotations

import struct
from dataclasses import dataclass

from dongle_edge.src.crc import crc16_modbus

# ---------------------------------------------------------------------------
# Wire constants
# ---------------------------------------------------------------------------

FRAME_PREFIX: bytes = b"\xa1\x1a"
"""Magic bytes that open every TCP frame."""

FRAME_TYPE: int = 1
"""Fixed frame-type byte at offset 6."""

LENGTH_FIELD_END: int = 6
"""Size of prefix + version + length; total frame size = length + this."""

FRAME_HEADER_SIZE: int = 8
"""Bytes before the envelope: prefix, version, length, type, function code."""

FUNCTION_CODE_OFFSET: int = 7

TCP_FUNC_TRANSLATED: int = 194
"""Outer function code for a translated Modbus exchange (request and response)."""

MODBUS_READ_INPUT: int = 4
"""Modbus function code: read input registers."""

COMMAND_ADDRESS: int = 0
"""Target address byte of the inner command (local / broadcast)."""

SERIAL_LENGTH: int = 10
COMMAND_LENGTH: int = 18
ENVELOPE_HEADER_SIZE: int = SERIAL_LENGTH + 2

MAX_ENVELOPE_LENGTH: int = 0xFFFF - 2
"""Largest envelope whose frame length still fits the u16 length field."""

UNASSIGNED_DATALOGGER_SERIAL: bytes = b"\xff" * SERIAL_LENGTH
"""Data-logger serial used when the real one is unknown."""

UNADDRESSED_INVERTER_SERIAL: bytes = b"\x00" * SERIAL_LENGTH
"""Inverter serial used when the logger has a single inverter attached."""


@dataclass(frozen=True, slots=True)
class FrameHeader:
    """Decoded fixed fields of a TCP frame plus its envelope bytes."""

    protocol_version: int
    function_code: int
    payload: bytes


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_serial(serial: bytes, what: str) -> bytes:
    if not isinstance(serial, bytes | bytearray | memoryview):
        msg = f"{what} must be bytes, got {type(serial).__name__}"
        raise ValueError(msg)
    if len(serial) != SERIAL_LENGTH:
        msg = f"{what} must be exactly {SERIAL_LENGTH} bytes, got {len(serial)}"
        raise ValueError(msg)
    return bytes(serial)


def _check_u16(value: int, what: str) -> int:
    if not 0 <= value <= 0xFFFF:
        msg = f"{what} must be 0-65535, got {value}"
        raise ValueError(msg)
    return value


def serial_from_text(text: str, default: bytes) -> bytes:
    """Convert a configured serial string into a 10-byte identifier.

    An empty string selects *default* (one of the sentinel serials).

    Raises:
        ValueError: If *text* is not empty and not 10 ASCII characters.
    """
    if not text:
        return default
    try:
        raw = text.encode("ascii")
    except UnicodeEncodeError as err:
        msg = f"Serial {text!r} must be ASCII"
        raise ValueError(msg) from err
    return _check_serial(raw, f"Serial {text!r}")


# ---------------------------------------------------------------------------
# Encoders
# ---------------------------------------------------------------------------


def build_read_input_command(
    inverter_serial: bytes,
    start_register: int,
    register_count: int,
) -> bytes:
    """Build the 18-byte read-input-registers command.

    Args:
        inverter_serial: 10-byte inverter serial (or the unaddressed sentinel).
        start_register: First input register to read.
        register_count: Number of registers to read.

    Returns:
        The command bytes, CRC16 over bytes 0-15 appended little-endian.

    Raises:
        ValueError: On a serial that is not 10 bytes or values outside u16.
    """
    body = bytes([COMMAND_ADDRESS, MODBUS_READ_INPUT])
    body += _check_serial(inverter_serial, "Inverter serial")
    body += struct.pack(
        "<HH",
        _check_u16(start_register, "start_register"),
        _check_u16(register_count, "register_count"),
    )
    return body + struct.pack("<H", crc16_modbus(body))


def build_envelope(datalogger_serial: bytes, command: bytes) -> bytes:
    """Wrap *command* with the data-logger serial and its byte length."""
    serial = _check_serial(datalogger_serial, "Datalogger serial")
    return serial + struct.pack("<H", _check_u16(len(command), "Command length")) + command


def build_frame(protocol_version: int, function_code: int, envelope: bytes) -> bytes:
    """Wrap *envelope* in the outer TCP frame.

    Returns:
        The exact bytes to write to the socket (``8 + len(envelope)`` long).

    Raises:
        ValueError: If the envelope is too large for the length field or the
            version / function code do not fit their fields.
    """
    if len(envelope) > MAX_ENVELOPE_LENGTH:
        msg = f"Envelope of {len(envelope)} bytes exceeds {MAX_ENVELOPE_LENGTH}"
        raise ValueError(msg)
    if not 0 <= function_code <= 0xFF:
        msg = f"function_code must be 0-255, got {function_code}"
        raise ValueError(msg)
    header = FRAME_PREFIX + struct.pack(
        "<HHBB",
        _check_u16(protocol_version, "protocol_version"),
        len(envelope) + 2,
        FRAME_TYPE,
        function_code,
    )
    return header + envelope


def encode_read_input_request(
    protocol_version: int,
    datalogger_serial: bytes,
    inverter_serial: bytes,
    start_register: int,
    register_count: int,
    function_code: int = TCP_FUNC_TRANSLATED,
) -> bytes:
    """Compose command, envelope and frame into one outbound request."""
    command = build_read_input_command(inverter_serial, start_register, register_count)
    envelope = build_envelope(datalogger_serial, command)
    return build_frame(protocol_version, function_code, envelope)


# ---------------------------------------------------------------------------
# Inspection helpers
# ---------------------------------------------------------------------------


def decode_frame_header(frame: bytes) -> FrameHeader:
    """Split a complete frame into version, function code and envelope.

    Raises:
        ValueError: If the prefix is missing or the declared length does not
            match the frame size.
    """
    if len(frame) < FRAME_HEADER_SIZE:
        msg = f"Frame too short: {len(frame)} bytes"
        raise ValueError(msg)
    if frame[:2] != FRAME_PREFIX:
        msg = f"Invalid frame prefix: {bytes(frame[:2]).hex()}"
        raise ValueError(msg)
    version, length, _frame_type, function_code = struct.unpack_from("<HHBB", frame, 2)
    if length + LENGTH_FIELD_END != len(frame):
        msg = (
            f"Frame length mismatch: header declares {length + LENGTH_FIELD_END} "
            f"bytes, got {len(frame)}"
        )
        raise ValueError(msg)
    return FrameHeader(
        protocol_version=version,
        function_code=function_code,
        payload=bytes(frame[FRAME_HEADER_SIZE:]),
    )


def format_hex(frame: bytes) -> str:
    """Render *frame* as space-separated lowercase hex pairs."""
    return bytes(frame).hex(" ")
