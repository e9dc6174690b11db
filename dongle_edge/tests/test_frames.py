"""
Tests for the outbound command, envelope and frame builders.

Verifies exact byte layouts, length invariants, serial validation and that
decode_frame_header inverts build_frame.

CHANGELOG:
- 2026-10-20: Text serials raise ValueError
- 2026-10-19: Initial creation (STORY-102)

TODO:
- None
"""

from __future__ import annotations

import struct

import pytest
from dongle_edge.src.crc import crc16_modbus
from dongle_edge.src.frames import (
    COMMAND_LENGTH,
    FRAME_PREFIX,
    MAX_ENVELOPE_LENGTH,
    TCP_FUNC_TRANSLATED,
    UNADDRESSED_INVERTER_SERIAL,
    UNASSIGNED_DATALOGGER_SERIAL,
    FrameHeader,
    build_envelope,
    build_frame,
    build_read_input_command,
    decode_frame_header,
    encode_read_input_request,
    format_hex,
    serial_from_text,
)

# Default request: protocol 1, unassigned logger, unaddressed inverter,
# registers 0..39.
_DEFAULT_REQUEST_HEX = (
    "a11a 0100 2000 01 c2"
    " ffffffffffffffffffff 1200"
    " 00 04 00000000000000000000 0000 2800 a4f3"
)


# ===========================================================================
# Command encoder
# ===========================================================================


class TestReadInputCommand:
    """The 18-byte Modbus-style read command."""

    def test_length_is_fixed(self) -> None:
        cmd = build_read_input_command(UNADDRESSED_INVERTER_SERIAL, 0, 40)
        assert len(cmd) == COMMAND_LENGTH

    def test_field_layout(self) -> None:
        serial = b"CE12345678"
        cmd = build_read_input_command(serial, 0x0102, 0x0304)

        assert cmd[0] == 0x00
        assert cmd[1] == 0x04
        assert cmd[2:12] == serial
        assert cmd[12:14] == b"\x02\x01"
        assert cmd[14:16] == b"\x04\x03"

    def test_checksum_covers_first_sixteen_bytes(self) -> None:
        cmd = build_read_input_command(b"CE12345678", 120, 40)
        (crc,) = struct.unpack("<H", cmd[16:18])
        assert crc == crc16_modbus(cmd[:16])

    def test_default_command_checksum_bytes(self) -> None:
        cmd = build_read_input_command(UNADDRESSED_INVERTER_SERIAL, 0, 40)
        assert cmd[16:18] == b"\xa4\xf3"

    @pytest.mark.parametrize("serial", [b"", b"SHORT", b"ELEVEN_BYTE"])
    def test_wrong_serial_length_raises(self, serial: bytes) -> None:
        with pytest.raises(ValueError, match="10 bytes"):
            build_read_input_command(serial, 0, 40)

    def test_register_values_outside_u16_raise(self) -> None:
        with pytest.raises(ValueError):
            build_read_input_command(UNADDRESSED_INVERTER_SERIAL, 0x10000, 1)
        with pytest.raises(ValueError):
            build_read_input_command(UNADDRESSED_INVERTER_SERIAL, 0, -1)

    def test_text_serial_raises_value_error(self) -> None:
        with pytest.raises(ValueError, match="must be bytes"):
            build_read_input_command("CE12345678", 0, 40)  # type: ignore[arg-type]

    def test_bytearray_serial_accepted(self) -> None:
        cmd = build_read_input_command(bytearray(b"CE12345678"), 0, 40)
        assert cmd[2:12] == b"CE12345678"


# ===========================================================================
# Envelope encoder
# ===========================================================================


class TestEnvelope:
    """Datalogger serial + explicit length + command."""

    def test_layout_and_length(self) -> None:
        command = b"\x01\x02\x03"
        env = build_envelope(b"BA12345678", command)

        assert env[:10] == b"BA12345678"
        assert env[10:12] == b"\x03\x00"
        assert env[12:] == command
        assert len(env) == 12 + len(command)

    def test_length_field_matches_command_length(self) -> None:
        command = build_read_input_command(UNADDRESSED_INVERTER_SERIAL, 0, 40)
        env = build_envelope(UNASSIGNED_DATALOGGER_SERIAL, command)
        (declared,) = struct.unpack("<H", env[10:12])
        assert declared == len(command) == 18

    def test_empty_command(self) -> None:
        env = build_envelope(UNASSIGNED_DATALOGGER_SERIAL, b"")
        assert env == UNASSIGNED_DATALOGGER_SERIAL + b"\x00\x00"

    def test_wrong_serial_length_raises(self) -> None:
        with pytest.raises(ValueError, match="Datalogger serial"):
            build_envelope(b"123", b"\x00")

    def test_text_serial_raises_value_error(self) -> None:
        with pytest.raises(ValueError, match="Datalogger serial must be bytes"):
            build_envelope("BA12345678", b"")  # type: ignore[arg-type]


# ===========================================================================
# Frame encoder
# ===========================================================================


class TestFrame:
    """Outer TCP frame: prefix, version, length, type, function code."""

    def test_header_layout(self) -> None:
        frame = build_frame(2, 0xC2, b"\xaa\xbb\xcc")

        assert frame[:2] == FRAME_PREFIX
        assert frame[2:4] == b"\x02\x00"
        assert frame[4:6] == b"\x05\x00"
        assert frame[6] == 1
        assert frame[7] == 0xC2
        assert frame[8:] == b"\xaa\xbb\xcc"

    def test_length_field_is_payload_plus_two(self) -> None:
        for size in (0, 1, 30, 300):
            frame = build_frame(1, TCP_FUNC_TRANSLATED, bytes(size))
            (declared,) = struct.unpack("<H", frame[4:6])
            assert declared == size + 2
            assert len(frame) == declared + 6 == size + 8

    def test_largest_envelope_fits(self) -> None:
        frame = build_frame(1, 0xC2, bytes(MAX_ENVELOPE_LENGTH))
        assert frame[4:6] == b"\xff\xff"

    def test_oversized_envelope_raises(self) -> None:
        with pytest.raises(ValueError, match="exceeds"):
            build_frame(1, 0xC2, bytes(MAX_ENVELOPE_LENGTH + 1))

    def test_function_code_must_fit_a_byte(self) -> None:
        with pytest.raises(ValueError):
            build_frame(1, 256, b"")


class TestEncodeReadInputRequest:
    """Full composition produces the bytes written to the socket."""

    def test_default_request_bytes(self) -> None:
        frame = encode_read_input_request(
            protocol_version=1,
            datalogger_serial=UNASSIGNED_DATALOGGER_SERIAL,
            inverter_serial=UNADDRESSED_INVERTER_SERIAL,
            start_register=0,
            register_count=40,
        )
        assert frame == bytes.fromhex(_DEFAULT_REQUEST_HEX)
        assert len(frame) == 38

    def test_protocol_version_two(self) -> None:
        frame = encode_read_input_request(
            2, UNASSIGNED_DATALOGGER_SERIAL, UNADDRESSED_INVERTER_SERIAL, 0, 40
        )
        assert frame[2:4] == b"\x02\x00"

    def test_invalid_serial_surfaces(self) -> None:
        with pytest.raises(ValueError):
            encode_read_input_request(1, b"BAD", UNADDRESSED_INVERTER_SERIAL, 0, 40)


# ===========================================================================
# Header decoding
# ===========================================================================


class TestDecodeFrameHeader:
    """decode_frame_header inverts build_frame."""

    @pytest.mark.parametrize("size", [0, 1, 18, 30, MAX_ENVELOPE_LENGTH])
    def test_round_trip(self, size: int) -> None:
        payload = bytes(i & 0xFF for i in range(size))
        header = decode_frame_header(build_frame(2, 0xC1, payload))
        assert header == FrameHeader(protocol_version=2, function_code=0xC1, payload=payload)

    def test_bad_prefix_raises(self) -> None:
        frame = bytearray(build_frame(1, 0xC2, b"\x00"))
        frame[1] = 0x1B
        with pytest.raises(ValueError, match="prefix"):
            decode_frame_header(bytes(frame))

    def test_length_mismatch_raises(self) -> None:
        frame = build_frame(1, 0xC2, b"\x00\x01") + b"\xff"
        with pytest.raises(ValueError, match="mismatch"):
            decode_frame_header(frame)

    def test_short_frame_raises(self) -> None:
        with pytest.raises(ValueError, match="too short"):
            decode_frame_header(b"\xa1\x1a\x01")


# ===========================================================================
# Serial helpers
# ===========================================================================


class TestSerialFromText:
    """Configured serial strings become 10-byte identifiers."""

    def test_empty_uses_default(self) -> None:
        assert serial_from_text("", UNASSIGNED_DATALOGGER_SERIAL) == b"\xff" * 10
        assert serial_from_text("", UNADDRESSED_INVERTER_SERIAL) == b"\x00" * 10

    def test_ascii_serial(self) -> None:
        assert serial_from_text("BA12345678", UNASSIGNED_DATALOGGER_SERIAL) == b"BA12345678"

    def test_wrong_length_raises(self) -> None:
        with pytest.raises(ValueError):
            serial_from_text("BA123", UNASSIGNED_DATALOGGER_SERIAL)

    def test_non_ascii_raises(self) -> None:
        with pytest.raises(ValueError, match="ASCII"):
            serial_from_text("BA1234567é", UNASSIGNED_DATALOGGER_SERIAL)


def test_format_hex_spaces_pairs() -> None:
    assert format_hex(b"\xa1\x1a\x01") == "a1 1a 01"
