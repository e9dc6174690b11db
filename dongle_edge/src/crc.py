"""
CRC-16/Modbus checksum used by the data-logger wire protocol.

Reflected polynomial 0xA001, initial value 0xFFFF, no final XOR.  The
checksum trails every Modbus-style command inside a transport envelope and
is written little-endian (low byte first).

CHANGELOG:
- 2026-10-19: Initial creation (STORY-101)

TODO:
- None
"""

from __future__ import annotations

CRC16_INITIAL: int = 0xFFFF
"""Accumulator value before the first byte is processed."""

CRC16_POLYNOMIAL: int = 0xA001
"""Bit-reflected form of the Modbus polynomial 0x8005."""


def crc16_modbus(data: bytes | bytearray | memoryview, length: int | None = None) -> int:
    """Compute the CRC-16/Modbus checksum of *data*.

    Args:
        data: Bytes to checksum.
        length: Number of leading bytes to include.  ``None`` covers all of
            *data*.

    Returns:
        The 16-bit checksum as an int.
    """
    if length is None:
        length = len(data)
    crc = CRC16_INITIAL
    for byte in data[:length]:
        crc ^= byte & 0xFF
        for _ in range(8):
            if crc & 0x0001:
                crc = (crc >> 1) ^ CRC16_POLYNOMIAL
            else:
                crc >>= 1
    return crc & 0xFFFF
