"""
Input register map for the read-input-registers response.

Register values in a response frame are little-endian u16 words starting at
a fixed byte offset.  The offset is the sum of three fixed-size headers:

- 8 bytes outer TCP frame header (prefix, version, length, type, function)
- 12 bytes transport envelope header (datalogger serial, data length)
- 15 bytes Modbus response header (action, function code, inverter serial,
  start register u16, byte count)

Only the registers used for the PV flow and consumption figures are named
here.  Indices are relative to the start register of the request (0 by
default), matching the overview screen of the vendor app.

CHANGELOG:
- 2026-10-20: Add format_registers for the decoder debug log
- 2026-10-19: Initial creation (STORY-104)

TODO:
- None
"""

from __future__ import annotations

from dataclasses import dataclass

# ---------------------------------------------------------------------------
# Layout constants
# ---------------------------------------------------------------------------

OUTER_HEADER_SIZE: int = 8
ENVELOPE_HEADER_SIZE: int = 12
RESPONSE_HEADER_SIZE: int = 15

REGISTER_DATA_OFFSET: int = OUTER_HEADER_SIZE + ENVELOPE_HEADER_SIZE + RESPONSE_HEADER_SIZE
"""Byte offset of register 0 inside a complete response frame (35)."""


# ---------------------------------------------------------------------------
# Data definitions
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RegisterDef:
    """Definition of a single input register.

    Attributes:
        index: Zero-based register index within the response data.
        name: Unique identifier used as dict key.
        unit: Engineering unit string.
    """

    index: int
    name: str
    unit: str = "W"

    def __post_init__(self) -> None:  # noqa: D105
        if self.index < 0:
            msg = f"Register '{self.name}': index must be >= 0, got {self.index}"
            raise ValueError(msg)


PV1_POWER = RegisterDef(7, "pv1_power")
PV2_POWER = RegisterDef(8, "pv2_power")
PV3_POWER = RegisterDef(9, "pv3_power")
INVERTER_OUTPUT_POWER = RegisterDef(16, "inverter_output_power")
INVERTER_INPUT_POWER = RegisterDef(17, "inverter_input_power")  # rectifier, grid to battery
GRID_EXPORT_POWER = RegisterDef(26, "grid_export_power")
GRID_IMPORT_POWER = RegisterDef(27, "grid_import_power")

PV_REGISTERS: tuple[RegisterDef, ...] = (PV1_POWER, PV2_POWER, PV3_POWER)

ALL_REGISTERS: dict[str, RegisterDef] = {
    reg.name: reg
    for reg in (
        *PV_REGISTERS,
        INVERTER_OUTPUT_POWER,
        INVERTER_INPUT_POWER,
        GRID_EXPORT_POWER,
        GRID_IMPORT_POWER,
    )
}
"""Named registers keyed by name."""


def register_at(frame: bytes, index: int) -> int:
    """Read register *index* from a response frame.

    Returns:
        The unsigned 16-bit value, or 0 when the frame is too short to hold
        the register.
    """
    pos = REGISTER_DATA_OFFSET + index * 2
    if index < 0 or pos + 1 >= len(frame):
        return 0
    return frame[pos] | (frame[pos + 1] << 8)


def read_register(frame: bytes, reg: RegisterDef) -> int:
    """Read the register described by *reg* from *frame*."""
    return register_at(frame, reg.index)


def format_registers(frame: bytes) -> str:
    """Render every named register of *frame* as ``name=value unit`` pairs."""
    return ", ".join(
        f"{reg.name}={read_register(frame, reg)} {reg.unit}" for reg in ALL_REGISTERS.values()
    )
