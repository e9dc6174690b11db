"""
Edge daemon configuration loaded from environment variables.

Uses Pydantic BaseSettings for automatic env var loading and validation.
Values come from environment variables or a ``.env`` file; the CLI in
``main`` may override host, port and protocol version afterwards.

CHANGELOG:
- 2026-10-19: Validate serials and register window for the dongle protocol
- 2026-10-19: Initial creation (STORY-106)

TODO:
- None
"""

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings

from dongle_edge.src.frames import FRAME_HEADER_SIZE, SERIAL_LENGTH


class EdgeSettings(BaseSettings):
    """Edge daemon configuration for the data-logger client.

    Attributes:
        dongle_host: Data logger IP address / hostname.
        dongle_port: Data logger TCP port (default 8000).
        protocol_version: Frame protocol version, 1 or 2.
        datalogger_serial: 10-character data logger serial, empty for the
            all-0xFF default.
        inverter_serial: 10-character inverter serial, empty for the
            all-zero "unaddressed" value.
        start_register: First input register to request.
        register_count: Number of input registers to request.
        poll_interval_s: Seconds between read requests.
        connect_timeout_s: Timeout for establishing the TCP connection.
        max_frame_length: Largest inbound frame accepted by the parser.
        device_id: Identifier attached to samples. Defaults to dongle_host.
        health_path: Health JSON file path.
        raw_debug_enabled: Log raw inbound frames as hex.
        raw_debug_every_n_frames: Log only every n-th raw frame.
    """

    dongle_host: str = "10.10.10.1"
    dongle_port: int = 8000
    protocol_version: int = 1
    datalogger_serial: str = ""
    inverter_serial: str = ""
    start_register: int = 0
    register_count: int = 40
    poll_interval_s: int = 5
    connect_timeout_s: float = 10.0
    max_frame_length: int = 2048
    device_id: str = ""
    health_path: str = "/data/health.json"
    raw_debug_enabled: bool = False
    raw_debug_every_n_frames: int = 1

    @model_validator(mode="after")
    def _default_device_id(self) -> "EdgeSettings":
        """Default device_id to dongle_host when not explicitly set."""
        if not self.device_id:
            self.device_id = self.dongle_host
        return self

    @field_validator("dongle_host")
    @classmethod
    def dongle_host_must_be_set(cls, v: str) -> str:
        """Reject an empty host."""
        if not v.strip():
            raise ValueError("DONGLE_HOST must not be empty")
        return v.strip()

    @field_validator("dongle_port")
    @classmethod
    def dongle_port_must_be_valid(cls, v: int) -> int:
        """Validate TCP port is in valid range."""
        if v < 1 or v > 65535:
            raise ValueError("DONGLE_PORT must be between 1 and 65535")
        return v

    @field_validator("protocol_version")
    @classmethod
    def protocol_version_must_be_known(cls, v: int) -> int:
        """Only protocol versions 1 and 2 are spoken by the data logger."""
        if v not in (1, 2):
            raise ValueError("PROTOCOL_VERSION must be 1 or 2")
        return v

    @field_validator("datalogger_serial", "inverter_serial")
    @classmethod
    def serial_must_be_ten_ascii_chars(cls, v: str) -> str:
        """Serials are either empty (sentinel) or exactly 10 ASCII characters."""
        if v and (len(v) != SERIAL_LENGTH or not v.isascii()):
            raise ValueError(
                f"Serial must be empty or {SERIAL_LENGTH} ASCII characters (got {v!r})"
            )
        return v

    @field_validator("start_register")
    @classmethod
    def start_register_must_fit_u16(cls, v: int) -> int:
        """Validate the start register fits the u16 wire field."""
        if v < 0 or v > 0xFFFF:
            raise ValueError("START_REGISTER must be between 0 and 65535")
        return v

    @field_validator("register_count")
    @classmethod
    def register_count_must_be_valid(cls, v: int) -> int:
        """Validate the register count (one byte-count field holds 2 * count)."""
        if v < 1 or v > 127:
            raise ValueError("REGISTER_COUNT must be between 1 and 127")
        return v

    @field_validator("poll_interval_s")
    @classmethod
    def poll_interval_must_be_positive(cls, v: int) -> int:
        """Validate poll interval is at least one second."""
        if v < 1:
            raise ValueError("POLL_INTERVAL_S must be >= 1")
        return v

    @field_validator("connect_timeout_s")
    @classmethod
    def connect_timeout_must_be_positive(cls, v: float) -> float:
        """Validate connect timeout is positive."""
        if v <= 0:
            raise ValueError("CONNECT_TIMEOUT_S must be > 0")
        return v

    @field_validator("max_frame_length")
    @classmethod
    def max_frame_length_must_hold_header(cls, v: int) -> int:
        """A frame can never be shorter than its fixed header."""
        if v < FRAME_HEADER_SIZE:
            raise ValueError(f"MAX_FRAME_LENGTH must be >= {FRAME_HEADER_SIZE}")
        return v

    @field_validator("raw_debug_every_n_frames")
    @classmethod
    def raw_debug_every_n_frames_must_be_positive(cls, v: int) -> int:
        """Validate the raw frame logging period."""
        if v < 1:
            raise ValueError("RAW_DEBUG_EVERY_N_FRAMES must be >= 1")
        return v

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}
