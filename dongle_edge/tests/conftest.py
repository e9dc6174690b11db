"""
Shared test fixtures for edge daemon tests.

Provides environment variable fixtures for EdgeSettings configuration tests.
All edge env vars are cleaned before each test to ensure isolation.

CHANGELOG:
- 2026-10-19: Switch env var set to the data-logger settings
- 2026-02-14: Initial creation (STORY-001)

TODO:
- None
"""

from __future__ import annotations

import pytest

# All EdgeSettings environment variable names, used for cleanup.
_ALL_EDGE_ENV_VARS = (
    "DONGLE_HOST",
    "DONGLE_PORT",
    "PROTOCOL_VERSION",
    "DATALOGGER_SERIAL",
    "INVERTER_SERIAL",
    "START_REGISTER",
    "REGISTER_COUNT",
    "POLL_INTERVAL_S",
    "CONNECT_TIMEOUT_S",
    "MAX_FRAME_LENGTH",
    "DEVICE_ID",
    "HEALTH_PATH",
    "RAW_DEBUG_ENABLED",
    "RAW_DEBUG_EVERY_N_FRAMES",
)


@pytest.fixture(autouse=True)
def _clean_edge_env(monkeypatch: pytest.MonkeyPatch, tmp_path: str) -> None:
    """Remove all edge env vars and isolate from .env files before each test.

    Changes working directory to tmp_path so no .env file is accidentally
    loaded by Pydantic BaseSettings.
    """
    for var in _ALL_EDGE_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture()
def env_vars_full(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set every EdgeSettings environment variable.

    Returns the dict of env var names to values for assertion convenience.
    """
    env = {
        "DONGLE_HOST": "192.168.1.50",
        "DONGLE_PORT": "8001",
        "PROTOCOL_VERSION": "2",
        "DATALOGGER_SERIAL": "BA12345678",
        "INVERTER_SERIAL": "CE87654321",
        "START_REGISTER": "40",
        "REGISTER_COUNT": "80",
        "POLL_INTERVAL_S": "15",
        "CONNECT_TIMEOUT_S": "3.5",
        "MAX_FRAME_LENGTH": "512",
        "DEVICE_ID": "garage-dongle",
        "HEALTH_PATH": "/tmp/test-health.json",
        "RAW_DEBUG_ENABLED": "true",
        "RAW_DEBUG_EVERY_N_FRAMES": "10",
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    return env
