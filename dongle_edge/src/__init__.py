"""
Edge daemon package for the solar data-logger telemetry client.

Polls a LuxPower-style WiFi data logger over its proprietary TCP protocol
(port 8000), decodes PV generation and household consumption from the
input register response, and reports them via structured logs and a
health file.

CHANGELOG:
- 2026-10-19: Initial creation (STORY-101)

TODO:
- None
"""
