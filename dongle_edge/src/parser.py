"""
Resynchronising stream parser for data-logger TCP frames.

The dongle delivers bytes in whatever chunks TCP hands us: a frame may be
split across reads, several frames may arrive in one read, and unsolicited
or corrupted bytes may sit between frames.  ``StreamFrameParser`` owns a
single byte buffer and, on every ``feed``, extracts as many complete frames
as the buffer holds:

- SEEKING: fewer than 2 bytes buffered -> wait.  First two bytes are not
  ``A1 1A`` -> drop up to the next ``0xA1`` at offset >= 1 (or drop
  everything when there is none) and look again.
- AWAITING_LENGTH: prefix matches but fewer than 6 bytes -> wait.
- AWAITING_BODY: total = declared length + 6.  Fewer bytes than that ->
  wait; otherwise slice one frame off the front and start over.

A declared total above ``max_frame_length`` is treated like a bad prefix,
so a corrupted length field cannot stall the stream waiting for up to 64 KiB
that will never form a frame.

One parser belongs to one connection.  It is not thread-safe: callers must
feed bytes from a single consumer, in arrival order.

CHANGELOG:
- 2026-10-19: Cap declared frame length and resync on oversize frames
- 2026-10-19: Initial creation (STORY-103)

TODO:
- None
"""

from __future__ import annotations

import logging

from dongle_edge.src.frames import FRAME_HEADER_SIZE, FRAME_PREFIX, LENGTH_FIELD_END

logger = logging.getLogger(__name__)

DEFAULT_MAX_FRAME_LENGTH: int = 2048
"""Largest frame accepted; a 127-register response is under 300 bytes."""

_PREFIX_FIRST_BYTE: int = FRAME_PREFIX[0]


class StreamFrameParser:
    """Accumulates inbound bytes and yields complete frames.

    Args:
        max_frame_length: Upper bound for ``declared length + 6``.  ``None``
            accepts anything the u16 length field can express.
    """

    def __init__(self, max_frame_length: int | None = DEFAULT_MAX_FRAME_LENGTH) -> None:
        if max_frame_length is not None and max_frame_length < FRAME_HEADER_SIZE:
            msg = f"max_frame_length must be >= {FRAME_HEADER_SIZE}, got {max_frame_length}"
            raise ValueError(msg)
        self._max_frame_length = max_frame_length
        self._buffer = bytearray()
        self._discarded = 0

    @property
    def buffered(self) -> int:
        """Number of bytes waiting for the rest of a frame."""
        return len(self._buffer)

    @property
    def discarded(self) -> int:
        """Total bytes dropped while resynchronising since the last reset."""
        return self._discarded

    def reset(self) -> None:
        """Forget buffered bytes, e.g. after the connection is re-established."""
        self._buffer.clear()
        self._discarded = 0

    def feed(self, data: bytes) -> list[bytes]:
        """Append *data* and return every frame that is now complete.

        Returns:
            Zero or more frames in arrival order.  Each frame is an
            independent ``bytes`` copy, prefix through last payload byte.
        """
        self._buffer += data
        frames: list[bytes] = []

        while len(self._buffer) >= 2:
            if self._buffer[:2] != FRAME_PREFIX:
                self._skip_to_next_candidate()
                continue

            if len(self._buffer) < LENGTH_FIELD_END:
                break

            declared = self._buffer[4] | (self._buffer[5] << 8)
            total = declared + LENGTH_FIELD_END

            if self._max_frame_length is not None and total > self._max_frame_length:
                logger.debug(
                    "Declared frame length %d exceeds limit %d, resynchronising",
                    total,
                    self._max_frame_length,
                )
                self._skip_to_next_candidate()
                continue

            if len(self._buffer) < total:
                break

            frames.append(bytes(self._buffer[:total]))
            del self._buffer[:total]

        return frames

    def _skip_to_next_candidate(self) -> None:
        """Drop bytes up to the next possible prefix start (offset >= 1)."""
        idx = self._buffer.find(_PREFIX_FIRST_BYTE, 1)
        dropped = len(self._buffer) if idx < 0 else idx
        logger.debug(
            "Discarding %d bytes while seeking frame prefix: %s",
            dropped,
            bytes(self._buffer[:dropped]).hex()[:64],
        )
        del self._buffer[:dropped]
        self._discarded += dropped
