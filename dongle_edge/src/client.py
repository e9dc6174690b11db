"""
Async TCP session with the data logger.

Opens a plain asyncio stream to the dongle (no pymodbus: the dongle wraps
Modbus RTU in its own framing), then runs two coroutines until the
connection drops or shutdown is requested:

- a sender that writes the pre-encoded read request every poll interval;
- a receiver that feeds every inbound chunk into this connection's
  :class:`StreamFrameParser` and hands each complete frame to ``on_frame``.

The receiver is the only caller of ``feed``, so bytes reach the parser
strictly in arrival order.  A fresh parser is created per connection.

Connection failures and EOF never propagate out of :meth:`DongleSession.run`;
they are logged and followed by an exponential backoff (capped at
MAX_BACKOFF_S) before reconnecting.  The backoff resets once a frame is
received.

CHANGELOG:
- 2026-10-20: Abandon a pending connect as soon as shutdown is requested
- 2026-10-19: Replace Modbus TCP poller with dongle stream session (STORY-107)

TODO:
- None
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable

from dongle_edge.src.parser import DEFAULT_MAX_FRAME_LENGTH, StreamFrameParser

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

BASE_BACKOFF_S: float = 1.0
"""Initial backoff delay in seconds after the first connection failure."""

MAX_BACKOFF_S: float = 60.0
"""Maximum backoff delay in seconds (cap for exponential growth)."""

RECV_BUFFER_SIZE: int = 4096
"""Maximum bytes requested per socket read."""

CLOSE_TIMEOUT_S: float = 5.0
"""How long to wait for the writer to close before giving up."""


def backoff_delay(consecutive_failures: int) -> float:
    """Return the sleep before reconnect attempt number *consecutive_failures*."""
    if consecutive_failures <= 0:
        return 0.0
    return min(BASE_BACKOFF_S * (2 ** (consecutive_failures - 1)), MAX_BACKOFF_S)


class DongleSession:
    """Long-lived connection manager for one data logger.

    Args:
        host: Data logger IP address or hostname.
        port: Data logger TCP port.
        request: Encoded request frame written every poll interval.
        on_frame: Called with each complete inbound frame.
        poll_interval_s: Seconds between requests.
        connect_timeout_s: Timeout for ``open_connection``.
        max_frame_length: Passed to each connection's parser.
        on_request: Optional hook called after each request is written.
    """

    def __init__(
        self,
        *,
        host: str,
        port: int,
        request: bytes,
        on_frame: Callable[[bytes], None],
        poll_interval_s: float = 5.0,
        connect_timeout_s: float = 10.0,
        max_frame_length: int | None = DEFAULT_MAX_FRAME_LENGTH,
        on_request: Callable[[], None] | None = None,
    ) -> None:
        self._host = host
        self._port = port
        self._request = request
        self._on_frame = on_frame
        self._on_request = on_request
        self._poll_interval_s = poll_interval_s
        self._connect_timeout_s = connect_timeout_s
        self._max_frame_length = max_frame_length
        self._parser: StreamFrameParser | None = None
        self._consecutive_failures: int = 0
        self._frames_received: int = 0

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    @property
    def frames_received(self) -> int:
        return self._frames_received

    @property
    def parser(self) -> StreamFrameParser | None:
        """Parser of the current (or last) connection."""
        return self._parser

    async def run(self, shutdown_event: asyncio.Event) -> None:
        """Connect, exchange frames and reconnect until *shutdown_event* is set."""
        logger.info("Session loop started for %s:%d", self._host, self._port)
        while not shutdown_event.is_set():
            if self._consecutive_failures > 0:
                delay = backoff_delay(self._consecutive_failures)
                logger.warning(
                    "Backoff: sleeping %.1fs before reconnect (consecutive failures: %d)",
                    delay,
                    self._consecutive_failures,
                )
                with contextlib.suppress(TimeoutError):
                    await asyncio.wait_for(shutdown_event.wait(), timeout=delay)
                if shutdown_event.is_set():
                    break

            try:
                await self.run_connection(shutdown_event)
            except (OSError, TimeoutError):
                logger.warning(
                    "Connection to data logger %s:%d failed",
                    self._host,
                    self._port,
                    exc_info=True,
                )

            if not shutdown_event.is_set():
                self._consecutive_failures += 1
        logger.info("Session loop stopped")

    async def run_connection(self, shutdown_event: asyncio.Event) -> None:
        """Run a single connection until EOF, an I/O error or shutdown.

        Raises:
            OSError: If connecting, writing or reading fails.
            TimeoutError: If the connection cannot be opened in time.
        """
        connect_task = asyncio.create_task(
            asyncio.wait_for(
                asyncio.open_connection(self._host, self._port),
                timeout=self._connect_timeout_s,
            )
        )
        stop_task = asyncio.create_task(shutdown_event.wait())
        try:
            await asyncio.wait({connect_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            stop_task.cancel()
            if not connect_task.done():
                connect_task.cancel()
            await asyncio.gather(connect_task, stop_task, return_exceptions=True)

        if connect_task.cancelled():
            logger.info("Shutdown requested while connecting to %s:%d", self._host, self._port)
            return

        reader, writer = connect_task.result()
        logger.info("Connected to data logger at %s:%d", self._host, self._port)
        self._parser = StreamFrameParser(self._max_frame_length)

        tasks = [
            asyncio.create_task(self._send_loop(writer, shutdown_event)),
            asyncio.create_task(self._receive_loop(reader)),
            asyncio.create_task(shutdown_event.wait()),
        ]
        try:
            done, _pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                task.result()
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            writer.close()
            with contextlib.suppress(OSError, TimeoutError):
                await asyncio.wait_for(writer.wait_closed(), timeout=CLOSE_TIMEOUT_S)
            logger.info("Disconnected from data logger %s:%d", self._host, self._port)

    async def _send_loop(
        self,
        writer: asyncio.StreamWriter,
        shutdown_event: asyncio.Event,
    ) -> None:
        while not shutdown_event.is_set():
            writer.write(self._request)
            await writer.drain()
            logger.info("Sent read input registers request")
            if self._on_request is not None:
                self._on_request()
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(
                    shutdown_event.wait(),
                    timeout=self._poll_interval_s,
                )

    async def _receive_loop(self, reader: asyncio.StreamReader) -> None:
        assert self._parser is not None
        while True:
            chunk = await reader.read(RECV_BUFFER_SIZE)
            if not chunk:
                logger.warning("Connection closed by data logger")
                return
            for frame in self._parser.feed(chunk):
                self._frames_received += 1
                self._consecutive_failures = 0
                self._on_frame(frame)
