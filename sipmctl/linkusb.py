"""Serial link to a LinkUSB 1-wire adapter."""

from __future__ import annotations

import logging
import time
from typing import Any

import serial

log = logging.getLogger(__name__)

DEFAULT_PORT = "/dev/ttyLinkUSB"
EXPECTED_ID = "LinkUSB V1.6"
INITIAL_BAUD = 9600
FAST_BAUD = 38400
BUFLEN = 5000


class LinkUSBError(Exception):
    """Raised when the LinkUSB adapter cannot be opened or does not answer."""


class LinkUSB:
    """A LinkUSB adapter reached through a serial-like transport.

    The transport needs ``write``, ``read``, ``close``, ``reset_input_buffer``,
    ``reset_output_buffer`` and a writable ``baudrate``; ``read`` must not block.
    """

    POLL_INTERVAL = 0.03
    MAX_POLLS = 66
    SETTLE_DELAY = 0.1

    def __init__(self, transport: Any) -> None:
        self.transport = transport
        self.poll_interval = self.POLL_INTERVAL
        self.max_polls = self.MAX_POLLS
        self.settle_delay = self.SETTLE_DELAY

    def talk(self, data: str | bytes, length: int = 0) -> str:
        """Send ``data`` and collect the reply.

        ``length`` > 0 waits for exactly that many characters, ``length`` < 0
        waits for a reply terminated by CR LF (returned without it) and
        ``length`` == 0 expects no reply and returns an empty string.
        """
        payload = data.encode("ascii") if isinstance(data, str) else bytes(data)
        try:
            self.transport.write(payload)
        except OSError as exc:
            raise LinkUSBError(f"write error: {exc}") from exc
        if length == 0:
            return ""

        limit = length if length > 0 else BUFLEN - 1
        received = bytearray()
        for attempt in range(self.max_polls):
            log.debug("poll %d", attempt)
            time.sleep(self.poll_interval)
            try:
                chunk = self.transport.read(limit - len(received))
            except OSError as exc:
                raise LinkUSBError(f"read error: {exc}") from exc
            if not chunk:
                continue
            received += chunk
            log.debug("got %d, total %d", len(chunk), len(received))
            if length < 0:
                end = received.find(b"\r\n")
                if end >= 0:
                    return received[:end].decode("latin-1")
            elif len(received) >= limit:
                return received[:limit].decode("latin-1")
        raise LinkUSBError("read timeout")

    def _check_id(self, stage: str) -> None:
        reply = self.talk(" ", -1)
        if reply != EXPECTED_ID:
            raise LinkUSBError(f"LinkUSB ID check failed{stage}, got {reply!r}")

    def initialize(self) -> None:
        """Check the adapter, switch it to 38400 baud and prepare 1-wire use."""
        self._check_id("")
        log.info("%s, check succeeded", EXPECTED_ID)

        self.talk("`", 0)
        time.sleep(self.settle_delay)
        self.transport.baudrate = FAST_BAUD
        self.transport.reset_input_buffer()
        self.transport.reset_output_buffer()
        time.sleep(self.settle_delay)
        self._check_id(" (after baud rate switch)")
        log.info("%s, baud rate switch to %d succeeded", EXPECTED_ID, FAST_BAUD)

        self.talk('"r', -1)
        reply = self.talk("r", -1)
        if reply != "P":
            log.warning("unexpected 1-wire reset response on open: %r", reply)

    def close(self) -> None:
        """Close the underlying transport."""
        self.transport.close()

    def __enter__(self) -> LinkUSB:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def open_linkusb(port: str = DEFAULT_PORT) -> LinkUSB:
    """Open and initialise the LinkUSB adapter on ``port``."""
    try:
        transport = serial.Serial(port, baudrate=INITIAL_BAUD, timeout=0)
    except (serial.SerialException, OSError) as exc:
        raise LinkUSBError(f"device open error: {exc}") from exc
    link = LinkUSB(transport)
    try:
        link.initialize()
    except Exception:
        link.close()
        raise
    return link