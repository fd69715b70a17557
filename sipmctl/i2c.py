"""I2C transactions bit-banged through a DS2413 switch behind a LinkUSB."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

log = logging.getLogger(__name__)

OP_I2C_START = 0x400
OP_I2C_STOP = 0x200
OP_I2C_WRITE = 0x100
OP_I2C_READ_ACK = 0x0FF
OP_I2C_READ_NACK = 0x1FF

_HEADER_CHARS = 20
_POST_CHARS = 8
_START_POSTS = 4
_STOP_POSTS = 2
_BIT_POSTS = 3
_DATA_POSTS = 9 * _BIT_POSTS


class I2CError(Exception):
    """Raised when an I2C transaction through the DS2413 fails."""


def ds2413_post(data: int) -> str:
    """Encode one PIO write: the byte, its complement and two read frames."""
    value = 0xFC | (data & 0x03)
    return f"{value:02X}{~value & 0xFF:02X}FFFF"


def _start() -> list[str]:
    # An extra stop first, in case a previous transaction was cut short.
    return [ds2413_post(0x1), ds2413_post(0x3), ds2413_post(0x1), ds2413_post(0x0)]


def _stop() -> list[str]:
    return [ds2413_post(0x1), ds2413_post(0x3)]


def _data(op: int, timeout_hack: bool) -> list[str]:
    posts = []
    for bit in range(7, -1, -1):
        sda = ((op >> bit) & 0x1) << 1
        posts.append(ds2413_post(sda))
        posts.append(ds2413_post(sda | 0x1))
        posts.append(ds2413_post(0x2 if timeout_hack else sda))
    ack = ((op >> 8) & 0x1) << 1
    posts += [ds2413_post(ack), ds2413_post(ack | 0x1), ds2413_post(ack)]
    return posts


def encode_i2c(owaddr: int, ops: Sequence[int], timeout_hack: bool = False) -> str:
    """Build the LinkUSB byte-mode command carrying the I2C operations."""
    address = (owaddr & 0xFFFFFFFFFFFFFFFF).to_bytes(8, "little").hex().upper()
    parts = ["b55", address, "5A"]
    for op in ops:
        if op == OP_I2C_START:
            parts += _start()
        elif op == OP_I2C_STOP:
            parts += _stop()
        else:
            parts += _data(op, timeout_hack)
    parts.append("\n")
    return "".join(parts)


def _expected_length(ops: Sequence[int]) -> int:
    posts = 0
    for op in ops:
        if op == OP_I2C_START:
            posts += _START_POSTS
        elif op == OP_I2C_STOP:
            posts += _STOP_POSTS
        else:
            posts += _DATA_POSTS
    return _HEADER_CHARS + posts * _POST_CHARS


def _sampled_bit(response: str, pos: int) -> bool:
    # The SDA state sits in bit 2 of the last character of the SCL-high read frame.
    return (ord(response[pos + _POST_CHARS + 7]) & 0x4) != 0


def decode_i2c(ops: Sequence[int], response: str) -> list[int]:
    """Extract the sampled data and ack bits of each data operation."""
    needed = _expected_length(ops)
    if len(response) < needed:
        raise I2CError(
            f"byte mode response too short: {len(response)} chars, need {needed}"
        )
    results = []
    pos = _HEADER_CHARS
    for op in ops:
        if op == OP_I2C_START:
            pos += _START_POSTS * _POST_CHARS
        elif op == OP_I2C_STOP:
            pos += _STOP_POSTS * _POST_CHARS
        else:
            value = 0
            for bit in range(7, -1, -1):
                if _sampled_bit(response, pos):
                    value |= 1 << bit
                pos += _BIT_POSTS * _POST_CHARS
            if _sampled_bit(response, pos):
                value |= 1 << 8
            pos += _BIT_POSTS * _POST_CHARS
            results.append(value)
    return results


def talk_i2c(
    link: Any, owaddr: int, ops: Sequence[int], timeout_hack: bool = False
) -> list[int]:
    """Run the I2C operations on the DS2413 at ``owaddr`` and return what was read."""
    log.debug("i2c ops: %s", " ".join(f"{op:04x}" for op in ops))
    reply = link.talk("r", -1)
    if reply != "P":
        raise I2CError(f"1-wire reset response: {reply!r}")
    command = encode_i2c(owaddr, ops, timeout_hack)
    log.debug("will send (%d chars): %s", len(command), command)
    response = link.talk(command, -1)
    log.debug("byte mode: got %d chars: %s", len(response), response)
    results = decode_i2c(ops, response)
    log.debug("i2c read: %s", " ".join(f"{value:04x}" for value in results))
    return results