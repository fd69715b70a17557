"""I2C devices on the SiPM supply board: DAC, ADC, I/O expander and multiplexor."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from .i2c import (
    OP_I2C_READ_ACK,
    OP_I2C_READ_NACK,
    OP_I2C_START,
    OP_I2C_STOP,
    OP_I2C_WRITE,
    talk_i2c,
)

log = logging.getLogger(__name__)

PCA_ADDR = 0x41
LTC2615_ADDR = 0x10
LTC2451_ADDR = 0x14

PCA_OUTPUT_PORT = 0x01
PCA_CONFIG = 0x03
PCA_CONFIG_VALUE = 0b1110000

_NAK = 0x100

BOARD_ADDRESSES = {
    1: 0x96000000455A523A,
    2: 0x7E000000456F3E3A,
    3: 0xC70000004643AD3A,
    4: 0x48000000463FCD3A,
}


@dataclass(frozen=True)
class AdcReading:
    """A raw 16-bit LTC2451 conversion and whether any transfer was not acknowledged."""

    value: int
    nak: bool


def _report_naks(results: list[int], what: str) -> bool:
    nak = False
    for index, value in enumerate(results):
        if value & _NAK:
            log.warning("NAK on I2C %s (result[%d]: %04x)", what, index, value)
            nak = True
    return nak


def ltc2615_write_dac(
    link: Any, owaddr: int, i2caddr: int, chan: int, data: int
) -> list[int]:
    """Write and update one LTC2615 DAC channel with a 14-bit code."""
    if not 0 <= chan <= 7:
        raise ValueError(f"invalid channel number: {chan}")
    log.info(
        "writing 0x%04x to LTC2615 channel %d at I2C address 0x%02x",
        data,
        chan,
        i2caddr,
    )
    ops = [
        OP_I2C_START,
        OP_I2C_WRITE | ((i2caddr & 0x7F) << 1),
        OP_I2C_WRITE | 0x30 | chan,
        OP_I2C_WRITE | ((data >> 6) & 0xFF),
        OP_I2C_WRITE | ((data << 2) & 0xFC),
        OP_I2C_STOP,
    ]
    results = talk_i2c(link, owaddr, ops)
    _report_naks(results, "write")
    return results


def pca9536_write(link: Any, owaddr: int, i2caddr: int, cc: int, data: int) -> list[int]:
    """Write ``data`` to the PCA9536 register selected by command code ``cc``."""
    log.info("writing to PCA9536 at I2C address 0x%02x", i2caddr)
    ops = [
        OP_I2C_START,
        (i2caddr & 0x7F) << 1,
        cc & 0xFF,
        data & 0xFF,
        OP_I2C_STOP,
    ]
    results = talk_i2c(link, owaddr, ops)
    _report_naks(results, "write")
    return results


def ltc2451_read(link: Any, owaddr: int, i2caddr: int) -> AdcReading:
    """Start a fresh 30 Hz LTC2451 conversion and read back its 16-bit result."""
    log.debug("convert data and read from LTC2451 at I2C address 0x%02x", i2caddr)
    write_ops = [
        OP_I2C_START,
        OP_I2C_WRITE | ((i2caddr & 0x7F) << 1),
        OP_I2C_WRITE | 0x01,
        OP_I2C_STOP,
    ]
    nak = _report_naks(talk_i2c(link, owaddr, write_ops), "write")

    read_ops = [
        OP_I2C_START,
        OP_I2C_WRITE | ((i2caddr & 0x7F) << 1) | 0x01,
        OP_I2C_READ_ACK,
        OP_I2C_READ_NACK,
        OP_I2C_STOP,
    ]
    results = talk_i2c(link, owaddr, read_ops)
    if results[0] & _NAK:
        log.warning("NAK on I2C read (result[0]: %04x)", results[0])
        nak = True
    value = ((results[1] & 0xFF) << 8) | (results[2] & 0xFF)
    log.info("LTC2451 reads 0x%04x", value)
    return AdcReading(value=value, nak=nak)


def multiplexor_code(chan: int, current: bool) -> int:
    """PCA9536 output byte selecting a 74HC4067 input for ``chan``.

    Channels outside 0..6 select channel 7.
    """
    base = 0xF0 if current else 0xF8
    return base | (chan if 0 <= chan <= 6 else 7)


def multiplexor_control(link: Any, owaddr: int, chan: int, current: bool) -> None:
    """Route the current (or reference voltage) monitor of ``chan`` to the ADC."""
    pca9536_write(link, owaddr, PCA_ADDR, PCA_CONFIG, PCA_CONFIG_VALUE)
    pca9536_write(link, owaddr, PCA_ADDR, PCA_OUTPUT_PORT, multiplexor_code(chan, current))


def board_address(board: int) -> int:
    """1-wire ROM address of the DS2413 on board 1 to 4."""
    try:
        return BOARD_ADDRESSES[board]
    except KeyError:
        raise ValueError(
            f"invalid board {board!r}: select a valid board (1, 2, 3 or 4)"
        ) from None