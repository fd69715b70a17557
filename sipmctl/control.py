"""High-level operations: set a SiPM bias voltage and monitor a channel."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from .devices import (
    LTC2451_ADDR,
    LTC2615_ADDR,
    board_address,
    ltc2451_read,
    ltc2615_write_dac,
    multiplexor_control,
)
from .linkusb import DEFAULT_PORT, open_linkusb

log = logging.getLogger(__name__)

ADC_FULL_SCALE = 0xFFFF
ADC_REFERENCE = 4.096
DAC_STEPS = 16384
SIPM_GAIN = 8.03
SENSE_RESISTANCE = 200000


@dataclass(frozen=True)
class Measurement:
    """A channel's monitored current (A), reference voltage (V) and NAK flag."""

    current: float
    ref_volt: float
    nak: bool


def voltage_to_dac(voltage: float) -> int:
    """14-bit DAC code for a SiPM bias magnitude, given Vsipm = -8.03 * Vset."""
    return int((voltage / SIPM_GAIN) / ADC_REFERENCE * DAC_STEPS)


def adc_to_volts(value: int) -> float:
    """Voltage at the LTC2451 input for a raw 16-bit reading."""
    return value / ADC_FULL_SCALE * ADC_REFERENCE


def adc_to_current(value: int) -> float:
    """SiPM current derived from the sense-resistor reading."""
    return 2 * ((ADC_REFERENCE - adc_to_volts(value)) / SENSE_RESISTANCE)


def set_voltage(link: Any, owaddr: int, chan: int, voltage: float) -> list[int]:
    """Program channel ``chan`` to a bias of magnitude ``voltage`` volts."""
    return ltc2615_write_dac(link, owaddr, LTC2615_ADDR, chan, voltage_to_dac(voltage))


def monitor_channel(link: Any, owaddr: int, chan: int) -> Measurement:
    """Measure the reference voltage and current of channel ``chan``."""
    multiplexor_control(link, owaddr, chan, False)
    ref = ltc2451_read(link, owaddr, LTC2451_ADDR)
    ref_volt = adc_to_volts(ref.value)
    log.info("adc value %d, measured voltage %g V", ref.value, ref_volt)

    multiplexor_control(link, owaddr, chan, True)
    cur = ltc2451_read(link, owaddr, LTC2451_ADDR)
    current = adc_to_current(cur.value)
    log.info("measured current %e A", current)

    return Measurement(current=current, ref_volt=ref_volt, nak=ref.nak or cur.nak)


def apply_voltage(board: int, chan: int, voltage: float, port: str = DEFAULT_PORT) -> None:
    """Open the adapter on ``port`` and set the voltage of one channel."""
    owaddr = board_address(board)
    with open_linkusb(port) as link:
        set_voltage(link, owaddr, chan, voltage)


def read_monitor(board: int, chan: int, port: str = DEFAULT_PORT) -> Measurement:
    """Open the adapter on ``port`` and monitor one channel."""
    owaddr = board_address(board)
    with open_linkusb(port) as link:
        return monitor_channel(link, owaddr, chan)