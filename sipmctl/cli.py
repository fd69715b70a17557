"""Command line for setting and monitoring SiPM supply channels."""

from __future__ import annotations

import argparse
import logging
import sys

from .control import apply_voltage, read_monitor
from .i2c import I2CError
from .linkusb import DEFAULT_PORT, LinkUSBError

MIN_VOLTAGE = -32.0
MAX_VOLTAGE = 0.0

NAK_WARNING = (
    "Got I2C NAK/NACK while reading from LTC2451 ADC!\n"
    "DO NOT TRUST THE MEASURED VALUES!\n"
    "Diagnose the issue or retry measurement!"
)


def parse_voltage(text: str) -> float:
    """Parse a requested bias (0 to -32 V) and return its magnitude."""
    try:
        voltage = float(text)
    except ValueError:
        raise ValueError(f"invalid voltage entry: {text!r}") from None
    if not MIN_VOLTAGE <= voltage <= MAX_VOLTAGE:
        raise ValueError("The voltage must be between 0 and -32!")
    return abs(voltage)


def format_value(value: float) -> str:
    """Format a measured value with four significant digits."""
    return f"{value:.4G}"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sipmctl", description="Control the SiPM power supply."
    )
    parser.add_argument("--port", default=DEFAULT_PORT, help="LinkUSB serial device")
    parser.add_argument(
        "-v", "--verbose", action="count", default=0, help="more logging output"
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--board", type=int, required=True, help="board number 1-4")
    common.add_argument("--channel", type=int, required=True, help="channel number 0-7")

    commands = parser.add_subparsers(dest="command", required=True)
    set_cmd = commands.add_parser("set", parents=[common], help="set a channel voltage")
    set_cmd.add_argument("voltage", help="desired voltage, 0 to -32")
    commands.add_parser("monitor", parents=[common], help="measure a channel")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the command line and return its exit status."""
    args = _build_parser().parse_args(argv)
    level = {0: logging.WARNING, 1: logging.INFO}.get(args.verbose, logging.DEBUG)
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")

    try:
        if args.command == "set":
            voltage = parse_voltage(args.voltage)
            apply_voltage(args.board, args.channel, voltage, args.port)
            print(f"board {args.board} channel {args.channel} set to -{format_value(voltage)} V")
        else:
            measurement = read_monitor(args.board, args.channel, args.port)
            if measurement.nak:
                print(f"Error! {NAK_WARNING}", file=sys.stderr)
            print(f"current: {format_value(measurement.current)} A")
            print(f"reference voltage: {format_value(measurement.ref_volt)} V")
    except (ValueError, LinkUSBError, I2CError) as exc:
        print(f"Error! {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())