# sipmctl

Control a SiPM bias power supply through a LinkUSB serial-to-1-wire adapter.

Each supply board carries a DS2413 1-wire switch that is used to drive an I2C
bus. On that bus sit an LTC2615 DAC that sets the channel voltages, a PCA9536
I/O expander that selects a channel on the monitor multiplexer, and an LTC2451
ADC that reads back the selected reference voltage or current.

With `sipmctl` you can:

- set the bias on one channel of a board (0 to -32 V),
- read the reference voltage and the current of one channel.

Boards are numbered 1 to 4 and channels 0 to 7.

## Installation

```
pip install .
```

The adapter is reached through pyserial; by default the device is
`/dev/ttyLinkUSB`.

## Command line

```
sipmctl --help
```

lists the options. There are two actions, `set` and `monitor`, each taking
`--board` and `--channel`:

```
sipmctl set --board 1 --channel 3 -- -25
sipmctl monitor --board 1 --channel 3
```

`set` takes the desired voltage between 0 and -32 V; a value outside that
range, or one that is not a number, is refused with an error and exit status
1. `monitor` prints the current in amperes and the reference voltage in
volts, each to four significant digits, and warns on standard error when the
ADC did not acknowledge a transfer, since the values cannot then be trusted.

General options, given before the action:

- `--port DEVICE` – the LinkUSB serial device (default `/dev/ttyLinkUSB`),
- `-v` / `-vv` – informational or debug logging.

Errors while opening or talking to the adapter are reported as `Error! ...`
and the command exits with status 1.

## Python

```python
from sipmctl.control import apply_voltage, read_monitor

apply_voltage(1, 3, 25.0, "/dev/ttyLinkUSB")    # magnitude of the bias in volts

measurement = read_monitor(1, 3, "/dev/ttyLinkUSB")
print(measurement.current, measurement.ref_volt, measurement.nak)
```

`read_monitor` returns a `Measurement` with the monitored current, the
reference voltage and whether an I2C NAK was seen during the reads. An
unknown board number raises `ValueError`.

Lower layers are available too:

- `sipmctl.linkusb` – `open_linkusb(port)` and the `LinkUSB` adapter
  session (a context manager), raising `LinkUSBError` on failure.
- `sipmctl.i2c` – `ds2413_post`, `encode_i2c`, `decode_i2c` and `talk_i2c`
  for I2C transfers carried over the DS2413, raising `I2CError` on failure.
- `sipmctl.devices` – `ltc2615_write_dac`, `pca9536_write`,
  `ltc2451_read` (returning an `AdcReading`), `multiplexor_code`,
  `multiplexor_control` and `board_address`.
- `sipmctl.control` – the conversions `voltage_to_dac`, `adc_to_volts`
  and `adc_to_current`, and `set_voltage` / `monitor_channel` for an
  already open adapter.

## What it does not do

There is no graphical window: the supply is driven from the command line or
from Python only. Each command opens the adapter, performs one action on one
channel and closes it again; there is no continuous monitoring or logging of
readings to a file.

## Tests

```
pip install .[test]
pytest
```