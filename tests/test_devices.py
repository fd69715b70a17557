import pytest

from sipmctl.devices import (
    LTC2451_ADDR,
    LTC2615_ADDR,
    PCA_ADDR,
    AdcReading,
    board_address,
    ltc2451_read,
    ltc2615_write_dac,
    multiplexor_code,
    multiplexor_control,
    pca9536_write,
)
from sipmctl.i2c import (
    OP_I2C_START,
    OP_I2C_STOP,
    I2CError,
    decode_i2c,
    encode_i2c,
)


def _echo(command):
    body = command[1:-1]
    header, posts = body[:20], body[20:]
    out = [header]
    for start in range(0, len(posts), 8):
        post = posts[start:start + 8]
        sda = int(post[:2], 16) & 0x2
        out.append(post[:7] + ("F" if sda else "B"))
    return "".join(out)


class FakeLink:
    def __init__(self, overrides=None, reset_reply="P"):
        self.commands = []
        self.overrides = dict(overrides or {})
        self.reset_reply = reset_reply

    def talk(self, data, length=0):
        if data == "r":
            return self.reset_reply
        index = len(self.commands)
        self.commands.append(data)
        if index in self.overrides:
            return _echo(encode_i2c(0, self.overrides[index]))
        return _echo(data)


def _decoded(command):
    # Data ops between start and stop; decode the echo of this command.
    return command


@pytest.mark.parametrize(
    "chan,current,expected",
    [
        (0, True, 0xF0),
        (7, True, 0xF7),
        (9, True, 0xF7),
        (0, False, 0xF8),
        (6, False, 0xFE),
        (-1, False, 0xFF),
    ],
)
def test_multiplexor_code(chan, current, expected):
    assert multiplexor_code(chan, current) == expected


def test_multiplexor_code_current_and_reference_differ_only_in_bit_3():
    for chan in range(8):
        assert multiplexor_code(chan, False) ^ multiplexor_code(chan, True) == 0x08


def test_board_addresses_are_distinct_ds2413_roms():
    addresses = [board_address(board) for board in (1, 2, 3, 4)]
    assert len(set(addresses)) == 4
    assert all(address & 0xFF == 0x3A for address in addresses)


@pytest.mark.parametrize("board", [0, 5, -1])
def test_board_address_invalid(board):
    with pytest.raises(ValueError):
        board_address(board)


def test_pca9536_write_sends_register_and_data():
    link = FakeLink()
    results = pca9536_write(link, 0, PCA_ADDR, 0x01, 0xF5)
    assert results == [PCA_ADDR << 1, 0x01, 0xF5]
    assert len(link.commands) == 1


def test_multiplexor_control_configures_then_selects():
    link = FakeLink()
    multiplexor_control(link, 0, 3, True)
    assert len(link.commands) == 2
    ops = [OP_I2C_START, 0, 0, 0, OP_I2C_STOP]
    first = decode_i2c(ops, _echo(link.commands[0]))
    second = decode_i2c(ops, _echo(link.commands[1]))
    assert first == [PCA_ADDR << 1, 0x03, 0b1110000]
    assert second == [PCA_ADDR << 1, 0x01, multiplexor_code(3, True)]


def test_ltc2615_write_dac_round_trips_code():
    link = FakeLink()
    data = 0x2ABC
    results = ltc2615_write_dac(link, 0, LTC2615_ADDR, 5, data)
    assert len(results) == 4
    assert results[0] & 0xFF == LTC2615_ADDR << 1
    assert results[1] & 0xFF == 0x30 | 5
    assert ((results[2] & 0xFF) << 6) | ((results[3] & 0xFF) >> 2) == data


def test_ltc2615_write_dac_logs_nak(caplog):
    link = FakeLink()
    with caplog.at_level("WARNING"):
        results = ltc2615_write_dac(link, 0, LTC2615_ADDR, 0, 0)
    # An echoing device never pulls SDA low, so every ack slot reads as NAK.
    assert all(value & 0x100 for value in results)
    assert "NAK on I2C write" in caplog.text


@pytest.mark.parametrize("chan", [-1, 8])
def test_ltc2615_write_dac_rejects_bad_channel(chan):
    link = FakeLink()
    with pytest.raises(ValueError):
        ltc2615_write_dac(link, 0, LTC2615_ADDR, chan, 100)
    assert link.commands == []


def test_ltc2451_read_acknowledged_value():
    overrides = {
        0: [OP_I2C_START, LTC2451_ADDR << 1, 0x01, OP_I2C_STOP],
        1: [OP_I2C_START, (LTC2451_ADDR << 1) | 1, 0x0AB, 0x1CD, OP_I2C_STOP],
    }
    link = FakeLink(overrides)
    reading = ltc2451_read(link, 0, LTC2451_ADDR)
    assert reading == AdcReading(value=0xABCD, nak=False)
    assert len(link.commands) == 2


def test_ltc2451_read_reports_nak():
    link = FakeLink()
    reading = ltc2451_read(link, 0, LTC2451_ADDR)
    assert reading == AdcReading(value=0xFFFF, nak=True)


def test_ltc2451_read_bad_reset_raises():
    link = FakeLink(reset_reply="?")
    with pytest.raises(I2CError):
        ltc2451_read(link, 0, LTC2451_ADDR)
    assert link.commands == []