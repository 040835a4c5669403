"""Tests for the MIDI driver's message output."""

import mido
import pytest

from unit_synth_link.device.drivers import MidoDriver, gs_checksum, gs_part


class FakePort:
    """Collects messages sent to it."""

    name = "fake"

    def __init__(self) -> None:
        self.messages: list[mido.Message] = []

    def send(self, msg):
        self.messages.append(msg)


def cc(channel, control, value):
    return mido.Message("control_change", channel=channel, control=control, value=value)


@pytest.fixture
def port():
    return FakePort()


@pytest.fixture
def driver(port):
    d = MidoDriver(port=port)
    d.begin(13, 14, 31250)
    return d


def test_send_before_begin_fails():
    with pytest.raises(RuntimeError):
        MidoDriver().set_note_on(0, 60, 100)


def test_begin_opens_named_port(monkeypatch, port):
    opened = []

    def open_output(name):
        opened.append(name)
        return port

    monkeypatch.setattr(mido, "open_output", open_output)
    driver = MidoDriver(port_name="Unit Synth")
    driver.begin(13, 14, 31250)
    assert opened == ["Unit Synth"]
    assert driver.port is port


def test_notes(driver, port):
    driver.set_note_on(0, 60, 100)
    driver.set_note_off(0, 60, 0)
    driver.set_all_notes_off(3)
    assert port.messages == [
        mido.Message("note_on", channel=0, note=60, velocity=100),
        mido.Message("note_off", channel=0, note=60, velocity=0),
        cc(3, 123, 0),
    ]


def test_instrument(driver, port):
    driver.set_instrument(0, 1, 40)
    assert port.messages == [
        cc(1, 0, 0),
        mido.Message("program_change", channel=1, program=40),
    ]


def test_pitch_bend_signed(driver, port):
    driver.set_pitch_bend(0, -8192)
    driver.set_pitch_bend(0, 8191)
    assert [m.pitch for m in port.messages] == [-8192, 8191]


def test_pitch_bend_range_rpn(driver, port):
    driver.set_pitch_bend_range(2, 12)
    assert port.messages == [cc(2, 101, 0), cc(2, 100, 0), cc(2, 6, 12), cc(2, 38, 0)]


def test_levels(driver, port):
    driver.set_volume(0, 80)
    driver.set_expression(0, 90)
    driver.set_pan(0, 64)
    assert port.messages == [cc(0, 7, 80), cc(0, 11, 90), cc(0, 10, 64)]


def test_master_volume_sysex(driver, port):
    driver.set_master_volume(100)
    (msg,) = port.messages
    assert msg.type == "sysex"
    assert msg.data == (0x7F, 0x7F, 0x04, 0x01, 0x00, 100)


def test_gs_reset(driver, port):
    driver.reset()
    (msg,) = port.messages
    assert msg.bytes() == [0xF0, 0x41, 0x10, 0x42, 0x12, 0x40, 0x00, 0x7F, 0x00, 0x41, 0xF7]


def test_reverb(driver, port):
    driver.set_reverb(0, 4, 64, 50)
    macro, feedback, send = port.messages
    assert macro.data[4:8] == (0x40, 0x01, 0x30, 4)
    assert feedback.data[4:8] == (0x40, 0x01, 0x35, 50)
    assert send == cc(0, 91, 64)


def test_chorus(driver, port):
    driver.set_chorus(0, 2, 64, 50, 30)
    assert [m.data[6:8] for m in port.messages[:3]] == [(0x38, 2), (0x3B, 50), (0x3C, 30)]
    assert port.messages[3] == cc(0, 93, 64)


def test_equalizer_nrpn(driver, port):
    driver.set_equalizer(0, 1, 2, 3, 4, 5, 6, 7, 8)
    assert len(port.messages) == 24
    triples = [port.messages[i : i + 3] for i in range(0, 24, 3)]
    assert [t[0].value for t in triples] == [0x37] * 8
    assert [t[1].value for t in triples] == [0, 1, 2, 3, 8, 9, 10, 11]
    assert [t[2].value for t in triples] == [1, 2, 3, 4, 5, 6, 7, 8]


def test_vibrato_tvf_envelope_nrpn(driver, port):
    driver.set_vibrato(0, 50, 40, 20)
    driver.set_tvf(0, 64, 40)
    driver.set_envelope(0, 20, 40, 30)
    lsbs = [m.value for m in port.messages if m.control == 98]
    assert lsbs == [0x08, 0x09, 0x0A, 0x20, 0x21, 0x63, 0x64, 0x66]


def test_tuning_rpn(driver, port):
    driver.set_tuning(0, 70, 64)
    assert port.messages == [
        cc(0, 101, 0), cc(0, 100, 1), cc(0, 6, 70),
        cc(0, 101, 0), cc(0, 100, 2), cc(0, 6, 64),
    ]


def test_mod_wheel_gs_block(driver, port):
    driver.set_mod_wheel(0, 1, 2, 3, 4, 5, 6, 7)
    assert [m.data[4:8] for m in port.messages] == [
        (0x40, 0x21, offset, offset + 1) for offset in range(7)
    ]


def test_all_drums(driver, port):
    driver.set_all_instrument_drums()
    assert len(port.messages) == 16
    parts = sorted(m.data[5] for m in port.messages)
    assert parts == [0x10 | p for p in range(16)]


def test_gs_part_mapping():
    assert gs_part(9) == 0
    assert gs_part(0) == 1
    assert gs_part(8) == 9
    assert gs_part(15) == 15


def test_gs_checksum():
    assert gs_checksum((0x40, 0x00, 0x7F, 0x00)) == 0x41


def test_out_of_range_value_raises(driver):
    """mido refuses data bytes above 127; the dispatcher reports it as failure."""
    with pytest.raises(ValueError):
        driver.set_pan(0, 200)
