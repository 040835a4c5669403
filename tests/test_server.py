"""Tests for the MCP tools against a simulated device."""

import pytest

from unit_synth_link import client as client_module
from unit_synth_link import server
from unit_synth_link.transport import serial_connection


@pytest.fixture
def simulated():
    server.disconnect()
    result = server.connect(port="", simulate=True)
    yield result
    server.disconnect()


def _driver():
    return server._synth.transport.dispatcher.session.driver


def test_not_connected():
    server.disconnect()
    with pytest.raises(RuntimeError, match="connect"):
        server.note_on(0, 60)


def test_connect_simulated(simulated):
    assert simulated["connected"]
    assert simulated["initialized"]
    assert simulated["profile"] == "canonical"
    assert server.connect(port="", simulate=True)["message"] == "Already connected"


def test_note_tools(simulated, monkeypatch):
    monkeypatch.setattr(client_module.time, "sleep", lambda s: None)
    assert server.note_on(0, 60)["ok"]
    assert server.note_off(0, 60)["ok"]
    assert server.play_note(1, 64, 0.1, 90)["ok"]
    assert server.all_notes_off(1)["ok"]
    assert _driver().calls_to("set_note_on") == [(0, 60, 100), (1, 64, 90)]


def test_validation_error_returned(simulated):
    result = server.note_on(16, 60)
    assert "channel must be 0-15" in result["error"]


def test_set_instrument_names_program(simulated):
    result = server.set_instrument(0, 40)
    assert result["instrument"] == "Violin"
    assert _driver().calls_to("set_instrument") == [(0, 0, 40)]


def test_send_command(simulated):
    assert server.send_command("set_reverb", [0, 4, 64, 50])["ok"]
    assert _driver().calls_to("set_reverb") == [(0, 4, 64, 50)]
    assert "error" in server.send_command("set_reverb", [0, 4])
    assert "error" in server.send_command("set_sustain", [0, 1])


def test_legacy_simulated():
    server.disconnect()
    try:
        result = server.connect(port="", legacy=True, simulate=True)
        assert result["profile"] == "legacy"
        assert server.set_master_volume(90)["ok"]
        assert "error" in server.send_command("set_tvf", [0, 64, 40])
    finally:
        server.disconnect()


def test_commands_resource():
    table = server.commands_resource()
    assert table["set_note_on"]["id"] == "0x03"
    bend = table["set_pitch_bend"]["fields"][1]
    assert (bend["min"], bend["max"], bend["signed"]) == (-8192, 8191, True)


def test_instruments_resource():
    resource = server.instruments_resource()
    assert resource["families"]["0-7"] == "Piano"
    assert resource["common"][0] == "Acoustic Grand Piano"


class SilentPort:
    """Serial port whose board never answers."""

    def __init__(self) -> None:
        self.is_open = True
        self.in_waiting = 0

    def write(self, data):
        return len(data)

    def flush(self):
        pass

    def read(self, size=1):
        return b""

    def reset_input_buffer(self):
        pass

    def close(self):
        self.is_open = False


def test_connect_failure_closes_port(monkeypatch):
    """A board that never answers begin leaves no port open and can be retried."""
    ports = []

    def open_port(*args, **kwargs):
        ports.append(SilentPort())
        return ports[-1]

    monkeypatch.setattr(serial_connection.serial, "serial_for_url", open_port)
    server.disconnect()
    for _ in range(2):
        result = server.connect(port="/dev/ttyUSB0")
        assert "No response" in result["error"]
    assert len(ports) == 2
    assert not any(port.is_open for port in ports)
    assert server._connection is None
    assert server._synth is None
