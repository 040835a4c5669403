"""MCP server entry point for the Unit Synth link.

Exposes tools and resources via the Model Context Protocol using the
official Python MCP SDK with stdio transport.
"""

from __future__ import annotations

import logging
from typing import Any

from mcp.server.fastmcp import FastMCP

from .client import DEFAULT_BAUD_RATE, DEFAULT_RX_PIN, DEFAULT_TX_PIN, UnitSynth
from .device.dispatcher import DeviceSession, Dispatcher
from .device.drivers import RecordingDriver
from .errors import SynthLinkError
from .protocol.commands import Profile, command_table, lookup
from .transport.loopback import LoopbackTransport
from .transport.serial_connection import DEFAULT_LINK_BAUD, SerialConnection

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "unit-synth",
    instructions="MCP server for the M5Stack Unit Synth (SAM2695) over a serial link",
)

# Global connection state
_connection: SerialConnection | None = None
_synth: UnitSynth | None = None


def _get_synth() -> UnitSynth:
    """Get the active synth, raising if not connected."""
    if _synth is None:
        raise RuntimeError(
            "Not connected to device. Use the 'connect' tool first."
        )
    return _synth


def _run(action, **result: Any) -> dict[str, Any]:
    try:
        action()
    except SynthLinkError as e:
        return {"error": str(e)}
    return {"ok": True, **result}


# ─── GENERAL MIDI CATALOG ────────────────────────────────────────────

GM_FAMILIES = [
    "Piano", "Chromatic Percussion", "Organ", "Guitar",
    "Bass", "Strings", "Ensemble", "Brass",
    "Reed", "Pipe", "Synth Lead", "Synth Pad",
    "Synth Effects", "Ethnic", "Percussive", "Sound Effects",
]

GM_HIGHLIGHTS = {
    0: "Acoustic Grand Piano",
    24: "Acoustic Guitar (nylon)",
    32: "Acoustic Bass",
    40: "Violin",
    48: "String Ensemble 1",
    56: "Trumpet",
    65: "Alto Sax",
    73: "Flute",
    80: "Lead 1 (square)",
    88: "Pad 1 (new age)",
}


# ─── CONNECTION TOOLS ────────────────────────────────────────────────

@mcp.tool()
def connect(
    port: str,
    link_baud: int = DEFAULT_LINK_BAUD,
    rx_pin: int = DEFAULT_RX_PIN,
    tx_pin: int = DEFAULT_TX_PIN,
    baud_rate: int = DEFAULT_BAUD_RATE,
    legacy: bool = False,
    simulate: bool = False,
) -> dict[str, Any]:
    """Open the serial link to the board and initialize the synth.

    Args:
        port: Serial port (e.g. /dev/ttyUSB0, COM3) or a pyserial URL.
        link_baud: Baud rate of the host-to-board link.
        rx_pin: Board UART RX pin wired to the synth.
        tx_pin: Board UART TX pin wired to the synth.
        baud_rate: Board-to-synth UART baud rate (MIDI is 31250).
        legacy: Speak the older firmware's command table.
        simulate: Use an in-process simulated device instead of ``port``.
    """
    global _connection, _synth
    if _synth is not None:
        return {"connected": True, "message": "Already connected"}

    profile = Profile.LEGACY if legacy else Profile.CANONICAL
    connection = None
    try:
        if simulate:
            dispatcher = Dispatcher(DeviceSession(RecordingDriver), profile=profile)
            transport = LoopbackTransport(dispatcher)
        else:
            connection = SerialConnection(port, baudrate=link_baud)
            connection.open()
            transport = connection

        synth = UnitSynth(
            transport, rx_pin=rx_pin, tx_pin=tx_pin, baud_rate=baud_rate, profile=profile,
        )
    except SynthLinkError as e:
        if connection is not None:
            connection.close()
        logger.warning("Connect to %s failed: %s", port, e)
        return {"error": str(e)}

    _connection, _synth = connection, synth
    return {
        "connected": True,
        "initialized": _synth.initialized,
        "port": "simulated" if simulate else port,
        "profile": profile.value,
    }


@mcp.tool()
def disconnect() -> dict[str, bool]:
    """Close the serial link."""
    global _connection, _synth
    if _connection is not None:
        _connection.close()
    _connection = None
    _synth = None
    return {"disconnected": True}


@mcp.tool()
def begin(rx_pin: int | None = None, tx_pin: int | None = None,
          baud_rate: int | None = None) -> dict[str, Any]:
    """Re-initialize the synth UART, optionally on different pins."""
    synth = _get_synth()
    try:
        ok = synth.begin(rx_pin, tx_pin, baud_rate)
    except SynthLinkError as e:
        return {"error": str(e)}
    return {"initialized": ok, "rx_pin": synth.rx_pin, "tx_pin": synth.tx_pin}


# ─── NOTE TOOLS ──────────────────────────────────────────────────────

@mcp.tool()
def play_note(channel: int, pitch: int, duration: float = 0.5,
              velocity: int = 100) -> dict[str, Any]:
    """Play a note for ``duration`` seconds.

    Args:
        channel: MIDI channel (0-15).
        pitch: MIDI note number (0-127), 60 is middle C.
        duration: Seconds to hold the note.
        velocity: Note velocity (0-127).
    """
    synth = _get_synth()
    return _run(lambda: synth.play_note(channel, pitch, duration, velocity),
                channel=channel, pitch=pitch)


@mcp.tool()
def note_on(channel: int, pitch: int, velocity: int = 100) -> dict[str, Any]:
    """Start a note. It sounds until note_off or all_notes_off."""
    synth = _get_synth()
    return _run(lambda: synth.set_note_on(channel, pitch, velocity))


@mcp.tool()
def note_off(channel: int, pitch: int) -> dict[str, Any]:
    """Stop a note."""
    synth = _get_synth()
    return _run(lambda: synth.set_note_off(channel, pitch))


@mcp.tool()
def all_notes_off(channel: int) -> dict[str, Any]:
    """Stop every note on a channel."""
    synth = _get_synth()
    return _run(lambda: synth.set_all_notes_off(channel))


@mcp.tool()
def set_instrument(channel: int, instrument: int, bank: int = 0) -> dict[str, Any]:
    """Select a General MIDI instrument (0-127) for a channel."""
    synth = _get_synth()
    return _run(lambda: synth.set_instrument(bank, channel, instrument),
                instrument=GM_HIGHLIGHTS.get(instrument, instrument))


@mcp.tool()
def set_master_volume(level: int) -> dict[str, Any]:
    """Set the master volume (0-127)."""
    synth = _get_synth()
    return _run(lambda: synth.set_master_volume(level), level=level)


@mcp.tool()
def reset() -> dict[str, Any]:
    """Stop all notes and restore default synth settings."""
    synth = _get_synth()
    return _run(synth.reset)


@mcp.tool()
def send_command(command: str, args: list[int] | None = None) -> dict[str, Any]:
    """Send any command from the table by name.

    Args:
        command: Command name, e.g. "set_reverb" or "set_equalizer".
        args: Field values in table order; see the synth://commands resource.
    """
    synth = _get_synth()
    args = args or []
    try:
        spec = lookup(command, synth.profile)
    except SynthLinkError as e:
        return {"error": str(e)}
    if len(args) != len(spec.fields):
        return {"error": f"{command} takes fields {spec.field_names()}"}
    return _run(lambda: synth.call(command, *args), command=command)


# ─── RESOURCES ───────────────────────────────────────────────────────

@mcp.resource("synth://commands")
def commands_resource() -> dict[str, Any]:
    """The canonical command table: identifiers, fields and ranges."""
    return {
        spec.name: {
            "id": f"0x{spec.identifier:02X}",
            "fields": [
                {"name": f.name, "width": f.width, "signed": f.signed,
                 "min": f.minimum, "max": f.maximum}
                for f in spec.fields
            ],
        }
        for spec in command_table(Profile.CANONICAL).values()
    }


@mcp.resource("synth://instruments")
def instruments_resource() -> dict[str, Any]:
    """General MIDI instrument families and a few common programs."""
    return {
        "families": {
            f"{i * 8}-{i * 8 + 7}": name for i, name in enumerate(GM_FAMILIES)
        },
        "common": GM_HIGHLIGHTS,
    }


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=logging.INFO)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
