"""Host binding for the Unit Synth.

Each method validates its arguments against the command table, sends one
command over the transport, and raises if the device reports failure.
``begin`` is the exception: it returns ``False`` and logs a warning so a
caller can carry on without a working synth.
"""

from __future__ import annotations

import logging
import time

from .errors import ProtocolFailure
from .protocol.commands import CommandRequest, Profile, encode
from .protocol.parser import CommandResponse, check_response
from .transport.loopback import Transport

logger = logging.getLogger(__name__)

DEFAULT_RX_PIN = 16
DEFAULT_TX_PIN = 17
DEFAULT_BAUD_RATE = 31250
DEFAULT_VELOCITY = 100

# Common M5Stack port wiring (rx, tx)
PORT_PINS = {
    "A": (33, 32),
    "B": (36, 26),
    "C": (13, 14),
}


class UnitSynth:
    """Drive a Unit Synth through a transport.

    Usage::

        synth = UnitSynth(SerialConnection("/dev/ttyUSB0"), rx_pin=13, tx_pin=14)
        synth.set_instrument(0, 0, 0)
        synth.play_note(0, 60, 0.5)

    Args:
        transport: Carries commands to the device.
        rx_pin: UART RX pin on the microcontroller.
        tx_pin: UART TX pin on the microcontroller.
        baud_rate: UART baud rate towards the synth chip.
        profile: Command table the device firmware speaks.
        auto_begin: Send ``begin`` from the constructor.
    """

    def __init__(
        self,
        transport: Transport,
        rx_pin: int = DEFAULT_RX_PIN,
        tx_pin: int = DEFAULT_TX_PIN,
        baud_rate: int = DEFAULT_BAUD_RATE,
        profile: Profile = Profile.CANONICAL,
        auto_begin: bool = True,
    ) -> None:
        self.transport = transport
        self.rx_pin = rx_pin
        self.tx_pin = tx_pin
        self.baud_rate = baud_rate
        self.profile = profile
        self.initialized = False
        if auto_begin:
            self.begin()

    @classmethod
    def on_port(cls, transport: Transport, port: str, **kwargs) -> UnitSynth:
        """Construct using the pin pair of an M5Stack port letter."""
        try:
            rx_pin, tx_pin = PORT_PINS[port.upper()]
        except KeyError:
            raise ValueError(f"Unknown port '{port}'. Valid: {list(PORT_PINS)}") from None
        return cls(transport, rx_pin=rx_pin, tx_pin=tx_pin, **kwargs)

    def _request(self, command: str, *args: int) -> CommandRequest:
        return encode(command, *args, profile=self.profile)

    def _send(self, request: CommandRequest) -> CommandResponse:
        response = self.transport.send(request.identifier, request.payload)
        return check_response(request, response)

    def call(self, command: str, *args: int) -> None:
        """Send any command in the profile by name, e.g. ``call("set_pan", 0, 64)``."""
        self._send(self._request(command, *args))

    # ─── SETUP ───────────────────────────────────────────────────────

    def begin(
        self,
        rx_pin: int | None = None,
        tx_pin: int | None = None,
        baud_rate: int | None = None,
    ) -> bool:
        """Initialize the synth UART on the device.

        Omitted arguments fall back to the values given to the constructor.

        Returns:
            True if the device reported success.
        """
        rx_pin = self.rx_pin if rx_pin is None else rx_pin
        tx_pin = self.tx_pin if tx_pin is None else tx_pin
        baud_rate = self.baud_rate if baud_rate is None else baud_rate

        request = self._request("begin", rx_pin, tx_pin, baud_rate)
        try:
            self._send(request)
        except ProtocolFailure:
            logger.warning(
                "Failed to initialize Unit Synth (rx=%d tx=%d baud=%d). "
                "Check UART connections and pins.",
                rx_pin, tx_pin, baud_rate,
            )
            self.initialized = False
            return False

        self.rx_pin, self.tx_pin, self.baud_rate = rx_pin, tx_pin, baud_rate
        self.initialized = True
        logger.info("Unit Synth initialized on rx=%d tx=%d", rx_pin, tx_pin)
        return True

    def reset(self) -> None:
        """Stop all notes and return every synth setting to default."""
        self.call("reset")

    # ─── NOTES ───────────────────────────────────────────────────────

    def set_instrument(self, bank: int, channel: int, instrument: int) -> None:
        """Select a General MIDI instrument (0 piano, 40 violin, ...)."""
        self.call("set_instrument", bank, channel, instrument)

    def set_note_on(self, channel: int, pitch: int, velocity: int) -> None:
        self.call("set_note_on", channel, pitch, velocity)

    def set_note_off(self, channel: int, pitch: int, velocity: int = 0) -> None:
        self.call("set_note_off", channel, pitch, velocity)

    def set_all_notes_off(self, channel: int) -> None:
        self.call("set_all_notes_off", channel)

    def play_note(
        self,
        channel: int,
        pitch: int,
        duration: float,
        velocity: int = DEFAULT_VELOCITY,
    ) -> None:
        """Turn a note on, sleep for ``duration`` seconds, turn it off.

        If the sleep is interrupted the note keeps sounding; send
        ``set_note_off`` or ``set_all_notes_off`` to stop it.
        """
        if duration < 0:
            raise ValueError(f"Duration must be >= 0, got {duration}")
        # Validate the note-off before anything sounds
        self._request("set_note_off", channel, pitch, 0)
        self.set_note_on(channel, pitch, velocity)
        time.sleep(duration)
        self.set_note_off(channel, pitch, 0)

    # ─── PITCH ───────────────────────────────────────────────────────

    def set_pitch_bend(self, channel: int, value: int) -> None:
        """Bend pitch; ``value`` is -8192..8191 with 0 as centre."""
        self.call("set_pitch_bend", channel, value)

    def set_pitch_bend_range(self, channel: int, value: int) -> None:
        """Set the bend range in semitones."""
        self.call("set_pitch_bend_range", channel, value)

    def set_tuning(self, channel: int, fine: int, coarse: int) -> None:
        """Fine and coarse tuning, 64 is centre for both."""
        self.call("set_tuning", channel, fine, coarse)

    # ─── LEVELS ──────────────────────────────────────────────────────

    def set_master_volume(self, level: int) -> None:
        self.call("set_master_volume", level)

    def set_volume(self, channel: int, level: int) -> None:
        self.call("set_volume", channel, level)

    def set_expression(self, channel: int, expression: int) -> None:
        self.call("set_expression", channel, expression)

    def set_pan(self, channel: int, value: int) -> None:
        """Pan: 0 left, 64 centre, 127 right."""
        self.call("set_pan", channel, value)

    # ─── EFFECTS ─────────────────────────────────────────────────────

    def set_reverb(self, channel: int, program: int, level: int, feedback: int) -> None:
        self.call("set_reverb", channel, program, level, feedback)

    def set_chorus(
        self, channel: int, program: int, level: int, feedback: int, delay: int
    ) -> None:
        self.call("set_chorus", channel, program, level, feedback, delay)

    def set_equalizer(
        self,
        channel: int,
        low_band: int,
        med_low_band: int,
        med_high_band: int,
        high_band: int,
        low_freq: int,
        med_low_freq: int,
        med_high_freq: int,
        high_freq: int,
    ) -> None:
        """Four band gains followed by four band frequencies."""
        self.call(
            "set_equalizer", channel,
            low_band, med_low_band, med_high_band, high_band,
            low_freq, med_low_freq, med_high_freq, high_freq,
        )

    def set_vibrato(self, channel: int, rate: int, depth: int, delay: int) -> None:
        self.call("set_vibrato", channel, rate, depth, delay)

    def set_tvf(self, channel: int, cutoff: int, resonance: int) -> None:
        """Time variant filter cutoff and resonance."""
        self.call("set_tvf", channel, cutoff, resonance)

    def set_envelope(self, channel: int, attack: int, decay: int, release: int) -> None:
        self.call("set_envelope", channel, attack, decay, release)

    def set_mod_wheel(
        self,
        channel: int,
        pitch: int,
        tvf_cutoff: int,
        amplitude: int,
        rate: int,
        pitch_depth: int,
        tvf_depth: int,
        tva_depth: int,
    ) -> None:
        self.call(
            "set_mod_wheel", channel,
            pitch, tvf_cutoff, amplitude, rate, pitch_depth, tvf_depth, tva_depth,
        )

    def set_all_instrument_drums(self) -> None:
        """Switch every channel to the drum kit."""
        self.call("set_all_instrument_drums")
