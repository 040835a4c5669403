"""Vendor driver seam for the device side.

The dispatcher calls one driver method per command with the decoded field
values in table order. ``MidoDriver`` turns those calls into the MIDI and
Roland GS messages the SAM2695 understands and sends them to a ``mido``
output port; the chip does the synthesis. ``RecordingDriver`` only
records calls.
"""

from __future__ import annotations

import logging
from typing import Protocol

import mido

logger = logging.getLogger(__name__)

# Control change numbers
CC_BANK_SELECT = 0
CC_DATA_ENTRY = 6
CC_VOLUME = 7
CC_PAN = 10
CC_EXPRESSION = 11
CC_DATA_ENTRY_LSB = 38
CC_REVERB_SEND = 91
CC_CHORUS_SEND = 93
CC_NRPN_LSB = 98
CC_NRPN_MSB = 99
CC_RPN_LSB = 100
CC_RPN_MSB = 101
CC_ALL_NOTES_OFF = 123

# Registered parameters
RPN_PITCH_BEND_RANGE = (0x00, 0x00)
RPN_FINE_TUNING = (0x00, 0x01)
RPN_COARSE_TUNING = (0x00, 0x02)

# GS non-registered parameters
NRPN_VIBRATO_RATE = (0x01, 0x08)
NRPN_VIBRATO_DEPTH = (0x01, 0x09)
NRPN_VIBRATO_DELAY = (0x01, 0x0A)
NRPN_TVF_CUTOFF = (0x01, 0x20)
NRPN_TVF_RESONANCE = (0x01, 0x21)
NRPN_ENV_ATTACK = (0x01, 0x63)
NRPN_ENV_DECAY = (0x01, 0x64)
NRPN_ENV_RELEASE = (0x01, 0x66)
NRPN_EQ_MSB = 0x37  # SAM2695 equalizer block
EQ_GAIN_LSBS = (0x00, 0x01, 0x02, 0x03)
EQ_FREQ_LSBS = (0x08, 0x09, 0x0A, 0x0B)

# GS SysEx: Roland, device 0x10, model GS, DT1
GS_HEADER = (0x41, 0x10, 0x42, 0x12)
GS_RESET = (0x40, 0x00, 0x7F)
GS_REVERB_MACRO = (0x40, 0x01, 0x30)
GS_REVERB_FEEDBACK = (0x40, 0x01, 0x35)
GS_CHORUS_MACRO = (0x40, 0x01, 0x38)
GS_CHORUS_FEEDBACK = (0x40, 0x01, 0x3B)
GS_CHORUS_DELAY = (0x40, 0x01, 0x3C)

MIDI_CHANNELS = 16


class VendorDriver(Protocol):
    """Operations the dispatcher may call, one per command."""

    def begin(self, rx_pin: int, tx_pin: int, baud: int) -> None: ...
    def set_instrument(self, bank: int, channel: int, instrument: int) -> None: ...
    def set_note_on(self, channel: int, pitch: int, velocity: int) -> None: ...
    def set_note_off(self, channel: int, pitch: int, velocity: int) -> None: ...
    def set_all_notes_off(self, channel: int) -> None: ...
    def set_pitch_bend(self, channel: int, value: int) -> None: ...
    def set_pitch_bend_range(self, channel: int, value: int) -> None: ...
    def set_master_volume(self, level: int) -> None: ...
    def set_volume(self, channel: int, level: int) -> None: ...
    def set_expression(self, channel: int, expression: int) -> None: ...
    def set_reverb(self, channel: int, program: int, level: int, feedback: int) -> None: ...
    def set_chorus(
        self, channel: int, program: int, level: int, feedback: int, delay: int
    ) -> None: ...
    def set_pan(self, channel: int, value: int) -> None: ...
    def set_equalizer(
        self, channel: int,
        low_band: int, med_low_band: int, med_high_band: int, high_band: int,
        low_freq: int, med_low_freq: int, med_high_freq: int, high_freq: int,
    ) -> None: ...
    def set_tuning(self, channel: int, fine: int, coarse: int) -> None: ...
    def set_vibrato(self, channel: int, rate: int, depth: int, delay: int) -> None: ...
    def set_tvf(self, channel: int, cutoff: int, resonance: int) -> None: ...
    def set_envelope(self, channel: int, attack: int, decay: int, release: int) -> None: ...
    def set_mod_wheel(
        self, channel: int, pitch: int, tvf_cutoff: int, amplitude: int,
        rate: int, pitch_depth: int, tvf_depth: int, tva_depth: int,
    ) -> None: ...
    def set_all_instrument_drums(self) -> None: ...
    def reset(self) -> None: ...


class RecordingDriver:
    """Driver stub that records every call as ``(method, args)``."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[int, ...]]] = []

    def _record(self, method: str, *args: int) -> None:
        self.calls.append((method, args))

    def calls_to(self, method: str) -> list[tuple[int, ...]]:
        return [args for name, args in self.calls if name == method]

    def begin(self, rx_pin, tx_pin, baud):
        self._record("begin", rx_pin, tx_pin, baud)

    def set_instrument(self, bank, channel, instrument):
        self._record("set_instrument", bank, channel, instrument)

    def set_note_on(self, channel, pitch, velocity):
        self._record("set_note_on", channel, pitch, velocity)

    def set_note_off(self, channel, pitch, velocity):
        self._record("set_note_off", channel, pitch, velocity)

    def set_all_notes_off(self, channel):
        self._record("set_all_notes_off", channel)

    def set_pitch_bend(self, channel, value):
        self._record("set_pitch_bend", channel, value)

    def set_pitch_bend_range(self, channel, value):
        self._record("set_pitch_bend_range", channel, value)

    def set_master_volume(self, level):
        self._record("set_master_volume", level)

    def set_volume(self, channel, level):
        self._record("set_volume", channel, level)

    def set_expression(self, channel, expression):
        self._record("set_expression", channel, expression)

    def set_reverb(self, channel, program, level, feedback):
        self._record("set_reverb", channel, program, level, feedback)

    def set_chorus(self, channel, program, level, feedback, delay):
        self._record("set_chorus", channel, program, level, feedback, delay)

    def set_pan(self, channel, value):
        self._record("set_pan", channel, value)

    def set_equalizer(self, channel, *bands):
        self._record("set_equalizer", channel, *bands)

    def set_tuning(self, channel, fine, coarse):
        self._record("set_tuning", channel, fine, coarse)

    def set_vibrato(self, channel, rate, depth, delay):
        self._record("set_vibrato", channel, rate, depth, delay)

    def set_tvf(self, channel, cutoff, resonance):
        self._record("set_tvf", channel, cutoff, resonance)

    def set_envelope(self, channel, attack, decay, release):
        self._record("set_envelope", channel, attack, decay, release)

    def set_mod_wheel(self, channel, *params):
        self._record("set_mod_wheel", channel, *params)

    def set_all_instrument_drums(self):
        self._record("set_all_instrument_drums")

    def reset(self):
        self._record("reset")


def gs_checksum(body) -> int:
    """Roland checksum over address and data bytes."""
    return (128 - sum(body) % 128) % 128


def gs_part(channel: int) -> int:
    """GS part nibble for a MIDI channel (channel 9 is part 0, the drums)."""
    if channel == 9:
        return 0
    if channel < 9:
        return channel + 1
    return channel


class MidoDriver:
    """Send synth operations as MIDI messages to a ``mido`` output port.

    Either pass an already-open ``port``, or a ``port_name`` that is opened
    on ``begin``. The UART pins and baud rate in ``begin`` belong to the
    microcontroller wiring and are only logged here.
    """

    def __init__(self, port=None, port_name: str | None = None) -> None:
        self._port = port
        self._port_name = port_name

    @property
    def port(self):
        return self._port

    def _send(self, msg: mido.Message) -> None:
        if self._port is None:
            raise RuntimeError("MIDI output port is not open; call begin first")
        logger.debug("MIDI out: %s", msg)
        self._port.send(msg)

    def _cc(self, channel: int, control: int, value: int) -> None:
        self._send(mido.Message("control_change", channel=channel, control=control, value=value))

    def _rpn(self, channel: int, param: tuple[int, int], value: int) -> None:
        msb, lsb = param
        self._cc(channel, CC_RPN_MSB, msb)
        self._cc(channel, CC_RPN_LSB, lsb)
        self._cc(channel, CC_DATA_ENTRY, value)

    def _nrpn(self, channel: int, param: tuple[int, int], value: int) -> None:
        msb, lsb = param
        self._cc(channel, CC_NRPN_MSB, msb)
        self._cc(channel, CC_NRPN_LSB, lsb)
        self._cc(channel, CC_DATA_ENTRY, value)

    def _gs(self, address: tuple[int, int, int], value: int) -> None:
        body = (*address, value)
        self._send(mido.Message("sysex", data=(*GS_HEADER, *body, gs_checksum(body))))

    def begin(self, rx_pin, tx_pin, baud):
        if self._port is None:
            self._port = mido.open_output(self._port_name)
        logger.info(
            "MIDI output %s ready (rx=%d tx=%d baud=%d)",
            getattr(self._port, "name", self._port_name), rx_pin, tx_pin, baud,
        )

    def set_instrument(self, bank, channel, instrument):
        self._cc(channel, CC_BANK_SELECT, bank)
        self._send(mido.Message("program_change", channel=channel, program=instrument))

    def set_note_on(self, channel, pitch, velocity):
        self._send(mido.Message("note_on", channel=channel, note=pitch, velocity=velocity))

    def set_note_off(self, channel, pitch, velocity):
        self._send(mido.Message("note_off", channel=channel, note=pitch, velocity=velocity))

    def set_all_notes_off(self, channel):
        self._cc(channel, CC_ALL_NOTES_OFF, 0)

    def set_pitch_bend(self, channel, value):
        self._send(mido.Message("pitchwheel", channel=channel, pitch=value))

    def set_pitch_bend_range(self, channel, value):
        self._rpn(channel, RPN_PITCH_BEND_RANGE, value)
        self._cc(channel, CC_DATA_ENTRY_LSB, 0)

    def set_master_volume(self, level):
        # Universal real-time master volume, level in the MSB
        self._send(mido.Message("sysex", data=(0x7F, 0x7F, 0x04, 0x01, 0x00, level)))

    def set_volume(self, channel, level):
        self._cc(channel, CC_VOLUME, level)

    def set_expression(self, channel, expression):
        self._cc(channel, CC_EXPRESSION, expression)

    def set_reverb(self, channel, program, level, feedback):
        self._gs(GS_REVERB_MACRO, program)
        self._gs(GS_REVERB_FEEDBACK, feedback)
        self._cc(channel, CC_REVERB_SEND, level)

    def set_chorus(self, channel, program, level, feedback, delay):
        self._gs(GS_CHORUS_MACRO, program)
        self._gs(GS_CHORUS_FEEDBACK, feedback)
        self._gs(GS_CHORUS_DELAY, delay)
        self._cc(channel, CC_CHORUS_SEND, level)

    def set_pan(self, channel, value):
        self._cc(channel, CC_PAN, value)

    def set_equalizer(
        self, channel,
        low_band, med_low_band, med_high_band, high_band,
        low_freq, med_low_freq, med_high_freq, high_freq,
    ):
        gains = (low_band, med_low_band, med_high_band, high_band)
        freqs = (low_freq, med_low_freq, med_high_freq, high_freq)
        for lsb, value in zip(EQ_GAIN_LSBS + EQ_FREQ_LSBS, gains + freqs):
            self._nrpn(channel, (NRPN_EQ_MSB, lsb), value)

    def set_tuning(self, channel, fine, coarse):
        self._rpn(channel, RPN_FINE_TUNING, fine)
        self._rpn(channel, RPN_COARSE_TUNING, coarse)

    def set_vibrato(self, channel, rate, depth, delay):
        self._nrpn(channel, NRPN_VIBRATO_RATE, rate)
        self._nrpn(channel, NRPN_VIBRATO_DEPTH, depth)
        self._nrpn(channel, NRPN_VIBRATO_DELAY, delay)

    def set_tvf(self, channel, cutoff, resonance):
        self._nrpn(channel, NRPN_TVF_CUTOFF, cutoff)
        self._nrpn(channel, NRPN_TVF_RESONANCE, resonance)

    def set_envelope(self, channel, attack, decay, release):
        self._nrpn(channel, NRPN_ENV_ATTACK, attack)
        self._nrpn(channel, NRPN_ENV_DECAY, decay)
        self._nrpn(channel, NRPN_ENV_RELEASE, release)

    def set_mod_wheel(
        self, channel, pitch, tvf_cutoff, amplitude,
        rate, pitch_depth, tvf_depth, tva_depth,
    ):
        # GS part block 40 2x: MOD pitch, TVF cutoff, amplitude, LFO1 rate,
        # LFO1 pitch depth, LFO1 TVF depth, LFO1 TVA depth
        part = 0x20 | gs_part(channel)
        values = (pitch, tvf_cutoff, amplitude, rate, pitch_depth, tvf_depth, tva_depth)
        for offset, value in enumerate(values):
            self._gs((0x40, part, offset), value)

    def set_all_instrument_drums(self):
        # GS "use for rhythm part" = map 1 on every part
        for channel in range(MIDI_CHANNELS):
            self._gs((0x40, 0x10 | gs_part(channel), 0x15), 0x01)

    def reset(self):
        self._gs(GS_RESET, 0x00)
