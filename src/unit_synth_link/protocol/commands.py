"""Command table, field packing, and request builders.

Every command is identified by a single byte and carries a fixed-layout
payload. The layout of each command lives in one declarative table that
the host encoder validates against and the device dispatcher decodes with::

    +------------+----------------------------------------------+
    | Identifier | Payload (fields in table order, <= 32 bytes) |
    | 1 byte     | 1-byte fields, or 2-byte little-endian       |
    +------------+----------------------------------------------+

Two incompatible tables exist. ``Profile.CANONICAL`` (0x01-0x15) is what
current firmware speaks; ``Profile.LEGACY`` is the older revision with a
smaller command set and different identifiers. They are never mixed.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum

from ..errors import UnsupportedCommand, ValidationError

MAX_PAYLOAD = 32

DEFAULT_RX_PIN = 13
DEFAULT_TX_PIN = 14
DEFAULT_BAUD = 31250  # MIDI


class Command(IntEnum):
    """Canonical command identifiers."""

    BEGIN = 0x01
    SET_INSTRUMENT = 0x02
    SET_NOTE_ON = 0x03
    SET_NOTE_OFF = 0x04
    SET_ALL_NOTES_OFF = 0x05
    SET_PITCH_BEND = 0x06
    SET_PITCH_BEND_RANGE = 0x07
    SET_MASTER_VOLUME = 0x08
    SET_CHANNEL_VOLUME = 0x09
    SET_EXPRESSION = 0x0A
    SET_REVERB = 0x0B
    SET_CHORUS = 0x0C
    SET_PAN = 0x0D
    SET_EQUALIZER = 0x0E
    SET_TUNING = 0x0F
    SET_VIBRATO = 0x10
    SET_TVF = 0x11
    SET_ENVELOPE = 0x12
    SET_MOD_WHEEL = 0x13
    SET_ALL_DRUMS = 0x14
    RESET = 0x15


class LegacyCommand(IntEnum):
    """Identifiers of the older firmware revision."""

    INIT = 0x01
    SET_INSTRUMENT = 0x02
    SET_MASTER_VOLUME = 0x03
    SET_NOTE_ON = 0x04
    SET_NOTE_OFF = 0x05
    SET_ALL_NOTES_OFF = 0x06
    SET_CHANNEL_VOLUME = 0x07
    SET_PITCH_BEND = 0x08
    SET_PAN = 0x09
    SET_REVERB = 0x0A
    SET_CHORUS = 0x0B
    SYSTEM_RESET = 0x10


class Profile(Enum):
    """Which command table a host or device speaks."""

    CANONICAL = "canonical"
    LEGACY = "legacy"


@dataclass(frozen=True)
class FieldSpec:
    """One payload field: name, width, signedness and inclusive range.

    A field with a ``default`` may be left off the end of a payload; the
    decoder substitutes the default.
    """

    name: str
    width: int = 1
    signed: bool = False
    minimum: int = 0
    maximum: int = 127
    default: int | None = None

    @property
    def optional(self) -> bool:
        return self.default is not None


@dataclass(frozen=True)
class CommandSpec:
    """Wire layout of one command and the driver call it maps to."""

    name: str
    identifier: int
    driver_method: str
    fields: tuple[FieldSpec, ...] = ()

    @property
    def length(self) -> int:
        """Full payload length when every field is present."""
        return sum(f.width for f in self.fields)

    @property
    def min_length(self) -> int:
        """Bytes the dispatcher needs before it will execute the command."""
        total = 0
        for f in self.fields:
            if f.optional:
                break
            total += f.width
        return total

    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]


@dataclass(frozen=True)
class CommandRequest:
    """A validated command ready for the transport."""

    identifier: int
    payload: bytes = b""

    def __post_init__(self) -> None:
        if len(self.payload) > MAX_PAYLOAD:
            raise ValueError(
                f"Payload must be at most {MAX_PAYLOAD} bytes, got {len(self.payload)}"
            )

    def __repr__(self) -> str:
        return (
            f"CommandRequest(identifier=0x{self.identifier:02X}, "
            f"payload={self.payload.hex(' ') if self.payload else '(empty)'})"
        )


# ─── FIELD CONSTRUCTORS ──────────────────────────────────────────────

def _channel() -> FieldSpec:
    return FieldSpec("channel", maximum=15)


def _value(name: str) -> FieldSpec:
    return FieldSpec(name)


def _pin(name: str, default: int) -> FieldSpec:
    return FieldSpec(name, maximum=255, default=default)


_BEGIN_FIELDS = (
    _pin("rx_pin", DEFAULT_RX_PIN),
    _pin("tx_pin", DEFAULT_TX_PIN),
    FieldSpec("baud", width=2, minimum=1, maximum=0xFFFF, default=DEFAULT_BAUD),
)
_NOTE_ON_FIELDS = (_channel(), _value("pitch"), _value("velocity"))
_NOTE_OFF_FIELDS = (_channel(), _value("pitch"), FieldSpec("velocity", default=0))
_PITCH_BEND_FIELDS = (
    _channel(),
    FieldSpec("value", width=2, signed=True, minimum=-8192, maximum=8191),
)
_REVERB_FIELDS = (_channel(), _value("program"), _value("level"), _value("feedback"))
_CHORUS_FIELDS = (
    _channel(), _value("program"), _value("level"), _value("feedback"), _value("delay"),
)


def _spec(command: IntEnum, driver_method: str, *fields: FieldSpec) -> CommandSpec:
    return CommandSpec(
        name=driver_method,
        identifier=command.value,
        driver_method=driver_method,
        fields=tuple(fields),
    )


COMMAND_TABLE: dict[int, CommandSpec] = {
    s.identifier: s
    for s in (
        _spec(Command.BEGIN, "begin", *_BEGIN_FIELDS),
        _spec(Command.SET_INSTRUMENT, "set_instrument",
              _value("bank"), _channel(), _value("instrument")),
        _spec(Command.SET_NOTE_ON, "set_note_on", *_NOTE_ON_FIELDS),
        _spec(Command.SET_NOTE_OFF, "set_note_off", *_NOTE_OFF_FIELDS),
        _spec(Command.SET_ALL_NOTES_OFF, "set_all_notes_off", _channel()),
        _spec(Command.SET_PITCH_BEND, "set_pitch_bend", *_PITCH_BEND_FIELDS),
        _spec(Command.SET_PITCH_BEND_RANGE, "set_pitch_bend_range",
              _channel(), _value("value")),
        _spec(Command.SET_MASTER_VOLUME, "set_master_volume", _value("level")),
        _spec(Command.SET_CHANNEL_VOLUME, "set_volume", _channel(), _value("level")),
        _spec(Command.SET_EXPRESSION, "set_expression", _channel(), _value("expression")),
        _spec(Command.SET_REVERB, "set_reverb", *_REVERB_FIELDS),
        _spec(Command.SET_CHORUS, "set_chorus", *_CHORUS_FIELDS),
        _spec(Command.SET_PAN, "set_pan", _channel(), _value("value")),
        _spec(Command.SET_EQUALIZER, "set_equalizer",
              _channel(),
              _value("low_band"), _value("med_low_band"),
              _value("med_high_band"), _value("high_band"),
              _value("low_freq"), _value("med_low_freq"),
              _value("med_high_freq"), _value("high_freq")),
        _spec(Command.SET_TUNING, "set_tuning", _channel(), _value("fine"), _value("coarse")),
        _spec(Command.SET_VIBRATO, "set_vibrato",
              _channel(), _value("rate"), _value("depth"), _value("delay")),
        _spec(Command.SET_TVF, "set_tvf", _channel(), _value("cutoff"), _value("resonance")),
        _spec(Command.SET_ENVELOPE, "set_envelope",
              _channel(), _value("attack"), _value("decay"), _value("release")),
        _spec(Command.SET_MOD_WHEEL, "set_mod_wheel",
              _channel(),
              _value("pitch"), _value("tvf_cutoff"), _value("amplitude"),
              _value("rate"), _value("pitch_depth"), _value("tvf_depth"),
              _value("tva_depth")),
        _spec(Command.SET_ALL_DRUMS, "set_all_instrument_drums"),
        _spec(Command.RESET, "reset"),
    )
}

LEGACY_COMMAND_TABLE: dict[int, CommandSpec] = {
    s.identifier: s
    for s in (
        _spec(LegacyCommand.INIT, "begin", *_BEGIN_FIELDS),
        _spec(LegacyCommand.SET_INSTRUMENT, "set_instrument",
              _value("bank"), _channel(), _value("instrument")),
        _spec(LegacyCommand.SET_MASTER_VOLUME, "set_master_volume", _value("level")),
        _spec(LegacyCommand.SET_NOTE_ON, "set_note_on", *_NOTE_ON_FIELDS),
        _spec(LegacyCommand.SET_NOTE_OFF, "set_note_off", *_NOTE_OFF_FIELDS),
        _spec(LegacyCommand.SET_ALL_NOTES_OFF, "set_all_notes_off", _channel()),
        _spec(LegacyCommand.SET_CHANNEL_VOLUME, "set_volume", _channel(), _value("level")),
        _spec(LegacyCommand.SET_PITCH_BEND, "set_pitch_bend", *_PITCH_BEND_FIELDS),
        _spec(LegacyCommand.SET_PAN, "set_pan", _channel(), _value("value")),
        _spec(LegacyCommand.SET_REVERB, "set_reverb", *_REVERB_FIELDS),
        _spec(LegacyCommand.SET_CHORUS, "set_chorus", *_CHORUS_FIELDS),
        _spec(LegacyCommand.SYSTEM_RESET, "reset"),
    )
}

_TABLES = {
    Profile.CANONICAL: COMMAND_TABLE,
    Profile.LEGACY: LEGACY_COMMAND_TABLE,
}


def command_table(profile: Profile = Profile.CANONICAL) -> dict[int, CommandSpec]:
    """Return the identifier-keyed table for a profile."""
    return _TABLES[profile]


def lookup(name: str | int, profile: Profile = Profile.CANONICAL) -> CommandSpec:
    """Find a command by driver-method name or identifier.

    Raises:
        UnsupportedCommand: If the profile has no such command.
    """
    table = command_table(profile)
    if isinstance(name, int):
        if name in table:
            return table[name]
    else:
        for spec in table.values():
            if spec.name == name:
                return spec
    raise UnsupportedCommand(
        f"Command {name!r} is not part of the {profile.value} protocol"
    )


# ─── FIELD PACKING ───────────────────────────────────────────────────

def check_field(spec: FieldSpec, value) -> int:
    """Return ``value`` as an int if it lies within the field's range."""
    if isinstance(value, bool) or not isinstance(value, int):
        # Accept integral floats the way a numeric host would
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        else:
            raise ValidationError(spec.name, spec.minimum, spec.maximum, value)
    if not spec.minimum <= value <= spec.maximum:
        raise ValidationError(spec.name, spec.minimum, spec.maximum, value)
    return value


def pack_field(spec: FieldSpec, value: int) -> bytes:
    """Pack one field. Signed values use two's complement, 2-byte fields LE."""
    return value.to_bytes(spec.width, "little", signed=spec.signed)


def unpack_field(spec: FieldSpec, data: bytes, offset: int) -> int:
    """Read one field at a fixed offset without checking its range."""
    return int.from_bytes(data[offset : offset + spec.width], "little", signed=spec.signed)


def validate(spec: CommandSpec, values) -> list[int]:
    """Check every argument of a command; returns the normalized values.

    Raises:
        ValidationError: On the first argument outside its range.
        TypeError: If the argument count does not match the command.
    """
    values = list(values)
    if len(values) != len(spec.fields):
        raise TypeError(
            f"{spec.name}() takes {len(spec.fields)} arguments "
            f"({', '.join(spec.field_names()) or 'none'}), got {len(values)}"
        )
    return [check_field(f, v) for f, v in zip(spec.fields, values)]


def encode(
    command: str | int,
    *args: int,
    profile: Profile = Profile.CANONICAL,
) -> CommandRequest:
    """Validate arguments and pack them into a request.

    Args:
        command: Driver-method name (``"set_note_on"``) or identifier.
        *args: Field values in table order.
        profile: Command table to encode against.

    Raises:
        ValidationError: If any argument is out of range. Nothing is packed.
    """
    spec = lookup(command, profile)
    values = validate(spec, args)
    payload = b"".join(pack_field(f, v) for f, v in zip(spec.fields, values))
    return CommandRequest(identifier=spec.identifier, payload=payload)


def decode(spec: CommandSpec, payload: bytes) -> list[int]:
    """Decode a payload at the table's fixed offsets.

    Missing trailing optional fields take their defaults. The caller must
    have checked ``len(payload) >= spec.min_length``. Ranges are not
    re-checked.
    """
    values = []
    offset = 0
    for f in spec.fields:
        if offset + f.width <= len(payload):
            values.append(unpack_field(f, payload, offset))
        else:
            values.append(f.default)
        offset += f.width
    return values


# ─── BUILDERS ────────────────────────────────────────────────────────

def build_begin(
    rx_pin: int = DEFAULT_RX_PIN,
    tx_pin: int = DEFAULT_TX_PIN,
    baud: int = DEFAULT_BAUD,
    profile: Profile = Profile.CANONICAL,
) -> CommandRequest:
    """Build a begin command that brings up the synth UART."""
    return encode("begin", rx_pin, tx_pin, baud, profile=profile)


def build_note_on(
    channel: int, pitch: int, velocity: int, profile: Profile = Profile.CANONICAL
) -> CommandRequest:
    return encode("set_note_on", channel, pitch, velocity, profile=profile)


def build_note_off(
    channel: int, pitch: int, velocity: int = 0, profile: Profile = Profile.CANONICAL
) -> CommandRequest:
    return encode("set_note_off", channel, pitch, velocity, profile=profile)


def build_pitch_bend(
    channel: int, value: int, profile: Profile = Profile.CANONICAL
) -> CommandRequest:
    """Build a pitch bend command.

    Args:
        channel: MIDI channel 0-15.
        value: Signed bend -8192..8191, 0 is centre.
    """
    return encode("set_pitch_bend", channel, value, profile=profile)


def build_reset(profile: Profile = Profile.CANONICAL) -> CommandRequest:
    return encode("reset", profile=profile)
