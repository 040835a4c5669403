"""Drive an M5Stack Unit Synth (SAM2695) over a serial command link."""

from .client import UnitSynth
from .errors import (
    ProtocolFailure,
    SynthLinkError,
    TransportError,
    UnsupportedCommand,
    ValidationError,
)
from .protocol.commands import Command, Profile

__version__ = "1.0.0"
