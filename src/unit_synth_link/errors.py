"""Exceptions raised by the host binding and transports."""

from __future__ import annotations


class SynthLinkError(Exception):
    """Base class for all unit-synth-link errors."""


class ValidationError(SynthLinkError, ValueError):
    """An argument is outside the range its command field allows.

    Raised by the encoder before any byte is sent.
    """

    def __init__(self, field: str, minimum: int, maximum: int, value) -> None:
        self.field = field
        self.minimum = minimum
        self.maximum = maximum
        self.value = value
        super().__init__(
            f"{field} must be {minimum}-{maximum}, got {value!r}"
        )


class UnsupportedCommand(SynthLinkError, KeyError):
    """The selected protocol profile has no entry for a command."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class TransportError(SynthLinkError, ConnectionError):
    """The serial channel failed, timed out, or returned a bad frame."""


class ProtocolFailure(SynthLinkError, RuntimeError):
    """The device answered with status 0.

    The protocol does not say why: the device may be uninitialized, the
    payload may have been malformed, or the driver may have rejected it.
    """

    def __init__(self, identifier: int, status: int = 0) -> None:
        self.identifier = identifier
        self.status = status
        super().__init__(
            f"Command 0x{identifier:02X} failed with status {status}"
        )
