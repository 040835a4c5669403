"""Response parsing for device messages."""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import ProtocolFailure, TransportError
from .commands import CommandRequest
from .framing import Frame

STATUS_FAILURE = 0
STATUS_SUCCESS = 1


@dataclass(frozen=True)
class CommandResponse:
    """A device reply: the echoed identifier and a status payload."""

    identifier: int
    payload: bytes = b""

    @property
    def status(self) -> int:
        """payload[0], or failure when the device sent nothing."""
        return self.payload[0] if self.payload else STATUS_FAILURE

    @property
    def ok(self) -> bool:
        return self.status == STATUS_SUCCESS

    def __repr__(self) -> str:
        return (
            f"CommandResponse(identifier=0x{self.identifier:02X}, "
            f"status={self.status})"
        )


def status_response(identifier: int, success: bool) -> CommandResponse:
    """Build the one-byte status reply every command answers with."""
    status = STATUS_SUCCESS if success else STATUS_FAILURE
    return CommandResponse(identifier=identifier, payload=bytes([status]))


def parse_response(frame: Frame) -> CommandResponse:
    """Turn a received frame into a ``CommandResponse``."""
    return CommandResponse(identifier=frame.identifier, payload=frame.payload)


def check_response(request: CommandRequest, response: CommandResponse) -> CommandResponse:
    """Verify a response belongs to ``request`` and reports success.

    Raises:
        TransportError: If the echoed identifier does not match.
        ProtocolFailure: If the status byte is not success.
    """
    if response.identifier != request.identifier:
        raise TransportError(
            f"Response identifier 0x{response.identifier:02X} does not match "
            f"request 0x{request.identifier:02X}"
        )
    if not response.ok:
        raise ProtocolFailure(request.identifier, response.status)
    return response
