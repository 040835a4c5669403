"""In-process transport that talks straight to a ``Dispatcher``.

Requests and responses still go through ``build_frame``/``parse_frame`` so
the simulated link behaves like the serial one.
"""

from __future__ import annotations

import logging
from typing import Protocol

from ..device.dispatcher import Dispatcher
from ..errors import TransportError
from ..protocol.framing import build_frame, parse_frame
from ..protocol.parser import CommandResponse, parse_response

logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Anything that can carry one command and return its response."""

    def send(self, identifier: int, payload: bytes = b"") -> CommandResponse: ...


class LoopbackTransport:
    """Deliver frames to a dispatcher in the same process."""

    def __init__(self, dispatcher: Dispatcher) -> None:
        self.dispatcher = dispatcher
        self.sent: list[bytes] = []

    def send(self, identifier: int, payload: bytes = b"") -> CommandResponse:
        request = parse_frame(build_frame(identifier, payload))
        if request is None:
            raise TransportError("Request frame failed to parse")
        self.sent.append(bytes([request.identifier]) + request.payload)

        response = self.dispatcher.handle(request.identifier, request.payload)
        frame = parse_frame(build_frame(response.identifier, response.payload))
        if frame is None:
            raise TransportError("Response frame failed to parse")
        logger.debug("Loopback 0x%02X -> status %d", identifier, response.status)
        return parse_response(frame)
