"""Device-side command dispatcher.

Receives (identifier, payload) pairs, decodes them at the command table's
fixed offsets, and calls the vendor driver. Every command is answered with
a single status byte; neither bad input nor a driver fault is fatal.

State machine::

    UNINITIALIZED --begin--> READY
    READY --begin--> READY        (driver instance reused)
    READY --reset--> READY        (synth parameters cleared, state kept)

A begin whose driver raises answers 0 and leaves the state unchanged.

Field ranges are not re-checked here. Range enforcement belongs to the host
encoder; out-of-range bytes are forwarded to the driver unchanged.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable

from ..protocol.commands import Profile, command_table, decode
from ..protocol.framing import FrameReader, build_frame
from ..protocol.parser import CommandResponse, status_response
from .drivers import VendorDriver

logger = logging.getLogger(__name__)

BEGIN_METHOD = "begin"


class SessionState(Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"


class DeviceSession:
    """Owns the vendor driver instance and the initialized flag.

    The driver is created lazily by ``driver_factory`` on the first begin
    command and reused by later ones.
    """

    def __init__(self, driver_factory: Callable[[], VendorDriver]) -> None:
        self._driver_factory = driver_factory
        self._driver: VendorDriver | None = None
        self.state = SessionState.UNINITIALIZED

    @property
    def driver(self) -> VendorDriver | None:
        return self._driver

    @property
    def ready(self) -> bool:
        return self.state is SessionState.READY

    def begin(self, rx_pin: int, tx_pin: int, baud: int) -> None:
        if self._driver is None:
            self._driver = self._driver_factory()
        self._driver.begin(rx_pin, tx_pin, baud)
        self.state = SessionState.READY


class Dispatcher:
    """Decodes commands and invokes the session's vendor driver."""

    def __init__(
        self,
        session: DeviceSession,
        profile: Profile = Profile.CANONICAL,
    ) -> None:
        self.session = session
        self.profile = profile
        self._table = command_table(profile)

    def handle(self, identifier: int, payload: bytes = b"") -> CommandResponse:
        """Process one command and return its status response."""
        spec = self._table.get(identifier)
        if spec is None:
            logger.debug("Ignoring unknown command 0x%02X", identifier)
            return status_response(identifier, False)

        if spec.driver_method == BEGIN_METHOD:
            rx_pin, tx_pin, baud = decode(spec, payload)
            try:
                self.session.begin(rx_pin, tx_pin, baud)
            except Exception as e:
                # Session state is left as it was
                logger.warning("Synth start on rx=%d tx=%d failed: %s", rx_pin, tx_pin, e)
                return status_response(identifier, False)
            logger.info("Synth started on rx=%d tx=%d baud=%d", rx_pin, tx_pin, baud)
            return status_response(identifier, True)

        if not self.session.ready:
            logger.debug("%s rejected: session not started", spec.name)
            return status_response(identifier, False)

        if len(payload) < spec.min_length:
            logger.debug(
                "%s rejected: payload %d bytes, need %d",
                spec.name, len(payload), spec.min_length,
            )
            return status_response(identifier, False)

        values = decode(spec, payload)
        try:
            getattr(self.session.driver, spec.driver_method)(*values)
        except Exception as e:
            logger.warning("Driver call %s%s failed: %s", spec.driver_method, tuple(values), e)
            return status_response(identifier, False)
        return status_response(identifier, True)


def serve(connection, dispatcher: Dispatcher, max_frames: int | None = None) -> int:
    """Run the device side of the link over a byte stream.

    Reads frames from ``connection`` (anything with ``read(size)`` and
    ``write(data)``, such as a ``serial.Serial``), dispatches each one and
    writes the framed response back.

    Args:
        connection: The open byte stream.
        dispatcher: Dispatcher to answer with.
        max_frames: Stop after this many frames; ``None`` runs until the
            caller interrupts.

    Returns:
        Number of frames handled.
    """
    reader = FrameReader()
    handled = 0
    while max_frames is None or handled < max_frames:
        waiting = getattr(connection, "in_waiting", 0) or 1
        chunk = connection.read(waiting)
        if not chunk:
            continue
        for frame in reader.feed(chunk):
            response = dispatcher.handle(frame.identifier, frame.payload)
            connection.write(build_frame(response.identifier, response.payload))
            handled += 1
            if max_frames is not None and handled >= max_frames:
                break
    return handled
