"""Serial (UART) connection to the microcontroller running the dispatcher.

One request is outstanding at a time: ``send`` writes a frame and blocks
until a response frame arrives or the read timeout expires.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

import serial

from ..errors import TransportError
from ..protocol.framing import FrameReader, build_frame
from ..protocol.parser import CommandResponse, parse_response

logger = logging.getLogger(__name__)

DEFAULT_LINK_BAUD = 115200
READ_TIMEOUT_S = 1.0
# Boards that reset when the port opens need a moment before they listen
BOOT_DELAY_S = 0.0


@dataclass
class PortInfo:
    """Basic information about the opened serial port."""

    port: str = ""
    baudrate: int = DEFAULT_LINK_BAUD
    description: str = ""


class SerialConnection:
    """Manages the serial link to the device.

    Usage::

        conn = SerialConnection("/dev/ttyUSB0")
        conn.open()
        response = conn.send(0x03, b"\\x00\\x3c\\x64")
        conn.close()

    or as a context manager.
    """

    def __init__(
        self,
        port: str,
        baudrate: int = DEFAULT_LINK_BAUD,
        timeout: float = READ_TIMEOUT_S,
        boot_delay: float = BOOT_DELAY_S,
    ) -> None:
        self._port_name = port
        self._baudrate = baudrate
        self._timeout = timeout
        self._boot_delay = boot_delay
        self._serial: serial.Serial | None = None
        self._reader = FrameReader()
        self._info = PortInfo(port=port, baudrate=baudrate)

    @property
    def connected(self) -> bool:
        return self._serial is not None and self._serial.is_open

    @property
    def port_info(self) -> PortInfo:
        return self._info

    def open(self) -> PortInfo:
        """Open the serial port.

        Raises:
            TransportError: If the port cannot be opened.
        """
        try:
            self._serial = serial.serial_for_url(
                self._port_name,
                baudrate=self._baudrate,
                timeout=self._timeout,
            )
        except serial.SerialException as e:
            raise TransportError(
                f"Could not open serial port {self._port_name} "
                f"at {self._baudrate} baud. "
                f"Ensure the board is connected and you have permissions. "
                f"Last error: {e}"
            ) from e

        if self._boot_delay:
            time.sleep(self._boot_delay)
        self._serial.reset_input_buffer()
        self._reader.clear()

        self._info = PortInfo(
            port=self._port_name,
            baudrate=self._baudrate,
            description=getattr(self._serial, "name", "") or "",
        )
        logger.info("Connected to %s at %d baud", self._port_name, self._baudrate)
        return self._info

    def attach(self, stream) -> None:
        """Use an already-open ``serial.Serial``-like stream."""
        self._serial = stream
        self._reader.clear()

    def close(self) -> None:
        """Close the serial port."""
        if self._serial is None:
            return
        try:
            self._serial.close()
        except serial.SerialException as e:
            logger.warning("Error closing port: %s", e)
        finally:
            self._serial = None
            logger.info("Disconnected")

    def __enter__(self) -> SerialConnection:
        if not self.connected:
            self.open()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def write(self, data: bytes) -> int:
        if not self.connected:
            raise TransportError("Not connected to device")
        try:
            written = self._serial.write(data)
            self._serial.flush()
        except serial.SerialException as e:
            raise TransportError(f"Write failed: {e}") from e
        return written

    def discard_input(self) -> None:
        """Drop unread bytes from the port and any partial frame."""
        if not self.connected:
            raise TransportError("Not connected to device")
        try:
            stale = self._serial.in_waiting
            self._serial.reset_input_buffer()
        except serial.SerialException as e:
            raise TransportError(f"Input flush failed: {e}") from e
        if stale or self._reader.pending:
            logger.debug(
                "Discarding %d stale bytes and %d buffered",
                stale, self._reader.pending,
            )
        self._reader.clear()

    def read_response(self, timeout: float | None = None) -> CommandResponse:
        """Block until one complete frame arrives.

        Raises:
            TransportError: On timeout or a port error.
        """
        if not self.connected:
            raise TransportError("Not connected to device")

        timeout = self._timeout if timeout is None else timeout
        deadline = time.monotonic() + timeout
        while True:
            try:
                waiting = self._serial.in_waiting or 1
                chunk = self._serial.read(waiting)
            except serial.SerialException as e:
                raise TransportError(f"Read failed: {e}") from e

            if chunk:
                frames = self._reader.feed(chunk)
                if frames:
                    if len(frames) > 1:
                        logger.warning("Discarding %d unexpected frames", len(frames) - 1)
                    logger.debug("Received %r", frames[0])
                    return parse_response(frames[0])

            if time.monotonic() >= deadline:
                raise TransportError(
                    f"No response within {timeout:.2f}s "
                    f"({self._reader.pending} bytes pending, "
                    f"{self._reader.dropped} bad frames)"
                )

    def send(self, identifier: int, payload: bytes = b"") -> CommandResponse:
        """Send one command and wait for its response.

        Bytes still queued from an earlier request (a reply that arrived
        after its timeout) are discarded first.
        """
        frame = build_frame(identifier, payload)
        self.discard_input()
        logger.debug("Sending 0x%02X %s", identifier, payload.hex(" "))
        self.write(frame)
        return self.read_response()
