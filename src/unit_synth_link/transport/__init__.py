"""Transports carrying command frames between host and device."""

from .loopback import LoopbackTransport, Transport
from .serial_connection import SerialConnection
