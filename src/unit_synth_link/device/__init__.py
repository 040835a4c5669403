"""Device side: command dispatcher, session state, and vendor drivers."""

from .dispatcher import DeviceSession, Dispatcher, SessionState, serve
from .drivers import MidoDriver, RecordingDriver, VendorDriver
