"""Run the device side on a PC or single-board computer.

Listens for command frames on a serial port and plays them on a MIDI
output (for example a Unit Synth behind a USB-MIDI adapter)::

    unit-synth-bridge /dev/ttyGS0 --midi-out "USB MIDI Interface"
"""

from __future__ import annotations

import argparse
import logging

import mido
import serial

from ..protocol.commands import Profile
from .dispatcher import DeviceSession, Dispatcher, serve
from .drivers import MidoDriver, RecordingDriver

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="unit-synth-bridge",
        description="Answer Unit Synth command frames on a serial port.",
    )
    parser.add_argument("port", help="serial port or pyserial URL to listen on")
    parser.add_argument("--baud", type=int, default=115200, help="link baud rate")
    parser.add_argument("--midi-out", help="mido output port name (default: system default)")
    parser.add_argument("--legacy", action="store_true", help="speak the legacy command table")
    parser.add_argument("--dry-run", action="store_true", help="record calls instead of sending MIDI")
    parser.add_argument("--list-ports", action="store_true", help="list MIDI outputs and exit")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    if args.list_ports:
        for name in mido.get_output_names():
            print(name)
        return 0

    if args.dry_run:
        factory = RecordingDriver
    else:
        def factory():
            return MidoDriver(port_name=args.midi_out)

    profile = Profile.LEGACY if args.legacy else Profile.CANONICAL
    dispatcher = Dispatcher(DeviceSession(factory), profile=profile)

    with serial.serial_for_url(args.port, baudrate=args.baud, timeout=0.1) as link:
        logger.info("Listening on %s (%s profile)", args.port, profile.value)
        try:
            serve(link, dispatcher)
        except KeyboardInterrupt:
            logger.info("Stopped")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
