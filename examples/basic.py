"""Play a short demo on a Unit Synth.

Wiring: synth RX to GPIO13 and TX to GPIO14 on the board (port C), MIDI
baud 31250. Pass the board's serial port, or ``--simulate`` to run the
demo against an in-process device::

    python examples/basic.py /dev/ttyUSB0
    python examples/basic.py --simulate -v
"""

from __future__ import annotations

import argparse
import logging
import time

from unit_synth_link import UnitSynth
from unit_synth_link.device import DeviceSession, Dispatcher, RecordingDriver
from unit_synth_link.transport import LoopbackTransport, SerialConnection

logger = logging.getLogger("unit_synth_link.examples.basic")

C_MAJOR = [60, 62, 64, 65, 67, 69, 71, 72]
INSTRUMENTS = {0: "Piano", 40: "Violin", 56: "Trumpet", 73: "Flute"}


def run(synth: UnitSynth, note_length: float = 0.4) -> None:
    synth.set_instrument(0, 0, 0)
    synth.set_master_volume(100)

    logger.info("C major scale")
    for pitch in C_MAJOR:
        synth.play_note(0, pitch, note_length)

    logger.info("C major chord")
    for pitch in (60, 64, 67):
        synth.set_note_on(0, pitch, 100)
    time.sleep(note_length * 4)
    synth.set_all_notes_off(0)

    for program, name in INSTRUMENTS.items():
        logger.info("Middle C on %s", name)
        synth.set_instrument(0, 0, program)
        synth.play_note(0, 60, note_length * 2)

    logger.info("Pan left to right")
    synth.set_instrument(0, 0, 0)
    for pan, pitch in ((0, 60), (64, 64), (127, 67)):
        synth.set_pan(0, pan)
        synth.play_note(0, pitch, note_length)
    synth.set_pan(0, 64)

    synth.reset()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Unit Synth demo.")
    parser.add_argument("port", nargs="?", help="serial port of the board")
    parser.add_argument("--simulate", action="store_true", help="use an in-process device")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    if args.simulate:
        run(UnitSynth(LoopbackTransport(Dispatcher(DeviceSession(RecordingDriver))), 13, 14))
        return 0
    if not args.port:
        parser.error("a serial port is required unless --simulate is given")

    with SerialConnection(args.port) as link:
        synth = UnitSynth.on_port(link, "C")
        if not synth.initialized:
            return 1
        run(synth)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
