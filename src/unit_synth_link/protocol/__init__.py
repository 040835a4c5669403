"""Protocol layer: command table, encoder, framing, CRC, and responses."""

from .commands import (
    COMMAND_TABLE,
    LEGACY_COMMAND_TABLE,
    Command,
    CommandRequest,
    CommandSpec,
    FieldSpec,
    LegacyCommand,
    Profile,
    command_table,
    decode,
    encode,
    lookup,
)
from .framing import Frame, FrameReader, build_frame, parse_frame
from .parser import CommandResponse, check_response, status_response
