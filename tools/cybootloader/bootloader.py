from struct import unpack_from, calcsize
from collections import namedtuple
import logging

from .codes import COMMANDS, STATUSES
from .errors import TruncatedFrame

log = logging.getLogger(__name__)


SOP = 0x01
EOP = 0x17

# Endpoints used by the bootloader HID interface
COMMAND_ENDPOINT = 1
RESPONSE_ENDPOINT = 2

COMMAND = "Command"
RESPONSE = "Response"

HDR_FMT = "<BBH"
HDR_SIZE = calcsize(HDR_FMT)
TRAILER_FMT = "<HB"
TRAILER_SIZE = calcsize(TRAILER_FMT)
FRAME_OVERHEAD = HDR_SIZE + TRAILER_SIZE

FIELD_NAMES = {
    "sop": "Start of Packet",
    "status": "Status/Error Code",
    "command": "Command ID",
    "length": "Data Length",
    "data": "Packet Data",
    "checksum": "Packet Checksum",
    "eop": "End of Packet",
    "unknown": "Unidentified message data",
}

BootloaderFrame = namedtuple("BootloaderFrame", "direction, sop, code, name, length, data, checksum, eop, leftover")
BootloaderPacket = namedtuple("BootloaderPacket", "xfer, frame")


def classify(data, metadata):
    """Return COMMAND, RESPONSE or None for a transfer payload.

    Frames start with the same byte in both directions, so the direction
    comes from the endpoint and the request block event.
    """
    if metadata.type != "Interrupt":
        return None
    if len(data) < 1 or data[0] != SOP:
        return None
    if metadata.urb == "Submit" and metadata.endpoint == COMMAND_ENDPOINT:
        return COMMAND
    if metadata.urb == "Complete" and metadata.endpoint == RESPONSE_ENDPOINT:
        return RESPONSE
    return None


def decode(data, direction, commands=None, statuses=None):
    """Split a bootloader frame into its fields.

    Raises TruncatedFrame when the buffer is shorter than the length the
    frame declares. Bytes after the end of packet are returned in
    ``leftover``.
    """
    if direction == COMMAND:
        table = COMMANDS if commands is None else commands
    elif direction == RESPONSE:
        table = STATUSES if statuses is None else statuses
    else:
        raise ValueError("Invalid frame direction: %r" % (direction,))

    data = bytes(data)
    if len(data) < HDR_SIZE:
        raise TruncatedFrame(HDR_SIZE, len(data))
    sop, code, length = unpack_from(HDR_FMT, data, 0)
    frame_len = FRAME_OVERHEAD + length
    if len(data) < frame_len:
        raise TruncatedFrame(frame_len, len(data))

    payload = data[HDR_SIZE:HDR_SIZE + length]
    checksum, eop = unpack_from(TRAILER_FMT, data, HDR_SIZE + length)
    return BootloaderFrame(direction, sop, code, table.get(code), length,
                           payload, checksum, eop, data[frame_len:])


def frame_summary(frame):
    name = frame.name if frame.name is not None else "Unknown"
    summary = "<Bootloader %s %s(0x%02x) len=%i checksum=0x%04x" % (
        frame.direction, name, frame.code, frame.length, frame.checksum)
    if frame.leftover:
        summary += " leftover=%i" % len(frame.leftover)
    return summary + ">"


def _code_str(frame):
    if frame.name is None:
        return "Unknown (0x%02x)" % frame.code
    return "%s (0x%02x)" % (frame.name, frame.code)


def frame_fields(frame):
    """Return (label, value) pairs in wire order, for display."""
    code_field = "command" if frame.direction == COMMAND else "status"
    fields = [
        (FIELD_NAMES["sop"], "0x%02x" % frame.sop),
        (FIELD_NAMES[code_field], _code_str(frame)),
        (FIELD_NAMES["length"], "%i" % frame.length),
    ]
    if frame.length > 0:
        fields.append((FIELD_NAMES["data"], frame.data.hex()))
    fields.append((FIELD_NAMES["checksum"], "0x%04x" % frame.checksum))
    fields.append((FIELD_NAMES["eop"], "0x%02x" % frame.eop))
    if frame.leftover:
        fields.append((FIELD_NAMES["unknown"], frame.leftover.hex()))
    return fields


def usb_to_bootloader(xfers, commands=None, statuses=None):
    for xfer in xfers:
        direction = classify(xfer.data, xfer)
        if direction is None:
            continue
        try:
            frame = decode(xfer.data, direction, commands, statuses)
        except TruncatedFrame as exc:
            log.error("Truncated bootloader %s in packet %s: need %i bytes, have %i",
                      direction.lower(), xfer.id, exc.needed, exc.available)
            continue
        if frame.leftover:
            log.warning("Leftover data in packet %s: %i bytes after end of packet",
                        xfer.id, len(frame.leftover))
        if frame.eop != EOP:
            log.info("Unexpected end of packet 0x%02x in packet %s", frame.eop, xfer.id)
        log.debug("Packet %s: %s", xfer.id, frame_summary(frame))
        yield BootloaderPacket(xfer, frame)
