"""Linux usbmon link layers (LINKTYPE_USB_LINUX and LINKTYPE_USB_LINUX_MMAPPED)."""
from struct import unpack, calcsize
from collections import namedtuple
from .common import USBTransfer
import logging

log = logging.getLogger(__name__)

# Defined by Linux - Documentation/usb/usbmon.rst, struct usbmon_packet
MON_HDR_FMT = "<QcBBBHccqiiII8s"
MON_HDR_SIZE = calcsize(MON_HDR_FMT)
MonHeader = namedtuple("MonHeader", "id, event, transfer, endpoint, device, bus, flag_setup,"
                                    "flag_data, ts_sec, ts_usec, status, length, len_cap, setup")
# Mmapped captures append the interrupt/iso fields
MON_MMAP_FMT = "<iiII"
MON_MMAP_SIZE = calcsize(MON_MMAP_FMT)
MonMmapHeader = namedtuple("MonMmapHeader", "interval, start_frame, xfer_flags, ndesc")
MON_ISO_DESC_SIZE = 16

MON_EVENT_TO_URB = {
    b"S": "Submit",
    b"C": "Complete",
    b"E": "Error"
}
MON_TRANSFER_TO_TYPE = {
    0: "Isochronous",
    1: "Interrupt",
    2: "Control",
    3: "Bulk"
}


def _usbmon_to_usb(hdr, data, offset, packet_id, time):
    ttype = MON_TRANSFER_TO_TYPE.get(hdr.transfer, "Unknown")
    urb = MON_EVENT_TO_URB.get(hdr.event)
    if urb is None:
        log.warning("Unknown usbmon event %r for packet %s", hdr.event, packet_id)
    # flag_setup is zero when the setup packet is present
    if ttype == "Control" and hdr.event == b"S" and hdr.flag_setup == b"\x00":
        direction = "Setup"
    else:
        direction = "In" if hdr.endpoint & 0x80 else "Out"
    if time is None:
        time = hdr.ts_sec + hdr.ts_usec / 1000000.0
    return USBTransfer(packet_id, time, urb, hdr.bus, hdr.device,
                       hdr.endpoint & 0x7F, ttype, direction,
                       bytes(data[offset:offset + hdr.len_cap]))


def usbmon_to_usb(data, packet_id, time=None):
    hdr = MonHeader(*unpack(MON_HDR_FMT, data[:MON_HDR_SIZE]))
    return _usbmon_to_usb(hdr, data, MON_HDR_SIZE, packet_id, time)


def usbmon_mmapped_to_usb(data, packet_id, time=None):
    hdr = MonHeader(*unpack(MON_HDR_FMT, data[:MON_HDR_SIZE]))
    mmap = MonMmapHeader(*unpack(MON_MMAP_FMT, data[MON_HDR_SIZE:MON_HDR_SIZE + MON_MMAP_SIZE]))
    offset = MON_HDR_SIZE + MON_MMAP_SIZE
    if MON_TRANSFER_TO_TYPE.get(hdr.transfer) == "Isochronous":
        offset += mmap.ndesc * MON_ISO_DESC_SIZE
    return _usbmon_to_usb(hdr, data, offset, packet_id, time)
