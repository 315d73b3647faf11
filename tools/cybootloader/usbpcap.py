from struct import unpack, calcsize
from collections import namedtuple
from .common import USBTransfer
import logging

log = logging.getLogger(__name__)

# Defined by USBPCAP - http://desowin.org/usbpcap/captureformat.html
PCAP_HDR_FMT = "<HQIHBHHBBI"
PCAP_HDR_SIZE = calcsize(PCAP_HDR_FMT)
PcapHeader = namedtuple("PcapHeader", "header_len, irq_id, status, function,"
                                      "info, bus, device, endpoint, transfer, data_length")

# Set when the IRP travels from the bus driver back up the stack
PCAP_INFO_PDO_TO_FDO = 0x01

PCAP_CONTROL_STAGE = {
    "Setup": 0,
    "Data": 1,
    "Status": 2,
    "Complete": 3
}
NUM_TO_CONTROL_STAGE = dict((value, key) for key, value in PCAP_CONTROL_STAGE.items())
PCAP_TRANSFER_TO_TYPE = {
    0: "Isochronous",
    1: "Interrupt",
    2: "Control",
    3: "Bulk"
}


def pcap_to_usb(data, packet_id, time=None):
    hdr = PcapHeader(*unpack(PCAP_HDR_FMT, data[:PCAP_HDR_SIZE]))
    ttype = PCAP_TRANSFER_TO_TYPE.get(hdr.transfer, "Unknown")
    if ttype == "Control":
        stage_num, = unpack("<B", data[PCAP_HDR_SIZE:PCAP_HDR_SIZE + 1])
        direction = NUM_TO_CONTROL_STAGE.get(stage_num)
        if direction == "Data":
            direction = "In" if hdr.endpoint & 0x80 else "Out"
        elif direction != "Setup":
            # Completion of the whole request carries no stage data
            direction = "Status"
    else:
        direction = "In" if hdr.endpoint & 0x80 else "Out"
    urb = "Complete" if hdr.info & PCAP_INFO_PDO_TO_FDO else "Submit"
    if ttype == "Unknown":
        log.warning("Unknown transfer type %i for packet %s", hdr.transfer, packet_id)
    return USBTransfer(packet_id, time, urb, hdr.bus, hdr.device,
                       hdr.endpoint & 0x7F, ttype, direction,
                       bytes(data[hdr.header_len:hdr.header_len + hdr.data_length]))
