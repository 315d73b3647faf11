import struct
from pcapng import FileScanner
from .usbpcap import pcap_to_usb
from .usbmon import usbmon_to_usb, usbmon_mmapped_to_usb
from .common import USBTransfer, TransferMetadata
from .codes import COMMANDS, STATUSES, load_codes
from .errors import BootloaderError, TruncatedFrame
from .bootloader import (COMMAND, RESPONSE, BootloaderFrame, BootloaderPacket,
                         classify, decode, frame_summary, frame_fields,
                         usb_to_bootloader)
import logging

log = logging.getLogger(__name__)


# Defined by pcapng - https://www.winpcap.org/ntar/draft/PCAP-DumpFileFormat.html
PCAPNG_BLOCK = {
    "INTERFACE_DESC": 0x00000001,
    "ENHANCED_PACKET": 0x00000006,
    "SECTION_HEADER": 0x0A0D0D0A
}


# Link types - https://www.tcpdump.org/linktypes.html
PCAPNG_LINK = {
    189: usbmon_to_usb,
    220: usbmon_mmapped_to_usb,
    249: pcap_to_usb,
}


def pcapng_to_usb_transfers(filename):
    with open(filename, "rb") as fp:
        scanner = FileScanner(fp)
        interfaces = None
        index = None
        usb_transfers = []
        for block in scanner:
            magic = getattr(block, "magic_number", None)
            if magic == PCAPNG_BLOCK["SECTION_HEADER"]:
                interfaces = []
                index = 1
            elif magic == PCAPNG_BLOCK["INTERFACE_DESC"]:
                log.info("Interface %i link type: %s", len(interfaces), block.link_type)
                if block.link_type in PCAPNG_LINK:
                    interfaces.append(PCAPNG_LINK[block.link_type])
                else:
                    log.error("Skipping interface %i with link type %s!", len(interfaces), block.link_type)
                    # Keep interface ids aligned with the section
                    interfaces.append(None)
            elif magic == PCAPNG_BLOCK["ENHANCED_PACKET"]:
                to_usb = interfaces[block.interface_id]
                if to_usb is not None:
                    try:
                        usb_transfers.append(to_usb(block.packet_data, index, block.timestamp))
                    except struct.error as exc:
                        log.error("Skipping malformed packet %s: %s", index, exc)
                index += 1
    return usb_transfers
