import argparse
import logging
import struct
import sys

from pcapng.exceptions import PcapngLoadError
from cybootloader import (pcapng_to_usb_transfers, usb_to_bootloader,
                          frame_summary, frame_fields, load_codes,
                          BootloaderError)

log = logging.getLogger("parse_usb_log")

# Usage: parse_usb_log.py capture.pcapng --device 10
#
# Captures can come from USBPcap (Windows) or usbmon (Linux). Restrict the
# output to the bootloader with --bus/--device, since every interrupt
# transfer on endpoint 1 or 2 starting with 0x01 looks like a frame.


def _setup_logging(verbose):
    level = logging.ERROR
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s:%(name)s:%(message)s")


def _want(xfer, args):
    if args.bus is not None and xfer.bus != args.bus:
        return False
    if args.device is not None and xfer.device != args.device:
        return False
    return True


def main(argv=None):
    parser = argparse.ArgumentParser(description="Decode Cypress USB HID bootloader traffic from a pcapng capture")
    parser.add_argument("capture", help="pcapng file from USBPcap or usbmon")
    parser.add_argument("--bus", type=int, help="only decode transfers on this bus")
    parser.add_argument("--device", type=int, help="only decode transfers to this device address")
    parser.add_argument("--codes", help="JSON file with extra command/status names")
    parser.add_argument("--fields", action="store_true", help="list every field below each packet")
    parser.add_argument("-v", "--verbose", action="count", default=0)
    args = parser.parse_args(argv)
    _setup_logging(args.verbose)

    commands = statuses = None
    try:
        if args.codes:
            commands, statuses = load_codes(args.codes)
        xfers = pcapng_to_usb_transfers(args.capture)
    except (IOError, struct.error, PcapngLoadError, BootloaderError) as exc:
        log.error("%s", exc)
        return 1

    count = 0
    for packet in usb_to_bootloader((x for x in xfers if _want(x, args)), commands, statuses):
        print("%5i %s" % (packet.xfer.id, frame_summary(packet.frame)))
        if args.fields:
            for label, value in frame_fields(packet.frame):
                print("        %s: %s" % (label, value))
        count += 1
    log.info("Decoded %i bootloader packets from %i transfers", count, len(xfers))
    return 0


if __name__ == "__main__":
    sys.exit(main())
