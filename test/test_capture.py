from collections import namedtuple
from struct import pack
import logging

import cybootloader
from cybootloader import pcapng_to_usb_transfers, usb_to_bootloader
from cybootloader.usbpcap import PCAP_HDR_FMT, PCAP_HDR_SIZE

SectionHeader = namedtuple("SectionHeader", "magic_number")
InterfaceDescription = namedtuple("InterfaceDescription", "magic_number, link_type")
EnhancedPacket = namedtuple("EnhancedPacket", "magic_number, interface_id, packet_data, timestamp")

FRAME = bytes([0x01, 0x38, 0x00, 0x00, 0xC7, 0xFF, 0x17])
RESPONSE = bytes([0x01, 0x00, 0x00, 0x00, 0xFF, 0xFF, 0x17])


def _usbpcap(payload, endpoint, info=0):
    return pack(PCAP_HDR_FMT, PCAP_HDR_SIZE, 1, 0, 9, info, 1, 10,
                endpoint, 1, len(payload)) + payload


def _scan(monkeypatch, tmp_path, blocks):
    capture = tmp_path / "capture.pcapng"
    capture.write_bytes(b"")
    monkeypatch.setattr(cybootloader, "FileScanner", lambda fp: iter(blocks))
    return pcapng_to_usb_transfers(str(capture))


def test_pcapng_usbpcap_transfers(monkeypatch, tmp_path):
    blocks = [
        SectionHeader(0x0A0D0D0A),
        InterfaceDescription(0x00000001, 249),
        EnhancedPacket(0x00000006, 0, _usbpcap(FRAME, 0x01), 1.0),
        EnhancedPacket(0x00000006, 0, _usbpcap(RESPONSE, 0x82, info=1), 1.5),
    ]
    xfers = _scan(monkeypatch, tmp_path, blocks)
    assert [x.id for x in xfers] == [1, 2]
    assert [x.time for x in xfers] == [1.0, 1.5]
    packets = list(usb_to_bootloader(xfers))
    assert [p.frame.direction for p in packets] == ["Command", "Response"]


def test_pcapng_skips_unsupported_interface(monkeypatch, tmp_path, caplog):
    blocks = [
        SectionHeader(0x0A0D0D0A),
        InterfaceDescription(0x00000001, 1),
        InterfaceDescription(0x00000001, 249),
        EnhancedPacket(0x00000006, 0, b"\x00" * 60, 0.5),
        EnhancedPacket(0x00000006, 1, _usbpcap(FRAME, 0x01), 1.0),
    ]
    with caplog.at_level(logging.ERROR):
        xfers = _scan(monkeypatch, tmp_path, blocks)
    assert len(xfers) == 1
    # Packet ids count every packet in the section
    assert xfers[0].id == 2
    assert "Skipping interface 0" in caplog.text


def test_pcapng_new_section_resets_ids(monkeypatch, tmp_path):
    blocks = [
        SectionHeader(0x0A0D0D0A),
        InterfaceDescription(0x00000001, 249),
        EnhancedPacket(0x00000006, 0, _usbpcap(FRAME, 0x01), 1.0),
        SectionHeader(0x0A0D0D0A),
        InterfaceDescription(0x00000001, 249),
        EnhancedPacket(0x00000006, 0, _usbpcap(FRAME, 0x01), 2.0),
    ]
    xfers = _scan(monkeypatch, tmp_path, blocks)
    assert [x.id for x in xfers] == [1, 1]


def test_pcapng_skips_packet_shorter_than_link_header(monkeypatch, tmp_path, caplog):
    blocks = [
        SectionHeader(0x0A0D0D0A),
        InterfaceDescription(0x00000001, 249),
        EnhancedPacket(0x00000006, 0, _usbpcap(FRAME, 0x01), 1.0),
        EnhancedPacket(0x00000006, 0, b"\x1b\x00\x01", 1.1),
        EnhancedPacket(0x00000006, 0, _usbpcap(RESPONSE, 0x82, info=1), 1.2),
    ]
    with caplog.at_level(logging.ERROR):
        xfers = _scan(monkeypatch, tmp_path, blocks)
    assert [x.id for x in xfers] == [1, 3]
    assert "Skipping malformed packet 2" in caplog.text
