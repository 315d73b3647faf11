"""Cypress bootloader status and command names.

The default tables are read-only. Firmware revisions that add codes can be
described in a JSON file and loaded with :func:`load_codes`::

    {
        "commands": {"0x3d": "Get Silicon ID"},
        "statuses": {"0x10": "BOOTLOADER_ERR_KEY"}
    }
"""
import json
import logging
from types import MappingProxyType

from .errors import BootloaderError

log = logging.getLogger(__name__)


STATUSES = MappingProxyType({
    0x00: "CYRET_SUCCESS",
    0x03: "BOOTLOADER_ERR_LENGTH",
    0x04: "BOOTLOADER_ERR_DATA",
    0x05: "BOOTLOADER_ERR_CMD",
    0x08: "BOOTLOADER_ERR_CHECKSUM",
    0x09: "BOOTLOADER_ERR_ARRAY",
    0x0a: "BOOTLOADER_ERR_ROW",
    0x0c: "BOOTLOADER_ERR_APP",
    0x0d: "BOOTLOADER_ERR_ACTIVE",
    0x0e: "BOOTLOADER_ERR_CALLBACK",
    0x0f: "BOOTLOADER_ERR_UNK",
})

COMMANDS = MappingProxyType({
    0x31: "Verify Application Checksum",
    0x32: "Get Flash Size",
    0x33: "Get Application Status",
    0x34: "Erase Row",
    0x35: "Sync bootloader",
    0x36: "Set Active Application",
    0x37: "Send Data",
    0x38: "Enter Bootloader",
    0x39: "Program Row",
    0x3a: "Get Row Checksum",
    0x3b: "Exit Bootloader",
    0x3c: "Get Metadata",
    0x45: "Verify Row",
})


def _parse_table(entries, section):
    if not isinstance(entries, dict):
        raise BootloaderError("%s table must be a JSON object" % section.capitalize())
    table = {}
    for key, name in entries.items():
        try:
            code = int(key, 0)
        except (TypeError, ValueError):
            raise BootloaderError("Invalid %s code %r" % (section, key))
        if not 0 <= code <= 0xFF:
            raise BootloaderError("%s code out of range: %r" % (section, key))
        if not isinstance(name, str):
            raise BootloaderError("Invalid %s name for %s: %r" % (section, key, name))
        table[code] = name
    return table


def load_codes(filename):
    """Return (commands, statuses) with the entries of a JSON file overlaid on the defaults."""
    with open(filename, "r") as fp:
        try:
            config = json.load(fp)
        except ValueError as exc:
            raise BootloaderError("Invalid code table %s: %s" % (filename, exc))
    if not isinstance(config, dict):
        raise BootloaderError("Code table %s must be a JSON object" % filename)

    commands = dict(COMMANDS)
    commands.update(_parse_table(config.get("commands", {}), "command"))
    statuses = dict(STATUSES)
    statuses.update(_parse_table(config.get("statuses", {}), "status"))
    log.info("Loaded %i command and %i status names from %s",
             len(commands), len(statuses), filename)
    return MappingProxyType(commands), MappingProxyType(statuses)
