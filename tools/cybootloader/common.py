from collections import namedtuple

# type: "Isochronous", "Interrupt", "Control" or "Bulk"
# dir: "Setup", "In", "Out" or "Status"
# urb: "Submit", "Complete" or "Error", the request block event the capture saw
USBTransfer = namedtuple("USBTransfer", "id, time, urb, bus, device, endpoint, type, dir, data")

# Minimum a classifier needs to know about a transfer
TransferMetadata = namedtuple("TransferMetadata", "type, endpoint, urb")
