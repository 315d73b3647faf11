class BootloaderError(ValueError):
    pass


class TruncatedFrame(BootloaderError):

    def __init__(self, needed, available):
        super(TruncatedFrame, self).__init__(
            "Truncated frame: need %i bytes, have %i" % (needed, available))
        self.needed = needed
        self.available = available
