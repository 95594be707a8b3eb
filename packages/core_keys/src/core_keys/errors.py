from core_logging.error_codes import ErrorCode


class MalformedKey(ValueError):
    """A key (or model id) decoded to fewer bytes than its layout requires."""
    code = ErrorCode.malformed_key

    def __init__(self, message: str, *, key: str | None = None, size: int | None = None):
        super().__init__(message)
        self.key = key
        self.size = size


class MalformedXref(ValueError):
    """An xref decoded to fewer than 40 bytes, or was not base64 at all."""
    code = ErrorCode.malformed_xref

    def __init__(self, message: str, *, xref: str | None = None, size: int | None = None):
        super().__init__(message)
        self.xref = xref
        self.size = size
