class ExtractionError(Exception):
    """Base class for every error raised while reading a .doc file."""

    def __init__(self, message: str = None, *, cause: Exception = None):
        if message is None:
            message = "Extraction failed"
        self.message = message
        super().__init__(message)
        self.__cause__ = cause  # Optional chaining for debugging


class ExtractionFileFormatNotSupportedError(ExtractionError):
    """Raised when the file is not a Word 97-2003 OLE document."""

    def __init__(
        self,
        file_path: str = None,
        message: str = None,
        *,
        version: str = None,
        cause: Exception = None,
    ):
        self.file_path = file_path
        self.version = version
        if message is None:
            message = f"Extraction file format not supported: {file_path}"
            if version:
                message += f" (detected {version})"
        super().__init__(message, cause=cause)


class ExtractionFileEncryptedError(ExtractionError):
    """Raised when the document is encrypted or password-protected."""


class LegacyMicrosoftParsingError(ExtractionError):
    """Raised when the binary Word structures cannot be decoded."""


class OutOfRangeError(LegacyMicrosoftParsingError):
    """A read would go past the end of its buffer."""

    def __init__(self, offset: int, width: int, size: int):
        self.offset = offset
        self.width = width
        self.size = size
        super().__init__(
            f"Read of {width} byte(s) at offset {offset} exceeds buffer of {size} byte(s)"
        )


class InvalidPropertySetError(LegacyMicrosoftParsingError):
    """The SummaryInformation / DocumentSummaryInformation header is malformed."""


class UnrecognizedFibSizeError(LegacyMicrosoftParsingError):
    def __init__(self, cb_rg_fc_lcb: int, message: str = None):
        self.cb_rg_fc_lcb = cb_rg_fc_lcb
        if message is None:
            message = f"Unrecognized FibRgFcLcb size: {hex(cb_rg_fc_lcb)}"
        super().__init__(message)


class PlcSizeError(LegacyMicrosoftParsingError):
    def __init__(self, lcb: int, record_size: int):
        self.lcb = lcb
        self.record_size = record_size
        super().__init__(
            f"PLC of {lcb} byte(s) is not a whole number of {record_size}-byte records"
        )


class CorruptCommentTableError(LegacyMicrosoftParsingError):
    """The annotation tables disagree on the number of comments."""


class UnsupportedImageFormatError(LegacyMicrosoftParsingError):
    def __init__(self, rec_type: int, message: str = None):
        self.rec_type = rec_type
        if message is None:
            message = f"Unsupported blip type: {hex(rec_type)}"
        super().__init__(message)
