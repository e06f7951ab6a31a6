class ArError(Exception):
    """Base class for arstream errors."""


# Reading
class InvalidFormat(ArError):
    pass


class InvalidHeader(ArError):
    pass


class UnexpectedEndOfStream(ArError, EOFError):
    pass


# Header encoding
class HeaderEncodeError(ArError):
    pass


class FieldTooLong(HeaderEncodeError):
    def __init__(self, field: str, value: str, width: int):
        super().__init__(f"{field} {value!r} does not fit in {width} bytes")
        self.field = field
        self.value = value
        self.width = width


class InvalidFieldValue(HeaderEncodeError):
    pass


# Writing
class WriteAfterClose(ArError):
    pass


class IncompleteEntry(ArError):
    def __init__(self, missing: int):
        super().__init__(f"missed writing {missing} bytes")
        self.missing = missing


class WriteTooLong(ArError):
    pass
