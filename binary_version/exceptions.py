class BinaryVersionError(Exception):
    """Base exception for all binary version lookup errors."""
    pass


class StreamAccessError(BinaryVersionError):
    """Raised when the byte source cannot be seeked or read."""
    pass


class UnrecognizedFormatError(BinaryVersionError):
    """Raised when no known magic number or signature matches the image."""
    pass


class FieldRangeError(BinaryVersionError):
    """Raised when a header field holds a value outside its valid range."""
    pass


class PatternNotFoundError(BinaryVersionError):
    """Raised when the version pattern yields no capture."""
    pass


class InvalidEncodingError(BinaryVersionError):
    """Raised when the matched version bytes are not valid UTF-8."""
    pass


class DecompressionError(BinaryVersionError):
    """Raised when a candidate compressed stream cannot be decoded."""
    pass


class InvalidPatternError(BinaryVersionError):
    """Raised when a custom version pattern fails to compile."""
    pass


class UnsupportedKindError(BinaryVersionError):
    """Raised when a binary kind outside the supported set is requested."""
    pass


class InvalidConfigurationError(BinaryVersionError, ValueError):
    """Raised when the configuration is invalid."""
    pass
