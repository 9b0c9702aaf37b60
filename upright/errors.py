"""Error types raised while normalizing bitmaps."""


class NormalizeError(Exception):
    """Base class for every failure of a normalization call."""


class InvalidBitmap(NormalizeError):
    """The source bitmap is empty or its buffer does not match its format."""


class UnsupportedPixelFormat(NormalizeError):
    """A destination canvas cannot be allocated in the source's pixel format."""


class ResampleFailure(NormalizeError):
    """The transformed canvas could not be turned into an output buffer."""
