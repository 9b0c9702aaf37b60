"""Bake EXIF orientation tags into bitmap pixel data."""

from .bitmap import Bitmap, PixelFormat
from .errors import (
    InvalidBitmap,
    NormalizeError,
    ResampleFailure,
    UnsupportedPixelFormat,
)
from .geometry import AffineTransform2D
from .normalizer import normalize, orientation_transform, upright_size
from .orientation import Orientation
from .picker import PickerCoordinator

__all__ = [
    "AffineTransform2D",
    "Bitmap",
    "InvalidBitmap",
    "NormalizeError",
    "Orientation",
    "PickerCoordinator",
    "PixelFormat",
    "ResampleFailure",
    "UnsupportedPixelFormat",
    "normalize",
    "orientation_transform",
    "upright_size",
]
