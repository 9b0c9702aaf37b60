"""In-memory raster type shared by the normalizer, loader and picker bridge."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, Optional, Sequence, Tuple, Union

import numpy as np
from PIL import Image

from .errors import InvalidBitmap, UnsupportedPixelFormat
from .orientation import Orientation

_SAMPLE_KINDS = {"bool": "b", "uint": "u", "int": "i", "float": "f"}


@dataclass(frozen=True)
class PixelFormat:
    """Channel layout, sample depth and colour space of a pixel buffer."""

    channels: int
    bit_depth: int
    color_space: str
    sample_type: str = "uint"
    mode: Optional[str] = None

    @classmethod
    def from_mode(cls, mode: str) -> "PixelFormat":
        """Return the pixel format matching a Pillow image mode."""
        try:
            return _MODE_FORMATS[mode]
        except KeyError:
            raise UnsupportedPixelFormat(f"Unsupported image mode: {mode}") from None

    @classmethod
    def from_array(
        cls, pixels: np.ndarray, color_space: Optional[str] = None
    ) -> "PixelFormat":
        """Infer a pixel format from a numpy buffer."""
        channels = 1 if pixels.ndim == 2 else int(pixels.shape[2])
        kind = pixels.dtype.kind
        sample_type = next(
            (name for name, code in _SAMPLE_KINDS.items() if code == kind), None
        )
        if sample_type is None:
            raise UnsupportedPixelFormat(f"Unsupported sample dtype: {pixels.dtype}")
        bit_depth = 1 if kind == "b" else pixels.dtype.itemsize * 8
        if color_space is None:
            color_space = "gray" if channels <= 2 else "rgb"
        fmt = cls(channels, bit_depth, color_space, sample_type)
        mode = next(
            (m for m, known in _MODE_FORMATS.items() if known == replace(fmt, mode=m)),
            None,
        )
        return replace(fmt, mode=mode)

    @property
    def dtype(self) -> np.dtype:
        """Return the numpy dtype able to hold one sample of this format."""
        if self.color_space not in COLOR_SPACES:
            raise UnsupportedPixelFormat(f"Unknown colour space: {self.color_space}")
        if self.channels < 1:
            raise UnsupportedPixelFormat(f"Invalid channel count: {self.channels}")
        if self.sample_type == "bool":
            if self.bit_depth != 1:
                raise UnsupportedPixelFormat("Boolean samples must be 1 bit deep")
            return np.dtype(bool)
        code = _SAMPLE_KINDS.get(self.sample_type)
        if code is None or self.bit_depth % 8:
            raise UnsupportedPixelFormat(
                f"Cannot allocate {self.bit_depth}-bit {self.sample_type} samples"
            )
        try:
            return np.dtype(f"{code}{self.bit_depth // 8}")
        except TypeError as exc:
            raise UnsupportedPixelFormat(
                f"Cannot allocate {self.bit_depth}-bit {self.sample_type} samples"
            ) from exc

    def buffer_shape(self, width: int, height: int) -> Tuple[int, ...]:
        if self.channels == 1:
            return (height, width)
        return (height, width, self.channels)


COLOR_SPACES = frozenset({"gray", "rgb", "cmyk", "ycbcr", "lab", "hsv", "indexed"})

_MODE_FORMATS: Dict[str, PixelFormat] = {
    "1": PixelFormat(1, 1, "gray", "bool", "1"),
    "L": PixelFormat(1, 8, "gray", "uint", "L"),
    "LA": PixelFormat(2, 8, "gray", "uint", "LA"),
    "P": PixelFormat(1, 8, "indexed", "uint", "P"),
    "RGB": PixelFormat(3, 8, "rgb", "uint", "RGB"),
    "RGBA": PixelFormat(4, 8, "rgb", "uint", "RGBA"),
    "CMYK": PixelFormat(4, 8, "cmyk", "uint", "CMYK"),
    "YCbCr": PixelFormat(3, 8, "ycbcr", "uint", "YCbCr"),
    "LAB": PixelFormat(3, 8, "lab", "uint", "LAB"),
    "HSV": PixelFormat(3, 8, "hsv", "uint", "HSV"),
    "I;16": PixelFormat(1, 16, "gray", "uint", "I;16"),
    "I": PixelFormat(1, 32, "gray", "int", "I"),
    "F": PixelFormat(1, 32, "gray", "float", "F"),
}
SUPPORTED_MODES = frozenset(_MODE_FORMATS)


@dataclass(eq=False)
class Bitmap:
    """
    A 2-D raster: ``height`` rows of ``width`` pixels stored in ``pixels``.

    ``pixels`` has shape ``(height, width)`` for single channel formats and
    ``(height, width, channels)`` otherwise. ``orientation`` tells how the
    buffer must be reinterpreted to appear upright.
    """

    width: int
    height: int
    format: PixelFormat
    pixels: Optional[np.ndarray]
    orientation: Orientation = Orientation.UP
    palette: Optional[Sequence[int]] = None
    icc_profile: Optional[bytes] = None
    transparency: Optional[Union[int, bytes, Tuple[int, ...]]] = None
    exif: Optional[bytes] = field(default=None, repr=False)

    @classmethod
    def from_array(
        cls,
        pixels: np.ndarray,
        orientation: Orientation = Orientation.UP,
        color_space: Optional[str] = None,
    ) -> "Bitmap":
        """Wrap a numpy buffer, inferring the format from its shape and dtype."""
        if pixels.ndim not in (2, 3):
            raise InvalidBitmap(f"Expected a 2-D or 3-D buffer, got {pixels.ndim}-D")
        fmt = PixelFormat.from_array(pixels, color_space)
        height, width = pixels.shape[:2]
        return cls(width, height, fmt, pixels, orientation)

    @classmethod
    def from_pil(
        cls, image: Image.Image, orientation: Orientation = Orientation.UP
    ) -> "Bitmap":
        """Copy a Pillow image into a bitmap tagged with ``orientation``."""
        fmt = PixelFormat.from_mode(image.mode)
        width, height = image.size
        pixels = np.array(image) if width and height else None
        return cls(
            width=width,
            height=height,
            format=fmt,
            pixels=pixels,
            orientation=orientation,
            palette=image.getpalette() if image.mode == "P" else None,
            icc_profile=image.info.get("icc_profile"),
            transparency=image.info.get("transparency"),
            exif=image.info.get("exif"),
        )

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    def validate(self) -> None:
        """Raise ``InvalidBitmap`` unless the buffer matches the declared format."""
        if self.width <= 0 or self.height <= 0:
            raise InvalidBitmap(f"Bitmap has empty size {self.width}x{self.height}")
        if self.pixels is None or self.pixels.size == 0:
            raise InvalidBitmap("Bitmap has no pixel data")
        expected = self.format.buffer_shape(self.width, self.height)
        if self.pixels.shape != expected:
            raise InvalidBitmap(
                f"Pixel buffer shape {self.pixels.shape} does not match {expected}"
            )
        if self.pixels.dtype != self.format.dtype:
            raise InvalidBitmap(
                f"Pixel buffer dtype {self.pixels.dtype} does not match "
                f"{self.format.dtype}"
            )

    def pixels_equal(self, other: "Bitmap") -> bool:
        """Return True when both bitmaps hold identical pixel buffers."""
        if self.pixels is None or other.pixels is None:
            return False
        return bool(np.array_equal(self.pixels, other.pixels))

    def to_pil(self) -> Image.Image:
        """Return a Pillow image holding a copy of the pixel buffer."""
        self.validate()
        mode = self.format.mode
        if mode is None:
            raise UnsupportedPixelFormat(f"No Pillow mode for {self.format}")
        pixels = np.ascontiguousarray(self.pixels)
        if mode == "1":
            image = Image.fromarray(pixels)
        else:
            if mode == "I;16":
                pixels = pixels.astype("<u2")
            image = Image.frombytes(mode, self.size, pixels.tobytes())
        if mode == "P" and self.palette is not None:
            image.putpalette(self.palette)
        if self.icc_profile:
            image.info["icc_profile"] = self.icc_profile
        if self.transparency is not None:
            image.info["transparency"] = self.transparency
        return image
