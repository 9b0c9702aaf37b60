"""Bake an orientation tag into the pixel data of a bitmap."""

from __future__ import annotations

import logging
import math
from typing import Optional, Tuple

import numpy as np
from PIL import Image

from .bitmap import Bitmap, PixelFormat
from .errors import ResampleFailure, UnsupportedPixelFormat
from .geometry import AffineTransform2D
from .orientation import Orientation

logger = logging.getLogger(__name__)


def upright_size(tag: Orientation, width: int, height: int) -> Tuple[int, int]:
    """Return the visually upright size of a ``width`` x ``height`` buffer."""
    if tag.swaps_dimensions:
        return height, width
    return width, height


def orientation_transform(
    tag: Orientation, width: int, height: int
) -> AffineTransform2D:
    """
    Build the transform drawing a tagged buffer upright onto a canvas.

    ``width`` and ``height`` are the upright canvas dimensions. The canvas
    uses a bottom-left origin with y pointing up, and the source is drawn
    into the rectangle ``(0, 0, raw_width, raw_height)`` with its first row
    at the top of that rectangle.
    """
    transform = AffineTransform2D.identity()

    if tag in (Orientation.DOWN, Orientation.DOWN_MIRRORED):
        transform = transform.translated(width, height)
        transform = transform.rotated(math.pi)
    elif tag in (Orientation.LEFT, Orientation.LEFT_MIRRORED):
        transform = transform.translated(width, 0)
        transform = transform.rotated(math.pi / 2.0)
    elif tag in (Orientation.RIGHT, Orientation.RIGHT_MIRRORED):
        transform = transform.translated(0, height)
        transform = transform.rotated(-math.pi / 2.0)

    # UP_MIRRORED is a flip only, without a rotation step before it.
    if tag in (Orientation.UP_MIRRORED, Orientation.DOWN_MIRRORED):
        transform = transform.translated(width, 0)
        transform = transform.scaled(-1, 1)
    elif tag in (Orientation.LEFT_MIRRORED, Orientation.RIGHT_MIRRORED):
        transform = transform.translated(height, 0)
        transform = transform.scaled(-1, 1)

    return transform


def _allocate_canvas(fmt: PixelFormat, width: int, height: int) -> np.ndarray:
    dtype = fmt.dtype
    try:
        return np.empty(fmt.buffer_shape(width, height), dtype=dtype)
    except MemoryError as exc:
        raise ResampleFailure(
            f"Cannot allocate a {width}x{height} canvas of {fmt}"
        ) from exc
    except (TypeError, ValueError) as exc:
        raise UnsupportedPixelFormat(f"Cannot allocate a canvas of {fmt}") from exc


def _draw(
    canvas: np.ndarray,
    source: np.ndarray,
    transform: AffineTransform2D,
    rect_width: int,
    rect_height: int,
) -> None:
    """
    Fill ``canvas`` by nearest-neighbour sampling of ``source``.

    Orientation transforms are axis-aligned, so each source index depends on
    a single canvas axis. Index vectors are built per axis and broadcast in
    one gather.
    """
    canvas_height, canvas_width = canvas.shape[:2]
    src_height, src_width = source.shape[:2]
    inv = transform.inverted()

    # Pixel centres of the canvas, row 0 at the top of a y-up coordinate frame.
    xs = np.arange(canvas_width, dtype=np.float64) + 0.5
    ys = canvas_height - np.arange(canvas_height, dtype=np.float64) - 0.5
    if inv.b == 0 and inv.c == 0:
        rect_x = inv.a * xs + inv.tx
        rect_y = inv.d * ys + inv.ty
        swapped = False
    elif inv.a == 0 and inv.d == 0:
        rect_x = inv.c * ys + inv.tx
        rect_y = inv.b * xs + inv.ty
        swapped = True
    else:
        raise ResampleFailure(f"Transform is not axis-aligned: {transform}")

    cols = np.floor(rect_x * (src_width / rect_width)).astype(np.intp)
    rows = np.floor((rect_height - rect_y) * (src_height / rect_height)).astype(
        np.intp
    )
    if (
        cols.min() < 0
        or rows.min() < 0
        or cols.max() >= src_width
        or rows.max() >= src_height
    ):
        raise ResampleFailure("Transformed canvas samples fall outside the source")

    # Swapped transforms pick source columns per canvas row and vice versa.
    if swapped:
        canvas[...] = source[rows[np.newaxis, :], cols[:, np.newaxis]]
    else:
        canvas[...] = source[rows[:, np.newaxis], cols[np.newaxis, :]]


def normalize(source: Bitmap, tag: Optional[Orientation] = None) -> Bitmap:
    """
    Return ``source`` with its orientation baked into the pixel buffer.

    ``tag`` defaults to the orientation recorded on ``source``. The result is
    always tagged ``Orientation.UP``. An upright source is returned as is;
    every other tag allocates exactly one new bitmap and leaves ``source``
    untouched.

    Raises ``InvalidBitmap`` for empty or malformed input,
    ``UnsupportedPixelFormat`` when no canvas of the source's format can be
    allocated and ``ResampleFailure`` when the output buffer cannot be
    produced.
    """
    if tag is None:
        tag = source.orientation
    source.validate()
    if tag is Orientation.UP:
        return source

    width, height = upright_size(tag, source.width, source.height)
    transform = orientation_transform(tag, width, height)
    canvas = _allocate_canvas(source.format, width, height)

    if tag.swaps_dimensions:
        rect_width, rect_height = height, width
    else:
        rect_width, rect_height = width, height
    try:
        _draw(canvas, source.pixels, transform, rect_width, rect_height)
    except MemoryError as exc:
        raise ResampleFailure(
            f"Cannot resample a {source.width}x{source.height} bitmap"
        ) from exc

    logger.debug(
        "Normalized %dx%d bitmap tagged %s to %dx%d",
        source.width,
        source.height,
        tag.name,
        width,
        height,
    )
    return Bitmap(
        width=width,
        height=height,
        format=source.format,
        pixels=canvas,
        orientation=Orientation.UP,
        palette=source.palette,
        icc_profile=source.icc_profile,
        transparency=source.transparency,
        exif=source.exif,
    )


def normalize_pil(image: Image.Image, tag: Orientation) -> Image.Image:
    """Normalize a Pillow image tagged with ``tag`` and return a Pillow image."""
    if tag is Orientation.UP:
        return image
    return normalize(Bitmap.from_pil(image, tag)).to_pil()
