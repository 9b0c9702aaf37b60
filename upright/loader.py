"""Decoding, resizing and writing of bitmaps on disk."""

import io
import logging
import pathlib
from typing import Any, Dict, Mapping, Optional

import rawpy
from PIL import Image

from .bitmap import SUPPORTED_MODES, Bitmap
from .discovery import exif_orientation, read_exif
from .orientation import Orientation

logger = logging.getLogger(__name__)

RAW_EXTENSIONS = frozenset({".arw", ".cr2", ".nef", ".dng"})
EXIF_ORIENTATION_TAG = 0x0112

_FORMATS: Dict[str, str] = {
    "jpeg": "JPEG",
    "jpg": "JPEG",
    "png": "PNG",
    "webp": "WEBP",
    "tiff": "TIFF",
    "tif": "TIFF",
}
_SUFFIXES: Dict[str, str] = {
    "JPEG": ".jpg",
    "PNG": ".png",
    "WEBP": ".webp",
    "TIFF": ".tif",
}
_JPEG_MODES = frozenset({"1", "L", "RGB", "CMYK", "YCbCr"})


def _open_raw(path: pathlib.Path) -> Image.Image:
    """Decode a RAW file, preferring its embedded JPEG preview."""
    with rawpy.imread(str(path)) as raw:
        try:
            thumb = raw.extract_thumb()
            if thumb.format == rawpy.ThumbFormat.JPEG:
                img = Image.open(io.BytesIO(thumb.data))
                img.load()
                return img
            logger.debug("Non-JPEG thumbnail in %s; falling back to demosaic", path)
        except (rawpy.LibRawNoThumbnailError, rawpy.LibRawUnsupportedThumbnailError):
            logger.debug("No usable thumbnail in %s; falling back to demosaic", path)
        # user_flip=0 keeps the sensor orientation so the EXIF tag still applies.
        rgb = raw.postprocess(
            use_camera_wb=True, no_auto_bright=True, output_bps=8, user_flip=0
        )
    return Image.fromarray(rgb)


def pil_orientation(img: Image.Image) -> Optional[Orientation]:
    """Return the orientation Pillow reads from the image, if any."""
    code = img.getexif().get(EXIF_ORIENTATION_TAG)
    if code is None:
        return None
    try:
        return Orientation.from_exif(code)
    except ValueError:
        logger.debug("Ignoring invalid orientation code %r", code)
        return None


def _supported_image(img: Image.Image) -> Image.Image:
    """Convert modes without a pixel format counterpart to RGB or RGBA."""
    if img.mode in SUPPORTED_MODES:
        return img
    has_alpha = "A" in img.mode or "a" in img.mode or "transparency" in img.info
    target = "RGBA" if has_alpha else "RGB"
    logger.debug("Converting unsupported mode %s to %s", img.mode, target)
    return img.convert(target)


def read_orientation(path: pathlib.Path) -> Orientation:
    """
    Return the orientation recorded for ``path``.

    exifread is consulted first; containers it does not parse fall back to
    the EXIF block Pillow exposes. Files without a tag are upright.
    """
    exif = read_exif(path)
    if "Image Orientation" in exif or "EXIF Orientation" in exif:
        return exif_orientation(exif)
    if path.suffix.lower() in RAW_EXTENSIONS:
        return Orientation.UP
    with Image.open(path) as img:
        return pil_orientation(img) or Orientation.UP


def load_bitmap(
    path: pathlib.Path, orientation: Optional[Orientation] = None
) -> Bitmap:
    """Decode ``path`` into a bitmap tagged with its orientation."""
    if orientation is None:
        orientation = read_orientation(path)
    if path.suffix.lower() in RAW_EXTENSIONS:
        img = _open_raw(path)
    else:
        with Image.open(path) as opened:
            opened.load()
            img = opened.copy()
    return Bitmap.from_pil(_supported_image(img), orientation)


def resize_image(img: Image.Image, long_edge: int) -> Image.Image:
    """Resize an image while keeping aspect ratio and limiting the longest edge."""
    width, height = img.size
    if long_edge <= 0 or max(width, height) <= long_edge:
        return img
    if width >= height:
        new_width = long_edge
        new_height = max(1, int(height * (long_edge / width)))
    else:
        new_height = long_edge
        new_width = max(1, int(width * (long_edge / height)))
    return img.resize((new_width, new_height), Image.LANCZOS)


def resize_bitmap(bitmap: Bitmap, long_edge: int) -> Bitmap:
    """Return ``bitmap`` scaled so its longest edge is at most ``long_edge``."""
    if long_edge <= 0 or max(bitmap.size) <= long_edge:
        return bitmap
    resized = Bitmap.from_pil(
        resize_image(bitmap.to_pil(), long_edge), bitmap.orientation
    )
    resized.transparency = bitmap.transparency
    resized.exif = bitmap.exif
    return resized


def pil_format(fmt: str, source: pathlib.Path) -> str:
    """Return the Pillow format name for a configured output format."""
    key = fmt.lower()
    if key == "keep":
        key = source.suffix.lower().lstrip(".")
        if source.suffix.lower() in RAW_EXTENSIONS:
            key = "jpeg"
    try:
        return _FORMATS[key]
    except KeyError:
        raise ValueError(f"Unsupported output format: {fmt}") from None


def output_path_for(
    path: pathlib.Path,
    input_dir: pathlib.Path,
    output_dir: pathlib.Path,
    cfg: Mapping[str, Any],
) -> pathlib.Path:
    """Plan the output path, preserving the structure below ``input_dir``."""
    fmt = pil_format(cfg.get("format", "keep"), path)
    try:
        rel = path.resolve().relative_to(input_dir.resolve())
    except ValueError:
        rel = pathlib.Path(path.name)
    suffix = path.suffix
    if _FORMATS.get(suffix.lower().lstrip(".")) != fmt:
        suffix = _SUFFIXES[fmt]
    name = f"{rel.stem}{cfg.get('suffix', '')}{suffix}"
    return output_dir / rel.parent / name


def _encodable(img: Image.Image, fmt: str) -> Image.Image:
    if fmt == "JPEG" and img.mode not in _JPEG_MODES:
        return img.convert("RGB")
    if fmt == "WEBP" and img.mode not in ("RGB", "RGBA"):
        has_alpha = "A" in img.mode or "transparency" in img.info
        return img.convert("RGBA" if has_alpha else "RGB")
    return img


def save_bitmap(
    bitmap: Bitmap,
    target: pathlib.Path,
    fmt: str,
    quality: int = 92,
    keep_exif: bool = True,
) -> pathlib.Path:
    """
    Write ``bitmap`` to ``target`` in Pillow format ``fmt``.

    EXIF carried over from the source is rewritten with an upright
    orientation, so viewers do not rotate the baked pixels a second time.
    """
    img = _encodable(bitmap.to_pil(), fmt)
    params: Dict[str, Any] = {}
    if fmt in ("JPEG", "WEBP"):
        params["quality"] = int(quality)
    if bitmap.icc_profile:
        params["icc_profile"] = bitmap.icc_profile
    if fmt == "PNG" and bitmap.transparency is not None:
        params["transparency"] = bitmap.transparency
    if keep_exif and bitmap.exif:
        exif = Image.Exif()
        exif.load(bitmap.exif)
        exif[EXIF_ORIENTATION_TAG] = Orientation.UP.exif_code
        params["exif"] = exif.tobytes()
    target.parent.mkdir(parents=True, exist_ok=True)
    img.save(target, fmt, **params)
    return target
