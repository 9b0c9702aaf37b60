"""Discovery helpers for locating image files and reading EXIF orientation."""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

import exifread

from .orientation import Orientation

logger = logging.getLogger(__name__)

ExifData = Dict[str, Any]
_EXIF_CACHE: Dict[Tuple[Path, int], ExifData] = {}

IMAGE_EXTENSIONS = (
    ".jpg",
    ".jpeg",
    ".png",
    ".tif",
    ".tiff",
    ".webp",
    ".arw",
    ".cr2",
    ".nef",
    ".dng",
)

# Labels exifread prints for the Orientation tag.
_ORIENTATION_LABELS = {
    "horizontal (normal)": Orientation.UP,
    "mirrored horizontal": Orientation.UP_MIRRORED,
    "rotated 180": Orientation.DOWN,
    "mirrored vertical": Orientation.DOWN_MIRRORED,
    "mirrored horizontal then rotated 90 ccw": Orientation.LEFT_MIRRORED,
    "rotated 90 cw": Orientation.RIGHT,
    "mirrored horizontal then rotated 90 cw": Orientation.RIGHT_MIRRORED,
    "rotated 90 ccw": Orientation.LEFT,
}


def _is_under(child: Path, parent: Path) -> bool:
    """Return True when child is located within parent."""
    try:
        child.resolve().relative_to(parent.resolve())
        return True
    except ValueError:
        return False


def _normalize_exclude_dirs(
    directory: Path, exclude_dirs: Optional[List[str]]
) -> List[Path]:
    """Convert optional exclude directories into absolute resolved Paths."""
    exclude_paths: List[Path] = []
    for candidate in exclude_dirs or []:
        path_candidate = Path(candidate)
        if not path_candidate.is_absolute():
            path_candidate = directory / path_candidate
        exclude_paths.append(path_candidate.resolve())
    return exclude_paths


def find_image_files(
    directory: str,
    exclude_dirs: Optional[List[str]] = None,
    extensions: Optional[Iterable[str]] = None,
) -> List[Path]:
    """Recursively find image files under directory while respecting exclusions."""
    root = Path(directory)
    if not root.exists():
        logger.warning("Input directory does not exist: %s", root)
        return []
    suffixes = {ext.lower() for ext in (extensions or IMAGE_EXTENSIONS)}
    exclude_paths = _normalize_exclude_dirs(root, exclude_dirs)

    results: List[Path] = []
    for dirpath, dirnames, filenames in os.walk(root):
        current = Path(dirpath)
        dirnames[:] = [
            dirname
            for dirname in dirnames
            if not any(
                _is_under(current / dirname, excluded) for excluded in exclude_paths
            )
        ]
        for filename in filenames:
            if Path(filename).suffix.lower() in suffixes:
                results.append(current / filename)
    return sorted(results)


def read_exif(path: Path) -> ExifData:
    """Read EXIF data from the given image path, returning a plain dictionary."""
    try:
        stat = path.stat()
    except FileNotFoundError:
        return {}
    cache_key = (path.resolve(), int(stat.st_mtime_ns))
    if cache_key in _EXIF_CACHE:
        return _EXIF_CACHE[cache_key]
    with path.open("rb") as file_handle:
        tags = exifread.process_file(file_handle, details=False)
    exif_dict = {str(key): str(value) for key, value in tags.items()}
    _EXIF_CACHE[cache_key] = exif_dict
    return exif_dict


def exif_orientation(exif: ExifData) -> Orientation:
    """Return the orientation tag recorded in EXIF, defaulting to upright."""
    val = exif.get("Image Orientation") or exif.get("EXIF Orientation")
    if not val:
        return Orientation.UP
    value_str = str(val).strip()
    try:
        return Orientation.from_exif(int(value_str.split()[0]))
    except ValueError:
        pass
    label = _ORIENTATION_LABELS.get(value_str.lower())
    if label is None:
        logger.debug("Unrecognized EXIF orientation %r; assuming upright", value_str)
        return Orientation.UP
    return label

