"""Orientation tags describing how a stored pixel buffer must be shown upright."""

from __future__ import annotations

import enum
from typing import Dict


class Orientation(enum.Enum):
    """The eight standard orientation states of a decoded bitmap."""

    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"
    UP_MIRRORED = "up_mirrored"
    DOWN_MIRRORED = "down_mirrored"
    LEFT_MIRRORED = "left_mirrored"
    RIGHT_MIRRORED = "right_mirrored"

    @classmethod
    def from_exif(cls, code: int) -> "Orientation":
        """Return the tag for an EXIF orientation code (1-8)."""
        try:
            return _FROM_EXIF[int(code)]
        except (KeyError, TypeError, ValueError):
            raise ValueError(f"Invalid EXIF orientation code: {code!r}") from None

    @property
    def exif_code(self) -> int:
        """Return the EXIF orientation code for this tag."""
        return _TO_EXIF[self]

    @property
    def swaps_dimensions(self) -> bool:
        """True when the stored buffer is rotated a quarter turn."""
        return self in _QUARTER_TURNS

    @property
    def is_mirrored(self) -> bool:
        return self in _MIRRORED

    @property
    def inverse(self) -> "Orientation":
        """Return the tag whose normalization undoes this tag's normalization."""
        if self is Orientation.LEFT:
            return Orientation.RIGHT
        if self is Orientation.RIGHT:
            return Orientation.LEFT
        return self


_TO_EXIF: Dict[Orientation, int] = {
    Orientation.UP: 1,
    Orientation.UP_MIRRORED: 2,
    Orientation.DOWN: 3,
    Orientation.DOWN_MIRRORED: 4,
    Orientation.LEFT_MIRRORED: 5,
    Orientation.RIGHT: 6,
    Orientation.RIGHT_MIRRORED: 7,
    Orientation.LEFT: 8,
}
_FROM_EXIF: Dict[int, Orientation] = {code: tag for tag, code in _TO_EXIF.items()}

_QUARTER_TURNS = frozenset(
    {
        Orientation.LEFT,
        Orientation.RIGHT,
        Orientation.LEFT_MIRRORED,
        Orientation.RIGHT_MIRRORED,
    }
)
_MIRRORED = frozenset(
    {
        Orientation.UP_MIRRORED,
        Orientation.DOWN_MIRRORED,
        Orientation.LEFT_MIRRORED,
        Orientation.RIGHT_MIRRORED,
    }
)
