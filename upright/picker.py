"""Toolkit-neutral bridge between a native image picker and application code."""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Callable, Mapping, Optional

from PIL import Image

from .bitmap import Bitmap
from .errors import NormalizeError
from .loader import pil_orientation
from .normalizer import normalize
from .orientation import Orientation

logger = logging.getLogger(__name__)

ORIGINAL_IMAGE = "original_image"
ORIENTATION = "orientation"

PickedCallback = Callable[[Bitmap], None]
Dispatch = Callable[[Callable[[], None]], Any]


def _run_inline(fn: Callable[[], None]) -> None:
    fn()


def _noop() -> None:
    pass


class PickerCoordinator:
    """
    Receives picker events and forwards them to application callbacks.

    The host toolkit owns the picking surface and calls
    ``did_finish_picking`` or ``did_cancel``. Every callback runs through
    ``dispatch``, for example a toolkit's "run on the UI thread" hook or
    ``executor.submit``. The picker is always dismissed before the
    application callback fires, and picked images are handed over upright.
    """

    def __init__(
        self,
        on_dismiss: Callable[[], None],
        on_picked: PickedCallback,
        on_canceled: Callable[[], None] = _noop,
        dispatch: Optional[Dispatch] = None,
    ):
        self._dismiss = on_dismiss
        self._picked = on_picked
        self._canceled = on_canceled
        self._dispatch = dispatch or _run_inline

    def did_finish_picking(self, info: Mapping[str, Any]) -> None:
        """Handle a finished selection described by ``info``."""
        image = info.get(ORIGINAL_IMAGE)
        orientation = info.get(ORIENTATION)
        self._dispatch(lambda: self._finish(image, orientation))

    def did_cancel(self) -> None:
        """Handle the user dismissing the picker without a selection."""
        self._dispatch(self._cancel)

    def _finish(self, image: Any, orientation: Optional[Orientation]) -> None:
        self._dismiss()
        if image is None:
            logger.debug("Picker finished without an original image")
            return
        try:
            upright = normalize(_as_bitmap(image, orientation))
        except NormalizeError as exc:
            logger.warning("Picked image could not be normalized: %s", exc)
            self._canceled()
            return
        self._picked(upright)

    def _cancel(self) -> None:
        self._dismiss()
        self._canceled()


def _as_bitmap(image: Any, orientation: Optional[Orientation]) -> Bitmap:
    """
    Coerce a picked image into a bitmap carrying its orientation.

    An explicit ``orientation`` wins; Pillow images otherwise use their own
    EXIF orientation tag.
    """
    if isinstance(image, Bitmap):
        if orientation is not None:
            return dataclasses.replace(image, orientation=orientation)
        return image
    if isinstance(image, Image.Image):
        if orientation is None:
            orientation = pil_orientation(image) or Orientation.UP
        return Bitmap.from_pil(image, orientation)
    raise TypeError(f"Unsupported picked image type: {type(image).__name__}")
