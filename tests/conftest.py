import logging

import numpy as np
import pytest
from PIL import Image

RED = (255, 0, 0)
GREEN = (0, 255, 0)
BLUE = (0, 0, 255)
WHITE = (255, 255, 255)


@pytest.fixture
def corners_image() -> Image.Image:
    """2x2 RGB image with a distinct colour in each corner, red at top-left."""
    img = Image.new("RGB", (2, 2))
    img.putpixel((0, 0), RED)
    img.putpixel((1, 0), GREEN)
    img.putpixel((0, 1), BLUE)
    img.putpixel((1, 1), WHITE)
    return img


@pytest.fixture
def gradient_image() -> Image.Image:
    """3 wide, 2 tall grayscale image where every pixel is distinct."""
    return Image.fromarray(np.arange(6, dtype=np.uint8).reshape(2, 3) * 40)


@pytest.fixture
def restore_root_logging():
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield root
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
