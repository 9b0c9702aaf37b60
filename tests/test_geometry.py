import math

import numpy as np
import pytest

from upright.errors import ResampleFailure
from upright.geometry import AffineTransform2D
from upright.normalizer import orientation_transform
from upright.orientation import Orientation


def test_identity_maps_points_to_themselves():
    t = AffineTransform2D.identity()
    assert t.is_identity
    assert t.apply(3.5, -2.0) == (3.5, -2.0)


def test_last_added_operation_applies_first():
    t = AffineTransform2D.identity().translated(10, 0).rotated(math.pi / 2)
    # Rotate (1, 0) to (0, 1), then translate.
    assert t.apply(1, 0) == (10, 1)


def test_quarter_turn_rotation_is_exact():
    t = AffineTransform2D.identity().rotated(-math.pi / 2)
    assert (t.a, t.b, t.c, t.d) == (0, -1, 1, 0)


def test_scale_flips_x():
    t = AffineTransform2D.identity().translated(4, 0).scaled(-1, 1)
    assert t.apply(1, 2) == (3, 2)


def test_inverse_undoes_transform():
    t = (
        AffineTransform2D.identity()
        .translated(5, 7)
        .rotated(math.pi / 3)
        .scaled(2, 0.5)
    )
    inv = t.inverted()
    x, y = t.apply(1.25, -3.0)
    back = inv.apply(x, y)
    assert back == pytest.approx((1.25, -3.0))
    assert t.concatenated(inv).apply(2, 9) == pytest.approx((2, 9))


def test_singular_transform_cannot_be_inverted():
    with pytest.raises(ResampleFailure):
        AffineTransform2D(a=0, b=0, c=0, d=0).inverted()


def test_apply_points_is_element_wise():
    t = AffineTransform2D.identity().translated(1, 2).scaled(3, 4)
    xs = np.array([[0.0, 1.0], [2.0, 3.0]])
    ys = np.array([[1.0, 1.0], [0.0, 2.0]])
    out_x, out_y = t.apply_points(xs, ys)
    assert out_x.tolist() == [[1.0, 4.0], [7.0, 10.0]]
    assert out_y.tolist() == [[6.0, 6.0], [2.0, 10.0]]


class TestOrientationTransform:
    """Corner mapping of the transform built for each tag on a 2x3 canvas."""

    width, height = 2, 3

    def _t(self, tag):
        return orientation_transform(tag, self.width, self.height)

    def test_up_is_identity(self):
        assert self._t(Orientation.UP).is_identity

    def test_down_rotates_about_the_canvas_centre(self):
        assert self._t(Orientation.DOWN).apply(0, 0) == (2, 3)

    def test_left_translates_by_width(self):
        # The drawn rectangle is 3 wide and 2 tall.
        assert self._t(Orientation.LEFT).apply(0, 0) == (2, 0)
        assert self._t(Orientation.LEFT).apply(3, 2) == (0, 3)

    def test_right_translates_by_height(self):
        assert self._t(Orientation.RIGHT).apply(0, 0) == (0, 3)
        assert self._t(Orientation.RIGHT).apply(3, 2) == (2, 0)

    def test_up_mirrored_only_flips(self):
        t = self._t(Orientation.UP_MIRRORED)
        assert (t.a, t.b, t.c, t.d) == (-1, 0, 0, 1)
        assert t.apply(0, 1) == (2, 1)

    def test_down_mirrored_flips_vertically(self):
        t = self._t(Orientation.DOWN_MIRRORED)
        assert t.apply(0.5, 0.5) == (0.5, 2.5)

    def test_mirrored_quarter_turns_flip_across_raw_width(self):
        t = self._t(Orientation.LEFT_MIRRORED)
        assert t.apply(0, 2) == (0, 3)
        assert t.apply(3, 0) == (2, 0)
        t = self._t(Orientation.RIGHT_MIRRORED)
        assert t.apply(0, 2) == (2, 0)
        assert t.apply(3, 0) == (0, 3)
