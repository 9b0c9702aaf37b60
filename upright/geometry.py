"""Two dimensional affine transforms used to map source pixels onto a canvas."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from .errors import ResampleFailure


@dataclass(frozen=True)
class AffineTransform2D:
    """
    A 2x3 affine matrix mapping ``(x, y)`` to
    ``(a*x + c*y + tx, b*x + d*y + ty)``.

    ``translated``, ``rotated`` and ``scaled`` prepend the operation in user
    space: the most recently added operation is the first one applied to a
    point. Building ``identity().translated(w, 0).rotated(pi / 2)`` therefore
    rotates a point first and translates it afterwards.
    """

    a: float = 1.0
    b: float = 0.0
    c: float = 0.0
    d: float = 1.0
    tx: float = 0.0
    ty: float = 0.0

    @classmethod
    def identity(cls) -> "AffineTransform2D":
        return cls()

    @property
    def is_identity(self) -> bool:
        return self == AffineTransform2D()

    def concatenated(self, inner: "AffineTransform2D") -> "AffineTransform2D":
        """Return the transform applying ``inner`` first and then ``self``."""
        return AffineTransform2D(
            a=self.a * inner.a + self.c * inner.b,
            b=self.b * inner.a + self.d * inner.b,
            c=self.a * inner.c + self.c * inner.d,
            d=self.b * inner.c + self.d * inner.d,
            tx=self.a * inner.tx + self.c * inner.ty + self.tx,
            ty=self.b * inner.tx + self.d * inner.ty + self.ty,
        )

    def translated(self, tx: float, ty: float) -> "AffineTransform2D":
        return self.concatenated(AffineTransform2D(tx=tx, ty=ty))

    def rotated(self, angle: float) -> "AffineTransform2D":
        """Prepend a counter-clockwise rotation by ``angle`` radians."""
        # Quarter turns produce exact integer matrices.
        cos = round(math.cos(angle), 12)
        sin = round(math.sin(angle), 12)
        return self.concatenated(AffineTransform2D(a=cos, b=sin, c=-sin, d=cos))

    def scaled(self, sx: float, sy: float) -> "AffineTransform2D":
        return self.concatenated(AffineTransform2D(a=sx, d=sy))

    def determinant(self) -> float:
        return self.a * self.d - self.b * self.c

    def inverted(self) -> "AffineTransform2D":
        """Return the inverse transform or raise when the matrix is singular."""
        det = self.determinant()
        if abs(det) < 1e-12:
            raise ResampleFailure(f"Transform is not invertible: {self}")
        a = self.d / det
        b = -self.b / det
        c = -self.c / det
        d = self.a / det
        return AffineTransform2D(
            a=a,
            b=b,
            c=c,
            d=d,
            tx=-(a * self.tx + c * self.ty),
            ty=-(b * self.tx + d * self.ty),
        )

    def apply(self, x: float, y: float) -> Tuple[float, float]:
        """Map a single point."""
        return (
            self.a * x + self.c * y + self.tx,
            self.b * x + self.d * y + self.ty,
        )

    def apply_points(
        self, xs: np.ndarray, ys: np.ndarray
    ) -> Tuple[np.ndarray, np.ndarray]:
        """Map arrays of x and y coordinates element-wise."""
        return (
            self.a * xs + self.c * ys + self.tx,
            self.b * xs + self.d * ys + self.ty,
        )
