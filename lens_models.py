"""
Lens Models
Coordinate transforms that map image-plane sample points to the source plane.
The default is a singular isothermal ellipsoid (SIE) lens; any callable taking
and returning a Point2D can be used in its place.
"""

import math
import numpy as np
from typing import Dict, Tuple
from dataclasses import dataclass, asdict

from quadtree_algorithms import Point2D

# Reference lens
LENS_X = 11.23
LENS_Y = 9.87
LENS_B = 6.34
LENS_PA = 34.56
LENS_Q = 0.78


@dataclass(frozen=True)
class LensParameters:
    """SIE lens parameters"""
    x: float = LENS_X  # position
    y: float = LENS_Y
    b: float = LENS_B  # scale radius
    pa: float = LENS_PA  # position angle in degrees
    q: float = LENS_Q  # axis ratio, 0 < q < 1

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


class SIELens:
    """Singular isothermal ellipsoid deflection"""

    def __init__(self, params: LensParameters = None):
        self.params = params or LensParameters()
        if not 0 < self.params.q < 1:
            raise ValueError(f"axis ratio q must lie in (0, 1), got {self.params.q}")

        self.c = math.cos(math.radians(self.params.pa))
        self.s = math.sin(math.radians(self.params.pa))
        self.e = math.sqrt(1 - self.params.q ** 2)
        self.scale = self.params.b * math.sqrt(self.params.q) / self.e

    def deflect(self, xs: np.ndarray, ys: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Map arrays of image-plane coordinates to the source plane.
        Points at the lens centre come out as NaN; callers filter them.
        """
        xs = np.asarray(xs, dtype=np.float64)
        ys = np.asarray(ys, dtype=np.float64)
        c, s, q = self.c, self.s, self.params.q

        # In central & rotated coordinate system
        x = (xs - self.params.x) * c - (ys - self.params.y) * s
        y = (xs - self.params.x) * s + (ys - self.params.y) * c

        with np.errstate(divide='ignore', invalid='ignore'):
            # Elliptical radius
            r = np.sqrt(q * q * x * x + y * y)

            # Deflection angle
            ax = self.scale * np.arctan(x * self.e / r)
            ay = self.scale * np.arctanh(y * self.e / r)

        return xs - (ax * c + ay * s), ys - (ay * c - ax * s)

    def __call__(self, p: Point2D) -> Point2D:
        sx, sy = self.deflect(np.array([p.x]), np.array([p.y]))
        return Point2D(float(sx[0]), float(sy[0]))


def identity_transform(p: Point2D) -> Point2D:
    """Leave points where they are"""
    return p
