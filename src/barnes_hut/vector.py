"""
Planar vector primitives.

Small value type and helpers for 2D arithmetic. The hot loops in the
quadtree and force evaluator work on bare floats; ``Vec2`` is used at the
API surface (particle values, snapshots, metrics).
"""

from __future__ import annotations

import math
from typing import NamedTuple


class Vec2(NamedTuple):
    """Immutable 2D vector."""

    x: float = 0.0
    y: float = 0.0

    def __add__(self, other: object) -> Vec2:  # type: ignore[override]
        if not isinstance(other, tuple):
            return NotImplemented
        return Vec2(self.x + other[0], self.y + other[1])

    def __sub__(self, other: tuple[float, float]) -> Vec2:
        return Vec2(self.x - other[0], self.y - other[1])

    def __mul__(self, scalar: object) -> Vec2:  # type: ignore[override]
        if not isinstance(scalar, (int, float)):
            return NotImplemented
        return Vec2(self.x * scalar, self.y * scalar)

    __rmul__ = __mul__

    def __truediv__(self, scalar: float) -> Vec2:
        return Vec2(self.x / scalar, self.y / scalar)

    def __neg__(self) -> Vec2:
        return Vec2(-self.x, -self.y)

    def dot(self, other: tuple[float, float]) -> float:
        """Scalar product."""
        return self.x * other[0] + self.y * other[1]

    def cross(self, other: tuple[float, float]) -> float:
        """Z component of the 3D cross product (signed parallelogram area)."""
        return self.x * other[1] - self.y * other[0]

    def norm_sq(self) -> float:
        """Squared length."""
        return self.x * self.x + self.y * self.y

    def norm(self) -> float:
        """Euclidean length."""
        return math.hypot(self.x, self.y)

    def is_finite(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y)


ZERO = Vec2(0.0, 0.0)


def distance_sq(ax: float, ay: float, bx: float, by: float) -> float:
    """Squared distance between two points."""
    dx = bx - ax
    dy = by - ay
    return dx * dx + dy * dy


def distance(ax: float, ay: float, bx: float, by: float) -> float:
    """Euclidean distance between two points."""
    return math.hypot(bx - ax, by - ay)


def magnitude(x: float, y: float) -> float:
    """Length of the vector (x, y)."""
    return math.hypot(x, y)


__all__ = ["Vec2", "ZERO", "distance", "distance_sq", "magnitude"]
