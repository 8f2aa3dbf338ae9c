"""Tests for planar vector primitives."""

import math

import pytest

from barnes_hut.vector import ZERO, Vec2, distance, distance_sq, magnitude


class TestVec2:
    """Tests for Vec2 arithmetic."""

    def test_arithmetic(self):
        """Addition, subtraction, scaling and negation are component-wise."""
        a = Vec2(1.0, 2.0)
        b = Vec2(3.0, -1.0)

        assert a + b == Vec2(4.0, 1.0)
        assert a - b == Vec2(-2.0, 3.0)
        assert a * 2 == Vec2(2.0, 4.0)
        assert 2 * a == Vec2(2.0, 4.0)
        assert a / 2 == Vec2(0.5, 1.0)
        assert -a == Vec2(-1.0, -2.0)

    def test_products(self):
        """Dot and 2D cross products."""
        a = Vec2(1.0, 2.0)
        b = Vec2(3.0, 4.0)

        assert a.dot(b) == 11.0
        assert a.cross(b) == -2.0

    def test_norm(self):
        """Length and squared length."""
        v = Vec2(3.0, 4.0)
        assert v.norm() == 5.0
        assert v.norm_sq() == 25.0
        assert ZERO.norm() == 0.0

    def test_is_finite(self):
        assert Vec2(1.0, 2.0).is_finite()
        assert not Vec2(math.nan, 0.0).is_finite()


class TestDistance:
    """Tests for scalar helpers."""

    def test_distance(self):
        assert distance(0.0, 0.0, 3.0, 4.0) == 5.0
        assert distance_sq(1.0, 1.0, 4.0, 5.0) == 25.0

    def test_magnitude(self):
        assert magnitude(-3.0, 4.0) == pytest.approx(5.0)
