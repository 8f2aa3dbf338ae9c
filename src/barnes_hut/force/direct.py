"""
Softened gravitational force law and the exact pairwise reference.

The softened law

    a = G * m * r / (|r|^2 + eps^2) ** 1.5

(r pointing from the target to the source) removes the 1/d^2 singularity
as two bodies approach, trading short-range accuracy for stability.
"""

from __future__ import annotations

import math
from typing import Tuple

import numpy as np


def softened_acceleration(
    dx: float,
    dy: float,
    mass: float,
    gravitational_constant: float,
    softening_sq: float,
) -> Tuple[float, float]:
    """
    Acceleration caused by a point mass at displacement (dx, dy).

    Args:
        dx, dy: Source position minus target position
        mass: Source mass
        gravitational_constant: G
        softening_sq: epsilon squared

    Returns:
        (ax, ay). Zero for coincident bodies without softening, where the
        direction is undefined.
    """
    denom = dx * dx + dy * dy + softening_sq
    if denom <= 0.0:
        return 0.0, 0.0
    scale = gravitational_constant * mass / (denom * math.sqrt(denom))
    return scale * dx, scale * dy


def direct_accelerations(
    positions: np.ndarray,
    masses: np.ndarray,
    gravitational_constant: float = 1.0,
    softening_length: float = 0.0,
) -> np.ndarray:
    """
    Exact O(n^2) accelerations by pairwise summation.

    Used as the reference the Barnes-Hut result converges to as theta
    goes to zero. Self-interaction and coincident pairs without softening
    contribute nothing.

    Args:
        positions: (N, 2) positions
        masses: (N,) masses
        gravitational_constant: G
        softening_length: epsilon

    Returns:
        (N, 2) accelerations
    """
    positions = np.asarray(positions, dtype=np.float64)
    masses = np.asarray(masses, dtype=np.float64)

    # delta[i, j] = positions[j] - positions[i]
    delta = positions[np.newaxis, :, :] - positions[:, np.newaxis, :]
    denom = (delta**2).sum(axis=2) + softening_length * softening_length

    with np.errstate(divide="ignore", invalid="ignore"):
        inv = np.where(denom > 0.0, denom**-1.5, 0.0)
    np.fill_diagonal(inv, 0.0)

    weights = gravitational_constant * inv * masses[np.newaxis, :]
    return np.einsum("ij,ijk->ik", weights, delta)


__all__ = ["softened_acceleration", "direct_accelerations"]
