"""
Conserved-quantity diagnostics.

Provides quantitative measures for checking simulation fidelity:
- Total mass and center of mass
- Linear and angular momentum
- Kinetic, potential (softened) and total energy

All functions accept a ParticleStore or a Snapshot.
"""

from __future__ import annotations

from typing import Union

import numpy as np

from .particles import ParticleStore, Snapshot
from .vector import Vec2

StateLike = Union[ParticleStore, Snapshot]


def total_mass(state: StateLike) -> float:
    """Sum of all masses."""
    return float(np.sum(state.masses))


def center_of_mass(state: StateLike) -> Vec2:
    """Mass-weighted mean position."""
    m = state.masses
    c = (state.positions * m[:, np.newaxis]).sum(axis=0) / m.sum()
    return Vec2(float(c[0]), float(c[1]))


def total_momentum(state: StateLike) -> Vec2:
    """
    Sum of mass * velocity.

    Invariant for a closed system under exact (theta -> 0) forces.
    """
    p = (state.velocities * state.masses[:, np.newaxis]).sum(axis=0)
    return Vec2(float(p[0]), float(p[1]))


def angular_momentum(state: StateLike) -> float:
    """Z component of sum(m * (r x v)) about the origin."""
    r = state.positions
    v = state.velocities
    return float(np.sum(state.masses * (r[:, 0] * v[:, 1] - r[:, 1] * v[:, 0])))


def kinetic_energy(state: StateLike) -> float:
    """Sum of m * |v|^2 / 2."""
    return float(0.5 * np.sum(state.masses * (state.velocities**2).sum(axis=1)))


def potential_energy(
    state: StateLike,
    gravitational_constant: float = 1.0,
    softening_length: float = 0.0,
) -> float:
    """
    Softened gravitational potential energy by exact pair summation.

    Each pair contributes -G * m_i * m_j / sqrt(d^2 + eps^2). Coincident
    pairs without softening are skipped.

    Time Complexity: O(n^2)
    """
    pos = state.positions
    m = state.masses
    delta = pos[np.newaxis, :, :] - pos[:, np.newaxis, :]
    denom = np.sqrt((delta**2).sum(axis=2) + softening_length * softening_length)

    iu = np.triu_indices(len(m), k=1)
    d = denom[iu]
    mm = (m[:, np.newaxis] * m[np.newaxis, :])[iu]
    valid = d > 0
    return float(-gravitational_constant * np.sum(mm[valid] / d[valid]))


def total_energy(
    state: StateLike,
    gravitational_constant: float = 1.0,
    softening_length: float = 0.0,
) -> float:
    """Kinetic plus softened potential energy."""
    return kinetic_energy(state) + potential_energy(state, gravitational_constant, softening_length)


def energy_summary(
    state: StateLike,
    gravitational_constant: float = 1.0,
    softening_length: float = 0.0,
) -> dict[str, float]:
    """
    Compute all scalar diagnostics at once.

    Returns:
        Dictionary with keys: kinetic, potential, total, angular_momentum,
        momentum_x, momentum_y
    """
    kinetic = kinetic_energy(state)
    potential = potential_energy(state, gravitational_constant, softening_length)
    p = total_momentum(state)
    return {
        "kinetic": kinetic,
        "potential": potential,
        "total": kinetic + potential,
        "angular_momentum": angular_momentum(state),
        "momentum_x": p.x,
        "momentum_y": p.y,
    }


__all__ = [
    "total_mass",
    "center_of_mass",
    "total_momentum",
    "angular_momentum",
    "kinetic_energy",
    "potential_energy",
    "total_energy",
    "energy_summary",
]
