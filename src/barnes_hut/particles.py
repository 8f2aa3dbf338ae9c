"""
Particle storage and read-only snapshots.

``ParticleStore`` exclusively owns the position, velocity and mass arrays
of a fixed particle population. Only the integrator replaces its state,
through ``commit()``. Everything handed out is either a read-only view
(for in-step readers) or a copy (``Snapshot``), so consumers cannot
corrupt simulation state.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterator, Optional

import numpy as np

from .types import ArrayLike1D, ArrayLike2D, Bounds, Particle
from .validation import (
    InvalidConfigurationError,
    InvalidGeometryError,
    validate_masses,
    validate_vectors,
)
from .vector import Vec2


def _readonly(arr: np.ndarray) -> np.ndarray:
    view = arr.view()
    view.flags.writeable = False
    return view


def _frozen_copy(arr: np.ndarray) -> np.ndarray:
    out = arr.copy()
    out.flags.writeable = False
    return out


@dataclass(frozen=True)
class Snapshot:
    """
    Post-step copy of the simulation state for external consumers.

    Arrays are independent, read-only copies; they stay valid (and
    unchanged) after further steps.

    Attributes:
        time: Simulation time of this state
        step: Number of steps taken to reach this state
        positions: (N, 2) positions
        velocities: (N, 2) velocities
        masses: (N,) masses
    """

    time: float
    step: int
    positions: np.ndarray
    velocities: np.ndarray
    masses: np.ndarray

    def __len__(self) -> int:
        return int(self.masses.shape[0])

    def pairs(self) -> Iterator[tuple[Vec2, float]]:
        """
        Yield ``(position, mass)`` per particle in index order.

        This is the interface consumed by rendering collaborators; the
        order is stable across steps.
        """
        for (x, y), m in zip(self.positions.tolist(), self.masses.tolist()):
            yield Vec2(x, y), m

    def particle(self, index: int) -> Particle:
        """Value copy of one particle."""
        px, py = self.positions[index]
        vx, vy = self.velocities[index]
        return Particle(index, Vec2(float(px), float(py)), Vec2(float(vx), float(vy)), float(self.masses[index]))


class ParticleStore:
    """
    Owner of the mutable particle arrays.

    Example:
        store = ParticleStore.from_arrays(
            positions=[(0.0, 0.0), (1.0, 0.0)],
            velocities=[(0.0, 0.0), (0.0, 1.0)],
            masses=[1.0, 1.0],
        )
        store.count  # 2
    """

    def __init__(self, positions: np.ndarray, velocities: np.ndarray, masses: np.ndarray) -> None:
        """
        Wrap already-validated float64 arrays. Use ``from_arrays`` for
        arbitrary input; it validates and copies.
        """
        self._positions = positions
        self._velocities = velocities
        self._masses = masses

    @classmethod
    def from_arrays(
        cls,
        positions: ArrayLike2D,
        velocities: Optional[ArrayLike2D] = None,
        masses: Optional[ArrayLike1D] = None,
    ) -> ParticleStore:
        """
        Build a store from caller-supplied data.

        Args:
            positions: (N, 2) finite coordinates
            velocities: (N, 2) finite velocities (default: zeros)
            masses: (N,) positive masses (default: ones)

        Returns:
            A store holding private copies of the arrays

        Raises:
            InvalidConfigurationError: On empty input, mismatched shapes,
                non-finite values or non-positive masses
        """
        pos = validate_vectors("positions", positions)
        n = pos.shape[0]
        if n == 0:
            raise InvalidConfigurationError("At least one particle is required")

        if velocities is None:
            vel = np.zeros((n, 2), dtype=np.float64)
        else:
            vel = validate_vectors("velocities", velocities, count=n)

        if masses is None:
            mass = np.ones(n, dtype=np.float64)
        else:
            mass = validate_masses(masses, n)

        return cls(pos, vel, mass)

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def count(self) -> int:
        """Number of particles."""
        return int(self._masses.shape[0])

    def __len__(self) -> int:
        return self.count

    @property
    def positions(self) -> np.ndarray:
        """Read-only view of the (N, 2) positions."""
        return _readonly(self._positions)

    @property
    def velocities(self) -> np.ndarray:
        """Read-only view of the (N, 2) velocities."""
        return _readonly(self._velocities)

    @property
    def masses(self) -> np.ndarray:
        """Read-only view of the (N,) masses."""
        return _readonly(self._masses)

    @property
    def total_mass(self) -> float:
        return float(self._masses.sum())

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def particle(self, index: int) -> Particle:
        """Value copy of one particle."""
        px, py = self._positions[index]
        vx, vy = self._velocities[index]
        return Particle(index, Vec2(float(px), float(py)), Vec2(float(vx), float(vy)), float(self._masses[index]))

    def __iter__(self) -> Iterator[Particle]:
        for i in range(self.count):
            yield self.particle(i)

    def bounding_square(self, padding: float = 0.0) -> Bounds:
        """
        Smallest axis-aligned square enclosing all positions, centered on
        the bounding box and enlarged by ``padding`` (fraction of the side).

        A degenerate extent (one particle, or all coincident) yields a unit
        square around the points.

        Returns:
            (min_x, min_y, side)
        """
        return bounding_square(self._positions, padding)

    def commit(self, positions: np.ndarray, velocities: np.ndarray) -> None:
        """
        Replace positions and velocities wholesale.

        Called by the integrator once a step's results are known to be
        finite; the arrays are taken over, not copied.
        """
        if positions.shape != self._positions.shape or velocities.shape != self._velocities.shape:
            raise ValueError(
                f"commit shape mismatch: expected {self._positions.shape}, "
                f"got {positions.shape} and {velocities.shape}"
            )
        self._positions = positions
        self._velocities = velocities

    def snapshot(self, time: float = 0.0, step: int = 0) -> Snapshot:
        """Independent read-only copy of the current state."""
        return Snapshot(
            time=float(time),
            step=int(step),
            positions=_frozen_copy(self._positions),
            velocities=_frozen_copy(self._velocities),
            masses=_frozen_copy(self._masses),
        )

    def copy(self) -> ParticleStore:
        """Deep copy of the store."""
        return ParticleStore(self._positions.copy(), self._velocities.copy(), self._masses.copy())

    def __repr__(self) -> str:
        return f"ParticleStore(count={self.count}, total_mass={self.total_mass:.6g})"


def bounding_square(positions: np.ndarray, padding: float = 0.0) -> Bounds:
    """
    Padded enclosing square of an (N, 2) array as (min_x, min_y, side).

    Raises:
        InvalidGeometryError: If the square's side or far edge is not
            representable as a finite float
    """
    lo_x, lo_y = (float(v) for v in positions.min(axis=0))
    hi_x, hi_y = (float(v) for v in positions.max(axis=0))
    side = max(hi_x - lo_x, hi_y - lo_y)
    if side <= 0.0:
        side = 1.0
    center_x = lo_x / 2 + hi_x / 2
    center_y = lo_y / 2 + hi_y / 2
    side *= 1.0 + 2.0 * padding
    min_x = min(center_x - side / 2, lo_x)
    min_y = min(center_y - side / 2, lo_y)
    # Rounding must not push the maximum coordinate past the far edge
    while min_x + side < hi_x or min_y + side < hi_y:
        side += float(np.spacing(max(abs(hi_x), abs(hi_y), side)))
    if not (math.isfinite(side) and math.isfinite(min_x + side) and math.isfinite(min_y + side)):
        raise InvalidGeometryError(
            f"Particle extent x=[{lo_x}, {hi_x}], y=[{lo_y}, {hi_y}] "
            "is too large for a finite bounding square"
        )
    return min_x, min_y, side


__all__ = ["ParticleStore", "Snapshot", "bounding_square"]
