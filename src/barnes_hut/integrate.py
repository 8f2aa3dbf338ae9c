"""
Time integration.

The reference scheme is semi-implicit (symplectic) Euler:

    v <- v + a * dt
    x <- x + v * dt        (using the updated v)

The update is uniform over particles and touches nothing but positions
and velocities. Results are computed into fresh arrays and committed to
the store only when every component is finite, so a failed step leaves
the previous state intact.
"""

from __future__ import annotations

from concurrent.futures import Executor
from typing import Optional, Tuple

import numpy as np

from .config import SimulationConfig
from .force.evaluator import chunk_bounds
from .particles import ParticleStore
from .types import IntegrationScheme
from .validation import NumericalInstabilityError


class Integrator:
    """
    Advances a ParticleStore by one fixed time step.

    The TRAPEZOIDAL scheme keeps the previous step's accelerations; the
    integrator instance therefore belongs to a single simulation.
    """

    def __init__(self, config: SimulationConfig):
        self._dt = config.time_step
        self._scheme = config.integration_scheme
        self._workers = config.workers
        self._prev_accelerations: Optional[np.ndarray] = None

    @property
    def time_step(self) -> float:
        return self._dt

    @property
    def scheme(self) -> IntegrationScheme:
        return self._scheme

    def step(
        self,
        store: ParticleStore,
        accelerations: np.ndarray,
        executor: Optional[Executor] = None,
    ) -> None:
        """
        Update velocities then positions of every particle.

        Args:
            store: Particle state to advance
            accelerations: (N, 2) accelerations for the current positions
            executor: Pool for chunked parallel updates (used only when
                configured with more than one worker)

        Raises:
            NumericalInstabilityError: If any resulting component is not
                finite. The store is not modified in that case.
        """
        if accelerations.shape != (store.count, 2):
            raise ValueError(
                f"accelerations must have shape ({store.count}, 2), got {accelerations.shape}"
            )

        if self._scheme is IntegrationScheme.TRAPEZOIDAL:
            if self._prev_accelerations is None:
                # First step: drift only
                kick = np.zeros_like(accelerations)
            else:
                kick = 0.5 * (self._prev_accelerations + accelerations)
        else:
            kick = accelerations

        positions = np.empty((store.count, 2), dtype=np.float64)
        velocities = np.empty((store.count, 2), dtype=np.float64)
        old_pos = store.positions
        old_vel = store.velocities
        dt = self._dt

        def update(start: int, stop: int) -> None:
            # Overflow is reported below as NumericalInstabilityError
            with np.errstate(over="ignore", invalid="ignore"):
                v = old_vel[start:stop] + kick[start:stop] * dt
                velocities[start:stop] = v
                positions[start:stop] = old_pos[start:stop] + v * dt

        n = store.count
        if executor is None or self._workers <= 1 or n < 2:
            update(0, n)
        else:
            futures = [executor.submit(update, a, b) for a, b in chunk_bounds(n, self._workers)]
            for future in futures:
                future.result()

        bad = _first_non_finite(positions, velocities)
        if bad is not None:
            index, what = bad
            raise NumericalInstabilityError(
                f"Particle {index} {what} became non-finite; "
                f"reduce time_step ({dt}) or opening_angle, or increase softening_length"
            )

        store.commit(positions, velocities)
        if self._scheme is IntegrationScheme.TRAPEZOIDAL:
            self._prev_accelerations = accelerations.copy()


def _first_non_finite(positions: np.ndarray, velocities: np.ndarray) -> Optional[Tuple[int, str]]:
    bad_pos = ~np.isfinite(positions).all(axis=1)
    bad_vel = ~np.isfinite(velocities).all(axis=1)
    if not (bad_pos.any() or bad_vel.any()):
        return None
    first_vel = int(np.argmax(bad_vel)) if bad_vel.any() else None
    first_pos = int(np.argmax(bad_pos)) if bad_pos.any() else None
    if first_vel is not None and (first_pos is None or first_vel <= first_pos):
        return first_vel, "velocity"
    assert first_pos is not None
    return first_pos, "position"


__all__ = ["Integrator"]
