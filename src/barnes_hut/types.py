"""
Common types for the simulation.

This module provides the small shared types used across components:
- EventType / Event: Simulation lifecycle events and their payload
- SimulationState: Lifecycle state of a Simulation
- InitialDistribution: Named presets for seeding particles
- IntegrationScheme: Time-stepping update rule
- NodeKind: Variant tag of a quadtree node
- Particle: Read-only view of one particle
"""

from __future__ import annotations

from enum import Enum, IntEnum
from typing import Any, NamedTuple, Optional, Sequence, TypedDict, Union

from .vector import Vec2


class EventType(IntEnum):
    """
    Simulation lifecycle events.

    - start: A run() has begun
    - tick: Fired once per completed step
    - end: A run() has finished
    """

    start = 0
    tick = 1
    end = 2


class Event(TypedDict, total=False):
    """Event payload passed to event listeners."""

    type: EventType
    time: float
    step: int
    snapshot: Optional[Any]


class SimulationState(Enum):
    """Lifecycle state of a simulation. There is no way back to INITIALIZED."""

    INITIALIZED = "initialized"
    RUNNING = "running"


class InitialDistribution(Enum):
    """How particles are seeded when a simulation is created from a config."""

    DISC = "disc"
    STRIATION_MIN = "striation_min"
    STRIATION_MED = "striation_med"
    STRIATION_MAX = "striation_max"
    CUSTOM_SEED = "custom_seed"


class IntegrationScheme(Enum):
    """
    Time-stepping rule used by the integrator.

    - SEMI_IMPLICIT_EULER: v += a*dt, then x += v*dt (reference behaviour)
    - TRAPEZOIDAL: v += dt/2 * (a_prev + a), then x += v*dt; the first step
      only drifts
    """

    SEMI_IMPLICIT_EULER = "semi_implicit_euler"
    TRAPEZOIDAL = "trapezoidal"


class NodeKind(IntEnum):
    """Variant tag of a quadtree node."""

    EMPTY = 0
    LEAF = 1
    INTERNAL = 2


class Particle(NamedTuple):
    """Value copy of a single particle's state."""

    index: int
    position: Vec2
    velocity: Vec2
    mass: float


# Type aliases for the public API
ArrayLike2D = Union[Sequence[Sequence[float]], Any]
"""Input type for (N, 2) coordinates: nested sequences or numpy arrays."""

ArrayLike1D = Union[Sequence[float], Any]
"""Input type for (N,) values: sequences or numpy arrays."""

Bounds = tuple[float, float, float]
"""Square region as (min_x, min_y, side)."""


__all__ = [
    "EventType",
    "Event",
    "SimulationState",
    "InitialDistribution",
    "IntegrationScheme",
    "NodeKind",
    "Particle",
    "ArrayLike2D",
    "ArrayLike1D",
    "Bounds",
]
