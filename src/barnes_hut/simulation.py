"""
The simulation loop.

Each ``step()`` runs the pipeline

    build quadtree -> evaluate accelerations -> integrate -> advance time

and exposes a read-only Snapshot. Tree build is a barrier, evaluation of
all particles completes before integration starts, and a step either
commits completely or not at all.
"""

from __future__ import annotations

import logging
import time as _time
import warnings
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Any, Callable, Optional

if TYPE_CHECKING:
    from typing_extensions import Self

from .config import SimulationConfig
from .distributions import generate
from .force.evaluator import ForceEvaluator
from .integrate import Integrator
from .particles import ParticleStore, Snapshot
from .spatial.quadtree import QuadTree
from .types import (
    ArrayLike1D,
    ArrayLike2D,
    Event,
    EventType,
    InitialDistribution,
    SimulationState,
)
from .validation import InvalidConfigurationError, validate_count

logger = logging.getLogger(__name__)


class Simulation:
    """
    Barnes-Hut gravitational simulation of a fixed particle population.

    Example:
        config = SimulationConfig(particle_count=5000, random_seed=1)
        sim = Simulation(config)
        for _ in range(100):
            snapshot = sim.step()

        # Or with events
        sim = Simulation(config, on_tick=lambda e: render(e["snapshot"]))
        sim.run(100)

    With ``workers > 1`` the simulation owns a thread pool; use it as a
    context manager or call ``close()`` when done.
    """

    def __init__(
        self,
        config: SimulationConfig,
        store: Optional[ParticleStore] = None,
        *,
        on_start: Optional[Callable[[Optional[Event]], None]] = None,
        on_tick: Optional[Callable[[Optional[Event]], None]] = None,
        on_end: Optional[Callable[[Optional[Event]], None]] = None,
    ) -> None:
        """
        Initialize a simulation at time 0.

        Args:
            config: Immutable simulation parameters
            store: Initial particles. Generated from
                ``config.initial_distribution`` when omitted; required for
                custom_seed. The simulation takes a private copy.
            on_start: Callback for start event
            on_tick: Callback for tick event (after every step)
            on_end: Callback for end event

        Raises:
            InvalidConfigurationError: If the particle count does not match
                the config, or custom_seed is used without a store
        """
        if store is None:
            store = generate(config)
        elif store.count != config.particle_count:
            raise InvalidConfigurationError(
                f"Store holds {store.count} particles but particle_count is {config.particle_count}"
            )
        else:
            store = store.copy()

        self._config = config
        self._store = store
        self._evaluator = ForceEvaluator(config)
        self._integrator = Integrator(config)
        self._state = SimulationState.INITIALIZED
        self._time = 0.0
        self._step_count = 0
        self._last_tree: Optional[QuadTree] = None
        self._events: dict[EventType, Callable[[Optional[Event]], None]] = {}
        self._executor: Optional[ThreadPoolExecutor] = None

        if config.workers > 1:
            self._executor = ThreadPoolExecutor(
                max_workers=config.workers, thread_name_prefix="barnes-hut"
            )

        if on_start:
            self._events[EventType.start] = on_start
        if on_tick:
            self._events[EventType.tick] = on_tick
        if on_end:
            self._events[EventType.end] = on_end

        logger.debug(
            "Simulation initialized: n=%d theta=%g eps=%g dt=%g workers=%d",
            store.count,
            config.opening_angle,
            config.softening_length,
            config.time_step,
            config.workers,
        )

    @classmethod
    def from_arrays(
        cls,
        config: SimulationConfig,
        positions: ArrayLike2D,
        velocities: Optional[ArrayLike2D] = None,
        masses: Optional[ArrayLike1D] = None,
        **kwargs: Any,
    ) -> Simulation:
        """
        Create a simulation from caller-supplied arrays.

        The config's particle_count must match the number of positions;
        ``initial_distribution`` is normally custom_seed here.
        """
        store = ParticleStore.from_arrays(positions, velocities, masses)
        if config.initial_distribution is not InitialDistribution.CUSTOM_SEED:
            logger.debug(
                "Arrays supplied; ignoring initial_distribution=%s",
                config.initial_distribution.value,
            )
        elif config.random_seed is not None:
            warnings.warn(
                "random_seed has no effect with custom_seed; arrays are used as given",
                stacklevel=2,
            )
        return cls(config, store, **kwargs)

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def state(self) -> SimulationState:
        """INITIALIZED until the first successful step, RUNNING after."""
        return self._state

    @property
    def time(self) -> float:
        """Elapsed simulation time (step_count * dt)."""
        return self._time

    @property
    def step_count(self) -> int:
        return self._step_count

    @property
    def particle_count(self) -> int:
        return self._store.count

    @property
    def last_tree(self) -> Optional[QuadTree]:
        """Sealed tree of the most recent step (None before the first step)."""
        return self._last_tree

    # -------------------------------------------------------------------------
    # Event System
    # -------------------------------------------------------------------------

    def on(self, event: EventType | str, callback: Callable[[Optional[Event]], None]) -> Self:
        """
        Subscribe to a simulation event.

        Args:
            event: Event type (EventType enum or string name)
            callback: Function to call when event fires

        Returns:
            self (for chaining)
        """
        if isinstance(event, str):
            event = EventType[event]
        self._events[event] = callback
        return self

    def trigger(self, event: Event) -> None:
        """Trigger an event, calling the registered callback."""
        event_type = event.get("type")
        if event_type is not None and event_type in self._events:
            self._events[event_type](event)

    # -------------------------------------------------------------------------
    # Lifecycle Methods
    # -------------------------------------------------------------------------

    def step(self) -> Snapshot:
        """
        Advance the simulation by one time step.

        Returns:
            Snapshot of the post-step state

        Raises:
            InvalidGeometryError: If the tree cannot be built
            NumericalInstabilityError: If integration diverges
        """
        started = _time.perf_counter()
        config = self._config

        tree = QuadTree.build(
            self._store.positions,
            self._store.masses,
            padding=config.padding,
            max_depth=config.max_depth,
        )
        accelerations = self._evaluator.accelerations(
            tree, self._store.positions, executor=self._executor
        )
        self._integrator.step(self._store, accelerations, executor=self._executor)

        self._last_tree = tree
        self._step_count += 1
        self._time = self._step_count * config.time_step
        self._state = SimulationState.RUNNING

        logger.debug(
            "Step %d t=%.6g nodes=%d depth=%d (%.2f ms)",
            self._step_count,
            self._time,
            tree.node_count,
            tree.max_depth_reached,
            (_time.perf_counter() - started) * 1000.0,
        )

        snap = self.snapshot()
        self.trigger(
            {"type": EventType.tick, "time": self._time, "step": self._step_count, "snapshot": snap}
        )
        return snap

    def run(self, steps: int) -> Snapshot:
        """
        Take several steps, firing start/tick/end events.

        Args:
            steps: Number of steps (>= 1)

        Returns:
            Snapshot after the last step
        """
        steps = validate_count("steps", steps)
        logger.info("Running %d steps from t=%g", steps, self._time)
        self.trigger({"type": EventType.start, "time": self._time, "step": self._step_count})

        snap = self.snapshot()
        for _ in range(steps):
            snap = self.step()

        self.trigger(
            {"type": EventType.end, "time": self._time, "step": self._step_count, "snapshot": snap}
        )
        logger.info("Finished at t=%g after %d steps", self._time, self._step_count)
        return snap

    def snapshot(self) -> Snapshot:
        """Read-only copy of the current state; never aliases internal storage."""
        return self._store.snapshot(self._time, self._step_count)

    def close(self) -> None:
        """Shut down the worker pool, if any."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"Simulation(n={self.particle_count}, t={self._time:.6g}, "
            f"steps={self._step_count}, state={self._state.value})"
        )


__all__ = ["Simulation"]
