"""
Simulation configuration.

``SimulationConfig`` is an immutable context object passed explicitly to
the tree builder, force evaluator and integrator, so independent
simulations never share process-wide state. Every field is validated on
construction.
"""

from __future__ import annotations

import dataclasses
import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Union

from .types import InitialDistribution, IntegrationScheme
from .validation import (
    InvalidConfigurationError,
    validate_count,
    validate_non_negative,
    validate_positive,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 48
"""Quadtree depth cap; particles closer than side / 2**48 share a leaf."""

DEFAULT_PADDING = 1e-3
"""Padding of the per-step bounding square, as a fraction of its side."""


@dataclass(frozen=True)
class SimulationConfig:
    """
    Immutable simulation parameters.

    Attributes:
        time_step: Integration step dt (> 0)
        softening_length: Softening length epsilon (>= 0)
        opening_angle: Barnes-Hut threshold theta (> 0). Smaller is more
            accurate; values near 0 degrade to the exact O(n^2) sum.
        gravitational_constant: G (> 0)
        particle_count: Number of particles N (>= 1)
        initial_distribution: Preset used to seed particles
        random_seed: Seed for the distribution generators
        padding: Relative padding of the bounding square (>= 0)
        max_depth: Quadtree depth cap (>= 1)
        workers: Threads used for force evaluation and integration (>= 1)
        integration_scheme: Velocity/position update rule
        central_mass: Mass of the central body placed by disc presets (>= 0)
        disc_radii: (inner, outer) radius range used by disc presets
    """

    time_step: float = 1.0 / 60.0
    softening_length: float = 10.0
    opening_angle: float = 0.6
    gravitational_constant: float = 1.0
    particle_count: int = 1000
    initial_distribution: InitialDistribution = InitialDistribution.DISC
    random_seed: Optional[int] = None
    padding: float = DEFAULT_PADDING
    max_depth: int = DEFAULT_MAX_DEPTH
    workers: int = 1
    integration_scheme: IntegrationScheme = IntegrationScheme.SEMI_IMPLICIT_EULER
    central_mass: float = 1e4
    disc_radii: tuple[float, float] = field(default=(20.0, 100.0))

    def __post_init__(self) -> None:
        # Frozen dataclass: normalized values are written back via object.__setattr__
        set_ = object.__setattr__
        set_(self, "time_step", validate_positive("time_step", self.time_step))
        set_(
            self,
            "softening_length",
            validate_non_negative("softening_length", self.softening_length),
        )
        set_(self, "opening_angle", validate_positive("opening_angle", self.opening_angle))
        set_(
            self,
            "gravitational_constant",
            validate_positive("gravitational_constant", self.gravitational_constant),
        )
        set_(self, "particle_count", validate_count("particle_count", self.particle_count))
        set_(
            self,
            "initial_distribution",
            _coerce_enum(InitialDistribution, "initial_distribution", self.initial_distribution),
        )
        if self.random_seed is not None:
            set_(self, "random_seed", validate_count("random_seed", self.random_seed, minimum=0))
        set_(self, "padding", validate_non_negative("padding", self.padding))
        set_(self, "max_depth", validate_count("max_depth", self.max_depth))
        set_(self, "workers", validate_count("workers", self.workers))
        set_(
            self,
            "integration_scheme",
            _coerce_enum(IntegrationScheme, "integration_scheme", self.integration_scheme),
        )
        set_(self, "central_mass", validate_non_negative("central_mass", self.central_mass))

        try:
            inner, outer = self.disc_radii
        except (TypeError, ValueError) as exc:
            raise InvalidConfigurationError(
                f"disc_radii must be a pair (inner, outer), got {self.disc_radii!r}"
            ) from exc
        inner = validate_non_negative("disc_radii[0]", inner)
        outer = validate_positive("disc_radii[1]", outer)
        if inner >= outer:
            raise InvalidConfigurationError(
                f"disc_radii inner radius must be below outer radius, got ({inner}, {outer})"
            )
        set_(self, "disc_radii", (inner, outer))

    @property
    def softening_sq(self) -> float:
        """epsilon squared, as used by the force law."""
        return self.softening_length * self.softening_length

    def replace(self, **changes: Any) -> SimulationConfig:
        """Return a validated copy with some fields changed."""
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Plain-data representation (enums by value) suitable for JSON."""
        data = dataclasses.asdict(self)
        data["initial_distribution"] = self.initial_distribution.value
        data["integration_scheme"] = self.integration_scheme.value
        data["disc_radii"] = list(self.disc_radii)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SimulationConfig:
        """
        Build a config from plain data.

        Enum fields accept members, values ("disc") or names ("DISC").

        Raises:
            InvalidConfigurationError: On unknown keys or invalid values
        """
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise InvalidConfigurationError(f"Unknown configuration keys: {', '.join(unknown)}")

        values = dict(data)
        if "disc_radii" in values and isinstance(values["disc_radii"], list):
            values["disc_radii"] = tuple(values["disc_radii"])
        return cls(**values)


def load_config(path: Union[str, os.PathLike[str]]) -> SimulationConfig:
    """
    Load a configuration from a JSON file.

    The file holds a single object whose keys are ``SimulationConfig``
    field names. Missing keys take their defaults.

    Raises:
        InvalidConfigurationError: If the file is not valid JSON or holds
            invalid values
        OSError: If the file cannot be read
    """
    logger.info("Loading configuration from %s", path)
    with open(path, encoding="utf-8") as f:
        try:
            data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise InvalidConfigurationError(f"{path}: invalid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise InvalidConfigurationError(f"{path}: expected a JSON object, got {type(data).__name__}")
    return SimulationConfig.from_dict(data)


def _coerce_enum(enum_cls: Any, name: str, value: Any) -> Any:
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        try:
            return enum_cls(value)
        except ValueError:
            pass
        try:
            return enum_cls[value.upper()]
        except KeyError:
            pass
    valid = ", ".join(member.value for member in enum_cls)
    raise InvalidConfigurationError(f"{name} must be one of {valid}, got {value!r}")


__all__ = [
    "DEFAULT_MAX_DEPTH",
    "DEFAULT_PADDING",
    "SimulationConfig",
    "load_config",
]
