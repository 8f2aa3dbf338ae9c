"""
Initial particle distributions.

Generators turn a SimulationConfig into a seeded ParticleStore. They only
produce arrays; they take no part in force computation.

- disc: a heavy central body (index 0) surrounded by unit-mass particles
  on circular orbits at uniformly random radius and angle
- striation_min / striation_med / striation_max: the same disc with radii
  snapped to 3, 6 or 12 concentric bands
- custom_seed: no generator; the caller supplies the arrays
"""

from __future__ import annotations

import math
import warnings
from typing import Callable, Dict

import numpy as np

from .config import SimulationConfig
from .particles import ParticleStore
from .types import InitialDistribution
from .validation import InvalidConfigurationError

DistributionGenerator = Callable[[SimulationConfig], ParticleStore]

STRIATION_BANDS = {
    InitialDistribution.STRIATION_MIN: 3,
    InitialDistribution.STRIATION_MED: 6,
    InitialDistribution.STRIATION_MAX: 12,
}

BAND_JITTER = 0.05
"""Radial jitter of striation bands, as a fraction of the band spacing."""

_REGISTRY: Dict[InitialDistribution, DistributionGenerator] = {}


def register_distribution(kind: InitialDistribution, generator: DistributionGenerator) -> None:
    """Register (or replace) the generator used for a distribution kind."""
    _REGISTRY[kind] = generator


def generate(config: SimulationConfig) -> ParticleStore:
    """
    Create the initial particle store for a configuration.

    Raises:
        InvalidConfigurationError: For custom_seed, or a kind with no
            registered generator
    """
    kind = config.initial_distribution
    if kind is InitialDistribution.CUSTOM_SEED:
        raise InvalidConfigurationError(
            "initial_distribution 'custom_seed' requires caller-supplied particle arrays"
        )
    try:
        generator = _REGISTRY[kind]
    except KeyError:
        raise InvalidConfigurationError(f"No generator registered for {kind.value!r}") from None

    store = generator(config)
    if store.count != config.particle_count:
        raise InvalidConfigurationError(
            f"Generator for {kind.value!r} produced {store.count} particles, "
            f"expected {config.particle_count}"
        )
    return store


def disc(config: SimulationConfig) -> ParticleStore:
    """Central body plus a uniformly filled annulus on circular orbits."""
    rng = np.random.default_rng(config.random_seed)
    inner, outer = config.disc_radii
    orbiting = _orbiting_count(config)
    radii = rng.uniform(inner, outer, size=orbiting)
    return _disc_store(config, rng, radii)


def striated_disc(config: SimulationConfig) -> ParticleStore:
    """Disc whose particles sit on a fixed number of concentric bands."""
    rng = np.random.default_rng(config.random_seed)
    bands = STRIATION_BANDS[config.initial_distribution]
    inner, outer = config.disc_radii
    orbiting = _orbiting_count(config)

    band_radii = np.linspace(inner, outer, bands + 2)[1:-1]
    spacing = (outer - inner) / (bands + 1)
    radii = band_radii[rng.integers(0, bands, size=orbiting)]
    radii = radii + rng.uniform(-BAND_JITTER, BAND_JITTER, size=orbiting) * spacing
    return _disc_store(config, rng, radii)


def _orbiting_count(config: SimulationConfig) -> int:
    if config.central_mass > 0:
        return config.particle_count - 1
    return config.particle_count


def _disc_store(config: SimulationConfig, rng: np.random.Generator, radii: np.ndarray) -> ParticleStore:
    angles = rng.uniform(-math.pi, math.pi, size=radii.shape[0])
    cos_t = np.cos(angles)
    sin_t = np.sin(angles)

    positions = np.column_stack((radii * cos_t, radii * sin_t))
    if config.central_mass > 0:
        speed = np.sqrt(config.gravitational_constant * config.central_mass / np.maximum(radii, 1e-12))
    else:
        speed = np.zeros_like(radii)
    # Counter-clockwise, perpendicular to the radius
    velocities = np.column_stack((-speed * sin_t, speed * cos_t))
    masses = np.ones(radii.shape[0], dtype=np.float64)

    if config.central_mass > 0:
        if config.particle_count == 1:
            warnings.warn("particle_count=1 leaves only the central body", stacklevel=3)
        positions = np.vstack((np.zeros((1, 2)), positions))
        velocities = np.vstack((np.zeros((1, 2)), velocities))
        masses = np.concatenate(([config.central_mass], masses))

    return ParticleStore.from_arrays(positions, velocities, masses)


register_distribution(InitialDistribution.DISC, disc)
for _kind in STRIATION_BANDS:
    register_distribution(_kind, striated_disc)


__all__ = [
    "DistributionGenerator",
    "STRIATION_BANDS",
    "disc",
    "generate",
    "register_distribution",
    "striated_disc",
]
