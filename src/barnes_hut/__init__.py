"""
barnes-hut: Planar gravitational N-body simulation with a Barnes-Hut quadtree.

Each step rebuilds a quadtree over the particle positions, aggregates mass
bottom-up, evaluates softened gravitational accelerations with the
opening-angle criterion, and advances the particles with a fixed time step.

Components:
- spatial: Arena quadtree (QuadTree, QuadTreeNode)
- force: Barnes-Hut evaluator, softened force law, exact reference
- integrate: Semi-implicit Euler (and trapezoidal) integrator
- simulation: The step loop and read-only snapshots
- distributions: Disc and striated-disc initial conditions
- metrics: Momentum and energy diagnostics
"""

__version__ = "0.1.0"

from .config import SimulationConfig, load_config
from .distributions import generate, register_distribution

# Force computation
from .force import ForceEvaluator, direct_accelerations, softened_acceleration
from .integrate import Integrator

# Diagnostics
from .metrics import (
    angular_momentum,
    center_of_mass,
    energy_summary,
    kinetic_energy,
    potential_energy,
    total_energy,
    total_mass,
    total_momentum,
)
from .particles import ParticleStore, Snapshot
from .simulation import Simulation

# Spatial data structures
from .spatial import Body, QuadTree, QuadTreeNode
from .types import (
    Event,
    EventType,
    InitialDistribution,
    IntegrationScheme,
    NodeKind,
    Particle,
    SimulationState,
)

# Validation utilities
from .validation import (
    InvalidConfigurationError,
    InvalidGeometryError,
    NumericalInstabilityError,
    SimulationError,
)
from .vector import Vec2

__all__ = [
    # Version
    "__version__",
    # Configuration
    "SimulationConfig",
    "load_config",
    # Shared types
    "Vec2",
    "Particle",
    "EventType",
    "Event",
    "SimulationState",
    "InitialDistribution",
    "IntegrationScheme",
    "NodeKind",
    # Core pipeline
    "ParticleStore",
    "Snapshot",
    "QuadTree",
    "QuadTreeNode",
    "Body",
    "ForceEvaluator",
    "Integrator",
    "Simulation",
    "softened_acceleration",
    "direct_accelerations",
    # Initial conditions
    "generate",
    "register_distribution",
    # Metrics
    "total_mass",
    "center_of_mass",
    "total_momentum",
    "angular_momentum",
    "kinetic_energy",
    "potential_energy",
    "total_energy",
    "energy_summary",
    # Errors
    "SimulationError",
    "InvalidConfigurationError",
    "InvalidGeometryError",
    "NumericalInstabilityError",
]
