"""
Input validation utilities for the simulation.

Provides the exception taxonomy and centralized validation functions for
configuration values and particle arrays. Raises descriptive exceptions on
invalid input.
"""

from __future__ import annotations

import math
from typing import Any

import numpy as np


class SimulationError(Exception):
    """Base exception for all simulation errors."""

    pass


class InvalidConfigurationError(SimulationError, ValueError):
    """Raised when configuration values or initial arrays are invalid."""

    pass


class InvalidGeometryError(SimulationError, ValueError):
    """Raised when a particle position cannot be placed in the quadtree."""

    pass


class NumericalInstabilityError(SimulationError, ArithmeticError):
    """Raised when integration produces non-finite positions or velocities."""

    pass


def validate_positive(name: str, value: Any) -> float:
    """
    Validate a strictly positive, finite real value.

    Args:
        name: Parameter name used in the error message
        value: Value to check

    Returns:
        Value as float

    Raises:
        InvalidConfigurationError: If value is not a finite number > 0
    """
    value = _as_float(name, value)
    if not value > 0:
        raise InvalidConfigurationError(f"{name} must be positive, got {value}")
    return value


def validate_non_negative(name: str, value: Any) -> float:
    """
    Validate a non-negative, finite real value.

    Raises:
        InvalidConfigurationError: If value is not a finite number >= 0
    """
    value = _as_float(name, value)
    if value < 0:
        raise InvalidConfigurationError(f"{name} must be non-negative, got {value}")
    return value


def validate_count(name: str, value: Any, minimum: int = 1) -> int:
    """
    Validate an integer count.

    Raises:
        InvalidConfigurationError: If value is not an integer >= minimum
    """
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise InvalidConfigurationError(f"{name} must be an integer, got {value!r}")
    if value < minimum:
        raise InvalidConfigurationError(f"{name} must be >= {minimum}, got {value}")
    return int(value)


def validate_vectors(name: str, values: Any, count: int | None = None) -> np.ndarray:
    """
    Validate and copy an (N, 2) array of finite coordinates.

    Args:
        name: Array name used in error messages
        values: Nested sequence or array of shape (N, 2)
        count: Expected N, if known

    Returns:
        New float64 array of shape (N, 2)

    Raises:
        InvalidConfigurationError: On wrong shape or non-finite entries
    """
    try:
        arr = np.array(values, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise InvalidConfigurationError(f"{name} must be numeric: {exc}") from exc

    if arr.ndim != 2 or arr.shape[1] != 2:
        raise InvalidConfigurationError(f"{name} must have shape (N, 2), got {arr.shape}")
    if count is not None and arr.shape[0] != count:
        raise InvalidConfigurationError(
            f"{name} has {arr.shape[0]} rows, expected {count}"
        )
    bad = ~np.isfinite(arr).all(axis=1)
    if bad.any():
        first = int(np.flatnonzero(bad)[0])
        raise InvalidConfigurationError(f"{name}[{first}] is not finite: {arr[first].tolist()}")
    return arr


def validate_masses(values: Any, count: int) -> np.ndarray:
    """
    Validate and copy an (N,) array of positive, finite masses.

    Raises:
        InvalidConfigurationError: On wrong shape or non-positive entries
    """
    try:
        arr = np.array(values, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise InvalidConfigurationError(f"masses must be numeric: {exc}") from exc

    if arr.shape != (count,):
        raise InvalidConfigurationError(f"masses must have shape ({count},), got {arr.shape}")
    bad = ~(np.isfinite(arr) & (arr > 0))
    if bad.any():
        first = int(np.flatnonzero(bad)[0])
        raise InvalidConfigurationError(
            f"masses must be positive and finite, masses[{first}] = {arr[first]}"
        )
    return arr


def check_finite_positions(positions: np.ndarray) -> None:
    """
    Check that every position is finite before tree construction.

    Raises:
        InvalidGeometryError: Naming the first offending particle
    """
    bad = ~np.isfinite(positions).all(axis=1)
    if bad.any():
        first = int(np.flatnonzero(bad)[0])
        raise InvalidGeometryError(
            f"Particle {first} has non-finite position {positions[first].tolist()}"
        )


def _as_float(name: str, value: Any) -> float:
    if isinstance(value, bool):
        raise InvalidConfigurationError(f"{name} must be a number, got {value!r}")
    try:
        result = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidConfigurationError(f"{name} must be a number, got {value!r}") from exc
    if not math.isfinite(result):
        raise InvalidConfigurationError(f"{name} must be finite, got {result}")
    return result


__all__ = [
    "SimulationError",
    "InvalidConfigurationError",
    "InvalidGeometryError",
    "NumericalInstabilityError",
    "validate_positive",
    "validate_non_negative",
    "validate_count",
    "validate_vectors",
    "validate_masses",
    "check_finite_positions",
]
