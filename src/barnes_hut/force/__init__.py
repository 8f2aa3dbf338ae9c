"""
Gravitational force computation.

This module provides:
- ForceEvaluator: Barnes-Hut tree traversal with the opening-angle criterion
- softened_acceleration: The softened point-mass force law
- direct_accelerations: Exact O(n^2) pairwise reference
"""

from .direct import direct_accelerations, softened_acceleration
from .evaluator import MIN_DISTANCE, ForceEvaluator, chunk_bounds

__all__ = [
    "ForceEvaluator",
    "MIN_DISTANCE",
    "chunk_bounds",
    "direct_accelerations",
    "softened_acceleration",
]
