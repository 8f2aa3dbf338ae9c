"""
Barnes-Hut force evaluation.

For each target particle the quadtree is walked from the root:

- EMPTY nodes, and leaves holding only the target, contribute nothing
- LEAF nodes contribute the direct softened force of each body they hold
- INTERNAL nodes are treated as one pseudo-body at their center of mass
  when size / distance < theta, otherwise their four children are visited

Evaluation only reads the sealed tree and the positions, and each particle
writes only its own output row, so particles can be evaluated
concurrently without locks.
"""

from __future__ import annotations

import logging
import math
from concurrent.futures import Executor
from typing import Optional, Tuple

import numpy as np

from ..config import SimulationConfig
from ..particles import ParticleStore
from ..spatial.quadtree import QuadTree
from ..types import NodeKind
from ..validation import validate_non_negative
from .direct import softened_acceleration

logger = logging.getLogger(__name__)

MIN_DISTANCE = 1e-12
"""Below this distance to a node's center of mass, the node is always opened."""


class ForceEvaluator:
    """
    Per-particle acceleration from a sealed quadtree.

    Usage:
        evaluator = ForceEvaluator(config)
        tree = QuadTree.build(store.positions, store.masses)
        acc = evaluator.accelerations(tree, store.positions)

    The theta parameter controls the accuracy/speed tradeoff:
    - theta -> 0: Exact calculation (every node is opened)
    - theta = 0.5: Good balance
    - theta = 1.0+: Fast but less accurate
    """

    def __init__(self, config: SimulationConfig, opening_angle: Optional[float] = None):
        """
        Args:
            config: Supplies G, epsilon, theta and the worker count
            opening_angle: Overrides ``config.opening_angle``. Unlike the
                config value it may be 0, which opens every node and gives
                the exact pairwise result.
        """
        if opening_angle is None:
            opening_angle = config.opening_angle
        self._theta = validate_non_negative("opening_angle", opening_angle)
        self._g = config.gravitational_constant
        self._eps_sq = config.softening_sq
        self._workers = config.workers

    @property
    def theta(self) -> float:
        return self._theta

    def acceleration(
        self,
        tree: QuadTree,
        index: int,
        position: Optional[Tuple[float, float]] = None,
    ) -> Tuple[float, float]:
        """
        Net acceleration on one particle.

        Args:
            tree: Sealed tree of the current step
            index: Particle index of the target (excluded as a source)
            position: Target position; defaults to the body stored in the tree

        Returns:
            (ax, ay)
        """
        if position is None:
            body = tree.body(index)
            x, y = body.x, body.y
        else:
            x, y = float(position[0]), float(position[1])
        return self._accumulate(tree, 0, index, x, y)

    def _accumulate(
        self,
        tree: QuadTree,
        node_id: int,
        index: int,
        x: float,
        y: float,
    ) -> Tuple[float, float]:
        """Recursively sum the contribution of the subtree rooted at node_id."""
        node = tree.node(node_id)

        if node.kind is NodeKind.EMPTY:
            return 0.0, 0.0

        if node.kind is NodeKind.LEAF:
            ax, ay = 0.0, 0.0
            for idx in node.particles:
                if idx == index:
                    continue
                body = tree.body(idx)
                fx, fy = softened_acceleration(body.x - x, body.y - y, body.mass, self._g, self._eps_sq)
                ax += fx
                ay += fy
            return ax, ay

        dx = node.center_of_mass_x - x
        dy = node.center_of_mass_y - y
        dist = math.sqrt(dx * dx + dy * dy)

        # Barnes-Hut criterion: s/d < theta, written as s < theta * d
        if dist >= MIN_DISTANCE and node.size < self._theta * dist:
            return softened_acceleration(dx, dy, node.total_mass, self._g, self._eps_sq)

        # Node is too close - recurse into children
        ax, ay = 0.0, 0.0
        assert node.children is not None
        for child_id in node.children:
            cax, cay = self._accumulate(tree, child_id, index, x, y)
            ax += cax
            ay += cay
        return ax, ay

    def accelerations(
        self,
        tree: QuadTree,
        positions: np.ndarray,
        executor: Optional[Executor] = None,
    ) -> np.ndarray:
        """
        Accelerations for every particle.

        Args:
            tree: Sealed tree built from ``positions``
            positions: (N, 2) positions, row i being particle i
            executor: Pool used to evaluate chunks of particles in parallel.
                Ignored when the evaluator was configured with one worker.

        Returns:
            New (N, 2) array of accelerations
        """
        if not tree.sealed:
            raise RuntimeError("Tree must be sealed (compute_mass_distribution) before evaluation")

        n = positions.shape[0]
        out = np.zeros((n, 2), dtype=np.float64)
        coords = positions.tolist()

        def evaluate(start: int, stop: int) -> None:
            for i in range(start, stop):
                x, y = coords[i]
                out[i] = self._accumulate(tree, 0, i, x, y)

        if executor is None or self._workers <= 1 or n < 2:
            evaluate(0, n)
            return out

        bounds = chunk_bounds(n, self._workers * 4)
        futures = [executor.submit(evaluate, start, stop) for start, stop in bounds]
        # Every chunk must finish before the caller starts integrating
        for future in futures:
            future.result()
        logger.debug("Evaluated %d particles in %d chunks", n, len(bounds))
        return out

    def __call__(self, tree: QuadTree, store: ParticleStore, executor: Optional[Executor] = None) -> np.ndarray:
        return self.accelerations(tree, store.positions, executor=executor)


def chunk_bounds(n: int, chunks: int) -> list[Tuple[int, int]]:
    """Split range(n) into at most ``chunks`` contiguous (start, stop) pairs."""
    chunks = max(1, min(chunks, n))
    edges = np.linspace(0, n, chunks + 1).astype(int).tolist()
    return [(a, b) for a, b in zip(edges[:-1], edges[1:]) if b > a]


__all__ = ["ForceEvaluator", "MIN_DISTANCE", "chunk_bounds"]
