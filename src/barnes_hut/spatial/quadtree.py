"""
Quadtree implementation for Barnes-Hut force approximation.

The quadtree recursively subdivides a square region of the plane into
quadrants, enabling O(n log n) approximate n-body force calculations.

Nodes live in a flat arena (a list) and refer to their children by arena
index. A tree is built once per step, sealed after its mass distribution
is computed, and then only read.
"""

from __future__ import annotations

import logging
import math
from dataclasses import FrozenInstanceError, dataclass
from typing import Any, Iterator, List, Optional, Tuple

import numpy as np

from ..config import DEFAULT_MAX_DEPTH, DEFAULT_PADDING
from ..particles import bounding_square
from ..types import Bounds, NodeKind
from ..validation import InvalidGeometryError, check_finite_positions

logger = logging.getLogger(__name__)

# Quadrant indices
LOWER_LEFT = 0
LOWER_RIGHT = 1
UPPER_LEFT = 2
UPPER_RIGHT = 3


@dataclass
class Body:
    """A particle as seen by the tree: position, mass and store index."""

    x: float
    y: float
    mass: float = 1.0
    index: int = -1


@dataclass
class QuadTreeNode:
    """
    A node in the quadtree arena.

    Attributes:
        min_x, min_y: Lower-left corner of this square region
        size: Side length of the region
        depth: Distance from the root (root = 0)
        kind: EMPTY, LEAF or INTERNAL
        particles: Particle indices held by a leaf. More than one only when
            bodies were merged (coincident positions or depth cap).
        children: Arena indices of the four quadrants if INTERNAL, ordered
            [lower-left, lower-right, upper-left, upper-right]
        total_mass: Total mass of bodies in this subtree
        center_of_mass_x/y: Center of mass of bodies in this subtree

    Nodes become read-only when their tree is sealed.
    """

    min_x: float
    min_y: float
    size: float
    depth: int = 0
    kind: NodeKind = NodeKind.EMPTY

    particles: Tuple[int, ...] = ()
    children: Optional[Tuple[int, int, int, int]] = None

    # Aggregated properties
    total_mass: float = 0.0
    center_of_mass_x: float = 0.0
    center_of_mass_y: float = 0.0

    def __setattr__(self, name: str, value: Any) -> None:
        if self.__dict__.get("_sealed", False):
            raise FrozenInstanceError(f"cannot assign to field {name!r}; the tree is sealed")
        object.__setattr__(self, name, value)

    def is_leaf(self) -> bool:
        """True if this node holds bodies directly."""
        return self.kind is NodeKind.LEAF

    def is_empty(self) -> bool:
        """True if this node contains no bodies."""
        return self.kind is NodeKind.EMPTY

    def is_internal(self) -> bool:
        return self.kind is NodeKind.INTERNAL

    @property
    def mid_x(self) -> float:
        return self.min_x + self.size / 2

    @property
    def mid_y(self) -> float:
        return self.min_y + self.size / 2

    def contains(self, x: float, y: float) -> bool:
        """Check if point (x, y) is within this node's region (edges included)."""
        return (
            self.min_x <= x <= self.min_x + self.size
            and self.min_y <= y <= self.min_y + self.size
        )

    def get_quadrant(self, x: float, y: float) -> int:
        """
        Get quadrant index for a point.

        Points on a midline go to the right/upper side.

        Returns:
            0=lower-left, 1=lower-right, 2=upper-left, 3=upper-right
        """
        right = x >= self.mid_x
        upper = y >= self.mid_y
        return (2 if upper else 0) + (1 if right else 0)


class QuadTree:
    """
    Barnes-Hut quadtree over the particles of one step.

    For distant clusters, the force evaluator treats a whole subtree as a
    single body at its center of mass, reducing the per-step cost from
    O(n^2) to O(n log n).

    Usage:
        tree = QuadTree.build(positions, masses)

        # or, by hand
        tree = QuadTree(bounds=(0.0, 0.0, 100.0))
        for i, (x, y) in enumerate(points):
            tree.insert(Body(x, y, mass=1.0, index=i))
        tree.compute_mass_distribution()

    Once ``compute_mass_distribution()`` has run, the tree is sealed:
    further inserts raise ``RuntimeError`` and assigning to a node raises
    ``dataclasses.FrozenInstanceError``.
    """

    def __init__(self, bounds: Bounds, max_depth: int = DEFAULT_MAX_DEPTH):
        """
        Initialize an empty quadtree.

        Args:
            bounds: (min_x, min_y, side) of the root square
            max_depth: Depth at which leaves stop splitting and merge bodies
        """
        min_x, min_y, side = bounds
        if not (math.isfinite(min_x) and math.isfinite(min_y) and math.isfinite(side)) or side <= 0:
            raise InvalidGeometryError(f"Invalid root bounds {bounds}")

        self._nodes: List[QuadTreeNode] = [QuadTreeNode(float(min_x), float(min_y), float(side))]
        self._bodies: dict[int, Body] = {}
        self._max_depth = int(max_depth)
        self._max_depth_reached = 0
        self._merged: set[int] = set()
        self._sealed = False

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @classmethod
    def build(
        cls,
        positions: np.ndarray,
        masses: np.ndarray,
        padding: float = DEFAULT_PADDING,
        max_depth: int = DEFAULT_MAX_DEPTH,
        bounds: Optional[Bounds] = None,
    ) -> QuadTree:
        """
        Build a sealed quadtree from particle arrays.

        Args:
            positions: (N, 2) positions
            masses: (N,) masses
            padding: Relative padding of the computed bounding square
            max_depth: Depth cap
            bounds: Explicit (min_x, min_y, side); computed when omitted

        Returns:
            QuadTree with all bodies inserted and mass computed

        Raises:
            InvalidGeometryError: If a position is non-finite, or lies
                outside explicit bounds
        """
        check_finite_positions(positions)
        if masses.shape != (positions.shape[0],):
            raise InvalidGeometryError(
                f"masses must have shape ({positions.shape[0]},) to match positions, got {masses.shape}"
            )

        explicit = bounds is not None
        if bounds is None:
            bounds = bounding_square(positions, padding)
        tree = cls(bounds, max_depth=max_depth)

        root = tree.root
        for i, ((x, y), m) in enumerate(zip(positions.tolist(), masses.tolist())):
            if explicit and not root.contains(x, y):
                raise InvalidGeometryError(
                    f"Particle {i} at ({x}, {y}) lies outside tree bounds {bounds}"
                )
            tree.insert(Body(x, y, mass=m, index=i))

        tree.compute_mass_distribution()
        return tree

    def insert(self, body: Body) -> None:
        """Insert a body into the quadtree."""
        if self._sealed:
            raise RuntimeError("QuadTree is sealed; build a new tree instead")
        if not (math.isfinite(body.x) and math.isfinite(body.y)):
            raise InvalidGeometryError(
                f"Particle {body.index} has non-finite position ({body.x}, {body.y})"
            )
        if body.index in self._bodies:
            raise ValueError(f"Particle {body.index} is already in the tree")
        self._bodies[body.index] = body
        self._insert_into(0, body)

    def _insert_into(self, node_id: int, body: Body) -> None:
        """Recursively insert body into subtree rooted at node_id."""
        node = self._nodes[node_id]

        if node.kind is NodeKind.EMPTY:
            node.kind = NodeKind.LEAF
            node.particles = (body.index,)
            return

        if node.kind is NodeKind.LEAF:
            first = self._bodies[node.particles[0]]
            if node.depth >= self._max_depth or (first.x == body.x and first.y == body.y):
                # Merge instead of splitting forever
                node.particles = node.particles + (body.index,)
                self._merged.add(node_id)
                return

            existing = node.particles
            self._merged.discard(node_id)
            self._split(node_id)
            for idx in existing:
                self._insert_into_child(node_id, self._bodies[idx])

        self._insert_into_child(node_id, body)

    def _split(self, node_id: int) -> None:
        """Turn a leaf into an internal node with four empty children."""
        node = self._nodes[node_id]
        half = node.size / 2
        depth = node.depth + 1
        first = len(self._nodes)
        for quadrant in (LOWER_LEFT, LOWER_RIGHT, UPPER_LEFT, UPPER_RIGHT):
            cx = node.min_x + (half if quadrant & 1 else 0.0)
            cy = node.min_y + (half if quadrant & 2 else 0.0)
            self._nodes.append(QuadTreeNode(cx, cy, half, depth=depth))
        node.kind = NodeKind.INTERNAL
        node.particles = ()
        node.children = (first, first + 1, first + 2, first + 3)
        if depth > self._max_depth_reached:
            self._max_depth_reached = depth

    def _insert_into_child(self, node_id: int, body: Body) -> None:
        """Insert body into the appropriate child of node_id."""
        node = self._nodes[node_id]
        assert node.children is not None
        self._insert_into(node.children[node.get_quadrant(body.x, body.y)], body)

    def compute_mass_distribution(self) -> None:
        """
        Compute total mass and center of mass for all nodes, then seal.

        Children are always appended after their parent, so walking the
        arena backwards is a post-order traversal.
        """
        for node in reversed(self._nodes):
            if node.kind is NodeKind.LEAF:
                total_mass = 0.0
                weighted_x = 0.0
                weighted_y = 0.0
                for idx in node.particles:
                    body = self._bodies[idx]
                    total_mass += body.mass
                    weighted_x += body.x * body.mass
                    weighted_y += body.y * body.mass
            elif node.kind is NodeKind.INTERNAL:
                assert node.children is not None
                total_mass = 0.0
                weighted_x = 0.0
                weighted_y = 0.0
                for child_id in node.children:
                    child = self._nodes[child_id]
                    total_mass += child.total_mass
                    weighted_x += child.center_of_mass_x * child.total_mass
                    weighted_y += child.center_of_mass_y * child.total_mass
            else:
                continue

            node.total_mass = total_mass
            if total_mass > 0:
                node.center_of_mass_x = weighted_x / total_mass
                node.center_of_mass_y = weighted_y / total_mass

        if self._merged:
            logger.debug(
                "Merged bodies into %d leaves (max_depth=%d)", len(self._merged), self._max_depth
            )
        for node in self._nodes:
            object.__setattr__(node, "_sealed", True)
        self._sealed = True

    # -------------------------------------------------------------------------
    # Read access
    # -------------------------------------------------------------------------

    @property
    def root(self) -> QuadTreeNode:
        return self._nodes[0]

    @property
    def nodes(self) -> Tuple[QuadTreeNode, ...]:
        """All arena entries; index 0 is the root."""
        return tuple(self._nodes)

    def node(self, node_id: int) -> QuadTreeNode:
        return self._nodes[node_id]

    def body(self, index: int) -> Body:
        """The body inserted with the given particle index."""
        return self._bodies[index]

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @property
    def body_count(self) -> int:
        return len(self._bodies)

    @property
    def leaf_count(self) -> int:
        return sum(1 for node in self._nodes if node.kind is NodeKind.LEAF)

    @property
    def merged_leaf_count(self) -> int:
        """Leaves holding more than one body."""
        return len(self._merged)

    @property
    def max_depth(self) -> int:
        return self._max_depth

    @property
    def max_depth_reached(self) -> int:
        return self._max_depth_reached

    @property
    def sealed(self) -> bool:
        return self._sealed

    def iter_leaves(self) -> Iterator[QuadTreeNode]:
        """Iterate non-empty leaves in arena order."""
        for node in self._nodes:
            if node.kind is NodeKind.LEAF:
                yield node

    def __repr__(self) -> str:
        return (
            f"QuadTree(bodies={self.body_count}, nodes={self.node_count}, "
            f"depth={self._max_depth_reached})"
        )


__all__ = [
    "Body",
    "QuadTree",
    "QuadTreeNode",
    "LOWER_LEFT",
    "LOWER_RIGHT",
    "UPPER_LEFT",
    "UPPER_RIGHT",
]
