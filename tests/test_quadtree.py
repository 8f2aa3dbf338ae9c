"""Tests for the arena QuadTree and its mass aggregation."""

import math
from dataclasses import FrozenInstanceError

import numpy as np
import pytest

from barnes_hut import InvalidGeometryError, NodeKind
from barnes_hut.spatial.quadtree import Body, QuadTree, QuadTreeNode


def _random_tree(n=200, seed=7, max_depth=48):
    rng = np.random.default_rng(seed)
    positions = rng.uniform(-50.0, 50.0, size=(n, 2))
    masses = rng.uniform(0.5, 2.0, size=n)
    return QuadTree.build(positions, masses, max_depth=max_depth), positions, masses


class TestBody:
    """Tests for the Body dataclass."""

    def test_body_creation(self):
        """Test basic body creation."""
        body = Body(x=10.0, y=20.0, mass=1.5, index=5)
        assert body.x == 10.0
        assert body.y == 20.0
        assert body.mass == 1.5
        assert body.index == 5

    def test_body_defaults(self):
        """Test body default values."""
        body = Body(x=0.0, y=0.0)
        assert body.mass == 1.0
        assert body.index == -1


class TestQuadTreeNode:
    """Tests for QuadTreeNode."""

    def test_node_creation(self):
        """Test node creation with bounds."""
        node = QuadTreeNode(min_x=0.0, min_y=0.0, size=100.0)
        assert node.mid_x == 50.0
        assert node.mid_y == 50.0
        assert node.depth == 0
        assert node.is_empty()
        assert not node.is_leaf()
        assert not node.is_internal()

    def test_contains(self):
        """Test point containment check."""
        node = QuadTreeNode(min_x=0.0, min_y=0.0, size=100.0)

        assert node.contains(25.0, 25.0)
        assert node.contains(50.0, 50.0)

        # Points on boundary
        assert node.contains(0.0, 0.0)
        assert node.contains(100.0, 100.0)

        # Points outside
        assert not node.contains(-1.0, 50.0)
        assert not node.contains(101.0, 50.0)
        assert not node.contains(50.0, -1.0)
        assert not node.contains(50.0, 101.0)

    def test_get_quadrant(self):
        """Test quadrant determination."""
        node = QuadTreeNode(min_x=0.0, min_y=0.0, size=100.0)

        assert node.get_quadrant(25.0, 25.0) == 0  # lower-left
        assert node.get_quadrant(75.0, 25.0) == 1  # lower-right
        assert node.get_quadrant(25.0, 75.0) == 2  # upper-left
        assert node.get_quadrant(75.0, 75.0) == 3  # upper-right

    def test_quadrant_tie_break(self):
        """Points on a midline go to the right/upper quadrant."""
        node = QuadTreeNode(min_x=0.0, min_y=0.0, size=100.0)

        assert node.get_quadrant(50.0, 50.0) == 3
        assert node.get_quadrant(50.0, 10.0) == 1
        assert node.get_quadrant(10.0, 50.0) == 2


class TestQuadTreeInsertion:
    """Tests for QuadTree insertion operations."""

    def test_empty_tree(self):
        """Test empty tree state."""
        tree = QuadTree(bounds=(0.0, 0.0, 100.0))
        assert tree.body_count == 0
        assert tree.node_count == 1
        assert tree.root.is_empty()

    def test_single_body_insertion(self):
        """Test inserting a single body."""
        tree = QuadTree(bounds=(0.0, 0.0, 100.0))
        tree.insert(Body(25.0, 25.0, index=0))

        assert tree.body_count == 1
        assert tree.root.is_leaf()
        assert tree.root.particles == (0,)

    def test_two_body_insertion(self):
        """Test inserting two bodies splits into four children."""
        tree = QuadTree(bounds=(0.0, 0.0, 100.0))
        tree.insert(Body(25.0, 25.0, index=0))
        tree.insert(Body(75.0, 75.0, index=1))

        assert tree.body_count == 2
        assert tree.root.is_internal()
        assert tree.root.children == (1, 2, 3, 4)
        assert tree.node_count == 5

        ll, lr, ul, ur = (tree.node(i) for i in tree.root.children)
        assert ll.particles == (0,)
        assert ur.particles == (1,)
        assert lr.is_empty()
        assert ul.is_empty()

    def test_children_tile_parent(self):
        """Children halve the side and exactly tile their parent."""
        tree, _, _ = _random_tree(n=100)

        for node in tree.nodes:
            if not node.is_internal():
                continue
            half = node.size / 2
            corners = [(tree.node(c).min_x, tree.node(c).min_y) for c in node.children]
            assert corners == [
                (node.min_x, node.min_y),
                (node.min_x + half, node.min_y),
                (node.min_x, node.min_y + half),
                (node.min_x + half, node.min_y + half),
            ]
            for child_id in node.children:
                child = tree.node(child_id)
                assert child.size == half
                assert child.depth == node.depth + 1

    def test_internal_only_when_split(self):
        """Every internal node holds at least two bodies."""
        tree, _, _ = _random_tree(n=100)

        def count(node_id):
            node = tree.node(node_id)
            if node.kind is NodeKind.LEAF:
                return len(node.particles)
            if node.kind is NodeKind.EMPTY:
                return 0
            return sum(count(c) for c in node.children)

        for node_id, node in enumerate(tree.nodes):
            if node.is_internal():
                assert count(node_id) >= 2

    def test_every_body_in_exactly_one_leaf(self):
        """Leaves partition the inserted bodies."""
        tree, _, _ = _random_tree(n=150)

        seen = [idx for leaf in tree.iter_leaves() for idx in leaf.particles]
        assert sorted(seen) == list(range(150))

    def test_duplicate_index_rejected(self):
        """Inserting the same particle index twice raises."""
        tree = QuadTree(bounds=(0.0, 0.0, 100.0))
        tree.insert(Body(1.0, 1.0, index=0))
        with pytest.raises(ValueError, match="already in the tree"):
            tree.insert(Body(2.0, 2.0, index=0))

    def test_insert_after_seal_raises(self):
        """A tree is immutable once its mass distribution is computed."""
        tree = QuadTree(bounds=(0.0, 0.0, 100.0))
        tree.insert(Body(1.0, 1.0, index=0))
        tree.compute_mass_distribution()

        assert tree.sealed
        with pytest.raises(RuntimeError, match="sealed"):
            tree.insert(Body(2.0, 2.0, index=1))

    def test_nodes_read_only_after_seal(self):
        """Sealing also freezes the nodes handed out by the tree."""
        tree = QuadTree(bounds=(0.0, 0.0, 100.0))
        tree.insert(Body(1.0, 1.0, index=0))
        tree.root.total_mass = 7.0
        tree.compute_mass_distribution()

        assert tree.root.total_mass == 1.0
        with pytest.raises(FrozenInstanceError, match="sealed"):
            tree.root.total_mass = 5.0
        with pytest.raises(FrozenInstanceError):
            tree.nodes[0].kind = NodeKind.EMPTY
        assert tree.root.total_mass == 1.0


class TestDegenerateGeometry:
    """Tests for merging, depth cap and invalid positions."""

    def test_coincident_bodies_merge(self):
        """Bodies at identical positions share one leaf."""
        positions = np.array([[1.0, 1.0], [1.0, 1.0], [1.0, 1.0], [5.0, 5.0]])
        masses = np.array([1.0, 2.0, 3.0, 4.0])
        tree = QuadTree.build(positions, masses)

        assert tree.merged_leaf_count == 1
        merged = [leaf for leaf in tree.iter_leaves() if len(leaf.particles) > 1]
        assert len(merged) == 1
        assert merged[0].particles == (0, 1, 2)
        assert merged[0].total_mass == 6.0
        assert tree.root.total_mass == 10.0

    def test_all_bodies_coincident(self):
        """A population at one point is a single merged leaf."""
        positions = np.zeros((5, 2))
        tree = QuadTree.build(positions, np.ones(5))

        assert tree.node_count == 1
        assert tree.root.is_leaf()
        assert tree.root.particles == (0, 1, 2, 3, 4)
        assert tree.root.total_mass == 5.0

    def test_depth_cap_merges(self):
        """Leaves at max_depth absorb further bodies instead of splitting."""
        positions = np.array([[0.0, 0.0], [0.001, 0.0], [0.002, 0.0], [10.0, 10.0]])
        tree = QuadTree.build(positions, np.ones(4), max_depth=2, bounds=(0.0, 0.0, 16.0))

        assert tree.max_depth_reached == 2
        assert tree.merged_leaf_count == 1
        merged = [leaf for leaf in tree.iter_leaves() if len(leaf.particles) > 1]
        assert merged[0].particles == (0, 1, 2)
        assert merged[0].depth == 2
        assert tree.root.total_mass == 4.0

    def test_close_bodies_bounded_depth(self):
        """Nearly coincident bodies never exceed the depth cap."""
        positions = np.array([[0.0, 0.0], [1e-300, 0.0], [1.0, 1.0]])
        tree = QuadTree.build(positions, np.ones(3), max_depth=10)

        assert tree.max_depth_reached <= 10

    def test_nan_position_raises(self):
        """Non-finite positions are rejected before insertion."""
        positions = np.array([[0.0, 0.0], [np.nan, 1.0]])
        with pytest.raises(InvalidGeometryError, match="Particle 1"):
            QuadTree.build(positions, np.ones(2))

    def test_infinite_position_raises(self):
        """Infinite positions are rejected."""
        positions = np.array([[np.inf, 0.0], [1.0, 1.0]])
        with pytest.raises(InvalidGeometryError, match="Particle 0"):
            QuadTree.build(positions, np.ones(2))

    def test_insert_non_finite_body_raises(self):
        """Direct insertion also checks positions."""
        tree = QuadTree(bounds=(0.0, 0.0, 10.0))
        with pytest.raises(InvalidGeometryError):
            tree.insert(Body(math.inf, 1.0, index=0))

    def test_position_outside_explicit_bounds(self):
        """Explicit bounds must contain every particle."""
        positions = np.array([[1.0, 1.0], [20.0, 1.0]])
        with pytest.raises(InvalidGeometryError, match="outside tree bounds"):
            QuadTree.build(positions, np.ones(2), bounds=(0.0, 0.0, 10.0))

    def test_mass_count_mismatch(self):
        """Every position needs exactly one mass."""
        positions = np.array([[0.0, 0.0], [1.0, 0.0], [2.0, 0.0]])
        with pytest.raises(InvalidGeometryError, match=r"masses must have shape \(3,\)"):
            QuadTree.build(positions, np.array([1.0, 1.0]))
        with pytest.raises(InvalidGeometryError):
            QuadTree.build(positions, np.ones((3, 1)))

    def test_invalid_root_bounds(self):
        """Root side must be positive and finite."""
        with pytest.raises(InvalidGeometryError):
            QuadTree(bounds=(0.0, 0.0, 0.0))
        with pytest.raises(InvalidGeometryError):
            QuadTree(bounds=(0.0, 0.0, math.inf))


class TestQuadTreeMassDistribution:
    """Tests for center of mass computation."""

    def test_single_body_mass(self):
        """A single particle gives one leaf carrying its mass."""
        tree = QuadTree.build(np.array([[30.0, 40.0]]), np.array([2.0]))

        assert tree.node_count == 1
        assert tree.root.is_leaf()
        assert tree.root.total_mass == 2.0
        assert tree.root.center_of_mass_x == 30.0
        assert tree.root.center_of_mass_y == 40.0

    def test_two_equal_bodies_mass(self):
        """Test center of mass with two equal-mass bodies."""
        tree = QuadTree(bounds=(0.0, 0.0, 100.0))
        tree.insert(Body(20.0, 50.0, mass=1.0, index=0))
        tree.insert(Body(80.0, 50.0, mass=1.0, index=1))
        tree.compute_mass_distribution()

        assert tree.root.total_mass == 2.0
        assert abs(tree.root.center_of_mass_x - 50.0) < 1e-10
        assert abs(tree.root.center_of_mass_y - 50.0) < 1e-10

    def test_weighted_center_of_mass(self):
        """Test center of mass with different masses."""
        tree = QuadTree(bounds=(0.0, 0.0, 100.0))
        tree.insert(Body(0.0, 0.0, mass=3.0, index=0))
        tree.insert(Body(100.0, 0.0, mass=1.0, index=1))
        tree.compute_mass_distribution()

        # COM = (3*0 + 1*100) / 4 = 25
        assert tree.root.total_mass == 4.0
        assert abs(tree.root.center_of_mass_x - 25.0) < 1e-10

    def test_root_mass_equals_particle_sum(self):
        """Root mass is the sum of all particle masses."""
        tree, positions, masses = _random_tree(n=300)

        assert tree.root.total_mass == pytest.approx(masses.sum(), rel=1e-12)
        com = (positions * masses[:, None]).sum(axis=0) / masses.sum()
        assert tree.root.center_of_mass_x == pytest.approx(com[0], rel=1e-9, abs=1e-9)
        assert tree.root.center_of_mass_y == pytest.approx(com[1], rel=1e-9, abs=1e-9)

    def test_internal_mass_equals_children_sum(self):
        """Every internal node's mass is the sum of its four children."""
        tree, _, _ = _random_tree(n=300)

        for node in tree.nodes:
            if node.is_internal():
                child_sum = sum(tree.node(c).total_mass for c in node.children)
                assert node.total_mass == pytest.approx(child_sum, rel=1e-12)

    def test_empty_nodes_have_no_mass(self):
        """Empty quadrants aggregate to zero mass."""
        tree, _, _ = _random_tree(n=50)

        for node in tree.nodes:
            if node.is_empty():
                assert node.total_mass == 0.0

    def test_rebuild_is_idempotent(self):
        """Building twice from the same positions yields identical aggregates."""
        tree_a, positions, masses = _random_tree(n=250, seed=3)
        tree_b = QuadTree.build(positions, masses)

        assert tree_a.node_count == tree_b.node_count
        for a, b in zip(tree_a.nodes, tree_b.nodes):
            assert a.kind == b.kind
            assert a.particles == b.particles
            assert a.total_mass == b.total_mass
            assert a.center_of_mass_x == b.center_of_mass_x
            assert a.center_of_mass_y == b.center_of_mass_y


class TestQuadTreeBuild:
    """Tests for QuadTree.build bounds handling."""

    def test_computed_bounds_enclose_particles(self):
        """The computed root square contains every particle."""
        tree, positions, _ = _random_tree(n=80)

        for x, y in positions:
            assert tree.root.contains(x, y)

    def test_body_lookup(self):
        """Bodies are retrievable by particle index."""
        positions = np.array([[1.0, 2.0], [3.0, 4.0]])
        tree = QuadTree.build(positions, np.array([1.0, 5.0]))

        assert tree.body(1) == Body(3.0, 4.0, mass=5.0, index=1)
