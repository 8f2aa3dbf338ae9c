"""
Profiling script for barnes-hut step performance.

Profiles the per-step pipeline (tree build, force evaluation, integration)
at several particle counts and compares against the exact O(n^2) sum.

Usage:
    python scripts/profile_step.py [--workers N] [--steps S]
"""

import argparse
import cProfile
import io
import pstats
import sys
import time
from pathlib import Path
from pstats import SortKey

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from barnes_hut import (
    QuadTree,
    Simulation,
    SimulationConfig,
    direct_accelerations,
)
from barnes_hut.utils import setup_logging


def profile_steps(n, steps, workers):
    """Profile `steps` steps of an n-particle disc."""
    config = SimulationConfig(particle_count=n, random_seed=42, workers=workers)

    with Simulation(config) as sim:
        profiler = cProfile.Profile()
        start = time.perf_counter()
        profiler.enable()
        sim.run(steps)
        profiler.disable()
        elapsed = time.perf_counter() - start

        tree = sim.last_tree

    s = io.StringIO()
    pstats.Stats(profiler, stream=s).sort_stats(SortKey.CUMULATIVE).print_stats(12)

    print(f"\n=== n={n}, steps={steps}, workers={workers} ===")
    print(f"{elapsed / steps * 1000:.1f} ms/step, nodes={tree.node_count}, depth={tree.max_depth_reached}")
    print(s.getvalue())


def compare_with_direct(n):
    """Time one Barnes-Hut tree build against the exact pairwise sum."""
    config = SimulationConfig(particle_count=n, random_seed=7)
    sim = Simulation(config)
    snap = sim.snapshot()

    start = time.perf_counter()
    QuadTree.build(snap.positions, snap.masses)
    build = time.perf_counter() - start

    start = time.perf_counter()
    direct_accelerations(snap.positions, snap.masses, config.gravitational_constant, config.softening_length)
    direct = time.perf_counter() - start

    print(f"n={n}: tree build {build * 1000:.1f} ms, direct sum {direct * 1000:.1f} ms")


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--workers", type=int, default=1)
    parser.add_argument("--steps", type=int, default=5)
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()

    setup_logging(args.log_level)

    for n in (500, 2000, 5000):
        profile_steps(n, args.steps, args.workers)

    print("\n=== Tree build vs direct sum ===")
    for n in (500, 2000):
        compare_with_direct(n)


if __name__ == "__main__":
    main()
