"""Tests for logging setup and library log output."""

import logging

import numpy as np

from barnes_hut import QuadTree, Simulation, SimulationConfig
from barnes_hut.utils import setup_logging


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_configures_package_logger(self):
        """A single console handler is installed on the package logger."""
        logger = setup_logging("debug")
        try:
            assert logger.name == "barnes_hut"
            assert logger.level == logging.DEBUG
            assert len(logger.handlers) == 1

            setup_logging("INFO")
            assert len(logger.handlers) == 1
        finally:
            logger.handlers.clear()
            logger.setLevel(logging.NOTSET)

    def test_file_handler(self, tmp_path):
        """An optional file handler receives records."""
        path = tmp_path / "sim.log"
        logger = setup_logging(logging.INFO, log_file=str(path))
        try:
            logging.getLogger("barnes_hut.test").info("hello")
            for handler in logger.handlers:
                handler.flush()
            assert "hello" in path.read_text()
        finally:
            for handler in logger.handlers:
                handler.close()
            logger.handlers.clear()
            logger.setLevel(logging.NOTSET)


class TestLibraryLogging:
    """Tests for debug output of the pipeline."""

    def test_merge_is_logged(self, caplog):
        """Merged leaves are reported at DEBUG."""
        with caplog.at_level(logging.DEBUG, logger="barnes_hut"):
            QuadTree.build(np.zeros((3, 2)), np.ones(3))

        assert "Merged bodies into 1 leaves" in caplog.text

    def test_step_is_logged(self, caplog):
        """Each step logs its node count."""
        config = SimulationConfig(
            particle_count=2, initial_distribution="custom_seed", softening_length=0.0
        )
        sim = Simulation.from_arrays(config, positions=[(0.0, 0.0), (1.0, 0.0)])

        with caplog.at_level(logging.DEBUG, logger="barnes_hut"):
            sim.step()

        assert "Step 1" in caplog.text
        assert "nodes=5" in caplog.text
