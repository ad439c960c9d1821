"""Pytest configuration for qmctrace tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts.
    """
    ti.init(arch=ti.cpu)
    yield


@pytest.fixture(autouse=True)
def reset_scene_and_config():
    """Empty the scene and restore the default configuration around each test.

    This ensures tests are isolated from each other.
    """
    # Import here so Taichi fields are created after ti.init()
    from qmctrace.core.config import RenderConfig
    from qmctrace.core.integrator import setup_integrator
    from qmctrace.scene.intersection import clear_scene

    def _reset():
        clear_scene()
        setup_integrator(RenderConfig())

    _reset()

    yield

    _reset()
