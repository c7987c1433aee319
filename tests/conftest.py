"""Pytest configuration for canopy tests.

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
    ti.init(arch=ti.cpu, random_seed=42)
    yield


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Reset the device scene, sun and render configuration around each test."""
    # Import here to ensure Taichi is initialized
    from src.canopy.config import RenderConfig
    from src.canopy.core.integrator import setup_render_config, setup_sun
    from src.canopy.scene.intersection import clear_scene

    def _clear_all():
        clear_scene()
        setup_sun(None)
        setup_render_config(RenderConfig())

    _clear_all()
    yield
    _clear_all()


@pytest.fixture
def forward_camera():
    """A 32x24 camera at the origin looking down +z."""
    from src.canopy.camera.eye import CameraContext, Eye

    return CameraContext(Eye((0.0, 0.0, 0.0), (0.0, 0.0, 1.0)), 32, 24)
