"""Pytest configuration for raytracer tests.

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
    # Note: We don't call ti.reset() here as it can cause issues
    # with subsequent tests if any cleanup happens after


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Clear scene data before each test.

    This ensures tests are isolated from each other.
    """
    # Import here to avoid circular imports and ensure Taichi is initialized
    from whitted.core.integrator import (
        clear_render_target,
        release_render_target,
        reset_render_settings,
    )
    from whitted.materials.phong import clear_phong_materials
    from whitted.scene.intersection import clear_scene
    from whitted.scene.lights import clear_lights

    def _clear_all():
        clear_scene()
        clear_phong_materials()
        clear_lights()
        reset_render_settings()
        clear_render_target()
        release_render_target()

    # Clear everything before test
    _clear_all()

    yield

    # Clear everything after test
    _clear_all()


@pytest.fixture
def default_camera():
    """Camera at the origin looking down -z with a 90 degree FOV (square image)."""
    from whitted.camera.pinhole import PinholeCamera, setup_camera

    camera = PinholeCamera(
        lookfrom=(0.0, 0.0, 0.0),
        lookat=(0.0, 0.0, -1.0),
        vup=(0.0, 1.0, 0.0),
        vfov=90.0,
        aspect_ratio=1.0,
    )
    setup_camera(camera)
    return camera
