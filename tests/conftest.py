"""Pytest configuration for path tracer tests.

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
    """Clear scene, material and render target data around each test.

    This ensures tests are isolated from each other.
    """
    # Import here so that Taichi is initialized before fields are created
    from src.pathtracer.core.integrator import reset_render_target
    from src.pathtracer.materials.dielectric import clear_dielectric_materials
    from src.pathtracer.materials.lambertian import clear_lambertian_materials
    from src.pathtracer.materials.metal import clear_metal_materials
    from src.pathtracer.scene.intersection import clear_scene
    from src.pathtracer.scene.manager import _clear_material_tracking

    def _clear_all():
        clear_scene()
        clear_lambertian_materials()
        clear_metal_materials()
        clear_dielectric_materials()
        _clear_material_tracking()
        reset_render_target()

    _clear_all()

    yield

    _clear_all()


@pytest.fixture
def small_camera_config():
    """A tiny camera configuration looking down -z from the origin."""
    from src.pathtracer.camera.camera import CameraConfig

    return CameraConfig(
        aspect_ratio=1.0,
        image_width=8,
        samples_per_pixel=4,
        max_depth=5,
        vfov=90.0,
        lookfrom=(0.0, 0.0, 0.0),
        lookat=(0.0, 0.0, -1.0),
        vup=(0.0, 1.0, 0.0),
        focus_dist=1.0,
        worker_count=4,
    )
