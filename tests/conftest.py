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


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Clear materials, geoms and render buffers around each test."""
    # Imported here so Taichi is initialized before fields are allocated
    from src.pathtracer.core.pathtrace import clear_accumulator, clear_working_set
    from src.pathtracer.materials.registry import clear_materials
    from src.pathtracer.scene.intersection import clear_geoms

    def _clear_all():
        clear_geoms()
        clear_materials()
        clear_working_set()
        clear_accumulator()

    _clear_all()
    yield
    _clear_all()


@pytest.fixture
def lit_sphere_scene():
    """A white diffuse sphere under an area light.

    The camera looks down -Z at the sphere from z = 3; the light quad hangs
    above the sphere, out of view. Nothing else is in the scene, so rays
    that miss both objects see the (black) background.
    """
    from src.pathtracer.camera.camera import Camera
    from src.pathtracer.scene.manager import SceneManager

    scene = SceneManager()
    white = scene.add_diffuse_material((0.8, 0.8, 0.8))
    light = scene.add_emissive_material((1.0, 1.0, 1.0), emittance=10.0)
    scene.add_sphere((0.0, 0.0, 0.0), 0.5, white)
    scene.add_quad((-1.0, 1.5, 1.0), (2.0, 0.0, 0.0), (0.0, 0.0, -2.0), light)

    camera = Camera(
        lookfrom=(0.0, 0.0, 3.0),
        lookat=(0.0, 0.0, 0.0),
        vup=(0.0, 1.0, 0.0),
        vfov=30.0,
        aspect_ratio=1.0,
    )
    return scene, camera
