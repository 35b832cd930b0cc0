"""Pytest configuration for marbles tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls, which would
    invalidate every field declared so far.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Clear scene, material, texture and render state around each test."""
    # Imported here so Taichi is initialized before any field is declared
    from marbles.core.integrator import reset_background, reset_render_target
    from marbles.materials.dielectric import clear_dielectric_materials
    from marbles.materials.diffuse_light import clear_diffuse_light_materials
    from marbles.materials.lambertian import clear_lambertian_materials
    from marbles.materials.metal import clear_metal_materials
    from marbles.materials.texture import clear_textures
    from marbles.scene.intersection import clear_scene
    from marbles.scene.manager import _clear_material_tracking

    def _clear_all():
        clear_scene()
        clear_lambertian_materials()
        clear_metal_materials()
        clear_dielectric_materials()
        clear_diffuse_light_materials()
        clear_textures()
        _clear_material_tracking()
        reset_background()
        reset_render_target()

    _clear_all()
    yield
    _clear_all()
