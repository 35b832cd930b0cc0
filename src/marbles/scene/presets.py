"""Preset scenes.

Each factory builds a scene into the global Taichi fields and returns it with
a camera aimed at it:

- single_sphere: one diffuse sphere in front of the camera, sky behind it
- three_spheres: diffuse, glass and fuzzed metal spheres on a large ground
- random_marbles: a grid of small random spheres around three large ones
- checkered: two large spheres sharing a 3-D checker texture
- emissive: a glowing sphere lighting a dark scene

Because the fields are global, building a preset replaces whatever scene was
loaded before.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from marbles.scene.presets import get_preset
    >>> scene, camera = get_preset("three_spheres", image_width=320)
    >>> scene.get_sphere_count()
    5
"""

import logging
from collections.abc import Callable

import numpy as np

from marbles.camera.camera import Camera
from marbles.scene.manager import SceneManager

logger = logging.getLogger(__name__)

DEFAULT_ASPECT_RATIO = 16.0 / 9.0

# Random marbles layout
MARBLE_RADIUS = 0.2
MARBLE_GRID_EXTENT = 11
GROUND_ALBEDO = (0.5, 0.5, 0.5)

# Big spheres shared by the marbles field
GLASS_IOR = 1.5
BROWN_ALBEDO = (0.4, 0.2, 0.1)
POLISHED_METAL_ALBEDO = (0.7, 0.6, 0.5)

# Checker colours
CHECKER_ODD = (0.2, 0.3, 0.1)
CHECKER_EVEN = (0.9, 0.9, 0.9)


def create_single_sphere_scene(
    image_width: int = 400,
    aspect_ratio: float = DEFAULT_ASPECT_RATIO,
) -> tuple[SceneManager, Camera]:
    """Create a single grey diffuse sphere at (0, 0, -1) with radius 0.5.

    The camera sits at the origin looking down -z with a 90 degree vertical
    field of view, so the sphere fills the middle of the frame and the
    image corners see only the background.
    """
    scene = SceneManager()
    scene.add_lambertian_sphere((0.0, 0.0, -1.0), 0.5, albedo=(0.5, 0.5, 0.5))

    camera = Camera(
        lookfrom=(0.0, 0.0, 0.0),
        lookat=(0.0, 0.0, -1.0),
        vfov=90.0,
        aspect_ratio=aspect_ratio,
        image_width=image_width,
    )
    return scene, camera


def create_three_spheres_scene(
    image_width: int = 400,
    aspect_ratio: float = DEFAULT_ASPECT_RATIO,
) -> tuple[SceneManager, Camera]:
    """Create the three material showcase.

    A blue diffuse sphere in the centre, a hollow glass sphere on the left
    (an outer ior 1.5 shell around an inner 1/1.5 bubble) and a fuzzed gold
    metal sphere on the right, all resting on a large yellow-green ground
    sphere.

    Returns:
        A tuple of (SceneManager, Camera).
    """
    scene = SceneManager()

    ground = scene.add_lambertian_material(albedo=(0.8, 0.8, 0.0))
    center = scene.add_lambertian_material(albedo=(0.1, 0.2, 0.5))
    glass = scene.add_dielectric_material(ior=GLASS_IOR)
    bubble = scene.add_dielectric_material(ior=1.0 / GLASS_IOR)
    gold = scene.add_metal_material(albedo=(0.8, 0.6, 0.2), fuzz=1.0)

    scene.add_sphere((0.0, -100.5, -1.0), 100.0, ground)
    scene.add_sphere((0.0, 0.0, -1.2), 0.5, center)
    scene.add_sphere((-1.0, 0.0, -1.0), 0.5, glass)
    scene.add_sphere((-1.0, 0.0, -1.0), 0.4, bubble)
    scene.add_sphere((1.0, 0.0, -1.0), 0.5, gold)

    camera = Camera(
        lookfrom=(-2.0, 2.0, 1.0),
        lookat=(0.0, 0.0, -1.0),
        vfov=20.0,
        aspect_ratio=aspect_ratio,
        image_width=image_width,
        focus_dist=3.4,
        defocus_angle=10.0,
    )
    return scene, camera


def create_random_marbles_scene(
    image_width: int = 400,
    aspect_ratio: float = DEFAULT_ASPECT_RATIO,
    seed: int | None = 0,
    grid_extent: int = MARBLE_GRID_EXTENT,
) -> tuple[SceneManager, Camera]:
    """Create a field of small random marbles around three large spheres.

    For every grid cell (a, b) with -grid_extent <= a, b <= grid_extent, a
    marble of radius 0.2 is dropped at a jittered position. Its material is
    chosen at random: diffuse with a random albedo (80%), metal with a
    random albedo and fuzz (15%) or glass (5%). Marbles that would overlap
    the polished metal sphere are skipped.

    Args:
        image_width: Output width in pixels.
        aspect_ratio: Width over height.
        seed: Seed for the layout. The same seed always yields the same
            scene; None draws a fresh one.
        grid_extent: Half width of the marble grid.

    Returns:
        A tuple of (SceneManager, Camera).
    """
    rng = np.random.default_rng(seed)
    scene = SceneManager()

    scene.add_lambertian_sphere((0.0, -1000.0, 0.0), 1000.0, albedo=GROUND_ALBEDO)

    # Every glass marble shares one material
    glass = scene.add_dielectric_material(ior=GLASS_IOR)
    clearing = np.array([4.0, MARBLE_RADIUS, 0.0])

    for a in range(-grid_extent, grid_extent + 1):
        for b in range(-grid_extent, grid_extent + 1):
            choose_material = rng.random()
            center = np.array(
                [a + 0.9 * rng.random(), MARBLE_RADIUS, b + 0.9 * rng.random()]
            )
            if np.linalg.norm(center - clearing) <= 0.9:
                continue

            position = tuple(float(c) for c in center)
            if choose_material < 0.8:
                albedo = tuple(float(c) for c in rng.random(3) * rng.random(3))
                scene.add_lambertian_sphere(position, MARBLE_RADIUS, albedo=albedo)
            elif choose_material < 0.95:
                albedo = tuple(float(c) for c in rng.uniform(0.5, 1.0, 3))
                fuzz = float(rng.uniform(0.0, 0.5))
                scene.add_metal_sphere(position, MARBLE_RADIUS, albedo, fuzz)
            else:
                scene.add_sphere(position, MARBLE_RADIUS, glass)

    scene.add_sphere((0.0, 1.0, 0.0), 1.0, glass)
    scene.add_lambertian_sphere((-4.0, 1.0, 0.0), 1.0, albedo=BROWN_ALBEDO)
    scene.add_metal_sphere((4.0, 1.0, 0.0), 1.0, POLISHED_METAL_ALBEDO, 0.0)

    logger.debug(
        "random marbles scene: %d spheres, %d materials",
        scene.get_sphere_count(),
        scene.get_material_count(),
    )

    camera = Camera(
        lookfrom=(13.0, 2.0, 3.0),
        lookat=(0.0, 0.0, 0.0),
        vfov=20.0,
        aspect_ratio=aspect_ratio,
        image_width=image_width,
        focus_dist=10.0,
        defocus_angle=0.6,
    )
    return scene, camera


def create_checkered_scene(
    image_width: int = 400,
    aspect_ratio: float = DEFAULT_ASPECT_RATIO,
    frequency: float = 3.0,
) -> tuple[SceneManager, Camera]:
    """Create two large spheres, one above the other, sharing a checker texture."""
    scene = SceneManager()

    checker = scene.add_checker_texture(CHECKER_ODD, CHECKER_EVEN, frequency=frequency)
    material = scene.add_lambertian_material(texture_id=checker)
    scene.add_sphere((0.0, -10.0, 0.0), 10.0, material)
    scene.add_sphere((0.0, 10.0, 0.0), 10.0, material)

    camera = Camera(
        lookfrom=(13.0, 2.0, 3.0),
        lookat=(0.0, 0.0, 0.0),
        vfov=20.0,
        aspect_ratio=aspect_ratio,
        image_width=image_width,
    )
    return scene, camera


def create_emissive_scene(
    image_width: int = 400,
    aspect_ratio: float = DEFAULT_ASPECT_RATIO,
    light_intensity: float = 4.0,
) -> tuple[SceneManager, Camera]:
    """Create a dark scene lit only by an emissive sphere.

    The background is black, so every bit of light in the image comes from
    the glowing sphere hanging above a diffuse ball on a checkered ground.
    """
    scene = SceneManager()
    scene.set_background((0.0, 0.0, 0.0), (0.0, 0.0, 0.0))

    checker = scene.add_checker_texture(CHECKER_ODD, CHECKER_EVEN, frequency=3.0)
    ground = scene.add_lambertian_material(texture_id=checker)
    scene.add_sphere((0.0, -1000.0, 0.0), 1000.0, ground)
    scene.add_lambertian_sphere((0.0, 2.0, 0.0), 2.0, albedo=BROWN_ALBEDO)
    scene.add_diffuse_light_sphere((0.0, 7.0, 0.0), 2.0, (1.0, 1.0, 1.0), light_intensity)

    camera = Camera(
        lookfrom=(26.0, 3.0, 6.0),
        lookat=(0.0, 2.0, 0.0),
        vfov=20.0,
        aspect_ratio=aspect_ratio,
        image_width=image_width,
    )
    return scene, camera


PRESETS: dict[str, Callable[..., tuple[SceneManager, Camera]]] = {
    "single_sphere": create_single_sphere_scene,
    "three_spheres": create_three_spheres_scene,
    "random_marbles": create_random_marbles_scene,
    "checkered": create_checkered_scene,
    "emissive": create_emissive_scene,
}


def get_preset(name: str, **kwargs) -> tuple[SceneManager, Camera]:
    """Build a preset scene by name.

    Args:
        name: One of the keys of PRESETS.
        **kwargs: Passed through to the factory (image_width, aspect_ratio,
            and for random_marbles, seed).

    Raises:
        ValueError: If the name is unknown.
    """
    try:
        factory = PRESETS[name]
    except KeyError:
        raise ValueError(
            f"Unknown scene '{name}'. Available: {', '.join(sorted(PRESETS))}"
        ) from None
    logger.debug("building preset scene %s", name)
    return factory(**kwargs)
