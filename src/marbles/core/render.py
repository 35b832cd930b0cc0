"""One-call rendering entry point.

render() wires a built scene and a camera to the progressive renderer and
returns the finished 8-bit image. BASIC mode traces a single ray through the
center of each pixel; ANTIALIASED mode averages samples_per_pixel jittered
rays per pixel.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, random_seed=42)
    >>> from marbles.core.render import RenderMode, render
    >>> from marbles.scene.presets import create_single_sphere_scene
    >>> scene, camera = create_single_sphere_scene(image_width=200)
    >>> image = render(scene, camera, RenderMode.ANTIALIASED, 16, 10)
    >>> image.shape
    (112, 200, 3)
"""

import logging
import time

import numpy as np
import numpy.typing as npt

from marbles.camera.camera import Camera, setup_camera
from marbles.core.integrator import setup_background
from marbles.core.progressive import ProgressCallback, ProgressiveRenderer, RenderMode
from marbles.preview.export import DEFAULT_GAMMA
from marbles.scene.manager import SceneManager

logger = logging.getLogger(__name__)

__all__ = ["RenderMode", "render"]


def render(
    scene: SceneManager,
    camera: Camera,
    mode: RenderMode | str = RenderMode.ANTIALIASED,
    samples_per_pixel: int = 100,
    max_depth: int = 50,
    gamma: float = DEFAULT_GAMMA,
    *,
    batch_size: int = 16,
    callback: ProgressCallback | None = None,
    time_budget: float | None = None,
) -> npt.NDArray[np.uint8]:
    """Render a scene to an 8-bit RGB image.

    The scene's spheres and materials are already in the Taichi fields once
    it is built; this sets up the camera, the background and the render
    target and accumulates the samples.

    Args:
        scene: The scene to render.
        camera: The camera configuration.
        mode: RenderMode.BASIC or RenderMode.ANTIALIASED (or their values).
        samples_per_pixel: Samples per pixel in ANTIALIASED mode. BASIC mode
            always takes one sample.
        max_depth: Maximum bounces per path.
        gamma: Gamma exponent for the output encoding.
        batch_size: Samples per progress step.
        callback: Optional progress callback (current, target).
        time_budget: Optional wall-clock limit in seconds.

    Returns:
        Array of shape (camera.image_height, camera.image_width, 3), dtype
        uint8, row 0 at the top.

    Raises:
        ValueError: If the camera configuration, image size, sample count or
            depth is invalid.
    """
    mode = RenderMode(mode)
    if samples_per_pixel < 1:
        raise ValueError(f"samples_per_pixel must be at least 1, got {samples_per_pixel}")

    setup_camera(camera)
    setup_background(scene.background_bottom, scene.background_top)

    width, height = camera.image_width, camera.image_height
    renderer = ProgressiveRenderer(width, height, max_depth=max_depth, mode=mode)

    spp = 1 if mode is RenderMode.BASIC else samples_per_pixel
    logger.info(
        "rendering %dx%d, %d spheres, mode=%s, spp=%d, max_depth=%d",
        width,
        height,
        scene.get_sphere_count(),
        mode.value,
        spp,
        max_depth,
    )

    started = time.monotonic()
    rendered = renderer.render(
        spp, batch_size=batch_size, callback=callback, time_budget=time_budget
    )
    logger.info("rendered %d spp in %.2fs", rendered, time.monotonic() - started)

    return renderer.get_image_uint8(gamma=gamma)
