"""Sample accumulation in batches.

ProgressiveRenderer owns the active image size and drives the integrator's
render target one batch of samples per pixel at a time. Between batches it
reports progress and checks an optional wall-clock budget, so a long render
can be watched, extended with more samples later, or cut short while keeping
what it has.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from marbles.camera.camera import setup_camera
    >>> from marbles.core.progressive import ProgressiveRenderer
    >>> from marbles.scene.presets import create_three_spheres_scene
    >>>
    >>> scene, camera = create_three_spheres_scene()
    >>> setup_camera(camera)
    >>> renderer = ProgressiveRenderer(camera.image_width, camera.image_height)
    >>> renderer.render(64, batch_size=16, time_budget=30.0)
    64
    >>> renderer.save_image("three_spheres.png")
"""

import logging
import time
from collections.abc import Callable, Iterator
from enum import Enum
from pathlib import Path

import numpy as np
import numpy.typing as npt

from marbles.core.integrator import (
    DEFAULT_MAX_DEPTH,
    clear_render_target,
    get_linear_image_numpy,
    get_total_samples,
    render_image,
    setup_render_target,
)
from marbles.preview.export import DEFAULT_GAMMA, image_to_uint8, linear_to_gamma, save_image

logger = logging.getLogger(__name__)

# (samples accumulated so far, samples when this call finishes)
ProgressCallback = Callable[[int, int], None]


class RenderMode(Enum):
    """How primary rays are generated.

    BASIC traces one ray through each pixel center. ANTIALIASED traces
    jittered rays spread over each pixel's area and averages them.
    """

    BASIC = "basic"
    ANTIALIASED = "antialiased"


class ProgressiveRenderer:
    """Accumulates path traced samples into the global render target.

    Only one render target exists, so creating a renderer (or resizing one)
    resets whatever was accumulated before. The camera must already be set
    up with setup_camera().

    Attributes:
        max_depth: Maximum scene casts per path.
        mode: Primary ray mode. BASIC renders are deterministic.
    """

    def __init__(
        self,
        width: int,
        height: int,
        max_depth: int = DEFAULT_MAX_DEPTH,
        mode: RenderMode = RenderMode.ANTIALIASED,
    ) -> None:
        """Claim the render target at the given size.

        Raises:
            ValueError: If the size is outside 1..2048 on either axis or
                max_depth is negative.
        """
        if max_depth < 0:
            raise ValueError(f"max_depth must be non-negative, got {max_depth}")
        self._width = width
        self._height = height
        self.max_depth = max_depth
        self.mode = RenderMode(mode)
        setup_render_target(width, height)

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def sample_count(self) -> int:
        """Samples accumulated per pixel since the last reset."""
        return get_total_samples()

    def reset(self) -> None:
        """Drop the accumulated samples and keep the size."""
        clear_render_target()

    def resize(self, width: int, height: int) -> None:
        """Change the active size; this also drops the accumulated samples."""
        self._width = width
        self._height = height
        setup_render_target(width, height)

    def _render_batch(self, batch: int) -> None:
        render_image(batch, max_depth=self.max_depth, jitter=self.mode is RenderMode.ANTIALIASED)

    def _batches(self, num_samples: int, batch_size: int) -> Iterator[int]:
        remaining = num_samples
        while remaining > 0:
            batch = min(max(batch_size, 1), remaining)
            self._render_batch(batch)
            remaining -= batch
            yield batch

    def render(
        self,
        num_samples: int = 1,
        batch_size: int = 1,
        callback: ProgressCallback | None = None,
        time_budget: float | None = None,
    ) -> int:
        """Add num_samples samples per pixel to the image.

        Args:
            num_samples: Samples per pixel to add.
            batch_size: Samples per pixel between progress reports and
                budget checks.
            callback: Called after every batch as callback(done, target),
                both counted from the last reset.
            time_budget: Seconds after which no new batch is started. The
                batch in flight always completes.

        Returns:
            The number of samples actually added, which is less than
            num_samples only when the budget ran out.
        """
        if num_samples <= 0:
            return 0

        target_samples = self.sample_count + num_samples
        started = time.monotonic()
        added = 0

        for batch in self._batches(num_samples, batch_size):
            added += batch
            if callback is not None:
                callback(self.sample_count, target_samples)

            if time_budget is not None and added < num_samples:
                if time.monotonic() - started >= time_budget:
                    logger.warning(
                        "time budget of %.2fs spent after %d of %d samples",
                        time_budget,
                        added,
                        num_samples,
                    )
                    break

        return added

    def render_progressive(
        self,
        num_samples: int = 1,
        batch_size: int = 1,
    ) -> Iterator[tuple[int, int]]:
        """Like render(), but yields (done, target) after every batch.

        Stopping the iteration early stops rendering.
        """
        if num_samples <= 0:
            return

        target_samples = self.sample_count + num_samples
        for _ in self._batches(num_samples, batch_size):
            yield (self.sample_count, target_samples)

    def get_image_numpy(self, gamma: float = 1.0) -> npt.NDArray[np.float32]:
        """Return the (height, width, 3) float32 image.

        With the default gamma of 1.0 this is the raw linear average,
        unclamped. Any other gamma encodes it.
        """
        image = get_linear_image_numpy()
        if gamma != 1.0:
            image = linear_to_gamma(image, gamma)
        return image

    def get_image_uint8(self, gamma: float = DEFAULT_GAMMA) -> npt.NDArray[np.uint8]:
        """Return the gamma encoded (height, width, 3) uint8 image."""
        return image_to_uint8(get_linear_image_numpy(), gamma=gamma)

    def save_image(self, filepath: str | Path, gamma: float = DEFAULT_GAMMA) -> None:
        """Write the image as PPM or PNG, chosen by the file extension.

        Raises:
            ValueError: If the extension is not .ppm or .png.
        """
        save_image(self.get_image_uint8(gamma=gamma), filepath)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({self.width}x{self.height}, "
            f"max_depth={self.max_depth}, mode={self.mode.value}, "
            f"samples={self.sample_count})"
        )
