"""Camera module for view and primary ray generation.

Components:
    camera: Perspective camera with look-at positioning, anti-aliasing
        jitter and defocus blur

Camera responsibilities:
    - Derive the image height from width and aspect ratio
    - Map pixel (i, j) to a world-space ray, i left to right and j top to
      bottom
    - Apply anti-aliasing jitter for sub-pixel sampling
    - Sample the defocus disk for depth of field
"""

from .camera import (
    Camera,
    get_camera_center,
    get_camera_info,
    get_ray,
    get_ray_center,
    setup_camera,
)

__all__ = [
    "Camera",
    "setup_camera",
    "get_ray",
    "get_ray_center",
    "get_camera_center",
    "get_camera_info",
]
