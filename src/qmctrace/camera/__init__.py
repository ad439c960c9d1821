"""Camera module for primary ray generation.

Components:
    orbit: Pinhole camera circling a look-at point over an animation

Camera responsibilities:
    - Map (pixel, sub-pixel jitter) to a world-space ray
    - Place the camera on its orbit for a frame and a time jitter
    - Build the camera basis from the look-at point and world up vector
    - Size the sensor from the vertical field of view and aspect ratio

Pixel coordinates run left to right (x) and top to bottom (y).
"""

from .orbit import (
    animation_time,
    camera_basis,
    generate_primary_ray,
    get_camera_info,
    get_primary_ray,
    orbit_position,
    setup_camera,
)

__all__ = [
    "setup_camera",
    "animation_time",
    "orbit_position",
    "camera_basis",
    "generate_primary_ray",
    "get_primary_ray",
    "get_camera_info",
]
