"""Orbiting pinhole camera.

The camera circles a fixed look-at point over the course of an animation and
maps a pixel plus a sub-pixel offset to a primary ray:

1. Animation angle ``t = 2 * pi * (frame + time_jitter) / frames``, or 0 for a
   static camera (frames <= 0).
2. Position on the orbit (see CameraConfig for the closed form).
3. Orthonormal basis: forward towards the look-at point,
   right = world_up x forward, up = forward x right.
4. Sensor extents at unit distance from the vertical field of view and the
   image aspect ratio; pixel (x + jx, y + jy) is offset to the sensor centre
   and mapped through the basis. Row 0 is the top of the image.

Degenerate setups never fail: a camera sitting on its look-at point faces +z,
and a forward direction parallel to world_up uses +x as its right vector.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from qmctrace.core.config import CameraConfig
    >>> from qmctrace.camera.orbit import setup_camera, get_primary_ray
    >>> setup_camera(CameraConfig())
    >>> origin, direction = get_primary_ray(32, 32, 64, 64)
"""

import logging
import math

import taichi as ti
import taichi.math as tm

from qmctrace.core.config import CameraConfig
from qmctrace.core.ray import Ray, cross, make_ray, safe_normalize, vec3

logger = logging.getLogger(__name__)

# =============================================================================
# Taichi Fields for Camera State
# =============================================================================

_look_at = ti.Vector.field(3, dtype=ti.f32, shape=())
_world_up = ti.Vector.field(3, dtype=ti.f32, shape=())

# Sensor width at unit distance, 2 * tan(vfov / 2)
_sensor_scale = ti.field(dtype=ti.f32, shape=())

# Orbit coefficients
_orbit_major = ti.field(dtype=ti.f32, shape=())
_orbit_minor = ti.field(dtype=ti.f32, shape=())
_orbit_height = ti.field(dtype=ti.f32, shape=())
_orbit_scale = ti.field(dtype=ti.f32, shape=())


def setup_camera(camera: CameraConfig) -> None:
    """Upload a camera configuration.

    Args:
        camera: Orbit, look-at and field-of-view settings.
    """
    _look_at[None] = list(camera.look_at)
    _world_up[None] = list(camera.world_up)
    _sensor_scale[None] = 2.0 * math.tan(math.radians(camera.vfov) / 2.0)
    _orbit_major[None] = camera.orbit_major
    _orbit_minor[None] = camera.orbit_minor
    _orbit_height[None] = camera.orbit_height
    _orbit_scale[None] = camera.orbit_scale
    logger.debug("Camera set up: %s", camera)


# =============================================================================
# Camera Model
# =============================================================================


@ti.func
def animation_time(frame: ti.i32, frames: ti.i32, time_jitter: ti.f32) -> ti.f32:
    """Orbit angle in radians for a frame; 0 for a static camera."""
    t = 0.0
    if frames > 0:
        t = 2.0 * tm.pi * (ti.cast(frame, ti.f32) + time_jitter) / ti.cast(frames, ti.f32)
    return t


@ti.func
def orbit_position(time: ti.f32) -> vec3:
    """Camera position on its orbit at angle ``time``."""
    cos_t = ti.cos(time)
    sin_t = ti.sin(time)
    major = _orbit_major[None]
    minor = _orbit_minor[None]
    return _orbit_scale[None] * vec3(
        minor * cos_t + major * sin_t,
        _orbit_height[None],
        -major * cos_t + minor * sin_t,
    )


@ti.func
def camera_basis(position: vec3):
    """Orthonormal camera basis for a position.

    Returns:
        Tuple of (forward, right, up) unit vectors.
    """
    forward = safe_normalize(_look_at[None] - position, vec3(0.0, 0.0, 1.0))
    right = safe_normalize(cross(_world_up[None], forward), vec3(1.0, 0.0, 0.0))
    up = cross(forward, right)
    return forward, right, up


@ti.func
def generate_primary_ray(
    x: ti.i32,
    y: ti.i32,
    width: ti.i32,
    height: ti.i32,
    frame: ti.i32,
    frames: ti.i32,
    jitter_x: ti.f32,
    jitter_y: ti.f32,
    time_jitter: ti.f32,
) -> Ray:
    """Primary ray through a jittered pixel position.

    Args:
        x: Pixel column (0 = left).
        y: Pixel row (0 = top).
        width: Image width in pixels.
        height: Image height in pixels.
        frame: Animation frame index.
        frames: Total frames in the animation; <= 0 for a static camera.
        jitter_x: Sub-pixel offset in [0, 1) along x.
        jitter_y: Sub-pixel offset in [0, 1) along y.
        time_jitter: Offset in [0, 1) within the frame's time slice.

    Returns:
        A Ray from the camera position with a unit direction.
    """
    position = orbit_position(animation_time(frame, frames, time_jitter))
    forward, right, up = camera_basis(position)

    w = ti.cast(width, ti.f32)
    h = ti.cast(height, ti.f32)
    sensor_width = _sensor_scale[None]
    sensor_height = sensor_width / (w / h)

    pixel_x = right * (sensor_width / w)
    pixel_y = up * -(sensor_height / h)
    pixel_v = (
        forward
        + pixel_x * (ti.cast(x, ti.f32) - w * 0.5 + jitter_x)
        + pixel_y * (ti.cast(y, ti.f32) - h * 0.5 + jitter_y)
    )

    return make_ray(position, safe_normalize(pixel_v, forward))


# =============================================================================
# Python-side Probes
# =============================================================================

_probe_origin = ti.Vector.field(3, dtype=ti.f32, shape=())
_probe_direction = ti.Vector.field(3, dtype=ti.f32, shape=())
_probe_position = ti.Vector.field(3, dtype=ti.f32, shape=())
_probe_forward = ti.Vector.field(3, dtype=ti.f32, shape=())
_probe_right = ti.Vector.field(3, dtype=ti.f32, shape=())
_probe_up = ti.Vector.field(3, dtype=ti.f32, shape=())


@ti.kernel
def _primary_ray_kernel(
    x: ti.i32,
    y: ti.i32,
    width: ti.i32,
    height: ti.i32,
    frame: ti.i32,
    frames: ti.i32,
    jitter_x: ti.f32,
    jitter_y: ti.f32,
    time_jitter: ti.f32,
):
    ray = generate_primary_ray(x, y, width, height, frame, frames, jitter_x, jitter_y, time_jitter)
    _probe_origin[None] = ray.origin
    _probe_direction[None] = ray.direction


def get_primary_ray(
    x: int,
    y: int,
    width: int,
    height: int,
    frame: int = 0,
    frames: int = 0,
    jitter: tuple[float, float] = (0.0, 0.0),
    time_jitter: float = 0.0,
) -> tuple[tuple[float, float, float], tuple[float, float, float]]:
    """Python-callable generate_primary_ray().

    Returns:
        Tuple of (origin, direction).
    """
    _primary_ray_kernel(x, y, width, height, frame, frames, jitter[0], jitter[1], time_jitter)
    o = _probe_origin[None]
    d = _probe_direction[None]
    return (float(o[0]), float(o[1]), float(o[2])), (float(d[0]), float(d[1]), float(d[2]))


@ti.kernel
def _camera_info_kernel(frame: ti.i32, frames: ti.i32, time_jitter: ti.f32):
    position = orbit_position(animation_time(frame, frames, time_jitter))
    forward, right, up = camera_basis(position)
    _probe_position[None] = position
    _probe_forward[None] = forward
    _probe_right[None] = right
    _probe_up[None] = up


def get_camera_info(frame: int = 0, frames: int = 0, time_jitter: float = 0.0) -> dict[str, tuple[float, float, float]]:
    """Get the camera position and basis for one frame.

    Values are read back from the same Taichi functions that build primary
    rays. Useful for verifying camera setup.

    Returns:
        Dictionary with position, forward, right and up.
    """
    _camera_info_kernel(frame, frames, time_jitter)
    p = _probe_position[None]
    f = _probe_forward[None]
    r = _probe_right[None]
    u = _probe_up[None]

    return {
        "position": (float(p[0]), float(p[1]), float(p[2])),
        "forward": (float(f[0]), float(f[1]), float(f[2])),
        "right": (float(r[0]), float(r[1]), float(r[2])),
        "up": (float(u[0]), float(u[1]), float(u[2])),
    }
