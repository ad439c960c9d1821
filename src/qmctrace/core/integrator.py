"""Path tracing integrator for Monte Carlo light transport.

This module computes one radiance estimate per (pixel, frame, pass) and folds
estimates into a progressive render target.

An estimate is a fold over at most ``max_bounces + 1`` bounce events. Each
event is an immutable transition ``path_step(state) -> state`` of a PathState
whose status moves from TRACING to one of two terminal states:

    MISS          the ray left the scene; the sky colour was added
    BOUNCE_LIMIT  the bounce cap was reached after direct lighting

At every hit the point light is evaluated with a Lambertian term and a shadow
ray, then a cosine-weighted bounce direction is drawn from the
low-discrepancy sampler and the throughput is multiplied by the surface
colour (BRDF * cos / pdf reduces to the albedo).

No ``ti.random`` is used: identical inputs always produce bit-identical
estimates, and distinct estimates share nothing but read-only scene and
configuration fields, so the render kernel parallelises over pixels freely.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from qmctrace.core.integrator import (
    ...     generate_colour, render_pass, setup_integrator, setup_render_target
    ... )
    >>> from qmctrace.scene.reference import create_reference_scene
    >>>
    >>> scene, config = create_reference_scene()
    >>> setup_integrator(config)
    >>> colour = generate_colour(32, 32, frame=0, pass_index=0, width=64, height=64)
    >>> setup_render_target(64, 64)
    >>> render_pass(frame=0, pass_index=0)
"""

import logging
from enum import IntEnum

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from qmctrace.camera.orbit import generate_primary_ray, setup_camera
from qmctrace.core.config import RenderConfig
from qmctrace.core.ray import ZERO_LENGTH_SQUARED, Ray, make_ray, ray_at, sample_cosine_direction
from qmctrace.core.sampler import bounce_dimension, pixel_hash, sample_dimension, setup_sampler
from qmctrace.scene.intersection import (
    NO_OBJECT,
    nearest_intersection,
    object_colour,
    object_normal,
)

logger = logging.getLogger(__name__)

# Type alias for 3D vectors
vec3 = tm.vec3

# =============================================================================
# Path State
# =============================================================================


class PathStatus(IntEnum):
    """State of a path in the bounce state machine."""

    TRACING = 0
    MISS = 1
    BOUNCE_LIMIT = 2


@ti.dataclass
class PathState:
    """Everything a bounce event reads and produces.

    Attributes:
        origin: Origin of the current ray segment.
        direction: Unit direction of the current ray segment.
        throughput: Product of surface colours along the path so far.
        contribution: Radiance accumulated so far.
        bounce: Number of surface hits so far.
        segments: Number of nearest-intersection queries issued for
            path segments (shadow rays not included).
        status: A PathStatus value.
    """

    origin: vec3
    direction: vec3
    throughput: vec3
    contribution: vec3
    bounce: ti.i32
    segments: ti.i32
    status: ti.i32


# =============================================================================
# Configuration Fields
# =============================================================================

_max_bounces = ti.field(dtype=ti.i32, shape=())
_ray_epsilon = ti.field(dtype=ti.f32, shape=())
_light_position = ti.Vector.field(3, dtype=ti.f32, shape=())
_light_intensity = ti.field(dtype=ti.f32, shape=())
_sky_zenith = ti.Vector.field(3, dtype=ti.f32, shape=())
_sky_horizon = ti.Vector.field(3, dtype=ti.f32, shape=())

# Python-side copy of the configuration currently uploaded
_active_config: RenderConfig | None = None


def setup_integrator(config: RenderConfig | None = None) -> None:
    """Upload a render configuration to the sampler, camera and integrator.

    Must be called before any estimate is computed, and again whenever the
    configuration changes.

    Args:
        config: The configuration to apply. Defaults to RenderConfig().
    """
    global _active_config

    if config is None:
        config = RenderConfig()

    setup_sampler(config.primes)
    setup_camera(config.camera)

    _max_bounces[None] = config.max_bounces
    _ray_epsilon[None] = config.ray_epsilon
    _light_position[None] = list(config.light.position)
    _light_intensity[None] = config.light.intensity
    _sky_zenith[None] = list(config.sky.zenith)
    _sky_horizon[None] = list(config.sky.horizon)

    _active_config = config
    logger.debug(
        "Integrator configured: max_bounces=%d, light=%s, primes=%s",
        config.max_bounces,
        config.light,
        config.primes,
    )


def get_render_config() -> RenderConfig:
    """Get the configuration currently uploaded.

    Raises:
        RuntimeError: If setup_integrator() has not been called.
    """
    if _active_config is None:
        raise RuntimeError("Integrator not configured. Call setup_integrator() first.")
    return _active_config


# =============================================================================
# Light Transport
# =============================================================================


@ti.func
def sky_colour(direction: vec3) -> vec3:
    """Vertical gradient from the horizon colour to the zenith colour."""
    horizon = _sky_horizon[None]
    return horizon + (_sky_zenith[None] - horizon) * ti.max(0.0, direction.y)


@ti.func
def direct_lighting(hit_point: vec3, normal: vec3, colour: vec3) -> vec3:
    """Light reflected towards the viewer from the point light.

    Lambertian term with inverse-square falloff:
        max(0, n . l) * colour / distance^2 * intensity

    A shadow ray is cast towards the light when the term is non-zero. The
    point is lit if the shadow ray hits nothing or hits something at or
    beyond the light.

    Args:
        hit_point: Surface point.
        normal: Unit surface normal at the point.
        colour: Surface albedo.

    Returns:
        Reflected radiance, zero when shadowed or facing away.
    """
    result = vec3(0.0, 0.0, 0.0)

    light_vec = _light_position[None] - hit_point
    light_len_sq = tm.dot(light_vec, light_vec)

    if light_len_sq > ZERO_LENGTH_SQUARED:
        light_len = ti.sqrt(light_len_sq)
        light_dir = light_vec / light_len

        n_dot_l = tm.dot(normal, light_dir)
        if n_dot_l > 0.0:
            reflected = colour * n_dot_l / light_len_sq * _light_intensity[None]

            shadow = nearest_intersection(hit_point, light_dir, _ray_epsilon[None])
            if shadow.object_id == NO_OBJECT or shadow.t >= light_len:
                result = reflected

    return result


@ti.func
def begin_path(ray: Ray) -> PathState:
    """Initial state for a camera ray: unit throughput, nothing gathered."""
    return PathState(
        origin=ray.origin,
        direction=ray.direction,
        throughput=vec3(1.0, 1.0, 1.0),
        contribution=vec3(0.0, 0.0, 0.0),
        bounce=0,
        segments=0,
        status=int(PathStatus.TRACING),
    )


@ti.func
def path_step(state: PathState, pass_index: ti.i32, hash_random: ti.f32) -> PathState:
    """Advance a path by one bounce event.

    Terminal states are returned unchanged, so the fold in trace_path() can
    always run the full ``max_bounces + 1`` steps.

    Args:
        state: The current path state.
        pass_index: Pass index, selects the Halton point.
        hash_random: Per-pixel rotation offset from pixel_hash().

    Returns:
        The next path state.
    """
    origin = state.origin
    direction = state.direction
    throughput = state.throughput
    contribution = state.contribution
    bounce = state.bounce
    segments = state.segments
    status = state.status

    if status == int(PathStatus.TRACING):
        hit = nearest_intersection(origin, direction, _ray_epsilon[None])
        segments += 1

        if hit.object_id == NO_OBJECT:
            contribution += throughput * sky_colour(direction)
            status = int(PathStatus.MISS)
        else:
            hit_point = ray_at(make_ray(origin, direction), hit.t)
            normal = object_normal(hit.object_id, hit_point)
            colour = object_colour(hit.object_id)

            contribution += throughput * direct_lighting(hit_point, normal, colour)

            bounce += 1
            if bounce > _max_bounces[None]:
                status = int(PathStatus.BOUNCE_LIMIT)
            else:
                u = sample_dimension(pass_index, bounce_dimension(bounce, 0), hash_random)
                v = sample_dimension(pass_index, bounce_dimension(bounce, 1), hash_random)

                throughput *= colour
                origin = hit_point
                direction = sample_cosine_direction(normal, u, v)

    return PathState(
        origin=origin,
        direction=direction,
        throughput=throughput,
        contribution=contribution,
        bounce=bounce,
        segments=segments,
        status=status,
    )


@ti.func
def trace_path(
    x: ti.i32,
    y: ti.i32,
    frame: ti.i32,
    pass_index: ti.i32,
    width: ti.i32,
    height: ti.i32,
    frames: ti.i32,
) -> PathState:
    """Trace one path through a pixel and return its final state.

    Args:
        x: Pixel column (0 = left).
        y: Pixel row (0 = top).
        frame: Animation frame index.
        pass_index: Pass (sample) index for this pixel.
        width: Image width in pixels.
        height: Image height in pixels.
        frames: Total animation frames; <= 0 for a static camera.

    Returns:
        The terminal PathState.
    """
    hash_random = pixel_hash(x, y, frame, width, height)
    jitter_x = sample_dimension(pass_index, 0, hash_random)
    jitter_y = sample_dimension(pass_index, 1, hash_random)
    time_jitter = sample_dimension(pass_index, 2, hash_random)

    ray = generate_primary_ray(x, y, width, height, frame, frames, jitter_x, jitter_y, time_jitter)
    state = begin_path(ray)

    for _ in range(_max_bounces[None] + 1):
        state = path_step(state, pass_index, hash_random)

    return state


@ti.func
def estimate_radiance(
    x: ti.i32,
    y: ti.i32,
    frame: ti.i32,
    pass_index: ti.i32,
    width: ti.i32,
    height: ti.i32,
    frames: ti.i32,
) -> vec3:
    """Radiance contribution of one pass for one pixel."""
    return trace_path(x, y, frame, pass_index, width, height, frames).contribution


# =============================================================================
# Single-estimate Probes
# =============================================================================

_probe_contribution = ti.Vector.field(3, dtype=ti.f32, shape=())
_probe_segments = ti.field(dtype=ti.i32, shape=())
_probe_bounce = ti.field(dtype=ti.i32, shape=())
_probe_status = ti.field(dtype=ti.i32, shape=())
_probe_direct = ti.Vector.field(3, dtype=ti.f32, shape=())


@ti.kernel
def _trace_probe_kernel(
    x: ti.i32,
    y: ti.i32,
    frame: ti.i32,
    pass_index: ti.i32,
    width: ti.i32,
    height: ti.i32,
    frames: ti.i32,
):
    # Single-iteration outer loop keeps the bounce fold serial
    for _ in range(1):
        state = trace_path(x, y, frame, pass_index, width, height, frames)
        _probe_contribution[None] = state.contribution
        _probe_segments[None] = state.segments
        _probe_bounce[None] = state.bounce
        _probe_status[None] = state.status


@ti.kernel
def _direct_probe_kernel(hit_point: vec3, normal: vec3, colour: vec3):
    for _ in range(1):
        _probe_direct[None] = direct_lighting(hit_point, normal, colour)


@ti.kernel
def _sky_probe_kernel(direction: vec3) -> vec3:
    return sky_colour(direction)


def trace_path_stats(
    x: int,
    y: int,
    frame: int,
    pass_index: int,
    width: int,
    height: int,
    frames: int = 0,
) -> dict[str, object]:
    """Trace one path and report its contribution and termination.

    Returns:
        Dictionary with ``contribution`` (RGB tuple), ``segments`` (scene
        queries issued for path segments), ``bounces`` (surface hits) and
        ``status`` (PathStatus).

    Raises:
        RuntimeError: If setup_integrator() has not been called.
    """
    get_render_config()
    _trace_probe_kernel(x, y, frame, pass_index, width, height, frames)
    c = _probe_contribution[None]
    return {
        "contribution": (float(c[0]), float(c[1]), float(c[2])),
        "segments": int(_probe_segments[None]),
        "bounces": int(_probe_bounce[None]),
        "status": PathStatus(int(_probe_status[None])),
    }


def generate_colour(
    x: int,
    y: int,
    frame: int,
    pass_index: int,
    width: int,
    height: int,
    frames: int = 0,
) -> tuple[float, float, float]:
    """Radiance contribution of one pass for one pixel.

    Average the results of successive pass indices to converge the pixel.

    Args:
        x: Pixel column (0 = left).
        y: Pixel row (0 = top).
        frame: Animation frame index.
        pass_index: Pass (sample) index.
        width: Image width in pixels.
        height: Image height in pixels.
        frames: Total animation frames; <= 0 for a static camera.

    Returns:
        Tuple of (R, G, B).

    Raises:
        RuntimeError: If setup_integrator() has not been called.
    """
    stats = trace_path_stats(x, y, frame, pass_index, width, height, frames)
    return stats["contribution"]


def evaluate_direct_lighting(
    hit_point: tuple[float, float, float],
    normal: tuple[float, float, float],
    colour: tuple[float, float, float],
) -> tuple[float, float, float]:
    """Python-callable direct_lighting() against the current scene."""
    get_render_config()
    _direct_probe_kernel(vec3(*hit_point), vec3(*normal), vec3(*colour))
    d = _probe_direct[None]
    return float(d[0]), float(d[1]), float(d[2])


def evaluate_sky_colour(direction: tuple[float, float, float]) -> tuple[float, float, float]:
    """Python-callable sky_colour()."""
    get_render_config()
    c = _sky_probe_kernel(vec3(*direction))
    return float(c[0]), float(c[1]), float(c[2])


# =============================================================================
# Render Target (Image Buffer)
# =============================================================================

# Maximum supported image dimensions (preallocated to avoid kernel recompilation)
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# Running mean of the estimates, indexed [x, y] with y = 0 at the top
_color_buffer = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

# Passes accumulated per pixel
_sample_count = ti.field(dtype=ti.i32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

_render_target_initialized = ti.field(dtype=ti.i32, shape=())


def setup_render_target(width: int, height: int) -> None:
    """Set the active image size and clear the buffers.

    Args:
        width: Image width in pixels (max MAX_IMAGE_WIDTH).
        height: Image height in pixels (max MAX_IMAGE_HEIGHT).

    Raises:
        ValueError: If a dimension is not positive or exceeds the maximum.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Image dimensions ({width}x{height}) must be positive")
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )

    _image_width[None] = width
    _image_height[None] = height
    _render_target_initialized[None] = 1
    clear_render_target()
    logger.debug("Render target set up: %dx%d", width, height)


def clear_render_target() -> None:
    """Clear the render target buffers to zero."""
    _color_buffer.fill(0.0)
    _sample_count.fill(0)


def get_image_dimensions() -> tuple[int, int]:
    """Get the current render target dimensions as (width, height)."""
    return int(_image_width[None]), int(_image_height[None])


def _check_render_target_initialized() -> None:
    """Check if render target is initialized and raise if not."""
    if _render_target_initialized[None] == 0:
        raise RuntimeError("Render target not set up. Call setup_render_target() first.")


@ti.kernel
def _render_pass_kernel(
    frame: ti.i32,
    pass_index: ti.i32,
    width: ti.i32,
    height: ti.i32,
    frames: ti.i32,
):
    """Evaluate one pass for every pixel and fold it into the running mean."""
    for x, y in ti.ndrange(width, height):
        color = estimate_radiance(x, y, frame, pass_index, width, height, frames)

        # Check for NaN/Inf and replace with zero
        for c in ti.static(range(3)):
            if tm.isnan(color[c]) or tm.isinf(color[c]):
                color[c] = 0.0

        _sample_count[x, y] += 1
        n = _sample_count[x, y]

        # Running average: avg_n = avg_{n-1} + (x_n - avg_{n-1}) / n
        _color_buffer[x, y] += (color - _color_buffer[x, y]) / ti.cast(n, ti.f32)


def render_pass(frame: int, pass_index: int, frames: int = 0) -> None:
    """Render one pass of one frame into the render target.

    Args:
        frame: Animation frame index.
        pass_index: Pass index; use successive indices for successive passes.
        frames: Total animation frames; <= 0 for a static camera.

    Raises:
        RuntimeError: If the render target or the integrator is not set up.
    """
    _check_render_target_initialized()
    get_render_config()

    width, height = get_image_dimensions()
    _render_pass_kernel(frame, pass_index, width, height, frames)


def get_total_samples() -> int:
    """Get the number of passes accumulated at pixel (0, 0).

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()
    return int(_sample_count[0, 0])


def get_linear_image_numpy() -> npt.NDArray[np.float32]:
    """Get the accumulated image without clamping.

    Returns:
        Array of shape (height, width, 3), row 0 at the top.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()

    width, height = get_image_dimensions()
    full_image = _color_buffer.to_numpy()

    # Buffer is indexed [x, y]; images are [row, column]
    image = np.transpose(full_image[:width, :height, :], (1, 0, 2))
    return np.ascontiguousarray(image, dtype=np.float32)


def get_normalized_image_numpy() -> npt.NDArray[np.float32]:
    """Get the accumulated image clamped to [0, 1].

    Raises:
        RuntimeError: If render target has not been set up.
    """
    return np.clip(get_linear_image_numpy(), 0.0, 1.0).astype(np.float32)
