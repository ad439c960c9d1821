"""Ray data structure and vector utilities.

This module provides the Ray dataclass, the vector helpers used by the camera
and the integrator, and the two direction-sampling functions the diffuse
bounce needs. Every sampling function here is driven by caller-supplied
numbers in [0, 1) instead of ``ti.random`` so that an estimate is a pure
function of its inputs.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> origin = ti.math.vec3(0.0, 0.0, 0.0)
    >>> direction = ti.math.vec3(0.0, 0.0, -1.0)
    >>> ray = Ray(origin=origin, direction=direction)
    >>> point = ray_at(ray, 5.0)  # Point 5 units along the ray
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Squared lengths at or below this are treated as zero-length vectors
ZERO_LENGTH_SQUARED = 1e-24


@ti.dataclass
class Ray:
    """A ray with an origin point and direction vector.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction vector of the ray (vec3). Unit length by
            construction everywhere in the renderer, but not enforced.
    """

    origin: vec3
    direction: vec3


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Compute the point along the ray at parameter t.

    Args:
        ray: The ray to evaluate.
        t: The parameter value. Positive values are in front of the origin.

    Returns:
        The point ray.origin + t * ray.direction.
    """
    return ray.origin + t * ray.direction


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    """Create a ray from origin and direction."""
    return Ray(origin=origin, direction=direction)


# =============================================================================
# Vector Utility Functions
# =============================================================================


@ti.func
def cross(a: vec3, b: vec3) -> vec3:
    """Compute the cross product a x b."""
    return tm.cross(a, b)


@ti.func
def safe_normalize(v: vec3, fallback: vec3) -> vec3:
    """Normalize a vector, returning a fixed fallback for zero-length input.

    Plain normalisation of a zero vector divides by zero and produces NaNs
    that would then spread through the whole path. Callers pass a unit
    fallback that makes sense for their context (a default axis for the
    camera basis, the surface normal for a bounce).

    Args:
        v: The vector to normalize.
        fallback: Returned unchanged when v is (numerically) zero.

    Returns:
        v / |v|, or fallback.
    """
    result = fallback
    len_sq = tm.dot(v, v)
    if len_sq > ZERO_LENGTH_SQUARED:
        result = v / ti.sqrt(len_sq)
    return result


# =============================================================================
# Direction Sampling
# =============================================================================


@ti.func
def sample_unit_sphere(u: ti.f32, v: ti.f32) -> vec3:
    """Map two numbers in [0, 1) to a uniformly distributed point on the unit sphere.

    Uses the cylindrical equal-area construction: z = 1 - 2v is uniform in
    [-1, 1] and the remaining radius s = 2 * sqrt(v * (1 - v)) is split by
    the azimuth theta = 2 * pi * u.

    Args:
        u: Azimuth sample in [0, 1).
        v: Height sample in [0, 1).

    Returns:
        A point on the unit sphere.
    """
    theta = 2.0 * tm.pi * u
    s = 2.0 * ti.sqrt(ti.max(0.0, v * (1.0 - v)))
    return vec3(ti.cos(theta) * s, ti.sin(theta) * s, 1.0 - 2.0 * v)


@ti.func
def sample_cosine_direction(normal: vec3, u: ti.f32, v: ti.f32) -> vec3:
    """Cosine-weighted hemisphere direction about a unit normal.

    Offsetting a uniform unit-sphere point by the unit normal and
    renormalising yields directions distributed proportionally to
    cos(theta) about the normal. For a Lambertian surface the BRDF * cos / pdf
    ratio then reduces to the albedo, so no extra weight is needed.

    The sphere point can be exactly -normal, making the sum zero; the normal
    itself is returned in that case.

    Args:
        normal: The surface normal (unit length).
        u: First sample in [0, 1).
        v: Second sample in [0, 1).

    Returns:
        A unit direction in the hemisphere around the normal.
    """
    return safe_normalize(normal + sample_unit_sphere(u, v), normal)
