"""Sphere primitive with robust ray-sphere intersection.

A sphere answers the three scene-object queries: the distance along a ray to
its surface, the outward unit normal at a surface point, and (through the
scene table) its colour.

The intersection uses the robust quadratic formula from Ray Tracing Gems to
avoid catastrophic cancellation when b^2 is nearly equal to 4ac.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from qmctrace.geometry.sphere import Sphere, intersect_sphere
    >>> sphere = Sphere(center=ti.math.vec3(0, 0, -1), radius=0.5)
    >>> # Use intersect_sphere within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

from qmctrace.core.ray import safe_normalize

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Distance reported when a shape is not hit
T_INFINITY = float("inf")


@ti.dataclass
class Sphere:
    """A sphere defined by center point and radius.

    Attributes:
        center: The center point of the sphere (vec3).
        radius: The radius of the sphere (positive float).
    """

    center: vec3
    radius: ti.f32


@ti.func
def _solve_quadratic_robust(h: ti.f32, a: ti.f32, c: ti.f32, sqrt_d: ti.f32):
    """Solve a*t^2 + 2*h*t + c = 0 using a numerically stable method.

    Args:
        h: Half of the linear coefficient.
        a: Quadratic coefficient.
        c: Constant term.
        sqrt_d: Square root of discriminant (h^2 - a*c).

    Returns:
        Tuple of (t0, t1) where t0 <= t1.
    """
    # q = -(h + sign(h) * sqrt(discriminant))
    sign_h = ti.select(h < 0.0, -1.0, 1.0)
    q = -(h + sign_h * sqrt_d)

    t0 = 0.0
    t1 = 0.0

    if ti.abs(q) < 1e-10:
        # Tangent ray, fall back to the textbook formula
        t0 = (-h - sqrt_d) / a
        t1 = (-h + sqrt_d) / a
    else:
        t0 = q / a
        t1 = c / q

    if t0 > t1:
        temp = t0
        t0 = t1
        t1 = temp

    return t0, t1


@ti.func
def intersect_sphere(
    ray_origin: vec3,
    ray_direction: vec3,
    sphere: Sphere,
    t_min: ti.f32,
) -> ti.f32:
    """Distance along a ray to the nearest sphere crossing beyond t_min.

    Solves |origin + t * direction - center|^2 = radius^2, written in the
    half-b form a*t^2 + 2*h*t + c = 0 with:
        a = dot(direction, direction)
        h = dot(direction, origin - center)
        c = dot(origin - center, origin - center) - radius^2

    The smaller root is preferred; the larger one is used when the smaller
    lies at or behind t_min (ray starting inside, or on, the sphere).

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        sphere: The sphere to test.
        t_min: Roots at or below this distance are rejected.

    Returns:
        The hit distance, or T_INFINITY when the ray misses.
    """
    oc = ray_origin - sphere.center

    a = tm.dot(ray_direction, ray_direction)
    h = tm.dot(ray_direction, oc)
    c = tm.dot(oc, oc) - sphere.radius * sphere.radius

    discriminant = h * h - a * c

    hit_t = T_INFINITY

    if discriminant >= 0.0 and a > 0.0:
        sqrt_d = ti.sqrt(discriminant)
        t0, t1 = _solve_quadratic_robust(h, a, c, sqrt_d)

        if t0 > t_min:
            hit_t = t0
        elif t1 > t_min:
            hit_t = t1

    return hit_t


@ti.func
def sphere_normal(sphere: Sphere, point: vec3) -> vec3:
    """Outward unit normal of the sphere at a surface point.

    A point at the exact center has no defined normal; +y is returned.
    """
    return safe_normalize(point - sphere.center, vec3(0.0, 1.0, 0.0))
