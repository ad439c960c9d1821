"""Infinite plane primitive with ray-plane intersection.

A plane is defined by a point on it and a unit normal. It is the simplest
shape that can act as a ground or an occluder, and it answers the same
queries as the sphere: hit distance, normal and (through the scene table)
colour.

The normal is constant over the plane and is returned as stored, so a plane
is lit from the side its normal faces. Rays hit it from either side.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from qmctrace.geometry.plane import Plane, intersect_plane
    >>> ground = Plane(point=ti.math.vec3(0, -1, 0), normal=ti.math.vec3(0, 1, 0))
    >>> # Use intersect_plane within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

from qmctrace.geometry.sphere import T_INFINITY

vec3 = tm.vec3

# Rays this close to parallel with the plane are treated as misses
PARALLEL_EPSILON = 1e-8


@ti.dataclass
class Plane:
    """An infinite plane.

    Attributes:
        point: Any point on the plane (vec3).
        normal: Unit normal of the plane (vec3).
    """

    point: vec3
    normal: vec3


@ti.func
def intersect_plane(
    ray_origin: vec3,
    ray_direction: vec3,
    plane: Plane,
    t_min: ti.f32,
) -> ti.f32:
    """Distance along a ray to the plane.

    Solves dot(normal, origin + t * direction - point) = 0:
        t = dot(normal, point - origin) / dot(normal, direction)

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        plane: The plane to test.
        t_min: Hits at or below this distance are rejected.

    Returns:
        The hit distance, or T_INFINITY for parallel rays and hits behind
        t_min.
    """
    hit_t = T_INFINITY
    denom = tm.dot(plane.normal, ray_direction)

    if ti.abs(denom) > PARALLEL_EPSILON:
        t = tm.dot(plane.normal, plane.point - ray_origin) / denom
        if t > t_min:
            hit_t = t

    return hit_t


@ti.func
def plane_normal(plane: Plane, point: vec3) -> vec3:
    """Unit normal of the plane; the same at every point."""
    return plane.normal
