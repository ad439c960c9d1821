"""Geometry module for shape primitives.

This module provides the concrete shapes a scene is built from:

Components:
    sphere: Sphere primitive with robust ray-sphere intersection
    plane: Infinite plane primitive

Each shape exposes the scene-object capability as Taichi functions
(@ti.func):
    t = intersect_<shape>(ray_origin, ray_direction, shape, t_min)
    n = <shape>_normal(shape, point)

A miss is reported as T_INFINITY. Colours live in the scene table, not in the
shape structs.
"""

from .plane import Plane, intersect_plane, plane_normal
from .sphere import T_INFINITY, Sphere, intersect_sphere, sphere_normal

__all__ = [
    "T_INFINITY",
    "Sphere",
    "intersect_sphere",
    "sphere_normal",
    "Plane",
    "intersect_plane",
    "plane_normal",
]
