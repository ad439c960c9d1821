"""Scene module: object storage, queries and scene construction.

Components:
    intersection: Object table in Taichi fields and the nearest-hit query
    manager: Python-side SceneManager with validation and object records
    reference: Factory for the reference test scene

Scene data is organized for Taichi kernels:
    - Structure-of-Arrays storage per shape kind
    - An ordered object table (kind tag, per-kind index, colour)
    - Linear scan in insertion order, no acceleration structure
"""

from .intersection import (
    MAX_OBJECTS,
    MAX_PLANES,
    MAX_SPHERES,
    NO_OBJECT,
    SceneHit,
    ShapeKind,
    add_plane,
    add_sphere,
    clear_scene,
    get_object_count,
    get_plane_count,
    get_sphere_count,
    intersect_object,
    nearest_intersection,
    object_colour,
    object_normal,
    query_nearest,
)
from .manager import ObjectInfo, SceneManager
from .reference import ReferenceSceneParams, create_reference_scene

__all__ = [
    # Intersection module
    "SceneHit",
    "ShapeKind",
    "NO_OBJECT",
    "add_sphere",
    "add_plane",
    "clear_scene",
    "get_object_count",
    "get_sphere_count",
    "get_plane_count",
    "intersect_object",
    "nearest_intersection",
    "object_normal",
    "object_colour",
    "query_nearest",
    "MAX_SPHERES",
    "MAX_PLANES",
    "MAX_OBJECTS",
    # Manager module
    "SceneManager",
    "ObjectInfo",
    # Reference scene
    "create_reference_scene",
    "ReferenceSceneParams",
]
