"""Scene storage and the nearest-intersection query.

The scene is an ordered table of objects. Each entry is a tagged union: a
shape kind, an index into that kind's structure-of-arrays storage, and the
object's diffuse colour. Dispatch on the kind tag gives every object the same
three capabilities:

    intersect_object(object_id, origin, direction, t_min) -> distance
    object_normal(object_id, point) -> unit normal
    object_colour(object_id) -> diffuse albedo

nearest_intersection() scans the table linearly in insertion order. Kernels
only read the table, so any number of estimates may query it in parallel.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from qmctrace.scene.intersection import add_sphere, add_plane, clear_scene
    >>> clear_scene()
    >>> add_sphere((0.0, 0.0, 0.0), 1.0, colour=(1.0, 1.0, 1.0))
    0
    >>> add_plane((0.0, -1.0, 0.0), (0.0, 1.0, 0.0), colour=(0.5, 0.5, 0.5))
    1
    >>> # Use nearest_intersection within a Taichi kernel
"""

from enum import IntEnum

import taichi as ti
import taichi.math as tm

from qmctrace.geometry.plane import Plane, intersect_plane, plane_normal
from qmctrace.geometry.sphere import T_INFINITY, Sphere, intersect_sphere, sphere_normal

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Object id reported for a miss
NO_OBJECT = -1


class ShapeKind(IntEnum):
    """Tag of the shape variant stored in an object table entry."""

    SPHERE = 0
    PLANE = 1


@ti.dataclass
class SceneHit:
    """Result of a nearest-intersection query.

    Attributes:
        object_id: Index of the hit object in the scene table, or NO_OBJECT.
        t: Distance along the ray to the hit, T_INFINITY on a miss.
    """

    object_id: ti.i32
    t: ti.f32


# Maximum number of objects of each kind
MAX_SPHERES = 1024
MAX_PLANES = 256
MAX_OBJECTS = MAX_SPHERES + MAX_PLANES

# Object table (insertion order defines the scan order)
object_kinds = ti.field(dtype=ti.i32, shape=MAX_OBJECTS)
object_indices = ti.field(dtype=ti.i32, shape=MAX_OBJECTS)
object_colours = ti.Vector.field(3, dtype=ti.f32, shape=MAX_OBJECTS)
num_objects = ti.field(dtype=ti.i32, shape=())

# Sphere storage: Structure of Arrays layout
sphere_centers = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SPHERES)
sphere_radii = ti.field(dtype=ti.f32, shape=MAX_SPHERES)
num_spheres = ti.field(dtype=ti.i32, shape=())

# Plane storage: Structure of Arrays layout
plane_points = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PLANES)
plane_normals = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PLANES)
num_planes = ti.field(dtype=ti.i32, shape=())


def clear_scene() -> None:
    """Remove every object from the scene.

    Only the counts are reset; stale field data is overwritten by later adds.
    """
    num_objects[None] = 0
    num_spheres[None] = 0
    num_planes[None] = 0


def _append_object(kind: ShapeKind, index: int, colour: tuple[float, float, float]) -> int:
    """Add an entry to the object table and return its object id."""
    object_id = num_objects[None]
    if object_id >= MAX_OBJECTS:
        raise RuntimeError(f"Maximum number of objects ({MAX_OBJECTS}) exceeded")
    object_kinds[object_id] = int(kind)
    object_indices[object_id] = index
    object_colours[object_id] = [colour[0], colour[1], colour[2]]
    num_objects[None] = object_id + 1
    return object_id


def add_sphere(
    center: tuple[float, float, float],
    radius: float,
    colour: tuple[float, float, float],
) -> int:
    """Add a sphere to the scene.

    Args:
        center: The center point of the sphere.
        radius: The radius of the sphere (should be positive).
        colour: Diffuse albedo (RGB). Not clamped.

    Returns:
        The object id of the added sphere.

    Raises:
        RuntimeError: If the maximum number of spheres is exceeded.
    """
    idx = num_spheres[None]
    if idx >= MAX_SPHERES:
        raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")
    sphere_centers[idx] = [center[0], center[1], center[2]]
    sphere_radii[idx] = radius
    num_spheres[None] = idx + 1
    return _append_object(ShapeKind.SPHERE, idx, colour)


def add_plane(
    point: tuple[float, float, float],
    normal: tuple[float, float, float],
    colour: tuple[float, float, float],
) -> int:
    """Add an infinite plane to the scene.

    Args:
        point: Any point on the plane.
        normal: Unit normal of the plane. Callers are expected to normalise it
            (SceneManager.add_plane does).
        colour: Diffuse albedo (RGB). Not clamped.

    Returns:
        The object id of the added plane.

    Raises:
        RuntimeError: If the maximum number of planes is exceeded.
    """
    idx = num_planes[None]
    if idx >= MAX_PLANES:
        raise RuntimeError(f"Maximum number of planes ({MAX_PLANES}) exceeded")
    plane_points[idx] = [point[0], point[1], point[2]]
    plane_normals[idx] = [normal[0], normal[1], normal[2]]
    num_planes[None] = idx + 1
    return _append_object(ShapeKind.PLANE, idx, colour)


def get_object_count() -> int:
    """Get the number of objects in the scene."""
    return int(num_objects[None])


def get_sphere_count() -> int:
    """Get the number of spheres in the scene."""
    return int(num_spheres[None])


def get_plane_count() -> int:
    """Get the number of planes in the scene."""
    return int(num_planes[None])


# =============================================================================
# Object Capabilities (tag dispatch)
# =============================================================================


@ti.func
def _sphere_at(idx: ti.i32) -> Sphere:
    return Sphere(center=sphere_centers[idx], radius=sphere_radii[idx])


@ti.func
def _plane_at(idx: ti.i32) -> Plane:
    return Plane(point=plane_points[idx], normal=plane_normals[idx])


@ti.func
def intersect_object(
    object_id: ti.i32,
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
) -> ti.f32:
    """Distance along a ray to one object, T_INFINITY on a miss."""
    kind = object_kinds[object_id]
    idx = object_indices[object_id]
    t = T_INFINITY
    if kind == int(ShapeKind.SPHERE):
        t = intersect_sphere(ray_origin, ray_direction, _sphere_at(idx), t_min)
    elif kind == int(ShapeKind.PLANE):
        t = intersect_plane(ray_origin, ray_direction, _plane_at(idx), t_min)
    return t


@ti.func
def object_normal(object_id: ti.i32, point: vec3) -> vec3:
    """Unit surface normal of one object at a point on its surface."""
    kind = object_kinds[object_id]
    idx = object_indices[object_id]
    normal = vec3(0.0, 1.0, 0.0)
    if kind == int(ShapeKind.SPHERE):
        normal = sphere_normal(_sphere_at(idx), point)
    elif kind == int(ShapeKind.PLANE):
        normal = plane_normal(_plane_at(idx), point)
    return normal


@ti.func
def object_colour(object_id: ti.i32) -> vec3:
    """Diffuse albedo of one object."""
    return object_colours[object_id]


# =============================================================================
# Scene Query
# =============================================================================


@ti.func
def nearest_intersection(ray_origin: vec3, ray_direction: vec3, t_min: ti.f32) -> SceneHit:
    """Find the closest object hit along a ray.

    Keeps the smallest distance t with t > t_min and t < best so far, scanning
    objects in insertion order. The strict comparison makes the first object
    win an exact tie.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        t_min: Self-intersection epsilon; closer hits are ignored.

    Returns:
        A SceneHit; object_id is NO_OBJECT and t is T_INFINITY when nothing
        is hit (always the case for an empty scene).
    """
    nearest_id = NO_OBJECT
    nearest_t = T_INFINITY

    for object_id in range(num_objects[None]):
        t = intersect_object(object_id, ray_origin, ray_direction, t_min)
        if t > t_min and t < nearest_t:
            nearest_id = object_id
            nearest_t = t

    return SceneHit(object_id=nearest_id, t=nearest_t)


_query_result = ti.field(dtype=ti.i32, shape=())
_query_distance = ti.field(dtype=ti.f32, shape=())


@ti.kernel
def _query_kernel(origin: vec3, direction: vec3, t_min: ti.f32):
    # Single-iteration outer loop keeps the object scan serial
    for _ in range(1):
        hit = nearest_intersection(origin, direction, t_min)
        _query_result[None] = hit.object_id
        _query_distance[None] = hit.t


def query_nearest(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    t_min: float = 1e-4,
) -> tuple[int | None, float]:
    """Python-callable nearest_intersection().

    Args:
        origin: Ray origin.
        direction: Ray direction.
        t_min: Self-intersection epsilon.

    Returns:
        Tuple of (object_id, distance), or (None, inf) on a miss.
    """
    _query_kernel(vec3(*origin), vec3(*direction), t_min)
    object_id = int(_query_result[None])
    if object_id == NO_OBJECT:
        return None, float("inf")
    return object_id, float(_query_distance[None])
