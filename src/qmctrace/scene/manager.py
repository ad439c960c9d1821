"""Python-side scene manager.

The Taichi object table in ``qmctrace.scene.intersection`` is write-only from
the kernels' point of view and opaque from Python. SceneManager wraps it with
input validation and keeps an ordered list of ObjectInfo records mirroring
the table, so scenes can be inspected and rebuilt without reading fields
back.

Only one scene exists at a time: creating a SceneManager or calling clear()
empties the shared table.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from qmctrace.scene.manager import SceneManager
    >>> scene = SceneManager()
    >>> scene.add_plane(point=(0, -1, 0), normal=(0, 1, 0), colour=(0.6, 0.6, 0.6))
    0
    >>> scene.add_sphere(center=(0, 0, 0), radius=1.0, colour=(0.8, 0.3, 0.3))
    1
"""

import logging
import math
from dataclasses import dataclass

import numpy as np

from qmctrace.scene.intersection import (
    MAX_PLANES,
    MAX_SPHERES,
    ShapeKind,
    add_plane,
    add_sphere,
    clear_scene,
    get_object_count,
    get_plane_count,
    get_sphere_count,
)

logger = logging.getLogger(__name__)

Vec3Tuple = tuple[float, float, float]


def _as_vec3(name: str, value: tuple[float, ...]) -> Vec3Tuple:
    """Validate a 3-component vector and return it as a float tuple."""
    v = np.asarray(value, dtype=np.float64)
    if v.shape != (3,):
        raise ValueError(f"{name} must have 3 components, got {v.size}")
    if not np.all(np.isfinite(v)):
        raise ValueError(f"{name} = {tuple(value)} is not finite")
    return (float(v[0]), float(v[1]), float(v[2]))


@dataclass(frozen=True)
class ObjectInfo:
    """Record of one object in the scene table.

    Attributes:
        object_id: Position in the scene table (and scan order).
        kind: Shape variant.
        colour: Diffuse albedo.
        params: Shape parameters as stored (center/radius or point/normal).
    """

    object_id: int
    kind: ShapeKind
    colour: Vec3Tuple
    params: dict[str, Vec3Tuple | float]


class SceneManager:
    """Builds and tracks the scene's object list.

    Attributes:
        objects: ObjectInfo for every object, in insertion order.
    """

    def __init__(self) -> None:
        """Initialize an empty scene (clears any previous scene)."""
        self.objects: list[ObjectInfo] = []
        self.clear()

    def clear(self) -> None:
        """Remove all objects from the scene."""
        clear_scene()
        self.objects.clear()
        logger.debug("Scene cleared")

    def add_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        colour: tuple[float, float, float],
    ) -> int:
        """Add a sphere to the scene.

        Args:
            center: The center point of the sphere as (x, y, z).
            radius: The radius of the sphere.
            colour: Diffuse albedo as (R, G, B). Values above 1 are allowed.

        Returns:
            The object id of the sphere.

        Raises:
            ValueError: If the radius is not positive or a vector is malformed.
            RuntimeError: If the maximum number of spheres is exceeded.
        """
        center_v = _as_vec3("center", center)
        colour_v = _as_vec3("colour", colour)
        if not (math.isfinite(radius) and radius > 0.0):
            raise ValueError(f"Sphere radius = {radius} must be positive")

        object_id = add_sphere(center_v, float(radius), colour_v)
        self.objects.append(
            ObjectInfo(
                object_id=object_id,
                kind=ShapeKind.SPHERE,
                colour=colour_v,
                params={"center": center_v, "radius": float(radius)},
            )
        )
        logger.debug("Added sphere %d at %s, radius %s", object_id, center_v, radius)
        return object_id

    def add_plane(
        self,
        point: tuple[float, float, float],
        normal: tuple[float, float, float],
        colour: tuple[float, float, float],
    ) -> int:
        """Add an infinite plane to the scene.

        Args:
            point: Any point on the plane as (x, y, z).
            normal: Plane normal; normalised before storage.
            colour: Diffuse albedo as (R, G, B).

        Returns:
            The object id of the plane.

        Raises:
            ValueError: If the normal has zero length or a vector is malformed.
            RuntimeError: If the maximum number of planes is exceeded.
        """
        point_v = _as_vec3("point", point)
        normal_v = _as_vec3("normal", normal)
        colour_v = _as_vec3("colour", colour)

        n = np.asarray(normal_v, dtype=np.float64)
        norm = np.linalg.norm(n)
        if norm < 1e-12:
            raise ValueError(f"Plane normal {normal} has zero length")
        n = n / norm
        unit_normal = (float(n[0]), float(n[1]), float(n[2]))

        object_id = add_plane(point_v, unit_normal, colour_v)
        self.objects.append(
            ObjectInfo(
                object_id=object_id,
                kind=ShapeKind.PLANE,
                colour=colour_v,
                params={"point": point_v, "normal": unit_normal},
            )
        )
        logger.debug("Added plane %d through %s, normal %s", object_id, point_v, unit_normal)
        return object_id

    # =========================================================================
    # Scene Queries
    # =========================================================================

    def get_object_count(self) -> int:
        """Get the number of objects in the scene."""
        return get_object_count()

    def get_sphere_count(self) -> int:
        """Get the number of spheres in the scene."""
        return get_sphere_count()

    def get_plane_count(self) -> int:
        """Get the number of planes in the scene."""
        return get_plane_count()

    def get_object_info(self, object_id: int) -> ObjectInfo | None:
        """Get the record of an object, or None for an unknown id."""
        if 0 <= object_id < len(self.objects):
            return self.objects[object_id]
        return None

    @staticmethod
    def get_max_spheres() -> int:
        """Get the maximum number of spheres supported."""
        return MAX_SPHERES

    @staticmethod
    def get_max_planes() -> int:
        """Get the maximum number of planes supported."""
        return MAX_PLANES

    def __len__(self) -> int:
        return len(self.objects)
