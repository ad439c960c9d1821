"""Immutable render configuration.

Every tunable constant of the renderer lives here rather than in the kernels:
sky gradient, point light, camera orbit and field of view, bounce cap, the
prime bases used by the low-discrepancy sampler and the self-intersection
epsilon. A configuration is a frozen dataclass; it is uploaded into Taichi
fields with ``setup_integrator()`` before rendering, so scenes and cameras can
be swapped without touching kernel code.

Example:
    >>> from dataclasses import replace
    >>> from qmctrace.core.config import RenderConfig, PointLight
    >>> config = RenderConfig()
    >>> config.max_bounces
    3
    >>> dim = replace(config, light=PointLight(position=(8.0, 12.0, -6.0), intensity=100.0))
"""

import math
from dataclasses import dataclass, field

Vec3Tuple = tuple[float, float, float]

# Upper bound on the number of prime bases the sampler field can hold
MAX_PRIMES = 16

# Upper bound on the bounce cap (keeps worst-case kernel work bounded)
MAX_BOUNCES_LIMIT = 64


def _check_vec3(name: str, value: tuple[float, ...]) -> None:
    """Raise ValueError unless value is a finite 3-component vector."""
    if len(value) != 3:
        raise ValueError(f"{name} must have 3 components, got {len(value)}")
    for i, component in enumerate(value):
        if not math.isfinite(component):
            raise ValueError(f"{name} component {i} = {component} is not finite")


@dataclass(frozen=True)
class SkyGradient:
    """Vertical sky gradient returned for rays that escape the scene.

    The colour is ``horizon + (zenith - horizon) * max(0, direction.y)``.

    Attributes:
        zenith: Colour straight up.
        horizon: Colour at (and below) the horizon.
    """

    zenith: Vec3Tuple = (0.04, 0.1, 0.2)
    horizon: Vec3Tuple = (0.1, 0.14, 0.2)

    def __post_init__(self) -> None:
        _check_vec3("zenith", self.zenith)
        _check_vec3("horizon", self.horizon)


@dataclass(frozen=True)
class PointLight:
    """Single point light used for direct lighting.

    Attributes:
        position: World-space light position.
        intensity: Scalar multiplier on the 1/distance^2 falloff.
    """

    position: Vec3Tuple = (8.0, 12.0, -6.0)
    intensity: float = 420.0

    def __post_init__(self) -> None:
        _check_vec3("position", self.position)
        if not math.isfinite(self.intensity) or self.intensity < 0.0:
            raise ValueError(f"Light intensity = {self.intensity} must be finite and >= 0")


@dataclass(frozen=True)
class CameraConfig:
    """Orbiting pinhole camera.

    The camera position at animation angle ``t`` is::

        orbit_scale * (orbit_minor * cos(t) + orbit_major * sin(t),
                       orbit_height,
                       -orbit_major * cos(t) + orbit_minor * sin(t))

    Attributes:
        look_at: Point the camera always faces.
        world_up: Up direction used to build the camera basis.
        vfov: Vertical field of view in degrees.
        orbit_major: Coefficient paired with sin(t) on x and cos(t) on z.
        orbit_minor: Coefficient paired with cos(t) on x and sin(t) on z.
        orbit_height: Camera height before scaling.
        orbit_scale: Uniform scale applied to the orbit position.
    """

    look_at: Vec3Tuple = (0.0, 0.0, 0.0)
    world_up: Vec3Tuple = (0.0, 1.0, 0.0)
    vfov: float = 80.0
    orbit_major: float = 10.0
    orbit_minor: float = 4.0
    orbit_height: float = 5.0
    orbit_scale: float = 0.25

    def __post_init__(self) -> None:
        _check_vec3("look_at", self.look_at)
        _check_vec3("world_up", self.world_up)
        if not 0.0 < self.vfov < 180.0:
            raise ValueError(f"Vertical field of view = {self.vfov} must be in (0, 180)")
        for name in ("orbit_major", "orbit_minor", "orbit_height", "orbit_scale"):
            value = getattr(self, name)
            if not math.isfinite(value):
                raise ValueError(f"{name} = {value} is not finite")


@dataclass(frozen=True)
class RenderConfig:
    """Complete configuration for one renderer.

    Attributes:
        max_bounces: Number of indirect bounces after the primary hit.
            A path queries the scene at most ``max_bounces + 1`` times.
        ray_epsilon: Hits closer than this are ignored (self-intersection).
        primes: Bases of the radical inverse, cycled by sample dimension.
        sky: Sky gradient for escaped rays.
        light: The point light.
        camera: The orbiting camera.
    """

    max_bounces: int = 3
    ray_epsilon: float = 1e-4
    primes: tuple[int, ...] = (2, 3, 5, 7, 11, 13)
    sky: SkyGradient = field(default_factory=SkyGradient)
    light: PointLight = field(default_factory=PointLight)
    camera: CameraConfig = field(default_factory=CameraConfig)

    def __post_init__(self) -> None:
        if not 0 <= self.max_bounces <= MAX_BOUNCES_LIMIT:
            raise ValueError(
                f"max_bounces = {self.max_bounces} must be in [0, {MAX_BOUNCES_LIMIT}]"
            )
        if not self.ray_epsilon > 0.0:
            raise ValueError(f"ray_epsilon = {self.ray_epsilon} must be positive")
        if not 1 <= len(self.primes) <= MAX_PRIMES:
            raise ValueError(f"Between 1 and {MAX_PRIMES} prime bases required, got {len(self.primes)}")
        for base in self.primes:
            if base < 2:
                raise ValueError(f"Radical inverse base {base} must be >= 2")

    @property
    def sample_dimensions(self) -> int:
        """Number of sampler dimensions one path can consume."""
        return 3 + 2 * self.max_bounces
