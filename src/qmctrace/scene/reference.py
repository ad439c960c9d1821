"""Reference test scene.

A small outdoor scene sized for the default orbiting camera: a ground plane
and three diffuse spheres, all well inside the orbit (radius about 2.7 at a
height of 1.25), lit by the default point light above and behind them.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from qmctrace.core.integrator import setup_integrator
    >>> from qmctrace.scene.reference import create_reference_scene
    >>> scene, config = create_reference_scene()
    >>> setup_integrator(config)
"""

from dataclasses import dataclass

from qmctrace.core.config import RenderConfig
from qmctrace.scene.manager import SceneManager

Vec3Tuple = tuple[float, float, float]


@dataclass(frozen=True)
class ReferenceSceneParams:
    """Colours and layout of the reference scene.

    Attributes:
        ground_height: y coordinate of the ground plane.
        ground_colour: Albedo of the ground.
        centre_colour: Albedo of the unit sphere at the origin.
        left_colour: Albedo of the small sphere on the -x side.
        right_colour: Albedo of the small sphere on the +x side.
    """

    ground_height: float = -1.0
    ground_colour: Vec3Tuple = (0.6, 0.6, 0.55)
    centre_colour: Vec3Tuple = (0.8, 0.8, 0.8)
    left_colour: Vec3Tuple = (0.2, 0.35, 0.8)
    right_colour: Vec3Tuple = (0.8, 0.2, 0.15)


def create_reference_scene(
    params: ReferenceSceneParams | None = None,
    config: RenderConfig | None = None,
) -> tuple[SceneManager, RenderConfig]:
    """Build the reference scene.

    Object order (and therefore object ids): ground, centre sphere, right
    sphere, left sphere.

    Args:
        params: Optional colour and layout overrides.
        config: Optional render configuration; defaults to RenderConfig().

    Returns:
        Tuple of (scene, config). The config still has to be applied with
        setup_integrator().
    """
    if params is None:
        params = ReferenceSceneParams()
    if config is None:
        config = RenderConfig()

    ground = params.ground_height
    scene = SceneManager()
    scene.add_plane(point=(0.0, ground, 0.0), normal=(0.0, 1.0, 0.0), colour=params.ground_colour)
    scene.add_sphere(center=(0.0, 0.0, 0.0), radius=1.0, colour=params.centre_colour)
    scene.add_sphere(center=(1.6, ground + 0.4, 0.2), radius=0.4, colour=params.right_colour)
    scene.add_sphere(center=(-1.3, ground + 0.5, -0.9), radius=0.5, colour=params.left_colour)

    return scene, config
