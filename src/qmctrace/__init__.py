"""Deterministic Monte Carlo path tracer built on Taichi.

This package renders diffuse scenes of spheres and planes lit by a point light
and a sky gradient, seen through a camera orbiting a look-at point:
- Rotated Halton sampling with a per-pixel hash, no random state
- Path tracing with direct lighting, shadow rays and cosine-weighted bounces
- Progressive accumulation of passes per animation frame
- Tone mapped PNG export

Subpackages:
    core: Configuration, rays, sampler, integrator and rendering loop
    geometry: Sphere and plane primitives
    scene: Object table, nearest-hit query and scene construction
    camera: Orbiting pinhole camera
    preview: Display processing and image export
"""

__version__ = "0.1.0"
