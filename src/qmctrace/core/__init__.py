"""Core rendering module.

This module contains the building blocks of one radiance estimate:

Components:
    config: Frozen render, camera, light and sky configuration
    ray: Ray structure, vector helpers and direction sampling
    sampler: Pixel hash and rotated Halton sequence
    integrator: Path tracing state machine and the render target
    progressive: Pass accumulation driver

All per-sample math runs in Taichi functions; estimates are deterministic
functions of (pixel, frame, pass) and the uploaded scene and configuration.
"""

from .ray import (
    ZERO_LENGTH_SQUARED,
    Ray,
    cross,
    make_ray,
    ray_at,
    safe_normalize,
    sample_cosine_direction,
    sample_unit_sphere,
    vec3,
)

# Note: integrator and progressive are NOT imported here to avoid circular imports.
# Import directly from qmctrace.core.integrator or qmctrace.core.progressive when needed.

__all__ = [
    "Ray",
    "ray_at",
    "make_ray",
    "vec3",
    "ZERO_LENGTH_SQUARED",
    "cross",
    "safe_normalize",
    "sample_unit_sphere",
    "sample_cosine_direction",
]
