"""Core rendering module.

This module contains the fundamental building blocks for ray tracing:

Components:
    ray: Ray data structure and vector utilities (reflect, refract, bias)
    integrator: Whitted light transport and the render kernel
    renderer: Render settings and band-by-band rendering loop

The integrator evaluates, per hit, Phong direct lighting with hard shadows
plus recursively traced mirror reflection and Snell refraction, down to a
fixed recursion limit.

All compute-intensive operations use Taichi kernels.
"""

from .ray import (
    SURFACE_BIAS,
    Ray,
    dot,
    length,
    length_squared,
    make_ray,
    near_zero,
    normalize,
    offset_origin,
    ray_at,
    reflect,
    refract,
    vec3,
)

# Note: integrator and renderer are NOT imported here to avoid circular imports.
# Import directly from whitted.core.integrator or whitted.core.renderer when needed.
#
# For rendering, use:
#   from whitted.core.renderer import Renderer, RenderSettings

__all__ = [
    "Ray",
    "ray_at",
    "make_ray",
    "vec3",
    "length",
    "length_squared",
    "normalize",
    "dot",
    "reflect",
    "refract",
    "near_zero",
    "offset_origin",
    "SURFACE_BIAS",
]
