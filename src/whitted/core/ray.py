"""Ray data structure and vector utilities for Whitted ray tracing.

This module provides the Ray dataclass and the small set of vector helpers
the shading engine relies on: reflection and refraction directions and the
biased origin used by every secondary ray. All operations are Taichi
functions and are meant to be called from within kernels.

Sign convention: ``reflect`` and ``refract`` take the incoming vector ``I``
pointing away from the surface, i.e. the negated ray direction. This matches
the shading code, which always passes ``-direction``.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> origin = ti.math.vec3(0.0, 0.0, 0.0)
    >>> direction = ti.math.vec3(0.0, 0.0, -1.0)
    >>> ray = Ray(origin=origin, direction=direction)
    >>> point = ray_at(ray, 5.0)  # Point 5 units along the ray
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Offset applied along the surface normal to secondary ray origins.
# Must be tuned against the scene's unit scale.
SURFACE_BIAS = 1e-3


@ti.dataclass
class Ray:
    """A ray with an origin point and direction vector.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction vector of the ray (vec3). The intersector
            assumes unit length.
    """

    origin: vec3
    direction: vec3


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Compute the point along the ray at parameter t.

    Args:
        ray: The ray to evaluate.
        t: The parameter value. Positive values are in front of the origin.

    Returns:
        The point ray.origin + t * ray.direction.
    """
    return ray.origin + t * ray.direction


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    """Create a ray from origin and direction."""
    return Ray(origin=origin, direction=direction)


# =============================================================================
# Vector Utility Functions
# =============================================================================


@ti.func
def length(v: vec3) -> ti.f32:
    """Compute the Euclidean length of a vector."""
    return tm.length(v)


@ti.func
def length_squared(v: vec3) -> ti.f32:
    """Compute the squared length of a vector.

    Cheaper than length() when only comparing magnitudes.
    """
    return tm.dot(v, v)


@ti.func
def normalize(v: vec3) -> vec3:
    """Normalize a vector to unit length.

    The result is undefined (NaN) for a zero-length vector; callers must
    guarantee a nonzero input.
    """
    return tm.normalize(v)


@ti.func
def dot(a: vec3, b: vec3) -> ti.f32:
    """Compute the dot product of two vectors."""
    return tm.dot(a, b)


@ti.func
def near_zero(v: vec3) -> ti.i32:
    """Check if a vector is near zero in all components.

    Used to detect the zero direction returned by refract() on total
    internal reflection.

    Args:
        v: The vector to check.

    Returns:
        1 if all components are near zero, 0 otherwise.
    """
    s = 1e-8
    return ti.abs(v.x) < s and ti.abs(v.y) < s and ti.abs(v.z) < s


# =============================================================================
# Secondary Ray Directions
# =============================================================================


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Mirror a vector about a normal: 2 * N * dot(I, N) - I.

    Args:
        incident: The vector to mirror, pointing away from the surface
            (e.g. the direction toward a light, or the negated ray direction).
        normal: The unit surface normal.

    Returns:
        The mirrored vector, pointing away from the surface.
    """
    return 2.0 * tm.dot(incident, normal) * normal - incident


@ti.func
def refract(incident: vec3, normal: vec3, refractive_index: ti.f32) -> vec3:
    """Refract a vector through a surface using Snell's law.

    Handles both entering and leaving a transparent sphere. The normal is
    the outward sphere normal; when ``dot(I, N) < 0`` the ray is leaving the
    medium, so the indices are swapped and the normal is flipped.

    Args:
        incident: The negated ray direction (unit length).
        normal: The outward unit surface normal.
        refractive_index: Index of refraction of the sphere's material.

    Returns:
        The normalized transmitted direction, or the zero vector on total
        internal reflection.
    """
    cosi = tm.dot(incident, normal)
    eta_i = 1.0
    eta_t = refractive_index
    n = normal
    if cosi < 0.0:
        cosi = -cosi
        eta_i = refractive_index
        eta_t = 1.0
        n = -normal
    eta = eta_i / eta_t
    k = 1.0 - eta * eta * (1.0 - cosi * cosi)
    result = vec3(0.0, 0.0, 0.0)
    if k >= 0.0:
        result = tm.normalize(incident * -eta + n * (eta * cosi - ti.sqrt(k)))
    return result


@ti.func
def offset_origin(point: vec3, normal: vec3, direction: vec3) -> vec3:
    """Offset a ray origin off the surface to avoid self-intersection.

    Pushes the point along the normal toward the side the new ray travels:
    inward when the direction opposes the normal, outward otherwise. The same
    rule serves shadow, reflection and refraction rays.

    Args:
        point: The intersection point.
        normal: The outward surface normal.
        direction: The direction of the ray leaving the point.

    Returns:
        The biased origin.
    """
    result = point + normal * SURFACE_BIAS
    if tm.dot(direction, normal) < 0.0:
        result = point - normal * SURFACE_BIAS
    return result
