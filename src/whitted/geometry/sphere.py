"""Sphere primitive with geometric ray-sphere intersection.

This module provides a Sphere dataclass and an intersection routine based on
the geometric method: the sphere center is projected onto the ray and the
half-chord length is recovered from the perpendicular distance. This avoids
setting up the full quadratic and only needs a unit ray direction.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from whitted.geometry.sphere import Sphere, hit_sphere
    >>> sphere = Sphere(center=ti.math.vec3(0, 0, -16), radius=2.0)
    >>> # Use hit_sphere within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

from whitted.core.ray import dot, length_squared, make_ray, normalize, ray_at

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class Sphere:
    """A sphere defined by center point and radius.

    Attributes:
        center: The center point of the sphere (vec3).
        radius: The radius of the sphere (positive float).
    """

    center: vec3
    radius: ti.f32


@ti.dataclass
class HitRecord:
    """Record of a ray-sphere intersection.

    Attributes:
        hit: Whether the ray intersected the sphere (1 if hit, 0 if miss).
        t: Distance along the ray to the intersection. Only valid if hit == 1.
        point: The 3D intersection point. Only valid if hit == 1.
        normal: The unit surface normal at the intersection point. Always
            points outward from the sphere center, also when the ray starts
            inside the sphere. Only valid if hit == 1.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3


@ti.func
def hit_sphere(ray_origin: vec3, ray_direction: vec3, sphere: Sphere) -> HitRecord:
    """Test for ray-sphere intersection using the geometric method.

    With L = center - origin:
        tca = dot(L, direction)          (projection of the center on the ray)
        d2 = dot(L, L) - tca^2           (squared distance center-to-ray)
        thc = sqrt(radius^2 - d2)        (half chord)
        t0, t1 = tca - thc, tca + thc

    When the origin is inside the sphere (or past the near intersection) t0 is
    negative and the far root t1 is used instead. A sphere lying entirely
    behind the origin has both roots negative and is reported as a miss.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The unit direction of the ray.
        sphere: The sphere to test intersection against.

    Returns:
        A HitRecord containing intersection information. Check the hit field
        to determine if an intersection occurred.
    """
    L = sphere.center - ray_origin
    tca = dot(L, ray_direction)
    d2 = length_squared(L) - tca * tca
    r2 = sphere.radius * sphere.radius

    # Initialize result fields (Taichi requires outer-scope declaration)
    did_hit = 0
    hit_t = 0.0
    hit_point = vec3(0.0, 0.0, 0.0)
    hit_normal = vec3(0.0, 0.0, 0.0)

    if d2 <= r2:
        thc = ti.sqrt(r2 - d2)
        t0 = tca - thc
        t1 = tca + thc
        if t0 < 0.0:
            t0 = t1
        if t0 >= 0.0:
            did_hit = 1
            hit_t = t0
            hit_point = ray_at(make_ray(ray_origin, ray_direction), t0)
            hit_normal = normalize(hit_point - sphere.center)

    return HitRecord(hit=did_hit, t=hit_t, point=hit_point, normal=hit_normal)


@ti.func
def make_sphere(center: vec3, radius: ti.f32) -> Sphere:
    """Create a sphere from center and radius."""
    return Sphere(center=center, radius=radius)
