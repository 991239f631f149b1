"""Scene-level ray intersection and shadow testing.

This module stores the scene's spheres in Taichi fields and provides the two
queries the shading engine is built on:

    intersect_scene: nearest hit over all spheres (exhaustive search)
    is_occluded: whether a point can see a light

Rays whose nearest hit lies at or beyond MAX_HIT_DISTANCE are treated as
having escaped to the background.

Host-side wrappers (query_intersection, query_occlusion) run the same
Taichi functions from Python for inspection and testing.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from whitted.scene.intersection import add_sphere, clear_scene, query_intersection
    >>> clear_scene()
    >>> add_sphere((0.0, 0.0, -16.0), 2.0, material_id=0)
    0
    >>> hit = query_intersection((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))
    >>> hit.t
    14.0
"""

import math
from dataclasses import dataclass

import taichi as ti
import taichi.math as tm

from whitted.core.ray import length, offset_origin
from whitted.geometry.sphere import hit_sphere, make_sphere

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Hits at or beyond this distance count as misses
MAX_HIT_DISTANCE = 1000.0


@ti.dataclass
class SceneHitRecord:
    """Record of a ray-scene intersection with material information.

    Attributes:
        hit: Whether the ray intersected any sphere (1 if hit, 0 if miss).
        t: Distance from the ray origin to the hit. Only valid if hit == 1.
        point: The 3D intersection point. Only valid if hit == 1.
        normal: The outward unit normal at the hit point. Only valid if
            hit == 1.
        material_id: The material ID of the hit sphere. -1 on a miss.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    material_id: ti.i32


@dataclass(frozen=True)
class SceneHit:
    """Host-side copy of a SceneHitRecord for a ray that hit the scene.

    Attributes:
        t: Distance from the ray origin to the hit.
        point: The intersection point.
        normal: The outward unit normal at the hit point.
        material_id: The material ID of the hit sphere.
    """

    t: float
    point: tuple[float, float, float]
    normal: tuple[float, float, float]
    material_id: int


# Maximum number of spheres supported in the scene
MAX_SPHERES = 1024

# Sphere storage: Structure of Arrays layout for GPU efficiency
sphere_centers = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SPHERES)
sphere_radii = ti.field(dtype=ti.f32, shape=MAX_SPHERES)
sphere_material_ids = ti.field(dtype=ti.i32, shape=MAX_SPHERES)
num_spheres = ti.field(dtype=ti.i32, shape=())


def clear_scene() -> None:
    """Clear all spheres from the scene.

    Resets the sphere count to zero. The actual field data is not cleared
    but will be overwritten when new spheres are added.
    """
    num_spheres[None] = 0


def add_sphere(center, radius: float, material_id: int = 0) -> int:
    """Add a sphere to the scene.

    Args:
        center: The center point of the sphere (vec3 or (x, y, z)).
        radius: The radius of the sphere. Must be positive.
        material_id: The material ID to associate with this sphere.

    Returns:
        The index of the added sphere.

    Raises:
        RuntimeError: If the maximum number of spheres is exceeded.
        ValueError: If the radius is not positive.
    """
    if radius <= 0.0:
        raise ValueError(f"Sphere radius = {radius} must be positive")

    idx = num_spheres[None]
    if idx >= MAX_SPHERES:
        raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")
    sphere_centers[idx] = vec3(center[0], center[1], center[2])
    sphere_radii[idx] = radius
    sphere_material_ids[idx] = material_id
    num_spheres[None] = idx + 1
    return idx


def get_sphere_count() -> int:
    """Get the number of spheres in the scene."""
    return int(num_spheres[None])


def set_sphere_material(sphere_idx: int, material_id: int) -> None:
    """Reassign the material of an existing sphere.

    Only valid between renders; the scene is read-only while a kernel runs.

    Args:
        sphere_idx: The index of the sphere.
        material_id: The new material ID.

    Raises:
        ValueError: If the sphere index is invalid.
    """
    if sphere_idx < 0 or sphere_idx >= num_spheres[None]:
        raise ValueError(f"Invalid sphere index: {sphere_idx}")
    sphere_material_ids[sphere_idx] = material_id


@ti.func
def _make_miss_record() -> SceneHitRecord:
    """Create a SceneHitRecord indicating no intersection."""
    return SceneHitRecord(
        hit=0,
        t=0.0,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        material_id=-1,
    )


@ti.func
def intersect_scene(ray_origin: vec3, ray_direction: vec3) -> SceneHitRecord:
    """Find the nearest sphere hit along a ray.

    Iterates through all spheres and keeps the smallest nonnegative hit
    distance. When two spheres are hit at exactly the same distance the
    first one in registry order wins.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The unit direction of the ray.

    Returns:
        A SceneHitRecord containing the closest intersection, or a miss
        record if nothing was hit closer than MAX_HIT_DISTANCE.
    """
    closest_t = MAX_HIT_DISTANCE
    result = _make_miss_record()

    n_spheres = num_spheres[None]
    for i in range(n_spheres):
        sphere = make_sphere(sphere_centers[i], sphere_radii[i])
        rec = hit_sphere(ray_origin, ray_direction, sphere)
        if rec.hit == 1 and rec.t < closest_t:
            closest_t = rec.t
            result = SceneHitRecord(
                hit=1,
                t=rec.t,
                point=rec.point,
                normal=rec.normal,
                material_id=sphere_material_ids[i],
            )

    return result


@ti.func
def is_occluded(point: vec3, normal: vec3, light_position: vec3) -> ti.i32:
    """Test whether anything blocks the segment from a surface point to a light.

    The shadow ray starts from the point biased off the surface toward the
    light side and is occluded when the nearest hit lies strictly closer
    than the light.

    Args:
        point: The surface point being shaded.
        normal: The outward surface normal at the point.
        light_position: The position of the point light.

    Returns:
        1 if the light is occluded, 0 otherwise.
    """
    to_light = light_position - point
    light_distance = length(to_light)
    light_dir = to_light / light_distance
    shadow_origin = offset_origin(point, normal, light_dir)
    rec = intersect_scene(shadow_origin, light_dir)
    occluded = 0
    if rec.hit == 1 and rec.t < light_distance:
        occluded = 1
    return occluded


# =============================================================================
# Host-side Queries
# =============================================================================

_query_hit = ti.field(dtype=ti.i32, shape=())
_query_t = ti.field(dtype=ti.f32, shape=())
_query_point = ti.Vector.field(3, dtype=ti.f32, shape=())
_query_normal = ti.Vector.field(3, dtype=ti.f32, shape=())
_query_material_id = ti.field(dtype=ti.i32, shape=())
_query_occluded = ti.field(dtype=ti.i32, shape=())


@ti.kernel
def _intersect_query(origin: vec3, direction: vec3):
    # Single-iteration loop keeps the sphere loop serial
    for _ in range(1):
        rec = intersect_scene(origin, direction)
        _query_hit[None] = rec.hit
        _query_t[None] = rec.t
        _query_point[None] = rec.point
        _query_normal[None] = rec.normal
        _query_material_id[None] = rec.material_id


@ti.kernel
def _occlusion_query(point: vec3, normal: vec3, light_position: vec3):
    for _ in range(1):
        _query_occluded[None] = is_occluded(point, normal, light_position)


def _as_vec3(v) -> vec3:
    return vec3(float(v[0]), float(v[1]), float(v[2]))


def _as_tuple(v) -> tuple[float, float, float]:
    return (float(v[0]), float(v[1]), float(v[2]))


def query_intersection(origin, direction) -> SceneHit | None:
    """Run the scene intersector from Python.

    Args:
        origin: Ray origin as (x, y, z).
        direction: Ray direction as (x, y, z). Normalized before the query.

    Returns:
        A SceneHit for the nearest sphere, or None if the ray escapes.

    Raises:
        ValueError: If the direction has zero length.
    """
    norm = math.sqrt(sum(float(c) * float(c) for c in direction))
    if norm == 0.0:
        raise ValueError("Ray direction must have nonzero length")
    unit = (direction[0] / norm, direction[1] / norm, direction[2] / norm)

    _intersect_query(_as_vec3(origin), _as_vec3(unit))
    if _query_hit[None] == 0:
        return None
    return SceneHit(
        t=float(_query_t[None]),
        point=_as_tuple(_query_point[None]),
        normal=_as_tuple(_query_normal[None]),
        material_id=int(_query_material_id[None]),
    )


def query_occlusion(point, normal, light_position) -> bool:
    """Run the shadow tester from Python.

    Args:
        point: The surface point as (x, y, z).
        normal: The outward unit normal at the point.
        light_position: The light position as (x, y, z).

    Returns:
        True if the light is blocked from the point.
    """
    _occlusion_query(_as_vec3(point), _as_vec3(normal), _as_vec3(light_position))
    return bool(_query_occluded[None])
