"""Scene module for scene management and ray-scene queries.

This module handles scene representation and ray-scene queries:

Components:
    intersection: Sphere storage, closest-hit and shadow queries
    lights: Point light registry
    manager: Scene manager coordinating spheres, materials and lights
    reference_scene: The classic four-sphere, three-light scene

Scene data is organized for efficient kernel access:
    - Structure-of-Arrays layout for sphere data
    - Material IDs stored per sphere
    - Light positions and intensities in flat fields
"""

from .intersection import (
    MAX_HIT_DISTANCE,
    MAX_SPHERES,
    SceneHit,
    SceneHitRecord,
    add_sphere,
    clear_scene,
    get_sphere_count,
    intersect_scene,
    is_occluded,
    query_intersection,
    query_occlusion,
    set_sphere_material,
)
from .lights import (
    MAX_LIGHTS,
    add_point_light,
    clear_lights,
    get_light,
    get_light_count,
    get_light_intensity,
    get_light_position,
)
from .manager import (
    LightInfo,
    MaterialInfo,
    SceneConfig,
    SceneManager,
    SphereInfo,
    load_scene_file,
    save_scene_file,
)

# Note: reference_scene is NOT imported here because it depends on
# whitted.core.renderer. Import it directly from whitted.scene.reference_scene.

__all__ = [
    # Intersection module
    "SceneHitRecord",
    "SceneHit",
    "add_sphere",
    "clear_scene",
    "get_sphere_count",
    "set_sphere_material",
    "intersect_scene",
    "is_occluded",
    "query_intersection",
    "query_occlusion",
    "MAX_SPHERES",
    "MAX_HIT_DISTANCE",
    # Lights module
    "add_point_light",
    "clear_lights",
    "get_light",
    "get_light_count",
    "get_light_position",
    "get_light_intensity",
    "MAX_LIGHTS",
    # Manager module
    "SceneManager",
    "MaterialInfo",
    "SphereInfo",
    "LightInfo",
    "SceneConfig",
    "load_scene_file",
    "save_scene_file",
]
