"""Scene manager for coordinating spheres, materials and lights.

This module provides a high-level scene management API on top of the global
Taichi registries (spheres, Phong materials, point lights). It keeps a
host-side record of everything added so a scene can be exported to and loaded
from plain dictionaries and JSON files.

The SceneManager maintains:
- Material IDs handed out by the Phong material registry
- Validation that spheres only reference registered materials
- Point lights with positive intensities
- Scene serialization/configuration support

Scene files are JSON documents of the form::

    {
        "render": {"width": 1024, "height": 768, "max_depth": 4, ...},
        "camera": {"lookfrom": [0, 0, 0], "lookat": [0, 0, -1], ...},
        "materials": [{"preset": "ivory"}, {"refractive_index": 1.5, ...}],
        "spheres": [{"center": [-3, 0, -16], "radius": 2, "material_id": 0}],
        "lights": [{"position": [-20, 20, 20], "intensity": 1.5}]
    }

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from whitted.scene.manager import SceneManager
    >>> scene = SceneManager()
    >>> ivory = scene.add_material_preset("ivory")
    >>> scene.add_sphere(center=(-3, 0, -16), radius=2, material_id=ivory)
    >>> scene.add_light(position=(-20, 20, 20), intensity=1.5)
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from whitted.materials.phong import (
    MATERIAL_PRESETS,
    MAX_MATERIALS,
    PhongParams,
    add_phong_material,
    clear_phong_materials,
    get_phong_material_count,
)
from whitted.scene.intersection import (
    MAX_SPHERES,
    add_sphere,
    clear_scene,
    get_sphere_count,
)
from whitted.scene.lights import (
    MAX_LIGHTS,
    add_point_light,
    clear_lights,
    get_light_count,
)

if TYPE_CHECKING:
    from whitted.camera.pinhole import PinholeCamera
    from whitted.core.renderer import RenderSettings


@dataclass
class MaterialInfo:
    """Information about a registered material.

    Attributes:
        material_id: The material ID used by spheres.
        params: The Phong parameters of the material.
        name: Preset name, if the material came from a preset.
    """

    material_id: int
    params: PhongParams
    name: str | None = None


@dataclass
class SphereInfo:
    """Information about a sphere in the scene.

    Attributes:
        sphere_index: The index in the sphere storage arrays.
        center: The center of the sphere.
        radius: The radius of the sphere.
        material_id: The material ID assigned to the sphere.
    """

    sphere_index: int
    center: tuple[float, float, float]
    radius: float
    material_id: int


@dataclass
class LightInfo:
    """Information about a point light in the scene.

    Attributes:
        light_index: The index in the light storage arrays.
        position: World-space position of the light.
        intensity: Scalar (white) intensity.
    """

    light_index: int
    position: tuple[float, float, float]
    intensity: float


@dataclass
class SceneConfig:
    """Configuration for scene serialization.

    Attributes:
        materials: List of material configurations.
        spheres: List of sphere configurations.
        lights: List of light configurations.
    """

    materials: list[dict[str, Any]] = field(default_factory=list)
    spheres: list[dict[str, Any]] = field(default_factory=list)
    lights: list[dict[str, Any]] = field(default_factory=list)


def _triple(values: Any, what: str) -> tuple[float, float, float]:
    if len(values) != 3:
        raise ValueError(f"{what} must have 3 components, got {len(values)}")
    return (float(values[0]), float(values[1]), float(values[2]))


class SceneManager:
    """Scene manager coordinating spheres, materials and lights.

    Attributes:
        materials: List of MaterialInfo for all registered materials.
        spheres: List of SphereInfo for all spheres in the scene.
        lights: List of LightInfo for all lights in the scene.

    Example:
        >>> scene = SceneManager()
        >>> glass = scene.add_material(1.5, (0.0, 0.5, 0.1, 0.8), (0.6, 0.7, 0.8), 125.0)
        >>> scene.add_sphere((-1, -1.5, -12), 2, glass)
        >>> scene.add_light((30, 50, -25), 1.8)
    """

    def __init__(self) -> None:
        """Initialize an empty scene."""
        self.materials: list[MaterialInfo] = []
        self.spheres: list[SphereInfo] = []
        self.lights: list[LightInfo] = []
        self._clear_all()

    def _clear_all(self) -> None:
        clear_scene()
        clear_phong_materials()
        clear_lights()
        self.materials.clear()
        self.spheres.clear()
        self.lights.clear()

    def clear(self) -> None:
        """Clear the entire scene (spheres, materials and lights).

        Resets all Taichi fields and internal tracking structures.
        """
        self._clear_all()

    # =========================================================================
    # Material Management
    # =========================================================================

    def add_material(
        self,
        refractive_index: float,
        albedo: tuple[float, float, float, float],
        diffuse_color: tuple[float, float, float],
        specular_exponent: float,
        name: str | None = None,
    ) -> int:
        """Add a Phong material to the scene.

        Args:
            refractive_index: Index of refraction (must be positive).
            albedo: Weights [diffuse, specular, reflection, refraction].
            diffuse_color: Base color as (R, G, B).
            specular_exponent: Phong shininess (must be non-negative).
            name: Optional label kept for serialization.

        Returns:
            The material ID for this material.

        Raises:
            RuntimeError: If the maximum number of materials is exceeded.
            ValueError: If any parameter is invalid.
        """
        material_id = add_phong_material(
            refractive_index, albedo, diffuse_color, specular_exponent
        )
        params = PhongParams(
            float(refractive_index),
            (float(albedo[0]), float(albedo[1]), float(albedo[2]), float(albedo[3])),
            _triple(diffuse_color, "Diffuse color"),
            float(specular_exponent),
        )
        self.materials.append(MaterialInfo(material_id, params, name))
        return material_id

    def add_material_preset(self, name: str) -> int:
        """Add one of the named material presets (ivory, red_rubber, mirror, glass).

        Raises:
            ValueError: If the preset name is unknown.
        """
        key = name.lower()
        if key not in MATERIAL_PRESETS:
            raise ValueError(
                f"Unknown material preset: {name!r} "
                f"(expected one of {', '.join(sorted(MATERIAL_PRESETS))})"
            )
        return self.add_material(**MATERIAL_PRESETS[key].as_kwargs(), name=key)

    def get_material_count(self) -> int:
        """Get the total number of materials in the scene."""
        return get_phong_material_count()

    def get_material_info(self, material_id: int) -> MaterialInfo | None:
        """Get information about a material by ID, or None if not found."""
        if 0 <= material_id < len(self.materials):
            return self.materials[material_id]
        return None

    # =========================================================================
    # Primitive and Light Management
    # =========================================================================

    def add_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        material_id: int,
    ) -> int:
        """Add a sphere to the scene.

        Args:
            center: The center point of the sphere as (x, y, z).
            radius: The radius of the sphere (must be positive).
            material_id: A material ID returned by add_material().

        Returns:
            The index of the added sphere.

        Raises:
            RuntimeError: If the maximum number of spheres is exceeded.
            ValueError: If material_id or radius is invalid.
        """
        if material_id < 0 or material_id >= get_phong_material_count():
            raise ValueError(f"Invalid material_id: {material_id}")

        center = _triple(center, "Sphere center")
        sphere_index = add_sphere(center, radius, material_id)
        self.spheres.append(SphereInfo(sphere_index, center, float(radius), material_id))
        return sphere_index

    def add_light(self, position: tuple[float, float, float], intensity: float) -> int:
        """Add a point light to the scene.

        Raises:
            RuntimeError: If the maximum number of lights is exceeded.
            ValueError: If the intensity is not positive.
        """
        position = _triple(position, "Light position")
        light_index = add_point_light(position, intensity)
        self.lights.append(LightInfo(light_index, position, float(intensity)))
        return light_index

    def get_sphere_count(self) -> int:
        """Get the number of spheres in the scene."""
        return get_sphere_count()

    def get_light_count(self) -> int:
        """Get the number of lights in the scene."""
        return get_light_count()

    # =========================================================================
    # Scene Serialization
    # =========================================================================

    def to_config(self) -> SceneConfig:
        """Export the scene to a configuration object."""
        config = SceneConfig()

        for mat in self.materials:
            if mat.name is not None and MATERIAL_PRESETS.get(mat.name) == mat.params:
                config.materials.append({"preset": mat.name})
            else:
                config.materials.append(
                    {
                        "refractive_index": mat.params.refractive_index,
                        "albedo": list(mat.params.albedo),
                        "diffuse_color": list(mat.params.diffuse_color),
                        "specular_exponent": mat.params.specular_exponent,
                    }
                )

        for sphere in self.spheres:
            config.spheres.append(
                {
                    "center": list(sphere.center),
                    "radius": sphere.radius,
                    "material_id": sphere.material_id,
                }
            )

        for light in self.lights:
            config.lights.append(
                {"position": list(light.position), "intensity": light.intensity}
            )

        return config

    def from_config(self, config: SceneConfig) -> None:
        """Load a scene from a configuration object.

        Clears the current scene and loads the configuration.

        Raises:
            ValueError: If the configuration contains invalid data.
        """
        self.clear()

        # Materials first; spheres reference them by ID
        for mat_config in config.materials:
            if "preset" in mat_config:
                self.add_material_preset(mat_config["preset"])
                continue
            try:
                self.add_material(
                    refractive_index=mat_config.get("refractive_index", 1.0),
                    albedo=tuple(mat_config["albedo"]),
                    diffuse_color=tuple(mat_config["diffuse_color"]),
                    specular_exponent=mat_config["specular_exponent"],
                )
            except KeyError as exc:
                raise ValueError(f"Material config missing key: {exc.args[0]}") from exc

        for sphere_config in config.spheres:
            self.add_sphere(
                center=sphere_config.get("center", [0.0, 0.0, 0.0]),
                radius=sphere_config.get("radius", 1.0),
                material_id=sphere_config.get("material_id", 0),
            )

        for light_config in config.lights:
            self.add_light(
                position=light_config.get("position", [0.0, 0.0, 0.0]),
                intensity=light_config.get("intensity", 1.0),
            )

    def to_dict(self) -> dict[str, Any]:
        """Export the scene to a dictionary (for JSON serialization)."""
        config = self.to_config()
        return {
            "materials": config.materials,
            "spheres": config.spheres,
            "lights": config.lights,
        }

    def from_dict(self, data: dict[str, Any]) -> None:
        """Load a scene from a dictionary.

        Args:
            data: Dictionary with 'materials', 'spheres', 'lights' keys.
        """
        config = SceneConfig(
            materials=data.get("materials", []),
            spheres=data.get("spheres", []),
            lights=data.get("lights", []),
        )
        self.from_config(config)

    # =========================================================================
    # Capacity Information
    # =========================================================================

    @staticmethod
    def get_max_spheres() -> int:
        """Get the maximum number of spheres supported."""
        return MAX_SPHERES

    @staticmethod
    def get_max_lights() -> int:
        """Get the maximum number of lights supported."""
        return MAX_LIGHTS

    @staticmethod
    def get_max_materials() -> int:
        """Get the maximum number of materials supported."""
        return MAX_MATERIALS


def save_scene_file(
    path: str | Path,
    scene: SceneManager,
    camera: "PinholeCamera",
    settings: "RenderSettings",
) -> None:
    """Write a scene, camera and render settings to a JSON scene file."""
    data = {
        "render": settings.to_dict(),
        "camera": camera.to_dict(),
        **scene.to_dict(),
    }
    Path(path).write_text(json.dumps(data, indent=2))


def load_scene_file(
    path: str | Path,
) -> tuple[SceneManager, "PinholeCamera", "RenderSettings"]:
    """Load a JSON scene file into the global registries.

    Args:
        path: Path of the JSON scene file.

    Returns:
        Tuple of (scene, camera, settings). The camera's aspect ratio always
        follows the render settings.

    Raises:
        ValueError: If the file is not valid JSON or holds invalid data.
    """
    from whitted.camera.pinhole import PinholeCamera
    from whitted.core.renderer import RenderSettings

    try:
        data = json.loads(Path(path).read_text())
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid scene file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"Invalid scene file {path}: expected a JSON object")

    settings = RenderSettings.from_dict(data.get("render", {}))
    camera_data = dict(data.get("camera", {}))
    camera_data.setdefault("vfov", settings.vfov)
    camera = PinholeCamera.from_dict(camera_data, aspect_ratio=settings.aspect_ratio)

    scene = SceneManager()
    scene.from_dict(data)
    return scene, camera, settings
