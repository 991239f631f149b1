"""Phong material with reflection and refraction weights.

This module implements the single material model of the Whitted renderer.
A material blends four contributions at a hit point using its albedo weights:

    color = diffuse_color * diffuse * albedo[0]     (Lambert term)
          + white * specular * albedo[1]            (Phong highlight)
          + reflect_color * albedo[2]               (mirror reflection)
          + refract_color * albedo[3]               (Snell refraction)

The weights are not required to sum to one. Specular highlights are always
white regardless of the surface color.

Materials are registered once in Taichi fields and referenced by index from
spheres, so several spheres share one material.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from whitted.materials.phong import IVORY, add_phong_material
    >>> ivory_id = add_phong_material(**IVORY.as_kwargs())
"""

from dataclasses import asdict, dataclass
from typing import Any

import taichi as ti
import taichi.math as tm

# Type aliases for vectors
vec3 = tm.vec3
vec4 = tm.vec4


@ti.dataclass
class PhongMaterial:
    """Phong material properties as seen from within kernels.

    Attributes:
        refractive_index: Index of refraction used by Snell's law.
        albedo: Blend weights [diffuse, specular, reflection, refraction].
        diffuse_color: Base color under diffuse lighting.
        specular_exponent: Phong shininess. Higher values give tighter
            highlights.
    """

    refractive_index: ti.f32
    albedo: vec4
    diffuse_color: vec3
    specular_exponent: ti.f32


@dataclass(frozen=True)
class PhongParams:
    """Host-side description of a Phong material.

    Attributes:
        refractive_index: Index of refraction (1.0 for opaque surfaces).
        albedo: Blend weights [diffuse, specular, reflection, refraction].
        diffuse_color: Base color as (R, G, B).
        specular_exponent: Phong shininess.
    """

    refractive_index: float
    albedo: tuple[float, float, float, float]
    diffuse_color: tuple[float, float, float]
    specular_exponent: float

    def as_kwargs(self) -> dict[str, Any]:
        """Return the parameters as keyword arguments for add_phong_material()."""
        return asdict(self)


# Presets from the classic four-sphere scene
IVORY = PhongParams(1.0, (0.6, 0.3, 0.1, 0.0), (0.4, 0.4, 0.3), 50.0)
RED_RUBBER = PhongParams(1.0, (0.9, 0.1, 0.0, 0.0), (0.3, 0.1, 0.1), 10.0)
MIRROR = PhongParams(1.0, (0.0, 10.0, 0.8, 0.0), (1.0, 1.0, 1.0), 1425.0)
GLASS = PhongParams(1.5, (0.0, 0.5, 0.1, 0.8), (0.6, 0.7, 0.8), 125.0)

MATERIAL_PRESETS: dict[str, PhongParams] = {
    "ivory": IVORY,
    "red_rubber": RED_RUBBER,
    "mirror": MIRROR,
    "glass": GLASS,
}


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

# Maximum number of materials in the scene
MAX_MATERIALS = 256

# Storage for material properties (structure of arrays)
material_refractive_indices = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_albedos = ti.Vector.field(4, dtype=ti.f32, shape=MAX_MATERIALS)
material_diffuse_colors = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MATERIALS)
material_specular_exponents = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def clear_phong_materials() -> None:
    """Clear all materials.

    Resets the material count to zero. Existing data in the fields will be
    overwritten when new materials are added.
    """
    num_materials[None] = 0


def add_phong_material(
    refractive_index: float,
    albedo: tuple[float, float, float, float],
    diffuse_color: tuple[float, float, float],
    specular_exponent: float,
) -> int:
    """Add a Phong material to the material registry.

    Args:
        refractive_index: Index of refraction. Must be positive.
        albedo: Blend weights [diffuse, specular, reflection, refraction].
        diffuse_color: Base color as (R, G, B).
        specular_exponent: Phong shininess. Must be non-negative.

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If any parameter is malformed.
    """
    if len(albedo) != 4:
        raise ValueError(f"Albedo must have 4 weights, got {len(albedo)}")
    if len(diffuse_color) != 3:
        raise ValueError(f"Diffuse color must have 3 components, got {len(diffuse_color)}")
    if refractive_index <= 0.0:
        raise ValueError(
            f"Refractive index = {refractive_index} must be positive"
        )
    if specular_exponent < 0.0:
        raise ValueError(
            f"Specular exponent = {specular_exponent} must be non-negative"
        )

    idx = num_materials[None]
    if idx >= MAX_MATERIALS:
        raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")

    material_refractive_indices[idx] = refractive_index
    material_albedos[idx] = vec4(albedo[0], albedo[1], albedo[2], albedo[3])
    material_diffuse_colors[idx] = vec3(diffuse_color[0], diffuse_color[1], diffuse_color[2])
    material_specular_exponents[idx] = specular_exponent
    num_materials[None] = idx + 1
    return idx


def get_phong_material_count() -> int:
    """Get the number of materials in the registry."""
    return int(num_materials[None])


def get_phong_params(material_idx: int) -> PhongParams:
    """Read a registered material back into host-side parameters.

    Args:
        material_idx: The index of the material in the registry.

    Returns:
        The material parameters as stored (float32 precision).

    Raises:
        ValueError: If the index is not a registered material.
    """
    if material_idx < 0 or material_idx >= num_materials[None]:
        raise ValueError(f"Invalid material_id: {material_idx}")
    albedo = material_albedos[material_idx]
    color = material_diffuse_colors[material_idx]
    return PhongParams(
        refractive_index=float(material_refractive_indices[material_idx]),
        albedo=(float(albedo[0]), float(albedo[1]), float(albedo[2]), float(albedo[3])),
        diffuse_color=(float(color[0]), float(color[1]), float(color[2])),
        specular_exponent=float(material_specular_exponents[material_idx]),
    )


@ti.func
def get_phong_material(material_idx: ti.i32) -> PhongMaterial:
    """Get a material by index.

    Args:
        material_idx: The index of the material in the registry.

    Returns:
        The PhongMaterial stored at that index.
    """
    return PhongMaterial(
        refractive_index=material_refractive_indices[material_idx],
        albedo=material_albedos[material_idx],
        diffuse_color=material_diffuse_colors[material_idx],
        specular_exponent=material_specular_exponents[material_idx],
    )
