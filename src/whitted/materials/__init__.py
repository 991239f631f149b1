"""Materials module.

Components:
    phong: Phong material with diffuse, specular, reflection and refraction
        weights, plus the ivory/red rubber/mirror/glass presets

Materials live in a registry of Taichi fields and are referenced by index.
"""

from .phong import (
    GLASS,
    IVORY,
    MATERIAL_PRESETS,
    MAX_MATERIALS,
    MIRROR,
    RED_RUBBER,
    PhongMaterial,
    PhongParams,
    add_phong_material,
    clear_phong_materials,
    get_phong_material,
    get_phong_material_count,
    get_phong_params,
)

__all__ = [
    "PhongMaterial",
    "PhongParams",
    "add_phong_material",
    "clear_phong_materials",
    "get_phong_material",
    "get_phong_material_count",
    "get_phong_params",
    "MAX_MATERIALS",
    # Presets
    "IVORY",
    "RED_RUBBER",
    "MIRROR",
    "GLASS",
    "MATERIAL_PRESETS",
]
