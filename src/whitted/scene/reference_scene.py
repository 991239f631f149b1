"""The classic four-sphere, three-light scene.

Four spheres of different materials float in front of a camera placed at the
origin looking down -z, lit by three white point lights:

- Ivory sphere at (-3, 0, -16), radius 2
- Glass sphere at (-1, -1.5, -12), radius 2 (red rubber in the
  "reflections" variant)
- Red rubber sphere at (1.5, -0.5, -18), radius 3
- Mirror sphere at (7, 5, -18), radius 4

Lights at (-20, 20, 20), (30, 50, -25) and (30, 20, 30) with intensities
1.5, 1.8 and 1.7. The image is 1024x768 with a 90 degree vertical field of
view and a recursion limit of 4.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from whitted.scene.reference_scene import create_reference_scene
    >>> from whitted.core.renderer import Renderer
    >>>
    >>> scene, camera, settings = create_reference_scene()
    >>> renderer = Renderer(settings, camera)
    >>> renderer.render()
"""

from whitted.camera.pinhole import PinholeCamera
from whitted.core.renderer import RenderSettings
from whitted.scene.manager import SceneManager

# =============================================================================
# Scene Layout
# =============================================================================

REFERENCE_SPHERES: list[tuple[tuple[float, float, float], float, str]] = [
    ((-3.0, 0.0, -16.0), 2.0, "ivory"),
    ((-1.0, -1.5, -12.0), 2.0, "glass"),
    ((1.5, -0.5, -18.0), 3.0, "red_rubber"),
    ((7.0, 5.0, -18.0), 4.0, "mirror"),
]

REFERENCE_LIGHTS: list[tuple[tuple[float, float, float], float]] = [
    ((-20.0, 20.0, 20.0), 1.5),
    ((30.0, 50.0, -25.0), 1.8),
    ((30.0, 20.0, 30.0), 1.7),
]

# Second sphere material per variant
SCENE_VARIANTS: dict[str, str] = {
    "refractions": "glass",
    "reflections": "red_rubber",
}


def create_reference_scene(
    variant: str = "refractions",
    settings: RenderSettings | None = None,
) -> tuple[SceneManager, PinholeCamera, RenderSettings]:
    """Create the four-sphere reference scene.

    Args:
        variant: "refractions" (glass second sphere) or "reflections"
            (red rubber second sphere).
        settings: Render settings to use. Defaults to 1024x768, 90 degree
            FOV, recursion limit 4.

    Returns:
        A tuple of (SceneManager, PinholeCamera, RenderSettings).

    Raises:
        ValueError: If the variant is unknown.

    Example:
        >>> scene, camera, settings = create_reference_scene()
        >>> print(f"Scene has {scene.get_sphere_count()} spheres")
        Scene has 4 spheres
    """
    if variant not in SCENE_VARIANTS:
        raise ValueError(
            f"Unknown scene variant: {variant!r} "
            f"(expected one of {', '.join(SCENE_VARIANTS)})"
        )
    if settings is None:
        settings = RenderSettings()
    settings.validate()

    scene = SceneManager()

    presets = [preset for _, _, preset in REFERENCE_SPHERES]
    presets[1] = SCENE_VARIANTS[variant]

    # Materials are registered once per preset and shared between spheres
    material_ids: dict[str, int] = {}
    for preset in presets:
        if preset not in material_ids:
            material_ids[preset] = scene.add_material_preset(preset)

    for (center, radius, _), preset in zip(REFERENCE_SPHERES, presets):
        scene.add_sphere(center, radius, material_ids[preset])

    for position, intensity in REFERENCE_LIGHTS:
        scene.add_light(position, intensity)

    camera = PinholeCamera(
        lookfrom=(0.0, 0.0, 0.0),
        lookat=(0.0, 0.0, -1.0),
        vup=(0.0, 1.0, 0.0),
        vfov=settings.vfov,
        aspect_ratio=settings.aspect_ratio,
    )

    return scene, camera, settings
