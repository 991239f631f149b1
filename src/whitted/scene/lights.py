"""Point light registry.

Point lights have a position and a scalar intensity. Intensity does not fall
off with distance: every unoccluded light contributes the same amount at any
range, which keeps the illumination model simple and matches the classic
Whitted scenes.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from whitted.scene.lights import add_point_light, get_light_count
    >>> add_point_light((-20.0, 20.0, 20.0), 1.5)
    0
    >>> get_light_count()
    1
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors
vec3 = tm.vec3

# Maximum number of point lights in the scene
MAX_LIGHTS = 64

light_positions = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHTS)
light_intensities = ti.field(dtype=ti.f32, shape=MAX_LIGHTS)
num_lights = ti.field(dtype=ti.i32, shape=())


def clear_lights() -> None:
    """Remove all lights from the scene."""
    num_lights[None] = 0


def add_point_light(position: tuple[float, float, float], intensity: float) -> int:
    """Add a point light to the scene.

    Args:
        position: The light position as (x, y, z).
        intensity: The light intensity. Must be positive.

    Returns:
        The index of the added light.

    Raises:
        RuntimeError: If the maximum number of lights is exceeded.
        ValueError: If the intensity is not positive.
    """
    if len(position) != 3:
        raise ValueError(f"Light position must have 3 components, got {len(position)}")
    if intensity <= 0.0:
        raise ValueError(f"Light intensity = {intensity} must be positive")

    idx = num_lights[None]
    if idx >= MAX_LIGHTS:
        raise RuntimeError(f"Maximum number of lights ({MAX_LIGHTS}) exceeded")

    light_positions[idx] = vec3(position[0], position[1], position[2])
    light_intensities[idx] = intensity
    num_lights[None] = idx + 1
    return idx


def get_light_count() -> int:
    """Get the number of lights in the scene."""
    return int(num_lights[None])


def get_light(light_idx: int) -> tuple[tuple[float, float, float], float]:
    """Read a light back from the registry.

    Args:
        light_idx: The index of the light.

    Returns:
        Tuple of (position, intensity).

    Raises:
        ValueError: If the index is not a registered light.
    """
    if light_idx < 0 or light_idx >= num_lights[None]:
        raise ValueError(f"Invalid light index: {light_idx}")
    p = light_positions[light_idx]
    return (float(p[0]), float(p[1]), float(p[2])), float(light_intensities[light_idx])


@ti.func
def get_light_position(light_idx: ti.i32) -> vec3:
    """Get the position of a light by index."""
    return light_positions[light_idx]


@ti.func
def get_light_intensity(light_idx: ti.i32) -> ti.f32:
    """Get the intensity of a light by index."""
    return light_intensities[light_idx]
