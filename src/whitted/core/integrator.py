"""Whitted-style recursive ray tracing integrator.

This module implements the shading engine: direct Phong lighting with
shadow rays at every hit, combined with recursively traced mirror reflection
and Snell refraction up to a fixed recursion depth.

At a hit point with material albedo weights a:

    color = direct_light
          + trace(reflected ray, depth + 1) * a[2]
          + trace(refracted ray, depth + 1) * a[3]

Rays that miss every sphere, or that are traced past max_depth, return the
background color.

Taichi functions cannot recurse, so trace() walks the ray tree with a
fixed-size stack of pending rays per thread, each carrying the product of
the albedo weights along its path. max_depth is a runtime argument bounded
by MAX_TRACE_DEPTH; one compiled kernel serves every depth.

Key features:
    - Shading modes (flat color, direct lighting, full Whitted recursion)
    - Zero-weight branches are skipped without changing results
    - Total internal reflection gives a black refraction branch
    - Self-intersection avoidance with a biased ray origin

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from whitted.core.integrator import render_image, setup_render_target
    >>> from whitted.scene.reference_scene import create_reference_scene
    >>> from whitted.camera.pinhole import setup_camera
    >>>
    >>> scene, camera, settings = create_reference_scene()
    >>> setup_camera(camera)
    >>> setup_render_target(1024, 768)
    >>> render_image(max_depth=4)
"""

from enum import IntEnum

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from whitted.camera.pinhole import get_pixel_ray
from whitted.core.ray import near_zero, offset_origin, reflect, refract
from whitted.materials.phong import get_phong_material
from whitted.scene.intersection import intersect_scene, is_occluded
from whitted.scene.lights import get_light_intensity, get_light_position, num_lights

# Type alias for 3D vectors
vec3 = tm.vec3

# =============================================================================
# Rendering Constants
# =============================================================================

# Default recursion limit for reflection/refraction rays
MAX_DEPTH = 4

# Deepest recursion limit the per-thread ray stack can hold
MAX_TRACE_DEPTH = 8

# Below a ray at level k the stack holds at most one pending sibling per level
# plus two children, so max_depth + 2 slots always suffice
_RAY_STACK_SIZE = MAX_TRACE_DEPTH + 2

# Background color for rays that escape the scene
BACKGROUND_COLOR = (0.2, 0.7, 0.8)


class ShadingMode(IntEnum):
    """How much of the light transport to evaluate per camera ray.

    FLAT: surface diffuse color only, no lights.
    DIRECT: shadowed diffuse and specular lighting, no secondary rays.
    WHITTED: direct lighting plus recursive reflection and refraction.
    """

    FLAT = 0
    DIRECT = 1
    WHITTED = 2


def check_max_depth(max_depth: int) -> None:
    """Raise ValueError unless 0 <= max_depth <= MAX_TRACE_DEPTH."""
    if not 0 <= max_depth <= MAX_TRACE_DEPTH:
        raise ValueError(f"max_depth = {max_depth} must be in [0, {MAX_TRACE_DEPTH}]")


def parse_shading_mode(mode: "ShadingMode | int | str") -> ShadingMode:
    """Convert a mode name or value into a ShadingMode.

    Raises:
        ValueError: If the mode is unknown.
    """
    if isinstance(mode, str):
        try:
            return ShadingMode[mode.upper()]
        except KeyError:
            raise ValueError(f"Unknown shading mode: {mode}") from None
    try:
        return ShadingMode(int(mode))
    except ValueError:
        raise ValueError(f"Unknown shading mode: {mode}") from None


# =============================================================================
# Render Settings (GPU-side)
# =============================================================================

_background_color = ti.Vector.field(3, dtype=ti.f32, shape=())


def set_background_color(color: tuple[float, float, float]) -> None:
    """Set the color returned for rays that escape the scene.

    Args:
        color: Background color as (R, G, B).

    Raises:
        ValueError: If the color does not have 3 components.
    """
    if len(color) != 3:
        raise ValueError(f"Background color must have 3 components, got {len(color)}")
    _background_color[None] = [color[0], color[1], color[2]]


def get_background_color() -> tuple[float, float, float]:
    """Get the current background color."""
    c = _background_color[None]
    return (float(c[0]), float(c[1]), float(c[2]))


def reset_render_settings() -> None:
    """Restore the default background color."""
    set_background_color(BACKGROUND_COLOR)


# =============================================================================
# Render Target (Image Buffer)
# =============================================================================

# Maximum supported image dimensions (preallocated to avoid kernel recompilation)
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

# Image dimensions (actual active size)
_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# Linear (unclamped) color buffer, indexed [i, j] with j = 0 the bottom row
_color_buffer = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

# Flag to track if render target is initialized
_render_target_initialized = ti.field(dtype=ti.i32, shape=())


def setup_render_target(width: int, height: int) -> None:
    """Initialize the render target buffer.

    Sets the active image dimensions and clears the buffer. The buffer is
    preallocated to MAX_IMAGE_WIDTH x MAX_IMAGE_HEIGHT.

    Args:
        width: Image width in pixels (max MAX_IMAGE_WIDTH).
        height: Image height in pixels (max MAX_IMAGE_HEIGHT).

    Raises:
        ValueError: If dimensions are not positive or exceed the maximum.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Image dimensions ({width}x{height}) must be positive")
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )

    _image_width[None] = width
    _image_height[None] = height
    _render_target_initialized[None] = 1

    clear_render_target()


def clear_render_target() -> None:
    """Clear the render target buffer to zero."""
    _color_buffer.fill(0.0)


def release_render_target() -> None:
    """Mark the render target as not set up."""
    _render_target_initialized[None] = 0


def get_image_dimensions() -> tuple[int, int]:
    """Get the current render target dimensions as (width, height)."""
    return int(_image_width[None]), int(_image_height[None])


def _check_render_target_initialized() -> None:
    """Check if render target is initialized and raise if not."""
    if _render_target_initialized[None] == 0:
        raise RuntimeError("Render target not set up. Call setup_render_target() first.")


def get_image() -> "ti.MatrixField":
    """Get the color buffer.

    Note: This returns the full preallocated buffer. Use get_image_dimensions()
    to determine the active region.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()
    return _color_buffer


# =============================================================================
# Shading
# =============================================================================


@ti.func
def shade_direct(point: vec3, normal: vec3, direction: vec3, material_id: ti.i32) -> vec3:
    """Evaluate shadowed diffuse and specular lighting at a surface point.

    For every light that is not occluded:
        diffuse  += I * max(0, dot(l, N))
        specular += I * max(0, dot(reflect(l, N), -direction)) ^ exponent

    The result is diffuse_color * diffuse * albedo[0] + white * specular *
    albedo[1]. Lights do not attenuate with distance.

    Args:
        point: The surface point.
        normal: The outward unit normal at the point.
        direction: The unit direction of the ray that hit the point.
        material_id: The material of the surface.

    Returns:
        The direct-light color (unclamped).
    """
    material = get_phong_material(material_id)
    diffuse_intensity = 0.0
    specular_intensity = 0.0

    for k in range(num_lights[None]):
        light_position = get_light_position(k)
        if is_occluded(point, normal, light_position) == 0:
            intensity = get_light_intensity(k)
            light_dir = tm.normalize(light_position - point)
            diffuse_intensity += intensity * tm.max(0.0, tm.dot(light_dir, normal))
            highlight = tm.max(0.0, tm.dot(reflect(light_dir, normal), -direction))
            specular_intensity += intensity * highlight**material.specular_exponent

    return (
        material.diffuse_color * diffuse_intensity * material.albedo[0]
        + vec3(1.0, 1.0, 1.0) * specular_intensity * material.albedo[1]
    )


@ti.func
def _push_ray(
    origins: ti.template(),
    directions: ti.template(),
    weights: ti.template(),
    depths: ti.template(),
    top: ti.i32,
    origin: vec3,
    direction: vec3,
    weight: ti.f32,
    depth: ti.i32,
):
    for c in ti.static(range(3)):
        origins[top, c] = origin[c]
        directions[top, c] = direction[c]
    weights[top] = weight
    depths[top] = depth


@ti.func
def trace(origin: vec3, direction: vec3, depth: ti.i32, max_depth: ti.i32) -> vec3:
    """Trace a ray through the Whitted ray tree and return its color.

    The tree is walked depth first with a per-thread stack of pending rays.
    Every node adds its direct lighting scaled by the product of the
    reflection/refraction weights on the path to it, and every miss or ray
    past max_depth adds the background scaled the same way. This equals the
    recursive definition because each node's color is linear in its
    children's colors.

    Args:
        origin: The ray origin.
        direction: The unit ray direction.
        depth: Recursion depth of the starting ray.
        max_depth: Deepest level that still shades hits (at most
            MAX_TRACE_DEPTH).

    Returns:
        The linear RGB color carried by the ray (unclamped).
    """
    background = _background_color[None]
    color = vec3(0.0, 0.0, 0.0)

    origins = ti.Matrix.zero(ti.f32, _RAY_STACK_SIZE, 3)
    directions = ti.Matrix.zero(ti.f32, _RAY_STACK_SIZE, 3)
    weights = ti.Vector.zero(ti.f32, _RAY_STACK_SIZE)
    depths = ti.Vector.zero(ti.i32, _RAY_STACK_SIZE)

    _push_ray(origins, directions, weights, depths, 0, origin, direction, 1.0, depth)
    top = 1

    while top > 0:
        top -= 1
        ray_orig = vec3(origins[top, 0], origins[top, 1], origins[top, 2])
        ray_dir = vec3(directions[top, 0], directions[top, 1], directions[top, 2])
        weight = weights[top]
        level = depths[top]

        if level > max_depth:
            color += weight * background
        else:
            rec = intersect_scene(ray_orig, ray_dir)
            if rec.hit == 0:
                color += weight * background
            else:
                material = get_phong_material(rec.material_id)
                albedo = material.albedo
                color += weight * shade_direct(rec.point, rec.normal, ray_dir, rec.material_id)

                if albedo[2] != 0.0:
                    reflect_dir = tm.normalize(reflect(-ray_dir, rec.normal))
                    reflect_orig = offset_origin(rec.point, rec.normal, reflect_dir)
                    _push_ray(
                        origins,
                        directions,
                        weights,
                        depths,
                        top,
                        reflect_orig,
                        reflect_dir,
                        weight * albedo[2],
                        level + 1,
                    )
                    top += 1

                if albedo[3] != 0.0:
                    refract_dir = refract(-ray_dir, rec.normal, material.refractive_index)
                    # Zero direction means total internal reflection: branch stays black
                    if near_zero(refract_dir) == 0:
                        refract_orig = offset_origin(rec.point, rec.normal, refract_dir)
                        _push_ray(
                            origins,
                            directions,
                            weights,
                            depths,
                            top,
                            refract_orig,
                            refract_dir,
                            weight * albedo[3],
                            level + 1,
                        )
                        top += 1
    return color


@ti.func
def shade_flat(origin: vec3, direction: vec3) -> vec3:
    """Return the diffuse color of the nearest hit, or the background."""
    color = _background_color[None]
    rec = intersect_scene(origin, direction)
    if rec.hit == 1:
        color = get_phong_material(rec.material_id).diffuse_color
    return color


@ti.func
def shade_local(origin: vec3, direction: vec3) -> vec3:
    """Return direct lighting at the nearest hit, or the background."""
    color = _background_color[None]
    rec = intersect_scene(origin, direction)
    if rec.hit == 1:
        color = shade_direct(rec.point, rec.normal, direction, rec.material_id)
    return color


@ti.func
def radiance(origin: vec3, direction: vec3, max_depth: ti.i32, mode: ti.template()) -> vec3:
    """Dispatch a camera ray to the selected shading mode."""
    color = vec3(0.0, 0.0, 0.0)
    if ti.static(mode == int(ShadingMode.FLAT)):
        color = shade_flat(origin, direction)
    if ti.static(mode == int(ShadingMode.DIRECT)):
        color = shade_local(origin, direction)
    if ti.static(mode == int(ShadingMode.WHITTED)):
        color = trace(origin, direction, 0, max_depth)
    return color


# =============================================================================
# Rendering Kernels
# =============================================================================


@ti.kernel
def _render_rows(
    width: ti.i32,
    height: ti.i32,
    row_start: ti.i32,
    row_end: ti.i32,
    max_depth: ti.i32,
    mode: ti.template(),
):
    """Trace one ray per pixel for rows [row_start, row_end).

    Rows are counted from the bottom of the image.
    """
    for i, j in ti.ndrange(width, (row_start, row_end)):
        ray = get_pixel_ray(i, j, width, height)
        _color_buffer[i, j] = radiance(ray.origin, ray.direction, max_depth, mode)


_query_color = ti.Vector.field(3, dtype=ti.f32, shape=())


@ti.kernel
def _trace_query(origin: vec3, direction: vec3, depth: ti.i32, max_depth: ti.i32):
    # Single-iteration loop keeps the inner scene loops serial
    for _ in range(1):
        _query_color[None] = trace(origin, direction, depth, max_depth)


@ti.kernel
def _direct_query(point: vec3, normal: vec3, direction: vec3, material_id: ti.i32):
    for _ in range(1):
        _query_color[None] = shade_direct(point, normal, direction, material_id)


# =============================================================================
# Public Rendering API
# =============================================================================


def _normalized(v) -> vec3:
    n = float(np.linalg.norm(np.asarray(v, dtype=np.float64)))
    if n == 0.0:
        raise ValueError("Direction must have nonzero length")
    return vec3(float(v[0]) / n, float(v[1]) / n, float(v[2]) / n)


def _color_tuple(c) -> tuple[float, float, float]:
    return (float(c[0]), float(c[1]), float(c[2]))


def trace_ray(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    depth: int = 0,
    max_depth: int = MAX_DEPTH,
) -> tuple[float, float, float]:
    """Trace a single ray from Python.

    Args:
        origin: The ray origin as (x, y, z).
        direction: The ray direction. Normalized before tracing.
        depth: The recursion depth the ray starts at.
        max_depth: The recursion limit.

    Returns:
        Tuple of (R, G, B) linear color values.

    Raises:
        ValueError: If depth is negative, max_depth is outside
            [0, MAX_TRACE_DEPTH], or direction is zero.
    """
    if depth < 0:
        raise ValueError(f"Depth = {depth} must be non-negative")
    check_max_depth(max_depth)
    o = vec3(origin[0], origin[1], origin[2])
    _trace_query(o, _normalized(direction), int(depth), int(max_depth))
    return _color_tuple(_query_color[None])


def compute_direct_lighting(
    point: tuple[float, float, float],
    normal: tuple[float, float, float],
    direction: tuple[float, float, float],
    material_id: int,
) -> tuple[float, float, float]:
    """Evaluate shadowed direct lighting at a surface point from Python.

    Args:
        point: The surface point.
        normal: The outward normal at the point. Normalized before use.
        direction: The direction of the incoming view ray. Normalized before use.
        material_id: The material of the surface.

    Returns:
        Tuple of (R, G, B) direct-light color values.
    """
    p = vec3(point[0], point[1], point[2])
    _direct_query(p, _normalized(normal), _normalized(direction), material_id)
    return _color_tuple(_query_color[None])


def render_rows(
    row_start: int,
    row_end: int,
    max_depth: int = MAX_DEPTH,
    mode: ShadingMode | int | str = ShadingMode.WHITTED,
) -> None:
    """Render a band of rows into the color buffer.

    Args:
        row_start: First row (from the bottom) to render.
        row_end: One past the last row to render.
        max_depth: The recursion limit for WHITTED mode.
        mode: The shading mode.

    Raises:
        RuntimeError: If render target has not been set up.
        ValueError: If the row range or depth is invalid.
    """
    _check_render_target_initialized()
    width, height = get_image_dimensions()
    if not 0 <= row_start <= row_end <= height:
        raise ValueError(f"Invalid row range [{row_start}, {row_end}) for height {height}")
    check_max_depth(max_depth)
    if row_start == row_end:
        return
    _render_rows(width, height, row_start, row_end, int(max_depth), int(parse_shading_mode(mode)))


def render_image(
    max_depth: int = MAX_DEPTH,
    mode: ShadingMode | int | str = ShadingMode.WHITTED,
) -> None:
    """Render the full image, one ray per pixel.

    Args:
        max_depth: The recursion limit for WHITTED mode.
        mode: The shading mode.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()
    _, height = get_image_dimensions()
    render_rows(0, height, max_depth=max_depth, mode=mode)


def get_image_numpy() -> npt.NDArray[np.float32]:
    """Get the rendered linear image as a NumPy array.

    Values are not clamped or tone mapped. The array shape is
    (height, width, 3) with the first row at the top of the image.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()

    width, height = get_image_dimensions()

    full_image = _color_buffer.to_numpy()
    image = full_image[:width, :height, :]

    # Transpose from (width, height, 3) to (height, width, 3) for standard image format
    image = np.transpose(image, (1, 0, 2))

    # Flip vertically (Taichi uses bottom-left origin, images use top-left)
    image = np.flipud(image)

    return np.ascontiguousarray(image, dtype=np.float32)
