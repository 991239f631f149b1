"""Pinhole camera producing one primary ray per pixel.

The camera is placed with a look-at triple (lookfrom, lookat, vup), a
vertical field of view in degrees and the image aspect ratio. Its frame is:
- w: unit vector from lookat back to lookfrom
- u: image-plane right, cross(vup, w)
- v: image-plane up, cross(w, u)

The image plane sits one unit in front of lookfrom, so a 90 degree FOV spans
[-1, 1] vertically.

Primary rays go through pixel centers; there is no jitter since the renderer
takes exactly one sample per pixel.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from whitted.camera.pinhole import PinholeCamera, setup_camera
    >>>
    >>> # Camera at the origin looking down -z with a 90 degree FOV
    >>> camera = PinholeCamera(
    ...     lookfrom=(0.0, 0.0, 0.0),
    ...     lookat=(0.0, 0.0, -1.0),
    ...     vup=(0.0, 1.0, 0.0),
    ...     vfov=90.0,
    ...     aspect_ratio=1024.0 / 768.0,
    ... )
    >>> setup_camera(camera)
"""

import math
from dataclasses import dataclass

import numpy as np
import taichi as ti

from whitted.core.ray import Ray, make_ray, normalize, vec3

# =============================================================================
# Camera Data Structures
# =============================================================================


@dataclass
class PinholeCamera:
    """View parameters of the pinhole camera.

    Attributes:
        lookfrom: Eye position.
        lookat: Point the camera aims at.
        vup: World up hint; must not be parallel to lookat - lookfrom.
        vfov: Vertical field of view in degrees (90 for a pi/2 FOV).
        aspect_ratio: Image width over height.
    """

    lookfrom: tuple[float, float, float]
    lookat: tuple[float, float, float]
    vup: tuple[float, float, float]
    vfov: float
    aspect_ratio: float

    def to_dict(self) -> dict:
        """Export the camera as a JSON-friendly dictionary."""
        return {
            "lookfrom": list(self.lookfrom),
            "lookat": list(self.lookat),
            "vup": list(self.vup),
            "vfov": self.vfov,
            "aspect_ratio": self.aspect_ratio,
        }

    @classmethod
    def from_dict(cls, data: dict, aspect_ratio: float | None = None) -> "PinholeCamera":
        """Build a camera from a dictionary.

        Missing keys fall back to the classic view: origin, looking down -z.

        Args:
            data: Dictionary with camera keys.
            aspect_ratio: Overrides the stored aspect ratio when given.
        """
        lookfrom = data.get("lookfrom", [0.0, 0.0, 0.0])
        lookat = data.get("lookat", [0.0, 0.0, -1.0])
        vup = data.get("vup", [0.0, 1.0, 0.0])
        return cls(
            lookfrom=(lookfrom[0], lookfrom[1], lookfrom[2]),
            lookat=(lookat[0], lookat[1], lookat[2]),
            vup=(vup[0], vup[1], vup[2]),
            vfov=data.get("vfov", 90.0),
            aspect_ratio=aspect_ratio if aspect_ratio is not None else data.get("aspect_ratio", 1.0),
        )


# =============================================================================
# Camera State
# =============================================================================

_camera_origin = ti.Vector.field(3, dtype=ti.f32, shape=())

_camera_u = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_v = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_w = ti.Vector.field(3, dtype=ti.f32, shape=())

# Image plane at unit distance, as its lower-left corner and two edges
_viewport_horizontal = ti.Vector.field(3, dtype=ti.f32, shape=())
_viewport_vertical = ti.Vector.field(3, dtype=ti.f32, shape=())
_lower_left_corner = ti.Vector.field(3, dtype=ti.f32, shape=())


def _compute_camera_frame(camera: PinholeCamera) -> dict[str, np.ndarray]:
    """Compute the camera basis and viewport geometry with NumPy.

    Raises:
        ValueError: If the FOV is outside (0, 180) degrees or the view
            direction is degenerate.
    """
    if not 0.0 < camera.vfov < 180.0:
        raise ValueError(f"Vertical FOV = {camera.vfov} must be in (0, 180) degrees")

    half_height = math.tan(math.radians(camera.vfov) / 2.0)
    plane_height = 2.0 * half_height
    plane_width = camera.aspect_ratio * plane_height

    lookfrom = np.array(camera.lookfrom, dtype=np.float64)
    lookat = np.array(camera.lookat, dtype=np.float64)
    vup = np.array(camera.vup, dtype=np.float64)

    w = lookfrom - lookat
    w_norm = np.linalg.norm(w)
    if w_norm == 0.0:
        raise ValueError("Camera lookfrom and lookat must differ")
    w = w / w_norm

    u = np.cross(vup, w)
    u_norm = np.linalg.norm(u)
    if u_norm == 0.0:
        raise ValueError("Camera vup must not be parallel to the view direction")
    u = u / u_norm

    v = np.cross(w, u)

    horizontal = plane_width * u
    vertical = plane_height * v
    lower_left = lookfrom - w - 0.5 * (horizontal + vertical)

    return {
        "origin": lookfrom,
        "u": u,
        "v": v,
        "w": w,
        "horizontal": horizontal,
        "vertical": vertical,
        "lower_left": lower_left,
    }


# =============================================================================
# Camera Setup
# =============================================================================


def setup_camera(camera: PinholeCamera) -> None:
    """Upload the camera frame to the Taichi fields read by get_ray().

    Args:
        camera: The view to render from.

    Raises:
        ValueError: If the camera configuration is degenerate.
    """
    frame = _compute_camera_frame(camera)

    _camera_origin[None] = frame["origin"].tolist()
    _camera_u[None] = frame["u"].tolist()
    _camera_v[None] = frame["v"].tolist()
    _camera_w[None] = frame["w"].tolist()
    _viewport_horizontal[None] = frame["horizontal"].tolist()
    _viewport_vertical[None] = frame["vertical"].tolist()
    _lower_left_corner[None] = frame["lower_left"].tolist()


def pixel_ray_host(
    camera: PinholeCamera,
    pixel_i: int,
    pixel_j: int,
    width: int,
    height: int,
) -> tuple[np.ndarray, np.ndarray]:
    """Compute a primary ray in double precision on the host.

    Mirrors get_pixel_ray() for inspecting single pixels without a kernel.

    Args:
        camera: Camera configuration.
        pixel_i: Pixel x-coordinate (0 = left).
        pixel_j: Pixel y-coordinate (0 = bottom).
        width: Image width in pixels.
        height: Image height in pixels.

    Returns:
        Tuple of (origin, unit direction) as float64 arrays.
    """
    frame = _compute_camera_frame(camera)
    u = (pixel_i + 0.5) / width
    v = (pixel_j + 0.5) / height
    point = frame["lower_left"] + u * frame["horizontal"] + v * frame["vertical"]
    direction = point - frame["origin"]
    return frame["origin"], direction / np.linalg.norm(direction)


# =============================================================================
# Ray Generation
# =============================================================================


@ti.func
def get_ray(u: ti.f32, v: ti.f32) -> Ray:
    """Generate a ray through image-plane coordinates (u, v).

    (0, 0) is the lower-left corner of the image and (1, 1) the upper-right.

    Returns:
        A Ray from the eye with a unit direction.
    """
    eye = get_camera_origin()
    target = _lower_left_corner[None] + _viewport_horizontal[None] * u + _viewport_vertical[None] * v
    return make_ray(eye, normalize(target - eye))


@ti.func
def get_pixel_ray(pixel_i: ti.i32, pixel_j: ti.i32, width: ti.i32, height: ti.i32) -> Ray:
    """Generate the primary ray through the center of a pixel.

    Args:
        pixel_i: Pixel x-coordinate (0 = left).
        pixel_j: Pixel y-coordinate (0 = bottom).
        width: Image width in pixels.
        height: Image height in pixels.

    Returns:
        The Ray through the pixel center.
    """
    u = (ti.cast(pixel_i, ti.f32) + 0.5) / ti.cast(width, ti.f32)
    v = (ti.cast(pixel_j, ti.f32) + 0.5) / ti.cast(height, ti.f32)
    return get_ray(u, v)


@ti.func
def get_camera_origin() -> vec3:
    """Get the camera origin (position) in world space."""
    return _camera_origin[None]


# =============================================================================
# Utility Functions
# =============================================================================


def get_camera_info() -> dict[str, tuple[float, float, float]]:
    """Read back the uploaded camera frame.

    Returns:
        Dictionary of 3-tuples keyed by origin, u, v, w, horizontal,
        vertical and lower_left.
    """
    fields = {
        "origin": _camera_origin,
        "u": _camera_u,
        "v": _camera_v,
        "w": _camera_w,
        "horizontal": _viewport_horizontal,
        "vertical": _viewport_vertical,
        "lower_left": _lower_left_corner,
    }
    info = {}
    for name, field in fields.items():
        vec = field[None]
        info[name] = (float(vec[0]), float(vec[1]), float(vec[2]))
    return info
