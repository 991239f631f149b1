"""Camera module for view and ray generation.

This module provides the camera model used to generate primary rays:

Components:
    pinhole: Simple pinhole (perspective) camera model

Camera responsibilities:
    - Transform (u, v) image coordinates to world-space rays
    - Support look-at positioning with up vector
    - Map pixel indices to rays through pixel centers

Ray generation uses normalized device coordinates:
    u in [0, 1]: left to right across image
    v in [0, 1]: bottom to top across image
"""

from .pinhole import (
    PinholeCamera,
    get_camera_info,
    get_camera_origin,
    get_pixel_ray,
    get_ray,
    pixel_ray_host,
    setup_camera,
)

__all__ = [
    "PinholeCamera",
    "setup_camera",
    "get_ray",
    "get_pixel_ray",
    "get_camera_origin",
    "get_camera_info",
    "pixel_ray_host",
]
