"""Renderer orchestration and render settings.

This module provides a convenient wrapper around the core integrator that
supports:
- Explicit render settings (size, FOV, recursion depth, background, mode)
- Rendering in row bands with progress callbacks
- Linear, tone mapped and 8-bit image retrieval
- Saving PPM and PNG files

The Renderer class encapsulates the render target state and delegates to the
global integrator buffers (which are Taichi fields).

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from whitted.core.renderer import Renderer
    >>> from whitted.scene.reference_scene import create_reference_scene
    >>>
    >>> scene, camera, settings = create_reference_scene()
    >>> renderer = Renderer(settings, camera)
    >>> renderer.render()
    >>> renderer.save_ppm("out.ppm")
"""

from collections.abc import Callable, Generator
from dataclasses import dataclass, replace
from typing import Any

import numpy as np
import numpy.typing as npt

from whitted.camera.pinhole import PinholeCamera, setup_camera
from whitted.core.integrator import (
    BACKGROUND_COLOR,
    MAX_DEPTH,
    MAX_IMAGE_HEIGHT,
    MAX_IMAGE_WIDTH,
    ShadingMode,
    check_max_depth,
    clear_render_target,
    get_image_numpy,
    parse_shading_mode,
    render_rows,
    set_background_color,
    setup_render_target,
)

# Type alias for progress callback
# Callback receives (rows_done, rows_total)
ProgressCallback = Callable[[int, int], None]


@dataclass(frozen=True)
class RenderSettings:
    """Image and light-transport parameters for a render.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        vfov: Vertical field of view in degrees (90 = pi/2).
        max_depth: Recursion limit for reflection and refraction rays.
        background: Color returned by rays that escape the scene.
        mode: Shading mode (see ShadingMode).
    """

    width: int = 1024
    height: int = 768
    vfov: float = 90.0
    max_depth: int = MAX_DEPTH
    background: tuple[float, float, float] = BACKGROUND_COLOR
    mode: ShadingMode = ShadingMode.WHITTED

    @property
    def aspect_ratio(self) -> float:
        """Width divided by height."""
        return self.width / self.height

    def validate(self) -> None:
        """Check the settings.

        Raises:
            ValueError: If any setting is out of range.
        """
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Image dimensions ({self.width}x{self.height}) must be positive")
        if self.width > MAX_IMAGE_WIDTH or self.height > MAX_IMAGE_HEIGHT:
            raise ValueError(
                f"Image dimensions ({self.width}x{self.height}) exceed maximum supported "
                f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
            )
        if not 0.0 < self.vfov < 180.0:
            raise ValueError(f"Vertical FOV = {self.vfov} must be in (0, 180) degrees")
        check_max_depth(self.max_depth)
        if len(self.background) != 3:
            raise ValueError(
                f"Background color must have 3 components, got {len(self.background)}"
            )
        parse_shading_mode(self.mode)

    def to_dict(self) -> dict[str, Any]:
        """Export the settings as a JSON-friendly dictionary."""
        return {
            "width": self.width,
            "height": self.height,
            "vfov": self.vfov,
            "max_depth": self.max_depth,
            "background": list(self.background),
            "mode": parse_shading_mode(self.mode).name.lower(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RenderSettings":
        """Build settings from a dictionary, using defaults for missing keys.

        Raises:
            ValueError: If the resulting settings are invalid.
        """
        defaults = cls()
        background = data.get("background", list(defaults.background))
        settings = cls(
            width=int(data.get("width", defaults.width)),
            height=int(data.get("height", defaults.height)),
            vfov=float(data.get("vfov", defaults.vfov)),
            max_depth=int(data.get("max_depth", defaults.max_depth)),
            background=(background[0], background[1], background[2]),
            mode=parse_shading_mode(data.get("mode", defaults.mode)),
        )
        settings.validate()
        return settings


class Renderer:
    """Renders the current scene with a camera and render settings.

    The scene itself lives in the global registries filled by SceneManager;
    the renderer configures the camera, background and render target, then
    traces one ray per pixel.

    Attributes:
        settings: The active render settings.
        camera: The camera used for primary rays.
    """

    def __init__(self, settings: RenderSettings, camera: PinholeCamera | None = None) -> None:
        """Initialize the renderer.

        Args:
            settings: Image and light-transport parameters.
            camera: Camera for primary rays. Defaults to the classic view
                from the origin down -z with the settings' FOV and aspect.

        Raises:
            ValueError: If the settings or camera are invalid.
        """
        settings.validate()
        self.settings = settings
        if camera is None:
            camera = PinholeCamera(
                lookfrom=(0.0, 0.0, 0.0),
                lookat=(0.0, 0.0, -1.0),
                vup=(0.0, 1.0, 0.0),
                vfov=settings.vfov,
                aspect_ratio=settings.aspect_ratio,
            )
        self.camera = camera
        self._configure()

    def _configure(self) -> None:
        setup_camera(self.camera)
        set_background_color(self.settings.background)
        setup_render_target(self.settings.width, self.settings.height)

    @property
    def width(self) -> int:
        """Get the image width."""
        return self.settings.width

    @property
    def height(self) -> int:
        """Get the image height."""
        return self.settings.height

    def reset(self) -> None:
        """Clear the color buffer."""
        clear_render_target()

    def resize(self, width: int, height: int) -> None:
        """Resize the render target, keeping the camera's FOV.

        Args:
            width: New image width in pixels.
            height: New image height in pixels.

        Raises:
            ValueError: If dimensions are invalid.
        """
        settings = replace(self.settings, width=width, height=height)
        settings.validate()
        self.settings = settings
        self.camera = replace(self.camera, aspect_ratio=settings.aspect_ratio)
        self._configure()

    def render(
        self,
        band_rows: int | None = None,
        callback: ProgressCallback | None = None,
    ) -> None:
        """Render the whole image.

        Args:
            band_rows: Rows to render per kernel launch. Defaults to the
                whole image in one launch.
            callback: Optional callback called after each band.
                Receives (rows_done, rows_total).

        Example:
            >>> def progress(done, total):
            ...     print(f"Progress: {done}/{total} rows")
            >>> renderer.render(band_rows=64, callback=progress)
        """
        for done, total in self.render_progressive(band_rows):
            if callback is not None:
                callback(done, total)

    def render_progressive(
        self,
        band_rows: int | None = None,
    ) -> Generator[tuple[int, int], None, None]:
        """Render the image band by band, yielding progress after each band.

        Args:
            band_rows: Rows to render per kernel launch.

        Yields:
            Tuple of (rows_done, rows_total).

        Raises:
            ValueError: If band_rows is not positive.
        """
        total = self.settings.height
        if band_rows is None:
            band_rows = total
        if band_rows <= 0:
            raise ValueError(f"band_rows = {band_rows} must be positive")

        done = 0
        while done < total:
            end = min(done + band_rows, total)
            render_rows(
                done,
                end,
                max_depth=self.settings.max_depth,
                mode=self.settings.mode,
            )
            done = end
            yield (done, total)

    def get_image_numpy(self) -> npt.NDArray[np.float32]:
        """Get the linear (unclamped) image of shape (height, width, 3)."""
        return get_image_numpy()

    def get_display_image(self) -> npt.NDArray[np.float32]:
        """Get the tone mapped image in [0, 1]."""
        from whitted.preview.display import process_image_for_display

        return process_image_for_display(self.get_image_numpy())

    def get_image_uint8(self) -> npt.NDArray[np.uint8]:
        """Get the tone mapped image as 8-bit values (truncated)."""
        from whitted.preview.export import image_to_uint8

        return image_to_uint8(self.get_image_numpy())

    def save_ppm(self, filepath: str) -> None:
        """Save the rendered image as a binary PPM (P6) file."""
        from whitted.preview.export import save_ppm_from_array

        save_ppm_from_array(self.get_image_numpy(), filepath)

    def save_png(self, filepath: str) -> None:
        """Save the rendered image as a PNG file."""
        from whitted.preview.export import save_png_from_array

        save_png_from_array(self.get_image_numpy(), filepath)

    def __repr__(self) -> str:
        """Return a string representation of the renderer state."""
        return (
            f"Renderer(width={self.width}, height={self.height}, "
            f"max_depth={self.settings.max_depth}, mode={parse_shading_mode(self.settings.mode).name})"
        )
