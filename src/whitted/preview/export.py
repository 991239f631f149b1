"""Image export utilities for rendered images.

This module converts linear renders to 8-bit images and writes them to disk.

Supported formats:
    - PPM (binary P6 via Pillow): ``P6\\n<width> <height>\\n255\\n`` followed
      by RGB bytes, row-major, top-to-bottom
    - PNG (8-bit via Pillow)

8-bit conversion truncates (``int(255 * c)``) rather than rounds, so output
bytes match the classic renderer exactly.

Example:
    >>> from whitted.preview.export import save_ppm
    >>> from whitted.core.renderer import Renderer
    >>>
    >>> renderer = Renderer(settings, camera)
    >>> renderer.render()
    >>> save_ppm(renderer, "out.ppm")
"""

from __future__ import annotations

import io
from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

from whitted.preview.display import process_image_for_display

if TYPE_CHECKING:
    from whitted.core.renderer import Renderer


def image_to_uint8(
    image: npt.NDArray[np.float32],
) -> npt.NDArray[np.uint8]:
    """Convert a linear float image to uint8 for display/export.

    Applies max-channel tone mapping and clamping, then truncates
    255 * channel to an integer.

    Args:
        image: Linear image array of shape (H, W, 3).

    Returns:
        8-bit image array of shape (H, W, 3) with dtype uint8.
    """
    processed = process_image_for_display(image)
    return (processed * 255).astype(np.uint8)


def _to_pil(image: npt.NDArray[np.float32]) -> PILImage.Image:
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected an (H, W, 3) image, got shape {image.shape}")
    return PILImage.fromarray(image_to_uint8(image))


def encode_ppm(image: npt.NDArray[np.float32]) -> bytes:
    """Encode a linear image as binary PPM (P6) bytes.

    Args:
        image: Linear image array of shape (H, W, 3).

    Returns:
        The complete PPM file contents.
    """
    buffer = io.BytesIO()
    _to_pil(image).save(buffer, format="PPM")
    return buffer.getvalue()


def parse_ppm_header(data: bytes) -> tuple[int, int, int]:
    """Parse the header of a binary PPM (P6) file.

    Only the compact form written by this module is accepted: magic, size
    and maxval each on their own line, no comments.

    Args:
        data: The PPM file contents (at least the header).

    Returns:
        Tuple of (width, height, header_length_in_bytes).

    Raises:
        ValueError: If the header is malformed or maxval is not 255.
    """
    lines = data.split(b"\n", 3)
    if len(lines) < 4 or lines[0] != b"P6":
        raise ValueError("Not a binary PPM (P6) file")

    size = lines[1].split()
    if len(size) != 2 or not all(s.isdigit() for s in size):
        raise ValueError(f"Malformed PPM size line: {lines[1]!r}")
    width, height = int(size[0]), int(size[1])
    if width <= 0 or height <= 0:
        raise ValueError(f"PPM dimensions ({width}x{height}) must be positive")

    if lines[2] != b"255":
        raise ValueError(f"Unsupported PPM maxval: {lines[2]!r}")

    header_length = len(lines[0]) + len(lines[1]) + len(lines[2]) + 3
    return width, height, header_length


def save_ppm_from_array(image: npt.NDArray[np.float32], filepath: str | Path) -> None:
    """Save a linear NumPy image as a binary PPM (P6) file.

    Args:
        image: Linear image array of shape (H, W, 3).
        filepath: Output file path (should end in .ppm).
    """
    _to_pil(image).save(filepath, format="PPM")


def save_ppm(renderer: Renderer, filepath: str | Path) -> None:
    """Save the rendered image as a binary PPM (P6) file.

    Args:
        renderer: The Renderer instance to save.
        filepath: Output file path (should end in .ppm).
    """
    save_ppm_from_array(renderer.get_image_numpy(), filepath)


def save_png_from_array(image: npt.NDArray[np.float32], filepath: str | Path) -> None:
    """Save a linear NumPy image as an 8-bit PNG file.

    Args:
        image: Linear image array of shape (H, W, 3).
        filepath: Output file path (should end in .png).
    """
    _to_pil(image).save(filepath, format="PNG")


def save_png(renderer: Renderer, filepath: str | Path) -> None:
    """Save the rendered image as an 8-bit PNG file."""
    save_png_from_array(renderer.get_image_numpy(), filepath)


def load_image_uint8(filepath: str | Path) -> npt.NDArray[np.uint8]:
    """Load a PPM or PNG image as an (H, W, 3) uint8 array.

    Args:
        filepath: Image file path.

    Returns:
        The image pixels in RGB order.
    """
    with PILImage.open(filepath) as pil_image:
        return np.asarray(pil_image.convert("RGB"), dtype=np.uint8)


def compute_rmse(
    image_a: npt.NDArray[np.floating | np.integer],
    image_b: npt.NDArray[np.floating | np.integer],
) -> float:
    """Compute root mean squared error between two images.

    Raises:
        ValueError: If image shapes don't match.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(
            f"Image shapes must match: {image_a.shape} vs {image_b.shape}"
        )

    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))


def mean_channel_difference(
    image_a: npt.NDArray[np.floating | np.integer],
    image_b: npt.NDArray[np.floating | np.integer],
) -> float:
    """Compute the mean absolute per-channel difference between two images.

    Raises:
        ValueError: If image shapes don't match.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(
            f"Image shapes must match: {image_a.shape} vs {image_b.shape}"
        )

    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.mean(np.abs(diff)))
