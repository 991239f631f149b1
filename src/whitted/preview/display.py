"""Tone mapping and Matplotlib-based preview for rendered images.

The renderer produces unclamped linear colors: several lights and the strong
specular weight of the mirror material push channels well above 1. Before
display or export every pixel goes through max-channel tone mapping:

    if max(r, g, b) > 1: (r, g, b) /= max(r, g, b)
    clamp each channel to [0, 1]

Scaling by the brightest channel preserves hue instead of clipping bright
colors to white.

Example:
    >>> from whitted.preview.display import show_preview
    >>> from whitted.core.renderer import Renderer
    >>>
    >>> renderer = Renderer(settings, camera)
    >>> renderer.render()
    >>> show_preview(renderer)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt

if TYPE_CHECKING:
    from whitted.core.renderer import Renderer


def tone_map_max_channel(
    image: npt.NDArray[np.float32],
) -> npt.NDArray[np.float32]:
    """Scale down pixels whose brightest channel exceeds 1.

    Pixels with every channel at or below 1 are returned unchanged. Other
    pixels are multiplied by 1 / max(channel) so their brightest channel
    becomes exactly 1.

    Args:
        image: Linear image array of shape (..., 3).

    Returns:
        Tone mapped image (not yet clamped; negative values pass through).
    """
    image = np.asarray(image, dtype=np.float32)
    peak = np.max(image, axis=-1, keepdims=True)
    scale = np.ones_like(peak)
    over = peak > 1.0
    scale[over] = 1.0 / peak[over]
    return (image * scale).astype(np.float32)


def clamp_unit(
    image: npt.NDArray[np.float32],
) -> npt.NDArray[np.float32]:
    """Clamp every channel to [0, 1]."""
    return np.clip(image, 0.0, 1.0).astype(np.float32)


def process_image_for_display(
    image: npt.NDArray[np.float32],
) -> npt.NDArray[np.float32]:
    """Apply the display pipeline: max-channel tone mapping, then clamping.

    Args:
        image: Linear image array of shape (H, W, 3).

    Returns:
        Processed image ready for display, in [0, 1] range.
    """
    return clamp_unit(tone_map_max_channel(image))


def show_preview(
    renderer: Renderer,
    *,
    title: str | None = None,
    figsize: tuple[float, float] = (10, 7.5),
    block: bool = True,
) -> None:
    """Display the current render as a Matplotlib figure.

    Args:
        renderer: The Renderer instance to display.
        title: Custom title (default shows size and recursion depth).
        figsize: Figure size in inches (width, height).
        block: Whether to block execution until figure is closed.
    """
    import matplotlib.pyplot as plt

    display_image = process_image_for_display(renderer.get_image_numpy())

    fig, ax = plt.subplots(1, 1, figsize=figsize)
    ax.imshow(display_image)
    ax.axis("off")

    if title is None:
        title = (
            f"{renderer.width}x{renderer.height} - "
            f"max depth {renderer.settings.max_depth}"
        )
    ax.set_title(title)

    plt.tight_layout()
    plt.show(block=block)


def show_comparison(
    image_a: npt.NDArray[np.float32],
    image_b: npt.NDArray[np.float32],
    *,
    labels: tuple[str, str] = ("A", "B"),
    diff_scale: float = 10.0,
    figsize: tuple[float, float] = (16, 6),
    block: bool = True,
) -> float:
    """Display side-by-side comparison of two images with difference view.

    Args:
        image_a: First image array (H, W, 3) in linear space.
        image_b: Second image array (H, W, 3) in linear space.
        labels: Labels for the two images.
        diff_scale: Scale factor for difference amplification.
        figsize: Figure size in inches.
        block: Whether to block execution until figure is closed.

    Returns:
        Mean absolute channel difference between the displayed images.
    """
    import matplotlib.pyplot as plt

    display_a = process_image_for_display(image_a)
    display_b = process_image_for_display(image_b)

    diff = np.abs(display_a.astype(np.float64) - display_b.astype(np.float64))
    mean_diff = float(np.mean(diff))
    diff_amplified = np.clip(diff * diff_scale, 0.0, 1.0)

    fig, axes = plt.subplots(1, 3, figsize=figsize)

    axes[0].imshow(display_a)
    axes[0].set_title(labels[0])
    axes[0].axis("off")

    axes[1].imshow(display_b)
    axes[1].set_title(labels[1])
    axes[1].axis("off")

    axes[2].imshow(diff_amplified)
    axes[2].set_title(f"Difference ({diff_scale}x) - mean: {mean_diff:.6f}")
    axes[2].axis("off")

    plt.tight_layout()
    plt.show(block=block)

    return mean_diff
