"""Preview module for output and visualization.

Components:
    display: Max-channel tone mapping and Matplotlib preview
    export: PPM/PNG export and image comparison utilities

Example:
    >>> from whitted.preview import show_preview, save_ppm
    >>> from whitted.core.renderer import Renderer
    >>>
    >>> renderer = Renderer(settings, camera)
    >>> renderer.render()
    >>> show_preview(renderer)
    >>> save_ppm(renderer, "out.ppm")
"""

from whitted.preview.display import (
    clamp_unit,
    process_image_for_display,
    show_comparison,
    show_preview,
    tone_map_max_channel,
)
from whitted.preview.export import (
    compute_rmse,
    encode_ppm,
    image_to_uint8,
    load_image_uint8,
    mean_channel_difference,
    parse_ppm_header,
    save_png,
    save_png_from_array,
    save_ppm,
    save_ppm_from_array,
)

__all__ = [
    # Display functions
    "show_preview",
    "show_comparison",
    # Tone mapping
    "tone_map_max_channel",
    "clamp_unit",
    "process_image_for_display",
    # Export functions
    "save_ppm",
    "save_ppm_from_array",
    "save_png",
    "save_png_from_array",
    "encode_ppm",
    "parse_ppm_header",
    "load_image_uint8",
    "image_to_uint8",
    "compute_rmse",
    "mean_channel_difference",
]
