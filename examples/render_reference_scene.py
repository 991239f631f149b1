#!/usr/bin/env python3
"""Render the four-sphere reference scene (or a JSON scene file).

This script demonstrates end-to-end rendering with the Whitted ray tracer.
It builds the scene, sets up the camera, renders the image in row bands and
writes a PPM (or PNG, chosen by the output suffix).

Usage:
    python examples/render_reference_scene.py [options]

Options:
    --width WIDTH         Image width in pixels (default: 1024)
    --height HEIGHT       Image height in pixels (default: 768)
    --fov DEGREES         Vertical field of view (default: 90)
    --max-depth DEPTH     Recursion limit for secondary rays (default: 4)
    --mode MODE           Shading mode: flat, direct or whitted (default: whitted)
    --variant VARIANT     Reference scene variant: refractions or reflections
    --scene PATH          Load a JSON scene file instead of the reference scene
    --output OUTPUT       Output file path (default: out.ppm)
    --band-rows ROWS      Rows per progress update (default: 64)
    --preview             Show the result in a Matplotlib window
    --quiet               Suppress progress output

Example:
    python examples/render_reference_scene.py --width 512 --height 384 --output small.png
"""

from __future__ import annotations

import argparse
import sys
import time
from dataclasses import replace
from pathlib import Path

import taichi as ti


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render the Whitted reference scene.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--width",
        type=int,
        default=None,
        help="Image width in pixels (default: 1024, or the scene file's)",
    )
    parser.add_argument(
        "--height",
        type=int,
        default=None,
        help="Image height in pixels (default: 768, or the scene file's)",
    )
    parser.add_argument(
        "--fov",
        type=float,
        default=None,
        help="Vertical field of view in degrees (default: 90)",
    )
    parser.add_argument(
        "--max-depth",
        type=int,
        default=None,
        help="Recursion limit for reflection/refraction rays, at most 8 (default: 4)",
    )
    parser.add_argument(
        "--mode",
        type=str,
        choices=["flat", "direct", "whitted"],
        default=None,
        help="Shading mode (default: whitted)",
    )
    parser.add_argument(
        "--variant",
        type=str,
        choices=["refractions", "reflections"],
        default="refractions",
        help="Reference scene variant (default: refractions)",
    )
    parser.add_argument(
        "--scene",
        type=str,
        default=None,
        help="JSON scene file to render instead of the reference scene",
    )
    parser.add_argument(
        "--output",
        type=str,
        default="out.ppm",
        help="Output file path, .ppm or .png (default: out.ppm)",
    )
    parser.add_argument(
        "--band-rows",
        type=int,
        default=64,
        help="Rows rendered per progress update (default: 64)",
    )
    parser.add_argument(
        "--preview",
        action="store_true",
        help="Show the rendered image in a Matplotlib window",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )
    return parser.parse_args(argv)


def render_scene(args: argparse.Namespace) -> Path:
    """Build the scene described by the arguments, render it and save it.

    Returns:
        Path to the saved image file.
    """
    # Lazy imports to allow Taichi initialization first
    from whitted.camera.pinhole import PinholeCamera
    from whitted.core.integrator import parse_shading_mode
    from whitted.core.renderer import Renderer
    from whitted.scene.manager import load_scene_file
    from whitted.scene.reference_scene import create_reference_scene

    quiet = args.quiet

    if args.scene is not None:
        if not quiet:
            print(f"Loading scene from {args.scene}...")
        scene, camera, settings = load_scene_file(args.scene)
    else:
        if not quiet:
            print(f"Creating reference scene ({args.variant})...")
        scene, camera, settings = create_reference_scene(args.variant)

    overrides = {}
    if args.width is not None:
        overrides["width"] = args.width
    if args.height is not None:
        overrides["height"] = args.height
    if args.fov is not None:
        overrides["vfov"] = args.fov
    if args.max_depth is not None:
        overrides["max_depth"] = args.max_depth
    if args.mode is not None:
        overrides["mode"] = parse_shading_mode(args.mode)
    settings = replace(settings, **overrides)
    settings.validate()

    camera = PinholeCamera(
        lookfrom=camera.lookfrom,
        lookat=camera.lookat,
        vup=camera.vup,
        vfov=settings.vfov if args.fov is not None else camera.vfov,
        aspect_ratio=settings.aspect_ratio,
    )

    if not quiet:
        print(
            f"Rendering {settings.width}x{settings.height}: "
            f"{scene.get_sphere_count()} spheres, {scene.get_light_count()} lights, "
            f"max depth {settings.max_depth}, mode {settings.mode.name.lower()}..."
        )

    renderer = Renderer(settings, camera)
    start_time = time.time()

    def progress_callback(done: int, total: int) -> None:
        if not quiet:
            elapsed = time.time() - start_time
            progress_pct = (done / total) * 100 if total > 0 else 0
            print(
                f"\r  Progress: {done}/{total} rows ({progress_pct:.1f}%) - {elapsed:.1f}s",
                end="",
                flush=True,
            )

    renderer.render(band_rows=args.band_rows, callback=progress_callback)

    if not quiet:
        print()  # Newline after progress

    output_file = Path(args.output)
    if output_file.suffix.lower() == ".png":
        renderer.save_png(str(output_file))
    else:
        renderer.save_ppm(str(output_file))

    total_time = time.time() - start_time
    if not quiet:
        print(f"Saved to: {output_file.absolute()}")
        print(f"Total time: {total_time:.2f}s")

    if args.preview:
        from whitted.preview.display import show_preview

        show_preview(renderer)

    return output_file


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    ti.init(arch=ti.cpu)
    if not args.quiet:
        print("Using CPU backend")

    try:
        render_scene(args)
        return 0
    except (ValueError, RuntimeError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
