"""Integration tests for the end-to-end rendering pipeline.

This module renders the four-sphere reference scene through the full stack
(scene manager, camera, integrator, renderer, export) and checks the result
against an independent double-precision tracer written in plain Python.

Tests are kept fast by rendering at low resolution and comparing a subset of
pixels.

Note: Imports are done inside test methods to avoid Taichi initialization issues.
The conftest.py fixture initializes Taichi before tests run.
"""

from __future__ import annotations

import importlib.util
import math
from pathlib import Path

import numpy as np
import pytest

EXAMPLES_DIR = Path(__file__).parent.parent / "examples"

WIDTH = 64
HEIGHT = 48


# =============================================================================
# Double-precision reference tracer
# =============================================================================


def _normalize(v):
    return v / np.linalg.norm(v)


def _reflect(incident, normal):
    return 2.0 * np.dot(incident, normal) * normal - incident


def _refract(incident, normal, ior):
    cosi = np.dot(incident, normal)
    eta_i, eta_t, n = 1.0, ior, normal
    if cosi < 0.0:
        cosi = -cosi
        eta_i, eta_t, n = ior, 1.0, -normal
    eta = eta_i / eta_t
    k = 1.0 - eta * eta * (1.0 - cosi * cosi)
    if k < 0.0:
        return None
    return _normalize(incident * -eta + n * (eta * cosi - math.sqrt(k)))


def _offset(point, normal, direction):
    if np.dot(direction, normal) < 0.0:
        return point - normal * 1e-3
    return point + normal * 1e-3


class ReferenceTracer:
    """Plain NumPy Whitted tracer used to cross-check the Taichi kernels."""

    def __init__(self, spheres, materials, lights, background):
        self.spheres = [(np.array(c, dtype=np.float64), r, m) for c, r, m in spheres]
        self.materials = materials
        self.lights = [(np.array(p, dtype=np.float64), i) for p, i in lights]
        self.background = np.array(background, dtype=np.float64)

    def intersect(self, origin, direction):
        closest = 1000.0
        result = None
        for center, radius, material_id in self.spheres:
            L = center - origin
            tca = np.dot(L, direction)
            d2 = np.dot(L, L) - tca * tca
            if d2 > radius * radius:
                continue
            thc = math.sqrt(radius * radius - d2)
            t = tca - thc
            if t < 0.0:
                t = tca + thc
            if t < 0.0 or t >= closest:
                continue
            closest = t
            point = origin + direction * t
            result = (t, point, _normalize(point - center), material_id)
        return result

    def direct(self, point, normal, direction, material):
        diffuse = 0.0
        specular = 0.0
        for position, intensity in self.lights:
            to_light = position - point
            distance = np.linalg.norm(to_light)
            light_dir = to_light / distance
            hit = self.intersect(_offset(point, normal, light_dir), light_dir)
            if hit is not None and hit[0] < distance:
                continue
            diffuse += intensity * max(0.0, np.dot(light_dir, normal))
            highlight = max(0.0, np.dot(_reflect(light_dir, normal), -direction))
            specular += intensity * highlight**material.specular_exponent
        albedo = material.albedo
        return np.array(material.diffuse_color) * diffuse * albedo[0] + specular * albedo[1]

    def trace(self, origin, direction, depth=0, max_depth=4):
        if depth > max_depth:
            return self.background
        hit = self.intersect(origin, direction)
        if hit is None:
            return self.background
        _, point, normal, material_id = hit
        material = self.materials[material_id]
        albedo = material.albedo

        reflect_color = np.zeros(3)
        if albedo[2] != 0.0:
            reflect_dir = _normalize(_reflect(-direction, normal))
            reflect_color = self.trace(_offset(point, normal, reflect_dir), reflect_dir, depth + 1, max_depth)

        refract_color = np.zeros(3)
        if albedo[3] != 0.0:
            refract_dir = _refract(-direction, normal, material.refractive_index)
            if refract_dir is not None:
                refract_color = self.trace(_offset(point, normal, refract_dir), refract_dir, depth + 1, max_depth)

        return (
            self.direct(point, normal, direction, material)
            + reflect_color * albedo[2]
            + refract_color * albedo[3]
        )

    @staticmethod
    def primary_direction(col, row, width, height, vfov=90.0):
        """Unit direction through pixel (col, row), with row 0 at the top of the image."""
        scale = math.tan(math.radians(vfov) / 2.0)
        x = (2.0 * (col + 0.5) / width - 1.0) * scale * width / height
        y = -(2.0 * (row + 0.5) / height - 1.0) * scale
        return _normalize(np.array([x, y, -1.0]))

    def pixel(self, col, row, width, height, vfov=90.0, max_depth=4):
        """Trace the pixel at (col, row), with row 0 at the top of the image."""
        direction = self.primary_direction(col, row, width, height, vfov)
        return self.trace(np.zeros(3), direction, 0, max_depth)


def _reference_tracer(scene, background):
    return ReferenceTracer(
        spheres=[(s.center, s.radius, s.material_id) for s in scene.spheres],
        materials={m.material_id: m.params for m in scene.materials},
        lights=[(light.position, light.intensity) for light in scene.lights],
        background=background,
    )


def _render_reference(variant="refractions", **settings_kwargs):
    from whitted.core.renderer import Renderer, RenderSettings
    from whitted.scene.reference_scene import create_reference_scene

    settings = RenderSettings(width=WIDTH, height=HEIGHT, **settings_kwargs)
    scene, camera, settings = create_reference_scene(variant, settings=settings)
    renderer = Renderer(settings, camera)
    renderer.render(band_rows=16)
    return scene, renderer


def _sample_pixels(image, tracer, stride, max_depth=4):
    """Tone mapped rendered and reference pixels on a regular grid.

    Returns:
        Tuple of (actual, expected) arrays of shape (N, 3).
    """
    from whitted.preview.display import process_image_for_display

    height, width = image.shape[:2]
    actual = []
    expected = []
    for row in range(0, height, stride):
        for col in range(0, width, stride):
            actual.append(image[row, col])
            expected.append(tracer.pixel(col, row, width, height, max_depth=max_depth))
    actual = process_image_for_display(np.array(actual, dtype=np.float32).reshape(-1, 1, 3))
    expected = process_image_for_display(np.array(expected, dtype=np.float32).reshape(-1, 1, 3))
    return actual.reshape(-1, 3), expected.reshape(-1, 3)


def _mismatch_fraction(actual, expected, tolerance=0.05):
    """Fraction of sampled pixels whose largest channel error exceeds tolerance."""
    return float(np.mean(np.max(np.abs(actual - expected), axis=-1) > tolerance))


def _load_cli():
    path = EXAMPLES_DIR / "render_reference_scene.py"
    spec = importlib.util.spec_from_file_location("render_reference_scene", path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


# =============================================================================
# Tests
# =============================================================================


class TestReferenceSceneRender:
    """End-to-end checks on the four-sphere scene."""

    @pytest.mark.parametrize("variant", ["refractions", "reflections"])
    def test_matches_reference_tracer(self, variant) -> None:
        """Tone mapped pixels agree with the double-precision tracer."""
        from whitted.preview.export import mean_channel_difference

        scene, renderer = _render_reference(variant)
        tracer = _reference_tracer(scene, renderer.settings.background)
        actual, expected = _sample_pixels(renderer.get_image_numpy(), tracer, stride=2)

        # Single-precision kernels can flip silhouette and shadow-edge pixels
        assert _mismatch_fraction(actual, expected) < 0.05
        assert mean_channel_difference(actual, expected) < 0.01

    def test_deep_recursion_matches_reference_tracer(self) -> None:
        """At the deepest supported limit the glass variant still matches."""
        from whitted.core.integrator import MAX_TRACE_DEPTH
        from whitted.preview.export import mean_channel_difference

        scene, renderer = _render_reference(max_depth=MAX_TRACE_DEPTH)
        tracer = _reference_tracer(scene, renderer.settings.background)
        actual, expected = _sample_pixels(renderer.get_image_numpy(), tracer, stride=4, max_depth=MAX_TRACE_DEPTH)

        assert _mismatch_fraction(actual, expected) < 0.05
        assert mean_channel_difference(actual, expected) < 0.01

    def test_output_is_finite_and_non_negative(self) -> None:
        """The linear image contains no NaN, inf or negative values."""
        _, renderer = _render_reference()
        image = renderer.get_image_numpy()

        assert image.shape == (HEIGHT, WIDTH, 3)
        assert np.all(np.isfinite(image))
        assert image.min() >= 0.0

    def test_corners_show_background(self) -> None:
        """The image corners see only the background."""
        from whitted.core.integrator import BACKGROUND_COLOR

        _, renderer = _render_reference()
        image = renderer.get_image_numpy()
        for row, col in [(0, 0), (HEIGHT - 1, 0), (HEIGHT - 1, WIDTH - 1)]:
            np.testing.assert_allclose(image[row, col], BACKGROUND_COLOR, atol=1e-6)

    def test_spheres_are_visible(self) -> None:
        """Exactly the pixels whose primary ray hits a sphere leave the background."""
        from whitted.core.integrator import BACKGROUND_COLOR

        scene, renderer = _render_reference()
        image = renderer.get_image_numpy()
        tracer = _reference_tracer(scene, renderer.settings.background)
        differs = np.any(np.abs(image - np.array(BACKGROUND_COLOR)) > 1e-3, axis=-1)
        hits = np.zeros((HEIGHT, WIDTH), dtype=bool)
        for row in range(HEIGHT):
            for col in range(WIDTH):
                direction = tracer.primary_direction(col, row, WIDTH, HEIGHT)
                hits[row, col] = tracer.intersect(np.zeros(3), direction) is not None

        # The spheres cover roughly 7% of this frame
        assert 0.05 < hits.mean() < 0.1
        assert np.mean(differs == hits) > 0.98

    def test_variants_differ(self) -> None:
        """Swapping glass for red rubber changes the image."""
        _, glass = _render_reference("refractions")
        glass_image = glass.get_image_numpy()
        _, rubber = _render_reference("reflections")
        rubber_image = rubber.get_image_numpy()

        assert not np.allclose(glass_image, rubber_image)
        # The upper right corner is background in both variants
        np.testing.assert_allclose(glass_image[0, -1], rubber_image[0, -1], atol=1e-6)

    def test_depth_zero_has_no_secondary_rays(self) -> None:
        """With max_depth 0 the mirror sphere only shows its direct light."""
        from whitted.preview.export import mean_channel_difference

        scene, renderer = _render_reference(max_depth=0)
        tracer = _reference_tracer(scene, renderer.settings.background)
        actual, expected = _sample_pixels(renderer.get_image_numpy(), tracer, stride=3, max_depth=0)

        assert _mismatch_fraction(actual, expected) < 0.05
        assert mean_channel_difference(actual, expected) < 0.01

    def test_save_ppm(self, tmp_path: Path) -> None:
        """The PPM has the P6 header and exactly width*height*3 pixel bytes."""
        from whitted.preview.export import parse_ppm_header

        _, renderer = _render_reference()
        path = tmp_path / "out.ppm"
        renderer.save_ppm(str(path))

        data = path.read_bytes()
        width, height, offset = parse_ppm_header(data)
        assert (width, height) == (WIDTH, HEIGHT)
        assert data[:offset] == f"P6\n{WIDTH} {HEIGHT}\n255\n".encode("ascii")
        assert len(data) - offset == WIDTH * HEIGHT * 3


class TestCommandLine:
    """Tests for the example render script."""

    def test_parse_args_defaults(self) -> None:
        """Unset size options defer to the scene's settings."""
        cli = _load_cli()
        args = cli.parse_args([])

        assert args.width is None
        assert args.height is None
        assert args.variant == "refractions"
        assert args.output == "out.ppm"
        assert args.band_rows == 64
        assert not args.preview

    def test_render_scene_writes_output(self, tmp_path: Path) -> None:
        """render_scene renders the reference scene and writes the file."""
        cli = _load_cli()
        output = tmp_path / "small.ppm"
        args = cli.parse_args(
            ["--width", "32", "--height", "24", "--max-depth", "2", "--output", str(output), "--quiet"]
        )

        assert cli.render_scene(args) == output
        data = output.read_bytes()
        assert data.startswith(b"P6\n32 24\n255\n")
        assert len(data) == len(b"P6\n32 24\n255\n") + 32 * 24 * 3

    def test_render_scene_from_file(self, tmp_path: Path) -> None:
        """A JSON scene file can be rendered to PNG."""
        from whitted.core.renderer import RenderSettings
        from whitted.preview.export import load_image_uint8
        from whitted.scene.manager import save_scene_file
        from whitted.scene.reference_scene import create_reference_scene

        scene, camera, _ = create_reference_scene(settings=RenderSettings(width=20, height=10))
        settings = RenderSettings(width=20, height=10, max_depth=1)
        scene_path = tmp_path / "scene.json"
        save_scene_file(scene_path, scene, camera, settings)

        cli = _load_cli()
        output = tmp_path / "scene.png"
        args = cli.parse_args(["--scene", str(scene_path), "--output", str(output), "--quiet"])
        cli.render_scene(args)

        assert load_image_uint8(output).shape == (10, 20, 3)


@pytest.mark.slow
class TestHighQualityRender:
    """Full-size render (marked slow for optional execution)."""

    def test_reference_render(self, tmp_path: Path) -> None:
        """Render the 1024x768 reference image.

        Run with: pytest -m slow tests/test_integration.py
        """
        from whitted.core.renderer import Renderer
        from whitted.preview.export import mean_channel_difference
        from whitted.scene.reference_scene import create_reference_scene

        scene, camera, settings = create_reference_scene()
        renderer = Renderer(settings, camera)
        renderer.render(band_rows=64)

        path = tmp_path / "out.ppm"
        renderer.save_ppm(str(path))
        assert path.stat().st_size == len(b"P6\n1024 768\n255\n") + 1024 * 768 * 3

        tracer = _reference_tracer(scene, settings.background)
        actual, expected = _sample_pixels(renderer.get_image_numpy(), tracer, stride=16)
        assert _mismatch_fraction(actual, expected) < 0.05
        assert mean_channel_difference(actual, expected) < 0.01
