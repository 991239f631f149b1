"""Taichi-based Whitted ray tracer.

This package renders scenes of spheres lit by point lights with classic
recursive (Whitted-style) ray tracing:
- Phong diffuse and specular shading with hard shadows
- Mirror reflection and Snell refraction traced to a fixed depth
- Max-channel tone mapping and PPM/PNG export

Subpackages:
    core: Ray utilities, the integrator and the rendering loop
    geometry: Sphere primitive and ray-sphere intersection
    materials: Phong material model and presets
    scene: Scene registries, scene manager and the reference scene
    camera: Pinhole camera with ray generation
    preview: Tone mapping, preview and image export
"""

__version__ = "0.1.0"
