"""Core rendering module.

Components:
    ray: Ray data structure and vector utilities
    sampler: Deterministic per-path random sampling
    settings: Render session settings
    pathtrace: Wavefront stage kernels and path state buffers
    driver: PathTracer session lifecycle and progressive rendering

``pathtrace`` and ``driver`` depend on the camera, scene and material
modules and are imported from their own modules rather than re-exported
here.
"""

from .ray import (
    Ray,
    make_ray,
    ray_at,
    reflect,
    refract,
    rotate_about_axis,
    sanitize_color,
    vec3,
)
from .sampler import next_uniform, sample_uniforms, seed_sampler
from .settings import MAX_IMAGE_HEIGHT, MAX_IMAGE_WIDTH, RenderSettings

__all__ = [
    # Ray
    "Ray",
    "vec3",
    "ray_at",
    "make_ray",
    "reflect",
    "refract",
    "rotate_about_axis",
    "sanitize_color",
    # Sampler
    "seed_sampler",
    "next_uniform",
    "sample_uniforms",
    # Settings
    "RenderSettings",
    "MAX_IMAGE_WIDTH",
    "MAX_IMAGE_HEIGHT",
]
