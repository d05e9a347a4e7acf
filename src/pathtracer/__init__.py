"""Wavefront Monte Carlo path tracer built on Taichi.

Paths for every pixel advance together one bounce at a time through
separate intersection, scatter and termination stages, and their radiance
is accumulated progressively across iterations.

Subpackages:
    core: Rays, sampling, settings, wavefront stages and the PathTracer driver
    geometry: Sphere and quad intersection
    materials: Material table and diffuse, reflective, refractive scattering
    scene: Geom storage, nearest-hit queries and the SceneManager
    camera: Thin-lens camera and primary ray generation
    preview: Tone mapping and PNG export
"""

__version__ = "0.1.0"
