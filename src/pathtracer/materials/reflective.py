"""Glossy and perfect-mirror reflection.

Glossy reflection importance-samples a normalized Phong lobe centered on the
mirror direction. With exponent n the polar angle from the lobe axis is

    theta = acos(u1 ^ (1 / (n + 1))),  phi = 2 * pi * u2

The sample is built in a local frame whose pole is +Z, then carried onto the
mirror direction by the rotation that takes +Z to the mirror. Since the lobe
pdf matches the sampled density, the bounce weight is the specular color.

An exponent of 0 is treated as a perfect mirror rather than a uniform lobe.
"""

import taichi as ti
import taichi.math as tm

from src.pathtracer.core.ray import reflect, rotate_about_axis, vec3
from src.pathtracer.core.sampler import next_uniform

# Below this cross-product length the mirror is treated as parallel to +Z
PARALLEL_EPSILON = 1e-6


@ti.func
def sample_phong_lobe(mirror: vec3, exponent: ti.f32, u1: ti.f32, u2: ti.f32) -> vec3:
    """Sample a direction from a cosine-power lobe around ``mirror``.

    Args:
        mirror: Unit lobe axis.
        exponent: Phong exponent (> 0).
        u1: Uniform in [0, 1) for the polar angle.
        u2: Uniform in [0, 1) for the azimuth.

    Returns:
        A unit direction.
    """
    theta = ti.acos(tm.clamp(u1 ** (1.0 / (exponent + 1.0)), -1.0, 1.0))
    phi = 2.0 * tm.pi * u2
    local = vec3(ti.cos(phi) * ti.sin(theta), ti.sin(phi) * ti.sin(theta), ti.cos(theta))

    up = vec3(0.0, 0.0, 1.0)
    angle = ti.acos(tm.clamp(tm.dot(up, mirror), -1.0, 1.0))
    axis = tm.cross(up, mirror)
    if tm.length(axis) < PARALLEL_EPSILON:
        # Mirror is +Z or -Z: any axis perpendicular to +Z works
        axis = vec3(1.0, 0.0, 0.0)
    else:
        axis = tm.normalize(axis)

    return tm.normalize(rotate_about_axis(local, angle, axis))


@ti.func
def scatter_reflective(
    incident: vec3,
    normal: vec3,
    specular_color: vec3,
    exponent: ti.f32,
    state: ti.u32,
):
    """Sample a reflective bounce.

    Args:
        incident: Incoming ray direction (unit).
        normal: Surface normal (either orientation).
        specular_color: Reflection tint.
        exponent: Phong exponent; <= 0 selects the exact mirror.
        state: Sampler state.

    Returns:
        A tuple (direction, attenuation, absorbed, new_state). ``absorbed`` is
        1 when a lobe sample points into the surface.
    """
    s = state
    mirror = tm.normalize(reflect(incident, normal))
    direction = mirror

    if exponent > 0.0:
        u1, s = next_uniform(s)
        u2, s = next_uniform(s)
        direction = sample_phong_lobe(mirror, exponent, u1, u2)

    facing = normal
    if tm.dot(incident, normal) > 0.0:
        facing = -normal

    absorbed = 0
    if tm.dot(direction, facing) < 0.0:
        absorbed = 1

    return direction, specular_color, absorbed, s
