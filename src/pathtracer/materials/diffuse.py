"""Diffuse (Lambertian) scattering.

Directions are drawn from a cosine-weighted hemisphere, pdf = cos(theta) / pi.
With the Lambertian BRDF albedo / pi, the Monte Carlo weight

    BRDF * cos(theta) / pdf = (albedo / pi) * cos(theta) / (cos(theta) / pi)

reduces to the albedo, so the throughput update is a plain multiply by the
base color.
"""

import math

import taichi as ti
import taichi.math as tm

from src.pathtracer.core.ray import vec3
from src.pathtracer.core.sampler import next_uniform

# Component magnitude below which a world axis is safely non-parallel to a
# unit normal (at least one component of any unit vector is <= sqrt(1/3))
SQRT_OF_ONE_THIRD = math.sqrt(1.0 / 3.0)


@ti.func
def calculate_random_direction_in_hemisphere(normal: vec3, u1: ti.f32, u2: ti.f32) -> vec3:
    """Map two uniforms to a cosine-weighted direction about ``normal``.

    Args:
        normal: Unit vector defining the hemisphere pole.
        u1: Uniform in [0, 1); sets cos(theta) = sqrt(u1).
        u2: Uniform in [0, 1); sets the azimuth 2 * pi * u2.

    Returns:
        A unit direction with dot(normal, direction) >= 0.
    """
    up = ti.sqrt(u1)  # cos(theta)
    over = ti.sqrt(1.0 - u1)  # sin(theta)
    around = u2 * 2.0 * tm.pi

    # Helper axis: the first world axis whose component along the normal is small
    helper = vec3(0.0, 0.0, 1.0)
    if ti.abs(normal.x) < SQRT_OF_ONE_THIRD:
        helper = vec3(1.0, 0.0, 0.0)
    elif ti.abs(normal.y) < SQRT_OF_ONE_THIRD:
        helper = vec3(0.0, 1.0, 0.0)

    perpendicular_1 = tm.normalize(tm.cross(normal, helper))
    perpendicular_2 = tm.normalize(tm.cross(normal, perpendicular_1))

    return tm.normalize(
        up * normal
        + ti.cos(around) * over * perpendicular_1
        + ti.sin(around) * over * perpendicular_2
    )


@ti.func
def scatter_diffuse(incident: vec3, normal: vec3, color: vec3, state: ti.u32):
    """Sample a diffuse bounce.

    The hemisphere is taken about the side of the surface the ray arrived
    from, so single-sided quads scatter correctly from either face.

    Args:
        incident: Incoming ray direction.
        normal: Outward surface normal.
        color: Base color of the material.
        state: Sampler state.

    Returns:
        A tuple (direction, attenuation, new_state).
    """
    s = state
    facing = normal
    if tm.dot(incident, normal) > 0.0:
        facing = -normal

    u1, s = next_uniform(s)
    u2, s = next_uniform(s)
    direction = calculate_random_direction_in_hemisphere(facing, u1, u2)
    return direction, color, s
