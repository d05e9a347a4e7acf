"""Deterministic refraction through dielectric boundaries.

The side of the boundary is read from the outward normal: a negative
cosine between normal and ray means the ray is entering the medium
(ratio 1 / ior), a positive one means it is leaving (ratio ior, against the
flipped normal). Three degenerate cases are resolved locally:

- near-grazing incidence passes the ray through unchanged;
- a vanishing refracted vector (total internal reflection) is replaced by
  the mirror reflection about the flipped normal;
- every result is re-normalized.
"""

import taichi as ti
import taichi.math as tm

from src.pathtracer.core.ray import reflect, refract, vec3

# |cos| below this is treated as grazing and passed through
GRAZING_COSINE_THRESHOLD = 1e-2

# Refracted vectors shorter than this signal total internal reflection
TIR_LENGTH_THRESHOLD = 1e-3


@ti.func
def refract_direction(incident: vec3, normal: vec3, ior: ti.f32) -> vec3:
    """Compute the outgoing direction at a refractive boundary.

    Args:
        incident: Incoming ray direction (unit).
        normal: Outward surface normal (unit).
        ior: Index of refraction of the medium inside the surface.

    Returns:
        The unit outgoing direction.
    """
    cosine = tm.dot(normal, incident)
    direction = incident

    if ti.abs(cosine) < GRAZING_COSINE_THRESHOLD:
        direction = incident
    elif cosine < 0.0:
        direction = refract(incident, normal, 1.0 / ior)
    else:
        direction = refract(incident, -normal, ior)

    if tm.length(direction) < TIR_LENGTH_THRESHOLD:
        direction = reflect(incident, -normal)

    return tm.normalize(direction)


@ti.func
def scatter_refractive(incident: vec3, normal: vec3, color: vec3, ior: ti.f32):
    """Sample a refractive bounce. Returns (direction, attenuation)."""
    return refract_direction(incident, normal, ior), color
