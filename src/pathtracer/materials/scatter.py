"""Material dispatch for the scatter stage.

``scatter_ray`` takes one path's ray, its intersection and the hit material,
and produces the next ray plus the throughput factor for the bounce. The
branch is selected by the material's resolved kind (reflective, then
refractive, then diffuse); emissive materials terminate paths and never reach
this function.
"""

import taichi as ti

from src.pathtracer.core.ray import vec3
from src.pathtracer.materials.diffuse import scatter_diffuse
from src.pathtracer.materials.reflective import scatter_reflective
from src.pathtracer.materials.refractive import scatter_refractive
from src.pathtracer.materials.registry import MaterialKind, MaterialRecord


@ti.func
def scatter_ray(
    origin: vec3,
    direction: vec3,
    t: ti.f32,
    normal: vec3,
    material: MaterialRecord,
    state: ti.u32,
    ray_epsilon: ti.f32,
):
    """Scatter one path at its intersection.

    Args:
        origin: Current ray origin.
        direction: Current ray direction (unit).
        t: Hit distance along the ray.
        normal: Outward surface normal at the hit.
        material: The hit material.
        state: Sampler state for this path and bounce.
        ray_epsilon: Offset along the new direction applied to the new origin.

    Returns:
        A tuple (new_origin, new_direction, attenuation, absorbed, new_state).
    """
    s = state
    new_direction = direction
    attenuation = vec3(1.0, 1.0, 1.0)
    absorbed = 0

    if material.kind == int(MaterialKind.REFLECTIVE):
        new_direction, attenuation, absorbed, s = scatter_reflective(
            direction, normal, material.specular_color, material.specular_exponent, s
        )
    elif material.kind == int(MaterialKind.REFRACTIVE):
        new_direction, attenuation = scatter_refractive(
            direction, normal, material.color, material.ior
        )
    else:
        new_direction, attenuation, s = scatter_diffuse(direction, normal, material.color, s)

    hit_point = origin + direction * t
    new_origin = hit_point + new_direction * ray_epsilon

    return new_origin, new_direction, attenuation, absorbed, s
