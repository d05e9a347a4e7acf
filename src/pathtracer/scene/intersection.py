"""Scene-level primitive storage and nearest-hit queries.

All primitives live in one ordered geom list, so spheres and quads share a
single insertion order. ``intersect_scene`` walks that list and keeps the
hit with the smallest ``t``; a strictly-smaller comparison means equal
distances resolve to the primitive added first.

The storage is Structure-of-Arrays Taichi fields. Each geom is described by
a type tag and three vectors whose meaning depends on the type:

    SPHERE: p0 = center, radius = radius
    QUAD:   p0 = corner, u = first edge, v = second edge

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.pathtracer.scene.intersection import add_sphere, add_quad, clear_geoms
    >>> clear_geoms()
    >>> add_sphere((0.0, 0.0, -1.0), 0.5, material_id=0)
    0
    >>> add_quad((-1.0, -0.5, -2.0), (2.0, 0.0, 0.0), (0.0, 1.0, 0.0), material_id=1)
    1
"""

from enum import IntEnum

import taichi as ti

from src.pathtracer.core.ray import vec3
from src.pathtracer.geometry.quad import hit_quad
from src.pathtracer.geometry.sphere import MISS_T, hit_sphere


class GeomType(IntEnum):
    """Primitive shapes understood by the intersection stage."""

    SPHERE = 0
    QUAD = 1


@ti.dataclass
class ShadeableIntersection:
    """Nearest hit of one path for the current bounce.

    Attributes:
        t: Hit distance along the ray; negative means the ray missed.
        surface_normal: Geometric outward normal at the hit (unit length).
        material_id: Material of the hit primitive, -1 on a miss.
    """

    t: ti.f32
    surface_normal: vec3
    material_id: ti.i32


# Maximum number of primitives in the scene
MAX_GEOMS = 2048

geom_types = ti.field(dtype=ti.i32, shape=MAX_GEOMS)
geom_p0 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_GEOMS)
geom_u = ti.Vector.field(3, dtype=ti.f32, shape=MAX_GEOMS)
geom_v = ti.Vector.field(3, dtype=ti.f32, shape=MAX_GEOMS)
geom_radius = ti.field(dtype=ti.f32, shape=MAX_GEOMS)
geom_material = ti.field(dtype=ti.i32, shape=MAX_GEOMS)
num_geoms = ti.field(dtype=ti.i32, shape=())


def clear_geoms() -> None:
    """Remove every primitive from the scene.

    Only the count is reset; stale field entries are overwritten by later
    additions.
    """
    num_geoms[None] = 0


def _next_geom_index() -> int:
    idx = num_geoms[None]
    if idx >= MAX_GEOMS:
        raise RuntimeError(f"Maximum number of geoms ({MAX_GEOMS}) exceeded")
    return idx


def add_sphere(
    center: tuple[float, float, float],
    radius: float,
    material_id: int = 0,
) -> int:
    """Append a sphere to the geom list.

    Args:
        center: Sphere center (x, y, z).
        radius: Sphere radius.
        material_id: Index into the material table.

    Returns:
        The geom index of the sphere.

    Raises:
        RuntimeError: If the maximum number of geoms is exceeded.
    """
    idx = _next_geom_index()
    geom_types[idx] = int(GeomType.SPHERE)
    geom_p0[idx] = vec3(center[0], center[1], center[2])
    geom_u[idx] = vec3(0.0, 0.0, 0.0)
    geom_v[idx] = vec3(0.0, 0.0, 0.0)
    geom_radius[idx] = radius
    geom_material[idx] = material_id
    num_geoms[None] = idx + 1
    return idx


def add_quad(
    corner: tuple[float, float, float],
    edge_u: tuple[float, float, float],
    edge_v: tuple[float, float, float],
    material_id: int = 0,
) -> int:
    """Append a quad with vertices Q, Q+u, Q+v, Q+u+v to the geom list.

    Returns:
        The geom index of the quad.

    Raises:
        RuntimeError: If the maximum number of geoms is exceeded.
    """
    idx = _next_geom_index()
    geom_types[idx] = int(GeomType.QUAD)
    geom_p0[idx] = vec3(corner[0], corner[1], corner[2])
    geom_u[idx] = vec3(edge_u[0], edge_u[1], edge_u[2])
    geom_v[idx] = vec3(edge_v[0], edge_v[1], edge_v[2])
    geom_radius[idx] = 0.0
    geom_material[idx] = material_id
    num_geoms[None] = idx + 1
    return idx


def get_geom_count() -> int:
    """Get the number of primitives in the scene."""
    return int(num_geoms[None])


@ti.func
def _hit_geom(i: ti.i32, ray_origin: vec3, ray_direction: vec3, t_min: ti.f32, t_max: ti.f32):
    t = MISS_T
    normal = vec3(0.0, 0.0, 0.0)
    if geom_types[i] == int(GeomType.SPHERE):
        t, normal = hit_sphere(ray_origin, ray_direction, geom_p0[i], geom_radius[i], t_min, t_max)
    else:
        t, normal = hit_quad(
            ray_origin, ray_direction, geom_p0[i], geom_u[i], geom_v[i], t_min, t_max
        )
    return t, normal


@ti.func
def intersect_scene(
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> ShadeableIntersection:
    """Find the nearest primitive hit along a ray.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction of the ray (unit).
        t_min: Hits at or below this distance are ignored.
        t_max: Hits at or beyond this distance are ignored.

    Returns:
        The nearest intersection, or one with ``t = -1`` and
        ``material_id = -1`` when nothing is hit.
    """
    closest_t = t_max
    result = ShadeableIntersection(t=MISS_T, surface_normal=vec3(0.0, 0.0, 0.0), material_id=-1)

    for i in range(num_geoms[None]):
        t, normal = _hit_geom(i, ray_origin, ray_direction, t_min, closest_t)
        if t > t_min and t < closest_t:
            closest_t = t
            result = ShadeableIntersection(t=t, surface_normal=normal, material_id=geom_material[i])

    return result
