"""Materials module: the material table and scattering functions.

Components:
    registry: Material description, kind resolution and Taichi field storage
    diffuse: Cosine-weighted hemisphere sampling (Lambertian)
    reflective: Perfect mirror and Phong-lobe glossy reflection
    refractive: Refraction with grazing and total-internal-reflection fallbacks
    scatter: Exclusive dispatch on the material kind

All scattering code is written as Taichi functions and takes its random
numbers from an explicit sampler state passed in by the caller.
"""

from .diffuse import calculate_random_direction_in_hemisphere, scatter_diffuse
from .reflective import sample_phong_lobe, scatter_reflective
from .refractive import refract_direction, scatter_refractive
from .registry import (
    MAX_MATERIALS,
    Material,
    MaterialKind,
    MaterialRecord,
    add_material,
    clear_materials,
    emitted_radiance,
    get_material,
    get_material_count,
    get_material_kind,
)
from .scatter import scatter_ray

__all__ = [
    # Registry
    "Material",
    "MaterialKind",
    "MaterialRecord",
    "MAX_MATERIALS",
    "add_material",
    "clear_materials",
    "get_material",
    "get_material_count",
    "get_material_kind",
    "emitted_radiance",
    # Scattering
    "calculate_random_direction_in_hemisphere",
    "scatter_diffuse",
    "sample_phong_lobe",
    "scatter_reflective",
    "refract_direction",
    "scatter_refractive",
    "scatter_ray",
]
