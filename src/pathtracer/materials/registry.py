"""Material table shared by every pipeline stage.

A material is described by the full parameter set (base color, specular
color and exponent, reflective and refractive weights, index of refraction,
emittance) but renders as exactly one ``MaterialKind``. The kind is resolved
once, on the host, when the material is registered:

    emittance > 0   -> EMISSIVE
    reflective > 0  -> REFLECTIVE
    refractive > 0  -> REFRACTIVE
    otherwise       -> DIFFUSE

Kernels only ever branch on the stored kind, so reflective and refractive
behavior are never blended within a single bounce.

Example:
    >>> from src.pathtracer.materials.registry import Material, add_material
    >>> mirror_id = add_material(Material(color=(0.9, 0.9, 0.9), reflective=1.0))
"""

from dataclasses import dataclass
from enum import IntEnum

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors
vec3 = tm.vec3


class MaterialKind(IntEnum):
    """Closed set of scattering behaviors, one per material."""

    DIFFUSE = 0
    REFLECTIVE = 1
    REFRACTIVE = 2
    EMISSIVE = 3


@dataclass
class Material:
    """Host-side description of a material.

    Attributes:
        color: Base (diffuse) color, each channel in [0, 1]. Also the
            transmission tint of refractive materials and the emitted color
            of lights.
        specular_color: Tint applied by reflective bounces. Defaults to
            ``color`` when None.
        specular_exponent: Phong lobe exponent for reflective materials.
            0 means a perfect mirror.
        reflective: Reflective weight; any positive value selects the
            reflective branch.
        refractive: Refractive weight; any positive value selects the
            refractive branch (when not reflective).
        ior: Index of refraction (>= 1).
        emittance: Emitted radiance scale; any positive value makes the
            material a light source.
    """

    color: tuple[float, float, float] = (0.5, 0.5, 0.5)
    specular_color: tuple[float, float, float] | None = None
    specular_exponent: float = 0.0
    reflective: float = 0.0
    refractive: float = 0.0
    ior: float = 1.0
    emittance: float = 0.0

    def __post_init__(self) -> None:
        _check_color("color", self.color)
        if self.specular_color is not None:
            _check_color("specular_color", self.specular_color)
        if self.specular_exponent < 0.0:
            raise ValueError(
                f"Specular exponent = {self.specular_exponent} is negative. "
                "Use 0 for a perfect mirror."
            )
        if self.reflective < 0.0 or self.refractive < 0.0:
            raise ValueError(
                f"Reflective ({self.reflective}) and refractive ({self.refractive}) "
                "weights must be non-negative."
            )
        if self.ior < 1.0:
            raise ValueError(
                f"Index of refraction = {self.ior} is less than 1.0. "
                "IOR must be >= 1.0 for physically meaningful materials."
            )
        if self.emittance < 0.0:
            raise ValueError(f"Emittance = {self.emittance} must be non-negative.")

    @property
    def kind(self) -> MaterialKind:
        """The scattering behavior this material renders with."""
        if self.emittance > 0.0:
            return MaterialKind.EMISSIVE
        if self.reflective > 0.0:
            return MaterialKind.REFLECTIVE
        if self.refractive > 0.0:
            return MaterialKind.REFRACTIVE
        return MaterialKind.DIFFUSE

    def resolved_specular_color(self) -> tuple[float, float, float]:
        """Return the specular tint, falling back to the base color."""
        if self.specular_color is None:
            return self.color
        return self.specular_color


def _check_color(name: str, color: tuple[float, float, float]) -> None:
    if len(color) != 3:
        raise ValueError(f"{name} must have 3 components, got {len(color)}")
    for i, component in enumerate(color):
        if component < 0.0 or component > 1.0:
            raise ValueError(
                f"{name} component {i} = {component} is outside [0, 1]. "
                "This would violate energy conservation."
            )


@ti.dataclass
class MaterialRecord:
    """Kernel-side view of one material table entry."""

    kind: ti.i32
    color: vec3
    specular_color: vec3
    specular_exponent: ti.f32
    ior: ti.f32
    emittance: ti.f32


# =============================================================================
# Material Field Storage
# =============================================================================

# Maximum number of materials in the scene
MAX_MATERIALS = 256

material_kinds = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
material_colors = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MATERIALS)
material_specular_colors = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MATERIALS)
material_specular_exponents = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_iors = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_emittances = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def clear_materials() -> None:
    """Reset the material count to zero.

    Field contents are left in place and overwritten by later registrations.
    """
    num_materials[None] = 0


def add_material(material: Material) -> int:
    """Register a material and return its index in the table.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
    """
    idx = num_materials[None]
    if idx >= MAX_MATERIALS:
        raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")

    specular = material.resolved_specular_color()
    material_kinds[idx] = int(material.kind)
    material_colors[idx] = vec3(material.color[0], material.color[1], material.color[2])
    material_specular_colors[idx] = vec3(specular[0], specular[1], specular[2])
    material_specular_exponents[idx] = material.specular_exponent
    material_iors[idx] = material.ior
    material_emittances[idx] = material.emittance
    num_materials[None] = idx + 1
    return idx


def get_material_count() -> int:
    """Get the number of registered materials."""
    return int(num_materials[None])


@ti.func
def get_material(material_id: ti.i32) -> MaterialRecord:
    """Load a material table entry. The id is assumed valid."""
    return MaterialRecord(
        kind=material_kinds[material_id],
        color=material_colors[material_id],
        specular_color=material_specular_colors[material_id],
        specular_exponent=material_specular_exponents[material_id],
        ior=material_iors[material_id],
        emittance=material_emittances[material_id],
    )


@ti.func
def get_material_kind(material_id: ti.i32) -> ti.i32:
    return material_kinds[material_id]


@ti.func
def emitted_radiance(material: MaterialRecord) -> vec3:
    """Radiance emitted by a light material: color scaled by emittance."""
    return material.color * material.emittance
