"""Scene manager coordinating materials and primitives.

The SceneManager is the host-side builder for everything the render kernels
read: it registers materials in the material table, appends spheres and
quads to the ordered geom list, validates material ids, and keeps a Python
record of the scene so it can be exported to and loaded from plain
dictionaries or JSON files.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.pathtracer.scene.manager import SceneManager
    >>> scene = SceneManager()
    >>> white = scene.add_diffuse_material(color=(0.8, 0.8, 0.8))
    >>> light = scene.add_emissive_material(color=(1.0, 1.0, 1.0), emittance=5.0)
    >>> scene.add_sphere((0.0, 0.0, -1.0), 0.5, white)
    0
"""

import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from src.pathtracer.camera.camera import Camera
from src.pathtracer.geometry.quad import quad_normal
from src.pathtracer.materials.registry import (
    MAX_MATERIALS,
    Material,
    MaterialKind,
    add_material,
    clear_materials,
    get_material_count,
)
from src.pathtracer.scene.intersection import (
    MAX_GEOMS,
    GeomType,
    add_quad,
    add_sphere,
    clear_geoms,
    get_geom_count,
)

logger = logging.getLogger(__name__)


@dataclass
class SphereInfo:
    """A sphere as recorded by the scene manager."""

    geom_index: int
    center: tuple[float, float, float]
    radius: float
    material_id: int


@dataclass
class QuadInfo:
    """A quad as recorded by the scene manager."""

    geom_index: int
    corner: tuple[float, float, float]
    edge_u: tuple[float, float, float]
    edge_v: tuple[float, float, float]
    material_id: int


@dataclass
class SceneConfig:
    """Serializable scene description.

    Attributes:
        materials: Material parameter dictionaries, in material id order.
        geoms: Primitive dictionaries in insertion order. Each has a
            ``type`` of "sphere" or "quad".
        camera: Optional camera parameters.
    """

    materials: list[dict[str, Any]] = field(default_factory=list)
    geoms: list[dict[str, Any]] = field(default_factory=list)
    camera: dict[str, Any] | None = None


def _vec(values: Any, name: str) -> tuple[float, float, float]:
    if len(values) != 3:
        raise ValueError(f"{name} must have 3 components, got {len(values)}")
    return (float(values[0]), float(values[1]), float(values[2]))


class SceneManager:
    """Builder for the material table and geom list.

    Creating a SceneManager clears the global scene state, since the
    kernels read a single material table and a single geom list.

    Attributes:
        materials: Registered materials, indexed by material id.
        spheres: Spheres in the scene.
        quads: Quads in the scene.
        camera: Camera loaded with the scene, if any.
    """

    def __init__(self) -> None:
        self.materials: list[Material] = []
        self.spheres: list[SphereInfo] = []
        self.quads: list[QuadInfo] = []
        self.camera: Camera | None = None
        self._geom_order: list[SphereInfo | QuadInfo] = []
        self._clear_all()

    def _clear_all(self) -> None:
        clear_geoms()
        clear_materials()
        self.materials.clear()
        self.spheres.clear()
        self.quads.clear()
        self._geom_order.clear()
        self.camera = None

    def clear(self) -> None:
        """Remove every material and primitive."""
        self._clear_all()

    # =========================================================================
    # Material Management
    # =========================================================================

    def add_material(self, material: Material) -> int:
        """Register a material and return its id.

        Raises:
            RuntimeError: If the maximum number of materials is exceeded.
        """
        material_id = add_material(material)
        self.materials.append(material)
        return material_id

    def add_diffuse_material(self, color: tuple[float, float, float]) -> int:
        """Register a Lambertian material with the given base color."""
        return self.add_material(Material(color=color))

    def add_reflective_material(
        self,
        color: tuple[float, float, float],
        specular_exponent: float = 0.0,
        specular_color: tuple[float, float, float] | None = None,
    ) -> int:
        """Register a reflective material.

        Args:
            color: Base color; used as the specular tint when
                ``specular_color`` is not given.
            specular_exponent: Phong exponent, 0 for a perfect mirror.
            specular_color: Optional separate reflection tint.

        Returns:
            The material id.
        """
        return self.add_material(
            Material(
                color=color,
                specular_color=specular_color,
                specular_exponent=specular_exponent,
                reflective=1.0,
            )
        )

    def add_refractive_material(
        self,
        ior: float,
        color: tuple[float, float, float] = (1.0, 1.0, 1.0),
    ) -> int:
        """Register a refractive (glass-like) material."""
        return self.add_material(Material(color=color, refractive=1.0, ior=ior))

    def add_emissive_material(self, color: tuple[float, float, float], emittance: float) -> int:
        """Register a light source material.

        Raises:
            ValueError: If emittance is not positive.
        """
        if emittance <= 0.0:
            raise ValueError(f"Emittance = {emittance} must be positive for a light")
        return self.add_material(Material(color=color, emittance=emittance))

    def get_material_count(self) -> int:
        return get_material_count()

    def get_material_kind(self, material_id: int) -> MaterialKind:
        """Return the resolved kind of a registered material.

        Raises:
            ValueError: If material_id is invalid.
        """
        self._check_material_id(material_id)
        return self.materials[material_id].kind

    def _check_material_id(self, material_id: int) -> None:
        if material_id < 0 or material_id >= get_material_count():
            raise ValueError(f"Invalid material_id: {material_id}")

    # =========================================================================
    # Primitive Management
    # =========================================================================

    def add_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        material_id: int,
    ) -> int:
        """Add a sphere to the scene.

        Args:
            center: Sphere center (x, y, z).
            radius: Sphere radius, positive.
            material_id: Id returned by one of the add_*_material methods.

        Returns:
            The geom index of the sphere.

        Raises:
            ValueError: If the radius is not positive or material_id is invalid.
            RuntimeError: If the maximum number of geoms is exceeded.
        """
        if radius <= 0.0:
            raise ValueError(f"Sphere radius = {radius} must be positive")
        self._check_material_id(material_id)

        geom_index = add_sphere(center, radius, material_id)
        info = SphereInfo(
            geom_index=geom_index,
            center=tuple(center),
            radius=radius,
            material_id=material_id,
        )
        self.spheres.append(info)
        self._geom_order.append(info)
        return geom_index

    def add_quad(
        self,
        corner: tuple[float, float, float],
        edge_u: tuple[float, float, float],
        edge_v: tuple[float, float, float],
        material_id: int,
    ) -> int:
        """Add a quad (parallelogram) to the scene.

        The front face is the side ``cross(edge_u, edge_v)`` points to.

        Returns:
            The geom index of the quad.

        Raises:
            ValueError: If the edges are parallel or material_id is invalid.
            RuntimeError: If the maximum number of geoms is exceeded.
        """
        quad_normal(edge_u, edge_v)
        self._check_material_id(material_id)

        geom_index = add_quad(corner, edge_u, edge_v, material_id)
        info = QuadInfo(
            geom_index=geom_index,
            corner=tuple(corner),
            edge_u=tuple(edge_u),
            edge_v=tuple(edge_v),
            material_id=material_id,
        )
        self.quads.append(info)
        self._geom_order.append(info)
        return geom_index

    def get_sphere_count(self) -> int:
        return len(self.spheres)

    def get_quad_count(self) -> int:
        return len(self.quads)

    def get_geom_count(self) -> int:
        """Get the total number of primitives in the scene."""
        return get_geom_count()

    # =========================================================================
    # Scene Serialization
    # =========================================================================

    def to_config(self) -> SceneConfig:
        """Export the scene to a configuration object."""
        config = SceneConfig()

        for material in self.materials:
            mat_config = asdict(material)
            mat_config["color"] = list(material.color)
            if material.specular_color is not None:
                mat_config["specular_color"] = list(material.specular_color)
            config.materials.append(mat_config)

        for geom in self._geom_order:
            if isinstance(geom, SphereInfo):
                config.geoms.append(
                    {
                        "type": GeomType.SPHERE.name.lower(),
                        "center": list(geom.center),
                        "radius": geom.radius,
                        "material_id": geom.material_id,
                    }
                )
            else:
                config.geoms.append(
                    {
                        "type": GeomType.QUAD.name.lower(),
                        "corner": list(geom.corner),
                        "edge_u": list(geom.edge_u),
                        "edge_v": list(geom.edge_v),
                        "material_id": geom.material_id,
                    }
                )

        if self.camera is not None:
            config.camera = self.camera.to_dict()

        return config

    def from_config(self, config: SceneConfig) -> None:
        """Replace the current scene with a configuration.

        Raises:
            ValueError: If the configuration contains invalid data.
        """
        self.clear()

        for mat_config in config.materials:
            params = dict(mat_config)
            params["color"] = _vec(params.get("color", (0.5, 0.5, 0.5)), "color")
            if params.get("specular_color") is not None:
                params["specular_color"] = _vec(params["specular_color"], "specular_color")
            try:
                material = Material(**params)
            except TypeError as e:
                raise ValueError(f"Invalid material entry {mat_config}: {e}") from e
            self.add_material(material)

        for geom_config in config.geoms:
            geom_type = str(geom_config.get("type", "")).lower()
            material_id = geom_config.get("material_id", 0)
            if geom_type == "sphere":
                self.add_sphere(
                    _vec(geom_config.get("center", (0.0, 0.0, 0.0)), "center"),
                    float(geom_config.get("radius", 1.0)),
                    material_id,
                )
            elif geom_type == "quad":
                self.add_quad(
                    _vec(geom_config.get("corner", (0.0, 0.0, 0.0)), "corner"),
                    _vec(geom_config.get("edge_u", (1.0, 0.0, 0.0)), "edge_u"),
                    _vec(geom_config.get("edge_v", (0.0, 1.0, 0.0)), "edge_v"),
                    material_id,
                )
            else:
                raise ValueError(f"Unknown geom type: {geom_type!r}")

        if config.camera is not None:
            self.camera = Camera.from_dict(config.camera)

    def to_dict(self) -> dict[str, Any]:
        """Export the scene to a JSON-serializable dictionary."""
        config = self.to_config()
        data: dict[str, Any] = {"materials": config.materials, "geoms": config.geoms}
        if config.camera is not None:
            data["camera"] = config.camera
        return data

    def from_dict(self, data: dict[str, Any]) -> None:
        """Load a scene from a dictionary with 'materials', 'geoms' and 'camera' keys."""
        config = SceneConfig(
            materials=data.get("materials", []),
            geoms=data.get("geoms", []),
            camera=data.get("camera"),
        )
        self.from_config(config)

    # =========================================================================
    # Capacity Information
    # =========================================================================

    @staticmethod
    def get_max_geoms() -> int:
        return MAX_GEOMS

    @staticmethod
    def get_max_materials() -> int:
        return MAX_MATERIALS


def load_scene_file(path: str | Path) -> SceneManager:
    """Build a scene from a JSON file.

    Args:
        path: Path to a JSON document in the ``SceneManager.to_dict`` format.

    Returns:
        The populated SceneManager. Its ``camera`` attribute holds the
        file's camera, if it defines one.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not valid JSON or describes an invalid scene.
    """
    path = Path(path)
    logger.info("Loading scene from %s", path)
    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as e:
        raise ValueError(f"Scene file {path} is not valid JSON: {e}") from e

    scene = SceneManager()
    scene.from_dict(data)
    logger.info(
        "Loaded %d materials and %d geoms from %s",
        scene.get_material_count(),
        scene.get_geom_count(),
        path,
    )
    return scene


def save_scene_file(scene: SceneManager, path: str | Path) -> None:
    """Write a scene to a JSON file."""
    path = Path(path)
    path.write_text(json.dumps(scene.to_dict(), indent=2))
    logger.info("Saved scene to %s", path)
