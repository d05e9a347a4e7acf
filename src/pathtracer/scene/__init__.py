"""Scene module: primitive storage, scene building and test scenes.

Components:
    intersection: Ordered geom list and the nearest-hit query
    manager: SceneManager builder with dict/JSON round trip
    cornell_box: Cornell box factory
"""

from .cornell_box import CornellBoxParams, create_cornell_box_scene
from .intersection import (
    MAX_GEOMS,
    GeomType,
    ShadeableIntersection,
    add_quad,
    add_sphere,
    clear_geoms,
    get_geom_count,
    intersect_scene,
)
from .manager import SceneConfig, SceneManager, load_scene_file, save_scene_file

__all__ = [
    # Intersection
    "GeomType",
    "ShadeableIntersection",
    "MAX_GEOMS",
    "add_sphere",
    "add_quad",
    "clear_geoms",
    "get_geom_count",
    "intersect_scene",
    # Manager
    "SceneConfig",
    "SceneManager",
    "load_scene_file",
    "save_scene_file",
    # Scenes
    "CornellBoxParams",
    "create_cornell_box_scene",
]
