"""Unit tests for the SceneManager.

Tests cover:
- Material helpers and resolved kinds
- Primitive validation (material ids, radii, degenerate quads)
- Insertion order shared by spheres and quads
- Dict and JSON round trips, including the camera
"""

import json

import pytest


class TestMaterials:
    def test_helpers_resolve_kinds(self):
        from src.pathtracer.materials.registry import MaterialKind
        from src.pathtracer.scene.manager import SceneManager

        scene = SceneManager()
        diffuse = scene.add_diffuse_material((0.5, 0.5, 0.5))
        mirror = scene.add_reflective_material((0.9, 0.9, 0.9), specular_exponent=0.0)
        glass = scene.add_refractive_material(ior=1.5)
        light = scene.add_emissive_material((1.0, 1.0, 1.0), emittance=3.0)

        assert scene.get_material_count() == 4
        assert scene.get_material_kind(diffuse) == MaterialKind.DIFFUSE
        assert scene.get_material_kind(mirror) == MaterialKind.REFLECTIVE
        assert scene.get_material_kind(glass) == MaterialKind.REFRACTIVE
        assert scene.get_material_kind(light) == MaterialKind.EMISSIVE

    def test_emissive_requires_positive_emittance(self):
        from src.pathtracer.scene.manager import SceneManager

        scene = SceneManager()
        with pytest.raises(ValueError):
            scene.add_emissive_material((1.0, 1.0, 1.0), emittance=0.0)

    def test_new_manager_clears_previous_scene(self):
        from src.pathtracer.scene.manager import SceneManager

        first = SceneManager()
        mat = first.add_diffuse_material((0.5, 0.5, 0.5))
        first.add_sphere((0.0, 0.0, 0.0), 1.0, mat)

        second = SceneManager()
        assert second.get_material_count() == 0
        assert second.get_geom_count() == 0


class TestPrimitives:
    def test_invalid_material_id(self):
        from src.pathtracer.scene.manager import SceneManager

        scene = SceneManager()
        with pytest.raises(ValueError, match="Invalid material_id"):
            scene.add_sphere((0.0, 0.0, 0.0), 1.0, 0)

        mat = scene.add_diffuse_material((0.5, 0.5, 0.5))
        with pytest.raises(ValueError):
            scene.add_quad((0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (0.0, 1.0, 0.0), mat + 1)

    def test_non_positive_radius(self):
        from src.pathtracer.scene.manager import SceneManager

        scene = SceneManager()
        mat = scene.add_diffuse_material((0.5, 0.5, 0.5))
        with pytest.raises(ValueError):
            scene.add_sphere((0.0, 0.0, 0.0), 0.0, mat)

    def test_degenerate_quad(self):
        from src.pathtracer.scene.manager import SceneManager

        scene = SceneManager()
        mat = scene.add_diffuse_material((0.5, 0.5, 0.5))
        with pytest.raises(ValueError):
            scene.add_quad((0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (3.0, 0.0, 0.0), mat)
        assert scene.get_geom_count() == 0

    def test_geom_indices_shared_across_types(self):
        from src.pathtracer.scene.manager import SceneManager

        scene = SceneManager()
        mat = scene.add_diffuse_material((0.5, 0.5, 0.5))
        assert scene.add_sphere((0.0, 0.0, 0.0), 1.0, mat) == 0
        assert scene.add_quad((0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (0.0, 1.0, 0.0), mat) == 1
        assert scene.add_sphere((2.0, 0.0, 0.0), 1.0, mat) == 2
        assert scene.get_sphere_count() == 2
        assert scene.get_quad_count() == 1
        assert scene.get_geom_count() == 3


def _build_scene():
    from src.pathtracer.camera.camera import Camera
    from src.pathtracer.scene.manager import SceneManager

    scene = SceneManager()
    white = scene.add_diffuse_material((0.7, 0.7, 0.7))
    gloss = scene.add_reflective_material(
        (0.9, 0.9, 0.9), specular_exponent=40.0, specular_color=(0.8, 0.7, 0.6)
    )
    light = scene.add_emissive_material((1.0, 0.9, 0.8), emittance=12.0)
    scene.add_quad((0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (0.0, 0.0, 1.0), white)
    scene.add_sphere((0.5, 0.3, 0.5), 0.3, gloss)
    scene.add_quad((0.2, 1.0, 0.2), (0.6, 0.0, 0.0), (0.0, 0.0, 0.6), light)
    scene.camera = Camera(lookfrom=(0.5, 0.5, -2.0), lookat=(0.5, 0.5, 0.5), vfov=45.0)
    return scene


class TestSerialization:
    def test_dict_round_trip(self):
        from src.pathtracer.scene.manager import SceneManager

        data = _build_scene().to_dict()
        restored = SceneManager()
        restored.from_dict(data)

        assert restored.to_dict() == data
        assert [g["type"] for g in data["geoms"]] == ["quad", "sphere", "quad"]
        assert restored.camera is not None
        assert restored.camera.vfov == 45.0

    def test_dict_is_json_serializable(self):
        data = _build_scene().to_dict()
        assert json.loads(json.dumps(data)) == data

    def test_unknown_geom_type(self):
        from src.pathtracer.scene.manager import SceneManager

        scene = SceneManager()
        with pytest.raises(ValueError, match="Unknown geom type"):
            scene.from_dict({"materials": [{"color": [0.5, 0.5, 0.5]}], "geoms": [{"type": "cone"}]})

    def test_unknown_material_key(self):
        from src.pathtracer.scene.manager import SceneManager

        scene = SceneManager()
        with pytest.raises(ValueError):
            scene.from_dict({"materials": [{"color": [0.5, 0.5, 0.5], "roughness": 0.2}]})

    def test_file_round_trip(self, tmp_path):
        from src.pathtracer.scene.manager import load_scene_file, save_scene_file

        scene = _build_scene()
        expected = scene.to_dict()
        path = tmp_path / "scene.json"
        save_scene_file(scene, path)

        loaded = load_scene_file(path)
        assert loaded.to_dict() == expected
        assert loaded.get_geom_count() == 3

    def test_invalid_json_file(self, tmp_path):
        from src.pathtracer.scene.manager import load_scene_file

        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(ValueError):
            load_scene_file(path)

    def test_missing_file(self, tmp_path):
        from src.pathtracer.scene.manager import load_scene_file

        with pytest.raises(FileNotFoundError):
            load_scene_file(tmp_path / "missing.json")
