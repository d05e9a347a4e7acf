"""Cornell box test scene.

An open-front box of five diffuse walls (red left, green right, white back,
floor and ceiling), an emissive quad just below the ceiling, a perfect
mirror sphere and a glass sphere. The box spans 0..box_size on every axis
and the camera looks down +Z through the open front.

Example:
    >>> scene, camera = create_cornell_box_scene()
    >>> scene.get_quad_count(), scene.get_sphere_count()
    (6, 2)
"""

from dataclasses import dataclass

from src.pathtracer.camera.camera import Camera
from src.pathtracer.scene.manager import SceneManager

BOX_SIZE = 555.0

# Ceiling light footprint, in box units
LIGHT_WIDTH = 130.0
LIGHT_DEPTH = 105.0

SPHERE_RADIUS = 90.0
GLASS_IOR = 1.5


@dataclass
class CornellBoxParams:
    """Tunable parameters of the Cornell box.

    Attributes:
        light_emittance: Emittance of the ceiling light.
        light_color: Color of the ceiling light.
        left_wall_color: Color of the wall at x = 0.
        right_wall_color: Color of the wall at x = box_size.
        white_color: Color of back wall, floor and ceiling.
        mirror_exponent: Phong exponent of the reflective sphere (0 = mirror).
    """

    light_emittance: float = 15.0
    light_color: tuple[float, float, float] = (1.0, 1.0, 1.0)
    left_wall_color: tuple[float, float, float] = (0.65, 0.05, 0.05)
    right_wall_color: tuple[float, float, float] = (0.12, 0.45, 0.15)
    white_color: tuple[float, float, float] = (0.73, 0.73, 0.73)
    mirror_exponent: float = 0.0


def create_cornell_box_scene(
    box_size: float = BOX_SIZE,
    params: CornellBoxParams | None = None,
    aspect_ratio: float = 1.0,
) -> tuple[SceneManager, Camera]:
    """Create the Cornell box scene and a camera looking into it.

    Args:
        box_size: Edge length of the box.
        params: Optional overrides for light and wall parameters.
        aspect_ratio: Aspect ratio of the returned camera.

    Returns:
        A tuple (scene, camera). The camera is also stored on ``scene.camera``.
    """
    if params is None:
        params = CornellBoxParams()

    scene = SceneManager()

    left_mat = scene.add_diffuse_material(params.left_wall_color)
    right_mat = scene.add_diffuse_material(params.right_wall_color)
    white_mat = scene.add_diffuse_material(params.white_color)
    light_mat = scene.add_emissive_material(params.light_color, params.light_emittance)
    mirror_mat = scene.add_reflective_material(
        color=(0.95, 0.95, 0.95), specular_exponent=params.mirror_exponent
    )
    glass_mat = scene.add_refractive_material(ior=GLASS_IOR)

    s = box_size

    # Walls, wound so cross(edge_u, edge_v) faces into the box
    scene.add_quad((0.0, 0.0, 0.0), (0.0, s, 0.0), (0.0, 0.0, s), left_mat)
    scene.add_quad((s, 0.0, s), (0.0, s, 0.0), (0.0, 0.0, -s), right_mat)
    scene.add_quad((0.0, 0.0, s), (0.0, s, 0.0), (s, 0.0, 0.0), white_mat)
    scene.add_quad((0.0, 0.0, 0.0), (0.0, 0.0, s), (s, 0.0, 0.0), white_mat)
    scene.add_quad((0.0, s, 0.0), (s, 0.0, 0.0), (0.0, 0.0, s), white_mat)

    # Light sits just below the ceiling, facing down
    light_x = (s - LIGHT_WIDTH) / 2.0
    light_z = (s - LIGHT_DEPTH) / 2.0
    scene.add_quad(
        (light_x, s - 1.0, light_z),
        (LIGHT_WIDTH, 0.0, 0.0),
        (0.0, 0.0, LIGHT_DEPTH),
        light_mat,
    )

    scene.add_sphere((s * 0.3, SPHERE_RADIUS, s * 0.6), SPHERE_RADIUS, mirror_mat)
    scene.add_sphere((s * 0.7, SPHERE_RADIUS, s * 0.35), SPHERE_RADIUS, glass_mat)

    camera = Camera(
        lookfrom=(s / 2.0, s / 2.0, -800.0),
        lookat=(s / 2.0, s / 2.0, s / 2.0),
        vup=(0.0, 1.0, 0.0),
        vfov=40.0,
        aspect_ratio=aspect_ratio,
    )
    scene.camera = camera

    return scene, camera
