"""Showcase scene: spheres on a mirror floor next to a polygon sail.

The scene consists of:
- A ground plane at y = -0.2 built from two huge metal triangles
  (dark brushed metal and polished gold)
- A "sail": a tilted quadrilateral split into four mirror-metal triangles
  (green, blue, grey, red) meeting at its center
- An optional 22x22 grid of small random spheres (diffuse, metal, glass)
- Three large spheres: blue-grey metal, copper metal, glass

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.pathtracer.camera.camera import Camera
    >>> from src.pathtracer.scene.demo import create_demo_scene
    >>>
    >>> scene, config = create_demo_scene(seed=7)
    >>> camera = Camera(config)
    >>> camera.initialize()
"""

import logging
import math

import numpy as np

from src.pathtracer.camera.camera import CameraConfig
from src.pathtracer.scene.manager import SceneManager

logger = logging.getLogger(__name__)

# =============================================================================
# Scene Parameters
# =============================================================================

GROUND_Y = -0.2
GROUND_HALF_EXTENT = 10000.0

SAIL_CORNERS = (
    (2.7, -0.2, -1.7),
    (4.7, -0.2, -1.7),
    (4.7, 2.2, -2.2),
    (2.5, 2.2, -2.2),
)
SAIL_COLORS = (
    (0.2, 1.0, 0.2),
    (0.2, 0.2, 1.0),
    (0.8, 0.8, 0.8),
    (1.0, 0.2, 0.2),
)

# Small spheres are placed on a jittered grid over [-11, 11) x [-11, 11)
GRID_HALF_SIZE = 11
SMALL_RADIUS = 0.2
# Small spheres too close to the glass sphere are skipped
CLEARANCE_POINT = (4.0, 0.2, 0.0)
CLEARANCE = 0.9


def _add_ground(scene: SceneManager) -> None:
    dark = scene.add_metal_material((0.1, 0.1, 0.1), fuzz=0.1)
    gold = scene.add_metal_material((0.9, 0.7, 0.2), fuzz=0.0)

    e = GROUND_HALF_EXTENT
    c0 = (-e, GROUND_Y, -e)
    c1 = (-e, GROUND_Y, e)
    c2 = (e, GROUND_Y, e)
    c3 = (e, GROUND_Y, -e)

    scene.add_triangle(c0, c1, c3, dark)
    scene.add_triangle(c2, c1, c3, gold)


def _add_sail(scene: SceneManager) -> None:
    center = tuple(sum(c[k] for c in SAIL_CORNERS) / 4.0 for k in range(3))

    for q, color in enumerate(SAIL_COLORS):
        mat = scene.add_metal_material(color, fuzz=0.0)
        a = SAIL_CORNERS[q]
        b = SAIL_CORNERS[(q + 1) % 4]
        scene.add_triangle(a, b, center, mat)


def _add_random_spheres(scene: SceneManager, rng: np.random.Generator) -> int:
    """Scatter small random spheres over the grid; returns how many were added."""
    glass = scene.add_dielectric_material(1.5)
    added = 0

    for a in range(-GRID_HALF_SIZE, GRID_HALF_SIZE):
        for b in range(-GRID_HALF_SIZE, GRID_HALF_SIZE):
            choose_mat = rng.random()
            center = (a + 0.9 * rng.random(), SMALL_RADIUS, b + 0.9 * rng.random())

            if math.dist(center, CLEARANCE_POINT) <= CLEARANCE:
                continue

            if choose_mat < 0.5:
                # diffuse
                albedo = rng.random(3) * rng.random(3)
                mat = scene.add_lambertian_material(tuple(float(x) for x in albedo))
            elif choose_mat < 0.7:
                # metal
                albedo = rng.uniform(0.5, 1.0, 3)
                fuzz = float(rng.uniform(0.0, 0.5))
                mat = scene.add_metal_material(tuple(float(x) for x in albedo), fuzz)
            else:
                mat = glass

            scene.add_sphere(center, SMALL_RADIUS, mat)
            added += 1

    return added


def _add_large_spheres(scene: SceneManager) -> None:
    steel = scene.add_metal_material((0.2, 0.5, 0.6), fuzz=0.0)
    scene.add_sphere((-4.0, 1.0, 0.0), 1.0, steel)

    copper = scene.add_metal_material((0.9, 0.7, 0.6), fuzz=0.0)
    scene.add_sphere((0.0, 1.0, 0.0), 1.0, copper)

    glass = scene.add_dielectric_material(1.5)
    scene.add_sphere((4.0, 1.0, 0.0), 1.0, glass)


def create_demo_camera_config() -> CameraConfig:
    """Camera framing the showcase scene (16:10, narrow field of view)."""
    return CameraConfig(
        aspect_ratio=16.0 / 10.0,
        image_width=1920,
        samples_per_pixel=500,
        max_depth=50,
        vfov=25.0,
        lookfrom=(13.0, 2.0, 3.0),
        lookat=(0.0, 0.0, 0.0),
        vup=(0.0, 1.0, 0.0),
        defocus_angle=0.0,
        focus_dist=10.0,
    )


def create_demo_scene(
    seed: int | None = None,
    random_spheres: bool = True,
) -> tuple[SceneManager, CameraConfig]:
    """Create the showcase scene and its camera configuration.

    Args:
        seed: Seed for the random sphere layout (None for a fresh layout).
        random_spheres: Whether to add the grid of small random spheres.

    Returns:
        Tuple of (SceneManager, CameraConfig). The camera configuration uses
        the full-quality settings (1920 px, 500 spp, depth 50); callers
        usually lower them for previews.
    """
    scene = SceneManager()

    _add_ground(scene)
    _add_sail(scene)

    if random_spheres:
        count = _add_random_spheres(scene, np.random.default_rng(seed))
        logger.debug("Added %d random spheres", count)

    _add_large_spheres(scene)

    logger.info(
        "Demo scene: %d spheres, %d triangles, %d materials",
        scene.get_sphere_count(),
        scene.get_triangle_count(),
        scene.get_material_count(),
    )

    return scene, create_demo_camera_config()
