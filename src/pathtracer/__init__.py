"""Brute-force Monte Carlo path tracer built on Taichi.

This package renders scenes of spheres and triangles with Lambertian, metal
and dielectric surfaces through a thin-lens camera, with support for:
- Depth-bounded path tracing with a sky gradient background
- Jittered anti-aliasing and defocus blur
- Statically partitioned parallel rendering across a worker pool
- Gamma 2 finalization and plain-text PPM output (PNG optional)

Subpackages:
    core: Ray utilities, path integrator, and parallel render driver
    geometry: Shape primitives and intersection algorithms
    materials: Scattering material models and their registries
    scene: Primitive storage, scene manager, and the showcase scene
    camera: Thin-lens camera with ray generation
    preview: Frame finalization, image export, and Matplotlib preview
"""

__version__ = "0.1.0"
