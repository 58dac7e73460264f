#!/usr/bin/env python3
"""Render the showcase sphere scene.

This script builds the showcase scene (random spheres on a mirror floor next
to a polygon sail), renders it with the parallel path tracer, and writes the
result as a plain-text PPM image.

Usage:
    python -m examples.render_spheres [options] > image.ppm

Options:
    --width WIDTH           Image width in pixels (default: 400)
    --samples SAMPLES       Samples per pixel (default: 20)
    --max-depth DEPTH       Maximum ray bounces (default: 10)
    --workers N             Render workers, clamped to [1, 128] (default: 8)
    --defocus-angle DEG     Depth-of-field cone angle (default: 0, disabled)
    --seed SEED             Seed for the random sphere layout (default: 7)
    --no-random-spheres     Only render the floor, sail and large spheres
    --output OUTPUT         PPM output path (default: stdout)
    --png PNG               Also save a PNG copy
    --arch {cpu,gpu}        Taichi backend (default: cpu)
    --quiet                 Only log warnings and errors

Example:
    python -m examples.render_spheres --width 320 --samples 10 --output spheres.ppm
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace

import taichi as ti

logger = logging.getLogger("render_spheres")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render the showcase sphere scene to a PPM image.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--width", type=int, default=400, help="Image width in pixels (default: 400)"
    )
    parser.add_argument("--samples", type=int, default=20, help="Samples per pixel (default: 20)")
    parser.add_argument(
        "--max-depth", type=int, default=10, help="Maximum ray bounces (default: 10)"
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=8,
        help="Render workers, clamped to [1, 128] (default: 8)",
    )
    parser.add_argument(
        "--defocus-angle",
        type=float,
        default=0.0,
        help="Depth-of-field cone angle in degrees (default: 0, disabled)",
    )
    parser.add_argument(
        "--seed", type=int, default=7, help="Random sphere layout seed (default: 7)"
    )
    parser.add_argument(
        "--no-random-spheres",
        action="store_true",
        help="Only render the floor, sail and large spheres",
    )
    parser.add_argument(
        "--output", type=str, default=None, help="PPM output path (default: stdout)"
    )
    parser.add_argument("--png", type=str, default=None, help="Also save a PNG copy to this path")
    parser.add_argument(
        "--arch",
        choices=("cpu", "gpu"),
        default="cpu",
        help="Taichi backend (default: cpu)",
    )
    parser.add_argument("--quiet", action="store_true", help="Only log warnings and errors")
    return parser.parse_args(argv)


def render_spheres(args: argparse.Namespace) -> None:
    """Build the scene, render it and write the requested outputs."""
    # Lazy imports so Taichi is initialized before fields are created
    from src.pathtracer.camera.camera import Camera
    from src.pathtracer.core.render import Renderer
    from src.pathtracer.scene.demo import create_demo_scene

    _scene, config = create_demo_scene(seed=args.seed, random_spheres=not args.no_random_spheres)
    config = replace(
        config,
        image_width=args.width,
        samples_per_pixel=args.samples,
        max_depth=args.max_depth,
        worker_count=args.workers,
        defocus_angle=args.defocus_angle,
    )

    camera = Camera(config)
    camera.initialize()

    renderer = Renderer(camera)
    renderer.render()

    if args.output is None:
        renderer.write_ppm(sys.stdout)
        sys.stdout.flush()
    else:
        renderer.save_ppm(args.output)

    if args.png is not None:
        renderer.save_png(args.png)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    # Progress goes to stderr so the PPM stream on stdout stays clean
    logging.basicConfig(
        level=logging.WARNING if args.quiet else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    arch = ti.gpu if args.arch == "gpu" else ti.cpu
    threads = min(max(args.workers, 1), 128)
    ti.init(arch=arch, cpu_max_num_threads=threads, random_seed=args.seed)

    try:
        render_spheres(args)
        return 0
    except (ValueError, RuntimeError, OSError) as e:
        logger.error("Render failed: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
