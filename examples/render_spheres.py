#!/usr/bin/env python3
"""Render a preset sphere scene to a PPM or PNG file.

Settings come from the RenderConfig defaults, then MARBLES_* environment
variables, then an optional JSON config file, then the command line.

Usage:
    python examples/render_spheres.py [options]

Options:
    --scene NAME        Preset scene (default: random_marbles)
    --width WIDTH       Image width in pixels (default: 400)
    --spp SAMPLES       Samples per pixel (default: 100)
    --depth DEPTH       Maximum bounces per path (default: 50)
    --mode MODE         basic or antialiased (default: antialiased)
    --seed SEED         Random seed (default: 0)
    --arch ARCH         cpu or gpu (default: gpu, falls back to cpu)
    --output OUTPUT     Output file path, .ppm or .png (default: marbles.png)
    --time-budget SECS  Stop adding samples after this many seconds
    --log-level LEVEL   Logging level (default: INFO)
    --quiet             Suppress progress output

Example:
    python examples/render_spheres.py --scene three_spheres --width 320 --spp 50
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

from marbles.config import ARCHS, RENDER_MODES, RenderConfig, init_taichi
from marbles.logging_config import setup_logging

logger = logging.getLogger("marbles.examples.render_spheres")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render a preset sphere scene.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", type=Path, help="JSON file with RenderConfig fields")
    parser.add_argument("--scene", dest="scene", help="Preset scene name")
    parser.add_argument("--width", dest="image_width", type=int, help="Image width in pixels")
    parser.add_argument("--aspect-ratio", dest="aspect_ratio", type=float, help="Width / height")
    parser.add_argument("--spp", dest="samples_per_pixel", type=int, help="Samples per pixel")
    parser.add_argument("--depth", dest="max_depth", type=int, help="Maximum bounces per path")
    parser.add_argument("--mode", choices=RENDER_MODES, help="Primary ray mode")
    parser.add_argument("--gamma", type=float, help="Output gamma exponent")
    parser.add_argument("--seed", type=int, help="Random seed")
    parser.add_argument("--arch", choices=ARCHS, help="Taichi backend")
    parser.add_argument("--output", help="Output file path (.ppm or .png)")
    parser.add_argument("--batch-size", dest="batch_size", type=int, help="Samples per update")
    parser.add_argument("--time-budget", dest="time_budget", type=float, help="Seconds")
    parser.add_argument("--log-level", dest="log_level", help="Logging level")
    parser.add_argument("--log-file", type=Path, help="Also log to this file")
    parser.add_argument("--quiet", action="store_true", help="Suppress progress output")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> RenderConfig:
    """Layer defaults, environment, config file and command line."""
    config = RenderConfig.from_env()
    if args.config is not None:
        config = RenderConfig.from_env(base=RenderConfig.from_json(args.config))

    cli_fields = (
        "scene",
        "image_width",
        "aspect_ratio",
        "samples_per_pixel",
        "max_depth",
        "mode",
        "gamma",
        "seed",
        "arch",
        "output",
        "batch_size",
        "time_budget",
        "log_level",
    )
    overrides = {
        name: getattr(args, name) for name in cli_fields if getattr(args, name) is not None
    }
    config = config.with_overrides(overrides)
    config.validate()
    return config


def render_spheres(config: RenderConfig, quiet: bool = False) -> Path:
    """Render the configured scene and save it.

    Returns:
        Path to the saved image file.
    """
    # Field-declaring modules are imported after ti.init
    from marbles.core.render import RenderMode, render
    from marbles.preview.export import save_image
    from marbles.scene.presets import get_preset

    factory_args = {"image_width": config.image_width, "aspect_ratio": config.aspect_ratio}
    if config.scene == "random_marbles":
        factory_args["seed"] = config.seed
    scene, camera = get_preset(config.scene, **factory_args)

    start_time = time.time()

    def progress_callback(current: int, target: int) -> None:
        if not quiet:
            elapsed = time.time() - start_time
            progress_pct = (current / target) * 100 if target > 0 else 0
            samples_per_sec = current / elapsed if elapsed > 0 else 0
            print(
                f"\r  Progress: {current}/{target} samples "
                f"({progress_pct:.1f}%) - {samples_per_sec:.1f} spp/s",
                end="",
                flush=True,
                file=sys.stderr,
            )

    image = render(
        scene,
        camera,
        RenderMode(config.mode),
        config.samples_per_pixel,
        config.max_depth,
        config.gamma,
        batch_size=config.batch_size,
        callback=progress_callback,
        time_budget=config.time_budget,
    )
    if not quiet:
        print(file=sys.stderr)

    output_file = Path(config.output)
    save_image(image, output_file)
    logger.info("saved %s in %.2fs", output_file.absolute(), time.time() - start_time)
    return output_file


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    try:
        config = build_config(args)
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    setup_logging(config.log_level, args.log_file)
    init_taichi(config)

    try:
        render_spheres(config, quiet=args.quiet)
        return 0
    except (OSError, RuntimeError, ValueError):
        logger.exception("render failed")
        return 1


if __name__ == "__main__":
    sys.exit(main())
