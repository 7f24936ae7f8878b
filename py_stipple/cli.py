"""
Command-line entry point.

Usage:
    py-stipple IMAGE [--stipples N] [--iterations K] [--scale F]
               [--supersampling S] [--blend A] [--seed SEED] [--output PATH]
"""

import argparse
import sys
from pathlib import Path

import structlog

from .config import settings
from .core.presenter import save_stipples
from .core.relaxation import RelaxationOptions, StippleRelaxer, log_progress
from .errors import StippleError
from .utils.image import load_density_field
from .utils.log_config import configure_logging

logger = structlog.get_logger()


def parse_seed(value: str):
    """Non-negative integer seeds become ints; anything else is used as a string seed."""
    if value.isascii() and value.isdigit():
        return int(value)
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Weighted Voronoi stippling of an image")
    parser.add_argument("image", type=Path, help="Input image")
    parser.add_argument("--stipples", type=int, help="Number of stipples")
    parser.add_argument("--iterations", type=int, help="Lloyd iterations")
    parser.add_argument("--scale", type=float, default=None, help="Output pixels per input pixel")
    parser.add_argument("--supersampling", type=int, help="Ownership grid upscale factor")
    parser.add_argument("--blend", type=float, help="Centroid blend factor in (0, 1]")
    parser.add_argument("--seed", type=parse_seed, help="Random seed for site placement")
    parser.add_argument("--rasterizer", choices=["cone", "brute_force", "kdtree"])
    parser.add_argument("--transport", choices=["none", "multi_channel", "nibble"])
    parser.add_argument("--max-side", type=int, default=None, help="Downsample input to this size")
    parser.add_argument("--output", type=Path, default=None, help="Output PNG path")
    return parser


def main(argv=None) -> int:
    """Main function."""
    args = build_parser().parse_args(argv)
    configure_logging(settings.log_level, settings.log_format)

    try:
        field = load_density_field(args.image, max_side=args.max_side)
        options = RelaxationOptions.from_settings(
            settings,
            n_sites=args.stipples,
            iterations=args.iterations,
            supersampling=args.supersampling,
            blend=args.blend,
            rasterizer=args.rasterizer,
            transport=args.transport,
            seed=args.seed,
        )
        relaxer = StippleRelaxer(field, options)
        sites = relaxer.run(on_iterate=log_progress(options.iterations))

        output = args.output or args.image.with_name(f"{args.image.stem}_stippled.png")
        scale = args.scale if args.scale is not None else settings.default_scale
        save_stipples(
            output,
            sites,
            field.width,
            field.height,
            scale=scale,
            base_radius=settings.base_radius,
            visibility_threshold=settings.visibility_threshold,
        )
    except StippleError as e:
        logger.error("Stippling failed", error=str(e))
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
