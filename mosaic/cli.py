"""
Mosaic CLI - Command-line interface for the engine.

Usage:
    mosaic pixelize <image> [--blocks N]     Print the color grid of an image
    mosaic validate <image> <hex>            Check a photo against a color
    mosaic serve [--host H] [--port P]       Run the REST API
"""

import argparse
import sys

from .config import configure_logging
from .errors import MosaicError


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Mosaic - Collaborative photo mosaic engine",
        prog="mosaic",
    )
    parser.add_argument("--log-level", default=None, help="Logging level")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Pixelize command
    pixelize_parser = subparsers.add_parser("pixelize", help="Print the color grid of an image")
    pixelize_parser.add_argument("image", help="Path to image file")
    pixelize_parser.add_argument(
        "--blocks", type=int, default=16, help="Block count: 16, 64 or 128"
    )

    # Validate command
    validate_parser = subparsers.add_parser("validate", help="Check a photo against a color")
    validate_parser.add_argument("image", help="Path to image file")
    validate_parser.add_argument("color", help="Target hex color, e.g. #FF0000")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the REST API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    args = parser.parse_args(argv)
    configure_logging(args.log_level or "WARNING")

    if args.command == "pixelize":
        return cmd_pixelize(args)
    elif args.command == "validate":
        return cmd_validate(args)
    elif args.command == "serve":
        return cmd_serve(args)
    else:
        parser.print_help()
        sys.exit(1)


def _local_fetcher():
    from .vision import InMemoryBlobFetcher
    return InMemoryBlobFetcher(allow_files=True)


def cmd_pixelize(args):
    """Print the pixelized grid, one row per line."""
    from .vision import ImagePixelizer, grid_dimensions

    try:
        _, cols = grid_dimensions(args.blocks)
        blocks = ImagePixelizer(_local_fetcher()).pixelize(args.image, args.blocks)
    except MosaicError as e:
        print(f"Error: {e.message}")
        sys.exit(1)

    for start in range(0, len(blocks), cols):
        print(" ".join(block.hex_color for block in blocks[start:start + cols]))


def cmd_validate(args):
    """Print the validation result; exit 1 on mismatch."""
    from .vision import ColorValidator, normalize_hex

    try:
        target = normalize_hex(args.color)
        result = ColorValidator(_local_fetcher()).validate(args.image, target)
    except MosaicError as e:
        print(f"Error: {e.message}")
        sys.exit(1)

    print(f"Target:     {result.target_color}")
    print(f"Dominant:   {result.dominant_color}")
    print(f"Similarity: {result.similarity:.1f}%")
    print(f"Coverage:   {result.coverage:.1f}%")
    if result.is_valid:
        print("Result:     MATCH")
    else:
        print(f"Result:     MISMATCH ({result.reason})")
        sys.exit(1)


def cmd_serve(args):
    """Run the API with uvicorn."""
    import uvicorn
    from .api import create_app

    uvicorn.run(create_app(), host=args.host, port=args.port)


if __name__ == "__main__":
    main()
