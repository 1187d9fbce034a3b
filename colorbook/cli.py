"""
Command-line interface for the colorbook engine.

Usage:
    python -m colorbook fill <lineart> --at X,Y [--at X,Y ...] [--color HEX] [--output PATH]
    python -m colorbook inspect <lineart> [--threshold 200]
    python -m colorbook --help
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple


def parse_point(text: str) -> Tuple[int, int]:
    """Parse "X,Y" into an integer point."""
    try:
        x, y = (int(part) for part in text.split(","))
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected X,Y but got {text!r}") from None
    return (x, y)


def setup_argparse() -> argparse.ArgumentParser:
    """Set up argument parser."""
    parser = argparse.ArgumentParser(
        prog="colorbook",
        description="Line-art coloring engine tools",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="YAML session configuration file",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # fill command
    fill_parser = subparsers.add_parser(
        "fill",
        help="Bucket-fill regions of a line-art image and export the result",
    )
    fill_parser.add_argument(
        "image_path",
        type=str,
        help="Path to the line-art image",
    )
    fill_parser.add_argument(
        "--at",
        type=parse_point,
        action="append",
        required=True,
        help="Seed point in canvas pixels as X,Y (repeatable)",
    )
    fill_parser.add_argument(
        "--color",
        type=str,
        default="#ef4444",
        help="Fill color as hex (default: #ef4444)",
    )
    fill_parser.add_argument(
        "--output",
        "-o",
        type=str,
        help="Output file path (default: timestamped name in the current directory)",
    )

    # inspect command
    inspect_parser = subparsers.add_parser(
        "inspect",
        help="Report boundary statistics of a line-art image",
    )
    inspect_parser.add_argument(
        "image_path",
        type=str,
        help="Path to the line-art image",
    )
    inspect_parser.add_argument(
        "--threshold",
        type=int,
        default=None,
        help="Boundary luminance threshold (default: from config, 200)",
    )

    return parser


def _load_config(args):
    from colorbook.config.session_config import SessionConfig

    if args.config:
        return SessionConfig.from_yaml(args.config)
    return SessionConfig.default()


def cmd_fill(args) -> int:
    """Handle fill command."""
    from colorbook.compositor import save_artifact
    from colorbook.errors import ColorbookError
    from colorbook.models import parse_hex_color
    from colorbook.session import ColoringSession

    image_path = Path(args.image_path)
    if not image_path.exists():
        print(f"Error: Image not found: {image_path}", file=sys.stderr)
        return 1

    try:
        color = parse_hex_color(args.color)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    session = ColoringSession(_load_config(args))
    try:
        session.load_reference(image_path)
        fills = [session.fill_at(x, y, color).to_dict() for x, y in args.at]
        artifact = session.export()
    except ColorbookError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        session.close()

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(artifact.data)
    else:
        output_path = save_artifact(artifact, Path.cwd())

    output = {
        "input": str(image_path),
        "fills": fills,
        "output_path": str(output_path),
        "export": artifact.to_dict(),
    }
    print(json.dumps(output, indent=2))
    return 0


def cmd_inspect(args) -> int:
    """Handle inspect command."""
    from colorbook.errors import ReferenceLoadError
    from colorbook.fill import boundary_mask
    from colorbook.reference import ReferenceLayer

    image_path = Path(args.image_path)
    if not image_path.exists():
        print(f"Error: Image not found: {image_path}", file=sys.stderr)
        return 1

    config = _load_config(args)
    threshold = config.boundary_threshold if args.threshold is None else args.threshold

    layer = ReferenceLayer(config.canvas_size)
    try:
        layer.load_path(image_path)
    except ReferenceLoadError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    mask = boundary_mask(layer.buffer, threshold)
    boundary_pixels = int(mask.sum())

    output = {
        "input": str(image_path),
        "canvas_size": {"width": layer.buffer.width, "height": layer.buffer.height},
        "threshold": threshold,
        "boundary_pixels": boundary_pixels,
        "boundary_ratio": round(boundary_pixels / mask.size, 4),
    }
    print(json.dumps(output, indent=2))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = setup_argparse()
    args = parser.parse_args(argv)

    log_level = logging.DEBUG if args.verbose else logging.WARNING
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "fill":
        return cmd_fill(args)

    if args.command == "inspect":
        return cmd_inspect(args)

    return 0


if __name__ == "__main__":
    sys.exit(main())
