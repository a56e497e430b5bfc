"""
Command-Line Interface

Generates tree supports for a mesh file and writes the supported model.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import trimesh

from .api import generate_supports
from .core.progress import TqdmProgress, NullProgress
from .ops.export import export_merged
from .policies import SupportPolicy, StrutPolicy


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="support-tree",
        description="Generate tree-shaped print supports for a triangle mesh",
    )
    parser.add_argument(
        "input",
        type=str,
        help="Path to the model (any format trimesh can load)",
    )
    parser.add_argument(
        "--output", "-o",
        type=str,
        required=True,
        help="Path of the supported model to write",
    )
    parser.add_argument(
        "--angle",
        type=float,
        default=SupportPolicy.angle_limit_deg,
        help=f"Overhang angle limit in degrees (default: {SupportPolicy.angle_limit_deg})",
    )
    parser.add_argument(
        "--density",
        type=int,
        default=SupportPolicy.grid_density,
        help=f"Support grid density (default: {SupportPolicy.grid_density})",
    )
    parser.add_argument(
        "--diameter",
        type=float,
        default=StrutPolicy.diameter_coefficient,
        help=f"Strut diameter coefficient (default: {StrutPolicy.diameter_coefficient})",
    )
    parser.add_argument(
        "--support-only",
        action="store_true",
        help="Write only the support mesh, without the model",
    )
    parser.add_argument(
        "--tree-json",
        type=str,
        default=None,
        help="Also write the support tree segments as JSON to this path",
    )
    parser.add_argument(
        "--progress",
        action="store_true",
        help="Show progress bars",
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )
    verbosity.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Only log warnings and errors",
    )
    return parser


def configure_logging(verbose: bool = False, quiet: bool = False) -> None:
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def run(args: argparse.Namespace) -> int:
    """Run support generation for parsed arguments. Returns the exit code."""
    support_policy = SupportPolicy(angle_limit_deg=args.angle, grid_density=args.density)
    strut_policy = StrutPolicy(diameter_coefficient=args.diameter)

    model = trimesh.load(args.input, force="mesh")
    progress = TqdmProgress() if args.progress else NullProgress()
    result = generate_supports(model, support_policy, strut_policy, progress)

    if args.support_only:
        output = Path(args.output)
        output.parent.mkdir(parents=True, exist_ok=True)
        result.support_mesh.export(str(output))
    else:
        export_merged(model, result.support_mesh, args.output)

    if args.tree_json:
        tree_path = Path(args.tree_json)
        tree_path.parent.mkdir(parents=True, exist_ok=True)
        tree_path.write_text(result.tree.to_json())

    print(json.dumps(result.summary(), indent=2))
    return 0 if result.success else 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose, args.quiet)

    try:
        return run(args)
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
