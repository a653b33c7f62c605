#!/usr/bin/env python3
"""
Lens Quadtree - Command Line Demo
Builds the adaptive source-plane grid for a lens and reports its leaf cells.
"""

import argparse
import sys
from dataclasses import replace
from datetime import datetime

from quadtree_algorithms import validate_refinement
from grid_config import ConfigError, GridConfig, load_config
from grid_logger import logger, set_debug
from lens_models import identity_transform
from source_grid import build_source_grid
from leaf_report import (collect_leaves, export_leaves_csv, export_leaves_json,
                         print_leaf_table, print_summary, summarize_leaves)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='lens-quadtree',
        description='Refine a lensed sample grid into an adaptive quadtree source grid.')
    parser.add_argument('--config', help='JSON file with grid and lens parameters')
    parser.add_argument('--width', type=int, help='number of grid cells along x')
    parser.add_argument('--height', type=int, help='number of grid cells along y')
    parser.add_argument('--samples', type=int, dest='samples_per_side',
                        help='samples per cell side (N)')
    parser.add_argument('--thresh', type=float, help='refinement threshold as a multiple of N*N')
    parser.add_argument('--max-depth', type=int, help='maximum refinement depth (negative disables the cap)')
    parser.add_argument('--no-lens', action='store_true', help='sample without deflection')
    parser.add_argument('--summary', action='store_true', help='print summary statistics instead of the leaf table')
    parser.add_argument('--export-json', metavar='PATH', help='write leaf records to a JSON file')
    parser.add_argument('--export-csv', metavar='PATH', help='write leaf records to a CSV file')
    parser.add_argument('--plot', metavar='PATH', help='save a plot of the leaf partition')
    parser.add_argument('--viewer', action='store_true', help='open the interactive partition viewer')
    parser.add_argument('--validate', action='store_true', help='run the refinement self-check and exit')
    parser.add_argument('--debug', action='store_true', help='enable debug logging')
    return parser


def resolve_config(args: argparse.Namespace) -> GridConfig:
    """Combine defaults, the optional config file and command line overrides"""
    config = load_config(args.config) if args.config else GridConfig()
    config = config.with_overrides(
        width=args.width,
        height=args.height,
        samples_per_side=args.samples_per_side,
        thresh=args.thresh,
    )
    if args.max_depth is not None:
        config = replace(config, max_depth=args.max_depth if args.max_depth >= 0 else None)
    return config.validate()


def run(args: argparse.Namespace) -> int:
    config = resolve_config(args)
    transform = identity_transform if args.no_lens else None

    forest, stats = build_source_grid(config, transform)
    try:
        if args.summary:
            print_summary(summarize_leaves(collect_leaves(forest)))
            print(f"Sampled points: {stats.generated} "
                  f"({stats.inserted} inserted, {stats.discarded} discarded)")
        else:
            print_leaf_table(forest)

        if args.export_json:
            export_leaves_json(forest, args.export_json, metadata=config.to_dict())
            print(f"Leaf data exported to {args.export_json}")
        if args.export_csv:
            export_leaves_csv(forest, args.export_csv)
            print(f"Leaf data exported to {args.export_csv}")

        if args.plot:
            from quadtree_visualization import plot_source_grid
            plot_source_grid(forest, args.plot)
        if args.viewer:
            from quadtree_partition_viewer import QuadtreePartitionViewer
            QuadtreePartitionViewer(forest).run()
    finally:
        forest.destroy_all()
    return 0


def main(argv=None) -> int:
    """Main function to run the source grid builder"""
    args = build_parser().parse_args(argv)
    set_debug(args.debug)

    if args.validate:
        validate_refinement()
        return 0

    logger.debug("Run started at %s", datetime.now().strftime('%Y-%m-%d %H:%M:%S'))
    try:
        return run(args)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except MemoryError:
        print("Out of memory while building the source grid", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted by user.", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
