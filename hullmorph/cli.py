#!/usr/bin/env python
"""
Hull Morphing Pipeline

Command line entry point mapping a shell hull onto a beam skeleton and writing
the morphed deck with its prescribed final geometry. It also provides a plot
of the stored association.
"""

import argparse
import logging
import os
import sys
from datetime import datetime

from hullmorph import __version__
from hullmorph.association import AssociationMap, seed_from_sets
from hullmorph.config import MorphConfig
from hullmorph.core import InputValidationError, morph
from hullmorph.keyword import (
    KeywordFormatError,
    format_boundary,
    read_keyword,
    write_keyword,
)
from hullmorph.segmentation import SegmentationError, target_regions
from hullmorph.utils import file_sha256, save_json
from hullmorph.viz import plot_association

SUBCOMMANDS = ("run", "plot")


def add_input_args(parser):
    """Add the hull and skeleton input arguments."""
    parser.add_argument("hull", help="Keyword deck holding the shell hull")
    parser.add_argument(
        "--skeleton",
        help="Keyword deck holding the beam skeleton (default: the hull deck)",
    )


def add_morph_args(parser):
    """Add the mutually exclusive scale/radius arguments."""
    group = parser.add_mutually_exclusive_group()
    group.add_argument(
        "--scale",
        type=float,
        help="Keep this fraction of every node's offset to its beam",
    )
    group.add_argument(
        "--radius",
        type=float,
        help="Place every node at this distance from its beam",
    )


def add_search_args(parser):
    """Add the association search arguments."""
    parser.add_argument(
        "--flip",
        action="store_true",
        default=None,
        help="Search along the reversed shell normals",
    )
    parser.add_argument(
        "--start-angle",
        type=float,
        help="Initial half-angle of the search cone in degrees (default: 15)",
    )
    parser.add_argument(
        "--step-angle",
        type=float,
        help="Widening step of the search cone in degrees (default: 5)",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        default=None,
        help="Recompute all associations instead of reusing stored shell sets",
    )
    parser.add_argument(
        "--override",
        action="append",
        default=[],
        metavar="SHELL:BEAM",
        help="Assign a shell to a beam explicitly (repeatable)",
    )


def add_output_args(parser):
    """Add output and bookkeeping arguments."""
    parser.add_argument(
        "-o",
        "--output",
        help="Output keyword deck (default: <hull>.morphed.k next to the hull)",
    )
    parser.add_argument(
        "--overwrite", action="store_true", help="Overwrite an existing output file"
    )
    parser.add_argument(
        "--persist",
        action="store_true",
        default=None,
        help="Store the association in the output deck as shell sets",
    )
    parser.add_argument(
        "--load-curve",
        type=int,
        dest="load_curve_id",
        help="Load curve driving the prescribed final geometry",
    )
    parser.add_argument(
        "--association-json",
        help="Also save the shell to beam association to this JSON file",
    )
    parser.add_argument(
        "--config",
        help="JSON file with MorphConfig fields; command line flags take precedence",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Debug logging and progress bars"
    )


def parse_overrides(values):
    """Parse ``SHELL:BEAM`` strings into a dict of ints."""
    overrides = {}
    for value in values:
        try:
            shell_id, beam_id = value.split(":")
            overrides[int(shell_id)] = int(beam_id)
        except ValueError:
            raise ValueError(f"Invalid override '{value}', expected SHELL:BEAM") from None
    return overrides


def config_from_args(args):
    """Build a MorphConfig from a JSON file and the command line flags."""
    config = MorphConfig.from_json_file(args.config) if args.config else MorphConfig()
    for name in (
        "scale",
        "radius",
        "flip",
        "start_angle",
        "step_angle",
        "force",
        "persist",
        "load_curve_id",
    ):
        value = getattr(args, name, None)
        if value is not None:
            setattr(config, name, value)
    # a mode on the command line replaces the mode of the config file
    if args.scale is not None:
        config.radius = None
    elif args.radius is not None:
        config.scale = None
    if args.verbose:
        config.verbose = True
    return config


def default_output(hull_file, suffix=".morphed.k"):
    stem, _ = os.path.splitext(os.path.abspath(hull_file))
    return stem + suffix


def provenance_header(input_files, config):
    """Comment lines recording how the deck was produced."""
    header = [
        f"Generated by hullmorph {__version__} on "
        f"{datetime.now().isoformat(timespec='seconds')}"
    ]
    for fn in input_files:
        header.append(f"input {os.path.basename(fn)} sha256 {file_sha256(fn)}")
    header.append(
        f"mode={config.mode} parameter={config.parameter} flip={config.flip} "
        f"start_angle={config.start_angle} step_angle={config.step_angle}"
    )
    return header


def print_summary(result, hull):
    print("\nSummary:")
    print(f"  Status: {result.status}")
    print(f"  Associated shells: {len(result.association)}")
    print(f"  Unresolved shells: {len(result.unresolved)}")
    if result.morphed:
        print(f"  Cloned nodes: {len(result.clones)} in {result.passes} passes")
        print(f"  Boundary records: {len(result.records)}")
    else:
        print(f"  Nodes that morphing would split: {len(result.shared_nodes)}")
    regions = target_regions(hull, result.association)
    split = {b: n for b, n in regions.items() if n > 1}
    print(f"  Beams used: {len(regions)}")
    if split:
        print(f"  Beams with several surface patches: {split}")
    if result.diagnostics:
        print(f"  Diagnostics ({len(result.diagnostics)}):")
        for diagnostic in result.diagnostics:
            print(f"    {diagnostic}")


def cmd_run(args):
    """Handles the 'run' subcommand to morph a hull."""
    print("Starting Hullmorph Run Pipeline...")

    input_files = [args.hull] + ([args.skeleton] if args.skeleton else [])
    for fn in input_files:
        if not os.path.exists(fn):
            print(f"Error: Input file not found: {fn}")
            return 1

    output = args.output or default_output(args.hull)
    if os.path.exists(output) and not args.overwrite:
        print(f"Error: Output file {output} already exists. Use --overwrite to replace it.")
        return 1

    try:
        config = config_from_args(args)
        config.validate()
        overrides = parse_overrides(args.override)
        hull = read_keyword(args.hull)
        skeleton = read_keyword(args.skeleton) if args.skeleton else hull
        result = morph(hull, skeleton, config, overrides)
    except (InputValidationError, SegmentationError, KeywordFormatError, OSError) as e:
        print(f"Error: {e}")
        return 1
    except ValueError as e:
        print(f"Error: invalid configuration: {e}")
        return 1

    print_summary(result, hull)

    if args.association_json:
        save_json(
            args.association_json,
            {str(k): v for k, v in result.association.as_sets().items()},
            indent=2,
        )
        print(f"Saved association to {args.association_json}")

    if not result.morphed and not config.persist:
        print("No --scale or --radius given: association only, no deck written.")
        return 0

    boundary = None
    if result.records:
        boundary = format_boundary(
            result.records, config.boundary_id, config.load_curve_id
        )
    write_keyword(output, hull, boundary, provenance_header(input_files, config))
    print(f"Wrote morphed deck: {output}")
    return 0


def cmd_plot(args):
    """Handles the 'plot' subcommand to render the stored association."""
    print("Starting Hullmorph Plotting...")
    input_files = [args.hull] + ([args.skeleton] if args.skeleton else [])
    for fn in input_files:
        if not os.path.exists(fn):
            print(f"Error: Input file not found: {fn}")
            return 1

    try:
        hull = read_keyword(args.hull)
        skeleton = read_keyword(args.skeleton) if args.skeleton else hull
    except KeywordFormatError as e:
        print(f"Error: {e}")
        return 1

    association = AssociationMap()
    seed_from_sets(
        association,
        hull.fetch_by_keyword("set"),
        skeleton.ids("beam"),
        set(hull.ids("shell")),
    )
    if len(association) == 0:
        print("Warning: the hull deck stores no association; run with --persist first.")

    output = args.output or default_output(args.hull, ".association.png")
    try:
        plot_association(hull, skeleton, association, output)
    except (KeyError, ValueError) as e:
        print(f"Failed to generate plot: {e}")
        return 1
    return 0


def build_parser():
    parser = argparse.ArgumentParser(
        description="Hullmorph: map a shell hull onto a beam skeleton and morph it"
    )
    parser.add_argument("--version", action="version", version=__version__)
    subparsers = parser.add_subparsers(
        dest="command", required=True, help="Subcommand to run"
    )

    parser_run = subparsers.add_parser("run", help="Associate, segment and morph")
    add_input_args(parser_run)
    add_morph_args(parser_run)
    add_search_args(parser_run)
    add_output_args(parser_run)
    parser_run.set_defaults(func=cmd_run)

    parser_plot = subparsers.add_parser("plot", help="Plot the stored association")
    add_input_args(parser_plot)
    parser_plot.add_argument("-o", "--output", help="Output PNG file")
    parser_plot.set_defaults(func=cmd_plot)
    return parser


def main(argv=None):
    """Main function to parse arguments and dispatch subcommands."""
    if argv is None:
        argv = sys.argv[1:]
    argv = list(argv)
    parser = build_parser()
    if not argv:
        parser.print_help()
        return 1
    # a bare deck path means 'run'
    if argv[0] not in SUBCOMMANDS and not argv[0].startswith("-"):
        argv.insert(0, "run")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if getattr(args, "verbose", False) else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    return args.func(args)


if __name__ == "__main__":
    exit(main())
