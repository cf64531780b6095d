#!/usr/bin/env python3
"""
Splat Script.

Compile a 320x120 image into controller macros, or render the preview of
an existing macro file.

Usage:
    python -m splat_control.scripts.splat input.png
    python -m splat_control.scripts.splat input.png -d 0.05 -r 78,99-102,105
    python -m splat_control.scripts.splat input.png -p 40-79 --cautious -o out/
    python -m splat_control.scripts.splat --replay splat_macro_inverted.txt --inverted

Outputs (names from splat.yaml):
    splat_macro.txt, splat_macro_inverted.txt,
    macro_preview.png, macro_preview_inverted.png, splat_summary.yaml
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import yaml

from splat_control.configs.loader import ConfigError, load_config
from splat_control.configs.options import OptionsError, build_options
from splat_control.macro.serializer import load_macro
from splat_control.macro_ir.commands import Polarity
from splat_control.pipeline import load_canvas, splat
from splat_control.raster.canvas import HEIGHT
from splat_control.simulator.replay import CommandReplaySimulator, ReplayError, save_preview
from src.utils.logging_config import install_excepthook, setup_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="splat",
        description="Compile an image into controller drawing macros",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "input",
        nargs="?",
        help="Input image path (must be 320x120)",
    )
    parser.add_argument(
        "--press-duration",
        "-d",
        type=str,
        help="Duration of button presses in seconds, e.g. 0.1",
    )

    rows = parser.add_mutually_exclusive_group()
    rows.add_argument(
        "--repair-rows",
        "-r",
        type=str,
        help=(
            "Comma-separated list of image rows or ranges between 0 and "
            f"{HEIGHT - 1} inclusive to repair, e.g. 78,99-102,105"
        ),
    )
    rows.add_argument(
        "--partial-rows",
        "-p",
        type=str,
        help="Single row range to draw, stopping after its last row, e.g. 40-79",
    )

    parser.add_argument(
        "--cautious",
        "-c",
        action="store_true",
        help="Sweep full rows and re-sync at the edges (slower, tolerates dropped presses)",
    )
    parser.add_argument(
        "--output",
        "-o",
        type=str,
        default=".",
        help="Output directory (default: current directory)",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Configuration file path",
    )

    # Replay mode
    parser.add_argument(
        "--replay",
        type=str,
        metavar="MACRO",
        help="Render the preview of an existing macro file instead of compiling",
    )
    parser.add_argument(
        "--inverted",
        action="store_true",
        help="With --replay: the macro draws on a pre-darkened canvas",
    )

    # Logging
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Console log level",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        help="Also write logs to this file",
    )
    return parser


def run_replay(macro_path: str, inverted: bool, output_dir: str) -> Path:
    """Render ``<macro>_preview.png`` for an existing macro file."""
    polarity = Polarity.INVERTED if inverted else Polarity.NORMAL
    program = load_macro(macro_path)
    result = CommandReplaySimulator(polarity, strict=False).run(program)
    target = Path(output_dir) / f"{Path(macro_path).stem}_preview.png"
    save_preview(result.raster, target)
    logger.info(
        "Replayed %d operations, cursor ends at %s, ~%.0fs",
        result.executed, result.cursor, result.time_estimate_s,
    )
    return target


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.replay is None and args.input is None:
        parser.error("an input image is required unless --replay is given")

    setup_logging(
        args.log_level,
        args.log_file,
        rotate={"max_bytes": 5_000_000, "backup_count": 3} if args.log_file else None,
        quiet_libs=["PIL"],
        context={"app": "splat"},
    )
    install_excepthook()

    try:
        if args.replay is not None:
            run_replay(args.replay, args.inverted, args.output)
            return 0

        config = load_config(args.config)
        options = build_options(
            config,
            duration_input=args.press_duration,
            repair_input=args.repair_rows,
            partial_input=args.partial_rows,
            cautious=args.cautious,
        )
        canvas = load_canvas(args.input)
        result = splat(canvas, options, args.output, config)
        logger.info("Recommended macro: %s", result.recommended_file)
        logger.info("Woomy!")
        return 0

    except (ConfigError, OptionsError, ValueError, FileNotFoundError, yaml.YAMLError) as e:
        logger.error("%s", e)
        return 1
    except ReplayError:
        logger.exception("Generated macro failed verification")
        return 1


if __name__ == "__main__":
    sys.exit(main())
