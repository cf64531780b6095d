"""Splat pipeline: canvas → both macros, previews and a summary.

Runs the full compile for one image:
    1. Plan the macro for NORMAL and INVERTED polarity
    2. Write each macro as text (``splat_macro*.txt``)
    3. Replay each macro to render its preview (``macro_preview*.png``)
       and check the replay reproduces every requested row
    4. Recommend the polarity with fewer operations
    5. Write a summary YAML with counts, time estimates and the choice

File names come from ``SplatConfig.output``; everything lands in the
chosen output directory.

Usage:
    cfg = load_config()
    canvas = load_canvas("input.png")
    options = build_options(cfg, repair_input="78,99-102")
    result = splat(canvas, options, "out/", cfg)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Union

from splat_control.configs.loader import SplatConfig
from splat_control.configs.options import PlanOptions
from splat_control.macro.serializer import write_macro
from splat_control.macro_ir.commands import MacroProgram, Polarity
from splat_control.planner.planner import PolaritySelection, plan_both, select_polarity
from splat_control.raster.canvas import HEIGHT, WIDTH, Canvas
from splat_control.simulator.replay import (
    CommandReplaySimulator,
    ReplayError,
    save_preview,
    verify_rows,
)
from src.utils import fs
from src.utils.logging_config import pop_context, push_context

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SplatResult:
    """Artifacts of one compile, keyed by polarity."""

    programs: Dict[Polarity, MacroProgram]
    macro_files: Dict[Polarity, Path]
    preview_files: Dict[Polarity, Path]
    summary_file: Path
    selection: PolaritySelection

    @property
    def recommended_file(self) -> Path:
        return self.macro_files[self.selection.recommended]


def load_canvas(path: Union[str, Path]) -> Canvas:
    """Decode an image file into a canvas.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ValueError
        If the file is not an image or is not ``WIDTH x HEIGHT``.
    """
    rgb = fs.load_rgb_image(path)
    height, width = rgb.shape[:2]
    if (width, height) != (WIDTH, HEIGHT):
        raise ValueError(f"Image must be {WIDTH} x {HEIGHT}, got {width} x {height}")
    canvas = Canvas.from_rgb(rgb)
    logger.info("Loaded %s: %d marked cells", path, int(canvas.marks.sum()))
    return canvas


def format_percent(value: float) -> str:
    """One or two decimals: ``12.5``, ``12.0``, ``3.14``."""
    text = f"{value:.2f}"
    return text[:-1] if text.endswith("0") else text


def splat(
    canvas: Canvas,
    options: PlanOptions,
    output_dir: Union[str, Path],
    config: SplatConfig,
) -> SplatResult:
    """Compile *canvas* into both macros and write every artifact.

    Parameters
    ----------
    canvas : Canvas
        Marks to draw.
    options : PlanOptions
        Planning options shared by both polarities.
    output_dir : Union[str, Path]
        Directory receiving the artifacts (created if missing).
    config : SplatConfig
        Supplies artifact file names.

    Returns
    -------
    SplatResult
        Programs, written paths and the polarity recommendation.

    Raises
    ------
    ReplayError
        If a replayed macro does not reproduce the requested rows.
    """
    out = fs.ensure_dir(output_dir)
    names = config.output
    macro_names = {Polarity.NORMAL: names.macro, Polarity.INVERTED: names.macro_inverted}
    preview_names = {Polarity.NORMAL: names.preview, Polarity.INVERTED: names.preview_inverted}

    programs = plan_both(canvas, options)
    macro_files: Dict[Polarity, Path] = {}
    preview_files: Dict[Polarity, Path] = {}
    macros: Dict[str, Dict[str, Any]] = {}

    for polarity, program in programs.items():
        push_context(polarity=polarity.value)
        try:
            macro_files[polarity] = write_macro(program, out / macro_names[polarity])

            replay = CommandReplaySimulator(polarity).run(program)
            bad_rows = verify_rows(replay.raster, canvas.marks, polarity, options.rows_to_draw)
            if bad_rows:
                raise ReplayError(
                    f"{polarity.value} macro does not reproduce rows {bad_rows}"
                )
            preview_files[polarity] = save_preview(replay.raster, out / preview_names[polarity])

            logger.info(
                "Generated %s with %d operations (~%.0fs)",
                macro_names[polarity], len(program), replay.time_estimate_s,
            )
            macros[polarity.value] = {
                "file": macro_names[polarity],
                "preview": preview_names[polarity],
                "operations": len(program),
                "time_estimate_s": str(replay.time_estimate_s),
            }
        finally:
            pop_context(keys=["polarity"])

    selection = select_polarity(
        len(programs[Polarity.NORMAL]), len(programs[Polarity.INVERTED])
    )
    recommended = macro_names[selection.recommended]
    if selection.close:
        logger.info("They're pretty close, probably just use %s.", recommended)
    else:
        logger.info(
            "Recommend using %s, which has %s%% fewer operations.",
            recommended, format_percent(selection.percent_difference),
        )
    logger.info(
        "If you use the inverted macro, fill your canvas with black pixels before starting!"
    )

    summary: Dict[str, Any] = {"macros": macros}
    summary["recommended"] = {
        "polarity": selection.recommended.value,
        "file": recommended,
        "percent_difference": selection.percent_difference,
        "close": selection.close,
    }
    summary["options"] = {
        "press_duration_s": str(options.press_duration),
        "rows": len(options.rows_to_draw),
        "last_row": options.last_row,
        "cautious": options.cautious,
    }
    summary_file = out / names.summary
    fs.atomic_yaml_dump(summary, summary_file)

    return SplatResult(
        programs=programs,
        macro_files=macro_files,
        preview_files=preview_files,
        summary_file=summary_file,
        selection=selection,
    )
