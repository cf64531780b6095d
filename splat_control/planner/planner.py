"""Serpentine traversal planner -- canvas to macro program.

The cursor starts at the top-left cell moving RIGHT.  Each row is swept
at most once, alternating direction (boustrophedon), and every row ends
with a Down pulse except the last one.

Lookahead union:
    A sweep covers the union of what the current row and the *next* row
    need, measured from the cursor.  Sweeping RIGHT it stops at the
    furthest right cell either row draws; sweeping LEFT at the furthest
    left.  The next row then starts where its own drawing begins, so no
    separate travel pass is ever emitted.  The far end never moves
    behind the cursor: if the next row needs the cursor further back,
    the sweep is a single cell and only the direction flips.

Draw runs:
    A run of ``n >= 2`` cells keeps the draw button held for the whole
    run::

        [draw], [draw+move], [draw], ([draw+move], [draw]) * (n-2), []

    which is ``2 * n`` commands.  A single cell is one draw pulse.

Polarity:
    ``plan_macro`` is one pure function; ``Polarity`` supplies the draw
    button and the active-mark predicate.  ``plan_both`` invokes it for
    NORMAL and INVERTED and ``select_polarity`` recommends the shorter.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from splat_control.configs.options import PlanOptions
from splat_control.macro_ir.commands import (
    Button,
    Command,
    MacroProgram,
    Polarity,
    ScanDirection,
    neutral,
    pulse,
)
from splat_control.raster.canvas import (
    HEIGHT,
    Canvas,
    EncodedLine,
    Interval,
    row_draw_range,
    run_length_encode,
)

logger = logging.getLogger(__name__)

CAUTIOUS_EDGE_PULSES = 3
CLOSE_CALL_PERCENT = 1.0


# ---------------------------------------------------------------------------
# Line emission
# ---------------------------------------------------------------------------


def emit_encoded_line(
    line: EncodedLine,
    polarity: Polarity,
    duration: Decimal,
) -> list[Command]:
    """Commands that sweep one encoded line, drawing its active runs.

    Parameters
    ----------
    line : EncodedLine
        Segments in traversal order.  The cursor sits on the first cell
        of the first segment.
    polarity : Polarity
        Decides which runs are drawn and with which button.
    duration : Decimal
        Frame length for every emitted command.

    Returns
    -------
    list[Command]
        Commands leaving the cursor on the last cell of the last segment.
    """
    draw = polarity.draw_button
    move = line.direction.move_button
    out: list[Command] = []

    for idx, seg in enumerate(line.segments):
        if polarity.is_active(seg.mark):
            if seg.length == 1:
                out.extend(pulse(draw, duration))
            else:
                for unit in range(seg.length - 1):
                    if unit == 0:
                        out.append(Command((draw,), duration))
                    out.append(Command((draw, move), duration))
                    out.append(Command((draw,), duration))
                out.append(neutral(duration))
        else:
            for _ in range(seg.length - 1):
                out.extend(pulse(move, duration))

        if idx < len(line.segments) - 1:
            # Step onto the first cell of the next segment
            out.extend(pulse(move, duration))

    return out


# ---------------------------------------------------------------------------
# Sweep target
# ---------------------------------------------------------------------------


def sweep_interval(
    cursor_x: int,
    direction: ScanDirection,
    current: Interval | None,
    upcoming: Interval | None,
) -> Interval:
    """Interval swept on a row, given what this row and the next need.

    At least one of *current* / *upcoming* must be present.  The result
    is ordered (``lo <= hi``), always contains *cursor_x*, and stays
    inside the canvas.
    """
    extents = [e for e in (current, upcoming) if e is not None]
    if not extents:
        raise ValueError("sweep_interval needs at least one extent")

    if direction is ScanDirection.RIGHT:
        far = max(hi for _, hi in extents)
        return (cursor_x, max(cursor_x, far))
    far = min(lo for lo, _ in extents)
    return (min(cursor_x, far), cursor_x)


# ---------------------------------------------------------------------------
# Planner
# ---------------------------------------------------------------------------


def plan_macro(
    canvas: Canvas,
    options: PlanOptions,
    polarity: Polarity = Polarity.NORMAL,
) -> MacroProgram:
    """Plan the full macro for one polarity.

    Parameters
    ----------
    canvas : Canvas
        Marks to reproduce.
    options : PlanOptions
        Durations, rows to draw, cautious mode.
    polarity : Polarity
        NORMAL draws marks with A; INVERTED draws non-marks with B.

    Returns
    -------
    MacroProgram
        Frozen command sequence, framed by the start delay and the
        MINUS pulse plus end delay.
    """
    duration = options.press_duration
    rows = options.rows_to_draw
    last_row = options.last_row
    cautious = options.cautious

    def extent(y: int) -> Interval | None:
        if y > last_row or y not in rows:
            return None
        return row_draw_range(canvas, y, polarity, cautious)

    commands: list[Command] = [neutral(options.start_delay)]
    cursor_x = 0
    direction = ScanDirection.RIGHT
    sweeps = 0

    for y in range(last_row + 1):
        current = extent(y)
        upcoming = extent(y + 1) if y + 1 < HEIGHT else None

        if current is not None or upcoming is not None:
            lo, hi = sweep_interval(cursor_x, direction, current, upcoming)
            line = run_length_encode(canvas, y, (lo, hi), direction)
            commands.extend(emit_encoded_line(line, polarity, duration))

            if cautious:
                for _ in range(CAUTIOUS_EDGE_PULSES):
                    commands.extend(
                        pulse(direction.move_button, duration, idempotent=True)
                    )

            cursor_x = hi if direction is ScanDirection.RIGHT else lo
            direction = direction.flipped()
            sweeps += 1

        if y < last_row:
            commands.extend(pulse(Button.DOWN, duration))

    commands.extend(pulse(Button.MINUS, duration))
    commands.append(neutral(options.end_delay))

    logger.debug(
        "Planned %s macro: %d commands, %d sweeps over rows 0-%d",
        polarity.value, len(commands), sweeps, last_row,
    )
    return tuple(commands)


def plan_both(canvas: Canvas, options: PlanOptions) -> dict[Polarity, MacroProgram]:
    """Plan the macro for every polarity."""
    return {polarity: plan_macro(canvas, options, polarity) for polarity in Polarity}


# ---------------------------------------------------------------------------
# Polarity selection
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PolaritySelection:
    """Which macro to recommend.

    Attributes
    ----------
    recommended : Polarity
        Polarity whose macro should be used.
    percent_difference : float
        ``|max - min| / max * 100``, rounded to two decimals.
    close : bool
        Difference under 1%; NORMAL is recommended regardless.
    """

    recommended: Polarity
    percent_difference: float
    close: bool


def select_polarity(normal_count: int, inverted_count: int) -> PolaritySelection:
    """Recommend the polarity with fewer commands.

    Near-ties (under 1% difference) favour NORMAL, which needs no canvas
    preparation.
    """
    higher = max(normal_count, inverted_count)
    lower = min(normal_count, inverted_count)
    percent = abs(higher - lower) / higher * 100.0 if higher else 0.0

    if percent < CLOSE_CALL_PERCENT:
        return PolaritySelection(Polarity.NORMAL, round(percent, 2), True)

    recommended = Polarity.INVERTED if inverted_count < normal_count else Polarity.NORMAL
    return PolaritySelection(recommended, round(percent, 2), False)
