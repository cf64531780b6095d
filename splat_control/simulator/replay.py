"""Offline macro replay for verification and preview rendering.

Provides:
    - Replay: run a macro program over a virtual canvas
    - Preview raster: (HEIGHT, WIDTH, 3) uint8 RGB image of the result
    - Mark reconstruction: boolean grid of cells left dark
    - Row verification: rows whose replay differs from the source marks
    - Time estimation: sum of command durations

Used by:
    - Pipeline: preview PNG next to each macro file
    - Tests: the replayed raster is the correctness oracle for the planner

Colour encoding:
    background (never visited)    blue   (0, 0, 255)
    visited, nothing drawn        white  (black when inverted)
    drawn with A                  black
    drawn with B                  white

Tracks:
    - Cursor position (x, y), starting at the top-left cell
    - Executed and skipped (idempotent) command counts

Usage:
    sim = CommandReplaySimulator(Polarity.NORMAL)
    result = sim.run(program)
    save_preview(result.raster, "macro_preview.png")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Iterable, Tuple, Union

import numpy as np

from splat_control.macro_ir.commands import (
    DIRECTIONAL_BUTTONS,
    Button,
    Command,
    Polarity,
)
from splat_control.raster.canvas import HEIGHT, WIDTH
from src.utils.fs import atomic_save_image

logger = logging.getLogger(__name__)

BLUE = (0, 0, 255)
WHITE = (255, 255, 255)
BLACK = (0, 0, 0)

_DELTAS = {
    Button.DOWN: (0, 1),
    Button.LEFT: (-1, 0),
    Button.RIGHT: (1, 0),
}


class ReplayError(Exception):
    """Raised when a program cannot be replayed (planner defect)."""

    pass


@dataclass(frozen=True)
class ReplayResult:
    """Outcome of a replay.

    Attributes
    ----------
    raster : np.ndarray
        ``(HEIGHT, WIDTH, 3)`` uint8 RGB preview.
    cursor : Tuple[int, int]
        Final ``(x, y)``.
    executed : int
        Commands applied.
    skipped : int
        Idempotent commands disregarded.
    time_estimate_s : Decimal
        Sum of every command duration, skipped ones included (the
        device still spends that time).
    """

    raster: np.ndarray
    cursor: Tuple[int, int]
    executed: int
    skipped: int
    time_estimate_s: Decimal


# ============================================================================
# SIMULATOR
# ============================================================================

class CommandReplaySimulator:
    """Virtual canvas driven by macro commands.

    Parameters
    ----------
    polarity : Polarity
        Only affects the colour of visited-but-undrawn cells: white for
        NORMAL, black for INVERTED (the canvas was pre-darkened).
    strict : bool
        Reject moves past the canvas edge.  With ``strict=False`` such a
        move leaves the cursor in place, as on the device; used for macro
        files, where the idempotent hint is not recorded.
    """

    def __init__(self, polarity: Polarity = Polarity.NORMAL, strict: bool = True):
        self.polarity = polarity
        self.strict = strict
        self.visited_color = BLACK if polarity is Polarity.INVERTED else WHITE
        self.raster = np.empty((HEIGHT, WIDTH, 3), dtype=np.uint8)
        self.x = 0
        self.y = 0
        self.executed = 0
        self.skipped = 0
        self.total_time = Decimal(0)
        self.reset()

    def reset(self) -> None:
        """Fill the canvas with background and park the cursor at (0, 0)."""
        self.raster[:, :] = BLUE
        self.x = 0
        self.y = 0
        self.executed = 0
        self.skipped = 0
        self.total_time = Decimal(0)
        self.raster[0, 0] = self.visited_color

    def execute(self, command: Command, index: int | None = None) -> None:
        """Apply a single command.

        Parameters
        ----------
        command : Command
            Command to apply.
        index : int, optional
            Position in the program, for error messages.

        Raises
        ------
        ReplayError
            If the command holds several directions, or moves the cursor
            off the canvas in strict mode.
        """
        self.total_time += command.duration
        if command.idempotent:
            self.skipped += 1
            return

        where = f"command {index}" if index is not None else f"command {self.executed}"
        a_held = command.holds(Button.A)
        b_held = command.holds(Button.B)

        if a_held:
            self.raster[self.y, self.x] = BLACK
        if b_held:
            self.raster[self.y, self.x] = WHITE

        moves = [b for b in command.buttons if b in DIRECTIONAL_BUTTONS]
        if len(moves) > 1:
            raise ReplayError(
                f"{where} holds {len(moves)} directions: "
                f"{[b.token for b in moves]}"
            )

        if moves:
            dx, dy = _DELTAS[moves[0]]
            nx, ny = self.x + dx, self.y + dy
            if not (0 <= nx < WIDTH and 0 <= ny < HEIGHT):
                if self.strict:
                    raise ReplayError(
                        f"{where} moves cursor off canvas to ({nx}, {ny})"
                    )
                # Pressing into the edge does nothing
                self.executed += 1
                return
            self.x, self.y = nx, ny
            if a_held:
                self.raster[ny, nx] = BLACK
            if b_held:
                self.raster[ny, nx] = WHITE
            if not (a_held or b_held):
                self.raster[ny, nx] = self.visited_color

        self.executed += 1

    def run(self, program: Iterable[Command]) -> ReplayResult:
        """Replay *program* from a fresh canvas.

        Returns
        -------
        ReplayResult
            Preview raster, final cursor and counters.
        """
        self.reset()
        for i, command in enumerate(program):
            self.execute(command, index=i)

        logger.debug(
            "Replay complete: %d executed, %d skipped, cursor=(%d, %d), %.1fs",
            self.executed, self.skipped, self.x, self.y, self.total_time,
        )
        return ReplayResult(
            raster=self.raster.copy(),
            cursor=(self.x, self.y),
            executed=self.executed,
            skipped=self.skipped,
            time_estimate_s=self.total_time,
        )


# ============================================================================
# CONVENIENCE FUNCTIONS
# ============================================================================

def render_preview(
    program: Iterable[Command],
    polarity: Polarity = Polarity.NORMAL,
) -> np.ndarray:
    """Replay *program* and return the preview raster."""
    return CommandReplaySimulator(polarity).run(program).raster


def reconstruct_marks(
    raster: np.ndarray,
    polarity: Polarity = Polarity.NORMAL,
) -> np.ndarray:
    """Boolean ``(HEIGHT, WIDTH)`` grid of cells that end up dark.

    NORMAL starts from a light canvas, so only black cells are dark.
    INVERTED starts from a pre-darkened canvas, so everything except the
    cells painted white stays dark, background included.
    """
    if polarity is Polarity.INVERTED:
        return ~np.all(raster == np.array(WHITE, dtype=np.uint8), axis=-1)
    return np.all(raster == np.array(BLACK, dtype=np.uint8), axis=-1)


def verify_rows(
    raster: np.ndarray,
    marks: np.ndarray,
    polarity: Polarity,
    rows: Iterable[int],
) -> list[int]:
    """Rows whose replayed result differs from *marks*.

    Parameters
    ----------
    raster : np.ndarray
        Replayed preview raster.
    marks : np.ndarray
        Expected ``(HEIGHT, WIDTH)`` boolean marks.
    polarity : Polarity
        Polarity the program was planned for.
    rows : Iterable[int]
        Rows the program was required to reproduce.

    Returns
    -------
    list[int]
        Sorted mismatching row indexes; empty when the plan is faithful.
    """
    dark = reconstruct_marks(raster, polarity)
    return sorted(
        y for y in rows if not np.array_equal(dark[y], np.asarray(marks[y], dtype=bool))
    )


def save_preview(raster: np.ndarray, path: Union[str, Path]) -> Path:
    """Write a preview raster as an image (format from the extension)."""
    path = Path(path)
    atomic_save_image(raster, path)
    logger.info("Wrote preview to %s", path)
    return path
