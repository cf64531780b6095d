"""Two-level canvas, row extents and run-length encoding.

The drawable area is a fixed ``WIDTH x HEIGHT`` grid.  Each cell holds a
boolean *mark* (the source pixel is dark).  Which mark value actually
gets drawn depends on the ``Polarity`` chosen by the planner.

Pixel classification uses Rec. 709 luminance coefficients::

    L = (0.2126 * R + 0.7152 * G + 0.0722 * B) / 255
    mark = L < 0.5

evaluated in single precision so that borderline colours classify the
same way as the macros already in circulation.

Intervals
---------
An interval is an inclusive ``(lo, hi)`` pair of x indexes with
``lo <= hi``.  The traversal direction decides whether it is walked
``lo -> hi`` (RIGHT) or ``hi -> lo`` (LEFT).
"""

from __future__ import annotations

from dataclasses import dataclass
from itertools import groupby

import numpy as np

from splat_control.macro_ir.commands import Polarity, ScanDirection

WIDTH = 320
HEIGHT = 120

_LUMA = np.array([0.2126, 0.7152, 0.0722], dtype=np.float32)
_THRESHOLD = np.float32(0.5)

Interval = tuple[int, int]


# ---------------------------------------------------------------------------
# Pixel classification
# ---------------------------------------------------------------------------


def classify_rgb(rgb: np.ndarray) -> np.ndarray:
    """Classify an RGB(A) image into marks.

    Parameters
    ----------
    rgb : np.ndarray
        Shape ``(H, W, 3)`` or ``(H, W, 4)``, channel values 0..255.
        Alpha is ignored.

    Returns
    -------
    np.ndarray
        Boolean array ``(H, W)``, ``True`` where luminance < 0.5.
    """
    rgb = np.asarray(rgb)
    if rgb.ndim != 3 or rgb.shape[2] not in (3, 4):
        raise ValueError(f"Expected shape (H, W, 3) or (H, W, 4), got {rgb.shape}")
    channels = rgb[..., :3].astype(np.float32)
    r, g, b = channels[..., 0], channels[..., 1], channels[..., 2]
    luminance = (r * _LUMA[0] + g * _LUMA[1] + b * _LUMA[2]) / np.float32(255)
    return luminance < _THRESHOLD


def is_marked(r: int, g: int, b: int) -> bool:
    """Return ``True`` if the colour ``(r, g, b)`` counts as a mark."""
    return bool(classify_rgb(np.array([[[r, g, b]]], dtype=np.uint8))[0, 0])


# ---------------------------------------------------------------------------
# Canvas
# ---------------------------------------------------------------------------


class Canvas:
    """Immutable ``HEIGHT x WIDTH`` grid of marks.

    Parameters
    ----------
    marks : np.ndarray
        Boolean-like array of shape ``(HEIGHT, WIDTH)``.  The canvas keeps
        a read-only copy.
    """

    __slots__ = ("_marks",)

    def __init__(self, marks: np.ndarray) -> None:
        marks = np.array(marks, dtype=bool)
        if marks.shape != (HEIGHT, WIDTH):
            raise ValueError(
                f"Canvas must be {WIDTH} x {HEIGHT}, got array shape {marks.shape}"
            )
        marks.setflags(write=False)
        self._marks = marks

    @classmethod
    def from_rgb(cls, rgb: np.ndarray) -> Canvas:
        """Build a canvas by classifying every pixel of an RGB image."""
        return cls(classify_rgb(rgb))

    @classmethod
    def blank(cls) -> Canvas:
        """Canvas without any mark (an all-white image)."""
        return cls(np.zeros((HEIGHT, WIDTH), dtype=bool))

    @property
    def marks(self) -> np.ndarray:
        """Read-only ``(HEIGHT, WIDTH)`` boolean view."""
        return self._marks

    def mark(self, x: int, y: int) -> bool:
        return bool(self._marks[y, x])

    def row(self, y: int) -> np.ndarray:
        return self._marks[y]

    def flipped(self) -> Canvas:
        """Return the canvas with every mark inverted."""
        return Canvas(~self._marks)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Canvas):
            return NotImplemented
        return bool(np.array_equal(self._marks, other._marks))

    def __hash__(self) -> int:
        return hash(self._marks.tobytes())

    def __repr__(self) -> str:
        return f"Canvas(marked={int(self._marks.sum())})"


# ---------------------------------------------------------------------------
# Row extents
# ---------------------------------------------------------------------------


def row_draw_range(
    canvas: Canvas,
    y: int,
    polarity: Polarity,
    cautious: bool = False,
) -> Interval | None:
    """Smallest interval covering every cell of row *y* that must be drawn.

    Parameters
    ----------
    canvas : Canvas
        Source marks.
    y : int
        Row index.
    polarity : Polarity
        Decides which mark value is drawn.
    cautious : bool
        When the row has anything to draw, return the full row instead so
        the sweep always reaches both canvas edges.

    Returns
    -------
    Interval | None
        ``(lo, hi)`` or ``None`` when nothing in the row is drawn.
    """
    active = canvas.row(y) != (polarity is Polarity.INVERTED)
    hits = np.flatnonzero(active)
    if hits.size == 0:
        return None
    if cautious:
        return (0, WIDTH - 1)
    return (int(hits[0]), int(hits[-1]))


# ---------------------------------------------------------------------------
# Run-length encoding
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RunSegment:
    """Maximal run of equal marks along a sweep."""

    length: int
    mark: bool

    def __post_init__(self) -> None:
        if not 1 <= self.length <= WIDTH:
            raise ValueError(f"Illegal segment length {self.length}")


@dataclass(frozen=True, slots=True)
class EncodedLine:
    """Run segments of one sweep, in traversal order."""

    segments: tuple[RunSegment, ...]
    direction: ScanDirection

    @property
    def length(self) -> int:
        """Number of cells covered by the sweep."""
        return sum(seg.length for seg in self.segments)


def run_length_encode(
    canvas: Canvas,
    y: int,
    interval: Interval,
    direction: ScanDirection,
) -> EncodedLine:
    """Split row *y* over *interval* into alternating mark runs.

    Parameters
    ----------
    canvas : Canvas
        Source marks.
    y : int
        Row index.
    interval : Interval
        Inclusive ``(lo, hi)`` with ``0 <= lo <= hi < WIDTH``.
    direction : ScanDirection
        RIGHT walks ``lo -> hi``, LEFT walks ``hi -> lo``.

    Returns
    -------
    EncodedLine
        Segments in traversal order.
    """
    lo, hi = interval
    if not 0 <= lo <= hi < WIDTH:
        raise ValueError(f"Invalid interval {interval} for width {WIDTH}")

    cells = canvas.row(y)[lo:hi + 1]
    if direction is ScanDirection.LEFT:
        cells = cells[::-1]

    segments = tuple(
        RunSegment(length=sum(1 for _ in run), mark=bool(mark))
        for mark, run in groupby(cells.tolist())
    )
    return EncodedLine(segments=segments, direction=direction)
