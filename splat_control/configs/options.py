"""Planning options -- one immutable record consumed by the planner.

``PlanOptions`` bundles everything a planning run depends on besides the
canvas and the polarity: frame durations, which rows to (re)draw, and
cautious mode.  It is a frozen pydantic model so invalid combinations
fail at construction with an actionable message.

Row selection
-------------
``repair_rows``
    Rows the planner must draw.  Every other row only gets the vertical
    pass-through.  ``None`` means every row.
``partial_rows``
    Inclusive ``(first, last)`` band.  Rows above ``first`` are passed
    through, rows in the band are drawn, and the macro ends after
    ``last`` without travelling further down.

The two selections are mutually exclusive.

Text input
----------
``build_options`` turns CLI-style strings (``"0.1"``, ``"78,99-102"``)
into a validated record, raising ``OptionsError`` that quotes the
offending token.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from splat_control.configs.loader import SplatConfig
from splat_control.raster.canvas import HEIGHT

logger = logging.getLogger(__name__)

DEFAULT_PRESS_DURATION = Decimal("0.1")
DEFAULT_START_DELAY = Decimal("3.0")
DEFAULT_END_DELAY = Decimal("5.0")


class OptionsError(ValueError):
    """Raised when user-supplied planning options are invalid."""

    pass


# ============================================================================
# OPTIONS RECORD
# ============================================================================

class PlanOptions(BaseModel):
    """Immutable planning configuration."""
    model_config = ConfigDict(frozen=True)

    press_duration: Decimal = Field(DEFAULT_PRESS_DURATION, gt=0, description="Press/release frame length (s)")
    start_delay: Decimal = Field(DEFAULT_START_DELAY, ge=0, description="Idle frame before the first command (s)")
    end_delay: Decimal = Field(DEFAULT_END_DELAY, ge=0, description="Idle frame after MINUS (s)")
    repair_rows: Optional[frozenset[int]] = Field(None, description="Rows to draw; None for all")
    partial_rows: Optional[Tuple[int, int]] = Field(None, description="Inclusive (first, last) row band")
    cautious: bool = Field(False, description="Full-row sweeps plus edge re-sync pulses")

    @field_validator('repair_rows')
    @classmethod
    def validate_repair_rows(cls, v):
        if v is None:
            return v
        if not v:
            raise ValueError("repair_rows must not be empty")
        bad = sorted(r for r in v if not 0 <= r < HEIGHT)
        if bad:
            raise ValueError(f"repair rows {bad} outside [0, {HEIGHT - 1}]")
        return v

    @field_validator('partial_rows')
    @classmethod
    def validate_partial_rows(cls, v):
        if v is None:
            return v
        first, last = v
        if not 0 <= first <= last < HEIGHT:
            raise ValueError(
                f"partial_rows must satisfy 0 <= first <= last <= {HEIGHT - 1}, got {v}"
            )
        return v

    @model_validator(mode='after')
    def validate_row_selection(self):
        if self.repair_rows is not None and self.partial_rows is not None:
            raise ValueError("repair_rows and partial_rows are mutually exclusive")
        return self

    @property
    def rows_to_draw(self) -> frozenset[int]:
        """Rows whose marks the planner must reproduce."""
        if self.partial_rows is not None:
            first, last = self.partial_rows
            return frozenset(range(first, last + 1))
        if self.repair_rows is not None:
            return self.repair_rows
        return frozenset(range(HEIGHT))

    @property
    def last_row(self) -> int:
        """Final row the cursor travels to."""
        if self.partial_rows is not None:
            return self.partial_rows[1]
        return HEIGHT - 1


# ============================================================================
# TEXT PARSING
# ============================================================================

def parse_row_range(token: str) -> Tuple[int, int]:
    """Parse ``"12"`` or ``"12-15"`` into an inclusive ``(first, last)``.

    Raises
    ------
    OptionsError
        If the token is malformed, reversed, or outside the canvas.
    """
    text = token.strip()
    try:
        if "-" in text:
            lo_text, hi_text = text.split("-")
            first, last = int(lo_text), int(hi_text)
        else:
            first = last = int(text)
    except ValueError as e:
        raise OptionsError(f'"{token}" is not a valid row or range') from e

    if not 0 <= first <= last < HEIGHT:
        raise OptionsError(
            f'"{token}" is outside image bounds (rows 0-{HEIGHT - 1}, ascending)'
        )
    return first, last


def parse_row_ranges(text: str) -> frozenset[int]:
    """Parse a comma-separated row list such as ``"78,99-102,105"``."""
    rows: set[int] = set()
    for token in text.split(","):
        first, last = parse_row_range(token)
        rows.update(range(first, last + 1))
    return frozenset(rows)


def parse_duration(text: str) -> Decimal:
    """Parse a positive press duration, keeping its decimal places."""
    try:
        value = Decimal(text.strip())
    except InvalidOperation as e:
        raise OptionsError(f'"{text}" is not a valid button press duration') from e
    if not value.is_finite() or value <= 0:
        raise OptionsError("Button press duration should be positive and non-zero")
    return value


def build_options(
    config: SplatConfig,
    duration_input: Optional[str] = None,
    repair_input: Optional[str] = None,
    partial_input: Optional[str] = None,
    cautious: bool = False,
) -> PlanOptions:
    """Validate CLI-style inputs and build the planning record.

    Parameters
    ----------
    config : SplatConfig
        Supplies default timings.
    duration_input : str, optional
        Press duration in seconds, e.g. ``"0.1"``.  Defaults to config.
    repair_input : str, optional
        Rows to repair, e.g. ``"78,99-102,105"``.  Defaults to all rows.
    partial_input : str, optional
        Single row band, e.g. ``"40-79"``.
    cautious : bool
        Enable cautious mode.

    Returns
    -------
    PlanOptions
        Validated options.

    Raises
    ------
    OptionsError
        If any input is invalid or the row selections conflict.
    """
    if repair_input is not None and partial_input is not None:
        raise OptionsError("Repair rows and partial rows cannot be combined")

    press_duration = (
        parse_duration(duration_input)
        if duration_input is not None
        else config.timing.press_duration_s
    )
    repair_rows = parse_row_ranges(repair_input) if repair_input is not None else None
    partial_rows = None
    if partial_input is not None:
        if "," in partial_input:
            raise OptionsError(f'"{partial_input}" must be a single row or range')
        partial_rows = parse_row_range(partial_input)

    try:
        options = PlanOptions(
            press_duration=press_duration,
            start_delay=config.timing.start_delay_s,
            end_delay=config.timing.end_delay_s,
            repair_rows=repair_rows,
            partial_rows=partial_rows,
            cautious=cautious,
        )
    except ValidationError as e:
        raise OptionsError(f"Invalid planning options: {e}") from e

    logger.debug(
        "Options: press=%ss rows=%d last_row=%d cautious=%s",
        options.press_duration, len(options.rows_to_draw), options.last_row, options.cautious,
    )
    return options
