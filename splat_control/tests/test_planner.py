"""Tests for the serpentine planner.

Covers:
    - Draw-run emission (2 commands per cell of an active run)
    - Sweep intervals, including an upcoming extent behind the cursor
    - Reference images with hand-counted command totals
    - Replay fidelity on random canvases, repair rows and partial rows
    - Polarity symmetry, cautious mode and polarity selection
"""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path

import numpy as np
import pytest

from splat_control.configs.options import PlanOptions
from splat_control.macro_ir.commands import (
    Button,
    Command,
    Polarity,
    ScanDirection,
)
from splat_control.planner.planner import (
    CAUTIOUS_EDGE_PULSES,
    emit_encoded_line,
    plan_both,
    plan_macro,
    select_polarity,
    sweep_interval,
)
from splat_control.raster.canvas import (
    HEIGHT,
    WIDTH,
    Canvas,
    EncodedLine,
    RunSegment,
)
from splat_control.simulator.replay import (
    BLUE,
    WHITE,
    CommandReplaySimulator,
    verify_rows,
)
from src.utils.fs import load_rgb_image

GOLDEN_DIR = Path(__file__).resolve().parents[2] / "ci" / "golden_tests"

D = Decimal("0.1")
FRAMING = 1 + 2 * (HEIGHT - 1) + 2 + 1  # start, Down pulses, MINUS pulse, end


def _line(*segments: tuple[int, bool], direction=ScanDirection.RIGHT) -> EncodedLine:
    return EncodedLine(
        segments=tuple(RunSegment(n, m) for n, m in segments),
        direction=direction,
    )


def _count(program, button: Button) -> int:
    return sum(1 for c in program if c.holds(button))


def _random_canvas(seed: int, density: float = 0.3) -> Canvas:
    rng = np.random.default_rng(seed)
    return Canvas(rng.random((HEIGHT, WIDTH)) < density)


# ---------------------------------------------------------------------------
# Line emission
# ---------------------------------------------------------------------------


class TestEmitEncodedLine:
    def test_single_cell_is_a_pulse(self) -> None:
        out = emit_encoded_line(_line((1, True)), Polarity.NORMAL, D)
        assert out == [Command((Button.A,), D), Command((), D)]

    def test_run_of_two(self) -> None:
        out = emit_encoded_line(_line((2, True)), Polarity.NORMAL, D)
        assert [c.buttons for c in out] == [
            (Button.A,),
            (Button.A, Button.RIGHT),
            (Button.A,),
            (),
        ]

    @pytest.mark.parametrize("length", [1, 2, 3, 5, WIDTH])
    def test_run_costs_two_per_cell(self, length) -> None:
        out = emit_encoded_line(_line((length, True)), Polarity.NORMAL, D)
        assert len(out) == 2 * length
        assert _count(out, Button.RIGHT) == length - 1
        assert all(c.holds(Button.A) for c in out[:-1])

    def test_inactive_run_only_moves(self) -> None:
        out = emit_encoded_line(_line((4, False)), Polarity.NORMAL, D)
        assert len(out) == 6
        assert _count(out, Button.RIGHT) == 3
        assert _count(out, Button.A) == 0

    def test_segment_boundaries_step(self) -> None:
        line = _line((3, False), (2, True), (1, False), direction=ScanDirection.LEFT)
        out = emit_encoded_line(line, Polarity.NORMAL, D)
        # 2 moves + step + run of 2 + step + nothing
        assert len(out) == 4 + 2 + 4 + 2
        assert _count(out, Button.LEFT) == line.length - 1
        assert _count(out, Button.RIGHT) == 0

    def test_inverted_draws_unmarked_with_b(self) -> None:
        out = emit_encoded_line(_line((2, True), (1, False)), Polarity.INVERTED, D)
        assert _count(out, Button.A) == 0
        assert _count(out, Button.B) == 1
        assert len(out) == 2 + 2 + 2


# ---------------------------------------------------------------------------
# Sweep interval
# ---------------------------------------------------------------------------


class TestSweepInterval:
    def test_right_covers_both_rows(self) -> None:
        assert sweep_interval(10, ScanDirection.RIGHT, (10, 50), (60, 100)) == (10, 100)

    def test_left_covers_both_rows(self) -> None:
        assert sweep_interval(100, ScanDirection.LEFT, (20, 150), (50, 60)) == (20, 100)

    def test_only_upcoming(self) -> None:
        assert sweep_interval(0, ScanDirection.RIGHT, None, (160, 160)) == (0, 160)

    def test_upcoming_behind_cursor_right(self) -> None:
        assert sweep_interval(10, ScanDirection.RIGHT, None, (0, 5)) == (10, 10)

    def test_upcoming_behind_cursor_left(self) -> None:
        assert sweep_interval(100, ScanDirection.LEFT, None, (150, 200)) == (100, 100)

    def test_cautious_extents(self) -> None:
        full = (0, WIDTH - 1)
        assert sweep_interval(0, ScanDirection.RIGHT, full, None) == full
        assert sweep_interval(WIDTH - 1, ScanDirection.LEFT, None, full) == full

    def test_requires_an_extent(self) -> None:
        with pytest.raises(ValueError, match="at least one extent"):
            sweep_interval(0, ScanDirection.RIGHT, None, None)


# ---------------------------------------------------------------------------
# Reference images
# ---------------------------------------------------------------------------


class TestReferenceImages:
    def test_blank_canvas(self, options) -> None:
        program = plan_macro(Canvas.blank(), options, Polarity.NORMAL)
        assert len(program) == FRAMING == 242
        assert _count(program, Button.A) == 0
        assert _count(program, Button.DOWN) == HEIGHT - 1

    def test_framing(self, options) -> None:
        program = plan_macro(Canvas.blank(), options, Polarity.NORMAL)
        assert program[0] == Command((), Decimal("3.0"))
        assert program[-3] == Command((Button.MINUS,), D)
        assert program[-2] == Command((), D)
        assert program[-1] == Command((), Decimal("5.0"))

    def test_blank_canvas_inverted_sweeps_every_row(self, options) -> None:
        program = plan_macro(Canvas.blank(), options, Polarity.INVERTED)
        assert len(program) == FRAMING + HEIGHT * 2 * WIDTH

    def test_single_dot(self, options, dot_canvas) -> None:
        program = plan_macro(dot_canvas, options, Polarity.NORMAL)
        # Row 59 travels 160 cells right, row 60 draws one cell
        assert len(program) == FRAMING + 2 * 160 + 2 == 564
        assert _count(program, Button.A) == 1
        assert _count(program, Button.RIGHT) == 160
        assert _count(program, Button.LEFT) == 0

        result = CommandReplaySimulator(Polarity.NORMAL).run(program)
        assert result.cursor == (160, HEIGHT - 1)
        assert tuple(result.raster[60, 160]) == (0, 0, 0)

    def test_upcoming_behind_cursor_only_flips(self, options, make_canvas) -> None:
        # Row 1 is empty and row 2 lies to the right of where row 0 ends
        canvas = make_canvas((50, 0), (200, 2))
        program = plan_macro(canvas, options, Polarity.NORMAL)
        row0 = 2 * 49 + 2 + 2
        row2 = 2 * 149 + 2 + 2
        assert len(program) == FRAMING + row0 + row2
        result = CommandReplaySimulator(Polarity.NORMAL).run(program)
        assert verify_rows(result.raster, canvas.marks, Polarity.NORMAL, range(HEIGHT)) == []

    def test_checkerboard_repair(self, checker_canvas) -> None:
        repair = frozenset({0, 5, 24, 64, 96, 115, 119})
        options = PlanOptions(repair_rows=repair)
        program = plan_macro(checker_canvas, options, Polarity.NORMAL)
        # 11 sweeps of seven 40-cell blocks, one of six, one full row of eight
        assert len(program) == FRAMING + 11 * 566 + 484 + 646 == 7598

        result = CommandReplaySimulator(Polarity.NORMAL).run(program)
        raster = result.raster
        assert verify_rows(raster, checker_canvas.marks, Polarity.NORMAL, repair) == []

        # 13 sweeps cover 3640 cells, Down pulses land on 107 cells of unswept rows
        visited = ~np.all(raster == np.array(BLUE, dtype=np.uint8), axis=-1)
        assert int(visited.sum()) == 3640 + 107
        assert int(np.all(raster == 0, axis=-1).sum()) == 2040

        # Rows 1-3 are only crossed vertically at x=279
        for y in (1, 2, 3):
            assert tuple(raster[y, 279]) == WHITE
            others = np.delete(raster[y], 279, axis=0)
            assert np.all(others == np.array(BLUE, dtype=np.uint8))

    def test_checkerboard_repair_preview_matches_golden(self, checker_canvas) -> None:
        options = PlanOptions(repair_rows=frozenset({0, 5, 24, 64, 96, 115, 119}))
        program = plan_macro(checker_canvas, options, Polarity.NORMAL)
        raster = CommandReplaySimulator(Polarity.NORMAL).run(program).raster

        golden = load_rgb_image(GOLDEN_DIR / "checker_repair_preview.png")
        assert golden.shape == raster.shape
        mismatched = np.argwhere(np.any(golden != raster, axis=-1))
        assert np.array_equal(raster, golden), f"first mismatched (y, x): {mismatched[:5].tolist()}"


# ---------------------------------------------------------------------------
# Replay fidelity
# ---------------------------------------------------------------------------


class TestReplayFidelity:
    @pytest.mark.parametrize("seed", [0, 1, 2])
    @pytest.mark.parametrize("polarity", list(Polarity))
    def test_random_canvas(self, seed, polarity, options) -> None:
        canvas = _random_canvas(seed)
        program = plan_macro(canvas, options, polarity)
        result = CommandReplaySimulator(polarity).run(program)
        assert verify_rows(result.raster, canvas.marks, polarity, range(HEIGHT)) == []
        assert result.skipped == 0

    @pytest.mark.parametrize("polarity", list(Polarity))
    def test_sparse_canvas(self, polarity, options) -> None:
        canvas = _random_canvas(7, density=0.002)
        program = plan_macro(canvas, options, polarity)
        result = CommandReplaySimulator(polarity).run(program)
        assert verify_rows(result.raster, canvas.marks, polarity, range(HEIGHT)) == []

    @pytest.mark.parametrize("polarity", list(Polarity))
    def test_repair_rows(self, polarity) -> None:
        canvas = _random_canvas(3)
        repair = frozenset({0, 1, 17, 18, 60, 99, 118})
        options = PlanOptions(repair_rows=repair)
        program = plan_macro(canvas, options, polarity)
        result = CommandReplaySimulator(polarity).run(program)
        assert verify_rows(result.raster, canvas.marks, polarity, repair) == []

    @pytest.mark.parametrize("polarity", list(Polarity))
    def test_cautious(self, polarity) -> None:
        canvas = _random_canvas(4, density=0.05)
        options = PlanOptions(cautious=True)
        program = plan_macro(canvas, options, polarity)
        result = CommandReplaySimulator(polarity).run(program)
        assert verify_rows(result.raster, canvas.marks, polarity, range(HEIGHT)) == []
        assert result.skipped > 0


# ---------------------------------------------------------------------------
# Row selection
# ---------------------------------------------------------------------------


class TestRowSelection:
    def test_last_row_only(self, options, make_canvas) -> None:
        canvas = make_canvas((10, HEIGHT - 1))
        repair = PlanOptions(repair_rows=frozenset({HEIGHT - 1}))
        program = plan_macro(canvas, repair, Polarity.NORMAL)
        assert len(program) == FRAMING + 2 * 10 + 2
        assert len(program) == len(plan_macro(canvas, options, Polarity.NORMAL))

        # The final Down comes before the last row's draw
        last_down = max(i for i, c in enumerate(program) if c.holds(Button.DOWN))
        first_draw = min(i for i, c in enumerate(program) if c.holds(Button.A))
        assert last_down < first_draw

    def test_skipped_rows_are_not_drawn(self, make_canvas) -> None:
        canvas = make_canvas((10, 5), (20, 50))
        options = PlanOptions(repair_rows=frozenset({50}))
        program = plan_macro(canvas, options, Polarity.NORMAL)
        assert _count(program, Button.A) == 1

    def test_partial_rows_stop_early(self, make_canvas) -> None:
        canvas = make_canvas((5, 30))
        options = PlanOptions(partial_rows=(10, 20))
        program = plan_macro(canvas, options, Polarity.NORMAL)
        assert len(program) == 1 + 2 * 20 + 2 + 1
        result = CommandReplaySimulator(Polarity.NORMAL).run(program)
        assert result.cursor == (0, 20)

    @pytest.mark.parametrize("polarity", list(Polarity))
    def test_partial_rows_draw_band(self, polarity) -> None:
        canvas = _random_canvas(5)
        options = PlanOptions(partial_rows=(40, 79))
        program = plan_macro(canvas, options, polarity)
        assert _count(program, Button.DOWN) == 79
        result = CommandReplaySimulator(polarity).run(program)
        assert result.cursor[1] == 79
        assert verify_rows(result.raster, canvas.marks, polarity, range(40, 80)) == []


# ---------------------------------------------------------------------------
# Polarity and cautious mode
# ---------------------------------------------------------------------------


class TestPolarity:
    def test_flipped_canvas_swaps_draw_button(self, options) -> None:
        canvas = _random_canvas(11)
        inverted = plan_macro(canvas, options, Polarity.INVERTED)
        normal = plan_macro(canvas.flipped(), options, Polarity.NORMAL)
        assert len(inverted) == len(normal)
        swapped = tuple(
            Command(
                tuple(Button.A if b is Button.B else b for b in c.buttons),
                c.duration,
                c.idempotent,
            )
            for c in inverted
        )
        assert swapped == normal

    def test_plan_both(self, options, dot_canvas) -> None:
        programs = plan_both(dot_canvas, options)
        assert set(programs) == set(Polarity)
        assert programs[Polarity.NORMAL] == plan_macro(dot_canvas, options, Polarity.NORMAL)

    def test_cautious_is_longer(self) -> None:
        canvas = _random_canvas(12, density=0.05)
        plain = plan_macro(canvas, PlanOptions(), Polarity.NORMAL)
        cautious = plan_macro(canvas, PlanOptions(cautious=True), Polarity.NORMAL)
        assert len(cautious) > len(plain)

    def test_cautious_edge_pulses(self, dot_canvas) -> None:
        program = plan_macro(dot_canvas, PlanOptions(cautious=True), Polarity.NORMAL)
        hints = [c for c in program if c.idempotent]
        # Rows 59 and 60 are swept
        assert len(hints) == 2 * 2 * CAUTIOUS_EDGE_PULSES
        assert all(c.is_neutral or c.holds(Button.RIGHT) or c.holds(Button.LEFT) for c in hints)

    def test_duration_propagates(self, dot_canvas) -> None:
        options = PlanOptions(press_duration=Decimal("0.05"))
        program = plan_macro(dot_canvas, options, Polarity.NORMAL)
        assert {c.duration for c in program[1:-1]} == {Decimal("0.05")}


class TestSelectPolarity:
    def test_near_tie_prefers_normal(self) -> None:
        sel = select_polarity(1000, 995)
        assert sel.recommended is Polarity.NORMAL
        assert sel.close
        assert sel.percent_difference == 0.5

    def test_inverted_shorter(self) -> None:
        sel = select_polarity(1000, 800)
        assert sel.recommended is Polarity.INVERTED
        assert not sel.close
        assert sel.percent_difference == 20.0

    def test_normal_shorter(self) -> None:
        sel = select_polarity(800, 1000)
        assert sel.recommended is Polarity.NORMAL
        assert not sel.close

    def test_rounding(self) -> None:
        assert select_polarity(3, 2).percent_difference == 33.33

    def test_equal(self) -> None:
        sel = select_polarity(242, 242)
        assert sel.recommended is Polarity.NORMAL
        assert sel.close
        assert sel.percent_difference == 0.0
