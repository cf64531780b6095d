"""Shared fixtures for splat_control tests."""

from __future__ import annotations

import numpy as np
import pytest

from splat_control.configs.options import PlanOptions
from splat_control.raster.canvas import HEIGHT, WIDTH, Canvas


def _canvas_with(*cells: tuple[int, int]) -> Canvas:
    marks = np.zeros((HEIGHT, WIDTH), dtype=bool)
    for x, y in cells:
        marks[y, x] = True
    return Canvas(marks)


@pytest.fixture
def make_canvas():
    """Factory: blank canvas with the given ``(x, y)`` cells marked."""
    return _canvas_with


@pytest.fixture
def options() -> PlanOptions:
    return PlanOptions()


@pytest.fixture
def dot_canvas() -> Canvas:
    return _canvas_with((160, 60))


@pytest.fixture
def checker_canvas() -> Canvas:
    """40-cell checkerboard, marked where ``(x // 40 + y // 40)`` is even."""
    ys, xs = np.mgrid[0:HEIGHT, 0:WIDTH]
    return Canvas(((xs // 40) + (ys // 40)) % 2 == 0)
