"""
Raster module.

Canvas of marks, pixel classification, row extents and run-length
encoding of row sweeps.
"""

from splat_control.raster.canvas import (
    HEIGHT,
    WIDTH,
    Canvas,
    EncodedLine,
    Interval,
    RunSegment,
    classify_rgb,
    is_marked,
    row_draw_range,
    run_length_encode,
)

__all__ = [
    "HEIGHT",
    "WIDTH",
    "Canvas",
    "EncodedLine",
    "Interval",
    "RunSegment",
    "classify_rgb",
    "is_marked",
    "row_draw_range",
    "run_length_encode",
]
