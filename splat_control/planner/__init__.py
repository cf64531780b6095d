"""
Traversal planning module.

Converts a canvas and planning options into a macro program for one
polarity, and recommends the shorter of the two polarities.
"""

from splat_control.planner.planner import (
    PolaritySelection,
    emit_encoded_line,
    plan_both,
    plan_macro,
    select_polarity,
    sweep_interval,
)

__all__ = [
    "PolaritySelection",
    "emit_encoded_line",
    "plan_both",
    "plan_macro",
    "select_polarity",
    "sweep_interval",
]
