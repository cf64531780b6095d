"""Shared infrastructure for the splat macro compiler.

Architecture layers (strict one-way dependency):
    splat_control/scripts/ → splat_control/{pipeline,planner,simulator,macro}/ → src/utils/

Key invariants:
    - Canvas is a fixed 320 x 120 grid of marks
    - Durations are Decimal end-to-end, written verbatim into macros
    - YAML-only configs
"""

__version__ = "1.0.0"
