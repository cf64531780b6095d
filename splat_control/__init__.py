"""
Splat Control Package.

Compiles a two-level 320x120 image into controller macros that draw it
one cell at a time, and replays macros to render previews.

Subpackages:
    raster: Canvas of marks, row extents, run-length encoding
    macro_ir: Command vocabulary shared by planner, serializer and simulator
    planner: Serpentine traversal planner and polarity selection
    macro: Macro text serialization
    simulator: Replay of macros over a virtual canvas
    configs: Configuration loading and planning options
"""

__all__ = ["raster", "macro_ir", "planner", "macro", "simulator", "configs"]
