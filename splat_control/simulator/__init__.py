"""
Replay simulator module.

Replays macro programs over a virtual canvas to verify plans and render
previews.
"""

from splat_control.simulator.replay import (
    BLACK,
    BLUE,
    WHITE,
    CommandReplaySimulator,
    ReplayError,
    ReplayResult,
    reconstruct_marks,
    render_preview,
    save_preview,
    verify_rows,
)

__all__ = [
    "BLACK",
    "BLUE",
    "WHITE",
    "CommandReplaySimulator",
    "ReplayError",
    "ReplayResult",
    "reconstruct_marks",
    "render_preview",
    "save_preview",
    "verify_rows",
]
