"""
Macro Intermediate Representation module.

Defines controller commands as immutable dataclasses.  This vocabulary
is the contract between the traversal planner, the macro serializer and
the replay simulator.
"""

from splat_control.macro_ir.commands import (
    DIRECTIONAL_BUTTONS,
    Button,
    Command,
    MacroProgram,
    Polarity,
    ScanDirection,
    neutral,
    pulse,
)

__all__ = [
    "DIRECTIONAL_BUTTONS",
    "Button",
    "Command",
    "MacroProgram",
    "Polarity",
    "ScanDirection",
    "neutral",
    "pulse",
]
