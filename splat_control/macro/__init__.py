"""
Macro text module.

Converts macro programs to the line-oriented text consumed by the
controller-emulation player, and parses such text back for replay.
"""

from splat_control.macro.serializer import (
    format_command,
    load_macro,
    parse_command,
    parse_macro,
    serialize,
    write_macro,
)

__all__ = [
    "format_command",
    "load_macro",
    "parse_command",
    "parse_macro",
    "serialize",
    "write_macro",
]
