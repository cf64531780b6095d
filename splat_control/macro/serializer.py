"""Macro serializer -- macro programs to controller-player text.

One line per command::

    <token> [<token> ...] <duration>s     buttons held
    <duration>s                           neutral frame

Tokens appear in press order (``A DPAD_RIGHT 0.1s``).  Durations are
``Decimal`` and are written verbatim, so ``Decimal("0.10")`` stays
``0.10s``.  The idempotent hint is a replay concern only and never
changes the text, and parsed macros replay every line.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from io import StringIO
from pathlib import Path
from typing import Iterable

from splat_control.macro_ir.commands import Button, Command, MacroProgram
from src.utils.fs import atomic_write_text

logger = logging.getLogger(__name__)

_BUTTONS_BY_TOKEN = {button.token: button for button in Button}


def format_command(command: Command) -> str:
    """Render one command as a macro line (no newline)."""
    duration = f"{command.duration}s"
    if command.is_neutral:
        return duration
    tokens = " ".join(button.token for button in command.buttons)
    return f"{tokens} {duration}"


def serialize(program: Iterable[Command]) -> str:
    """Render a whole program, one newline-terminated line per command."""
    buf = StringIO()
    for command in program:
        buf.write(format_command(command))
        buf.write("\n")
    return buf.getvalue()


def parse_command(line: str) -> Command:
    """Parse one macro line back into a command.

    Raises
    ------
    ValueError
        If the duration or a button token is not recognised.
    """
    parts = line.split()
    if not parts or not parts[-1].endswith("s"):
        raise ValueError(f"Macro line has no duration: {line!r}")
    try:
        duration = Decimal(parts[-1][:-1])
    except InvalidOperation as exc:
        raise ValueError(f"Invalid duration in macro line: {line!r}") from exc
    try:
        buttons = tuple(_BUTTONS_BY_TOKEN[token] for token in parts[:-1])
    except KeyError as exc:
        raise ValueError(f"Unknown button {exc} in macro line: {line!r}") from exc
    return Command(buttons=buttons, duration=duration)


def parse_macro(text: str) -> MacroProgram:
    """Parse macro text, skipping blank lines.

    The idempotent hint is not part of the text, so every parsed command
    is replayed.
    """
    return tuple(parse_command(line) for line in text.splitlines() if line.strip())


def load_macro(path: str | Path) -> MacroProgram:
    """Read and parse a macro file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Macro file not found: {path}")
    program = parse_macro(path.read_text(encoding="utf-8"))
    logger.info("Loaded %d macro lines from %s", len(program), path)
    return program


def write_macro(program: Iterable[Command], path: str | Path) -> Path:
    """Write *program* to *path* atomically.

    Returns
    -------
    Path
        The written file.
    """
    path = Path(path)
    text = serialize(program)
    atomic_write_text(path, text)
    logger.info("Wrote %d macro lines to %s", text.count("\n"), path)
    return path
