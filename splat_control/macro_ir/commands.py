"""Macro IR commands -- the vocabulary between the planner and the macro file.

Every controller action is an immutable, slotted dataclass.  A
``Command`` holds a set of buttons for one duration; an empty button
set is a *neutral* frame (nothing pressed, the previous press is
released).

Pulses
------
Every discrete action (Down, Minus, an isolated move or draw) is a
*pulse*: the press frame immediately followed by a neutral frame of the
same duration.  A pulse always contributes exactly two commands.

Idempotent hint
---------------
Cautious mode appends extra move pulses that only matter on the real
device, where presses can be dropped.  They carry ``idempotent=True``;
the replay simulator skips them, the serializer ignores the flag.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from decimal import Decimal

# ---------------------------------------------------------------------------
# Buttons and directions
# ---------------------------------------------------------------------------


class Button(enum.Enum):
    """Controller buttons, valued by their macro token."""

    DOWN = "DPAD_DOWN"
    LEFT = "DPAD_LEFT"
    RIGHT = "DPAD_RIGHT"
    A = "A"
    B = "B"
    HOME = "HOME"
    MINUS = "MINUS"

    @property
    def token(self) -> str:
        return self.value


DIRECTIONAL_BUTTONS = frozenset({Button.DOWN, Button.LEFT, Button.RIGHT})


class ScanDirection(enum.Enum):
    """Horizontal traversal direction of a row sweep."""

    LEFT = "left"
    RIGHT = "right"

    @property
    def move_button(self) -> Button:
        return Button.LEFT if self is ScanDirection.LEFT else Button.RIGHT

    @property
    def step(self) -> int:
        """Signed x increment of one move in this direction."""
        return -1 if self is ScanDirection.LEFT else 1

    def flipped(self) -> ScanDirection:
        return ScanDirection.RIGHT if self is ScanDirection.LEFT else ScanDirection.LEFT


class Polarity(enum.Enum):
    """Which mark value gets drawn.

    ``NORMAL`` draws marked (dark) cells with A.  ``INVERTED`` draws
    unmarked cells with B, for a canvas that was filled dark beforehand.
    """

    NORMAL = "normal"
    INVERTED = "inverted"

    @property
    def draw_button(self) -> Button:
        return Button.B if self is Polarity.INVERTED else Button.A

    def is_active(self, mark: bool) -> bool:
        """Return ``True`` if a cell with this *mark* must be drawn."""
        return bool(mark) != (self is Polarity.INVERTED)


# ---------------------------------------------------------------------------
# Command
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Command:
    """Buttons held together for one duration.

    Parameters
    ----------
    buttons : tuple[Button, ...]
        Buttons held during this frame, in press order.  Empty means a
        neutral frame.
    duration : Decimal
        Frame length in seconds.  Kept as ``Decimal`` so the macro text
        reproduces the precision it was given.
    idempotent : bool
        Safety action that a lossless replay should disregard.
    """

    buttons: tuple[Button, ...]
    duration: Decimal
    idempotent: bool = False

    def __post_init__(self) -> None:
        if len(set(self.buttons)) != len(self.buttons):
            raise ValueError(f"Command has duplicate buttons: {self.buttons}")

    @property
    def is_neutral(self) -> bool:
        return not self.buttons

    def holds(self, button: Button) -> bool:
        return button in self.buttons


MacroProgram = tuple[Command, ...]
"""A complete, frozen command sequence.  Its length is the operation count."""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def neutral(duration: Decimal) -> Command:
    """Neutral frame: nothing held for *duration*."""
    return Command(buttons=(), duration=duration)


def pulse(
    buttons: tuple[Button, ...] | Button,
    duration: Decimal,
    idempotent: bool = False,
) -> list[Command]:
    """Press *buttons* for *duration*, then release for the same duration.

    Returns
    -------
    list[Command]
        ``[press, neutral]``
    """
    if isinstance(buttons, Button):
        buttons = (buttons,)
    return [
        Command(buttons=tuple(buttons), duration=duration, idempotent=idempotent),
        Command(buttons=(), duration=duration, idempotent=idempotent),
    ]
