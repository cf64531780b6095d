"""Configuration loader for the splat macro compiler.

Loads and validates ``splat.yaml`` into typed, frozen dataclasses.
Timing values (press duration, start/end delays) and artifact names come
from the config -- nothing is hardcoded in the pipeline.

Durations are kept as ``Decimal`` so a configured ``"0.10"`` is written
to the macro as ``0.10s``.

Usage::

    from splat_control.configs.loader import load_config
    cfg = load_config()                     # default path
    cfg = load_config("/custom/splat.yaml") # explicit path
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

from splat_control.raster.canvas import HEIGHT, WIDTH
from src.utils.fs import load_yaml

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(Exception):
    """Raised when configuration validation fails."""

    pass


# ---------------------------------------------------------------------------
# Dataclasses -- mirror the YAML structure
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CanvasConfig:
    """Drawable grid size in cells."""

    width: int
    height: int


@dataclass(frozen=True)
class TimingConfig:
    """Frame durations in seconds."""

    press_duration_s: Decimal
    start_delay_s: Decimal
    end_delay_s: Decimal


@dataclass(frozen=True)
class OutputConfig:
    """Artifact file names, relative to the output directory."""

    macro: str
    macro_inverted: str
    preview: str
    preview_inverted: str
    summary: str


@dataclass(frozen=True)
class SplatConfig:
    """Top-level validated configuration."""

    canvas: CanvasConfig
    timing: TimingConfig
    output: OutputConfig


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------


def _parse_duration(name: str, raw: Any) -> Decimal:
    try:
        value = Decimal(str(raw).strip())
    except InvalidOperation as exc:
        raise ConfigError(f"timing.{name} is not a number: {raw!r}") from exc
    if not value.is_finite():
        raise ConfigError(f"timing.{name} must be finite, got {raw!r}")
    return value


def _validate_config(cfg: SplatConfig) -> None:
    """Cross-field checks that the dataclasses cannot express."""
    c = cfg.canvas
    if (c.width, c.height) != (WIDTH, HEIGHT):
        raise ConfigError(
            f"canvas must be {WIDTH} x {HEIGHT}, got {c.width} x {c.height}"
        )

    t = cfg.timing
    if t.press_duration_s <= 0:
        raise ConfigError(
            f"press_duration_s must be > 0, got {t.press_duration_s}"
        )
    for name in ("start_delay_s", "end_delay_s"):
        value = getattr(t, name)
        if value < 0:
            raise ConfigError(f"{name} must be >= 0, got {value}")

    names = [
        cfg.output.macro,
        cfg.output.macro_inverted,
        cfg.output.preview,
        cfg.output.preview_inverted,
        cfg.output.summary,
    ]
    if any(not n for n in names):
        raise ConfigError("output file names must be non-empty")
    if len(set(names)) != len(names):
        raise ConfigError(f"output file names must be distinct, got {names}")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(path: str | Path | None = None) -> SplatConfig:
    """Load and validate the compiler configuration from YAML.

    Parameters
    ----------
    path : str | Path | None
        Path to ``splat.yaml``.  ``None`` loads the default shipped
        alongside this module.

    Returns
    -------
    SplatConfig
        Fully validated, frozen configuration object.

    Raises
    ------
    ConfigError
        If any field is missing or fails validation.
    FileNotFoundError
        If *path* does not exist.
    """
    if path is None:
        path = Path(__file__).parent / "splat.yaml"
    else:
        path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    logger.info("Loading configuration from %s", path)

    data: dict[str, Any] = load_yaml(path)
    if data is None:
        raise ConfigError(f"Empty configuration file: {path}")

    try:
        cv = data["canvas"]
        canvas = CanvasConfig(width=int(cv["width"]), height=int(cv["height"]))

        td = data["timing"]
        timing = TimingConfig(
            press_duration_s=_parse_duration(
                "press_duration_s", td["press_duration_s"]
            ),
            start_delay_s=_parse_duration("start_delay_s", td["start_delay_s"]),
            end_delay_s=_parse_duration("end_delay_s", td["end_delay_s"]),
        )

        od = data["output"]
        output = OutputConfig(
            macro=str(od["macro"]),
            macro_inverted=str(od["macro_inverted"]),
            preview=str(od["preview"]),
            preview_inverted=str(od["preview_inverted"]),
            summary=str(od.get("summary", "splat_summary.yaml")),
        )

        config = SplatConfig(canvas=canvas, timing=timing, output=output)

        _validate_config(config)
        logger.info("Configuration loaded successfully")
        return config

    except KeyError as exc:
        raise ConfigError(
            f"Missing required configuration key: {exc}"
        ) from exc
    except (TypeError, ValueError) as exc:
        raise ConfigError(
            f"Invalid configuration value: {exc}"
        ) from exc
