"""Compiler configuration loading and planning option validation."""

from splat_control.configs.loader import (
    CanvasConfig,
    ConfigError,
    OutputConfig,
    SplatConfig,
    TimingConfig,
    load_config,
)
from splat_control.configs.options import (
    OptionsError,
    PlanOptions,
    build_options,
    parse_row_ranges,
)

__all__ = [
    "CanvasConfig",
    "ConfigError",
    "OptionsError",
    "OutputConfig",
    "PlanOptions",
    "SplatConfig",
    "TimingConfig",
    "build_options",
    "load_config",
    "parse_row_ranges",
]
