"""Cross-cutting utilities (lowest dependency layer).

This package provides shared primitives for:
    - Atomic I/O, image load/save, YAML (fs)
    - Unified logging (logging_config)

No module in utils/ may import from splat_control.

Convenience imports:
    from src.utils import fs
    from src.utils.logging_config import setup_logging, push_context
"""

from . import fs
from . import logging_config

# Common functions for direct import
from .logging_config import push_context, setup_logging

__all__ = [
    # Modules
    'fs',
    'logging_config',
    # Direct exports
    'setup_logging',
    'push_context',
]
