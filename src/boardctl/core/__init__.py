"""
Core components for boardctl.

Provides configuration loading, the board model and the board registry.
"""

from boardctl.core.config import Config, load_config
from boardctl.core.models import Board, HubKind, UartConfig
from boardctl.core.registry import BoardRegistry, build_board

__all__ = [
    "Config",
    "load_config",
    "Board",
    "HubKind",
    "UartConfig",
    "BoardRegistry",
    "build_board",
]
