"""
Power control module for boardctl.

Provides the hub command adapter, the board power engine and the fleet
sweep.
"""

from boardctl.power.base import Direction, PowerState
from boardctl.power.engine import REBOOT_SETTLE_DELAY, PowerEngine
from boardctl.power.hub import HubTool, is_attached, resolve_command
from boardctl.power.sweep import SweepReport, SweepResult, goodnight

__all__ = [
    "Direction",
    "PowerState",
    "PowerEngine",
    "REBOOT_SETTLE_DELAY",
    "HubTool",
    "is_attached",
    "resolve_command",
    "SweepReport",
    "SweepResult",
    "goodnight",
]
