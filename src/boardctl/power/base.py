"""
Base types for power control.

Defines power state values and the two capability interfaces a power
engine offers for a board.
"""

from enum import Enum
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from boardctl.core.models import Board


class PowerState(Enum):
    """Power state values."""

    ON = "on"
    OFF = "off"


class Direction(Enum):
    """Switching direction for a hub port."""

    UP = "up"
    DOWN = "down"

    @property
    def flag(self) -> str:
        """Hub tool flag, built from the first letter of the direction."""
        return f"-{self.value[0]}"


class StatusCapability(Protocol):
    """Power state query for a board."""

    def query_power(self, board: "Board") -> bool:
        """Return True if the board's port is powered."""
        ...


class OpsCapability(Protocol):
    """Power transitions and console verification for a board."""

    def power_on(self, board: "Board") -> None:
        ...

    def power_off(self, board: "Board") -> None:
        ...

    def reboot(self, board: "Board") -> None:
        ...

    def verify_boot(self, board: "Board", timeout: float = ...) -> None:
        ...

    def verify_shutdown(self, board: "Board", timeout: float = ...) -> None:
        ...
