"""
Data models for boardctl.

Defines the board record built from the config file and the hub kinds it
can name.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Union


class HubKind(Enum):
    """Power source kinds with a known hub tool."""

    USB = "usb"
    RELAY = "relay"


@dataclass(frozen=True)
class UartConfig:
    """Serial console wiring of a board."""

    pattern: str
    primary: str

    @property
    def device_name(self) -> str:
        """Name of the device link under the by-id directory."""
        return f"{self.pattern}-{self.primary}"

    def device_path(self, by_id_dir: Path) -> Path:
        """Full path of the console device."""
        return by_id_dir / self.device_name


@dataclass(frozen=True)
class Board:
    """
    A physical board powered through one hub port.

    Power state is not a field: it is queried from the hub tool on
    every operation and never stored here.
    """

    name: str
    hub_serial_number: str
    hub_port_number: str
    # Unknown kinds stay a raw string so the engine can reject them
    power_source_kind: Union[HubKind, str]
    uart: Optional[UartConfig] = None
    uart_path: Optional[Path] = None

    @property
    def kind_name(self) -> str:
        """Power source kind as written in the config."""
        if isinstance(self.power_source_kind, HubKind):
            return self.power_source_kind.value
        return str(self.power_source_kind)
