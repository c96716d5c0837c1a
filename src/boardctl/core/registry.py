"""
Board registry.

Builds Board records from the ``boards`` table of the config file. Records
are built fresh on every lookup and fail fast on incomplete entries.
"""

from pathlib import Path
from typing import Any, Iterator, Optional

from boardctl.core.config import Config, SerialConfig, load_config
from boardctl.core.models import Board, HubKind, UartConfig
from boardctl.errors import ConfigError


def _scalar(board_config: dict[str, Any], key: str, label: str) -> str:
    """Fetch a required non-empty scalar field as a string."""
    if key not in board_config or board_config[key] is None:
        raise ConfigError(f"No {label} found")

    value = board_config[key]
    # bool is an int subclass; YAML "yes"/"on" would otherwise slip through
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise ConfigError(f"{label.capitalize()} was not a string")

    value = str(value).strip()
    if not value:
        raise ConfigError(f"{label.capitalize()} was empty")
    return value


def _parse_kind(value: str) -> "HubKind | str":
    try:
        return HubKind(value)
    except ValueError:
        return value


def _parse_uart(uart_config: Any) -> Optional[UartConfig]:
    if uart_config is None:
        return None
    if not isinstance(uart_config, dict):
        raise ConfigError("uart section must be a mapping")
    return UartConfig(
        pattern=_scalar(uart_config, "pattern", "uart pattern"),
        primary=_scalar(uart_config, "primary", "uart primary"),
    )


def build_board(name: str, board_config: Any, serial: SerialConfig) -> Board:
    """
    Build a Board from one entry of the boards table.

    Args:
        name: Board name (table key)
        board_config: Raw mapping for this board
        serial: Serial settings used to derive the console path

    Returns:
        Fully populated Board

    Raises:
        ConfigError: If any required field is missing or malformed
    """
    if not isinstance(board_config, dict):
        raise ConfigError(f"Board {name}: entry is not a mapping")

    try:
        uart = _parse_uart(board_config.get("uart"))
        return Board(
            name=name,
            hub_serial_number=_scalar(board_config, "serial", "serial number"),
            hub_port_number=_scalar(board_config, "port", "port number"),
            power_source_kind=_parse_kind(_scalar(board_config, "type", "type")),
            uart=uart,
            uart_path=uart.device_path(serial.by_id_dir) if uart else None,
        )
    except ConfigError as e:
        raise ConfigError(f"Board {name}: {e}") from e


class BoardRegistry:
    """Named board records from one config file."""

    def __init__(self, boards: Any, serial: Optional[SerialConfig] = None):
        """
        Initialize registry.

        Args:
            boards: Raw ``boards`` mapping from the config file
            serial: Serial settings (defaults if omitted)

        Raises:
            ConfigError: If boards is not a mapping
        """
        if not isinstance(boards, dict):
            raise ConfigError("No boards found")
        for name in boards:
            if not isinstance(name, str):
                raise ConfigError(f"Board name {name!r} was not a string")
        self._boards = boards
        self.serial = serial or SerialConfig()

    @classmethod
    def from_config(cls, config: Config) -> "BoardRegistry":
        """Create registry from a loaded Config."""
        return cls(config.boards, config.serial)

    @classmethod
    def from_file(cls, config_path: Optional[Path] = None) -> "BoardRegistry":
        """Load config file and create registry from it."""
        return cls.from_config(load_config(config_path))

    def board_names(self) -> list[str]:
        """Board names in config file order."""
        return list(self._boards)

    def get_board(self, name: str) -> Board:
        """
        Build the named board.

        Raises:
            ConfigError: If the board is unknown or its record is incomplete
        """
        if name not in self:
            raise ConfigError(f"Requested board not found: {name}")
        return build_board(name, self._boards[name], self.serial)

    def boards(self) -> list[Board]:
        """Build every board, failing on the first malformed record."""
        return [self.get_board(name) for name in self.board_names()]

    def __iter__(self) -> Iterator[str]:
        return iter(self.board_names())

    def __len__(self) -> int:
        return len(self._boards)

    def __contains__(self, name: object) -> bool:
        return name in self._boards
