"""
Power control engine.

Board-level power operations on top of the hub command adapter. Every
port access is preceded by a fresh hub listing; nothing about hub or port
state is remembered between calls.
"""

import logging
import threading
import time
from collections import defaultdict
from contextlib import contextmanager
from typing import Callable, Generator, Optional

from boardctl.core.config import Config
from boardctl.core.models import Board
from boardctl.errors import BoardNotAttached, ConfigError
from boardctl.power.base import Direction, PowerState
from boardctl.power.hub import HUB_TOOL_TIMEOUT, HubTool
from boardctl.serial import expect
from boardctl.serial.console import SerialConsole

logger = logging.getLogger(__name__)

# Minimum discharge time for a board's power rail between off and on
REBOOT_SETTLE_DELAY = 1.0


class PowerEngine:
    """
    Power and console operations for boards.

    Implements both the status capability (``query_power``) and the ops
    capability (``power_on``, ``power_off``, ``reboot``, ``verify_boot``,
    ``verify_shutdown``). The hub tool is picked per call from the board's
    power source kind.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        hub_timeout: float = HUB_TOOL_TIMEOUT,
        console_factory: Optional[Callable[..., SerialConsole]] = None,
    ):
        """
        Initialize engine.

        Args:
            config: Loaded config (serial and console settings)
            hub_timeout: Seconds allowed for each hub tool invocation
            console_factory: Opens a console given a path and baudrate
        """
        self.config = config or Config()
        self.hub_timeout = hub_timeout
        self.console_factory = console_factory or SerialConsole
        # Re-entrant: composite operations call the single-step ones
        self._locks: defaultdict = defaultdict(threading.RLock)
        self._locks_guard = threading.Lock()

    @contextmanager
    def _board_lock(self, board: Board) -> Generator[None, None, None]:
        """Serialise operations on one board."""
        with self._locks_guard:
            lock = self._locks[board.name]
        with lock:
            yield

    def _attached_tool(self, board: Board) -> HubTool:
        """Resolve the board's hub tool and check its hub is attached."""
        tool = HubTool.for_kind(board.power_source_kind, self.hub_timeout)
        if not tool.is_attached(board.hub_serial_number):
            raise BoardNotAttached(board.name, board.hub_serial_number)
        logger.debug(
            f"{board.name} attached to {board.hub_serial_number}@{board.hub_port_number}"
        )
        return tool

    def _switch(self, board: Board, direction: Direction) -> None:
        tool = self._attached_tool(board)
        tool.set_port(board.hub_serial_number, board.hub_port_number, direction)
        logger.info(
            f"{board.name} attached to {board.hub_serial_number}@"
            f"{board.hub_port_number} powered {direction.value}"
        )

    # --- Status ---

    def query_power(self, board: Board) -> bool:
        """
        Query whether a board's port is powered.

        Raises:
            UnsupportedHubKind: If the board's hub type is unknown
            BoardNotAttached: If the hub is not in the tool's listing
            HubToolExecutionError: If the tool cannot be run
            AmbiguousPortState: If the query failed without a state marker
        """
        with self._board_lock(board):
            tool = self._attached_tool(board)
            state = tool.port_state(board.hub_serial_number, board.hub_port_number)
        logger.debug(f"{board.name} is {state.value}")
        return state is PowerState.ON

    # --- Ops ---

    def power_on(self, board: Board) -> None:
        """Switch a board's port on. Already-on boards are switched again."""
        with self._board_lock(board):
            self._switch(board, Direction.UP)

    def power_off(self, board: Board) -> None:
        """Switch a board's port off. Already-off boards are switched again."""
        with self._board_lock(board):
            self._switch(board, Direction.DOWN)

    def reboot(self, board: Board) -> None:
        """
        Power cycle a board: off, settle, on.

        A failed power off propagates before power on is attempted.
        """
        with self._board_lock(board):
            self._switch(board, Direction.DOWN)
            time.sleep(REBOOT_SETTLE_DELAY)
            self._switch(board, Direction.UP)

    def _open_console(self, board: Board) -> SerialConsole:
        if board.uart_path is None:
            raise ConfigError(f"Board {board.name}: no uart configured")
        return self.console_factory(board.uart_path, self.config.serial.baud)

    def verify_boot(self, board: Board, timeout: float = expect.BOOT_TIMEOUT) -> None:
        """
        Block until the board's console shows a full boot and login.

        Raises:
            ConfigError: If the board has no uart
            BootTimeout: If boot does not complete in time
            UnexpectedConsoleOutput: If the login is refused
        """
        with self._board_lock(board):
            with self._open_console(board) as console:
                expect.verify_boot(console, self.config.console, timeout)
        logger.info(f"{board.name} booted")

    def verify_shutdown(self, board: Board, timeout: float = expect.BOOT_TIMEOUT) -> None:
        """
        Power off the OS from the console and block until it halts.

        Raises:
            ConfigError: If the board has no uart
            ShutdownTimeout: If the halt message does not arrive in time
        """
        with self._board_lock(board):
            with self._open_console(board) as console:
                expect.verify_shutdown(console, self.config.console, timeout)
        logger.info(f"{board.name} halted")

    # --- Composite operations ---

    def toggle_power(self, board: Board) -> bool:
        """Switch a board to the opposite of its queried state; return new state."""
        if self.query_power(board):
            self.power_off(board)
            return False
        self.power_on(board)
        return True

    def boot(self, board: Board, timeout: float = expect.BOOT_TIMEOUT) -> None:
        """Power a board on and wait for it to boot."""
        with self._board_lock(board):
            # Console must be open before power is applied
            with self._open_console(board) as console:
                self._switch(board, Direction.UP)
                expect.verify_boot(console, self.config.console, timeout)
        logger.info(f"{board.name} booted")

    def boot_test(self, board: Board, timeout: float = expect.BOOT_TIMEOUT) -> None:
        """Power cycle a board and wait for it to boot."""
        with self._board_lock(board):
            with self._open_console(board) as console:
                self.reboot(board)
                expect.verify_boot(console, self.config.console, timeout)
        logger.info(f"{board.name} booted")

    def shutdown(self, board: Board, timeout: float = expect.BOOT_TIMEOUT) -> None:
        """Halt the OS over the console, then cut power."""
        with self._board_lock(board):
            with self._open_console(board) as console:
                expect.verify_shutdown(console, self.config.console, timeout)
            self._switch(board, Direction.DOWN)
