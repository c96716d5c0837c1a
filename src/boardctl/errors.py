"""
Exception hierarchy for boardctl.

Hub and registry errors propagate unchanged to the caller. Only the fleet
sweep catches them per board.
"""

from typing import Optional


class BoardctlError(Exception):
    """Base exception for all boardctl errors."""


class ConfigError(BoardctlError):
    """Config file or board record is missing, malformed or incomplete."""


class UnsupportedHubKind(BoardctlError):
    """Board names a power source kind with no known hub tool."""

    def __init__(self, kind: str):
        super().__init__(f"Unsupported hub type: {kind!r}")
        self.kind = kind


class HubError(BoardctlError):
    """Base exception for hub tool failures."""


class HubToolExecutionError(HubError):
    """Hub tool process could not be started or did not finish."""


class HubOperationFailed(HubError):
    """Hub tool ran but reported failure."""


class AmbiguousPortState(HubError):
    """Port query failed and printed neither an ON nor an OFF marker."""


class BoardNotAttached(BoardctlError):
    """Hub listing does not contain the board's hub serial number."""

    def __init__(self, board_name: str, serial_number: str):
        super().__init__(
            f"Board {board_name}: hub with serial {serial_number} not found"
        )
        self.board_name = board_name
        self.serial_number = serial_number


class ConsoleError(BoardctlError):
    """Base exception for serial console sessions."""


class ConsoleOpenError(ConsoleError):
    """Serial device could not be opened."""


class SessionTimeout(ConsoleError):
    """Expect session ran out of time waiting for a pattern."""

    def __init__(self, state: str, timeout: float, message: Optional[str] = None):
        super().__init__(
            message or f"Timed out after {timeout:g}s while {state}"
        )
        self.state = state
        self.timeout = timeout


class BootTimeout(SessionTimeout):
    """Board did not reach a login shell in time."""


class ShutdownTimeout(SessionTimeout):
    """Board did not report halting in time."""


class UnexpectedConsoleOutput(ConsoleError):
    """Console produced output that contradicts the expected sequence."""
