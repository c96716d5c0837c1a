"""
Serial console transport.

Opens a board UART with pyserial and wraps it in a pexpect spawn so the
expect session can match patterns against the byte stream.
"""

import logging
from pathlib import Path
from typing import Sequence, Union

import serial
from pexpect import ExceptionPexpect, fdpexpect

from boardctl.core.config import DEFAULT_BAUD
from boardctl.errors import ConsoleOpenError

logger = logging.getLogger(__name__)


class SerialConsole:
    """Exclusive duplex access to one board console."""

    def __init__(self, port: Union[str, Path], baudrate: int = DEFAULT_BAUD):
        """
        Open the console.

        Args:
            port: Device path of the UART
            baudrate: Line speed

        Raises:
            ConsoleOpenError: If the device cannot be opened
        """
        self.port = str(port)
        self.baudrate = baudrate
        try:
            self.ser = serial.Serial(self.port, baudrate=baudrate, timeout=1)
        except serial.SerialException as e:
            logger.error(f"Failed to open serial port {self.port}: {e}")
            raise ConsoleOpenError(f"Failed to open serial port {self.port}: {e}") from e

        try:
            self.child = fdpexpect.fdspawn(
                self.ser.fileno(), encoding="utf-8", codec_errors="replace"
            )
        except (OSError, ExceptionPexpect) as e:
            self.ser.close()
            logger.error(f"Failed to attach to serial port {self.port}: {e}")
            raise ConsoleOpenError(f"Failed to attach to serial port {self.port}: {e}") from e
        logger.info(f"Opened serial port {self.port} at baudrate {baudrate}")

    def __enter__(self) -> "SerialConsole":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def expect(self, patterns: Sequence[str], timeout: float) -> int:
        """
        Wait for the earliest of several patterns.

        Returns:
            Index of the pattern that matched

        Raises:
            pexpect.TIMEOUT: If nothing matched in time
            pexpect.EOF: If the console closed
        """
        return self.child.expect(list(patterns), timeout=timeout)

    @property
    def matched(self) -> str:
        """Text matched by the last successful expect."""
        after = self.child.after
        return after if isinstance(after, str) else ""

    def sendline(self, text: str = "") -> None:
        self.child.sendline(text)

    def close(self) -> None:
        if self.ser.is_open:
            self.ser.close()
            logger.info(f"Closed serial port {self.port}")
