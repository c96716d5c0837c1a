"""
Serial console access for boardctl.

Opens board consoles and runs expect sessions that confirm boot and
shutdown.
"""

from boardctl.serial.console import SerialConsole
from boardctl.serial.expect import (
    BOOT_SEQUENCE,
    BOOT_TIMEOUT,
    SHUTDOWN_SEQUENCE,
    ExpectStep,
    SessionState,
    run_session,
    verify_boot,
    verify_shutdown,
)

__all__ = [
    "SerialConsole",
    "ExpectStep",
    "SessionState",
    "BOOT_SEQUENCE",
    "SHUTDOWN_SEQUENCE",
    "BOOT_TIMEOUT",
    "run_session",
    "verify_boot",
    "verify_shutdown",
]
