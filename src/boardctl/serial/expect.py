"""
Expect-driven console sessions.

A session walks an ordered table of steps. Each step names the state the
board is in while waiting, the pattern that ends the wait, and optionally
a line to write on entry or after the match. The boot and shutdown
sequences are two such tables run by the same routine.

Boot:     bootloader -> kernel -> init -> login -> password -> shell prompt
Shutdown: shell prompt -> halted message
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Protocol, Sequence

import pexpect

from boardctl.core.config import ConsoleConfig
from boardctl.errors import (
    BootTimeout,
    SessionTimeout,
    ShutdownTimeout,
    UnexpectedConsoleOutput,
)

logger = logging.getLogger(__name__)

# Constants
BOOT_TIMEOUT = 120.0

BOOTLOADER_PATTERN = r"U-Boot|OpenSBI|Hart Software Services"
KERNEL_PATTERN = r"Linux version \S+"
INIT_PATTERN = r"Run /\S*init|systemd\[1\]|Starting init|init started"
LOGIN_PATTERN = r"login: ?"
PASSWORD_PATTERN = r"[Pp]assword: ?"
# Prompt line: not a kernel log line, up to the first "# " or "$ "
SHELL_PROMPT_PATTERN = r"(?:^|\n)(?!\[)[^\r\n]*?[#$] "
LOGIN_REJECTED_PATTERN = r"Login incorrect|(?<!Last )login: ?"
HALTED_PATTERN = r"reboot: Power down|reboot: System halted|System halted"


class SessionState(Enum):
    """Console session states."""

    AWAITING_BOOTLOADER = "awaiting bootloader"
    AWAITING_KERNEL = "awaiting kernel"
    AWAITING_INIT = "awaiting init"
    AWAITING_LOGIN = "awaiting login prompt"
    AWAITING_PASSWORD_PROMPT = "awaiting password prompt"
    AWAITING_SHELL_PROMPT = "awaiting shell prompt"
    LOGGED_IN = "logged in"

    AWAITING_SHUTDOWN_COMMAND = "awaiting shutdown command"
    AWAITING_HALTED_MESSAGE = "awaiting halted message"
    HALTED = "halted"


@dataclass(frozen=True)
class ExpectStep:
    """
    One wait in a console session.

    ``before`` and ``send`` are format strings filled from the console
    credentials (``{username}``, ``{password}``). ``reject`` is a pattern
    that, if it shows up first, means the console went the wrong way.
    """

    state: SessionState
    pattern: str
    send: Optional[str] = None
    before: Optional[str] = None
    reject: Optional[str] = None
    secret: bool = False


BOOT_SEQUENCE: tuple[ExpectStep, ...] = (
    ExpectStep(SessionState.AWAITING_BOOTLOADER, BOOTLOADER_PATTERN),
    ExpectStep(SessionState.AWAITING_KERNEL, KERNEL_PATTERN),
    ExpectStep(SessionState.AWAITING_INIT, INIT_PATTERN),
    ExpectStep(SessionState.AWAITING_LOGIN, LOGIN_PATTERN, send="{username}"),
    ExpectStep(
        SessionState.AWAITING_PASSWORD_PROMPT,
        PASSWORD_PATTERN,
        send="{password}",
        secret=True,
    ),
    ExpectStep(
        SessionState.AWAITING_SHELL_PROMPT,
        SHELL_PROMPT_PATTERN,
        reject=LOGIN_REJECTED_PATTERN,
    ),
)

SHUTDOWN_SEQUENCE: tuple[ExpectStep, ...] = (
    ExpectStep(
        SessionState.AWAITING_SHUTDOWN_COMMAND,
        SHELL_PROMPT_PATTERN,
        before="",
        send="poweroff",
    ),
    ExpectStep(SessionState.AWAITING_HALTED_MESSAGE, HALTED_PATTERN),
)


class Console(Protocol):
    """What a session needs from a console transport."""

    @property
    def matched(self) -> str:
        ...

    def expect(self, patterns: Sequence[str], timeout: float) -> int:
        ...

    def sendline(self, text: str = "") -> None:
        ...


def _write(console: Console, template: str, step: ExpectStep, credentials: dict[str, str]) -> None:
    line = template.format(**credentials)
    shown = "********" if step.secret else repr(line)
    logger.debug(f"[{step.state.value}] sending {shown}")
    console.sendline(line)


def run_session(
    console: Console,
    steps: Sequence[ExpectStep],
    terminal_state: SessionState,
    timeout: float = BOOT_TIMEOUT,
    timeout_error: type[SessionTimeout] = BootTimeout,
    credentials: Optional[ConsoleConfig] = None,
    clock: Callable[[], float] = time.monotonic,
) -> SessionState:
    """
    Drive a console through an ordered table of steps.

    Steps are matched strictly in order against the stream. A single
    deadline covers the whole session.

    Args:
        console: Open console transport
        steps: Step table
        terminal_state: State reported once every step matched
        timeout: Seconds allowed for the whole session
        timeout_error: Exception raised when the deadline passes
        credentials: Login user/password for ``send`` templates

    Returns:
        terminal_state

    Raises:
        SessionTimeout: (the given subclass) if a step does not match in time
        UnexpectedConsoleOutput: If a reject pattern matches or the console closes
    """
    credentials = credentials or ConsoleConfig()
    values = {"username": credentials.username, "password": credentials.password}
    deadline = clock() + timeout

    for step in steps:
        state = step.state.value
        if step.before is not None:
            _write(console, step.before, step, values)

        remaining = deadline - clock()
        if remaining <= 0:
            raise timeout_error(state, timeout)

        patterns = [step.pattern]
        if step.reject:
            patterns.append(step.reject)

        logger.debug(f"[{state}] waiting up to {remaining:.1f}s for {step.pattern!r}")
        try:
            index = console.expect(patterns, timeout=remaining)
        except pexpect.TIMEOUT:
            logger.warning(f"Console timed out while {state}")
            raise timeout_error(state, timeout) from None
        except pexpect.EOF as e:
            raise UnexpectedConsoleOutput(f"Console closed while {state}") from e

        if index != 0:
            raise UnexpectedConsoleOutput(
                f"Unexpected console output while {state}: {console.matched!r}"
            )

        logger.info(f"Console passed: {state}")
        if step.send is not None:
            _write(console, step.send, step, values)

    logger.info(f"Console reached: {terminal_state.value}")
    return terminal_state


def verify_boot(
    console: Console,
    credentials: Optional[ConsoleConfig] = None,
    timeout: float = BOOT_TIMEOUT,
) -> SessionState:
    """Watch a console until the board boots and accepts the scripted login."""
    return run_session(
        console,
        BOOT_SEQUENCE,
        SessionState.LOGGED_IN,
        timeout=timeout,
        timeout_error=BootTimeout,
        credentials=credentials,
    )


def verify_shutdown(
    console: Console,
    credentials: Optional[ConsoleConfig] = None,
    timeout: float = BOOT_TIMEOUT,
) -> SessionState:
    """Issue poweroff on a logged-in console and wait for the halt message."""
    return run_session(
        console,
        SHUTDOWN_SEQUENCE,
        SessionState.HALTED,
        timeout=timeout,
        timeout_error=ShutdownTimeout,
        credentials=credentials,
    )
