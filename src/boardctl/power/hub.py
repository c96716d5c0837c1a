"""
Hub command adapter.

Drives the YKUSH family command-line tools and parses their text output:

- List:      <tool> -l
- Get state: <tool> -s <serial> -g <port>
- Set state: <tool> -s <serial> -u|-d <port>
"""

import logging
import subprocess
from typing import Union

from boardctl.core.models import HubKind
from boardctl.errors import (
    AmbiguousPortState,
    HubOperationFailed,
    HubToolExecutionError,
    UnsupportedHubKind,
)
from boardctl.power.base import Direction, PowerState

logger = logging.getLogger(__name__)

# Constants
HUB_TOOL_TIMEOUT = 10.0

HUB_COMMANDS: dict[HubKind, tuple[str, ...]] = {
    HubKind.USB: ("ykushcmd", "ykush"),
    HubKind.RELAY: ("ykurcmd",),
}

ON_MARKER = "ON"
OFF_MARKER = "OFF"


def resolve_command(kind: Union[HubKind, str]) -> list[str]:
    """
    Map a power source kind to its hub tool command prefix.

    Args:
        kind: HubKind or the raw type string from the config

    Returns:
        Command prefix as an argument list

    Raises:
        UnsupportedHubKind: If no hub tool is known for the kind
    """
    try:
        hub_kind = kind if isinstance(kind, HubKind) else HubKind(kind)
    except ValueError:
        raise UnsupportedHubKind(str(kind)) from None
    return list(HUB_COMMANDS[hub_kind])


def is_attached(raw_text: str, hub_serial_number: str) -> bool:
    """
    Check a hub listing for a serial number.

    Plain substring containment: a serial that is a substring of another
    attached hub's serial also matches.
    """
    return hub_serial_number in raw_text


class HubTool:
    """One hub tool command family, e.g. ``ykushcmd ykush``."""

    def __init__(self, command_prefix: list[str], timeout: float = HUB_TOOL_TIMEOUT):
        """
        Initialize hub tool.

        Args:
            command_prefix: Program and fixed leading arguments
            timeout: Seconds to wait for each invocation
        """
        self.command_prefix = list(command_prefix)
        self.timeout = timeout

    @classmethod
    def for_kind(
        cls, kind: Union[HubKind, str], timeout: float = HUB_TOOL_TIMEOUT
    ) -> "HubTool":
        """Create the hub tool governing a power source kind."""
        return cls(resolve_command(kind), timeout)

    def __repr__(self) -> str:
        return f"HubTool({' '.join(self.command_prefix)!r})"

    def _run(self, *args: str) -> subprocess.CompletedProcess:
        """
        Run the hub tool with extra arguments.

        Returns:
            Completed process with text stdout/stderr

        Raises:
            HubToolExecutionError: If the process cannot be started or times out
        """
        cmd = self.command_prefix + list(args)
        logger.debug(f"Running hub tool: {cmd}")

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            msg = f"{cmd[0]} timed out after {self.timeout:g}s"
            logger.error(msg)
            raise HubToolExecutionError(msg) from e
        except OSError as e:
            msg = f"Failed to execute {cmd[0]}: {e}"
            logger.error(msg)
            raise HubToolExecutionError(msg) from e

        logger.debug(f"{cmd[0]} exited {result.returncode}: {result.stdout.strip()!r}")
        return result

    def list_attached(self) -> str:
        """Return the raw listing of attached hubs."""
        return self._run("-l").stdout

    def is_attached(self, hub_serial_number: str) -> bool:
        """List attached hubs and check for a serial number."""
        return is_attached(self.list_attached(), hub_serial_number)

    def port_state(self, hub_serial_number: str, port_number: str) -> PowerState:
        """
        Query the state of one hub port.

        Output without an ON marker reads as OFF.

        Raises:
            AmbiguousPortState: If the tool failed and printed no marker
        """
        result = self._run("-s", hub_serial_number, "-g", port_number)
        stdout = result.stdout

        if ON_MARKER in stdout:
            return PowerState.ON
        if OFF_MARKER not in stdout and result.returncode != 0:
            detail = (result.stderr or stdout).strip()
            raise AmbiguousPortState(
                f"Port {port_number} on {hub_serial_number}: "
                f"no state reported (exit {result.returncode}) {detail}".rstrip()
            )
        return PowerState.OFF

    def set_port(
        self,
        hub_serial_number: str,
        port_number: str,
        direction: Union[Direction, str],
    ) -> None:
        """
        Switch one hub port up or down.

        Raises:
            ValueError: If direction is not up/down
            HubOperationFailed: If the tool exits non-zero
        """
        direction = Direction(direction)
        result = self._run("-s", hub_serial_number, direction.flag, port_number)

        if result.returncode != 0:
            detail = (result.stderr or result.stdout).strip()
            raise HubOperationFailed(
                f"Failed to power {direction.value} port {port_number} "
                f"on {hub_serial_number}: {detail or f'exit {result.returncode}'}"
            )
