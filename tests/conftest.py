"""Shared fixtures: a fake hub tool process and a scripted console."""

import re
import subprocess
from pathlib import Path
from unittest.mock import patch

import pexpect
import pytest

from boardctl.core.models import Board, HubKind, UartConfig


def completed(stdout: str = "", returncode: int = 0, stderr: str = ""):
    """Build a finished hub tool process."""
    return subprocess.CompletedProcess(
        args=[], returncode=returncode, stdout=stdout, stderr=stderr
    )


class FakeHub:
    """Stands in for subprocess.run when a hub tool is invoked."""

    def __init__(self):
        self.listing = "Attached YKUSH Boards:\n1. Board found with serial number: YK12345\n"
        self.port_output = "Downstream port 1 is OFF"
        self.port_returncode = 0
        self.fail_serials: set[str] = set()
        self.fail_flags: set[str] = set()
        self.calls: list[list[str]] = []

    def __call__(self, cmd, **kwargs):
        cmd = list(cmd)
        self.calls.append(cmd)
        if cmd[-1] == "-l":
            return completed(self.listing)

        serial, flag = cmd[-3], cmd[-2]
        if flag == "-g":
            return completed(self.port_output, self.port_returncode)
        if serial in self.fail_serials or flag in self.fail_flags:
            return completed("", 1, "Error: could not switch port")
        return completed("")

    @property
    def set_calls(self) -> list[list[str]]:
        return [c for c in self.calls if c[-2] in ("-u", "-d")]

    @property
    def set_flags(self) -> list[str]:
        return [c[-2] for c in self.set_calls]


@pytest.fixture
def fake_hub():
    """Patch hub tool execution with a FakeHub."""
    hub = FakeHub()
    with patch("boardctl.power.hub.subprocess.run", side_effect=hub) as run:
        hub.run = run
        yield hub


class FakeConsole:
    """
    Console that feeds scripted output chunks to expect().

    Mirrors pexpect: the earliest match in the buffer wins, and the buffer
    is consumed up to the end of the match. Running out of script raises
    TIMEOUT (or EOF if eof=True).
    """

    def __init__(self, chunks, eof: bool = False):
        self.chunks = list(chunks)
        self.eof = eof
        self.buffer = ""
        self.matched = ""
        self.sent: list[str] = []
        self.closed = False
        self.path = None
        self.baudrate = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def expect(self, patterns, timeout):
        compiled = [re.compile(p) for p in patterns]
        while True:
            best = None
            for index, regex in enumerate(compiled):
                match = regex.search(self.buffer)
                if match and (best is None or match.start() < best[1].start()):
                    best = (index, match)
            if best:
                index, match = best
                self.matched = match.group(0)
                self.buffer = self.buffer[match.end():]
                return index
            if not self.chunks:
                if self.eof:
                    raise pexpect.EOF("console closed")
                raise pexpect.TIMEOUT("no match")
            self.buffer += self.chunks.pop(0)

    def sendline(self, text=""):
        self.sent.append(text)

    def close(self):
        self.closed = True


BOOT_LOG = [
    "Hart Software Services - Version: 0.99.36\r\n",
    "U-Boot 2023.07 (Oct 01 2026 - 12:00:00 +0000)\r\n",
    "[    0.000000] Linux version 6.6.0-linux4microchip (gcc 12.2) #1 SMP\r\n",
    "[    2.104000] Run /sbin/init as init process\r\n",
    "Welcome to Buildroot\r\nicicle login: ",
    "Password: ",
    "\r\n# ",
]


@pytest.fixture
def boot_log():
    return list(BOOT_LOG)


@pytest.fixture
def board():
    """A fully specified USB hub board with a console."""
    uart = UartConfig(pattern="usb-Silicon_Labs_CP2108_1234", primary="if00-port0")
    return Board(
        name="icicle",
        hub_serial_number="YK12345",
        hub_port_number="1",
        power_source_kind=HubKind.USB,
        uart=uart,
        uart_path=uart.device_path(Path("/dev/serial/by-id")),
    )


CONFIG_YAML = """
log_level: INFO
boards:
  icicle:
    serial: YK12345
    port: "1"
    type: usb
    uart:
      pattern: usb-Silicon_Labs_CP2108_1234
      primary: if00-port0
  relay-board:
    serial: YK12345
    port: "2"
    type: relay
"""


@pytest.fixture
def config_file(tmp_path):
    """Config file with one usb board and one relay board."""
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG_YAML)
    return path


@pytest.fixture
def make_console():
    """Factory for scripted consoles."""
    return FakeConsole
