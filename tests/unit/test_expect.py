"""Unit tests for expect-driven console sessions."""

import socket

import pytest
from pexpect import fdpexpect

from boardctl.core.config import ConsoleConfig
from boardctl.errors import BootTimeout, ShutdownTimeout, UnexpectedConsoleOutput
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


class TestSequenceTables:
    """Tests for the boot and shutdown step tables."""

    def test_boot_states_in_order(self):
        assert [step.state for step in BOOT_SEQUENCE] == [
            SessionState.AWAITING_BOOTLOADER,
            SessionState.AWAITING_KERNEL,
            SessionState.AWAITING_INIT,
            SessionState.AWAITING_LOGIN,
            SessionState.AWAITING_PASSWORD_PROMPT,
            SessionState.AWAITING_SHELL_PROMPT,
        ]

    def test_shutdown_states_in_order(self):
        assert [step.state for step in SHUTDOWN_SEQUENCE] == [
            SessionState.AWAITING_SHUTDOWN_COMMAND,
            SessionState.AWAITING_HALTED_MESSAGE,
        ]

    def test_boot_timeout_constant(self):
        assert BOOT_TIMEOUT == 120.0


class TestVerifyBoot:
    """Tests for the boot sequence."""

    def test_full_boot(self, make_console, boot_log):
        """Test markers in order reach LOGGED_IN with the scripted login."""
        console = make_console(boot_log)

        state = verify_boot(console)

        assert state is SessionState.LOGGED_IN
        assert console.sent == ["root", "root"]

    def test_custom_credentials(self, make_console, boot_log):
        console = make_console(boot_log)
        verify_boot(console, ConsoleConfig(username="dev", password="s3cret"))
        assert console.sent == ["dev", "s3cret"]

    def test_all_output_in_one_chunk(self, make_console, boot_log):
        """Test markers arriving together are still taken one at a time."""
        console = make_console(["".join(boot_log[:4])] + boot_log[4:])
        assert verify_boot(console) is SessionState.LOGGED_IN

    def test_reversed_markers_time_out(self, make_console):
        """Test a marker seen out of order is never matched later."""
        console = make_console([
            "icicle login: \r\n",
            "Run /sbin/init as init process\r\n",
            "Linux version 6.6.0 #1 SMP\r\n",
            "U-Boot 2023.07\r\n",
        ])

        with pytest.raises(BootTimeout) as exc_info:
            verify_boot(console)

        assert exc_info.value.state == SessionState.AWAITING_KERNEL.value
        assert console.sent == []

    def test_missing_init_times_out_on_init(self, make_console, boot_log):
        """Test the session waits on the missing marker, never skipping ahead."""
        log = [chunk for chunk in boot_log if "init" not in chunk]
        console = make_console(log)

        with pytest.raises(BootTimeout) as exc_info:
            verify_boot(console)

        assert exc_info.value.state == "awaiting init"
        assert "120" in str(exc_info.value)

    def test_login_refused(self, make_console, boot_log):
        """Test a refused login is a protocol failure, not a timeout."""
        console = make_console(boot_log[:-1] + ["\r\nLogin incorrect\r\nicicle login: "])

        with pytest.raises(UnexpectedConsoleOutput, match="Login incorrect"):
            verify_boot(console)

    def test_console_closed(self, make_console, boot_log):
        """Test EOF on the console is reported as unexpected output."""
        console = make_console(boot_log[:2], eof=True)

        with pytest.raises(UnexpectedConsoleOutput, match="closed"):
            verify_boot(console)

    def test_timeout_is_not_protocol_error(self, make_console):
        """Test silence raises BootTimeout only."""
        console = make_console([])
        with pytest.raises(BootTimeout) as exc_info:
            verify_boot(console)
        assert not isinstance(exc_info.value, UnexpectedConsoleOutput)


class TestVerifyShutdown:
    """Tests for the shutdown sequence."""

    def test_halt(self, make_console):
        console = make_console([
            "\r\nroot@icicle:~# ",
            "poweroff\r\nStopping network: OK\r\n",
            "[  120.5] reboot: Power down\r\n",
        ])

        state = verify_shutdown(console)

        assert state is SessionState.HALTED
        assert console.sent == ["", "poweroff"]

    def test_system_halted(self, make_console):
        console = make_console(["# ", "System halted\r\n"])
        assert verify_shutdown(console) is SessionState.HALTED

    def test_no_halt_message(self, make_console):
        console = make_console(["# ", "poweroff\r\n"])

        with pytest.raises(ShutdownTimeout) as exc_info:
            verify_shutdown(console)

        assert exc_info.value.state == "awaiting halted message"


class TestRunSession:
    """Tests for the generic session routine."""

    def test_deadline_covers_whole_session(self, make_console):
        """Test a deadline spent by earlier steps fails the next one."""
        steps = (
            ExpectStep(SessionState.AWAITING_BOOTLOADER, "U-Boot"),
            ExpectStep(SessionState.AWAITING_KERNEL, "Linux version"),
        )
        ticks = iter([0.0, 1.0, 200.0])
        console = make_console(["U-Boot\r\n", "Linux version 6.6\r\n"])

        with pytest.raises(BootTimeout) as exc_info:
            run_session(
                console, steps, SessionState.LOGGED_IN, timeout=120.0,
                clock=lambda: next(ticks),
            )

        assert exc_info.value.state == "awaiting kernel"

    def test_custom_table(self, make_console):
        """Test any step table can be driven."""
        steps = (
            ExpectStep(SessionState.AWAITING_LOGIN, "login:", send="{username}"),
            ExpectStep(SessionState.AWAITING_SHELL_PROMPT, r"\$ $", before="id"),
        )
        console = make_console(["box login: ", "uid=0(root)\r\n$ "])

        state = run_session(
            console, steps, SessionState.LOGGED_IN,
            timeout_error=ShutdownTimeout,
            credentials=ConsoleConfig(username="pi"),
        )

        assert state is SessionState.LOGGED_IN
        assert console.sent == ["pi", "id"]

    def test_reject_pattern(self, make_console):
        steps = (
            ExpectStep(SessionState.AWAITING_SHELL_PROMPT, r"# $", reject="denied"),
        )
        console = make_console(["access denied\r\n# "])

        with pytest.raises(UnexpectedConsoleOutput, match="denied"):
            run_session(console, steps, SessionState.LOGGED_IN)


class TestPromptsInsideLogNoise:
    """Prompts are found wherever the serial reads happen to split."""

    def test_kernel_messages_after_prompts(self, make_console, boot_log):
        console = make_console(boot_log[:4] + [
            "Welcome to Buildroot\r\nicicle login: [    7.1] random: crng init done\r\n",
            "Password: [    8.0] macb 20112000.ethernet eth0: Link is Up\r\n",
            "\r\n# ",
        ])

        assert verify_boot(console) is SessionState.LOGGED_IN
        assert console.sent == ["root", "root"]

    def test_hash_in_kernel_line_is_not_a_prompt(self, make_console, boot_log):
        console = make_console(boot_log[:-1] + [
            "\r\n[    9.1] cfg80211: loaded regulatory.db # 1 \r\n",
        ])

        with pytest.raises(BootTimeout) as exc_info:
            verify_boot(console)

        assert exc_info.value.state == "awaiting shell prompt"

    def test_last_login_banner_accepted(self, make_console, boot_log):
        console = make_console(boot_log[:-1] + [
            "\r\nLast login: Sat Oct 17 21:04:11 on ttyS0\r\nroot@icicle:~# ",
        ])
        assert verify_boot(console) is SessionState.LOGGED_IN


class PexpectConsole:
    """Console over a real pexpect fdspawn, as SerialConsole uses."""

    def __init__(self, sock):
        self.child = fdpexpect.fdspawn(sock.fileno(), encoding="utf-8", codec_errors="replace")

    @property
    def matched(self):
        after = self.child.after
        return after if isinstance(after, str) else ""

    def expect(self, patterns, timeout):
        return self.child.expect(list(patterns), timeout=timeout)

    def sendline(self, text=""):
        self.child.sendline(text)


@pytest.fixture
def socket_console():
    """A pexpect console and the board end of its connection."""
    board_end, host_end = socket.socketpair()
    board_end.settimeout(5)
    yield PexpectConsole(host_end), board_end
    board_end.close()
    host_end.close()


class TestOverPexpect:
    """Boot sequence against pexpect's own buffering."""

    def test_whole_boot_in_one_read(self, socket_console):
        console, board_end = socket_console
        board_end.sendall(
            b"U-Boot 2023.07\r\n"
            b"[    0.0] Linux version 6.6.0-linux4microchip #1 SMP\r\n"
            b"[    2.1] Run /sbin/init as init process\r\n"
            b"icicle login: [    7.1] random: crng init done\r\n"
            b"Password: \r\n# "
        )

        assert verify_boot(console, timeout=5) is SessionState.LOGGED_IN

        received = b""
        while received.count(b"\n") < 2:
            received += board_end.recv(1024)
        assert received.split() == [b"root", b"root"]
