"""
Command-line interface for boardctl.

Provides commands for switching board power, verifying boot and
shutdown over the console, and powering down the whole lab.
"""

import logging
import sys
from pathlib import Path
from typing import Callable

import click

from boardctl import __version__
from boardctl.core.config import DEFAULT_BOARD, Config, load_config
from boardctl.core.models import Board
from boardctl.core.registry import BoardRegistry
from boardctl.errors import BoardctlError
from boardctl.power.engine import PowerEngine
from boardctl.power.sweep import SweepResult, goodnight
from boardctl.shell import power_label, run_interactively

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity level."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s [%(levelname)s] %(message)s")


def _get_config(ctx: click.Context) -> Config:
    """Load config on first use and apply its log level."""
    if "config" not in ctx.obj:
        config = load_config(ctx.obj["config_path"])
        if not ctx.obj.get("verbose"):
            try:
                logging.getLogger().setLevel(config.log_level.upper())
            except ValueError:
                logger.warning(f"Unknown log level {config.log_level!r}, keeping default")
        ctx.obj["config"] = config
    return ctx.obj["config"]


def _get_registry(ctx: click.Context) -> BoardRegistry:
    if "registry" not in ctx.obj:
        ctx.obj["registry"] = BoardRegistry.from_config(_get_config(ctx))
    return ctx.obj["registry"]


def _get_engine(ctx: click.Context) -> PowerEngine:
    if "engine" not in ctx.obj:
        ctx.obj["engine"] = PowerEngine(_get_config(ctx))
    return ctx.obj["engine"]


def _fail(error: Exception) -> None:
    click.echo(f"Error: {error}", err=True)
    sys.exit(1)


def _board_op(
    ctx: click.Context, op: Callable[[PowerEngine, Board], None], done: str
) -> None:
    """Build the selected board fresh and run one engine operation on it."""
    try:
        board = _get_registry(ctx).get_board(ctx.obj["board"])
        op(_get_engine(ctx), board)
    except BoardctlError as e:
        _fail(e)
    click.echo(f"{ctx.obj['board']}: {done}")


@click.group()
@click.version_option(version=__version__, prog_name="boardctl")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.option(
    "-c", "--config", "config_path", type=click.Path(path_type=Path),
    help="Path to config file (default: config.yaml or $BOARDCTL_CONFIG)"
)
@click.option(
    "-b", "--board", default=DEFAULT_BOARD, show_default=True,
    help="Board to operate on"
)
@click.pass_context
def main(ctx: click.Context, verbose: bool, config_path: Path | None, board: str) -> None:
    """Board Control - Switch lab board power and verify boot."""
    setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["config_path"] = config_path
    ctx.obj["board"] = board


@main.command("on")
@click.option("--wait", "-w", is_flag=True, help="Wait for the board to boot to a login shell")
@click.pass_context
def on_cmd(ctx: click.Context, wait: bool) -> None:
    """Power the board on."""
    if wait:
        _board_op(ctx, lambda engine, board: engine.boot(board), "booted")
    else:
        _board_op(ctx, lambda engine, board: engine.power_on(board), "powered on")


@main.command("off")
@click.option(
    "--graceful", "-g", is_flag=True,
    help="Run poweroff over the console and wait for the halt before cutting power"
)
@click.pass_context
def off_cmd(ctx: click.Context, graceful: bool) -> None:
    """Power the board off."""
    if graceful:
        _board_op(ctx, lambda engine, board: engine.shutdown(board), "halted and powered off")
    else:
        _board_op(ctx, lambda engine, board: engine.power_off(board), "powered off")


@main.command("reset")
@click.option("--wait", "-w", is_flag=True, help="Wait for the board to boot to a login shell")
@click.pass_context
def reset_cmd(ctx: click.Context, wait: bool) -> None:
    """Power cycle the board (off, 1s, on)."""
    if wait:
        _board_op(ctx, lambda engine, board: engine.boot_test(board), "rebooted and booted")
    else:
        _board_op(ctx, lambda engine, board: engine.reboot(board), "rebooted")


main.add_command(reset_cmd, "reboot")


@main.command("boot-test")
@click.pass_context
def boot_test_cmd(ctx: click.Context) -> None:
    """Power cycle the board and wait for a login shell."""
    _board_op(ctx, lambda engine, board: engine.boot_test(board), "boot test passed")


@main.command("status")
@click.pass_context
def status_cmd(ctx: click.Context) -> None:
    """Show whether the board is powered."""
    try:
        board = _get_registry(ctx).get_board(ctx.obj["board"])
        powered = _get_engine(ctx).query_power(board)
    except BoardctlError as e:
        _fail(e)
    click.echo(f"{board.name}: {'on' if powered else 'off'}")


@main.command("goodnight")
@click.pass_context
def goodnight_cmd(ctx: click.Context) -> None:
    """Power off every board in the config, best effort."""
    try:
        registry = _get_registry(ctx)
        engine = _get_engine(ctx)
    except BoardctlError as e:
        _fail(e)

    def progress(result: SweepResult) -> None:
        click.echo(f"{result.status_char} {result.board_name}: {result.message}")

    report = goodnight(registry, engine, progress=progress)
    click.echo(f"\n{len(report.succeeded)} powered off, {len(report.failed)} failed")


@main.command("list")
@click.pass_context
def list_cmd(ctx: click.Context) -> None:
    """List configured boards with their power state."""
    try:
        registry = _get_registry(ctx)
        engine = _get_engine(ctx)
    except BoardctlError as e:
        _fail(e)

    if not len(registry):
        click.echo("No boards configured.")
        return

    click.echo(f"{'NAME':<15} {'TYPE':<6} {'HUB':<12} {'PORT':<5} {'POWER':<6} {'UART':<30}")
    click.echo("-" * 78)

    for name in registry:
        try:
            board = registry.get_board(name)
        except BoardctlError as e:
            click.echo(f"{name:<15} config error: {e}")
            continue
        uart = str(board.uart_path) if board.uart_path else "-"
        click.echo(
            f"{board.name:<15} {board.kind_name:<6} {board.hub_serial_number:<12} "
            f"{board.hub_port_number:<5} {power_label(engine, board):<6} {uart:<30}"
        )


@main.command("interactive")
@click.pass_context
def interactive_cmd(ctx: click.Context) -> None:
    """Pick boards and actions from a menu."""
    try:
        registry = _get_registry(ctx)
        engine = _get_engine(ctx)
    except BoardctlError as e:
        _fail(e)
    run_interactively(registry, engine)


if __name__ == "__main__":
    main()
