"""
Interactive board menu.

Lists boards with their queried power state and runs power actions on
the selected one until the user quits.
"""

import logging
from typing import Callable, Optional

import click

from boardctl.core.models import Board
from boardctl.core.registry import BoardRegistry
from boardctl.errors import BoardctlError
from boardctl.power.base import StatusCapability
from boardctl.power.engine import PowerEngine

logger = logging.getLogger(__name__)

Action = Callable[[PowerEngine, Board], Optional[str]]


def _switch_power(engine: PowerEngine, board: Board) -> str:
    powered = engine.toggle_power(board)
    return f"{board.name} powered {'on' if powered else 'off'}"


def _reboot(engine: PowerEngine, board: Board) -> str:
    engine.reboot(board)
    return f"{board.name} rebooted"


def _boot_test(engine: PowerEngine, board: Board) -> str:
    engine.boot_test(board)
    return f"{board.name} booted to a login shell"


ACTIONS: list[tuple[str, Action]] = [
    ("Switch power", _switch_power),
    ("Reboot", _reboot),
    ("Boot test", _boot_test),
]


def power_label(engine: StatusCapability, board: Board) -> str:
    """Queried power state for display; never stored on the board."""
    try:
        return "on" if engine.query_power(board) else "off"
    except BoardctlError as e:
        logger.debug(f"Status query for {board.name} failed: {e}")
        return "error"


def _show_boards(registry: BoardRegistry, engine: PowerEngine) -> list[str]:
    names = list(registry)
    click.echo()
    for index, name in enumerate(names, start=1):
        try:
            label = power_label(engine, registry.get_board(name))
        except BoardctlError:
            label = "config error"
        colour = "blue" if label == "on" else None
        click.echo(f"  {index:>2}) " + click.style(f"{name:<20} {label}", fg=colour))
    return names


def _choose(prompt: str, count: int) -> Optional[int]:
    """Read a 1-based choice; None means go back/quit."""
    while True:
        answer = click.prompt(prompt, default="q", show_default=False).strip().lower()
        if answer in ("q", ""):
            return None
        if answer.isdigit() and 1 <= int(answer) <= count:
            return int(answer) - 1
        click.echo(f"Enter a number between 1 and {count}, or q")


def _action_menu(engine: PowerEngine, board: Board) -> None:
    click.echo()
    for index, (label, _) in enumerate(ACTIONS, start=1):
        click.echo(f"  {index}) {label}")
    choice = _choose(f"Action for {board.name} (q to go back)", len(ACTIONS))
    if choice is None:
        return

    _, action = ACTIONS[choice]
    try:
        message = action(engine, board)
    except BoardctlError as e:
        click.echo(f"Error: {e}", err=True)
        return
    if message:
        click.echo(message)


def run_interactively(registry: BoardRegistry, engine: PowerEngine) -> None:
    """
    Run the board menu until the user quits.

    Long actions (boot test) can only be cancelled with Ctrl-C, which ends
    the menu.
    """
    try:
        while True:
            names = _show_boards(registry, engine)
            if not names:
                click.echo("No boards configured.")
                return
            choice = _choose("Board (q to quit)", len(names))
            if choice is None:
                return
            try:
                board = registry.get_board(names[choice])
            except BoardctlError as e:
                click.echo(f"Error: {e}", err=True)
                continue
            _action_menu(engine, board)
    except (KeyboardInterrupt, click.Abort):
        click.echo("\nInterrupted")
