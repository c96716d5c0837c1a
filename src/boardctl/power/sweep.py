"""
Fleet sweep ("goodnight").

Powers down every board in the registry, one at a time, continuing past
per-board failures.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from boardctl.core.registry import BoardRegistry
from boardctl.errors import BoardctlError
from boardctl.power.base import OpsCapability

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    """Outcome of powering down one board."""

    board_name: str
    success: bool
    message: str

    @property
    def status_char(self) -> str:
        """Get single character status indicator."""
        if self.success:
            return "\u2713"  # checkmark
        return "\u2717"  # X mark


@dataclass
class SweepReport:
    """Outcome of a whole sweep."""

    results: list[SweepResult] = field(default_factory=list)

    @property
    def succeeded(self) -> list[str]:
        return [r.board_name for r in self.results if r.success]

    @property
    def failed(self) -> list[str]:
        return [r.board_name for r in self.results if not r.success]


def goodnight(
    registry: BoardRegistry,
    engine: OpsCapability,
    progress: Optional[Callable[[SweepResult], None]] = None,
) -> SweepReport:
    """
    Power off every board in the registry.

    Boards are handled sequentially in config file order. Errors for one
    board (including an incomplete board record) are logged and recorded,
    and the sweep moves on.

    Args:
        registry: Loaded board registry
        engine: Power engine to switch boards with
        progress: Optional callback invoked after each board

    Returns:
        SweepReport with one result per board
    """
    report = SweepReport()

    for name in registry:
        logger.info(f"Trying to power down {name}")
        try:
            board = registry.get_board(name)
            engine.power_off(board)
            result = SweepResult(board_name=name, success=True, message="powered off")
        except BoardctlError as e:
            logger.warning(f"Failed to power down {name}: {e}")
            result = SweepResult(board_name=name, success=False, message=str(e))

        report.results.append(result)
        if progress:
            progress(result)

    logger.info(
        f"Sweep done: {len(report.succeeded)} powered off, {len(report.failed)} failed"
    )
    return report
