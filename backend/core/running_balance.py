"""
Historical running quantity for a page of stock movements.

Pages must be read newest-first and in order: the continuation quantity of page
N is the anchor for page N + 1. Feeding pages out of order yields wrong
balances and cannot be detected here.
"""

from dataclasses import dataclass
from typing import Any, Iterable, Tuple


@dataclass(frozen=True)
class BalanceRow:
    movement: Any
    # quantity immediately after this movement was applied
    running_quantity: int


@dataclass(frozen=True)
class RunningBalancePage:
    rows: Tuple[BalanceRow, ...]
    # quantity immediately before the oldest movement in the page
    continuation_quantity: int


def project(movements: Iterable[Any], anchor_quantity: int) -> RunningBalancePage:
    """
    Walk `movements` (newest first, each with an integer `delta`) back from
    `anchor_quantity`, the quantity right after the newest movement.
    """
    running = int(anchor_quantity)
    rows = []
    for movement in movements:
        rows.append(BalanceRow(movement=movement, running_quantity=running))
        running -= int(movement.delta)
    return RunningBalancePage(rows=tuple(rows), continuation_quantity=running)
