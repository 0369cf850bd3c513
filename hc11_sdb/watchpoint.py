"""
HC11 SDB — Watchpoint Pool

A fixed arena of NR_WP slots. Slot numbers are assigned once, when the pool
is built, and never change meaning: a released slot keeps its number and
comes back with it on a later allocate.

Membership is tracked with two index lists instead of links inside the
slots:

    _free    stack of free slot numbers (top = next to hand out)
    _active  active slot numbers in allocation order (newest last)

Every slot number is in exactly one of the two lists at all times, so
``len(_free) + len(_active) == capacity``.

check() re-evaluates the active expressions newest first and stops at the
first one whose value moved away from its baseline while it still has fire
budget left. The baseline is taken at allocate() and refreshed only when
that watchpoint reports; reset_baselines() refreshes all of them.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional, Tuple

from .config import NR_WP, DEFAULT_FIRE_BUDGET
from .errors import PoolExhausted, NotFoundError
from .evaluator import Evaluator

logger = logging.getLogger(__name__)


@dataclass
class Watchpoint:
    """One pool slot. ``id`` is fixed; everything else resets on release."""
    id: int
    expression: str = ""
    last_value: int = 0
    fire_budget: int = DEFAULT_FIRE_BUDGET
    hits: int = 0
    in_use: bool = False

    def reset(self):
        self.expression = ""
        self.last_value = 0
        self.fire_budget = DEFAULT_FIRE_BUDGET
        self.hits = 0
        self.in_use = False


@dataclass(frozen=True)
class WatchHit:
    """A watchpoint whose value changed: what check() reports."""
    id: int
    expression: str
    old: int
    new: int

    def __str__(self) -> str:
        return (f"watchpoint {self.id}: {self.expression}\n"
                f"  last value: 0x{self.old:08X}\n"
                f"  now value:  0x{self.new:08X}")


class CheckStatus(Enum):
    CONTINUE = 'CONTINUE'
    HALT = 'HALT'


@dataclass(frozen=True)
class CheckResult:
    status: CheckStatus
    hit: Optional[WatchHit] = None

    @property
    def halted(self) -> bool:
        return self.status is CheckStatus.HALT


class WatchpointPool:
    """Fixed-capacity watchpoint registry.

    Usage:
        pool = WatchpointPool(evaluator)
        n = pool.allocate("*0x0100")
        ...execute one instruction...
        result = pool.check()
        if result.halted:
            print(result.hit)
    """

    def __init__(self, evaluator: Evaluator, capacity: int = NR_WP):
        if capacity <= 0:
            raise ValueError(f"Pool capacity must be positive, got {capacity}")
        self.evaluator = evaluator
        self._slots: List[Watchpoint] = [Watchpoint(i) for i in range(capacity)]
        # Reversed so that a fresh pool hands out 0, 1, 2, ... in order
        self._free: List[int] = list(range(capacity - 1, -1, -1))
        self._active: List[int] = []

    # --- Sizes ---

    @property
    def capacity(self) -> int:
        return len(self._slots)

    @property
    def free_count(self) -> int:
        return len(self._free)

    def __len__(self) -> int:
        return len(self._active)

    def free_ids(self) -> List[int]:
        return list(self._free)

    def active_ids(self) -> List[int]:
        """Active slot numbers, newest first."""
        return self._active[::-1]

    # --- Registry operations ---

    def allocate(self, expression: str) -> int:
        """Register expression and return its watchpoint number.

        The expression is evaluated once for its baseline value before a
        slot is taken, so a bad expression leaves the pool untouched.

        Raises:
            PoolExhausted: no free slot.
            ExprError: the expression cannot be evaluated.
        """
        if not self._free:
            raise PoolExhausted(f"All {self.capacity} watchpoints are in use")

        baseline = self.evaluator.evaluate(expression)

        wp = self._slots[self._free.pop()]
        wp.expression = expression
        wp.last_value = baseline
        wp.fire_budget = DEFAULT_FIRE_BUDGET
        wp.hits = 0
        wp.in_use = True
        self._active.append(wp.id)

        logger.info("watchpoint %d: %s (baseline 0x%08X)", wp.id, expression, baseline)
        return wp.id

    def release(self, wp_id: int):
        """Return an active watchpoint to the free set.

        Raises:
            NotFoundError: wp_id is not an active watchpoint.
        """
        wp = self.get(wp_id)
        self._active.remove(wp.id)
        wp.reset()
        self._free.append(wp.id)
        logger.info("watchpoint %d released", wp_id)

    def get(self, wp_id: int) -> Watchpoint:
        """Return the active watchpoint numbered wp_id."""
        if not 0 <= wp_id < len(self._slots) or not self._slots[wp_id].in_use:
            raise NotFoundError(wp_id)
        return self._slots[wp_id]

    def __iter__(self) -> Iterator[Watchpoint]:
        for wp_id in reversed(self._active):
            yield self._slots[wp_id]

    def list(self) -> List[Tuple[int, str]]:
        """(number, expression) for every active watchpoint, newest first."""
        return [(wp.id, wp.expression) for wp in self]

    # --- Checking ---

    def check(self) -> CheckResult:
        """Re-evaluate active watchpoints; HALT on the first one that changed."""
        for wp in self:
            value, ok = self.evaluator.expr(wp.expression)
            if not ok:
                logger.warning("watchpoint %d: cannot evaluate %r", wp.id, wp.expression)
                continue

            if value != wp.last_value and wp.fire_budget:
                wp.fire_budget -= 1
                wp.hits += 1
                hit = WatchHit(wp.id, wp.expression, wp.last_value, value)
                wp.last_value = value
                logger.info("watchpoint %d triggered: 0x%08X -> 0x%08X",
                            wp.id, hit.old, hit.new)
                return CheckResult(CheckStatus.HALT, hit)

        return CheckResult(CheckStatus.CONTINUE)

    def reset_baselines(self):
        """Re-read every active expression into its baseline."""
        for wp in self:
            value, ok = self.evaluator.expr(wp.expression)
            if ok:
                wp.last_value = value
