"""
HC11 SDB — Monitor Command Layer

Line-oriented front end over the expression core and the watchpoint pool:

    help [cmd]   list commands, or describe one
    c            continue until the engine stops or a watchpoint fires
    si [N]       step N instructions (default 1)
    info r       show registers
    info w       show watchpoints
    x N EXPR     dump N 4-byte words starting at address EXPR
    p EXPR       print the value of EXPR
    w EXPR       watch EXPR, stop when its value changes
    d N          delete watchpoint N
    q            quit

Stepping needs an execution engine: ``Target.step_fn`` is called once per
instruction and returns None to keep going or a stop reason. Watchpoints
are checked after every instruction.
"""

import logging
import sys
from enum import Enum
from typing import Iterable, Optional, TextIO

from .config import DEREF_WIDTH, NR_WP, PROMPT, X_WORDS_PER_LINE
from .errors import ExprError, PoolExhausted, NotFoundError
from .evaluator import Evaluator
from .target import Target
from .watchpoint import WatchpointPool

logger = logging.getLogger(__name__)


class StopReason(Enum):
    WATCH = 'WATCH'        # a watchpoint fired
    ENGINE = 'ENGINE'      # step_fn returned a stop reason
    TIMEOUT = 'TIMEOUT'    # max_steps exhausted under 'c'
    DONE = 'DONE'          # 'si N' completed all N steps
    NO_ENGINE = 'NO_ENGINE'


class Monitor:
    """Interactive/batch debugger monitor for one Target."""

    DEFAULT_MAX_STEPS = 10_000_000

    # name -> (usage, description)
    COMMANDS = {
        'help': ('help [cmd]', 'Display information about all supported commands'),
        'c':    ('c',          'Continue the execution of the program'),
        'si':   ('si [N]',     'Execute N instructions, then pause (default 1)'),
        'info': ('info r|w',   'Print register state (r) or watchpoints (w)'),
        'x':    ('x N EXPR',   'Dump N words of memory starting at EXPR'),
        'p':    ('p EXPR',     'Evaluate EXPR and print the result'),
        'w':    ('w EXPR',     'Stop when the value of EXPR changes'),
        'd':    ('d N',        'Delete watchpoint number N'),
        'q':    ('q',          'Exit the monitor'),
    }

    def __init__(self, target: Target, capacity: int = NR_WP,
                 out: Optional[TextIO] = None,
                 max_steps: int = DEFAULT_MAX_STEPS):
        self.target = target
        self.evaluator = Evaluator(target.reg_str2val, target.mem.read)
        self.watchpoints = WatchpointPool(self.evaluator, capacity=capacity)
        self.out = out if out is not None else sys.stdout
        self.max_steps = max_steps
        self.last_stop: Optional[str] = None

    def _print(self, *args):
        print(*args, file=self.out)

    # ══════════════════════════════════════════════
    # Command loop
    # ══════════════════════════════════════════════

    def run(self, lines: Optional[Iterable[str]] = None):
        """Process commands until 'q' or end of input.

        With lines=None, read interactively from stdin with a prompt.
        """
        if lines is None:
            lines = self._read_stdin()
        for line in lines:
            if not self.execute(line):
                break

    @staticmethod
    def _read_stdin():
        while True:
            try:
                yield input(PROMPT)
            except EOFError:
                return

    def execute(self, line: str) -> bool:
        """Run one command line. Returns False when the monitor should exit."""
        line = line.strip()
        if not line:
            return True

        name, *rest = line.split(None, 1)
        args = rest[0].strip() if rest else ''
        if name not in self.COMMANDS:
            self._print(f"Unknown command '{name}'")
            return True
        if name == 'q':
            return False

        logger.debug("command %s %r", name, args)
        getattr(self, f'cmd_{name}')(args)
        return True

    # ══════════════════════════════════════════════
    # Stepping
    # ══════════════════════════════════════════════

    def step(self, count: Optional[int] = None) -> StopReason:
        """Execute count instructions (None = until something stops us)."""
        step_fn = self.target.step_fn
        if step_fn is None:
            self._print("No execution engine attached")
            return StopReason.NO_ENGINE

        limit = self.max_steps if count is None else count
        for _ in range(limit):
            reason = step_fn()
            if reason is not None:
                self.last_stop = reason
                self._print(f"Program stopped: {reason}")
                return StopReason.ENGINE

            result = self.watchpoints.check()
            if result.halted:
                self.last_stop = 'WATCH'
                self._print("The program stopped because the monitored value changed.")
                self._print(result.hit)
                return StopReason.WATCH

        if count is None:
            self._print(f"No stop after {limit} instructions")
            return StopReason.TIMEOUT
        return StopReason.DONE

    # ══════════════════════════════════════════════
    # Commands
    # ══════════════════════════════════════════════

    def cmd_help(self, args: str):
        if args:
            if args not in self.COMMANDS:
                self._print(f"Unknown command '{args}'")
                return
            usage, desc = self.COMMANDS[args]
            self._print(f"{usage} - {desc}")
            return
        for usage, desc in self.COMMANDS.values():
            self._print(f"{usage:<12s} - {desc}")

    def cmd_c(self, args: str):
        self.step(None)

    def cmd_si(self, args: str):
        count = 1
        if args:
            try:
                count = int(args, 0)
            except ValueError:
                self._print(f"Usage: {self.COMMANDS['si'][0]}")
                return
            if count <= 0:
                self._print("Step count must be positive")
                return
        self.step(count)

    def cmd_info(self, args: str):
        if args == 'r':
            self._print(self.target.regs.display())
        elif args == 'w':
            entries = self.watchpoints.list()
            if not entries:
                self._print("No watchpoints.")
                return
            self._print("NO    expr")
            for wp_id, expression in entries:
                self._print(f"{wp_id:<5d} {expression}")
        else:
            self._print(f"Usage: {self.COMMANDS['info'][0]}")

    def cmd_x(self, args: str):
        count_str, *rest = args.split(None, 1) or ['']
        try:
            count = int(count_str, 0)
        except ValueError:
            count = 0
        if count <= 0:
            self._print(f"Usage: {self.COMMANDS['x'][0]}")
            return
        addr = self._eval_or_report(rest[0].strip() if rest else '')
        if addr is None:
            return

        mem = self.target.mem
        row = []
        for i in range(count):
            a = addr + i * DEREF_WIDTH
            if i % X_WORDS_PER_LINE == 0:
                if row:
                    self._print(' '.join(row))
                row = [f"0x{a & 0xFFFF:04X}:"]
            row.append(f"0x{mem.read(a, DEREF_WIDTH):08X}")
        if row:
            self._print(' '.join(row))

    def cmd_p(self, args: str):
        value = self._eval_or_report(args)
        if value is not None:
            self._print(f"{value} (0x{value:08X})")

    def cmd_w(self, args: str):
        if not args:
            self._print(f"Usage: {self.COMMANDS['w'][0]}")
            return
        try:
            wp_id = self.watchpoints.allocate(args)
        except PoolExhausted:
            self._print(f"No free watchpoint (all {self.watchpoints.capacity} in use)")
            return
        except ExprError as e:
            self._print(f"Bad expression: {e}")
            return
        self._print(f"Watchpoint {wp_id}: {args}")

    def cmd_d(self, args: str):
        try:
            wp_id = int(args, 0)
        except ValueError:
            self._print(f"Usage: {self.COMMANDS['d'][0]}")
            return
        try:
            self.watchpoints.release(wp_id)
        except NotFoundError:
            self._print(f"No watchpoint number {wp_id}.")
            return
        self._print(f"Deleted watchpoint {wp_id}")

    def _eval_or_report(self, expression: str) -> Optional[int]:
        if not expression:
            self._print("Missing expression")
            return None
        try:
            return self.evaluator.evaluate(expression)
        except ExprError as e:
            self._print(f"Bad expression: {e}")
            return None
