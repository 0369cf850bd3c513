"""
HC11 SDB — Expression and Watchpoint Monitor
============================================
Debugger monitor core for the HC11 virtual emulator toolchain: evaluates
C-like watch expressions over register/memory state and keeps a fixed pool
of watchpoints that are re-checked after every executed instruction.

Architecture:
    ┌──────────┐    ┌──────────┐    ┌───────────┐    ┌────────────┐
    │  text    │───>│  Lexer   │───>│  Parser   │───>│ Evaluator  │
    │ "$d+*0x" │    │ (tokens) │    │ (ranges)  │    │ (uint32)   │
    └──────────┘    └──────────┘    └───────────┘    └─────┬──────┘
                                                           │
                             ┌───────────────┐    ┌────────┴───────┐
                             │   Monitor     │───>│ WatchpointPool │
                             │ (p/x/w/d/si/c)│    │  (NR_WP slots) │
                             └───────────────┘    └────────────────┘

    - lexer.py:      ordered regex rule table, first match wins
    - parser.py:     bracket matcher + root-operator locator over (low, high)
    - evaluator.py:  recursive range evaluator, unary '*' = memory read
    - watchpoint.py: free/active index lists over a fixed slot arena
    - target.py:     HC11 registers + 64K big-endian memory
    - monitor.py:    command layer; cli.py: argparse entry point
"""

__version__ = "0.1.0"

import weakref

from .errors import (
    SdbError, ExprError, LexerError, ParseError, EvalError,
    WatchpointError, PoolExhausted, NotFoundError, EvalRangeError,
)
from .lexer import Lexer, Token, TokenType
from .evaluator import Evaluator
from .watchpoint import Watchpoint, WatchpointPool, WatchHit, CheckResult, CheckStatus
from .target import Registers, Memory, Target
from .monitor import Monitor, StopReason


_evaluators: "weakref.WeakKeyDictionary[Target, Evaluator]" = weakref.WeakKeyDictionary()


def evaluator_for(target: Target) -> Evaluator:
    """The shared Evaluator bound to target, created on first use."""
    ev = _evaluators.get(target)
    if ev is None:
        ev = _evaluators[target] = Evaluator(target.reg_str2val, target.mem.read)
    return ev


def expr(text: str, target: Target):
    """Evaluate text against target. Returns (value, success).

    Every call for the same target goes through one Evaluator, so calling
    expr() from inside an evaluation on that target raises RuntimeError.
    """
    return evaluator_for(target).expr(text)
