"""
Recursive evaluator for monitor expressions.

Evaluation is a direct walk over the token list: every call receives the
same immutable list and an inclusive ``(low, high)`` range, picks the
shape of the range and recurses into sub-ranges.

Shapes, checked in this order:

  1. a single token             → decimal / hex literal, or $register
  2. one bracket pair around all → evaluate the inside
  3. a top-level binary operator → eval(left) OP eval(right)
  4. a leading DEREF             → read one word from memory

The top level (``evaluate``) first rewrites unary '*' to DEREF, then splits
once on the left-most top-level ==, != or && and evaluates both sides
(always both, there is no short-circuit).

Arithmetic is unsigned on a WORD_BITS machine word: every value is reduced
modulo 2**WORD_BITS, subtraction wraps, division is unsigned floor division
and comparisons compare the unsigned values.
"""

from __future__ import annotations
import logging
from typing import Callable, List, Tuple

from .config import WORD_MASK, DEREF_WIDTH
from .errors import ExprError, ParseError, EvalError, EvalRangeError
from .lexer import Lexer, Token, TokenType
from .parser import (
    mark_derefs, check_parentheses, find_root_operator, find_top_level_logic,
)

logger = logging.getLogger(__name__)

# name -> (value, found)
RegLookup = Callable[[str], Tuple[int, bool]]
# (address, width in bytes) -> value
MemRead = Callable[[int, int], int]


class Evaluator:
    """Evaluates expressions against register and memory state.

    The two capabilities are the only link to the machine:

        reg_lookup(name)        -> (value, found)
        mem_read(addr, width)   -> value

    Usage:
        ev = Evaluator(target.reg_str2val, target.mem.read)
        value, ok = ev.expr("$d + *0x0100")
    """

    def __init__(self, reg_lookup: RegLookup, mem_read: MemRead,
                 word_mask: int = WORD_MASK, deref_width: int = DEREF_WIDTH):
        self.reg_lookup = reg_lookup
        self.mem_read = mem_read
        self.word_mask = word_mask
        self.deref_width = deref_width
        self._busy = False

    # ── Public API ──────────────────────────

    def expr(self, text: str) -> Tuple[int, bool]:
        """Evaluate text, returning (value, True) or (0, False) on bad input."""
        try:
            return self.evaluate(text), True
        except ExprError as e:
            logger.debug("expr %r failed: %s", text, e)
            return 0, False

    def evaluate(self, text: str) -> int:
        """Evaluate text to an unsigned word.

        Raises:
            LexerError, ParseError, EvalError: on bad input.
            EvalRangeError: on an internal splitting bug.
        """
        if self._busy:
            raise RuntimeError("Evaluator is not reentrant")
        self._busy = True
        try:
            tokens = mark_derefs(Lexer(text).tokenize())
            if not tokens:
                raise ParseError("Empty expression")

            split = find_top_level_logic(tokens)
            if split is None:
                value = self.eval_range(tokens, 0, len(tokens) - 1)
            else:
                if split == 0 or split == len(tokens) - 1:
                    raise ParseError("Missing operand", split)
                left = self.eval_range(tokens, 0, split - 1)
                right = self.eval_range(tokens, split + 1, len(tokens) - 1)
                value = self._apply(tokens[split], split, left, right)
        finally:
            self._busy = False

        logger.debug("expr %r = 0x%08X", text, value)
        return value

    # ── Range evaluation ────────────────────

    def eval_range(self, tokens: List[Token], low: int, high: int) -> int:
        if low > high:
            raise EvalRangeError(low, high)

        if low == high:
            return self._eval_operand(tokens[low], low)

        if check_parentheses(tokens, low, high):
            if high - low == 1:
                raise ParseError("Empty brackets", low)
            return self.eval_range(tokens, low + 1, high - 1)

        op = find_root_operator(tokens, low, high)
        if op is None:
            if tokens[low].type is TokenType.DEREF:
                return self._deref(tokens, low + 1, high)
            raise ParseError("Missing operator", low)

        if op == low or op == high:
            raise ParseError("Missing operand", op)

        left = self.eval_range(tokens, low, op - 1)
        right = self.eval_range(tokens, op + 1, high)
        return self._apply(tokens[op], op, left, right)

    def _eval_operand(self, tok: Token, index: int) -> int:
        if tok.type is TokenType.NUM:
            return int(tok.text, 10) & self.word_mask
        if tok.type is TokenType.HEX:
            return int(tok.text, 16) & self.word_mask
        if tok.type is TokenType.REG:
            value, found = self.reg_lookup(tok.text)
            if not found:
                raise EvalError(f"Unknown register ${tok.text}", index)
            return value & self.word_mask
        raise ParseError(f"Expected operand, got {tok.type.value!r}", index)

    def _deref(self, tokens: List[Token], low: int, high: int) -> int:
        """Read one word at the address given by tokens[low..high]."""
        if low == high:
            # Single operand: its text is always read as hex, "*100" == "*0x100"
            tok = tokens[low]
            if tok.type not in (TokenType.HEX, TokenType.NUM):
                raise EvalError("Malformed dereference operand", low)
            addr = int(tok.text, 16) & self.word_mask
        else:
            addr = self.eval_range(tokens, low, high)
        return self.mem_read(addr, self.deref_width) & self.word_mask

    def _apply(self, op: Token, index: int, a: int, b: int) -> int:
        ttype = op.type
        if ttype is TokenType.PLUS:
            return (a + b) & self.word_mask
        if ttype is TokenType.MINUS:
            return (a - b) & self.word_mask
        if ttype is TokenType.MUL:
            return (a * b) & self.word_mask
        if ttype is TokenType.DIV:
            if b == 0:
                raise EvalError("Division by zero", index)
            return a // b
        if ttype is TokenType.EQ:
            return int(a == b)
        if ttype is TokenType.NEQ:
            return int(a != b)
        if ttype is TokenType.AND:
            return int(a != 0 and b != 0)
        raise RuntimeError(f"No handler for operator {ttype.name} at {index}")
