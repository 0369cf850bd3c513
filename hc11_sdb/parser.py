"""
Range parser for monitor expressions.

The evaluator never builds a tree. It works on the immutable token list
with explicit inclusive bounds ``(low, high)`` and asks this module three
questions about a range:

  - is it wrapped in exactly one matching bracket pair?  (check_parentheses)
  - which operator should be applied last?               (find_root_operator)
  - where is the left-most top-level ==, != or &&?       (find_top_level_logic)

Operator precedence, lowest first:

    &&  <  == !=  <  + -  <  * /

Within one precedence class the right-most operator is the root, which makes
every binary operator left-associative: ``8-2-1`` splits as ``(8-2) - 1``.
"""

from __future__ import annotations
from typing import Dict, List, Optional

from .errors import ParseError
from .lexer import Token, TokenType, BINARY_OPS

PRECEDENCE: Dict[TokenType, int] = {
    TokenType.AND: 0,
    TokenType.EQ: 1,
    TokenType.NEQ: 1,
    TokenType.PLUS: 2,
    TokenType.MINUS: 2,
    TokenType.MUL: 3,
    TokenType.DIV: 3,
}

TOP_LEVEL_LOGIC = frozenset({TokenType.EQ, TokenType.NEQ, TokenType.AND})

# A '*' right after one of these (or at index 0) has no left operand
_DEREF_PREFIX = BINARY_OPS | {TokenType.DEREF, TokenType.LPAREN}


# ──────────────────────────────────────────────
# Dereference marking
# ──────────────────────────────────────────────

def mark_derefs(tokens: List[Token]) -> List[Token]:
    """Rewrite unary '*' tokens to DEREF in place and return the list."""
    for i, tok in enumerate(tokens):
        if tok.type is not TokenType.MUL:
            continue
        if i == 0 or tokens[i - 1].type in _DEREF_PREFIX:
            tok.type = TokenType.DEREF
    return tokens


# ──────────────────────────────────────────────
# Bracket matcher
# ──────────────────────────────────────────────

def check_parentheses(tokens: List[Token], p: int, q: int) -> bool:
    """True iff tokens[p] is '(' , tokens[q] is ')' and they match each other.

    Scans p..q with a depth counter; the pair matches when the depth first
    returns to zero exactly at q.
    """
    if p >= q:
        return False
    if tokens[p].type is not TokenType.LPAREN or tokens[q].type is not TokenType.RPAREN:
        return False

    depth = 0
    for i in range(p, q + 1):
        ttype = tokens[i].type
        if ttype is TokenType.LPAREN:
            depth += 1
        elif ttype is TokenType.RPAREN:
            depth -= 1
            if depth == 0:
                return i == q
    return False


def find_matching(tokens: List[Token], p: int, high: int) -> Optional[int]:
    """Index of the ')' matching the '(' at p, searching no further than high."""
    for q in range(p + 1, high + 1):
        if check_parentheses(tokens, p, q):
            return q
    return None


# ──────────────────────────────────────────────
# Operator locator
# ──────────────────────────────────────────────

def find_root_operator(tokens: List[Token], low: int, high: int) -> Optional[int]:
    """Return the index of the operator to evaluate last in tokens[low..high].

    Bracketed spans are skipped whole. Returns None when the range has no
    top-level binary operator. Raises ParseError on unbalanced brackets.
    """
    best: Optional[int] = None
    best_prec = None

    i = low
    while i <= high:
        ttype = tokens[i].type

        if ttype is TokenType.LPAREN:
            close = find_matching(tokens, i, high)
            if close is None:
                raise ParseError("Unbalanced '('", i)
            i = close + 1
            continue

        if ttype is TokenType.RPAREN:
            raise ParseError("Unmatched ')'", i)

        prec = PRECEDENCE.get(ttype)
        if prec is not None and (best_prec is None or prec <= best_prec):
            best, best_prec = i, prec
        i += 1

    return best


def find_top_level_logic(tokens: List[Token]) -> Optional[int]:
    """Index of the left-most ==, != or && outside any brackets, else None."""
    depth = 0
    for i, tok in enumerate(tokens):
        if tok.type is TokenType.LPAREN:
            depth += 1
        elif tok.type is TokenType.RPAREN:
            depth -= 1
        elif depth == 0 and tok.type in TOP_LEVEL_LOGIC:
            return i
    return None
