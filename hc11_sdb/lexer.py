"""
Lexer / Tokenizer for monitor expressions.

Converts an expression such as ``*0x1000 + $x * 2 == 0x42`` into a list of
tokens for the evaluator. Recognition is driven by the ordered rule table
``RULES``: at every position the rules are tried top to bottom and the first
pattern that matches *at that position* wins, so the table order is the
priority order (hex before decimal, whitespace first).

The table is compiled once at import and is read-only afterwards. Each
``tokenize()`` call builds and returns a fresh token list; nothing survives
between calls.
"""

from __future__ import annotations
import enum
import logging
import re
from dataclasses import dataclass
from typing import List, Pattern, Tuple

from .config import MAX_TOKENS, TOKEN_TEXT_MAX
from .errors import LexerError

logger = logging.getLogger(__name__)


# ──────────────────────────────────────────────
# Token types
# ──────────────────────────────────────────────

class TokenType(enum.Enum):
    NOTYPE = "NOTYPE"      # whitespace, never emitted

    # Operands
    NUM = "NUM"            # decimal literal
    HEX = "HEX"            # 0x... literal
    REG = "REG"            # $name, text holds the name without '$'

    # Operators
    PLUS = "+"
    MINUS = "-"
    MUL = "*"
    DIV = "/"
    DEREF = "DEREF"        # unary '*', produced by mark_derefs(), never by a rule
    EQ = "=="
    NEQ = "!="
    AND = "&&"

    # Brackets
    LPAREN = "("
    RPAREN = ")"


# Token types that copy their matched text into the token
TEXT_TYPES = frozenset({TokenType.NUM, TokenType.HEX, TokenType.REG})

BINARY_OPS = frozenset({
    TokenType.PLUS, TokenType.MINUS, TokenType.MUL, TokenType.DIV,
    TokenType.EQ, TokenType.NEQ, TokenType.AND,
})


# ──────────────────────────────────────────────
# Token data class
# ──────────────────────────────────────────────

@dataclass
class Token:
    type: TokenType
    text: str = ""
    offset: int = 0

    def __repr__(self):
        if self.text:
            return f"Token({self.type.name}, {self.text!r}, @{self.offset})"
        return f"Token({self.type.name}, @{self.offset})"


# ──────────────────────────────────────────────
# Rule table (priority order, first match wins)
# ──────────────────────────────────────────────

RULE_SOURCES: List[Tuple[str, TokenType]] = [
    (r"[ \t]+",              TokenType.NOTYPE),
    (r"\+",                  TokenType.PLUS),
    (r"-",                   TokenType.MINUS),
    (r"\*",                  TokenType.MUL),
    (r"/",                   TokenType.DIV),
    (r"\(",                  TokenType.LPAREN),
    (r"\)",                  TokenType.RPAREN),
    (r"0[xX][0-9a-fA-F]+",   TokenType.HEX),
    (r"[0-9]+",              TokenType.NUM),
    (r"\$[a-zA-Z0-9]+",      TokenType.REG),
    (r"==",                  TokenType.EQ),
    (r"&&",                  TokenType.AND),
    (r"!=",                  TokenType.NEQ),
]


def _compile_rules(sources) -> List[Tuple[Pattern, TokenType]]:
    compiled = []
    for pattern, ttype in sources:
        try:
            compiled.append((re.compile(pattern), ttype))
        except re.error as e:
            raise RuntimeError(f"Rule compilation failed: {pattern!r}: {e}") from e
    return compiled


RULES: List[Tuple[Pattern, TokenType]] = _compile_rules(RULE_SOURCES)


# ──────────────────────────────────────────────
# Lexer
# ──────────────────────────────────────────────

class Lexer:
    """Tokenizes one expression string into a list of Tokens.

    Token text longer than ``text_max`` and token counts above
    ``max_tokens`` are rejected with LexerError rather than truncated.
    """

    def __init__(self, text: str, max_tokens: int = MAX_TOKENS,
                 text_max: int = TOKEN_TEXT_MAX):
        self.text = text
        self.max_tokens = max_tokens
        self.text_max = text_max

    def _match_at(self, pos: int) -> Tuple[TokenType, re.Match]:
        for regex, ttype in RULES:
            m = regex.match(self.text, pos)
            if m and m.end() > pos:
                return ttype, m
        raise LexerError(f"No rule matches {self.text[pos]!r}", pos)

    def tokenize(self) -> List[Token]:
        """Tokenize the whole text and return the token list."""
        tokens: List[Token] = []
        pos = 0

        while pos < len(self.text):
            ttype, m = self._match_at(pos)
            matched = m.group(0)

            if ttype is not TokenType.NOTYPE:
                if ttype is TokenType.REG:
                    text = matched[1:]
                elif ttype in TEXT_TYPES:
                    text = matched
                else:
                    text = ""

                if len(text) > self.text_max:
                    raise LexerError(
                        f"Token text longer than {self.text_max} characters", pos)
                if len(tokens) >= self.max_tokens:
                    raise LexerError(
                        f"Expression has more than {self.max_tokens} tokens", pos)

                tokens.append(Token(ttype, text, pos))

            pos = m.end()

        logger.debug("tokenized %r -> %s", self.text, tokens)
        return tokens


def tokenize(text: str) -> List[Token]:
    """Convenience wrapper: ``Lexer(text).tokenize()``."""
    return Lexer(text).tokenize()
