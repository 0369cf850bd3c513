"""Error types for the HC11 SDB monitor."""

from typing import Optional


class SdbError(Exception):
    """Base error for hc11-sdb."""
    pass


class ExprError(SdbError):
    """Expression could not be evaluated.

    ``offset`` is the character offset for lexer errors and the token
    index for parse/eval errors (None when there is no useful position).
    """

    def __init__(self, message: str, offset: Optional[int] = None):
        self.offset = offset
        if offset is not None:
            message = f"{message} (at {offset})"
        super().__init__(message)


class LexerError(ExprError):
    """No rule matches at an offset, or a token/token-count limit was hit."""
    pass


class ParseError(ExprError):
    """Malformed bracket nesting, missing operand or empty range."""
    pass


class EvalError(ExprError):
    """Unknown register, division by zero or bad dereference operand."""
    pass


class WatchpointError(SdbError):
    """Base error for watchpoint registry operations."""
    pass


class PoolExhausted(WatchpointError):
    """Every watchpoint slot is in use."""
    pass


class NotFoundError(WatchpointError):
    """No active watchpoint carries the requested number."""

    def __init__(self, wp_id: int):
        self.wp_id = wp_id
        super().__init__(f"No active watchpoint {wp_id}")


class EvalRangeError(RuntimeError):
    """An inverted (low > high) token range reached the evaluator.

    Raised only on a splitting bug, never on user input. Not an SdbError:
    expr() and the monitor let it propagate.
    """

    def __init__(self, low: int, high: int):
        self.low = low
        self.high = high
        super().__init__(f"Evaluator reached inverted range [{low}, {high}]")
