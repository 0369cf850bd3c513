"""
HC11 SDB — Monitor Configuration
================================

Plain constants, read once at import. Components that need a different
value take it as a constructor keyword instead of mutating this module.
"""

# =============================================================================
#  EXPRESSION ENGINE
# =============================================================================
MAX_TOKENS = 64            # tokens per expression
TOKEN_TEXT_MAX = 31        # bytes of literal/register text per token

# Machine word: unsigned, wraps modulo 2**WORD_BITS
WORD_BITS = 32
WORD_MASK = (1 << WORD_BITS) - 1

# Unary '*' reads one word of this many bytes (big-endian, HC11 byte order)
DEREF_WIDTH = 4


# =============================================================================
#  WATCHPOINT POOL
# =============================================================================
NR_WP = 32                 # fixed slot count
DEFAULT_FIRE_BUDGET = 1    # reports before a watchpoint goes quiet


# =============================================================================
#  TARGET MEMORY MAP (HC11F1, flat 64K)
#  (name, start, end inclusive, initial fill)
# =============================================================================
ADDR_MASK = 0xFFFF

MEMORY_REGIONS = [
    ("RAM",     0x0000, 0x03FF, 0x00),
    ("EXTRAM",  0x0400, 0x0FFF, 0x00),
    ("IO",      0x1000, 0x103F, 0x00),
    ("ROM1",    0x8000, 0xBFFF, 0xFF),
    ("ROM2",    0xC000, 0xFDFF, 0xFF),
    ("EEPROM",  0xFE00, 0xFFBF, 0xFF),
    ("VECTORS", 0xFFC0, 0xFFFF, 0xFF),
]

DEFAULT_LOAD_ADDR = 0x8000
RESET_SP = 0x01FF          # top of internal RAM
RESET_CCR = 0xD0           # S=1, X=1, I=1


# =============================================================================
#  MONITOR
# =============================================================================
PROMPT = "(sdb) "
X_WORDS_PER_LINE = 4       # words per row in the 'x' dump
